"""
Fixed-point calculation core for the Folks Finance Algorand protocols.

- lending: interest rate model, loan risk valuation, LP token pricing
- liquid staking (xALGO): exchange rate conversions and proposer allocation strategies
- lending v1: health factor formulae and rewards aggregator staking period rules
- deposit staking: reward accrual

All money-bearing values are integers that encode scaled decimals. Floating point is never used.
"""
