"""
Lending v1 formulae.

v1 loans are valued by a health factor rather than by dollar values: the collateral threshold is converted into the
borrow asset through the conversion rate of the two oracle prices. Rates, ratios and indexes are all 14dp.
"""

from dataclasses import dataclass

from folksfinance.math.fixed_point import ONE_14_DP, SECONDS_IN_YEAR, div_scale, maximum, mul_scale


def calc_utilization_ratio(total_borrows: int, total_deposits: int) -> int:
    """
    :return: utilization ratio (14dp), 0 if there are no deposits
    """
    if total_deposits == 0:
        return 0
    return div_scale(total_borrows, total_deposits, ONE_14_DP)


def calc_interest_index(
    interest_index: int,
    interest_rate: int,
    latest_update: int,
    now: int,
    epsilon: int | None = None,
) -> int:
    """
    Grows the interest index by simple interest since the latest update.

    The deposit interest index is calculated when `epsilon` is None, else the borrow interest index.

    :param interest_index: 14dp
    :param interest_rate: 14dp
    :param latest_update: unix timestamp
    :param now: unix timestamp
    :param epsilon: 14dp
    :return: interest index (14dp) - unchanged if `now` precedes the latest update
    """
    interest = (interest_rate // SECONDS_IN_YEAR) * maximum(now - latest_update, 0)
    if epsilon is not None:
        interest = mul_scale(epsilon, interest, ONE_14_DP)
    return mul_scale(interest_index, ONE_14_DP + interest, ONE_14_DP)


def calc_threshold(
    collateral_amount: int,
    deposit_interest_index: int,
    s2: int,
    conversion_rate: int,
    conversion_rate_dec: int,
) -> int:
    """
    Threshold of under-collateralisation of the loan, denominated in the borrow asset.

    :param collateral_amount: Xdp
    :param deposit_interest_index: 14dp
    :param s2: collateral factor (14dp)
    :param conversion_rate: `conversion_rate_dec` dp
    :param conversion_rate_dec: 0dp
    """
    collateral = mul_scale(mul_scale(collateral_amount, deposit_interest_index, ONE_14_DP), s2, ONE_14_DP)
    return mul_scale(collateral, conversion_rate, 10**conversion_rate_dec)


def calc_borrow_balance(
    borrow_balance_at_last_operation: int,
    borrow_interest_index: int,
    borrow_interest_index_at_last_operation: int,
) -> int:
    """
    Lending v1 contract convention: the accrued balance is floored then biased up by one unit.

    :return: borrow balance (Xdp)
    """
    ratio = div_scale(borrow_interest_index, borrow_interest_index_at_last_operation, ONE_14_DP)
    return mul_scale(borrow_balance_at_last_operation, ratio, ONE_14_DP) + 1


def calc_health_factor(threshold: int, borrow_balance: int) -> int:
    """
    :return: health factor (14dp) - the loan can be liquidated when it drops below 1
    """
    return div_scale(threshold, borrow_balance, ONE_14_DP)


@dataclass(slots=True, frozen=True)
class ConversionRate:
    rate: int
    decimals: int


def calc_conversion_rate(collateral_price: int, borrow_price: int) -> ConversionRate:
    """
    Conversion rate from the collateral asset to the borrow asset.

    The number of decimals is reduced from 18 by the number of orders of magnitude the collateral price exceeds the
    borrow price by, which bounds the size of the rate.
    """
    decimals = 18
    if collateral_price >= borrow_price:
        borrow_exp_price = borrow_price
        while borrow_exp_price < collateral_price and decimals > 0:
            borrow_exp_price *= 10
            decimals -= 1
    return ConversionRate(
        rate=div_scale(collateral_price, borrow_price, 10**decimals),
        decimals=decimals,
    )
