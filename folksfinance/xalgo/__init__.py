"""
xALGO liquid staking: exchange rate formulae and proposer allocation strategies
"""
