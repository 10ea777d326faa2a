"""
Lending v1 rewards aggregator rules
"""

from typing import Final

from folksfinance.errors import InvalidInput

MIN_STAKING_PERIOD: Final[int] = 1
MAX_STAKING_PERIOD: Final[int] = 4


def check_staking_period(period: int) -> int:
    """
    Rewards staked via the rewards aggregator are locked for one of 4 staking periods.

    :return: the validated period
    :exception InvalidInput: if the period is not in the range 1-4
    """
    if not MIN_STAKING_PERIOD <= period <= MAX_STAKING_PERIOD:
        raise InvalidInput(f"Invalid period specified: {period}")
    return period
