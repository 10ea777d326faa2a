"""
Fixed-point arithmetic on scaled integers.

Values are plain integers that encode decimals with an implied number of decimal places, e.g., 1.5 at 16dp is
`15_000_000_000_000_000`. Python integers are arbitrary precision, thus intermediate products never overflow.

The rounding conventions mirror the on-chain contracts and must not be "fixed":

- `mul_scale_round_up` and `div_scale_round_up` always add exactly 1 to the floored result, even when the division
  is exact. They are NOT ceiling functions.
"""

from typing import Final

from folksfinance.errors import InvalidInput

SECONDS_IN_YEAR: Final[int] = 365 * 24 * 60 * 60
HOURS_IN_YEAR: Final[int] = 365 * 24

ONE_2_DP: Final[int] = 10**2
ONE_4_DP: Final[int] = 10**4
ONE_10_DP: Final[int] = 10**10
ONE_14_DP: Final[int] = 10**14
ONE_16_DP: Final[int] = 10**16

UINT64: Final[int] = 2 << 63
UINT128: Final[int] = 2 << 127


def truncated_div(numerator: int, denominator: int) -> int:
    # integer division truncating toward zero, as the on-chain big integer math does
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def maximum(n1: int, n2: int) -> int:
    return n1 if n1 > n2 else n2


def minimum(n1: int, n2: int) -> int:
    return n1 if n1 < n2 else n2


def mul_scale(n1: int, n2: int, scale: int) -> int:
    """
    :return: n1 * n2 / scale
    """
    return truncated_div(n1 * n2, scale)


def mul_scale_round_up(n1: int, n2: int, scale: int) -> int:
    """
    :return: mul_scale(n1, n2, scale) + 1
    """
    return mul_scale(n1, n2, scale) + 1


def div_scale(n1: int, n2: int, scale: int) -> int:
    """
    :return: n1 * scale / n2
    """
    return truncated_div(n1 * scale, n2)


def div_scale_round_up(n1: int, n2: int, scale: int) -> int:
    """
    :return: div_scale(n1, n2, scale) + 1
    """
    return div_scale(n1, n2, scale) + 1


def exp_by_squaring(x: int, n: int, scale: int) -> int:
    """
    Fixed-point exponentiation by repeated squaring, i.e., x^n where x is scaled by `scale`.

    Each multiplication is floored, thus the result may differ from the exact power by a few rounding units.

    :param x: base (scaled)
    :param n: exponent (0dp, non-negative)
    :param scale: fixed-point scale of `x` and the result
    :return: `scale` when n == 0
    """
    if n < 0:
        raise InvalidInput(f"negative exponent is not supported: {n}")
    if n == 0:
        return scale

    y = scale
    while n > 1:
        if n % 2:
            y = mul_scale(x, y, scale)
            n = (n - 1) // 2
        else:
            n = n // 2
        x = mul_scale(x, x, scale)
    return mul_scale(x, y, scale)


def compound(rate: int, scale: int, period: int) -> int:
    """
    Compounds the annual rate over `period` equal periods within a year.

    :return: (1 + rate / period) ^ period - 1
    """
    return exp_by_squaring(scale + rate // period, period, scale) - scale


def compound_every_second(rate: int, scale: int) -> int:
    return compound(rate, scale, SECONDS_IN_YEAR)


def compound_every_hour(rate: int, scale: int) -> int:
    return compound(rate, scale, HOURS_IN_YEAR)


def sqrt(value: int) -> int:
    """
    Integer square root using Newton-Raphson iteration, rounded down to the nearest integer.

    :exception InvalidInput: if the value is negative
    """
    if value < 0:
        raise InvalidInput("square root of negative numbers is not supported")

    if value < 2:
        return value

    # start above the root, the iterates then decrease monotonically until floor(sqrt(value)) is reached
    x0 = 1 << ((value.bit_length() + 1) >> 1)
    x1 = (value // x0 + x0) >> 1
    while x1 < x0:
        x0 = x1
        x1 = (value // x0 + x0) >> 1
    return x0
