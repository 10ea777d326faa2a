"""
Lending pool interest rate model.

Scales:
- amounts: 0dp
- rates and ratios: 16dp
- interest indexes: 14dp

The borrow interest index compounds every second, while the deposit interest index grows by simple interest over the
elapsed time. Display yields are approximations: the borrow yield compounds every second and the deposit yield compounds
every hour, which matches the cadence the pools are updated at.
"""

from dataclasses import dataclass

from folksfinance.math.fixed_point import (
    HOURS_IN_YEAR,
    ONE_16_DP,
    SECONDS_IN_YEAR,
    div_scale,
    exp_by_squaring,
    maximum,
    mul_scale,
)


def calc_utilisation_ratio(total_debt: int, total_deposits: int) -> int:
    """
    :param total_debt: 0dp
    :param total_deposits: 0dp
    :return: utilisation ratio (16dp), 0 if there are no deposits
    """
    if total_deposits == 0:
        return 0
    return div_scale(total_debt, total_deposits, ONE_16_DP)


def calc_stable_debt_to_total_debt_ratio(total_stable_debt: int, total_debt: int) -> int:
    """
    :param total_stable_debt: 0dp
    :param total_debt: 0dp
    :return: stable debt to total debt ratio (16dp), 0 if there is no debt
    """
    if total_debt == 0:
        return 0
    return div_scale(total_stable_debt, total_debt, ONE_16_DP)


def calc_variable_borrow_interest_rate(vr0: int, vr1: int, vr2: int, ut: int, uopt: int) -> int:
    """
    Kinked variable borrow rate curve.

    - below the optimal utilisation ratio: vr0 + (ut / uopt) * vr1
    - at or above it: vr0 + vr1 + ((ut - uopt) / (1 - uopt)) * vr2

    :param vr0: base rate (16dp)
    :param vr1: slope below the kink (16dp)
    :param vr2: slope above the kink (16dp)
    :param ut: utilisation ratio (16dp)
    :param uopt: optimal utilisation ratio (16dp)
    :return: variable borrow interest rate (16dp)
    """
    if ut < uopt:
        return vr0 + div_scale(mul_scale(ut, vr1, ONE_16_DP), uopt, ONE_16_DP)
    return vr0 + vr1 + div_scale(mul_scale(ut - uopt, vr2, ONE_16_DP), ONE_16_DP - uopt, ONE_16_DP)


def calc_stable_borrow_interest_rate(
    vr1: int,
    sr0: int,
    sr1: int,
    sr2: int,
    sr3: int,
    ut: int,
    uopt: int,
    ratiot: int,
    ratioopt: int,
) -> int:
    """
    Stable borrow rate curve.

    The base follows the shape of the variable curve. An extra sr3 term is added when the stable debt to total debt
    ratio exceeds its optimal value.

    All params and the result are 16dp.
    """
    if ut <= uopt:
        base = vr1 + sr0 + div_scale(mul_scale(ut, sr1, ONE_16_DP), uopt, ONE_16_DP)
    else:
        base = vr1 + sr0 + sr1 + div_scale(mul_scale(ut - uopt, sr2, ONE_16_DP), ONE_16_DP - uopt, ONE_16_DP)

    if ratiot <= ratioopt:
        extra = 0
    else:
        extra = div_scale(mul_scale(sr3, ratiot - ratioopt, ONE_16_DP), ONE_16_DP - ratioopt, ONE_16_DP)
    return base + extra


def calc_overall_borrow_interest_rate(
    total_var_debt: int,
    total_debt: int,
    vbirt: int,
    osbiat: int,
) -> int:
    """
    :param total_var_debt: 0dp
    :param total_debt: 0dp
    :param vbirt: variable borrow interest rate (16dp)
    :param osbiat: overall stable borrow interest amount (16dp)
    :return: overall borrow interest rate (16dp), 0 if there is no debt
    """
    if total_debt == 0:
        return 0
    return (total_var_debt * vbirt + osbiat) // total_debt


def calc_deposit_interest_rate(obirt: int, rr: int, ut: int) -> int:
    """
    :param obirt: overall borrow interest rate (16dp)
    :param rr: retention rate, i.e., the reserve factor (16dp)
    :param ut: utilisation ratio (16dp)
    :return: deposit interest rate (16dp)
    """
    return mul_scale(mul_scale(ut, obirt, ONE_16_DP), ONE_16_DP - rr, ONE_16_DP)


def _elapsed(latest_update: int, now: int) -> int:
    # block timestamps may run ahead of the caller's clock
    return maximum(now - latest_update, 0)


def calc_borrow_interest_index(birt1: int, biit1: int, latest_update: int, now: int) -> int:
    """
    Compounds the borrow interest index every second since the latest update.

    :param birt1: borrow interest rate at the latest update (16dp)
    :param biit1: borrow interest index at the latest update (14dp)
    :param latest_update: unix timestamp (0dp)
    :param now: unix timestamp to evaluate the index at (0dp)
    :return: borrow interest index (14dp)
    """
    dt = _elapsed(latest_update, now)
    return mul_scale(biit1, exp_by_squaring(ONE_16_DP + birt1 // SECONDS_IN_YEAR, dt, ONE_16_DP), ONE_16_DP)


def calc_deposit_interest_index(dirt1: int, diit1: int, latest_update: int, now: int) -> int:
    """
    Grows the deposit interest index by simple interest since the latest update.

    :param dirt1: deposit interest rate at the latest update (16dp)
    :param diit1: deposit interest index at the latest update (14dp)
    :param latest_update: unix timestamp (0dp)
    :param now: unix timestamp to evaluate the index at (0dp)
    :return: deposit interest index (14dp)
    """
    dt = _elapsed(latest_update, now)
    return mul_scale(diit1, ONE_16_DP + (dirt1 * dt) // SECONDS_IN_YEAR, ONE_16_DP)


def calc_borrow_interest_yield(rate: int) -> int:
    """
    :param rate: borrow interest rate (16dp)
    :return: annual yield compounding every second (16dp)
    """
    return exp_by_squaring(ONE_16_DP + rate // SECONDS_IN_YEAR, SECONDS_IN_YEAR, ONE_16_DP) - ONE_16_DP


def calc_deposit_interest_yield(rate: int) -> int:
    """
    :param rate: deposit interest rate (16dp)
    :return: annual yield compounding every hour (16dp)
    """
    return exp_by_squaring(ONE_16_DP + rate // HOURS_IN_YEAR, HOURS_IN_YEAR, ONE_16_DP) - ONE_16_DP


@dataclass(slots=True, frozen=True)
class VariableBorrowCurve:
    """
    Variable borrow rate curve parameters (16dp)
    """

    vr0: int
    vr1: int
    vr2: int


@dataclass(slots=True, frozen=True)
class StableBorrowCurve:
    """
    Stable borrow rate curve parameters (16dp)
    """

    sr0: int
    sr1: int
    sr2: int
    sr3: int
    optimal_stable_to_total_debt_ratio: int


@dataclass(slots=True, frozen=True)
class PoolInterestRates:
    """
    Interest rates derived from a pool snapshot at a point in time
    """

    # pylint: disable=too-many-instance-attributes

    utilisation_ratio: int
    stable_debt_to_total_debt_ratio: int
    variable_borrow_interest_rate: int
    variable_borrow_interest_yield: int
    variable_borrow_interest_index: int
    stable_borrow_interest_rate: int
    stable_borrow_interest_yield: int
    overall_borrow_interest_rate: int
    deposit_interest_rate: int
    deposit_interest_yield: int
    deposit_interest_index: int


@dataclass(slots=True, frozen=True)
class PoolInterestState:
    """
    Pool interest state snapshot.

    The interest indexes are monotonically non-decreasing.
    """

    # pylint: disable=too-many-instance-attributes

    variable_borrow: VariableBorrowCurve
    stable_borrow: StableBorrowCurve
    optimal_utilisation_ratio: int  # 16dp
    retention_rate: int  # 16dp
    total_deposits: int
    total_variable_borrow_amount: int
    total_stable_borrow_amount: int
    overall_stable_borrow_interest_amount: int  # 16dp
    variable_borrow_interest_rate: int  # 16dp
    variable_borrow_interest_index: int  # 14dp
    deposit_interest_rate: int  # 16dp
    deposit_interest_index: int  # 14dp
    latest_update: int

    @property
    def total_debt(self) -> int:
        return self.total_variable_borrow_amount + self.total_stable_borrow_amount

    def accrue(self, now: int) -> PoolInterestRates:
        """
        Derives the current rates from the pool's debt and deposits, and accrues the interest indexes from the
        latest update up to `now`.

        The indexes accrue at the rates stored at the latest update, which is how the pool contract updates them.
        """
        total_debt = self.total_debt
        ut = calc_utilisation_ratio(total_debt, self.total_deposits)
        ratiot = calc_stable_debt_to_total_debt_ratio(self.total_stable_borrow_amount, total_debt)
        variable = self.variable_borrow
        stable = self.stable_borrow

        vbirt = calc_variable_borrow_interest_rate(
            variable.vr0, variable.vr1, variable.vr2, ut, self.optimal_utilisation_ratio
        )
        sbirt = calc_stable_borrow_interest_rate(
            variable.vr1,
            stable.sr0,
            stable.sr1,
            stable.sr2,
            stable.sr3,
            ut,
            self.optimal_utilisation_ratio,
            ratiot,
            stable.optimal_stable_to_total_debt_ratio,
        )
        obirt = calc_overall_borrow_interest_rate(
            self.total_variable_borrow_amount,
            total_debt,
            vbirt,
            self.overall_stable_borrow_interest_amount,
        )
        dirt = calc_deposit_interest_rate(obirt, self.retention_rate, ut)

        return PoolInterestRates(
            utilisation_ratio=ut,
            stable_debt_to_total_debt_ratio=ratiot,
            variable_borrow_interest_rate=vbirt,
            variable_borrow_interest_yield=calc_borrow_interest_yield(vbirt),
            variable_borrow_interest_index=calc_borrow_interest_index(
                self.variable_borrow_interest_rate,
                self.variable_borrow_interest_index,
                self.latest_update,
                now,
            ),
            stable_borrow_interest_rate=sbirt,
            stable_borrow_interest_yield=calc_borrow_interest_yield(sbirt),
            overall_borrow_interest_rate=obirt,
            deposit_interest_rate=dirt,
            deposit_interest_yield=calc_deposit_interest_yield(dirt),
            deposit_interest_index=calc_deposit_interest_index(
                self.deposit_interest_rate,
                self.deposit_interest_index,
                self.latest_update,
                now,
            ),
        )
