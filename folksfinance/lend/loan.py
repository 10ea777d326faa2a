"""
Loan risk valuation.

A loan (position) is a set of collaterals and borrows. Every risk metric is recomputed from the current interest
indexes and oracle prices. Nothing is persisted.

Scales:
- dollar values: 4dp
- LTV, borrow utilisation ratio and liquidation margin: 4dp
- net rate and net yield: 16dp

A loan is liquidatable iff its total effective collateral value is strictly less than its total effective borrow value.

Several deployed versions of the loan formulae round and normalise differently. Each variant is tagged by a
:class:`RiskFormulaVersion` instead of being merged into a single formula.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Final, Iterable, Mapping

from folksfinance.algorand.model import Address, AppId, AssetId, address_from_public_key
from folksfinance.algorand.state import parse_uint64s, require_bytes
from folksfinance.core.logging import get_logger
from folksfinance.errors import InvalidInput
from folksfinance.lend.formulae import (
    calc_borrow_asset_loan_value,
    calc_borrow_balance,
    calc_borrow_utilisation_ratio,
    calc_collateral_asset_loan_value,
    calc_collateral_asset_loan_value_round_up,
    calc_liquidation_margin,
    calc_ltv_ratio,
    calc_withdraw_return,
)
from folksfinance.lend.interest import (
    calc_borrow_interest_index,
    calc_borrow_interest_yield,
)
from folksfinance.lend.oracle import OraclePrices
from folksfinance.lend.pool import LoanInfo, PoolManagerInfo
from folksfinance.lend.v1.formulae import calc_borrow_balance as calc_borrow_balance_v1
from folksfinance.math.fixed_point import ONE_4_DP, truncated_div

# number of collateral and borrow slots in a loan escrow's local state
LOAN_SLOTS: Final[int] = 15


class BorrowBalanceRounding(Enum):
    """
    How the borrow balance is accrued from the borrow interest indexes

    - V1: mul_scale(balance, div_scale(index, index_at_op)) + 1
    - V2: mul_scale_round_up(balance, div_scale_round_up(index, index_at_op))
    """

    V1 = auto()
    V2 = auto()


class NetRateNormalisation(Enum):
    """
    Divisor of the value weighted net rate and net yield
    """

    # total collateral value
    COLLATERAL = auto()
    # total collateral value + total borrow value
    COLLATERAL_AND_BORROW = auto()


@dataclass(slots=True, frozen=True)
class RiskFormulaVersion:
    """
    Tags a variant of the loan valuation formulae
    """

    name: str
    borrow_balance_rounding: BorrowBalanceRounding
    round_up_collateral_value: bool
    net_rate_normalisation: NetRateNormalisation


# deployed lending v2 contract conventions: collateral values round down, borrow values round up
LEND_V2: Final[RiskFormulaVersion] = RiskFormulaVersion(
    name="lend-v2",
    borrow_balance_rounding=BorrowBalanceRounding.V2,
    round_up_collateral_value=False,
    net_rate_normalisation=NetRateNormalisation.COLLATERAL,
)

LEND_V2_CONSERVATIVE: Final[RiskFormulaVersion] = RiskFormulaVersion(
    name="lend-v2-conservative",
    borrow_balance_rounding=BorrowBalanceRounding.V2,
    round_up_collateral_value=True,
    net_rate_normalisation=NetRateNormalisation.COLLATERAL_AND_BORROW,
)

RISK_FORMULA_VERSIONS: Final[dict[str, RiskFormulaVersion]] = {
    version.name: version for version in (LEND_V2, LEND_V2_CONSERVATIVE)
}


@dataclass(slots=True, frozen=True)
class LoanCollateral:
    pool_app_id: AppId
    f_asset_balance: int


@dataclass(slots=True, frozen=True)
class LoanBorrow:
    pool_app_id: AppId
    borrowed_amount: int
    # borrow balance at the latest operation
    borrow_balance: int
    # borrow interest index at the latest operation (14dp)
    latest_borrow_interest_index: int
    # locked in stable rate (16dp)
    stable_borrow_interest_rate: int
    # unix timestamp - 0 if the borrow is variable
    latest_stable_change: int

    @property
    def is_stable(self) -> bool:
        return self.latest_stable_change > 0


@dataclass(slots=True, frozen=True)
class LoanLocalState:
    """
    Loan escrow's local state. Empty collateral slots have pool app ID 0 and empty borrow slots have a 0 balance.
    """

    user_address: Address
    escrow_address: Address
    collaterals: tuple[LoanCollateral, ...] = ()
    borrows: tuple[LoanBorrow, ...] = ()
    current_round: int | None = None

    @classmethod
    def from_state(
        cls,
        state: Mapping[bytes, bytes | int],
        escrow_address: Address,
        current_round: int | None = None,
    ) -> "LoanLocalState":
        """
        :param state: decoded local state of the loan escrow in the loan app
        :exception InvalidInput: if an expected state key is missing
        """

        def uint64s(key: str) -> list[int]:
            values = parse_uint64s(require_bytes(state.get(key.encode()), key))
            if len(values) < LOAN_SLOTS:
                raise InvalidInput(f"expected {LOAN_SLOTS} values for state key: {key}")
            return values

        col_pls = uint64s("c")
        bor_pls = uint64s("b")
        col_bals = uint64s("cb")
        bor_ams = uint64s("ba")
        bor_bals = uint64s("bb")
        lbii = uint64s("l")
        sbir = uint64s("r")
        lsc = uint64s("t")

        return cls(
            user_address=address_from_public_key(require_bytes(state.get(b"u"), "u")),
            escrow_address=escrow_address,
            collaterals=tuple(
                LoanCollateral(pool_app_id=AppId(col_pls[i]), f_asset_balance=col_bals[i])
                for i in range(LOAN_SLOTS)
            ),
            borrows=tuple(
                LoanBorrow(
                    pool_app_id=AppId(bor_pls[i]),
                    borrowed_amount=bor_ams[i],
                    borrow_balance=bor_bals[i],
                    latest_borrow_interest_index=lbii[i],
                    stable_borrow_interest_rate=sbir[i],
                    latest_stable_change=lsc[i],
                )
                for i in range(LOAN_SLOTS)
            ),
            current_round=current_round,
        )


@dataclass(slots=True, frozen=True)
class UserLoanInfoCollateral:
    # pylint: disable=too-many-instance-attributes

    pool_app_id: AppId
    asset_id: AssetId
    asset_price: int  # 14dp
    collateral_factor: int  # 4dp
    deposit_interest_index: int  # 14dp
    f_asset_balance: int
    asset_balance: int
    balance_value: int  # $ 4dp
    effective_balance_value: int  # $ 4dp
    interest_rate: int  # 16dp
    interest_yield: int  # approximation 16dp


@dataclass(slots=True, frozen=True)
class UserLoanInfoBorrow:
    # pylint: disable=too-many-instance-attributes

    pool_app_id: AppId
    asset_id: AssetId
    asset_price: int  # 14dp
    is_stable: bool
    borrow_factor: int  # 4dp
    borrowed_amount: int
    borrowed_amount_value: int  # $ 4dp
    borrow_balance: int
    borrow_balance_value: int  # $ 4dp
    effective_borrow_balance_value: int  # $ 4dp
    accrued_interest: int
    accrued_interest_value: int  # $ 4dp
    interest_rate: int  # 16dp
    interest_yield: int  # approximation 16dp


@dataclass(slots=True, frozen=True)
class UserLoanInfo:
    """
    Loan risk summary
    """

    # pylint: disable=too-many-instance-attributes

    user_address: Address
    escrow_address: Address
    collaterals: tuple[UserLoanInfoCollateral, ...]
    borrows: tuple[UserLoanInfoBorrow, ...]
    # negative indicates losing more on borrows than gaining on collaterals (16dp)
    net_rate: int
    net_yield: int
    total_collateral_balance_value: int
    total_borrowed_amount_value: int
    total_borrow_balance_value: int
    total_effective_collateral_balance_value: int
    total_effective_borrow_balance_value: int
    loan_to_value_ratio: int
    borrow_utilisation_ratio: int
    liquidation_margin: int
    current_round: int | None = None

    @property
    def is_liquidatable(self) -> bool:
        return self.total_effective_collateral_balance_value < self.total_effective_borrow_balance_value


@dataclass(slots=True)
class _Totals:
    collateral_balance_value: int = 0
    effective_collateral_balance_value: int = 0
    borrowed_amount_value: int = 0
    borrow_balance_value: int = 0
    effective_borrow_balance_value: int = 0
    net_rate: int = 0
    net_yield: int = 0
    collaterals: list[UserLoanInfoCollateral] = field(default_factory=list)
    borrows: list[UserLoanInfoBorrow] = field(default_factory=list)


class LoanRiskEngine:
    """
    Values loans using the formulae of the configured version.

    The engine holds no state besides its formula version, thus it can be shared freely, e.g., to scan many loans
    for liquidation candidates in parallel.
    """

    def __init__(self, version: RiskFormulaVersion = LEND_V2):
        self.version = version
        self.logger = get_logger(self)

    def calc_borrow_balance(self, bbtn1: int, biit: int, biitn1: int) -> int:
        """
        :param bbtn1: borrow balance at the latest operation (0dp)
        :param biit: current borrow interest index (14dp)
        :param biitn1: borrow interest index at the latest operation (14dp)
        :return: borrow balance (0dp)
        """
        match self.version.borrow_balance_rounding:
            case BorrowBalanceRounding.V1:
                return calc_borrow_balance_v1(bbtn1, biit, biitn1)
            case BorrowBalanceRounding.V2:
                return calc_borrow_balance(bbtn1, biit, biitn1)

    def calc_collateral_value(self, amount: int, price: int, factor: int) -> int:
        """
        :return: collateral value (4dp)
        """
        if self.version.round_up_collateral_value:
            return calc_collateral_asset_loan_value_round_up(amount, price, factor)
        return calc_collateral_asset_loan_value(amount, price, factor)

    def normalise_net_rate(self, weighted_rate: int, total_collateral_value: int, total_borrow_value: int) -> int:
        """
        :param weighted_rate: sum of value weighted rates
        :return: net rate (16dp) - 0 if the divisor is 0
        """
        match self.version.net_rate_normalisation:
            case NetRateNormalisation.COLLATERAL:
                divisor = total_collateral_value
            case NetRateNormalisation.COLLATERAL_AND_BORROW:
                divisor = total_collateral_value + total_borrow_value
        if divisor <= 0:
            return 0
        return truncated_div(weighted_rate, divisor)

    def user_loan_info(
        self,
        local_state: LoanLocalState,
        pool_manager_info: PoolManagerInfo,
        loan_info: LoanInfo,
        oracle_prices: OraclePrices,
        now: int,
    ) -> UserLoanInfo:
        """
        Values the loan.

        :param now: unix timestamp used to accrue stable borrow interest
        :exception MissingPoolOrPrice: if a referenced pool or asset price cannot be found
        """
        totals = _Totals()

        for collateral in local_state.collaterals:
            if collateral.pool_app_id > 0:
                self._add_collateral(totals, collateral, pool_manager_info, loan_info, oracle_prices)

        for borrow in local_state.borrows:
            if borrow.borrow_balance > 0:
                self._add_borrow(totals, borrow, pool_manager_info, loan_info, oracle_prices, now)

        loan = UserLoanInfo(
            user_address=local_state.user_address,
            escrow_address=local_state.escrow_address,
            collaterals=tuple(totals.collaterals),
            borrows=tuple(totals.borrows),
            net_rate=self.normalise_net_rate(
                totals.net_rate,
                totals.collateral_balance_value,
                totals.borrow_balance_value,
            ),
            net_yield=self.normalise_net_rate(
                totals.net_yield,
                totals.collateral_balance_value,
                totals.borrow_balance_value,
            ),
            total_collateral_balance_value=totals.collateral_balance_value,
            total_borrowed_amount_value=totals.borrowed_amount_value,
            total_borrow_balance_value=totals.borrow_balance_value,
            total_effective_collateral_balance_value=totals.effective_collateral_balance_value,
            total_effective_borrow_balance_value=totals.effective_borrow_balance_value,
            loan_to_value_ratio=calc_ltv_ratio(totals.borrow_balance_value, totals.collateral_balance_value),
            borrow_utilisation_ratio=calc_borrow_utilisation_ratio(
                totals.effective_borrow_balance_value,
                totals.effective_collateral_balance_value,
            ),
            liquidation_margin=calc_liquidation_margin(
                totals.effective_borrow_balance_value,
                totals.effective_collateral_balance_value,
            ),
            current_round=local_state.current_round,
        )

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                "escrow=%s version=%s effective_collateral=%s effective_borrow=%s liquidation_margin=%s",
                loan.escrow_address,
                self.version.name,
                loan.total_effective_collateral_balance_value,
                loan.total_effective_borrow_balance_value,
                loan.liquidation_margin,
            )
        if loan.is_liquidatable:
            self.logger.warning("loan is liquidatable: escrow=%s", loan.escrow_address)
        return loan

    def liquidatable_loans(
        self,
        local_states: Iterable[LoanLocalState],
        pool_manager_info: PoolManagerInfo,
        loan_info: LoanInfo,
        oracle_prices: OraclePrices,
        now: int,
    ) -> list[UserLoanInfo]:
        """
        :return: liquidatable loans, ordered by liquidation margin ascending, i.e., the most under-collateralised first
        :exception MissingPoolOrPrice: if any loan cannot be valued
        """
        loans = [
            self.user_loan_info(local_state, pool_manager_info, loan_info, oracle_prices, now)
            for local_state in local_states
        ]
        return sorted(
            (loan for loan in loans if loan.is_liquidatable),
            key=lambda loan: loan.liquidation_margin,
        )

    def _add_collateral(
        self,
        totals: _Totals,
        collateral: LoanCollateral,
        pool_manager_info: PoolManagerInfo,
        loan_info: LoanInfo,
        oracle_prices: OraclePrices,
    ):
        pool_info = pool_manager_info.get(collateral.pool_app_id)
        pool_loan_info = loan_info.get(collateral.pool_app_id)
        asset_price = oracle_prices.get(pool_loan_info.asset_id).price

        asset_balance = calc_withdraw_return(collateral.f_asset_balance, pool_info.deposit_interest_index)
        balance_value = self.calc_collateral_value(asset_balance, asset_price, ONE_4_DP)
        effective_balance_value = self.calc_collateral_value(
            asset_balance, asset_price, pool_loan_info.collateral_factor
        )

        totals.collateral_balance_value += balance_value
        totals.effective_collateral_balance_value += effective_balance_value
        totals.net_rate += balance_value * pool_info.deposit_interest_rate
        totals.net_yield += balance_value * pool_info.deposit_interest_yield
        totals.collaterals.append(
            UserLoanInfoCollateral(
                pool_app_id=collateral.pool_app_id,
                asset_id=pool_loan_info.asset_id,
                asset_price=asset_price,
                collateral_factor=pool_loan_info.collateral_factor,
                deposit_interest_index=pool_info.deposit_interest_index,
                f_asset_balance=collateral.f_asset_balance,
                asset_balance=asset_balance,
                balance_value=balance_value,
                effective_balance_value=effective_balance_value,
                interest_rate=pool_info.deposit_interest_rate,
                interest_yield=pool_info.deposit_interest_yield,
            )
        )

    def _add_borrow(
        self,
        totals: _Totals,
        borrow: LoanBorrow,
        pool_manager_info: PoolManagerInfo,
        loan_info: LoanInfo,
        oracle_prices: OraclePrices,
        now: int,
    ):
        # pylint: disable=too-many-arguments
        pool_info = pool_manager_info.get(borrow.pool_app_id)
        pool_loan_info = loan_info.get(borrow.pool_app_id)
        asset_price = oracle_prices.get(pool_loan_info.asset_id).price

        if borrow.is_stable:
            # stable borrows accrue at their locked in rate since the latest stable rate change
            borrow_interest_index = calc_borrow_interest_index(
                borrow.stable_borrow_interest_rate,
                borrow.latest_borrow_interest_index,
                borrow.latest_stable_change,
                now,
            )
            interest_rate = borrow.stable_borrow_interest_rate
            interest_yield = calc_borrow_interest_yield(borrow.stable_borrow_interest_rate)
        else:
            borrow_interest_index = pool_info.variable_borrow_interest_index
            interest_rate = pool_info.variable_borrow_interest_rate
            interest_yield = pool_info.variable_borrow_interest_yield

        borrowed_amount_value = calc_collateral_asset_loan_value(borrow.borrowed_amount, asset_price, ONE_4_DP)
        borrow_balance = self.calc_borrow_balance(
            borrow.borrow_balance,
            borrow_interest_index,
            borrow.latest_borrow_interest_index,
        )
        borrow_balance_value = calc_borrow_asset_loan_value(borrow_balance, asset_price, ONE_4_DP)
        effective_borrow_balance_value = calc_borrow_asset_loan_value(
            borrow_balance, asset_price, pool_loan_info.borrow_factor
        )

        totals.borrowed_amount_value += borrowed_amount_value
        totals.borrow_balance_value += borrow_balance_value
        totals.effective_borrow_balance_value += effective_borrow_balance_value
        totals.net_rate -= borrow_balance_value * interest_rate
        totals.net_yield -= borrow_balance_value * interest_yield
        totals.borrows.append(
            UserLoanInfoBorrow(
                pool_app_id=borrow.pool_app_id,
                asset_id=pool_loan_info.asset_id,
                asset_price=asset_price,
                is_stable=borrow.is_stable,
                borrow_factor=pool_loan_info.borrow_factor,
                borrowed_amount=borrow.borrowed_amount,
                borrowed_amount_value=borrowed_amount_value,
                borrow_balance=borrow_balance,
                borrow_balance_value=borrow_balance_value,
                effective_borrow_balance_value=effective_borrow_balance_value,
                accrued_interest=borrow_balance - borrow.borrowed_amount,
                accrued_interest_value=borrow_balance_value - borrowed_amount_value,
                interest_rate=interest_rate,
                interest_yield=interest_yield,
            )
        )
