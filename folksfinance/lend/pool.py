"""
Lending pools, the pool manager and the loan app's per-pool parameters.

The pool manager and loan apps pack the info of up to 3 pools into each of their 63 indexed global state slots.
"""

from dataclasses import dataclass, field
from typing import Final, Mapping

from folksfinance.algorand.model import AppId, AssetId
from folksfinance.errors import MissingPoolOrPrice
from folksfinance.lend.interest import (
    calc_borrow_interest_index,
    calc_borrow_interest_yield,
    calc_deposit_interest_index,
    calc_deposit_interest_yield,
)
from folksfinance.lend.lp import LPToken

POOL_SLOTS: Final[int] = 63
POOLS_PER_SLOT: Final[int] = 3
POOL_ENTRY_SIZE: Final[int] = 42


@dataclass(slots=True, frozen=True)
class Pool:
    """
    Base lending pool
    """

    app_id: AppId
    asset_id: AssetId
    f_asset_id: AssetId
    fr_asset_id: AssetId
    asset_decimals: int
    pool_manager_index: int
    # loan app ID -> loan index
    loans: Mapping[AppId, int] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class LPTokenPool(Pool):
    """
    Lending pool whose asset is an AMM LP token
    """

    lp_token: LPToken = field(kw_only=True)


def split_oracle_assets(pools: list[Pool]) -> tuple[list[LPToken], list[AssetId]]:
    """
    Splits the pools' assets into LP tokens, whose prices are derived from their AMM pool, and base assets, whose
    prices are read directly from the oracle.

    :return: (LP tokens, base asset IDs)
    """
    lp_tokens: list[LPToken] = []
    base_asset_ids: list[AssetId] = []
    for pool in pools:
        match pool:
            case LPTokenPool(lp_token=lp_token):
                lp_tokens.append(lp_token)
            case Pool(asset_id=asset_id):
                base_asset_ids.append(asset_id)
    return lp_tokens, base_asset_ids


def _pool_entries(state: Mapping[bytes, bytes | int]) -> list[bytes]:
    entries = []
    for slot in range(POOL_SLOTS):
        value = state.get(slot.to_bytes(1, "big"))
        if not isinstance(value, bytes):
            continue
        for i in range(POOLS_PER_SLOT):
            entry = value[i * POOL_ENTRY_SIZE : (i + 1) * POOL_ENTRY_SIZE]
            if len(entry) == POOL_ENTRY_SIZE:
                entries.append(entry)
    return entries


def _uint(value: bytes, start: int, end: int) -> int:
    return int.from_bytes(value[start:end], "big")


@dataclass(slots=True, frozen=True)
class PoolManagerPoolInfo:
    """
    Pool interest info derived from the pool manager's snapshot at a point in time
    """

    # pylint: disable=too-many-instance-attributes

    variable_borrow_interest_rate: int  # 16dp
    variable_borrow_interest_yield: int  # approximation 16dp
    variable_borrow_interest_index: int  # 14dp
    deposit_interest_rate: int  # 16dp
    deposit_interest_yield: int  # approximation 16dp
    deposit_interest_index: int  # 14dp
    old_variable_borrow_interest_index: int  # 14dp
    old_deposit_interest_index: int  # 14dp
    old_timestamp: int

    @classmethod
    def from_snapshot(
        cls,
        vbir: int,
        vbiit1: int,
        dir_: int,
        diit1: int,
        latest_update: int,
        now: int,
    ) -> "PoolManagerPoolInfo":
        """
        Accrues the interest indexes from the latest update up to `now`.
        """
        return cls(
            variable_borrow_interest_rate=vbir,
            variable_borrow_interest_yield=calc_borrow_interest_yield(vbir),
            variable_borrow_interest_index=calc_borrow_interest_index(vbir, vbiit1, latest_update, now),
            deposit_interest_rate=dir_,
            deposit_interest_yield=calc_deposit_interest_yield(dir_),
            deposit_interest_index=calc_deposit_interest_index(dir_, diit1, latest_update, now),
            old_variable_borrow_interest_index=vbiit1,
            old_deposit_interest_index=diit1,
            old_timestamp=latest_update,
        )


@dataclass(slots=True, frozen=True)
class PoolManagerInfo:
    pools: Mapping[AppId, PoolManagerPoolInfo] = field(default_factory=dict)
    current_round: int | None = None

    def get(self, pool_app_id: AppId) -> PoolManagerPoolInfo:
        """
        :exception MissingPoolOrPrice: if the pool is not managed by the pool manager
        """
        try:
            return self.pools[pool_app_id]
        except KeyError as err:
            raise MissingPoolOrPrice("pool", pool_app_id) from err

    @classmethod
    def from_state(
        cls,
        state: Mapping[bytes, bytes | int],
        now: int,
        current_round: int | None = None,
    ) -> "PoolManagerInfo":
        """
        :param state: decoded pool manager app global state
        :param now: unix timestamp to accrue the interest indexes up to
        """
        pools: dict[AppId, PoolManagerPoolInfo] = {}
        for entry in _pool_entries(state):
            pool_app_id = AppId(_uint(entry, 0, 6))
            if pool_app_id == 0:
                continue
            pools[pool_app_id] = PoolManagerPoolInfo.from_snapshot(
                vbir=_uint(entry, 6, 14),
                vbiit1=_uint(entry, 14, 22),
                dir_=_uint(entry, 22, 30),
                diit1=_uint(entry, 30, 38),
                latest_update=_uint(entry, 38, 42),
                now=now,
            )
        return cls(pools=pools, current_round=current_round)


@dataclass(slots=True, frozen=True)
class PoolLoanInfo:
    """
    Loan app's parameters for a pool
    """

    # pylint: disable=too-many-instance-attributes

    pool_app_id: AppId
    asset_id: AssetId
    collateral_cap: int  # $ value
    collateral_used: int
    collateral_factor: int  # 4dp
    borrow_factor: int  # 4dp
    liquidation_max: int  # 4dp
    liquidation_bonus: int  # 4dp
    liquidation_fee: int  # 4dp


@dataclass(slots=True, frozen=True)
class LoanInfo:
    pools: Mapping[AppId, PoolLoanInfo] = field(default_factory=dict)
    can_swap_collateral: bool = False
    current_round: int | None = None

    def get(self, pool_app_id: AppId) -> PoolLoanInfo:
        """
        :exception MissingPoolOrPrice: if the pool is not supported by the loan
        """
        try:
            return self.pools[pool_app_id]
        except KeyError as err:
            raise MissingPoolOrPrice("loan pool", pool_app_id) from err

    @classmethod
    def from_state(
        cls,
        state: Mapping[bytes, bytes | int],
        current_round: int | None = None,
    ) -> "LoanInfo":
        """
        :param state: decoded loan app global state
        """
        params = state.get(b"pa")
        can_swap_collateral = isinstance(params, bytes) and len(params) > 48 and params[48] > 0

        pools: dict[AppId, PoolLoanInfo] = {}
        for entry in _pool_entries(state):
            pool_app_id = AppId(_uint(entry, 0, 8))
            if pool_app_id == 0:
                continue
            pools[pool_app_id] = PoolLoanInfo(
                pool_app_id=pool_app_id,
                asset_id=AssetId(_uint(entry, 8, 16)),
                collateral_cap=_uint(entry, 16, 24),
                collateral_used=_uint(entry, 24, 32),
                collateral_factor=_uint(entry, 32, 34),
                borrow_factor=_uint(entry, 34, 36),
                liquidation_max=_uint(entry, 36, 38),
                liquidation_bonus=_uint(entry, 38, 40),
                liquidation_fee=_uint(entry, 40, 42),
            )
        return cls(pools=pools, can_swap_collateral=can_swap_collateral, current_round=current_round)
