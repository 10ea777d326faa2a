"""
Deposit escrow valuation.

A deposit escrow holds fAssets. Each holding is valued by converting it back into its pool's asset at the current
deposit interest index.
"""

from dataclasses import dataclass
from typing import Iterable

from folksfinance.algorand.model import Address, AppId, AssetId
from folksfinance.errors import MissingPoolOrPrice
from folksfinance.lend.formulae import calc_withdraw_return
from folksfinance.lend.oracle import OraclePrices
from folksfinance.lend.pool import Pool, PoolManagerInfo
from folksfinance.math.fixed_point import ONE_10_DP, mul_scale


@dataclass(slots=True, frozen=True)
class DepositHolding:
    f_asset_id: AssetId
    f_asset_balance: int


@dataclass(slots=True, frozen=True)
class UserDepositInfo:
    """
    Deposit escrow's fAsset holdings
    """

    escrow_address: Address
    holdings: tuple[DepositHolding, ...] = ()
    current_round: int | None = None


@dataclass(slots=True, frozen=True)
class DepositHoldingInfo:
    # pylint: disable=too-many-instance-attributes

    f_asset_id: AssetId
    f_asset_balance: int
    pool_app_id: AppId
    asset_id: AssetId
    asset_price: int  # 14dp
    asset_balance: int
    balance_value: int  # $ 4dp
    interest_rate: int  # 16dp
    interest_yield: int  # approximation 16dp


@dataclass(slots=True, frozen=True)
class UserDepositFullInfo:
    escrow_address: Address
    holdings: tuple[DepositHoldingInfo, ...] = ()
    current_round: int | None = None


def user_deposit_full_info(
    deposit: UserDepositInfo,
    pool_manager_info: PoolManagerInfo,
    pools: Iterable[Pool],
    oracle_prices: OraclePrices,
) -> UserDepositFullInfo:
    """
    :param pools: pools managed by the pool manager
    :exception MissingPoolOrPrice: if a holding's fAsset has no pool, or its pool or price cannot be found
    """
    pools_by_f_asset_id = {pool.f_asset_id: pool for pool in pools}

    holdings: list[DepositHoldingInfo] = []
    for holding in deposit.holdings:
        pool = pools_by_f_asset_id.get(holding.f_asset_id)
        if pool is None:
            raise MissingPoolOrPrice("pool with fAsset", holding.f_asset_id)
        pool_info = pool_manager_info.get(pool.app_id)
        asset_price = oracle_prices.get(pool.asset_id).price

        asset_balance = calc_withdraw_return(holding.f_asset_balance, pool_info.deposit_interest_index)
        holdings.append(
            DepositHoldingInfo(
                f_asset_id=holding.f_asset_id,
                f_asset_balance=holding.f_asset_balance,
                pool_app_id=pool.app_id,
                asset_id=pool.asset_id,
                asset_price=asset_price,
                asset_balance=asset_balance,
                balance_value=mul_scale(asset_balance, asset_price, ONE_10_DP),
                interest_rate=pool_info.deposit_interest_rate,
                interest_yield=pool_info.deposit_interest_yield,
            )
        )

    return UserDepositFullInfo(
        escrow_address=deposit.escrow_address,
        holdings=tuple(holdings),
        current_round=deposit.current_round,
    )
