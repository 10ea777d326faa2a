"""
Lending pools, i.e., AMM pools whose two assets are the fAssets of two lending pools.

Liquidity in a lending pool earns the AMM swap fees plus the deposit interest of both underlying pools. Half of the
liquidity sits in each fAsset, thus each pool contributes half its deposit rate and yield.

Swap fee and farm rates are published off-chain by the AMM providers. Fetching them is the caller's concern.
"""

from dataclasses import dataclass

from folksfinance.algorand.model import AppId
from folksfinance.lend.lp import LPToken, PoolReserves
from folksfinance.lend.pool import PoolManagerInfo
from folksfinance.math.fixed_point import ONE_16_DP, compound_every_hour


@dataclass(slots=True, frozen=True)
class LendingPool:
    lp_token: LPToken
    pool0_app_id: AppId
    pool1_app_id: AppId


@dataclass(slots=True, frozen=True)
class LendingPoolInfo:
    # pylint: disable=too-many-instance-attributes

    f_asset0_supply: int
    f_asset1_supply: int
    liquidity_token_circulating_supply: int
    fee: int
    swap_fee_interest_rate: int  # 16dp
    swap_fee_interest_yield: int  # 16dp
    asset0_deposit_interest_rate: int  # 16dp
    asset0_deposit_interest_yield: int  # approximation 16dp
    asset1_deposit_interest_rate: int  # 16dp
    asset1_deposit_interest_yield: int  # approximation 16dp
    farm_interest_yield: int  # 16dp
    current_round: int | None = None


def calc_lending_pool_info(
    lending_pool: LendingPool,
    reserves: PoolReserves,
    fee: int,
    pool_manager_info: PoolManagerInfo,
    swap_fee_interest_rate: int,
    swap_fee_interest_yield: int | None = None,
    farm_interest_yield: int = 0,
    current_round: int | None = None,
) -> LendingPoolInfo:
    """
    :param reserves: AMM pool reserves, i.e., the fAsset supplies and the liquidity token circulating supply
    :param fee: AMM pool swap fee
    :param swap_fee_interest_rate: 16dp
    :param swap_fee_interest_yield: 16dp - if None, then the swap fee interest rate is compounded every hour
    :param farm_interest_yield: 16dp
    :exception MissingPoolOrPrice: if either underlying pool is not managed by the pool manager
    """
    pool0 = pool_manager_info.get(lending_pool.pool0_app_id)
    pool1 = pool_manager_info.get(lending_pool.pool1_app_id)
    if swap_fee_interest_yield is None:
        swap_fee_interest_yield = compound_every_hour(swap_fee_interest_rate, ONE_16_DP)

    return LendingPoolInfo(
        f_asset0_supply=reserves.r0,
        f_asset1_supply=reserves.r1,
        liquidity_token_circulating_supply=reserves.lts,
        fee=fee,
        swap_fee_interest_rate=swap_fee_interest_rate,
        swap_fee_interest_yield=swap_fee_interest_yield,
        asset0_deposit_interest_rate=pool0.deposit_interest_rate // 2,
        asset0_deposit_interest_yield=pool0.deposit_interest_yield // 2,
        asset1_deposit_interest_rate=pool1.deposit_interest_rate // 2,
        asset1_deposit_interest_yield=pool1.deposit_interest_yield // 2,
        farm_interest_yield=farm_interest_yield,
        current_round=current_round,
    )
