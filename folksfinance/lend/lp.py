"""
LP token fair pricing for constant product AMM pools.

LP tokens from two AMM providers are supported: Tinyman and Pact. The pricing formula is provider agnostic.
Only where the reserve snapshot is read from differs per provider:

- Tinyman: pool account's local state in the Tinyman validator app, keys: `s1`, `s2`, `ilt`
- Pact: pool app's global state, keys: `A`, `B`, `L`
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping

from folksfinance.algorand.model import Address, AppId, AssetId
from folksfinance.errors import InvalidInput
from folksfinance.math.fixed_point import sqrt


class LPTokenProvider(IntEnum):
    """
    AMM provider discriminant, as encoded in the LP token oracle
    """

    TINYMAN = 0
    PACT = 1


@dataclass(slots=True, frozen=True)
class TinymanLPToken:
    lp_asset_id: AssetId
    asset0_id: AssetId
    asset1_id: AssetId
    lp_pool_address: Address

    @property
    def provider(self) -> LPTokenProvider:
        return LPTokenProvider.TINYMAN


@dataclass(slots=True, frozen=True)
class PactLPToken:
    lp_asset_id: AssetId
    asset0_id: AssetId
    asset1_id: AssetId
    lp_pool_app_id: AppId

    @property
    def provider(self) -> LPTokenProvider:
        return LPTokenProvider.PACT


LPToken = TinymanLPToken | PactLPToken


def calc_lp_price(r0: int, r1: int, p0: int, p1: int, lts: int) -> int:
    """
    Fair price of one LP token of a constant product pool.

    The value of the pool is derived from the invariant k = r0 * r1 rather than the spot reserves, thus it cannot be
    manipulated by skewing the reserves. The result is doubled because one LP token claims both reserve legs.

    :param r0: pool supply of asset 0
    :param r1: pool supply of asset 1
    :param p0: price of asset 0 (14dp)
    :param p1: price of asset 1 (14dp)
    :param lts: circulating supply of the liquidity token
    :return: LP token price (14dp)
    :exception InvalidInput: if the liquidity token has no circulating supply
    """
    if lts <= 0:
        raise InvalidInput(f"LP token circulating supply must be positive: {lts}")
    return 2 * (sqrt(r0 * p0 * r1 * p1) // lts)


@dataclass(slots=True, frozen=True)
class PoolReserves:
    """
    AMM pool reserves snapshot
    """

    r0: int
    r1: int
    # circulating supply of the liquidity token
    lts: int

    @classmethod
    def from_tinyman_state(cls, state: Mapping[str, Any]) -> "PoolReserves":
        """
        :param state: decoded local state of the pool account in the Tinyman validator app
        """
        return cls(
            r0=int(state.get("s1") or 0),
            r1=int(state.get("s2") or 0),
            lts=int(state.get("ilt") or 0),
        )

    @classmethod
    def from_pact_state(cls, state: Mapping[str, Any]) -> "PoolReserves":
        """
        :param state: decoded global state of the Pact pool app
        """
        return cls(
            r0=int(state.get("A") or 0),
            r1=int(state.get("B") or 0),
            lts=int(state.get("L") or 0),
        )

    @classmethod
    def from_state(cls, lp_token: LPToken, state: Mapping[str, Any]) -> "PoolReserves":
        """
        Reads the reserves from the provider specific pool state
        """
        match lp_token:
            case TinymanLPToken():
                return cls.from_tinyman_state(state)
            case PactLPToken():
                return cls.from_pact_state(state)
            case _:
                raise TypeError(f"unknown LP token: {lp_token!r}")

    def lp_price(self, p0: int, p1: int) -> int:
        """
        :param p0: price of asset 0 (14dp)
        :param p1: price of asset 1 (14dp)
        :return: LP token price (14dp)
        """
        return calc_lp_price(self.r0, self.r1, p0, p1, self.lts)
