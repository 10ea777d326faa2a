"""
Oracle prices

Prices are 14dp and denominated in USD per smallest unit of the asset.

The oracle app's global state is keyed by the 8 byte asset ID. Each value packs [price (uint64), latest_update (uint64), ...].
LP token prices are not stored directly. The LP token oracle stores the LP token's pool, and its price is derived from the
pool reserves and the prices of the two underlying assets.
"""

from dataclasses import dataclass, field
from typing import Final, Mapping

from folksfinance.algorand.model import AppId, AssetId, address_from_public_key
from folksfinance.errors import InvalidInput, MissingPoolOrPrice
from folksfinance.lend.lp import (
    LPToken,
    LPTokenProvider,
    PactLPToken,
    PoolReserves,
    TinymanLPToken,
)
from folksfinance.math.fixed_point import minimum

# global state keys that are not asset IDs
NON_ASSET_KEYS: Final[frozenset[bytes]] = frozenset(
    {b"updater_addr", b"admin", b"tinyman_validator_app_id", b"td"}
)

# minimum LP token oracle value length per provider
LP_TOKEN_ORACLE_VALUE_LENGTHS: Final[dict[int, int]] = {
    LPTokenProvider.TINYMAN: 73,
    LPTokenProvider.PACT: 49,
}


@dataclass(slots=True, frozen=True)
class OraclePrice:
    price: int  # 14dp
    timestamp: int


@dataclass(slots=True, frozen=True)
class OraclePrices:
    prices: Mapping[AssetId, OraclePrice] = field(default_factory=dict)
    current_round: int | None = None

    def get(self, asset_id: AssetId) -> OraclePrice:
        """
        :exception MissingPoolOrPrice: if there is no price for the asset
        """
        try:
            return self.prices[asset_id]
        except KeyError as err:
            raise MissingPoolOrPrice("asset price", asset_id) from err


def asset_id_key(asset_id: int) -> bytes:
    return asset_id.to_bytes(8, "big")


def parse_oracle_value(value: bytes) -> OraclePrice:
    """
    :param value: [price (uint64), latest_update (uint64), ...]
    """
    if len(value) < 16:
        raise InvalidInput(f"oracle value is too short: length={len(value)}")
    return OraclePrice(
        price=int.from_bytes(value[0:8], "big"),
        timestamp=int.from_bytes(value[8:16], "big"),
    )


def parse_lp_token_oracle_value(lp_asset_id: AssetId, value: bytes) -> LPToken:
    """
    :param value: [provider (uint8), asset0_id, asset1_id, ..., pool (address | uint64)]
    :exception InvalidInput: if the provider is unknown or the value is too short for the provider
    """
    if not value:
        raise InvalidInput("LP token oracle value is empty")
    provider = value[0]
    expected_length = LP_TOKEN_ORACLE_VALUE_LENGTHS.get(provider)
    if expected_length is not None and len(value) < expected_length:
        raise InvalidInput(f"LP token oracle value is too short: provider={provider} length={len(value)}")
    asset0_id = AssetId(int.from_bytes(value[1:17], "big"))
    asset1_id = AssetId(int.from_bytes(value[17:25], "big"))

    if provider == LPTokenProvider.TINYMAN:
        return TinymanLPToken(
            lp_asset_id=lp_asset_id,
            asset0_id=asset0_id,
            asset1_id=asset1_id,
            lp_pool_address=address_from_public_key(value[41:73]),
        )
    if provider == LPTokenProvider.PACT:
        return PactLPToken(
            lp_asset_id=lp_asset_id,
            asset0_id=asset0_id,
            asset1_id=asset1_id,
            lp_pool_app_id=AppId(int.from_bytes(value[41:49], "big")),
        )
    raise InvalidInput(f"Unknown LP Token type: {provider}")


def resolve_lp_token_price(
    lp_token: LPToken,
    oracle_state: Mapping[bytes, bytes | int],
    reserves: PoolReserves,
) -> OraclePrice:
    """
    Prices the LP token from its pool reserves and the oracle prices of its two underlying assets.

    :param oracle_state: decoded oracle app global state
    :return: price whose timestamp is the older of the two underlying prices
    """
    asset0 = _oracle_price(oracle_state, lp_token.asset0_id)
    asset1 = _oracle_price(oracle_state, lp_token.asset1_id)
    return OraclePrice(
        price=reserves.lp_price(asset0.price, asset1.price),
        timestamp=minimum(asset0.timestamp, asset1.timestamp),
    )


def _oracle_price(oracle_state: Mapping[bytes, bytes | int], asset_id: AssetId) -> OraclePrice:
    value = oracle_state.get(asset_id_key(asset_id))
    if not isinstance(value, bytes):
        raise MissingPoolOrPrice("asset price", asset_id)
    return parse_oracle_value(value)


def get_oracle_prices(
    oracle_state: Mapping[bytes, bytes | int],
    lp_token_oracle_state: Mapping[bytes, bytes | int] | None = None,
    lp_pool_reserves: Mapping[AssetId, PoolReserves] | None = None,
    asset_ids: list[AssetId] | None = None,
    current_round: int | None = None,
) -> OraclePrices:
    """
    Derives oracle prices from the oracle apps' decoded global state.

    :param oracle_state: oracle app global state
    :param lp_token_oracle_state: LP token oracle app global state
    :param lp_pool_reserves: LP asset ID -> reserves snapshot of the LP token's pool
    :param asset_ids: assets to get prices for - if None, then all assets found in the oracle state
    :exception MissingPoolOrPrice: if a price or LP pool reserves snapshot cannot be found
    """
    lp_token_oracle_state = lp_token_oracle_state or {}
    lp_pool_reserves = lp_pool_reserves or {}

    if asset_ids is None:
        asset_ids = [
            AssetId(int.from_bytes(key, "big"))
            for key in [*oracle_state.keys(), *lp_token_oracle_state.keys()]
            if key not in NON_ASSET_KEYS
        ]

    prices: dict[AssetId, OraclePrice] = {}
    for asset_id in asset_ids:
        lp_token_value = lp_token_oracle_state.get(asset_id_key(asset_id))
        if isinstance(lp_token_value, bytes):
            lp_token = parse_lp_token_oracle_value(asset_id, lp_token_value)
            reserves = lp_pool_reserves.get(asset_id)
            if reserves is None:
                raise MissingPoolOrPrice("LP token pool", asset_id)
            prices[asset_id] = resolve_lp_token_price(lp_token, oracle_state, reserves)
        else:
            prices[asset_id] = _oracle_price(oracle_state, asset_id)

    return OraclePrices(prices=prices, current_round=current_round)
