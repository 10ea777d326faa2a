import unittest

from folksfinance.algorand.model import Address, AppId, AssetId
from folksfinance.errors import MissingPoolOrPrice
from folksfinance.lend.lp import TinymanLPToken
from folksfinance.lend.pool import (
    LoanInfo,
    LPTokenPool,
    Pool,
    PoolLoanInfo,
    PoolManagerInfo,
    split_oracle_assets,
)
from folksfinance.math.fixed_point import ONE_14_DP, ONE_16_DP, SECONDS_IN_YEAR
from tests.test_support import FolksFinanceTestCase

PCT = ONE_16_DP // 100


def pool_manager_entry(
    pool_app_id: int,
    vbir: int,
    vbiit1: int,
    dir_: int,
    diit1: int,
    latest_update: int,
) -> bytes:
    return (
        pool_app_id.to_bytes(6, "big")
        + vbir.to_bytes(8, "big")
        + vbiit1.to_bytes(8, "big")
        + dir_.to_bytes(8, "big")
        + diit1.to_bytes(8, "big")
        + latest_update.to_bytes(4, "big")
    )


def loan_entry(pool_app_id: int, asset_id: int, *factors: int) -> bytes:
    return (
        pool_app_id.to_bytes(8, "big")
        + asset_id.to_bytes(8, "big")
        + (1_000_000).to_bytes(8, "big")
        + (250_000).to_bytes(8, "big")
        + b"".join(factor.to_bytes(2, "big") for factor in factors)
    )


class PoolManagerInfoTestCase(FolksFinanceTestCase):
    def test_from_state(self):
        latest_update = 1_700_000_000
        slot = (
            pool_manager_entry(147169673, 5 * PCT, ONE_14_DP, 2 * PCT, ONE_14_DP, latest_update)
            + bytes(42)
            + pool_manager_entry(686498781, 0, ONE_14_DP, 0, ONE_14_DP, latest_update)
        )
        state = {b"\x00": slot, b"\x01": bytes(126), b"pm": 1}

        info = PoolManagerInfo.from_state(state, now=latest_update + SECONDS_IN_YEAR, current_round=7)
        self.assertEqual(set(info.pools), {147169673, 686498781})
        self.assertEqual(info.current_round, 7)

        pool_info = info.get(AppId(147169673))
        self.assertEqual(pool_info.variable_borrow_interest_rate, 5 * PCT)
        self.assertEqual(pool_info.deposit_interest_rate, 2 * PCT)
        self.assertEqual(pool_info.deposit_interest_index, 102 * ONE_14_DP // 100)
        self.assertGreater(pool_info.variable_borrow_interest_index, 105 * ONE_14_DP // 100)
        self.assertGreater(pool_info.variable_borrow_interest_yield, 5 * PCT)
        self.assertGreater(pool_info.deposit_interest_yield, 2 * PCT)
        self.assertEqual(pool_info.old_variable_borrow_interest_index, ONE_14_DP)
        self.assertEqual(pool_info.old_timestamp, latest_update)

        zero_rate_pool = info.get(AppId(686498781))
        self.assertEqual(zero_rate_pool.variable_borrow_interest_index, ONE_14_DP)
        self.assertEqual(zero_rate_pool.deposit_interest_yield, 0)

    def test_pool_updated_after_now(self):
        # the pool was updated in a block whose timestamp is ahead of the caller's clock
        latest_update = 1_700_000_010
        state = {b"\x00": pool_manager_entry(147169673, 5 * PCT, ONE_14_DP, 2 * PCT, ONE_14_DP, latest_update)}

        pool_info = PoolManagerInfo.from_state(state, now=latest_update - 5).get(AppId(147169673))
        self.assertEqual(pool_info.variable_borrow_interest_index, ONE_14_DP)
        self.assertEqual(pool_info.deposit_interest_index, ONE_14_DP)
        self.assertEqual(pool_info.old_timestamp, latest_update)

    def test_missing_pool(self):
        with self.assertRaises(MissingPoolOrPrice) as err:
            PoolManagerInfo().get(AppId(1))
        self.assertEqual(str(err.exception), "Could not find pool 1")


class LoanInfoTestCase(FolksFinanceTestCase):
    def test_from_state(self):
        params = bytearray(49)
        params[48] = 1
        state = {
            b"pa": bytes(params),
            b"\x00": loan_entry(147169673, 0, 7_500, 10_000, 5_000, 500, 100) + bytes(84),
        }

        info = LoanInfo.from_state(state, current_round=9)
        self.assertTrue(info.can_swap_collateral)
        self.assertEqual(info.current_round, 9)
        self.assertEqual(
            info.get(AppId(147169673)),
            PoolLoanInfo(
                pool_app_id=AppId(147169673),
                asset_id=AssetId(0),
                collateral_cap=1_000_000,
                collateral_used=250_000,
                collateral_factor=7_500,
                borrow_factor=10_000,
                liquidation_max=5_000,
                liquidation_bonus=500,
                liquidation_fee=100,
            ),
        )

    def test_cannot_swap_collateral(self):
        self.assertFalse(LoanInfo.from_state({b"pa": bytes(49)}).can_swap_collateral)
        self.assertFalse(LoanInfo.from_state({}).can_swap_collateral)

    def test_missing_pool(self):
        with self.assertRaises(MissingPoolOrPrice):
            LoanInfo.from_state({}).get(AppId(147169673))


class SplitOracleAssetsTestCase(FolksFinanceTestCase):
    def test_split_oracle_assets(self):
        lp_token = TinymanLPToken(
            lp_asset_id=AssetId(3),
            asset0_id=AssetId(0),
            asset1_id=AssetId(1),
            lp_pool_address=Address("POOL"),
        )
        pools = [
            Pool(AppId(10), AssetId(0), AssetId(100), AssetId(200), 6, 0),
            LPTokenPool(AppId(11), AssetId(3), AssetId(101), AssetId(201), 6, 1, lp_token=lp_token),
            Pool(AppId(12), AssetId(1), AssetId(102), AssetId(202), 6, 2),
        ]
        lp_tokens, base_asset_ids = split_oracle_assets(pools)
        self.assertEqual(lp_tokens, [lp_token])
        self.assertEqual(base_asset_ids, [AssetId(0), AssetId(1)])


if __name__ == "__main__":
    unittest.main()
