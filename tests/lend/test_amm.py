import unittest

from folksfinance.algorand.model import Address, AppId, AssetId
from folksfinance.errors import MissingPoolOrPrice
from folksfinance.lend.amm import LendingPool, calc_lending_pool_info
from folksfinance.lend.lp import PoolReserves, TinymanLPToken
from folksfinance.lend.pool import PoolManagerInfo, PoolManagerPoolInfo
from folksfinance.math.fixed_point import ONE_14_DP, ONE_16_DP, compound_every_hour
from tests.test_support import FolksFinanceTestCase

PCT = ONE_16_DP // 100
NOW = 1_700_000_000
POOL0 = AppId(971368268)
POOL1 = AppId(971370097)

LENDING_POOL = LendingPool(
    lp_token=TinymanLPToken(
        lp_asset_id=AssetId(1_000_001),
        asset0_id=AssetId(971384592),
        asset1_id=AssetId(971381860),
        lp_pool_address=Address("POOL"),
    ),
    pool0_app_id=POOL0,
    pool1_app_id=POOL1,
)
RESERVES = PoolReserves(r0=1_000_000, r1=2_000_000, lts=1_400_000)


class LendingPoolInfoTestCase(FolksFinanceTestCase):
    def setUp(self) -> None:
        self.pool_manager_info = PoolManagerInfo(
            pools={
                POOL0: PoolManagerPoolInfo.from_snapshot(5 * PCT, ONE_14_DP, 4 * PCT, ONE_14_DP, NOW, NOW),
                POOL1: PoolManagerPoolInfo.from_snapshot(5 * PCT, ONE_14_DP, 3 * PCT + 1, ONE_14_DP, NOW, NOW),
            }
        )

    def test_deposit_interest_is_halved(self):
        info = calc_lending_pool_info(LENDING_POOL, RESERVES, 3_000, self.pool_manager_info, 10 * PCT)

        self.assertEqual(info.f_asset0_supply, 1_000_000)
        self.assertEqual(info.f_asset1_supply, 2_000_000)
        self.assertEqual(info.liquidity_token_circulating_supply, 1_400_000)
        self.assertEqual(info.fee, 3_000)
        self.assertEqual(info.asset0_deposit_interest_rate, 2 * PCT)
        self.assertEqual(info.asset1_deposit_interest_rate, (3 * PCT + 1) // 2)
        self.assertEqual(
            info.asset0_deposit_interest_yield,
            self.pool_manager_info.get(POOL0).deposit_interest_yield // 2,
        )
        self.assertEqual(
            info.asset1_deposit_interest_yield,
            self.pool_manager_info.get(POOL1).deposit_interest_yield // 2,
        )
        self.assertEqual(info.farm_interest_yield, 0)

    def test_swap_fee_interest_yield(self):
        # compounds every hour unless the provider publishes its own yield
        info = calc_lending_pool_info(LENDING_POOL, RESERVES, 3_000, self.pool_manager_info, 10 * PCT)
        self.assertEqual(info.swap_fee_interest_yield, compound_every_hour(10 * PCT, ONE_16_DP))
        self.assertGreater(info.swap_fee_interest_yield, 10 * PCT)

        info = calc_lending_pool_info(
            LENDING_POOL,
            RESERVES,
            3_000,
            self.pool_manager_info,
            10 * PCT,
            swap_fee_interest_yield=11 * PCT,
            farm_interest_yield=PCT,
            current_round=8,
        )
        self.assertEqual(info.swap_fee_interest_yield, 11 * PCT)
        self.assertEqual(info.farm_interest_yield, PCT)
        self.assertEqual(info.current_round, 8)

    def test_missing_pool(self):
        with self.assertRaises(MissingPoolOrPrice) as err:
            calc_lending_pool_info(LENDING_POOL, RESERVES, 3_000, PoolManagerInfo(), 10 * PCT)
        self.assertEqual(err.exception.key, POOL0)


if __name__ == "__main__":
    unittest.main()
