import unittest

from folksfinance.algorand.model import Address, AppId, AssetId
from folksfinance.errors import InvalidInput
from folksfinance.lend.lp import (
    LPTokenProvider,
    PactLPToken,
    PoolReserves,
    TinymanLPToken,
    calc_lp_price,
)
from folksfinance.math.fixed_point import ONE_14_DP
from tests.test_support import FolksFinanceTestCase

TINYMAN_LP_TOKEN = TinymanLPToken(
    lp_asset_id=AssetId(3),
    asset0_id=AssetId(1),
    asset1_id=AssetId(2),
    lp_pool_address=Address("POOL"),
)
PACT_LP_TOKEN = PactLPToken(
    lp_asset_id=AssetId(3),
    asset0_id=AssetId(1),
    asset1_id=AssetId(2),
    lp_pool_app_id=AppId(42),
)


class LPPriceTestCase(FolksFinanceTestCase):
    def test_balanced_pool(self):
        # pool value = 1000 * $4 + 4000 * $1 = $8000 over 100 LP tokens
        self.assertEqual(calc_lp_price(1_000, 4_000, 4 * ONE_14_DP, ONE_14_DP, 100), 80 * ONE_14_DP)

    def test_symmetry(self):
        for r0, r1, p0, p1, lts in [
            (1_000, 4_000, 4 * ONE_14_DP, ONE_14_DP, 100),
            (123_456_789, 987_654_321, 31_415_926, 27_182_818_284, 7_777),
            (1, 10**15, 10**18, 1, 3),
            (0, 10**6, ONE_14_DP, ONE_14_DP, 1),
        ]:
            with self.subTest(r0=r0, r1=r1):
                self.assertEqual(
                    calc_lp_price(r0, r1, p0, p1, lts),
                    calc_lp_price(r1, r0, p1, p0, lts),
                )

    def test_empty_pool(self):
        self.assertEqual(calc_lp_price(0, 0, ONE_14_DP, ONE_14_DP, 1), 0)

    def test_no_circulating_supply(self):
        with self.assertRaises(InvalidInput):
            calc_lp_price(1_000, 1_000, ONE_14_DP, ONE_14_DP, 0)


class PoolReservesTestCase(FolksFinanceTestCase):
    def test_provider(self):
        self.assertEqual(TINYMAN_LP_TOKEN.provider, LPTokenProvider.TINYMAN)
        self.assertEqual(PACT_LP_TOKEN.provider, LPTokenProvider.PACT)

    def test_from_state_dispatches_on_provider(self):
        tinyman_state = {"s1": 1_000, "s2": 4_000, "ilt": 100}
        pact_state = {"A": 10, "B": 20, "L": 5}

        self.assertEqual(
            PoolReserves.from_state(TINYMAN_LP_TOKEN, tinyman_state),
            PoolReserves(r0=1_000, r1=4_000, lts=100),
        )
        self.assertEqual(
            PoolReserves.from_state(PACT_LP_TOKEN, pact_state),
            PoolReserves(r0=10, r1=20, lts=5),
        )
        # each provider only reads its own keys
        self.assertEqual(
            PoolReserves.from_state(PACT_LP_TOKEN, tinyman_state),
            PoolReserves(r0=0, r1=0, lts=0),
        )

    def test_from_state_unknown_lp_token(self):
        with self.assertRaises(TypeError):
            PoolReserves.from_state("LP", {})  # type: ignore[arg-type]

    def test_lp_price(self):
        reserves = PoolReserves(r0=1_000, r1=4_000, lts=100)
        self.assertEqual(reserves.lp_price(4 * ONE_14_DP, ONE_14_DP), 80 * ONE_14_DP)

        with self.assertRaises(InvalidInput):
            PoolReserves(r0=1_000, r1=4_000, lts=0).lp_price(ONE_14_DP, ONE_14_DP)


if __name__ == "__main__":
    unittest.main()
