import logging
import unittest

from folksfinance.algorand.model import Address
from folksfinance.errors import InsufficientCapacity, InvalidInput
from folksfinance.xalgo.allocation import (
    FIXED_CAPACITY_BUFFER,
    MAX_APPL_CALLS,
    GreedyStakeAllocationStrategy,
    GreedyUnstakeAllocationStrategy,
    calc_split_min_received_amount,
)
from folksfinance.xalgo.consensus import ConsensusState, ProposerBalance
from tests.test_support import FolksFinanceTestCase


def consensus_state(
    balances: list[int],
    min_proposer_balance: int = 0,
    max_proposer_balance: int = 400,
    algo_balance: int = 1_000,
    xalgo_circulating_supply: int = 1_000,
) -> ConsensusState:
    return ConsensusState(
        algo_balance=algo_balance,
        xalgo_circulating_supply=xalgo_circulating_supply,
        proposers_balances=tuple(
            ProposerBalance(address=Address(f"PROPOSER{i}"), algo_balance=balance)
            for i, balance in enumerate(balances)
        ),
        min_proposer_balance=min_proposer_balance,
        max_proposer_balance=max_proposer_balance,
    )


class GreedyStakeAllocationStrategyTestCase(FolksFinanceTestCase):
    def setUp(self) -> None:
        self.strategy = GreedyStakeAllocationStrategy(capacity_buffer=0)
        self.consensus_state = consensus_state([100, 200, 300])

    def test_defaults(self):
        strategy = GreedyStakeAllocationStrategy()
        self.assertEqual(strategy.max_appl_calls, MAX_APPL_CALLS)
        self.assertEqual(strategy.capacity_buffer, FIXED_CAPACITY_BUFFER)

    def test_lowest_balance_first(self):
        self.assertEqual(self.strategy(self.consensus_state, 250), [250, 0, 0])

    def test_allocation_sums_to_amount(self):
        for amount, expected in [
            (1, [1, 0, 0]),
            (300, [300, 0, 0]),
            (450, [300, 150, 0]),
            (600, [300, 200, 100]),
        ]:
            with self.subTest(amount=amount):
                allocations = self.strategy(self.consensus_state, amount)
                self.assertEqual(allocations, expected)
                self.assertEqual(sum(allocations), amount)

    def test_proposer_order_is_preserved(self):
        # proposers are allocated by balance, but the allocations are indexed like the proposers
        self.assertEqual(self.strategy(consensus_state([300, 100, 200]), 450), [0, 300, 150])
        # ties keep their index order
        self.assertEqual(self.strategy(consensus_state([100, 100]), 350), [300, 50])

    def test_capacity_buffer(self):
        strategy = GreedyStakeAllocationStrategy(capacity_buffer=50)
        self.assertEqual(strategy(self.consensus_state, 400), [250, 150, 0])
        # full proposers have no capacity
        self.assertEqual(strategy(consensus_state([400, 100]), 250), [0, 250])

    def test_insufficient_capacity(self):
        with self.assertLogs(self.strategy.logger, level=logging.WARNING):
            with self.assertRaises(InsufficientCapacity) as err:
                self.strategy(self.consensus_state, 601)
        self.assertEqual(err.exception.requested, 601)
        self.assertEqual(err.exception.remaining, 1)

    def test_max_appl_calls(self):
        strategy = GreedyStakeAllocationStrategy(max_appl_calls=1, capacity_buffer=0)
        self.assertEqual(strategy(self.consensus_state, 300), [300, 0, 0])
        with self.assertRaises(InsufficientCapacity):
            strategy(self.consensus_state, 301)

    def test_zero_amount(self):
        self.assertEqual(self.strategy(self.consensus_state, 0), [0, 0, 0])
        self.assertEqual(GreedyUnstakeAllocationStrategy(capacity_buffer=0)(self.consensus_state, 0), [0, 0, 0])
        # nothing to place, thus no capacity is needed
        self.assertEqual(self.strategy(consensus_state([400, 400]), 0), [0, 0])

    def test_negative_amount(self):
        with self.assertRaises(InvalidInput):
            self.strategy(self.consensus_state, -1)

    def test_invalid_config(self):
        with self.assertRaises(InvalidInput):
            GreedyStakeAllocationStrategy(max_appl_calls=0)
        with self.assertRaises(InvalidInput):
            GreedyStakeAllocationStrategy(capacity_buffer=-1)


class GreedyUnstakeAllocationStrategyTestCase(FolksFinanceTestCase):
    def setUp(self) -> None:
        self.strategy = GreedyUnstakeAllocationStrategy(capacity_buffer=0)

    def test_highest_balance_first(self):
        state = consensus_state([100, 200, 300], min_proposer_balance=50)
        self.assertEqual(self.strategy(state, 200), [0, 0, 200])
        self.assertEqual(self.strategy(state, 300), [0, 50, 250])
        self.assertEqual(self.strategy(state, 450), [50, 150, 250])

    def test_capacity_is_converted_to_xalgo(self):
        # 2 xALGO per ALGO
        state = consensus_state([100, 200, 300], min_proposer_balance=50, xalgo_circulating_supply=2_000)
        self.assertEqual(self.strategy(state, 500), [0, 0, 500])
        self.assertEqual(self.strategy(state, 900), [100, 300, 500])

    def test_insufficient_capacity(self):
        state = consensus_state([100, 200, 300], min_proposer_balance=50)
        with self.assertRaises(InsufficientCapacity) as err:
            self.strategy(state, 451)
        self.assertEqual(err.exception.remaining, 1)
        self.assertIn("override with your own strategy", str(err.exception))


class SplitMinReceivedAmountTestCase(FolksFinanceTestCase):
    def test_split_min_received_amount(self):
        self.assertEqual(calc_split_min_received_amount(990, 250, 1_000), 247)
        self.assertEqual(calc_split_min_received_amount(990, 1_000, 1_000), 990)

        allocations = [300, 200, 100]
        splits = [calc_split_min_received_amount(599, split, 600) for split in allocations]
        self.assertLessEqual(sum(splits), 599)


if __name__ == "__main__":
    unittest.main()
