"""
Proposer allocation strategies.

A stake or unstake is split across the consensus app's proposers. Each non-zero split costs one app call, thus a
transaction group can touch at most `max_appl_calls` proposers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Final, Protocol

from folksfinance.algorand.model import MicroAlgos
from folksfinance.core.logging import get_logger
from folksfinance.errors import InsufficientCapacity, InvalidInput
from folksfinance.math.fixed_point import maximum, minimum, mul_scale
from folksfinance.xalgo.consensus import ConsensusState, ProposerBalance, convert_algo_to_xalgo_when_delay

# amount per proposer, indexed like ConsensusState.proposers_balances
ProposerAllocations = list[int]

MAX_APPL_CALLS: Final[int] = 8
# capacity each proposer is under-approximated by to leave wiggle room for balance changes
FIXED_CAPACITY_BUFFER: Final[MicroAlgos] = MicroAlgos(10_000_000)


class AllocationStrategy(Protocol):
    def __call__(self, consensus_state: ConsensusState, amount: int) -> ProposerAllocations:
        ...


class _GreedyAllocationStrategy(ABC):
    """
    Visits the proposers in priority order and fills each one up to its capacity until the amount is fully allocated.
    """

    insufficient_capacity_message: str

    def __init__(
        self,
        max_appl_calls: int = MAX_APPL_CALLS,
        capacity_buffer: int = FIXED_CAPACITY_BUFFER,
    ):
        if max_appl_calls <= 0:
            raise InvalidInput(f"max_appl_calls must be positive: {max_appl_calls}")
        if capacity_buffer < 0:
            raise InvalidInput(f"capacity_buffer must not be negative: {capacity_buffer}")
        self.max_appl_calls = max_appl_calls
        self.capacity_buffer = capacity_buffer
        self.logger = get_logger(self)

    @abstractmethod
    def _sort_key(self, proposer: ProposerBalance) -> int:
        ...

    @abstractmethod
    def _capacity(self, consensus_state: ConsensusState, proposer: ProposerBalance) -> int:
        ...

    def __call__(self, consensus_state: ConsensusState, amount: int) -> ProposerAllocations:
        """
        :exception InvalidInput: if the amount is negative
        :exception InsufficientCapacity: if the amount cannot be fully allocated within `max_appl_calls` proposers
        """
        if amount < 0:
            raise InvalidInput(f"amount must not be negative: {amount}")

        proposers = consensus_state.proposers_balances
        allocations: ProposerAllocations = [0] * len(proposers)
        if amount == 0:
            return allocations
        # sorted() is stable, thus proposers with equal balances keep their index order
        ordered = sorted(range(len(proposers)), key=lambda i: self._sort_key(proposers[i]))

        remaining = amount
        for index in ordered[: self.max_appl_calls]:
            allocate = minimum(remaining, self._capacity(consensus_state, proposers[index]))
            allocations[index] = allocate
            remaining -= allocate
            if remaining <= 0:
                break

        if remaining > 0:
            self.logger.warning(
                "%s: requested=%s remaining=%s max_appl_calls=%s",
                self.insufficient_capacity_message,
                amount,
                remaining,
                self.max_appl_calls,
            )
            raise InsufficientCapacity(self.insufficient_capacity_message, amount, remaining)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("amount=%s allocations=%s", amount, allocations)
        return allocations


class GreedyStakeAllocationStrategy(_GreedyAllocationStrategy):
    """
    Stakes ALGO into the proposers with the lowest balances first.

    Proposer capacity = max(max_proposer_balance - balance - capacity_buffer, 0)
    """

    insufficient_capacity_message = "Insufficient capacity to stake"

    def _sort_key(self, proposer: ProposerBalance) -> int:
        return proposer.algo_balance

    def _capacity(self, consensus_state: ConsensusState, proposer: ProposerBalance) -> int:
        return maximum(consensus_state.max_proposer_balance - proposer.algo_balance - self.capacity_buffer, 0)


class GreedyUnstakeAllocationStrategy(_GreedyAllocationStrategy):
    """
    Unstakes xALGO from the proposers with the highest balances first.

    Proposer capacity is the xALGO equivalent of max(balance - min_proposer_balance - capacity_buffer, 0) ALGO.
    """

    insufficient_capacity_message = "Insufficient capacity to unstake - override with your own strategy"

    def _sort_key(self, proposer: ProposerBalance) -> int:
        return -proposer.algo_balance

    def _capacity(self, consensus_state: ConsensusState, proposer: ProposerBalance) -> int:
        algo_capacity = maximum(
            proposer.algo_balance - consensus_state.min_proposer_balance - self.capacity_buffer, 0
        )
        return convert_algo_to_xalgo_when_delay(algo_capacity, consensus_state)


def calc_split_min_received_amount(min_received_amount: int, split_amount: int, amount: int) -> int:
    """
    Apportions the min amount expected to be received to a single proposer's split, proportionally to the split.

    :param min_received_amount: min amount expected to be received for the whole amount
    :param split_amount: amount allocated to the proposer
    :param amount: whole amount
    """
    return mul_scale(min_received_amount, split_amount, amount)
