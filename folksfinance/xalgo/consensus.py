"""
xALGO liquid staking consensus state and exchange rate formulae.

ALGO staked through the consensus app is spread across proposer accounts. xALGO is minted against the ALGO balance
at the rate `xalgo_circulating_supply / algo_balance`. Immediate stakes pay a premium (16dp) on top of the rate.
"""

from dataclasses import dataclass
from typing import Mapping

from folksfinance.algorand.model import Address, address_from_public_key
from folksfinance.algorand.state import parse_uint64s
from folksfinance.errors import InvalidInput
from folksfinance.math.fixed_point import ONE_16_DP, mul_scale

PUBLIC_KEY_SIZE = 32


@dataclass(slots=True, frozen=True)
class ProposerBalance:
    address: Address
    algo_balance: int


@dataclass(slots=True, frozen=True)
class ConsensusState:
    """
    Consensus app snapshot
    """

    # pylint: disable=too-many-instance-attributes

    algo_balance: int
    xalgo_circulating_supply: int
    proposers_balances: tuple[ProposerBalance, ...]
    time_delay: int = 0
    num_proposers: int = 0
    min_proposer_balance: int = 0
    max_proposer_balance: int = 0
    fee: int = 0  # 4dp
    premium: int = 0  # 16dp
    total_pending_stake: int = 0
    total_active_stake: int = 0
    total_rewards: int = 0
    total_unclaimed_fees: int = 0
    can_immediate_stake: bool = False
    can_delay_stake: bool = False
    current_round: int | None = None

    @classmethod
    def from_state(
        cls,
        state: Mapping[bytes, bytes | int],
        algo_balance: int,
        xalgo_circulating_supply: int,
        proposers_box: bytes,
        proposers_balances: bytes,
        current_round: int | None = None,
    ) -> "ConsensusState":
        """
        :param state: decoded consensus app global state
        :param algo_balance: ALGO balance backing xALGO, as returned by the app's xALGO rate method
        :param xalgo_circulating_supply: as returned by the app's xALGO rate method
        :param proposers_box: value of the app's proposers box
        :param proposers_balances: packed uint64 proposer balances, as returned by the app's xALGO rate method
        """

        def uint(key: str) -> int:
            value = state.get(key.encode(), 0)
            if not isinstance(value, int):
                raise InvalidInput(f"expected uint for state key: {key}")
            return value

        return cls(
            algo_balance=algo_balance,
            xalgo_circulating_supply=xalgo_circulating_supply,
            proposers_balances=parse_proposers_balances(proposers_box, proposers_balances),
            time_delay=uint("time_delay"),
            num_proposers=uint("num_proposers"),
            min_proposer_balance=uint("min_proposer_balance"),
            max_proposer_balance=uint("max_proposer_balance"),
            fee=uint("fee"),
            premium=uint("premium"),
            total_pending_stake=uint("total_pending_stake"),
            total_active_stake=uint("total_active_stake"),
            total_rewards=uint("total_rewards"),
            total_unclaimed_fees=uint("total_unclaimed_fees"),
            can_immediate_stake=bool(uint("can_immediate_mint")),
            can_delay_stake=bool(uint("can_delay_mint")),
            current_round=current_round,
        )


def parse_proposers_balances(proposers_box: bytes, balances: bytes) -> tuple[ProposerBalance, ...]:
    """
    Pairs each proposer balance with the proposer address stored at the same index in the proposers box.

    :param proposers_box: concatenated 32 byte proposer public keys
    :param balances: packed big-endian uint64 balances
    :exception InvalidInput: if the box does not hold a public key for every balance
    """
    algo_balances = parse_uint64s(balances)
    if len(proposers_box) < len(algo_balances) * PUBLIC_KEY_SIZE:
        raise InvalidInput(
            f"proposers box holds fewer than {len(algo_balances)} public keys: length={len(proposers_box)}"
        )
    return tuple(
        ProposerBalance(
            address=address_from_public_key(proposers_box[i * PUBLIC_KEY_SIZE : (i + 1) * PUBLIC_KEY_SIZE]),
            algo_balance=balance,
        )
        for i, balance in enumerate(algo_balances)
    )


def convert_algo_to_xalgo_when_immediate(algo_amount: int, consensus_state: ConsensusState) -> int:
    """
    :return: xALGO minted by an immediate stake, net of the premium
    """
    xalgo_amount = mul_scale(
        algo_amount, consensus_state.xalgo_circulating_supply, consensus_state.algo_balance
    )
    return mul_scale(xalgo_amount, ONE_16_DP - consensus_state.premium, ONE_16_DP)


def convert_algo_to_xalgo_when_delay(algo_amount: int, consensus_state: ConsensusState) -> int:
    """
    :return: xALGO minted by a delayed stake
    """
    return mul_scale(algo_amount, consensus_state.xalgo_circulating_supply, consensus_state.algo_balance)


def convert_xalgo_to_algo(xalgo_amount: int, consensus_state: ConsensusState) -> int:
    """
    :return: ALGO received for burning xALGO
    """
    return mul_scale(xalgo_amount, consensus_state.algo_balance, consensus_state.xalgo_circulating_supply)
