"""
Lending v1 loan health.

A v1 loan escrow holds the collateral fAsset of its token pair and records its borrow in the token pair app's local
state. The loan can be liquidated once its health factor drops below 1.
"""

from dataclasses import dataclass
from typing import Mapping

from folksfinance.algorand.model import Address, address_from_public_key
from folksfinance.algorand.state import require_bytes
from folksfinance.errors import InvalidInput
from folksfinance.lend.v1.formulae import (
    ConversionRate,
    calc_borrow_balance,
    calc_health_factor,
    calc_threshold,
)
from folksfinance.math.fixed_point import ONE_14_DP


@dataclass(slots=True, frozen=True)
class LoanLocalState:
    user_address: Address
    borrowed: int
    borrow_balance: int
    latest_borrow_interest_index: int  # 14dp

    @classmethod
    def from_state(cls, state: Mapping[bytes, bytes | int]) -> "LoanLocalState":
        """
        :param state: decoded local state of the escrow in the token pair app
        :exception InvalidInput: if the escrow has no loan
        """
        borrowed = state.get(b"borrowed")
        if not isinstance(borrowed, int):
            raise InvalidInput("escrow has no loan")

        def uint(key: bytes) -> int:
            value = state.get(key, 0)
            if not isinstance(value, int):
                raise InvalidInput(f"expected uint for state key: {key.decode()}")
            return value

        return cls(
            user_address=address_from_public_key(require_bytes(state.get(b"user_address"), "user_address")),
            borrowed=borrowed,
            borrow_balance=uint(b"borrow_balance"),
            latest_borrow_interest_index=uint(b"latest_borrow_interest_index"),
        )


@dataclass(slots=True, frozen=True)
class LoanInfo:
    escrow_address: Address
    user_address: Address
    borrowed: int
    collateral_balance: int
    borrow_balance: int
    borrow_balance_liquidation_threshold: int
    health_factor: int  # 14dp
    current_round: int | None = None

    @property
    def is_liquidatable(self) -> bool:
        return self.health_factor < ONE_14_DP


def loan_info(
    escrow_address: Address,
    collateral_balance: int,
    local_state: LoanLocalState,
    liquidation_threshold: int,
    deposit_interest_index: int,
    borrow_interest_index: int,
    conversion_rate: ConversionRate,
    current_round: int | None = None,
) -> LoanInfo:
    """
    :param collateral_balance: escrow's collateral fAsset balance
    :param liquidation_threshold: token pair's liquidation threshold (14dp)
    :param deposit_interest_index: collateral pool's current deposit interest index (14dp)
    :param borrow_interest_index: borrow pool's current borrow interest index (14dp)
    :param conversion_rate: from the collateral asset to the borrow asset
    """
    threshold = calc_threshold(
        collateral_balance,
        deposit_interest_index,
        liquidation_threshold,
        conversion_rate.rate,
        conversion_rate.decimals,
    )
    borrow_balance = calc_borrow_balance(
        local_state.borrow_balance,
        borrow_interest_index,
        local_state.latest_borrow_interest_index,
    )
    return LoanInfo(
        escrow_address=escrow_address,
        user_address=local_state.user_address,
        borrowed=local_state.borrowed,
        collateral_balance=collateral_balance,
        borrow_balance=borrow_balance,
        borrow_balance_liquidation_threshold=threshold,
        health_factor=calc_health_factor(threshold, borrow_balance),
        current_round=current_round,
    )
