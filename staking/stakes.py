"""
stakes.py - Per-user stake bookkeeping

StakeBook keeps one StakeState per user and the running total of principal.
Records are frozen; every change replaces the record, which keeps snapshots
for rollback a shallow copy away.

Invariant maintained here: total_staked == sum(s.stake_amount for s in records).
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Iterator, Tuple

from .core import (
    RATE_PRECISION, EMPTY_STAKE,
    StakeState, Earned, TooBigValue,
)


def stake_value(stake_amount: int, rate: int) -> int:
    """Principal valued at rate (floor division)."""
    return stake_amount * rate // RATE_PRECISION


def compute_earned(state: StakeState, rate: int) -> Earned:
    """
    Accrual of a stake since its last settlement.

    Returns:
        Earned(gain, total_value) where total_value is the stake valued at
        rate and gain = max(0, total_value - claimed_amount).
    """
    total_value = stake_value(state.stake_amount, rate)
    gain = total_value - state.claimed_amount
    return Earned(gain=gain if gain > 0 else 0, total_value=total_value)


class StakeBook:
    """Stake records keyed by user, plus total_staked."""

    def __init__(self):
        self._records: Dict[str, StakeState] = {}
        self.total_staked: int = 0

    def get(self, user: str) -> StakeState:
        """Record for user; an all-zero record if the user never staked."""
        return self._records.get(user, EMPTY_STAKE)

    def __contains__(self, user: str) -> bool:
        return user in self._records

    def __iter__(self) -> Iterator[Tuple[str, StakeState]]:
        return iter(sorted(self._records.items()))

    def __len__(self) -> int:
        return len(self._records)

    def earned(self, user: str, rate: int) -> Earned:
        return compute_earned(self.get(user), rate)

    def put(self, user: str, state: StakeState) -> None:
        """Store a record whose stake_amount is unchanged (claim/debt updates)."""
        if state.stake_amount != self.get(user).stake_amount:
            raise ValueError("put() cannot change stake_amount; use increase/decrease")
        self._records[user] = state

    def increase_principal(self, user: str, amount: int, rate: int) -> StakeState:
        """
        Add amount to user's principal and re-baseline claimed_amount.

        Must follow a settlement at rate, so that the new principal does not
        earn rewards for time before it was staked.
        """
        old = self.get(user)
        new_amount = old.stake_amount + amount
        new = replace(
            old,
            stake_amount=new_amount,
            claimed_amount=stake_value(new_amount, rate),
        )
        self._records[user] = new
        self.total_staked += amount
        return new

    def decrease_principal(self, user: str, amount: int, rate: int) -> StakeState:
        """
        Remove amount from user's principal and re-baseline claimed_amount.

        Raises:
            TooBigValue: If amount exceeds the user's principal
        """
        old = self.get(user)
        if amount > old.stake_amount:
            raise TooBigValue(amount, old.stake_amount)
        new_amount = old.stake_amount - amount
        new = replace(
            old,
            stake_amount=new_amount,
            claimed_amount=stake_value(new_amount, rate),
        )
        self._records[user] = new
        self.total_staked -= amount
        return new

    def snapshot(self) -> Tuple[Dict[str, StakeState], int]:
        # Records are frozen, a shallow copy is a full snapshot.
        return (dict(self._records), self.total_staked)

    def restore(self, snapshot: Tuple[Dict[str, StakeState], int]) -> None:
        records, self.total_staked = snapshot
        self._records = dict(records)

    def as_dict(self) -> Dict[str, StakeState]:
        return dict(self._records)

    def principal_sum(self) -> int:
        """Recompute the principal total from the records (for verification)."""
        return sum(s.stake_amount for _, s in self)

    def __repr__(self) -> str:
        return f"StakeBook({len(self._records)} users, total_staked={self.total_staked})"
