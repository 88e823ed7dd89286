"""
withdrawals.py - Withdrawal request registry

Requests move through two states:

    Requested --(finalize after COOLING_PERIOD, by owner)--> Finalized

Finalized requests are erased. Ids come from a monotonic counter starting at
FIRST_WITHDRAW_ID and are never reused. The registry also tracks the sum of
pending amounts (total_locked), which the reconciler keeps out of reward
funds.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from .core import (
    FIRST_WITHDRAW_ID,
    WithdrawState,
    NoSuchWithdrawId, NotAllowedUser, WithdrawNotFinalizableYet,
)


class WithdrawalRegistry:
    """Pending withdrawal requests keyed by id."""

    def __init__(self):
        self._requests: Dict[int, WithdrawState] = {}
        self.next_withdraw_id: int = FIRST_WITHDRAW_ID
        self.total_locked: int = 0

    def get(self, withdraw_id: int) -> Optional[WithdrawState]:
        return self._requests.get(withdraw_id)

    def __len__(self) -> int:
        return len(self._requests)

    def __contains__(self, withdraw_id: int) -> bool:
        return withdraw_id in self._requests

    def open(self, user: str, amount: int, now: int) -> int:
        """
        Record a new request and return its id.

        The caller has already removed amount from the user's principal.
        """
        withdraw_id = self.next_withdraw_id
        self.next_withdraw_id += 1
        self._requests[withdraw_id] = WithdrawState(
            user=user,
            withdraw_timestamp=now,
            amount=amount,
        )
        self.total_locked += amount
        return withdraw_id

    def close(self, withdraw_id: int, caller: str, now: int) -> WithdrawState:
        """
        Validate and erase a request, returning it for payout.

        Raises:
            NoSuchWithdrawId: Unknown or already finalized id
            NotAllowedUser: caller is not the request owner
            WithdrawNotFinalizableYet: cooling period has not elapsed
        """
        request = self._requests.get(withdraw_id)
        if request is None:
            raise NoSuchWithdrawId(withdraw_id)
        if caller != request.user:
            raise NotAllowedUser(caller, request.user)
        if now < request.finalizable_at:
            raise WithdrawNotFinalizableYet(now, request.finalizable_at)

        del self._requests[withdraw_id]
        self.total_locked -= request.amount
        return request

    def snapshot(self) -> Tuple[Dict[int, WithdrawState], int, int]:
        return (dict(self._requests), self.next_withdraw_id, self.total_locked)

    def restore(self, snapshot: Tuple[Dict[int, WithdrawState], int, int]) -> None:
        requests, self.next_withdraw_id, self.total_locked = snapshot
        self._requests = dict(requests)

    def pending_for(self, user: str) -> List[Tuple[int, WithdrawState]]:
        """Pending requests of user, oldest first."""
        return [
            (wid, req) for wid, req in sorted(self._requests.items())
            if req.user == user
        ]

    def __repr__(self) -> str:
        return (
            f"WithdrawalRegistry({len(self._requests)} pending, "
            f"total_locked={self.total_locked}, next_id={self.next_withdraw_id})"
        )
