"""
reconciler.py - Reward funds vs. principal

The custodian's balance mixes three kinds of tokens: staked principal,
principal cooling in withdrawal requests, and everything else (donations,
leftovers). Only the last kind may ever be paid out as reward or swept by an
administrator.

split_owed() is the partial-claim policy: pay what the pool can, carry the
rest as debt. It is evaluated from scratch on every settlement, so debt is
retried on every interaction and cleared as soon as funds arrive.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PaymentSplit:
    """
    Outcome of reconciling what is owed with what is available.

    Attributes:
        paid: Amount to transfer to the user now
        debt: Amount still owed after the transfer
    """
    paid: int
    debt: int


def available_for_rewards(custodian_balance: int, total_staked: int, total_locked: int = 0) -> int:
    """
    Excess balance: custodian holdings beyond all principal, floored at 0.

    Args:
        custodian_balance: Tokens the custodian actually holds
        total_staked: Sum of all users' staked principal
        total_locked: Principal sitting in pending withdrawal requests

    Returns:
        Amount payable as rewards (or sweepable by the admin)
    """
    excess = custodian_balance - total_staked - total_locked
    return excess if excess > 0 else 0


def split_owed(total_owed: int, available: int) -> PaymentSplit:
    """
    Split total_owed into a payment now and a debt carried forward.

    - available >= total_owed: pay in full, no debt
    - 0 < available < total_owed: pay available, carry the remainder
    - available == 0: pay nothing, carry everything

    Example:
        >>> split_owed(300, 100)
        PaymentSplit(paid=100, debt=200)
    """
    if total_owed < 0:
        raise ValueError(f"total_owed cannot be negative, got {total_owed}")
    if available >= total_owed:
        return PaymentSplit(paid=total_owed, debt=0)
    if available > 0:
        return PaymentSplit(paid=available, debt=total_owed - available)
    return PaymentSplit(paid=0, debt=total_owed)


def claimable(gain: int, debt: int, available: int) -> int:
    """What a settlement right now would transfer: (gain + debt) capped at available."""
    return split_owed(gain + debt, available).paid
