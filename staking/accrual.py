"""
accrual.py - Rate accumulator for continuous reward accrual

The pool tracks a single global multiplier, rate_per_stake, converting staked
principal into its accrued total value:

    value(principal) = principal * rate_per_stake // RATE_PRECISION

The multiplier is advanced lazily, whenever an operation observes that time
has passed while stake exists:

    new_rate = rate + rate * elapsed * apr // (ONE_YEAR * PERCENT_DENOMINATOR)

Each advance is simple interest on the current rate, so the rate itself
compounds across settlements no matter who triggers them. Operand order is
part of the contract: multiply before divide, floor once.
"""

from __future__ import annotations
from typing import Optional, Tuple

from .core import (
    RATE_PRECISION, PERCENT_DENOMINATOR, ONE_YEAR,
)


def accrue_rate(rate: int, elapsed: int, apr: int) -> int:
    """
    Advance rate by elapsed seconds of simple interest at apr basis points.

    Args:
        rate: Current rate_per_stake (scaled by RATE_PRECISION)
        elapsed: Seconds since the last advance (>= 0)
        apr: Annual rate in basis points

    Returns:
        The new rate (never smaller than rate)

    Example:
        >>> accrue_rate(10**18, 86_400, 20_00)
        1000547945205479452
    """
    if elapsed < 0:
        raise ValueError(f"elapsed must be non-negative, got {elapsed}")
    return rate + rate * elapsed * apr // (ONE_YEAR * PERCENT_DENOMINATOR)


def project_rate(
    rate: int,
    last_update_time: int,
    now: int,
    apr: int,
    total_staked: int,
) -> int:
    """
    Rate as it would be after settling at now, without mutating anything.

    The rate is frozen while the pool is empty. A now at or before
    last_update_time projects no accrual.
    """
    if total_staked == 0 or now <= last_update_time:
        return rate
    return accrue_rate(rate, now - last_update_time, apr)


class RateAccumulator:
    """
    Holder of the global rate_per_stake and its last advance time.

    Owned by StakingPool; nothing else mutates it.
    """

    def __init__(self, start_time: int, rate: int = RATE_PRECISION):
        self.rate = rate
        self.last_update_time = start_time

    def settle(self, now: int, total_staked: int, apr: int) -> Optional[int]:
        """
        Bring the rate up to now.

        Returns:
            The new rate if it was advanced (caller emits RateAdvanced),
            None if nothing accrued (empty pool or same timestamp).

        Raises:
            ValueError: If now is before the last advance
        """
        if now < self.last_update_time:
            raise ValueError(
                f"Cannot settle backwards: {now} < {self.last_update_time}"
            )
        if total_staked == 0:
            self.last_update_time = now
            return None
        if now == self.last_update_time:
            return None

        self.rate = accrue_rate(self.rate, now - self.last_update_time, apr)
        self.last_update_time = now
        return self.rate

    def projected(self, now: int, total_staked: int, apr: int) -> int:
        """Read-only counterpart of settle()."""
        return project_rate(self.rate, self.last_update_time, now, apr, total_staked)

    def snapshot(self) -> Tuple[int, int]:
        return (self.rate, self.last_update_time)

    def restore(self, snapshot: Tuple[int, int]) -> None:
        self.rate, self.last_update_time = snapshot

    def __repr__(self) -> str:
        return f"RateAccumulator(rate={self.rate}, last_update_time={self.last_update_time})"
