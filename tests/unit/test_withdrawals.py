"""
test_withdrawals.py - Unit tests for the withdrawal request registry
"""

import pytest

from staking import (
    COOLING_PERIOD, FIRST_WITHDRAW_ID,
    WithdrawState, WithdrawalRegistry,
    NoSuchWithdrawId, NotAllowedUser, WithdrawNotFinalizableYet,
)


@pytest.fixture
def registry():
    return WithdrawalRegistry()


class TestOpen:

    def test_ids_start_at_one(self, registry):
        assert registry.open("alice", 10, now=100) == FIRST_WITHDRAW_ID == 1
        assert registry.open("alice", 5, now=100) == 2
        assert registry.next_withdraw_id == 3

    def test_record_contents(self, registry):
        wid = registry.open("alice", 10, now=100)
        assert registry.get(wid) == WithdrawState(user="alice", withdraw_timestamp=100, amount=10)
        assert registry.get(wid).finalizable_at == 100 + COOLING_PERIOD

    def test_total_locked(self, registry):
        registry.open("alice", 10, now=0)
        registry.open("bob", 15, now=0)
        assert registry.total_locked == 25

    def test_absent_id(self, registry):
        assert registry.get(0) is None
        assert registry.get(42) is None


class TestClose:

    def test_unknown_id(self, registry):
        with pytest.raises(NoSuchWithdrawId) as exc_info:
            registry.close(7, "alice", now=0)
        assert exc_info.value.withdraw_id == 7

    def test_wrong_owner(self, registry):
        wid = registry.open("alice", 10, now=0)
        with pytest.raises(NotAllowedUser) as exc_info:
            registry.close(wid, "bob", now=COOLING_PERIOD)
        assert (exc_info.value.caller, exc_info.value.owner) == ("bob", "alice")
        assert wid in registry

    def test_too_early(self, registry):
        wid = registry.open("alice", 10, now=1_000)
        with pytest.raises(WithdrawNotFinalizableYet) as exc_info:
            registry.close(wid, "alice", now=1_000 + COOLING_PERIOD - 1)
        assert exc_info.value.now == 1_000 + COOLING_PERIOD - 1
        assert exc_info.value.finalizable_at == 1_000 + COOLING_PERIOD

    def test_close_at_boundary(self, registry):
        wid = registry.open("alice", 10, now=1_000)
        request = registry.close(wid, "alice", now=1_000 + COOLING_PERIOD)
        assert request.amount == 10
        assert wid not in registry
        assert registry.total_locked == 0

    def test_ids_never_reused(self, registry):
        wid = registry.open("alice", 10, now=0)
        registry.close(wid, "alice", now=COOLING_PERIOD)
        assert registry.open("alice", 10, now=COOLING_PERIOD) == wid + 1
        with pytest.raises(NoSuchWithdrawId):
            registry.close(wid, "alice", now=2 * COOLING_PERIOD)


class TestQueries:

    def test_pending_for_user(self, registry):
        a1 = registry.open("alice", 10, now=0)
        registry.open("bob", 20, now=0)
        a2 = registry.open("alice", 30, now=5)
        assert [wid for wid, _ in registry.pending_for("alice")] == [a1, a2]
        assert registry.pending_for("carol") == []

    def test_snapshot_restore(self, registry):
        registry.open("alice", 10, now=0)
        snap = registry.snapshot()
        registry.open("bob", 20, now=0)
        registry.close(1, "alice", now=COOLING_PERIOD)
        registry.restore(snap)
        assert len(registry) == 1
        assert registry.get(1).amount == 10
        assert registry.next_withdraw_id == 2
        assert registry.total_locked == 10
