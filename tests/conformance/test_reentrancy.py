"""
Reentrancy Conformance Tests

INVARIANT: No entry point runs while another one is in progress.

    ∀ entry points E1, E2:
        E2 invoked during E1 (e.g. from a custodian callback)
            ⟹ E2 raises ReentrantCall, E1 fails and is rolled back

The guard is released on every exit path, so the pool stays usable after
both successful and failed operations.
"""

import pytest

from staking import ReentrantCall, ReentrancyGuard, TokenLedger
from tests.fake_custodian import ReentrantCustodian
from tests.pool_helpers import (
    POOL, ALICE_STAKE, DONATED, DEPLOYER, fund, make_pool, pool_state,
)


@pytest.fixture
def reentrant():
    token = TokenLedger(decimals=8)
    custodian = ReentrantCustodian(token, POOL)
    pool, token, clock, _ = make_pool(custodian=custodian, token=token)
    fund(token, "donor", DONATED)
    pool.donate_tokens_to_rewards("donor", DONATED)
    fund(token, "alice", 2 * ALICE_STAKE)
    pool.stake("alice", ALICE_STAKE)
    return pool, token, clock, custodian


class TestReentrancyGuard:

    def test_hold_and_release(self):
        guard = ReentrancyGuard()
        with guard.hold("stake"):
            assert guard.locked
            assert guard.active == "stake"
        assert not guard.locked

    def test_nested_hold_rejected(self):
        guard = ReentrancyGuard()
        with guard.hold("stake"):
            with pytest.raises(ReentrantCall) as exc_info:
                with guard.hold("claim_rewards"):
                    pass
            assert exc_info.value.active == "stake"
            assert exc_info.value.operation == "claim_rewards"
        assert not guard.locked

    def test_released_after_exception(self):
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("stake"):
                raise RuntimeError("boom")
        assert not guard.locked


class TestReentrantPool:

    def test_claim_during_reward_push(self, reentrant):
        pool, token, clock, custodian = reentrant
        clock.advance(days=1)
        custodian.on = "push"
        custodian.callback = lambda: pool.claim_rewards("alice")
        before = pool_state(pool)
        alice_balance = token.balance_of("alice")

        with pytest.raises(ReentrantCall):
            pool.claim_rewards("alice")

        assert pool_state(pool) == before
        assert token.balance_of("alice") == alice_balance

    def test_withdraw_during_stake_pull(self, reentrant):
        pool, token, clock, custodian = reentrant
        custodian.on = "pull"
        custodian.callback = lambda: pool.request_withdraw("alice", ALICE_STAKE)
        before = pool_state(pool)

        with pytest.raises(ReentrantCall) as exc_info:
            pool.stake("alice", ALICE_STAKE)

        assert exc_info.value.active == "stake"
        assert pool_state(pool) == before

    def test_admin_entry_point_is_guarded_too(self, reentrant):
        pool, token, clock, custodian = reentrant
        custodian.on = "push"
        custodian.callback = lambda: pool.receive_excessive_balance(DEPLOYER, 1)

        with pytest.raises(ReentrantCall):
            pool.receive_excessive_balance(DEPLOYER, 10)

    def test_pool_usable_after_rejected_reentry(self, reentrant):
        pool, token, clock, custodian = reentrant
        clock.advance(days=1)
        custodian.callback = lambda: pool.claim_rewards("alice")
        with pytest.raises(ReentrantCall):
            pool.claim_rewards("alice")

        custodian.callback = None
        receipt = pool.claim_rewards("alice")
        assert receipt.transfers
        assert pool.rate_per_stake > 10**18

    def test_views_allowed_during_operation(self, reentrant):
        """Read-only calls are not entry points and may run inside one."""
        pool, token, clock, custodian = reentrant
        clock.advance(days=1)
        seen = []
        custodian.on = "push"
        custodian.callback = lambda: seen.append(pool.stake_states("alice"))

        pool.claim_rewards("alice")

        assert len(seen) == 1
        assert pool.earned("alice").gain == 0
