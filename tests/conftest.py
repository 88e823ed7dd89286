"""
conftest.py - Shared pytest fixtures for staking pool tests

Provides common fixtures used across unit, functional and conformance tests:
- Token book, clock, custodian and role registry
- Pools at the reference deployment parameters
- Pools with a donation and a first stake already in place
"""

import pytest

from staking import (
    StakingPool, TokenLedger, LedgerCustodian, RoleRegistry, ManualClock, Role,
)

from tests.pool_helpers import (
    DECIMALS, POOL, DEPLOYER, MANAGER, START,
    MIN_STAKE, APR, DONATED, ALICE_STAKE,
    fund,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def token():
    return TokenLedger(decimals=DECIMALS)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def roles():
    registry = RoleRegistry(admin=DEPLOYER)
    registry.grant_role(DEPLOYER, Role.MANAGER, MANAGER)
    return registry


@pytest.fixture
def custodian(token):
    return LedgerCustodian(token, POOL)


@pytest.fixture
def pool(custodian, roles, clock):
    """Pool at the reference deployment: 50 token minimum, 20% APR."""
    return StakingPool(
        custodian,
        min_stake_amount=MIN_STAKE,
        apr=APR,
        access=roles,
        clock=clock,
        deployer=DEPLOYER,
        verbose=False,
    )


# =============================================================================
# SCENARIO FIXTURES
# =============================================================================

@pytest.fixture
def staked_pool(pool, token):
    """Alice has staked ALICE_STAKE; no reward funds."""
    fund(token, "alice", ALICE_STAKE)
    pool.stake("alice", ALICE_STAKE)
    return pool


@pytest.fixture
def donated_pool(funded_pool, token):
    """DONATED tokens donated to rewards, then alice stakes ALICE_STAKE."""
    pool = funded_pool
    fund(token, "alice", ALICE_STAKE)
    pool.stake("alice", ALICE_STAKE)
    return pool


@pytest.fixture
def funded_pool(pool, token):
    """DONATED tokens donated to rewards; nobody has staked."""
    fund(token, "donor", DONATED)
    pool.donate_tokens_to_rewards("donor", DONATED)
    return pool
