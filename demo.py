#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: The Staking Pool Step by Step

A walkthrough of the reward ledger. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - Token, roles, deploying a pool, first stake
  4-6:  Rewards      - Rate accrual, underfunded claims and debt, donations
  7-8:  Withdrawals  - Cooling period, rejected and successful finalization
  9-10: Administration - APR changes, sweeping excess, invariant check

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime
import sys

from staking import (
    StakingPool, TokenLedger, LedgerCustodian, ManualClock,
    PoolConfig, deploy_pool,
    StakingError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    decimals: int = 8
    min_stake_tokens: int = 50
    apr: int = 20_00

    alice_tokens: int = 10_000
    bob_tokens: int = 2_000
    donation_tokens: int = 5
    top_up_tokens: int = 500


CONFIG = DemoConfig()
ONE = 10 ** CONFIG.decimals

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    """Base units as whole tokens."""
    return f"{amount / ONE:,.8f} STK"


def fund(token: TokenLedger, pool_address: str, account: str, tokens: int):
    """Mint tokens to account and approve the pool to pull them."""
    token.mint(account, tokens * ONE)
    token.approve(account, pool_address, tokens * ONE)


# ============================================================================
# PHASE 1: FOUNDATION
# ============================================================================

def step_01_deploy():
    step_header(1, "Deploying a Pool",
        "A pool needs a token custodian, an access gate and a clock.")

    print("""
    The pool never holds balances itself. It asks a TokenCustodian to
    pull tokens from users and push tokens to them. Here the custodian is
    an account ("pool") inside an in-memory TokenLedger.

    The deployer becomes DEFAULT_ADMIN; a separate manager tunes the APR
    and minimum stake.
    """)

    token = TokenLedger(decimals=CONFIG.decimals)
    custodian = LedgerCustodian(token, "pool")
    clock = ManualClock(CONFIG.start_time)
    config = PoolConfig.from_mapping({
        "min_stake_tokens": CONFIG.min_stake_tokens,
        "apr": CONFIG.apr,
        "token_decimals": CONFIG.decimals,
    })

    print(">>> pool = deploy_pool(config, custodian, deployer='deployer', manager='manager', ...)")
    pool = deploy_pool(config, custodian, deployer="deployer", manager="manager",
                       clock=clock, verbose=True)

    section_header("Initial State")
    print(f"APR:              {pool.apr} bps")
    print(f"Minimum stake:    {fmt(pool.min_stake_amount)}")
    print(f"rate_per_stake:   {pool.rate_per_stake}")
    print(f"Receipts logged:  {len(pool.receipts)}")
    return token, pool, clock


def step_02_first_stake(token: TokenLedger, pool: StakingPool):
    step_header(2, "Staking",
        "Stakes are pulled through an allowance and recorded as principal.")

    fund(token, "pool", "alice", CONFIG.alice_tokens)
    fund(token, "pool", "bob", CONFIG.bob_tokens)

    print(f">>> pool.stake('alice', {CONFIG.alice_tokens} * ONE)")
    pool.stake("alice", CONFIG.alice_tokens * ONE)

    section_header("Stake State")
    print(f"alice: {pool.stake_states('alice')}")
    print(f"total_staked: {fmt(pool.total_staked)}")
    return pool


def step_03_rejected_stake(pool: StakingPool):
    step_header(3, "Rejected Operations",
        "A failed operation leaves no trace: no state, no tokens, no receipt.")

    before = len(pool.receipts)
    print(">>> pool.stake('bob', 10 * ONE)   # below the minimum")
    try:
        pool.stake("bob", 10 * ONE)
    except StakingError as exc:
        print(f"Raised {type(exc).__name__}: {exc}")
    print(f"Receipts before/after: {before}/{len(pool.receipts)}")
    return pool


# ============================================================================
# PHASE 2: REWARDS
# ============================================================================

def step_04_accrual(pool: StakingPool, clock: ManualClock):
    step_header(4, "Continuous Accrual",
        "rate_per_stake grows with time; stakes are valued against it.")

    print("""
    new_rate = rate + rate * elapsed * apr // (ONE_YEAR * 10_000)
    value    = stake_amount * rate // 10**18
    """)
    clock.advance(days=30)
    earned = pool.earned("alice")
    print(f"After 30 days alice has earned {fmt(earned.gain)}")
    print(f"available_for_rewards: {fmt(pool.available_for_rewards())}")
    return pool


def step_05_underfunded_claim(token: TokenLedger, pool: StakingPool):
    step_header(5, "Underfunded Claims Become Debt",
        "The pool only pays rewards out of excess balance; the rest is carried.")

    fund(token, "pool", "donor", CONFIG.donation_tokens + CONFIG.top_up_tokens)
    pool.donate_tokens_to_rewards("donor", CONFIG.donation_tokens * ONE)

    print(">>> pool.claim_rewards('alice')")
    pool.claim_rewards("alice")
    print(f"alice debt: {fmt(pool.stake_states('alice').debt)}")

    section_header("Idempotent Re-claim")
    receipt = pool.claim_rewards("alice")
    print(f"Second claim at the same time: {len(receipt.events)} events, "
          f"sequence_number={receipt.sequence_number}")
    return pool


def step_06_donation_clears_debt(pool: StakingPool):
    step_header(6, "Donations Clear Debt",
        "Debt is retried on every settlement and paid as soon as funds arrive.")

    pool.donate_tokens_to_rewards("donor", CONFIG.top_up_tokens * ONE)
    pool.claim_rewards("alice")
    print(f"alice debt after top-up: {fmt(pool.stake_states('alice').debt)}")
    return pool


# ============================================================================
# PHASE 3: WITHDRAWALS
# ============================================================================

def step_07_request_withdraw(pool: StakingPool):
    step_header(7, "Requesting a Withdrawal",
        "Principal stops earning immediately and cools for 10 days.")

    receipt = pool.request_withdraw("alice", 4_000 * ONE)
    withdraw_id = receipt.value
    print(f"withdraw id: {withdraw_id}")
    print(f"request:     {pool.withdraw_states(withdraw_id)}")
    print(f"total_locked: {fmt(pool.total_locked)}")
    return pool, withdraw_id


def step_08_finalize(pool: StakingPool, clock: ManualClock, withdraw_id: int):
    step_header(8, "Finalizing",
        "Only the owner may finalize, and only after the cooling period.")

    clock.advance(days=5)
    try:
        pool.finalize_withdraw("alice", withdraw_id)
    except StakingError as exc:
        print(f"At +5 days: {type(exc).__name__}: {exc}")

    try:
        pool.finalize_withdraw("bob", withdraw_id)
    except StakingError as exc:
        print(f"Wrong caller: {type(exc).__name__}: {exc}")

    clock.advance(days=5)
    pool.finalize_withdraw("alice", withdraw_id)
    print(f"Request after finalize: {pool.withdraw_states(withdraw_id)}")
    return pool


# ============================================================================
# PHASE 4: ADMINISTRATION
# ============================================================================

def step_09_apr_change(pool: StakingPool, clock: ManualClock):
    step_header(9, "Changing the APR",
        "Accrual up to now is settled at the old rate before the new one applies.")

    clock.advance(days=1)
    try:
        pool.set_apr("alice", 10_00)
    except StakingError as exc:
        print(f"alice: {type(exc).__name__}: {exc}")
    pool.set_apr("manager", 10_00)
    print(f"APR now {pool.apr} bps, rate {pool.rate_per_stake}")
    return pool


def step_10_sweep_and_verify(token: TokenLedger, pool: StakingPool):
    step_header(10, "Sweeping Excess and Verifying",
        "The admin can sweep only what is not principal; invariants still hold.")

    pool.claim_rewards("alice")
    available = pool.available_for_rewards()
    print(f"available_for_rewards: {fmt(available)}")
    pool.receive_excessive_balance("deployer", 2 ** 256 - 1)
    print(f"deployer received: {fmt(token.balance_of('deployer'))}")

    section_header("Invariants")
    result = pool.verify_invariants()
    for key, value in result.items():
        print(f"{key:18} {value}")
    print(f"token double entry: {token.verify_double_entry()}")
    return pool


def main():
    print("=" * 70)
    print("       STAKING POOL - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    token, pool, clock = step_01_deploy()
    wait_for_enter()

    pool = step_02_first_stake(token, pool)
    wait_for_enter()

    pool = step_03_rejected_stake(pool)
    wait_for_enter()

    pool = step_04_accrual(pool, clock)
    wait_for_enter()

    pool = step_05_underfunded_claim(token, pool)
    wait_for_enter()

    pool = step_06_donation_clears_debt(pool)
    wait_for_enter()

    pool, withdraw_id = step_07_request_withdraw(pool)
    wait_for_enter()

    pool = step_08_finalize(pool, clock, withdraw_id)
    wait_for_enter()

    pool = step_09_apr_change(pool, clock)
    wait_for_enter()

    step_10_sweep_and_verify(token, pool)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print(f"Receipts logged: {len(pool.receipts)}")
    print("Run tests: pytest tests/")


if __name__ == "__main__":
    main()
