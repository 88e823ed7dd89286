"""
staking - Custodial Reward Ledger

A single-asset staking pool with continuous APR rewards, debt-carry when the
reward funds run short, and delayed withdrawals.

Usage:
    from staking import (
        StakingPool, TokenLedger, LedgerCustodian, RoleRegistry, ManualClock, Role,
    )

    token = TokenLedger(decimals=8)
    custodian = LedgerCustodian(token, "pool")
    roles = RoleRegistry(admin="deployer")
    roles.grant_role("deployer", Role.MANAGER, "manager")
    clock = ManualClock(0)

    pool = StakingPool(custodian, min_stake_amount=50 * 10**8, apr=20_00,
                       access=roles, clock=clock)

    # Stake (the pool pulls through an allowance)
    token.mint("alice", 1_000 * 10**8)
    token.approve("alice", "pool", 1_000 * 10**8)
    pool.stake("alice", 1_000 * 10**8)

    # Fund rewards, let time pass, claim
    token.mint("donor", 100 * 10**8)
    token.approve("donor", "pool", 100 * 10**8)
    pool.donate_tokens_to_rewards("donor", 100 * 10**8)
    clock.advance(days=30)
    pool.claim_rewards("alice")

    # Withdraw after the cooling period
    receipt = pool.request_withdraw("alice", 1_000 * 10**8)
    clock.advance(days=10)
    pool.finalize_withdraw("alice", receipt.value)
"""

# Core types
from .core import (
    StakeState,
    WithdrawState,
    Earned,
    PoolEvent,
    Transfer,
    TransferKind,
    Receipt,
    PendingOperation,
    TokenCustodian,
    AccessGate,
    PoolView,
    Role,
    event,
    require_amount,
    EMPTY_STAKE,
    RATE_PRECISION,
    PERCENT_DENOMINATOR,
    MAX_APR,
    ONE_DAY,
    ONE_YEAR,
    COOLING_PERIOD,
    FIRST_WITHDRAW_ID,
    EVENT_RATE_ADVANCED,
    EVENT_STAKE_RECORDED,
    EVENT_REWARDS_PAID,
    EVENT_DEBT_CHANGED,
    EVENT_WITHDRAW_REQUESTED,
    EVENT_WITHDRAW_FINALIZED,
    EVENT_TOKENS_DONATED,
    EVENT_MIN_STAKE_CHANGED,
    EVENT_RATE_PARAM_CHANGED,
    EVENT_EXCESS_WITHDRAWN,
    # Exceptions
    StakingError,
    ValidationError,
    ZeroValue,
    NegativeValue,
    TooBigValue,
    TheSameValue,
    LessThanMinAmount,
    AddressZero,
    AccessDenied,
    NoSuchWithdrawId,
    NotAllowedUser,
    WithdrawNotFinalizableYet,
    ReentrantCall,
    TokenError,
    InsufficientFunds,
    InsufficientAllowance,
)

# Accrual math
from .accrual import accrue_rate, project_rate, RateAccumulator

# Stake bookkeeping
from .stakes import stake_value, compute_earned, StakeBook

# Reward funds
from .reconciler import PaymentSplit, available_for_rewards, split_owed, claimable

# Withdrawal requests
from .withdrawals import WithdrawalRegistry

# Access control
from .access import RoleRegistry, check_role, only_role

# Token and custodian
from .token import TokenLedger, TokenMove, LedgerCustodian, SYSTEM_WALLET

# Time
from .clock import Clock, SystemClock, ManualClock, to_timestamp

# Pool
from .pool import StakingPool, ReentrancyGuard

# Configuration
from .config import PoolConfig, DEFAULT_CONFIG, load_config, deploy_pool


__all__ = [
    # Core
    'StakeState', 'WithdrawState', 'Earned', 'PoolEvent', 'Transfer',
    'TransferKind', 'Receipt', 'PendingOperation', 'TokenCustodian',
    'AccessGate', 'PoolView', 'Role', 'event', 'require_amount', 'EMPTY_STAKE',
    'RATE_PRECISION', 'PERCENT_DENOMINATOR', 'MAX_APR', 'ONE_DAY', 'ONE_YEAR',
    'COOLING_PERIOD', 'FIRST_WITHDRAW_ID',
    'EVENT_RATE_ADVANCED', 'EVENT_STAKE_RECORDED', 'EVENT_REWARDS_PAID',
    'EVENT_DEBT_CHANGED', 'EVENT_WITHDRAW_REQUESTED', 'EVENT_WITHDRAW_FINALIZED',
    'EVENT_TOKENS_DONATED', 'EVENT_MIN_STAKE_CHANGED', 'EVENT_RATE_PARAM_CHANGED',
    'EVENT_EXCESS_WITHDRAWN',
    # Exceptions
    'StakingError', 'ValidationError', 'ZeroValue', 'NegativeValue',
    'TooBigValue', 'TheSameValue', 'LessThanMinAmount', 'AddressZero',
    'AccessDenied', 'NoSuchWithdrawId', 'NotAllowedUser',
    'WithdrawNotFinalizableYet', 'ReentrantCall', 'TokenError',
    'InsufficientFunds', 'InsufficientAllowance',
    # Accrual
    'accrue_rate', 'project_rate', 'RateAccumulator',
    # Stakes
    'stake_value', 'compute_earned', 'StakeBook',
    # Reconciler
    'PaymentSplit', 'available_for_rewards', 'split_owed', 'claimable',
    # Withdrawals
    'WithdrawalRegistry',
    # Access
    'RoleRegistry', 'check_role', 'only_role',
    # Token
    'TokenLedger', 'TokenMove', 'LedgerCustodian', 'SYSTEM_WALLET',
    # Clock
    'Clock', 'SystemClock', 'ManualClock', 'to_timestamp',
    # Pool
    'StakingPool', 'ReentrancyGuard',
    # Config
    'PoolConfig', 'DEFAULT_CONFIG', 'load_config', 'deploy_pool',
]

__version__ = '1.0.0'
