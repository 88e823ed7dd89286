"""
Core types, constants and exceptions for the staking reward ledger.

This module provides the foundational pieces shared by every other module:
1. Constants: fixed-point scales, time spans, role names, event names
2. Protocols: TokenCustodian, AccessGate and PoolView for collaborators
3. Immutable data structures: StakeState, WithdrawState, PoolEvent, Transfer, Receipt
4. Exceptions: StakingError and the structured error taxonomy

All arithmetic in the ledger is integer arithmetic. Amounts are token base
units (Python int), timestamps are integer seconds.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale of rate_per_stake (1.0 == RATE_PRECISION).
RATE_PRECISION = 10 ** 18

# APR is expressed in hundredths of a percent: 100_00 == 100%.
PERCENT_DENOMINATOR = 100_00
MAX_APR = PERCENT_DENOMINATOR

ONE_DAY = 86_400
ONE_YEAR = 365 * ONE_DAY  # no leap-year adjustment

# Delay between requesting and finalizing a withdrawal.
COOLING_PERIOD = 10 * ONE_DAY

# Withdrawal ids start at 1; 0 means "absent".
FIRST_WITHDRAW_ID = 1

# Event names (strings, same convention as unit type constants).
EVENT_RATE_ADVANCED = "RateAdvanced"
EVENT_STAKE_RECORDED = "StakeRecorded"
EVENT_REWARDS_PAID = "RewardsPaid"
EVENT_DEBT_CHANGED = "DebtChanged"
EVENT_WITHDRAW_REQUESTED = "WithdrawRequested"
EVENT_WITHDRAW_FINALIZED = "WithdrawFinalized"
EVENT_TOKENS_DONATED = "TokensDonated"
EVENT_MIN_STAKE_CHANGED = "MinStakeChanged"
EVENT_RATE_PARAM_CHANGED = "RateParamChanged"
EVENT_EXCESS_WITHDRAWN = "ExcessWithdrawn"


class Role(Enum):
    """
    Capability roles checked through an AccessGate.

    DEFAULT_ADMIN: unrestricted administrator, admin of every role.
    MANAGER: restricted operator allowed to tune pool parameters.
    """
    DEFAULT_ADMIN = "DEFAULT_ADMIN_ROLE"
    MANAGER = "MANAGER_ROLE"


class TransferKind(Enum):
    """Direction of a token movement relative to the custodian."""
    PULL = "pull"   # user -> custodian
    PUSH = "push"   # custodian -> user


# ============================================================================
# EXCEPTIONS
# ============================================================================

class StakingError(Exception):
    """Base exception for all staking ledger errors."""
    pass


class ValidationError(StakingError):
    """Raised when an argument is rejected before any state is touched."""
    pass


class ZeroValue(ValidationError):
    """Raised when an amount that must be positive is zero."""

    def __init__(self, name: str = "amount"):
        self.name = name
        super().__init__(f"{name} must be non-zero")


class NegativeValue(ValidationError):
    """Raised when an amount is negative."""

    def __init__(self, value: int, name: str = "amount"):
        self.value = value
        self.name = name
        super().__init__(f"{name} must be non-negative, got {value}")


class TooBigValue(ValidationError):
    """Raised when a value exceeds the limit it is checked against."""

    def __init__(self, value: int, limit: int):
        self.value = value
        self.limit = limit
        super().__init__(f"value {value} exceeds limit {limit}")


class TheSameValue(ValidationError):
    """Raised when a parameter update would not change anything."""

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"value is already {value}")


class LessThanMinAmount(ValidationError):
    """Raised when a stake is below the configured minimum."""

    def __init__(self, amount: int, min_amount: int):
        self.amount = amount
        self.min_amount = min_amount
        super().__init__(f"stake {amount} is less than minimum {min_amount}")


class AddressZero(ValidationError):
    """Raised when a required collaborator is missing."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} cannot be empty")


class AccessDenied(StakingError):
    """Raised when the caller lacks the role an entry point requires."""

    def __init__(self, account: str, role: Role):
        self.account = account
        self.role = role
        super().__init__(
            f"AccessControl: account {str(account).lower()} is missing role {role.value}"
        )


class NoSuchWithdrawId(StakingError):
    """Raised when a withdrawal id is unknown (never issued or already finalized)."""

    def __init__(self, withdraw_id: int):
        self.withdraw_id = withdraw_id
        super().__init__(f"no withdrawal request with id {withdraw_id}")


class NotAllowedUser(StakingError):
    """Raised when someone other than the request owner tries to finalize it."""

    def __init__(self, caller: str, owner: str):
        self.caller = caller
        self.owner = owner
        super().__init__(f"{caller} is not allowed to finalize a request owned by {owner}")


class WithdrawNotFinalizableYet(StakingError):
    """Raised when a withdrawal is finalized before its cooling period has elapsed."""

    def __init__(self, now: int, finalizable_at: int):
        self.now = now
        self.finalizable_at = finalizable_at
        super().__init__(f"withdrawal finalizable at {finalizable_at}, now is {now}")


class ReentrantCall(StakingError):
    """Raised when an entry point is invoked while another one is in progress."""

    def __init__(self, operation: str, active: str):
        self.operation = operation
        self.active = active
        super().__init__(f"reentrant call to {operation} during {active}")


class TokenError(StakingError):
    """Base exception for token movement failures."""
    pass


class InsufficientFunds(TokenError):
    """Raised when an account balance is too small for a transfer."""

    def __init__(self, account: str, balance: int, needed: int):
        self.account = account
        self.balance = balance
        self.needed = needed
        super().__init__(f"{account} balance {balance} < {needed}")


class InsufficientAllowance(TokenError):
    """Raised when a spender's allowance is too small for a transfer_from."""

    def __init__(self, owner: str, spender: str, allowance: int, needed: int):
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.needed = needed
        super().__init__(
            f"allowance of {spender} over {owner} is {allowance} < {needed}"
        )


def require_amount(value: Any, name: str = "amount") -> int:
    """
    Validate that value is a non-negative int token amount.

    Raises:
        TypeError: If value is not an int (bool is rejected too)
        NegativeValue: If value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise NegativeValue(value, name)
    return value


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenCustodian(Protocol):
    """
    Holds the staked asset on behalf of the pool.

    The pool never touches balances directly: it asks the custodian to pull
    tokens from a user, push tokens to a user, or report what it holds.
    Implementations raise TokenError when a movement cannot happen. refund
    and reclaim compensate an executed pull or push when the operation that
    ran it fails.
    """

    def pull(self, source: str, amount: int) -> None:
        """Move amount from source into the custodian."""
        ...

    def push(self, dest: str, amount: int) -> None:
        """Move amount from the custodian to dest."""
        ...

    def refund(self, source: str, amount: int) -> None:
        """Undo a pull of amount from source exactly (balance and any allowance)."""
        ...

    def reclaim(self, dest: str, amount: int) -> None:
        """Undo a push of amount to dest."""
        ...

    def balance(self) -> int:
        """Return the custodian's own token balance."""
        ...


@runtime_checkable
class AccessGate(Protocol):
    """Capability check used to guard administrative entry points."""

    def has_role(self, account: str, role: Role) -> bool:
        ...


@runtime_checkable
class PoolView(Protocol):
    """
    Read-only interface to pool state.

    Functions accepting a PoolView declare they only read. StakingPool
    implements this protocol alongside its mutating entry points.
    """

    @property
    def rate_per_stake(self) -> int:
        ...

    @property
    def total_staked(self) -> int:
        ...

    def stake_states(self, user: str) -> 'StakeState':
        ...

    def withdraw_states(self, withdraw_id: int) -> Optional['WithdrawState']:
        ...

    def available_rewards_to_claim(self, user: str) -> int:
        ...


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class StakeState:
    """
    Per-user stake bookkeeping.

    Attributes:
        stake_amount: Principal currently staked (excludes cooling withdrawals)
        claimed_amount: stake_amount valued at the rate of the last settlement;
                        the baseline future accrual is measured against
        debt: Reward recognized as earned but not yet paid (pool was short)
    """
    stake_amount: int = 0
    claimed_amount: int = 0
    debt: int = 0

    def __post_init__(self):
        if self.stake_amount < 0:
            raise ValueError(f"stake_amount cannot be negative, got {self.stake_amount}")
        if self.claimed_amount < 0:
            raise ValueError(f"claimed_amount cannot be negative, got {self.claimed_amount}")
        if self.debt < 0:
            raise ValueError(f"debt cannot be negative, got {self.debt}")


EMPTY_STAKE = StakeState()


@dataclass(frozen=True, slots=True)
class WithdrawState:
    """
    A pending withdrawal request.

    Attributes:
        user: Owner of the request; the only account allowed to finalize it
        withdraw_timestamp: When the request was made (seconds)
        amount: Principal that will be returned on finalize
    """
    user: str
    withdraw_timestamp: int
    amount: int

    @property
    def finalizable_at(self) -> int:
        return self.withdraw_timestamp + COOLING_PERIOD


@dataclass(frozen=True, slots=True)
class Earned:
    """Result of an accrual query: (gain since last settlement, current total value)."""
    gain: int
    total_value: int


@dataclass(frozen=True, slots=True)
class PoolEvent:
    """
    Immutable observation emitted by a committed operation.

    Attributes:
        name: One of the EVENT_* constants
        params: Frozen tuple of (key, value) pairs, in emission order
    """
    name: str
    params: Tuple[Tuple[str, Any], ...] = ()

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    def __getitem__(self, key: str) -> Any:
        return self.params_dict[key]

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self.params)
        return f"{self.name}({args})"


def event(name: str, **params: Any) -> PoolEvent:
    """Build a PoolEvent keeping keyword order."""
    return PoolEvent(name=name, params=tuple(params.items()))


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single token movement between a user and the custodian.

    Attributes:
        kind: PULL (user -> custodian) or PUSH (custodian -> user)
        account: The user side of the movement
        amount: Positive token amount
        reason: Short label for the audit trail ("stake", "rewards", ...)
    """
    kind: TransferKind
    account: str
    amount: int
    reason: str

    def __post_init__(self):
        if not self.account or not str(self.account).strip():
            raise ValueError("Transfer account cannot be empty")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"Transfer amount must be int, got {type(self.amount)}")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")

    def __repr__(self) -> str:
        arrow = "→ pool" if self.kind is TransferKind.PULL else "pool →"
        if self.kind is TransferKind.PULL:
            return f"Transfer({self.amount}: {self.account} {arrow}, {self.reason})"
        return f"Transfer({self.amount}: {arrow} {self.account}, {self.reason})"


@dataclass(frozen=True, slots=True)
class Receipt:
    """
    Executed, immutable record of one committed pool operation.

    Attributes:
        operation: Entry point name ("stake", "claim_rewards", ...)
        caller: Account that invoked the operation
        timestamp: The single "now" sampled for the operation
        sequence_number: Monotonic position in the pool's receipt log
                         (None for no-op operations, which are not logged)
        events: Observations emitted, in order
        transfers: Token movements executed, in execution order
        value: Return value of the operation (withdraw id for request_withdraw)
    """
    operation: str
    caller: str
    timestamp: int
    sequence_number: Optional[int]
    events: Tuple[PoolEvent, ...] = ()
    transfers: Tuple[Transfer, ...] = ()
    value: Any = None

    def emitted(self, name: str) -> bool:
        """Return True if an event with this name was emitted."""
        return any(e.name == name for e in self.events)

    def events_named(self, name: str) -> List[PoolEvent]:
        return [e for e in self.events if e.name == name]

    def __repr__(self) -> str:
        w = 80
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            f"┌{bar}┐",
            f"│{pad(f' #{self.sequence_number} {self.operation} by {self.caller} @ {self.timestamp}')}│",
        ]
        if self.value is not None:
            lines.append(f"│{pad('   value: ' + repr(self.value))}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Events (' + str(len(self.events)) + '):')}│")
        for e in self.events:
            lines.append(f"│{pad('   ' + repr(e))}│")
        if self.transfers:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Transfers (' + str(len(self.transfers)) + '):')}│")
            for t in self.transfers:
                lines.append(f"│{pad('   ' + repr(t))}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


@dataclass
class PendingOperation:
    """
    Mutable scratch pad for an operation in progress.

    Collects events and queued transfers; becomes a Receipt on commit.
    Never escapes the pool.
    """
    operation: str
    caller: str
    timestamp: int
    events: List[PoolEvent] = field(default_factory=list)
    transfers: List[Transfer] = field(default_factory=list)

    def emit(self, name: str, **params: Any) -> None:
        self.events.append(event(name, **params))

    def pull(self, account: str, amount: int, reason: str) -> None:
        if amount:
            self.transfers.append(Transfer(TransferKind.PULL, account, amount, reason))

    def push(self, account: str, amount: int, reason: str) -> None:
        if amount:
            self.transfers.append(Transfer(TransferKind.PUSH, account, amount, reason))

    @property
    def net_inflow(self) -> int:
        """Tokens the custodian will gain (negative: lose) once transfers run."""
        total = 0
        for t in self.transfers:
            total += t.amount if t.kind is TransferKind.PULL else -t.amount
        return total
