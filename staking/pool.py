"""
pool.py - Stateful custodial reward pool

StakingPool is the central state manager of the staking system and the only
module that mutates ledger state.

Key responsibilities:
    - Implements the PoolView protocol for read-only access
    - Runs every entry point atomically: state is snapshotted on entry and
      restored on any failure; token transfers are queued and executed at
      commit, pulls before pushes, and unwound if one of them fails
    - Holds a non-reentrancy guard for the whole duration of an entry point
    - Samples "now" once per operation from the injected clock
    - Always logs: every committed operation becomes a Receipt in `receipts`

Every mutating entry point follows the same path:

    settle rate -> earned reward of the caller -> payable vs. debt
        -> queue token movements -> update principal / debt
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .core import (
    # Constants
    MAX_APR,
    EVENT_RATE_ADVANCED, EVENT_STAKE_RECORDED, EVENT_REWARDS_PAID,
    EVENT_DEBT_CHANGED, EVENT_WITHDRAW_REQUESTED, EVENT_WITHDRAW_FINALIZED,
    EVENT_TOKENS_DONATED, EVENT_MIN_STAKE_CHANGED, EVENT_RATE_PARAM_CHANGED,
    EVENT_EXCESS_WITHDRAWN,
    # Types
    Role, TransferKind, TokenCustodian, AccessGate,
    StakeState, WithdrawState, Earned, Transfer, Receipt, PendingOperation,
    # Exceptions
    AddressZero, LessThanMinAmount, ReentrantCall, TheSameValue,
    TooBigValue, ValidationError, ZeroValue,
    # Helpers
    require_amount,
)
from .access import only_role
from .accrual import RateAccumulator
from .clock import Clock, SystemClock
from .reconciler import available_for_rewards, claimable, split_owed
from .stakes import StakeBook, compute_earned
from .withdrawals import WithdrawalRegistry


class ReentrancyGuard:
    """
    Single "operation in progress" flag.

    hold() is a scoped acquisition: the flag is released on every exit path,
    and acquiring it while held raises ReentrantCall.
    """

    def __init__(self):
        self.active: Optional[str] = None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self.active is not None:
            raise ReentrantCall(operation, self.active)
        self.active = operation
        try:
            yield
        finally:
            self.active = None

    @property
    def locked(self) -> bool:
        return self.active is not None


class StakingPool:
    """
    Custodial staking pool with continuous APR rewards and delayed withdrawals.

    Implements the PoolView protocol. Entry points take the calling account
    as their first argument and return a Receipt.

    Design Principles:
        - All-or-nothing: a failed entry point leaves no trace in pool state,
          in the token balances and allowances it touched, or in the receipt log.
        - Rewards are paid only out of excess balance (custodian holdings
          beyond staked and cooling principal). What cannot be paid is kept
          as per-user debt and retried on every settlement.
        - Integer arithmetic only; multiply before divide.

    Thread Safety:
        Not thread-safe. Operations are totally ordered by the caller.

    Example:
        token = TokenLedger()
        custodian = LedgerCustodian(token, "pool")
        roles = RoleRegistry(admin="deployer")
        pool = StakingPool(custodian, min_stake_amount=50, apr=20_00, access=roles,
                           clock=ManualClock(0), verbose=False)

        token.mint("alice", 1_000)
        token.approve("alice", "pool", 1_000)
        pool.stake("alice", 1_000)
    """

    def __init__(
        self,
        custodian: TokenCustodian,
        min_stake_amount: int,
        apr: int,
        access: AccessGate,
        clock: Optional[Clock] = None,
        deployer: str = "deployer",
        name: str = "staking",
        verbose: bool = True,
    ):
        """
        Create a pool.

        Args:
            custodian: Holds the staked token
            min_stake_amount: Smallest amount accepted by stake()
            apr: Annual reward rate in basis points (0..MAX_APR)
            access: Role checks for administrative entry points
            clock: Time source (default: wall clock)
            deployer: Account recorded as caller of the deploy receipt
            name: Pool identifier used in printed output
            verbose: Print every committed operation (default: True)

        Raises:
            AddressZero: custodian or access is missing
            TooBigValue: apr > MAX_APR
        """
        if custodian is None:
            raise AddressZero("custodian")
        if access is None:
            raise AddressZero("access")
        require_amount(min_stake_amount, "min_stake_amount")
        require_amount(apr, "apr")
        if apr > MAX_APR:
            raise TooBigValue(apr, MAX_APR)

        self.name = name
        self.custodian = custodian
        self.access = access
        self.clock: Clock = clock or SystemClock()
        self.verbose = verbose
        self.receipts: List[Receipt] = []
        self._guard = ReentrancyGuard()

        now = self.clock.now()
        self._accumulator = RateAccumulator(start_time=now)
        self._stakes = StakeBook()
        self._withdrawals = WithdrawalRegistry()
        self._apr = 0
        self._min_stake_amount = 0

        op = PendingOperation("deploy", deployer, now)
        if min_stake_amount != 0:
            self._min_stake_amount = min_stake_amount
            op.emit(EVENT_MIN_STAKE_CHANGED, old_value=0, new_value=min_stake_amount)
        if apr != 0:
            self._apr = apr
            op.emit(EVENT_RATE_PARAM_CHANGED, old_value=0, new_value=apr)
        self._commit(op, (), None)

    # ========================================================================
    # PoolView PROTOCOL IMPLEMENTATION (read-only)
    # ========================================================================

    @property
    def rate_per_stake(self) -> int:
        """Global accrual multiplier, scaled by RATE_PRECISION."""
        return self._accumulator.rate

    @property
    def last_update_time(self) -> int:
        return self._accumulator.last_update_time

    @property
    def total_staked(self) -> int:
        return self._stakes.total_staked

    @property
    def total_locked(self) -> int:
        """Principal sitting in pending withdrawal requests."""
        return self._withdrawals.total_locked

    @property
    def apr(self) -> int:
        return self._apr

    @property
    def min_stake_amount(self) -> int:
        return self._min_stake_amount

    @property
    def next_withdraw_id(self) -> int:
        return self._withdrawals.next_withdraw_id

    def stake_states(self, user: str) -> StakeState:
        """Stake record of user (all zeros if the user never staked)."""
        return self._stakes.get(user)

    def withdraw_states(self, withdraw_id: int) -> Optional[WithdrawState]:
        """Pending request with this id, or None if absent or finalized."""
        return self._withdrawals.get(withdraw_id)

    def pending_withdrawals(self, user: str) -> List[Tuple[int, WithdrawState]]:
        return self._withdrawals.pending_for(user)

    def stakers(self) -> Dict[str, StakeState]:
        """Copy of every stake record, keyed by user."""
        return self._stakes.as_dict()

    def available_for_rewards(self) -> int:
        """Custodian balance beyond staked and cooling principal."""
        return available_for_rewards(
            self.custodian.balance(), self.total_staked, self.total_locked
        )

    def earned(self, user: str) -> Earned:
        """Accrual of user since last settlement, projected to now."""
        rate = self._accumulator.projected(self.clock.now(), self.total_staked, self._apr)
        return compute_earned(self._stakes.get(user), rate)

    def available_rewards_to_claim(self, user: str) -> int:
        """
        What claim_rewards() would pay user right now.

        Projects the rate to now without mutating, adds outstanding debt,
        and caps the result at available_for_rewards().
        """
        earned = self.earned(user)
        return claimable(
            earned.gain, self._stakes.get(user).debt, self.available_for_rewards()
        )

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Check the bookkeeping invariants.

        - total_staked equals the sum of every user's principal
        - the custodian holds at least total_staked + total_locked

        Returns:
            Dict with keys 'valid', 'total_staked', 'principal_sum',
            'custodian_balance' and 'discrepancies' (list of strings).
        """
        discrepancies = []
        principal_sum = self._stakes.principal_sum()
        balance = self.custodian.balance()

        if principal_sum != self.total_staked:
            discrepancies.append(
                f"total_staked {self.total_staked} != principal sum {principal_sum}"
            )
        if balance < self.total_staked + self.total_locked:
            discrepancies.append(
                f"custodian balance {balance} < principal "
                f"{self.total_staked} + locked {self.total_locked}"
            )
        negative_debt = [u for u, s in self._stakes if s.debt < 0]
        if negative_debt:
            discrepancies.append(f"negative debt for {negative_debt}")

        return {
            'valid': len(discrepancies) == 0,
            'total_staked': self.total_staked,
            'principal_sum': principal_sum,
            'custodian_balance': balance,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # USER ENTRY POINTS (Mutating)
    # ========================================================================

    def stake(self, caller: str, amount: int) -> Receipt:
        """
        Stake amount tokens.

        Settles the caller first (paying accrued rewards where possible),
        then adds amount to their principal and pulls it from them.

        Raises:
            LessThanMinAmount: amount < min_stake_amount
            TokenError: the custodian could not pull the tokens
        """
        def body(op: PendingOperation) -> None:
            require_amount(amount)
            if amount < self._min_stake_amount:
                raise LessThanMinAmount(amount, self._min_stake_amount)
            self._settle_user(op, caller)
            self._stakes.increase_principal(caller, amount, self.rate_per_stake)
            op.pull(caller, amount, "stake")
            op.emit(EVENT_STAKE_RECORDED, user=caller, amount=amount)

        return self._transact("stake", caller, body)

    def claim_rewards(self, caller: str) -> Receipt:
        """Pay the caller whatever is owed and payable; carry the rest as debt."""
        def body(op: PendingOperation) -> None:
            self._settle_user(op, caller)

        return self._transact("claim_rewards", caller, body)

    def request_withdraw(self, caller: str, amount: int) -> Receipt:
        """
        Lock amount of the caller's principal for withdrawal.

        The amount stops earning immediately and can be finalized after
        COOLING_PERIOD. The new withdrawal id is returned as receipt.value.

        Raises:
            ZeroValue: amount == 0
            TooBigValue: amount exceeds the caller's principal
        """
        def body(op: PendingOperation) -> int:
            require_amount(amount)
            if amount == 0:
                raise ZeroValue("amount")
            principal = self._stakes.get(caller).stake_amount
            if amount > principal:
                raise TooBigValue(amount, principal)

            self._settle_user(op, caller)
            self._stakes.decrease_principal(caller, amount, self.rate_per_stake)
            withdraw_id = self._withdrawals.open(caller, amount, op.timestamp)
            op.emit(
                EVENT_WITHDRAW_REQUESTED,
                user=caller, amount=amount, withdraw_id=withdraw_id,
            )
            return withdraw_id

        return self._transact("request_withdraw", caller, body)

    def finalize_withdraw(self, caller: str, withdraw_id: int) -> Receipt:
        """
        Pay out a withdrawal request whose cooling period has elapsed.

        Raises:
            NoSuchWithdrawId: unknown or already finalized id
            NotAllowedUser: caller does not own the request
            WithdrawNotFinalizableYet: cooling period not elapsed
        """
        def body(op: PendingOperation) -> None:
            request = self._withdrawals.close(withdraw_id, caller, op.timestamp)
            op.push(caller, request.amount, "withdraw")
            op.emit(
                EVENT_WITHDRAW_FINALIZED,
                user=caller, amount=request.amount, withdraw_id=withdraw_id,
            )

        return self._transact("finalize_withdraw", caller, body)

    def donate_tokens_to_rewards(self, caller: str, amount: int) -> Receipt:
        """Add amount to the reward funds. No per-user bookkeeping."""
        def body(op: PendingOperation) -> None:
            require_amount(amount)
            op.pull(caller, amount, "donation")
            op.emit(EVENT_TOKENS_DONATED, donor=caller, amount=amount)

        return self._transact("donate_tokens_to_rewards", caller, body)

    # ========================================================================
    # ADMINISTRATIVE ENTRY POINTS (Mutating, role-gated)
    # ========================================================================

    @only_role(Role.MANAGER)
    def set_min_stake_amount(self, caller: str, value: int) -> Receipt:
        """
        Change the minimum stake.

        Raises:
            AccessDenied: caller is not a MANAGER
            TheSameValue: value equals the current minimum
        """
        def body(op: PendingOperation) -> None:
            require_amount(value, "min_stake_amount")
            old = self._min_stake_amount
            if value == old:
                raise TheSameValue(value)
            self._min_stake_amount = value
            op.emit(EVENT_MIN_STAKE_CHANGED, old_value=old, new_value=value)

        return self._transact("set_min_stake_amount", caller, body)

    @only_role(Role.MANAGER)
    def set_apr(self, caller: str, value: int) -> Receipt:
        """
        Change the annual rate.

        The rate is settled at the old APR up to now before the new APR
        takes effect.

        Raises:
            AccessDenied: caller is not a MANAGER
            TheSameValue: value equals the current APR
            TooBigValue: value > MAX_APR
        """
        def body(op: PendingOperation) -> None:
            require_amount(value, "apr")
            old = self._apr
            if value == old:
                raise TheSameValue(value)
            if value > MAX_APR:
                raise TooBigValue(value, MAX_APR)
            self._update_rate(op)
            self._apr = value
            op.emit(EVENT_RATE_PARAM_CHANGED, old_value=old, new_value=value)

        return self._transact("set_apr", caller, body)

    @only_role(Role.DEFAULT_ADMIN)
    def receive_excessive_balance(self, caller: str, amount: int) -> Receipt:
        """
        Sweep up to amount of excess balance to the caller.

        Pays min(amount, available_for_rewards()); never an error for
        oversized or zero amounts. Recorded user debt is not touched.

        Raises:
            AccessDenied: caller is not DEFAULT_ADMIN
        """
        def body(op: PendingOperation) -> None:
            require_amount(amount)
            to_pay = min(amount, self._available(op))
            if to_pay > 0:
                op.push(caller, to_pay, "excess")
                op.emit(EVENT_EXCESS_WITHDRAWN, receiver=caller, amount=to_pay)

        return self._transact("receive_excessive_balance", caller, body)

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    def _update_rate(self, op: PendingOperation) -> None:
        new_rate = self._accumulator.settle(op.timestamp, self.total_staked, self._apr)
        if new_rate is not None:
            op.emit(EVENT_RATE_ADVANCED, rate=new_rate)

    def _available(self, op: PendingOperation) -> int:
        # Includes transfers already queued by this operation.
        return available_for_rewards(
            self.custodian.balance() + op.net_inflow,
            self.total_staked,
            self.total_locked,
        )

    def _settle_user(self, op: PendingOperation, user: str) -> None:
        """
        Recognize the user's accrual and pay what the pool can.

        claimed_amount always advances to the current value when there is a
        gain; the unpaid part of (gain + debt) becomes the new debt.
        """
        self._update_rate(op)

        state = self._stakes.get(user)
        earned = compute_earned(state, self.rate_per_stake)
        owed = earned.gain + state.debt
        if owed == 0:
            return

        if earned.gain > 0:
            state = replace(state, claimed_amount=earned.total_value)

        split = split_owed(owed, self._available(op))
        if split.debt != state.debt:
            op.emit(EVENT_DEBT_CHANGED, user=user, old_debt=state.debt, new_debt=split.debt)
            state = replace(state, debt=split.debt)
        self._stakes.put(user, state)

        if split.paid > 0:
            op.push(user, split.paid, "rewards")
            op.emit(EVENT_REWARDS_PAID, user=user, amount=split.paid)

    # ========================================================================
    # TRANSACTION MACHINERY
    # ========================================================================

    def _transact(
        self,
        operation: str,
        caller: str,
        body: Callable[[PendingOperation], Any],
    ) -> Receipt:
        """
        Run body atomically under the reentrancy guard.

        On any exception, pool state is restored from the entry snapshot and
        executed transfers are unwound before the exception propagates.
        """
        with self._guard.hold(operation):
            snapshot = self._capture_state()
            op = PendingOperation(operation, caller, self.clock.now())
            try:
                if not caller or not str(caller).strip():
                    raise ValidationError("caller cannot be empty")
                value = body(op)
                executed = self._execute_transfers(op.transfers)
            except Exception as exc:
                self._restore_state(snapshot)
                if self.verbose:
                    print(f"✗ REJECTED {operation} by {caller}: {type(exc).__name__}: {exc}")
                raise
            return self._commit(op, executed, value)

    def _execute_transfers(self, transfers: List[Transfer]) -> Tuple[Transfer, ...]:
        """Run queued transfers, pulls first; unwind the executed ones on failure."""
        ordered = (
            [t for t in transfers if t.kind is TransferKind.PULL]
            + [t for t in transfers if t.kind is TransferKind.PUSH]
        )
        executed: List[Transfer] = []
        try:
            for t in ordered:
                if t.kind is TransferKind.PULL:
                    self.custodian.pull(t.account, t.amount)
                else:
                    self.custodian.push(t.account, t.amount)
                executed.append(t)
        except Exception:
            self._unwind_transfers(executed)
            raise
        return tuple(executed)

    def _unwind_transfers(self, executed: List[Transfer]) -> None:
        for t in reversed(executed):
            if t.kind is TransferKind.PULL:
                self.custodian.refund(t.account, t.amount)
            else:
                self.custodian.reclaim(t.account, t.amount)

    def _capture_state(self) -> Tuple[Any, ...]:
        return (
            self._accumulator.snapshot(),
            self._stakes.snapshot(),
            self._withdrawals.snapshot(),
            self._apr,
            self._min_stake_amount,
        )

    def _restore_state(self, snapshot: Tuple[Any, ...]) -> None:
        accumulator, stakes, withdrawals, self._apr, self._min_stake_amount = snapshot
        self._accumulator.restore(accumulator)
        self._stakes.restore(stakes)
        self._withdrawals.restore(withdrawals)

    def _commit(
        self,
        op: PendingOperation,
        transfers: Tuple[Transfer, ...],
        value: Any,
    ) -> Receipt:
        """Turn a finished operation into a Receipt; log it unless it was a no-op."""
        noop = not op.events and not transfers
        receipt = Receipt(
            operation=op.operation,
            caller=op.caller,
            timestamp=op.timestamp,
            sequence_number=None if noop else len(self.receipts),
            events=tuple(op.events),
            transfers=transfers,
            value=value,
        )
        if not noop:
            self.receipts.append(receipt)
            if self.verbose:
                print(repr(receipt))
        return receipt

    def __repr__(self) -> str:
        return (
            f"StakingPool({self.name}, apr={self._apr}, rate={self.rate_per_stake}, "
            f"total_staked={self.total_staked}, total_locked={self.total_locked}, "
            f"users={len(self._stakes)})"
        )
