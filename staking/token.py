"""
token.py - In-memory fungible token and the custodian adapter

TokenLedger is a minimal double-entry token book used to run the pool
outside of any chain: integer balances per account, allowances, and an
append-only log of movements. Issuance goes through SYSTEM_WALLET, which is
exempt from balance checks, so the sum of every balance (system included) is
always zero.

LedgerCustodian binds a TokenLedger to the pool's own account and exposes the
TokenCustodian protocol the pool consumes:
    pull(source, amount)    -> transfer_from(source -> pool), needs allowance
    push(dest, amount)      -> transfer(pool -> dest)
    refund(source, amount)  -> refund_from(pool -> source), allowance restored
    reclaim(dest, amount)   -> transfer(dest -> pool)
    balance()               -> balance_of(pool)
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .core import (
    InsufficientFunds, InsufficientAllowance, TokenError,
    require_amount,
)

# Reserved account for issuance and burning; may hold a negative balance.
SYSTEM_WALLET = "system"


@dataclass(frozen=True, slots=True)
class TokenMove:
    """
    One executed token movement.

    Attributes:
        sequence: Position in the token log
        source: Debited account
        dest: Credited account
        amount: Positive amount moved
        spender: Account that initiated a transfer_from (None for direct transfers)
    """
    sequence: int
    source: str
    dest: str
    amount: int
    spender: Optional[str] = None

    def __repr__(self) -> str:
        via = f" via {self.spender}" if self.spender else ""
        return f"TokenMove(#{self.sequence} {self.amount}: {self.source}→{self.dest}{via})"


class TokenLedger:
    """
    Integer token balances with ERC20-style allowances.

    Not thread-safe; one instance per simulation.
    """

    def __init__(self, symbol: str = "STK", name: str = "Stake Token", decimals: int = 8, verbose: bool = False):
        self.symbol = symbol
        self.name = name
        self.decimals = decimals
        self.verbose = verbose
        self.balances: Dict[str, int] = defaultdict(int)
        self.allowances: Dict[Tuple[str, str], int] = defaultdict(int)
        self.log: List[TokenMove] = []

    @property
    def one_token(self) -> int:
        """Base units in one whole token."""
        return 10 ** self.decimals

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def total_supply(self) -> int:
        """Tokens in circulation (everything issued and not burned)."""
        return -self.balances.get(SYSTEM_WALLET, 0)

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Check that balances net to zero across all accounts.

        Returns:
            Dict with 'valid', 'total_supply' and 'net' (must be 0).
        """
        net = sum(self.balances[a] for a in sorted(self.balances))
        return {
            'valid': net == 0,
            'total_supply': self.total_supply(),
            'net': net,
        }

    # ========================================================================
    # MUTATING
    # ========================================================================

    def mint(self, account: str, amount: int) -> None:
        """Issue amount new tokens to account."""
        self._move(SYSTEM_WALLET, account, require_amount(amount))

    def burn(self, account: str, amount: int) -> None:
        """Destroy amount tokens held by account."""
        self._move(account, SYSTEM_WALLET, require_amount(amount))

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Let spender move up to amount of owner's tokens (overwrites)."""
        if owner == spender:
            raise TokenError(f"{owner} cannot approve itself")
        self.allowances[(owner, spender)] = require_amount(amount)

    def transfer(self, sender: str, dest: str, amount: int) -> None:
        """Move amount from sender to dest."""
        self._move(sender, dest, require_amount(amount))

    def transfer_from(self, spender: str, owner: str, dest: str, amount: int) -> None:
        """
        Move amount from owner to dest on behalf of spender.

        Raises:
            InsufficientAllowance: spender's allowance over owner is too small
            InsufficientFunds: owner's balance is too small
        """
        require_amount(amount)
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowance(owner, spender, current, amount)
        self._move(owner, dest, amount, spender=spender)
        self.allowances[(owner, spender)] = current - amount

    def refund_from(self, spender: str, owner: str, amount: int) -> None:
        """
        Undo transfer_from(spender, owner, spender, amount).

        Returns the tokens to owner and gives the spent allowance back.
        """
        require_amount(amount)
        self._move(spender, owner, amount, spender=spender)
        self.allowances[(owner, spender)] += amount

    def _move(self, source: str, dest: str, amount: int, spender: Optional[str] = None) -> None:
        if not source or not dest:
            raise TokenError("source and dest cannot be empty")
        if source == dest:
            raise TokenError(f"source and dest must be different, got {source}")
        if amount == 0:
            return
        if source != SYSTEM_WALLET and self.balances[source] < amount:
            raise InsufficientFunds(source, self.balances[source], amount)

        self.balances[source] -= amount
        self.balances[dest] += amount
        move = TokenMove(len(self.log), source, dest, amount, spender)
        self.log.append(move)
        if self.verbose:
            print(f"  {self.symbol} {move!r}")

    def __repr__(self) -> str:
        return f"TokenLedger({self.symbol}, supply={self.total_supply()}, accounts={len(self.balances)})"


class LedgerCustodian:
    """
    TokenCustodian backed by a TokenLedger account.

    Args:
        token: The token book
        address: The account the pool's holdings live in
    """

    def __init__(self, token: TokenLedger, address: str = "staking_pool"):
        if not address or not address.strip():
            raise TokenError("custodian address cannot be empty")
        self.token = token
        self.address = address

    def pull(self, source: str, amount: int) -> None:
        self.token.transfer_from(self.address, source, self.address, amount)

    def push(self, dest: str, amount: int) -> None:
        self.token.transfer(self.address, dest, amount)

    def refund(self, source: str, amount: int) -> None:
        self.token.refund_from(self.address, source, amount)

    def reclaim(self, dest: str, amount: int) -> None:
        self.token.transfer(dest, self.address, amount)

    def balance(self) -> int:
        return self.token.balance_of(self.address)

    def __repr__(self) -> str:
        return f"LedgerCustodian({self.token.symbol}@{self.address}, balance={self.balance()})"
