"""
Host Chain State

In-process model of the ledger runtime the adapter executes on: native
balances, fungible tokens with allowances, a wrapped native token, and a
block timestamp.

All-or-nothing execution:

    with chain.journal.atomic():
        token.transfer(...)      ─┐
        subsidy.claim(...)        │  every mutation records an undo step
        venue.trade(...)          │
        raise VenueError(...)    ─┘  undo steps replay in reverse order

Nested ``atomic()`` blocks act as savepoints: an inner failure only rolls
back the inner block's mutations. Outside any atomic block mutations are
final.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from dexbridge.swap.hardening import Validators, normalize_address

logger = logging.getLogger(__name__)

MAX_UINT256 = (1 << 256) - 1


class ChainError(Exception):
    """A host-level operation was rejected."""
    pass


class InsufficientBalance(ChainError):
    """Account does not hold enough of an asset."""
    pass


class InsufficientAllowance(ChainError):
    """Spender has not been approved for the amount."""
    pass


class ApprovalRejected(ChainError):
    """Token refused a non-zero to non-zero allowance change."""
    pass


class UnknownToken(ChainError):
    """No token is registered at the address."""
    pass


def _require_amount(amount: int, field_name: str = "amount") -> int:
    Validators.validate_uint(amount, field_name).raise_if_invalid()
    return amount


class Journal:
    """Undo log backing atomic execution."""

    def __init__(self):
        self._undo: List[Callable[[], None]] = []
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    def record(self, undo: Callable[[], None]) -> None:
        """Register the inverse of a mutation that was just applied."""
        if self._depth:
            self._undo.append(undo)

    @contextmanager
    def atomic(self) -> Iterator["Journal"]:
        """Run a block whose mutations are rolled back if it raises."""
        mark = len(self._undo)
        self._depth += 1
        try:
            yield self
        except BaseException:
            rolled_back = len(self._undo) - mark
            while len(self._undo) > mark:
                self._undo.pop()()
            logger.debug(f"Rolled back {rolled_back} mutation(s)")
            raise
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._undo.clear()

    def set_entry(self, mapping: Dict, key, value) -> None:
        """Assign ``mapping[key] = value`` and record how to restore it."""
        if key in mapping:
            previous = mapping[key]
            self.record(lambda: mapping.__setitem__(key, previous))
        else:
            self.record(lambda: mapping.pop(key, None))
        mapping[key] = value


class Chain:
    """Native balances, token registry and block time."""

    def __init__(self, now: int = 0):
        self.journal = Journal()
        self.now = now
        self._native: Dict[str, int] = {}
        self._tokens: Dict[str, "FungibleToken"] = {}

    # Native currency

    def native_balance(self, account: str) -> int:
        return self._native.get(account.lower(), 0)

    def mint_native(self, account: str, amount: int) -> None:
        account = normalize_address(account, "account")
        _require_amount(amount)
        self.journal.set_entry(self._native, account, self.native_balance(account) + amount)

    def send_native(self, sender: str, recipient: str, amount: int) -> None:
        sender = normalize_address(sender, "sender")
        recipient = normalize_address(recipient, "recipient")
        _require_amount(amount)
        balance = self.native_balance(sender)
        if balance < amount:
            raise InsufficientBalance(f"native: {sender} holds {balance}, needs {amount}")
        self.journal.set_entry(self._native, sender, balance - amount)
        self.journal.set_entry(self._native, recipient, self.native_balance(recipient) + amount)

    # Tokens

    def register_token(self, token: "FungibleToken") -> None:
        self._tokens[token.address] = token

    def token(self, address: str) -> "FungibleToken":
        try:
            return self._tokens[address.lower()]
        except KeyError:
            raise UnknownToken(f"no token registered at {address}")

    def balances_of(self, account: str, token_addresses: Optional[List[str]] = None) -> Dict[str, int]:
        """Snapshot of ``account``'s native and token balances."""
        addresses = token_addresses if token_addresses is not None else list(self._tokens)
        snapshot = {"native": self.native_balance(account)}
        for address in addresses:
            snapshot[address.lower()] = self.token(address).balance_of(account)
        return snapshot


class FungibleToken:
    """
    ERC-20-like token.

    With ``strict_approvals`` set, ``approve`` refuses to move an allowance
    from one non-zero value to another, the behaviour some deployed tokens
    have and the reason approvals are reset to zero first.
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        symbol: str,
        decimals: int = 18,
        strict_approvals: bool = False,
    ):
        self.chain = chain
        self.address = normalize_address(address)
        self.symbol = symbol
        self.decimals = decimals
        self.strict_approvals = strict_approvals
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        chain.register_token(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}@{self.address})"

    @property
    def _journal(self) -> Journal:
        return self.chain.journal

    def balance_of(self, account: str) -> int:
        return self._balances.get(account.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner.lower(), spender.lower()), 0)

    def total_supply(self) -> int:
        return sum(self._balances.values())

    def mint(self, account: str, amount: int) -> None:
        account = normalize_address(account, "account")
        _require_amount(amount)
        self._journal.set_entry(self._balances, account, self.balance_of(account) + amount)

    def burn(self, account: str, amount: int) -> None:
        account = normalize_address(account, "account")
        _require_amount(amount)
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: {account} holds {balance}, needs {amount}")
        self._journal.set_entry(self._balances, account, balance - amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        key = (normalize_address(owner, "owner"), normalize_address(spender, "spender"))
        _require_amount(amount)
        current = self._allowances.get(key, 0)
        if self.strict_approvals and current != 0 and amount != 0:
            raise ApprovalRejected(
                f"{self.symbol}: allowance for {key[1]} must be reset to zero before changing"
            )
        self._journal.set_entry(self._allowances, key, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        sender = normalize_address(sender, "sender")
        recipient = normalize_address(recipient, "recipient")
        _require_amount(amount)
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(f"{self.symbol}: {sender} holds {balance}, needs {amount}")
        self._journal.set_entry(self._balances, sender, balance - amount)
        self._journal.set_entry(self._balances, recipient, self.balance_of(recipient) + amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        key = (normalize_address(owner, "owner"), normalize_address(spender, "spender"))
        _require_amount(amount)
        allowed = self._allowances.get(key, 0)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: {key[1]} may spend {allowed} of {key[0]}, needs {amount}"
            )
        self.transfer(owner, recipient, amount)
        if allowed != MAX_UINT256:
            self._journal.set_entry(self._allowances, key, allowed - amount)


class WrappedNativeToken(FungibleToken):
    """Token backed one-to-one by native currency it holds."""

    def __init__(self, chain: Chain, address: str, symbol: str = "WETH"):
        super().__init__(chain, address, symbol, decimals=18)

    def deposit(self, sender: str, amount: int) -> None:
        """Wrap ``amount`` of ``sender``'s native currency."""
        self.chain.send_native(sender, self.address, amount)
        self.mint(sender, amount)

    def withdraw(self, sender: str, amount: int) -> None:
        """Unwrap ``amount`` tokens back to native currency."""
        self.burn(sender, amount)
        self.chain.send_native(self.address, sender, amount)
