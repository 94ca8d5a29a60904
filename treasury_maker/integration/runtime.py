"""
In-process ledger runtime.

The treasury maker assumes a host that executes each public operation
atomically, single-threaded, with:
- persistent state (every registered `Stateful` component),
- native value balances and transfers,
- a monotonic clock (block timestamp),
- a call context (immediate sender + transaction originator),
- an event log and a gas meter.

`atomic()` is the scoped transaction: it snapshots all registered state and
restores it if the body raises, then re-raises. Nested `atomic()` blocks act as
savepoints, so an inner failure that is handled by the caller only unwinds the
inner block.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ..errors import TransferFailed
from ..state.balances import NATIVE_ASSET, Address, Amount, BalanceTable
from ..state.stateful import Stateful
from .gas import GAS_TRANSFER
from .token_ledger import TokenLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """Who is calling: the immediate `sender` and the transaction `origin`."""

    sender: Address
    origin: Address
    gas_price: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.sender, str) or not self.sender:
            raise ValueError("sender must be a non-empty address")
        if not isinstance(self.origin, str) or not self.origin:
            raise ValueError("origin must be a non-empty address")
        if not isinstance(self.gas_price, int) or isinstance(self.gas_price, bool) or self.gas_price < 0:
            raise ValueError("gas_price must be a non-negative int")


@dataclass(frozen=True)
class Event:
    name: str
    emitter: Address
    timestamp: int
    args: Mapping[str, Any] = field(default_factory=dict)


class LedgerRuntime(Stateful):
    """Single-threaded host for the maker and its collaborators."""

    _state_fields = ("_native", "_events", "_gas_used", "_nonce")

    def __init__(self, *, timestamp: int = 0) -> None:
        self.timestamp = int(timestamp)
        self._native = BalanceTable()
        self._events: List[Event] = []
        self._gas_used = 0
        self._nonce = 0
        self._contracts: Dict[Address, object] = {}
        self._stateful: List[Stateful] = [self]
        self._depth = 0
        self.tokens = TokenLedger(self)
        self.register_state(self.tokens)

    # -- call context ---------------------------------------------------------

    def call(self, sender: Address, *, origin: Optional[Address] = None, gas_price: int = 0) -> CallContext:
        """Context of a direct call from `sender` (origin defaults to sender)."""
        return CallContext(sender=sender, origin=origin if origin is not None else sender, gas_price=gas_price)

    def via_contract(self, ctx: CallContext, contract: Address) -> CallContext:
        """Context seen by a callee when `contract` forwards a call made under `ctx`."""
        if not self.is_contract(contract):
            raise ValueError(f"not a contract: {contract}")
        return CallContext(sender=contract, origin=ctx.origin, gas_price=ctx.gas_price)

    # -- contracts and state ----------------------------------------------------

    def register_contract(self, address: Address, contract: object) -> None:
        if address in self._contracts:
            raise ValueError(f"address already in use: {address}")
        self._contracts[address] = contract
        if isinstance(contract, Stateful):
            self.register_state(contract)

    def register_state(self, component: Stateful) -> None:
        if not any(c is component for c in self._stateful):
            self._stateful.append(component)

    def is_contract(self, address: Address) -> bool:
        return address in self._contracts

    def contract(self, address: Address) -> object:
        try:
            return self._contracts[address]
        except KeyError:
            raise LookupError(f"no contract at {address}") from None

    @contextmanager
    def atomic(self) -> Iterator[None]:
        snapshots = [(c, c.snapshot_state()) for c in self._stateful]
        self._depth += 1
        try:
            yield
        except BaseException as exc:
            for component, snap in snapshots:
                component.restore_state(snap)
            logger.debug("rolled back depth=%d: %s", self._depth, exc)
            raise
        finally:
            self._depth -= 1

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # -- clock, nonce, gas, events ----------------------------------------------

    def advance_time(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError("time is monotonic")
        self.timestamp += int(seconds)

    def next_nonce(self) -> int:
        self._nonce += 1
        return self._nonce

    def charge_gas(self, units: int) -> None:
        self._gas_used += int(units)

    @property
    def gas_used(self) -> int:
        return self._gas_used

    def emit(self, emitter: Address, name: str, **args: Any) -> Event:
        event = Event(name=name, emitter=emitter, timestamp=self.timestamp, args=dict(args))
        self._events.append(event)
        return event

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    def events_named(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    # -- native value -------------------------------------------------------------

    def native_balance(self, address: Address) -> Amount:
        return self._native.get(address, NATIVE_ASSET)

    def mint_native(self, address: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        self._native.add(address, NATIVE_ASSET, amount)

    def send_native(self, sender: Address, to: Address, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        if self._native.get(sender, NATIVE_ASSET) < amount:
            raise TransferFailed(code="NATIVE_TRANSFER_FAILED", detail=f"{sender} holds less than {amount}")
        self._native.move(NATIVE_ASSET, sender, to, amount)
        self.charge_gas(GAS_TRANSFER)
