"""
Keeper registry (role oracle + price feed + compensation sink).

The maker talks to the registry through two one-directional interfaces:

- `RoleOracle`: who currently holds the reporter / slasher role for a client,
  and whether a poker key belongs to a given keeper.
- `CompensationSink`: settle a keeper's reward for one poke.

`KeeperRegistry` implements both against in-process bookkeeping. Staking
economics are out of scope: deposits are recorded numbers used only to rank
keepers, and slashing is not modelled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, Optional, Set, Tuple

from ..errors import CompensationError
from ..state.balances import Address, Amount, TokenId
from ..state.stateful import Stateful

if TYPE_CHECKING:
    from .runtime import LedgerRuntime

logger = logging.getLogger(__name__)

PRICE_UNIT = 10**18


@dataclass(frozen=True)
class CompensationPlan:
    """
    Per-client reward parameters.

    Attributes:
        reward_token: token the client's credit is held in
        max_gas_price: cap applied to the keeper's reported gas price
    """
    reward_token: TokenId
    max_gas_price: int

    def __post_init__(self) -> None:
        if not isinstance(self.reward_token, str) or not self.reward_token:
            raise ValueError("reward_token must be a non-empty token id")
        if not isinstance(self.max_gas_price, int) or isinstance(self.max_gas_price, bool) or self.max_gas_price < 0:
            raise ValueError("max_gas_price must be a non-negative int")


@dataclass(frozen=True)
class KeeperRecord:
    admin: Address
    poker_key: Address


@dataclass(frozen=True)
class ClientRecord:
    owner: Address
    plan: CompensationPlan
    minimal_deposit: Amount
    credit: Amount = 0


class RoleOracle:
    """Interface for keeper role queries."""

    def current_reporter(self, client: Address) -> Optional[int]:
        raise NotImplementedError

    def is_reporter_key(self, client: Address, user_id: int, poker_key: Address) -> bool:
        raise NotImplementedError

    def is_slasher_key(self, client: Address, user_id: int, poker_key: Address) -> bool:
        raise NotImplementedError


class CompensationSink:
    """Interface for settling keeper rewards; failures raise `CompensationError`."""

    def reward(
        self,
        client: Address,
        poke_id: int,
        user_id: int,
        *,
        gas_used: int,
        gas_price: int,
        to: Address,
        compensate_in_native: bool,
    ) -> Amount:
        raise NotImplementedError


class KeeperRegistry(RoleOracle, CompensationSink, Stateful):
    _state_fields = ("_keepers", "_deposits", "_clients", "_prices", "_settled", "_next_user_id")

    def __init__(self, runtime: "LedgerRuntime", address: Address) -> None:
        self._runtime = runtime
        self.address = address
        self._keepers: Dict[int, KeeperRecord] = {}
        self._deposits: Dict[Tuple[Address, int], Amount] = {}
        self._clients: Dict[Address, ClientRecord] = {}
        self._prices: Dict[TokenId, int] = {}
        self._settled: Set[Tuple[Address, int]] = set()
        self._next_user_id = 1
        runtime.register_contract(address, self)

    # -- keepers ----------------------------------------------------------------

    def create_user(self, admin: Address, poker_key: Address) -> int:
        user_id = self._next_user_id
        self._next_user_id += 1
        self._keepers[user_id] = KeeperRecord(admin=admin, poker_key=poker_key)
        return user_id

    def set_poker_key(self, caller: Address, user_id: int, poker_key: Address) -> None:
        keeper = self._keeper(user_id)
        if caller != keeper.admin:
            raise CompensationError(code="ONLY_USER_ADMIN")
        self._keepers[user_id] = replace(keeper, poker_key=poker_key)

    def set_deposit(self, caller: Address, client: Address, user_id: int, amount: Amount) -> None:
        """Record the stake `user_id` holds for `client`."""
        if caller != self._keeper(user_id).admin:
            raise CompensationError(code="ONLY_USER_ADMIN")
        if amount < 0:
            raise ValueError(f"deposit must be non-negative: {amount}")
        self._deposits[(client, user_id)] = amount

    def deposit_of(self, client: Address, user_id: int) -> Amount:
        return self._deposits.get((client, user_id), 0)

    def _keeper(self, user_id: int) -> KeeperRecord:
        keeper = self._keepers.get(user_id)
        if keeper is None:
            raise CompensationError(code="USER_NOT_FOUND", detail=str(user_id))
        return keeper

    # -- clients ----------------------------------------------------------------

    def add_client(self, client: Address, owner: Address, plan: CompensationPlan, *, minimal_deposit: Amount) -> None:
        if client in self._clients:
            raise CompensationError(code="CLIENT_EXISTS")
        self._clients[client] = ClientRecord(owner=owner, plan=plan, minimal_deposit=minimal_deposit)

    def client(self, client: Address) -> ClientRecord:
        record = self._clients.get(client)
        if record is None:
            raise CompensationError(code="CLIENT_NOT_FOUND", detail=client)
        return record

    def add_credit(self, payer: Address, client: Address, amount: Amount) -> None:
        """Fund `client`'s reward credit with `amount` of its reward token."""
        record = self.client(client)
        self._runtime.tokens.transfer(payer, self.address, record.plan.reward_token, amount)
        self._clients[client] = replace(record, credit=record.credit + amount)

    def fund_native(self, sender: Address, amount: Amount) -> None:
        self._runtime.send_native(sender, self.address, amount)

    # -- prices -----------------------------------------------------------------

    def set_price(self, token: TokenId, native_per_unit: int) -> None:
        """Price of `PRICE_UNIT` base units of `token`, in native base units."""
        if native_per_unit <= 0:
            raise ValueError(f"price must be positive: {native_per_unit}")
        self._prices[token] = native_per_unit

    def native_to_token(self, token: TokenId, native_amount: Amount) -> Amount:
        price = self._prices.get(token)
        if price is None:
            raise CompensationError(code="PRICE_NOT_SET", detail=token)
        return native_amount * PRICE_UNIT // price

    # -- RoleOracle -------------------------------------------------------------

    def current_reporter(self, client: Address) -> Optional[int]:
        """Highest deposit holder for `client` (lowest user id on ties)."""
        best: Optional[Tuple[Amount, int]] = None
        for (c, user_id), amount in self._deposits.items():
            if c != client or amount <= 0:
                continue
            if best is None or amount > best[0] or (amount == best[0] and user_id < best[1]):
                best = (amount, user_id)
        return None if best is None else best[1]

    def _has_key(self, user_id: int, poker_key: Address) -> bool:
        keeper = self._keepers.get(user_id)
        return keeper is not None and keeper.poker_key == poker_key

    def is_reporter_key(self, client: Address, user_id: int, poker_key: Address) -> bool:
        return self.current_reporter(client) == user_id and self._has_key(user_id, poker_key)

    def is_slasher_key(self, client: Address, user_id: int, poker_key: Address) -> bool:
        record = self._clients.get(client)
        if record is None or not self._has_key(user_id, poker_key):
            return False
        return self.deposit_of(client, user_id) >= max(record.minimal_deposit, 1)

    # -- CompensationSink -------------------------------------------------------

    def reward(
        self,
        client: Address,
        poke_id: int,
        user_id: int,
        *,
        gas_used: int,
        gas_price: int,
        to: Address,
        compensate_in_native: bool,
    ) -> Amount:
        if (client, poke_id) in self._settled:
            raise CompensationError(code="ALREADY_COMPENSATED", detail=str(poke_id))
        record = self.client(client)
        self._keeper(user_id)

        reward_native = gas_used * min(gas_price, record.plan.max_gas_price)
        reward_token = self.native_to_token(record.plan.reward_token, reward_native)
        if reward_token > record.credit:
            raise CompensationError(code="INSUFFICIENT_CLIENT_CREDIT", detail=f"{reward_token} > {record.credit}")
        if compensate_in_native and self._runtime.native_balance(self.address) < reward_native:
            raise CompensationError(code="INSUFFICIENT_NATIVE_RESERVE")

        self._settled.add((client, poke_id))
        self._clients[client] = replace(record, credit=record.credit - reward_token)
        if compensate_in_native:
            self._runtime.send_native(self.address, to, reward_native)
            paid = reward_native
        else:
            self._runtime.tokens.transfer(self.address, to, record.plan.reward_token, reward_token)
            paid = reward_token

        self._runtime.emit(
            self.address,
            "RewardUser",
            client=client,
            poke_id=poke_id,
            user_id=user_id,
            gas_used=gas_used,
            paid=paid,
            in_native=compensate_in_native,
        )
        logger.debug("rewarded user=%d poke=%d paid=%d native=%s", user_id, poke_id, paid, compensate_in_native)
        return paid

    def is_settled(self, client: Address, poke_id: int) -> bool:
        return (client, poke_id) in self._settled
