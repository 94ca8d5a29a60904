"""
Keeper trigger surface.

Two entry points share one precondition set:

- P1: the caller is an externally-owned account (`origin == sender`);
- P2: the keeper registry confirms the caller's key for the invoked role.

The slasher path additionally refuses a keeper that currently is the reporter.
After a successful conversion the keeper's gas is compensated through the
registry. Compensation runs in its own savepoint: a `CompensationError` is
logged and dropped, the conversion stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..errors import (
    CompensationError,
    InvalidPokerKey,
    NotExternallyOwned,
    ReentrantPoke,
    SlasherIsReporter,
)
from ..integration.gas import GAS_CALL_BASE
from ..state.balances import Address, TokenId
from .executor import SwapExecutor, SwapRecord

if TYPE_CHECKING:
    from ..integration.keeper_registry import CompensationSink, RoleOracle
    from ..integration.runtime import CallContext, LedgerRuntime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PokeRewardOptions:
    """Where the keeper's reward goes (default: the caller) and in which asset."""

    to: Optional[Address] = None
    compensate_in_native: bool = False


class GateState(Enum):
    IDLE = "idle"
    EXECUTING = "executing"


class PokeGate:
    def __init__(
        self,
        runtime: "LedgerRuntime",
        client: Address,
        executor: SwapExecutor,
        roles: "RoleOracle",
        sink: "CompensationSink",
    ) -> None:
        self._runtime = runtime
        self._client = client
        self._executor = executor
        self._roles = roles
        self._sink = sink
        self.state = GateState.IDLE

    def swap_from_reporter(
        self,
        call: "CallContext",
        user_id: int,
        token: TokenId,
        options: Optional[PokeRewardOptions] = None,
    ) -> SwapRecord:
        self._require_eoa(call)
        if not self._roles.is_reporter_key(self._client, user_id, call.sender):
            raise InvalidPokerKey(detail=f"user {user_id}")
        return self._poke(call, user_id, token, options)

    def swap_from_slasher(
        self,
        call: "CallContext",
        user_id: int,
        token: TokenId,
        options: Optional[PokeRewardOptions] = None,
    ) -> SwapRecord:
        self._require_eoa(call)
        if not self._roles.is_slasher_key(self._client, user_id, call.sender):
            raise InvalidPokerKey(detail=f"user {user_id}")
        if self._roles.current_reporter(self._client) == user_id:
            raise SlasherIsReporter(detail=f"user {user_id}")
        return self._poke(call, user_id, token, options)

    @staticmethod
    def _require_eoa(call: "CallContext") -> None:
        if call.origin != call.sender:
            raise NotExternallyOwned(detail=call.sender)

    def _poke(
        self,
        call: "CallContext",
        user_id: int,
        token: TokenId,
        options: Optional[PokeRewardOptions],
    ) -> SwapRecord:
        if self.state is not GateState.IDLE:
            raise ReentrantPoke()
        opts = options if options is not None else PokeRewardOptions()
        self.state = GateState.EXECUTING
        try:
            with self._runtime.atomic():
                gas_before = self._runtime.gas_used
                record = self._executor.execute_conversion(call.sender, token)
                gas_used = self._runtime.gas_used - gas_before + GAS_CALL_BASE
                self._compensate(call, user_id, gas_used, opts)
                return record
        finally:
            self.state = GateState.IDLE

    def _compensate(self, call: "CallContext", user_id: int, gas_used: int, opts: PokeRewardOptions) -> None:
        poke_id = self._runtime.next_nonce()
        try:
            with self._runtime.atomic():
                paid = self._sink.reward(
                    self._client,
                    poke_id,
                    user_id,
                    gas_used=gas_used,
                    gas_price=call.gas_price,
                    to=opts.to if opts.to is not None else call.sender,
                    compensate_in_native=opts.compensate_in_native,
                )
        except CompensationError as exc:
            logger.warning("compensation for poke %d (user %d) failed: %s", poke_id, user_id, exc)
            return
        logger.info("poke %d by user %d: gas_used=%d reward=%d", poke_id, user_id, gas_used, paid)
