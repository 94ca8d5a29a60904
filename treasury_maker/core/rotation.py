"""
Rotation state for rotating basket exits.

For every basket using the rotating exit we keep a snapshot of its member list
and the index of the member the next conversion exits into. The snapshot only
changes on an explicit `sync`; a membership change in the live basket is
therefore visible as a divergence between `members(basket)` and the basket's
current tokens until somebody re-syncs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Tuple

from ..errors import EmptyRotation, RotationNotSynced
from ..state.balances import TokenId
from ..state.stateful import Stateful

if TYPE_CHECKING:
    from ..integration.runtime import LedgerRuntime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotationState:
    members: Tuple[TokenId, ...] = ()
    next_index: int = 0

    def __post_init__(self) -> None:
        if self.members:
            if not (0 <= self.next_index < len(self.members)):
                raise ValueError(f"next_index out of range: {self.next_index}")
        elif self.next_index != 0:
            raise ValueError("next_index must be 0 for an empty rotation")

    @property
    def next_member(self) -> TokenId:
        if not self.members:
            raise EmptyRotation()
        return self.members[self.next_index]


class BasketRotationBook(Stateful):
    _state_fields = ("_states",)

    def __init__(self, runtime: "LedgerRuntime") -> None:
        self._runtime = runtime
        self._states: Dict[TokenId, RotationState] = {}

    def _live_members(self, basket: TokenId) -> Tuple[TokenId, ...]:
        return tuple(self._runtime.contract(basket).get_current_tokens())

    def sync(self, basket: TokenId) -> RotationState:
        """
        Replace the snapshot with the live member list.

        The previously indexed member keeps being next if it is still bound
        (at its new position); otherwise the rotation restarts at 0.
        """
        live = self._live_members(basket)
        prev = self._states.get(basket)
        index = 0
        if prev is not None and prev.members:
            current = prev.members[prev.next_index]
            if current in live:
                index = live.index(current)
        state = RotationState(members=live, next_index=index)
        if state != prev:
            logger.info("rotation for %s synced: %d members, next_index=%d", basket, len(live), index)
        self._states[basket] = state
        return state

    def advance(self, basket: TokenId) -> RotationState:
        state = self.get(basket)
        if not state.members:
            raise EmptyRotation(detail=basket)
        advanced = RotationState(members=state.members, next_index=(state.next_index + 1) % len(state.members))
        self._states[basket] = advanced
        return advanced

    def get(self, basket: TokenId) -> RotationState:
        state = self._states.get(basket)
        if state is None:
            raise RotationNotSynced(detail=basket)
        return state

    def is_synced(self, basket: TokenId) -> bool:
        return basket in self._states

    def is_current(self, basket: TokenId) -> bool:
        """True when the snapshot equals the live member list."""
        state = self._states.get(basket)
        return state is not None and state.members == self._live_members(basket)

    def members(self, basket: TokenId) -> Tuple[TokenId, ...]:
        state = self._states.get(basket)
        return state.members if state is not None else ()

    def next_index(self, basket: TokenId) -> int:
        state = self._states.get(basket)
        return state.next_index if state is not None else 0

    def next_member(self, basket: TokenId) -> TokenId:
        return self.get(basket).next_member
