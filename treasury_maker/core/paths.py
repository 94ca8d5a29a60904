"""
Per-token routing configuration.

Route overrides are validated when written, never when used:

- on the canonical venue a path must end in the target token;
- on any other venue a path must end in the base token (the rest of the
  conversion then runs `[base, target]` on the canonical venue).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional, Sequence, Tuple

from ..errors import InvalidRoutePath, RouteEndpointMismatch, UnknownBasketStrategy
from ..state.balances import Address, TokenId
from ..state.stateful import Stateful
from .config import TreasuryConfig, TreasurySettings

logger = logging.getLogger(__name__)


class BasketStrategy(IntEnum):
    NONE = 0
    DIRECT_EXIT = 1
    ROTATING_EXIT = 2


@dataclass(frozen=True)
class RouteOverride:
    venue: Optional[Address] = None
    path: Optional[Tuple[TokenId, ...]] = None


class PathRegistry(Stateful):
    _state_fields = ("_overrides", "_basket_strategies")

    def __init__(self, config: TreasuryConfig, settings: TreasurySettings) -> None:
        self._config = config
        self._settings = settings
        self._overrides: Dict[TokenId, RouteOverride] = {}
        self._basket_strategies: Dict[TokenId, BasketStrategy] = {}

    # -- writes -----------------------------------------------------------------

    def set_route_override(
        self,
        caller: Address,
        token: TokenId,
        venue: Optional[Address] = None,
        path: Optional[Sequence[TokenId]] = None,
    ) -> RouteOverride:
        self._settings.require_owner(caller)
        if venue is None and path is None:
            raise InvalidRoutePath(detail="override needs a venue or a path")
        route = RouteOverride(venue=venue, path=tuple(path) if path is not None else None)
        self._validate(token, route)
        self._overrides[token] = route
        logger.info("route override for %s: venue=%s path=%s", token, venue, route.path)
        return route

    def clear_route_override(self, caller: Address, token: TokenId) -> None:
        self._settings.require_owner(caller)
        self._overrides.pop(token, None)
        logger.info("route override for %s cleared", token)

    def set_basket_strategy(self, caller: Address, basket: TokenId, tag: int) -> BasketStrategy:
        self._settings.require_owner(caller)
        try:
            strategy = BasketStrategy(int(tag))
        except ValueError:
            raise UnknownBasketStrategy(detail=str(tag)) from None
        if strategy is BasketStrategy.NONE:
            self._basket_strategies.pop(basket, None)
        else:
            self._basket_strategies[basket] = strategy
        logger.info("basket strategy for %s: %s", basket, strategy.name)
        return strategy

    def _validate(self, token: TokenId, route: RouteOverride) -> None:
        venue = route.venue if route.venue is not None else self._config.canonical_venue
        path = route.path if route.path is not None else self.default_path(token, venue)
        if len(path) < 2:
            raise InvalidRoutePath(detail="path needs at least two tokens")
        if venue == self._config.canonical_venue:
            if path[-1] != self._config.target_token:
                raise RouteEndpointMismatch(code="NON_TARGET_END_ON_CANONICAL_PATH", detail=path[-1])
        elif path[-1] != self._config.base_token:
            raise RouteEndpointMismatch(code="NON_BASE_END_ON_NON_CANONICAL_PATH", detail=path[-1])

    # -- reads ------------------------------------------------------------------

    def default_path(self, token: TokenId, venue: Address) -> Tuple[TokenId, ...]:
        if venue == self._config.canonical_venue:
            return (token, self._config.base_token, self._config.target_token)
        return (token, self._config.base_token)

    def get_override(self, token: TokenId) -> Optional[RouteOverride]:
        return self._overrides.get(token)

    def get_venue(self, token: TokenId) -> Address:
        route = self._overrides.get(token)
        if route is not None and route.venue is not None:
            return route.venue
        return self._config.canonical_venue

    def get_path(self, token: TokenId) -> Tuple[TokenId, ...]:
        route = self._overrides.get(token)
        if route is not None and route.path is not None:
            return route.path
        return self.default_path(token, self.get_venue(token))

    def get_route(self, token: TokenId) -> Tuple[Address, Tuple[TokenId, ...]]:
        return self.get_venue(token), self.get_path(token)

    def get_basket_strategy(self, basket: TokenId) -> BasketStrategy:
        return self._basket_strategies.get(basket, BasketStrategy.NONE)
