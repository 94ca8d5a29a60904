"""
Conversion strategies.

A strategy is a tagged union: each variant carries only the data its
estimation and execution need. `resolve_strategy` is the single place that
decides which variant applies to a token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Tuple, Union

from ..state.balances import NATIVE_ASSET, Address, TokenId
from .config import TreasuryConfig
from .paths import BasketStrategy, PathRegistry


SWAP_TYPE_DIRECT = 1
SWAP_TYPE_BASE_ASSET = 2
SWAP_TYPE_ROUTE = 4


@dataclass(frozen=True)
class Direct:
    kind: ClassVar[str] = "direct"
    swap_type: ClassVar[int] = SWAP_TYPE_DIRECT


@dataclass(frozen=True)
class BaseAsset:
    """The base token, or the native asset when `native` (wrapped first)."""

    native: bool = False
    kind: ClassVar[str] = "base_asset"
    swap_type: ClassVar[int] = SWAP_TYPE_BASE_ASSET


@dataclass(frozen=True)
class GenericRoute:
    """`path` on `venue`; a non-canonical path ends in base and continues on the canonical venue."""

    venue: Address
    path: Tuple[TokenId, ...]
    canonical: bool
    kind: ClassVar[str] = "generic_route"
    swap_type: ClassVar[int] = SWAP_TYPE_ROUTE


@dataclass(frozen=True)
class BasketDirectExit:
    basket: TokenId
    kind: ClassVar[str] = "basket_direct_exit"
    swap_type: ClassVar[int] = SWAP_TYPE_ROUTE


@dataclass(frozen=True)
class BasketRotatingExit:
    basket: TokenId
    kind: ClassVar[str] = "basket_rotating_exit"
    swap_type: ClassVar[int] = SWAP_TYPE_ROUTE


Strategy = Union[Direct, BaseAsset, GenericRoute, BasketDirectExit, BasketRotatingExit]


def resolve_strategy(
    token: TokenId,
    config: TreasuryConfig,
    paths: PathRegistry,
    *,
    allow_basket: bool = True,
) -> Strategy:
    """
    Strategy that converts `token` into the target token.

    With `allow_basket=False` basket tags are ignored; a rotating exit uses
    this to route the exited member.
    """
    if token == config.target_token:
        return Direct()
    if token == config.base_token:
        return BaseAsset()
    if token == NATIVE_ASSET:
        return BaseAsset(native=True)
    if allow_basket:
        tag = paths.get_basket_strategy(token)
        if tag is BasketStrategy.DIRECT_EXIT:
            return BasketDirectExit(basket=token)
        if tag is BasketStrategy.ROTATING_EXIT:
            return BasketRotatingExit(basket=token)
    venue, path = paths.get_route(token)
    return GenericRoute(venue=venue, path=path, canonical=venue == config.canonical_venue)
