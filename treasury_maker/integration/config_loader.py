"""
YAML configuration loading (fail-closed).

Schema `treasury-maker/config/v1`:

    schema: treasury-maker/config/v1
    treasury:
      target_token: "0x..."
      base_token: "0x..."
      beneficiary: "0x..."
      canonical_venue: "0x..."
      target_amount_out: "2000 ether"    # int, digit string, or "<decimal> ether"
      owner: "0x..."
      keeper_registry: "0x..."           # optional
      allow_direct_swap: false           # optional
    routes:                              # optional
      - token: "0x..."
        venue: "0x..."                   # optional
        path: ["0x...", "0x..."]         # optional
    basket_strategies:                   # optional
      "0x...": rotating_exit             # none | direct_exit | rotating_exit

Every field is type-checked; anything unexpected raises `InvalidConfig`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Tuple

import yaml

from ..core.config import TreasuryConfig
from ..core.paths import BasketStrategy
from ..errors import InvalidConfig
from ..state.balances import Address, Amount, TokenId

if TYPE_CHECKING:
    from ..core.maker import TreasuryMaker
    from .runtime import CallContext

SCHEMA = "treasury-maker/config/v1"
ETHER_DECIMALS = 18
ETHER = 10**ETHER_DECIMALS
_NUMERAL = re.compile(r"([0-9]+)(?:\.([0-9]*))?(?:[eE]([0-9]+))?")

_TREASURY_KEYS = {
    "target_token",
    "base_token",
    "beneficiary",
    "canonical_venue",
    "target_amount_out",
    "owner",
    "keeper_registry",
    "allow_direct_swap",
}


def require_mapping(obj: Any, *, name: str) -> dict:
    if not isinstance(obj, dict):
        raise InvalidConfig(detail=f"{name} must be a mapping")
    return obj


def require_list(obj: Any, *, name: str) -> list:
    if not isinstance(obj, list):
        raise InvalidConfig(detail=f"{name} must be a list")
    return obj


def require_str(obj: Any, *, name: str) -> str:
    if not isinstance(obj, str) or not obj.strip():
        raise InvalidConfig(detail=f"{name} must be a non-empty string")
    return obj.strip()


def _optional_str(obj: Any, *, name: str) -> Optional[str]:
    return None if obj is None else require_str(obj, name=name)


def parse_amount(obj: Any, *, name: str) -> Amount:
    """Parse an integer amount: an int, a numeral, or `"<numeral> ether"`.

    Numerals are `digits[.digits][e<exp>]` and are evaluated exactly; a value
    with a fractional base unit is rejected rather than rounded.
    """
    if isinstance(obj, bool):
        raise InvalidConfig(detail=f"{name} must be an amount")
    if isinstance(obj, int):
        return obj
    text = require_str(obj, name=name).replace("_", "")
    decimals = 0
    if text.endswith("ether"):
        text = text[: -len("ether")].strip()
        decimals = ETHER_DECIMALS
    m = _NUMERAL.fullmatch(text)
    if m is None or len(m.group(3) or "") > 2:
        raise InvalidConfig(detail=f"{name} is not an amount: {obj!r}")
    whole, frac = m.group(1), m.group(2) or ""
    shift = decimals + int(m.group(3) or 0) - len(frac)
    digits = int(whole + frac)
    if shift >= 0:
        return digits * 10**shift
    value, rem = divmod(digits, 10**-shift)
    if rem:
        raise InvalidConfig(detail=f"{name} has sub-unit precision: {obj!r}")
    return value


@dataclass(frozen=True)
class RouteEntry:
    token: TokenId
    venue: Optional[Address] = None
    path: Optional[Tuple[TokenId, ...]] = None


@dataclass(frozen=True)
class TreasuryDeployment:
    config: TreasuryConfig
    routes: Tuple[RouteEntry, ...] = ()
    basket_strategies: Tuple[Tuple[TokenId, BasketStrategy], ...] = ()


def treasury_config_from_mapping(obj: Any) -> TreasuryConfig:
    data = require_mapping(obj, name="treasury")
    unknown = set(data) - _TREASURY_KEYS
    if unknown:
        raise InvalidConfig(detail=f"unknown treasury keys: {sorted(unknown)}")
    allow_direct = data.get("allow_direct_swap", False)
    if not isinstance(allow_direct, bool):
        raise InvalidConfig(detail="treasury.allow_direct_swap must be a bool")
    try:
        return TreasuryConfig(
            target_token=require_str(data.get("target_token"), name="treasury.target_token"),
            base_token=require_str(data.get("base_token"), name="treasury.base_token"),
            beneficiary=require_str(data.get("beneficiary"), name="treasury.beneficiary"),
            canonical_venue=require_str(data.get("canonical_venue"), name="treasury.canonical_venue"),
            target_amount_out=parse_amount(data.get("target_amount_out"), name="treasury.target_amount_out"),
            owner=require_str(data.get("owner"), name="treasury.owner"),
            keeper_registry=_optional_str(data.get("keeper_registry"), name="treasury.keeper_registry"),
            allow_direct_swap=allow_direct,
        )
    except (TypeError, ValueError) as exc:
        raise InvalidConfig(detail=str(exc)) from exc


def _route_from_mapping(obj: Any, *, name: str) -> RouteEntry:
    data = require_mapping(obj, name=name)
    path = data.get("path")
    if path is not None:
        items = require_list(path, name=f"{name}.path")
        path = tuple(require_str(it, name=f"{name}.path[{i}]") for i, it in enumerate(items))
    return RouteEntry(
        token=require_str(data.get("token"), name=f"{name}.token"),
        venue=_optional_str(data.get("venue"), name=f"{name}.venue"),
        path=path,
    )


def _strategy_from_value(obj: Any, *, name: str) -> BasketStrategy:
    if isinstance(obj, int) and not isinstance(obj, bool):
        try:
            return BasketStrategy(obj)
        except ValueError:
            raise InvalidConfig(detail=f"{name}: unknown basket strategy {obj}") from None
    text = require_str(obj, name=name).upper()
    try:
        return BasketStrategy[text]
    except KeyError:
        raise InvalidConfig(detail=f"{name}: unknown basket strategy {obj!r}") from None


def deployment_from_mapping(obj: Any) -> TreasuryDeployment:
    root = require_mapping(obj, name="config")
    schema = require_str(root.get("schema"), name="config.schema")
    if schema != SCHEMA:
        raise InvalidConfig(detail=f"unsupported config.schema: {schema}")

    config = treasury_config_from_mapping(root.get("treasury"))
    routes = tuple(
        _route_from_mapping(it, name=f"routes[{i}]")
        for i, it in enumerate(require_list(root.get("routes", []), name="routes"))
    )
    strategies = tuple(
        (require_str(basket, name="basket_strategies key"), _strategy_from_value(tag, name=f"basket_strategies[{basket}]"))
        for basket, tag in require_mapping(root.get("basket_strategies", {}), name="basket_strategies").items()
    )
    return TreasuryDeployment(config=config, routes=routes, basket_strategies=strategies)


def load_deployment(path: Path) -> TreasuryDeployment:
    try:
        raw = path.read_text(encoding="utf-8")
        obj = yaml.safe_load(raw)
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidConfig(detail=f"{path}: {exc}") from exc
    return deployment_from_mapping(obj)


def apply_deployment(maker: "TreasuryMaker", call: "CallContext", deployment: TreasuryDeployment) -> None:
    """Write the deployment's routes and basket strategies through the owner surface (all or nothing)."""
    with maker.runtime.atomic():
        for route in deployment.routes:
            maker.set_route_override(call, route.token, route.venue, route.path)
        for basket, strategy in deployment.basket_strategies:
            maker.set_basket_strategy(call, basket, strategy)


__all__ = [
    "RouteEntry",
    "TreasuryDeployment",
    "apply_deployment",
    "deployment_from_mapping",
    "load_deployment",
    "parse_amount",
    "require_list",
    "require_mapping",
    "require_str",
    "treasury_config_from_mapping",
]
