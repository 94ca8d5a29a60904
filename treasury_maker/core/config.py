"""
Maker configuration.

`TreasuryConfig` is the immutable deployment configuration. The two settings
the owner may change afterwards (`target_amount_out` and the owner itself)
live in `TreasurySettings`, which is transactional state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import NotAuthorized, ZeroTargetAmount
from ..state.balances import Address, Amount, TokenId
from ..state.stateful import Stateful

logger = logging.getLogger(__name__)


def _require_address(name: str, value: object) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty address")


def require_target_amount(amount: Amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("target_amount_out must be an int")
    if amount <= 0:
        raise ZeroTargetAmount(detail=str(amount))


@dataclass(frozen=True)
class TreasuryConfig:
    """
    Deployment configuration of a treasury maker.

    Attributes:
        target_token: token every conversion delivers
        base_token: wrapped-native token every default route passes through
        beneficiary: receives `target_amount_out` per conversion
        canonical_venue: default AMM venue; its paths end in `target_token`
        target_amount_out: fixed amount delivered per conversion (> 0)
        owner: initial owner principal
        keeper_registry: registry consulted by the keeper trigger surface
        allow_direct_swap: expose the unpermissioned `swap` entry point
    """
    target_token: TokenId
    base_token: TokenId
    beneficiary: Address
    canonical_venue: Address
    target_amount_out: Amount
    owner: Address
    keeper_registry: Optional[Address] = None
    allow_direct_swap: bool = False

    def __post_init__(self) -> None:
        _require_address("target_token", self.target_token)
        _require_address("base_token", self.base_token)
        _require_address("beneficiary", self.beneficiary)
        _require_address("canonical_venue", self.canonical_venue)
        _require_address("owner", self.owner)
        if self.keeper_registry is not None:
            _require_address("keeper_registry", self.keeper_registry)
        if self.target_token == self.base_token:
            raise ValueError("target_token and base_token must differ")
        if not isinstance(self.allow_direct_swap, bool):
            raise TypeError("allow_direct_swap must be a bool")
        require_target_amount(self.target_amount_out)


class TreasurySettings(Stateful):
    """Owner-mutable settings: the owner and the target amount."""

    _state_fields = ("owner", "target_amount_out")

    def __init__(self, config: TreasuryConfig) -> None:
        self.owner = config.owner
        self.target_amount_out = config.target_amount_out

    def require_owner(self, caller: Address) -> None:
        if caller != self.owner:
            raise NotAuthorized(detail=caller)

    def set_target_amount_out(self, caller: Address, amount: Amount) -> None:
        self.require_owner(caller)
        require_target_amount(amount)
        self.target_amount_out = amount
        logger.info("target_amount_out set to %d", amount)

    def transfer_ownership(self, caller: Address, new_owner: Address) -> None:
        self.require_owner(caller)
        _require_address("new_owner", new_owner)
        logger.info("ownership transferred %s -> %s", self.owner, new_owner)
        self.owner = new_owner
