"""
TreasuryMaker facade.

Wires the maker's components together and exposes the public surfaces:

- owner configuration (target amount, route overrides, basket strategies,
  ownership);
- permissionless views (estimates, routes, rotation state);
- permissionless maintenance (`sync_rotation`);
- the keeper trigger surface (reporter / slasher);
- the unpermissioned `swap`, only when the deployment allows it;
- native value receipt.

Every mutating surface runs inside `runtime.atomic()`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from ..errors import AuthorizationError, InvalidConfig
from ..state.balances import Address, Amount, TokenId
from .config import TreasuryConfig, TreasurySettings
from .estimation import EstimationEngine
from .executor import SwapExecutor, SwapRecord
from .paths import BasketStrategy, PathRegistry, RouteOverride
from .poke_gate import PokeGate, PokeRewardOptions
from .rotation import BasketRotationBook, RotationState

if TYPE_CHECKING:
    from ..integration.runtime import CallContext, LedgerRuntime

logger = logging.getLogger(__name__)


class TreasuryMaker:
    def __init__(self, runtime: "LedgerRuntime", address: Address, config: TreasuryConfig) -> None:
        self.runtime = runtime
        self.address = address
        self.config = config

        self.settings = TreasurySettings(config)
        self.paths = PathRegistry(config, self.settings)
        self.rotation = BasketRotationBook(runtime)
        self.estimation = EstimationEngine(runtime, address, config, self.settings, self.paths, self.rotation)
        self.executor = SwapExecutor(runtime, address, config, self.settings, self.rotation, self.estimation)

        self.gate: Optional[PokeGate] = None
        if config.keeper_registry is not None:
            registry = runtime.contract(config.keeper_registry)
            self.gate = PokeGate(runtime, address, self.executor, roles=registry, sink=registry)

        runtime.register_contract(address, self)
        for component in (self.settings, self.paths, self.rotation):
            runtime.register_state(component)
        logger.info("treasury maker at %s: target %s, amount %d", address, config.target_token, config.target_amount_out)

    # -- owner ------------------------------------------------------------------

    @property
    def owner(self) -> Address:
        return self.settings.owner

    @property
    def target_amount_out(self) -> Amount:
        return self.settings.target_amount_out

    def set_target_amount_out(self, call: "CallContext", amount: Amount) -> None:
        with self.runtime.atomic():
            self.settings.set_target_amount_out(call.sender, amount)

    def transfer_ownership(self, call: "CallContext", new_owner: Address) -> None:
        with self.runtime.atomic():
            self.settings.transfer_ownership(call.sender, new_owner)

    def set_route_override(
        self,
        call: "CallContext",
        token: TokenId,
        venue: Optional[Address] = None,
        path: Optional[Sequence[TokenId]] = None,
    ) -> RouteOverride:
        with self.runtime.atomic():
            return self.paths.set_route_override(call.sender, token, venue, path)

    def clear_route_override(self, call: "CallContext", token: TokenId) -> None:
        with self.runtime.atomic():
            self.paths.clear_route_override(call.sender, token)

    def set_basket_strategy(self, call: "CallContext", basket: TokenId, tag: int) -> BasketStrategy:
        with self.runtime.atomic():
            return self.paths.set_basket_strategy(call.sender, basket, tag)

    # -- views ------------------------------------------------------------------

    def estimate_amount_in(self, token: TokenId) -> Amount:
        return self.estimation.estimate_amount_in(token)

    def estimate_amount_out(self, token: TokenId, balance: Optional[Amount] = None) -> Amount:
        return self.estimation.estimate_amount_out(token, balance)

    def estimate_base_strategy_in(self) -> Amount:
        return self.estimation.estimate_base_strategy_in()

    def estimate_base_strategy_out(self, balance: Amount) -> Amount:
        return self.estimation.estimate_base_strategy_out(balance)

    def estimate_route_strategy_in(self, token: TokenId) -> Amount:
        return self.estimation.estimate_route_strategy_in(token)

    def estimate_route_strategy_out(self, token: TokenId, balance: Amount) -> Amount:
        return self.estimation.estimate_route_strategy_out(token, balance)

    def estimate_direct_exit_in(self, basket: TokenId) -> Amount:
        return self.estimation.estimate_direct_exit_in(basket)

    def estimate_direct_exit_out(self, basket: TokenId, balance: Amount) -> Amount:
        return self.estimation.estimate_direct_exit_out(basket, balance)

    def estimate_rotating_exit_in(self, basket: TokenId) -> Amount:
        return self.estimation.estimate_rotating_exit_in(basket)

    def estimate_rotating_exit_out(self, basket: TokenId, balance: Amount) -> Amount:
        return self.estimation.estimate_rotating_exit_out(basket, balance)

    def basket_exit_amount_in(self, basket: TokenId, token: TokenId, amount_out: Amount) -> Amount:
        return self.estimation.basket_exit_amount_in(basket, token, amount_out)

    def basket_exit_amount_out(self, basket: TokenId, token: TokenId, pool_in: Amount) -> Amount:
        return self.estimation.basket_exit_amount_out(basket, token, pool_in)

    def get_route(self, token: TokenId) -> Tuple[Address, Tuple[TokenId, ...]]:
        return self.paths.get_route(token)

    def get_venue(self, token: TokenId) -> Address:
        return self.paths.get_venue(token)

    def get_path(self, token: TokenId) -> Tuple[TokenId, ...]:
        return self.paths.get_path(token)

    def get_route_override(self, token: TokenId) -> Optional[RouteOverride]:
        return self.paths.get_override(token)

    def get_basket_strategy(self, basket: TokenId) -> BasketStrategy:
        return self.paths.get_basket_strategy(basket)

    def get_rotation_members(self, basket: TokenId) -> Tuple[TokenId, ...]:
        return self.rotation.members(basket)

    def get_rotation_next_index(self, basket: TokenId) -> int:
        return self.rotation.next_index(basket)

    def get_rotation_next_member(self, basket: TokenId) -> TokenId:
        return self.rotation.next_member(basket)

    # -- maintenance ------------------------------------------------------------

    def sync_rotation(self, basket: TokenId) -> RotationState:
        with self.runtime.atomic():
            return self.rotation.sync(basket)

    # -- conversions ------------------------------------------------------------

    def _require_gate(self) -> PokeGate:
        if self.gate is None:
            raise InvalidConfig(detail="no keeper registry configured")
        return self.gate

    def swap_from_reporter(
        self,
        call: "CallContext",
        user_id: int,
        token: TokenId,
        options: Optional[PokeRewardOptions] = None,
    ) -> SwapRecord:
        return self._require_gate().swap_from_reporter(call, user_id, token, options)

    def swap_from_slasher(
        self,
        call: "CallContext",
        user_id: int,
        token: TokenId,
        options: Optional[PokeRewardOptions] = None,
    ) -> SwapRecord:
        return self._require_gate().swap_from_slasher(call, user_id, token, options)

    def swap(self, call: "CallContext", token: TokenId) -> SwapRecord:
        """Unpermissioned conversion; only when `allow_direct_swap` is configured."""
        if not self.config.allow_direct_swap:
            raise AuthorizationError(code="DIRECT_SWAP_DISABLED")
        return self.executor.execute_conversion(call.sender, token)

    # -- native value -----------------------------------------------------------

    def receive_native(self, call: "CallContext", amount: Amount) -> None:
        with self.runtime.atomic():
            self.runtime.send_native(call.sender, self.address, amount)
