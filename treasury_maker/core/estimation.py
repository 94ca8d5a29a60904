"""
Amount-in / amount-out estimation.

Everything here is read-only and re-reads live venue and basket state on every
call. The executor uses the same functions to size its trades, so an estimate
taken in the same transaction is exactly what a conversion consumes.

- amount-in: input of `token` required to deliver `target_amount_out` of the
  target token;
- amount-out: target token the given (or currently held) balance of `token`
  would yield.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from ..errors import StaleRotationMember
from ..state.balances import NATIVE_ASSET, Address, Amount, TokenId
from .config import TreasuryConfig, TreasurySettings
from .paths import PathRegistry
from .rotation import BasketRotationBook
from .strategy import (
    BaseAsset,
    BasketDirectExit,
    BasketRotatingExit,
    Direct,
    GenericRoute,
    Strategy,
    resolve_strategy,
)

if TYPE_CHECKING:
    from ..integration.basket_pool import BasketPool
    from ..integration.runtime import LedgerRuntime
    from ..integration.venues import AmmVenue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotatingExitQuote:
    """What the next rotating exit of `basket` needs."""

    basket: TokenId
    member: TokenId
    member_strategy: Strategy
    member_amount: Amount
    pool_in: Amount


class EstimationEngine:
    def __init__(
        self,
        runtime: "LedgerRuntime",
        holder: Address,
        config: TreasuryConfig,
        settings: TreasurySettings,
        paths: PathRegistry,
        rotation: BasketRotationBook,
    ) -> None:
        self._runtime = runtime
        self._holder = holder
        self._config = config
        self._settings = settings
        self._paths = paths
        self._rotation = rotation

    # -- collaborators ----------------------------------------------------------

    def venue(self, address: Address) -> "AmmVenue":
        return self._runtime.contract(address)

    def basket(self, basket: TokenId) -> "BasketPool":
        return self._runtime.contract(basket)

    @property
    def canonical(self) -> "AmmVenue":
        return self.venue(self._config.canonical_venue)

    @property
    def target_amount_out(self) -> Amount:
        return self._settings.target_amount_out

    def _base_pair(self) -> Tuple[TokenId, TokenId]:
        return (self._config.base_token, self._config.target_token)

    def holder_balance(self, token: TokenId) -> Amount:
        """Balance of `token` held by the maker; native counts already-wrapped base too."""
        if token == NATIVE_ASSET:
            return self._runtime.native_balance(self._holder) + self._runtime.tokens.balance_of(
                self._holder, self._config.base_token
            )
        return self._runtime.tokens.balance_of(self._holder, token)

    def strategy_for(self, token: TokenId) -> Strategy:
        return resolve_strategy(token, self._config, self._paths)

    # -- dispatch ---------------------------------------------------------------

    def amount_in(self, strategy: Strategy, amount_out: Optional[Amount] = None) -> Amount:
        """Input required for `strategy` to deliver `amount_out` (default: the target amount)."""
        target = self.target_amount_out if amount_out is None else amount_out
        if isinstance(strategy, Direct):
            return target
        if isinstance(strategy, BaseAsset):
            return self.canonical.get_amounts_in(target, self._base_pair())[0]
        if isinstance(strategy, GenericRoute):
            return self._route_in(strategy, target)
        if isinstance(strategy, BasketDirectExit):
            return self.basket(strategy.basket).calc_pool_in_for_exact_out(self._config.target_token, target)
        if isinstance(strategy, BasketRotatingExit):
            return self.quote_rotating_exit(strategy.basket, target).pool_in
        raise TypeError(f"unknown strategy: {strategy!r}")

    def amount_out(self, strategy: Strategy, balance: Amount) -> Amount:
        """Target token `balance` of the strategy's input token would yield."""
        if balance <= 0:
            return 0
        if isinstance(strategy, Direct):
            return min(balance, self.target_amount_out)
        if isinstance(strategy, BaseAsset):
            return self.canonical.get_amounts_out(balance, self._base_pair())[-1]
        if isinstance(strategy, GenericRoute):
            return self._route_out(strategy, balance)
        if isinstance(strategy, BasketDirectExit):
            return self.basket(strategy.basket).calc_token_out_for_pool_in(self._config.target_token, balance)
        if isinstance(strategy, BasketRotatingExit):
            member = self.rotating_member(strategy.basket)
            member_out = self.basket(strategy.basket).calc_token_out_for_pool_in(member, balance)
            return self.amount_out(self._member_strategy(member), member_out)
        raise TypeError(f"unknown strategy: {strategy!r}")

    def _route_in(self, route: GenericRoute, target: Amount) -> Amount:
        if route.canonical:
            return self.venue(route.venue).get_amounts_in(target, route.path)[0]
        base_needed = self.amount_in(BaseAsset(), target)
        return self.venue(route.venue).get_amounts_in(base_needed, route.path)[0]

    def _route_out(self, route: GenericRoute, balance: Amount) -> Amount:
        out = self.venue(route.venue).get_amounts_out(balance, route.path)[-1]
        if route.canonical:
            return out
        return self.amount_out(BaseAsset(), out)

    # -- rotating exit ----------------------------------------------------------

    def rotating_member(self, basket: TokenId) -> TokenId:
        """Member the next rotating exit uses; fails if it is no longer bound."""
        member = self._rotation.next_member(basket)
        if not self.basket(basket).is_bound(member):
            raise StaleRotationMember(detail=f"{member} left {basket}; sync the rotation first")
        return member

    def _member_strategy(self, member: TokenId) -> Strategy:
        return resolve_strategy(member, self._config, self._paths, allow_basket=False)

    def quote_rotating_exit(self, basket: TokenId, target: Optional[Amount] = None) -> RotatingExitQuote:
        member = self.rotating_member(basket)
        member_strategy = self._member_strategy(member)
        member_amount = self.amount_in(member_strategy, target)
        pool_in = self.basket(basket).calc_pool_in_for_exact_out(member, member_amount)
        return RotatingExitQuote(
            basket=basket,
            member=member,
            member_strategy=member_strategy,
            member_amount=member_amount,
            pool_in=pool_in,
        )

    # -- views ------------------------------------------------------------------

    def estimate_amount_in(self, token: TokenId) -> Amount:
        strategy = self.strategy_for(token)
        amount = self.amount_in(strategy)
        logger.debug("estimate_amount_in %s (%s) = %d", token, strategy.kind, amount)
        return amount

    def estimate_amount_out(self, token: TokenId, balance: Optional[Amount] = None) -> Amount:
        strategy = self.strategy_for(token)
        bal = self.holder_balance(token) if balance is None else balance
        amount = self.amount_out(strategy, bal)
        logger.debug("estimate_amount_out %s (%s) balance=%d -> %d", token, strategy.kind, bal, amount)
        return amount

    def estimate_base_strategy_in(self) -> Amount:
        return self.amount_in(BaseAsset())

    def estimate_base_strategy_out(self, balance: Amount) -> Amount:
        return self.amount_out(BaseAsset(), balance)

    def _route_for(self, token: TokenId) -> GenericRoute:
        venue, path = self._paths.get_route(token)
        return GenericRoute(venue=venue, path=path, canonical=venue == self._config.canonical_venue)

    def estimate_route_strategy_in(self, token: TokenId) -> Amount:
        return self.amount_in(self._route_for(token))

    def estimate_route_strategy_out(self, token: TokenId, balance: Amount) -> Amount:
        return self.amount_out(self._route_for(token), balance)

    def estimate_direct_exit_in(self, basket: TokenId) -> Amount:
        return self.amount_in(BasketDirectExit(basket=basket))

    def estimate_direct_exit_out(self, basket: TokenId, balance: Amount) -> Amount:
        return self.amount_out(BasketDirectExit(basket=basket), balance)

    def estimate_rotating_exit_in(self, basket: TokenId) -> Amount:
        return self.amount_in(BasketRotatingExit(basket=basket))

    def estimate_rotating_exit_out(self, basket: TokenId, balance: Amount) -> Amount:
        return self.amount_out(BasketRotatingExit(basket=basket), balance)

    def basket_exit_amount_in(self, basket: TokenId, token: TokenId, amount_out: Amount) -> Amount:
        """Basket shares to burn to net `amount_out` of member `token`."""
        return self.basket(basket).calc_pool_in_for_exact_out(token, amount_out)

    def basket_exit_amount_out(self, basket: TokenId, token: TokenId, pool_in: Amount) -> Amount:
        """Member `token` netted by burning `pool_in` basket shares."""
        return self.basket(basket).calc_token_out_for_pool_in(token, pool_in)

