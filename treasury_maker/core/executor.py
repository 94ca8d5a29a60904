"""
Conversion execution.

`SwapExecutor.execute_conversion` is the one operation that moves funds. It is
atomic: any failure (including the post-condition on the beneficiary's
balance) unwinds every mutation made so far, rotation state included.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Sequence

from ..errors import ConversionInvariantViolation, InsufficientBalance, NativeBalanceZero
from ..state.balances import NATIVE_ASSET, Address, Amount, TokenId
from .config import TreasuryConfig, TreasurySettings
from .estimation import EstimationEngine
from .rotation import BasketRotationBook
from .strategy import (
    BaseAsset,
    BasketDirectExit,
    BasketRotatingExit,
    Direct,
    GenericRoute,
    Strategy,
)

if TYPE_CHECKING:
    from ..integration.runtime import LedgerRuntime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapRecord:
    strategy_kind: str
    swap_type: int
    caller: Address
    token: TokenId
    amount_in: Amount
    amount_out: Amount
    target_balance_before: Amount
    target_balance_after: Amount


class SwapExecutor:
    def __init__(
        self,
        runtime: "LedgerRuntime",
        holder: Address,
        config: TreasuryConfig,
        settings: TreasurySettings,
        rotation: BasketRotationBook,
        estimation: EstimationEngine,
    ) -> None:
        self._runtime = runtime
        self._holder = holder
        self._config = config
        self._settings = settings
        self._rotation = rotation
        self._estimation = estimation

    def execute_conversion(self, caller: Address, token: TokenId) -> SwapRecord:
        with self._runtime.atomic():
            return self._convert(caller, token)

    def _convert(self, caller: Address, token: TokenId) -> SwapRecord:
        tokens = self._runtime.tokens
        target_token = self._config.target_token
        beneficiary = self._config.beneficiary
        target = self._settings.target_amount_out

        strategy = self._estimation.strategy_for(token)
        native = self._runtime.native_balance(self._holder) if token == NATIVE_ASSET else 0
        if token == NATIVE_ASSET and native == 0:
            raise NativeBalanceZero()

        balance = self._estimation.holder_balance(token)
        amount_in = self._estimation.amount_in(strategy)
        if balance < amount_in:
            raise InsufficientBalance(detail=f"{token}: have {balance}, need {amount_in}")

        if native:
            self._runtime.contract(self._config.base_token).deposit(self._holder, native)

        before = tokens.balance_of(beneficiary, target_token)
        self._execute(strategy, amount_in, target, beneficiary)
        after = tokens.balance_of(beneficiary, target_token)
        if after - before != target:
            raise ConversionInvariantViolation(detail=f"beneficiary received {after - before}, expected {target}")

        if isinstance(strategy, BasketRotatingExit):
            self._rotation.advance(strategy.basket)

        record = SwapRecord(
            strategy_kind=strategy.kind,
            swap_type=strategy.swap_type,
            caller=caller,
            token=token,
            amount_in=amount_in,
            amount_out=target,
            target_balance_before=before,
            target_balance_after=after,
        )
        self._runtime.emit(self._holder, "Swap", **asdict(record))
        logger.info(
            "converted %d of %s via %s into %d target for %s",
            amount_in,
            token,
            strategy.kind,
            target,
            beneficiary,
        )
        return record

    def _execute(self, strategy: Strategy, amount_in: Amount, amount_out: Amount, to: Address) -> None:
        est = self._estimation
        if isinstance(strategy, Direct):
            self._runtime.tokens.transfer(self._holder, to, self._config.target_token, amount_out)
        elif isinstance(strategy, BaseAsset):
            self._swap_exact_out(self._config.canonical_venue, amount_out, amount_in, self._base_path(), to)
        elif isinstance(strategy, GenericRoute):
            if strategy.canonical:
                self._swap_exact_out(strategy.venue, amount_out, amount_in, strategy.path, to)
            else:
                base_needed = est.amount_in(BaseAsset(), amount_out)
                self._swap_exact_out(strategy.venue, base_needed, amount_in, strategy.path, self._holder)
                self._swap_exact_out(self._config.canonical_venue, amount_out, base_needed, self._base_path(), to)
        elif isinstance(strategy, BasketDirectExit):
            est.basket(strategy.basket).exitswap_extern_amount_out(
                self._holder, self._config.target_token, amount_out, amount_in
            )
            self._runtime.tokens.transfer(self._holder, to, self._config.target_token, amount_out)
        elif isinstance(strategy, BasketRotatingExit):
            quote = est.quote_rotating_exit(strategy.basket, amount_out)
            est.basket(strategy.basket).exitswap_extern_amount_out(
                self._holder, quote.member, quote.member_amount, amount_in
            )
            self._execute(quote.member_strategy, quote.member_amount, amount_out, to)
        else:
            raise TypeError(f"unknown strategy: {strategy!r}")

    def _base_path(self) -> Sequence[TokenId]:
        return (self._config.base_token, self._config.target_token)

    def _swap_exact_out(
        self,
        venue: Address,
        amount_out: Amount,
        amount_in_max: Amount,
        path: Sequence[TokenId],
        to: Address,
    ) -> None:
        self._runtime.tokens.approve(self._holder, venue, path[0], amount_in_max)
        self._estimation.venue(venue).swap_tokens_for_exact_tokens(self._holder, amount_out, amount_in_max, path, to)
