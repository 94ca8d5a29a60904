"""
Weighted multi-token basket pool.

Shares of the basket are a ledger token whose id is the pool's address. Member
balances are custodied at the same address and mirrored in `BasketState`.

Single-token exits charge the pool's swap fee (inside the weighted-math
formulas) and the community exit fee on the token out. Both pricing views
already account for the community fee, so quoting `calc_pool_in_for_exact_out`
and then exiting with `exitswap_extern_amount_out` burns exactly the quoted
number of shares.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Tuple

from ..errors import BasketError
from ..kernels.python.bmath import (
    BONE,
    MAX_OUT_RATIO,
    bdiv,
    bmul,
    calc_pool_in_given_single_out,
    calc_single_out_given_pool_in,
)
from ..state.balances import Address, Amount, TokenId, ZERO_ADDRESS
from ..state.basket import INIT_POOL_SUPPLY, BasketState
from ..state.stateful import Stateful
from .gas import GAS_BASKET_EXIT

if TYPE_CHECKING:
    from .runtime import LedgerRuntime


class BasketPool(Stateful):
    _state_fields = ("_state",)

    def __init__(
        self,
        runtime: "LedgerRuntime",
        address: Address,
        *,
        controller: Address,
        swap_fee: int = BONE // 100,
        community_exit_fee: int = 0,
        community_fee_receiver: Address = ZERO_ADDRESS,
    ) -> None:
        self._runtime = runtime
        self.address = address
        self.controller = controller
        try:
            self._state = BasketState(
                basket_id=address,
                swap_fee=swap_fee,
                community_exit_fee=community_exit_fee,
                community_fee_receiver=community_fee_receiver,
            )
        except ValueError as exc:
            raise BasketError(code="ERR_INVALID_FEE", detail=str(exc)) from exc
        runtime.register_contract(address, self)

    @classmethod
    def create(
        cls,
        runtime: "LedgerRuntime",
        address: Address,
        *,
        controller: Address,
        bindings: Iterable[Tuple[TokenId, Amount, int]],
        swap_fee: int = BONE // 100,
        community_exit_fee: int = 0,
        community_fee_receiver: Address = ZERO_ADDRESS,
    ) -> "BasketPool":
        """Create a pool, bind `(token, balance, denorm)` from `controller` and mint the initial supply to it."""
        pool = cls(
            runtime,
            address,
            controller=controller,
            swap_fee=swap_fee,
            community_exit_fee=community_exit_fee,
            community_fee_receiver=community_fee_receiver,
        )
        for token, balance, denorm in bindings:
            pool.bind(controller, token, balance, denorm)
        pool.finalize(controller)
        return pool

    def _require_controller(self, caller: Address) -> None:
        if caller != self.controller:
            raise BasketError(code="ERR_NOT_CONTROLLER")

    # -- membership -------------------------------------------------------------

    def bind(self, caller: Address, token: TokenId, balance: Amount, denorm: int) -> None:
        self._require_controller(caller)
        if token == self.address:
            raise BasketError(code="ERR_SELF_BIND")
        with self._runtime.atomic():
            try:
                self._state.bind(token, balance, denorm)
            except ValueError as exc:
                raise BasketError(code="ERR_BIND", detail=str(exc)) from exc
            self._runtime.tokens.transfer(caller, self.address, token, balance)

    def unbind(self, caller: Address, token: TokenId) -> Amount:
        """Remove `token` and return its whole balance to the controller."""
        self._require_controller(caller)
        if not self._state.is_bound(token):
            raise BasketError(code="ERR_NOT_BOUND", detail=token)
        balance = self._state.unbind(token)
        self._runtime.tokens.transfer(self.address, caller, token, balance)
        return balance

    def finalize(self, caller: Address) -> None:
        self._require_controller(caller)
        if self._state.total_supply != 0:
            raise BasketError(code="ERR_IS_FINALIZED")
        if len(self._state.members) < 2:
            raise BasketError(code="ERR_MIN_TOKENS")
        self._state.total_supply = INIT_POOL_SUPPLY
        self._runtime.tokens.mint(caller, self.address, INIT_POOL_SUPPLY)

    def set_community_exit_fee(self, caller: Address, fee: int, receiver: Address) -> None:
        self._require_controller(caller)
        if not (0 <= fee < BONE):
            raise BasketError(code="ERR_INVALID_FEE")
        self._state.community_exit_fee = fee
        self._state.community_fee_receiver = receiver

    # -- views ------------------------------------------------------------------

    def get_current_tokens(self) -> Tuple[TokenId, ...]:
        return self._state.snapshot_members()

    def is_bound(self, token: TokenId) -> bool:
        return self._state.is_bound(token)

    def get_balance(self, token: TokenId) -> Amount:
        return self._record(token).balance

    def get_denormalized_weight(self, token: TokenId) -> int:
        return self._record(token).denorm

    def get_total_denormalized_weight(self) -> int:
        return self._state.total_denorm

    @property
    def total_supply(self) -> Amount:
        return self._state.total_supply

    @property
    def swap_fee(self) -> int:
        return self._state.swap_fee

    @property
    def community_exit_fee(self) -> int:
        return self._state.community_exit_fee

    def _record(self, token: TokenId):
        if not self._state.is_bound(token):
            raise BasketError(code="ERR_NOT_BOUND", detail=token)
        return self._state.record(token)

    # -- exit pricing -----------------------------------------------------------

    def _gross_out(self, net_out: Amount) -> Amount:
        return bdiv(net_out, BONE - self._state.community_exit_fee)

    def calc_pool_in_for_exact_out(self, token: TokenId, net_out: Amount) -> Amount:
        """Shares to burn so that exactly `net_out` of `token` reaches the exiting holder."""
        record = self._record(token)
        gross = self._gross_out(net_out)
        if gross > bmul(record.balance, MAX_OUT_RATIO):
            raise BasketError(code="ERR_MAX_OUT_RATIO")
        return calc_pool_in_given_single_out(
            token_balance_out=record.balance,
            token_weight_out=record.denorm,
            pool_supply=self._state.total_supply,
            total_weight=self._state.total_denorm,
            token_amount_out=gross,
            swap_fee=self._state.swap_fee,
        )

    def calc_token_out_for_pool_in(self, token: TokenId, pool_in: Amount) -> Amount:
        """Net amount of `token` received for burning `pool_in` shares."""
        record = self._record(token)
        if pool_in == 0:
            return 0
        gross = calc_single_out_given_pool_in(
            token_balance_out=record.balance,
            token_weight_out=record.denorm,
            pool_supply=self._state.total_supply,
            total_weight=self._state.total_denorm,
            pool_amount_in=pool_in,
            swap_fee=self._state.swap_fee,
        )
        if gross > bmul(record.balance, MAX_OUT_RATIO):
            raise BasketError(code="ERR_MAX_OUT_RATIO")
        return bmul(gross, BONE - self._state.community_exit_fee)

    # -- exits ------------------------------------------------------------------

    def exitswap_extern_amount_out(
        self,
        sender: Address,
        token: TokenId,
        net_out: Amount,
        max_pool_in: Amount,
    ) -> Amount:
        """Burn shares of `sender` to receive exactly `net_out` of `token`; returns shares burned."""
        pool_in = self.calc_pool_in_for_exact_out(token, net_out)
        if pool_in == 0:
            raise BasketError(code="ERR_MATH_APPROX")
        if pool_in > max_pool_in:
            raise BasketError(code="ERR_LIMIT_IN", detail=f"{pool_in} > {max_pool_in}")
        if self._runtime.tokens.balance_of(sender, self.address) < pool_in:
            raise BasketError(code="ERR_INSUFFICIENT_BAL")

        gross = self._gross_out(net_out)
        fee = gross - net_out
        record = self._state.record(token)
        record.balance -= gross
        self._state.total_supply -= pool_in

        tokens = self._runtime.tokens
        tokens.burn(sender, self.address, pool_in)
        tokens.transfer(self.address, sender, token, net_out)
        if fee > 0:
            tokens.transfer(self.address, self._state.community_fee_receiver, token, fee)
        self._runtime.charge_gas(GAS_BASKET_EXIT)
        return pool_in
