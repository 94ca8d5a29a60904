"""
Constant-product AMM venue (router + pairs).

A venue lives at one contract address which custodies the reserves of all its
pairs. Quotes go through `kernels.python.cpmm_v2`, so a quote and the swap that
follows it use the same integer formulas.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

from ..errors import TransferFailed, VenueError
from ..kernels.python.cpmm_v2 import (
    DEFAULT_FEE_BPS,
    HopReserves,
    apply_swap,
    get_amounts_in,
    get_amounts_out,
)
from ..state.balances import Address, Amount, TokenId
from ..state.pairs import PairState, compute_pair_id, sort_tokens
from ..state.stateful import Stateful
from .gas import GAS_SWAP_HOP

if TYPE_CHECKING:
    from .runtime import LedgerRuntime


class AmmVenue(Stateful):
    """Router over constant-product pairs sharing one fee tier."""

    _state_fields = ("_pairs",)

    def __init__(self, runtime: "LedgerRuntime", address: Address, *, fee_bps: int = DEFAULT_FEE_BPS) -> None:
        self._runtime = runtime
        self.address = address
        self.fee_bps = fee_bps
        self._pairs: Dict[Tuple[TokenId, TokenId], PairState] = {}
        runtime.register_contract(address, self)

    # -- pairs ------------------------------------------------------------------

    def create_pair(
        self,
        provider: Address,
        token_a: TokenId,
        token_b: TokenId,
        amount_a: Amount,
        amount_b: Amount,
    ) -> str:
        """Create a pair seeded with `provider`'s tokens; returns the pair id."""
        token0, token1 = sort_tokens(token_a, token_b)
        if (token0, token1) in self._pairs:
            raise VenueError(code="PAIR_EXISTS")
        if amount_a <= 0 or amount_b <= 0:
            raise VenueError(code="INSUFFICIENT_LIQUIDITY_MINTED")

        tokens = self._runtime.tokens
        tokens.transfer(provider, self.address, token_a, amount_a)
        tokens.transfer(provider, self.address, token_b, amount_b)

        reserve0, reserve1 = (amount_a, amount_b) if token_a == token0 else (amount_b, amount_a)
        pair = PairState(
            pair_id=compute_pair_id(self.address, token0, token1, self.fee_bps),
            token0=token0,
            token1=token1,
            reserve0=reserve0,
            reserve1=reserve1,
            fee_bps=self.fee_bps,
        )
        self._pairs[(token0, token1)] = pair
        return pair.pair_id

    def get_pair(self, token_a: TokenId, token_b: TokenId) -> PairState:
        pair = self._pairs.get(sort_tokens(token_a, token_b))
        if pair is None:
            raise VenueError(code="PAIR_NOT_FOUND", detail=f"{token_a} / {token_b}")
        return pair

    def has_pair(self, token_a: TokenId, token_b: TokenId) -> bool:
        return token_a != token_b and sort_tokens(token_a, token_b) in self._pairs

    def get_reserves(self, token_a: TokenId, token_b: TokenId) -> Tuple[Amount, Amount]:
        """Reserves of the pair, ordered as `(token_a, token_b)`."""
        pair = self.get_pair(token_a, token_b)
        return pair.get_reserve(token_a), pair.get_reserve(token_b)

    def _hops(self, path: Sequence[TokenId]) -> List[HopReserves]:
        if len(path) < 2:
            raise VenueError(code="INVALID_PATH")
        return [self.get_pair(a, b).oriented(a, b) for a, b in zip(path, path[1:])]

    # -- quotes -----------------------------------------------------------------

    def get_amounts_out(self, amount_in: Amount, path: Sequence[TokenId]) -> List[Amount]:
        return get_amounts_out(amount_in, self._hops(path))

    def get_amounts_in(self, amount_out: Amount, path: Sequence[TokenId]) -> List[Amount]:
        return get_amounts_in(amount_out, self._hops(path))

    # -- swaps ------------------------------------------------------------------

    def swap_tokens_for_exact_tokens(
        self,
        sender: Address,
        amount_out: Amount,
        amount_in_max: Amount,
        path: Sequence[TokenId],
        to: Address,
    ) -> List[Amount]:
        """
        Pull at most `amount_in_max` of `path[0]` from `sender` (by allowance)
        and deliver exactly `amount_out` of `path[-1]` to `to`.
        """
        amounts = self.get_amounts_in(amount_out, path)
        if amounts[0] > amount_in_max:
            raise VenueError(code="EXCESSIVE_INPUT_AMOUNT", detail=f"{amounts[0]} > {amount_in_max}")
        try:
            self._runtime.tokens.transfer_from(self.address, sender, self.address, path[0], amounts[0])
        except TransferFailed as exc:
            raise TransferFailed(code="TRANSFER_FROM_FAILED", detail=exc.code) from exc
        self._swap_hops(amounts, path)
        self._runtime.tokens.transfer(self.address, to, path[-1], amounts[-1])
        return amounts

    def swap_exact_tokens_for_tokens(
        self,
        sender: Address,
        amount_in: Amount,
        amount_out_min: Amount,
        path: Sequence[TokenId],
        to: Address,
    ) -> List[Amount]:
        amounts = self.get_amounts_out(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise VenueError(code="INSUFFICIENT_OUTPUT_AMOUNT", detail=f"{amounts[-1]} < {amount_out_min}")
        try:
            self._runtime.tokens.transfer_from(self.address, sender, self.address, path[0], amounts[0])
        except TransferFailed as exc:
            raise TransferFailed(code="TRANSFER_FROM_FAILED", detail=exc.code) from exc
        self._swap_hops(amounts, path)
        self._runtime.tokens.transfer(self.address, to, path[-1], amounts[-1])
        return amounts

    def _swap_hops(self, amounts: Sequence[Amount], path: Sequence[TokenId]) -> None:
        for i, (token_in, token_out) in enumerate(zip(path, path[1:])):
            pair = self.get_pair(token_in, token_out)
            new_in, new_out = apply_swap(
                reserve_in=pair.get_reserve(token_in),
                reserve_out=pair.get_reserve(token_out),
                amount_in=amounts[i],
                amount_out=amounts[i + 1],
            )
            pair.set_reserve(token_in, new_in)
            pair.set_reserve(token_out, new_out)
            self._runtime.charge_gas(GAS_SWAP_HOP)
