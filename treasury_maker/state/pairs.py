"""
Pair state for constant-product venues.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Tuple

from ..kernels.python.cpmm_v2 import BPS_DENOM, DEFAULT_FEE_BPS, HopReserves
from .balances import Amount, TokenId


def sort_tokens(token_a: TokenId, token_b: TokenId) -> Tuple[TokenId, TokenId]:
    if token_a == token_b:
        raise ValueError(f"identical tokens: {token_a}")
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


def compute_pair_id(venue: str, token0: TokenId, token1: TokenId, fee_bps: int) -> str:
    """
    Deterministically compute a pair_id for the given venue and tokens.

        pair_id = H("TreasuryPair" || venue || token0 || token1 || fee_bps)
    """
    if token0 >= token1:
        raise ValueError(f"Tokens must be in canonical order: {token0} < {token1}")
    if not (0 <= fee_bps < BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps}")

    pair_id_data = (
        b"TreasuryPair"
        + venue.encode("utf-8")
        + token0.encode("utf-8")
        + token1.encode("utf-8")
        + str(int(fee_bps)).encode("utf-8")
    )
    return "0x" + hashlib.sha256(pair_id_data).hexdigest()


@dataclass
class PairState:
    """
    State of a constant-product pair.

    Attributes:
        pair_id: pair identifier (hex string)
        token0: First token (must be < token1 lexicographically)
        token1: Second token
        reserve0: Reserve of token0
        reserve1: Reserve of token1
        fee_bps: Input fee in basis points
    """
    pair_id: str
    token0: TokenId
    token1: TokenId
    reserve0: Amount
    reserve1: Amount
    fee_bps: int = DEFAULT_FEE_BPS

    def __post_init__(self):
        """Validate pair state invariants."""
        if self.token0 >= self.token1:
            raise ValueError(
                f"Tokens must be in canonical order: {self.token0} < {self.token1}"
            )
        if not (0 <= self.fee_bps < BPS_DENOM):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {self.fee_bps}")
        if self.reserve0 < 0 or self.reserve1 < 0:
            raise ValueError(
                f"Reserves must be non-negative: ({self.reserve0}, {self.reserve1})"
            )

    def get_reserve(self, token: TokenId) -> Amount:
        if token == self.token0:
            return self.reserve0
        if token == self.token1:
            return self.reserve1
        raise ValueError(f"Token {token} not in pair {self.pair_id}")

    def set_reserve(self, token: TokenId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Reserve cannot be negative: {amount}")
        if token == self.token0:
            self.reserve0 = amount
        elif token == self.token1:
            self.reserve1 = amount
        else:
            raise ValueError(f"Token {token} not in pair {self.pair_id}")

    def oriented(self, token_in: TokenId, token_out: TokenId) -> HopReserves:
        """Reserves oriented for a `token_in -> token_out` trade."""
        if token_in == self.token0 and token_out == self.token1:
            return HopReserves(self.reserve0, self.reserve1, self.fee_bps)
        if token_in == self.token1 and token_out == self.token0:
            return HopReserves(self.reserve1, self.reserve0, self.fee_bps)
        raise ValueError(f"Pair {self.pair_id} does not trade {token_in} -> {token_out}")

    def __repr__(self) -> str:
        return (
            f"PairState(pair_id={self.pair_id[:16]}..., "
            f"tokens=({self.token0[:8]}..., {self.token1[:8]}...), "
            f"reserves=({self.reserve0}, {self.reserve1}), fee_bps={self.fee_bps})"
        )
