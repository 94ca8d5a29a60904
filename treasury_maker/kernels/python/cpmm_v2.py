"""
Constant-product pair kernel (v2 router semantics).

This implements the pricing formulas of a constant-product venue whose fee is
charged on the input amount:

    amount_out = floor(in * (10_000 - fee) * r_out / (r_in * 10_000 + in * (10_000 - fee)))
    amount_in  = floor(r_in * out * 10_000 / ((r_out - out) * (10_000 - fee))) + 1

With `fee_bps=30` these are bit-for-bit the `997/1000` router formulas, so a
quote computed here is exactly what the venue charges or pays.

Multi-hop quotes chain the single-hop formulas: forward for exact-in,
backward (from the last hop) for exact-out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ...errors import VenueError


BPS_DENOM = 10_000
DEFAULT_FEE_BPS = 30


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_fee(fee_bps: int) -> None:
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps}")


@dataclass(frozen=True)
class HopReserves:
    """Reserves of one hop, oriented in the direction of the trade."""

    reserve_in: int
    reserve_out: int
    fee_bps: int = DEFAULT_FEE_BPS


def get_amount_out(*, amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """Output of an exact-in trade against one pair."""
    _require_int("amount_in", amount_in)
    _require_int("reserve_in", reserve_in)
    _require_int("reserve_out", reserve_out)
    _require_fee(fee_bps)
    if amount_in <= 0:
        raise VenueError(code="INSUFFICIENT_INPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= 0:
        raise VenueError(code="INSUFFICIENT_LIQUIDITY")

    amount_in_with_fee = amount_in * (BPS_DENOM - fee_bps)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOM + amount_in_with_fee
    return numerator // denominator


def get_amount_in(*, amount_out: int, reserve_in: int, reserve_out: int, fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """Minimal input of an exact-out trade against one pair."""
    _require_int("amount_out", amount_out)
    _require_int("reserve_in", reserve_in)
    _require_int("reserve_out", reserve_out)
    _require_fee(fee_bps)
    if amount_out <= 0:
        raise VenueError(code="INSUFFICIENT_OUTPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= 0:
        raise VenueError(code="INSUFFICIENT_LIQUIDITY")
    if amount_out >= reserve_out:
        raise VenueError(code="INSUFFICIENT_LIQUIDITY", detail=f"amount_out {amount_out} >= reserve_out {reserve_out}")

    numerator = reserve_in * amount_out * BPS_DENOM
    denominator = (reserve_out - amount_out) * (BPS_DENOM - fee_bps)
    return numerator // denominator + 1


def get_amounts_out(amount_in: int, hops: Sequence[HopReserves]) -> List[int]:
    """
    Exact-in quote along a path.

    Returns `[amount_in, out_hop_1, ..., out_hop_n]`.
    """
    if not hops:
        raise VenueError(code="INVALID_PATH")
    amounts = [amount_in]
    for hop in hops:
        amounts.append(
            get_amount_out(
                amount_in=amounts[-1],
                reserve_in=hop.reserve_in,
                reserve_out=hop.reserve_out,
                fee_bps=hop.fee_bps,
            )
        )
    return amounts


def get_amounts_in(amount_out: int, hops: Sequence[HopReserves]) -> List[int]:
    """
    Exact-out quote along a path.

    Returns `[amount_in, ..., amount_out]`, aligned with the path tokens.
    """
    if not hops:
        raise VenueError(code="INVALID_PATH")
    amounts = [0] * (len(hops) + 1)
    amounts[-1] = amount_out
    for i in range(len(hops) - 1, -1, -1):
        hop = hops[i]
        amounts[i] = get_amount_in(
            amount_out=amounts[i + 1],
            reserve_in=hop.reserve_in,
            reserve_out=hop.reserve_out,
            fee_bps=hop.fee_bps,
        )
    return amounts


def apply_swap(*, reserve_in: int, reserve_out: int, amount_in: int, amount_out: int) -> Tuple[int, int]:
    """
    Post-trade reserves for a hop, checking the constant product does not drop.
    """
    new_in = reserve_in + amount_in
    new_out = reserve_out - amount_out
    if new_out <= 0:
        raise VenueError(code="INSUFFICIENT_LIQUIDITY")
    if new_in * new_out < reserve_in * reserve_out:
        raise VenueError(code="K", detail="constant product decreased")
    return new_in, new_out
