"""
State tables for the treasury maker and its venues
"""

from .balances import NATIVE_ASSET, ZERO_ADDRESS, BalanceTable
from .basket import BasketState, MemberRecord
from .pairs import PairState, compute_pair_id, sort_tokens

__all__ = [
    "NATIVE_ASSET",
    "ZERO_ADDRESS",
    "BalanceTable",
    "BasketState",
    "MemberRecord",
    "PairState",
    "compute_pair_id",
    "sort_tokens",
]
