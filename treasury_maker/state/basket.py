"""
Basket (weighted multi-token pool) state.

A basket holds an ordered list of bound member tokens, each with a balance and
a denormalized weight. Basket shares are themselves a ledger token whose id is
the basket id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..kernels.python.bmath import BONE
from .balances import Address, Amount, TokenId, ZERO_ADDRESS


MIN_WEIGHT = BONE
MAX_WEIGHT = 50 * BONE
MAX_TOTAL_WEIGHT = 50 * BONE
MIN_BALANCE = BONE // 10**12
MAX_BOUND_TOKENS = 8
MAX_FEE = BONE // 10
INIT_POOL_SUPPLY = 100 * BONE


@dataclass
class MemberRecord:
    balance: Amount
    denorm: int


@dataclass
class BasketState:
    """
    State of a basket pool.

    Attributes:
        basket_id: basket identifier; also the token id of basket shares
        members: bound member tokens, in the pool's own order
        records: per-member balance and denormalized weight
        total_supply: outstanding basket shares
        swap_fee: fixed-point swap fee (1e18 = 100%)
        community_exit_fee: fixed-point fee taken from exit output
        community_fee_receiver: receives the community exit fee
    """
    basket_id: TokenId
    members: List[TokenId] = field(default_factory=list)
    records: Dict[TokenId, MemberRecord] = field(default_factory=dict)
    total_supply: Amount = 0
    swap_fee: int = BONE // 100
    community_exit_fee: int = 0
    community_fee_receiver: Address = ZERO_ADDRESS

    def __post_init__(self) -> None:
        if not (0 <= self.swap_fee <= MAX_FEE):
            raise ValueError(f"swap_fee must be in [0, {MAX_FEE}]: {self.swap_fee}")
        if not (0 <= self.community_exit_fee < BONE):
            raise ValueError(f"community_exit_fee must be in [0, {BONE}): {self.community_exit_fee}")
        if self.total_supply < 0:
            raise ValueError(f"total_supply must be non-negative: {self.total_supply}")
        if set(self.members) != set(self.records):
            raise ValueError("members and records must cover the same tokens")

    @property
    def total_denorm(self) -> int:
        return sum(rec.denorm for rec in self.records.values())

    def is_bound(self, token: TokenId) -> bool:
        return token in self.records

    def record(self, token: TokenId) -> MemberRecord:
        rec = self.records.get(token)
        if rec is None:
            raise KeyError(token)
        return rec

    def bind(self, token: TokenId, balance: Amount, denorm: int) -> None:
        if token in self.records:
            raise ValueError(f"token already bound: {token}")
        if len(self.members) >= MAX_BOUND_TOKENS:
            raise ValueError("max bound tokens reached")
        if not (MIN_WEIGHT <= denorm <= MAX_WEIGHT):
            raise ValueError(f"denorm out of bounds: {denorm}")
        if self.total_denorm + denorm > MAX_TOTAL_WEIGHT:
            raise ValueError("max total weight exceeded")
        if balance < MIN_BALANCE:
            raise ValueError(f"balance below minimum: {balance}")
        self.members.append(token)
        self.records[token] = MemberRecord(balance=balance, denorm=denorm)

    def unbind(self, token: TokenId) -> Amount:
        """
        Remove `token`; returns its balance.

        The last member takes the removed member's slot, so member order can
        change on unbind.
        """
        if token not in self.records:
            raise ValueError(f"token not bound: {token}")
        index = self.members.index(token)
        last = self.members[-1]
        self.members[index] = last
        self.members.pop()
        return self.records.pop(token).balance

    def snapshot_members(self) -> Tuple[TokenId, ...]:
        return tuple(self.members)

    def __repr__(self) -> str:
        return (
            f"BasketState(basket_id={self.basket_id[:16]}..., members={len(self.members)}, "
            f"total_supply={self.total_supply})"
        )
