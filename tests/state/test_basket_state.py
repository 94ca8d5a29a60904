from __future__ import annotations

import pytest

from treasury_maker.kernels.python.bmath import BONE
from treasury_maker.state.basket import MAX_BOUND_TOKENS, BasketState

TOKENS = ["0x" + f"{i:02x}" * 20 for i in range(1, 10)]


def _basket(*members: str) -> BasketState:
    state = BasketState(basket_id="0x" + "bb" * 20)
    for token in members:
        state.bind(token, 10 * BONE, 5 * BONE)
    return state


def test_unbind_moves_last_member_into_slot() -> None:
    state = _basket(*TOKENS[:4])
    assert state.unbind(TOKENS[1]) == 10 * BONE
    assert state.snapshot_members() == (TOKENS[0], TOKENS[3], TOKENS[2])
    assert not state.is_bound(TOKENS[1])
    assert state.total_denorm == 15 * BONE


def test_unbind_last_member_keeps_order() -> None:
    state = _basket(*TOKENS[:3])
    state.unbind(TOKENS[2])
    assert state.snapshot_members() == (TOKENS[0], TOKENS[1])


def test_bind_limits() -> None:
    state = _basket(*TOKENS[:MAX_BOUND_TOKENS])
    with pytest.raises(ValueError):
        state.bind(TOKENS[MAX_BOUND_TOKENS], 10 * BONE, BONE)
    with pytest.raises(ValueError):
        state.bind(TOKENS[0], 10 * BONE, BONE)

    fresh = BasketState(basket_id="0x" + "cc" * 20)
    with pytest.raises(ValueError):
        fresh.bind(TOKENS[0], 10 * BONE, BONE // 2)
    fresh.bind(TOKENS[0], 10 * BONE, 30 * BONE)
    with pytest.raises(ValueError):
        fresh.bind(TOKENS[1], 10 * BONE, 25 * BONE)


def test_fee_bounds_are_validated() -> None:
    with pytest.raises(ValueError):
        BasketState(basket_id="0xb", swap_fee=BONE)
    with pytest.raises(ValueError):
        BasketState(basket_id="0xb", community_exit_fee=BONE)
