from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import given, settings

from treasury_maker.kernels.python.bmath import BONE, calc_pool_in_given_single_out
from treasury_maker.kernels.python.cpmm_v2 import get_amount_in, get_amount_out

reserves = st.integers(min_value=10**6, max_value=10**30)


@settings(max_examples=200, deadline=None)
@given(rin=reserves, rout=reserves, frac=st.integers(min_value=1, max_value=9_999))
def test_exact_out_input_is_sufficient(rin: int, rout: int, frac: int) -> None:
    amount_out = max(1, rout * frac // 10_000)
    amount_in = get_amount_in(amount_out=amount_out, reserve_in=rin, reserve_out=rout)
    assert amount_in > 0
    assert get_amount_out(amount_in=amount_in, reserve_in=rin, reserve_out=rout) >= amount_out


@settings(max_examples=200, deadline=None)
@given(rin=reserves, rout=reserves, frac=st.integers(min_value=1, max_value=5_000), k=st.integers(min_value=1, max_value=1_000))
def test_exact_out_input_non_increasing_in_depth(rin: int, rout: int, frac: int, k: int) -> None:
    amount_out = max(1, rout * frac // 10_000)
    shallow = get_amount_in(amount_out=amount_out, reserve_in=rin, reserve_out=rout)
    deep = get_amount_in(amount_out=amount_out, reserve_in=rin * k, reserve_out=rout * k)
    assert deep <= shallow


@settings(max_examples=100, deadline=None)
@given(a=st.integers(min_value=BONE, max_value=10**9 * BONE), b=st.integers(min_value=BONE, max_value=10**9 * BONE))
def test_pool_in_monotone_in_amount_out(a: int, b: int) -> None:
    balance = 10**10 * BONE
    lo, hi = sorted((a, b))

    def pool_in(out: int) -> int:
        return calc_pool_in_given_single_out(
            token_balance_out=balance,
            token_weight_out=10 * BONE,
            pool_supply=100 * BONE,
            total_weight=50 * BONE,
            token_amount_out=out,
            swap_fee=BONE // 100,
        )

    assert pool_in(lo) <= pool_in(hi)
