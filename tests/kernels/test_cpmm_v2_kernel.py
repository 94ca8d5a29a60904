from __future__ import annotations

import pytest

from conftest import ether
from treasury_maker.errors import VenueError
from treasury_maker.kernels.python.cpmm_v2 import (
    HopReserves,
    apply_swap,
    get_amount_in,
    get_amount_out,
    get_amounts_in,
    get_amounts_out,
)

DAI_WETH = HopReserves(reserve_in=ether(2 * 10**9), reserve_out=ether(10**6))
WETH_CVP = HopReserves(reserve_in=ether(10**6), reserve_out=ether(60 * 10**7))


def test_single_hop_quotes_match_router_formula() -> None:
    assert get_amount_out(amount_in=ether(1), reserve_in=ether(10**6), reserve_out=ether(2 * 10**9)) == ether(
        "1993.998011983982051969"
    )
    assert get_amount_out(amount_in=ether(1), reserve_in=ether(10**6), reserve_out=ether(60 * 10**7)) == ether(
        "598.19940359519461559"
    )
    assert get_amount_out(amount_in=ether(1), reserve_in=ether(150 * 10**6), reserve_out=ether(10**6)) == ether(
        "0.006646666622488489"
    )


def test_multi_hop_exact_out_chains_backwards() -> None:
    amounts = get_amounts_in(ether(2000), [DAI_WETH, WETH_CVP])
    assert amounts == [ether("6706.892169261616443894"), ether("3.343374568186039725"), ether(2000)]


def test_multi_hop_exact_in_chains_forwards() -> None:
    assert get_amounts_out(ether(8000), [DAI_WETH, WETH_CVP])[-1] == ether("2385.602600975004141233")
    assert get_amounts_out(ether(6706), [DAI_WETH, WETH_CVP])[-1] == ether("1999.733956269714881646")

    cvp_weth = HopReserves(reserve_in=ether(60 * 10**7), reserve_out=ether(10**6))
    weth_dai = HopReserves(reserve_in=ether(10**6), reserve_out=ether(2 * 10**9))
    assert get_amounts_out(ether(1), [cvp_weth, weth_dai])[2] == ether("3.313363322338438557")


def test_four_hop_route_quotes() -> None:
    uni_usdc = HopReserves(reserve_in=ether(4 * 10**6), reserve_out=ether(10**8))
    usdc_dai = HopReserves(reserve_in=ether(2 * 10**9), reserve_out=ether(2 * 10**9))
    assert get_amounts_out(ether(1), [uni_usdc])[1] == ether("24.924993787445298479")
    assert get_amounts_out(ether(1), [uni_usdc, usdc_dai])[2] == ether("24.850218497316279064")

    hops = [uni_usdc, usdc_dai, DAI_WETH, WETH_CVP]
    assert get_amounts_in(ether(2000), hops)[0] == ether("269.911675708212223606")
    assert get_amounts_out(ether(500), hops)[-1] == ether("3704.671561101249231727")


def test_exact_out_rejects_draining_the_pool() -> None:
    with pytest.raises(VenueError) as exc:
        get_amount_in(amount_out=ether(10**6), reserve_in=ether(1), reserve_out=ether(10**6))
    assert exc.value.code == "INSUFFICIENT_LIQUIDITY"


def test_zero_amounts_are_rejected() -> None:
    with pytest.raises(VenueError) as exc:
        get_amount_out(amount_in=0, reserve_in=10, reserve_out=10)
    assert exc.value.code == "INSUFFICIENT_INPUT_AMOUNT"
    with pytest.raises(VenueError) as exc:
        get_amount_in(amount_out=0, reserve_in=10, reserve_out=10)
    assert exc.value.code == "INSUFFICIENT_OUTPUT_AMOUNT"


def test_empty_path_is_invalid() -> None:
    with pytest.raises(VenueError) as exc:
        get_amounts_in(1, [])
    assert exc.value.code == "INVALID_PATH"


def test_input_validation() -> None:
    with pytest.raises(TypeError):
        get_amount_out(amount_in=True, reserve_in=10, reserve_out=10)
    with pytest.raises(ValueError):
        get_amount_out(amount_in=1, reserve_in=10, reserve_out=10, fee_bps=10_000)


def test_apply_swap_refuses_constant_product_decrease() -> None:
    assert apply_swap(reserve_in=1000, reserve_out=1000, amount_in=100, amount_out=90) == (1100, 910)
    with pytest.raises(VenueError) as exc:
        apply_swap(reserve_in=1000, reserve_out=1000, amount_in=100, amount_out=95)
    assert exc.value.code == "K"
