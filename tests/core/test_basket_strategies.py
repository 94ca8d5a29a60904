from __future__ import annotations

import pytest

from conftest import AAVE, BENEFICIARY, COMP, CVP, DEPLOYER, FEE_RECEIVER, MAKER, OWNER, SNX, SUSHI, UNI, WETH, addr, ether
from treasury_maker.errors import InsufficientBalance, RotationNotSynced, StaleRotationMember
from treasury_maker.kernels.python.bmath import BONE, bdiv, bmul

BASKET = addr(0x5000)
EXIT_FEE = ether("0.07")
AAVE_FOR_TARGET = ether("16.767230423154041110")
FIRST_ROTATING_IN = ether("0.0725058031454588")


def _direct_exit_basket(world):
    pool = world.make_basket(
        BASKET,
        [
            (UNI, ether(25 * 10**6), ether(25)),
            (COMP, ether(15 * 10**6), ether(15)),
            (CVP, ether(10 * 10**6), ether(10)),
        ],
        community_exit_fee=EXIT_FEE,
    )
    world.maker.set_basket_strategy(world.runtime.call(OWNER), BASKET, 1)
    return pool


def _rotating_exit_basket(world):
    world.make_pair(AAVE, WETH, ether(5 * 10**6), ether(10**6))
    world.make_pair(SUSHI, WETH, ether(15 * 10**7), ether(10**6))
    world.make_pair(SNX, WETH, ether(10**8), ether(10**6))
    pool = world.make_basket(
        BASKET,
        [
            (AAVE, ether(12500), ether(25)),
            (SUSHI, ether(2 * 10**5), ether(15)),
            (SNX, ether(10**5), ether(10)),
        ],
        community_exit_fee=EXIT_FEE,
    )
    world.maker.set_basket_strategy(world.runtime.call(OWNER), BASKET, 2)
    return pool


def _fund_shares(world, amount: int) -> None:
    world.runtime.tokens.transfer(DEPLOYER, MAKER, BASKET, amount)


# -- direct exit -----------------------------------------------------------------


def test_direct_exit_prices_include_community_fee(world) -> None:
    _direct_exit_basket(world)
    _fund_shares(world, ether(5))
    maker = world.maker

    amount_in = maker.estimate_direct_exit_in(BASKET)
    assert amount_in == maker.estimate_amount_in(BASKET)
    assert amount_in == maker.basket_exit_amount_in(BASKET, CVP, ether(2000))
    assert 4336137385130000 < amount_in < 4336137385131000
    assert maker.estimate_amount_out(BASKET) == ether("2087006.583")
    assert maker.estimate_direct_exit_out(BASKET, ether(5)) == ether("2087006.583")


def test_direct_exit_consumes_exactly_the_estimate(world) -> None:
    _direct_exit_basket(world)
    _fund_shares(world, ether(5))
    amount_in = world.maker.estimate_amount_in(BASKET)

    record = world.maker.swap(world.runtime.call(DEPLOYER), BASKET)

    assert (record.strategy_kind, record.swap_type, record.amount_in) == ("basket_direct_exit", 4, amount_in)
    assert world.balance(MAKER, BASKET) == ether(5) - amount_in
    assert world.balance(BENEFICIARY, CVP) == ether(2725)
    assert world.balance(MAKER, CVP) == 0
    gross = bdiv(ether(2000), BONE - EXIT_FEE)
    assert world.balance(FEE_RECEIVER, CVP) == gross - ether(2000)


def test_direct_exit_insufficient_shares(world) -> None:
    _direct_exit_basket(world)
    _fund_shares(world, ether("0.00403"))
    with pytest.raises(InsufficientBalance):
        world.maker.swap(world.runtime.call(DEPLOYER), BASKET)
    assert world.balance(MAKER, BASKET) == ether("0.00403")


# -- rotating exit ---------------------------------------------------------------


def test_rotating_exit_requires_sync(world) -> None:
    _rotating_exit_basket(world)
    _fund_shares(world, ether(10))
    with pytest.raises(RotationNotSynced):
        world.maker.estimate_amount_in(BASKET)
    with pytest.raises(RotationNotSynced):
        world.maker.swap(world.runtime.call(DEPLOYER), BASKET)


def test_rotating_exit_first_member(world) -> None:
    _rotating_exit_basket(world)
    maker = world.maker
    state = maker.sync_rotation(BASKET)
    _fund_shares(world, ether(10))

    assert state.members == (AAVE, SUSHI, SNX)
    assert maker.get_rotation_members(BASKET) == (AAVE, SUSHI, SNX)
    assert maker.get_rotation_next_index(BASKET) == 0
    assert maker.get_rotation_next_member(BASKET) == AAVE

    assert world.venue.get_amounts_in(ether(2000), [AAVE, WETH, CVP])[0] == AAVE_FOR_TARGET
    assert maker.basket_exit_amount_in(BASKET, AAVE, AAVE_FOR_TARGET) == FIRST_ROTATING_IN
    assert maker.estimate_rotating_exit_in(BASKET) == FIRST_ROTATING_IN
    assert maker.estimate_amount_in(BASKET) == FIRST_ROTATING_IN

    assert maker.basket_exit_amount_out(BASKET, AAVE, ether(10)) == bmul(ether("2363.125"), BONE - EXIT_FEE)
    member_out = maker.basket_exit_amount_out(BASKET, AAVE, ether(10))
    expected_out = world.venue.get_amounts_out(member_out, [AAVE, WETH, CVP])[-1]
    assert maker.estimate_rotating_exit_out(BASKET, ether(10)) == expected_out

    record = maker.swap(world.runtime.call(DEPLOYER), BASKET)

    assert (record.strategy_kind, record.amount_in) == ("basket_rotating_exit", FIRST_ROTATING_IN)
    assert world.balance(BENEFICIARY, CVP) == ether(2725)
    assert world.balance(MAKER, BASKET) == ether("9.927494196854541200")
    assert world.balance(MAKER, AAVE) == 0
    assert maker.get_rotation_next_index(BASKET) == 1
    assert maker.get_rotation_next_member(BASKET) == SUSHI


def test_rotating_exit_walks_members_and_resyncs(world) -> None:
    pool = _rotating_exit_basket(world)
    maker = world.maker
    call = world.runtime.call(DEPLOYER)
    maker.sync_rotation(BASKET)
    _fund_shares(world, ether(100))

    expected = [
        (0, AAVE, "0.0725058031454588"),
        (1, SUSHI, "0.081722936763776726"),
        (2, SNX, "0.072693329380864298"),
        (0, AAVE, "0.072447738033226438"),
        (1, SUSHI, "0.081760909948550247"),
    ]
    for index, member, amount_in in expected:
        assert maker.get_rotation_next_index(BASKET) == index
        assert maker.get_rotation_next_member(BASKET) == member
        assert maker.estimate_amount_in(BASKET) == ether(amount_in)
        maker.swap(call, BASKET)

    assert maker.get_rotation_next_member(BASKET) == SNX
    assert maker.estimate_amount_in(BASKET) == ether("0.072792940476284364")

    pool.unbind(DEPLOYER, SNX)
    with pytest.raises(StaleRotationMember):
        maker.estimate_amount_in(BASKET)
    with pytest.raises(StaleRotationMember):
        maker.swap(call, BASKET)

    state = maker.sync_rotation(BASKET)
    assert (state.members, state.next_index) == ((AAVE, SUSHI), 0)
    assert maker.estimate_amount_in(BASKET) == ether("0.090430495162160678")
    maker.swap(call, BASKET)
    assert maker.get_rotation_next_member(BASKET) == SUSHI
    assert maker.estimate_amount_in(BASKET) == ether("0.102216584492803626")
    maker.swap(call, BASKET)
    assert maker.get_rotation_next_index(BASKET) == 0
    assert maker.estimate_amount_in(BASKET) == ether("0.090388216833249222")
    assert world.balance(BENEFICIARY, CVP) == ether(725) + 7 * ether(2000)


def test_failed_rotating_exit_does_not_advance(world) -> None:
    _rotating_exit_basket(world)
    world.maker.sync_rotation(BASKET)
    _fund_shares(world, ether("0.072"))
    with pytest.raises(InsufficientBalance):
        world.maker.swap(world.runtime.call(DEPLOYER), BASKET)
    assert world.maker.get_rotation_next_index(BASKET) == 0
    assert world.maker.estimate_amount_out(BASKET, 0) == 0


def test_sync_keeps_the_indexed_member(world) -> None:
    pool = _rotating_exit_basket(world)
    maker = world.maker
    maker.sync_rotation(BASKET)
    _fund_shares(world, ether(10))
    maker.swap(world.runtime.call(DEPLOYER), BASKET)
    assert maker.get_rotation_next_member(BASKET) == SUSHI

    pool.unbind(DEPLOYER, AAVE)
    state = maker.sync_rotation(BASKET)
    assert state.members == (SNX, SUSHI)
    assert (state.next_index, state.next_member) == (1, SUSHI)
    assert maker.sync_rotation(BASKET) == state
