from __future__ import annotations

import pytest

from conftest import ALICE, BOB, DAI, WETH, ether
from treasury_maker.errors import TransferFailed
from treasury_maker.integration.gas import GAS_TRANSFER, GAS_WRAP
from treasury_maker.integration.runtime import CallContext, LedgerRuntime
from treasury_maker.integration.token_ledger import WrappedNative
from treasury_maker.state.balances import NATIVE_ASSET


def _runtime() -> LedgerRuntime:
    runtime = LedgerRuntime(timestamp=100)
    runtime.tokens.mint(ALICE, DAI, ether(10))
    runtime.mint_native(ALICE, ether(5))
    return runtime


def test_atomic_rolls_back_every_registered_component() -> None:
    runtime = _runtime()
    with pytest.raises(RuntimeError):
        with runtime.atomic():
            runtime.tokens.transfer(ALICE, BOB, DAI, ether(3))
            runtime.send_native(ALICE, BOB, ether(1))
            runtime.emit(ALICE, "Marker")
            runtime.next_nonce()
            raise RuntimeError("boom")
    assert runtime.tokens.balance_of(BOB, DAI) == 0
    assert runtime.native_balance(BOB) == 0
    assert runtime.events == []
    assert runtime.gas_used == 0
    assert runtime.next_nonce() == 1
    assert not runtime.in_transaction


def test_nested_atomic_is_a_savepoint() -> None:
    runtime = _runtime()
    with runtime.atomic():
        runtime.tokens.transfer(ALICE, BOB, DAI, ether(1))
        with pytest.raises(TransferFailed):
            with runtime.atomic():
                runtime.tokens.transfer(ALICE, BOB, DAI, ether(2))
                runtime.tokens.transfer(ALICE, BOB, DAI, ether(100))
    assert runtime.tokens.balance_of(BOB, DAI) == ether(1)
    assert runtime.tokens.balance_of(ALICE, DAI) == ether(9)


def test_transfer_from_consumes_allowance() -> None:
    runtime = _runtime()
    runtime.tokens.approve(ALICE, BOB, DAI, ether(4))
    runtime.tokens.transfer_from(BOB, ALICE, BOB, DAI, ether(3))
    assert runtime.tokens.allowance(ALICE, BOB, DAI) == ether(1)
    with pytest.raises(TransferFailed) as exc:
        runtime.tokens.transfer_from(BOB, ALICE, BOB, DAI, ether(2))
    assert exc.value.code == "TRANSFER_AMOUNT_EXCEEDS_ALLOWANCE"
    with pytest.raises(TransferFailed) as exc:
        runtime.tokens.transfer(BOB, ALICE, DAI, ether(4))
    assert exc.value.code == "TRANSFER_AMOUNT_EXCEEDS_BALANCE"


def test_native_is_not_a_ledger_token() -> None:
    runtime = _runtime()
    with pytest.raises(TransferFailed) as exc:
        runtime.tokens.balance_of(ALICE, NATIVE_ASSET)
    assert exc.value.code == "NATIVE_NOT_A_TOKEN"
    with pytest.raises(TransferFailed) as exc:
        runtime.send_native(BOB, ALICE, 1)
    assert exc.value.code == "NATIVE_TRANSFER_FAILED"


def test_wrapped_native_round_trip_charges_gas() -> None:
    runtime = _runtime()
    weth = WrappedNative(runtime, WETH)
    weth.deposit(ALICE, ether(2))
    assert runtime.tokens.balance_of(ALICE, WETH) == ether(2)
    assert runtime.native_balance(WETH) == ether(2)
    assert runtime.gas_used == GAS_TRANSFER + GAS_WRAP
    weth.withdraw(ALICE, ether(2))
    assert runtime.native_balance(ALICE) == ether(5)
    assert runtime.tokens.total_supply(WETH) == 0


def test_call_contexts() -> None:
    runtime = _runtime()
    weth = WrappedNative(runtime, WETH)
    direct = runtime.call(ALICE, gas_price=7)
    assert direct == CallContext(sender=ALICE, origin=ALICE, gas_price=7)
    forwarded = runtime.via_contract(direct, weth.address)
    assert (forwarded.sender, forwarded.origin, forwarded.gas_price) == (WETH, ALICE, 7)
    with pytest.raises(ValueError):
        runtime.via_contract(direct, BOB)
    with pytest.raises(ValueError):
        CallContext(sender=ALICE, origin=ALICE, gas_price=-1)


def test_clock_is_monotonic() -> None:
    runtime = _runtime()
    runtime.advance_time(5)
    assert runtime.timestamp == 105
    with pytest.raises(ValueError):
        runtime.advance_time(-1)
