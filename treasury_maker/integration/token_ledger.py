"""
Fungible-token ledger.

Balance / allowance bookkeeping for every token the maker handles, plus the
wrapped-native token contract. Failures raise `TransferFailed` with the
ledger's own reason code; callers surface it unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Tuple

from ..errors import TransferFailed
from ..state.balances import NATIVE_ASSET, Address, Amount, BalanceTable, TokenId
from ..state.stateful import Stateful
from .gas import GAS_TRANSFER, GAS_WRAP

if TYPE_CHECKING:
    from .runtime import LedgerRuntime


class TokenLedger(Stateful):
    """Balances and allowances for all ledger-tracked tokens."""

    _state_fields = ("_balances", "_allowances")

    def __init__(self, runtime: "LedgerRuntime") -> None:
        self._runtime = runtime
        self._balances = BalanceTable()
        self._allowances: Dict[Tuple[Address, Address, TokenId], Amount] = {}

    @staticmethod
    def _require_token(token: TokenId) -> None:
        if token == NATIVE_ASSET:
            raise TransferFailed(code="NATIVE_NOT_A_TOKEN")

    def balance_of(self, holder: Address, token: TokenId) -> Amount:
        self._require_token(token)
        return self._balances.get(holder, token)

    def total_supply(self, token: TokenId) -> Amount:
        self._require_token(token)
        return self._balances.total(token)

    def allowance(self, owner: Address, spender: Address, token: TokenId) -> Amount:
        return self._allowances.get((owner, spender, token), 0)

    def approve(self, owner: Address, spender: Address, token: TokenId, amount: Amount) -> None:
        self._require_token(token)
        if amount < 0:
            raise ValueError(f"allowance must be non-negative: {amount}")
        if amount == 0:
            self._allowances.pop((owner, spender, token), None)
        else:
            self._allowances[(owner, spender, token)] = amount

    def transfer(self, sender: Address, to: Address, token: TokenId, amount: Amount) -> None:
        self._require_token(token)
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        if self._balances.get(sender, token) < amount:
            raise TransferFailed(code="TRANSFER_AMOUNT_EXCEEDS_BALANCE")
        self._balances.move(token, sender, to, amount)
        self._runtime.charge_gas(GAS_TRANSFER)

    def transfer_from(self, spender: Address, owner: Address, to: Address, token: TokenId, amount: Amount) -> None:
        self._require_token(token)
        allowed = self.allowance(owner, spender, token)
        if allowed < amount:
            raise TransferFailed(code="TRANSFER_AMOUNT_EXCEEDS_ALLOWANCE")
        self.transfer(owner, to, token, amount)
        self.approve(owner, spender, token, allowed - amount)

    def mint(self, to: Address, token: TokenId, amount: Amount) -> None:
        self._require_token(token)
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        self._balances.add(to, token, amount)

    def burn(self, holder: Address, token: TokenId, amount: Amount) -> None:
        self._require_token(token)
        if self._balances.get(holder, token) < amount:
            raise TransferFailed(code="BURN_AMOUNT_EXCEEDS_BALANCE")
        self._balances.subtract(holder, token, amount)


class WrappedNative:
    """
    Ledger-tracked representation of the native asset.

    The contract address is the wrapped token's id; native value deposited is
    held by the contract and minted 1:1 to the depositor.
    """

    def __init__(self, runtime: "LedgerRuntime", address: Address) -> None:
        self._runtime = runtime
        self.address = address
        runtime.register_contract(address, self)

    def deposit(self, sender: Address, amount: Amount) -> None:
        self._runtime.send_native(sender, self.address, amount)
        self._runtime.tokens.mint(sender, self.address, amount)
        self._runtime.charge_gas(GAS_WRAP)

    def withdraw(self, sender: Address, amount: Amount) -> None:
        self._runtime.tokens.burn(sender, self.address, amount)
        self._runtime.send_native(self.address, sender, amount)

