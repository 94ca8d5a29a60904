"""
Multi-token balance tracking with deterministic ordering.

Implements BalanceTable[Address, TokenId] -> Amount
"""

from typing import Dict, Iterator, Tuple


# Type aliases
Address = str  # account or contract address (0x-prefixed hex)
TokenId = str  # token contract address (0x-prefixed hex)
Amount = int  # Non-negative integer (arbitrary precision, smallest unit)

# Sentinel for the runtime's native value asset. It is never a ledger token.
NATIVE_ASSET = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

ZERO_ADDRESS = "0x" + "00" * 20


class BalanceTable:
    """
    Deterministic balance table mapping (holder, token) -> amount.

    Note: this class stores balances in a plain dict. Do not rely on dict
    iteration order; `iter_sorted()` yields entries in a stable order.
    """

    def __init__(self):
        """Initialize empty balance table."""
        self._balances: Dict[Tuple[Address, TokenId], Amount] = {}

    def get(self, holder: Address, token: TokenId) -> Amount:
        """Get balance for (holder, token). Returns 0 if not found."""
        return self._balances.get((holder, token), 0)

    def set(self, holder: Address, token: TokenId, amount: Amount) -> None:
        """
        Set balance for (holder, token).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((holder, token), None)
        else:
            self._balances[(holder, token)] = amount

    def add(self, holder: Address, token: TokenId, delta: Amount) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(holder, token)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(holder, token, new_balance)

    def subtract(self, holder: Address, token: TokenId, delta: Amount) -> None:
        """
        Subtract a non-negative delta from balance.

        Raises:
            ValueError: If delta is negative or balance is insufficient
        """
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(holder, token, -delta)

    def move(self, token: TokenId, src: Address, dst: Address, amount: Amount) -> None:
        """Move `amount` of `token` from `src` to `dst` (all-or-nothing)."""
        if amount < 0:
            raise ValueError(f"Amount must be non-negative: {amount}")
        self.subtract(src, token, amount)
        self.add(dst, token, amount)

    def total(self, token: TokenId) -> Amount:
        """Sum of all balances of `token`."""
        return sum(amount for (_h, t), amount in self._balances.items() if t == token)

    def iter_sorted(self) -> Iterator[Tuple[Address, TokenId, Amount]]:
        for (holder, token) in sorted(self._balances):
            yield holder, token, self._balances[(holder, token)]

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
