"""
Gas schedule of the in-process runtime.

Units are abstract; keeper compensation only depends on the totals a poke
accumulates, priced at the caller's (capped) gas price.
"""

GAS_CALL_BASE = 21_000
GAS_TRANSFER = 30_000
GAS_WRAP = 25_000
GAS_SWAP_HOP = 60_000
GAS_BASKET_EXIT = 90_000
