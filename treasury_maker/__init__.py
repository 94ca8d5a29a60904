"""
Treasury auto-conversion engine.

Accumulates token balances sent by a client protocol and converts them into a
fixed amount of a target token for a beneficiary, triggered by keepers.
"""

__version__ = "0.1.0"
