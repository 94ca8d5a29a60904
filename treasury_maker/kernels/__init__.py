"""
Kernel layer.

`treasury_maker/kernels/python/` holds the deterministic pricing kernels of the
venues the maker routes through. The core never re-implements venue math; it
calls these kernels (directly for quotes, indirectly through the venues for
execution) so estimates and executions agree to the last unit.
"""
