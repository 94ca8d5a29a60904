"""
Weighted-pool fixed-point kernel.

Integer-only 18-decimal fixed-point arithmetic as used by weighted multi-token
(basket) pools, plus the two single-token exit formulas the treasury maker
relies on:

- `calc_single_out_given_pool_in`: tokens received for burning pool shares;
- `calc_pool_in_given_single_out`: pool shares to burn for an exact token amount.

Rounding is half-up on every multiplication/division and fractional powers use
the truncated binomial series of `bpow_approx`. Every step must be reproduced
exactly: estimates and exits share these functions, and the amounts they
compute are consensus-visible balances.
"""

from __future__ import annotations

from typing import Tuple

from ...errors import BasketError


BONE = 10**18

MIN_BPOW_BASE = 1
MAX_BPOW_BASE = 2 * BONE - 1
BPOW_PRECISION = BONE // 10**10

MAX_OUT_RATIO = BONE // 3 + 1
# Pool-level exit fee, fixed at zero; the community exit fee is applied by the pool.
EXIT_FEE = 0


def btoi(a: int) -> int:
    return a // BONE


def bfloor(a: int) -> int:
    return btoi(a) * BONE


def badd(a: int, b: int) -> int:
    return a + b


def bsub(a: int, b: int) -> int:
    c, negative = bsub_sign(a, b)
    if negative:
        raise BasketError(code="ERR_SUB_UNDERFLOW")
    return c


def bsub_sign(a: int, b: int) -> Tuple[int, bool]:
    if a >= b:
        return a - b, False
    return b - a, True


def bmul(a: int, b: int) -> int:
    return (a * b + BONE // 2) // BONE


def bdiv(a: int, b: int) -> int:
    if b == 0:
        raise BasketError(code="ERR_DIV_ZERO")
    return (a * BONE + b // 2) // b


def bpowi(a: int, n: int) -> int:
    """`a ** n` for a whole exponent, by squaring."""
    z = a if n % 2 != 0 else BONE
    n //= 2
    while n != 0:
        a = bmul(a, a)
        if n % 2 != 0:
            z = bmul(z, a)
        n //= 2
    return z


def bpow(base: int, exp: int) -> int:
    """
    `base ** exp` for fixed-point base and exponent.

    The whole part of the exponent is computed exactly with `bpowi`, the
    fractional remainder with `bpow_approx`.
    """
    if base < MIN_BPOW_BASE:
        raise BasketError(code="ERR_BPOW_BASE_TOO_LOW")
    if base > MAX_BPOW_BASE:
        raise BasketError(code="ERR_BPOW_BASE_TOO_HIGH")

    whole = bfloor(exp)
    remain = bsub(exp, whole)
    whole_pow = bpowi(base, btoi(whole))
    if remain == 0:
        return whole_pow
    partial = bpow_approx(base, remain, BPOW_PRECISION)
    return bmul(whole_pow, partial)


def bpow_approx(base: int, exp: int, precision: int) -> int:
    # Binomial series of (1 + x)^a, x = base - 1, stopped once a term is below precision.
    a = exp
    x, xneg = bsub_sign(base, BONE)
    term = BONE
    total = term
    negative = False

    i = 1
    while term >= precision:
        big_k = i * BONE
        c, cneg = bsub_sign(a, bsub(big_k, BONE))
        term = bmul(term, bmul(c, x))
        term = bdiv(term, big_k)
        if term == 0:
            break
        if xneg:
            negative = not negative
        if cneg:
            negative = not negative
        if negative:
            total = bsub(total, term)
        else:
            total = badd(total, term)
        i += 1
    return total


def calc_single_out_given_pool_in(
    *,
    token_balance_out: int,
    token_weight_out: int,
    pool_supply: int,
    total_weight: int,
    pool_amount_in: int,
    swap_fee: int,
) -> int:
    """
    Tokens received for burning `pool_amount_in` shares into a single token.

        normalized   = w_out / w_total
        pool_ratio   = (supply - pool_in) / supply
        token_ratio  = pool_ratio ** (1 / normalized)
        before_fee   = balance_out - token_ratio * balance_out
        amount_out   = before_fee * (1 - (1 - normalized) * swap_fee)
    """
    normalized_weight = bdiv(token_weight_out, total_weight)
    pool_amount_in_after_exit_fee = bmul(pool_amount_in, bsub(BONE, EXIT_FEE))
    new_pool_supply = bsub(pool_supply, pool_amount_in_after_exit_fee)
    pool_ratio = bdiv(new_pool_supply, pool_supply)

    token_out_ratio = bpow(pool_ratio, bdiv(BONE, normalized_weight))
    new_token_balance_out = bmul(token_out_ratio, token_balance_out)

    token_amount_out_before_swap_fee = bsub(token_balance_out, new_token_balance_out)

    zaz = bmul(bsub(BONE, normalized_weight), swap_fee)
    return bmul(token_amount_out_before_swap_fee, bsub(BONE, zaz))


def calc_pool_in_given_single_out(
    *,
    token_balance_out: int,
    token_weight_out: int,
    pool_supply: int,
    total_weight: int,
    token_amount_out: int,
    swap_fee: int,
) -> int:
    """
    Pool shares to burn to receive exactly `token_amount_out` of one token.

    Inverse of `calc_single_out_given_pool_in` (up to fixed-point rounding).
    """
    normalized_weight = bdiv(token_weight_out, total_weight)
    zoo = bsub(BONE, normalized_weight)
    zar = bmul(zoo, swap_fee)
    token_amount_out_before_swap_fee = bdiv(token_amount_out, bsub(BONE, zar))

    new_token_balance_out = bsub(token_balance_out, token_amount_out_before_swap_fee)
    token_out_ratio = bdiv(new_token_balance_out, token_balance_out)

    pool_ratio = bpow(token_out_ratio, normalized_weight)
    new_pool_supply = bmul(pool_ratio, pool_supply)
    pool_amount_in_after_exit_fee = bsub(pool_supply, new_pool_supply)

    return bdiv(pool_amount_in_after_exit_fee, bsub(BONE, EXIT_FEE))
