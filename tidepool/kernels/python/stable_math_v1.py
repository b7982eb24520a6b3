"""
StableSwap math kernel for two-asset pools (v1 semantics).

Balances handed to the solvers are *adjusted* balances: native amounts scaled to
18 decimals by the pool's precision multipliers. The amplification argument
`n_a` is always `2 * A_precise` (N * A for N = 2, with `A_PRECISION` baked in).

Invariant (Curve form, N = 2):

    n_a/AP * (x + y) + D = n_a/AP * D + D^3 / (4 * x * y)

Both Newton solvers stop once two successive iterates are within one unit and
raise `NonConvergenceError` after `MAX_LOOP_LIMIT` rounds. Every intermediate is
checked against the 256-bit word ceiling so that a state which would overflow
on-chain fails here as well.
"""

from __future__ import annotations

from dataclasses import dataclass


A_PRECISION = 100
MAX_LOOP_LIMIT = 256
FEE_ACCURACY = 1_000_000
WAD = 10**18

_UINT256_MAX = 2**256 - 1


class StableMathError(ArithmeticError):
    """Base class for stable-curve arithmetic failures."""


class NonConvergenceError(StableMathError):
    """Raised when a Newton iteration does not settle within MAX_LOOP_LIMIT rounds."""


class StableMathOverflow(StableMathError):
    """Raised when an intermediate leaves the 256-bit word range or divides by zero."""


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _word(value: int) -> int:
    if value < 0 or value > _UINT256_MAX:
        raise StableMathOverflow(f"intermediate out of uint256 range: {value}")
    return value


def _div(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise StableMathOverflow("division by zero")
    return _word(numerator) // denominator


def _within1(a: int, b: int) -> bool:
    return abs(a - b) <= 1


def precision_multiplier(decimals: int) -> int:
    """Return `10**(18 - decimals)`; tokens with more than 18 decimals are unsupported."""
    _require_int("decimals", decimals)
    if not (0 <= decimals <= 18):
        raise ValueError(f"decimals must be in [0, 18]: {decimals}")
    return 10 ** (18 - decimals)


def compute_liquidity(xp0: int, xp1: int, n_a: int) -> int:
    """Solve the invariant D for adjusted balances (xp0, xp1)."""
    for name, v in (("xp0", xp0), ("xp1", xp1), ("n_a", n_a)):
        _require_int(name, v)
    if xp0 < 0 or xp1 < 0:
        raise ValueError("balances must be non-negative")
    if n_a <= A_PRECISION:
        raise ValueError(f"n_a must exceed A_PRECISION ({A_PRECISION}): {n_a}")

    s = _word(xp0 + xp1)
    if s == 0:
        return 0

    d = s
    for _ in range(MAX_LOOP_LIMIT):
        d_p = _div(_div(_word(d * d), xp0) * d, xp1) // 4
        prev_d = d
        numerator = _word((_div(_word(n_a * s), A_PRECISION) + 2 * d_p) * d)
        denominator = _word(_div(_word((n_a - A_PRECISION) * d), A_PRECISION) + 3 * d_p)
        d = _div(numerator, denominator)
        if _within1(d, prev_d):
            return d
    raise NonConvergenceError(f"D did not converge for balances ({xp0}, {xp1}) and n_a={n_a}")


def get_y(x: int, d: int, n_a: int) -> int:
    """Solve the invariant for the other adjusted balance given `x` and `d`."""
    for name, v in (("x", x), ("d", d), ("n_a", n_a)):
        _require_int(name, v)
    if x <= 0:
        raise ValueError("x must be positive")
    if d <= 0:
        raise ValueError("d must be positive")

    c = _div(_word(d * d), x * 2)
    c = _div(_word(_word(c * d) * A_PRECISION), n_a * 2)
    b = _word(x + _div(_word(d * A_PRECISION), n_a))

    y = d
    for _ in range(MAX_LOOP_LIMIT):
        y_prev = y
        y = _div(_word(y * y + c), 2 * y + b - d)
        if _within1(y, y_prev):
            return y
    raise NonConvergenceError(f"y did not converge for x={x}, d={d}, n_a={n_a}")


@dataclass(frozen=True)
class StableQuote:
    amount_in: int
    amount_out: int
    invariant: int


def get_amount_out(
    *,
    amount_in: int,
    reserve0: int,
    reserve1: int,
    multiplier0: int,
    multiplier1: int,
    token0_in: bool,
    swap_fee: int,
    n_a: int,
) -> StableQuote:
    """
    Exact-in quote in native units.

    The output is `adjusted_reserve_out - y - 1` (one unit kept by the pool), floored to
    the output token's native precision. Never negative; a zero output is returned as-is.
    """
    for name, v in (
        ("amount_in", amount_in),
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("multiplier0", multiplier0),
        ("multiplier1", multiplier1),
        ("swap_fee", swap_fee),
    ):
        _require_int(name, v)
    if amount_in <= 0:
        raise ValueError("amount_in must be positive")
    if reserve0 <= 0 or reserve1 <= 0:
        raise ValueError("cannot swap against an empty reserve")
    if not (0 <= swap_fee < FEE_ACCURACY):
        raise ValueError(f"swap_fee must be in [0, {FEE_ACCURACY})")

    adjusted0 = reserve0 * multiplier0
    adjusted1 = reserve1 * multiplier1
    fee_deducted = amount_in - (amount_in * swap_fee) // FEE_ACCURACY
    d = compute_liquidity(adjusted0, adjusted1, n_a)

    if token0_in:
        x = adjusted0 + fee_deducted * multiplier0
        y = get_y(x, d, n_a)
        dy = max(adjusted1 - y - 1, 0) // multiplier1
    else:
        x = adjusted1 + fee_deducted * multiplier1
        y = get_y(x, d, n_a)
        dy = max(adjusted0 - y - 1, 0) // multiplier0

    return StableQuote(amount_in=amount_in, amount_out=dy, invariant=d)


def get_amount_in(
    *,
    amount_out: int,
    reserve0: int,
    reserve1: int,
    multiplier0: int,
    multiplier1: int,
    token0_out: bool,
    swap_fee: int,
    n_a: int,
) -> StableQuote:
    """
    Exact-out quote in native units.

    The required input is `F * (x - adjusted_reserve_in) / (F - fee) + 1`, rounded up to
    the input token's native precision.
    """
    for name, v in (
        ("amount_out", amount_out),
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("multiplier0", multiplier0),
        ("multiplier1", multiplier1),
        ("swap_fee", swap_fee),
    ):
        _require_int(name, v)
    if amount_out <= 0:
        raise ValueError("amount_out must be positive")
    if reserve0 <= 0 or reserve1 <= 0:
        raise ValueError("cannot swap against an empty reserve")
    if not (0 <= swap_fee < FEE_ACCURACY):
        raise ValueError(f"swap_fee must be in [0, {FEE_ACCURACY})")

    reserve_out = reserve0 if token0_out else reserve1
    if amount_out >= reserve_out:
        raise ValueError(f"cannot drain full reserve: amount_out ({amount_out}) >= reserve_out ({reserve_out})")

    adjusted0 = reserve0 * multiplier0
    adjusted1 = reserve1 * multiplier1
    d = compute_liquidity(adjusted0, adjusted1, n_a)

    if token0_out:
        y = adjusted0 - amount_out * multiplier0
        x = get_y(y, d, n_a)
        adjusted_in, multiplier_in = adjusted1, multiplier1
    else:
        y = adjusted1 - amount_out * multiplier1
        x = get_y(y, d, n_a)
        adjusted_in, multiplier_in = adjusted0, multiplier0

    if x < adjusted_in:
        raise AssertionError("solved input balance below current reserve")
    dx = (FEE_ACCURACY * (x - adjusted_in)) // (FEE_ACCURACY - swap_fee) + 1
    dx = (dx + multiplier_in - 1) // multiplier_in

    return StableQuote(amount_in=dx, amount_out=amount_out, invariant=d)


def spot_price(xp0: int, xp1: int, n_a: int) -> int:
    """
    Marginal price of token0 denominated in token1 (wad), i.e. `-dy/dx` on the invariant:

        (4*n_a*x^2*y^2 + AP*D^3*y) / (4*n_a*x^2*y^2 + AP*D^3*x)
    """
    if xp0 <= 0 or xp1 <= 0:
        raise ValueError("balances must be positive")
    d = compute_liquidity(xp0, xp1, n_a)
    cross = 4 * n_a * xp0 * xp0 * xp1 * xp1
    d_cubed = A_PRECISION * d * d * d
    return (cross + d_cubed * xp1) * WAD // (cross + d_cubed * xp0)
