"""
Low-resolution logarithmic price encoding.

Prices are 18-decimal fixed-point values. They are stored as

    round(ln(price / 1e18) * 1e4)

(ties away from zero), i.e. natural-log space with four decimal places. Inside the
supported price range every encoded value fits comfortably in 24 bits, so
`encoded * elapsed_seconds` accumulates for years without leaving the 88-bit
accumulator range.

`decimal` with a fixed context keeps the logarithm and exponential exact to the
last stored digit on every platform.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Context, Decimal

WAD = 10**18
LOG_COMPRESSION_FACTOR = 10**14

MIN_SUPPORTED_PRICE = 100
MAX_SUPPORTED_PRICE = 2**128 - 1

# Natural-exponent bounds of the decoder, in compressed units.
MIN_NATURAL_EXPONENT = -41 * 10**4
MAX_NATURAL_EXPONENT = 130 * 10**4

_CTX = Context(prec=60)
_WAD_DEC = Decimal(WAD)
_SCALE = Decimal(WAD // LOG_COMPRESSION_FACTOR)


def to_low_res_log(value: int) -> int:
    """Encode a positive wad price as a rounded `ln(price) * 1e4`."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError("value must be an int")
    if value <= 0:
        raise ValueError(f"cannot take the log of a non-positive value: {value}")
    ln = _CTX.ln(_CTX.divide(Decimal(value), _WAD_DEC))
    return int(_CTX.multiply(ln, _SCALE).quantize(Decimal(1), rounding=ROUND_HALF_UP, context=_CTX))


def from_low_res_log(value: int) -> int:
    """Decode a compressed log back into a wad price (rounded down)."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError("value must be an int")
    if not (MIN_NATURAL_EXPONENT <= value <= MAX_NATURAL_EXPONENT):
        raise ValueError(f"compressed log outside [{MIN_NATURAL_EXPONENT}, {MAX_NATURAL_EXPONENT}]: {value}")
    exp = _CTX.exp(_CTX.divide(Decimal(value), _SCALE))
    return int(_CTX.multiply(exp, _WAD_DEC).to_integral_value(rounding=ROUND_FLOOR, context=_CTX))


def clamp_price(price: int) -> int:
    """Bound a wad price to the range the oracle can encode."""
    return min(max(price, MIN_SUPPORTED_PRICE), MAX_SUPPORTED_PRICE)


MIN_LOG_PRICE = to_low_res_log(MIN_SUPPORTED_PRICE)
MAX_LOG_PRICE = to_low_res_log(MAX_SUPPORTED_PRICE)
