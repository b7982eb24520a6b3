"""
Dual raw/clamped price oracle.

The module is pure:
- The functional core decides what the next observation looks like.
- The pool ledger owns the ring buffer and calls `record()` after every reserve update.

Two time-weighted accumulators run side by side. The *raw* one follows the spot
price straight from the curve; the *clamped* one may move at most
`min(max_change_rate * t, max_change_per_trade)` (as a fraction of the previous
clamped price) per write.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..state.observations import Observation, ObservationBuffer, acc_delta, elapsed, to_block_timestamp, wrap_acc
from .log_compression import WAD, clamp_price, from_low_res_log, to_low_res_log

logger = logging.getLogger(__name__)

MAX_CHANGE_RATE_LIMIT = WAD // 100
MAX_CHANGE_PER_TRADE_LIMIT = WAD // 10


def validate_clamp_params(max_change_rate: int, max_change_per_trade: int) -> None:
    if not (0 < max_change_rate <= MAX_CHANGE_RATE_LIMIT):
        raise ValueError(f"max_change_rate must be in (0, {MAX_CHANGE_RATE_LIMIT}]: {max_change_rate}")
    if not (0 < max_change_per_trade <= MAX_CHANGE_PER_TRADE_LIMIT):
        raise ValueError(
            f"max_change_per_trade must be in (0, {MAX_CHANGE_PER_TRADE_LIMIT}]: {max_change_per_trade}"
        )


def percent_delta(a: int, b: int) -> int:
    """`|a - b| / b` with 18 decimals."""
    if b <= 0:
        raise ValueError(f"reference must be positive: {b}")
    return abs(a - b) * WAD // b


def clamp_change(
    raw_price: int,
    prev_clamped_price: int,
    time_elapsed: int,
    *,
    max_change_rate: int,
    max_change_per_trade: int,
) -> int:
    """
    Rate-limit `raw_price` against the previous clamped price.

    The raw price passes through unchanged when its deviation is within both bounds;
    otherwise the clamped price moves by the tighter bound toward the raw price.
    """
    if time_elapsed < 0:
        raise ValueError(f"time_elapsed must be non-negative: {time_elapsed}")
    max_pct = min(max_change_rate * time_elapsed, max_change_per_trade)
    if percent_delta(raw_price, prev_clamped_price) <= max_pct:
        return raw_price
    if raw_price > prev_clamped_price:
        return prev_clamped_price * (WAD + max_pct) // WAD
    # Round toward the previous price so the move never exceeds max_pct.
    return -(-prev_clamped_price * (WAD - max_pct) // WAD)


def _clamped_against(
    reference: Observation | None,
    raw_price: int,
    now: int,
    *,
    max_change_rate: int,
    max_change_per_trade: int,
) -> int:
    if reference is None:
        return raw_price
    prev_clamped = from_low_res_log(reference.log_instant_clamped_price)
    clamped = clamp_change(
        raw_price,
        prev_clamped,
        elapsed(now, reference.timestamp),
        max_change_rate=max_change_rate,
        max_change_per_trade=max_change_per_trade,
    )
    return clamp_price(clamped)


def record(
    buffer: ObservationBuffer,
    raw_price: int,
    timestamp: int,
    *,
    max_change_rate: int,
    max_change_per_trade: int,
) -> Observation:
    """
    Write the oracle for the current block.

    - No observation yet: slot 0, unclamped, zero accumulators.
    - Time has passed since the latest slot: append a new slot; the accumulators
      integrate the latest slot's instantaneous prices over the elapsed time.
    - Same block: only the latest slot's instantaneous prices are refreshed, clamped
      against the slot before it.
    """
    now = to_block_timestamp(timestamp)
    raw_price = clamp_price(raw_price)
    log_raw = to_low_res_log(raw_price)
    latest = buffer.latest()

    if latest is None:
        obs = Observation(
            log_instant_raw_price=log_raw,
            log_instant_clamped_price=log_raw,
            timestamp=now,
        )
        buffer.append(obs)
        logger.debug("oracle: first observation log_price=%d ts=%d", log_raw, now)
        return obs

    time_elapsed = elapsed(now, latest.timestamp)
    if time_elapsed > 0:
        clamped = _clamped_against(
            latest, raw_price, now, max_change_rate=max_change_rate, max_change_per_trade=max_change_per_trade
        )
        obs = Observation(
            log_instant_raw_price=log_raw,
            log_instant_clamped_price=to_low_res_log(clamped),
            log_acc_raw_price=wrap_acc(latest.log_acc_raw_price + latest.log_instant_raw_price * time_elapsed),
            log_acc_clamped_price=wrap_acc(
                latest.log_acc_clamped_price + latest.log_instant_clamped_price * time_elapsed
            ),
            timestamp=now,
        )
        index = buffer.append(obs)
        logger.debug("oracle: append slot=%d log_raw=%d log_clamped=%d", index, log_raw, obs.log_instant_clamped_price)
        return obs

    clamped = _clamped_against(
        buffer.previous(), raw_price, now, max_change_rate=max_change_rate, max_change_per_trade=max_change_per_trade
    )
    obs = replace(latest, log_instant_raw_price=log_raw, log_instant_clamped_price=to_low_res_log(clamped))
    buffer.replace_latest(obs)
    return obs


def time_weighted_log_price(newer: Observation, older: Observation, *, clamped: bool = True) -> int:
    """Average compressed log price between two observations (rounded down)."""
    dt = elapsed(newer.timestamp, older.timestamp)
    if dt == 0:
        raise ValueError("observations share a timestamp")
    if clamped:
        return acc_delta(newer.log_acc_clamped_price, older.log_acc_clamped_price) // dt
    return acc_delta(newer.log_acc_raw_price, older.log_acc_raw_price) // dt


def time_weighted_price(newer: Observation, older: Observation, *, clamped: bool = True) -> int:
    """Geometric time-weighted average price (wad) between two observations."""
    return from_low_res_log(time_weighted_log_price(newer, older, clamped=clamped))
