# [TESTER] v1

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import given, settings

from tidepool.core import oracle
from tidepool.core.log_compression import WAD


@settings(max_examples=500, deadline=None)
@given(
    prev=st.integers(min_value=10**6, max_value=10**30),
    raw=st.integers(min_value=10**6, max_value=10**30),
    t=st.integers(min_value=0, max_value=10**6),
    rate=st.integers(min_value=1, max_value=WAD // 100),
    per_trade=st.integers(min_value=1, max_value=WAD // 10),
)
def test_clamped_move_never_exceeds_the_bound(prev: int, raw: int, t: int, rate: int, per_trade: int) -> None:
    bound = min(rate * t, per_trade)
    clamped = oracle.clamp_change(raw, prev, t, max_change_rate=rate, max_change_per_trade=per_trade)
    assert oracle.percent_delta(clamped, prev) <= bound
    if oracle.percent_delta(raw, prev) <= bound:
        assert clamped == raw
    else:
        # Moves toward the raw price, never past it.
        assert min(prev, raw) <= clamped <= max(prev, raw)
