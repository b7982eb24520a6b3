"""
Factory configuration store.

Pairs read their defaults (fees, fee recipient, recoverer, oracle clamp
parameters, initial amplification) through `FactoryConfig.read(key)` with dotted
keys grouped by curve:

    cp.swap_fee                       constant-product default swap fee (ppm)
    sp.swap_fee                       stable default swap fee (ppm)
    sp.amplification_coefficient      initial raw A for new stable pairs
    shared.platform_fee               platform fee (ppm of invariant growth)
    shared.platform_fee_to            recipient of platform-fee shares
    shared.recoverer                  recipient of recovered stray tokens
    shared.max_change_rate            oracle clamp, wad per second
    shared.max_change_per_trade       oracle clamp, wad per write
    shared.oracle_capacity            observation ring-buffer slots

Values come from the dataclass defaults, a YAML file (`load_config`) and
`TIDEPOOL_*` environment variables (`config_from_env`), in that order.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .core.fees import validate_platform_fee, validate_swap_fee
from .core.oracle import validate_clamp_params
from .core.stableswap import validate_raw_a
from .state.balances import Address, ZERO_ADDRESS

ENV_PREFIX = "TIDEPOOL_"
_ADDRESS_FIELDS = ("platform_fee_to", "recoverer")

_KEYS = {
    "cp.swap_fee": "cp_swap_fee",
    "sp.swap_fee": "sp_swap_fee",
    "sp.amplification_coefficient": "amplification_coefficient",
    "shared.platform_fee": "platform_fee",
    "shared.platform_fee_to": "platform_fee_to",
    "shared.recoverer": "recoverer",
    "shared.max_change_rate": "max_change_rate",
    "shared.max_change_per_trade": "max_change_per_trade",
    "shared.oracle_capacity": "oracle_capacity",
}


@dataclass(frozen=True)
class FactoryConfig:
    cp_swap_fee: int = 3_000
    sp_swap_fee: int = 100
    platform_fee: int = 250_000
    platform_fee_to: Address = ZERO_ADDRESS
    recoverer: Address = ZERO_ADDRESS
    amplification_coefficient: int = 1_000
    max_change_rate: int = 5 * 10**14
    max_change_per_trade: int = 3 * 10**16
    oracle_capacity: int = 65_536

    def __post_init__(self) -> None:
        validate_swap_fee(self.cp_swap_fee)
        validate_swap_fee(self.sp_swap_fee)
        validate_platform_fee(self.platform_fee)
        validate_raw_a(self.amplification_coefficient)
        validate_clamp_params(self.max_change_rate, self.max_change_per_trade)
        for name in _ADDRESS_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty address string")
        if not isinstance(self.oracle_capacity, int) or self.oracle_capacity < 2:
            raise ValueError(f"oracle_capacity must be an int >= 2: {self.oracle_capacity}")

    def read(self, key: str) -> Any:
        try:
            return getattr(self, _KEYS[key])
        except KeyError:
            raise KeyError(f"unknown config key: {key!r}") from None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _from_mapping(base: FactoryConfig, obj: Mapping[str, Any]) -> FactoryConfig:
    known = {f.name for f in fields(FactoryConfig)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {unknown}")
    return replace(base, **dict(obj))


def load_config(path: str | Path, *, base: Optional[FactoryConfig] = None) -> FactoryConfig:
    """Read a YAML mapping of `FactoryConfig` field names."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    if not isinstance(obj, Mapping):
        raise TypeError("config YAML must be a mapping")
    return _from_mapping(base or FactoryConfig(), obj)


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip(), 0)
    except ValueError:
        raise ValueError(f"{name} must be an integer: {raw!r}") from None


def _env_str(name: str) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None:
        return None
    v = raw.strip()
    return v if v else None


def config_from_env(base: Optional[FactoryConfig] = None) -> FactoryConfig:
    """Override fields from `TIDEPOOL_<FIELD>` variables (e.g. `TIDEPOOL_CP_SWAP_FEE`)."""
    changes: dict[str, Any] = {}
    for f in fields(FactoryConfig):
        name = ENV_PREFIX + f.name.upper()
        value = _env_str(name) if f.name in _ADDRESS_FIELDS else _env_int(name)
        if value is not None:
            changes[f.name] = value
    return replace(base or FactoryConfig(), **changes)
