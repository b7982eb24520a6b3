"""
Pair factory and registry.

The factory is the only way to create pairs and the only caller pairs accept for
privileged changes; its owner drives those changes through the forwarding
methods below.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import FactoryConfig
from ..state.balances import Address, Token
from ..state.chain import Chain
from ..state.pools import (
    CURVE_TAG_CONSTANT_PRODUCT,
    CURVE_TAG_STABLE,
    AmplificationRamp,
    PoolState,
    compute_pool_id,
    normalize_curve_tag,
    sort_tokens,
)
from .constant_product_pair import ConstantProductPair
from .errors import InvalidParameter, Unauthorized, UnknownPair
from .interfaces import AssetManagerHooks
from .pair import Pair
from .stable_pair import StablePair
from .stableswap import A_PRECISION

logger = logging.getLogger(__name__)

_PAIR_TYPES = {
    CURVE_TAG_CONSTANT_PRODUCT: ConstantProductPair,
    CURVE_TAG_STABLE: StablePair,
}


class Factory:
    def __init__(
        self,
        chain: Chain,
        *,
        owner: Address,
        config: Optional[FactoryConfig] = None,
        address: Address = "0x" + "fa" * 20,
    ) -> None:
        self.chain = chain
        self.owner = owner
        self.address = address
        self.config = config or FactoryConfig()
        self._pairs: Dict[Tuple[Address, Address, str], Pair] = {}
        self._by_address: Dict[Address, Pair] = {}
        self._all_pairs: List[Pair] = []

    def read(self, key: str) -> Any:
        return self.config.read(key)

    def _only_owner(self, caller: Address, action: str) -> None:
        if caller != self.owner:
            raise Unauthorized(action, caller)

    def set_config(self, caller: Address, **changes: Any) -> FactoryConfig:
        """Replace config values; pairs pick them up on `update_*_fee()`."""
        self._only_owner(caller, "set_config")
        self.config = replace(self.config, **changes)
        logger.info("factory: config updated %s", sorted(changes))
        return self.config

    # ------------------------------------------------------------------ registry

    def create_pair(self, token_a: Token, token_b: Token, curve: str = CURVE_TAG_CONSTANT_PRODUCT) -> Pair:
        tag = normalize_curve_tag(curve)
        addr0, addr1 = sort_tokens(token_a.address, token_b.address)
        if (addr0, addr1, tag) in self._pairs:
            raise InvalidParameter(f"pair exists: {addr0}/{addr1} {tag}")
        token0, token1 = (token_a, token_b) if token_a.address == addr0 else (token_b, token_a)

        ramp = None
        if tag == CURVE_TAG_STABLE:
            a_precise = self.read("sp.amplification_coefficient") * A_PRECISION
            ramp = AmplificationRamp.constant(a_precise, self.chain.timestamp)
        state = PoolState(
            pool_id=compute_pool_id(addr0, addr1, curve_tag=tag),
            token0=addr0,
            token1=addr1,
            curve_tag=tag,
            swap_fee=self.read(f"{_PAIR_TYPES[tag].config_prefix}.swap_fee"),
            platform_fee=self.read("shared.platform_fee"),
            max_change_rate=self.read("shared.max_change_rate"),
            max_change_per_trade=self.read("shared.max_change_per_trade"),
            ramp=ramp,
        )
        pair = _PAIR_TYPES[tag](self, token0, token1, state, oracle_capacity=self.read("shared.oracle_capacity"))

        self._pairs[(addr0, addr1, tag)] = pair
        self._by_address[pair.address] = pair
        self._all_pairs.append(pair)
        logger.info("factory: created %s pair %s for %s/%s", tag, pair.address, addr0, addr1)
        return pair

    def get_pair(self, token_a: Address, token_b: Address, curve: str = CURVE_TAG_CONSTANT_PRODUCT) -> Optional[Pair]:
        addr0, addr1 = sort_tokens(token_a, token_b)
        return self._pairs.get((addr0, addr1, normalize_curve_tag(curve)))

    def is_pair(self, pair: Union[Pair, Address]) -> bool:
        if isinstance(pair, str):
            return pair in self._by_address
        return self._by_address.get(getattr(pair, "address", None)) is pair

    @property
    def all_pairs(self) -> List[Pair]:
        return list(self._all_pairs)

    def _pair(self, pair: Pair) -> Pair:
        if not self.is_pair(pair):
            raise UnknownPair(f"{getattr(pair, 'address', pair)} is not a registered pair")
        return pair

    # ------------------------------------------------------------------ privileged forwarding

    def set_manager(self, pair: Pair, manager: Optional[AssetManagerHooks], *, caller: Address) -> None:
        self._only_owner(caller, "set_manager")
        self._pair(pair).set_manager(manager, caller=self.address)

    def set_custom_swap_fee(self, pair: Pair, fee: Optional[int], *, caller: Address) -> None:
        self._only_owner(caller, "set_custom_swap_fee")
        self._pair(pair).set_custom_swap_fee(fee, caller=self.address)

    def set_custom_platform_fee(self, pair: Pair, fee: Optional[int], *, caller: Address) -> None:
        self._only_owner(caller, "set_custom_platform_fee")
        self._pair(pair).set_custom_platform_fee(fee, caller=self.address)

    def set_clamp_params(self, pair: Pair, max_change_rate: int, max_change_per_trade: int, *, caller: Address) -> None:
        self._only_owner(caller, "set_clamp_params")
        self._pair(pair).set_clamp_params(max_change_rate, max_change_per_trade, caller=self.address)

    def ramp_a(self, pair: StablePair, future_a: int, future_time: int, *, caller: Address) -> AmplificationRamp:
        self._only_owner(caller, "ramp_a")
        if not isinstance(self._pair(pair), StablePair):
            raise InvalidParameter(f"{pair.address} is not a stable pair")
        return pair.ramp_a(future_a, future_time, caller=self.address)

    def stop_ramp_a(self, pair: StablePair, *, caller: Address) -> int:
        self._only_owner(caller, "stop_ramp_a")
        if not isinstance(self._pair(pair), StablePair):
            raise InvalidParameter(f"{pair.address} is not a stable pair")
        return pair.stop_ramp_a(caller=self.address)
