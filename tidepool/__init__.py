"""
Tidepool: two-asset AMM pools (constant product and StableSwap) with a clamped
log-price oracle and an asset manager that lends idle reserves to yield vaults.
"""

from .state import Chain, Token
from .core import AssetManager, ConstantProductPair, Factory, StablePair
from .config import FactoryConfig, config_from_env, load_config

__all__ = [
    "FactoryConfig",
    "config_from_env",
    "load_config",
    "AssetManager",
    "ConstantProductPair",
    "Factory",
    "StablePair",
    "Chain",
    "Token",
]
