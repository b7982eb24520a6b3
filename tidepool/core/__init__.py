"""
Core pool algorithms
"""

from .cpmm import (
    swap_exact_in,
    swap_exact_out,
    compute_lp_mint,
    compute_lp_burn,
)
from .amm_dispatch import StableParams, quote_in, quote_out
from .pair import Pair, SwapResult
from .constant_product_pair import ConstantProductPair
from .stable_pair import StablePair
from .asset_manager import AssetManager
from .factory import Factory

__all__ = [
    "swap_exact_in",
    "swap_exact_out",
    "compute_lp_mint",
    "compute_lp_burn",
    "StableParams",
    "quote_in",
    "quote_out",
    "Pair",
    "SwapResult",
    "ConstantProductPair",
    "StablePair",
    "AssetManager",
    "Factory",
]
