"""
State management for Tidepool pools
"""

from .balances import Address, Amount, InsufficientBalance, Token, ZERO_ADDRESS
from .chain import Chain
from .lp import LPTable
from .observations import Observation, ObservationBuffer
from .pools import CURVE_TAG_CONSTANT_PRODUCT, CURVE_TAG_STABLE, AmplificationRamp, PoolState

__all__ = [
    "Address",
    "Amount",
    "InsufficientBalance",
    "Token",
    "ZERO_ADDRESS",
    "Chain",
    "LPTable",
    "Observation",
    "ObservationBuffer",
    "CURVE_TAG_CONSTANT_PRODUCT",
    "CURVE_TAG_STABLE",
    "AmplificationRamp",
    "PoolState",
]
