"""Exception types for the pool ledger and asset manager.

Three families:

- ``InvariantViolation``: a ledger bound was about to be broken. Always fatal.
- ``PolicyError``: the call was rejected for an expected reason the caller can branch on.
- ``TransferFailed``: a token transfer out of the pool could not be honoured, even after
  asking the asset manager to return parked funds.

Stable-curve arithmetic failures are raised by the kernel as
``tidepool.kernels.python.stable_math_v1.StableMathError`` and are fatal as well,
except inside the burn-path platform-fee computation.
"""

from __future__ import annotations


class TidepoolError(Exception):
    """Base class for ledger errors."""


class InvariantViolation(TidepoolError):
    """Raised when a post-state would violate a ledger invariant."""


class ReserveOverflow(InvariantViolation):
    """Raised when a reserve or balance would exceed the 104-bit ceiling."""


class ShareMismatch(InvariantViolation):
    """Raised when a vault burns a different number of shares than it quoted."""


class ManagedBalanceError(InvariantViolation):
    """Raised when managed amounts would go negative or exceed reserves."""


class PolicyError(TidepoolError):
    """Raised when a call is rejected by policy."""


class InsufficientLiquidity(PolicyError):
    """Exact-out request for at least the whole reserve, or a swap against an empty pool."""


class InsufficientLiquidityMinted(PolicyError):
    pass


class InsufficientLiquidityBurned(PolicyError):
    pass


class InsufficientOutputAmount(PolicyError):
    """The trade is too small to produce any output."""


class InsufficientAmountIn(PolicyError):
    """The pool did not receive the input a swap required."""


class ZeroAmount(PolicyError):
    pass


class AmountOverflow(PolicyError):
    """An amount argument does not fit the 104-bit range."""


class InvalidThresholds(PolicyError):
    pass


class InvalidParameter(PolicyError, ValueError):
    pass


class Unauthorized(PolicyError):
    def __init__(self, action: str, caller: str) -> None:
        self.action = action
        self.caller = caller
        super().__init__(f"{caller} is not allowed to {action}")


class ReentrantCall(PolicyError):
    """Raised when a locked component is entered again within the same call stack."""


class UnknownPair(PolicyError):
    pass


class VaultInUse(PolicyError):
    """The vault for an asset cannot change while shares are outstanding."""


class TransferFailed(TidepoolError):
    """Raised when a token transfer out of a pool fails."""
