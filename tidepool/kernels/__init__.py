"""
Kernel layer.

Integer-only curve kernels used by the pool ledger. `tidepool/kernels/python/`
holds the human-readable implementations; everything above this layer calls them
rather than re-deriving the curve arithmetic.
"""
