"""
Curve kernels: `constant_product_v1` and `stable_math_v1`.

Pure integer functions returning frozen result records. Rounding always favours
the pool.
"""
