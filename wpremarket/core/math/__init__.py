"""
Core math modules для W-Pre-market AMM

Математические примитивы sqrt-price пространства с гарантией стабильности.
"""

# Numerical Safeguards
from wpremarket.core.math.numerical_safeguards import (
    # Epsilon constants
    EPS_AMOUNT,
    EPS_FLOAT_COMPARE_REL,
    # NaN/Inf
    ensure_finite,
    is_valid_float,
    # Epsilon comparisons
    is_positive,
    # Utilities
    clamp,
    # Validation
    validate_non_negative_amount,
    validate_positive_amount,
    validate_price_range,
)

# Price Math
from wpremarket.core.math.price_math import (
    base_amount,
    base_delta,
    liquidity,
    pre_token_amount,
    pre_token_delta,
    price_from_reserves,
    sqrt_price_after_base_in,
    sqrt_price_after_pre_token_in,
)

__all__ = [
    # Numerical Safeguards — Epsilon constants
    "EPS_AMOUNT",
    "EPS_FLOAT_COMPARE_REL",
    # Numerical Safeguards — NaN/Inf
    "ensure_finite",
    "is_valid_float",
    # Numerical Safeguards — Epsilon comparisons
    "is_positive",
    # Numerical Safeguards — Utilities
    "clamp",
    # Numerical Safeguards — Validation
    "validate_non_negative_amount",
    "validate_positive_amount",
    "validate_price_range",
    # Price Math — Amounts
    "base_amount",
    "liquidity",
    "pre_token_amount",
    "price_from_reserves",
    # Price Math — sqrt-price steps
    "base_delta",
    "pre_token_delta",
    "sqrt_price_after_base_in",
    "sqrt_price_after_pre_token_in",
]
