"""
PriceMath — Конверсии base-token ↔ sqrt-price пространство

Чистые функции без состояния. Формулы concentrated liquidity линейны в
пространстве sqrt(P), поэтому все вычисления выполняются через √Pa, √Pb, √P.

ФОРМУЛЫ:
    L = x / (1/√Pa − 1/√Pb) = x·√Pa·√Pb / (√Pb − √Pa)
    y = x·(√Pb − √Pa) / (1/√Pa − 1/√Pb) = x·√(Pa·Pb)
    x = y·(1/√Pa − 1/√Pb) / (√Pb − √Pa) = y / √(Pa·Pb)

    Шаг внутри одного диапазона с ликвидностью L:
    base in:      √P_new = √P + Δbase / L
    pre-token in: √P_new = 1 / (Δpre / L + 1/√P)
    Δbase = L·(√P_b − √P_a)
    Δpre  = L·(1/√P_a − 1/√P_b)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Невалидный диапазон (Pa <= 0, Pb <= 0, Pa >= Pb) → InvalidRange
2. pre_token_amount вычисляется через тождество x·√(Pa·Pb) (численная согласованность)
3. NaN/Inf результаты отклоняются (NonFiniteResult)
"""

import math

from wpremarket.core.math.numerical_safeguards import (
    ensure_finite,
    validate_non_negative_amount,
    validate_positive_amount,
    validate_price_range,
)


# =============================================================================
# LIQUIDITY / AMOUNTS
# =============================================================================


def liquidity(base_amount: float, lower_price: float, upper_price: float) -> float:
    """
    Константа ликвидности для депозита base_amount в диапазоне [Pa, Pb].

    L = x / (1/√Pa − 1/√Pb)

    Args:
        base_amount: Количество base token (x >= 0)
        lower_price: Нижняя граница Pa
        upper_price: Верхняя граница Pb

    Returns:
        Ликвидность L

    Raises:
        InvalidRange: Если диапазон невалиден
        NonPositiveAmount: Если base_amount < 0 или NaN/Inf

    Examples:
        >>> round(liquidity(5000.0, 1.0, 5.0), 2)
        9045.34
    """
    validate_price_range(lower_price, upper_price)
    validate_non_negative_amount(base_amount, "base_amount")

    sqrt_pa = math.sqrt(lower_price)
    sqrt_pb = math.sqrt(upper_price)

    return ensure_finite(base_amount / (1.0 / sqrt_pa - 1.0 / sqrt_pb), "liquidity")


def pre_token_amount(base_amount: float, lower_price: float, upper_price: float) -> float:
    """
    Количество pre-token, минтируемое при депозите base_amount.

    y = x·(√Pb − √Pa) / (1/√Pa − 1/√Pb), что точно упрощается до x·√(Pa·Pb).
    Используется упрощённая форма: тесты численной согласованности
    сравнивают результат именно с x·√(Pa·Pb).

    Examples:
        >>> round(pre_token_amount(5000.0, 1.0, 5.0), 2)
        11180.34
    """
    validate_price_range(lower_price, upper_price)
    validate_non_negative_amount(base_amount, "base_amount")

    return ensure_finite(
        base_amount * math.sqrt(lower_price * upper_price), "pre_token_amount"
    )


def base_amount(pre_amount: float, lower_price: float, upper_price: float) -> float:
    """
    Обратная конверсия: pre-token → base token.

    x = y·(1/√Pa − 1/√Pb) / (√Pb − √Pa) = y / √(Pa·Pb)
    """
    validate_price_range(lower_price, upper_price)
    validate_non_negative_amount(pre_amount, "pre_amount")

    return ensure_finite(pre_amount / math.sqrt(lower_price * upper_price), "base_amount")


def price_from_reserves(
    base_reserve: float,
    pre_token_reserve: float,
    lower_price: float,
    upper_price: float,
) -> float:
    """
    Цена одиночного диапазона по резервам.

    - pre_token_reserve == 0 → Pa
    - base_reserve == 0 → Pb
    - иначе L из base_reserve и √P = pre_token_reserve / L + √Pa

    Returns:
        Цена P (не sqrt)
    """
    validate_price_range(lower_price, upper_price)
    validate_non_negative_amount(base_reserve, "base_reserve")
    validate_non_negative_amount(pre_token_reserve, "pre_token_reserve")

    if pre_token_reserve == 0:
        return lower_price
    if base_reserve == 0:
        return upper_price

    range_liquidity = liquidity(base_reserve, lower_price, upper_price)
    sqrt_price = pre_token_reserve / range_liquidity + math.sqrt(lower_price)

    return ensure_finite(sqrt_price * sqrt_price, "price")


# =============================================================================
# SQRT-PRICE ШАГИ (используются routing)
# =============================================================================


def sqrt_price_after_base_in(sqrt_price: float, range_liquidity: float, amount_in: float) -> float:
    """√P_new = √P + Δbase / L (цена растёт)."""
    validate_positive_amount(range_liquidity, "liquidity")
    return ensure_finite(sqrt_price + amount_in / range_liquidity, "sqrt_price")


def sqrt_price_after_pre_token_in(
    sqrt_price: float, range_liquidity: float, amount_in: float
) -> float:
    """√P_new = 1 / (Δpre / L + 1/√P) (цена падает)."""
    validate_positive_amount(range_liquidity, "liquidity")
    validate_positive_amount(sqrt_price, "sqrt_price")
    return ensure_finite(
        1.0 / (amount_in / range_liquidity + 1.0 / sqrt_price), "sqrt_price"
    )


def base_delta(range_liquidity: float, sqrt_price_a: float, sqrt_price_b: float) -> float:
    """Δbase = L·|√P_b − √P_a|."""
    return ensure_finite(range_liquidity * abs(sqrt_price_b - sqrt_price_a), "base_delta")


def pre_token_delta(range_liquidity: float, sqrt_price_a: float, sqrt_price_b: float) -> float:
    """Δpre = L·|1/√P_a − 1/√P_b|."""
    return ensure_finite(
        range_liquidity * abs(1.0 / sqrt_price_a - 1.0 / sqrt_price_b), "pre_token_delta"
    )
