"""
Numerical Safeguards — Safe Math Primitives

Модуль обеспечивает численную устойчивость вычислений в sqrt-price пространстве:
- Epsilon-параметры для количеств токенов и цен
- NaN/Inf проверки (ни один публичный результат не может быть NaN/Inf)
- Epsilon-защиты для сравнений float с учётом машинной точности
- Валидация входных количеств и ценовых границ

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. NaN/Inf никогда не пропагируют (NonFiniteResult вместо тихой замены)
2. Float сравнения всегда учитывают машинную точность
3. Все операции детерминированы и воспроизводимы
"""

import math
from typing import Final

from wpremarket.core.errors import InvalidRange, NonFiniteResult, NonPositiveAmount

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Epsilon для количеств токенов (base и pre-token)
# Остаток swap ниже этого порога считается полностью исполненным
EPS_AMOUNT: Final[float] = 1e-12

# Относительная толерантность при сравнении выхода swap с резервом
EPS_FLOAT_COMPARE_REL: Final[float] = 1e-9


# =============================================================================
# NaN/Inf ПРОВЕРКИ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """
    Проверка, является ли float валидным (не NaN, не Inf).

    Args:
        value: Проверяемое значение

    Returns:
        True если значение валидное (finite), False если NaN или Inf
    """
    return math.isfinite(value)


def ensure_finite(value: float, name: str) -> float:
    """
    Гарантия конечности результата вычисления.

    В отличие от санитизации, значение не заменяется fallback:
    невалидный результат означает ошибку модели и прерывает операцию.

    Args:
        value: Результат вычисления
        name: Имя величины (для сообщения об ошибке)

    Returns:
        value без изменений

    Raises:
        NonFiniteResult: Если value равно NaN или ±Inf

    Examples:
        >>> ensure_finite(1.5, "liquidity")
        1.5
    """
    if not is_valid_float(value):
        raise NonFiniteResult(f"{name} is not finite: {value}")
    return value


# =============================================================================
# EPSILON-СРАВНЕНИЯ FLOAT
# =============================================================================


def is_positive(value: float, tol: float = EPS_AMOUNT) -> bool:
    """True если value > tol (остаток ещё не исчерпан)."""
    return value > tol


def clamp(
    value: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """
    Ограничение значения в заданном диапазоне.

    Examples:
        >>> clamp(5.0, 0.0, 10.0)
        5.0
        >>> clamp(-1.0, 0.0, 10.0)
        0.0
        >>> clamp(15.0, None, 10.0)
        10.0
    """
    result = value

    if min_value is not None:
        result = max(result, min_value)

    if max_value is not None:
        result = min(result, max_value)

    return result


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_positive_amount(value: float, name: str) -> None:
    """
    Валидация, что количество токенов конечное и строго положительное.

    Args:
        value: Проверяемое количество
        name: Имя параметра (для сообщения об ошибке)

    Raises:
        NonPositiveAmount: Если value <= 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise NonPositiveAmount(f"{name} must be a finite number, got {value}")

    if value <= 0:
        raise NonPositiveAmount(f"{name} must be positive, got {value}")


def validate_non_negative_amount(value: float, name: str) -> None:
    """
    Валидация, что количество конечное и неотрицательное.

    Raises:
        NonPositiveAmount: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise NonPositiveAmount(f"{name} must be a finite number, got {value}")

    if value < 0:
        raise NonPositiveAmount(f"{name} must be non-negative, got {value}")


def validate_price_range(lower_price: float, upper_price: float) -> None:
    """
    Валидация ценового диапазона [Pa, Pb].

    Требования: обе границы конечны, 0 < Pa < Pb.

    Raises:
        InvalidRange: Если диапазон невалиден
    """
    if not (is_valid_float(lower_price) and is_valid_float(upper_price)):
        raise InvalidRange(
            f"Invalid price range [{lower_price}, {upper_price}]: bounds must be finite"
        )

    if lower_price <= 0 or upper_price <= 0 or lower_price >= upper_price:
        raise InvalidRange(
            f"Invalid price range [{lower_price}, {upper_price}]: "
            f"Pa must be less than Pb and both must be positive"
        )
