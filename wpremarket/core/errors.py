"""
Errors — Таксономия ошибок AMM

Все ошибки синхронные и видимы вызывающему коду. Ни одна операция не
повторяется внутри движка. Любой путь ошибки оставляет состояние pool и
ledger без изменений (strong exception safety).

Иерархия:
    AMMError
    ├── InvalidRange              (Pa >= Pb, неположительная или NaN/Inf граница)
    ├── NonPositiveAmount         (amount <= 0 или NaN/Inf)
    ├── InsufficientBalance       (баланс аккаунта меньше требуемого)
    ├── SettlementPhaseViolation  (мутация после settlement)
    ├── AlreadyInSettlement       (повторный enter_settlement)
    ├── NoLiquidityAvailable      (нет позиции в требуемом направлении цены)
    ├── PoolNotFound / PoolAlreadyExists
    ├── PositionNotFound
    ├── ReservedAccount           (LP или трейдер совпадает с аккаунтом pool)
    └── NonFiniteResult           (вычисление дало NaN/Inf)
"""


class AMMError(Exception):
    """Базовая ошибка W-Pre-market AMM."""


class InvalidRange(AMMError, ValueError):
    """Невалидный ценовой диапазон: требуется 0 < Pa < Pb (конечные значения)."""


class NonPositiveAmount(AMMError, ValueError):
    """Количество токенов должно быть конечным и строго положительным."""


class InsufficientBalance(AMMError):
    """Недостаточно средств на аккаунте для операции."""


class SettlementPhaseViolation(AMMError):
    """
    Операция запрещена после перехода pool в SETTLED.

    add_liquidity и оба swap никогда не включаются обратно.
    """


class AlreadyInSettlement(AMMError):
    """Pool уже находится в settlement phase (переход допускается один раз)."""


class NoLiquidityAvailable(AMMError):
    """Нет ликвидности в требуемом направлении движения цены."""


class PoolNotFound(AMMError, KeyError):
    """Pool с указанным идентификатором не зарегистрирован."""

    def __str__(self) -> str:
        # KeyError.__str__ оборачивает сообщение в кавычки
        return Exception.__str__(self)


class PoolAlreadyExists(AMMError):
    """Pool для данной пары (base, pre-token) уже создан."""


class PositionNotFound(AMMError, KeyError):
    """LP позиция с указанным id отсутствует в pool."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class NonFiniteResult(AMMError, ArithmeticError):
    """Вычисление дало NaN/Inf — результат отклонён."""


class ReservedAccount(AMMError, ValueError):
    """Аккаунт pool не может выступать LP или трейдером своего pool."""
