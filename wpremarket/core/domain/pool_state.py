"""
PoolState — Снапшот состояния pool и структурированные события

Immutable Pydantic модели:
- PoolPhase: фаза pool (TRADING → SETTLED)
- PoolEvent: событие, которое pool отправляет подписчикам после commit
- PoolState: полный снапшот pool (резервы, цена, фаза, позиции)

Модели сериализуются в JSON (model_dump(mode="json")) и соответствуют
схемам из wpremarket/core/contracts/schema/.
"""

from enum import Enum
from typing import Union

from pydantic import BaseModel, Field

from .position import Position


# =============================================================================
# ENUMS
# =============================================================================


class PoolPhase(str, Enum):
    """
    Фаза pool.

    TRADING — начальная фаза, разрешены add_liquidity и swap.
    SETTLED — терминальная фаза после TGE, все мутации запрещены.
    """

    TRADING = "TRADING"
    SETTLED = "SETTLED"


class EventType(str, Enum):
    """Тип события pool."""

    POOL_CREATED = "pool_created"
    LIQUIDITY_ADDED = "liquidity_added"
    SWAP_EXECUTED = "swap_executed"
    SETTLEMENT_ENTERED = "settlement_entered"


# =============================================================================
# EVENTS
# =============================================================================


PayloadValue = Union[str, int, float, bool, None]


class PoolEvent(BaseModel):
    """
    Структурированное событие pool.

    Отправляется синхронно подписчикам после успешного commit операции.
    sequence монотонно растёт в пределах одного pool.
    """

    event_type: EventType = Field(..., description="Тип события")
    pool_id: str = Field(..., min_length=1, description="Идентификатор pool")
    sequence: int = Field(..., ge=1, description="Порядковый номер события в pool")
    payload: dict[str, PayloadValue] = Field(
        default_factory=dict, description="Параметры события"
    )

    model_config = {"frozen": True}


# =============================================================================
# POOL STATE MODEL
# =============================================================================


class PoolState(BaseModel):
    """
    Снапшот состояния pool.

    Immutable модель (frozen=True). Содержит:
    - Метаданные (pool_id, символы токенов, фаза)
    - Ценовой интервал pool и текущую цену
    - Резервы и накопленные комиссии
    - Позиции (снапшоты)
    """

    # Метаданные
    pool_id: str = Field(..., min_length=1, description="Идентификатор pool")
    base_symbol: str = Field(..., min_length=1, description="Символ base token")
    pre_token_symbol: str = Field(..., min_length=1, description="Символ pre-token")
    phase: PoolPhase = Field(..., description="Фаза pool")
    real_token_symbol: str | None = Field(
        None, description="Символ real token (только в SETTLED)"
    )

    # Цены
    price_lower: float = Field(..., gt=0, description="Нижняя граница интервала pool")
    price_upper: float = Field(..., gt=0, description="Верхняя граница интервала pool")
    current_price: float = Field(..., ge=0, description="Текущая цена (sqrt_price²)")

    # Резервы
    base_reserve: float = Field(..., ge=0, description="Резерв base token")
    pre_token_reserve: float = Field(..., ge=0, description="Резерв pre-token")
    protocol_fees_base: float = Field(
        ..., ge=0, description="Накопленные комиссии в base token (вне резервов)"
    )
    protocol_fees_pre_token: float = Field(
        0.0, ge=0, description="Накопленные комиссии в pre-token (вне резервов)"
    )

    # Позиции
    positions: list[Position] = Field(default_factory=list, description="LP позиции")

    model_config = {"frozen": True}
