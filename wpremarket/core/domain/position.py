"""
Position — Модель LP позиции

Immutable Pydantic модель, представляющая один вклад ликвидности в pool:
владелец, ценовой диапазон [Pa, Pb], ликвидность L, залог и начальный минт
pre-token. Позиция никогда не изменяется после создания (withdrawal не
реализован), любые снапшоты безопасно отдавать наружу.
"""

import math

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# POSITION MODEL
# =============================================================================


class Position(BaseModel):
    """
    Модель LP позиции.

    Immutable модель (frozen=True). Инварианты:
    - 0 < lower_price < upper_price
    - liquidity > 0
    - collateral_amount == base amount, внесённый при создании
    """

    # Идентификация
    position_id: int = Field(..., ge=1, description="Монотонный идентификатор позиции в pool")
    owner: str = Field(..., min_length=1, description="Аккаунт LP провайдера")

    # Диапазон
    lower_price: float = Field(..., gt=0, allow_inf_nan=False, description="Нижняя граница Pa")
    upper_price: float = Field(..., gt=0, allow_inf_nan=False, description="Верхняя граница Pb")

    # Ликвидность и суммы
    liquidity: float = Field(..., gt=0, allow_inf_nan=False, description="Константа ликвидности L")
    collateral_amount: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Залог в base token (равен депозиту)"
    )
    initial_pre_token_amount: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Pre-token, минтированный при создании"
    )

    model_config = {"frozen": True}  # Immutable

    @model_validator(mode="after")
    def validate_range_order(self) -> "Position":
        """Проверка Pa < Pb."""
        if self.lower_price >= self.upper_price:
            raise ValueError(
                f"Position range [{self.lower_price}, {self.upper_price}]: "
                f"lower bound must be below upper bound"
            )
        return self

    @property
    def lower_sqrt_price(self) -> float:
        return math.sqrt(self.lower_price)

    @property
    def upper_sqrt_price(self) -> float:
        return math.sqrt(self.upper_price)

    def contains_price(self, price: float) -> bool:
        """
        Проверка, что цена внутри замкнутого диапазона [Pa, Pb].

        Args:
            price: Цена (не sqrt)

        Returns:
            True если Pa <= price <= Pb
        """
        return self.lower_price <= price <= self.upper_price
