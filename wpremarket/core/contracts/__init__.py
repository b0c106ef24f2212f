"""
Contract Validation Module

Модуль для валидации JSON контрактов W-Pre-market AMM
(снапшоты позиций и pool, структурированные события).
"""

from .validators import (
    ContractValidator,
    PoolEventValidator,
    PoolStateValidator,
    PositionValidator,
    SchemaLoader,
    validate_pool_event,
    validate_pool_state,
    validate_position,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "PositionValidator",
    "PoolStateValidator",
    "PoolEventValidator",
    # Functions
    "validate_position",
    "validate_pool_state",
    "validate_pool_event",
]
