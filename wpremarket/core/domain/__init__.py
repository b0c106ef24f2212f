"""
Domain models and value objects.

Contains fundamental domain entities like Position, PoolState, PoolEvent.
"""

from wpremarket.core.domain.pool_state import (
    EventType,
    PoolEvent,
    PoolPhase,
    PoolState,
)
from wpremarket.core.domain.position import Position

__all__ = [
    # Position model
    "Position",
    # Pool state
    "PoolPhase",
    "PoolState",
    # Events
    "EventType",
    "PoolEvent",
]
