"""AMM — concentrated-liquidity pools и реестр pools.

- LiquidityPool: позиции, резервы, multi-range swaps, settlement
- Routing: PositionBook и маршрутизация swap по диапазонам
- PreMarketAMM: реестр pools по идентификатору "{BASE}-{PRE}"
"""

from .pool import (
    FeeMode,
    LiquidityPool,
    PoolConfig,
    PoolSubscriber,
    SwapDirection,
    SwapResult,
)
from .registry import PreMarketAMM, make_pool_id
from .routing import PositionBook, RangeStep, RouteOutcome, route_base_in, route_pre_token_in

__all__ = [
    # Pool
    "LiquidityPool",
    "PoolConfig",
    "FeeMode",
    "SwapDirection",
    "SwapResult",
    "PoolSubscriber",
    # Registry
    "PreMarketAMM",
    "make_pool_id",
    # Routing
    "PositionBook",
    "RangeStep",
    "RouteOutcome",
    "route_base_in",
    "route_pre_token_in",
]
