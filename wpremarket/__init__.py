"""W-Pre-market AMM — concentrated-liquidity рынок для pre-launch токенов.

LP вносят base token (например, USDC) в ценовые диапазоны, pool минтирует
pre-token, трейдеры торгуют pre-token против base token до TGE. После TGE
pool переходит в settlement phase и торговля замораживается.
"""

from wpremarket.amm import FeeMode, LiquidityPool, PoolConfig, PreMarketAMM, SwapResult
from wpremarket.core.domain import EventType, PoolEvent, PoolPhase, PoolState, Position
from wpremarket.core.errors import (
    AlreadyInSettlement,
    AMMError,
    InsufficientBalance,
    InvalidRange,
    NoLiquidityAvailable,
    NonFiniteResult,
    NonPositiveAmount,
    PoolAlreadyExists,
    PoolNotFound,
    PositionNotFound,
    ReservedAccount,
    SettlementPhaseViolation,
)
from wpremarket.ledger import Ledger, Token

__version__ = "0.1.0"

__all__ = [
    "PreMarketAMM",
    "LiquidityPool",
    "PoolConfig",
    "FeeMode",
    "SwapResult",
    "Ledger",
    "Token",
    "Position",
    "PoolPhase",
    "PoolState",
    "PoolEvent",
    "EventType",
    # Errors
    "AMMError",
    "InvalidRange",
    "NonPositiveAmount",
    "InsufficientBalance",
    "SettlementPhaseViolation",
    "AlreadyInSettlement",
    "NoLiquidityAvailable",
    "PoolNotFound",
    "PoolAlreadyExists",
    "PositionNotFound",
    "NonFiniteResult",
    "ReservedAccount",
]
