"""Settlement — фазовая state machine pool (TRADING → SETTLED).

- Одноразовый необратимый переход после TGE
- Блокировка add_liquidity / swap в SETTLED
- Settlement hooks как extension point для forfeiture контроллера
"""

from .gate import (
    SettlementGate,
    SettlementHook,
    SettlementTransitionResult,
)

__all__ = [
    "SettlementGate",
    "SettlementHook",
    "SettlementTransitionResult",
]
