"""Settlement Gate — фазовая state machine pool.

Переходы:
- TRADING (начальное) → SETTLED (терминальное) через enter_settlement(real_token)
- Повторный enter_settlement → AlreadyInSettlement
- В SETTLED add_liquidity и оба swap → SettlementPhaseViolation (навсегда)

Extension point для будущего settlement/forfeiture контроллера:
settlement hooks вызываются после зафиксированного перехода и получают
SettlementTransitionResult. Gate не выбирает стратегию и не управляет
дедлайнами — это ответственность внешнего контроллера.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional
import logging

from wpremarket.core.domain.pool_state import PoolPhase
from wpremarket.core.errors import AlreadyInSettlement, SettlementPhaseViolation
from wpremarket.ledger.token import Ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementTransitionResult:
    """Результат перехода фазы pool."""

    new_phase: PoolPhase
    previous_phase: PoolPhase
    real_token_symbol: str

    # Диагностика
    transition_occurred: bool
    transition_reason: str

    # Для отладки
    details: str


SettlementHook = Callable[[SettlementTransitionResult], None]


class SettlementGate:
    """Settlement Gate — одноразовый переход TRADING → SETTLED.

    States:
    - TRADING: add_liquidity и swap разрешены
    - SETTLED: терминальное состояние после TGE, все мутации запрещены,
      real_token зафиксирован для будущего 1:1 redemption
    """

    def __init__(self, pool_id: str):
        """
        Args:
            pool_id: идентификатор pool (для сообщений об ошибках и логов)
        """
        self.pool_id = pool_id
        self._phase = PoolPhase.TRADING
        self._real_token: Optional[Ledger] = None
        self._hooks: List[SettlementHook] = []

    @property
    def phase(self) -> PoolPhase:
        return self._phase

    @property
    def real_token(self) -> Optional[Ledger]:
        return self._real_token

    @property
    def is_settled(self) -> bool:
        return self._phase == PoolPhase.SETTLED

    def add_settlement_hook(self, hook: SettlementHook) -> None:
        """Регистрация callback, вызываемого после перехода в SETTLED."""
        self._hooks.append(hook)

    def require_trading(self, operation: str) -> None:
        """Проверка, что мутирующая операция разрешена.

        Args:
            operation: имя операции (add_liquidity, swap_base_for_pre_token, ...)

        Raises:
            SettlementPhaseViolation: если pool в SETTLED
        """
        if self._phase == PoolPhase.SETTLED:
            raise SettlementPhaseViolation(
                f"Cannot {operation} on pool {self.pool_id}: pool is in settlement phase"
            )

    def enter_settlement(self, real_token: Ledger) -> SettlementTransitionResult:
        """Переход TRADING → SETTLED.

        Args:
            real_token: post-launch токен для 1:1 redemption

        Returns:
            SettlementTransitionResult с новой фазой

        Raises:
            AlreadyInSettlement: если pool уже в SETTLED
        """
        if self._phase == PoolPhase.SETTLED:
            raise AlreadyInSettlement(
                f"Pool {self.pool_id} is already in settlement phase "
                f"(real token: {self._real_token.symbol if self._real_token else None})"
            )

        previous_phase = self._phase
        self._phase = PoolPhase.SETTLED
        self._real_token = real_token

        result = self._create_result(
            new_phase=self._phase,
            previous_phase=previous_phase,
            real_token_symbol=real_token.symbol,
            transition_occurred=True,
            transition_reason="tge_settlement",
            details=f"Transition {previous_phase.value} → {self._phase.value}, real_token={real_token.symbol}"
        )

        logger.info(
            "Pool entered settlement phase",
            extra={
                "event": "settlement.entered",
                "pool_id": self.pool_id,
                "real_token": real_token.symbol,
            }
        )

        # Переход необратим: ошибка hook логируется и не отменяет settlement
        for hook in self._hooks:
            try:
                hook(result)
            except Exception:
                logger.exception(
                    "Settlement hook failed",
                    extra={
                        "event": "settlement.hook_failed",
                        "pool_id": self.pool_id,
                        "real_token": real_token.symbol,
                    }
                )

        return result

    def _create_result(
        self,
        new_phase: PoolPhase,
        previous_phase: PoolPhase,
        real_token_symbol: str,
        transition_occurred: bool,
        transition_reason: str,
        details: str
    ) -> SettlementTransitionResult:
        """Создание результата перехода."""
        return SettlementTransitionResult(
            new_phase=new_phase,
            previous_phase=previous_phase,
            real_token_symbol=real_token_symbol,
            transition_occurred=transition_occurred,
            transition_reason=transition_reason,
            details=details
        )
