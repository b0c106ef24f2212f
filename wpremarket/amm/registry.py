"""
PreMarketAMM — Реестр pools

Реестр владеет pools по pool_id ("{BASE}-{PRE}") и маршрутизирует
операции к нужному pool. Pools полностью независимы: каждый имеет свой
lock, свои позиции и свою фазу.
"""

import logging
import threading
from typing import Optional

from wpremarket.amm.pool import LiquidityPool, PoolConfig, PoolSubscriber
from wpremarket.core.domain.pool_state import PoolState
from wpremarket.core.domain.position import Position
from wpremarket.core.errors import PoolAlreadyExists, PoolNotFound
from wpremarket.ledger.token import Ledger

logger = logging.getLogger(__name__)


def make_pool_id(base_token: Ledger, pre_token: Ledger) -> str:
    """Идентификатор pool: '{base symbol}-{pre-token symbol}'."""
    return f"{base_token.symbol}-{pre_token.symbol}"


class PreMarketAMM:
    """
    Реестр pre-market pools.

    Подписчики, зарегистрированные через subscribe(), подключаются ко всем
    pools, созданным после подписки (и получают их pool_created).
    """

    def __init__(self, default_config: Optional[PoolConfig] = None):
        self._default_config = default_config or PoolConfig()
        self._pools: dict[str, LiquidityPool] = {}
        self._subscribers: list[PoolSubscriber] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pools)

    def __contains__(self, pool_id: str) -> bool:
        return pool_id in self._pools

    def subscribe(self, subscriber: PoolSubscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def create_pool(
        self,
        base_token: Ledger,
        pre_token: Ledger,
        min_price: float,
        max_price: float,
        initial_price: Optional[float] = None,
        config: Optional[PoolConfig] = None,
    ) -> str:
        """
        Создание pool для пары (base token, pre-token).

        Returns:
            pool_id

        Raises:
            PoolAlreadyExists: pool с таким id уже существует
            InvalidRange: невалидный ценовой интервал
        """
        pool_id = make_pool_id(base_token, pre_token)
        with self._lock:
            if pool_id in self._pools:
                raise PoolAlreadyExists(f"Pool {pool_id} already exists")

            pool = LiquidityPool(
                pool_id=pool_id,
                base_token=base_token,
                pre_token=pre_token,
                price_lower=min_price,
                price_upper=max_price,
                initial_price=initial_price,
                config=config or self._default_config,
                subscribers=self._subscribers,
            )
            self._pools[pool_id] = pool

        logger.info(
            "Pool created",
            extra={
                "event": "registry.pool_created",
                "pool_id": pool_id,
                "price_lower": min_price,
                "price_upper": max_price,
            },
        )
        return pool_id

    def get_pool(self, pool_id: str) -> LiquidityPool:
        """
        Raises:
            PoolNotFound: если pool не существует
        """
        try:
            return self._pools[pool_id]
        except KeyError:
            raise PoolNotFound(f"Pool {pool_id} does not exist") from None

    def get_all_pools(self) -> list[str]:
        return list(self._pools)

    # -------------------------------------------------------------------------
    # Routed operations
    # -------------------------------------------------------------------------

    def add_liquidity(
        self,
        pool_id: str,
        owner: str,
        base_amount: float,
        lower_price: float,
        upper_price: float,
    ) -> int:
        return self.get_pool(pool_id).add_liquidity(owner, base_amount, lower_price, upper_price)

    def swap_base_for_pre_token(self, pool_id: str, trader: str, base_amount_in: float) -> float:
        return self.get_pool(pool_id).swap_base_for_pre_token(trader, base_amount_in)

    def swap_pre_token_for_base(self, pool_id: str, trader: str, pre_token_amount_in: float) -> float:
        return self.get_pool(pool_id).swap_pre_token_for_base(trader, pre_token_amount_in)

    def get_price(self, pool_id: str) -> float:
        return self.get_pool(pool_id).get_current_price()

    def enter_settlement(self, pool_id: str, real_token: Ledger) -> None:
        self.get_pool(pool_id).enter_settlement(real_token)

    def get_all_positions(self, pool_id: str) -> list[Position]:
        return self.get_pool(pool_id).get_all_positions()

    def snapshot(self, pool_id: str) -> PoolState:
        return self.get_pool(pool_id).snapshot()
