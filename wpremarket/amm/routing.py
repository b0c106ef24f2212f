"""
Swap Routing — маршрутизация swap через несколько ценовых диапазонов

Модуль содержит:
- PositionBook: владеющий контейнер позиций (arena по position_id) с
  отсортированными представлениями для routing (bisect по sqrt-границам)
- route_base_in: покупка pre-token за base token (цена растёт)
- route_pre_token_in: продажа pre-token за base token (цена падает)

Routing чистый: функции не меняют состояние, а возвращают RouteOutcome
(шаги по диапазонам, использованный вход, выход, конечная sqrt-цена).
Pool применяет результат только после полной валидации.

АЛГОРИТМ (покупка, цена вверх):
1. Позиции по возрастанию lower bound
2. Старт: первая позиция, содержащая текущую цену; иначе ближайшая с
   lower bound выше цены (прыжок через gap); иначе NoLiquidityAvailable
3. Для каждой позиции: √P поднимается минимум до √Pa позиции,
   candidate = √P + remaining / L, effective = min(candidate, √Pb)
4. Диапазон не исчерпан (effective < √Pb) → стоп
5. Шаг, не сдвигающий √P (остаток ниже разрешения float), не исполняется:
   остаток возвращается трейдеру

Продажа симметрична: позиции по убыванию upper bound,
target = 1 / (remaining / L + 1/√P), effective = max(target, √Pa).

Позиции, полностью оставшиеся позади текущей цены (вложенные диапазоны),
пропускаются: цена при покупке никогда не падает, при продаже не растёт.
"""

import logging
from bisect import bisect_left, bisect_right, insort
from dataclasses import dataclass
from itertools import accumulate
from typing import Iterator

from wpremarket.core.domain.position import Position
from wpremarket.core.errors import NoLiquidityAvailable, PositionNotFound
from wpremarket.core.math.numerical_safeguards import EPS_AMOUNT, clamp, is_positive
from wpremarket.core.math.price_math import (
    base_delta,
    pre_token_delta,
    sqrt_price_after_base_in,
    sqrt_price_after_pre_token_in,
)

logger = logging.getLogger(__name__)

_ID_SENTINEL = float("inf")


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class RangeStep:
    """Один шаг routing внутри диапазона одной позиции."""

    position_id: int
    sqrt_price_start: float
    sqrt_price_end: float
    amount_in: float
    amount_out: float
    range_exhausted: bool


@dataclass(frozen=True)
class RouteOutcome:
    """Результат маршрутизации (до комиссий на выход)."""

    steps: tuple[RangeStep, ...]
    amount_in_used: float
    amount_remaining: float
    amount_out: float
    start_sqrt_price: float
    end_sqrt_price: float


# =============================================================================
# POSITION BOOK
# =============================================================================


class PositionBook:
    """
    Владеющий контейнер LP позиций.

    Позиции хранятся в arena по position_id. Для routing поддерживаются
    два отсортированных индекса:
    - по возрастанию √Pa (покупка)
    - по убыванию √Pb (продажа)

    Ключи индексов содержат position_id для детерминированного порядка
    при равных границах.

    К каждому индексу прилагается монотонный префиксный экстремум
    (max √Pb по возрастанию √Pa, min √Pa по убыванию √Pb), поэтому
    первая позиция, содержащая цену, находится через bisect. Префиксы
    пересчитываются при add.
    """

    def __init__(self):
        self._positions: dict[int, Position] = {}
        self._by_lower: list[tuple[float, int]] = []
        self._by_upper_desc: list[tuple[float, int]] = []

        # Неубывающие: max √Pb на префиксе _by_lower; −min √Pa на префиксе _by_upper_desc
        self._prefix_max_upper: list[float] = []
        self._prefix_neg_min_lower: list[float] = []

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(self._positions.values())

    def __contains__(self, position_id: int) -> bool:
        return position_id in self._positions

    def add(self, position: Position) -> None:
        if position.position_id in self._positions:
            raise ValueError(f"Duplicate position id {position.position_id}")

        self._positions[position.position_id] = position
        insort(self._by_lower, (position.lower_sqrt_price, position.position_id))
        insort(self._by_upper_desc, (-position.upper_sqrt_price, position.position_id))

        self._prefix_max_upper = list(
            accumulate(
                (self._positions[pid].upper_sqrt_price for _, pid in self._by_lower), max
            )
        )
        self._prefix_neg_min_lower = list(
            accumulate(
                (-self._positions[pid].lower_sqrt_price for _, pid in self._by_upper_desc), max
            )
        )

    def get(self, position_id: int) -> Position:
        try:
            return self._positions[position_id]
        except KeyError:
            raise PositionNotFound(f"Position {position_id} does not exist") from None

    def ascending(self, start: int = 0) -> Iterator[Position]:
        """Позиции по возрастанию lower bound, начиная с индекса start."""
        for index in range(start, len(self._by_lower)):
            yield self._positions[self._by_lower[index][1]]

    def descending(self, start: int = 0) -> Iterator[Position]:
        """Позиции по убыванию upper bound, начиная с индекса start."""
        for index in range(start, len(self._by_upper_desc)):
            yield self._positions[self._by_upper_desc[index][1]]

    def buy_start_index(self, sqrt_price: float) -> int | None:
        """
        Индекс стартовой позиции для покупки в ascending().

        Returns:
            Индекс первой позиции, содержащей цену; иначе индекс ближайшей
            позиции с lower bound выше цены; None если такой нет
        """
        # Позиции с √Pa <= √P занимают префикс [0, k)
        k = bisect_right(self._by_lower, (sqrt_price, _ID_SENTINEL))
        # Первая позиция с √Pb >= √P
        first_reaching = bisect_left(self._prefix_max_upper, sqrt_price)
        if first_reaching < k:
            return first_reaching
        return k if k < len(self._by_lower) else None

    def sell_start_index(self, sqrt_price: float) -> int | None:
        """
        Индекс стартовой позиции для продажи в descending().

        Returns:
            Индекс первой позиции, содержащей цену; иначе индекс ближайшей
            позиции с upper bound ниже цены; None если такой нет
        """
        # Позиции с √Pb >= √P занимают префикс [0, k)
        k = bisect_right(self._by_upper_desc, (-sqrt_price, _ID_SENTINEL))
        # Первая позиция с √Pa <= √P
        first_reaching = bisect_left(self._prefix_neg_min_lower, -sqrt_price)
        if first_reaching < k:
            return first_reaching
        return k if k < len(self._by_upper_desc) else None

    def liquidity_at(self, sqrt_price: float) -> float:
        """Суммарная L позиций, диапазон которых содержит √P."""
        k = bisect_right(self._by_lower, (sqrt_price, _ID_SENTINEL))
        total = 0.0
        for index in range(k):
            position = self._positions[self._by_lower[index][1]]
            if position.upper_sqrt_price >= sqrt_price:
                total += position.liquidity
        return total


# =============================================================================
# ROUTING
# =============================================================================


def route_base_in(book: PositionBook, sqrt_price: float, amount_in: float) -> RouteOutcome:
    """
    Маршрутизация base token → pre-token (цена растёт).

    Args:
        book: Позиции pool
        sqrt_price: Текущая √P
        amount_in: Base token для маршрутизации (уже после входной комиссии)

    Returns:
        RouteOutcome; неиспользованный остаток в amount_remaining

    Raises:
        NoLiquidityAvailable: Если нет позиции на текущей цене или выше
    """
    start = book.buy_start_index(sqrt_price)
    if start is None:
        raise NoLiquidityAvailable(
            f"No liquidity available at current price {sqrt_price * sqrt_price} or higher"
        )

    remaining = amount_in
    total_out = 0.0
    running = sqrt_price
    steps: list[RangeStep] = []

    for position in book.ascending(start):
        if not is_positive(remaining, EPS_AMOUNT):
            break

        lower = position.lower_sqrt_price
        upper = position.upper_sqrt_price
        if upper <= running:
            continue

        # Gap: цена поднимается до нижней границы следующего диапазона
        step_start = clamp(running, min_value=lower)
        candidate = sqrt_price_after_base_in(step_start, position.liquidity, remaining)

        if candidate < upper:
            # Остаток ниже разрешения float для √P: цена не сдвигается, остаток возвращается
            if candidate <= step_start:
                break
            effective = candidate
            used = remaining
            remaining = 0.0
        else:
            effective = upper
            used = base_delta(position.liquidity, step_start, upper)
            remaining = clamp(remaining - used, min_value=0.0)

        out = pre_token_delta(position.liquidity, step_start, effective)
        total_out += out
        running = effective

        step = RangeStep(
            position_id=position.position_id,
            sqrt_price_start=step_start,
            sqrt_price_end=effective,
            amount_in=used,
            amount_out=out,
            range_exhausted=effective >= upper,
        )
        steps.append(step)
        logger.debug(
            "Routed base through range",
            extra={
                "event": "routing.base_in_step",
                "position_id": position.position_id,
                "base_used": used,
                "pre_token_out": out,
                "price_end": effective * effective,
            },
        )

        if not step.range_exhausted:
            break

    return RouteOutcome(
        steps=tuple(steps),
        amount_in_used=amount_in - remaining,
        amount_remaining=remaining,
        amount_out=total_out,
        start_sqrt_price=sqrt_price,
        end_sqrt_price=running,
    )


def route_pre_token_in(book: PositionBook, sqrt_price: float, amount_in: float) -> RouteOutcome:
    """
    Маршрутизация pre-token → base token (цена падает).

    Args:
        book: Позиции pool
        sqrt_price: Текущая √P
        amount_in: Pre-token для маршрутизации

    Returns:
        RouteOutcome; amount_out — base token до выходной комиссии

    Raises:
        NoLiquidityAvailable: Если нет позиции на текущей цене или ниже
    """
    start = book.sell_start_index(sqrt_price)
    if start is None:
        raise NoLiquidityAvailable(
            f"No liquidity available at current price {sqrt_price * sqrt_price} or lower"
        )

    remaining = amount_in
    total_out = 0.0
    running = sqrt_price
    steps: list[RangeStep] = []

    for position in book.descending(start):
        if not is_positive(remaining, EPS_AMOUNT):
            break

        lower = position.lower_sqrt_price
        upper = position.upper_sqrt_price
        if lower >= running:
            continue

        step_start = clamp(running, max_value=upper)
        target = sqrt_price_after_pre_token_in(step_start, position.liquidity, remaining)

        if target > lower:
            if target >= step_start:
                break
            effective = target
            used = remaining
            remaining = 0.0
        else:
            effective = lower
            used = pre_token_delta(position.liquidity, lower, step_start)
            remaining = clamp(remaining - used, min_value=0.0)

        out = base_delta(position.liquidity, effective, step_start)
        total_out += out
        running = effective

        step = RangeStep(
            position_id=position.position_id,
            sqrt_price_start=step_start,
            sqrt_price_end=effective,
            amount_in=used,
            amount_out=out,
            range_exhausted=effective <= lower,
        )
        steps.append(step)
        logger.debug(
            "Routed pre-token through range",
            extra={
                "event": "routing.pre_token_in_step",
                "position_id": position.position_id,
                "pre_token_used": used,
                "base_out": out,
                "price_end": effective * effective,
            },
        )

        if not step.range_exhausted:
            break

    return RouteOutcome(
        steps=tuple(steps),
        amount_in_used=amount_in - remaining,
        amount_remaining=remaining,
        amount_out=total_out,
        start_sqrt_price=sqrt_price,
        end_sqrt_price=running,
    )
