"""
LiquidityPool — Concentrated-liquidity pre-market pool

Pool владеет:
- агрегированными резервами (base, pre-token)
- позициями (PositionBook)
- текущей sqrt-ценой
- фазой (SettlementGate)
- накопленными протокольными комиссиями (вне резервов)

Каждая мутирующая операция выполняется по схеме
    plan → validate → ledger effects → state commit → event emission
под эксклюзивным lock pool. Любая ошибка до ledger effects оставляет pool и
ledger без изменений; ledger preconditions (балансы трейдера и аккаунта pool)
проверяются заранее, поэтому последовательность ledger вызовов не
прерывается на середине. Подписчики событий вызываются после commit;
их ошибки логируются и не меняют результат операции.

КОМИССИИ:
- покупка (base → pre-token): по умолчанию комиссия с ВХОДА, до routing
- продажа (pre-token → base): по умолчанию комиссия с ВЫХОДА, после routing
Асимметрия сохранена намеренно и вынесена в PoolConfig (FeeMode).
"""

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Final, Optional

from wpremarket.amm.routing import (
    PositionBook,
    RangeStep,
    RouteOutcome,
    route_base_in,
    route_pre_token_in,
)
from wpremarket.core.domain.pool_state import EventType, PoolEvent, PoolPhase, PoolState
from wpremarket.core.domain.position import Position
from wpremarket.core.errors import (
    InsufficientBalance,
    InvalidRange,
    NoLiquidityAvailable,
    ReservedAccount,
)
from wpremarket.core.math import price_math
from wpremarket.core.math.numerical_safeguards import (
    EPS_AMOUNT,
    EPS_FLOAT_COMPARE_REL,
    ensure_finite,
    is_positive,
    validate_positive_amount,
    validate_price_range,
)
from wpremarket.ledger.token import Ledger
from wpremarket.settlement.gate import SettlementGate, SettlementHook, SettlementTransitionResult

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_FEE_RATE: Final[float] = 0.003  # 0.3%

# base_amount для ликвидности + base_amount залога
DEFAULT_COLLATERAL_MULTIPLIER: Final[float] = 2.0

DEFAULT_POOL_ACCOUNT: Final[str] = "POOL"


# =============================================================================
# CONFIG
# =============================================================================


class FeeMode(str, Enum):
    """Момент взимания комиссии swap."""

    INPUT = "input"  # с входа, до routing (в токене входа)
    OUTPUT = "output"  # с выхода, после routing (в токене выхода)


class SwapDirection(str, Enum):
    """Направление swap."""

    BASE_FOR_PRE_TOKEN = "base_for_pre_token"
    PRE_TOKEN_FOR_BASE = "pre_token_for_base"


@dataclass(frozen=True)
class PoolConfig:
    """Конфигурация pool.

    Параметры комиссий, залога и аккаунта pool в ledger.
    """

    fee_rate: float = DEFAULT_FEE_RATE
    buy_fee_mode: FeeMode = FeeMode.INPUT
    sell_fee_mode: FeeMode = FeeMode.OUTPUT

    # Баланс LP должен покрывать collateral_multiplier × base_amount
    collateral_multiplier: float = DEFAULT_COLLATERAL_MULTIPLIER

    pool_account: str = DEFAULT_POOL_ACCOUNT

    def __post_init__(self):
        if not math.isfinite(self.fee_rate) or not 0.0 <= self.fee_rate < 1.0:
            raise ValueError(f"fee_rate must be in [0, 1), got {self.fee_rate}")
        if not math.isfinite(self.collateral_multiplier) or self.collateral_multiplier < 1.0:
            raise ValueError(
                f"collateral_multiplier must be >= 1, got {self.collateral_multiplier}"
            )
        if not self.pool_account:
            raise ValueError("pool_account must be non-empty")


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class SwapResult:
    """Результат swap (или quote без side effects)."""

    direction: SwapDirection
    amount_in: float

    # Комиссии (в токене входа и выхода соответственно)
    fee_in: float
    fee_out: float

    # Routing
    amount_routed: float
    amount_used: float
    amount_refunded: float
    amount_out_gross: float

    # Получено трейдером (после выходной комиссии)
    amount_out: float

    price_before: float
    price_after: float
    sqrt_price_after: float
    steps: tuple[RangeStep, ...]

    @property
    def fee(self) -> float:
        """Комиссия в токене, в котором она взята."""
        return self.fee_in if self.fee_in > 0 else self.fee_out


PoolSubscriber = Callable[[PoolEvent], None]


# =============================================================================
# POOL
# =============================================================================


class LiquidityPool:
    """
    Concentrated-liquidity pool для пары (base token, pre-token).

    Операции:
    - add_liquidity: LP вносит base token в диапазон [Pa, Pb]
    - swap_base_for_pre_token: покупка pre-token (цена вверх)
    - swap_pre_token_for_base: продажа pre-token (цена вниз)
    - enter_settlement: одноразовый переход в SETTLED после TGE
    - quote_*: расчёт swap без side effects
    - snapshot: PoolState для внешних инструментов
    """

    def __init__(
        self,
        pool_id: str,
        base_token: Ledger,
        pre_token: Ledger,
        price_lower: float,
        price_upper: float,
        initial_price: Optional[float] = None,
        config: Optional[PoolConfig] = None,
        subscribers: Optional[list[PoolSubscriber]] = None,
    ):
        """
        Args:
            pool_id: идентификатор pool
            base_token: ledger base token
            pre_token: ledger pre-token (pool минтирует в него)
            price_lower: нижняя граница интервала pool (Pa)
            price_upper: верхняя граница интервала pool (Pb)
            initial_price: начальная цена (опционально, внутри [Pa, Pb])
            config: конфигурация pool (опционально, используется default)
            subscribers: подписчики событий, подключаемые до pool_created

        Raises:
            InvalidRange: невалидный интервал или initial_price вне интервала
        """
        validate_price_range(price_lower, price_upper)
        if initial_price is not None:
            if not math.isfinite(initial_price) or not price_lower <= initial_price <= price_upper:
                raise InvalidRange(
                    f"Initial price {initial_price} outside pool range "
                    f"[{price_lower}, {price_upper}]"
                )

        self.pool_id = pool_id
        self.config = config or PoolConfig()
        self._base_token = base_token
        self._pre_token = pre_token
        self._price_lower = price_lower
        self._price_upper = price_upper

        self._base_reserve = 0.0
        self._pre_token_reserve = 0.0
        self._protocol_fees_base = 0.0
        self._protocol_fees_pre_token = 0.0

        self._current_sqrt_price = math.sqrt(initial_price) if initial_price is not None else 0.0
        self._initial_price_set = initial_price is not None

        self._book = PositionBook()
        self._next_position_id = 1
        self._gate = SettlementGate(pool_id)

        self._lock = threading.RLock()
        self._subscribers: list[PoolSubscriber] = list(subscribers or [])
        self._event_sequence = 0

        self._emit(
            EventType.POOL_CREATED,
            {
                "base_symbol": base_token.symbol,
                "pre_token_symbol": pre_token.symbol,
                "price_lower": price_lower,
                "price_upper": price_upper,
                "initial_price": initial_price,
            },
        )

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def base_token(self) -> Ledger:
        return self._base_token

    @property
    def pre_token(self) -> Ledger:
        return self._pre_token

    @property
    def price_lower(self) -> float:
        return self._price_lower

    @property
    def price_upper(self) -> float:
        return self._price_upper

    @property
    def base_reserve(self) -> float:
        return self._base_reserve

    @property
    def pre_token_reserve(self) -> float:
        return self._pre_token_reserve

    @property
    def protocol_fees_base(self) -> float:
        return self._protocol_fees_base

    @property
    def protocol_fees_pre_token(self) -> float:
        return self._protocol_fees_pre_token

    @property
    def current_sqrt_price(self) -> float:
        return self._current_sqrt_price

    @property
    def total_liquidity(self) -> float:
        """Сумма L всех позиций (независимо от текущей цены)."""
        return sum(position.liquidity for position in self._book)

    @property
    def phase(self) -> PoolPhase:
        return self._gate.phase

    @property
    def is_settlement_phase(self) -> bool:
        return self._gate.is_settled

    @property
    def real_token(self) -> Optional[Ledger]:
        return self._gate.real_token

    def get_current_price(self) -> float:
        """Текущая цена = √P²."""
        return self._current_sqrt_price * self._current_sqrt_price

    def liquidity_at_price(self, price: float) -> float:
        """
        Суммарная L позиций, содержащих цену.

        Raises:
            InvalidRange: цена не конечна или <= 0
        """
        if not math.isfinite(price) or price <= 0:
            raise InvalidRange(f"Price must be finite and positive, got {price}")
        with self._lock:
            return self._book.liquidity_at(math.sqrt(price))

    def get_position(self, position_id: int) -> Position:
        """
        Raises:
            PositionNotFound: если позиции нет
        """
        with self._lock:
            return self._book.get(position_id)

    def get_all_positions(self) -> list[Position]:
        """Снапшоты всех позиций (в порядке создания)."""
        with self._lock:
            return list(self._book)

    def snapshot(self) -> PoolState:
        """Полный снапшот состояния pool."""
        with self._lock:
            real_token = self._gate.real_token
            return PoolState(
                pool_id=self.pool_id,
                base_symbol=self._base_token.symbol,
                pre_token_symbol=self._pre_token.symbol,
                phase=self._gate.phase,
                real_token_symbol=real_token.symbol if real_token is not None else None,
                price_lower=self._price_lower,
                price_upper=self._price_upper,
                current_price=self.get_current_price(),
                base_reserve=self._base_reserve,
                pre_token_reserve=self._pre_token_reserve,
                protocol_fees_base=self._protocol_fees_base,
                protocol_fees_pre_token=self._protocol_fees_pre_token,
                positions=list(self._book),
            )

    # -------------------------------------------------------------------------
    # Events / hooks
    # -------------------------------------------------------------------------

    def subscribe(self, subscriber: PoolSubscriber) -> None:
        """Подписка на структурированные события pool."""
        with self._lock:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: PoolSubscriber) -> None:
        with self._lock:
            self._subscribers.remove(subscriber)

    def add_settlement_hook(self, hook: SettlementHook) -> None:
        """Extension point для settlement/forfeiture контроллера."""
        self._gate.add_settlement_hook(hook)

    # -------------------------------------------------------------------------
    # Liquidity
    # -------------------------------------------------------------------------

    def add_liquidity(
        self, owner: str, base_amount: float, lower_price: float, upper_price: float
    ) -> int:
        """
        Добавление ликвидности в диапазон [Pa, Pb].

        LP переводит collateral_multiplier × base_amount в pool (ликвидность +
        залог), pool минтирует pre_token_amount = x·√(Pa·Pb) на свой аккаунт.
        Текущая цена не меняется, кроме первой позиции без initial_price
        (тогда √P = √Pa).

        Args:
            owner: аккаунт LP
            base_amount: base token для ликвидности (x > 0)
            lower_price: Pa
            upper_price: Pb

        Returns:
            position_id новой позиции

        Raises:
            SettlementPhaseViolation: pool в SETTLED
            NonPositiveAmount: base_amount <= 0
            InvalidRange: невалидный диапазон или вне интервала pool
            InsufficientBalance: баланс LP < collateral_multiplier × base_amount
            ReservedAccount: owner совпадает с аккаунтом pool
        """
        with self._lock:
            # 1. Валидация
            self._gate.require_trading("add liquidity")
            self._require_external_account(owner, "owner")
            validate_positive_amount(base_amount, "base_amount")
            validate_price_range(lower_price, upper_price)
            if lower_price < self._price_lower or upper_price > self._price_upper:
                raise InvalidRange(
                    f"Position range [{lower_price}, {upper_price}] outside pool range "
                    f"[{self._price_lower}, {self._price_upper}]"
                )

            required = base_amount * self.config.collateral_multiplier
            balance = self._base_token.balance_of(owner)
            if balance < required:
                raise InsufficientBalance(
                    f"Insufficient balance: need {required} {self._base_token.symbol} "
                    f"({base_amount} for liquidity + {required - base_amount} for collateral), "
                    f"but only have {balance}"
                )

            # 2. План
            pre_amount = price_math.pre_token_amount(base_amount, lower_price, upper_price)
            range_liquidity = price_math.liquidity(base_amount, lower_price, upper_price)
            position = Position(
                position_id=self._next_position_id,
                owner=owner,
                lower_price=lower_price,
                upper_price=upper_price,
                liquidity=range_liquidity,
                collateral_amount=base_amount,
                initial_pre_token_amount=pre_amount,
            )
            new_base_reserve = ensure_finite(self._base_reserve + base_amount, "base_reserve")
            new_pre_reserve = ensure_finite(self._pre_token_reserve + pre_amount, "pre_token_reserve")

            # 3. Ledger effects
            pool_account = self.config.pool_account
            self._base_token.transfer(owner, pool_account, required)
            self._pre_token.mint(pool_account, pre_amount)

            # 4. Commit
            self._base_reserve = new_base_reserve
            self._pre_token_reserve = new_pre_reserve
            self._book.add(position)
            self._next_position_id += 1

            if not self._initial_price_set and len(self._book) == 1:
                self._current_sqrt_price = position.lower_sqrt_price
                self._initial_price_set = True

            logger.info(
                "Liquidity added",
                extra={
                    "event": "pool.liquidity_added",
                    "pool_id": self.pool_id,
                    "position_id": position.position_id,
                    "owner": owner,
                    "base_amount": base_amount,
                    "pre_token_minted": pre_amount,
                    "liquidity": range_liquidity,
                },
            )

            # 5. Events
            self._emit(
                EventType.LIQUIDITY_ADDED,
                {
                    "position_id": position.position_id,
                    "owner": owner,
                    "base_amount": base_amount,
                    "collateral_amount": base_amount,
                    "pre_token_minted": pre_amount,
                    "liquidity": range_liquidity,
                    "lower_price": lower_price,
                    "upper_price": upper_price,
                    "price": self.get_current_price(),
                },
            )

            return position.position_id

    # -------------------------------------------------------------------------
    # Swaps
    # -------------------------------------------------------------------------

    def quote_base_for_pre_token(self, base_amount_in: float) -> SwapResult:
        """Расчёт покупки pre-token без side effects (баланс трейдера не проверяется)."""
        with self._lock:
            self._gate.require_trading("swap base token for pre-token")
            return self._plan_swap(SwapDirection.BASE_FOR_PRE_TOKEN, base_amount_in)

    def quote_pre_token_for_base(self, pre_token_amount_in: float) -> SwapResult:
        """Расчёт продажи pre-token без side effects (баланс трейдера не проверяется)."""
        with self._lock:
            self._gate.require_trading("swap pre-token for base token")
            return self._plan_swap(SwapDirection.PRE_TOKEN_FOR_BASE, pre_token_amount_in)

    def swap_base_for_pre_token(self, trader: str, base_amount_in: float) -> float:
        """
        Покупка pre-token за base token (цена вверх).

        Returns:
            Количество pre-token, полученное трейдером

        Raises:
            SettlementPhaseViolation, ReservedAccount, NonPositiveAmount,
            InsufficientBalance, NoLiquidityAvailable
        """
        with self._lock:
            self._gate.require_trading("swap base token for pre-token")
            return self._execute_swap(SwapDirection.BASE_FOR_PRE_TOKEN, trader, base_amount_in)

    def swap_pre_token_for_base(self, trader: str, pre_token_amount_in: float) -> float:
        """
        Продажа pre-token за base token (цена вниз).

        Returns:
            Количество base token, полученное трейдером (после комиссии)

        Raises:
            SettlementPhaseViolation, ReservedAccount, NonPositiveAmount,
            InsufficientBalance, NoLiquidityAvailable
        """
        with self._lock:
            self._gate.require_trading("swap pre-token for base token")
            return self._execute_swap(SwapDirection.PRE_TOKEN_FOR_BASE, trader, pre_token_amount_in)

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def enter_settlement(self, real_token: Ledger) -> SettlementTransitionResult:
        """
        Переход в settlement phase (после TGE).

        Raises:
            AlreadyInSettlement: если pool уже в SETTLED
        """
        with self._lock:
            result = self._gate.enter_settlement(real_token)
            self._emit(
                EventType.SETTLEMENT_ENTERED,
                {
                    "real_token_symbol": real_token.symbol,
                    "base_reserve": self._base_reserve,
                    "pre_token_reserve": self._pre_token_reserve,
                    "price": self.get_current_price(),
                },
            )
            return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _require_external_account(self, account: str, role: str) -> None:
        if account == self.config.pool_account:
            raise ReservedAccount(
                f"{role} {account!r} is the account of pool {self.pool_id}"
            )

    def _tokens_for(self, direction: SwapDirection) -> tuple[Ledger, Ledger]:
        if direction == SwapDirection.BASE_FOR_PRE_TOKEN:
            return self._base_token, self._pre_token
        return self._pre_token, self._base_token

    def _plan_swap(self, direction: SwapDirection, amount_in: float) -> SwapResult:
        """Полный расчёт swap и проверка резервов; состояние не меняется."""
        validate_positive_amount(amount_in, "amount_in")

        buying = direction == SwapDirection.BASE_FOR_PRE_TOKEN
        fee_mode = self.config.buy_fee_mode if buying else self.config.sell_fee_mode
        fee_rate = self.config.fee_rate

        fee_in = amount_in * fee_rate if fee_mode == FeeMode.INPUT else 0.0
        amount_routed = amount_in - fee_in

        router = route_base_in if buying else route_pre_token_in
        outcome: RouteOutcome = router(self._book, self._current_sqrt_price, amount_routed)

        if not is_positive(outcome.amount_in_used, EPS_AMOUNT):
            raise NoLiquidityAvailable(
                f"No liquidity available {'above' if buying else 'below'} "
                f"current price {self.get_current_price()} in pool {self.pool_id}"
            )

        gross_out = ensure_finite(outcome.amount_out, "amount_out")
        fee_out = gross_out * fee_rate if fee_mode == FeeMode.OUTPUT else 0.0
        net_out = gross_out - fee_out

        output_reserve = self._pre_token_reserve if buying else self._base_reserve
        if gross_out > output_reserve * (1.0 + EPS_FLOAT_COMPARE_REL) + EPS_AMOUNT:
            _, token_out = self._tokens_for(direction)
            raise NoLiquidityAvailable(
                f"Pool {self.pool_id} {token_out.symbol} reserve {output_reserve} "
                f"cannot cover output {gross_out}"
            )

        return SwapResult(
            direction=direction,
            amount_in=amount_in,
            fee_in=fee_in,
            fee_out=fee_out,
            amount_routed=amount_routed,
            amount_used=outcome.amount_in_used,
            amount_refunded=outcome.amount_remaining,
            amount_out_gross=gross_out,
            amount_out=net_out,
            price_before=outcome.start_sqrt_price ** 2,
            price_after=outcome.end_sqrt_price ** 2,
            sqrt_price_after=outcome.end_sqrt_price,
            steps=outcome.steps,
        )

    def _execute_swap(self, direction: SwapDirection, trader: str, amount_in: float) -> float:
        token_in, token_out = self._tokens_for(direction)
        pool_account = self.config.pool_account

        # 1. План
        self._require_external_account(trader, "trader")
        validate_positive_amount(amount_in, "amount_in")
        balance = token_in.balance_of(trader)
        if balance < amount_in:
            raise InsufficientBalance(
                f"Insufficient balance: need {amount_in} {token_in.symbol}, "
                f"but only have {balance}"
            )
        result = self._plan_swap(direction, amount_in)

        # 2. Валидация ledger preconditions
        pool_out_balance = token_out.balance_of(pool_account)
        if result.amount_out > pool_out_balance:
            raise NoLiquidityAvailable(
                f"Pool account holds {pool_out_balance} {token_out.symbol}, "
                f"cannot pay out {result.amount_out}"
            )

        buying = direction == SwapDirection.BASE_FOR_PRE_TOKEN
        if buying:
            new_base_reserve = self._base_reserve + result.amount_used
            new_pre_reserve = max(self._pre_token_reserve - result.amount_out_gross, 0.0)
            new_fees_base = self._protocol_fees_base + result.fee_in
            new_fees_pre = self._protocol_fees_pre_token + result.fee_out
        else:
            new_pre_reserve = self._pre_token_reserve + result.amount_used
            new_base_reserve = max(self._base_reserve - result.amount_out_gross, 0.0)
            new_fees_base = self._protocol_fees_base + result.fee_out
            new_fees_pre = self._protocol_fees_pre_token + result.fee_in
        new_sqrt_price = result.sqrt_price_after

        for name, value in (
            ("base_reserve", new_base_reserve),
            ("pre_token_reserve", new_pre_reserve),
            ("sqrt_price", new_sqrt_price),
        ):
            ensure_finite(value, name)

        # 3. Ledger effects
        token_in.transfer(trader, pool_account, amount_in)
        if result.amount_refunded > 0:
            token_in.transfer(pool_account, trader, result.amount_refunded)
            logger.warning(
                "Unused swap input refunded",
                extra={
                    "event": "pool.swap_refund",
                    "pool_id": self.pool_id,
                    "trader": trader,
                    "symbol": token_in.symbol,
                    "amount": result.amount_refunded,
                },
            )
        if result.amount_out > 0:
            token_out.transfer(pool_account, trader, result.amount_out)

        # 4. Commit
        self._base_reserve = new_base_reserve
        self._pre_token_reserve = new_pre_reserve
        self._protocol_fees_base = new_fees_base
        self._protocol_fees_pre_token = new_fees_pre
        self._current_sqrt_price = new_sqrt_price

        logger.info(
            "Swap executed",
            extra={
                "event": "pool.swap_executed",
                "pool_id": self.pool_id,
                "direction": direction.value,
                "trader": trader,
                "amount_in": amount_in,
                "amount_out": result.amount_out,
                "price_before": result.price_before,
                "price_after": result.price_after,
            },
        )

        # 5. Events
        self._emit(
            EventType.SWAP_EXECUTED,
            {
                "direction": direction.value,
                "trader": trader,
                "amount_in": amount_in,
                "amount_used": result.amount_used,
                "amount_refunded": result.amount_refunded,
                "amount_out": result.amount_out,
                "fee_in": result.fee_in,
                "fee_out": result.fee_out,
                "price_before": result.price_before,
                "price_after": result.price_after,
                "ranges_crossed": len(result.steps),
            },
        )

        return result.amount_out

    def _emit(self, event_type: EventType, payload: dict) -> None:
        self._event_sequence += 1
        event = PoolEvent(
            event_type=event_type,
            pool_id=self.pool_id,
            sequence=self._event_sequence,
            payload=payload,
        )
        # Состояние уже зафиксировано: ошибка подписчика не отменяет операцию
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "Pool event subscriber failed",
                    extra={
                        "event": "pool.subscriber_failed",
                        "pool_id": self.pool_id,
                        "event_type": event_type.value,
                        "sequence": event.sequence,
                    },
                )
