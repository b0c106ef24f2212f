"""
Тесты для Pydantic моделей domain

Coverage:
- Position: валидация, immutability, sqrt-границы, contains_price
- PoolState: снапшот, сериализация
- PoolEvent: валидация sequence и payload
"""

import math

import pytest
from pydantic import ValidationError

from wpremarket.core.domain import EventType, PoolEvent, PoolPhase, PoolState, Position


@pytest.fixture
def position() -> Position:
    return Position(
        position_id=1,
        owner="lp-1",
        lower_price=1.0,
        upper_price=5.0,
        liquidity=9045.34,
        collateral_amount=5000.0,
        initial_pre_token_amount=11180.34,
    )


class TestPosition:
    """Тесты модели Position."""

    def test_valid_position(self, position: Position) -> None:
        assert position.position_id == 1
        assert position.owner == "lp-1"
        assert position.lower_sqrt_price == 1.0
        assert position.upper_sqrt_price == pytest.approx(math.sqrt(5.0))

    def test_immutable(self, position: Position) -> None:
        """Позиция не изменяется после создания."""
        with pytest.raises(ValidationError):
            position.liquidity = 1.0

    def test_contains_price_closed_interval(self, position: Position) -> None:
        assert position.contains_price(1.0)
        assert position.contains_price(5.0)
        assert position.contains_price(2.5)
        assert not position.contains_price(0.99)
        assert not position.contains_price(5.01)

    def test_inverted_range_rejected(self) -> None:
        with pytest.raises(ValidationError, match="lower bound must be below upper bound"):
            Position(
                position_id=1,
                owner="lp-1",
                lower_price=5.0,
                upper_price=1.0,
                liquidity=1.0,
                collateral_amount=1.0,
                initial_pre_token_amount=1.0,
            )

    @pytest.mark.parametrize(
        "field, value",
        [
            ("position_id", 0),
            ("owner", ""),
            ("liquidity", 0.0),
            ("collateral_amount", -1.0),
            ("lower_price", float("nan")),
            ("initial_pre_token_amount", float("inf")),
        ],
    )
    def test_field_constraints(self, position: Position, field: str, value) -> None:
        data = position.model_dump()
        data[field] = value
        with pytest.raises(ValidationError):
            Position(**data)

    def test_json_round_trip(self, position: Position) -> None:
        restored = Position.model_validate_json(position.model_dump_json())
        assert restored == position


class TestPoolState:
    """Тесты модели PoolState."""

    def test_snapshot_fields(self, position: Position) -> None:
        state = PoolState(
            pool_id="USDC-wPRE",
            base_symbol="USDC",
            pre_token_symbol="wPRE",
            phase=PoolPhase.TRADING,
            price_lower=0.5,
            price_upper=10.0,
            current_price=1.0,
            base_reserve=5000.0,
            pre_token_reserve=11180.34,
            protocol_fees_base=0.0,
            positions=[position],
        )

        assert state.real_token_symbol is None
        assert state.protocol_fees_pre_token == 0.0
        assert state.positions[0] == position

        dumped = state.model_dump(mode="json")
        assert dumped["phase"] == "TRADING"
        assert dumped["positions"][0]["owner"] == "lp-1"

    def test_negative_reserve_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PoolState(
                pool_id="USDC-wPRE",
                base_symbol="USDC",
                pre_token_symbol="wPRE",
                phase=PoolPhase.TRADING,
                price_lower=0.5,
                price_upper=10.0,
                current_price=1.0,
                base_reserve=-1.0,
                pre_token_reserve=0.0,
                protocol_fees_base=0.0,
            )


class TestPoolEvent:
    """Тесты модели PoolEvent."""

    def test_valid_event(self) -> None:
        event = PoolEvent(
            event_type=EventType.SWAP_EXECUTED,
            pool_id="USDC-wPRE",
            sequence=3,
            payload={"trader": "alice", "amount_in": 100.0, "ranges_crossed": 2},
        )
        assert event.model_dump(mode="json")["event_type"] == "swap_executed"

    def test_sequence_starts_at_one(self) -> None:
        with pytest.raises(ValidationError):
            PoolEvent(event_type=EventType.POOL_CREATED, pool_id="USDC-wPRE", sequence=0)

    def test_nested_payload_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PoolEvent(
                event_type=EventType.POOL_CREATED,
                pool_id="USDC-wPRE",
                sequence=1,
                payload={"nested": {"a": 1}},
            )
