"""
Тесты для Swap Routing

Проверяет:
1. PositionBook: arena, отсортированные индексы, поиск стартовой позиции
2. route_base_in: частичное исполнение, пересечение диапазонов, gap, остаток
3. route_pre_token_in: симметричные случаи
4. Монотонность цены при вложенных диапазонах
"""

import math

import pytest

from wpremarket.amm.routing import PositionBook, route_base_in, route_pre_token_in
from wpremarket.core.domain import Position
from wpremarket.core.errors import NoLiquidityAvailable, PositionNotFound


def make_position(position_id: int, lower: float, upper: float, liquidity: float) -> Position:
    return Position(
        position_id=position_id,
        owner=f"lp-{position_id}",
        lower_price=lower,
        upper_price=upper,
        liquidity=liquidity,
        collateral_amount=1.0,
        initial_pre_token_amount=1.0,
    )


def make_book(*positions: Position) -> PositionBook:
    book = PositionBook()
    for position in positions:
        book.add(position)
    return book


# =============================================================================
# POSITION BOOK
# =============================================================================


class TestPositionBook:
    """Тесты PositionBook."""

    def test_arena_access(self):
        first = make_position(1, 1.0, 4.0, 100.0)
        book = make_book(first)

        assert len(book) == 1
        assert 1 in book
        assert book.get(1) is first
        assert list(book) == [first]

    def test_missing_position(self):
        with pytest.raises(PositionNotFound, match="Position 7 does not exist"):
            PositionBook().get(7)

    def test_duplicate_id_rejected(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))
        with pytest.raises(ValueError, match="Duplicate"):
            book.add(make_position(1, 2.0, 3.0, 10.0))

    def test_sorted_views(self):
        a = make_position(1, 4.0, 9.0, 10.0)
        b = make_position(2, 1.0, 16.0, 10.0)
        c = make_position(3, 2.0, 3.0, 10.0)
        book = make_book(a, b, c)

        assert [p.position_id for p in book.ascending()] == [2, 3, 1]
        assert [p.position_id for p in book.descending()] == [2, 1, 3]

    def test_equal_bounds_ordered_by_id(self):
        book = make_book(make_position(2, 1.0, 4.0, 10.0), make_position(1, 1.0, 4.0, 10.0))
        assert [p.position_id for p in book.ascending()] == [1, 2]

    def test_buy_start_index(self):
        book = make_book(make_position(1, 1.0, 2.0, 10.0), make_position(2, 3.0, 4.0, 10.0))

        assert book.buy_start_index(math.sqrt(1.5)) == 0
        assert book.buy_start_index(math.sqrt(2.5)) == 1  # gap → следующий диапазон
        assert book.buy_start_index(math.sqrt(0.5)) == 0  # ниже всех диапазонов
        assert book.buy_start_index(math.sqrt(5.0)) is None

    def test_sell_start_index(self):
        book = make_book(make_position(1, 1.0, 2.0, 10.0), make_position(2, 3.0, 4.0, 10.0))

        assert book.sell_start_index(math.sqrt(3.5)) == 0  # descending: [2, 1]
        assert book.sell_start_index(math.sqrt(2.5)) == 1
        assert book.sell_start_index(math.sqrt(5.0)) == 0
        assert book.sell_start_index(math.sqrt(0.5)) is None

    def test_liquidity_at_sums_overlapping(self):
        book = make_book(
            make_position(1, 1.0, 9.0, 100.0),
            make_position(2, 2.0, 3.0, 50.0),
            make_position(3, 4.0, 9.0, 25.0),
        )

        assert book.liquidity_at(math.sqrt(2.5)) == pytest.approx(150.0)
        assert book.liquidity_at(math.sqrt(5.0)) == pytest.approx(125.0)
        assert book.liquidity_at(math.sqrt(10.0)) == 0.0

    def test_start_index_with_nested_ranges(self):
        """Стартовый индекс: содержащая цену позиция, иначе ближайшая за gap."""
        book = make_book(
            make_position(4, 36.0, 49.0, 10.0),  # √ [6, 7]
            make_position(2, 4.0, 9.0, 10.0),  # √ [2, 3]
            make_position(3, 16.0, 25.0, 10.0),  # √ [4, 5]
        )

        # Покупка: ascending = [2, 3, 4]
        start = book.buy_start_index(4.5)
        assert start == 1
        assert [p.position_id for p in book.ascending(start)] == [3, 4]
        assert [p.position_id for p in book.ascending(book.buy_start_index(5.5))] == [4]
        assert book.buy_start_index(7.5) is None

        # Продажа: descending = [4, 3, 2]
        start = book.sell_start_index(4.5)
        assert start == 1
        assert [p.position_id for p in book.descending(start)] == [3, 2]
        assert [p.position_id for p in book.descending(book.sell_start_index(3.5))] == [2]
        assert book.sell_start_index(1.5) is None

    def test_wide_range_found_behind_narrow_ones(self):
        """Широкая позиция с малым √Pa содержит цену даже после узких диапазонов."""
        book = make_book(
            make_position(1, 1.0, 100.0, 10.0),  # √ [1, 10]
            make_position(2, 4.0, 9.0, 10.0),  # √ [2, 3]
        )

        assert book.buy_start_index(3.5) == 0
        assert [p.position_id for p in book.ascending(book.buy_start_index(3.5))] == [1, 2]
        assert book.sell_start_index(1.5) == 0
        assert [p.position_id for p in book.descending(book.sell_start_index(1.5))] == [1, 2]


# =============================================================================
# BUY ROUTING (base → pre-token)
# =============================================================================


class TestRouteBaseIn:
    """Тесты route_base_in."""

    def test_partial_fill_single_range(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))

        outcome = route_base_in(book, 1.0, 50.0)

        assert outcome.amount_in_used == pytest.approx(50.0)
        assert outcome.amount_remaining == 0.0
        assert outcome.end_sqrt_price == pytest.approx(1.5)
        assert outcome.amount_out == pytest.approx(100.0 * (1.0 - 1.0 / 1.5))
        assert len(outcome.steps) == 1
        assert not outcome.steps[0].range_exhausted

    def test_crosses_adjacent_ranges(self):
        """[1,4] L=100 исчерпывается за 100 base, остаток идёт в [4,9]."""
        book = make_book(make_position(1, 1.0, 4.0, 100.0), make_position(2, 4.0, 9.0, 200.0))

        outcome = route_base_in(book, 1.0, 150.0)

        assert [s.position_id for s in outcome.steps] == [1, 2]
        assert outcome.steps[0].range_exhausted
        assert outcome.steps[0].amount_in == pytest.approx(100.0)
        assert outcome.end_sqrt_price == pytest.approx(2.0 + 50.0 / 200.0)
        expected_out = 100.0 * (1.0 - 0.5) + 200.0 * (1.0 / 2.0 - 1.0 / 2.25)
        assert outcome.amount_out == pytest.approx(expected_out)

    def test_gap_jump(self):
        """Цена на верхней границе [1,2] прыгает к нижней границе [4,9]."""
        book = make_book(make_position(1, 1.0, 2.0, 100.0), make_position(2, 4.0, 9.0, 100.0))

        outcome = route_base_in(book, math.sqrt(2.0), 10.0)

        assert [s.position_id for s in outcome.steps] == [2]
        assert outcome.steps[0].sqrt_price_start == pytest.approx(2.0)
        assert outcome.end_sqrt_price == pytest.approx(2.1)

    def test_remaining_when_all_ranges_exhausted(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))

        outcome = route_base_in(book, 1.0, 130.0)

        assert outcome.amount_in_used == pytest.approx(100.0)
        assert outcome.amount_remaining == pytest.approx(30.0)
        assert outcome.end_sqrt_price == pytest.approx(2.0)
        assert outcome.amount_out == pytest.approx(50.0)

    def test_nested_range_never_moves_price_down(self):
        book = make_book(make_position(1, 1.0, 9.0, 100.0), make_position(2, 2.0, 3.0, 50.0))

        outcome = route_base_in(book, 1.0, 1000.0)

        prices = [outcome.start_sqrt_price] + [s.sqrt_price_end for s in outcome.steps]
        assert prices == sorted(prices)
        assert all(s.amount_in >= 0 and s.amount_out >= 0 for s in outcome.steps)
        assert outcome.end_sqrt_price == pytest.approx(3.0)

    def test_no_liquidity_above(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))
        with pytest.raises(NoLiquidityAvailable):
            route_base_in(book, 2.5, 10.0)

    def test_empty_book(self):
        with pytest.raises(NoLiquidityAvailable):
            route_base_in(PositionBook(), 1.0, 10.0)

    def test_amount_below_price_resolution_is_returned(self):
        """√P + remaining/L == √P в float → шаг не исполняется, вход возвращается."""
        book = make_book(make_position(1, 1024.0**2, 2048.0**2, 1e9))

        outcome = route_base_in(book, 1024.0, 1e-5)

        assert outcome.steps == ()
        assert outcome.amount_in_used == 0.0
        assert outcome.amount_remaining == 1e-5
        assert outcome.amount_out == 0.0
        assert outcome.end_sqrt_price == 1024.0


# =============================================================================
# SELL ROUTING (pre-token → base)
# =============================================================================


class TestRoutePreTokenIn:
    """Тесты route_pre_token_in."""

    def test_partial_fill_single_range(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))

        outcome = route_pre_token_in(book, 2.0, 10.0)

        new_sqrt = 1.0 / (10.0 / 100.0 + 0.5)
        assert outcome.end_sqrt_price == pytest.approx(new_sqrt)
        assert outcome.amount_in_used == pytest.approx(10.0)
        assert outcome.amount_out == pytest.approx(100.0 * (2.0 - new_sqrt))

    def test_crosses_ranges_downward(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0), make_position(2, 4.0, 9.0, 200.0))

        # [4,9] содержит 200·(1/2 − 1/3) pre-token
        top_range_pre = 200.0 * (0.5 - 1.0 / 3.0)
        outcome = route_pre_token_in(book, 3.0, top_range_pre + 10.0)

        assert [s.position_id for s in outcome.steps] == [2, 1]
        assert outcome.steps[0].range_exhausted
        assert outcome.steps[0].amount_in == pytest.approx(top_range_pre)
        assert outcome.end_sqrt_price == pytest.approx(1.0 / (10.0 / 100.0 + 0.5))

    def test_remaining_when_all_ranges_exhausted(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))

        outcome = route_pre_token_in(book, 2.0, 80.0)

        assert outcome.amount_in_used == pytest.approx(50.0)
        assert outcome.amount_remaining == pytest.approx(30.0)
        assert outcome.end_sqrt_price == pytest.approx(1.0)
        assert outcome.amount_out == pytest.approx(100.0)

    def test_at_lower_bound_routes_nothing(self):
        book = make_book(make_position(1, 1.0, 4.0, 100.0))

        outcome = route_pre_token_in(book, 1.0, 10.0)

        assert outcome.steps == ()
        assert outcome.amount_in_used == 0.0
        assert outcome.amount_remaining == 10.0

    def test_nested_range_never_moves_price_up(self):
        book = make_book(make_position(1, 1.0, 9.0, 100.0), make_position(2, 2.0, 3.0, 50.0))

        outcome = route_pre_token_in(book, 3.0, 1000.0)

        prices = [outcome.start_sqrt_price] + [s.sqrt_price_end for s in outcome.steps]
        assert prices == sorted(prices, reverse=True)
        assert all(s.amount_in >= 0 and s.amount_out >= 0 for s in outcome.steps)

    def test_no_liquidity_below(self):
        book = make_book(make_position(1, 4.0, 9.0, 100.0))
        with pytest.raises(NoLiquidityAvailable):
            route_pre_token_in(book, 1.5, 10.0)

    def test_amount_below_price_resolution_is_returned(self):
        book = make_book(make_position(1, 1024.0**2, 2048.0**2, 1e9))

        outcome = route_pre_token_in(book, 2048.0, 1e-11)

        assert outcome.steps == ()
        assert outcome.amount_in_used == 0.0
        assert outcome.amount_remaining == 1e-11
        assert outcome.end_sqrt_price == 2048.0
