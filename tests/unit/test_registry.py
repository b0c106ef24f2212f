"""Тесты для PreMarketAMM (реестр pools).

Coverage:
- create_pool / get_pool / get_all_pools
- Маршрутизация операций к pool
- Независимость pools
- Подписчики реестра
"""

import pytest

from wpremarket import PreMarketAMM, Token
from wpremarket.amm.pool import PoolConfig
from wpremarket.core.domain import EventType, PoolPhase
from wpremarket.core.errors import (
    InvalidRange,
    PoolAlreadyExists,
    PoolNotFound,
    SettlementPhaseViolation,
)


@pytest.fixture
def usdc() -> Token:
    token = Token("USD Coin", "USDC", decimals=6)
    token.mint("lp", 50_000.0)
    token.mint("alice", 5_000.0)
    return token


@pytest.fixture
def amm() -> PreMarketAMM:
    return PreMarketAMM()


class TestPreMarketAMM:
    """Тесты реестра pools."""

    def test_create_pool_id(self, amm: PreMarketAMM, usdc: Token):
        pool_id = amm.create_pool(usdc, Token("Pre", "wPRE"), 0.5, 10.0)

        assert pool_id == "USDC-wPRE"
        assert pool_id in amm
        assert amm.get_all_pools() == ["USDC-wPRE"]
        assert amm.get_pool(pool_id).pool_id == pool_id

    def test_duplicate_pool_rejected(self, amm: PreMarketAMM, usdc: Token):
        wpre = Token("Pre", "wPRE")
        amm.create_pool(usdc, wpre, 0.5, 10.0)

        with pytest.raises(PoolAlreadyExists):
            amm.create_pool(usdc, wpre, 1.0, 2.0)
        assert len(amm) == 1

    def test_invalid_range_not_registered(self, amm: PreMarketAMM, usdc: Token):
        with pytest.raises(InvalidRange):
            amm.create_pool(usdc, Token("Pre", "wPRE"), 10.0, 0.5)
        assert amm.get_all_pools() == []

    def test_missing_pool(self, amm: PreMarketAMM):
        with pytest.raises(PoolNotFound, match="Pool USDC-NOPE does not exist"):
            amm.get_pool("USDC-NOPE")
        with pytest.raises(PoolNotFound):
            amm.get_price("USDC-NOPE")

    def test_routed_operations(self, amm: PreMarketAMM, usdc: Token):
        wpre = Token("Pre", "wPRE")
        pool_id = amm.create_pool(usdc, wpre, 0.5, 10.0)

        position_id = amm.add_liquidity(pool_id, "lp", 5000.0, 1.0, 5.0)
        bought = amm.swap_base_for_pre_token(pool_id, "alice", 2000.0)
        price_after_buy = amm.get_price(pool_id)
        received = amm.swap_pre_token_for_base(pool_id, "alice", bought / 2)

        assert position_id == 1
        assert bought == pytest.approx(wpre.balance_of("alice") * 2)
        assert price_after_buy == pytest.approx(1.489, abs=1e-3)
        assert amm.get_price(pool_id) < price_after_buy
        assert received > 0
        assert [p.owner for p in amm.get_all_positions(pool_id)] == ["lp"]
        assert amm.snapshot(pool_id).pool_id == pool_id

    def test_settlement_is_per_pool(self, amm: PreMarketAMM, usdc: Token):
        first = amm.create_pool(usdc, Token("Pre A", "wA"), 0.5, 10.0)
        second = amm.create_pool(usdc, Token("Pre B", "wB"), 0.5, 10.0)
        amm.add_liquidity(first, "lp", 1000.0, 1.0, 5.0)
        amm.add_liquidity(second, "lp", 1000.0, 1.0, 5.0)

        amm.enter_settlement(first, Token("Real A", "A"))

        assert amm.get_pool(first).phase == PoolPhase.SETTLED
        assert amm.get_pool(second).phase == PoolPhase.TRADING
        with pytest.raises(SettlementPhaseViolation):
            amm.swap_base_for_pre_token(first, "alice", 10.0)
        assert amm.swap_base_for_pre_token(second, "alice", 10.0) > 0

    def test_subscribers_attach_to_new_pools(self, amm: PreMarketAMM, usdc: Token):
        received = []
        amm.subscribe(received.append)

        pool_id = amm.create_pool(usdc, Token("Pre", "wPRE"), 0.5, 10.0)
        amm.add_liquidity(pool_id, "lp", 1000.0, 1.0, 5.0)

        assert [e.event_type for e in received] == [
            EventType.POOL_CREATED,
            EventType.LIQUIDITY_ADDED,
        ]
        assert all(e.pool_id == pool_id for e in received)

    def test_default_config_applied(self, usdc: Token):
        amm = PreMarketAMM(default_config=PoolConfig(fee_rate=0.01))
        pool_id = amm.create_pool(usdc, Token("Pre", "wPRE"), 0.5, 10.0)

        assert amm.get_pool(pool_id).config.fee_rate == 0.01
