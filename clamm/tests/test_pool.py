"""
Pool 유동성 테스트

초기화, mint / burn / collect / modify_position 흐름과 입력 검증을 테스트합니다.
"""

import pytest

from ..constants import Q96, MIN_SQRT_RATIO, MAX_UINT128
from ..exceptions import (
    AlreadyInitialized,
    InvalidRange,
    LiquidityOverflow,
    LiquidityUnderflow,
    NoPosition,
    NotInitialized,
    PriceOutOfRange,
    TickNotSpaced,
    ZeroAmount,
)
from ..math.tick_math import get_sqrt_ratio_at_tick
from ..pool import Pool
from .conftest import TOKEN0, TOKEN1, FUNDING, liquidity_from_ticks


class TestConstruction:
    """Pool 생성 테스트"""

    def test_spacing_from_fee_tier(self):
        assert Pool(TOKEN0, TOKEN1, fee=500).tick_spacing == 10
        assert Pool(TOKEN0, TOKEN1, fee=10000).tick_spacing == 200

    def test_explicit_spacing(self):
        pool = Pool(TOKEN0, TOKEN1, fee=2500, tick_spacing=50)
        assert pool.tick_spacing == 50

    def test_same_tokens(self):
        with pytest.raises(ValueError):
            Pool(TOKEN0, TOKEN0, fee=3000)

    def test_fee_out_of_range(self):
        with pytest.raises(ValueError):
            Pool(TOKEN0, TOKEN1, fee=1_000_000, tick_spacing=1)

    def test_max_liquidity_per_tick(self):
        pool = Pool(TOKEN0, TOKEN1, fee=10000)
        assert pool.max_liquidity_per_tick == MAX_UINT128 // 8873


class TestQueries:
    """조회 테스트"""

    def test_state_dict(self, liquid_pool):
        state = liquid_pool.state()
        data = state.to_dict()
        assert data["liquidity"] == 10 ** 21
        assert type(state).from_dict(data) == state

    def test_repr(self, pool):
        assert repr(pool) == "Pool(TKA/TKB, fee=3000, spacing=60)"


class TestInitialize:
    """Pool.initialize 테스트"""

    def test_sets_price_and_tick(self, empty_pool):
        empty_pool.initialize(get_sqrt_ratio_at_tick(-120))
        slot0 = empty_pool.slot0()
        assert slot0.sqrt_price_x96 == get_sqrt_ratio_at_tick(-120)
        assert slot0.tick == -120
        assert slot0.observation_cardinality == 1

    def test_tick_is_floor(self, empty_pool):
        """틱 사이 가격이면 아래 틱"""
        empty_pool.initialize(get_sqrt_ratio_at_tick(-120) + 1)
        assert empty_pool.slot0().tick == -120

    def test_twice(self, pool):
        with pytest.raises(AlreadyInitialized):
            pool.initialize(Q96)

    def test_price_out_of_range(self, empty_pool):
        with pytest.raises(PriceOutOfRange):
            empty_pool.initialize(MIN_SQRT_RATIO - 1)
        assert not empty_pool.slot0().initialized

    def test_mint_before_initialize(self, empty_pool):
        with pytest.raises(NotInitialized):
            empty_pool.mint("alice", -60, 60, 1000)


class TestMint:
    """Pool.mint 테스트"""

    def test_range_below_price_needs_token1_only(self, pool):
        """[-60, 0] at tick 0: 범위가 가격 아래이므로 token1만 필요"""
        amount0, amount1 = pool.mint("alice", -60, 0, 10 ** 18)
        assert amount0 == 0
        assert amount1 > 0
        # 범위 밖이므로 활성 유동성은 그대로
        assert pool.state().liquidity == 0

    def test_range_starting_at_price_needs_token0_only(self, pool):
        """[0, 60] at tick 0: 현재 틱이 범위 안이지만 하한 가격과 같아 token1은 0"""
        amount0, amount1 = pool.mint("alice", 0, 60, 10 ** 18)
        assert amount0 > 0
        assert amount1 == 0
        assert pool.state().liquidity == 10 ** 18

    def test_range_above_price(self, pool):
        amount0, amount1 = pool.mint("alice", 60, 120, 10 ** 18)
        assert amount0 > 0
        assert amount1 == 0
        assert pool.state().liquidity == 0

    def test_range_around_price_needs_both(self, pool):
        amount0, amount1 = pool.mint("alice", -60, 60, 10 ** 18)
        assert amount0 > 0
        assert amount1 > 0
        # tick 0에서 대칭 범위는 거의 같은 양 (둘 다 올림)
        assert abs(amount0 - amount1) <= 2

    def test_balances_move(self, pool, ledger):
        amount0, amount1 = pool.mint("alice", -60, 60, 10 ** 18)
        assert ledger.balance_of("alice", TOKEN0) == FUNDING - amount0
        assert ledger.balance_of("alice", TOKEN1) == FUNDING - amount1
        assert ledger.balance_of(pool.address, TOKEN0) == amount0
        assert ledger.balance_of(pool.address, TOKEN1) == amount1

    def test_ticks_and_bitmap(self, pool):
        pool.mint("alice", -60, 60, 1000)
        pool.mint("bob", 0, 120, 500)

        assert pool.initialized_ticks() == [-60, 0, 60, 120]
        assert pool.get_tick(-60).liquidity_net == 1000
        assert pool.get_tick(60).liquidity_net == -1000
        assert pool.get_tick(0).liquidity_gross == 500
        assert pool.get_tick(120).liquidity_net == -500
        assert pool.state().liquidity == liquidity_from_ticks(pool) == 1500

    def test_position_recorded(self, pool):
        pool.mint("alice", -60, 60, 1000)
        pool.mint("alice", -60, 60, 500)
        assert pool.get_position("alice", -60, 60).liquidity == 1500
        assert pool.get_position("bob", -60, 60) is None

    def test_query_returns_copy(self, pool):
        pool.mint("alice", -60, 60, 1000)
        position = pool.get_position("alice", -60, 60)
        position.liquidity = 0
        assert pool.get_position("alice", -60, 60).liquidity == 1000

    def test_zero_amount(self, pool):
        with pytest.raises(ZeroAmount):
            pool.mint("alice", -60, 60, 0)

    def test_tick_not_spaced(self, pool):
        with pytest.raises(TickNotSpaced):
            pool.mint("alice", -10, 60, 1000)

    def test_invalid_range(self, pool):
        with pytest.raises(InvalidRange):
            pool.mint("alice", 60, -60, 1000)
        with pytest.raises(InvalidRange):
            pool.mint("alice", 60, 60, 1000)

    def test_liquidity_per_tick_cap(self, pool, ledger):
        with pytest.raises(LiquidityOverflow):
            pool.mint("alice", -60, 60, pool.max_liquidity_per_tick + 1)
        assert pool.tick_items() == []
        assert pool.get_position("alice", -60, 60) is None
        assert ledger.balance_of("alice", TOKEN0) == FUNDING


class TestBurn:
    """Pool.burn 테스트"""

    def test_burn_all_returns_principal_rounded_down(self, pool):
        minted = pool.mint("alice", -60, 60, 10 ** 18)
        burned = pool.burn("alice", -60, 60, 10 ** 18)

        # mint는 올림, burn은 내림
        assert 0 <= minted.amount0 - burned.amount0 <= 1
        assert 0 <= minted.amount1 - burned.amount1 <= 1

        position = pool.get_position("alice", -60, 60)
        assert position.liquidity == 0
        assert position.tokens_owed_0 == burned.amount0
        assert position.tokens_owed_1 == burned.amount1

    def test_burn_clears_ticks(self, pool):
        pool.mint("alice", -60, 60, 1000)
        pool.burn("alice", -60, 60, 1000)

        assert pool.tick_items() == []
        assert pool.initialized_ticks() == []
        assert pool.state().liquidity == 0

    def test_burn_keeps_shared_tick(self, pool):
        pool.mint("alice", -60, 60, 1000)
        pool.mint("bob", 60, 120, 1000)
        pool.burn("alice", -60, 60, 1000)

        assert pool.initialized_ticks() == [60, 120]
        assert pool.get_tick(60).liquidity_net == 1000

    def test_burn_does_not_transfer(self, pool, ledger):
        minted = pool.mint("alice", -60, 60, 10 ** 18)
        pool.burn("alice", -60, 60, 10 ** 18)
        assert ledger.balance_of("alice", TOKEN0) == FUNDING - minted.amount0

    def test_burn_more_than_held(self, liquid_pool):
        with pytest.raises(LiquidityUnderflow):
            liquid_pool.burn("alice", -600, 600, 10 ** 21 + 1)
        assert liquid_pool.get_position("alice", -600, 600).liquidity == 10 ** 21

    def test_burn_someone_elses_position(self, liquid_pool):
        with pytest.raises(LiquidityUnderflow):
            liquid_pool.burn("bob", -600, 600, 1)

    def test_poke_without_position(self, liquid_pool):
        with pytest.raises(NoPosition):
            liquid_pool.burn("bob", -600, 600, 0)

    def test_negative_amount(self, liquid_pool):
        with pytest.raises(ValueError):
            liquid_pool.burn("alice", -600, 600, -1)


class TestCollect:
    """Pool.collect 테스트"""

    def test_mint_burn_collect_round_trip(self, pool, ledger):
        minted = pool.mint("alice", -60, 60, 10 ** 18)
        burned = pool.burn("alice", -60, 60, 10 ** 18)
        collected = pool.collect("alice", -60, 60, MAX_UINT128, MAX_UINT128)

        assert collected == (burned.amount0, burned.amount1)
        assert ledger.balance_of("alice", TOKEN0) == FUNDING - minted.amount0 + burned.amount0
        assert ledger.balance_of("alice", TOKEN1) == FUNDING - minted.amount1 + burned.amount1
        # 반올림 차이만 풀에 남음
        assert ledger.balance_of(pool.address, TOKEN0) == minted.amount0 - burned.amount0
        assert pool.get_position("alice", -60, 60) is None

    def test_partial_collect_to_recipient(self, pool, ledger):
        pool.mint("alice", -60, 60, 10 ** 18)
        burned = pool.burn("alice", -60, 60, 10 ** 18)

        assert pool.collect("alice", -60, 60, 10, 0, recipient="carol") == (10, 0)
        assert ledger.balance_of("carol", TOKEN0) == FUNDING + 10

        position = pool.get_position("alice", -60, 60)
        assert position.tokens_owed_0 == burned.amount0 - 10
        assert position.tokens_owed_1 == burned.amount1

    def test_collect_nothing(self, liquid_pool):
        assert liquid_pool.collect("bob", -600, 600, MAX_UINT128, MAX_UINT128) == (0, 0)

    def test_negative_request(self, liquid_pool):
        with pytest.raises(ValueError):
            liquid_pool.collect("alice", -600, 600, -1, 0)


class TestModifyPosition:
    """Pool.modify_position 테스트"""

    def test_add_pays_like_mint(self, pool, ledger):
        amount0, amount1 = pool.modify_position("alice", -60, 60, 10 ** 18)

        assert amount0 > 0 and amount1 > 0
        assert ledger.balance_of(pool.address, TOKEN0) == amount0
        assert ledger.balance_of(pool.address, TOKEN1) == amount1
        assert pool.get_position("alice", -60, 60).liquidity == 10 ** 18

    def test_remove_pays_owner(self, liquid_pool, ledger):
        before0 = ledger.balance_of("alice", TOKEN0)
        before1 = ledger.balance_of("alice", TOKEN1)

        amount0, amount1 = liquid_pool.modify_position("alice", -600, 600, -10 ** 20)

        assert amount0 < 0 and amount1 < 0
        assert ledger.balance_of("alice", TOKEN0) == before0 - amount0
        assert ledger.balance_of("alice", TOKEN1) == before1 - amount1
        assert liquid_pool.state().liquidity == 9 * 10 ** 20
        # 원금은 바로 지급되므로 tokens_owed에 남지 않음
        assert liquid_pool.get_position("alice", -600, 600).tokens_owed_0 == 0

    def test_zero_delta_settles_fees(self, liquid_pool):
        liquid_pool.swap("bob", True, 10 ** 18)
        amount0, amount1 = liquid_pool.modify_position("alice", -600, 600, 0)

        assert (amount0, amount1) == (0, 0)
        assert liquid_pool.get_position("alice", -600, 600).tokens_owed_0 > 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
