"""
공용 테스트 fixture

두 개의 토큰(TKA/TKB)과 넉넉히 충전된 계정(alice, bob, carol)을 가진
TokenLedger, 그리고 가격 1.0 (tick 0)에서 초기화된 0.30% 풀.
"""

import pytest

from ..constants import Q96
from ..pool import Pool
from ..scenario import StepClock
from ..settlement import TokenLedger

TOKEN0 = "TKA"
TOKEN1 = "TKB"
ACCOUNTS = ("alice", "bob", "carol")
FUNDING = 10 ** 30


def liquidity_from_ticks(pool: Pool) -> int:
    """현재 틱 이하 모든 틱의 liquidity_net 합 (활성 유동성을 독립적으로 재계산)"""
    tick = pool.slot0().tick
    return sum(info.liquidity_net for t, info in pool.tick_items() if t <= tick)


def assert_pool_invariants(pool: Pool, ranges) -> None:
    """전체 liquidity_net 합 0, 활성 유동성 일치, 0 <= fee growth inside <= global"""
    state = pool.state()
    assert sum(info.liquidity_net for _, info in pool.tick_items()) == 0
    assert state.liquidity == liquidity_from_ticks(pool)

    initialized = set(pool.initialized_ticks())
    for tick_lower, tick_upper in ranges:
        if tick_lower not in initialized or tick_upper not in initialized:
            continue
        inside_0, inside_1 = pool.get_fee_growth_inside(tick_lower, tick_upper)
        assert 0 <= inside_0 <= state.fee_growth_global_0_x128
        assert 0 <= inside_1 <= state.fee_growth_global_1_x128


@pytest.fixture
def ledger():
    ledger = TokenLedger()
    for account in ACCOUNTS:
        ledger.credit(account, TOKEN0, FUNDING)
        ledger.credit(account, TOKEN1, FUNDING)
    return ledger


@pytest.fixture
def clock():
    return StepClock(start=1_000, step=12)


@pytest.fixture
def empty_pool(ledger, clock):
    """초기화되지 않은 풀"""
    return Pool(TOKEN0, TOKEN1, fee=3000, ledger=ledger, clock=clock)


@pytest.fixture
def pool(empty_pool):
    """tick 0에서 초기화된 풀 (유동성 없음)"""
    empty_pool.initialize(Q96)
    return empty_pool


@pytest.fixture
def liquid_pool(pool):
    """alice가 [-600, 600]에 유동성 10^21을 공급한 풀"""
    pool.mint("alice", -600, 600, 10 ** 21)
    return pool
