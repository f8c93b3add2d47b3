"""
풀 잠금 테스트

진행 중인 연산 안에서의 재진입 거부와 스레드 간 직렬화를 테스트합니다.
"""

import threading

import pytest

from ..constants import Q96
from ..exceptions import ReentrancyLocked
from ..pool import Pool
from ..settlement import make_payer
from .conftest import TOKEN0, TOKEN1, liquidity_from_ticks


class TestReentrancy:
    """콜백에서의 재진입 테스트"""

    def test_swap_from_callback(self, liquid_pool, ledger):
        state = liquid_pool.state()
        balances = ledger.balances()

        def reenter(amount0, amount1):
            liquid_pool.swap("bob", False, 10 ** 18)

        with pytest.raises(ReentrancyLocked):
            liquid_pool.swap("bob", True, 10 ** 18, callback=reenter)

        assert liquid_pool.state() == state
        assert ledger.balances() == balances

    def test_read_from_callback(self, liquid_pool):
        def peek(amount0, amount1):
            liquid_pool.slot0()

        with pytest.raises(ReentrancyLocked):
            liquid_pool.swap("bob", True, 10 ** 18, callback=peek)

    def test_mint_from_mint_callback(self, pool):
        def reenter(amount0, amount1):
            pool.mint("alice", -60, 60, 1)

        with pytest.raises(ReentrancyLocked):
            pool.mint("alice", -120, 120, 10 ** 18, callback=reenter)
        assert pool.get_position("alice", -120, 120) is None

    def test_usable_after_rejected_reentry(self, liquid_pool):
        def reenter(amount0, amount1):
            liquid_pool.burn("alice", -600, 600, 0)

        with pytest.raises(ReentrancyLocked):
            liquid_pool.swap("bob", True, 10 ** 18, callback=reenter)

        result = liquid_pool.swap("bob", True, 10 ** 18)
        assert result.amount0 == 10 ** 18

    def test_other_pool_from_callback(self, liquid_pool, ledger):
        """다른 풀은 잠겨 있지 않으므로 콜백 안에서 호출 가능"""
        other = Pool(TOKEN0, TOKEN1, fee=500, ledger=ledger)
        other.initialize(Q96)
        other.mint("carol", -100, 100, 10 ** 21)
        payer = make_payer(ledger, "bob", liquid_pool.address, TOKEN0, TOKEN1)

        def route(amount0, amount1):
            other.swap("bob", False, 10 ** 15)
            payer(amount0, amount1)

        liquid_pool.swap("bob", True, 10 ** 18, callback=route)
        assert other.slot0().sqrt_price_x96 > Q96


class TestThreads:
    """스레드 직렬화 테스트"""

    def test_concurrent_swaps(self, liquid_pool):
        barrier = threading.Barrier(2)
        errors = []

        def trade(account, zero_for_one):
            try:
                barrier.wait()
                for _ in range(20):
                    liquid_pool.swap(account, zero_for_one, 10 ** 17)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=trade, args=("bob", True)),
            threading.Thread(target=trade, args=("carol", False)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert liquid_pool.state().liquidity == liquidity_from_ticks(liquid_pool)
        state = liquid_pool.state()
        assert state.fee_growth_global_0_x128 > 0
        assert state.fee_growth_global_1_x128 > 0

    def test_concurrent_mints(self, pool):
        barrier = threading.Barrier(3)

        def provide(account):
            barrier.wait()
            for _ in range(10):
                pool.mint(account, -600, 600, 10 ** 18)

        threads = [threading.Thread(target=provide, args=(a,)) for a in ("alice", "bob", "carol")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert pool.state().liquidity == 30 * 10 ** 18
        assert pool.get_tick(-600).liquidity_gross == 30 * 10 ** 18
        for account in ("alice", "bob", "carol"):
            assert pool.get_position(account, -600, 600).liquidity == 10 * 10 ** 18

    def test_shared_ledger_cross_pool_callback(self, ledger):
        """B 콜백 안에서 A를 호출하는 동안 다른 스레드가 A를 직접 호출해도 교착 없음"""
        in_callback = threading.Event()
        a_locked = threading.Event()

        def clock_a():
            # A의 잠금을 쥔 뒤에 호출됨
            if threading.current_thread().name == "direct":
                a_locked.set()
            return 0

        a = Pool(TOKEN0, TOKEN1, fee=3000, ledger=ledger, clock=clock_a)
        b = Pool(TOKEN0, TOKEN1, fee=500, ledger=ledger)
        for p in (a, b):
            p.initialize(Q96)
            p.mint("carol", -600, 600, 10 ** 21)

        pay_b = make_payer(ledger, "bob", b.address, TOKEN0, TOKEN1)
        errors = []

        def nested(amount0, amount1):
            in_callback.set()
            a_locked.wait(timeout=5)
            a.swap("bob", False, 10 ** 15)
            pay_b(amount0, amount1)

        def via_b():
            try:
                b.swap("bob", True, 10 ** 15, callback=nested)
            except Exception as e:
                errors.append(e)

        def direct():
            try:
                in_callback.wait(timeout=5)
                a.swap("alice", True, 10 ** 15)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=via_b, name="via_b", daemon=True),
            threading.Thread(target=direct, name="direct", daemon=True),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert [t.is_alive() for t in threads] == [False, False]
        assert errors == []
        assert a_locked.is_set()
        assert b.state().fee_growth_global_0_x128 > 0
        state_a = a.state()
        assert state_a.fee_growth_global_0_x128 > 0
        assert state_a.fee_growth_global_1_x128 > 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
