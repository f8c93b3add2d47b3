"""
Concentrated-liquidity pool: the swap loop, liquidity changes and fee collection.

A Pool owns its price state, global fee accumulators, tick registry, tick
bitmap and position ledger. Every mutating call runs under an exclusive,
non-reentrant lock and works on the live state. The stores journal the prior
value of each key they write, and the scalars are saved on entry; if anything
raises, exactly those are put back. Value moves through a TokenLedger with the
deliver-then-verify protocol: the pool pays out first, asks the payment
callback for what it is owed, then checks its own balance.

References:
- Uniswap V3 Core: contracts/UniswapV3Pool.sol
- 백서 Section 6.2-6.4
"""

import copy
import functools
import logging
import threading
import time
from typing import Callable, Hashable, List, Optional, Tuple

from .config import settings
from .constants import ONE_IN_PIPS, MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO
from .data.types import Slot0, TickInfo, PositionInfo, PoolState, SwapResult, ModifyPositionResult
from .exceptions import (
    ZeroAmount,
    InvalidPriceLimit,
    TickNotSpaced,
    LiquidityUnderflow,
    ReentrancyLocked,
    NotInitialized,
    AlreadyInitialized,
    InsufficientPayment,
)
from .ledger.position import PositionLedger, check_ticks
from .ledger.tick import TickRegistry
from .ledger.tick_bitmap import TickBitmap
from .math.fee_math import fee_growth_for_step
from .math.liquidity_math import add_delta
from .math.sqrt_price_math import get_amount0_delta_signed, get_amount1_delta_signed
from .math.swap_math import compute_swap_step
from .math.tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio
from .oracle import NullOracle, OracleHook
from .settlement import PaymentCallback, TokenLedger, make_payer

logger = logging.getLogger(__name__)


class _PoolLock:
    """Exclusive lock that fails fast on same-thread re-entry instead of deadlocking."""

    def __init__(self):
        self._lock = threading.Lock()
        self._owner: Optional[int] = None

    def __enter__(self):
        if self._owner == threading.get_ident():
            raise ReentrancyLocked("pool is locked by an operation in progress")
        self._lock.acquire()
        self._owner = threading.get_ident()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._owner = None
        self._lock.release()
        return False


def _exclusive(method):
    """Run a mutating method under the pool lock; undo its writes if it raises."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            saved = self._begin()
            try:
                result = method(self, *args, **kwargs)
            except BaseException as e:
                self._rollback(saved)
                logger.warning(
                    "%s rolled back: %s: %s", method.__name__, type(e).__name__, e,
                    extra={"event": f"clamm.{method.__name__}.rollback", "pool": self.address},
                )
                raise
            self._commit()
            return result

    return wrapper


def _shared(method):
    """Run a query under the pool lock so it never sees a half-applied operation."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class Pool:
    """One token0/token1 pool with a fixed fee and tick spacing.

    Args:
        token0, token1: token identifiers on ``ledger``
        fee: swap fee in pips (3000 = 0.30%); defaults to settings.DEFAULT_FEE_TIER
        tick_spacing: defaults to the spacing of ``fee``'s tier
        ledger: token ledger used for settlement (a private one if omitted)
        oracle: price-history hook (NullOracle if omitted)
        clock: zero-argument callable returning the current timestamp
        address: the pool's account on ``ledger``
    """

    def __init__(
        self,
        token0: str,
        token1: str,
        fee: Optional[int] = None,
        tick_spacing: Optional[int] = None,
        ledger: Optional[TokenLedger] = None,
        oracle: Optional[OracleHook] = None,
        clock: Optional[Callable[[], int]] = None,
        address: Optional[Hashable] = None,
    ):
        if token0 == token1:
            raise ValueError("token0 and token1 must differ")
        if fee is None:
            fee = settings.DEFAULT_FEE_TIER
        if not 0 <= fee < ONE_IN_PIPS:
            raise ValueError(f"fee must be in [0, {ONE_IN_PIPS}) pips: {fee}")
        if tick_spacing is None:
            tick_spacing = settings.get_tick_spacing(fee)
        if tick_spacing <= 0:
            raise ValueError(f"tick spacing must be positive: {tick_spacing}")

        self.token0 = token0
        self.token1 = token1
        self.fee = fee
        self.tick_spacing = tick_spacing
        self.address = address if address is not None else f"pool:{token0}/{token1}/{fee}"
        self.ledger = ledger if ledger is not None else TokenLedger()
        self.oracle = oracle if oracle is not None else NullOracle()
        self._clock = clock if clock is not None else (lambda: int(time.time()))
        self._lock = _PoolLock()

        self._slot0 = Slot0()
        self._liquidity = 0
        self._fee_growth_global_0_x128 = 0
        self._fee_growth_global_1_x128 = 0
        self._ticks = TickRegistry(tick_spacing)
        self._bitmap = TickBitmap(tick_spacing)
        self._positions = PositionLedger()

    def __repr__(self) -> str:
        return f"Pool({self.token0}/{self.token1}, fee={self.fee}, spacing={self.tick_spacing})"

    @property
    def max_liquidity_per_tick(self) -> int:
        return self._ticks.max_liquidity_per_tick

    # ==================== Journal ====================

    def _stores(self) -> tuple:
        return self._ticks, self._bitmap, self._positions

    def _begin(self) -> tuple:
        """Open the store journals; return the scalar state to put back on failure."""
        for store in self._stores():
            store.begin()
        return (
            copy.copy(self._slot0),
            self._liquidity,
            self._fee_growth_global_0_x128,
            self._fee_growth_global_1_x128,
        )

    def _rollback(self, saved: tuple) -> None:
        for store in self._stores():
            store.rollback()
        (
            self._slot0,
            self._liquidity,
            self._fee_growth_global_0_x128,
            self._fee_growth_global_1_x128,
        ) = saved

    def _commit(self) -> None:
        for store in self._stores():
            store.commit()

    # ==================== Queries ====================

    @_shared
    def slot0(self) -> Slot0:
        return copy.copy(self._slot0)

    @_shared
    def state(self) -> PoolState:
        return PoolState(
            sqrt_price_x96=self._slot0.sqrt_price_x96,
            tick=self._slot0.tick,
            liquidity=self._liquidity,
            fee_growth_global_0_x128=self._fee_growth_global_0_x128,
            fee_growth_global_1_x128=self._fee_growth_global_1_x128,
        )

    @_shared
    def get_position(self, owner: Hashable, tick_lower: int, tick_upper: int) -> Optional[PositionInfo]:
        position = self._positions.get(owner, tick_lower, tick_upper)
        return copy.copy(position) if position is not None else None

    @_shared
    def get_tick(self, tick: int) -> TickInfo:
        return copy.copy(self._ticks.get(tick))

    @_shared
    def get_fee_growth_inside(self, tick_lower: int, tick_upper: int) -> Tuple[int, int]:
        """Current fee growth per unit of liquidity inside [tick_lower, tick_upper), both tokens."""
        return self._ticks.get_fee_growth_inside(
            tick_lower, tick_upper, self._slot0.tick,
            self._fee_growth_global_0_x128, self._fee_growth_global_1_x128,
        )

    @_shared
    def initialized_ticks(self) -> List[int]:
        return list(self._bitmap)

    @_shared
    def tick_items(self) -> List[Tuple[int, TickInfo]]:
        """(tick, TickInfo) for every stored tick, ascending."""
        return [(tick, copy.copy(info)) for tick, info in self._ticks.items()]

    # ==================== Lifecycle ====================

    @_exclusive
    def initialize(self, sqrt_price_x96: int) -> None:
        """Set the starting price. Allowed exactly once.

        Raises:
            AlreadyInitialized: the pool already has a price
            PriceOutOfRange: price outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)
        """
        if self._slot0.initialized:
            raise AlreadyInitialized(f"{self!r} is already initialized")

        tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
        index, cardinality = self.oracle.initialize(self._clock())
        self._slot0 = Slot0(sqrt_price_x96, tick, index, cardinality)

        logger.info(
            "Initialized %s at tick %d", self, tick,
            extra={"event": "clamm.initialize", "pool": self.address, "tick": tick,
                   "sqrt_price_x96": sqrt_price_x96},
        )

    def _require_initialized(self) -> None:
        if not self._slot0.initialized:
            raise NotInitialized(f"{self!r} has no price; call initialize() first")

    # ==================== Swap ====================

    def _check_swap(self, zero_for_one: bool, amount_specified: int, sqrt_price_limit_x96: Optional[int]) -> int:
        """Validate swap input; return the effective price limit."""
        if amount_specified == 0:
            raise ZeroAmount("swap amount must be non-zero")
        self._require_initialized()

        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

        current = self._slot0.sqrt_price_x96
        if zero_for_one:
            valid = MIN_SQRT_RATIO < sqrt_price_limit_x96 < current
        else:
            valid = current < sqrt_price_limit_x96 < MAX_SQRT_RATIO
        if not valid:
            raise InvalidPriceLimit(
                f"price limit {sqrt_price_limit_x96} is not beyond current price {current} "
                f"in direction zero_for_one={zero_for_one}"
            )
        return sqrt_price_limit_x96

    def _execute_swap(self, zero_for_one: bool, amount_specified: int, sqrt_price_limit_x96: int, now: int) -> SwapResult:
        """Walk the price across initialized ticks until the amount or the limit is exhausted.

        Mutates price, tick, active liquidity, global fee growth and every
        crossed tick. Callers hold the lock and an open journal.
        """
        exact_input = amount_specified > 0
        tick_before = self._slot0.tick
        liquidity_before = self._liquidity

        amount_remaining = amount_specified
        amount_calculated = 0
        sqrt_price_x96 = self._slot0.sqrt_price_x96
        tick = self._slot0.tick
        liquidity = self._liquidity
        fee_growth_global_x128 = (
            self._fee_growth_global_0_x128 if zero_for_one else self._fee_growth_global_1_x128
        )
        cumulatives = None

        while amount_remaining != 0 and sqrt_price_x96 != sqrt_price_limit_x96:
            sqrt_price_start_x96 = sqrt_price_x96

            tick_next, initialized = self._bitmap.next_initialized_tick_within_one_word(tick, zero_for_one)
            # the bitmap is unaware of the tick bounds
            tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
            sqrt_price_next_x96 = get_sqrt_ratio_at_tick(tick_next)

            if zero_for_one:
                target = max(sqrt_price_next_x96, sqrt_price_limit_x96)
            else:
                target = min(sqrt_price_next_x96, sqrt_price_limit_x96)

            step = compute_swap_step(sqrt_price_x96, target, liquidity, amount_remaining, self.fee)
            sqrt_price_x96 = step.sqrt_ratio_next_x96

            if exact_input:
                amount_remaining -= step.amount_in + step.fee_amount
                amount_calculated -= step.amount_out
            else:
                amount_remaining += step.amount_out
                amount_calculated += step.amount_in + step.fee_amount

            if liquidity > 0:
                fee_growth_global_x128 += fee_growth_for_step(step.fee_amount, liquidity)

            logger.debug(
                "Swap step: tick_next=%d in=%d out=%d fee=%d liquidity=%d",
                tick_next, step.amount_in, step.amount_out, step.fee_amount, liquidity,
            )

            if sqrt_price_x96 == sqrt_price_next_x96:
                if initialized:
                    if cumulatives is None:
                        cumulatives = self.oracle.cumulatives(now, tick_before, liquidity_before)
                    tick_cumulative, seconds_per_liquidity_x128 = cumulatives
                    if zero_for_one:
                        fee_growth_0, fee_growth_1 = fee_growth_global_x128, self._fee_growth_global_1_x128
                    else:
                        fee_growth_0, fee_growth_1 = self._fee_growth_global_0_x128, fee_growth_global_x128

                    liquidity_net = self._ticks.cross(
                        tick_next, fee_growth_0, fee_growth_1,
                        seconds_per_liquidity_x128, tick_cumulative, now,
                    )
                    # moving left the range boundary is entered from above
                    if zero_for_one:
                        liquidity_net = -liquidity_net
                    liquidity = add_delta(liquidity, liquidity_net)

                tick = tick_next - 1 if zero_for_one else tick_next
            elif sqrt_price_x96 != sqrt_price_start_x96:
                # stopped inside the segment (amount exhausted or limit reached)
                tick = get_tick_at_sqrt_ratio(sqrt_price_x96)

        self._slot0.sqrt_price_x96 = sqrt_price_x96
        self._slot0.tick = tick
        self._liquidity = liquidity
        if zero_for_one:
            self._fee_growth_global_0_x128 = fee_growth_global_x128
        else:
            self._fee_growth_global_1_x128 = fee_growth_global_x128

        if zero_for_one == exact_input:
            amount0 = amount_specified - amount_remaining
            amount1 = amount_calculated
        else:
            amount0 = amount_calculated
            amount1 = amount_specified - amount_remaining

        if zero_for_one:
            amount_in, amount_out = amount0, -amount1
        else:
            amount_in, amount_out = amount1, -amount0

        return SwapResult(amount0, amount1, amount_in, amount_out, sqrt_price_x96, tick, liquidity)

    @_exclusive
    def swap(
        self,
        recipient: Hashable,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int] = None,
        callback: Optional[PaymentCallback] = None,
    ) -> SwapResult:
        """Swap token0 for token1 (``zero_for_one``) or the reverse.

        ``amount_specified`` > 0 is exact input, < 0 exact output. The output
        is delivered to ``recipient``; then ``callback(amount0, amount1)`` must
        pay the input into the pool (by default ``recipient`` pays from its
        ledger balance).

        Raises:
            ZeroAmount, NotInitialized, InvalidPriceLimit: before any mutation
            InsufficientPayment: the callback did not pay; everything rolled back
        """
        sqrt_price_limit_x96 = self._check_swap(zero_for_one, amount_specified, sqrt_price_limit_x96)

        now = self._clock()
        tick_before = self._slot0.tick
        liquidity_before = self._liquidity

        result = self._execute_swap(zero_for_one, amount_specified, sqrt_price_limit_x96, now)

        if callback is None:
            callback = make_payer(self.ledger, recipient, self.address, self.token0, self.token1)
        with self.ledger.transaction():
            self._settle(result.amount0, result.amount1, recipient, callback)
            self._write_oracle(now, tick_before, liquidity_before)

        logger.info(
            "Swap %s: in=%d out=%d tick %d -> %d",
            "0->1" if zero_for_one else "1->0", result.amount_in, result.amount_out, tick_before, result.tick,
            extra={"event": "clamm.swap", "pool": self.address, "zero_for_one": zero_for_one,
                   "amount0": result.amount0, "amount1": result.amount1, "tick": result.tick,
                   "liquidity": result.liquidity},
        )
        return result

    def quote(
        self,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int] = None,
    ) -> SwapResult:
        """Result a swap would have right now; nothing is mutated or settled."""
        with self._lock:
            sqrt_price_limit_x96 = self._check_swap(zero_for_one, amount_specified, sqrt_price_limit_x96)
            saved = self._begin()
            try:
                return self._execute_swap(zero_for_one, amount_specified, sqrt_price_limit_x96, self._clock())
            finally:
                self._rollback(saved)

    # ==================== Liquidity ====================

    def _check_position(self, owner: Hashable, tick_lower: int, tick_upper: int, liquidity_delta: int) -> None:
        check_ticks(tick_lower, tick_upper)
        for tick in (tick_lower, tick_upper):
            if tick % self.tick_spacing != 0:
                raise TickNotSpaced(f"tick {tick} is not a multiple of spacing {self.tick_spacing}")
        self._require_initialized()

        if liquidity_delta < 0:
            position = self._positions.get(owner, tick_lower, tick_upper)
            held = position.liquidity if position is not None else 0
            if held < -liquidity_delta:
                raise LiquidityUnderflow(
                    f"position ({owner}, {tick_lower}, {tick_upper}) holds {held}, cannot remove {-liquidity_delta}"
                )

    def _modify_position(
        self, owner: Hashable, tick_lower: int, tick_upper: int, liquidity_delta: int, now: int
    ) -> Tuple[int, int]:
        """Update ticks, bitmap, position and active liquidity.

        Returns:
            (amount0, amount1) owed to the pool (negative = owed to the owner)
        """
        tick = self._slot0.tick
        fee_growth_0 = self._fee_growth_global_0_x128
        fee_growth_1 = self._fee_growth_global_1_x128

        flipped_lower = flipped_upper = False
        if liquidity_delta != 0:
            tick_cumulative, seconds_per_liquidity_x128 = self.oracle.cumulatives(now, tick, self._liquidity)
            flipped_lower = self._ticks.update(
                tick_lower, tick, liquidity_delta, fee_growth_0, fee_growth_1, False,
                seconds_per_liquidity_x128, tick_cumulative, now,
            )
            flipped_upper = self._ticks.update(
                tick_upper, tick, liquidity_delta, fee_growth_0, fee_growth_1, True,
                seconds_per_liquidity_x128, tick_cumulative, now,
            )
            if flipped_lower:
                self._bitmap.flip_tick(tick_lower)
            if flipped_upper:
                self._bitmap.flip_tick(tick_upper)

        inside_0, inside_1 = self._ticks.get_fee_growth_inside(
            tick_lower, tick_upper, tick, fee_growth_0, fee_growth_1
        )
        self._positions.update(owner, tick_lower, tick_upper, liquidity_delta, inside_0, inside_1)

        # cleared ticks only come from withdrawals
        if liquidity_delta < 0:
            if flipped_lower:
                self._ticks.clear(tick_lower)
            if flipped_upper:
                self._ticks.clear(tick_upper)

        amount0 = amount1 = 0
        if liquidity_delta != 0:
            sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
            sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
            if tick < tick_lower:
                # range entirely above the price: only token0
                amount0 = get_amount0_delta_signed(sqrt_lower, sqrt_upper, liquidity_delta)
            elif tick < tick_upper:
                amount0 = get_amount0_delta_signed(self._slot0.sqrt_price_x96, sqrt_upper, liquidity_delta)
                amount1 = get_amount1_delta_signed(sqrt_lower, self._slot0.sqrt_price_x96, liquidity_delta)
                self._liquidity = add_delta(self._liquidity, liquidity_delta)
            else:
                # range entirely at or below the price: only token1
                amount1 = get_amount1_delta_signed(sqrt_lower, sqrt_upper, liquidity_delta)

        return amount0, amount1

    @_exclusive
    def modify_position(
        self,
        owner: Hashable,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        callback: Optional[PaymentCallback] = None,
    ) -> ModifyPositionResult:
        """Add (positive delta) or remove (negative delta) liquidity and settle immediately.

        Removed principal is paid straight to ``owner``; added principal is
        collected through ``callback`` (by default ``owner`` pays). A zero
        delta only settles accrued fees into tokens_owed.

        Raises:
            InvalidRange, TickNotSpaced, NotInitialized: before any mutation
            NoPosition: zero delta on a position without liquidity
            LiquidityUnderflow: removing more than the position holds
            LiquidityOverflow: a tick would exceed max_liquidity_per_tick
            InsufficientPayment: the callback did not pay; everything rolled back
        """
        self._check_position(owner, tick_lower, tick_upper, liquidity_delta)

        now = self._clock()
        tick_before = self._slot0.tick
        liquidity_before = self._liquidity

        amount0, amount1 = self._modify_position(owner, tick_lower, tick_upper, liquidity_delta, now)

        if callback is None:
            callback = make_payer(self.ledger, owner, self.address, self.token0, self.token1)
        with self.ledger.transaction():
            self._settle(amount0, amount1, owner, callback)
            if liquidity_delta != 0:
                self._write_oracle(now, tick_before, liquidity_before)

        logger.info(
            "Modified position (%s, %d, %d) by %d: amount0=%d amount1=%d",
            owner, tick_lower, tick_upper, liquidity_delta, amount0, amount1,
            extra={"event": "clamm.modify_position", "pool": self.address, "owner": owner,
                   "tick_lower": tick_lower, "tick_upper": tick_upper,
                   "liquidity_delta": liquidity_delta, "amount0": amount0, "amount1": amount1},
        )
        return ModifyPositionResult(amount0, amount1)

    @_exclusive
    def mint(
        self,
        owner: Hashable,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        callback: Optional[PaymentCallback] = None,
    ) -> ModifyPositionResult:
        """Add ``amount`` liquidity; the callback pays the (rounded up) token amounts."""
        if amount <= 0:
            raise ZeroAmount("mint amount must be positive")
        self._check_position(owner, tick_lower, tick_upper, amount)

        now = self._clock()
        tick_before = self._slot0.tick
        liquidity_before = self._liquidity

        amount0, amount1 = self._modify_position(owner, tick_lower, tick_upper, amount, now)

        if callback is None:
            callback = make_payer(self.ledger, owner, self.address, self.token0, self.token1)
        with self.ledger.transaction():
            self._settle(amount0, amount1, owner, callback)
            self._write_oracle(now, tick_before, liquidity_before)

        logger.info(
            "Minted %d liquidity for (%s, %d, %d): amount0=%d amount1=%d",
            amount, owner, tick_lower, tick_upper, amount0, amount1,
            extra={"event": "clamm.mint", "pool": self.address, "owner": owner,
                   "tick_lower": tick_lower, "tick_upper": tick_upper,
                   "liquidity": amount, "amount0": amount0, "amount1": amount1},
        )
        return ModifyPositionResult(amount0, amount1)

    @_exclusive
    def burn(self, owner: Hashable, tick_lower: int, tick_upper: int, amount: int = 0) -> ModifyPositionResult:
        """Remove ``amount`` liquidity, crediting the principal (rounded down) to tokens_owed.

        ``burn(..., 0)`` settles accrued fees without touching liquidity.

        Returns:
            ModifyPositionResult of the released principal (non-negative)
        """
        if amount < 0:
            raise ValueError(f"burn amount must be non-negative: {amount}")
        self._check_position(owner, tick_lower, tick_upper, -amount)

        now = self._clock()
        tick_before = self._slot0.tick
        liquidity_before = self._liquidity

        amount0, amount1 = self._modify_position(owner, tick_lower, tick_upper, -amount, now)
        amount0, amount1 = -amount0, -amount1
        if amount0 > 0 or amount1 > 0:
            self._positions.credit(owner, tick_lower, tick_upper, amount0, amount1)
        if amount != 0:
            self._write_oracle(now, tick_before, liquidity_before)

        logger.info(
            "Burned %d liquidity from (%s, %d, %d): amount0=%d amount1=%d",
            amount, owner, tick_lower, tick_upper, amount0, amount1,
            extra={"event": "clamm.burn", "pool": self.address, "owner": owner,
                   "tick_lower": tick_lower, "tick_upper": tick_upper,
                   "liquidity": amount, "amount0": amount0, "amount1": amount1},
        )
        return ModifyPositionResult(amount0, amount1)

    @_exclusive
    def collect(
        self,
        owner: Hashable,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int,
        amount1_requested: int,
        recipient: Optional[Hashable] = None,
    ) -> Tuple[int, int]:
        """Pay out up to the requested amounts of tokens_owed to ``recipient`` (default ``owner``).

        Returns:
            (amount0, amount1) actually paid
        """
        if amount0_requested < 0 or amount1_requested < 0:
            raise ValueError("requested amounts must be non-negative")
        if recipient is None:
            recipient = owner

        amount0, amount1 = self._positions.collect(
            owner, tick_lower, tick_upper, amount0_requested, amount1_requested
        )
        with self.ledger.transaction():
            self.ledger.transfer(self.token0, self.address, recipient, amount0)
            self.ledger.transfer(self.token1, self.address, recipient, amount1)

        logger.info(
            "Collected amount0=%d amount1=%d from (%s, %d, %d)",
            amount0, amount1, owner, tick_lower, tick_upper,
            extra={"event": "clamm.collect", "pool": self.address, "owner": owner,
                   "recipient": recipient, "amount0": amount0, "amount1": amount1},
        )
        return amount0, amount1

    # ==================== Settlement ====================

    def _settle(self, amount0: int, amount1: int, recipient: Hashable, callback: PaymentCallback) -> None:
        """Deliver what the pool owes, then collect and verify what it is owed.

        Must run inside ``self.ledger.transaction()``.
        """
        if amount0 < 0:
            self.ledger.transfer(self.token0, self.address, recipient, -amount0)
        if amount1 < 0:
            self.ledger.transfer(self.token1, self.address, recipient, -amount1)

        if amount0 <= 0 and amount1 <= 0:
            return

        balance0_before = self.ledger.balance_of(self.address, self.token0)
        balance1_before = self.ledger.balance_of(self.address, self.token1)
        callback(amount0, amount1)

        for token, owed, before in (
            (self.token0, amount0, balance0_before),
            (self.token1, amount1, balance1_before),
        ):
            if owed <= 0:
                continue
            received = self.ledger.balance_of(self.address, token) - before
            if received < owed:
                raise InsufficientPayment(token, owed, received)

    def _write_oracle(self, now: int, tick: int, liquidity: int) -> None:
        index, cardinality = self.oracle.write(now, tick, liquidity)
        self._slot0.observation_index = index
        self._slot0.observation_cardinality = cardinality
