"""
Tick registry: per-boundary liquidity and fee-growth bookkeeping.

Storage is a plain dict keyed by tick index. Absent keys read as a zeroed
TickInfo; an entry exists only while liquidity_gross > 0 (the pool clears it
when a withdrawal empties the tick).

Fee growth outside a tick is relative: it is initialised under the convention
that all growth so far happened below the tick when the tick is at or below
the current tick, and is mirrored against global growth on every crossing.

References:
- Uniswap V3 Core: contracts/libraries/Tick.sol
- 백서 Section 6.3: Tick-Indexed State
"""

import logging
from typing import Dict, Iterator, Tuple

from ..constants import MAX_UINT128, MAX_INT128, MIN_INT128
from ..data.types import TickInfo
from ..exceptions import LiquidityOverflow
from ..math.fee_math import fee_growth_inside, calculate_fee_growth_delta
from ..math.liquidity_math import add_delta
from ..math.tick_math import get_min_tick, get_max_tick
from .journal import Journaled

logger = logging.getLogger(__name__)


def tick_spacing_to_max_liquidity_per_tick(tick_spacing: int) -> int:
    """Per-tick liquidity cap so that summing every tick's liquidity stays within uint128.

    max = (2^128 - 1) // number_of_usable_ticks(tick_spacing)
    """
    if tick_spacing <= 0:
        raise ValueError(f"tick spacing must be positive: {tick_spacing}")
    min_tick = get_min_tick(tick_spacing)
    max_tick = get_max_tick(tick_spacing)
    num_ticks = (max_tick - min_tick) // tick_spacing + 1
    return MAX_UINT128 // num_ticks


class TickRegistry(Journaled):
    """Sparse tick storage for one pool."""

    def __init__(self, tick_spacing: int):
        self.tick_spacing = tick_spacing
        self.max_liquidity_per_tick = tick_spacing_to_max_liquidity_per_tick(tick_spacing)
        self._ticks: Dict[int, TickInfo] = {}

    def _store(self) -> Dict[int, TickInfo]:
        return self._ticks

    def get(self, tick: int) -> TickInfo:
        """Stored entry, or a zeroed default that is *not* inserted."""
        info = self._ticks.get(tick)
        return info if info is not None else TickInfo()

    def update(
        self,
        tick: int,
        tick_current: int,
        liquidity_delta: int,
        fee_growth_global_0_x128: int,
        fee_growth_global_1_x128: int,
        upper: bool,
        seconds_per_liquidity_cumulative_x128: int = 0,
        tick_cumulative: int = 0,
        time: int = 0,
    ) -> bool:
        """Apply a position's liquidity change to one of its boundaries.

        Args:
            tick: the boundary being updated
            tick_current: the pool's current tick
            liquidity_delta: signed liquidity added (removed) by the position
            fee_growth_global_0_x128: global fee growth of token0
            fee_growth_global_1_x128: global fee growth of token1
            upper: True for the position's upper boundary, False for the lower
            seconds_per_liquidity_cumulative_x128, tick_cumulative, time:
                oracle accumulators, stored opaquely

        Returns:
            True if the tick flipped between initialized and uninitialized

        Raises:
            LiquidityUnderflow: liquidity_gross would go negative
            LiquidityOverflow: liquidity_gross above max_liquidity_per_tick,
                or liquidity_net outside int128
        """
        self._touch(tick)
        info = self._ticks.get(tick)
        is_new = info is None
        if is_new:
            info = TickInfo()

        liquidity_gross_before = info.liquidity_gross
        liquidity_gross_after = add_delta(liquidity_gross_before, liquidity_delta)

        if liquidity_gross_after > self.max_liquidity_per_tick:
            raise LiquidityOverflow(
                f"tick {tick}: liquidity_gross {liquidity_gross_after} "
                f"exceeds max per tick {self.max_liquidity_per_tick}"
            )

        # crossing upward leaves a range at its upper tick and enters at its lower
        if upper:
            liquidity_net = info.liquidity_net - liquidity_delta
        else:
            liquidity_net = info.liquidity_net + liquidity_delta
        if liquidity_net > MAX_INT128 or liquidity_net < MIN_INT128:
            raise LiquidityOverflow(f"tick {tick}: liquidity_net {liquidity_net} outside int128")

        flipped = (liquidity_gross_after == 0) != (liquidity_gross_before == 0)

        if liquidity_gross_before == 0:
            # by convention, all growth before a tick was initialized happened below it
            if tick <= tick_current:
                info.fee_growth_outside_0_x128 = fee_growth_global_0_x128
                info.fee_growth_outside_1_x128 = fee_growth_global_1_x128
                info.seconds_per_liquidity_outside_x128 = seconds_per_liquidity_cumulative_x128
                info.tick_cumulative_outside = tick_cumulative
                info.seconds_outside = time
            info.initialized = True

        info.liquidity_gross = liquidity_gross_after
        info.liquidity_net = liquidity_net

        if is_new:
            self._ticks[tick] = info
        return flipped

    def clear(self, tick: int) -> None:
        """Drop a tick whose liquidity_gross reached zero."""
        self._touch(tick)
        self._ticks.pop(tick, None)

    def cross(
        self,
        tick: int,
        fee_growth_global_0_x128: int,
        fee_growth_global_1_x128: int,
        seconds_per_liquidity_cumulative_x128: int = 0,
        tick_cumulative: int = 0,
        time: int = 0,
    ) -> int:
        """Transition to ``tick`` as the price moves across it.

        Every "outside" accumulator becomes ``global - outside``; crossing the
        same tick twice with unchanged globals restores the original values.

        Returns:
            liquidity_net of the tick (the caller negates it when moving left)
        """
        info = self._ticks.get(tick)
        if info is None:
            return 0
        self._touch(tick)

        info.fee_growth_outside_0_x128 = calculate_fee_growth_delta(
            fee_growth_global_0_x128, info.fee_growth_outside_0_x128
        )
        info.fee_growth_outside_1_x128 = calculate_fee_growth_delta(
            fee_growth_global_1_x128, info.fee_growth_outside_1_x128
        )
        info.seconds_per_liquidity_outside_x128 = calculate_fee_growth_delta(
            seconds_per_liquidity_cumulative_x128, info.seconds_per_liquidity_outside_x128
        )
        info.tick_cumulative_outside = tick_cumulative - info.tick_cumulative_outside
        info.seconds_outside = time - info.seconds_outside

        logger.debug("Crossed tick %d (liquidity_net=%d)", tick, info.liquidity_net)
        return info.liquidity_net

    def get_fee_growth_inside(
        self,
        tick_lower: int,
        tick_upper: int,
        tick_current: int,
        fee_growth_global_0_x128: int,
        fee_growth_global_1_x128: int,
    ) -> Tuple[int, int]:
        """Fee growth per unit of liquidity inside [tick_lower, tick_upper), both tokens."""
        lower = self.get(tick_lower)
        upper = self.get(tick_upper)

        inside_0 = fee_growth_inside(
            tick_lower, tick_upper, tick_current,
            fee_growth_global_0_x128,
            lower.fee_growth_outside_0_x128,
            upper.fee_growth_outside_0_x128,
        )
        inside_1 = fee_growth_inside(
            tick_lower, tick_upper, tick_current,
            fee_growth_global_1_x128,
            lower.fee_growth_outside_1_x128,
            upper.fee_growth_outside_1_x128,
        )
        return inside_0, inside_1

    def __contains__(self, tick: int) -> bool:
        return tick in self._ticks

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._ticks))

    def __len__(self) -> int:
        return len(self._ticks)

    def items(self) -> Iterator[Tuple[int, TickInfo]]:
        for tick in sorted(self._ticks):
            yield tick, self._ticks[tick]
