"""
Position ledger: owned liquidity and lazily settled fees per (owner, range).

Fees are never pushed to positions during swaps. Each position keeps the fee
growth inside its range as of its last settlement; settling multiplies the
growth since then by the position's liquidity (rounded down).

References:
- Uniswap V3 Core: contracts/libraries/Position.sol
- 백서 Section 6.4.1: Position-Indexed State
"""

from typing import Dict, Hashable, Iterator, Optional, Tuple

from ..constants import MIN_TICK, MAX_TICK
from ..data.types import PositionInfo
from ..exceptions import InvalidRange, NoPosition
from ..math.fee_math import calculate_uncollected_fees
from ..math.liquidity_math import add_delta
from .journal import Journaled

PositionKey = Tuple[Hashable, int, int]


def check_ticks(tick_lower: int, tick_upper: int) -> None:
    """Common checks for a position range."""
    if tick_lower >= tick_upper:
        raise InvalidRange(f"tick_lower {tick_lower} must be below tick_upper {tick_upper}")
    if tick_lower < MIN_TICK:
        raise InvalidRange(f"tick_lower {tick_lower} below MIN_TICK")
    if tick_upper > MAX_TICK:
        raise InvalidRange(f"tick_upper {tick_upper} above MAX_TICK")


class PositionLedger(Journaled):
    """Positions keyed by (owner, tick_lower, tick_upper)."""

    def __init__(self):
        self._positions: Dict[PositionKey, PositionInfo] = {}

    def _store(self) -> Dict[PositionKey, PositionInfo]:
        return self._positions

    def get(self, owner: Hashable, tick_lower: int, tick_upper: int) -> Optional[PositionInfo]:
        return self._positions.get((owner, tick_lower, tick_upper))

    def get_or_create(self, owner: Hashable, tick_lower: int, tick_upper: int) -> PositionInfo:
        key = (owner, tick_lower, tick_upper)
        self._touch(key)
        return self._positions.setdefault(key, PositionInfo())

    def update(
        self,
        owner: Hashable,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        fee_growth_inside_0_x128: int,
        fee_growth_inside_1_x128: int,
    ) -> PositionInfo:
        """Settle fees accrued since the last snapshot, then apply ``liquidity_delta``.

        A zero delta is a pure fee settlement ("poke") and requires the position
        to hold liquidity.

        Raises:
            NoPosition: zero delta on a position without liquidity
            LiquidityUnderflow: removing more liquidity than the position holds
        """
        key = (owner, tick_lower, tick_upper)
        self._touch(key)
        position = self._positions.get(key)
        if position is None:
            position = PositionInfo()

        if liquidity_delta == 0:
            if position.liquidity == 0:
                raise NoPosition(f"no liquidity for position {key}")
            liquidity_next = position.liquidity
        else:
            liquidity_next = add_delta(position.liquidity, liquidity_delta)

        tokens_owed_0 = calculate_uncollected_fees(
            position.liquidity, fee_growth_inside_0_x128, position.fee_growth_inside_0_last_x128
        )
        tokens_owed_1 = calculate_uncollected_fees(
            position.liquidity, fee_growth_inside_1_x128, position.fee_growth_inside_1_last_x128
        )

        position.liquidity = liquidity_next
        position.fee_growth_inside_0_last_x128 = fee_growth_inside_0_x128
        position.fee_growth_inside_1_last_x128 = fee_growth_inside_1_x128
        position.tokens_owed_0 += tokens_owed_0
        position.tokens_owed_1 += tokens_owed_1

        self._positions[key] = position
        self.remove_if_empty(key)
        return position

    def credit(self, owner: Hashable, tick_lower: int, tick_upper: int, amount0: int, amount1: int) -> None:
        """Add withdrawn principal to the position's owed amounts."""
        position = self.get_or_create(owner, tick_lower, tick_upper)
        position.tokens_owed_0 += amount0
        position.tokens_owed_1 += amount1
        self.remove_if_empty((owner, tick_lower, tick_upper))

    def collect(
        self,
        owner: Hashable,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int,
        amount1_requested: int,
    ) -> Tuple[int, int]:
        """Take up to the requested amounts out of tokens_owed.

        Returns:
            (amount0, amount1) actually released; any remainder stays owed
        """
        key = (owner, tick_lower, tick_upper)
        position = self._positions.get(key)
        if position is None:
            return 0, 0
        self._touch(key)

        amount0 = min(amount0_requested, position.tokens_owed_0)
        amount1 = min(amount1_requested, position.tokens_owed_1)
        position.tokens_owed_0 -= amount0
        position.tokens_owed_1 -= amount1

        self.remove_if_empty(key)
        return amount0, amount1

    def remove_if_empty(self, key: PositionKey) -> None:
        position = self._positions.get(key)
        if position is not None and position.is_empty:
            self._touch(key)
            del self._positions[key]

    def __contains__(self, key: PositionKey) -> bool:
        return key in self._positions

    def __iter__(self) -> Iterator[PositionKey]:
        return iter(list(self._positions))

    def __len__(self) -> int:
        return len(self._positions)
