"""
Oracle hook: the pool's only link to price-history bookkeeping.

The pool calls the hook once per swap and liquidity change, after settlement,
with the tick and active liquidity that were in effect before the operation.
It stores the returned (index, cardinality) in Slot0 without looking at it.
Tick crossings read the running cumulatives so TickInfo can mirror them the
same way it mirrors fee growth.

References:
- Uniswap V3 Core: contracts/libraries/Oracle.sol
"""

from typing import List, NamedTuple, Protocol, Tuple

from .constants import Q128


class OracleHook(Protocol):
    def initialize(self, timestamp: int) -> Tuple[int, int]:
        ...

    def write(self, timestamp: int, tick: int, liquidity: int) -> Tuple[int, int]:
        ...

    def cumulatives(self, timestamp: int, tick: int, liquidity: int) -> Tuple[int, int]:
        ...


class NullOracle:
    """Keeps no history; every cumulative reads as zero."""

    def initialize(self, timestamp: int) -> Tuple[int, int]:
        return 0, 1

    def write(self, timestamp: int, tick: int, liquidity: int) -> Tuple[int, int]:
        return 0, 1

    def cumulatives(self, timestamp: int, tick: int, liquidity: int) -> Tuple[int, int]:
        return 0, 0


class Observation(NamedTuple):
    timestamp: int
    tick_cumulative: int
    seconds_per_liquidity_cumulative_x128: int


def transform(last: Observation, timestamp: int, tick: int, liquidity: int) -> Observation:
    """Advance an observation to ``timestamp`` assuming ``tick`` and ``liquidity`` held since then."""
    delta = timestamp - last.timestamp
    return Observation(
        timestamp=timestamp,
        tick_cumulative=last.tick_cumulative + tick * delta,
        seconds_per_liquidity_cumulative_x128=(
            last.seconds_per_liquidity_cumulative_x128 + (delta * Q128) // max(liquidity, 1)
        ),
    )


class RecordingOracle:
    """Unbounded in-memory observation list, one entry per distinct timestamp."""

    def __init__(self):
        self.observations: List[Observation] = []

    def initialize(self, timestamp: int) -> Tuple[int, int]:
        self.observations = [Observation(timestamp, 0, 0)]
        return 0, 1

    def write(self, timestamp: int, tick: int, liquidity: int) -> Tuple[int, int]:
        if not self.observations:
            return self.initialize(timestamp)

        last = self.observations[-1]
        # at most one observation per timestamp
        if last.timestamp != timestamp:
            self.observations.append(transform(last, timestamp, tick, liquidity))
        return len(self.observations) - 1, len(self.observations)

    def cumulatives(self, timestamp: int, tick: int, liquidity: int) -> Tuple[int, int]:
        """(tick_cumulative, seconds_per_liquidity_cumulative_x128) as of ``timestamp``."""
        if not self.observations:
            return 0, 0
        last = self.observations[-1]
        if last.timestamp != timestamp:
            last = transform(last, timestamp, tick, liquidity)
        return last.tick_cumulative, last.seconds_per_liquidity_cumulative_x128
