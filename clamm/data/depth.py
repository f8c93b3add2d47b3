"""
Liquidity depth analytics over a pool's tick registry.

Active liquidity between two consecutive initialized ticks is the running sum
of liquidity_net from the lowest tick up, the same reconstruction an off-chain
indexer does from tick data.
"""

import math
from itertools import accumulate
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from ..math.sqrt_price_math import get_amount0_delta, get_amount1_delta
from ..math.liquidity_math import get_amounts_for_liquidity
from ..math.tick_math import get_sqrt_ratio_at_tick

if TYPE_CHECKING:
    from ..pool import Pool

DISTRIBUTION_COLUMNS = [
    "tick_lower", "tick_upper", "price_lower", "price_upper", "liquidity", "amount0", "amount1",
]


def liquidity_distribution(pool: "Pool", token0_decimals: int = 18, token1_decimals: int = 18) -> pd.DataFrame:
    """One row per interval between consecutive initialized ticks.

    Columns:
        tick_lower, tick_upper: interval bounds
        price_lower, price_upper: human-readable prices (token1 per token0)
        liquidity: active liquidity inside the interval
        amount0, amount1: tokens held by that liquidity at the current price (rounded down)
    """
    items = pool.tick_items()
    if len(items) < 2:
        return pd.DataFrame(columns=DISTRIBUTION_COLUMNS)

    sqrt_price_x96 = pool.slot0().sqrt_price_x96
    ticks = [tick for tick, _ in items]
    # python ints: liquidity can exceed int64
    active = list(accumulate(info.liquidity_net for _, info in items))

    rows = []
    for tick_lower, tick_upper, liquidity in zip(ticks[:-1], ticks[1:], active[:-1]):
        amount0, amount1 = get_amounts_for_liquidity(
            sqrt_price_x96,
            get_sqrt_ratio_at_tick(tick_lower),
            get_sqrt_ratio_at_tick(tick_upper),
            liquidity,
        )
        rows.append({
            "tick_lower": tick_lower,
            "tick_upper": tick_upper,
            "liquidity": liquidity,
            "amount0": amount0,
            "amount1": amount1,
        })

    df = pd.DataFrame(rows)
    decimals_adj = 10.0 ** (token0_decimals - token1_decimals)
    df["price_lower"] = np.power(1.0001, df["tick_lower"].to_numpy(dtype=float)) * decimals_adj
    df["price_upper"] = np.power(1.0001, df["tick_upper"].to_numpy(dtype=float)) * decimals_adj
    return df[DISTRIBUTION_COLUMNS]


def depth_within(pool: "Pool", pct: float, token: int) -> int:
    """Amount of ``token`` (0 or 1) a trade could take out before moving the price by ``pct``.

    token0 sits above the current price, token1 below it, so the band is
    [price, price * (1 + pct)] for token0 and [price / (1 + pct), price] for token1.
    """
    if pct <= 0:
        raise ValueError(f"pct must be positive: {pct}")
    if token not in (0, 1):
        raise ValueError(f"token must be 0 or 1: {token}")

    sqrt_price_x96 = pool.slot0().sqrt_price_x96
    band = math.sqrt(1 + pct)
    if token == 0:
        band_lower, band_upper = sqrt_price_x96, int(sqrt_price_x96 * band)
    else:
        band_lower, band_upper = int(sqrt_price_x96 / band), sqrt_price_x96

    df = liquidity_distribution(pool)
    total = 0
    for row in df.itertuples(index=False):
        liquidity = int(row.liquidity)
        if liquidity == 0:
            continue
        sqrt_a = max(get_sqrt_ratio_at_tick(int(row.tick_lower)), band_lower)
        sqrt_b = min(get_sqrt_ratio_at_tick(int(row.tick_upper)), band_upper)
        if sqrt_a >= sqrt_b:
            continue
        if token == 0:
            total += get_amount0_delta(sqrt_a, sqrt_b, liquidity, False)
        else:
            total += get_amount1_delta(sqrt_a, sqrt_b, liquidity, False)
    return total
