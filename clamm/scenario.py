"""
Scenario runner: replay a scripted sequence of pool actions.

A scenario is a YAML file validated with pydantic:

    pool:
      token0: WETH
      token1: USDC
      fee: 3000
      initial_tick: 0
    balances:
      alice: {WETH: 1000000000000000000000, USDC: 1000000000000000000000}
      bob: {WETH: 1000000000000000000000}
    actions:
      - {action: mint, owner: alice, tick_lower: -600, tick_upper: 600, amount: 1000000000000000000}
      - {action: swap, recipient: bob, zero_for_one: true, amount: 1000000000000000}
      - {action: burn, owner: alice, tick_lower: -600, tick_upper: 600}
      - {action: collect, owner: alice, tick_lower: -600, tick_upper: 600}

Every action runs against one in-memory TokenLedger, one second apart.
"""

import logging
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

import pandas as pd
import yaml
from pydantic import BaseModel, Field, model_validator

from .config import settings
from .constants import Q96, MAX_UINT128
from .math.sqrt_price_math import price_to_sqrt_price_x96, sqrt_price_x96_to_price
from .math.tick_math import get_sqrt_ratio_at_tick
from .pool import Pool
from .settlement import TokenLedger

logger = logging.getLogger(__name__)


class PoolConfig(BaseModel):
    """Pool parameters and starting price (initial_price wins over initial_tick)"""
    token0: str = Field(..., description="token0 symbol")
    token1: str = Field(..., description="token1 symbol")
    fee: int = Field(default_factory=lambda: settings.DEFAULT_FEE_TIER, description="Fee in pips", ge=0, lt=1_000_000)
    tick_spacing: Optional[int] = Field(default=None, description="Defaults to the fee tier's spacing", gt=0)
    initial_tick: Optional[int] = Field(default=None, description="Starting tick")
    initial_price: Optional[float] = Field(default=None, description="Starting price (token1 per token0)", gt=0)

    @model_validator(mode="after")
    def check_pool(self) -> "PoolConfig":
        if self.token0 == self.token1:
            raise ValueError(f"token0 and token1 must differ: {self.token0}")
        if self.tick_spacing is None:
            # raises ValueError for an unknown tier
            settings.get_tick_spacing(self.fee)
        return self

    def sqrt_price_x96(self) -> int:
        if self.initial_price is not None:
            return price_to_sqrt_price_x96(self.initial_price)
        if self.initial_tick is not None:
            return get_sqrt_ratio_at_tick(self.initial_tick)
        return Q96


class MintAction(BaseModel):
    action: Literal["mint"]
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int = Field(..., gt=0)


class BurnAction(BaseModel):
    """Burn ``amount`` liquidity; omitted means the whole position"""
    action: Literal["burn"]
    owner: str
    tick_lower: int
    tick_upper: int
    amount: Optional[int] = Field(default=None, ge=0)


class SwapAction(BaseModel):
    """amount > 0 is exact input, amount < 0 exact output"""
    action: Literal["swap"]
    recipient: str
    zero_for_one: bool
    amount: int
    sqrt_price_limit_x96: Optional[int] = None


class CollectAction(BaseModel):
    """Omitted amounts collect everything owed"""
    action: Literal["collect"]
    owner: str
    tick_lower: int
    tick_upper: int
    amount0: int = Field(default=MAX_UINT128, ge=0)
    amount1: int = Field(default=MAX_UINT128, ge=0)


Action = Annotated[
    Union[MintAction, BurnAction, SwapAction, CollectAction],
    Field(discriminator="action"),
]


class Scenario(BaseModel):
    """A pool, initial balances and an ordered action list"""
    pool: PoolConfig
    balances: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    actions: List[Action] = Field(default_factory=list)


def load_scenario(path: Union[str, Path]) -> Scenario:
    """Load and validate a scenario file, falling back to settings.SCENARIO_DIR for relative names."""
    path = Path(path)
    if not path.exists() and not path.is_absolute():
        candidate = Path(settings.SCENARIO_DIR) / path
        if candidate.exists():
            path = candidate

    with open(path) as f:
        data = yaml.safe_load(f)
    return Scenario.model_validate(data or {})


class StepClock:
    """Deterministic clock advanced once per action."""

    def __init__(self, start: int = 0, step: int = 1):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        return self.now

    def advance(self) -> int:
        self.now += self.step
        return self.now


def build_pool(scenario: Scenario, clock: Optional[StepClock] = None) -> Pool:
    """Fund a fresh ledger from the scenario balances and initialize its pool."""
    ledger = TokenLedger()
    for account, tokens in scenario.balances.items():
        for token, amount in tokens.items():
            ledger.credit(account, token, amount)

    config = scenario.pool
    pool = Pool(
        config.token0,
        config.token1,
        fee=config.fee,
        tick_spacing=config.tick_spacing,
        ledger=ledger,
        clock=clock if clock is not None else StepClock(),
    )
    pool.initialize(config.sqrt_price_x96())
    return pool


def _apply(pool: Pool, action) -> dict:
    """Run one action; return its row fields."""
    if isinstance(action, MintAction):
        amount0, amount1 = pool.mint(action.owner, action.tick_lower, action.tick_upper, action.amount)
        return {"account": action.owner, "amount0": amount0, "amount1": amount1}

    if isinstance(action, BurnAction):
        amount = action.amount
        if amount is None:
            position = pool.get_position(action.owner, action.tick_lower, action.tick_upper)
            amount = position.liquidity if position is not None else 0
        amount0, amount1 = pool.burn(action.owner, action.tick_lower, action.tick_upper, amount)
        return {"account": action.owner, "amount0": -amount0, "amount1": -amount1}

    if isinstance(action, SwapAction):
        result = pool.swap(action.recipient, action.zero_for_one, action.amount, action.sqrt_price_limit_x96)
        return {"account": action.recipient, "amount0": result.amount0, "amount1": result.amount1}

    if isinstance(action, CollectAction):
        amount0, amount1 = pool.collect(
            action.owner, action.tick_lower, action.tick_upper, action.amount0, action.amount1
        )
        return {"account": action.owner, "amount0": -amount0, "amount1": -amount1}

    raise TypeError(f"Unknown action: {action!r}")


def run_scenario(scenario: Scenario) -> pd.DataFrame:
    """Execute every action in order.

    Returns:
        One row per action: step, action, account, amount0, amount1 (pool
        perspective, positive = paid into the pool), tick, price, liquidity
    """
    clock = StepClock()
    pool = build_pool(scenario, clock)

    rows = []
    for step, action in enumerate(scenario.actions, start=1):
        clock.advance()
        row = {"step": step, "action": action.action}
        row.update(_apply(pool, action))

        state = pool.state()
        row["tick"] = state.tick
        row["price"] = sqrt_price_x96_to_price(state.sqrt_price_x96)
        row["liquidity"] = state.liquidity
        rows.append(row)

        logger.debug("Scenario step %d (%s) done at tick %d", step, action.action, state.tick)

    logger.info(
        "Scenario finished: %d actions", len(rows),
        extra={"event": "clamm.scenario", "pool": pool.address, "actions": len(rows)},
    )
    columns = ["step", "action", "account", "amount0", "amount1", "tick", "price", "liquidity"]
    return pd.DataFrame(rows, columns=columns)
