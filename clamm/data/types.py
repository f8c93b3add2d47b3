"""
CLAMM 상태 타입 정의

풀, 틱, 포지션 상태를 Python dataclass로 정의.
모든 숫자 필드는 온체인 정밀도를 위해 int 타입 사용.
"""

from dataclasses import dataclass, asdict
from typing import NamedTuple


@dataclass
class Slot0:
    """Price state (Section 6.2, Table 1)

    - sqrt_price_x96: 현재 √가격 (Q64.96)
    - tick: 현재 틱 인덱스, 항상 floor(log₁.₀₀₀₁(price))
    - observation_index / observation_cardinality: 오라클 훅이 반환한 값 (불투명)
    """
    sqrt_price_x96: int = 0
    tick: int = 0
    observation_index: int = 0
    observation_cardinality: int = 0

    @property
    def initialized(self) -> bool:
        return self.sqrt_price_x96 != 0


@dataclass
class TickInfo:
    """Tick-Indexed State (Section 6.3, Table 2)

    - liquidity_gross: 해당 틱을 경계로 하는 총 유동성
    - liquidity_net: 왼쪽→오른쪽 크로싱 시 활성 유동성 변화량 (ΔL)
    - fee_growth_outside_{0,1}_x128: 현재 틱 기준 반대편에서 누적된 수수료 (f_o)
    - *_outside: 오라클 누적값의 바깥쪽 스냅샷 (불투명하게 전달)
    """
    liquidity_gross: int = 0
    liquidity_net: int = 0
    fee_growth_outside_0_x128: int = 0  # f_o,0
    fee_growth_outside_1_x128: int = 0  # f_o,1
    tick_cumulative_outside: int = 0
    seconds_per_liquidity_outside_x128: int = 0
    seconds_outside: int = 0
    initialized: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TickInfo":
        return cls(
            liquidity_gross=int(data.get("liquidity_gross", 0)),
            liquidity_net=int(data.get("liquidity_net", 0)),
            fee_growth_outside_0_x128=int(data.get("fee_growth_outside_0_x128", 0)),
            fee_growth_outside_1_x128=int(data.get("fee_growth_outside_1_x128", 0)),
            tick_cumulative_outside=int(data.get("tick_cumulative_outside", 0)),
            seconds_per_liquidity_outside_x128=int(data.get("seconds_per_liquidity_outside_x128", 0)),
            seconds_outside=int(data.get("seconds_outside", 0)),
            initialized=bool(data.get("initialized", False)),
        )


@dataclass
class PositionInfo:
    """Position-Indexed State (Section 6.4, Table 3)

    - liquidity: 포지션의 유동성 (l)
    - fee_growth_inside_{0,1}_last_x128: 마지막 정산 시점의 범위 내 fee growth (f_r(t_0))
    - tokens_owed_{0,1}: 정산되었지만 아직 수령하지 않은 수량
    """
    liquidity: int = 0
    fee_growth_inside_0_last_x128: int = 0  # f_r,0(t_0)
    fee_growth_inside_1_last_x128: int = 0  # f_r,1(t_0)
    tokens_owed_0: int = 0
    tokens_owed_1: int = 0

    @property
    def is_empty(self) -> bool:
        return self.liquidity == 0 and self.tokens_owed_0 == 0 and self.tokens_owed_1 == 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PositionInfo":
        return cls(
            liquidity=int(data["liquidity"]),
            fee_growth_inside_0_last_x128=int(data.get("fee_growth_inside_0_last_x128", 0)),
            fee_growth_inside_1_last_x128=int(data.get("fee_growth_inside_1_last_x128", 0)),
            tokens_owed_0=int(data.get("tokens_owed_0", 0)),
            tokens_owed_1=int(data.get("tokens_owed_1", 0)),
        )


@dataclass
class PoolState:
    """풀 전역 상태 스냅샷 (읽기 전용 조회 결과)"""
    sqrt_price_x96: int
    tick: int
    liquidity: int  # 현재 활성 유동성 (L)
    fee_growth_global_0_x128: int  # f_g,0
    fee_growth_global_1_x128: int  # f_g,1

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PoolState":
        return cls(**{name: int(data[name]) for name in cls.__dataclass_fields__})


class SwapResult(NamedTuple):
    """스왑 결과

    amount0/amount1은 풀 기준 부호 (양수 = 풀이 받음, 음수 = 풀이 지급).
    amount_in은 수수료 포함 투입량, amount_out은 수령량 (둘 다 양수).
    """
    amount0: int
    amount1: int
    amount_in: int
    amount_out: int
    sqrt_price_x96: int
    tick: int
    liquidity: int


class ModifyPositionResult(NamedTuple):
    """포지션 변경 결과 (풀 기준 부호)"""
    amount0: int
    amount1: int
