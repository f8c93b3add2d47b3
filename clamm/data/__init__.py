"""
Data layer for the CLAMM engine

상태 타입 정의 및 유동성 분포 분석
"""

from .types import Slot0, TickInfo, PositionInfo, PoolState, SwapResult, ModifyPositionResult
from .depth import liquidity_distribution, depth_within
