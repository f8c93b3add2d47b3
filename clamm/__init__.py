"""
Concentrated Liquidity AMM Engine

온체인 수준 정밀도로 집중화된 유동성 풀의 가격 결정, 스왑, 포지션 정산을 수행하는 라이브러리.
백서 Section 6의 상태 모델(price / tick / position)을 그대로 따릅니다.
"""

__version__ = "0.1.0"

from .constants import Q96, Q128, FEE_TIERS, TICK_SPACINGS, MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO
from .config import Settings, settings
from .exceptions import (
    ClammError,
    ValidationError,
    MathError,
    StateError,
    SettlementError,
)
from .oracle import NullOracle, RecordingOracle
from .pool import Pool
from .settlement import TokenLedger, make_payer
