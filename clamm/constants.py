"""
CLAMM 상수 정의

엔진 전체에서 사용하는 고정소수점/범위 상수들:
- Q96: sqrt price 인코딩에 사용 (2^96)
- Q128: fee growth 인코딩에 사용 (2^128)
- FEE_TIERS: 지원되는 수수료 티어 (pips 단위)
- TICK_SPACINGS: 각 수수료 티어별 틱 간격
"""

from typing import Dict

# Fixed-point 인코딩 상수
Q96: int = 2 ** 96
Q128: int = 2 ** 128
Q192: int = 2 ** 192

RESOLUTION_96: int = 96

# 수수료 티어 (hundredths of a bip, 1_000_000 = 100%)
# 500 = 0.05%, 3000 = 0.30%, 10000 = 1.00%
FEE_TIERS: Dict[int, str] = {
    100: "0.01%",
    500: "0.05%",
    3000: "0.30%",
    10000: "1.00%",
}

# 각 수수료 티어별 틱 간격
TICK_SPACINGS: Dict[int, int] = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

ONE_IN_PIPS: int = 1_000_000

# 틱 범위 상수
MIN_TICK: int = -887272
MAX_TICK: int = 887272

# get_sqrt_ratio_at_tick(MIN_TICK), get_sqrt_ratio_at_tick(MAX_TICK)
MIN_SQRT_RATIO: int = 4295128739
MAX_SQRT_RATIO: int = 1461446703485210103287273052203988822378723970342

# 정수 폭 최대값
MAX_UINT128: int = 2 ** 128 - 1
MAX_UINT160: int = 2 ** 160 - 1
MAX_UINT256: int = 2 ** 256 - 1
MAX_INT128: int = 2 ** 127 - 1
MIN_INT128: int = -(2 ** 127)
