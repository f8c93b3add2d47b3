"""
Math layer for the CLAMM engine

온체인 수준 정밀도의 순수 함수들:
- full_math: 전체 정밀도 mul_div, 명시적 반올림
- tick_math: Tick ↔ sqrtPrice 변환
- sqrt_price_math: 가격 곡선 위의 수량/가격 계산
- liquidity_math: 유동성 변화 적용, 수량 ↔ 유동성 변환
- swap_math: 단일 구간 스왑 계산
- fee_math: 백서 기반 fee growth 계산
"""

from .full_math import (
    mul_div,
    mul_div_rounding_up,
    div_rounding_up,
)
from .tick_math import (
    get_tick_at_sqrt_ratio,
    get_sqrt_ratio_at_tick,
    get_min_tick,
    get_max_tick,
    tick_to_price,
    price_to_tick,
    round_tick_to_spacing,
)
from .sqrt_price_math import (
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
    encode_price_sqrt,
    sqrt_price_x96_to_price,
    price_to_sqrt_price_x96,
)
from .liquidity_math import (
    add_delta,
    get_liquidity_for_amounts,
    get_amounts_for_liquidity,
)
from .swap_math import (
    SwapStep,
    compute_swap_step,
)
from .fee_math import (
    fee_growth_inside,
    calculate_uncollected_fees,
    calculate_fee_growth_delta,
)
