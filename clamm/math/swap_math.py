"""
Swap Math - 단일 유동성 구간의 스왑 계산

현재 가격, 목표 가격, 유동성, 남은 수량, 수수료율이 주어졌을 때
한 구간(유동성이 일정한 틱 사이)에서의 가격 이동과 입출력량, 수수료를 계산.

References:
- Uniswap V3 Core: contracts/libraries/SwapMath.sol

규칙:
    방향: sqrt_ratio_current >= sqrt_ratio_target 이면 token0 -> token1
    모드: amount_remaining >= 0 이면 exact-input, < 0 이면 exact-output
    입력량은 올림, 출력량은 내림 (항상 풀에 유리)
"""

from typing import NamedTuple

from ..constants import ONE_IN_PIPS
from .full_math import mul_div, mul_div_rounding_up
from .sqrt_price_math import (
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
)


class SwapStep(NamedTuple):
    """한 구간의 스왑 결과"""
    sqrt_ratio_next_x96: int  # 이동 후 가격 (목표를 넘지 않음)
    amount_in: int  # 투입량 (수수료 제외)
    amount_out: int  # 출력량
    fee_amount: int  # 수수료 (입력 토큰)


def compute_swap_step(
    sqrt_ratio_current_x96: int,
    sqrt_ratio_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int
) -> SwapStep:
    """한 구간의 스왑 계산

    exact-input 이면 수수료를 먼저 제외한 뒤 목표 가격까지 필요한 입력량과 비교하고,
    부족하면 남은 수량으로 도달 가능한 가격을 닫힌 형태로 구합니다.
    exact-output 이면 목표 가격까지 얻을 수 있는 출력량과 비교합니다.
    최종 가격이 정해지면 입출력량을 그 가격에서 다시 계산합니다.

    Args:
        sqrt_ratio_current_x96: 현재 sqrtPriceX96
        sqrt_ratio_target_x96: 넘을 수 없는 목표 sqrtPriceX96 (방향 결정)
        liquidity: 사용 가능한 유동성
        amount_remaining: 남은 입력(양수) 또는 출력(음수) 수량
        fee_pips: 수수료 (1/1,000,000 단위, 3000 = 0.30%)

    Returns:
        SwapStep(sqrt_ratio_next_x96, amount_in, amount_out, fee_amount)
    """
    zero_for_one = sqrt_ratio_current_x96 >= sqrt_ratio_target_x96
    exact_in = amount_remaining >= 0

    amount_in = 0
    amount_out = 0

    if exact_in:
        amount_remaining_less_fee = mul_div(amount_remaining, ONE_IN_PIPS - fee_pips, ONE_IN_PIPS)
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_ratio_target_x96, sqrt_ratio_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_ratio_current_x96, sqrt_ratio_target_x96, liquidity, True)

        if amount_remaining_less_fee >= amount_in:
            sqrt_ratio_next_x96 = sqrt_ratio_target_x96
        else:
            sqrt_ratio_next_x96 = get_next_sqrt_price_from_input(
                sqrt_ratio_current_x96, liquidity, amount_remaining_less_fee, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_ratio_target_x96, sqrt_ratio_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_ratio_current_x96, sqrt_ratio_target_x96, liquidity, False)

        if -amount_remaining >= amount_out:
            sqrt_ratio_next_x96 = sqrt_ratio_target_x96
        else:
            sqrt_ratio_next_x96 = get_next_sqrt_price_from_output(
                sqrt_ratio_current_x96, liquidity, -amount_remaining, zero_for_one
            )

    reached_target = sqrt_ratio_target_x96 == sqrt_ratio_next_x96

    # 최종 가격에서 입출력량 재계산
    if zero_for_one:
        if not (reached_target and exact_in):
            amount_in = get_amount0_delta(sqrt_ratio_next_x96, sqrt_ratio_current_x96, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount1_delta(sqrt_ratio_next_x96, sqrt_ratio_current_x96, liquidity, False)
    else:
        if not (reached_target and exact_in):
            amount_in = get_amount1_delta(sqrt_ratio_current_x96, sqrt_ratio_next_x96, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount0_delta(sqrt_ratio_current_x96, sqrt_ratio_next_x96, liquidity, False)

    # exact-output 요청량을 초과하지 않도록 제한
    if not exact_in and amount_out > -amount_remaining:
        amount_out = -amount_remaining

    if exact_in and not reached_target:
        # 목표에 도달하지 못했으면 남은 입력 전부가 소진됨: 나머지는 수수료
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, ONE_IN_PIPS - fee_pips)

    return SwapStep(sqrt_ratio_next_x96, amount_in, amount_out, fee_amount)
