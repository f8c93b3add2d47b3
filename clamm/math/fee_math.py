"""
Fee Math - fee growth 공식

백서 Section 6.3, 6.4의 공식을 uint256 랩어라운드 의미론으로 구현.
틱 레지스트리(ledger.tick)와 포지션 원장(ledger.position)이 이 함수들을 사용합니다.

References:
- 백서 Section 6.3: Tick-Indexed State (feeGrowthOutside)
- 백서 Section 6.4.1: Position-Indexed State (uncollected fees)

핵심 공식:
    f_a(i) = f_g - f_o(i)  if i_c >= i else f_o(i)     # 틱 i 위 수수료
    f_b(i) = f_o(i)        if i_c >= i else f_g - f_o(i) # 틱 i 아래 수수료
    f_r = f_g - f_b(i_l) - f_a(i_u)                     # 범위 내 수수료
    f_u = l × (f_r(t_1) - f_r(t_0)) / 2^128             # 미수령 수수료 (내림)
"""

from ..constants import Q128
from .full_math import mul_div

_UINT256_MOD = 2 ** 256


def fee_growth_above(
    tick_idx: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside: int
) -> int:
    """틱 위에서 발생한 수수료 성장률 (f_a)

    Args:
        tick_idx: 틱 인덱스 (i)
        current_tick: 현재 틱 (i_c)
        fee_growth_global: 전역 fee growth (f_g)
        fee_growth_outside: 틱의 fee growth outside (f_o)

    Returns:
        틱 위의 fee growth (f_a)
    """
    if current_tick >= tick_idx:
        return (fee_growth_global - fee_growth_outside) % _UINT256_MOD
    return fee_growth_outside


def fee_growth_below(
    tick_idx: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside: int
) -> int:
    """틱 아래에서 발생한 수수료 성장률 (f_b)"""
    if current_tick >= tick_idx:
        return fee_growth_outside
    return (fee_growth_global - fee_growth_outside) % _UINT256_MOD


def fee_growth_inside(
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside_lower: int,
    fee_growth_outside_upper: int
) -> int:
    """범위 내 fee growth 계산 (f_r)

    f_r = f_g - f_b(i_l) - f_a(i_u)

    Solidity에서는 unchecked 블록에서 랩어라운드되므로
    결과를 2^256으로 나눈 나머지로 맞춥니다.
    """
    f_b = fee_growth_below(tick_lower, current_tick, fee_growth_global, fee_growth_outside_lower)
    f_a = fee_growth_above(tick_upper, current_tick, fee_growth_global, fee_growth_outside_upper)

    return (fee_growth_global - f_b - f_a) % _UINT256_MOD


def calculate_fee_growth_delta(
    fee_growth_current: int,
    fee_growth_previous: int
) -> int:
    """두 시점 간 fee growth 변화량 (uint256 랩어라운드)"""
    return (fee_growth_current - fee_growth_previous) % _UINT256_MOD


def calculate_uncollected_fees(
    liquidity: int,
    fee_growth_inside_current: int,
    fee_growth_inside_last: int
) -> int:
    """미수령 수수료 계산 (f_u), 토큰 최소 단위로 내림

    포지션이 실제보다 많이 청구하지 않도록 항상 내림합니다.

    Args:
        liquidity: 포지션 유동성 (l)
        fee_growth_inside_current: 현재 범위 내 fee growth (f_r(t_1))
        fee_growth_inside_last: 마지막 정산 시 fee growth (f_r(t_0))

    Returns:
        미수령 수수료 (토큰 최소 단위)
    """
    delta = calculate_fee_growth_delta(fee_growth_inside_current, fee_growth_inside_last)
    return mul_div(delta, liquidity, Q128)


def fee_growth_for_step(fee_amount: int, liquidity: int) -> int:
    """한 스왑 구간의 수수료를 단위 유동성당 fee growth(Q128)로 변환

    유동성이 0이면 분배할 대상이 없으므로 0.
    """
    if liquidity == 0:
        return 0
    return mul_div(fee_amount, Q128, liquidity)
