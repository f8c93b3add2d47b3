"""
Sqrt Price Math - sqrtPriceX96 곡선 위의 가격/수량 계산

일정 유동성 L 구간에서:
    Δx = L * (1/√P_a - 1/√P_b)      # token0
    Δy = L * (√P_b - √P_a)          # token1

가격 이동:
    token0 추가: √P' = L·√P / (L + Δx·√P)   (올림)
    token1 추가: √P' = √P + Δy / L           (내림)

모든 함수는 반올림 방향을 명시적으로 받으며, 풀에 유리한 방향
(트레이더가 지불하는 값은 올림, 받는 값은 내림)으로 사용됩니다.

References:
- Uniswap V3 Core: contracts/libraries/SqrtPriceMath.sol
"""

import math

from ..constants import Q96, Q192, RESOLUTION_96, MAX_UINT160, MAX_UINT256
from ..exceptions import Overflow, PriceOutOfRange
from .full_math import mul_div, mul_div_rounding_up, div_rounding_up, check_uint


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """amount0 변화에 따른 다음 sqrtPriceX96 계산 (올림)

    Args:
        sqrt_price_x96: 현재 sqrtPriceX96
        liquidity: 유동성
        amount: amount0 변화량
        add: True면 풀에 추가, False면 풀에서 제거

    Returns:
        새로운 sqrtPriceX96

    Raises:
        Overflow: 제거량이 가상 reserve를 초과하거나 결과가 uint160을 넘는 경우
    """
    if amount == 0:
        return sqrt_price_x96

    numerator1 = liquidity << RESOLUTION_96
    product = amount * sqrt_price_x96

    if add:
        # 256비트 안에서 계산 가능하면 정밀한 공식을 사용
        if product <= MAX_UINT256:
            denominator = numerator1 + product
            if denominator <= MAX_UINT256:
                return mul_div_rounding_up(numerator1, sqrt_price_x96, denominator)

        return div_rounding_up(numerator1, (numerator1 // sqrt_price_x96) + amount)

    if product > MAX_UINT256 or numerator1 <= product:
        raise Overflow("token0 출력량이 가상 reserve를 초과합니다")
    denominator = numerator1 - product
    return check_uint(mul_div_rounding_up(numerator1, sqrt_price_x96, denominator), 160)


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """amount1 변화에 따른 다음 sqrtPriceX96 계산 (내림)

    Args:
        sqrt_price_x96: 현재 sqrtPriceX96
        liquidity: 유동성
        amount: amount1 변화량
        add: True면 풀에 추가, False면 풀에서 제거

    Returns:
        새로운 sqrtPriceX96
    """
    if add:
        quotient = mul_div(amount, Q96, liquidity)
        return check_uint(sqrt_price_x96 + quotient, 160)

    quotient = mul_div_rounding_up(amount, Q96, liquidity)
    if sqrt_price_x96 <= quotient:
        raise Overflow("token1 출력량이 가상 reserve를 초과합니다")
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool
) -> int:
    """입력량이 주어졌을 때 다음 sqrtPriceX96

    가격이 목표를 지나치지 않도록 항상 보수적으로 반올림합니다.
    """
    if sqrt_price_x96 <= 0:
        raise PriceOutOfRange("sqrtPriceX96은 양수여야 합니다")
    if liquidity <= 0:
        raise ValueError("유동성은 양수여야 합니다")

    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price_x96: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool
) -> int:
    """출력량이 주어졌을 때 다음 sqrtPriceX96"""
    if sqrt_price_x96 <= 0:
        raise PriceOutOfRange("sqrtPriceX96은 양수여야 합니다")
    if liquidity <= 0:
        raise ValueError("유동성은 양수여야 합니다")

    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)


def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """두 가격 사이의 token0 수량

    공식: Δx = L * (√P_b - √P_a) / (√P_a * √P_b)

    Args:
        sqrt_ratio_a_x96: sqrtPriceX96 (순서 무관)
        sqrt_ratio_b_x96: sqrtPriceX96 (순서 무관)
        liquidity: 유동성
        round_up: True면 올림, False면 내림

    Returns:
        amount0 (token0 수량, 최소 단위)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_ratio_a_x96 <= 0:
        raise PriceOutOfRange("sqrtPriceX96은 양수여야 합니다")

    numerator1 = liquidity << RESOLUTION_96
    numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96

    if round_up:
        return div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
            sqrt_ratio_a_x96
        )
    return mul_div(numerator1, numerator2, sqrt_ratio_b_x96) // sqrt_ratio_a_x96


def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """두 가격 사이의 token1 수량

    공식: Δy = L * (√P_b - √P_a)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    return mul_div(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96, round_up=round_up)


def get_amount0_delta_signed(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, liquidity_delta: int) -> int:
    """부호 있는 유동성 변화에 대한 amount0

    추가(양수)는 올림해서 풀이 받을 양, 제거(음수)는 내림해서 풀이 내줄 양(음수).
    """
    if liquidity_delta < 0:
        return -get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, -liquidity_delta, False)
    return get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity_delta, True)


def get_amount1_delta_signed(sqrt_ratio_a_x96: int, sqrt_ratio_b_x96: int, liquidity_delta: int) -> int:
    """부호 있는 유동성 변화에 대한 amount1"""
    if liquidity_delta < 0:
        return -get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, -liquidity_delta, False)
    return get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity_delta, True)


def encode_price_sqrt(reserve1: int, reserve0: int) -> int:
    """reserve 비율을 sqrtPriceX96으로 인코딩 (정수 연산, 내림)

    sqrtPriceX96 = floor(sqrt(reserve1 / reserve0) * 2^96)

    Example:
        >>> encode_price_sqrt(1, 1)
        79228162514264337593543950336
    """
    if reserve0 <= 0 or reserve1 <= 0:
        raise ValueError("reserve는 양수여야 합니다")
    return math.isqrt((reserve1 << 192) // reserve0)


def sqrt_price_x96_to_price(
    sqrt_price_x96: int,
    decimal0: int = 18,
    decimal1: int = 18
) -> float:
    """sqrtPriceX96을 human-readable 가격으로 변환

    가격 = sqrtPriceX96^2 / 2^192 / 10^(decimal1 - decimal0)
    """
    price_raw = sqrt_price_x96 ** 2 / Q192
    return price_raw / (10 ** (decimal1 - decimal0))


def price_to_sqrt_price_x96(
    price: float,
    decimal0: int = 18,
    decimal1: int = 18
) -> int:
    """Human-readable 가격을 sqrtPriceX96으로 변환 (float 정밀도)"""
    if price <= 0:
        raise ValueError("가격은 양수여야 합니다")

    adjusted_price = price * (10 ** (decimal1 - decimal0))
    sqrt_price_x96 = int(math.sqrt(adjusted_price) * Q96)
    if sqrt_price_x96 > MAX_UINT160:
        raise Overflow(f"sqrtPriceX96이 uint160을 초과합니다: {sqrt_price_x96}")
    return sqrt_price_x96
