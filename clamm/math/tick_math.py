"""
Tick Math - Tick ↔ sqrtPrice 변환

틱 인덱스와 Q64.96 sqrt price 사이의 변환. 정수 연산만 사용하여
온체인 컨트랙트와 비트 단위로 동일한 결과를 냅니다.

References:
- Uniswap V3 Core: contracts/libraries/TickMath.sol
- 백서 Section 6.1: Ticks and Tick Spacing

핵심 공식:
    price = 1.0001^tick
    tick = floor(log₁.₀₀₀₁(price))
    sqrtPriceX96 = sqrt(price) * 2^96

왕복 계약:
    get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(t)) == t
    get_sqrt_ratio_at_tick(get_tick_at_sqrt_ratio(p)) <= p
"""

import math

from ..constants import MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO, MAX_UINT256
from ..exceptions import TickOutOfRange, PriceOutOfRange


# sqrt(1.0001)^(-2^i) 의 Q128.128 상수, |tick|의 비트 i에 대응
_RATIO_CONSTANTS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """틱에서 sqrtPriceX96 계산

    1.0001^(tick/2) 를 |tick|의 비트마다 미리 계산된 상수를 곱해 구하고,
    tick > 0 이면 역수를 취합니다. 마지막 Q128.128 -> Q64.96 변환은 올림.

    Args:
        tick: 틱 인덱스 (-887272 ~ 887272)

    Returns:
        sqrtPriceX96 (Q64.96 형식)

    Raises:
        TickOutOfRange: 틱이 유효 범위를 벗어난 경우
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise TickOutOfRange(f"틱이 유효 범위를 벗어났습니다: {tick} (범위: {MIN_TICK} ~ {MAX_TICK})")

    abs_tick = abs(tick)

    ratio = 0x100000000000000000000000000000000 if abs_tick & 0x1 == 0 \
        else 0xfffcb933bd6fad37aa2d162d1a594001

    for bit, constant in _RATIO_CONSTANTS:
        if abs_tick & bit:
            ratio = (ratio * constant) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96 (올림, 결과가 항상 getTickAtSqrtRatio와 일치하도록)
    return (ratio >> 32) + (1 if ratio % (1 << 32) != 0 else 0)


def _most_significant_bit(r: int) -> int:
    """최상위 비트 위치 (이진 탐색)"""
    msb = 0
    for shift, threshold in (
        (7, 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF),
        (6, 0xFFFFFFFFFFFFFFFF),
        (5, 0xFFFFFFFF),
        (4, 0xFFFF),
        (3, 0xFF),
        (2, 0xF),
        (1, 0x3),
    ):
        f = (1 if r > threshold else 0) << shift
        msb |= f
        r >>= f
    msb |= 1 if r > 0x1 else 0
    return msb


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """sqrtPriceX96에서 틱 계산

    log₂ 근사 후 두 후보 틱(tick_low, tick_high) 중
    sqrt price가 입력을 넘지 않는 가장 큰 틱을 선택합니다.

    Args:
        sqrt_price_x96: sqrtPriceX96 (Q64.96 형식)

    Returns:
        틱 인덱스

    Raises:
        PriceOutOfRange: sqrtPriceX96이 [MIN_SQRT_RATIO, MAX_SQRT_RATIO) 밖인 경우
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise PriceOutOfRange(
            f"sqrtPriceX96이 유효 범위를 벗어났습니다: {sqrt_price_x96}"
        )

    ratio = sqrt_price_x96 << 32
    msb = _most_significant_bit(ratio)

    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64

    # 소수부 14비트
    for i in range(14):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << (63 - i)
        r >>= f

    log_sqrt10001 = log_2 * 255738958999603826347141

    tick_low = (log_sqrt10001 - 3402992956809132418596140100660247210) >> 128
    tick_high = (log_sqrt10001 + 291339464771989622907027621153398088495) >> 128

    if tick_low == tick_high:
        return tick_low

    if get_sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96:
        return tick_high
    return tick_low


def get_min_tick(tick_spacing: int) -> int:
    """tick_spacing의 배수 중 MIN_TICK 이상인 가장 작은 틱"""
    return -(-MIN_TICK // tick_spacing) * tick_spacing


def get_max_tick(tick_spacing: int) -> int:
    """tick_spacing의 배수 중 MAX_TICK 이하인 가장 큰 틱"""
    return (MAX_TICK // tick_spacing) * tick_spacing


def tick_to_price(tick: int, token0_decimals: int = 18, token1_decimals: int = 18) -> float:
    """틱을 human-readable 가격으로 변환

    price = 1.0001^tick × 10^(token0_decimals - token1_decimals)

    Args:
        tick: 틱 인덱스
        token0_decimals: token0 소수점 자릿수
        token1_decimals: token1 소수점 자릿수

    Returns:
        가격 (token1/token0)
    """
    ratio = 1.0001 ** tick
    return ratio * (10 ** (token0_decimals - token1_decimals))


def price_to_tick(price: float, token0_decimals: int = 18, token1_decimals: int = 18) -> int:
    """Human-readable 가격을 틱으로 변환 (내림)

    tick = floor(log₁.₀₀₀₁(price × 10^(token1_decimals - token0_decimals)))

    Raises:
        ValueError: 가격이 0 이하인 경우
    """
    if price <= 0:
        raise ValueError("가격은 양수여야 합니다")

    ratio = price * (10 ** (token1_decimals - token0_decimals))
    return math.floor(math.log(ratio) / math.log(1.0001))


def round_tick_to_spacing(tick: int, tick_spacing: int) -> int:
    """틱을 가장 가까운 유효 틱으로 반올림

    같은 거리일 때는 위쪽(upper)을 선택합니다.
    결과는 [get_min_tick, get_max_tick] 범위로 제한됩니다.

    Args:
        tick: 반올림할 틱
        tick_spacing: 틱 간격 (예: 60 for 0.3% fee)

    Returns:
        반올림된 틱
    """
    lower = (tick // tick_spacing) * tick_spacing
    upper = lower + tick_spacing

    if abs(tick - lower) < abs(tick - upper):
        rounded = lower
    else:
        rounded = upper

    return max(get_min_tick(tick_spacing), min(get_max_tick(tick_spacing), rounded))
