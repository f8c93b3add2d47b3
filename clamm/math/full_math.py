"""
Full Math - 512비트 중간값 곱셈/나눗셈

Solidity FullMath.mulDiv와 동일한 의미론을 정수 연산으로 구현.
Python int는 임의 정밀도이므로 a * b 중간값은 오버플로우되지 않으며,
결과가 출력 폭(uint256)을 넘는 경우에만 Overflow를 발생시킵니다.

References:
- Uniswap V3 Core: contracts/libraries/FullMath.sol
- Uniswap V3 Core: contracts/libraries/UnsafeMath.sol

반올림 규칙:
    round_up=False -> floor(a * b / d)  (트레이더에게 지급하는 값)
    round_up=True  -> ceil(a * b / d)   (트레이더가 지불하는 값)
"""

from ..constants import MAX_UINT256
from ..exceptions import Overflow


def check_uint(value: int, bits: int = 256) -> int:
    """값이 uintN 범위 안에 있는지 확인

    Args:
        value: 확인할 값
        bits: 비트 폭

    Returns:
        입력값 그대로

    Raises:
        Overflow: 음수이거나 2^bits - 1 초과
    """
    if value < 0 or value >= (1 << bits):
        raise Overflow(f"uint{bits} 범위를 벗어났습니다: {value}")
    return value


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """(a * b) / denominator 를 전체 정밀도로 계산

    Args:
        a: 피승수
        b: 승수
        denominator: 제수
        round_up: True면 올림, False면 내림

    Returns:
        결과 (uint256)

    Raises:
        Overflow: denominator가 0이거나 결과가 uint256을 초과하는 경우
    """
    if denominator == 0:
        raise Overflow("0으로 나눌 수 없습니다")

    product = a * b
    result, remainder = divmod(product, denominator)
    if round_up and remainder > 0:
        result += 1

    if result > MAX_UINT256 or result < 0:
        raise Overflow(f"mul_div 결과가 uint256을 초과합니다: {result}")
    return result


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """(a * b) / denominator 올림"""
    return mul_div(a, b, denominator, round_up=True)


def div_rounding_up(numerator: int, denominator: int) -> int:
    """numerator / denominator 올림

    UnsafeMath.divRoundingUp: 제수 0 검사는 호출자 책임이지만
    Python에서는 ZeroDivisionError 대신 Overflow로 통일합니다.
    """
    if denominator == 0:
        raise Overflow("0으로 나눌 수 없습니다")
    result = numerator // denominator
    if numerator % denominator > 0:
        result += 1
    return result
