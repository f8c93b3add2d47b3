"""
Tick Bitmap 테스트

256비트 워드 단위의 초기화 비트와 다음 초기화 틱 탐색을 테스트합니다.
"""

import pytest

from ..exceptions import TickNotSpaced
from ..ledger.tick_bitmap import TickBitmap, position, most_significant_bit, least_significant_bit

INITIALIZED = [-200, -55, -4, 70, 78, 84, 139, 240, 535]


@pytest.fixture
def bitmap():
    bitmap = TickBitmap(1)
    for tick in INITIALIZED:
        bitmap.flip_tick(tick)
    return bitmap


class TestHelpers:
    """position / 비트 스캔 헬퍼"""

    def test_position(self):
        assert position(0) == (0, 0)
        assert position(255) == (0, 255)
        assert position(256) == (1, 0)
        # 음수는 -무한대 방향으로 내림
        assert position(-1) == (-1, 255)
        assert position(-256) == (-1, 0)
        assert position(-257) == (-2, 255)

    def test_bit_scan(self):
        assert most_significant_bit(1) == 0
        assert most_significant_bit(0b1011000) == 6
        assert least_significant_bit(0b1011000) == 3
        assert least_significant_bit(1 << 255) == 255


class TestFlipTick:
    """flip_tick / is_initialized 테스트"""

    def test_flip_on_and_off(self):
        bitmap = TickBitmap(1)
        assert not bitmap.is_initialized(1)
        bitmap.flip_tick(1)
        assert bitmap.is_initialized(1)
        bitmap.flip_tick(1)
        assert not bitmap.is_initialized(1)

    def test_only_flips_one_tick(self):
        bitmap = TickBitmap(1)
        bitmap.flip_tick(-230)
        assert bitmap.is_initialized(-230)
        for tick in (-231, -229, -230 + 256, -230 - 256):
            assert not bitmap.is_initialized(tick)

    def test_empty_word_removed(self):
        """0이 된 워드는 저장하지 않음"""
        bitmap = TickBitmap(60)
        bitmap.flip_tick(600)
        bitmap.flip_tick(600)
        assert bitmap.word(0) == 0
        assert len(bitmap) == 0

    def test_requires_spacing(self):
        """spacing 배수가 아니면 TickNotSpaced"""
        bitmap = TickBitmap(60)
        with pytest.raises(TickNotSpaced):
            bitmap.flip_tick(61)
        assert not bitmap.is_initialized(61)

    def test_iteration_sorted(self, bitmap):
        """순회는 오름차순"""
        assert list(bitmap) == INITIALIZED
        assert len(bitmap) == len(INITIALIZED)


class TestNextInitializedTickGreater:
    """lte=False: 현재 틱보다 오른쪽 탐색"""

    def test_next_to_right(self, bitmap):
        assert bitmap.next_initialized_tick_within_one_word(78, False) == (84, True)
        assert bitmap.next_initialized_tick_within_one_word(-55, False) == (-4, True)

    def test_directly_to_right(self, bitmap):
        assert bitmap.next_initialized_tick_within_one_word(77, False) == (78, True)
        assert bitmap.next_initialized_tick_within_one_word(-56, False) == (-55, True)

    def test_word_boundary(self, bitmap):
        """워드 안에 없으면 워드의 마지막 틱과 False"""
        assert bitmap.next_initialized_tick_within_one_word(255, False) == (511, False)
        assert bitmap.next_initialized_tick_within_one_word(383, False) == (511, False)

    def test_next_word(self, bitmap):
        """다음 워드의 첫 틱에서 검색 시작"""
        assert bitmap.next_initialized_tick_within_one_word(-257, False) == (-200, True)
        assert bitmap.next_initialized_tick_within_one_word(511, False) == (535, True)


class TestNextInitializedTickLte:
    """lte=True: 현재 틱 포함 왼쪽 탐색"""

    def test_same_tick(self, bitmap):
        assert bitmap.next_initialized_tick_within_one_word(78, True) == (78, True)

    def test_directly_to_left(self, bitmap):
        assert bitmap.next_initialized_tick_within_one_word(79, True) == (78, True)
        assert bitmap.next_initialized_tick_within_one_word(83, True) == (78, True)

    def test_word_boundary(self, bitmap):
        """워드 안에 없으면 워드의 첫 틱과 False"""
        assert bitmap.next_initialized_tick_within_one_word(258, True) == (256, False)
        assert bitmap.next_initialized_tick_within_one_word(-257, True) == (-512, False)
        assert bitmap.next_initialized_tick_within_one_word(1023, True) == (768, False)

    def test_negative_ticks(self, bitmap):
        assert bitmap.next_initialized_tick_within_one_word(-1, True) == (-4, True)
        assert bitmap.next_initialized_tick_within_one_word(-56, True) == (-200, True)


class TestSpacing:
    """tick_spacing > 1 에서 압축 인덱스"""

    def test_compressed_search(self):
        bitmap = TickBitmap(60)
        bitmap.flip_tick(-120)
        bitmap.flip_tick(180)

        assert bitmap.next_initialized_tick_within_one_word(0, False) == (180, True)
        # 0은 워드 0의 첫 비트; -120은 이전 워드
        assert bitmap.next_initialized_tick_within_one_word(0, True) == (0, False)
        # -1 // 60 = -1 이므로 -60 부터 왼쪽 탐색
        assert bitmap.next_initialized_tick_within_one_word(-1, True) == (-120, True)
        assert bitmap.next_initialized_tick_within_one_word(-121, True) == (-256 * 60, False)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
