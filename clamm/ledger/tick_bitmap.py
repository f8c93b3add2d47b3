"""
Packed tick initialized state.

One bit per usable tick (tick // tick_spacing), grouped into 256-bit words keyed
by word position. Finding the next initialized tick costs one bit scan per word
instead of a walk over every tick.

References:
- Uniswap V3 Core: contracts/libraries/TickBitmap.sol
"""

from typing import Dict, Iterator, Tuple

from ..exceptions import TickNotSpaced
from .journal import Journaled

_WORD_MASK = (1 << 256) - 1


def position(compressed: int) -> Tuple[int, int]:
    """(word_pos, bit_pos) of a compressed tick; floors toward negative infinity."""
    return compressed >> 8, compressed & 0xFF


def most_significant_bit(x: int) -> int:
    return x.bit_length() - 1


def least_significant_bit(x: int) -> int:
    return (x & -x).bit_length() - 1


class TickBitmap(Journaled):
    """Sparse word map: absent words are all-zero."""

    def __init__(self, tick_spacing: int):
        self.tick_spacing = tick_spacing
        self._words: Dict[int, int] = {}

    def _store(self) -> Dict[int, int]:
        return self._words

    def _compress(self, tick: int) -> int:
        # Python floor division already rounds toward negative infinity
        return tick // self.tick_spacing

    def word(self, word_pos: int) -> int:
        return self._words.get(word_pos, 0)

    def flip_tick(self, tick: int) -> None:
        """Toggle the initialized bit of ``tick``."""
        if tick % self.tick_spacing != 0:
            raise TickNotSpaced(f"tick {tick} is not a multiple of spacing {self.tick_spacing}")

        word_pos, bit_pos = position(tick // self.tick_spacing)
        self._touch(word_pos)
        flipped = self.word(word_pos) ^ (1 << bit_pos)
        if flipped:
            self._words[word_pos] = flipped
        else:
            self._words.pop(word_pos, None)

    def is_initialized(self, tick: int) -> bool:
        if tick % self.tick_spacing != 0:
            return False
        word_pos, bit_pos = position(tick // self.tick_spacing)
        return bool(self.word(word_pos) >> bit_pos & 1)

    def next_initialized_tick_within_one_word(self, tick: int, lte: bool) -> Tuple[int, bool]:
        """Next initialized tick in the same word as ``tick``.

        With ``lte`` the search is at-or-left of ``tick``; otherwise strictly to the
        right. When nothing is set in the word, returns the word boundary and
        ``False`` so the caller can step to it and search again.

        Returns:
            (next_tick, initialized)
        """
        compressed = self._compress(tick)

        if lte:
            word_pos, bit_pos = position(compressed)
            # all bits at or to the right of bit_pos
            mask = (1 << bit_pos) - 1 + (1 << bit_pos)
            masked = self.word(word_pos) & mask

            initialized = masked != 0
            if initialized:
                next_tick = (compressed - (bit_pos - most_significant_bit(masked))) * self.tick_spacing
            else:
                next_tick = (compressed - bit_pos) * self.tick_spacing
        else:
            # start from the word of the next tick, the current tick state doesn't matter
            word_pos, bit_pos = position(compressed + 1)
            # all bits at or to the left of bit_pos
            mask = ~((1 << bit_pos) - 1) & _WORD_MASK
            masked = self.word(word_pos) & mask

            initialized = masked != 0
            if initialized:
                next_tick = (compressed + 1 + (least_significant_bit(masked) - bit_pos)) * self.tick_spacing
            else:
                next_tick = (compressed + 1 + (255 - bit_pos)) * self.tick_spacing

        return next_tick, initialized

    def __iter__(self) -> Iterator[int]:
        """Initialized ticks in ascending order."""
        for word_pos in sorted(self._words):
            word = self._words[word_pos]
            while word:
                bit = least_significant_bit(word)
                yield ((word_pos << 8) + bit) * self.tick_spacing
                word &= word - 1

    def __len__(self) -> int:
        return sum(bin(word).count("1") for word in self._words.values())
