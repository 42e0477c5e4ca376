from __future__ import annotations
from typing import Dict

WORD_BITS = 256


class ClaimedBitMap:
    """Packed claimed-set: one bit per index, 256 indices per word.

    Bits only ever go from 0 to 1. Words are allocated on first write.
    """

    def __init__(self) -> None:
        self._words: Dict[int, int] = {}

    @staticmethod
    def locate(index: int):
        if index < 0:
            raise ValueError("index must be non-negative")
        return index // WORD_BITS, 1 << (index % WORD_BITS)

    def is_set(self, index: int) -> bool:
        word, mask = self.locate(index)
        return self._words.get(word, 0) & mask == mask

    def set(self, index: int) -> None:
        word, mask = self.locate(index)
        self._words[word] = self._words.get(word, 0) | mask

    def word(self, word_index: int) -> int:
        return self._words.get(word_index, 0)

    def count(self) -> int:
        return sum(bin(w).count("1") for w in self._words.values())

    def put_word(self, word_index: int, value: int) -> None:
        if value:
            self._words[word_index] = value
        else:
            self._words.pop(word_index, None)
