#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Word scheduler - Seeded PRNG and difficulty-banded word selection shared by client and server.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# next_prng: Pure 32-bit step function, returns (new_state, float in [0, 1)).
# SeededRandom.random: Advances the owned state and returns the next float.
# band_for_elapsed: Phonetic length band for an elapsed session time.
# select_word: Picks the next word for an elapsed time from a word pool.
# phonetic_length: Token count used for difficulty banding.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# NO_DATA_WORD: Sentinel returned when the pool is empty.
# SeededRandom: Explicit PRNG state, one instance per game or replay.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# math: Flooring.
# typing: Type hints.
# dataclasses: Data structures.
# kanatype.constants: PRNG constants and band thresholds.
# kanatype.models.word: Word model.
# kanatype.services.kana: Tokenizer for banding length.

import math
from typing import Callable, Sequence, Tuple
from dataclasses import dataclass

from kanatype.constants import (
    PRNG_INCREMENT,
    UINT32_MASK,
    UINT32_RANGE,
    BAND_THRESHOLDS_SECONDS,
    BAND_LENGTHS,
    NO_DATA_DISPLAY,
    NO_DATA_PHONETIC,
)
from kanatype.models.word import Word
from kanatype.services.kana import tokenize


NO_DATA_WORD = Word(display=NO_DATA_DISPLAY, phonetic=NO_DATA_PHONETIC)


def _imul(a: int, b: int) -> int:
    """Low 32 bits of a 32x32-bit multiplication"""
    return (a * b) & UINT32_MASK


def next_prng(state: int) -> Tuple[int, float]:
    """
    Advance the generator one step.

    Mulberry32: add the increment, two xorshift-multiply rounds and a final
    shift, all in wrapping unsigned 32-bit arithmetic. The browser client runs
    the same function, so every operation here must stay bit-exact.
    """
    state = (state + PRNG_INCREMENT) & UINT32_MASK
    t = _imul(state ^ (state >> 15), state | 1)
    t ^= (t + _imul(t ^ (t >> 7), t | 61)) & UINT32_MASK
    t = (t ^ (t >> 14)) & UINT32_MASK
    return state, t / UINT32_RANGE


@dataclass
class SeededRandom:
    """PRNG state for one game; never shared between replays"""
    state: int

    def __post_init__(self):
        self.state = int(self.state) & UINT32_MASK

    def random(self) -> float:
        self.state, value = next_prng(self.state)
        return value

    __call__ = random


def phonetic_length(word: Word) -> int:
    """Token count; a fused digraph or a lone geminate counts as one unit"""
    return len(tokenize(word.phonetic))


def band_for_elapsed(elapsed_sec: float) -> Tuple[int, int]:
    """Inclusive (min, max) phonetic length allowed at this point of the session"""
    for threshold, band in zip(BAND_THRESHOLDS_SECONDS, BAND_LENGTHS):
        if elapsed_sec < threshold:
            return band
    return BAND_LENGTHS[-1]


def select_word(
    pool: Sequence[Word],
    elapsed_sec: float,
    prng: Callable[[], float],
) -> Word:
    """
    Pick the next word.

    Filters the pool to the length band for `elapsed_sec`, falling back to
    the whole pool when the band is empty and to NO_DATA_WORD when the pool
    itself is empty. The PRNG is advanced exactly once per pick and never
    for the sentinel, which keeps client and server sequences aligned.
    """
    if not pool:
        return NO_DATA_WORD

    low, high = band_for_elapsed(elapsed_sec)
    candidates = [w for w in pool if low <= phonetic_length(w) <= high]
    if not candidates:
        candidates = list(pool)

    return candidates[math.floor(prng() * len(candidates))]
