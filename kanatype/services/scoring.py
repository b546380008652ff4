#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Scoring - Single source of truth for key handling and word scoring, used by PlayEngine and ReplayVerifier.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# word_score: Score gained for completing a word.
# perfect_time_bonus: Seconds added for a word typed without errors.
# ScoreKeeper.begin_word: Starts typing a new word.
# ScoreKeeper.press: Applies one key (romaji or direct kana) and scores completed words.
# ScoreKeeper.current_patterns: Accepted spellings at the current position.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# KeyOutcome: Enum for the result of a key press.
# KeyResult: Dataclass with the outcome and any score/time gained.
# WordProgress: Dataclass holding per-word typing state.
# ScoreKeeper: Session-wide counters (score, combo, keys, bonuses).

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# math: Flooring.
# typing: Type hints.
# dataclasses: Data structures.
# enum: Enumerations.
# kanatype.constants: Scoring constants.
# kanatype.models.word: Word model.
# kanatype.services.kana: Tokenizer and matcher.

import math
from typing import List, Optional
from dataclasses import dataclass
from enum import Enum

from kanatype.constants import (
    BASE_SCORE_PER_CHAR,
    COMBO_MULTIPLIER,
    PERFECT_SCORE_BONUS,
)
from kanatype.models.word import Word
from kanatype.services.kana import (
    MatchStatus,
    tokenize,
    valid_patterns,
    match_step,
    is_direct_input,
)


class KeyOutcome(str, Enum):
    """Result of one key press"""
    CONTINUE = "continue"  # Accepted, token still open
    TOKEN_COMPLETE = "token_complete"
    WORD_COMPLETE = "word_complete"
    REJECT = "reject"
    IGNORED = "ignored"  # No word in progress


@dataclass
class KeyResult:
    outcome: KeyOutcome
    score_gain: int = 0
    time_bonus: int = 0
    perfect: bool = False


@dataclass
class WordProgress:
    """Typing state for the word on screen"""
    word: Word
    tokens: List[str]
    token_index: int = 0
    buffer: str = ""
    has_error: bool = False

    @property
    def is_complete(self) -> bool:
        return self.token_index >= len(self.tokens)

    @property
    def current_token(self) -> Optional[str]:
        if self.is_complete:
            return None
        return self.tokens[self.token_index]

    @property
    def next_token(self) -> Optional[str]:
        if self.token_index + 1 < len(self.tokens):
            return self.tokens[self.token_index + 1]
        return None


def word_score(phonetic_length: int, combo: int, perfect: bool) -> int:
    """floor(length * base * (1 + combo * multiplier)), plus the flat bonus for a perfect word"""
    gain = math.floor(phonetic_length * BASE_SCORE_PER_CHAR * (1 + combo * COMBO_MULTIPLIER))
    if perfect:
        gain += PERFECT_SCORE_BONUS
    return gain


def perfect_time_bonus(phonetic_length: int) -> int:
    return max(1, math.floor(phonetic_length / 2))


@dataclass
class ScoreKeeper:
    """
    Session counters shared by live play and replay.

    The combo carries over between words and only resets on a rejected key.
    `time_bonus_total` is the uncapped sum of perfect-word bonuses; capping
    remaining time is the live engine's business.
    """
    score: int = 0
    combo: int = 0
    max_combo: int = 0
    correct_keys: int = 0
    wrong_keys: int = 0
    words_completed: int = 0
    time_bonus_total: int = 0
    progress: Optional[WordProgress] = None

    def begin_word(self, word: Word) -> WordProgress:
        self.progress = WordProgress(word=word, tokens=tokenize(word.phonetic))
        return self.progress

    def current_patterns(self) -> List[str]:
        progress = self.progress
        if progress is None or progress.is_complete:
            return []
        return valid_patterns(progress.current_token, progress.next_token)

    def press(self, key: str) -> KeyResult:
        progress = self.progress
        if progress is None or progress.is_complete:
            return KeyResult(KeyOutcome.IGNORED)

        token = progress.current_token

        if is_direct_input(key):
            if key != token:
                return self._reject()
            self._accept()
            progress.token_index += 1
            progress.buffer = ""
        else:
            step = match_step(
                progress.buffer,
                key,
                self.current_patterns(),
                token,
                progress.next_token,
            )
            if step.status is MatchStatus.REJECT:
                return self._reject()
            self._accept()
            progress.buffer = step.buffer
            if step.status is MatchStatus.CONTINUE:
                return KeyResult(KeyOutcome.CONTINUE)
            progress.token_index += 1

        if progress.is_complete:
            return self._complete_word()
        return KeyResult(KeyOutcome.TOKEN_COMPLETE)

    def _accept(self) -> None:
        self.correct_keys += 1
        self.combo += 1
        self.max_combo = max(self.max_combo, self.combo)

    def _reject(self) -> KeyResult:
        self.wrong_keys += 1
        self.combo = 0
        self.progress.has_error = True
        return KeyResult(KeyOutcome.REJECT)

    def _complete_word(self) -> KeyResult:
        progress = self.progress
        length = len(progress.word.phonetic)
        perfect = not progress.has_error
        gain = word_score(length, self.combo, perfect)
        bonus = perfect_time_bonus(length) if perfect else 0

        self.score += gain
        self.time_bonus_total += bonus
        self.words_completed += 1
        return KeyResult(KeyOutcome.WORD_COMPLETE, score_gain=gain, time_bonus=bonus, perfect=perfect)
