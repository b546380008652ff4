#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Kana engine - Phonetic table, tokenizer and romaji pattern matcher.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# tokenize: Splits a kana word into tokens, fusing small characters with their base.
# is_known_token: True if the token has an entry in the phonetic table.
# is_direct_input: True if a key is kana typed directly (flick / kana keyboard).
# valid_patterns: Ordered romaji spellings accepted at a token position.
# is_ambiguous_nasal: Whether a lone "n" for ん must wait for disambiguation.
# match_step: Applies one key to a romaji buffer and classifies the result.
# romanize: Canonical romaji spelling of a whole kana word (hints).

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# KANA_TABLE: Token -> accepted romaji spellings, canonical first.
# MatchStatus: Enum for the outcome of a single key.
# StepResult: Dataclass holding the status and the buffer after a key.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# re: Regex.
# typing: Type hints.
# dataclasses: Data structures.
# enum: Enumerations.
# kanatype.constants: Tokenizer constants.

import re
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass
from enum import Enum

from kanatype.constants import (
    SMALL_CHARACTERS,
    GEMINATE_MARKER,
    NASAL_MARKER,
    AMBIGUOUS_NASAL_FOLLOWERS,
)


KANA_TABLE: Dict[str, Tuple[str, ...]] = {
    "あ": ("a",),
    "い": ("i", "yi"),
    "う": ("u", "wu", "whu"),
    "え": ("e",),
    "お": ("o",),
    "か": ("ka", "ca"),
    "き": ("ki",),
    "く": ("ku", "cu", "qu"),
    "け": ("ke",),
    "こ": ("ko", "co"),
    "さ": ("sa",),
    "し": ("shi", "si", "ci"),
    "す": ("su",),
    "せ": ("se", "ce"),
    "そ": ("so",),
    "た": ("ta",),
    "ち": ("chi", "ti"),
    "つ": ("tsu", "tu"),
    "て": ("te",),
    "と": ("to",),
    "な": ("na",),
    "に": ("ni",),
    "ぬ": ("nu",),
    "ね": ("ne",),
    "の": ("no",),
    "は": ("ha",),
    "ひ": ("hi",),
    "ふ": ("fu", "hu"),
    "へ": ("he",),
    "ほ": ("ho",),
    "ま": ("ma",),
    "み": ("mi",),
    "む": ("mu",),
    "め": ("me",),
    "も": ("mo",),
    "や": ("ya",),
    "ゆ": ("yu",),
    "よ": ("yo",),
    "ら": ("ra",),
    "り": ("ri",),
    "る": ("ru",),
    "れ": ("re",),
    "ろ": ("ro",),
    "わ": ("wa",),
    "を": ("wo",),
    "ん": ("nn", "xn", "n"),
    "が": ("ga",),
    "ぎ": ("gi",),
    "ぐ": ("gu",),
    "げ": ("ge",),
    "ご": ("go",),
    "ざ": ("za",),
    "じ": ("ji", "zi"),
    "ず": ("zu",),
    "ぜ": ("ze",),
    "ぞ": ("zo",),
    "だ": ("da",),
    "ぢ": ("ji", "di"),
    "づ": ("zu", "du"),
    "で": ("de",),
    "ど": ("do",),
    "ば": ("ba",),
    "び": ("bi",),
    "ぶ": ("bu",),
    "べ": ("be",),
    "ぼ": ("bo",),
    "ぱ": ("pa",),
    "ぴ": ("pi",),
    "ぷ": ("pu",),
    "ぺ": ("pe",),
    "ぽ": ("po",),
    # Small characters
    "ぁ": ("xa", "la"),
    "ぃ": ("xi", "li"),
    "ぅ": ("xu", "lu"),
    "ぇ": ("xe", "le"),
    "ぉ": ("xo", "lo"),
    "っ": ("xtu", "ltu", "tsu"),
    "ゃ": ("xya", "lya"),
    "ゅ": ("xyu", "lyu"),
    "ょ": ("xyo", "lyo"),
    "ゎ": ("xwa", "lwa"),
    # Palatal digraphs
    "きゃ": ("kya", "kixya"),
    "きゅ": ("kyu", "kixyu"),
    "きょ": ("kyo", "kixyo"),
    "しゃ": ("sha", "sya"),
    "しゅ": ("shu", "syu"),
    "しょ": ("sho", "syo"),
    "ちゃ": ("cha", "tya"),
    "ちゅ": ("chu", "tyu"),
    "ちょ": ("cho", "tyo"),
    "にゃ": ("nya",),
    "にゅ": ("nyu",),
    "にょ": ("nyo",),
    "ひゃ": ("hya",),
    "ひゅ": ("hyu",),
    "ひょ": ("hyo",),
    "みゃ": ("mya",),
    "みゅ": ("myu",),
    "みょ": ("myo",),
    "りゃ": ("rya",),
    "りゅ": ("ryu",),
    "りょ": ("ryo",),
    "ぎゃ": ("gya",),
    "ぎゅ": ("gyu",),
    "ぎょ": ("gyo",),
    "じゃ": ("ja", "jya", "zya"),
    "じゅ": ("ju", "jyu", "zyu"),
    "じょ": ("jo", "jyo", "zyo"),
    "びゃ": ("bya",),
    "びゅ": ("byu",),
    "びょ": ("byo",),
    "ぴゃ": ("pya",),
    "ぴゅ": ("pyu",),
    "ぴょ": ("pyo",),
    # Extended digraphs
    "いぇ": ("ye",),
    "うぁ": ("wha",),
    "うぃ": ("wi", "whi"),
    "うぇ": ("we", "whe"),
    "うぉ": ("who",),
    "ヴ": ("vu",),
    "ゔ": ("vu",),
    "ゔぁ": ("va",),
    "ゔぃ": ("vi",),
    "ゔぇ": ("ve",),
    "ゔぉ": ("vo",),
    "くぁ": ("qa", "qwa", "kwa"),
    "ぐぁ": ("gwa",),
    "しぇ": ("she", "sye"),
    "じぇ": ("je", "jye"),
    "ちぇ": ("che", "tye"),
    "つぁ": ("tsa",),
    "つぃ": ("tsi",),
    "つぇ": ("tse",),
    "つぉ": ("tso",),
    "てぃ": ("thi",),
    "てゅ": ("thu",),
    "でぃ": ("dhi",),
    "でゅ": ("dhu",),
    "とぅ": ("twu", "toxu"),
    "どぅ": ("dwu", "doxu"),
    "ふぁ": ("fa",),
    "ふぃ": ("fi",),
    "ふぇ": ("fe",),
    "ふぉ": ("fo",),
    "ふゅ": ("fyu",),
}

_HIRAGANA_INPUT = re.compile(r"^[\u3040-\u309f]+$")


class MatchStatus(str, Enum):
    """Outcome of a single romaji key"""
    CONTINUE = "continue"  # Valid prefix, token not finished yet
    COMPLETE = "complete"  # Token finished, buffer resets
    REJECT = "reject"


@dataclass(frozen=True)
class StepResult:
    status: MatchStatus
    buffer: str


def tokenize(word: str) -> List[str]:
    """
    Split a kana word into tokens.

    A character followed by a small vowel or glide is fused with it into one
    two-character token. The geminate marker is never fused and stays a token
    of its own. Unknown characters become singleton tokens; rejecting them is
    the matcher's job.
    """
    tokens: List[str] = []
    i = 0
    while i < len(word):
        char = word[i]
        following = word[i + 1] if i + 1 < len(word) else ""
        if following and following in SMALL_CHARACTERS:
            tokens.append(char + following)
            i += 2
        else:
            tokens.append(char)
            i += 1
    return tokens


def is_known_token(token: str) -> bool:
    return token in KANA_TABLE


def is_direct_input(key: str) -> bool:
    """Kana typed directly instead of romaji"""
    return bool(key) and _HIRAGANA_INPUT.match(key) is not None


def valid_patterns(token: str, next_token: Optional[str] = None) -> List[str]:
    """
    Romaji spellings accepted for `token`, canonical spelling first.

    Digraphs also accept every pairwise spelling of their two characters
    (e.g. "kixya" for きゃ). The geminate marker accepts the first consonant
    of each spelling of the following token ahead of its own entries.
    """
    patterns = list(KANA_TABLE.get(token, ()))

    if len(token) == 2 and token[0] != GEMINATE_MARKER:
        for first in KANA_TABLE.get(token[0], ()):
            for second in KANA_TABLE.get(token[1], ()):
                patterns.append(first + second)

    if token == GEMINATE_MARKER and next_token:
        consonants: List[str] = []
        for pattern in KANA_TABLE.get(next_token, ()):
            if pattern and pattern[0] not in consonants:
                consonants.append(pattern[0])
        patterns = consonants + patterns

    return patterns


def is_ambiguous_nasal(token: str, buffer: str, next_token: Optional[str]) -> bool:
    """A lone "n" for ん stays open when the next token's spelling could start with n/y/vowel"""
    if token != NASAL_MARKER or buffer != "n" or not next_token:
        return False
    next_spellings = KANA_TABLE.get(next_token)
    if not next_spellings:
        return False
    first_spelling = next_spellings[0]
    return bool(first_spelling) and first_spelling[0] in AMBIGUOUS_NASAL_FOLLOWERS


def match_step(
    buffer: str,
    key: str,
    patterns: Sequence[str],
    token: str = "",
    next_token: Optional[str] = None,
) -> StepResult:
    """Apply one key to the romaji buffer of the current token"""
    candidate = buffer + key
    if len(key) != 1 or not any(p.startswith(candidate) for p in patterns):
        return StepResult(MatchStatus.REJECT, buffer)

    if candidate in patterns and not is_ambiguous_nasal(token, candidate, next_token):
        return StepResult(MatchStatus.COMPLETE, "")

    return StepResult(MatchStatus.CONTINUE, candidate)


def _typed_spelling(pattern: str, patterns: Sequence[str], token: str, next_token: Optional[str]) -> Optional[str]:
    """Keys actually consumed when following `pattern`; None if it never completes"""
    buffer = ""
    for i, key in enumerate(pattern):
        result = match_step(buffer, key, patterns, token, next_token)
        if result.status is MatchStatus.COMPLETE:
            return pattern[:i + 1]
        if result.status is MatchStatus.REJECT:
            return None
        buffer = result.buffer
    return None


def romanize(word: str) -> str:
    """
    Canonical romaji for a kana word.

    Follows the first spelling at every position, cut short where the matcher
    completes the token early (a lone "n" for ん before a consonant).
    """
    tokens = tokenize(word)
    parts: List[str] = []
    for i, token in enumerate(tokens):
        next_token = tokens[i + 1] if i + 1 < len(tokens) else None
        patterns = valid_patterns(token, next_token)
        spelling = None
        for pattern in patterns:
            spelling = _typed_spelling(pattern, patterns, token, next_token)
            if spelling:
                break
        if not spelling:
            raise ValueError(f"No romaji spelling for token '{token}' in '{word}'")
        parts.append(spelling)
    return "".join(parts)
