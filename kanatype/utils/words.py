#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Word list utility - Parses the display,kana CSV corpus and provides the official word pool.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# parse_words: Parses CSV text into words plus line-numbered errors.
# active_words: Filters out words that cannot be played (long-vowel mark).
# load_words_file: Reads and parses a CSV file from disk.
# get_official_words: Returns the cached, parsed official corpus.
# get_official_pool: Returns the cached active pool the verifier replays against.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# BUNDLED_WORDS_PATH: Path of the CSV shipped with the package.
# ParsedWords: Named tuple of (words, errors).

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# logging: Logging.
# re: Regex.
# pathlib: File paths.
# functools.lru_cache: Caching.
# typing: Type hints.
# kanatype.config: App settings.
# kanatype.constants: Long vowel mark.
# kanatype.models.word: Word model.
# kanatype.services.kana: Tokenizer for validation.

import logging
import re
from pathlib import Path
from functools import lru_cache
from typing import List, NamedTuple, Sequence, Tuple

from kanatype.config import get_settings
from kanatype.constants import LONG_VOWEL_MARK
from kanatype.models.word import Word
from kanatype.services.kana import tokenize, is_known_token

logger = logging.getLogger(__name__)

BUNDLED_WORDS_PATH = Path(__file__).resolve().parent.parent / "data" / "words.csv"

_LATIN = re.compile(r"[A-Za-z]")


class ParsedWords(NamedTuple):
    words: List[Word]
    errors: List[str]


def parse_words(text: str) -> ParsedWords:
    """
    Parse `display,kana` lines.

    Bad rows are collected as "Line N: ..." errors and skipped; they never
    abort the load. A first line whose two fields both contain Latin letters
    is treated as a header.
    """
    words: List[Word] = []
    errors: List[str] = []

    for i, raw in enumerate(re.split(r"\r\n|\n", text)):
        line_no = i + 1
        if not raw.strip():
            continue
        parts = raw.split(",")

        if i == 0 and len(parts) >= 2 and _LATIN.search(parts[0]) and _LATIN.search(parts[1]):
            continue

        if len(parts) < 2:
            errors.append(f"Line {line_no}: missing columns")
            continue

        display = parts[0].strip()
        phonetic = parts[1].strip()
        if not display or not phonetic:
            errors.append(f"Line {line_no}: empty display or kana")
            continue

        if not all(is_known_token(t) for t in tokenize(phonetic)):
            errors.append(f"Line {line_no}: invalid kana '{phonetic}'")
            continue

        words.append(Word(display=display, phonetic=phonetic))

    return ParsedWords(words, errors)


def active_words(words: Sequence[Word]) -> List[Word]:
    """Words that can be played; the long-vowel mark has no romaji spelling"""
    return [w for w in words if LONG_VOWEL_MARK not in w.phonetic]


def load_words_file(path: Path) -> ParsedWords:
    return parse_words(Path(path).read_text(encoding="utf-8"))


@lru_cache()
def get_official_words() -> ParsedWords:
    """Official corpus, parsed once per process"""
    settings = get_settings()
    path = Path(settings.words_csv_path) if settings.words_csv_path else BUNDLED_WORDS_PATH
    parsed = load_words_file(path)
    logger.info(f"Loaded {len(parsed.words)} words from {path.name} ({len(parsed.errors)} rejected)")
    for error in parsed.errors:
        logger.warning(f"Word list: {error}")
    return parsed


@lru_cache()
def get_official_pool() -> Tuple[Word, ...]:
    return tuple(active_words(get_official_words().words))
