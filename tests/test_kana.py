"""
Tests for the Kana Matcher

Tokenizer, pattern expansion, the per-key matcher and romaji hints.
"""

import pytest

from kanatype.services.kana import (
    KANA_TABLE,
    MatchStatus,
    tokenize,
    is_known_token,
    is_direct_input,
    valid_patterns,
    is_ambiguous_nasal,
    match_step,
    romanize,
)
from kanatype.utils.words import BUNDLED_WORDS_PATH, load_words_file


def type_keys(token, next_token, keys):
    """Feed keys through match_step and return the statuses"""
    patterns = valid_patterns(token, next_token)
    buffer = ""
    statuses = []
    for key in keys:
        result = match_step(buffer, key, patterns, token, next_token)
        statuses.append(result.status)
        buffer = result.buffer
    return statuses


class TestTokenize:
    """Tests for tokenize."""

    def test_plain_syllables(self):
        """Each base kana is its own token."""
        assert tokenize("ねこ") == ["ね", "こ"]

    def test_digraph_fused(self):
        """A small glide is fused with the preceding kana."""
        assert tokenize("とうきょう") == ["と", "う", "きょ", "う"]
        assert tokenize("しゃしん") == ["しゃ", "し", "ん"]

    def test_geminate_stands_alone(self):
        """The small tsu is never fused with its neighbours."""
        assert tokenize("がっこう") == ["が", "っ", "こ", "う"]
        assert tokenize("いっしょ") == ["い", "っ", "しょ"]

    def test_unknown_characters_become_tokens(self):
        """Tokenizing never fails, even on unknown input."""
        assert tokenize("abc") == ["a", "b", "c"]
        assert tokenize("") == []

    def test_round_trip_over_corpus(self):
        """Concatenated tokens rebuild every corpus word exactly."""
        parsed = load_words_file(BUNDLED_WORDS_PATH)
        assert parsed.words
        for word in parsed.words:
            assert "".join(tokenize(word.phonetic)) == word.phonetic

    def test_extended_digraph_reachable(self):
        """Extended digraphs with small e are known tokens."""
        for word in ("しぇ", "じぇ", "ちぇ", "いぇ"):
            tokens = tokenize(word)
            assert len(tokens) == 1
            assert is_known_token(tokens[0])


class TestValidPatterns:
    """Tests for valid_patterns."""

    def test_base_case_keeps_table_order(self):
        """The canonical spelling comes first."""
        assert valid_patterns("ね") == ["ne"]
        assert valid_patterns("し")[0] == "shi"

    def test_digraph_cross_product_appended(self):
        """Digraphs accept direct entries first, then pairwise spellings."""
        patterns = valid_patterns("きゃ")
        assert patterns[:2] == ["kya", "kixya"]
        assert "kilya" in patterns
        assert patterns.index("kya") < patterns.index("kilya")

    def test_geminate_prepends_next_consonant(self):
        """The small tsu accepts the next token's first consonant."""
        patterns = valid_patterns("っ", "た")
        assert "t" in patterns
        assert patterns[0] == "t"
        assert patterns.index("t") < patterns.index("xtu")

    def test_geminate_unique_consonants(self):
        """Repeated first letters appear once."""
        patterns = valid_patterns("っ", "し")
        assert patterns[:2] == ["s", "c"]

    def test_geminate_without_next_token(self):
        """With nothing after it, only the direct spellings apply."""
        assert valid_patterns("っ") == list(KANA_TABLE["っ"])

    def test_unknown_token_has_no_patterns(self):
        """Unknown tokens produce an empty list."""
        assert valid_patterns("a") == []

    def test_matcher_totality_over_corpus(self):
        """Every token/next-token pair in the corpus has spellings."""
        parsed = load_words_file(BUNDLED_WORDS_PATH)
        for word in parsed.words:
            tokens = tokenize(word.phonetic)
            for i, token in enumerate(tokens):
                next_token = tokens[i + 1] if i + 1 < len(tokens) else None
                assert valid_patterns(token, next_token), (word, token)


class TestMatchStep:
    """Tests for match_step and the nasal rule."""

    def test_prefix_continues_then_completes(self):
        """Keys build the buffer until a spelling is complete."""
        assert type_keys("ね", None, "ne") == [MatchStatus.CONTINUE, MatchStatus.COMPLETE]

    def test_wrong_key_rejected(self):
        """A key that breaks every spelling is rejected and the buffer kept."""
        result = match_step("n", "x", ["ne"])
        assert result.status is MatchStatus.REJECT
        assert result.buffer == "n"

    def test_multi_character_key_rejected(self):
        """Romaji keys are single characters."""
        assert match_step("", "ne", ["ne"]).status is MatchStatus.REJECT
        assert match_step("", "", ["ne"]).status is MatchStatus.REJECT

    def test_nasal_before_consonant_completes_on_single_n(self):
        """A lone n finishes the nasal when a consonant follows."""
        assert type_keys("ん", "か", "n") == [MatchStatus.COMPLETE]

    def test_nasal_before_vowel_waits(self):
        """A lone n stays open before a vowel and completes on the second n."""
        assert type_keys("ん", "あ", "nn") == [MatchStatus.CONTINUE, MatchStatus.COMPLETE]

    @pytest.mark.parametrize("next_token", ["い", "や", "な", "にゃ"])
    def test_nasal_ambiguous_followers(self, next_token):
        """Vowel, y and n starts are ambiguous."""
        assert is_ambiguous_nasal("ん", "n", next_token)

    def test_nasal_at_word_end(self):
        """Nothing follows, so a lone n completes."""
        assert not is_ambiguous_nasal("ん", "n", None)
        assert type_keys("ん", None, "n") == [MatchStatus.COMPLETE]

    def test_nasal_before_unknown_token(self):
        """An unknown follower never makes the nasal ambiguous."""
        assert not is_ambiguous_nasal("ん", "n", "ー")

    def test_geminate_single_consonant(self):
        """The small tsu completes on the next token's consonant."""
        assert type_keys("っ", "た", "t") == [MatchStatus.COMPLETE]

    def test_direct_input_detection(self):
        """Hiragana keys are direct input, romaji keys are not."""
        assert is_direct_input("ね")
        assert is_direct_input("きょ")
        assert not is_direct_input("n")
        assert not is_direct_input("")
        assert not is_direct_input("ネ")


class TestRomanize:
    """Tests for romanize."""

    @pytest.mark.parametrize("kana,expected", [
        ("ねこ", "neko"),
        ("しんかんせん", "shinkansen"),
        ("れんあい", "rennai"),
        ("がっこう", "gakkou"),
        ("いっしょ", "issho"),
        ("とうきょう", "toukyou"),
        ("じんじゃ", "jinja"),
    ])
    def test_canonical_spelling(self, kana, expected):
        """Canonical romaji follows the first spelling at every position."""
        assert romanize(kana) == expected

    def test_every_corpus_word_has_romaji(self):
        """The whole corpus can be typed."""
        parsed = load_words_file(BUNDLED_WORDS_PATH)
        for word in parsed.words:
            assert romanize(word.phonetic)

    def test_unknown_kana_raises(self):
        """Words outside the table have no spelling."""
        with pytest.raises(ValueError):
            romanize("nodata")
