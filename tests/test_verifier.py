"""
Tests for the Replay Verifier

Soundness for honest sessions produced by the play engine, and every
rejection path.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from kanatype.config import Settings
from kanatype.models.word import KeyLogEntry, PlayedWordEntry, Word
from kanatype.services.play import PlayEngine
from kanatype.services.sessions import MemorySessionStore, SessionManager
from kanatype.services.verifier import (
    ReasonClass,
    RejectReason,
    ReplayVerifier,
    replay_session,
)
from kanatype.utils.retry import StorageUnavailableError
from kanatype.utils.words import BUNDLED_WORDS_PATH, active_words, load_words_file

NEKO = Word("猫", "ねこ")


class FakeClock:
    """Monotonic clock the test moves by hand"""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeNow:
    def __init__(self):
        self.value = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.value

    def advance(self, **kwargs):
        self.value += timedelta(**kwargs)


def make_scores(rankable=False, new_record=True):
    scores = MagicMock()
    scores.is_rankable = MagicMock(return_value=rankable)
    scores.record_best = AsyncMock(return_value=new_record)
    return scores


def neko_payload(game_id, key_times_ms, start_times=None, duration=None, score=None):
    """Payload typing ねこ once per four keys at the given times"""
    keys = [{"key": k, "timeMs": t} for k, t in zip("neko" * (len(key_times_ms) // 4), key_times_ms)]
    words = len(keys) // 4
    if start_times is None:
        start_times = [key_times_ms[i * 4] / 1000 for i in range(words)]
    played = [{"display": "猫", "phonetic": "ねこ", "startTimeSec": s} for s in start_times]
    if score is None:
        outcome = replay_session(
            12345,
            [PlayedWordEntry.model_validate(p) for p in played],
            [KeyLogEntry.model_validate(k) for k in keys],
            [NEKO],
            grace_seconds=2,
        )
        score = outcome.score
    payload = {"score": score, "keyLog": keys, "playedWords": played, "gameId": game_id}
    if duration is not None:
        payload["duration"] = duration
    return payload


def jittered_times(count, start=100):
    times, t = [], start
    for i in range(count):
        times.append(t)
        t += 120 if i % 2 else 180
    return times


class TestHonestSessions:
    """Sessions played through PlayEngine must verify."""

    @pytest.fixture
    def pool(self):
        return active_words(load_words_file(BUNDLED_WORDS_PATH).words)

    @pytest.fixture
    def sessions(self):
        return SessionManager(MemorySessionStore(), ttl_seconds=600)

    async def play(self, pool, sessions, seed, words=12, mistakes=False, unfinished=False):
        clock = FakeClock()
        engine = PlayEngine(clock=clock)
        engine.load_words(pool)

        async def token_provider():
            return await sessions.issue(seed=seed)

        assert await engine.start(token_provider)

        for n in range(words):
            keys = engine.hint
            for i, key in enumerate(keys):
                if mistakes and n % 3 == 1 and i == 1:
                    clock.advance(0.2)
                    engine.process_input("!")
                clock.advance(0.12 if (len(engine.key_log) % 2) else 0.18)
                engine.process_input(key)

        if unfinished:
            # Everything but the last key leaves the word open
            for key in engine.hint[:-1]:
                clock.advance(0.15)
                engine.process_input(key)

        engine.game_over()
        return engine

    @pytest.mark.asyncio
    async def test_perfect_session_accepted(self, pool, sessions):
        """An honest error-free session verifies with the same score."""
        engine = await self.play(pool, sessions, seed=12345)
        verifier = ReplayVerifier(sessions, make_scores(), pool=pool, settings=Settings())

        result = await verifier.verify(engine.build_submission())

        assert result.accepted, result
        assert result.verified_score == engine.score
        assert result.kpm > 0

    @pytest.mark.asyncio
    async def test_session_with_mistakes_accepted(self, pool, sessions):
        """Rejected keys are replayed exactly like the client saw them."""
        engine = await self.play(pool, sessions, seed=777, mistakes=True)
        assert engine.keeper.wrong_keys > 0
        verifier = ReplayVerifier(sessions, make_scores(), pool=pool, settings=Settings())

        result = await verifier.verify(engine.build_submission())

        assert result.accepted, result
        assert result.verified_score == engine.score

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", [0, 1, 4242, 999_999])
    async def test_any_seed(self, pool, sessions, seed):
        """Soundness holds for arbitrary seeds."""
        engine = await self.play(pool, sessions, seed=seed, words=8)
        verifier = ReplayVerifier(sessions, make_scores(), pool=pool, settings=Settings())
        result = await verifier.verify(engine.build_submission())
        assert result.accepted, result

    @pytest.mark.asyncio
    async def test_unfinished_last_word(self, pool, sessions):
        """A word cut off by the timer still replays."""
        engine = await self.play(pool, sessions, seed=12345, words=6, unfinished=True)
        assert len(engine.played_words) == 7
        assert not engine.keeper.progress.is_complete
        verifier = ReplayVerifier(sessions, make_scores(), pool=pool, settings=Settings())

        result = await verifier.verify(engine.build_submission())
        assert result.accepted, result

    @pytest.mark.asyncio
    async def test_rankable_user_persisted(self, pool, sessions):
        """Verified scores of ranked users go to the score service."""
        engine = await self.play(pool, sessions, seed=12345)
        scores = make_scores(rankable=True, new_record=True)
        verifier = ReplayVerifier(sessions, scores, pool=pool, settings=Settings())

        result = await verifier.verify(engine.build_submission(user_id="usr_1", username="alice"))

        assert result.accepted
        assert result.is_new_record
        scores.record_best.assert_called_once_with("usr_1", "alice", engine.score, result.kpm)

    @pytest.mark.asyncio
    async def test_guest_not_persisted(self, pool, sessions):
        """Unranked ids are verified but never stored."""
        engine = await self.play(pool, sessions, seed=12345)
        scores = make_scores(rankable=False)
        verifier = ReplayVerifier(sessions, scores, pool=pool, settings=Settings())

        result = await verifier.verify(engine.build_submission(user_id="guest_1"))

        assert result.accepted
        assert not result.is_new_record
        scores.record_best.assert_not_called()


class TestRejections:
    """Each failed check carries its own reason."""

    @pytest.fixture
    def now(self):
        return FakeNow()

    @pytest.fixture
    def sessions(self, now):
        return SessionManager(MemorySessionStore(), ttl_seconds=600, now=now)

    @pytest.fixture
    def verifier(self, sessions):
        return ReplayVerifier(sessions, make_scores(), pool=[NEKO], settings=Settings())

    async def new_game(self, sessions):
        return (await sessions.issue(seed=12345)).game_id

    # =========================================================================
    # Session
    # =========================================================================

    @pytest.mark.asyncio
    async def test_no_session(self, verifier):
        """Unknown game ids are rejected."""
        result = await verifier.verify(neko_payload("unknown", jittered_times(8)))
        assert result.reason is RejectReason.NO_SESSION
        assert result.reason_class is ReasonClass.SESSION

    @pytest.mark.asyncio
    async def test_reused_session(self, verifier, sessions):
        """A session cannot be redeemed twice."""
        game_id = await self.new_game(sessions)
        payload = neko_payload(game_id, jittered_times(8))
        assert (await verifier.verify(payload)).accepted
        assert (await verifier.verify(payload)).reason is RejectReason.NO_SESSION

    @pytest.mark.asyncio
    async def test_expired(self, verifier, sessions, now):
        """Sessions past their TTL are rejected."""
        game_id = await self.new_game(sessions)
        now.advance(minutes=11)
        result = await verifier.verify(neko_payload(game_id, jittered_times(8)))
        assert result.reason is RejectReason.EXPIRED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, [], "text", 42])
    async def test_non_object_payload(self, verifier, payload):
        """Non-object bodies have no session to redeem."""
        result = await verifier.verify(payload)
        assert result.reason is RejectReason.NO_SESSION

    @pytest.mark.asyncio
    async def test_storage_unavailable(self):
        """A failing session store is reported as such."""
        sessions = MagicMock()
        sessions.consume = AsyncMock(side_effect=StorageUnavailableError("down"))
        verifier = ReplayVerifier(sessions, make_scores(), pool=[NEKO], settings=Settings())

        result = await verifier.verify({"gameId": "g1"})
        assert result.reason is RejectReason.STORAGE_UNAVAILABLE
        assert result.reason_class is ReasonClass.STORAGE

    @pytest.mark.asyncio
    async def test_score_store_unavailable(self, sessions):
        """A failing best-score write is not reported as success."""
        scores = make_scores(rankable=True)
        scores.record_best = AsyncMock(side_effect=StorageUnavailableError("down"))
        verifier = ReplayVerifier(sessions, scores, pool=[NEKO], settings=Settings())
        game_id = await self.new_game(sessions)

        payload = neko_payload(game_id, jittered_times(8))
        payload["userId"] = "usr_1"
        result = await verifier.verify(payload)
        assert not result.accepted
        assert result.reason is RejectReason.STORAGE_UNAVAILABLE

    # =========================================================================
    # Structure
    # =========================================================================

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mutate", [
        lambda p: p.update(score="32"),
        lambda p: p.update(score=True),
        lambda p: p.update(score=float("nan")),
        lambda p: p.pop("score"),
        lambda p: p.update(keyLog="nope"),
        lambda p: p.update(playedWords=[]),
        lambda p: p.update(playedWords={}),
        lambda p: p.update(duration=-1),
        lambda p: p.update(duration="long"),
        lambda p: p["keyLog"].append({"key": "a"}),
        lambda p: p["playedWords"].append({"display": "x"}),
        lambda p: p["keyLog"].append({"key": "a", "timeMs": float("inf")}),
    ])
    async def test_bad_structure(self, verifier, sessions, mutate):
        """Malformed payloads are rejected after burning their session."""
        game_id = await self.new_game(sessions)
        payload = neko_payload(game_id, jittered_times(8))
        mutate(payload)

        result = await verifier.verify(payload)
        assert result.reason is RejectReason.BAD_STRUCTURE
        assert await sessions.consume(game_id) is None

    # =========================================================================
    # Duration / Integrity
    # =========================================================================

    @pytest.mark.asyncio
    async def test_duration_exceeded(self, verifier, sessions):
        """Over ten minutes is rejected whatever the bonuses."""
        game_id = await self.new_game(sessions)
        result = await verifier.verify(neko_payload(game_id, jittered_times(8), duration=601))
        assert result.reason is RejectReason.DURATION_EXCEEDED

    @pytest.mark.asyncio
    async def test_duration_from_last_key(self, verifier, sessions):
        """Without a duration the last key time is used."""
        game_id = await self.new_game(sessions)
        times = jittered_times(8)
        times[-1] = 700_000
        result = await verifier.verify(neko_payload(game_id, times))
        assert result.reason is RejectReason.DURATION_EXCEEDED

    @pytest.mark.asyncio
    async def test_word_mismatch(self, sessions):
        """A tampered word is rejected with its index."""
        pool = active_words(load_words_file(BUNDLED_WORDS_PATH).words)
        verifier = ReplayVerifier(sessions, make_scores(), pool=pool, settings=Settings())
        clock = FakeClock()
        engine = PlayEngine(clock=clock)
        engine.load_words(pool)

        async def token_provider():
            return await sessions.issue(seed=12345)

        await engine.start(token_provider)
        for _ in range(3):
            for key in engine.hint:
                clock.advance(0.15)
                engine.process_input(key)
        engine.game_over()

        payload = engine.build_submission()
        payload["playedWords"][1]["phonetic"] = "ちがう"
        result = await verifier.verify(payload)

        assert result.reason is RejectReason.WORD_MISMATCH
        assert result.word_index == 1
        assert result.reason_class is ReasonClass.INTEGRITY

    @pytest.mark.asyncio
    async def test_time_budget_exceeded(self, verifier, sessions):
        """A word starting after the earned time budget is rejected."""
        game_id = await self.new_game(sessions)
        # One perfect ねこ earns one second: budget is 60 + 1 + 2
        payload = neko_payload(game_id, jittered_times(8), start_times=[0.1, 63.5])
        result = await verifier.verify(payload)
        assert result.reason is RejectReason.TIME_BUDGET_EXCEEDED
        assert result.word_index == 1

    @pytest.mark.asyncio
    async def test_time_budget_grace(self, verifier, sessions):
        """Starting inside the grace window is allowed."""
        game_id = await self.new_game(sessions)
        payload = neko_payload(game_id, jittered_times(8), start_times=[0.1, 62.9], duration=63.5)
        result = await verifier.verify(payload)
        assert result.accepted, result

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delta", [1, -1])
    async def test_score_mismatch(self, verifier, sessions, delta):
        """A claimed score off by one is rejected."""
        game_id = await self.new_game(sessions)
        payload = neko_payload(game_id, jittered_times(8))
        payload["score"] += delta
        result = await verifier.verify(payload)
        assert result.reason is RejectReason.SCORE_MISMATCH

    # =========================================================================
    # Anomalies
    # =========================================================================

    @pytest.mark.asyncio
    async def test_impossible_speed(self, verifier, sessions):
        """A hundred correct keys in four seconds is rejected."""
        game_id = await self.new_game(sessions)
        times = []
        t = 0
        for i in range(100):
            times.append(t)
            t += 30 if i % 2 else 50
        result = await verifier.verify(neko_payload(game_id, times, duration=4.0))
        assert result.reason is RejectReason.IMPOSSIBLE_SPEED
        assert result.reason_class is ReasonClass.ANOMALY

    @pytest.mark.asyncio
    async def test_short_claimed_duration_cannot_hide_speed(self, verifier, sessions):
        """A duration shorter than the key log does not zero the kpm."""
        game_id = await self.new_game(sessions)
        times = []
        t = 0
        for i in range(100):
            times.append(t)
            t += 30 if i % 2 else 50
        result = await verifier.verify(neko_payload(game_id, times, duration=2.0))
        assert result.reason is RejectReason.IMPOSSIBLE_SPEED

    @pytest.mark.asyncio
    async def test_kpm_uses_key_span(self, verifier, sessions):
        """An understated duration is replaced by the span of the key log."""
        game_id = await self.new_game(sessions)
        result = await verifier.verify(neko_payload(game_id, jittered_times(28), duration=1.0))
        assert result.accepted, result
        # 28 keys over 4.18 seconds
        assert result.kpm == 402

    @pytest.mark.asyncio
    async def test_too_consistent(self, verifier, sessions):
        """Forty-four keys exactly 50ms apart are rejected."""
        game_id = await self.new_game(sessions)
        times = [i * 50 for i in range(44)]
        result = await verifier.verify(neko_payload(game_id, times))
        assert result.reason is RejectReason.TOO_CONSISTENT

    @pytest.mark.asyncio
    async def test_impossible_bursts(self, verifier, sessions):
        """Mostly simultaneous keys are rejected."""
        game_id = await self.new_game(sessions)
        times = [0] * 37 + [500 * i for i in range(1, 8)]
        payload = neko_payload(game_id, times, start_times=[0.0] * 11, duration=10.0)
        result = await verifier.verify(payload)
        assert result.reason is RejectReason.IMPOSSIBLE_BURSTS

    @pytest.mark.asyncio
    async def test_short_log_skips_regularity(self, verifier, sessions):
        """Logs of thirty keys or fewer are not judged on regularity."""
        game_id = await self.new_game(sessions)
        times = [i * 50 for i in range(28)]
        result = await verifier.verify(neko_payload(game_id, times))
        assert result.accepted, result


class TestReplaySession:
    """Tests for the pure replay."""

    def test_sentinel_pool(self):
        """An empty pool replays against the no-data sentinel."""
        played = [PlayedWordEntry(display="NO DATA", phonetic="nodata", start_time_sec=0)]
        keys = [KeyLogEntry(key="n", time_ms=100)]
        outcome = replay_session(1, played, keys, [], grace_seconds=2)
        assert outcome.ok
        assert outcome.score == 0
        assert outcome.correct_keys == 0

    def test_extra_keys_ignored(self):
        """Keys after the last word are not consumed."""
        played = [PlayedWordEntry(display="猫", phonetic="ねこ", start_time_sec=0)]
        keys = [KeyLogEntry(key=k, time_ms=i * 100) for i, k in enumerate("nekoxx")]
        outcome = replay_session(1, played, keys, [NEKO], grace_seconds=2)
        assert outcome.score == 32
        assert outcome.correct_keys == 4
