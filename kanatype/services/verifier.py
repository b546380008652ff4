#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Replay verifier - Re-simulates a submitted session from its seed and key log to recompute the score.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# reason_class: Maps a rejection reason to its taxonomy class.
# replay_session: Pure replay of the word schedule and key log (word check, time budget, scoring).
# parse_submission: Structural validation of a raw submission payload.
# ReplayVerifier.verify: Full pipeline (session, structure, replay, score, speed, regularity, persistence).
# ReplayVerifier._session_duration: Claimed duration, floored at the key log span.
# ReplayVerifier._reject: Builds and logs a rejection.
# get_replay_verifier: Returns cached ReplayVerifier instance.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# RejectReason: Enum of machine-readable rejection codes.
# ReasonClass: Enum grouping reasons by how the client should react.
# ReplayOutcome: Dataclass for the result of a pure replay.
# VerificationResult: Dataclass returned by ReplayVerifier.verify.
# ReplayVerifier: Service class.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# logging: Logging.
# math: Finite checks and rounding.
# dataclasses: Data structures.
# enum: Enumerations.
# functools.lru_cache: Caching.
# typing: Type hints.
# pydantic: Validation errors.
# kanatype.config: App settings.
# kanatype.constants: Default session time.
# kanatype.models: Word and submission models.
# kanatype.services: Scheduler, scoring, anti-cheat, sessions and scores.
# kanatype.utils: Word pool, storage errors.

import logging
import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from kanatype.config import Settings, get_settings
from kanatype.constants import DEFAULT_TIME
from kanatype.models.game import ScoreSubmission
from kanatype.models.word import KeyLogEntry, PlayedWordEntry, Word
from kanatype.services.anticheat import AntiCheatService, AnomalyReason
from kanatype.services.scheduler import SeededRandom, select_word
from kanatype.services.scoring import ScoreKeeper
from kanatype.services.scores import ScoreService, get_score_service
from kanatype.services.sessions import SessionManager, get_session_manager
from kanatype.utils.retry import StorageUnavailableError
from kanatype.utils.words import get_official_pool

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    NO_SESSION = "no_session"
    EXPIRED = "expired"
    BAD_STRUCTURE = "bad_structure"
    DURATION_EXCEEDED = "duration_exceeded"
    WORD_MISMATCH = "word_mismatch"
    TIME_BUDGET_EXCEEDED = "time_budget_exceeded"
    SCORE_MISMATCH = "score_mismatch"
    IMPOSSIBLE_SPEED = "impossible_speed"
    TOO_CONSISTENT = "too_consistent"
    IMPOSSIBLE_BURSTS = "impossible_bursts"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class ReasonClass(str, Enum):
    SESSION = "session"  # Restart a session
    INPUT = "input"
    INTEGRITY = "integrity"  # Treated as cheating
    ANOMALY = "anomaly"  # Statistical, same handling as integrity
    STORAGE = "storage"  # Try again later


_REASON_CLASSES = {
    RejectReason.NO_SESSION: ReasonClass.SESSION,
    RejectReason.EXPIRED: ReasonClass.SESSION,
    RejectReason.BAD_STRUCTURE: ReasonClass.INPUT,
    RejectReason.DURATION_EXCEEDED: ReasonClass.ANOMALY,
    RejectReason.WORD_MISMATCH: ReasonClass.INTEGRITY,
    RejectReason.TIME_BUDGET_EXCEEDED: ReasonClass.INTEGRITY,
    RejectReason.SCORE_MISMATCH: ReasonClass.INTEGRITY,
    RejectReason.IMPOSSIBLE_SPEED: ReasonClass.ANOMALY,
    RejectReason.TOO_CONSISTENT: ReasonClass.ANOMALY,
    RejectReason.IMPOSSIBLE_BURSTS: ReasonClass.ANOMALY,
    RejectReason.STORAGE_UNAVAILABLE: ReasonClass.STORAGE,
}


def reason_class(reason: RejectReason) -> ReasonClass:
    return _REASON_CLASSES[reason]


@dataclass
class ReplayOutcome:
    score: int = 0
    correct_keys: int = 0
    time_bonus_total: int = 0
    reason: Optional[RejectReason] = None
    word_index: Optional[int] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass
class VerificationResult:
    accepted: bool
    verified_score: int = 0
    kpm: int = 0
    is_new_record: bool = False
    reason: Optional[RejectReason] = None
    word_index: Optional[int] = None
    detail: str = ""  # Diagnostics for logs only

    @property
    def reason_class(self) -> Optional[ReasonClass]:
        return reason_class(self.reason) if self.reason else None


def replay_session(
    seed: int,
    played_words: Sequence[PlayedWordEntry],
    key_log: Sequence[KeyLogEntry],
    pool: Sequence[Word],
    grace_seconds: float,
    default_time: int = DEFAULT_TIME,
) -> ReplayOutcome:
    """
    Rebuild the session from its seed.

    Each played word must be exactly the word the scheduler yields for its
    start time, must start inside the time budget earned so far, and then
    consumes key-log entries in order until it is complete or the log runs
    out. Scoring goes through the same ScoreKeeper the live engine uses.
    """
    prng = SeededRandom(seed)
    keeper = ScoreKeeper()
    key_index = 0

    for i, played in enumerate(played_words):
        expected = select_word(pool, played.start_time_sec, prng)
        if played.phonetic != expected.phonetic:
            return ReplayOutcome(
                reason=RejectReason.WORD_MISMATCH,
                word_index=i,
                detail=f"expected '{expected.phonetic}', got '{played.phonetic}'",
            )

        budget = default_time + keeper.time_bonus_total + grace_seconds
        if played.start_time_sec > budget:
            return ReplayOutcome(
                reason=RejectReason.TIME_BUDGET_EXCEEDED,
                word_index=i,
                detail=f"start {played.start_time_sec:.2f}s > budget {budget}s",
            )

        progress = keeper.begin_word(expected)
        while not progress.is_complete and key_index < len(key_log):
            keeper.press(key_log[key_index].key)
            key_index += 1

    return ReplayOutcome(
        score=keeper.score,
        correct_keys=keeper.correct_keys,
        time_bonus_total=keeper.time_bonus_total,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_submission(payload: Any) -> Optional[ScoreSubmission]:
    """Validated submission, or None if the payload is malformed"""
    if not isinstance(payload, dict):
        return None
    if not _is_number(payload.get("score")):
        return None
    key_log = payload.get("keyLog")
    played_words = payload.get("playedWords")
    if not isinstance(key_log, list) or not isinstance(played_words, list) or not played_words:
        return None
    duration = payload.get("duration")
    if duration is not None and (not _is_number(duration) or duration < 0):
        return None

    try:
        submission = ScoreSubmission.model_validate(payload)
    except ValidationError:
        return None

    if not all(math.isfinite(k.time_ms) for k in submission.key_log):
        return None
    if not all(math.isfinite(w.start_time_sec) for w in submission.played_words):
        return None
    return submission


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ReplayVerifier:
    """
    Server-side verification of a finished session.

    Checks run strictly in order and stop at the first failure. The session
    is consumed before anything else so a token can never be redeemed twice,
    even by a malformed or rejected submission.
    """

    def __init__(
        self,
        sessions: SessionManager,
        scores: ScoreService,
        pool: Optional[Sequence[Word]] = None,
        settings: Optional[Settings] = None,
        anticheat: Optional[AntiCheatService] = None,
    ):
        self.sessions = sessions
        self.scores = scores
        self.settings = settings or get_settings()
        self.anticheat = anticheat or AntiCheatService(self.settings)
        self._pool = pool

    @property
    def pool(self) -> Sequence[Word]:
        if self._pool is None:
            self._pool = get_official_pool()
        return self._pool

    async def verify(self, payload: Any) -> VerificationResult:
        game_id = payload.get("gameId") if isinstance(payload, dict) else None
        if not isinstance(game_id, str):
            game_id = None

        # 1. One-time session
        try:
            session = await self.sessions.consume(game_id)
        except StorageUnavailableError:
            return self._reject(game_id, RejectReason.STORAGE_UNAVAILABLE, detail="session store")
        if session is None:
            return self._reject(game_id, RejectReason.NO_SESSION)
        if self.sessions.is_expired(session):
            return self._reject(game_id, RejectReason.EXPIRED)

        # 2. Structure
        submission = parse_submission(payload)
        if submission is None:
            return self._reject(game_id, RejectReason.BAD_STRUCTURE)

        # 3. Duration ceiling
        duration = self._session_duration(game_id, submission)
        check = self.anticheat.check_duration(duration)
        if not check.valid:
            return self._reject(game_id, RejectReason.DURATION_EXCEEDED, detail=check.detail)

        # 4-6. Word sequence, time budget, keystroke replay
        replay = replay_session(
            session.seed,
            submission.played_words,
            submission.key_log,
            self.pool,
            grace_seconds=self.settings.time_budget_grace_seconds,
        )
        if not replay.ok:
            return self._reject(game_id, replay.reason, word_index=replay.word_index, detail=replay.detail)

        # 7. Exact score
        if replay.score != submission.score:
            return self._reject(
                game_id,
                RejectReason.SCORE_MISMATCH,
                detail=f"claimed {submission.score}, computed {replay.score}",
            )

        # 8. Speed
        kpm = self.anticheat.calculate_kpm(replay.correct_keys, duration)
        check = self.anticheat.check_speed(kpm)
        if not check.valid:
            return self._reject(game_id, RejectReason.IMPOSSIBLE_SPEED, detail=check.detail)

        # 9. Input regularity
        check = self.anticheat.check_regularity([k.time_ms for k in submission.key_log])
        if not check.valid:
            reason = (
                RejectReason.TOO_CONSISTENT
                if check.reason is AnomalyReason.TOO_CONSISTENT
                else RejectReason.IMPOSSIBLE_BURSTS
            )
            return self._reject(game_id, reason, detail=check.detail)

        # 10. Personal best
        kpm_rounded = _round_half_up(kpm)
        is_new_record = False
        if self.scores.is_rankable(submission.user_id):
            try:
                is_new_record = await self.scores.record_best(
                    submission.user_id, submission.username, replay.score, kpm_rounded
                )
            except StorageUnavailableError:
                return self._reject(game_id, RejectReason.STORAGE_UNAVAILABLE, detail="score store")

        logger.info(f"Verified session {game_id}: score={replay.score} kpm={kpm_rounded} new_record={is_new_record}")
        return VerificationResult(
            accepted=True,
            verified_score=replay.score,
            kpm=kpm_rounded,
            is_new_record=is_new_record,
        )

    def _session_duration(self, game_id: Optional[str], submission: ScoreSubmission) -> float:
        """Claimed duration, never shorter than the span the key log covers"""
        key_span = submission.key_log[-1].time_ms / 1000 if submission.key_log else 0.0
        claimed = submission.duration
        if not claimed:
            return key_span
        if claimed < key_span:
            logger.warning(f"Session {game_id} claims {claimed:.2f}s but its keys span {key_span:.2f}s")
        return max(claimed, key_span)

    def _reject(
        self,
        game_id: Optional[str],
        reason: RejectReason,
        word_index: Optional[int] = None,
        detail: str = "",
    ) -> VerificationResult:
        where = f" at word {word_index}" if word_index is not None else ""
        logger.warning(f"Rejected session {game_id}: {reason.value}{where} {detail}".rstrip())
        return VerificationResult(accepted=False, reason=reason, word_index=word_index, detail=detail)


@lru_cache()
def get_replay_verifier() -> ReplayVerifier:
    """Get cached verifier wired to the configured stores and the official pool"""
    return ReplayVerifier(
        sessions=get_session_manager(),
        scores=get_score_service(),
    )
