#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Play engine - Live session state machine driving the kana typing game.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# PlayEngine.load_words: Installs the official word list.
# PlayEngine.load_csv: Installs a custom (offline) word list from CSV text.
# PlayEngine.start: Requests a session token and begins play.
# PlayEngine.reset: Clears all per-session state.
# PlayEngine.tick: One-second timer step; ends the game at zero.
# PlayEngine.process_input: Feeds one key into the shared score keeper.
# PlayEngine.hint: Canonical romaji for the rest of the current word.
# PlayEngine.pop_bonuses: Drains transient bonus markers for display.
# PlayEngine.game_over: Freezes the session and computes final stats.
# PlayEngine.build_submission: Builds the submit payload for the verifier.
# PlayEngine.submit: Sends the payload through a callback and records the verdict.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# PlayState: Enum of engine states.
# BonusMarker: Transient "+N" / "-1" marker shown next to score or timer.
# GameStats: Final stats for one session.
# TokenProvider / VerifyCallback: Async collaborator signatures.
# PlayEngine: Engine class.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# logging: Logging.
# random: Unseeded pick for custom lists.
# time: Default clock.
# dataclasses: Data structures.
# enum: Enumerations.
# typing: Type hints.
# kanatype.constants: Timer constants and sentinel word.
# kanatype.models: Word and token models.
# kanatype.services: Kana hinting, scheduler, score keeper.
# kanatype.utils.words: CSV parsing and active pool filter.

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from kanatype.constants import COMBO_MULTIPLIER, DEFAULT_TIME, ERROR_TIME_PENALTY, MAX_TIME
from kanatype.models.game import GameTokenResponse
from kanatype.models.word import Word
from kanatype.services.kana import romanize
from kanatype.services.scheduler import NO_DATA_WORD, SeededRandom, select_word
from kanatype.services.scoring import KeyOutcome, KeyResult, ScoreKeeper
from kanatype.utils.words import ParsedWords, active_words, parse_words

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[GameTokenResponse]]
VerifyCallback = Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]

MSG_WELCOME = "PRESS START OR LOAD CSV"
MSG_NO_WORDS = "LOAD CSV TO START"
MSG_PREPARING = "PREPARING SESSION..."
MSG_SESSION_ERROR = "SESSION ERROR. TRY AGAIN."
MSG_VERIFYING = "VERIFYING SCORE..."
MSG_OFFLINE = "FINISHED (CUSTOM LIST - OFFLINE)"
MSG_VERIFIED = "SCORE VERIFIED"
MSG_COMM_ERROR = "COMMUNICATION ERROR"


class PlayState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    PLAYING = "playing"
    FINISHED = "finished"


@dataclass
class BonusMarker:
    target: str  # "score" or "time"
    text: str
    kind: str = ""  # "perfect", "error" or ""


@dataclass
class GameStats:
    score: int
    accuracy: float  # Percent, one decimal
    kpm: int
    max_combo: int
    wrong: int


@dataclass
class PlayEngine:
    """
    Single-tab game loop.

    The engine never reads the wall clock directly; `clock` returns seconds
    and is only used for elapsed-time stamps, so tests can drive it. The
    countdown itself advances through `tick()`, which the host calls once
    per second.
    """
    clock: Callable[[], float] = time.monotonic
    rng: random.Random = field(default_factory=random.Random)

    state: PlayState = PlayState.IDLE
    message: str = MSG_WELCOME
    is_custom: bool = False
    words: List[Word] = field(default_factory=list)
    pool: List[Word] = field(default_factory=list)
    load_errors: List[str] = field(default_factory=list)

    time_left: int = DEFAULT_TIME
    game_id: Optional[str] = None
    keeper: ScoreKeeper = field(default_factory=ScoreKeeper)
    current_word: Optional[Word] = None
    key_log: List[Dict[str, Any]] = field(default_factory=list)
    played_words: List[Dict[str, Any]] = field(default_factory=list)
    bonuses: List[BonusMarker] = field(default_factory=list)
    stats: Optional[GameStats] = None
    finished_duration: float = 0.0

    _prng: Optional[SeededRandom] = None
    _started_at: float = 0.0

    # ----------------------------------------------------------------------
    # Word lists
    # ----------------------------------------------------------------------

    def load_words(self, words: Sequence[Word]) -> int:
        self.words = list(words)
        self.pool = active_words(self.words)
        self.is_custom = False
        self.load_errors = []
        return len(self.words)

    def load_csv(self, text: str) -> ParsedWords:
        """Custom lists are played offline and never submitted"""
        parsed = parse_words(text)
        self.words = list(parsed.words)
        self.pool = active_words(self.words)
        self.is_custom = True
        self.load_errors = list(parsed.errors)
        logger.info(f"Custom list loaded: {len(parsed.words)} words, {len(parsed.errors)} errors")
        return parsed

    # ----------------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------------

    @property
    def score(self) -> int:
        return self.keeper.score

    def elapsed(self) -> float:
        return self.clock() - self._started_at

    def reset(self) -> None:
        self.state = PlayState.IDLE
        self.time_left = DEFAULT_TIME
        self.game_id = None
        self.keeper = ScoreKeeper()
        self.current_word = None
        self.key_log = []
        self.played_words = []
        self.bonuses = []
        self.stats = None
        self.finished_duration = 0.0
        self._prng = None
        self._started_at = self.clock()

    async def start(self, token_provider: Optional[TokenProvider] = None) -> bool:
        """
        Idle -> Preparing -> Playing.

        Official lists need a session token before play begins; any failure
        to obtain one drops back to Idle with a user-visible message.
        """
        if self.state in (PlayState.PREPARING, PlayState.PLAYING):
            return False
        if not self.pool:
            self.message = MSG_NO_WORDS
            return False

        self.reset()
        self.state = PlayState.PREPARING
        self.message = MSG_PREPARING

        if not self.is_custom:
            try:
                if token_provider is None:
                    raise RuntimeError("No token provider for an official session")
                token = await token_provider()
                self.game_id = token.game_id
                self._prng = SeededRandom(token.seed)
            except Exception as e:
                logger.error(f"Session error: {e}")
                self.state = PlayState.IDLE
                self.message = MSG_SESSION_ERROR
                return False

        self._started_at = self.clock()
        self.state = PlayState.PLAYING
        self.message = ""
        self._next_word()
        return True

    def tick(self) -> None:
        if self.state is not PlayState.PLAYING:
            return
        if self.time_left <= 1:
            self.time_left = 0
            self.game_over()
            return
        self.time_left -= 1

    def _next_word(self) -> None:
        elapsed = self.elapsed()
        if self._prng is not None:
            word = select_word(self.pool, elapsed, self._prng)
        elif self.pool:
            word = self.rng.choice(self.pool)
        else:
            word = NO_DATA_WORD

        self.current_word = word
        self.keeper.begin_word(word)
        self.played_words.append({
            "display": word.display,
            "phonetic": word.phonetic,
            "startTimeSec": elapsed,
        })

    # ----------------------------------------------------------------------
    # Input
    # ----------------------------------------------------------------------

    def process_input(self, key: str) -> KeyResult:
        """Every key is logged before it is judged, rejected ones included"""
        if self.state is not PlayState.PLAYING or self.current_word is None:
            return KeyResult(KeyOutcome.IGNORED)

        self.key_log.append({"key": key, "timeMs": int(self.elapsed() * 1000)})
        result = self.keeper.press(key)

        if result.outcome is KeyOutcome.REJECT:
            self._apply_error_penalty()
        elif result.outcome is KeyOutcome.WORD_COMPLETE:
            self._word_complete(result)
        return result

    def _apply_error_penalty(self) -> None:
        self.time_left = max(0, self.time_left - ERROR_TIME_PENALTY)
        self.bonuses.append(BonusMarker("time", f"-{ERROR_TIME_PENALTY}", "error"))
        if self.time_left == 0:
            self.game_over()

    def _word_complete(self, result: KeyResult) -> None:
        if result.perfect:
            before = self.time_left
            self.time_left = min(MAX_TIME, self.time_left + result.time_bonus)
            gained = self.time_left - before
            text = f"PERFECT +{gained}" if gained > 0 else "MAX!"
            self.bonuses.append(BonusMarker("time", text, "perfect"))

        text = f"+{result.score_gain}"
        if self.keeper.combo > 1:
            text += f" (x{1 + self.keeper.combo * COMBO_MULTIPLIER:.1f})"
        self.bonuses.append(BonusMarker("score", text))
        self._next_word()

    @property
    def hint(self) -> Optional[str]:
        """Romaji still to type for the current word, None if it has no spelling"""
        progress = self.keeper.progress
        if progress is None or progress.is_complete:
            return None
        rest = "".join(progress.tokens[progress.token_index:])
        try:
            return romanize(rest)
        except ValueError:
            return None

    def pop_bonuses(self) -> List[BonusMarker]:
        bonuses, self.bonuses = self.bonuses, []
        return bonuses

    # ----------------------------------------------------------------------
    # Results
    # ----------------------------------------------------------------------

    def game_over(self) -> Optional[GameStats]:
        if self.state is not PlayState.PLAYING:
            return self.stats

        self.state = PlayState.FINISHED
        self.finished_duration = self.elapsed()
        keeper = self.keeper

        total = keeper.correct_keys + keeper.wrong_keys
        accuracy = round(keeper.correct_keys / total * 100, 1) if total else 0.0
        duration = self.finished_duration
        kpm = int(keeper.correct_keys / duration * 60 + 0.5) if duration > 0 else 0

        self.stats = GameStats(
            score=keeper.score,
            accuracy=accuracy,
            kpm=kpm,
            max_combo=keeper.max_combo,
            wrong=keeper.wrong_keys,
        )
        self.message = MSG_OFFLINE if self.is_custom else MSG_VERIFYING
        logger.info(f"Game over: score={keeper.score} kpm={kpm} accuracy={accuracy}")
        return self.stats

    def build_submission(self, user_id: Optional[str] = None, username: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "score": self.keeper.score,
            "keyLog": list(self.key_log),
            "playedWords": list(self.played_words),
            "duration": self.finished_duration,
            "gameId": self.game_id,
        }
        if user_id:
            payload["userId"] = user_id
        if username:
            payload["username"] = username
        return payload

    async def submit(
        self,
        callback: VerifyCallback,
        user_id: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Send the finished session for verification.

        The token is single-use, so the game id is cleared as soon as the
        callback returns, whatever the verdict.
        """
        if self.is_custom or self.game_id is None or self.stats is None:
            return None

        try:
            verdict = await callback(self.build_submission(user_id, username))
        except Exception as e:
            logger.error(f"Submission error: {e}")
            self.message = MSG_COMM_ERROR
            return None

        self.game_id = None
        if verdict and verdict.get("success"):
            self.message = MSG_VERIFIED
            return verdict

        reason = (verdict or {}).get("message") or "unknown"
        self.message = f"VERIFICATION FAILED: {reason}"
        return None
