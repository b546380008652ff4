#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Session manager - Issues one-time seeded game sessions and consumes them atomically.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# utc_now: Current UTC time.
# MemorySessionStore.add / pop / sweep / ping: In-process store (tests, single worker).
# RedisSessionStore.add / pop / sweep / ping: Redis store, GETDEL for atomic consumption.
# MongoSessionStore.add / pop / sweep / ping: MongoDB store, find_one_and_delete for atomic consumption.
# SessionManager.issue: Creates a session with a fresh seed and runs an opportunistic sweep.
# SessionManager.consume: Atomically reads-and-deletes a session.
# SessionManager.is_expired: Checks a consumed session against its expiry.
# SessionManager.sweep: Purges expired sessions.
# create_session_store: Builds the store configured in settings.
# get_session_manager: Returns cached SessionManager instance.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# SessionRecord: Dataclass for a stored session.
# SESSION_KEY_PREFIX: Redis key prefix for sessions.
# SESSIONS_COLLECTION: MongoDB collection for sessions.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# asyncio: Locks.
# json: Redis serialization.
# logging: Logging.
# random: Sweep sampling.
# secrets: Unpredictable seeds.
# uuid: Session ids.
# datetime: Expiry handling.
# dataclasses: Data structures.
# functools.lru_cache: Caching.
# typing: Type hints.
# redis.asyncio: Redis client.
# kanatype.config.get_settings: App settings.
# kanatype.constants: Session constants.
# kanatype.database.Database: MongoDB connection.
# kanatype.models.game: Token payload.
# kanatype.utils.retry: Bounded storage calls.

import asyncio
import json
import logging
import random
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Optional

import redis.asyncio as redis

from kanatype.config import Settings, get_settings
from kanatype.constants import SEED_RANGE, SESSION_KEY_GRACE_SECONDS, STORAGE_READ_RETRIES
from kanatype.database import Database
from kanatype.models.game import GameTokenResponse
from kanatype.utils.retry import call_with_retry, StorageUnavailableError

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "game:session:"
SESSIONS_COLLECTION = "game_sessions"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionRecord:
    game_id: str
    seed: int
    issued_at: datetime
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "seed": self.seed,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict) -> 'SessionRecord':
        return SessionRecord(
            game_id=data["game_id"],
            seed=int(data["seed"]),
            issued_at=_as_utc(data["issued_at"]),
            expires_at=_as_utc(data["expires_at"]),
        )


def _as_utc(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    # Motor hands back naive datetimes unless the client is tz_aware
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class MemorySessionStore:
    """Process-local store. Only valid with a single worker."""

    def __init__(self):
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    async def add(self, record: SessionRecord) -> None:
        async with self._lock:
            self._sessions[record.game_id] = record

    async def pop(self, game_id: str) -> Optional[SessionRecord]:
        async with self._lock:
            return self._sessions.pop(game_id, None)

    async def sweep(self, now: datetime) -> int:
        async with self._lock:
            expired = [gid for gid, r in self._sessions.items() if r.expires_at < now]
            for game_id in expired:
                del self._sessions[game_id]
            return len(expired)

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore:
    """
    Sessions as JSON strings with a TTL slightly longer than the session
    lifetime, so a late submission is still reported as expired rather than
    unknown. Redis expiry does the sweeping.
    """

    def __init__(self, client: redis.Redis, key_grace_seconds: int = SESSION_KEY_GRACE_SECONDS):
        self._redis = client
        self._grace = key_grace_seconds

    @staticmethod
    def _key(game_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{game_id}"

    async def add(self, record: SessionRecord) -> None:
        ttl = int((record.expires_at - record.issued_at).total_seconds()) + self._grace
        await self._redis.set(self._key(record.game_id), json.dumps(record.to_dict()), ex=ttl)

    async def pop(self, game_id: str) -> Optional[SessionRecord]:
        raw = await self._redis.getdel(self._key(game_id))
        if raw is None:
            return None
        return SessionRecord.from_dict(json.loads(raw))

    async def sweep(self, now: datetime) -> int:
        return 0

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False


class MongoSessionStore:
    """One document per session, indexed on game_id (unique) and expires_at"""

    def __init__(self, get_db: Callable = Database.get_db):
        self._get_db = get_db

    @property
    def _collection(self):
        return self._get_db()[SESSIONS_COLLECTION]

    async def add(self, record: SessionRecord) -> None:
        await self._collection.insert_one({
            "game_id": record.game_id,
            "seed": record.seed,
            "issued_at": record.issued_at,
            "expires_at": record.expires_at,
        })

    async def pop(self, game_id: str) -> Optional[SessionRecord]:
        doc = await self._collection.find_one_and_delete({"game_id": game_id})
        if doc is None:
            return None
        return SessionRecord.from_dict(doc)

    async def sweep(self, now: datetime) -> int:
        result = await self._collection.delete_many({"expires_at": {"$lt": now}})
        return result.deleted_count

    async def ping(self) -> bool:
        return await Database.check_health()


class SessionManager:
    """
    Issues and consumes game sessions.

    Consumption is a single atomic read-and-delete in every store, so two
    concurrent submissions can never redeem the same session.
    """

    def __init__(
        self,
        store,
        ttl_seconds: int,
        sweep_probability: float = 0.0,
        timeout: float = 3.0,
        now: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.sweep_probability = sweep_probability
        self.timeout = timeout
        self._now = now

    async def issue(self, seed: Optional[int] = None) -> GameTokenResponse:
        if seed is None:
            seed = secrets.randbelow(SEED_RANGE)
        issued_at = self._now()
        record = SessionRecord(
            game_id=uuid.uuid4().hex,
            seed=seed,
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )
        await call_with_retry(self.store.add, record, timeout=self.timeout, label="session issue")
        logger.info(f"Issued game session {record.game_id}")

        if self.sweep_probability > 0 and random.random() < self.sweep_probability:
            await self.sweep()

        return GameTokenResponse(game_id=record.game_id, seed=record.seed)

    async def consume(self, game_id: str) -> Optional[SessionRecord]:
        """Read-and-delete; None when the session does not exist (or was already used)"""
        if not game_id:
            return None
        record = await call_with_retry(self.store.pop, game_id, timeout=self.timeout, label="session consume")
        if record is None:
            logger.info(f"Unknown or reused game session {game_id}")
        return record

    def is_expired(self, record: SessionRecord) -> bool:
        return self._now() > record.expires_at

    async def sweep(self) -> int:
        """Best-effort purge of expired sessions; failures are logged only"""
        try:
            removed = await call_with_retry(
                self.store.sweep,
                self._now(),
                timeout=self.timeout,
                max_retries=STORAGE_READ_RETRIES,
                label="session sweep",
            )
        except StorageUnavailableError:
            return 0
        if removed:
            logger.info(f"Swept {removed} expired game sessions")
        return removed


def create_session_store(settings: Settings):
    backend = settings.session_backend.lower()
    if backend == "memory":
        return MemorySessionStore()
    if backend == "redis":
        client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        return RedisSessionStore(client)
    if backend == "mongo":
        return MongoSessionStore()
    raise ValueError(f"Unknown session backend: {settings.session_backend}")


@lru_cache()
def get_session_manager() -> SessionManager:
    """Get cached session manager"""
    settings = get_settings()
    return SessionManager(
        store=create_session_store(settings),
        ttl_seconds=settings.session_ttl_seconds,
        sweep_probability=settings.session_sweep_probability,
        timeout=settings.storage_timeout_seconds,
    )
