#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Score service - Personal-best persistence and ranking queries (MongoDB).

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# ScoreService.is_rankable: Whether a user id may appear on the ranking.
# ScoreService.record_best: Conditional upsert that only ever raises a user's best.
# ScoreService.get_top: Top-N best scores ordered by score.
# ScoreService.count: Number of ranked users.
# ScoreService.get_user_best: Stored best for one user.
# ScoreService.get_user_position: 1-based rank for a score.
# get_score_service: Returns cached ScoreService instance.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# SCORES_COLLECTION: MongoDB collection name.
# ScoreService: Service class.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# logging: Logging.
# datetime: Timestamps.
# functools.lru_cache: Caching.
# typing: Type hints.
# pymongo.errors: Duplicate key detection.
# kanatype.config: App settings.
# kanatype.constants: Username default.
# kanatype.database.Database: DB connection.
# kanatype.utils.retry: Bounded storage calls.

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, List, Optional

from pymongo.errors import DuplicateKeyError

from kanatype.config import Settings, get_settings
from kanatype.constants import DEFAULT_USERNAME
from kanatype.database import Database
from kanatype.utils.retry import call_with_retry

logger = logging.getLogger(__name__)

SCORES_COLLECTION = "scores"


class ScoreService:
    """One document per user holding their best verified score"""

    def __init__(self, settings: Optional[Settings] = None, get_db: Callable = Database.get_db):
        self.settings = settings or get_settings()
        self._get_db = get_db

    @property
    def _collection(self):
        return self._get_db()[SCORES_COLLECTION]

    def is_rankable(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id.startswith(self.settings.ranked_user_prefix)

    async def record_best(self, user_id: str, username: Optional[str], score: int, kpm: int) -> bool:
        """
        Insert or raise the user's best score in one conditional write.

        The filter only matches a stored score strictly lower than `score`.
        When an equal or higher best exists the upsert collides with the
        unique user_id index, which means "not a new record".

        Returns:
            True if the stored best changed
        """
        name = (username or "").strip() or DEFAULT_USERNAME

        async def upsert() -> bool:
            try:
                await self._collection.update_one(
                    {"user_id": user_id, "score": {"$lt": score}},
                    {"$set": {
                        "user_id": user_id,
                        "username": name,
                        "score": score,
                        "kpm": kpm,
                        "played_at": datetime.now(timezone.utc),
                    }},
                    upsert=True,
                )
            except DuplicateKeyError:
                return False
            return True

        changed = await call_with_retry(
            upsert,
            timeout=self.settings.storage_timeout_seconds,
            label="best score write",
        )
        if changed:
            logger.info(f"New best for {user_id}: {score}")
        return changed

    async def get_top(self, limit: int) -> List[dict]:
        cursor = self._collection.find(
            {}, {"_id": 0, "username": 1, "score": 1, "kpm": 1, "played_at": 1}
        ).sort("score", -1).limit(limit)
        return [doc async for doc in cursor]

    async def count(self) -> int:
        return await self._collection.count_documents({})

    async def get_user_best(self, user_id: str) -> Optional[dict]:
        return await self._collection.find_one({"user_id": user_id}, {"_id": 0})

    async def get_user_position(self, score: int) -> int:
        higher = await self._collection.count_documents({"score": {"$gt": score}})
        return higher + 1


@lru_cache()
def get_score_service() -> ScoreService:
    """Get cached score service"""
    return ScoreService()
