#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Rankings API router - MongoDB based. Handles fetching the top best scores and a user's own best.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# validate_user_id: Helper to validate user ID format.
# get_top_rankings: Endpoint to get the top N best scores.
# get_user_best: Endpoint to get a specific user's best score and position.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# router: FastAPI APIRouter instance.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# fastapi: Framework components.
# logging: Logging.
# re: Regex.
# kanatype.constants: Ranking limits, default username.
# kanatype.models.ranking: Response models.
# kanatype.services.scores: Score service.
# kanatype.utils.retry: Storage errors.

from fastapi import APIRouter, Depends, HTTPException, Path, Query
import logging
import re

from kanatype.constants import (
    DEFAULT_USERNAME,
    RANKING_DEFAULT_LIMIT,
    RANKING_MAX_LIMIT,
    STORAGE_READ_RETRIES,
)
from kanatype.models.ranking import RankingEntry, RankingResponse, UserBestResponse
from kanatype.services.scores import ScoreService, get_score_service
from kanatype.utils.retry import StorageUnavailableError, call_with_retry

logger = logging.getLogger(__name__)
router = APIRouter()


def validate_user_id(user_id: str) -> None:
    if not user_id or len(user_id) > 128:
        raise HTTPException(status_code=400, detail="Invalid user ID length")
    if not re.match(r'^[a-zA-Z0-9_-]+$', user_id):
        raise HTTPException(status_code=400, detail="Invalid user ID format")


@router.get("/top", response_model=RankingResponse)
async def get_top_rankings(
    limit: int = Query(default=RANKING_DEFAULT_LIMIT, ge=1, le=RANKING_MAX_LIMIT),
    scores: ScoreService = Depends(get_score_service),
):
    try:
        docs = await call_with_retry(scores.get_top, limit, max_retries=STORAGE_READ_RETRIES, label="rankings read")
        total = await call_with_retry(scores.count, max_retries=STORAGE_READ_RETRIES, label="rankings count")
    except StorageUnavailableError:
        raise HTTPException(status_code=503, detail="Rankings temporarily unavailable")

    entries = [
        RankingEntry(
            position=position,
            username=doc.get("username") or DEFAULT_USERNAME,
            score=doc.get("score", 0),
            kpm=doc.get("kpm", 0),
            played_at=doc.get("played_at"),
        )
        for position, doc in enumerate(docs, start=1)
    ]
    return RankingResponse(entries=entries, total=total)


@router.get("/user/{user_id}", response_model=UserBestResponse)
async def get_user_best(
    user_id: str = Path(..., min_length=1, max_length=128),
    scores: ScoreService = Depends(get_score_service),
):
    validate_user_id(user_id)

    try:
        best = await call_with_retry(
            scores.get_user_best, user_id, max_retries=STORAGE_READ_RETRIES, label="user best read"
        )
        if not best:
            raise HTTPException(status_code=404, detail="No score recorded")
        position = await call_with_retry(
            scores.get_user_position, best.get("score", 0), max_retries=STORAGE_READ_RETRIES, label="user position"
        )
    except StorageUnavailableError:
        raise HTTPException(status_code=503, detail="Rankings temporarily unavailable")

    return UserBestResponse(
        position=position,
        username=best.get("username") or DEFAULT_USERNAME,
        score=best.get("score", 0),
        kpm=best.get("kpm", 0),
        played_at=best.get("played_at"),
    )
