#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Game API router - Session token issuance and replay-verified score submission.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# create_game_token: Endpoint issuing a one-time {gameId, seed} session.
# submit_score: Endpoint running the replay verifier on a finished session.
# _rejection_response: Maps a rejection to its HTTP status and public message.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# router: FastAPI APIRouter instance.
# PUBLIC_MESSAGES: User-facing message per rejection class.
# REASON_EXPOSED: Rejection classes whose reason code is returned to clients.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# fastapi: Framework components.
# logging: Logging.
# kanatype.models.game: Request/response models.
# kanatype.services: Session manager, replay verifier.
# kanatype.utils.retry: Storage errors.

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
import logging

from kanatype.models.game import GameTokenResponse, SubmitResponse
from kanatype.services.sessions import SessionManager, get_session_manager
from kanatype.services.verifier import (
    ReasonClass,
    ReplayVerifier,
    VerificationResult,
    get_replay_verifier,
)
from kanatype.utils.retry import StorageUnavailableError

logger = logging.getLogger(__name__)
router = APIRouter()

# Integrity and anomaly rejections share one message so thresholds never leak
PUBLIC_MESSAGES = {
    ReasonClass.SESSION: "Session expired. Please start a new game.",
    ReasonClass.INPUT: "Invalid submission.",
    ReasonClass.INTEGRITY: "Score could not be verified.",
    ReasonClass.ANOMALY: "Score could not be verified.",
    ReasonClass.STORAGE: "Service temporarily unavailable. Please try again later.",
}

REASON_EXPOSED = {ReasonClass.SESSION, ReasonClass.INPUT, ReasonClass.STORAGE}


@router.post("/token", response_model=GameTokenResponse)
async def create_game_token(sessions: SessionManager = Depends(get_session_manager)):
    try:
        return await sessions.issue()
    except StorageUnavailableError as e:
        logger.error(f"Failed to issue game session: {e}")
        raise HTTPException(status_code=503, detail=PUBLIC_MESSAGES[ReasonClass.STORAGE])


def _rejection_response(result: VerificationResult) -> JSONResponse:
    cls = result.reason_class
    body = SubmitResponse(
        success=False,
        message=PUBLIC_MESSAGES[cls],
        reason=result.reason.value if cls in REASON_EXPOSED else None,
    )
    return JSONResponse(
        status_code=503 if cls is ReasonClass.STORAGE else 400,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.post("/submit", response_model=SubmitResponse, response_model_exclude_none=True)
async def submit_score(request: Request, verifier: ReplayVerifier = Depends(get_replay_verifier)):
    """
    Body is read as raw JSON: the session must be consumed before the
    payload is validated, so a malformed body still burns its token.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    result = await verifier.verify(payload)
    if not result.accepted:
        return _rejection_response(result)

    return SubmitResponse(
        success=True,
        verified_score=result.verified_score,
        kpm=result.kpm,
        is_new_record=result.is_new_record,
    )
