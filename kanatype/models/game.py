#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Game models - Session token and score submission payloads.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# None

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# GameTokenResponse: Canonical session issuance payload ({gameId, seed}).
# ScoreSubmission: Validated score submission (after the session is consumed).
# SubmitResponse: Result returned to the client.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# pydantic: Data validation.
# typing: Type hints.
# kanatype.models.word: Log entry models.

from pydantic import BaseModel, Field
from typing import List, Optional

from kanatype.models.word import KeyLogEntry, PlayedWordEntry


class GameTokenResponse(BaseModel):
    """Session issuance payload"""
    game_id: str = Field(alias="gameId")
    seed: int

    class Config:
        populate_by_name = True


class ScoreSubmission(BaseModel):
    """Score submission sent by the client when the timer runs out"""
    score: float
    key_log: List[KeyLogEntry] = Field(alias="keyLog")
    played_words: List[PlayedWordEntry] = Field(alias="playedWords")
    duration: Optional[float] = None
    game_id: str = Field(alias="gameId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    username: Optional[str] = None

    class Config:
        populate_by_name = True


class SubmitResponse(BaseModel):
    success: bool
    verified_score: Optional[int] = Field(default=None, alias="verifiedScore")
    kpm: Optional[int] = None
    is_new_record: Optional[bool] = Field(default=None, alias="isNewRecord")
    message: Optional[str] = None
    reason: Optional[str] = None

    class Config:
        populate_by_name = True
