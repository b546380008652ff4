#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Ranking models - Response schemas for the best-score ranking.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# RankingEntry: One row of the ranking.
# RankingResponse: Top-N ranking payload.
# UserBestResponse: One user's stored best and position.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# pydantic: Data validation.
# typing: Type hints.
# datetime: Timestamps.

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class RankingEntry(BaseModel):
    position: int
    username: str
    score: int
    kpm: int = 0
    played_at: Optional[datetime] = Field(default=None, alias="playedAt")

    class Config:
        populate_by_name = True


class RankingResponse(BaseModel):
    entries: List[RankingEntry]
    total: int


class UserBestResponse(BaseModel):
    position: int
    username: str
    score: int
    kpm: int = 0
    played_at: Optional[datetime] = Field(default=None, alias="playedAt")

    class Config:
        populate_by_name = True
