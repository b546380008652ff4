#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Word models - Corpus words and the client-reported session logs.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# None

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# Word: Immutable corpus entry (display form + kana spelling).
# KeyLogEntry: One input event with its offset from session start.
# PlayedWordEntry: A word the client says it showed, and when.
# WordOut: One word in an API response.
# WordListResponse: Official word list payload.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# pydantic: Data validation.
# dataclasses: Data structures.
# typing: Type hints.

from pydantic import BaseModel, Field
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Word:
    """Corpus entry"""
    display: str
    phonetic: str


class KeyLogEntry(BaseModel):
    """Single key event, time in ms since session start"""
    key: str
    time_ms: float = Field(alias="timeMs")

    class Config:
        populate_by_name = True


class PlayedWordEntry(BaseModel):
    """Word shown by the client, start time in seconds since session start"""
    display: str
    phonetic: str
    start_time_sec: float = Field(alias="startTimeSec")

    class Config:
        populate_by_name = True


class WordOut(BaseModel):
    display: str
    phonetic: str


class WordListResponse(BaseModel):
    words: List[WordOut]
    errors: List[str]
    count: int
