"""Kanatype Models Package"""

from kanatype.models.word import Word, KeyLogEntry, PlayedWordEntry, WordOut, WordListResponse
from kanatype.models.game import GameTokenResponse, ScoreSubmission, SubmitResponse
from kanatype.models.ranking import RankingEntry, RankingResponse, UserBestResponse

__all__ = [
    "Word", "KeyLogEntry", "PlayedWordEntry", "WordOut", "WordListResponse",
    "GameTokenResponse", "ScoreSubmission", "SubmitResponse",
    "RankingEntry", "RankingResponse", "UserBestResponse",
]
