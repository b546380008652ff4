#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Words API router - Serves the official word list to clients.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# get_words: Endpoint returning the official words and loader errors.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# router: FastAPI APIRouter instance.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# fastapi: Framework components.
# kanatype.models.word: Response models.
# kanatype.utils.words: Official corpus.

from fastapi import APIRouter, Depends

from kanatype.models.word import WordListResponse, WordOut
from kanatype.utils.words import ParsedWords, get_official_words

router = APIRouter()


@router.get("", response_model=WordListResponse)
async def get_words(parsed: ParsedWords = Depends(get_official_words)):
    # Raw list; clients drop long-vowel words themselves when building the pool
    words = [WordOut(display=w.display, phonetic=w.phonetic) for w in parsed.words]
    return WordListResponse(words=words, errors=parsed.errors, count=len(words))
