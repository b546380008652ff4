#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Constants - Scoring rules, scheduler bands and anti-cheat defaults shared by engine and verifier.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# None

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# DEFAULT_TIME: Starting time of a session in seconds.
# MAX_TIME: Ceiling for remaining time after perfect-word bonuses.
# BASE_SCORE_PER_CHAR: Score per phonetic character of a completed word.
# COMBO_MULTIPLIER: Score multiplier added per combo step.
# PERFECT_SCORE_BONUS: Flat bonus for a word typed without errors.
# BAND_THRESHOLDS_SECONDS / BAND_LENGTHS: Difficulty banding of the word scheduler.
# NO_DATA_DISPLAY / NO_DATA_PHONETIC: Sentinel word when the pool is empty.
# SMALL_CHARACTERS: Small kana fused with the preceding character by the tokenizer.
# STORAGE_READ_RETRIES: Attempts for idempotent storage reads.
# ... (anti-cheat defaults, session and ranking constants)

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# None


# Scoring (must never diverge between PlayEngine and ReplayVerifier)
DEFAULT_TIME = 60  # Session length before bonuses
MAX_TIME = 90  # Remaining time never exceeds this
BASE_SCORE_PER_CHAR = 5
COMBO_MULTIPLIER = 0.05
PERFECT_SCORE_BONUS = 20
ERROR_TIME_PENALTY = 1  # Seconds lost per rejected key

# Word Scheduler
BAND_THRESHOLDS_SECONDS = (20, 40, 60)
BAND_LENGTHS = (
    (1, 3),   # elapsed < 20s
    (3, 5),   # elapsed < 40s
    (4, 6),   # elapsed < 60s
    (5, 20),  # afterwards
)
NO_DATA_DISPLAY = "NO DATA"
NO_DATA_PHONETIC = "nodata"
LONG_VOWEL_MARK = "ー"  # Words containing it stay out of the active pool

# Tokenizer
SMALL_CHARACTERS = frozenset("ゃゅょぁぃぅぇぉゎ")
GEMINATE_MARKER = "っ"
NASAL_MARKER = "ん"
AMBIGUOUS_NASAL_FOLLOWERS = "aiueoyn"

# PRNG
PRNG_INCREMENT = 0x6D2B79F5
UINT32_MASK = 0xFFFFFFFF
UINT32_RANGE = 4294967296
SEED_RANGE = 1_000_000

# Sessions
SESSION_TTL_SECONDS = 600  # 10 minutes
SESSION_SWEEP_PROBABILITY = 0.1
SESSION_KEY_GRACE_SECONDS = 60  # Redis keeps expired sessions this long so "expired" stays reportable
STORAGE_TIMEOUT_SECONDS = 3.0
STORAGE_READ_RETRIES = 3  # Idempotent reads only; writes and consumes get one attempt

# Anti-Cheat
MAX_SESSION_DURATION_SECONDS = 600  # Absolute ceiling regardless of bonuses
TIME_BUDGET_GRACE_SECONDS = 2
MAX_KPM_THRESHOLD = 1200
MIN_KPM_DURATION_MINUTES = 0.05  # Shorter sessions report kpm 0
REGULARITY_MIN_SAMPLES = 30
MIN_INTERVAL_VARIANCE = 2.0  # ms^2
MAX_BURST_RATIO = 0.8

# Rankings
RANKED_USER_PREFIX = "usr_"
DEFAULT_USERNAME = "guest"
RANKING_DEFAULT_LIMIT = 100
RANKING_MAX_LIMIT = 100
