#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Configuration - Loads application settings from environment variables.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# Settings.cors_origins_list: Returns list of allowed CORS origins.
# get_settings: Returns cached Settings instance.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# Settings: Configuration model matching environment variables.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# pydantic_settings: Settings management.
# functools.lru_cache: Caching.
# typing: Type hints.
# kanatype.constants: Defaults for tunable thresholds.

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

from kanatype.constants import (
    SESSION_TTL_SECONDS,
    SESSION_SWEEP_PROBABILITY,
    STORAGE_TIMEOUT_SECONDS,
    MAX_SESSION_DURATION_SECONDS,
    TIME_BUDGET_GRACE_SECONDS,
    MAX_KPM_THRESHOLD,
    MIN_KPM_DURATION_MINUTES,
    REGULARITY_MIN_SAMPLES,
    MIN_INTERVAL_VARIANCE,
    MAX_BURST_RATIO,
    RANKED_USER_PREFIX,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Server
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "kanatype"

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Sessions
    session_backend: str = "mongo"  # "mongo", "redis" or "memory"
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    session_sweep_probability: float = SESSION_SWEEP_PROBABILITY
    storage_timeout_seconds: float = STORAGE_TIMEOUT_SECONDS

    # Word list
    words_csv_path: str = ""  # Empty = bundled kanatype/data/words.csv

    # Anti-Cheat (heuristics, tune without touching the verifier)
    max_session_duration_seconds: int = MAX_SESSION_DURATION_SECONDS
    time_budget_grace_seconds: int = TIME_BUDGET_GRACE_SECONDS
    max_kpm_threshold: int = MAX_KPM_THRESHOLD
    min_kpm_duration_minutes: float = MIN_KPM_DURATION_MINUTES
    regularity_min_samples: int = REGULARITY_MIN_SAMPLES
    min_interval_variance: float = MIN_INTERVAL_VARIANCE
    max_burst_ratio: float = MAX_BURST_RATIO

    # Rankings
    ranked_user_prefix: str = RANKED_USER_PREFIX

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
