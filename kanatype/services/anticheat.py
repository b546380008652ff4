#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Anti-cheat service - Statistical checks on a replayed session (speed, duration, input regularity).

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# AntiCheatService.check_duration: Rejects sessions longer than the absolute ceiling.
# AntiCheatService.calculate_kpm: Keys per minute from correct keys and duration.
# AntiCheatService.check_speed: Rejects physically impossible typing speed.
# AntiCheatService.check_regularity: Runs interval variance and burst checks on the key log.
# AntiCheatService._check_variance: Internal check for superhumanly consistent typing (bot detection).
# AntiCheatService._check_bursts: Internal check for simultaneous key floods.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# AnomalyReason: Enum of statistical rejection codes.
# ValidationResult: Dataclass for the result of a validation check.
# AntiCheatService: Service class, thresholds read from settings.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# statistics: Math stats.
# typing: Type hints.
# dataclasses: Data structures.
# enum: Enumerations.
# kanatype.config: App settings.

import statistics
from typing import List, Optional, Sequence
from dataclasses import dataclass
from enum import Enum

from kanatype.config import Settings, get_settings


class AnomalyReason(str, Enum):
    DURATION_EXCEEDED = "duration_exceeded"
    IMPOSSIBLE_SPEED = "impossible_speed"
    TOO_CONSISTENT = "too_consistent"
    IMPOSSIBLE_BURSTS = "impossible_bursts"


@dataclass
class ValidationResult:
    """Result of anti-cheat validation"""
    valid: bool
    reason: Optional[AnomalyReason] = None
    detail: str = ""  # Logged server-side, never sent to clients


class AntiCheatService:
    """
    Heuristic checks run after a session has been replayed.

    These are signals, not proofs; every threshold comes from settings so it
    can be recalibrated without touching the checks.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def check_duration(self, duration_seconds: float) -> ValidationResult:
        limit = self.settings.max_session_duration_seconds
        if duration_seconds > limit:
            return ValidationResult(
                valid=False,
                reason=AnomalyReason.DURATION_EXCEEDED,
                detail=f"Duration {duration_seconds:.1f}s exceeds {limit}s"
            )
        return ValidationResult(valid=True)

    def calculate_kpm(self, correct_keys: int, duration_seconds: float) -> float:
        """Very short sessions report 0 rather than an inflated rate"""
        minutes = duration_seconds / 60
        if minutes <= self.settings.min_kpm_duration_minutes:
            return 0.0
        return correct_keys / minutes

    def check_speed(self, kpm: float) -> ValidationResult:
        if kpm > self.settings.max_kpm_threshold:
            return ValidationResult(
                valid=False,
                reason=AnomalyReason.IMPOSSIBLE_SPEED,
                detail=f"KPM {kpm:.0f} exceeds {self.settings.max_kpm_threshold}"
            )
        return ValidationResult(valid=True)

    def check_regularity(self, key_times_ms: Sequence[float]) -> ValidationResult:
        """Only applies once the log is longer than the minimum sample size"""
        if len(key_times_ms) <= self.settings.regularity_min_samples:
            return ValidationResult(valid=True)

        intervals = [
            key_times_ms[i] - key_times_ms[i - 1]
            for i in range(1, len(key_times_ms))
        ]

        variance_result = self._check_variance(intervals)
        if not variance_result.valid:
            return variance_result

        return self._check_bursts(intervals, len(key_times_ms))

    def _check_variance(self, intervals: List[float]) -> ValidationResult:
        """Check if inter-key variance is suspiciously low (bot-like)"""
        variance = statistics.pvariance(intervals)
        if variance < self.settings.min_interval_variance:
            return ValidationResult(
                valid=False,
                reason=AnomalyReason.TOO_CONSISTENT,
                detail=f"Interval variance too low: {variance:.3f}"
            )
        return ValidationResult(valid=True)

    def _check_bursts(self, intervals: List[float], key_count: int) -> ValidationResult:
        """Check how many keys arrived at exactly the same millisecond"""
        bursts = sum(1 for v in intervals if v == 0)
        if bursts > key_count * self.settings.max_burst_ratio:
            return ValidationResult(
                valid=False,
                reason=AnomalyReason.IMPOSSIBLE_BURSTS,
                detail=f"{bursts} simultaneous keys out of {key_count}"
            )
        return ValidationResult(valid=True)
