"""
Risk classification: probability -> RiskLevel and a coarse onset bucket.
"""
from datetime import datetime, timedelta
from typing import Dict, Optional

from .constants import (
    HIGH_RISK_THRESHOLD,
    MODERATE_RISK_THRESHOLD,
    ONSET_BUCKETS,
    VERY_HIGH_RISK_THRESHOLD,
)
from .schemas import RiskLevel

# Lower bound (inclusive) of each level, highest first
RISK_THRESHOLDS = (
    (VERY_HIGH_RISK_THRESHOLD, RiskLevel.VERY_HIGH),
    (HIGH_RISK_THRESHOLD, RiskLevel.HIGH),
    (MODERATE_RISK_THRESHOLD, RiskLevel.MODERATE),
)


def classify_risk(probability: float) -> RiskLevel:
    """
    Map a flare probability to a risk level.

    >= 0.8 very high, >= 0.6 high, >= 0.3 moderate, otherwise low.
    """
    for threshold, level in RISK_THRESHOLDS:
        if probability >= threshold:
            return level
    return RiskLevel.LOW


def onset_window_hours(probability: float) -> Optional[int]:
    """Hours until the expected onset bucket, None below the lowest bucket."""
    for threshold, hours in ONSET_BUCKETS:
        if probability > threshold:
            return hours
    return None


def predicted_onset(probability: float, now: datetime) -> Optional[datetime]:
    hours = onset_window_hours(probability)
    if hours is None:
        return None
    return now + timedelta(hours=hours)


class RiskClassifier:
    """Stateless wrapper so the classifier can be injected into the predictor."""

    def classify(self, probability: float) -> RiskLevel:
        return classify_risk(probability)

    def onset(self, probability: float, now: datetime) -> Optional[datetime]:
        return predicted_onset(probability, now)

    @staticmethod
    def thresholds() -> Dict[str, float]:
        return {
            RiskLevel.MODERATE.value: MODERATE_RISK_THRESHOLD,
            RiskLevel.HIGH.value: HIGH_RISK_THRESHOLD,
            RiskLevel.VERY_HIGH.value: VERY_HIGH_RISK_THRESHOLD,
        }
