"""Tests unitarios para la clasificación de riesgo."""
from datetime import datetime, timedelta

import pytest

from flare_engine.classifier import RiskClassifier, classify_risk, onset_window_hours, predicted_onset
from flare_engine.schemas import RiskLevel

NOW = datetime(2024, 3, 20, 12, 0)


class TestClassifyRisk:
    """Tests para los umbrales de nivel de riesgo."""

    @pytest.mark.parametrize("probability,expected", [
        (0.0, RiskLevel.LOW),
        (0.29, RiskLevel.LOW),
        (0.3, RiskLevel.MODERATE),
        (0.59, RiskLevel.MODERATE),
        (0.6, RiskLevel.HIGH),
        (0.79, RiskLevel.HIGH),
        (0.8, RiskLevel.VERY_HIGH),
        (1.0, RiskLevel.VERY_HIGH),
    ])
    def test_thresholds(self, probability, expected):
        """Test que los umbrales son inclusivos."""
        assert classify_risk(probability) == expected

    def test_monotonic(self):
        """Test que el nivel nunca baja al subir la probabilidad."""
        levels = [classify_risk(p / 100) for p in range(101)]
        ranks = [level.rank for level in levels]
        assert ranks == sorted(ranks)


class TestPredictedOnset:
    """Tests para la estimación de inicio del brote."""

    def test_buckets(self):
        assert onset_window_hours(0.75) == 24
        assert onset_window_hours(0.6) == 72
        assert onset_window_hours(0.4) == 168
        assert onset_window_hours(0.2) is None

    def test_bucket_bounds_are_exclusive(self):
        """Test que los límites de los intervalos son estrictos."""
        assert onset_window_hours(0.7) == 72
        assert onset_window_hours(0.5) == 168
        assert onset_window_hours(0.3) is None

    def test_predicted_onset_date(self):
        assert predicted_onset(0.9, NOW) == NOW + timedelta(hours=24)
        assert predicted_onset(0.1, NOW) is None

    def test_classifier_thresholds(self):
        assert RiskClassifier.thresholds() == {"moderate": 0.3, "high": 0.6, "very_high": 0.8}
        assert RiskClassifier().classify(0.65) == RiskLevel.HIGH
