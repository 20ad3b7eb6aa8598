"""Tests unitarios para el pipeline completo de predicción."""
from datetime import datetime, timedelta

import pytest

from flare_engine.predictor import FlarePredictor
from flare_engine.schemas import ActionPriority, RiskLevel
from flare_engine.scoring import RiskScorer, ScoreResult

NOW = datetime(2024, 3, 20, 12, 0)


class HighRiskModel:
    """Modelo falso que siempre predice riesgo muy alto."""
    is_model_ready = True

    def score(self, features):
        return ScoreResult(
            probability=0.85,
            confidence=0.9,
            contributions={"nutrition": 0.2, "symptoms": 0.9, "lifestyle": 0.1, "medication": 0.0},
            model_source="learned_model",
        )


@pytest.fixture
def predictor():
    return FlarePredictor()


class TestFlarePredictor:
    """Tests para FlarePredictor.predict."""

    def test_empty_journal(self, predictor):
        """Test que un diario vacío da riesgo bajo."""
        output = predictor.predict([], now=NOW)
        assert output.risk_level == RiskLevel.LOW
        assert output.confidence_score == 0.7
        assert output.flare_probability == pytest.approx(0.09)
        assert output.predicted_onset is None
        assert output.model_source == "rule_based"
        assert output.recommendations[0].priority == ActionPriority.LOW

    def test_next_prediction_date(self, predictor):
        output = predictor.predict([], now=NOW)
        assert output.next_prediction_date == NOW + timedelta(hours=24)

    def test_severe_journal(self, predictor):
        """Test con síntomas graves y dieta de riesgo."""
        journal = [
            {
                "entry_date": f"2024-03-{day}",
                "meals": [
                    {"description": "spicy fried chicken", "fiber": 2, "protein": 30, "fat": 25},
                    {"description": "processed meat with garlic", "fiber": 1, "protein": 20, "fat": 20},
                ],
                "symptoms": [
                    {"type": "diarrhea", "severity": 8},
                    {"type": "abdominal_pain", "severity": 8},
                    {"type": "blood_in_stool"},
                    {"type": "urgency", "severity": 9},
                    {"type": "stress", "severity": 9},
                ],
                "hydration": 800,
            }
            for day in (18, 19, 20)
        ]
        output = predictor.predict(journal, now=NOW)

        assert output.contributing_factors["symptoms"] == 1.0
        assert output.contributing_factors["nutrition"] == 1.0
        assert output.risk_level in (RiskLevel.HIGH, RiskLevel.VERY_HIGH)
        assert output.predicted_onset is not None
        assert output.recommendations[0].priority.rank == max(a.priority.rank for a in output.recommendations)
        assert len(output.recommendations) > 1

    def test_contributing_factors_keys(self, predictor):
        output = predictor.predict([{"entry_date": "2024-03-20"}], now=NOW)
        assert set(output.contributing_factors) == {"nutrition", "symptoms", "lifestyle", "medication"}

    def test_learned_model_output(self):
        """Test que el pipeline respeta la fuente del modelo aprendido."""
        predictor = FlarePredictor(scorer=RiskScorer(model_scorer=HighRiskModel()))
        output = predictor.predict([], now=NOW)
        assert output.model_source == "learned_model"
        assert output.risk_level == RiskLevel.VERY_HIGH
        assert output.predicted_onset == NOW + timedelta(hours=24)
        assert output.recommendations[0].priority == ActionPriority.CRITICAL

    def test_idempotent(self, predictor):
        """Test que la misma entrada produce la misma salida."""
        journal = [{"entry_date": "2024-03-20", "symptoms": [{"type": "diarrhea", "severity": 6}]}]
        assert predictor.predict(journal, now=NOW) == predictor.predict(journal, now=NOW)
