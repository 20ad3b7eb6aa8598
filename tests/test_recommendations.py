"""Tests unitarios para el motor de recomendaciones."""
import pytest

from flare_engine.recommendations import PRIORITY_BY_RISK, RecommendationEngine
from flare_engine.schemas import ActionPriority, RiskLevel


@pytest.fixture
def engine():
    return RecommendationEngine()


class TestBaseline:
    """Tests para la acción base por nivel de riesgo."""

    @pytest.mark.parametrize("risk_level,priority", [
        (RiskLevel.VERY_HIGH, ActionPriority.CRITICAL),
        (RiskLevel.HIGH, ActionPriority.HIGH),
        (RiskLevel.MODERATE, ActionPriority.MEDIUM),
        (RiskLevel.LOW, ActionPriority.LOW),
    ])
    def test_one_action_per_level(self, engine, risk_level, priority):
        """Test que sin contribuciones hay exactamente una acción."""
        actions = engine.recommend(risk_level)
        assert len(actions) == 1
        assert actions[0].priority == priority
        assert actions[0].title
        assert actions[0].rationale
        assert actions[0].implementation


class TestFactorActions:
    """Tests para las acciones por factor contribuyente."""

    def test_factor_actions_ordered_by_sub_score(self, engine):
        """Test que las acciones de factor se ordenan por sub-puntuación."""
        contributions = {"nutrition": 0.35, "symptoms": 0.7, "lifestyle": 0.1, "medication": 0.5}
        actions = engine.recommend(RiskLevel.HIGH, contributions)

        titles = [a.title for a in actions]
        assert len(actions) == 4
        assert titles[0] == engine.baseline(RiskLevel.HIGH).title
        assert titles[1] == "Track symptom changes"
        assert titles[2] == "Review your medication"
        assert titles[3] == "Adjust your diet"

    def test_baseline_has_highest_priority(self, engine):
        """Test que ninguna acción supera la prioridad del nivel de riesgo."""
        contributions = {"nutrition": 1.0, "symptoms": 1.0, "lifestyle": 1.0, "medication": 1.0}
        for risk_level in RiskLevel:
            actions = engine.recommend(risk_level, contributions)
            top = max(action.priority.rank for action in actions)
            assert actions[0].priority == PRIORITY_BY_RISK[risk_level]
            assert top == PRIORITY_BY_RISK[risk_level].rank

    def test_below_threshold_is_ignored(self, engine):
        actions = engine.recommend(RiskLevel.LOW, {"nutrition": 0.29, "symptoms": 0.0})
        assert len(actions) == 1

    def test_threshold_is_inclusive(self, engine):
        actions = engine.recommend(RiskLevel.MODERATE, {"lifestyle": 0.3})
        assert len(actions) == 2
        assert actions[1].priority == ActionPriority.MEDIUM
