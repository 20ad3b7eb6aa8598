"""Tests unitarios para el motor de reglas y el orquestador de scoring."""
from datetime import datetime

import pytest
from pydantic import ValidationError

from flare_engine.classifier import classify_risk
from flare_engine.config import Settings
from flare_engine.constants import RULE_WEIGHTS
from flare_engine.features import FeatureExtractor
from flare_engine.schemas import (
    EnvironmentalFeatures,
    FlarePredictionInput,
    HistoricalFeatures,
    LifestyleFeatures,
    MedicationFeatures,
    NutritionFeatures,
    RiskLevel,
    SymptomFeatures,
)
from flare_engine.scoring import (
    RiskScorer,
    RuleBasedScorer,
    ScoreFailure,
    ScoreResult,
    clamp,
    lifestyle_risk,
    medication_risk,
    nutrition_risk,
    symptom_risk,
    validate_weights,
)

NOW = datetime(2024, 3, 20, 12, 0)


def make_features(**groups):
    """Features con todos los grupos en valores sin riesgo salvo los indicados."""
    values = {
        "nutrition": NutritionFeatures(fiber_intake=20.0, hydration_level=2000.0),
        "symptoms": SymptomFeatures(),
        "lifestyle": LifestyleFeatures(),
        "medication": MedicationFeatures(),
        "environmental": EnvironmentalFeatures(season="spring"),
        "historical": HistoricalFeatures(),
    }
    values.update(groups)
    return FlarePredictionInput(**values)


class RaisingModel:
    """Modelo falso que siempre falla."""
    is_model_ready = True

    def score(self, features):
        raise RuntimeError("boom")


class FailingModel:
    is_model_ready = True

    def score(self, features):
        return ScoreFailure(reason="not enough data")


class FixedModel:
    def __init__(self, ready=True, contributions=None):
        self.is_model_ready = ready
        self.calls = 0
        self.contributions = contributions or {"nutrition": 0.1, "symptoms": 0.9, "lifestyle": 0.2, "medication": 0.0}

    def score(self, features):
        self.calls += 1
        return ScoreResult(
            probability=0.9,
            confidence=0.95,
            contributions=self.contributions,
            model_source="learned_model",
        )


class OddKeysModel(FixedModel):
    """Modelo falso con claves de contribución desconocidas."""

    def __init__(self):
        super().__init__(contributions={"x": 1.0})


class NanModel:
    is_model_ready = True

    def score(self, features):
        return ScoreResult(
            probability=float("nan"),
            confidence=0.9,
            contributions={"nutrition": 0.0, "symptoms": 0.0, "lifestyle": 0.0, "medication": 0.0},
            model_source="learned_model",
        )


class TestWeights:
    """Tests para los pesos del motor de reglas."""

    def test_default_weights_sum_to_one(self):
        assert sum(RULE_WEIGHTS.values()) == pytest.approx(1.0)
        assert RULE_WEIGHTS == {"nutrition": 0.30, "symptoms": 0.40, "lifestyle": 0.20, "medication": 0.10}

    def test_invalid_sum_rejected(self):
        """Test que pesos que no suman 1.0 se rechazan."""
        with pytest.raises(ValueError):
            validate_weights({"nutrition": 0.5, "symptoms": 0.4, "lifestyle": 0.2, "medication": 0.1})

    def test_missing_key_rejected(self):
        with pytest.raises(ValueError):
            validate_weights({"nutrition": 0.6, "symptoms": 0.4})

    def test_settings_reject_invalid_weights(self):
        """Test que la configuración rechaza pesos inválidos."""
        with pytest.raises(ValidationError):
            Settings(nutrition_weight=0.5)

    def test_settings_accept_rebalanced_weights(self):
        settings = Settings(nutrition_weight=0.25, symptom_weight=0.45)
        assert settings.rule_weights["symptoms"] == 0.45
        RuleBasedScorer(weights=settings.rule_weights)


class TestSubScores:
    """Tests para las sub-puntuaciones de cada grupo."""

    def test_nutrition_rules(self):
        assert nutrition_risk(NutritionFeatures(fiber_intake=20.0, hydration_level=2000.0)) == 0.0
        assert nutrition_risk(NutritionFeatures(fiber_intake=5.0, hydration_level=2000.0)) == pytest.approx(0.2)
        assert nutrition_risk(NutritionFeatures(fiber_intake=55.0, hydration_level=2000.0)) == pytest.approx(0.2)
        assert nutrition_risk(
            NutritionFeatures(fiber_intake=20.0, hydration_level=2000.0, trigger_food_count=2)
        ) == pytest.approx(0.2)
        assert nutrition_risk(
            NutritionFeatures(fiber_intake=20.0, hydration_level=2000.0, inflammatory_food_count=2)
        ) == pytest.approx(0.1)
        assert nutrition_risk(
            NutritionFeatures(fiber_intake=20.0, hydration_level=2000.0, fodmap_score=1.0)
        ) == pytest.approx(0.15)
        assert nutrition_risk(NutritionFeatures(fiber_intake=20.0, hydration_level=1000.0)) == pytest.approx(0.1)

    def test_nutrition_clamped(self):
        """Test que la sub-puntuación no supera 1.0."""
        assert nutrition_risk(NutritionFeatures(trigger_food_count=20)) == 1.0

    def test_symptom_rules(self):
        assert symptom_risk(SymptomFeatures(symptom_severity=8.0)) == pytest.approx(0.4)
        assert symptom_risk(SymptomFeatures(symptom_severity=6.0)) == pytest.approx(0.2)
        # Umbrales estrictos
        assert symptom_risk(SymptomFeatures(symptom_severity=5.0)) == 0.0
        assert symptom_risk(SymptomFeatures(blood_in_stool=True)) == pytest.approx(0.3)
        assert symptom_risk(SymptomFeatures(urgency=8.0)) == pytest.approx(0.2)
        assert symptom_risk(SymptomFeatures(abdominal_pain=7.0)) == pytest.approx(0.15)

    def test_symptom_clamped(self):
        symptoms = SymptomFeatures(symptom_severity=30.0, blood_in_stool=True, urgency=10.0, abdominal_pain=10.0)
        assert symptom_risk(symptoms) == 1.0

    def test_lifestyle_rules(self):
        assert lifestyle_risk(LifestyleFeatures()) == 0.0
        assert lifestyle_risk(LifestyleFeatures(stress_level=8.0)) == pytest.approx(0.3)
        assert lifestyle_risk(LifestyleFeatures(sleep_quality=4.0)) == pytest.approx(0.2)
        assert lifestyle_risk(LifestyleFeatures(sleep_duration=5.0)) == pytest.approx(0.15)
        assert lifestyle_risk(LifestyleFeatures(alcohol_consumption=3.0)) == pytest.approx(0.1)

    def test_medication_rules(self):
        assert medication_risk(MedicationFeatures()) == 0.0
        assert medication_risk(MedicationFeatures(medication_adherence=0.5)) == pytest.approx(0.4)
        assert medication_risk(MedicationFeatures(recent_medication_change=True)) == pytest.approx(0.2)
        assert medication_risk(MedicationFeatures(side_effects={"nausea": 1.0, "rash": 1.0})) == pytest.approx(0.2)


class TestRuleBasedScorer:
    """Tests para el motor de reglas completo."""

    @pytest.fixture
    def scorer(self):
        return RuleBasedScorer()

    def test_weighted_sum(self, scorer):
        """Test que la probabilidad es la suma ponderada de las sub-puntuaciones."""
        features = make_features(
            symptoms=SymptomFeatures(symptom_severity=8.0),
            lifestyle=LifestyleFeatures(stress_level=8.0),
        )
        result = scorer.score(features)
        assert result.probability == pytest.approx(0.4 * 0.4 + 0.2 * 0.3)
        assert result.contributions["symptoms"] == pytest.approx(0.4)
        assert result.contributions["lifestyle"] == pytest.approx(0.3)

    def test_contribution_keys(self, scorer):
        result = scorer.score(make_features())
        assert set(result.contributions) == {"nutrition", "symptoms", "lifestyle", "medication"}

    def test_bounds(self, scorer):
        """Test que probabilidad y confianza están en [0, 1]."""
        worst = make_features(
            nutrition=NutritionFeatures(trigger_food_count=50, fodmap_score=1.0),
            symptoms=SymptomFeatures(symptom_severity=30.0, blood_in_stool=True, urgency=10.0, abdominal_pain=10.0),
            lifestyle=LifestyleFeatures(stress_level=10.0, sleep_quality=0.0, sleep_duration=2.0, alcohol_consumption=8.0),
            medication=MedicationFeatures(medication_adherence=0.0, recent_medication_change=True,
                                          side_effects={"a": 10.0}),
        )
        for features in (make_features(), worst):
            result = scorer.score(features)
            assert 0.0 <= result.probability <= 1.0
            assert 0.0 <= result.confidence <= 1.0
        # Estilo de vida satura en 0.75: 0.30 + 0.40 + 0.20 * 0.75 + 0.10
        assert scorer.score(worst).probability == pytest.approx(0.95)

    def test_idempotent(self, scorer):
        """Test que la misma entrada produce el mismo resultado."""
        features = make_features(symptoms=SymptomFeatures(symptom_severity=6.0, blood_in_stool=True))
        assert scorer.score(features) == scorer.score(features)

    def test_confidence_is_fixed(self, scorer):
        assert scorer.score(make_features()).confidence == 0.7
        assert scorer.score(make_features()).model_source == "rule_based"


class TestRiskScorer:
    """Tests para el orquestador con modelo aprendido y fallback."""

    def test_rules_without_model(self):
        result = RiskScorer().score(make_features())
        assert result.model_source == "rule_based"
        assert result.confidence == 0.7

    def test_uses_model_when_ready(self):
        model = FixedModel()
        result = RiskScorer(model_scorer=model).score(make_features())
        assert result.model_source == "learned_model"
        assert result.probability == pytest.approx(0.9)
        assert model.calls == 1

    def test_model_not_ready_is_not_called(self):
        """Test que un modelo no cargado no se consulta."""
        model = FixedModel(ready=False)
        scorer = RiskScorer(model_scorer=model)
        result = scorer.score(make_features())
        assert scorer.is_model_ready is False
        assert model.calls == 0
        assert result.model_source == "rule_based"

    def test_fallback_on_exception(self):
        """Test que una excepción del modelo cae al motor de reglas con confianza 0.7."""
        result = RiskScorer(model_scorer=RaisingModel()).score(make_features())
        assert result.model_source == "rule_based"
        assert result.confidence == 0.7

    def test_fallback_on_failure(self):
        result = RiskScorer(model_scorer=FailingModel()).score(make_features())
        assert result.model_source == "rule_based"
        assert result.confidence == 0.7

    def test_fallback_on_unexpected_contribution_keys(self):
        """Test que claves de contribución distintas de los cuatro grupos caen a reglas."""
        result = RiskScorer(model_scorer=OddKeysModel()).score(make_features())
        assert result.model_source == "rule_based"
        assert set(result.contributions) == {"nutrition", "symptoms", "lifestyle", "medication"}

    def test_fallback_on_nan_probability(self):
        """Test que una probabilidad NaN del modelo no se reporta como riesgo muy alto."""
        result = RiskScorer(model_scorer=NanModel()).score(make_features())
        assert result.model_source == "rule_based"
        assert result.confidence == 0.7
        assert classify_risk(result.probability) == RiskLevel.LOW

    def test_fallback_on_infinite_contribution(self):
        model = FixedModel(contributions={"nutrition": float("inf"), "symptoms": 0.9, "lifestyle": 0.2, "medication": 0.0})
        result = RiskScorer(model_scorer=model).score(make_features())
        assert result.model_source == "rule_based"

    def test_score_result_is_clamped(self):
        result = ScoreResult(probability=1.4, confidence=-0.2, contributions={}, model_source="learned_model")
        assert result.probability == 1.0
        assert result.confidence == 0.0

    def test_score_result_rejects_nan(self):
        with pytest.raises(ValueError):
            ScoreResult(probability=float("nan"), confidence=0.5, contributions={}, model_source="learned_model")

    def test_model_source_is_required(self):
        """Test que la fuente del modelo es obligatoria."""
        with pytest.raises(TypeError):
            ScoreResult(probability=0.5, confidence=0.5, contributions={})

    def test_clamp_rejects_nan(self):
        assert clamp(float("inf")) == 1.0
        assert clamp(-3.0) == 0.0
        with pytest.raises(ValueError):
            clamp(float("nan"))


class TestScenarios:
    """Escenarios de extremo a extremo: diario -> features -> score."""

    @pytest.fixture
    def extractor(self):
        return FeatureExtractor()

    @pytest.fixture
    def scorer(self):
        return RuleBasedScorer()

    def test_empty_window(self, extractor, scorer):
        """Test que un diario vacío da riesgo bajo con confianza 0.7."""
        features = extractor.extract([], now=NOW)
        result = scorer.score(features)
        # Sin datos: fibra 0 (+0.2) e hidratación 0 (+0.1) en nutrición
        assert result.contributions["nutrition"] == pytest.approx(0.3)
        assert result.contributions["symptoms"] == 0.0
        assert result.probability == pytest.approx(0.09)
        assert result.confidence == 0.7
        assert classify_risk(result.probability) == RiskLevel.LOW

    def test_pain_scenario(self, extractor, scorer):
        """Test con dolor severidad 8, hidratación 2000 ml y fibra 20 g."""
        journal = [{
            "entry_date": "2024-03-20",
            "symptoms": [{"type": "pain", "severity": 8}],
            "meals": [{"description": "grilled chicken with white rice", "fiber": 20, "protein": 30, "fat": 8}],
            "hydration": 2000,
        }]
        features = extractor.extract(journal, now=NOW, medication=MedicationFeatures(medication_adherence=0.95))
        result = scorer.score(features)

        assert result.contributions["nutrition"] == 0.0
        assert result.contributions["symptoms"] >= 0.4
        # Severidad > 7 (+0.4) y dolor > 6 (+0.15)
        assert result.contributions["symptoms"] == pytest.approx(0.55)
        assert result.probability == pytest.approx(0.4 * 0.55)

    def test_blood_in_stool_increases_probability(self, extractor, scorer):
        """Test que la sangre en heces sube la probabilidad al menos 0.12."""
        base = {
            "entry_date": "2024-03-20",
            "symptoms": [{"type": "diarrhea", "severity": 4}],
            "hydration": 2000,
            "meals": [{"description": "oatmeal", "fiber": 15, "protein": 6, "fat": 3}],
        }
        with_blood = {**base, "symptoms": base["symptoms"] + [{"type": "blood_in_stool"}]}

        without = scorer.score(extractor.extract([base], now=NOW)).probability
        with_flag = scorer.score(extractor.extract([with_blood], now=NOW)).probability
        assert with_flag - without >= 0.12 - 1e-9
