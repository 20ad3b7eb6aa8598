"""
Risk scoring: feature groups -> flare probability, confidence and
per-group contributions.

Two strategies share one interface, `score(features) -> ScoreResult |
ScoreFailure`: the learned model adapter (see ml_model.py) and the
deterministic weighted rule engine below. RiskScorer tries the learned model
only when it is ready and falls back to the rules on any failure.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Union
import logging
import math

from .constants import (
    ABDOMINAL_PAIN_RISK,
    ABDOMINAL_PAIN_THRESHOLD,
    ADHERENCE_THRESHOLD,
    ALCOHOL_RISK,
    ALCOHOL_THRESHOLD,
    BLOOD_IN_STOOL_RISK,
    CONTRIBUTING_FACTORS,
    FACTOR_LIFESTYLE,
    FACTOR_MEDICATION,
    FACTOR_NUTRITION,
    FACTOR_SYMPTOMS,
    FIBER_HIGH_THRESHOLD,
    FIBER_LOW_THRESHOLD,
    FIBER_OUT_OF_RANGE_RISK,
    FODMAP_RISK_FACTOR,
    HYDRATION_LOW_THRESHOLD,
    INFLAMMATORY_FOOD_RISK,
    LOW_HYDRATION_RISK,
    MEDICATION_CHANGE_RISK,
    MODEL_SOURCE_RULE_BASED,
    POOR_ADHERENCE_RISK,
    RULE_BASED_CONFIDENCE,
    RULE_WEIGHTS,
    SEVERITY_HIGH_RISK,
    SEVERITY_HIGH_THRESHOLD,
    SEVERITY_MODERATE_RISK,
    SEVERITY_MODERATE_THRESHOLD,
    SIDE_EFFECT_RISK_FACTOR,
    SLEEP_DURATION_RISK,
    SLEEP_DURATION_THRESHOLD,
    SLEEP_QUALITY_RISK,
    SLEEP_QUALITY_THRESHOLD,
    STRESS_RISK,
    STRESS_THRESHOLD,
    TRIGGER_FOOD_RISK,
    URGENCY_RISK,
    URGENCY_THRESHOLD,
    WEIGHT_SUM_TOLERANCE,
)
from .schemas import (
    FlarePredictionInput,
    LifestyleFeatures,
    MedicationFeatures,
    NutritionFeatures,
    SymptomFeatures,
)

logger = logging.getLogger(__name__)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp to [low, high]. NaN raises ValueError; infinities clamp to the bounds."""
    if math.isnan(value):
        raise ValueError("Cannot clamp NaN")
    return max(low, min(high, value))


@dataclass(frozen=True)
class ScoreResult:
    """A successful score. Probability and confidence are clamped to [0, 1]."""
    probability: float
    confidence: float
    contributions: Dict[str, float]
    model_source: str

    def __post_init__(self):
        object.__setattr__(self, "probability", clamp(self.probability))
        object.__setattr__(self, "confidence", clamp(self.confidence))


@dataclass(frozen=True)
class ScoreFailure:
    """A recoverable scoring failure."""
    reason: str


ScoreOutcome = Union[ScoreResult, ScoreFailure]


class FlareScorer(Protocol):
    def score(self, features: FlarePredictionInput) -> ScoreOutcome:
        ...


def validate_weights(weights: Dict[str, float]) -> Dict[str, float]:
    """Check that weights cover exactly the four factors and sum to 1.0."""
    if set(weights) != set(CONTRIBUTING_FACTORS):
        raise ValueError(f"Weights must have keys {list(CONTRIBUTING_FACTORS)}, got {sorted(weights)}")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ValueError(f"Weights must sum to 1.0, got {total:.6f}")
    return dict(weights)


# ============================================================================
# RULE ENGINE
# ============================================================================

def nutrition_risk(nutrition: NutritionFeatures) -> float:
    """Fiber out of range, trigger and inflammatory foods, FODMAP load, low hydration."""
    risk = 0.0
    if nutrition.fiber_intake < FIBER_LOW_THRESHOLD or nutrition.fiber_intake > FIBER_HIGH_THRESHOLD:
        risk += FIBER_OUT_OF_RANGE_RISK
    risk += nutrition.trigger_food_count * TRIGGER_FOOD_RISK
    risk += nutrition.inflammatory_food_count * INFLAMMATORY_FOOD_RISK
    risk += nutrition.fodmap_score * FODMAP_RISK_FACTOR
    if nutrition.hydration_level < HYDRATION_LOW_THRESHOLD:
        risk += LOW_HYDRATION_RISK
    return min(risk, 1.0)


def symptom_risk(symptoms: SymptomFeatures) -> float:
    risk = 0.0
    if symptoms.symptom_severity > SEVERITY_HIGH_THRESHOLD:
        risk += SEVERITY_HIGH_RISK
    elif symptoms.symptom_severity > SEVERITY_MODERATE_THRESHOLD:
        risk += SEVERITY_MODERATE_RISK
    if symptoms.blood_in_stool:
        risk += BLOOD_IN_STOOL_RISK
    if symptoms.urgency > URGENCY_THRESHOLD:
        risk += URGENCY_RISK
    if symptoms.abdominal_pain > ABDOMINAL_PAIN_THRESHOLD:
        risk += ABDOMINAL_PAIN_RISK
    return min(risk, 1.0)


def lifestyle_risk(lifestyle: LifestyleFeatures) -> float:
    risk = 0.0
    if lifestyle.stress_level > STRESS_THRESHOLD:
        risk += STRESS_RISK
    if lifestyle.sleep_quality < SLEEP_QUALITY_THRESHOLD:
        risk += SLEEP_QUALITY_RISK
    if lifestyle.sleep_duration < SLEEP_DURATION_THRESHOLD:
        risk += SLEEP_DURATION_RISK
    if lifestyle.alcohol_consumption > ALCOHOL_THRESHOLD:
        risk += ALCOHOL_RISK
    return min(risk, 1.0)


def medication_risk(medication: MedicationFeatures) -> float:
    risk = 0.0
    if medication.medication_adherence < ADHERENCE_THRESHOLD:
        risk += POOR_ADHERENCE_RISK
    if medication.recent_medication_change:
        risk += MEDICATION_CHANGE_RISK
    risk += sum(medication.side_effects.values()) * SIDE_EFFECT_RISK_FACTOR
    return min(risk, 1.0)


class RuleBasedScorer:
    """
    Weighted rule engine, always available.

    Each group yields a sub-score in [0, 1]; the probability is their
    weighted sum. The contribution map reports the sub-scores before
    weighting. Confidence is fixed at 0.7.
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = validate_weights(weights if weights is not None else RULE_WEIGHTS)

    def contributions(self, features: FlarePredictionInput) -> Dict[str, float]:
        return {
            FACTOR_NUTRITION: nutrition_risk(features.nutrition),
            FACTOR_SYMPTOMS: symptom_risk(features.symptoms),
            FACTOR_LIFESTYLE: lifestyle_risk(features.lifestyle),
            FACTOR_MEDICATION: medication_risk(features.medication),
        }

    def score(self, features: FlarePredictionInput) -> ScoreResult:
        contributions = self.contributions(features)
        probability = sum(contributions[name] * self.weights[name] for name in CONTRIBUTING_FACTORS)

        logger.info(
            f"Rule-based score: {probability:.3f} "
            f"(nutrition={contributions[FACTOR_NUTRITION]:.2f}, symptoms={contributions[FACTOR_SYMPTOMS]:.2f}, "
            f"lifestyle={contributions[FACTOR_LIFESTYLE]:.2f}, medication={contributions[FACTOR_MEDICATION]:.2f})"
        )
        return ScoreResult(
            probability=probability,
            confidence=RULE_BASED_CONFIDENCE,
            contributions=contributions,
            model_source=MODEL_SOURCE_RULE_BASED,
        )


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class RiskScorer:
    """
    Tries the learned model when one is registered and ready, otherwise (or
    on any failure) scores with the rule engine. Never raises for scoring
    problems.

    Args:
        rule_scorer: Deterministic fallback
        model_scorer: Optional learned model adapter with `is_model_ready`
    """

    def __init__(self, rule_scorer: Optional[RuleBasedScorer] = None, model_scorer=None):
        self.rule_scorer = rule_scorer or RuleBasedScorer()
        self.model_scorer = model_scorer

    @property
    def is_model_ready(self) -> bool:
        return self.model_scorer is not None and bool(getattr(self.model_scorer, "is_model_ready", False))

    @staticmethod
    def _invalid_result(result: ScoreResult) -> Optional[str]:
        """Why a learned result cannot be used, or None if it can."""
        if not (math.isfinite(result.probability) and math.isfinite(result.confidence)):
            return "non-finite probability or confidence"
        if set(result.contributions) != set(CONTRIBUTING_FACTORS):
            return f"contribution keys {sorted(result.contributions)}"
        if not all(math.isfinite(value) for value in result.contributions.values()):
            return "non-finite contribution"
        return None

    def score(self, features: FlarePredictionInput) -> ScoreResult:
        if self.is_model_ready:
            try:
                outcome = self.model_scorer.score(features)
            except Exception as e:
                logger.error(f"Learned model raised during scoring: {e}", exc_info=True)
                outcome = ScoreFailure(reason=str(e))

            if isinstance(outcome, ScoreResult):
                problem = self._invalid_result(outcome)
                if problem is None:
                    return outcome
                outcome = ScoreFailure(reason=problem)
            reason = getattr(outcome, "reason", f"unexpected result {type(outcome).__name__}")
            logger.warning(f"Learned model unavailable ({reason}), using rule-based scoring")
        else:
            logger.debug("Learned model not ready, using rule-based scoring")

        return self.rule_scorer.score(features)
