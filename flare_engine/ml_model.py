"""
Learned model adapter.

Wraps a pickled scikit-learn style classifier (anything with
`predict_proba`) behind the scorer interface. The model is loaded lazily;
until it is loaded `is_model_ready` is False and the RiskScorer uses the rule
engine. Failures are reported as ScoreFailure, never raised.
"""
import pickle
import threading
from pathlib import Path
from typing import Dict, List, Optional
import logging

import numpy as np
import pandas as pd

from .constants import (
    CONTRIBUTING_FACTORS,
    FACTOR_LIFESTYLE,
    FACTOR_MEDICATION,
    FACTOR_NUTRITION,
    FACTOR_SYMPTOMS,
    MODEL_SOURCE_LEARNED,
    SEASONS,
)
from .schemas import FlarePredictionInput
from .scoring import ScoreFailure, ScoreResult, ScoreOutcome, clamp

logger = logging.getLogger(__name__)

POSITIVE_CLASS_LABELS = ("flare", "1", "true", "yes", "high")

# Column -> contributing factor. Order is the model's training order.
FEATURE_GROUPS = {
    # Nutrition (8 features)
    "fiber_intake": FACTOR_NUTRITION,
    "protein_intake": FACTOR_NUTRITION,
    "fat_intake": FACTOR_NUTRITION,
    "fodmap_score": FACTOR_NUTRITION,
    "trigger_food_count": FACTOR_NUTRITION,
    "inflammatory_food_count": FACTOR_NUTRITION,
    "hydration_level": FACTOR_NUTRITION,
    "food_diversity": FACTOR_NUTRITION,
    # Symptoms (10 features)
    "abdominal_pain": FACTOR_SYMPTOMS,
    "diarrhea": FACTOR_SYMPTOMS,
    "constipation": FACTOR_SYMPTOMS,
    "bloating": FACTOR_SYMPTOMS,
    "fatigue": FACTOR_SYMPTOMS,
    "urgency": FACTOR_SYMPTOMS,
    "blood_in_stool": FACTOR_SYMPTOMS,
    "incomplete_evacuation": FACTOR_SYMPTOMS,
    "symptom_severity": FACTOR_SYMPTOMS,
    "symptom_duration": FACTOR_SYMPTOMS,
    # Lifestyle (8 features)
    "stress_level": FACTOR_LIFESTYLE,
    "sleep_quality": FACTOR_LIFESTYLE,
    "sleep_duration": FACTOR_LIFESTYLE,
    "exercise_level": FACTOR_LIFESTYLE,
    "smoking_status": FACTOR_LIFESTYLE,
    "alcohol_consumption": FACTOR_LIFESTYLE,
    "caffeine_intake": FACTOR_LIFESTYLE,
    "meal_regularity": FACTOR_LIFESTYLE,
    # Medication (5 features)
    "medication_adherence": FACTOR_MEDICATION,
    "dosage_compliance": FACTOR_MEDICATION,
    "side_effect_burden": FACTOR_MEDICATION,
    "recent_medication_change": FACTOR_MEDICATION,
    "medication_effectiveness": FACTOR_MEDICATION,
}

# Context columns (not attributed to a factor)
CONTEXT_FEATURES = ("season", "previous_flares", "time_since_last_flare", "average_flare_duration")

FEATURE_COLUMNS = list(FEATURE_GROUPS) + list(CONTEXT_FEATURES)


def features_to_frame(features: FlarePredictionInput) -> pd.DataFrame:
    """
    Convert feature groups to a one-row DataFrame, every column scaled to [0, 1].

    Raises:
        ValueError: If any value is not finite
    """
    n = features.nutrition
    s = features.symptoms
    lf = features.lifestyle
    m = features.medication
    h = features.historical

    row = {
        # Nutrition: g/day, counts and ml scaled by plausible daily maxima
        "fiber_intake": n.fiber_intake / 50.0,
        "protein_intake": n.protein_intake / 150.0,
        "fat_intake": n.fat_intake / 120.0,
        "fodmap_score": n.fodmap_score,
        "trigger_food_count": n.trigger_food_count / 10.0,
        "inflammatory_food_count": n.inflammatory_food_count / 10.0,
        "hydration_level": n.hydration_level / 3000.0,
        "food_diversity": n.food_diversity / 5.0,
        # Symptoms: 0-10 scale -> 0-1
        "abdominal_pain": s.abdominal_pain / 10.0,
        "diarrhea": s.diarrhea / 10.0,
        "constipation": s.constipation / 10.0,
        "bloating": s.bloating / 10.0,
        "fatigue": s.fatigue / 10.0,
        "urgency": s.urgency / 10.0,
        "blood_in_stool": int(s.blood_in_stool),
        "incomplete_evacuation": int(s.incomplete_evacuation),
        "symptom_severity": s.symptom_severity / 30.0,
        "symptom_duration": s.symptom_duration / 3.0,
        # Lifestyle
        "stress_level": lf.stress_level / 10.0,
        "sleep_quality": lf.sleep_quality / 10.0,
        "sleep_duration": lf.sleep_duration / 12.0,
        "exercise_level": lf.exercise_level / 10.0,
        "smoking_status": int(lf.smoking_status),
        "alcohol_consumption": lf.alcohol_consumption / 10.0,
        "caffeine_intake": lf.caffeine_intake / 10.0,
        "meal_regularity": lf.meal_regularity,
        # Medication
        "medication_adherence": m.medication_adherence,
        "dosage_compliance": m.dosage_compliance,
        "side_effect_burden": sum(m.side_effects.values()) / 5.0,
        "recent_medication_change": int(m.recent_medication_change),
        "medication_effectiveness": m.medication_effectiveness,
        # Context
        "season": SEASONS.index(features.environmental.season) / 3.0
        if features.environmental.season in SEASONS else 0.0,
        "previous_flares": h.previous_flares / 50.0,
        "time_since_last_flare": h.time_since_last_flare / 365.0,
        "average_flare_duration": h.average_flare_duration / 30.0,
    }

    frame = pd.DataFrame([row], columns=FEATURE_COLUMNS).astype(float).clip(0.0, 1.0)
    if not np.isfinite(frame.to_numpy()).all():
        raise ValueError("Non-finite value in model features")
    return frame


class LearnedModelScorer:
    """
    Wrapper for a trained flare classifier.

    Args:
        model_path: Path to the pickled model
        model: An already loaded model (skips loading)
        confidence_floor: Minimum confidence reported for model scores
    """

    def __init__(
        self,
        model_path: str = "models/flare_model.pkl",
        model=None,
        confidence_floor: float = 0.0,
    ):
        self.model_path = Path(model_path)
        self.model = model
        self.confidence_floor = confidence_floor
        self._lock = threading.Lock()
        self.is_loaded = model is not None
        self.load_error: Optional[str] = None

    @property
    def is_model_ready(self) -> bool:
        return self.is_loaded and self.model is not None

    def load_model(self) -> bool:
        """Load the trained model from disk. Safe to call from a worker thread."""
        with self._lock:
            if self.is_loaded:
                return True
            try:
                if not self.model_path.exists():
                    logger.warning(f"Model file not found: {self.model_path}")
                    logger.warning("Using rule-based predictions as fallback")
                    self.load_error = "model file not found"
                    return False

                logger.info(f"Loading model from {self.model_path}")
                with open(self.model_path, "rb") as f:
                    model = pickle.load(f)

                if not hasattr(model, "predict_proba"):
                    logger.error(f"Loaded object has no predict_proba: {type(model).__name__}")
                    self.load_error = "model has no predict_proba"
                    return False

                self.model = model
                self.is_loaded = True
                self.load_error = None
                logger.info(f"Model loaded successfully: {type(model).__name__}")
                return True

            except Exception as e:
                logger.error(f"Error loading model: {e}")
                self.load_error = str(e)
                self.is_loaded = False
                return False

    def _positive_index(self) -> int:
        classes = [str(c).lower() for c in getattr(self.model, "classes_", [])]
        for label in POSITIVE_CLASS_LABELS:
            if label in classes:
                return classes.index(label)
        # Binary classifiers put the positive class last
        return len(classes) - 1 if classes else -1

    def _contributions(self, frame: pd.DataFrame) -> Dict[str, float]:
        """
        Per-factor contribution: importance-weighted mean of the factor's
        scaled features, or their plain mean without importances.
        """
        importances = getattr(self.model, "feature_importances_", None)
        if importances is not None and len(importances) != len(FEATURE_COLUMNS):
            importances = None

        values = frame.iloc[0]
        contributions = {}
        for factor in CONTRIBUTING_FACTORS:
            columns: List[str] = [c for c, group in FEATURE_GROUPS.items() if group == factor]
            group_values = np.array([values[c] for c in columns], dtype=float)
            if importances is not None:
                weights = np.array([importances[FEATURE_COLUMNS.index(c)] for c in columns], dtype=float)
                total = weights.sum()
                value = float((group_values * weights).sum() / total) if total > 0 else float(group_values.mean())
            else:
                value = float(group_values.mean())
            contributions[factor] = clamp(value)
        return contributions

    def score(self, features: FlarePredictionInput) -> ScoreOutcome:
        """
        Score with the learned model.

        Returns:
            ScoreResult on success, ScoreFailure if the model is not ready,
            the features cannot be converted or inference fails
        """
        if not self.is_model_ready:
            return ScoreFailure(reason="model not loaded")

        try:
            frame = features_to_frame(features)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Feature conversion failed: {e}")
            return ScoreFailure(reason=f"feature conversion failed: {e}")

        try:
            probabilities = np.asarray(self.model.predict_proba(frame))[0]
            probability = float(probabilities[self._positive_index()])

            # Confidence: gap between the two most likely classes
            ordered = sorted((float(p) for p in probabilities), reverse=True)
            confidence = ordered[0] - ordered[1] if len(ordered) > 1 else 1.0
            confidence = max(confidence, self.confidence_floor)

            if not np.isfinite(probability) or not np.isfinite(confidence):
                return ScoreFailure(reason="model returned a non-finite probability")

            contributions = self._contributions(frame)
        except Exception as e:
            logger.error(f"Error in ML prediction: {e}", exc_info=True)
            return ScoreFailure(reason=f"inference failed: {e}")

        logger.info(f"ML prediction: prob={probability:.3f}, conf={confidence:.2f}")
        return ScoreResult(
            probability=probability,
            confidence=confidence,
            contributions=contributions,
            model_source=MODEL_SOURCE_LEARNED,
        )
