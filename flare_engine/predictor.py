"""
Flare prediction pipeline.

journal -> FeatureExtractor -> RiskScorer -> RiskClassifier ->
RecommendationEngine -> FlarePredictionOutput
"""
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence
import logging

from .classifier import RiskClassifier
from .constants import NEXT_PREDICTION_INTERVAL_HOURS
from .features import FeatureExtractor
from .recommendations import RecommendationEngine
from .schemas import (
    FlarePredictionOutput,
    LifestyleFeatures,
    MedicationFeatures,
    MicronutrientSupplement,
    normalize_timestamp,
)
from .scoring import RiskScorer

logger = logging.getLogger(__name__)


class FlarePredictor:
    """
    Straight-line orchestration of the flare risk components.

    All collaborators are injected; defaults give a rule-only predictor.
    """

    def __init__(
        self,
        extractor: Optional[FeatureExtractor] = None,
        scorer: Optional[RiskScorer] = None,
        classifier: Optional[RiskClassifier] = None,
        recommender: Optional[RecommendationEngine] = None,
        next_prediction_hours: int = NEXT_PREDICTION_INTERVAL_HOURS,
    ):
        self.extractor = extractor or FeatureExtractor()
        self.scorer = scorer or RiskScorer()
        self.classifier = classifier or RiskClassifier()
        self.recommender = recommender or RecommendationEngine()
        self.next_prediction_hours = next_prediction_hours

    def predict(
        self,
        entries: Iterable[Any],
        now: Optional[datetime] = None,
        supplements: Sequence[MicronutrientSupplement] = (),
        lifestyle: Optional[LifestyleFeatures] = None,
        medication: Optional[MedicationFeatures] = None,
    ) -> FlarePredictionOutput:
        """
        Assess flare risk for a journal window.

        Args:
            entries: Journal entries (objects or raw dicts)
            now: Evaluation time, defaults to the current time
            supplements: Active supplements
            lifestyle: Optional lifestyle data replacing defaults
            medication: Optional medication data replacing defaults

        Returns:
            FlarePredictionOutput
        """
        now = normalize_timestamp(now or datetime.now())

        features = self.extractor.extract(
            entries, now=now, supplements=supplements, lifestyle=lifestyle, medication=medication
        )
        result = self.scorer.score(features)
        risk_level = self.classifier.classify(result.probability)
        recommendations = self.recommender.recommend(risk_level, result.contributions)

        logger.info(
            f"Flare prediction: {risk_level.value} (prob={result.probability:.3f}, "
            f"conf={result.confidence:.2f}, source={result.model_source})"
        )
        return FlarePredictionOutput(
            flare_probability=result.probability,
            confidence_score=result.confidence,
            risk_level=risk_level,
            predicted_onset=self.classifier.onset(result.probability, now),
            contributing_factors=dict(result.contributions),
            recommendations=recommendations,
            next_prediction_date=now + timedelta(hours=self.next_prediction_hours),
            model_source=result.model_source,
        )
