"""
Recommendation engine.

The baseline action for the risk level always comes first, and its priority
tier matches the risk level. Factor actions follow for every group whose
sub-score reaches FACTOR_RECOMMENDATION_THRESHOLD, highest sub-score first,
never ranked above the baseline.
"""
from typing import Dict, List, Optional
import logging

from .constants import (
    FACTOR_LIFESTYLE,
    FACTOR_MEDICATION,
    FACTOR_NUTRITION,
    FACTOR_RECOMMENDATION_THRESHOLD,
    FACTOR_SYMPTOMS,
)
from .schemas import ActionPriority, FlarePreventionAction, RiskLevel

logger = logging.getLogger(__name__)

PRIORITY_BY_RISK = {
    RiskLevel.VERY_HIGH: ActionPriority.CRITICAL,
    RiskLevel.HIGH: ActionPriority.HIGH,
    RiskLevel.MODERATE: ActionPriority.MEDIUM,
    RiskLevel.LOW: ActionPriority.LOW,
}

BASELINE_ACTIONS = {
    RiskLevel.VERY_HIGH: (
        "Contact your care team today",
        "Your recent journal shows a pattern strongly associated with an imminent flare.",
        "Call your gastroenterologist or IBD nurse today. Seek urgent care if you have "
        "heavy bleeding, fever or severe pain.",
    ),
    RiskLevel.HIGH: (
        "Schedule a check-in with your doctor",
        "Several risk factors are elevated at the same time.",
        "Book an appointment within the next few days and bring your last two weeks "
        "of journal entries.",
    ),
    RiskLevel.MODERATE: (
        "Monitor symptoms closely",
        "Some risk factors are above their usual range.",
        "Log every meal and symptom for the next few days and contact your doctor "
        "if symptoms get worse.",
    ),
    RiskLevel.LOW: (
        "Keep up your routine",
        "No significant flare risk factors were detected.",
        "Continue your current diet, medication and journaling habits.",
    ),
}

FACTOR_ACTIONS = {
    FACTOR_SYMPTOMS: (
        "Track symptom changes",
        "Recent symptoms (severity, urgency, pain or blood) are driving the risk score.",
        "Record severity twice a day and report any blood in stool to your doctor.",
    ),
    FACTOR_NUTRITION: (
        "Adjust your diet",
        "Trigger foods, high-FODMAP meals, fiber outside 10-50 g/day or low hydration "
        "were logged recently.",
        "Favor low-FODMAP, low-fat meals, avoid known trigger foods and drink at least "
        "1.5 l of fluids a day.",
    ),
    FACTOR_LIFESTYLE: (
        "Reduce stress and protect sleep",
        "Stress, poor or short sleep, or alcohol are above recommended levels.",
        "Aim for 7-8 hours of sleep, plan short relaxation breaks and limit alcohol.",
    ),
    FACTOR_MEDICATION: (
        "Review your medication",
        "Missed doses, a recent change or side effects raise flare risk.",
        "Take medication as prescribed and discuss side effects or recent changes "
        "with your doctor.",
    ),
}


def _cap_priority(priority: ActionPriority, ceiling: ActionPriority) -> ActionPriority:
    return priority if priority.rank <= ceiling.rank else ceiling


def _factor_priority(sub_score: float) -> ActionPriority:
    if sub_score >= 0.8:
        return ActionPriority.CRITICAL
    if sub_score >= 0.6:
        return ActionPriority.HIGH
    if sub_score >= 0.3:
        return ActionPriority.MEDIUM
    return ActionPriority.LOW


class RecommendationEngine:
    """
    Build the ranked list of preventive actions.

    Args:
        factor_threshold: Minimum sub-score for a factor action
    """

    def __init__(self, factor_threshold: float = FACTOR_RECOMMENDATION_THRESHOLD):
        self.factor_threshold = factor_threshold

    def baseline(self, risk_level: RiskLevel) -> FlarePreventionAction:
        title, rationale, implementation = BASELINE_ACTIONS[risk_level]
        return FlarePreventionAction(
            title=title,
            rationale=rationale,
            implementation=implementation,
            priority=PRIORITY_BY_RISK[risk_level],
        )

    def recommend(
        self,
        risk_level: RiskLevel,
        contributions: Optional[Dict[str, float]] = None,
    ) -> List[FlarePreventionAction]:
        """
        Args:
            risk_level: Overall risk level
            contributions: Per-group sub-scores in [0, 1]

        Returns:
            Non-empty list, baseline action first
        """
        actions = [self.baseline(risk_level)]
        if not contributions:
            return actions

        ceiling = PRIORITY_BY_RISK[risk_level]
        ranked = sorted(
            (item for item in contributions.items() if item[0] in FACTOR_ACTIONS),
            key=lambda item: item[1],
            reverse=True,
        )
        for factor, sub_score in ranked:
            if sub_score < self.factor_threshold:
                continue
            title, rationale, implementation = FACTOR_ACTIONS[factor]
            actions.append(FlarePreventionAction(
                title=title,
                rationale=f"{rationale} (sub-score {sub_score:.2f})",
                implementation=implementation,
                priority=_cap_priority(_factor_priority(sub_score), ceiling),
            ))

        logger.debug(f"Recommendations for {risk_level.value}: {[a.title for a in actions]}")
        return actions
