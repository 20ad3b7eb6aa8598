"""
Feature extraction: journal entries -> six feature groups.

Nutrition and lifestyle look at the last 7 entries, symptoms at the last 3,
and history scans the whole journal. Lifestyle, medication and most
environmental fields have no journal source yet; they are filled with fixed
defaults and listed in each group's `defaulted_fields`.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np

from .constants import (
    BLOOD_IN_STOOL,
    DEFAULT_DAYS_SINCE_LAST_FLARE,
    FLARE_PATTERN_DAYS,
    FLARE_SYMPTOMS,
    GENERIC_SYMPTOM_WEIGHT,
    INCOMPLETE_EVACUATION,
    LIFESTYLE_WINDOW,
    NUTRITION_WINDOW,
    SEASONS_BY_MONTH,
    SEVERITY_SCALE,
    STRESS_HISTORY_DAYS,
    STRESS_SYMPTOM,
    SYMPTOM_FEATURE_FIELDS,
    SYMPTOM_SEVERITY_WEIGHTS,
    SYMPTOM_WINDOW,
)
from .food_matching import KeywordFoodMatcher, normalize_food_text
from .micronutrients import MicronutrientCalculator
from .schemas import (
    EnvironmentalFeatures,
    FlarePredictionInput,
    HistoricalFeatures,
    JournalEntry,
    LifestyleFeatures,
    MedicationFeatures,
    MicronutrientSupplement,
    NutritionFeatures,
    SymptomFeatures,
    normalize_timestamp,
    parse_journal_entries,
)

logger = logging.getLogger(__name__)

SYMPTOM_LEVEL_FIELDS = ("abdominal_pain", "diarrhea", "constipation", "bloating", "fatigue", "urgency")

LIFESTYLE_FIELDS = tuple(name for name in LifestyleFeatures.model_fields if name != "defaulted_fields")
MEDICATION_FIELDS = tuple(name for name in MedicationFeatures.model_fields if name != "defaulted_fields")
ENVIRONMENT_DEFAULTED = ("temperature", "humidity", "air_quality", "travel_status", "location", "weather")

HOURS_PER_DAY_HALF = 12.0


def canonical_symptom(tag: str) -> str:
    """Map aliases such as 'pain' or 'stomach_pain' to their feature name."""
    return SYMPTOM_FEATURE_FIELDS.get(tag, tag)


def effective_symptoms(entry: JournalEntry) -> List[Tuple[str, Optional[int]]]:
    """
    Symptom tags and severities for an entry.

    Entry-level fields (pain severity, urgency, blood) and bowel events count
    as symptoms when no tag of that kind was logged.
    """
    symptoms = [(symptom.type, symptom.severity) for symptom in entry.symptoms]
    logged = {canonical_symptom(tag) for tag, _ in symptoms}

    if entry.pain_severity and "abdominal_pain" not in logged:
        symptoms.append(("abdominal_pain", entry.pain_severity))

    urgency = entry.urgency_level or 0
    movement_urgency = [bm.urgency for bm in entry.bowel_movements if bm.urgency]
    if movement_urgency:
        urgency = max(urgency, max(movement_urgency))
    if urgency and "urgency" not in logged:
        symptoms.append(("urgency", urgency))

    blood = entry.blood_present or any(bm.blood_present for bm in entry.bowel_movements)
    if blood and BLOOD_IN_STOOL not in logged:
        symptoms.append((BLOOD_IN_STOOL, None))

    return symptoms


def symptom_value(tag: str, severity: Optional[int]) -> float:
    """Recorded severity, or the tag's weight on the 0-10 scale when absent."""
    if severity is not None:
        return float(severity)
    return SYMPTOM_SEVERITY_WEIGHTS.get(tag, GENERIC_SYMPTOM_WEIGHT) * SEVERITY_SCALE


def is_flare_like(entry: JournalEntry) -> bool:
    return any(canonical_symptom(tag) in FLARE_SYMPTOMS for tag, _ in effective_symptoms(entry))


def entry_hour(entry: JournalEntry) -> float:
    ts = entry.timestamp
    return ts.hour + ts.minute / 60.0


def season_for(moment: datetime) -> str:
    return SEASONS_BY_MONTH[moment.month]


class FeatureExtractor:
    """
    Derives the six feature groups from a subject's journal.

    Args:
        food_matcher: Trigger/inflammatory/FODMAP keyword matcher
        calculator: Micronutrient calculator, used to estimate missing macros
        nutrition_window: Entries considered for nutrition
        symptom_window: Entries considered for symptoms
        lifestyle_window: Entries considered for lifestyle
    """

    def __init__(
        self,
        food_matcher: Optional[KeywordFoodMatcher] = None,
        calculator: Optional[MicronutrientCalculator] = None,
        nutrition_window: int = NUTRITION_WINDOW,
        symptom_window: int = SYMPTOM_WINDOW,
        lifestyle_window: int = LIFESTYLE_WINDOW,
    ):
        self.food_matcher = food_matcher or KeywordFoodMatcher()
        self.calculator = calculator or MicronutrientCalculator()
        self.nutrition_window = nutrition_window
        self.symptom_window = symptom_window
        self.lifestyle_window = lifestyle_window

    def extract(
        self,
        entries: Iterable[Any],
        now: Optional[datetime] = None,
        supplements: Sequence[MicronutrientSupplement] = (),
        lifestyle: Optional[LifestyleFeatures] = None,
        medication: Optional[MedicationFeatures] = None,
    ) -> FlarePredictionInput:
        """
        Extract all feature groups.

        Args:
            entries: Journal entries (objects or raw dicts); malformed ones are skipped
            now: Evaluation time (defaults to the current time)
            supplements: Active supplements for the nutrition group
            lifestyle: Externally supplied lifestyle data, replaces defaults
            medication: Externally supplied medication data, replaces defaults

        Returns:
            FlarePredictionInput with the six groups
        """
        now = normalize_timestamp(now or datetime.now())
        journal = sorted(parse_journal_entries(entries), key=lambda e: e.timestamp)

        features = FlarePredictionInput(
            nutrition=self.extract_nutrition(journal[-self.nutrition_window:], supplements),
            symptoms=self.extract_symptoms(journal[-self.symptom_window:]),
            lifestyle=self.extract_lifestyle(journal[-self.lifestyle_window:], lifestyle),
            medication=self.extract_medication(medication),
            environmental=self.extract_environmental(now),
            historical=self.extract_historical(journal, now),
        )
        logger.debug(f"Extracted features from {len(journal)} entries: {features.model_dump()}")
        return features

    # ------------------------------------------------------------------
    # Nutrition
    # ------------------------------------------------------------------

    def extract_nutrition(
        self,
        window: List[JournalEntry],
        supplements: Sequence[MicronutrientSupplement] = (),
    ) -> NutritionFeatures:
        """Per-day averages over the nutrition window."""
        supplement_intake = {s.name: s.dosage for s in supplements if s.is_active}
        if not window:
            return NutritionFeatures(
                supplement_intake=supplement_intake,
                defaulted_fields=("fiber_intake", "protein_intake", "fat_intake", "hydration_level"),
            )

        meals = [meal for entry in window for meal in entry.meals]
        descriptions = [meal.description for meal in meals]

        totals = {"fiber": 0.0, "protein": 0.0, "fat": 0.0}
        for meal in meals:
            for name, amount in self.calculator.estimate_macros(meal).items():
                totals[name] += amount

        counts = self.food_matcher.classify(descriptions)
        fodmap_score = counts["high_fodmap"] / len(meals) if meals else 0.0

        hydration_values = []
        for entry in window:
            if entry.hydration is not None:
                hydration_values.append(entry.hydration)
            elif entry.water_intake is not None or entry.other_fluids is not None:
                hydration_values.append((entry.water_intake or 0.0) + (entry.other_fluids or 0.0))

        defaulted = []
        if hydration_values:
            hydration = float(np.mean(hydration_values))
        else:
            hydration = 0.0
            defaulted.append("hydration_level")

        days = len(window)
        distinct_meals = {normalize_food_text(d) for d in descriptions}

        return NutritionFeatures(
            fiber_intake=totals["fiber"] / days,
            protein_intake=totals["protein"] / days,
            fat_intake=totals["fat"] / days,
            fodmap_score=float(np.clip(fodmap_score, 0.0, 1.0)),
            trigger_food_count=counts["trigger"],
            inflammatory_food_count=counts["inflammatory"],
            meal_timing=tuple(entry_hour(e) for e in window if e.has_time),
            hydration_level=hydration,
            food_diversity=len(distinct_meals) / days,
            supplement_intake=supplement_intake,
            defaulted_fields=tuple(defaulted),
        )

    # ------------------------------------------------------------------
    # Symptoms
    # ------------------------------------------------------------------

    def extract_symptoms(self, window: List[JournalEntry]) -> SymptomFeatures:
        """Mean severities over the entries in the window that have symptoms."""
        per_entry_levels: List[Dict[str, float]] = []
        per_entry_severity: List[float] = []
        blood_in_stool = False
        incomplete_evacuation = False

        for entry in window:
            # Stress belongs to the lifestyle group
            symptoms = [(tag, level) for tag, level in effective_symptoms(entry) if tag != STRESS_SYMPTOM]
            if not symptoms:
                continue

            levels = {name: 0.0 for name in SYMPTOM_LEVEL_FIELDS}
            severity = 0.0
            for tag, recorded in symptoms:
                value = symptom_value(tag, recorded)
                severity += value
                field = SYMPTOM_FEATURE_FIELDS.get(tag)
                if field:
                    levels[field] += value
                if tag == BLOOD_IN_STOOL:
                    blood_in_stool = True
                elif tag == INCOMPLETE_EVACUATION:
                    incomplete_evacuation = True

            per_entry_levels.append(levels)
            per_entry_severity.append(severity)

        if not per_entry_levels:
            return SymptomFeatures()

        means = {
            name: float(np.mean([levels[name] for levels in per_entry_levels]))
            for name in SYMPTOM_LEVEL_FIELDS
        }
        return SymptomFeatures(
            **means,
            blood_in_stool=blood_in_stool,
            incomplete_evacuation=incomplete_evacuation,
            symptom_severity=float(np.mean(per_entry_severity)),
            symptom_duration=len(per_entry_levels),
        )

    # ------------------------------------------------------------------
    # Lifestyle, medication, environment
    # ------------------------------------------------------------------

    def extract_lifestyle(
        self,
        window: List[JournalEntry],
        override: Optional[LifestyleFeatures] = None,
    ) -> LifestyleFeatures:
        """
        Stress, water intake and meal regularity from the journal when
        available; everything else is a default.
        """
        if override is not None:
            supplied = override.model_fields_set - {"defaulted_fields"}
            return override.model_copy(update={
                "defaulted_fields": tuple(f for f in LIFESTYLE_FIELDS if f not in supplied)
            })

        measured: Dict[str, Any] = {}

        stress = [
            s.severity for entry in window for s in entry.symptoms
            if s.type == STRESS_SYMPTOM and s.severity is not None
        ]
        if stress:
            measured["stress_level"] = float(np.mean(stress))

        water = [entry.water_intake for entry in window if entry.water_intake is not None]
        if water:
            measured["water_intake"] = float(np.mean(water))

        # Regularity needs at least two timed entries
        hours = [entry_hour(entry) for entry in window if entry.has_time]
        if len(hours) >= 2:
            spread = float(np.std(hours))
            measured["meal_regularity"] = float(np.clip(1.0 - spread / HOURS_PER_DAY_HALF, 0.0, 1.0))

        defaulted = tuple(f for f in LIFESTYLE_FIELDS if f not in measured)
        return LifestyleFeatures(**measured, defaulted_fields=defaulted)

    def extract_medication(self, override: Optional[MedicationFeatures] = None) -> MedicationFeatures:
        """No medication log exists in the journal; defaults unless supplied."""
        if override is not None:
            supplied = override.model_fields_set - {"defaulted_fields"}
            return override.model_copy(update={
                "defaulted_fields": tuple(f for f in MEDICATION_FIELDS if f not in supplied)
            })
        return MedicationFeatures(defaulted_fields=MEDICATION_FIELDS)

    def extract_environmental(self, now: datetime) -> EnvironmentalFeatures:
        return EnvironmentalFeatures(season=season_for(now), defaulted_fields=ENVIRONMENT_DEFAULTED)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def extract_historical(self, journal: List[JournalEntry], now: datetime) -> HistoricalFeatures:
        """Flare history over the full journal plus 30-day and 12-month trend hints."""
        flare_entries = [entry for entry in journal if is_flare_like(entry)]
        today = now.date()

        if flare_entries:
            last = flare_entries[-1].timestamp
            days_since = max((now - last).total_seconds() / 86400.0, 0.0)
        else:
            days_since = DEFAULT_DAYS_SINCE_LAST_FLARE

        flare_days = sorted({entry.timestamp.date() for entry in flare_entries})
        episodes = []
        for day in flare_days:
            if episodes and (day - episodes[-1][-1]).days <= 1:
                episodes[-1].append(day)
            else:
                episodes.append([day])
        average_duration = float(np.mean([len(e) for e in episodes])) if episodes else 0.0

        window_days = [today - timedelta(days=offset) for offset in range(FLARE_PATTERN_DAYS - 1, -1, -1)]
        flare_day_set = set(flare_days)
        flare_pattern = tuple(1.0 if day in flare_day_set else 0.0 for day in window_days)

        month_totals = np.zeros(12)
        month_flares = np.zeros(12)
        for entry in journal:
            month = entry.timestamp.month - 1
            month_totals[month] += 1
            if is_flare_like(entry):
                month_flares[month] += 1
        seasonal = np.divide(month_flares, month_totals, out=np.zeros(12), where=month_totals > 0)

        daily_stress: Dict[Any, float] = {}
        for entry in journal:
            for symptom in entry.symptoms:
                if symptom.type == STRESS_SYMPTOM and symptom.severity is not None:
                    day = entry.timestamp.date()
                    daily_stress[day] = max(daily_stress.get(day, 0.0), symptom.severity / SEVERITY_SCALE)
        stress_days = [today - timedelta(days=offset) for offset in range(STRESS_HISTORY_DAYS - 1, -1, -1)]
        stress_history = tuple(daily_stress.get(day, 0.0) for day in stress_days)

        defaulted = () if flare_entries else ("time_since_last_flare",)
        return HistoricalFeatures(
            previous_flares=len(flare_entries),
            average_flare_duration=average_duration,
            time_since_last_flare=days_since,
            flare_pattern=flare_pattern,
            seasonal_pattern=tuple(float(v) for v in seasonal),
            stress_history=stress_history,
            defaulted_fields=defaulted,
        )
