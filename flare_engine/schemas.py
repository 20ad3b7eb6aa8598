"""
Pydantic schemas for journal records, feature groups, outputs and API payloads.

Every model here is frozen: feature groups and predictions are created fresh
for each scoring call and never mutated afterwards.
"""
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import (
    DEFAULT_AIR_QUALITY,
    DEFAULT_ALCOHOL_CONSUMPTION,
    DEFAULT_CAFFEINE_INTAKE,
    DEFAULT_DAYS_SINCE_LAST_FLARE,
    DEFAULT_DOSAGE_COMPLIANCE,
    DEFAULT_EXERCISE_LEVEL,
    DEFAULT_EXERCISE_TYPE,
    DEFAULT_HUMIDITY,
    DEFAULT_MEAL_REGULARITY,
    DEFAULT_MEDICATION_ADHERENCE,
    DEFAULT_MEDICATION_EFFECTIVENESS,
    DEFAULT_MEDICATION_TYPES,
    DEFAULT_SLEEP_DURATION,
    DEFAULT_SLEEP_QUALITY,
    DEFAULT_STRESS_LEVEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_WATER_INTAKE,
    UNKNOWN,
)

logger = logging.getLogger(__name__)

FROZEN = {"frozen": True}


def normalize_timestamp(value: Union[date, datetime]) -> datetime:
    """Return a naive UTC datetime for a date or (possibly aware) datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def normalize_tag(value: str) -> str:
    """Lowercase a free-text tag and join words with underscores."""
    return "_".join(value.strip().lower().replace("-", " ").split())


# ============================================================================
# ENUMS
# ============================================================================

class RiskLevel(str, Enum):
    """Discrete flare risk level, ordered from lowest to highest."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return list(RiskLevel).index(self)


class ActionPriority(str, Enum):
    """Recommendation priority tier, ordered from lowest to highest."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(ActionPriority).index(self)


class DiseaseActivity(str, Enum):
    REMISSION = "remission"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class DeficiencySeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class NutrientStatus(str, Enum):
    OPTIMAL = "optimal"
    ADEQUATE = "adequate"
    SUBOPTIMAL = "suboptimal"
    DEFICIENT = "deficient"


class SupplementCategory(str, Enum):
    VITAMIN = "vitamin"
    MINERAL = "mineral"
    TRACE_ELEMENT = "trace_element"
    PROBIOTIC = "probiotic"
    OMEGA3 = "omega3"
    OTHER = "other"


class DosageUnit(str, Enum):
    MG = "mg"
    MCG = "mcg"
    G = "g"
    IU = "iu"
    CFU_BILLION = "cfu_billion"


class FoodMatchType(str, Enum):
    COMPOUND = "compound"
    INDIVIDUAL = "individual"
    CATEGORY = "category"


# ============================================================================
# JOURNAL RECORDS
# ============================================================================

class Meal(BaseModel):
    """A single meal recorded in a journal entry."""
    meal_id: Optional[str] = None
    meal_type: str = Field(default="meal", description="breakfast, lunch, dinner, snack...", examples=["lunch"])
    description: str = Field(..., description="Free-text meal description", examples=["grilled chicken with white rice"])
    calories: Optional[float] = Field(default=None, ge=0)
    protein: Optional[float] = Field(default=None, ge=0, description="Protein in grams")
    carbs: Optional[float] = Field(default=None, ge=0, description="Carbohydrates in grams")
    fiber: Optional[float] = Field(default=None, ge=0, description="Fiber in grams")
    fat: Optional[float] = Field(default=None, ge=0, description="Fat in grams")
    serving_size: Optional[float] = Field(default=None, gt=0, examples=[2.0])
    serving_unit: Optional[str] = Field(default=None, examples=["cup"])
    serving_description: Optional[str] = Field(default=None, examples=["2 cups"])

    model_config = FROZEN


class Symptom(BaseModel):
    """A symptom tag with optional 0-10 severity."""
    symptom_id: Optional[str] = None
    type: str = Field(..., min_length=1, description="Symptom tag", examples=["abdominal_pain"])
    severity: Optional[int] = Field(default=None, ge=0, le=10, description="Severity (0-10)", examples=[6])
    notes: Optional[str] = None

    model_config = FROZEN

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        """Normalize tags such as 'Abdominal Pain' to 'abdominal_pain'."""
        return normalize_tag(v)


class BowelMovement(BaseModel):
    """A single bowel event."""
    time: Optional[datetime] = None
    consistency: int = Field(..., ge=1, le=7, description="Bristol stool scale (1-7)")
    urgency: Optional[int] = Field(default=None, ge=0, le=10)
    blood_present: bool = False

    model_config = FROZEN


class JournalEntry(BaseModel):
    """
    One subject-day record from the health journal.

    `entry_date` accepts a date or a datetime; aware datetimes are converted
    to naive UTC so entries can always be compared with each other.
    """
    entry_id: Optional[str] = None
    user_id: Optional[str] = None
    entry_date: Union[datetime, date] = Field(..., examples=["2024-03-15T08:30:00"])
    meals: List[Meal] = Field(default_factory=list)
    symptoms: List[Symptom] = Field(default_factory=list)
    bowel_movements: List[BowelMovement] = Field(default_factory=list)
    bowel_frequency: Optional[int] = Field(default=None, ge=0)
    blood_present: Optional[bool] = None
    mucus_present: Optional[bool] = None
    pain_severity: Optional[int] = Field(default=None, ge=0, le=10)
    pain_location: Optional[str] = None
    urgency_level: Optional[int] = Field(default=None, ge=0, le=10)
    bristol_scale: Optional[int] = Field(default=None, ge=1, le=7)
    hydration: Optional[float] = Field(default=None, ge=0, description="Total fluid intake in ml")
    water_intake: Optional[float] = Field(default=None, ge=0, description="Water intake in ml")
    other_fluids: Optional[float] = Field(default=None, ge=0)
    fluid_type: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "entry_date": "2024-03-15T08:30:00",
                    "meals": [
                        {"meal_type": "lunch", "description": "grilled chicken with white rice", "fiber": 2.0}
                    ],
                    "symptoms": [{"type": "abdominal_pain", "severity": 6}],
                    "hydration": 1800
                }
            ]
        }
    }

    @field_validator("entry_date", mode="before")
    @classmethod
    def parse_entry_date(cls, v: Any) -> Any:
        """Parse ISO strings into a date (date-only) or a naive UTC datetime."""
        if isinstance(v, str):
            text = v.strip()
            if len(text) == 10:
                return date.fromisoformat(text)
            return normalize_timestamp(datetime.fromisoformat(text.replace("Z", "+00:00")))
        if isinstance(v, datetime):
            return normalize_timestamp(v)
        return v

    @field_validator("meals", "symptoms", "bowel_movements", mode="before")
    @classmethod
    def null_list_to_empty(cls, v: Any) -> Any:
        """A JSON null list means nothing was logged."""
        return [] if v is None else v

    @property
    def timestamp(self) -> datetime:
        return normalize_timestamp(self.entry_date)

    @property
    def has_time(self) -> bool:
        """Whether the entry was recorded with a time of day."""
        return isinstance(self.entry_date, datetime)

    @property
    def symptom_types(self) -> Tuple[str, ...]:
        return tuple(symptom.type for symptom in self.symptoms)


# ============================================================================
# FEATURE GROUPS
# ============================================================================

class NutritionFeatures(BaseModel):
    """Per-day averaged nutrition signals over the nutrition window."""
    fiber_intake: float = Field(default=0.0, ge=0, description="Average fiber (g/day)")
    protein_intake: float = Field(default=0.0, ge=0, description="Average protein (g/day)")
    fat_intake: float = Field(default=0.0, ge=0, description="Average fat (g/day)")
    fodmap_score: float = Field(default=0.0, ge=0, le=1, description="Share of high-FODMAP meals")
    trigger_food_count: int = Field(default=0, ge=0)
    inflammatory_food_count: int = Field(default=0, ge=0)
    meal_timing: Tuple[float, ...] = Field(default=(), description="Hour of day of each timed entry")
    hydration_level: float = Field(default=0.0, ge=0, description="Average hydration (ml/day)")
    food_diversity: float = Field(default=0.0, ge=0, description="Distinct meals per entry")
    supplement_intake: Dict[str, float] = Field(default_factory=dict)
    defaulted_fields: Tuple[str, ...] = ()

    model_config = FROZEN


class SymptomFeatures(BaseModel):
    """Averaged symptom severities over the symptom window."""
    abdominal_pain: float = Field(default=0.0, ge=0)
    diarrhea: float = Field(default=0.0, ge=0)
    constipation: float = Field(default=0.0, ge=0)
    bloating: float = Field(default=0.0, ge=0)
    fatigue: float = Field(default=0.0, ge=0)
    urgency: float = Field(default=0.0, ge=0)
    blood_in_stool: bool = False
    incomplete_evacuation: bool = False
    symptom_severity: float = Field(default=0.0, ge=0, description="Aggregate weighted severity")
    symptom_duration: int = Field(default=0, ge=0, description="Entries with symptoms in the window")
    defaulted_fields: Tuple[str, ...] = ()

    model_config = FROZEN


class LifestyleFeatures(BaseModel):
    """
    Lifestyle signals.

    The journal has no sleep, exercise or substance fields, so most of these
    are fixed defaults listed in `defaulted_fields`.
    """
    stress_level: float = Field(default=DEFAULT_STRESS_LEVEL, ge=0, le=10)
    sleep_quality: float = Field(default=DEFAULT_SLEEP_QUALITY, ge=0, le=10)
    sleep_duration: float = Field(default=DEFAULT_SLEEP_DURATION, ge=0, le=24)
    exercise_level: float = Field(default=DEFAULT_EXERCISE_LEVEL, ge=0, le=10)
    exercise_type: str = DEFAULT_EXERCISE_TYPE
    smoking_status: bool = False
    alcohol_consumption: float = Field(default=DEFAULT_ALCOHOL_CONSUMPTION, ge=0, description="Units/day")
    caffeine_intake: float = Field(default=DEFAULT_CAFFEINE_INTAKE, ge=0, description="Cups/day")
    water_intake: float = Field(default=DEFAULT_WATER_INTAKE, ge=0, description="ml/day")
    meal_regularity: float = Field(default=DEFAULT_MEAL_REGULARITY, ge=0, le=1)
    defaulted_fields: Tuple[str, ...] = ()

    model_config = FROZEN


class MedicationFeatures(BaseModel):
    """Medication signals. No journal source exists; defaults unless supplied."""
    medication_adherence: float = Field(default=DEFAULT_MEDICATION_ADHERENCE, ge=0, le=1)
    medication_types: Dict[str, bool] = Field(default_factory=lambda: dict(DEFAULT_MEDICATION_TYPES))
    dosage_compliance: float = Field(default=DEFAULT_DOSAGE_COMPLIANCE, ge=0, le=1)
    side_effects: Dict[str, float] = Field(default_factory=dict, description="Side effect -> severity (0-1)")
    recent_medication_change: bool = False
    medication_effectiveness: float = Field(default=DEFAULT_MEDICATION_EFFECTIVENESS, ge=0, le=1)
    defaulted_fields: Tuple[str, ...] = ()

    model_config = FROZEN

    @field_validator("side_effects")
    @classmethod
    def validate_side_effects(cls, v: Dict[str, float]) -> Dict[str, float]:
        for name, severity in v.items():
            if severity < 0:
                raise ValueError(f"Side effect severity must be non-negative: {name}")
        return v


class EnvironmentalFeatures(BaseModel):
    """Season from the evaluation date; climate and location are not collected."""
    season: str = Field(..., examples=["winter"])
    temperature: float = DEFAULT_TEMPERATURE
    humidity: float = DEFAULT_HUMIDITY
    air_quality: float = DEFAULT_AIR_QUALITY
    travel_status: bool = False
    time_zone: str = "UTC"
    location: str = UNKNOWN
    weather: str = UNKNOWN
    defaulted_fields: Tuple[str, ...] = ()

    model_config = FROZEN


class HistoricalFeatures(BaseModel):
    """Flare history scanned over the full journal. Trend arrays are hints only."""
    previous_flares: int = Field(default=0, ge=0)
    average_flare_duration: float = Field(default=0.0, ge=0, description="Days")
    time_since_last_flare: float = Field(default=DEFAULT_DAYS_SINCE_LAST_FLARE, ge=0, description="Days")
    flare_pattern: Tuple[float, ...] = ()
    seasonal_pattern: Tuple[float, ...] = ()
    stress_history: Tuple[float, ...] = ()
    defaulted_fields: Tuple[str, ...] = ()

    model_config = FROZEN


class FlarePredictionInput(BaseModel):
    """The six feature groups handed to a risk scorer."""
    nutrition: NutritionFeatures
    symptoms: SymptomFeatures
    lifestyle: LifestyleFeatures
    medication: MedicationFeatures
    environmental: EnvironmentalFeatures
    historical: HistoricalFeatures

    model_config = FROZEN


# ============================================================================
# PREDICTION OUTPUT
# ============================================================================

class FlarePreventionAction(BaseModel):
    """A recommended preventive action."""
    title: str
    rationale: str
    implementation: str
    priority: ActionPriority

    model_config = FROZEN


class FlarePredictionOutput(BaseModel):
    """Flare risk assessment for one subject at one point in time."""
    flare_probability: float = Field(..., ge=0, le=1, examples=[0.42])
    confidence_score: float = Field(..., ge=0, le=1, examples=[0.7])
    risk_level: RiskLevel
    predicted_onset: Optional[datetime] = None
    contributing_factors: Dict[str, float]
    recommendations: List[FlarePreventionAction] = Field(..., min_length=1)
    next_prediction_date: datetime
    model_source: str = Field(..., examples=["rule_based"])

    model_config = {"frozen": True, "protected_namespaces": ()}


# ============================================================================
# MICRONUTRIENTS
# ============================================================================

class MicronutrientData(BaseModel):
    """
    Micronutrient vector.

    Units: vitamins A, B7, B9, B12, D, K in mcg and the rest in mg; minerals in
    mg except selenium, iodine, chromium, molybdenum and vanadium (mcg);
    omega3, glutamine and prebiotics in g; probiotics in billion CFU.
    """
    vitamin_a: float = Field(default=0.0, ge=0)
    vitamin_b1: float = Field(default=0.0, ge=0)
    vitamin_b2: float = Field(default=0.0, ge=0)
    vitamin_b3: float = Field(default=0.0, ge=0)
    vitamin_b5: float = Field(default=0.0, ge=0)
    vitamin_b6: float = Field(default=0.0, ge=0)
    vitamin_b7: float = Field(default=0.0, ge=0)
    vitamin_b9: float = Field(default=0.0, ge=0)
    vitamin_b12: float = Field(default=0.0, ge=0)
    vitamin_c: float = Field(default=0.0, ge=0)
    vitamin_d: float = Field(default=0.0, ge=0)
    vitamin_e: float = Field(default=0.0, ge=0)
    vitamin_k: float = Field(default=0.0, ge=0)

    calcium: float = Field(default=0.0, ge=0)
    iron: float = Field(default=0.0, ge=0)
    magnesium: float = Field(default=0.0, ge=0)
    phosphorus: float = Field(default=0.0, ge=0)
    potassium: float = Field(default=0.0, ge=0)
    sodium: float = Field(default=0.0, ge=0)
    zinc: float = Field(default=0.0, ge=0)
    copper: float = Field(default=0.0, ge=0)
    manganese: float = Field(default=0.0, ge=0)
    selenium: float = Field(default=0.0, ge=0)
    iodine: float = Field(default=0.0, ge=0)
    chromium: float = Field(default=0.0, ge=0)
    molybdenum: float = Field(default=0.0, ge=0)
    boron: float = Field(default=0.0, ge=0)
    silicon: float = Field(default=0.0, ge=0)
    vanadium: float = Field(default=0.0, ge=0)

    omega3: float = Field(default=0.0, ge=0)
    glutamine: float = Field(default=0.0, ge=0)
    probiotics: float = Field(default=0.0, ge=0)
    prebiotics: float = Field(default=0.0, ge=0)

    model_config = FROZEN

    def add(self, other: "MicronutrientData") -> "MicronutrientData":
        """Elementwise sum."""
        mine = self.model_dump()
        theirs = other.model_dump()
        return MicronutrientData(**{name: mine[name] + theirs[name] for name in mine})

    def scale(self, factor: float) -> "MicronutrientData":
        """Multiply every nutrient by a non-negative factor."""
        if factor < 0:
            raise ValueError(f"Scale factor must be non-negative, got {factor}")
        return MicronutrientData(**{name: value * factor for name, value in self.model_dump().items()})

    def __add__(self, other: "MicronutrientData") -> "MicronutrientData":
        return self.add(other)

    def nonzero(self) -> Dict[str, float]:
        return {name: value for name, value in self.model_dump().items() if value > 0}


class MicronutrientSupplement(BaseModel):
    """A supplement the subject takes daily."""
    name: str = Field(..., min_length=1, examples=["Vitamin D"])
    category: SupplementCategory = SupplementCategory.OTHER
    dosage: float = Field(..., gt=0, examples=[1000])
    unit: DosageUnit = Field(default=DosageUnit.MG, examples=["iu"])
    is_active: bool = True

    model_config = FROZEN


class MicronutrientProfile(BaseModel):
    """Subject attributes that determine micronutrient requirements."""
    user_id: Optional[str] = None
    age: int = Field(..., ge=1, le=120, examples=[34])
    gender: str = Field(default="O", pattern="^[MFO]$", description="M, F or O", examples=["F"])
    weight: Optional[float] = Field(default=None, gt=0, description="Body weight in kg", examples=[62.0])
    disease_activity: DiseaseActivity = DiseaseActivity.REMISSION
    supplements: List[MicronutrientSupplement] = Field(default_factory=list)

    model_config = FROZEN


class FoodMatchResult(BaseModel):
    """How a food description was resolved and what it contributes."""
    description: str
    matched_name: Optional[str] = None
    match_type: FoodMatchType
    category: str
    serving: float = Field(..., gt=0)
    micronutrients: MicronutrientData

    model_config = FROZEN


class DailyMicronutrientIntake(BaseModel):
    """Micronutrient totals for one day with per-source breakdown."""
    day: Optional[date] = None
    total_intake: MicronutrientData
    food_sources: Dict[str, MicronutrientData] = Field(default_factory=dict)
    supplement_sources: Dict[str, MicronutrientData] = Field(default_factory=dict)
    unmatched_foods: List[str] = Field(default_factory=list)

    model_config = FROZEN


class MicronutrientDeficiency(BaseModel):
    nutrient: str
    current_level: float
    required_level: float
    unit: str
    shortfall_percent: float = Field(..., ge=0, le=100)
    severity: DeficiencySeverity

    model_config = FROZEN


class MicronutrientExcess(BaseModel):
    nutrient: str
    current_level: float
    upper_limit: float
    unit: str

    model_config = FROZEN


class MicronutrientAnalysis(BaseModel):
    """Deficiencies, excesses and per-nutrient status against requirements."""
    deficiencies: List[MicronutrientDeficiency] = Field(default_factory=list)
    excesses: List[MicronutrientExcess] = Field(default_factory=list)
    statuses: Dict[str, NutrientStatus] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)

    model_config = FROZEN


# ============================================================================
# API PAYLOADS
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str = "1.0.0"
    model_ready: bool = False

    model_config = {"protected_namespaces": ()}


class PredictRequest(BaseModel):
    """
    Flare prediction request.

    Journal entries are accepted as raw objects so that one malformed entry
    is skipped instead of rejecting the whole request.
    """
    journal_entries: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = Field(default=None, description="Evaluation time (defaults to server time)")
    lifestyle: Optional[LifestyleFeatures] = None
    medication: Optional[MedicationFeatures] = None
    supplements: List[MicronutrientSupplement] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "journal_entries": [
                        {
                            "entry_date": "2024-03-15",
                            "meals": [{"meal_type": "dinner", "description": "spicy fried chicken"}],
                            "symptoms": [{"type": "diarrhea", "severity": 7}],
                            "hydration": 1200
                        }
                    ],
                    "now": "2024-03-16T09:00:00"
                }
            ]
        }
    }


class MicronutrientRequest(BaseModel):
    """Resolve one food description into micronutrients."""
    food_description: str = Field(..., min_length=1, examples=["2 cups of white rice with sweet pudding"])
    serving: Optional[float] = Field(default=None, gt=0, description="Servings (overrides the parsed amount)")


class DailyIntakeRequest(BaseModel):
    """Aggregate daily micronutrient intake and analyze it for a profile."""
    journal_entries: List[Dict[str, Any]] = Field(default_factory=list)
    profile: MicronutrientProfile
    day: Optional[date] = Field(default=None, description="Only aggregate entries from this day")


class DailyIntakeResponse(BaseModel):
    intake: DailyMicronutrientIntake
    analysis: MicronutrientAnalysis


class ModelInfoResponse(BaseModel):
    """Scorer configuration and learned model availability."""
    model_version: str
    model_path: str
    model_ready: bool
    rule_weights: Dict[str, float]
    risk_thresholds: Dict[str, float]
    rule_based_confidence: float
    keyword_table_version: str

    model_config = {"protected_namespaces": ()}


def parse_journal_entries(entries: Iterable[Any]) -> List[JournalEntry]:
    """
    Validate journal records, skipping malformed ones.

    Args:
        entries: JournalEntry instances or decoded JSON objects

    Returns:
        Valid entries in their original order
    """
    parsed = []
    for index, raw in enumerate(entries):
        if isinstance(raw, JournalEntry):
            parsed.append(raw)
            continue
        if not isinstance(raw, dict):
            logger.warning(f"Skipping journal entry {index}: expected an object, got {type(raw).__name__}")
            continue
        try:
            parsed.append(JournalEntry.model_validate(raw))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping malformed journal entry {index}: {e}")
    return parsed
