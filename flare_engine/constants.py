"""
Constants for flare-risk scoring, classification and feature extraction.

Every coefficient used by the rule engine lives here as a named value so the
scorer, the classifier, the recommendation engine and the API all read the
same numbers. The weights and per-symptom multipliers are provisional
heuristics, not clinically validated coefficients.
"""

# ============================================================================
# RULE ENGINE WEIGHTS
# ============================================================================

NUTRITION_WEIGHT = 0.30
SYMPTOM_WEIGHT = 0.40
LIFESTYLE_WEIGHT = 0.20
MEDICATION_WEIGHT = 0.10

# Contribution map keys (exactly these four, in this order)
FACTOR_NUTRITION = 'nutrition'
FACTOR_SYMPTOMS = 'symptoms'
FACTOR_LIFESTYLE = 'lifestyle'
FACTOR_MEDICATION = 'medication'

CONTRIBUTING_FACTORS = (
    FACTOR_NUTRITION,
    FACTOR_SYMPTOMS,
    FACTOR_LIFESTYLE,
    FACTOR_MEDICATION,
)

RULE_WEIGHTS = {
    FACTOR_NUTRITION: NUTRITION_WEIGHT,
    FACTOR_SYMPTOMS: SYMPTOM_WEIGHT,
    FACTOR_LIFESTYLE: LIFESTYLE_WEIGHT,
    FACTOR_MEDICATION: MEDICATION_WEIGHT,
}

WEIGHT_SUM_TOLERANCE = 1e-9

# Rule-based confidence is fixed and lower than a learned model's
RULE_BASED_CONFIDENCE = 0.7

MODEL_SOURCE_RULE_BASED = 'rule_based'
MODEL_SOURCE_LEARNED = 'learned_model'

# ============================================================================
# RULE ENGINE THRESHOLDS
# ============================================================================

# Nutrition
FIBER_LOW_THRESHOLD = 10.0          # g/day
FIBER_HIGH_THRESHOLD = 50.0         # g/day
FIBER_OUT_OF_RANGE_RISK = 0.2
TRIGGER_FOOD_RISK = 0.1             # per trigger food
INFLAMMATORY_FOOD_RISK = 0.05       # per inflammatory food
FODMAP_RISK_FACTOR = 0.15
HYDRATION_LOW_THRESHOLD = 1500.0    # ml/day
LOW_HYDRATION_RISK = 0.1

# Symptoms
SEVERITY_HIGH_THRESHOLD = 7.0
SEVERITY_HIGH_RISK = 0.4
SEVERITY_MODERATE_THRESHOLD = 5.0
SEVERITY_MODERATE_RISK = 0.2
BLOOD_IN_STOOL_RISK = 0.3
URGENCY_THRESHOLD = 7.0
URGENCY_RISK = 0.2
ABDOMINAL_PAIN_THRESHOLD = 6.0
ABDOMINAL_PAIN_RISK = 0.15

# Lifestyle
STRESS_THRESHOLD = 7.0
STRESS_RISK = 0.3
SLEEP_QUALITY_THRESHOLD = 5.0
SLEEP_QUALITY_RISK = 0.2
SLEEP_DURATION_THRESHOLD = 6.0      # hours
SLEEP_DURATION_RISK = 0.15
ALCOHOL_THRESHOLD = 2.0             # units/day
ALCOHOL_RISK = 0.1

# Medication
ADHERENCE_THRESHOLD = 0.8
POOR_ADHERENCE_RISK = 0.4
MEDICATION_CHANGE_RISK = 0.2
SIDE_EFFECT_RISK_FACTOR = 0.1

# ============================================================================
# RISK CLASSIFICATION
# ============================================================================

MODERATE_RISK_THRESHOLD = 0.3
HIGH_RISK_THRESHOLD = 0.6
VERY_HIGH_RISK_THRESHOLD = 0.8

# Predicted onset buckets: (exclusive lower bound on probability, hours ahead)
ONSET_WITHIN_24H_THRESHOLD = 0.7
ONSET_WITHIN_3D_THRESHOLD = 0.5
ONSET_WITHIN_7D_THRESHOLD = 0.3

ONSET_BUCKETS = (
    (ONSET_WITHIN_24H_THRESHOLD, 24),
    (ONSET_WITHIN_3D_THRESHOLD, 3 * 24),
    (ONSET_WITHIN_7D_THRESHOLD, 7 * 24),
)

NEXT_PREDICTION_INTERVAL_HOURS = 24

# Sub-score at which a contributing factor earns its own recommendation
FACTOR_RECOMMENDATION_THRESHOLD = 0.3

# ============================================================================
# FEATURE EXTRACTION WINDOWS
# ============================================================================

NUTRITION_WINDOW = 7        # entries
SYMPTOM_WINDOW = 3          # entries
LIFESTYLE_WINDOW = 7        # entries
FLARE_PATTERN_DAYS = 30
STRESS_HISTORY_DAYS = 30

DEFAULT_DAYS_SINCE_LAST_FLARE = 30.0

# ============================================================================
# SYMPTOM SEVERITY WEIGHTS
# ============================================================================

# A tag-only symptom (no recorded severity) counts as weight * SEVERITY_SCALE
SEVERITY_SCALE = 10.0

SYMPTOM_SEVERITY_WEIGHTS = {
    'abdominal_pain': 0.5,
    'stomach_pain': 0.5,
    'pain': 0.5,
    'diarrhea': 0.7,
    'constipation': 0.6,
    'bloating': 0.5,
    'fatigue': 0.4,
    'urgency': 0.6,
    'blood_in_stool': 0.8,
}
GENERIC_SYMPTOM_WEIGHT = 0.3

# Symptom tag -> SymptomFeatures field
SYMPTOM_FEATURE_FIELDS = {
    'abdominal_pain': 'abdominal_pain',
    'stomach_pain': 'abdominal_pain',
    'pain': 'abdominal_pain',
    'diarrhea': 'diarrhea',
    'constipation': 'constipation',
    'bloating': 'bloating',
    'fatigue': 'fatigue',
    'urgency': 'urgency',
}

BLOOD_IN_STOOL = 'blood_in_stool'
INCOMPLETE_EVACUATION = 'incomplete_evacuation'
STRESS_SYMPTOM = 'stress'

# Entries containing any of these symptom tags count as flare-like
FLARE_SYMPTOMS = frozenset({'abdominal_pain', 'diarrhea', 'blood_in_stool'})

# ============================================================================
# PLACEHOLDER DEFAULTS (no journal source exists for these fields)
# ============================================================================

DEFAULT_STRESS_LEVEL = 5.0
DEFAULT_SLEEP_QUALITY = 7.0
DEFAULT_SLEEP_DURATION = 7.5
DEFAULT_EXERCISE_LEVEL = 5.0
DEFAULT_EXERCISE_TYPE = 'none'
DEFAULT_ALCOHOL_CONSUMPTION = 0.0
DEFAULT_CAFFEINE_INTAKE = 1.0
DEFAULT_WATER_INTAKE = 2000.0
DEFAULT_MEAL_REGULARITY = 0.7

DEFAULT_MEDICATION_ADHERENCE = 0.9
DEFAULT_MEDICATION_TYPES = {'anti_inflammatory': True}
DEFAULT_DOSAGE_COMPLIANCE = 0.95
DEFAULT_MEDICATION_EFFECTIVENESS = 0.8

DEFAULT_TEMPERATURE = 20.0
DEFAULT_HUMIDITY = 50.0
DEFAULT_AIR_QUALITY = 50.0
UNKNOWN = 'unknown'

# Northern-hemisphere meteorological seasons
SEASONS_BY_MONTH = {
    12: 'winter', 1: 'winter', 2: 'winter',
    3: 'spring', 4: 'spring', 5: 'spring',
    6: 'summer', 7: 'summer', 8: 'summer',
    9: 'fall', 10: 'fall', 11: 'fall',
}
SEASONS = ('winter', 'spring', 'summer', 'fall')
