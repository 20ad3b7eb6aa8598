"""
Micronutrient aggregation and deficiency analysis.

Resolves free-text meals against the food reference tables (compound dish,
then individual foods, then a broad category estimate), scales by the parsed
serving, sums per day together with active supplements and compares the
result with IBD-adjusted requirements.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from .food_matching import normalize_food_text
from .food_reference import FoodReference
from .schemas import (
    DailyMicronutrientIntake,
    DeficiencySeverity,
    DiseaseActivity,
    DosageUnit,
    FoodMatchResult,
    FoodMatchType,
    Meal,
    MicronutrientAnalysis,
    MicronutrientData,
    MicronutrientDeficiency,
    MicronutrientExcess,
    MicronutrientProfile,
    MicronutrientSupplement,
    NutrientStatus,
    parse_journal_entries,
)
from .serving_size import convert_to_servings, parse_serving

logger = logging.getLogger(__name__)


# ============================================================================
# UNITS
# ============================================================================

MCG = "mcg"
MG = "mg"
G = "g"
BILLION_CFU = "billion_cfu"

NUTRIENT_UNITS = {
    "vitamin_a": MCG, "vitamin_b1": MG, "vitamin_b2": MG, "vitamin_b3": MG,
    "vitamin_b5": MG, "vitamin_b6": MG, "vitamin_b7": MCG, "vitamin_b9": MCG,
    "vitamin_b12": MCG, "vitamin_c": MG, "vitamin_d": MCG, "vitamin_e": MG,
    "vitamin_k": MCG,
    "calcium": MG, "iron": MG, "magnesium": MG, "phosphorus": MG, "potassium": MG,
    "sodium": MG, "zinc": MG, "copper": MG, "manganese": MG, "selenium": MCG,
    "iodine": MCG, "chromium": MCG, "molybdenum": MCG, "boron": MG, "silicon": MG,
    "vanadium": MCG,
    "omega3": G, "glutamine": G, "probiotics": BILLION_CFU, "prebiotics": G,
}

# Mass units expressed in mg
MASS_IN_MG = {MCG: 0.001, MG: 1.0, G: 1000.0}

# International units, in the nutrient's own unit
IU_CONVERSIONS = {
    "vitamin_d": 0.025,   # mcg
    "vitamin_a": 0.3,     # mcg RAE
    "vitamin_e": 0.67,    # mg
}

# Supplement name fragments -> nutrient (longest fragment wins)
SUPPLEMENT_NUTRIENTS = {
    "vitamin a": "vitamin_a",
    "vitamin b1": "vitamin_b1",
    "thiamine": "vitamin_b1",
    "vitamin b2": "vitamin_b2",
    "riboflavin": "vitamin_b2",
    "niacin": "vitamin_b3",
    "vitamin b6": "vitamin_b6",
    "biotin": "vitamin_b7",
    "folate": "vitamin_b9",
    "folic acid": "vitamin_b9",
    "vitamin b12": "vitamin_b12",
    "b12": "vitamin_b12",
    "cobalamin": "vitamin_b12",
    "vitamin c": "vitamin_c",
    "vitamin d": "vitamin_d",
    "vitamin d3": "vitamin_d",
    "vitamin e": "vitamin_e",
    "vitamin k": "vitamin_k",
    "calcium": "calcium",
    "iron": "iron",
    "ferrous": "iron",
    "magnesium": "magnesium",
    "potassium": "potassium",
    "zinc": "zinc",
    "copper": "copper",
    "selenium": "selenium",
    "iodine": "iodine",
    "chromium": "chromium",
    "omega-3": "omega3",
    "omega 3": "omega3",
    "fish oil": "omega3",
    "glutamine": "glutamine",
    "probiotic": "probiotics",
    "prebiotic": "prebiotics",
    "inulin": "prebiotics",
}


# ============================================================================
# REQUIREMENTS
# ============================================================================

# Adult daily reference intakes: (male, female)
REFERENCE_INTAKES = {
    "vitamin_a": (900, 700),
    "vitamin_b1": (1.2, 1.1),
    "vitamin_b2": (1.3, 1.1),
    "vitamin_b3": (16, 14),
    "vitamin_b5": (5, 5),
    "vitamin_b6": (1.3, 1.3),
    "vitamin_b7": (30, 30),
    "vitamin_b9": (400, 400),
    "vitamin_b12": (2.4, 2.4),
    "vitamin_c": (90, 75),
    "vitamin_d": (15, 15),
    "vitamin_e": (15, 15),
    "vitamin_k": (120, 90),
    "calcium": (1000, 1000),
    "iron": (8, 18),
    "magnesium": (420, 320),
    "phosphorus": (700, 700),
    "potassium": (3400, 2600),
    "sodium": (1500, 1500),
    "zinc": (11, 8),
    "copper": (0.9, 0.9),
    "manganese": (2.3, 1.8),
    "selenium": (55, 55),
    "iodine": (150, 150),
    "chromium": (35, 25),
    "molybdenum": (45, 45),
    "omega3": (1.6, 1.1),
    "glutamine": (5, 5),
    "probiotics": (1, 1),
    "prebiotics": (5, 5),
}

# No established requirement; tracked but never flagged
UNRATED_NUTRIENTS = ("boron", "silicon", "vanadium")

# Malabsorption and losses raise needs for these with disease activity
IBD_SENSITIVE_NUTRIENTS = (
    "vitamin_d", "vitamin_b12", "vitamin_b9", "iron", "zinc",
    "calcium", "magnesium", "omega3", "glutamine",
)

IBD_BASELINE_ADJUSTMENTS = {"vitamin_d": 1.5}

DISEASE_ACTIVITY_MULTIPLIERS = {
    DiseaseActivity.REMISSION: 1.0,
    DiseaseActivity.MILD: 1.1,
    DiseaseActivity.MODERATE: 1.25,
    DiseaseActivity.SEVERE: 1.5,
}

SAFE_UPPER_LIMITS = {
    "vitamin_a": 3000,
    "vitamin_d": 100,
    "calcium": 2500,
    "iron": 45,
    "magnesium": 700,
    "zinc": 40,
    "selenium": 400,
}

# Shortfall percentage thresholds, checked from most to least severe
DEFICIENCY_SEVERITY_THRESHOLDS = (
    (75.0, DeficiencySeverity.CRITICAL),
    (50.0, DeficiencySeverity.SEVERE),
    (25.0, DeficiencySeverity.MODERATE),
)

OPTIMAL_RATIO = 1.2
SUBOPTIMAL_RATIO = 0.7

NUTRIENT_FOOD_SOURCES = {
    "vitamin_d": "salmon, sardines, eggs, fortified milk",
    "vitamin_b12": "salmon, beef, eggs, dairy",
    "vitamin_b9": "spinach, lentils, white rice, avocado",
    "iron": "lean beef, spinach, lentils, tofu",
    "zinc": "beef, pork, pumpkin seeds, chickpeas",
    "calcium": "kefir, yogurt, tofu, sardines",
    "magnesium": "spinach, quinoa, pumpkin seeds, almonds",
    "omega3": "salmon, sardines, chia seeds",
    "glutamine": "bone broth, chicken, turkey",
    "probiotics": "kefir, yogurt, sauerkraut",
    "prebiotics": "oats, banana, chia seeds",
    "potassium": "potato, banana, spinach",
    "vitamin_c": "bell pepper, orange, broccoli",
    "vitamin_a": "sweet potato, carrot, spinach",
}

# Grams of macronutrient per gram of food when nothing in the tables matches
KEYWORD_MACRO_ESTIMATES = {
    "protein": (
        (("chicken", "turkey", "fish"), 0.25),
        (("beef", "pork"), 0.26),
        (("egg",), 0.13),
        (("bean", "lentil"), 0.21),
    ),
    "fat": (
        (("avocado", "olive"), 0.15),
        (("nut", "seed"), 0.5),
        (("cheese", "milk"), 0.25),
    ),
    "fiber": (
        (("apple", "banana"), 0.03),
        (("broccoli", "spinach"), 0.04),
        (("bean", "lentil"), 0.08),
        (("oat", "whole grain"), 0.10),
    ),
}
DEFAULT_MACRO_ESTIMATES = {"protein": 0.1, "fat": 0.05, "fiber": 0.02}
GRAMS_PER_SERVING = 100.0


def nutrient_label(field: str) -> str:
    """'vitamin_b12' -> 'Vitamin B12', 'omega3' -> 'Omega-3'."""
    if field.startswith("vitamin_"):
        return "Vitamin " + field.split("_", 1)[1].upper()
    if field == "omega3":
        return "Omega-3"
    return field.replace("_", " ").title()


def deficiency_severity(shortfall_percent: float) -> DeficiencySeverity:
    for threshold, severity in DEFICIENCY_SEVERITY_THRESHOLDS:
        if shortfall_percent >= threshold:
            return severity
    return DeficiencySeverity.MILD


def nutrient_status(intake: float, requirement: float) -> NutrientStatus:
    if intake >= requirement * OPTIMAL_RATIO:
        return NutrientStatus.OPTIMAL
    if intake >= requirement:
        return NutrientStatus.ADEQUATE
    if intake >= requirement * SUBOPTIMAL_RATIO:
        return NutrientStatus.SUBOPTIMAL
    return NutrientStatus.DEFICIENT


def sum_micronutrients(values: Iterable[MicronutrientData]) -> MicronutrientData:
    total = MicronutrientData()
    for value in values:
        total = total.add(value)
    return total


class MicronutrientCalculator:
    """
    Resolves meals to micronutrients and aggregates daily intake.

    Args:
        reference: Food reference tables (built once at startup)
    """

    def __init__(self, reference: Optional[FoodReference] = None):
        self.reference = reference or FoodReference()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def match(self, text: str) -> Tuple[FoodMatchType, List[str], str]:
        """
        Resolve food text to table entries.

        Order: compound dish named in the text, individual foods named in
        the text, compound or individual whose name contains the text,
        then the keyword category.

        Returns:
            (match type, matched table names, category)
        """
        compound = self.reference.find_compound(text)
        if compound:
            return FoodMatchType.COMPOUND, [compound], self.reference.category_of(compound)

        individuals = self.reference.find_individuals(text)
        if individuals:
            return FoodMatchType.INDIVIDUAL, individuals, self.reference.category_of(individuals[0])

        compound = self.reference.find_compound_containing(text)
        if compound:
            return FoodMatchType.COMPOUND, [compound], self.reference.category_of(compound)

        individual = self.reference.find_individual_containing(text)
        if individual:
            return FoodMatchType.INDIVIDUAL, [individual], self.reference.category_of(individual)

        return FoodMatchType.CATEGORY, [], self.reference.categorize(text)

    def _per_serving(self, match_type: FoodMatchType, names: List[str], category: str) -> MicronutrientData:
        if match_type == FoodMatchType.COMPOUND:
            return self.reference.compound_micronutrients(names[0])
        if match_type == FoodMatchType.INDIVIDUAL:
            return sum_micronutrients(self.reference.individual_micronutrients(name) for name in names)
        return self.reference.category_estimate(category)

    def resolve(self, description: str, serving: Optional[float] = None) -> FoodMatchResult:
        """
        Micronutrients for a free-text food description.

        Args:
            description: e.g. "2 cups of white rice with sweet pudding"
            serving: Servings to use instead of the amount parsed from the text

        Returns:
            FoodMatchResult with the matched entry and scaled micronutrients
        """
        parsed = parse_serving(description)
        servings = serving if serving is not None else parsed.servings
        return self._resolve_text(description, parsed.remainder, servings)

    def resolve_meal(self, meal: Meal) -> FoodMatchResult:
        """Resolve a meal using its explicit serving fields when present."""
        if meal.serving_size is not None:
            servings = convert_to_servings(meal.serving_size, meal.serving_unit)
            text = parse_serving(meal.description).remainder
        elif meal.serving_description:
            servings = parse_serving(meal.serving_description).servings
            text = parse_serving(meal.description).remainder
        else:
            return self.resolve(meal.description)
        return self._resolve_text(meal.description, text, servings)

    def _resolve_text(self, description: str, text: str, servings: float) -> FoodMatchResult:
        match_type, names, category = self.match(text)
        nutrients = self._per_serving(match_type, names, category).scale(servings)

        if match_type == FoodMatchType.CATEGORY:
            logger.debug(f"No table match for '{description}', using '{category}' estimate")

        return FoodMatchResult(
            description=description,
            matched_name=" + ".join(names) if names else None,
            match_type=match_type,
            category=category,
            serving=servings,
            micronutrients=nutrients,
        )

    # ------------------------------------------------------------------
    # Macronutrients (feeds the nutrition feature group)
    # ------------------------------------------------------------------

    def estimate_macros(self, meal: Meal) -> Dict[str, float]:
        """
        Protein, fat and fiber (g) for a meal.

        Recorded values win; missing ones come from the food tables, or a
        keyword estimate when nothing in the tables matches.
        """
        recorded = {"protein": meal.protein, "fat": meal.fat, "fiber": meal.fiber}
        if all(value is not None for value in recorded.values()):
            return {name: float(value) for name, value in recorded.items()}

        if meal.serving_size is not None:
            servings = convert_to_servings(meal.serving_size, meal.serving_unit)
        elif meal.serving_description:
            servings = parse_serving(meal.serving_description).servings
        else:
            servings = parse_serving(meal.description).servings
        text = parse_serving(meal.description).remainder

        match_type, names, _category = self.match(text)
        if match_type == FoodMatchType.COMPOUND:
            estimated = self.reference.compound_macros(names[0])
        elif match_type == FoodMatchType.INDIVIDUAL:
            estimated = {"protein": 0.0, "fat": 0.0, "fiber": 0.0}
            for name in names:
                for field, amount in self.reference.individual_macros(name).items():
                    if field in estimated:
                        estimated[field] += amount
        else:
            estimated = self._keyword_macros(text)

        return {
            name: float(value) if value is not None else estimated[name] * servings
            for name, value in recorded.items()
        }

    @staticmethod
    def _keyword_macros(text: str) -> Dict[str, float]:
        normalized = normalize_food_text(text)
        estimates = {}
        for macro, rules in KEYWORD_MACRO_ESTIMATES.items():
            per_gram = DEFAULT_MACRO_ESTIMATES[macro]
            for keywords, value in rules:
                if any(keyword in normalized for keyword in keywords):
                    per_gram = value
                    break
            estimates[macro] = per_gram * GRAMS_PER_SERVING
        return estimates

    # ------------------------------------------------------------------
    # Supplements
    # ------------------------------------------------------------------

    def supplement_micronutrients(self, supplement: MicronutrientSupplement) -> MicronutrientData:
        """Convert a supplement dose into the nutrient's own unit."""
        name = normalize_food_text(supplement.name)
        field = None
        for fragment in sorted(SUPPLEMENT_NUTRIENTS, key=len, reverse=True):
            if fragment in name:
                field = SUPPLEMENT_NUTRIENTS[fragment]
                break
        if field is None:
            logger.warning(f"Unrecognized supplement '{supplement.name}', not counted")
            return MicronutrientData()

        amount = self.convert_dosage(supplement.dosage, supplement.unit, field)
        if amount is None:
            return MicronutrientData()
        return MicronutrientData(**{field: amount})

    @staticmethod
    def convert_dosage(dosage: float, unit: DosageUnit, field: str) -> Optional[float]:
        """
        Convert a dose to the unit used for `field`.

        Returns:
            Converted amount, or None when the unit does not apply
        """
        target = NUTRIENT_UNITS[field]

        if unit == DosageUnit.IU:
            factor = IU_CONVERSIONS.get(field)
            if factor is None:
                logger.warning(f"IU dosage is not defined for {field}")
                return None
            return dosage * factor

        if target == BILLION_CFU:
            if unit != DosageUnit.CFU_BILLION:
                logger.warning(f"Probiotic dosage given in {unit.value}, assuming billion CFU")
            return dosage

        if unit == DosageUnit.CFU_BILLION:
            logger.warning(f"CFU dosage is not defined for {field}")
            return None

        return dosage * MASS_IN_MG[unit.value] / MASS_IN_MG[target]

    # ------------------------------------------------------------------
    # Daily intake
    # ------------------------------------------------------------------

    def daily_intake(
        self,
        entries: Iterable[Any],
        supplements: Iterable[MicronutrientSupplement] = (),
        day: Optional[date] = None,
    ) -> DailyMicronutrientIntake:
        """
        Sum micronutrients over every meal in the entries plus active supplements.

        Args:
            entries: Journal entries (objects or raw dicts)
            supplements: Supplements taken daily
            day: If given, only entries on this date are counted

        Returns:
            DailyMicronutrientIntake with totals and per-source breakdown
        """
        journal = parse_journal_entries(entries)
        if day is not None:
            journal = [entry for entry in journal if entry.timestamp.date() == day]

        food_sources: Dict[str, MicronutrientData] = {}
        unmatched: List[str] = []
        for entry in journal:
            for meal in entry.meals:
                result = self.resolve_meal(meal)
                key = meal.description
                food_sources[key] = food_sources[key].add(result.micronutrients) if key in food_sources \
                    else result.micronutrients
                if result.match_type == FoodMatchType.CATEGORY:
                    unmatched.append(meal.description)

        supplement_sources: Dict[str, MicronutrientData] = {}
        for supplement in supplements:
            if not supplement.is_active:
                continue
            data = self.supplement_micronutrients(supplement)
            supplement_sources[supplement.name] = (
                supplement_sources[supplement.name].add(data) if supplement.name in supplement_sources else data
            )

        total = sum_micronutrients(list(food_sources.values()) + list(supplement_sources.values()))
        logger.info(
            f"Aggregated micronutrients from {len(food_sources)} foods and "
            f"{len(supplement_sources)} supplements"
        )
        return DailyMicronutrientIntake(
            day=day,
            total_intake=total,
            food_sources=food_sources,
            supplement_sources=supplement_sources,
            unmatched_foods=unmatched,
        )

    # ------------------------------------------------------------------
    # Requirements and analysis
    # ------------------------------------------------------------------

    @staticmethod
    def requirements(profile: MicronutrientProfile) -> MicronutrientData:
        """
        Daily requirements adjusted for age, gender and disease activity.

        Gender 'O' uses the mean of the male and female reference values.
        """
        values = {}
        for field, (male, female) in REFERENCE_INTAKES.items():
            if profile.gender == "M":
                base = male
            elif profile.gender == "F":
                base = female
            else:
                base = (male + female) / 2
            values[field] = float(base)

        if profile.age > 50:
            values["vitamin_b6"] = 1.7 if profile.gender == "M" else 1.5
            if profile.gender == "F":
                values["iron"] = 8.0
                values["calcium"] = 1200.0
        if profile.age > 70:
            values["vitamin_d"] = 20.0
            values["calcium"] = 1200.0

        multiplier = DISEASE_ACTIVITY_MULTIPLIERS[profile.disease_activity]
        for field in IBD_SENSITIVE_NUTRIENTS:
            values[field] *= IBD_BASELINE_ADJUSTMENTS.get(field, 1.0) * multiplier

        return MicronutrientData(**values)

    def analyze(self, intake: MicronutrientData, profile: MicronutrientProfile) -> MicronutrientAnalysis:
        """
        Compare intake with requirements.

        Args:
            intake: Total daily intake
            profile: Subject profile used to derive requirements

        Returns:
            MicronutrientAnalysis with deficiencies (most severe first),
            excesses over safe upper limits, per-nutrient status and
            recommendations
        """
        required = self.requirements(profile).model_dump()
        current = intake.model_dump()

        deficiencies = []
        statuses = {}
        for field, requirement in required.items():
            if field in UNRATED_NUTRIENTS or requirement <= 0:
                continue
            status = nutrient_status(current[field], requirement)
            statuses[field] = status
            if current[field] < requirement:
                shortfall = (requirement - current[field]) / requirement * 100
                deficiencies.append(MicronutrientDeficiency(
                    nutrient=field,
                    current_level=round(current[field], 3),
                    required_level=round(requirement, 3),
                    unit=NUTRIENT_UNITS[field],
                    shortfall_percent=round(shortfall, 1),
                    severity=deficiency_severity(shortfall),
                ))

        excesses = [
            MicronutrientExcess(
                nutrient=field,
                current_level=round(current[field], 3),
                upper_limit=float(limit),
                unit=NUTRIENT_UNITS[field],
            )
            for field, limit in SAFE_UPPER_LIMITS.items()
            if current[field] > limit
        ]

        deficiencies.sort(key=lambda d: -d.shortfall_percent)
        recommendations = self._recommendations(deficiencies, excesses)

        logger.info(f"Micronutrient analysis: {len(deficiencies)} deficiencies, {len(excesses)} excesses")
        return MicronutrientAnalysis(
            deficiencies=deficiencies,
            excesses=excesses,
            statuses=statuses,
            recommendations=recommendations,
        )

    @staticmethod
    def _recommendations(
        deficiencies: List[MicronutrientDeficiency],
        excesses: List[MicronutrientExcess],
    ) -> List[str]:
        recommendations = []
        for deficiency in deficiencies:
            if deficiency.severity == DeficiencySeverity.MILD:
                continue
            text = f"Increase {nutrient_label(deficiency.nutrient)}: {deficiency.shortfall_percent:.0f}% below target"
            sources = NUTRIENT_FOOD_SOURCES.get(deficiency.nutrient)
            if sources:
                text += f" (good sources: {sources})"
            if deficiency.severity in (DeficiencySeverity.SEVERE, DeficiencySeverity.CRITICAL):
                text += ". Discuss supplementation with your care team"
            recommendations.append(text)

        for excess in excesses:
            recommendations.append(
                f"Reduce {nutrient_label(excess.nutrient)}: intake exceeds the safe upper limit "
                f"of {excess.upper_limit:g} {excess.unit}"
            )
        return recommendations
