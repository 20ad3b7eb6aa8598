"""
Serving-size parsing: free-text amounts such as "2 cups of", "1 1/2 tbsp",
"250ml" or "half a bowl" converted to servings.

One serving is one cup (240 ml). Weights assume water density (240 g per
cup) and count units such as bowls or slices use fixed conversion factors.
"""
import re
from typing import NamedTuple, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

DEFAULT_SERVING = 1.0
ML_PER_CUP = 240.0
GRAMS_PER_CUP = 240.0


# ============================================================================
# UNIT TABLES (value = cups per unit)
# ============================================================================

VOLUME_UNITS = {
    "cup": 1.0, "cups": 1.0, "c": 1.0,
    "tablespoon": 1 / 16, "tablespoons": 1 / 16, "tbsp": 1 / 16, "tbs": 1 / 16,
    "teaspoon": 1 / 48, "teaspoons": 1 / 48, "tsp": 1 / 48,
    "ml": 1 / ML_PER_CUP, "milliliter": 1 / ML_PER_CUP, "milliliters": 1 / ML_PER_CUP,
    "millilitre": 1 / ML_PER_CUP, "millilitres": 1 / ML_PER_CUP,
    "l": 1000 / ML_PER_CUP, "liter": 1000 / ML_PER_CUP, "liters": 1000 / ML_PER_CUP,
    "litre": 1000 / ML_PER_CUP, "litres": 1000 / ML_PER_CUP,
    "fl oz": 1 / 8, "fluid ounce": 1 / 8, "fluid ounces": 1 / 8,
    "pint": 2.0, "pints": 2.0,
    "quart": 4.0, "quarts": 4.0,
}

WEIGHT_UNITS = {
    "g": 1 / GRAMS_PER_CUP, "gram": 1 / GRAMS_PER_CUP, "grams": 1 / GRAMS_PER_CUP,
    "kg": 1000 / GRAMS_PER_CUP, "kilogram": 1000 / GRAMS_PER_CUP, "kilograms": 1000 / GRAMS_PER_CUP,
    "oz": 28.35 / GRAMS_PER_CUP, "ounce": 28.35 / GRAMS_PER_CUP, "ounces": 28.35 / GRAMS_PER_CUP,
    "lb": 453.6 / GRAMS_PER_CUP, "lbs": 453.6 / GRAMS_PER_CUP,
    "pound": 453.6 / GRAMS_PER_CUP, "pounds": 453.6 / GRAMS_PER_CUP,
}

COUNT_UNITS = {
    "serving": 1.0, "servings": 1.0, "portion": 1.0, "portions": 1.0,
    "bowl": 1.5, "bowls": 1.5,
    "plate": 2.0, "plates": 2.0,
    "piece": 1.0, "pieces": 1.0, "item": 1.0, "items": 1.0, "whole": 1.0,
    "slice": 0.5, "slices": 0.5,
    "handful": 0.5, "handfuls": 0.5,
    "glass": 1.0, "glasses": 1.0,
    "mug": 1.0, "mugs": 1.0,
    "scoop": 0.5, "scoops": 0.5,
    "small": 0.75, "medium": 1.0, "large": 1.5,
}

UNIT_FACTORS = {**VOLUME_UNITS, **WEIGHT_UNITS, **COUNT_UNITS}

NUMBER_WORDS = {
    "a": 1.0, "an": 1.0, "one": 1.0, "two": 2.0, "three": 3.0, "four": 4.0,
    "five": 5.0, "six": 6.0, "seven": 7.0, "eight": 8.0, "nine": 9.0,
    "ten": 10.0, "eleven": 11.0, "twelve": 12.0, "half": 0.5, "quarter": 0.25,
    "couple": 2.0, "few": 3.0,
}

UNICODE_FRACTIONS = {"½": 0.5, "¼": 0.25, "¾": 0.75, "⅓": 1 / 3, "⅔": 2 / 3}

_NUMBER_PATTERN = re.compile(
    r"^(?P<whole>\d+)\s+(?P<num>\d+)/(?P<den>\d+)"  # 1 1/2
    r"|^(?P<fnum>\d+)/(?P<fden>\d+)"                # 1/2
    r"|^(?P<dec>\d+(?:\.\d+)?)"                     # 2, 1.5
    r"|^(?P<uni>[½¼¾⅓⅔])"
)
_FILLER_WORDS = ("of", "a", "an")
# Only read as units after an explicit quantity ("whole milk" is not an amount)
_UNITS_REQUIRING_QUANTITY = frozenset({"whole", "c", "l", "g"})
_APPROXIMATION_WORDS = ("about", "approx", "approximately", "around", "roughly", "~")


class ParsedServing(NamedTuple):
    """Result of parsing a leading amount off a food description."""
    quantity: Optional[float]
    unit: Optional[str]
    servings: float
    remainder: str


def _parse_number(text: str) -> Tuple[Optional[float], str]:
    """Consume a leading number (digits, fraction or number word)."""
    match = _NUMBER_PATTERN.match(text)
    if match:
        if match.group("whole"):
            den = float(match.group("den"))
            value = float(match.group("whole")) + (float(match.group("num")) / den if den else 0.0)
        elif match.group("fnum"):
            den = float(match.group("fden"))
            value = float(match.group("fnum")) / den if den else 0.0
        elif match.group("dec"):
            value = float(match.group("dec"))
        else:
            value = UNICODE_FRACTIONS[match.group("uni")]
        return value, text[match.end():].strip()

    words = text.split(" ", 1)
    if words[0] in NUMBER_WORDS:
        value = NUMBER_WORDS[words[0]]
        rest = words[1] if len(words) > 1 else ""
        # "a couple of", "a few", "half a"
        rest_words = rest.split(" ", 1)
        if words[0] in ("a", "an") and rest_words[0] in ("couple", "few", "half", "quarter"):
            value = NUMBER_WORDS[rest_words[0]]
            rest = rest_words[1] if len(rest_words) > 1 else ""
        elif words[0] in ("half", "quarter") and rest_words[0] in ("a", "an"):
            rest = rest_words[1] if len(rest_words) > 1 else ""
        return value, rest.strip()

    return None, text


def _parse_unit(text: str) -> Tuple[Optional[str], str]:
    """Consume a leading unit, trying two-word units first."""
    words = text.split()
    if len(words) >= 2:
        pair = f"{words[0]} {words[1]}".rstrip(".")
        if pair in UNIT_FACTORS:
            return pair, " ".join(words[2:])
    if words:
        first = words[0].rstrip(".")
        if first in UNIT_FACTORS:
            return first, " ".join(words[1:])
    return None, text


def _strip_fillers(text: str) -> str:
    words = text.split()
    while words and words[0] in _FILLER_WORDS:
        words = words[1:]
    return " ".join(words)


def unit_factor(unit: Optional[str]) -> Optional[float]:
    """Cups per unit, or None for an unrecognized unit."""
    if not unit:
        return None
    return UNIT_FACTORS.get(" ".join(unit.lower().split()).rstrip("."))


def parse_serving(description: str) -> ParsedServing:
    """
    Parse the leading amount of a food description.

    Args:
        description: Free text such as "2 cups of white rice with sweet pudding"

    Returns:
        ParsedServing with the numeric quantity, the unit, the amount in
        servings (cups) and the remaining food text. Without a recognizable
        amount the serving defaults to 1.0 and the text is returned whole.
    """
    text = " ".join(description.lower().split())
    for word in _APPROXIMATION_WORDS:
        if text.startswith(word + " "):
            text = text[len(word) + 1:]
            break

    quantity, rest = _parse_number(text)
    # "a couple of slices"
    if quantity is not None and rest.startswith("of "):
        rest = rest[3:]

    unit, unit_rest = _parse_unit(rest)
    if unit and quantity is None and unit in _UNITS_REQUIRING_QUANTITY:
        unit = None
    else:
        rest = unit_rest
    remainder = _strip_fillers(rest) if (quantity is not None or unit) else text

    if quantity is None and unit is None:
        return ParsedServing(None, None, DEFAULT_SERVING, text)

    factor = UNIT_FACTORS[unit] if unit else 1.0
    amount = quantity if quantity is not None else 1.0
    servings = amount * factor
    if servings <= 0:
        logger.warning(f"Non-positive serving parsed from '{description}', using default")
        servings = DEFAULT_SERVING

    return ParsedServing(amount, unit, servings, remainder or text)


def convert_to_servings(size: Optional[float], unit: Optional[str]) -> float:
    """
    Convert an explicit serving size and unit to servings.

    Unknown units treat the size as a count of servings.
    """
    if size is None or size <= 0:
        return DEFAULT_SERVING
    factor = unit_factor(unit)
    if factor is None:
        if unit:
            logger.debug(f"Unrecognized serving unit '{unit}', treating size as servings")
        return float(size)
    return float(size) * factor
