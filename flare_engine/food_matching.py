"""
Keyword-based food matching: trigger foods, inflammatory foods and FODMAP level.

Matching is case-insensitive substring search against small versioned keyword
tables, longest keyword first, with an LRU cache for repeated descriptions.
"""
from functools import lru_cache
from typing import Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)

KEYWORD_TABLE_VERSION = "2024.1"


# ============================================================================
# KEYWORD TABLES
# ============================================================================

TRIGGER_FOOD_KEYWORDS = (
    "dairy",
    "gluten",
    "nuts",
    "seeds",
    "spicy",
    "fried",
    "processed",
)

INFLAMMATORY_FOOD_KEYWORDS = (
    "red meat",
    "processed meat",
    "refined sugar",
    "trans fat",
)

HIGH_FODMAP_KEYWORDS = (
    "apple",
    "pear",
    "mango",
    "watermelon",
    "cherries",
    "dried fruit",
    "onion",
    "garlic",
    "leek",
    "asparagus",
    "artichoke",
    "cauliflower",
    "mushroom",
    "beans",
    "lentils",
    "chickpeas",
    "hummus",
    "wheat",
    "rye",
    "barley",
    "milk",
    "ice cream",
    "yogurt",
    "soft cheese",
    "honey",
    "agave",
    "high fructose corn syrup",
    "sorbitol",
    "xylitol",
)

MODERATE_FODMAP_KEYWORDS = (
    "avocado",
    "sweet potato",
    "broccoli",
    "cabbage",
    "celery",
    "almond",
    "pasta",
    "bread",
)

FODMAP_HIGH = "high"
FODMAP_MODERATE = "moderate"
FODMAP_LOW = "low"


def normalize_food_text(text: str) -> str:
    """Lowercase, strip and collapse whitespace."""
    return " ".join(text.lower().split())


@lru_cache(maxsize=2048)
def find_keywords(text: str, keywords: Tuple[str, ...]) -> Tuple[str, ...]:
    """
    Find every keyword contained in a food description.

    Keywords are tried longest first and each matched span is consumed, so
    "processed meat" is reported once rather than also as "processed".

    Args:
        text: Free-text food description
        keywords: Keyword table to search

    Returns:
        Tuple of matched keywords, longest first
    """
    remaining = normalize_food_text(text)
    matches = []
    for keyword in sorted(keywords, key=lambda k: (-len(k), k)):
        if keyword in remaining:
            matches.append(keyword)
            remaining = remaining.replace(keyword, " | ")
    return tuple(matches)


class KeywordFoodMatcher:
    """
    Classifies meal descriptions against the trigger, inflammatory and FODMAP
    keyword tables. Tables can be swapped for testing or localisation.
    """

    def __init__(
        self,
        trigger_keywords: Tuple[str, ...] = TRIGGER_FOOD_KEYWORDS,
        inflammatory_keywords: Tuple[str, ...] = INFLAMMATORY_FOOD_KEYWORDS,
        high_fodmap_keywords: Tuple[str, ...] = HIGH_FODMAP_KEYWORDS,
        moderate_fodmap_keywords: Tuple[str, ...] = MODERATE_FODMAP_KEYWORDS,
        version: str = KEYWORD_TABLE_VERSION,
    ):
        self.trigger_keywords = tuple(k.lower() for k in trigger_keywords)
        self.inflammatory_keywords = tuple(k.lower() for k in inflammatory_keywords)
        self.high_fodmap_keywords = tuple(k.lower() for k in high_fodmap_keywords)
        self.moderate_fodmap_keywords = tuple(k.lower() for k in moderate_fodmap_keywords)
        self.version = version

    def trigger_matches(self, description: str) -> Tuple[str, ...]:
        return find_keywords(description, self.trigger_keywords)

    def inflammatory_matches(self, description: str) -> Tuple[str, ...]:
        return find_keywords(description, self.inflammatory_keywords)

    def is_trigger(self, description: str) -> bool:
        return bool(self.trigger_matches(description))

    def is_inflammatory(self, description: str) -> bool:
        return bool(self.inflammatory_matches(description))

    def fodmap_level(self, description: str) -> str:
        """Return 'high', 'moderate' or 'low' for a meal description."""
        if find_keywords(description, self.high_fodmap_keywords):
            return FODMAP_HIGH
        if find_keywords(description, self.moderate_fodmap_keywords):
            return FODMAP_MODERATE
        return FODMAP_LOW

    def classify(self, descriptions: List[str]) -> Dict[str, int]:
        """
        Count trigger, inflammatory and high-FODMAP meals in a list.

        Args:
            descriptions: Meal descriptions

        Returns:
            Dictionary with 'trigger', 'inflammatory' and 'high_fodmap' counts
        """
        counts = {"trigger": 0, "inflammatory": 0, "high_fodmap": 0}
        for description in descriptions:
            if self.is_trigger(description):
                counts["trigger"] += 1
            if self.is_inflammatory(description):
                counts["inflammatory"] += 1
            if self.fodmap_level(description) == FODMAP_HIGH:
                counts["high_fodmap"] += 1

        logger.debug(f"Keyword classification of {len(descriptions)} meals: {counts}")
        return counts

