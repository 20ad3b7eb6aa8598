"""Tests unitarios para la clasificación de alimentos por palabras clave."""
import pytest

from flare_engine.food_matching import (
    FODMAP_HIGH,
    FODMAP_LOW,
    FODMAP_MODERATE,
    KeywordFoodMatcher,
    find_keywords,
    normalize_food_text,
)


@pytest.fixture
def matcher():
    return KeywordFoodMatcher()


class TestFindKeywords:
    """Tests para la búsqueda de palabras clave."""

    def test_case_insensitive(self):
        assert find_keywords("SPICY Curry", ("spicy",)) == ("spicy",)

    def test_longest_match_first(self):
        """Test que 'processed meat' no cuenta también como 'processed'."""
        matches = find_keywords("processed meat sandwich", ("processed", "processed meat"))
        assert matches == ("processed meat",)

    def test_no_match(self):
        assert find_keywords("steamed rice", ("spicy", "fried")) == ()

    def test_normalize(self):
        assert normalize_food_text("  Grilled   CHICKEN ") == "grilled chicken"


class TestKeywordFoodMatcher:
    """Tests para el clasificador de comidas."""

    def test_trigger_foods(self, matcher):
        assert matcher.is_trigger("spicy chicken wings")
        assert matcher.is_trigger("Fried fish")
        assert not matcher.is_trigger("steamed white rice")

    def test_inflammatory_foods(self, matcher):
        assert matcher.is_inflammatory("red meat burger")
        assert matcher.inflammatory_matches("processed meat pizza") == ("processed meat",)
        assert not matcher.is_inflammatory("grilled salmon")

    def test_fodmap_levels(self, matcher):
        assert matcher.fodmap_level("garlic bread") == FODMAP_HIGH
        assert matcher.fodmap_level("avocado toast") == FODMAP_MODERATE
        assert matcher.fodmap_level("white rice") == FODMAP_LOW

    def test_classify_counts_meals(self, matcher):
        """Test que classify cuenta comidas, no palabras clave."""
        counts = matcher.classify([
            "spicy fried chicken",
            "red meat with onion",
            "plain rice",
        ])
        assert counts == {"trigger": 1, "inflammatory": 1, "high_fodmap": 1}

    def test_custom_tables(self):
        """Test que las tablas se pueden sustituir."""
        matcher = KeywordFoodMatcher(trigger_keywords=("Coffee",), version="test")
        assert matcher.is_trigger("morning coffee")
        assert not matcher.is_trigger("spicy curry")
        assert matcher.version == "test"
