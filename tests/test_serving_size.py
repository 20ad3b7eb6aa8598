"""Tests unitarios para el parser de raciones."""
import pytest

from flare_engine.serving_size import DEFAULT_SERVING, convert_to_servings, parse_serving, unit_factor


class TestParseServing:
    """Tests para el análisis de cantidades en texto libre."""

    def test_cups(self):
        """Test del ejemplo de arroz con pudding."""
        parsed = parse_serving("2 cups of white rice with sweet pudding")
        assert parsed.quantity == 2.0
        assert parsed.unit == "cups"
        assert parsed.servings == pytest.approx(2.0)
        assert parsed.remainder == "white rice with sweet pudding"

    @pytest.mark.parametrize("text,servings", [
        ("1/2 cup oatmeal", 0.5),
        ("1 1/2 cups rice", 1.5),
        ("1.5 cups rice", 1.5),
        ("½ cup yogurt", 0.5),
        ("two bowls of soup", 3.0),
        ("half a bowl of soup", 0.75),
        ("a couple of slices of toast", 1.0),
        ("16 tbsp olive oil", 1.0),
        ("240ml milk", 1.0),
        ("480 g chicken", 2.0),
        ("8 fl oz juice", 1.0),
        ("about 2 servings pasta", 2.0),
    ])
    def test_quantities_and_units(self, text, servings):
        assert parse_serving(text).servings == pytest.approx(servings)

    def test_no_amount_defaults(self):
        """Test que sin cantidad se usa la ración por defecto."""
        parsed = parse_serving("grilled salmon")
        assert parsed.quantity is None
        assert parsed.servings == DEFAULT_SERVING
        assert parsed.remainder == "grilled salmon"

    def test_quantity_without_unit(self):
        parsed = parse_serving("3 eggs")
        assert parsed.servings == pytest.approx(3.0)
        assert parsed.remainder == "eggs"

    def test_whole_milk_is_not_an_amount(self):
        """Test que 'whole milk' no se interpreta como unidad."""
        parsed = parse_serving("whole milk")
        assert parsed.unit is None
        assert parsed.servings == DEFAULT_SERVING
        assert parsed.remainder == "whole milk"

    def test_size_word_without_number(self):
        parsed = parse_serving("large banana")
        assert parsed.servings == pytest.approx(1.5)
        assert parsed.remainder == "banana"


class TestConvertToServings:
    """Tests para la conversión de tamaño y unidad explícitos."""

    def test_known_units(self):
        assert convert_to_servings(2, "cup") == pytest.approx(2.0)
        assert convert_to_servings(120, "ml") == pytest.approx(0.5)
        assert convert_to_servings(1, "Bowl") == pytest.approx(1.5)

    def test_unknown_unit_counts_servings(self):
        assert convert_to_servings(2, "handfuls of joy") == pytest.approx(2.0)

    def test_missing_size_defaults(self):
        assert convert_to_servings(None, "cup") == DEFAULT_SERVING

    def test_unit_factor(self):
        assert unit_factor("tbsp") == pytest.approx(1 / 16)
        assert unit_factor(None) is None
        assert unit_factor("parsec") is None
