"""Tests unitarios para validación de schemas Pydantic."""
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from flare_engine.schemas import (
    ActionPriority,
    FlarePredictionOutput,
    FlarePreventionAction,
    JournalEntry,
    MedicationFeatures,
    MicronutrientData,
    MicronutrientProfile,
    RiskLevel,
    Symptom,
    parse_journal_entries,
)


class TestSymptom:
    """Tests para el schema de síntomas."""

    def test_type_is_normalized(self):
        """Test que el tag se normaliza a minúsculas con guiones bajos."""
        symptom = Symptom(type="  Abdominal Pain ", severity=6)
        assert symptom.type == "abdominal_pain"

        symptom = Symptom(type="blood-in-stool")
        assert symptom.type == "blood_in_stool"

    def test_severity_range_validation(self):
        """Test que la severidad está en rango 0-10."""
        with pytest.raises(ValidationError):
            Symptom(type="fatigue", severity=-1)

        with pytest.raises(ValidationError):
            Symptom(type="fatigue", severity=11)

    def test_severity_is_optional(self):
        """Test que un síntoma sin severidad es válido."""
        symptom = Symptom(type="bloating")
        assert symptom.severity is None


class TestJournalEntry:
    """Tests para las entradas del diario."""

    def test_date_only_string(self):
        """Test que una fecha sin hora se guarda como date."""
        entry = JournalEntry(entry_date="2024-03-15")
        assert entry.entry_date == date(2024, 3, 15)
        assert entry.has_time is False
        assert entry.timestamp == datetime(2024, 3, 15, 0, 0)

    def test_datetime_string(self):
        """Test que una fecha con hora conserva la hora."""
        entry = JournalEntry(entry_date="2024-03-15T08:30:00")
        assert entry.has_time is True
        assert entry.timestamp == datetime(2024, 3, 15, 8, 30)

    def test_aware_datetime_converted_to_naive_utc(self):
        """Test que las fechas con zona horaria se convierten a UTC sin zona."""
        madrid = timezone(timedelta(hours=2))
        entry = JournalEntry(entry_date=datetime(2024, 6, 1, 10, 0, tzinfo=madrid))
        assert entry.timestamp == datetime(2024, 6, 1, 8, 0)
        assert entry.timestamp.tzinfo is None

        entry = JournalEntry(entry_date="2024-06-01T10:00:00Z")
        assert entry.timestamp == datetime(2024, 6, 1, 10, 0)

    def test_entry_is_immutable(self):
        """Test que las entradas no se pueden modificar."""
        entry = JournalEntry(entry_date="2024-03-15")
        with pytest.raises(ValidationError):
            entry.hydration = 1000

    def test_pain_severity_range(self):
        """Test que pain_severity fuera de rango falla."""
        with pytest.raises(ValidationError):
            JournalEntry(entry_date="2024-03-15", pain_severity=12)

    def test_symptom_types(self):
        """Test que symptom_types devuelve los tags normalizados."""
        entry = JournalEntry(
            entry_date="2024-03-15",
            symptoms=[{"type": "Diarrhea", "severity": 5}, {"type": "fatigue"}],
        )
        assert entry.symptom_types == ("diarrhea", "fatigue")


class TestParseJournalEntries:
    """Tests para el parseo tolerante del diario."""

    def test_skips_malformed_entries(self):
        """Test que las entradas mal formadas se omiten sin error."""
        raw = [
            {"entry_date": "2024-03-15", "hydration": 1500},
            {"hydration": 1500},                                  # sin fecha
            "not an entry",
            {"entry_date": "2024-03-16", "pain_severity": 42},    # fuera de rango
            {"entry_date": "2024-03-17"},
        ]
        entries = parse_journal_entries(raw)
        assert [e.entry_date for e in entries] == [date(2024, 3, 15), date(2024, 3, 17)]

    def test_null_lists_are_empty(self):
        """Test que listas nulas se tratan como vacías y no descartan la entrada."""
        raw = [{
            "entry_date": "2024-03-20",
            "meals": None,
            "bowel_movements": None,
            "symptoms": [{"type": "diarrhea", "severity": 9}],
            "hydration": 2000,
        }]
        entries = parse_journal_entries(raw)
        assert len(entries) == 1
        assert entries[0].meals == []
        assert entries[0].bowel_movements == []
        assert entries[0].symptom_types == ("diarrhea",)

        assert JournalEntry(entry_date="2024-03-20", symptoms=None).symptoms == []

    def test_accepts_model_instances(self):
        """Test que acepta instancias de JournalEntry directamente."""
        entry = JournalEntry(entry_date="2024-03-15")
        assert parse_journal_entries([entry]) == [entry]

    def test_empty_input(self):
        """Test con diario vacío."""
        assert parse_journal_entries([]) == []


class TestMicronutrientData:
    """Tests para el vector de micronutrientes."""

    def test_add_is_elementwise(self):
        """Test que la suma es elemento a elemento."""
        a = MicronutrientData(vitamin_d=5.0, iron=2.0)
        b = MicronutrientData(vitamin_d=1.5, calcium=100.0)
        total = a.add(b)
        assert total.vitamin_d == pytest.approx(6.5)
        assert total.iron == pytest.approx(2.0)
        assert total.calcium == pytest.approx(100.0)
        assert (a + b) == total

    def test_scale(self):
        """Test que scale multiplica todos los campos."""
        data = MicronutrientData(zinc=2.0, omega3=0.5).scale(3)
        assert data.zinc == pytest.approx(6.0)
        assert data.omega3 == pytest.approx(1.5)

    def test_negative_scale_fails(self):
        """Test que un factor negativo lanza ValueError."""
        with pytest.raises(ValueError):
            MicronutrientData(zinc=1.0).scale(-1)

    def test_negative_values_rejected(self):
        """Test que no se permiten valores negativos."""
        with pytest.raises(ValidationError):
            MicronutrientData(iron=-0.1)

    def test_nonzero(self):
        """Test que nonzero omite los campos a cero."""
        assert MicronutrientData(iron=1.0).nonzero() == {"iron": 1.0}


class TestMicronutrientProfile:
    """Tests para el perfil nutricional."""

    def test_valid_profile(self):
        profile = MicronutrientProfile(age=34, gender="F", disease_activity="moderate")
        assert profile.disease_activity.value == "moderate"

    def test_gender_validation(self):
        """Test que gender solo acepta M, F u O."""
        with pytest.raises(ValidationError):
            MicronutrientProfile(age=30, gender="X")

    def test_age_validation(self):
        """Test que age está en rango 1-120."""
        with pytest.raises(ValidationError):
            MicronutrientProfile(age=0)
        with pytest.raises(ValidationError):
            MicronutrientProfile(age=121)


class TestMedicationFeatures:
    """Tests para las features de medicación."""

    def test_negative_side_effect_fails(self):
        with pytest.raises(ValidationError):
            MedicationFeatures(side_effects={"nausea": -0.5})


class TestFlarePredictionOutput:
    """Tests para el schema de salida de predicción."""

    def _action(self):
        return FlarePreventionAction(
            title="Keep up your routine",
            rationale="No risk factors",
            implementation="Continue",
            priority=ActionPriority.LOW,
        )

    def test_valid_output(self):
        """Test con una salida válida."""
        output = FlarePredictionOutput(
            flare_probability=0.2,
            confidence_score=0.7,
            risk_level=RiskLevel.LOW,
            contributing_factors={"nutrition": 0.1},
            recommendations=[self._action()],
            next_prediction_date=datetime(2024, 3, 16),
            model_source="rule_based",
        )
        assert output.risk_level == RiskLevel.LOW
        assert output.predicted_onset is None

    def test_probability_range(self):
        """Test que la probabilidad está en rango 0-1."""
        with pytest.raises(ValidationError):
            FlarePredictionOutput(
                flare_probability=1.5,
                confidence_score=0.7,
                risk_level=RiskLevel.LOW,
                contributing_factors={},
                recommendations=[self._action()],
                next_prediction_date=datetime(2024, 3, 16),
                model_source="rule_based",
            )

    def test_recommendations_not_empty(self):
        """Test que la lista de recomendaciones no puede estar vacía."""
        with pytest.raises(ValidationError):
            FlarePredictionOutput(
                flare_probability=0.2,
                confidence_score=0.7,
                risk_level=RiskLevel.LOW,
                contributing_factors={},
                recommendations=[],
                next_prediction_date=datetime(2024, 3, 16),
                model_source="rule_based",
            )

    def test_enum_ordering(self):
        """Test que los niveles están ordenados."""
        assert RiskLevel.LOW.rank < RiskLevel.MODERATE.rank < RiskLevel.HIGH.rank < RiskLevel.VERY_HIGH.rank
        assert ActionPriority.LOW.rank < ActionPriority.CRITICAL.rank
