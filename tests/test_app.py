"""Tests de integración para la API FastAPI."""
import pytest
from fastapi.testclient import TestClient

from flare_engine.app import app


@pytest.fixture(scope="module")
def client():
    """Cliente con lifespan (construye los componentes al arrancar)."""
    with TestClient(app) as test_client:
        yield test_client


class TestInfoEndpoints:
    """Tests para los endpoints informativos."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health_always_ok(self, client):
        """Test que /health responde 200 aunque no haya modelo."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["model_ready"] is False

    def test_model_info(self, client):
        response = client.get("/model/info")
        assert response.status_code == 200
        data = response.json()
        assert data["rule_weights"] == {"nutrition": 0.3, "symptoms": 0.4, "lifestyle": 0.2, "medication": 0.1}
        assert data["risk_thresholds"] == {"moderate": 0.3, "high": 0.6, "very_high": 0.8}
        assert data["rule_based_confidence"] == 0.7
        assert data["keyword_table_version"]


class TestPredictEndpoint:
    """Tests para POST /predict."""

    def test_empty_journal(self, client):
        """Test que un diario vacío da riesgo bajo."""
        response = client.post("/predict", json={"journal_entries": [], "now": "2024-03-20T12:00:00"})
        assert response.status_code == 200
        data = response.json()
        assert data["risk_level"] == "low"
        assert data["confidence_score"] == 0.7
        assert data["model_source"] == "rule_based"
        assert data["next_prediction_date"].startswith("2024-03-21T12:00:00")
        assert len(data["recommendations"]) >= 1

    def test_malformed_entries_are_skipped(self, client):
        """Test que una entrada mal formada no rechaza la petición."""
        payload = {
            "journal_entries": [
                {"entry_date": "2024-03-20", "symptoms": [{"type": "diarrhea", "severity": 6}]},
                {"symptoms": "not a list"},
            ],
            "now": "2024-03-20T12:00:00",
        }
        response = client.post("/predict", json=payload)
        assert response.status_code == 200
        assert response.json()["contributing_factors"]["symptoms"] == pytest.approx(0.2)

    def test_invalid_body(self, client):
        """Test que un cuerpo inválido devuelve 422."""
        response = client.post("/predict", json={"journal_entries": "nope"})
        assert response.status_code == 422

    def test_lifestyle_override(self, client):
        payload = {
            "journal_entries": [],
            "now": "2024-03-20T12:00:00",
            "lifestyle": {"stress_level": 9, "sleep_quality": 3},
        }
        response = client.post("/predict", json=payload)
        assert response.status_code == 200
        assert response.json()["contributing_factors"]["lifestyle"] == pytest.approx(0.5)


class TestNutritionEndpoints:
    """Tests para los endpoints de micronutrientes."""

    def test_resolve_compound_dish(self, client):
        response = client.post(
            "/nutrition/micronutrients",
            json={"food_description": "2 cups of white rice with sweet pudding"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["match_type"] == "compound"
        assert data["matched_name"] == "White Rice with Sweet Pudding"
        assert data["serving"] == 2.0

    def test_empty_description(self, client):
        response = client.post("/nutrition/micronutrients", json={"food_description": ""})
        assert response.status_code == 422

    def test_daily_intake(self, client):
        """Test de ingesta diaria con análisis de deficiencias."""
        payload = {
            "journal_entries": [
                {"entry_date": "2024-03-20", "meals": [{"description": "grilled salmon"}, {"description": "spinach"}]},
            ],
            "profile": {
                "age": 34,
                "gender": "F",
                "disease_activity": "moderate",
                "supplements": [{"name": "Vitamin D", "dosage": 1000, "unit": "iu"}],
            },
        }
        response = client.post("/nutrition/daily", json=payload)
        assert response.status_code == 200
        data = response.json()
        assert data["intake"]["total_intake"]["vitamin_d"] == pytest.approx(11.1 + 25.0)
        assert "Vitamin D" in data["intake"]["supplement_sources"]
        assert data["analysis"]["deficiencies"]
        assert "iron" in data["analysis"]["statuses"]

    def test_invalid_profile(self, client):
        payload = {"journal_entries": [], "profile": {"age": 200}}
        response = client.post("/nutrition/daily", json=payload)
        assert response.status_code == 422
