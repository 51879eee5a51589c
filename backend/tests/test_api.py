"""Tests for API endpoints."""

import pytest
from fastapi.testclient import TestClient

from ttb_verify.config import STANDARD_WARNING_TEXT
from ttb_verify.main import app


@pytest.fixture
def client():
    """Create test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def application():
    return {
        "brand_name": "Old Tom Distillery",
        "class_type": "Kentucky Straight Bourbon Whiskey",
        "alcohol_content": "45% Alc./Vol.",
        "net_contents": "750 mL",
        "name_address": "Old Tom Distillery, Louisville, KY",
    }


@pytest.fixture
def extracted():
    return {
        "brand_name": "OLD TOM DISTILLERY",
        "class_type": "Kentucky Straight Bourbon Whiskey",
        "alcohol_content": "90 Proof",
        "net_contents": "25.4 FL OZ",
        "name_address": "Old Tom Distillery, Louisville, Kentucky",
        "government_warning": STANDARD_WARNING_TEXT,
        "government_warning_header_format": "ALL_CAPS",
    }


@pytest.fixture
def extractions(extracted):
    return [
        {"source": {"image_id": "front", "image_label": "front"}, "fields": extracted},
        {
            "source": {"image_id": "back", "image_label": "back"},
            "fields": {**extracted, "brand_name": "Old Tim Distillery"},
        },
    ]


class TestHealthEndpoint:
    """Test /health endpoint."""

    def test_health_returns_200(self, client):
        """Test health endpoint returns 200."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

    def test_health_response_format(self, client):
        """Test health endpoint response format."""
        data = client.get("/api/v1/health").json()

        assert data["status"] == "healthy"
        assert "version" in data
        assert data["lookup_tables_loaded"] is True


class TestRootEndpoint:
    """Test root endpoint."""

    def test_root_contains_version(self, client):
        """Test root endpoint contains version info."""
        data = client.get("/").json()

        assert "version" in data
        assert "docs" in data


class TestCompareEndpoint:
    """Test /compare endpoint."""

    def test_proof_conversion(self, client):
        response = client.post(
            "/api/v1/compare",
            json={"field_key": "alcohol_content", "extracted": "90 Proof", "expected": "45%"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "PASS"
        assert data["field_name"] == "Alcohol Content"
        assert data["match_type"] == "abv"

    def test_missing_value(self, client):
        response = client.post("/api/v1/compare", json={"field_key": "brand_name", "expected": "Old Tom"})
        assert response.json()["status"] == "NOT_FOUND"

    def test_unknown_field(self, client):
        response = client.post("/api/v1/compare", json={"field_key": "vintage", "extracted": "2019"})
        assert response.status_code == 400
        assert "Unknown field" in response.json()["detail"]

    def test_requires_field_key(self, client):
        response = client.post("/api/v1/compare", json={"extracted": "x"})
        assert response.status_code == 422  # Validation error


class TestVerifyEndpoint:
    """Test /verify endpoint."""

    def test_verify(self, client, application, extracted):
        response = client.post("/api/v1/verify", json={"application": application, "extracted": extracted})
        assert response.status_code == 200

        data = response.json()
        assert data["overall_status"] == "REVIEW"
        assert len(data["field_results"]) == 9
        assert data["pending_confirmations"][0]["label"] == "Header Bold"

    def test_missing_warning(self, client, application, extracted):
        extracted = {**extracted, "government_warning": None}
        data = client.post("/api/v1/verify", json={"application": application, "extracted": extracted}).json()
        assert data["overall_status"] == "FAIL"

    def test_requires_application(self, client, extracted):
        response = client.post("/api/v1/verify", json={"extracted": extracted})
        assert response.status_code == 422


class TestMergeEndpoints:
    """Test /merge, /merge/resolve and /verify/merged."""

    def test_merge(self, client, extractions):
        response = client.post("/api/v1/merge", json={"extractions": extractions})
        assert response.status_code == 200

        data = response.json()
        assert len(data["conflicts"]) == 1
        assert data["conflicts"][0]["field_key"] == "brand_name"
        assert data["fields"]["net_contents"] == "25.4 FL OZ"

    def test_too_many_images(self, client, extractions):
        response = client.post("/api/v1/merge", json={"extractions": extractions * 4})
        assert response.status_code == 400

    def test_resolve_and_verify(self, client, application, extractions):
        merged = client.post("/api/v1/merge", json={"extractions": extractions}).json()

        response = client.post(
            "/api/v1/merge/resolve",
            json={"merged": merged, "field_key": "brand_name", "selected_value": "Old Tom Distillery"},
        )
        assert response.status_code == 200
        resolved = response.json()
        assert resolved["fields"]["brand_name"] == "OLD TOM DISTILLERY"
        assert resolved["conflicts"][0]["selected_value"] == "OLD TOM DISTILLERY"

        data = client.post("/api/v1/verify/merged", json={"application": application, "merged": resolved}).json()
        assert data["image_count"] == 2
        assert data["unresolved_conflicts"] == []
        brand = next(r for r in data["field_results"] if r["field_name"] == "Brand Name")
        assert brand["status"] == "PASS"
        assert brand["conflict_resolution"]["rejected_values"][0]["from_images"] == ["back"]

    def test_resolve_unknown_value_unchanged(self, client, extractions):
        merged = client.post("/api/v1/merge", json={"extractions": extractions}).json()
        resolved = client.post(
            "/api/v1/merge/resolve",
            json={"merged": merged, "field_key": "brand_name", "selected_value": "Jim Beam"},
        ).json()
        assert resolved["conflicts"][0]["selected_value"] is None
        assert resolved["fields"]["brand_name"] == merged["fields"]["brand_name"]

    def test_resolve_unknown_field(self, client, extractions):
        merged = client.post("/api/v1/merge", json={"extractions": extractions}).json()
        response = client.post(
            "/api/v1/merge/resolve",
            json={"merged": merged, "field_key": "vintage", "selected_value": "2019"},
        )
        assert response.status_code == 400


class TestStatusEndpoint:
    """Test /status endpoint."""

    def make_result(self, status, override=None):
        result = {
            "field_name": "Brand Name",
            "application_value": "Old Tom",
            "extracted_value": "Old Tim",
            "status": status,
            "match_type": "fuzzy",
            "confidence": 0.9,
            "details": "test",
        }
        if override:
            result["agent_override"] = {"action": override, "timestamp": "2026-01-01T00:00:00Z"}
        return result

    def test_fail(self, client):
        data = client.post("/api/v1/status", json={"field_results": [self.make_result("FAIL")]}).json()
        assert data["overall_status"] == "FAIL"
        assert data["unresolved_fail_count"] == 1

    def test_accepted_override(self, client):
        results = [self.make_result("OVERRIDDEN", "accepted"), self.make_result("PASS")]
        data = client.post("/api/v1/status", json={"field_results": results}).json()
        assert data["overall_status"] == "PASS"

    def test_confirmed_issue(self, client):
        results = [self.make_result("FAIL", "confirmed_issue"), self.make_result("WARNING")]
        data = client.post("/api/v1/status", json={"field_results": results}).json()
        assert data["overall_status"] == "FAIL"
        assert data["review_count"] == 1
