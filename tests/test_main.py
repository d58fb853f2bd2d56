"""
Tests for the FastAPI service
=============================
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from resilient_ai.client import ResilientAIClient
from resilient_ai.config import ResilienceConfig
from resilient_ai.providers import MockProvider, TransientProviderError


async def no_sleep(seconds: float):
    return None


def build_client(*providers) -> ResilientAIClient:
    return ResilientAIClient(list(providers), config=ResilienceConfig(backoff_seed=1), sleep_func=no_sleep)


@pytest.fixture
def service():
    client = build_client(
        MockProvider("primary", default=TransientProviderError("overloaded", status_code=503)),
        MockProvider.echo("secondary"),
    )
    with TestClient(create_app(client)) as test_client:
        yield test_client


class TestService:
    """Tests for the service routes."""

    def test_root(self, service):
        response = service.get("/")
        assert response.status_code == 200
        assert response.json()["endpoints"]["generate"] == "/generate"

    def test_generate_with_fallback(self, service):
        response = service.post("/generate", json={"user_prompt": "hello", "strategy": "fast_fail"})
        assert response.status_code == 200
        body = response.json()
        assert body["value"] == "[secondary] hello"
        assert body["fallback_level"] == 1
        assert body["failures"][0]["status_code"] == 503

    def test_generate_structured(self, service):
        response = service.post(
            "/generate/structured",
            json={"user_prompt": "plan", "json_schema": "{}", "strategy": "fast_fail"},
        )
        assert response.status_code == 200
        assert response.json()["provider"] == "secondary"

    def test_bad_strategy(self, service):
        response = service.post("/generate", json={"user_prompt": "x", "strategy": "sometimes"})
        assert response.status_code == 400

    def test_missing_prompt(self, service):
        response = service.post("/generate", json={"strategy": "fast_fail"})
        assert response.status_code == 400

    def test_providers_and_reset(self, service):
        response = service.get("/providers")
        assert response.status_code == 200
        assert [p["name"] for p in response.json()["providers"]] == ["primary", "secondary"]

        response = service.post("/providers/primary/reset")
        assert response.status_code == 200
        assert response.json()["circuit_state"] == "closed"

        assert service.post("/providers/unknown/reset").status_code == 404

    def test_health_routes(self, service):
        assert service.get("/health").status_code == 200
        assert service.get("/livez").json() == {"status": "alive"}
        assert service.get("/startup").json() == {"status": "ready"}
        assert service.get("/ready").status_code == 200


class TestServiceFailures:
    """Tests for provider failures surfaced by the service."""

    def test_exhausted_maps_to_503(self):
        client = build_client(MockProvider("only", default=""))
        with TestClient(create_app(client)) as service:
            response = service.post("/generate", json={"user_prompt": "x", "strategy": "fast_fail"})

        assert response.status_code == 503
        details = response.json()["details"]
        assert details["error"] == "all_providers_exhausted"
        assert details["attempted"] == 1

    def test_no_providers_maps_to_503(self):
        with TestClient(create_app(build_client())) as service:
            response = service.post("/generate", json={"user_prompt": "x"})
            health = service.get("/health")

        assert response.status_code == 503
        assert response.json()["details"]["error"] == "no_providers_configured"
        assert health.status_code == 503
