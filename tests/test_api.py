"""API endpoint tests using FastAPI TestClient."""

import pytest
from fastapi.testclient import TestClient

from api import server
from api.server import app
from fitting_room.models import ImagePayload, TryOnState
from fitting_room.pipeline import TryOnPipeline
from fitting_room.services import GenerationClient, KeyStore

from conftest import (
    FakeAPIError,
    FakeGenai,
    SleepRecorder,
    image_response,
    make_image_bytes,
    text_response,
)


@pytest.fixture
def backend():
    return FakeGenai()


@pytest.fixture
def client(monkeypatch, config, proxy_fetcher, backend):
    """TestClient over a fresh app state wired to a scripted backend."""
    key_store = KeyStore(fallback=None)
    state = TryOnState()
    sleep = SleepRecorder()
    pipeline = TryOnPipeline(
        config,
        client=GenerationClient(config, key_provider=key_store, client_factory=backend, sleep=sleep),
        fetcher=proxy_fetcher,
        key_selector=key_store,
        sleep=sleep,
    )
    pipeline.add_listener(state.record_stage)

    monkeypatch.setattr(server, "_config", config)
    monkeypatch.setattr(server, "_key_store", key_store)
    monkeypatch.setattr(server, "_state", state)
    monkeypatch.setattr(server, "_pipeline", pipeline)
    return TestClient(app)


@pytest.fixture
def photo_uri():
    return ImagePayload(data=make_image_bytes(600, 900), mime_type="image/png").to_data_uri()


def _prepare(client, photo_uri, product_id="seamless-sage"):
    client.post("/api/key", json={"api_key": "user-key"})
    client.put("/api/selection", json={"product_id": product_id})
    client.put("/api/photo", json={"photo": photo_uri})


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        """Root endpoint returns OK status."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "service" in data
        assert "version" in data

    def test_health_without_key_is_degraded(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "api_key": "missing"}

    def test_request_id_is_echoed(self, client):
        response = client.get("/", headers={"x-request-id": "req-123"})

        assert response.headers["x-request-id"] == "req-123"

    def test_request_id_generated_when_absent(self, client):
        assert client.get("/").headers["x-request-id"]


class TestCatalogEndpoints:

    def test_products(self, client):
        products = client.get("/api/products").json()

        assert [p["id"] for p in products] == ["seamless-sage", "sculpt-black", "flow-lavender"]

    def test_sizes(self, client):
        assert client.get("/api/sizes").json() == ["XS", "S", "M", "L", "XL", "XXL"]


class TestKeyEndpoints:

    def test_select_key(self, client):
        assert client.get("/api/key").json() == {"has_key": False}

        response = client.post("/api/key", json={"api_key": "user-key"})

        assert response.json() == {"has_key": True}
        assert client.get("/health").json()["status"] == "ok"

    def test_select_without_key_and_no_environment(self, client):
        assert client.post("/api/key", json={}).json() == {"has_key": False}


class TestSelectionEndpoints:

    def test_select_product_moves_to_step_two(self, client):
        data = client.put("/api/selection", json={"product_id": "sculpt-black"}).json()

        assert data["step"] == 2
        assert data["selected_product"]["name"] == "Sculpt Set Black"

    def test_unknown_product(self, client):
        response = client.put("/api/selection", json={"product_id": "nope"})

        assert response.status_code == 404

    def test_upload_and_remove_photo(self, client, photo_uri):
        assert client.put("/api/photo", json={"photo": photo_uri}).json()["has_photo"] is True
        assert client.delete("/api/photo").json()["has_photo"] is False

    def test_malformed_photo_rejected(self, client):
        response = client.put("/api/photo", json={"photo": "data:image/png;base64,@@@"})

        assert response.status_code == 422


class TestTryOnEndpoint:
    """Tests for the main try-on endpoint."""

    def test_requires_product_and_photo(self, client, backend):
        response = client.post("/api/tryon")

        assert response.status_code == 400
        assert backend.calls == []

    def test_successful_attempt(self, client, backend, photo_uri, proxy_fetcher):
        rendered = make_image_bytes(256, 384)
        backend.outcomes.extend([text_response("L"), image_response(rendered)])
        _prepare(client, photo_uri)

        response = client.post("/api/tryon")

        assert response.status_code == 200
        data = response.json()
        assert data["step"] == 3
        assert data["stage"] == "succeeded"
        assert data["is_loading"] is False
        assert data["recommended_size"] == "L"
        assert data["result_image"].startswith("data:image/png;base64,")
        assert data["error"] is None
        assert len(proxy_fetcher.requests) == 1
        assert backend.api_keys == ["user-key", "user-key"]

        assert client.get("/api/tryon").json() == data

    def test_download_result(self, client, backend, photo_uri):
        rendered = make_image_bytes(256, 384)
        backend.outcomes.extend([text_response("M"), image_response(rendered)])
        _prepare(client, photo_uri)
        client.post("/api/tryon")

        response = client.get("/api/tryon/download")

        assert response.status_code == 200
        assert response.content == rendered
        assert response.headers["content-type"] == "image/png"
        assert "my-better-future-look.jpg" in response.headers["content-disposition"]

    def test_download_without_result(self, client):
        assert client.get("/api/tryon/download").status_code == 404

    def test_rejected_while_running(self, client, backend, photo_uri):
        _prepare(client, photo_uri)
        server._state.in_flight = True

        response = client.post("/api/tryon")

        assert response.status_code == 409
        assert backend.calls == []

    def test_credential_failure_clears_key(self, client, backend, photo_uri):
        backend.outcomes.append(FakeAPIError(404, "Requested entity was not found."))
        _prepare(client, photo_uri)

        data = client.post("/api/tryon").json()

        assert data["stage"] == "failed"
        assert data["error"]["kind"] == "credential_error"
        assert data["error"]["message"] == "Please select your API key again."
        assert client.get("/api/key").json() == {"has_key": False}

    def test_reset_returns_to_start(self, client, backend, photo_uri):
        backend.outcomes.extend([text_response("S"), image_response(make_image_bytes())])
        _prepare(client, photo_uri)
        client.post("/api/tryon")

        data = client.post("/api/reset").json()

        assert data["step"] == 1
        assert data["stage"] == "idle"
        assert data["has_photo"] is False
        assert data["selected_product"] is None
        assert data["result_image"] is None
