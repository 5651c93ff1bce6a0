"""
Unit tests for the HTTP API
"""

import pytest
from fastapi.testclient import TestClient

from mfds_monitor.api import create_app
from mfds_monitor.errors import ContractViolationError, UpstreamError
from mfds_monitor.retriever import UpdateRetriever
from mfds_monitor.service import UpdateService

from fixtures.mock_gemini_responses import BARE_ARRAY


@pytest.fixture
def make_client(make_config, fake_backend_cls, fixed_today):
    def _make(config=None, **backend_kwargs):
        backend_kwargs.setdefault("text", BARE_ARRAY)
        retriever = UpdateRetriever(fake_backend_cls(**backend_kwargs), clock=lambda: fixed_today)
        app = create_app(config or make_config(), service=UpdateService(retriever))
        return TestClient(app)
    return _make


def test_health(make_client):
    with make_client() as client:
        response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_updates_newest_first(make_client):
    with make_client() as client:
        response = client.get("/api/mfds")
    assert response.status_code == 200
    body = response.json()
    assert [item["date"] for item in body] == ["2025-06-10", "2025-06-01", "2025-05-15"]
    assert set(body[0]) == {"title", "date", "category", "url", "summary"}


def test_category_filter(make_client):
    with make_client() as client:
        response = client.get("/api/mfds", params={"category": "입법/행정예고"})
    assert response.status_code == 200
    assert [item["category"] for item in response.json()] == ["입법/행정예고"]


def test_unknown_category_rejected(make_client):
    with make_client() as client:
        response = client.get("/api/mfds", params={"category": "축산물"})
    assert response.status_code == 422


def test_empty_result(make_client):
    with make_client(text="") as client:
        response = client.get("/api/mfds")
    assert response.status_code == 200
    assert response.json() == []


def test_upstream_failure_hides_detail(make_client):
    with make_client(error=UpstreamError("401 invalid key", detail="secret detail")) as client:
        response = client.get("/api/mfds")
    assert response.status_code == 500
    body = response.json()
    assert body["type"] == "upstream_failure"
    assert "error" in body
    assert "detail" not in body


def test_debug_mode_includes_detail(make_client, make_config):
    config = make_config(debug=True)
    with make_client(config=config, error=ContractViolationError("bad", detail="not an array")) as client:
        response = client.get("/api/mfds")
    assert response.status_code == 500
    assert response.json()["type"] == "contract_violation"
    assert response.json()["detail"] == "not an array"


def test_unconfigured_backend(make_config):
    with TestClient(create_app(make_config())) as client:
        response = client.get("/api/mfds")
        health = client.get("/api/health")
    assert response.status_code == 500
    assert response.json()["type"] == "not_configured"
    assert health.status_code == 200


def test_debug_endpoint(make_client):
    with make_client() as client:
        response = client.get("/api/debug")
    body = response.json()
    assert body["hasApiKey"] is False
    assert body["provider"] == "gemini"
    assert body["model"] == "fake-model"
    assert body["availableModels"] == ["models/fake-grounded"]
    assert body["environment"] == "development"


def test_debug_endpoint_without_service(make_config):
    with TestClient(create_app(make_config())) as client:
        body = client.get("/api/debug").json()
    assert body["modelsError"] == "Update service is not configured"


class TestStaticClient:

    @pytest.fixture
    def static_dir(self, tmp_path):
        (tmp_path / "index.html").write_text("<html>monitor</html>", encoding="utf-8")
        (tmp_path / "assets").mkdir()
        (tmp_path / "assets" / "app.js").write_text("console.log('ok')", encoding="utf-8")
        return tmp_path

    def test_serves_files_and_spa_fallback(self, make_client, make_config, static_dir):
        config = make_config(api={"static_dir": str(static_dir)})
        with make_client(config=config) as client:
            assert "monitor" in client.get("/").text
            assert "monitor" in client.get("/updates/latest").text
            assert "console.log" in client.get("/assets/app.js").text
            assert client.get("/api/unknown").status_code == 404
            assert client.get("/api/mfds").status_code == 200

    def test_no_static_routes_without_directory(self, make_client):
        with make_client() as client:
            assert client.get("/").status_code == 404


class TestRunApiServer:

    def test_port_from_environment(self, monkeypatch, make_config):
        from mfds_monitor import api
        from mfds_monitor.config import set_config

        calls = []
        monkeypatch.setattr(api.uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))
        monkeypatch.setenv("PORT", "8081")
        monkeypatch.setenv("LOGGING__LEVEL", "WARNING")
        set_config(make_config())

        assert api.run_api_server() == 0
        assert calls[0]["port"] == 8081
        assert calls[0]["host"] == "0.0.0.0"

    def test_explicit_arguments_win(self, monkeypatch, make_config):
        from mfds_monitor import api
        from mfds_monitor.config import set_config

        calls = []
        monkeypatch.setattr(api.uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))
        monkeypatch.setenv("PORT", "8081")
        set_config(make_config())

        assert api.run_api_server(host="127.0.0.1", port=9000) == 0
        assert calls[0] == {"host": "127.0.0.1", "port": 9000, "log_level": "info"}

    def test_invalid_configuration_returns_one(self, monkeypatch, make_config):
        from mfds_monitor import api

        def broken():
            raise ValueError("Configuration validation failed")

        monkeypatch.setattr(api, "ensure_valid_config", broken)
        assert api.run_api_server() == 1
