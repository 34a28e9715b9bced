"""
Tests for the application factory and its environment configuration.
"""

import pytest
from fastapi.testclient import TestClient

from formengine.api import app as app_module
from formengine.api.routes import configure_routes


@pytest.fixture(autouse=True)
def reset_routes():
    yield
    configure_routes(include_debug=False)


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("true", True), (" YES ", True), ("on", True), ("0", False), ("no", False)],
)
def test_is_truthy(value, expected):
    assert app_module._is_truthy(value) is expected


def test_is_truthy_default():
    assert app_module._is_truthy(None) is False
    assert app_module._is_truthy(None, default=True) is True


def test_routes_mounted_under_api():
    client = TestClient(app_module.create_app())
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_debug_results_from_environment(monkeypatch):
    monkeypatch.setenv("FORMENGINE_DEBUG_RESULTS", "true")
    client = TestClient(app_module.create_app())

    group = {"uuid": "g", "name": "G", "displayOrder": 1, "formElements": []}
    response = client.post("/api/validate", json={"group": group})
    assert response.json()["debug"] == {"filtered_count": 0, "observation_count": 0}
