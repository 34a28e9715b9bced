"""
Integration tests for the FastAPI API layer.

Tests cover:
- POST /api/filter returns visible instances in display order
- POST /api/validate results, repetition indexes and overall success
- Debug counters when enabled
- Malformed groups and observation payloads rejected with 422
- POST /api/navigation paging info and 404 for unknown groups
- GET /api/health
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from formengine.api.routes import configure_routes, router


# --- Fixtures ---


def _create_test_app(include_debug: bool = False) -> TestClient:
    app = FastAPI()
    configure_routes(include_debug=include_debug)
    app.include_router(router, prefix="/api")
    return TestClient(app)


@pytest.fixture
def client():
    return _create_test_app()


@pytest.fixture
def group_payload() -> dict:
    return {
        "uuid": "page-1",
        "name": "Visit details",
        "displayOrder": 1,
        "formUUID": "form-1",
        "formElements": [
            {
                "uuid": "weight",
                "name": "Weight",
                "displayOrder": 3,
                "mandatory": True,
                "groupUuid": "visits",
                "concept": {
                    "uuid": "c-weight",
                    "name": "Weight",
                    "datatype": "Numeric",
                    "lowAbsolute": 0,
                    "highAbsolute": 300,
                },
            },
            {
                "uuid": "name",
                "name": "Name",
                "displayOrder": 1,
                "mandatory": True,
                "concept": {"uuid": "c-name", "name": "Name", "datatype": "Text"},
            },
            {
                "uuid": "visits",
                "name": "Visits",
                "displayOrder": 2,
                "repeatable": True,
                "concept": {"uuid": "c-visits", "name": "Visits", "datatype": "QuestionGroup"},
            },
        ],
    }


STATUSES = [{"uuid": "name"}, {"uuid": "visits"}, {"uuid": "weight"}]


# =============================================================
# Test: /api/filter
# =============================================================


class TestFilter:
    def test_returns_visible_in_order(self, client, group_payload):
        response = client.post(
            "/api/filter",
            json={
                "group": group_payload,
                "statuses": [
                    {"uuid": "weight", "questionGroupIndex": 1},
                    {"uuid": "name"},
                    {"uuid": "visits", "visibility": False},
                    {"uuid": "missing"},
                ],
            },
        )
        assert response.status_code == 200
        elements = response.json()["form_elements"]
        assert [e["uuid"] for e in elements] == ["name", "weight"]
        assert elements[1]["questionGroupIndex"] == 1

    def test_no_statuses_no_elements(self, client, group_payload):
        response = client.post("/api/filter", json={"group": group_payload})
        assert response.json() == {"form_elements": []}


# =============================================================
# Test: /api/validate
# =============================================================


class TestValidate:
    def test_repetitions_validated(self, client, group_payload):
        response = client.post(
            "/api/validate",
            json={
                "group": group_payload,
                "statuses": STATUSES,
                "observations": [
                    {"concept": "c-name", "value": "Asha"},
                    {"concept": "Visits", "value": [
                        [{"concept": "c-weight", "value": 70}],
                        [{"concept": "c-weight", "value": 500}],
                    ]},
                ],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert [
            (r["formIdentifier"], r["questionGroupIndex"], r["success"]) for r in data["results"]
        ] == [
            ("name", None, True),
            ("visits", None, True),
            ("weight", 0, True),
            ("weight", 1, False),
        ]
        assert data["results"][3]["messageKey"] == "numberAboveHiAbsolute"
        assert "debug" not in data

    def test_unanswered_mandatory(self, client, group_payload):
        response = client.post(
            "/api/validate", json={"group": group_payload, "statuses": STATUSES}
        )
        data = response.json()
        assert data["success"] is False
        assert data["results"][0]["messageKey"] == "emptyValidationMessage"
        assert len(data["results"]) == 2

    def test_all_valid(self, client, group_payload):
        response = client.post(
            "/api/validate",
            json={
                "group": group_payload,
                "statuses": [{"uuid": "name"}],
                "observations": [{"concept": "Name", "value": "Asha"}],
            },
        )
        assert response.json()["success"] is True

    def test_debug_counters(self, group_payload):
        client = _create_test_app(include_debug=True)
        response = client.post(
            "/api/validate",
            json={
                "group": group_payload,
                "statuses": STATUSES,
                "observations": [{"concept": "c-name", "value": "Asha"}],
            },
        )
        assert response.json()["debug"] == {"filtered_count": 3, "observation_count": 1}
        configure_routes(include_debug=False)

    def test_duplicate_display_order_rejected(self, client, group_payload):
        group_payload["formElements"][0]["displayOrder"] = 1
        response = client.post(
            "/api/validate", json={"group": group_payload, "statuses": STATUSES}
        )
        assert response.status_code == 422

    def test_repetitions_must_be_nested_lists(self, client, group_payload):
        response = client.post(
            "/api/validate",
            json={
                "group": group_payload,
                "statuses": STATUSES,
                "observations": [
                    {"concept": "c-visits", "value": [{"concept": "c-weight", "value": 60}]},
                ],
            },
        )
        assert response.status_code == 422
        assert "Visits" in response.json()["detail"]

    def test_scalar_value_for_group_rejected(self, client, group_payload):
        response = client.post(
            "/api/validate",
            json={
                "group": group_payload,
                "statuses": STATUSES,
                "observations": [{"concept": "c-visits", "value": 5}],
            },
        )
        assert response.status_code == 422


# =============================================================
# Test: /api/navigation
# =============================================================


class TestNavigation:
    def _form(self) -> dict:
        return {
            "uuid": "form-1",
            "name": "Registration",
            "formElementGroups": [
                {"uuid": "p2", "name": "Second", "displayOrder": 2, "backgroundColour": "#eee"},
                {"uuid": "p1", "name": "First", "displayOrder": 1},
                {"uuid": "p3", "name": "Third", "displayOrder": 3},
            ],
        }

    def test_middle_group(self, client):
        response = client.post(
            "/api/navigation", json={"form": self._form(), "group_uuid": "p2"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["is_first"] is False
        assert data["is_last"] is False
        assert data["next_group_uuid"] == "p3"
        assert data["previous_group_uuid"] == "p1"
        assert data["styles"] == {"backgroundColor": "#eee", "paddingHorizontal": 5}
        assert data["group"]["formUUID"] == "form-1"

    def test_last_group(self, client):
        data = client.post(
            "/api/navigation", json={"form": self._form(), "group_uuid": "p3"}
        ).json()
        assert data["is_last"] is True
        assert data["next_group_uuid"] is None

    def test_unknown_group(self, client):
        response = client.post(
            "/api/navigation", json={"form": self._form(), "group_uuid": "nope"}
        )
        assert response.status_code == 404


class TestHealth:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}
