"""
Tests for the scheduling API routes.

Auth is overridden with a fixed user; Supabase is the in-memory fake and
layout uses the deterministic greedy strategy unless a test swaps it.
"""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from chefdesk.scheduling.greedy import GreedyLayoutStrategy
from chefdesk.scheduling.session import SessionStore
from chefdesk.web import schedule_routes
from chefdesk.web.app import app
from chefdesk.web.auth import AuthenticatedUser, get_current_user

from conftest import FakeDB


class _FixedStrategy:
    name = "fixed"

    def __init__(self, text: str):
        self.text = text

    async def propose(self, requests, window):
        return self.text


PREP_LIST = [
    {"menuItemId": "a", "menuItemName": "Short Rib", "prepTimeMinutes": 10, "cookTimeMinutes": 20,
     "totalDuration": 30, "cookingMethods": ["oven"]},
    {"menuItemId": "b", "menuItemName": "Tomato Soup", "prepTimeMinutes": 5, "cookTimeMinutes": 15,
     "totalDuration": 20, "cookingMethods": ["stovetop"]},
]


@pytest.fixture
def db(menu_item_rows, recipe_rows):
    return FakeDB({"menu_items": menu_item_rows, "recipes": recipe_rows})


@pytest.fixture
def client(db, monkeypatch):
    monkeypatch.setattr(schedule_routes, "sessions", SessionStore())
    app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(id="chef-1", access_token="token")
    with patch.object(schedule_routes, "get_authenticated_client", return_value=db), \
            patch.object(schedule_routes, "get_layout_strategy", return_value=GreedyLayoutStrategy()):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:
    def test_missing_header_is_401(self):
        app.dependency_overrides.clear()
        with TestClient(app) as raw_client:
            response = raw_client.post("/api/generate-schedule", json={"prepList": PREP_LIST})
        assert response.status_code == 401

    def test_bad_scheme_is_401(self):
        app.dependency_overrides.clear()
        with TestClient(app) as raw_client:
            response = raw_client.post(
                "/api/generate-schedule",
                json={"prepList": PREP_LIST},
                headers={"Authorization": "Token abc"},
            )
        assert response.status_code == 401


class TestGenerateSchedule:
    def test_success(self, client):
        response = client.post("/api/generate-schedule", json={"prepList": PREP_LIST})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert {t["menuItemId"] for t in body["schedule"]} == {"a", "b"}
        assert {t["duration"] for t in body["schedule"]} == {30, 20}

    def test_empty_prep_list(self, client):
        response = client.post("/api/generate-schedule", json={"prepList": []})
        assert response.status_code == 400

    def test_bad_window(self, client):
        response = client.post(
            "/api/generate-schedule",
            json={"prepList": PREP_LIST, "timeWindowStart": "18:00", "timeWindowEnd": "06:00"},
        )
        assert response.status_code == 400

    def test_inconsistent_totals(self, client):
        prep = [dict(PREP_LIST[0], totalDuration=25)]
        response = client.post("/api/generate-schedule", json={"prepList": prep})
        assert response.status_code == 400

    def test_generator_changed_duration_is_502(self, client):
        bad = [
            {"menuItemId": "a", "menuItemName": "x", "startTime": "06:00", "endTime": "06:25", "duration": 25},
            {"menuItemId": "b", "menuItemName": "x", "startTime": "06:00", "endTime": "06:20", "duration": 20},
        ]
        with patch.object(schedule_routes, "get_layout_strategy", return_value=_FixedStrategy(json.dumps(bad))):
            response = client.post("/api/generate-schedule", json={"prepList": PREP_LIST})
        assert response.status_code == 502
        assert response.json()["success"] is False
        assert "duration" in response.json()["error"]

    def test_unparseable_response_is_502(self, client):
        with patch.object(schedule_routes, "get_layout_strategy", return_value=_FixedStrategy("sorry, no")):
            response = client.post("/api/generate-schedule", json={"prepList": PREP_LIST})
        assert response.status_code == 502


class TestPrepSession:
    def test_requires_loaded_session(self, client):
        assert client.get("/api/prep/session").status_code == 404

    def test_full_flow(self, client, db):
        state = client.post("/api/prep/session").json()
        assert state["prep_list"] == []
        assert state["window_start"] == "06:00"

        items = client.get("/api/prep/items").json()
        assert [i["name"] for i in items] == ["Braised Short Rib", "Caesar Salad", "Tomato Soup"]
        assert [i["has_recipe"] for i in items] == [True, False, True]

        assert [i["id"] for i in client.get("/api/prep/items", params={"search": "ital"}).json()] == ["d", "b"]

        client.post("/api/prep/items/a")
        state = client.post("/api/prep/items/b").json()
        assert [i["id"] for i in state["prep_list"]] == ["a", "b"]

        state = client.post("/api/prep/generate").json()
        assert len(state["schedule"]) == 2
        assert len(state["blocks"]) == 2
        assert state["axis"][0] == "1hr"

        client.post("/api/prep/pointer", json={"type": "down", "task_id": "a", "x": 0})
        moved = client.post("/api/prep/pointer", json={"type": "move", "x": 60, "surface_width": 660}).json()
        assert moved["accepted"] is True
        assert moved["state"]["drag_phase"] == "dragging"
        up = client.post("/api/prep/pointer", json={"type": "up"}).json()
        assert up["outcome"] == "moved"

        a_block = next(b for b in client.get("/api/prep/layout").json()["blocks"] if b["task_id"] == "a")
        assert a_block["start_time"] == "07:00"

        saved = client.post("/api/prep/save").json()
        assert saved["success"] is True
        row = db.tables["prep_schedules"][0]
        assert row["chef_id"] == "chef-1"
        assert next(t for t in row["schedule_data"] if t["menuItemId"] == "a")["startTime"] == "07:00"

    def test_generate_without_recipe_notifies(self, client):
        client.post("/api/prep/session")
        client.post("/api/prep/items/d")
        state = client.post("/api/prep/generate").json()
        assert state["schedule"] == []
        assert state["notifications"][0]["level"] == "error"
        assert "Caesar Salad" in state["notifications"][0]["message"]

    def test_select_shows_recipe_detail(self, client):
        client.post("/api/prep/session")
        client.post("/api/prep/items/a")
        state = client.post("/api/prep/items/a/select").json()
        assert state["selected_item"]["procedure"] == "Sear, then braise."
        assert state["selected_item"]["cooking_methods"] == ["oven"]

    def test_unknown_items_are_404(self, client):
        client.post("/api/prep/session")
        assert client.post("/api/prep/items/nope").status_code == 404
        assert client.delete("/api/prep/items/a").status_code == 404
        assert client.post("/api/prep/items/a/select").status_code == 404

    def test_reload_restores_saved_schedule(self, client):
        client.post("/api/prep/session")
        client.post("/api/prep/items/a")
        client.post("/api/prep/generate")
        client.post("/api/prep/save")

        state = client.post("/api/prep/session").json()
        assert [i["id"] for i in state["prep_list"]] == ["a"]
        assert len(state["schedule"]) == 1
        assert state["restore_message"] == "Loaded your last schedule with 1 item(s)"

        state = client.post("/api/prep/restore-message/dismiss").json()
        assert state["restore_message"] is None

    def test_start_fresh_and_close(self, client):
        client.post("/api/prep/session")
        client.post("/api/prep/items/a")
        state = client.post("/api/prep/start-fresh").json()
        assert state["prep_list"] == []
        assert client.post("/api/prep/save").json()["success"] is False
        assert client.delete("/api/prep/session").json() == {"success": True}
        assert client.get("/api/prep/session").status_code == 404

    def test_items_load_failure_is_502(self, client, db):
        db.fail_on.add("menu_items")
        assert client.post("/api/prep/session").status_code == 502
