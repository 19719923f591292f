"""Tests for the /api endpoints, using FastAPI's TestClient."""

import json
import logging
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from karmic_dice import storage
from karmic_dice.app import create_app

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture
def client():
    with TestClient(create_app(TEST_DATA_DIR)) as c:
        yield c


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


# ── settings ────────────────────────────────────────────────


def test_get_settings_defaults(client):
    data = client.get("/api/settings").json()
    assert data["window_size"] == 50
    assert data["base_bias"] == 1.2
    assert data["affinity_map"] == {}


def test_patch_settings(client):
    resp = client.patch("/api/settings", json={"window_size": 0, "base_bias": 2.0, "affinity_map": {"vader": "dark"}})
    assert resp.status_code == 200
    data = resp.json()
    assert data["config"]["window_size"] == 0
    assert data["effective"]["window_size"] == 50
    assert data["effective"]["base_bias"] == 2.0
    assert data["effective"]["affinity_map"] == {"vader": "dark"}
    assert storage.get_config()["base_bias"] == 2.0


def test_bias_preview_defaults_from_settings(client):
    data = client.get("/api/bias-preview").json()
    assert data["bias"] == 1.2
    assert data["steps"] == 2
    assert data["text"].startswith("Preview (approx): no change")


def test_bias_preview_query(client):
    data = client.get("/api/bias-preview", params={"bias": 0, "steps": 0}).json()
    assert data["text"] == "Preview: Range = 0 → dice never move (bias has no effect)."


# ── rolls ───────────────────────────────────────────────────


def test_roll_pool(client):
    resp = client.post("/api/users/kim/rolls", json={"dice": {"a": 2, "Difficulty": 1}})
    assert resp.status_code == 200
    data = resp.json()
    assert data["user_id"] == "kim"
    assert [f["die_type"] for f in data["faces"]] == ["a", "a", "d"]
    assert data["changes"] == []
    assert data["summary_html"] == ""


def test_roll_negative_count(client):
    resp = client.post("/api/users/kim/rolls", json={"dice": {"a": -1}})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Dice counts must not be negative"


def test_roll_unknown_die(client):
    resp = client.post("/api/users/kim/rolls", json={"dice": {"d20": 1}})
    assert resp.status_code == 400
    assert "Unknown die" in resp.json()["detail"]


def test_roll_bad_body(client):
    resp = client.post("/api/users/kim/rolls", json={"dice": {"a": "many"}})
    assert resp.status_code == 422


def test_low_history_produces_summary(client):
    client.patch("/api/settings", json={"min_samples": 0})
    engine = client.app.state.engine
    engine.import_state("kim", {"dice": {"a": {"history": [1] * 20, "low_streak": 20}}})
    resp = client.post("/api/users/kim/rolls", json={"dice": {"a": 20}})
    data = resp.json()
    assert all(f["bias"] == 6.0 for f in data["faces"])
    assert data["changes"]
    assert "Karmic Dice Adjustments" in data["summary_html"]


# ── averages ────────────────────────────────────────────────


def test_user_averages(client):
    client.post("/api/users/kim/rolls", json={"dice": {"p": 3}})
    data = client.get("/api/users/kim/averages").json()
    assert data["user_id"] == "kim"
    assert data["averages"]["p"]["n"] == 3
    assert data["averages"]["a"] == {"n": 0, "avg": None}


def test_all_averages(client):
    client.post("/api/users/kim/rolls", json={"dice": {"b": 1}})
    client.post("/api/users/lee/rolls", json={"dice": {"f": 1}})
    data = client.get("/api/averages").json()
    assert sorted(data) == ["kim", "lee"]
    assert data["lee"]["f"]["n"] == 1


def test_averages_table(client):
    assert client.get("/api/averages/table").text == ""
    client.post("/api/users/kim/rolls", json={"dice": {"b": 1}})
    resp = client.get("/api/averages/table")
    assert resp.headers["content-type"].startswith("text/html")
    assert "<strong>kim</strong>" in resp.text


# ── persistence ─────────────────────────────────────────────


def test_state_written_on_shutdown():
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        client.post("/api/users/Gamemaster Kim/rolls", json={"dice": {"a": 2}})
    saved = json.loads(storage.state_path("Gamemaster Kim").read_text())
    assert saved["user_id"] == "Gamemaster Kim"
    assert len(saved["dice"]["a"]["history"]) == 2


def test_state_loaded_by_new_app():
    storage.save_state("kim", {"dice": {"a": {"history": [4, 4, 4], "low_streak": 0}}})
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        data = client.get("/api/users/kim/averages").json()
    assert data["averages"]["a"] == {"n": 3, "avg": 1.0}


def test_persistence_disabled():
    storage.update_config({"persist_history": False})
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        client.post("/api/users/kim/rolls", json={"dice": {"a": 1}})
    assert not storage.state_path("kim").exists()


def test_ids_that_slug_alike_keep_separate_state():
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        client.post("/api/users/玩家一/rolls", json={"dice": {"a": 3}})
        client.post("/api/users/Kim/rolls", json={"dice": {"d": 2}})
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        other = client.get("/api/users/玩家二/averages").json()["averages"]
        lower = client.get("/api/users/kim/averages").json()["averages"]
        first = client.get("/api/users/玩家一/averages").json()["averages"]
    assert other["a"]["n"] == 0
    assert lower["d"]["n"] == 0
    assert first["a"]["n"] == 3


def test_averages_list_saved_users_after_restart():
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        client.post("/api/users/kim/rolls", json={"dice": {"b": 2}})
        client.post("/api/users/Lee Ann/rolls", json={"dice": {"f": 1}})
    with TestClient(create_app(TEST_DATA_DIR)) as client:
        data = client.get("/api/averages").json()
        table = client.get("/api/averages/table").text
    assert sorted(data) == ["Lee Ann", "kim"]
    assert data["kim"]["b"]["n"] == 2
    assert "<strong>Lee Ann</strong>" in table


def test_looking_up_unknown_user_does_not_register_it(client):
    client.post("/api/users/kim/rolls", json={"dice": {"b": 1}})
    data = client.get("/api/users/nobody/averages").json()
    assert data["averages"]["b"] == {"n": 0, "avg": None}
    assert sorted(client.get("/api/averages").json()) == ["kim"]


# ── logging ─────────────────────────────────────────────────


@pytest.fixture
def restore_log_level():
    package_logger = logging.getLogger("karmic_dice")
    level = package_logger.level
    yield package_logger
    package_logger.setLevel(level)


def test_debug_setting_applies_without_restart(client, restore_log_level):
    client.patch("/api/settings", json={"debug": True})
    assert restore_log_level.level == logging.DEBUG
    client.patch("/api/settings", json={"debug": False})
    assert restore_log_level.level == logging.NOTSET
