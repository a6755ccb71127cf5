from __future__ import annotations

import json
import threading

import pytest
from fastapi.testclient import TestClient

import api.app as api_app
from orr_core import config, item_bank
from orr_core.item_bank import BankLoadError

from tests.conftest import build_synthetic_bank


@pytest.fixture
def client(monkeypatch):
    bank = build_synthetic_bank()
    monkeypatch.setattr(item_bank, "get_bank", lambda fetch=None: bank)
    monkeypatch.setattr(item_bank, "load_bank", lambda *a, **k: bank)
    monkeypatch.setattr(config, "AUDIT_EXPORT_ENABLED", True)
    api_app.SESS.clear()
    api_app._LOCKS.clear()
    return TestClient(api_app.app)


def _start(client, **extra):
    body = {"age": 10, "min_items": 3, "max_items": 3, "practice": False, "seed": 5, **extra}
    res = client.post("/session/start", json=body)
    assert res.status_code == 200, res.text
    return res.json()


def test_full_session_flow(client):
    data = _start(client)
    sid = data["session_id"]
    assert data["phase"] == "testing"
    assert data["ability"] == 3.0
    assert data["item"] is not None

    for ok in (True, False, True):
        res = client.post(f"/session/{sid}/command", json={"type": "score", "correct": ok, "rt_ms": 700})
        assert res.json()["accepted"] is True
        client.get(f"/session/{sid}/next")

    nxt = client.get(f"/session/{sid}/next").json()
    assert nxt["done"] is True and nxt["item"] is None

    summary = client.get(f"/session/{sid}/summary").json()
    assert summary["summary"]["item_count"] == 3
    assert summary["summary"]["correct_count"] == 2

    csv_res = client.get(f"/session/{sid}/summary.csv")
    assert csv_res.headers["content-type"].startswith("text/csv")
    assert csv_res.text.startswith("Item ID,")

    audit = client.get(f"/session/{sid}/audit.json").json()
    assert [e["action"] for e in audit["events"]] == ["score"] * 3

    done = client.post(f"/session/{sid}/finish").json()
    assert done["stop_reason"] == "stop_rule"
    assert client.get(f"/session/{sid}/status").status_code == 404


def test_undo_and_pause_commands(client):
    sid = _start(client, max_items=5)["session_id"]
    first = client.get(f"/session/{sid}/next").json()["item"]

    client.post(f"/session/{sid}/command", json={"type": "score", "correct": True})
    res = client.post(f"/session/{sid}/command", json={"type": "undo"}).json()
    assert res["accepted"] is True
    assert res["items_administered"] == 0
    assert res["current_item"]["id"] == first["id"]

    assert client.post(f"/session/{sid}/command", json={"type": "pause"}).json()["phase"] == "paused"
    paused_score = client.post(f"/session/{sid}/command", json={"type": "score", "correct": True}).json()
    assert paused_score["accepted"] is False
    assert client.get(f"/session/{sid}/next").json()["item"] is None

    client.post(f"/session/{sid}/command", json={"type": "resume"})
    assert client.get(f"/session/{sid}/next").json()["item"]["id"] == first["id"]


def test_score_without_flag_is_rejected(client):
    sid = _start(client)["session_id"]
    res = client.post(f"/session/{sid}/command", json={"type": "score"})
    assert res.status_code == 422


def test_invalid_bounds_are_rejected(client):
    res = client.post("/session/start", json={"min_items": 10, "max_items": 2})
    assert res.status_code == 422


def test_bank_failure_is_service_unavailable(client, monkeypatch):
    def broken(fetch=None):
        raise BankLoadError("no data")

    monkeypatch.setattr(item_bank, "get_bank", broken)
    monkeypatch.setattr(item_bank, "load_bank", lambda *a, **k: broken())
    res = client.post("/session/start", json={"age": 10})
    assert res.status_code == 503


def test_audit_export_can_be_disabled(client, monkeypatch):
    sid = _start(client)["session_id"]
    monkeypatch.setattr(config, "AUDIT_EXPORT_ENABLED", False)
    assert client.get(f"/session/{sid}/audit.csv").status_code == 404


def test_unknown_session(client):
    assert client.get("/session/nope/next").status_code == 404


def test_non_finite_or_negative_latency_is_rejected(client):
    sid = _start(client)["session_id"]
    res = client.post(
        f"/session/{sid}/command",
        content='{"type": "score", "correct": true, "rt_ms": Infinity}',
        headers={"content-type": "application/json"},
    )
    assert res.status_code == 422
    res = client.post(f"/session/{sid}/command", json={"type": "score", "correct": True, "rt_ms": -5})
    assert res.status_code == 422
    assert client.get(f"/session/{sid}/status").json()["items_administered"] == 0


def test_preload_setting_comes_from_config_file(client, monkeypatch, tmp_path):
    def unexpected(fetch=None):
        raise AssertionError("cached bank used with preload disabled")

    bank = build_synthetic_bank(words=5)
    monkeypatch.setattr(item_bank, "get_bank", unexpected)
    monkeypatch.setattr(item_bank, "load_bank", lambda *a, **k: bank)
    (tmp_path / "config.json").write_text(json.dumps({"preload_bank": False}), encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert client.get("/health").json()["preload_bank"] is False
    data = _start(client)
    assert data["item"]["id"] in bank


def test_bank_is_warmed_at_startup(monkeypatch):
    calls = []
    bank = build_synthetic_bank()

    def warm(fetch=None):
        calls.append(1)
        return bank

    monkeypatch.setattr(item_bank, "get_bank", warm)
    with TestClient(api_app.app) as c:
        assert calls == [1]
        assert c.get("/health").status_code == 200


def test_failed_warmup_still_serves_and_start_reports_503(monkeypatch):
    def broken(fetch=None):
        raise BankLoadError("offline")

    monkeypatch.setattr(item_bank, "get_bank", broken)
    with TestClient(api_app.app) as c:
        assert c.get("/health").status_code == 200
        assert c.post("/session/start", json={"age": 10}).status_code == 503


def test_concurrent_scores_record_one_response(client):
    sid = _start(client, max_items=5)["session_id"]
    results = []

    def score():
        res = client.post(f"/session/{sid}/command", json={"type": "score", "correct": True, "rt_ms": 300})
        results.append(res.json()["accepted"])

    lock = api_app._lock(sid)
    with lock:
        workers = [threading.Thread(target=score) for _ in range(2)]
        for w in workers:
            w.start()
        workers[0].join(0.2)
        assert all(w.is_alive() for w in workers), "commands wait for the session lock"
    for w in workers:
        w.join(5)

    assert sorted(results) == [False, True]
    assert client.get(f"/session/{sid}/status").json()["items_administered"] == 1
