# Haven test scripts
from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from haven_platform.config_base import DEFAULT_CFG, _deep_merge
from haven_platform.likes import read_liked

from conftest import FakeRemote


def _cfg(**overrides: Any) -> dict[str, Any]:
    base = {
        "likes": {"debounce_ms": 10},
        "listings": {"load_on_startup": False, "retry_delay_ms": 10, "timeout_sec": 2},
        "session": {"teardown_grace_sec": 1.0},
        "runtime": {"log_level": "silent"},
    }
    return _deep_merge(_deep_merge(DEFAULT_CFG, base), overrides)


@pytest.fixture()
def client(remote: FakeRemote, cache):
    from haven import create_app

    remote.liked["u1"] = {"l1"}
    remote.rows = [{"id": "l1", "title": "Loft"}, {"id": "l2", "title": "Studio"}]
    app = create_app(_cfg(), store=remote, cache=cache)
    with TestClient(app) as c:
        yield c


def test_likes_need_a_session(client: TestClient) -> None:
    for method, path in (("GET", "/api/likes"), ("POST", "/api/likes/l1/toggle"), ("POST", "/api/likes/flush")):
        r = client.request(method, path)
        assert r.status_code == 409
        assert r.json() == {"ok": False, "error": "no_session"}


def test_session_bind_and_toggle(client: TestClient, remote: FakeRemote, cache) -> None:
    r = client.put("/api/session", json={"user_id": "u1"})
    assert r.status_code == 200
    assert r.json() == {"user_id": "u1", "loaded": True, "count": 1}

    r = client.post("/api/likes/l2/toggle")
    assert r.json() == {"id": "l2", "ok": True, "liked": True}
    assert remote.liked["u1"] == {"l1", "l2"}
    assert read_liked(cache, "u1") == {"l1", "l2"}

    r = client.get("/api/likes/l2")
    assert r.json() == {"id": "l2", "liked": True}

    r = client.get("/api/likes")
    body = r.json()
    assert body["ids"] == ["l1", "l2"]
    assert body["pending"] == {"adds": [], "removes": []}
    assert r.headers["Cache-Control"] == "no-store"


def test_rejected_toggle_reports_failure(client: TestClient, remote: FakeRemote) -> None:
    remote.reject = {"l9"}
    client.put("/api/session", json={"user_id": "u1"})
    r = client.post("/api/likes/l9/toggle")
    assert r.json() == {"id": "l9", "ok": False, "liked": False}


def test_replace_then_flush(remote: FakeRemote, cache) -> None:
    from haven import create_app

    remote.liked["u1"] = {"l1"}
    app = create_app(_cfg(likes={"debounce_ms": 5000}), store=remote, cache=cache)
    with TestClient(app) as c:
        c.put("/api/session", json={"user_id": "u1"})
        r = c.put("/api/likes", json={"ids": ["l2", "l3"]})
        assert r.json()["ids"] == ["l2", "l3"]
        assert r.json()["pending"] == {"adds": ["l2", "l3"], "removes": ["l1"]}

        r = c.post("/api/likes/flush")
        assert r.json() == {
            "ok": True,
            "adds": ["l2", "l3"],
            "removes": ["l1"],
            "failed_adds": [],
            "failed_removes": [],
        }
        assert remote.liked["u1"] == {"l2", "l3"}


def test_clear_all_removes_everything(client: TestClient, remote: FakeRemote) -> None:
    client.put("/api/session", json={"user_id": "u1"})
    r = client.delete("/api/likes")
    body = r.json()
    assert body["count"] == 0
    assert body["flush"]["removes"] == ["l1"] and body["flush"]["ok"] is True
    assert remote.liked["u1"] == set()


def test_sign_out_drops_the_reconciler(client: TestClient, cache) -> None:
    client.put("/api/session", json={"user_id": "u1"})
    r = client.put("/api/session", json={"user_id": None})
    assert r.json() == {"user_id": None, "loaded": False, "count": 0}
    assert cache.get("liked_listings") is None
    assert client.get("/api/likes").status_code == 409


def test_listings_refresh(client: TestClient) -> None:
    r = client.get("/api/listings")
    assert r.json()["state"] == "idle"

    r = client.post("/api/listings/refresh")
    assert r.json() == {"state": "succeeded", "count": 2, "attempts": 1, "error": None}

    r = client.get("/api/listings", params={"items": "true"})
    items = r.json()["items"]
    assert [it["id"] for it in items] == ["l1", "l2"]


def test_listings_failure_is_reported(client: TestClient, remote: FakeRemote) -> None:
    remote.listings_error = ConnectionError("down")
    r = client.post("/api/listings/refresh")
    body = r.json()
    assert body["state"] == "failed-after-retries"
    assert body["attempts"] == 3
    assert body["count"] == 0
    assert "down" in body["error"]


def test_startup_load_and_shutdown_flush(remote: FakeRemote, cache) -> None:
    from haven import create_app

    remote.rows = [{"id": "l1"}]
    app = create_app(_cfg(listings={"load_on_startup": True}, likes={"debounce_ms": 5000}), store=remote, cache=cache)
    with TestClient(app) as c:
        c.put("/api/session", json={"user_id": "u1"})
        c.put("/api/likes", json={"ids": ["l7"]})
        assert remote.calls_of("add") == []
    # leaving the app flushes what the debounce was still holding
    assert remote.liked["u1"] == {"l7"}
    assert remote.calls_of("listings") == [("listings",)]
