"""HTTP 层测试: 错误码映射和主要流程."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from services.config import config
from services.db.models import User
from services.users.session import SESSION_COOKIE_NAME
from services.utils.timezone import now
from web.dependencies import get_db_session, limiter
from web.routers import admin
from web_app import app


@pytest.fixture
def client(session):
    def _session_override():
        yield session

    app.dependency_overrides[get_db_session] = _session_override
    limiter.enabled = False
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def admin_client(client, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "secret")
    response = client.post("/api/admin/login", json={"username": config.ADMIN_USERNAME, "password": "secret"})
    assert response.status_code == 200
    return client


def test_guest_bootstrap_reuses_cookie(client):
    first = client.post("/api/session", json={"username": "curious-llama-3"})
    assert first.status_code == 200
    assert SESSION_COOKIE_NAME in first.cookies

    second = client.post("/api/session")
    assert second.json()["user_id"] == first.json()["user_id"]
    assert second.json()["username"] == "curious-llama-3"


def test_taken_guest_username_is_409_with_suggestion(client, alice):
    response = client.post("/api/session", json={"username": "alice"})

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "username_taken"
    assert body["suggestion"] == "alice-1"


def test_auth_sync_migrates_guest(client, cusco):
    guest = client.post("/api/session", json={"username": "g-1"}).json()
    client.post(f"/api/users/{guest['user_id']}/join-city", json={"city_id": cusco.id})

    # 游客由会话 cookie 确定
    response = client.post("/api/auth/sync", json={"external_id": "ext-1", "username": "hiker"})

    assert response.json() == {"user_id": guest["user_id"], "migrated": True}
    profile = client.get(f"/api/users/{guest['user_id']}").json()
    assert profile["user"]["is_authenticated"] is True
    assert profile["user"]["cities_visited"] == [cusco.id]
    assert "auth_id" not in profile["user"]


def test_auth_sync_ignores_user_id_in_body(client, session, alice):
    response = client.post(
        "/api/auth/sync",
        json={"external_id": "ext-other", "username": "other", "guest_user_id": alice.id},
    )

    assert response.json()["migrated"] is False
    assert response.json()["user_id"] != alice.id
    assert session.get(User, alice.id).auth_id == "ext-alice"


def test_auth_sync_with_stale_cookie_creates_account(client):
    client.cookies.set(SESSION_COOKIE_NAME, "no-such-session")

    response = client.post("/api/auth/sync", json={"external_id": "ext-1", "username": "hiker"})

    assert response.status_code == 200
    assert response.json()["migrated"] is False


def test_block_errors(client, alice, bob):
    payload = {"blocker_id": alice.id, "blocked_id": bob.id}

    assert client.post("/api/safety/block", json=payload).status_code == 200
    again = client.post("/api/safety/block", json=payload)
    assert again.status_code == 409
    assert again.json()["error"] == "already_blocked"

    self_block = client.post("/api/safety/block", json={"blocker_id": alice.id, "blocked_id": alice.id})
    assert self_block.status_code == 400
    assert self_block.json()["error"] == "self_block"

    status = client.get("/api/safety/block-status", params={"user_id": bob.id, "other_user_id": alice.id})
    assert status.json()["they_blocked_me"] is True


def test_hidden_post_detail_is_404(client, alice, bob, cusco):
    post = client.post(
        "/api/posts",
        json={"author_id": bob.id, "city_id": cusco.id, "title": "Lares", "content": "Hot springs"},
    ).json()
    client.post("/api/safety/block", json={"blocker_id": alice.id, "blocked_id": bob.id})

    assert client.get(f"/api/posts/{post['id']}", params={"viewer_id": alice.id}).status_code == 404
    assert client.get(f"/api/posts/{post['id']}").status_code == 200
    assert client.get(f"/api/posts/city/{cusco.id}", params={"viewer_id": alice.id}).json() == []


def test_validation_error_body(client, alice, cusco):
    response = client.post(
        "/api/posts",
        json={"author_id": alice.id, "city_id": cusco.id, "title": "x" * 201, "content": "ok"},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_error"
    assert body["field"] == "title"
    assert body["limit"] == 200
    assert body["actual"] == 201


def test_guest_cannot_like(client, alice, guest, cusco):
    post = client.post(
        "/api/posts",
        json={"author_id": alice.id, "city_id": cusco.id, "title": "t", "content": "c"},
    ).json()

    response = client.post(f"/api/posts/{post['id']}/like", json={"user_id": guest.id})
    assert response.status_code == 401
    assert response.json()["error"] == "authentication_required"


def test_self_interest_is_403(client, alice, cusco):
    trek = client.post(
        "/api/requests",
        json={
            "author_id": alice.id,
            "city_id": cusco.id,
            "title": "Ausangate",
            "description": "Need a buddy",
            "date_from": "2026-07-01",
        },
    ).json()

    response = client.post(f"/api/requests/{trek['id']}/interest", json={"user_id": alice.id})
    assert response.status_code == 403
    assert response.json()["error"] == "self_interest"


def test_typing_roundtrip(client, alice, bob, cusco):
    client.post("/api/typing/signal", json={"user_id": alice.id, "target_id": cusco.id})

    listed = client.get(f"/api/typing/city/{cusco.id}", params={"viewer_id": bob.id}).json()
    assert listed == [{"user_id": alice.id, "username": "alice"}]

    own = client.get(f"/api/typing/city/{cusco.id}", params={"viewer_id": alice.id}).json()
    assert own == []


def test_dm_typing_needs_viewer(client, alice):
    response = client.get(f"/api/typing/dm/{alice.id}")
    assert response.status_code == 422


def test_chat_roundtrip_with_guest_cookie(client, cusco):
    client.post("/api/session", json={"username": "g-2"})

    sent = client.post(f"/api/chat/city/{cusco.id}/messages", json={"content": "hola", "username": "g-2"})
    assert sent.status_code == 200
    assert sent.json()["session_id"] is not None

    messages = client.get(f"/api/chat/city/{cusco.id}/messages").json()
    assert [m["content"] for m in messages] == ["hola"]
    assert client.get(f"/api/chat/city/{cusco.id}/active-count").json() == {"count": 1}


def test_dm_flow(client, alice, bob):
    client.post("/api/dms", json={"sender_id": alice.id, "receiver_id": bob.id, "content": "hi"})

    conversations = client.get(f"/api/dms/conversations/{bob.id}").json()
    assert conversations[0]["partner"]["username"] == "alice"
    assert conversations[0]["unread_count"] == 1

    assert client.post("/api/dms/read", json={"user_id": bob.id, "partner_id": alice.id}).json()["marked_count"] == 1
    assert client.get(f"/api/dms/unread/{bob.id}/total").json() == {"count": 0}


def test_places(client):
    city = client.post("/api/places/cities", json={"name": "Cusco", "country": "Peru", "lat": -13.53, "lng": -71.97})
    assert city.status_code == 200
    client.post("/api/places/countries", json={"name": "Peru"})

    nearest = client.get("/api/places/cities/nearest", params={"lat": -13.0, "lng": -72.0}).json()
    assert nearest["city"]["name"] == "Cusco"
    assert client.get("/api/places/countries/peru").json()["name"] == "Peru"
    cities = client.get("/api/places/countries/peru/cities").json()
    assert [(c["city"]["name"], c["active_users"]) for c in cities] == [("Cusco", 0)]
    stats = client.get("/api/places/countries/stats").json()
    assert [(s["country"]["name"], s["city_count"], s["active_users"]) for s in stats] == [("Peru", 1, 0)]
    assert client.get("/api/places/countries/peru/active-users").json() == {"count": 0}
    assert client.get("/api/places/countries/atlantis/active-users").status_code == 404
    assert client.get("/api/places/cities/9999").status_code == 404


def test_admin_requires_login(client):
    assert client.get("/api/admin/reports").status_code == 401


def test_admin_login_refused_without_password(client):
    response = client.post("/api/admin/login", json={"username": "admin", "password": ""})
    assert response.status_code == 401


def test_admin_session_expires_after_max_age(admin_client):
    assert admin_client.get("/api/admin/reports").status_code == 200

    stale = now() - timedelta(seconds=admin.ADMIN_SESSION_MAX_AGE + 1)
    for token in list(admin._admin_sessions):
        admin._admin_sessions[token] = stale

    assert admin_client.get("/api/admin/reports").status_code == 401
    assert admin._admin_sessions == {}


def test_admin_report_workflow(admin_client, alice, bob):
    report = admin_client.post(
        "/api/safety/report",
        json={"reporter_id": alice.id, "reported_user_id": bob.id, "reason": "spam"},
    ).json()

    pending = admin_client.get("/api/admin/reports").json()
    assert [r["report"]["id"] for r in pending] == [report["report_id"]]
    assert pending[0]["reported_user"]["username"] == "bob"

    resolved = admin_client.post(f"/api/admin/reports/{report['report_id']}/status", json={"status": "resolved"})
    assert resolved.json()["status"] == "resolved"

    backwards = admin_client.post(f"/api/admin/reports/{report['report_id']}/status", json={"status": "pending"})
    assert backwards.status_code == 409
    assert backwards.json()["error"] == "invalid_status_transition"


def test_admin_maintenance(admin_client, alice):
    assert admin_client.post("/api/admin/typing/sweep").json() == {"removed": 0}

    anonymized = admin_client.post("/api/admin/users/anonymize", json={"external_id": "ext-alice"})
    assert anonymized.json() == {"user_id": alice.id}
    assert admin_client.post("/api/admin/users/anonymize", json={"external_id": "ext-alice"}).status_code == 404
