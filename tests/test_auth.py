"""
tests/test_auth.py
"""
from __future__ import annotations

import time

from itsdangerous import URLSafeTimedSerializer

from remotework.blog import (
    ADMIN_COOKIE,
    _token_serializer,
    app,
    issue_admin_token,
    read_admin_token,
)
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, AUTH_SECRET


# ───────────────────────── helpers ────────────────────────────────────
def _login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def _set_cookie_headers(rv) -> list[str]:
    return [h for h in rv.headers.getlist("Set-Cookie") if h.startswith(f"{ADMIN_COOKIE}=")]


# ───────────────────────── tests ──────────────────────────────────────
def test_successful_login_sets_signed_cookie(client):
    rv = _login(client)
    assert rv.status_code == 200
    assert rv.get_json() == {"success": True, "user": {"email": ADMIN_EMAIL, "role": "admin"}}

    (header,) = _set_cookie_headers(rv)
    assert "HttpOnly" in header
    assert "SameSite=Lax" in header
    assert "Max-Age=86400" in header
    assert "Path=/" in header

    token = client.get_cookie(ADMIN_COOKIE).value
    payload = URLSafeTimedSerializer(AUTH_SECRET, salt="admin-token").loads(token)
    assert payload["role"] == "admin"
    assert payload["email"] == ADMIN_EMAIL
    assert payload["exp"] == payload["iat"] + 86400


def test_cookie_grants_admin_api(client):
    _login(client)
    assert client.get("/api/admin/authors").status_code == 200


def test_wrong_password_is_401_without_cookie(client):
    rv = _login(client, password="nope")
    assert rv.status_code == 401
    assert rv.get_json() == {"error": "Invalid credentials"}
    assert _set_cookie_headers(rv) == []


def test_wrong_email_is_401(client):
    rv = _login(client, email="someone@else.test")
    assert rv.status_code == 401


def test_missing_fields(client):
    rv = client.post("/api/auth/login", json={"email": ADMIN_EMAIL})
    assert rv.status_code == 400
    assert rv.get_json() == {"error": "Email and password are required"}


def test_unknown_fields_rejected(client):
    rv = client.post(
        "/api/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "role": "admin"},
    )
    assert rv.status_code == 400


def test_non_json_body(client):
    rv = client.post("/api/auth/login", data="email=x", content_type="text/plain")
    assert rv.status_code == 400
    assert rv.get_json() == {"error": "Request body must be a JSON object"}


def test_no_configured_credentials_never_matches(client, monkeypatch):
    monkeypatch.setitem(app.config, "ADMIN_EMAIL", "")
    monkeypatch.setitem(app.config, "ADMIN_PASSWORD", "")
    rv = _login(client, email="x@y.z", password="anything")
    assert rv.status_code == 401


def test_admin_api_without_cookie(client):
    rv = client.get("/api/admin/authors")
    assert rv.status_code == 401
    assert rv.get_json() == {"error": "Unauthorized"}


def test_tampered_cookie_rejected(client):
    token = issue_admin_token(ADMIN_EMAIL)
    client.set_cookie(ADMIN_COOKIE, token[:-2] + ("AA" if not token.endswith("AA") else "BB"))
    assert client.get("/api/admin/authors").status_code == 401


def test_cookie_signed_with_other_secret_rejected(client):
    forged = URLSafeTimedSerializer("not-the-secret", salt="admin-token").dumps(
        {"email": ADMIN_EMAIL, "role": "admin", "iat": 0, "exp": 2**40}
    )
    client.set_cookie(ADMIN_COOKIE, forged)
    assert client.get("/api/admin/authors").status_code == 401


def test_token_expires_after_a_day(client, monkeypatch):
    client.set_cookie(ADMIN_COOKIE, issue_admin_token(ADMIN_EMAIL))
    assert client.get("/api/admin/authors").status_code == 200

    real_time = time.time
    monkeypatch.setattr(time, "time", lambda: real_time() + 25 * 3600)
    assert client.get("/api/admin/authors").status_code == 401


def test_past_exp_claim_rejected(client):
    now = int(time.time())
    token = _token_serializer().dumps(
        {"email": ADMIN_EMAIL, "role": "admin", "iat": now - 10, "exp": now - 1}
    )
    assert read_admin_token(token) is None


def test_non_admin_role_rejected(client):
    now = int(time.time())
    token = _token_serializer().dumps(
        {"email": ADMIN_EMAIL, "role": "editor", "iat": now, "exp": now + 60}
    )
    client.set_cookie(ADMIN_COOKIE, token)
    assert client.get("/api/admin/authors").status_code == 401


def test_logout_clears_cookie(admin_client):
    rv = admin_client.post("/api/auth/logout")
    assert rv.status_code == 200
    assert admin_client.get_cookie(ADMIN_COOKIE) is None
    assert admin_client.get("/api/admin/authors").status_code == 401


def test_admin_pages_redirect_to_login(client):
    rv = client.get("/admin")
    assert rv.status_code == 302
    assert rv.headers["Location"].endswith("/admin/login")


def test_invalid_cookie_is_cleared_on_redirect(client):
    client.set_cookie(ADMIN_COOKIE, "garbage")
    rv = client.get("/admin/analytics")
    assert rv.status_code == 302
    (header,) = _set_cookie_headers(rv)
    assert "Max-Age=0" in header


def test_login_page_is_public(client):
    assert client.get("/admin/login").status_code == 200


def test_logged_in_admin_skips_login_page(admin_client):
    rv = admin_client.get("/admin/login")
    assert rv.status_code == 302
    assert rv.headers["Location"].endswith("/admin")


def test_admin_pages_render(admin_client, make_post):
    make_post(title="Visible in dashboard", status="draft")
    rv = admin_client.get("/admin")
    assert rv.status_code == 200
    assert b"Visible in dashboard" in rv.data
    assert admin_client.get("/admin/posts/new").status_code == 200
    assert admin_client.get("/admin/analytics").status_code == 200


def test_padded_email_does_not_match(client):
    rv = _login(client, email=f" {ADMIN_EMAIL} ")
    assert rv.status_code == 401


def test_removed_cookie_loses_access_on_next_request(client):
    _login(client)
    assert client.get("/api/admin/authors").status_code == 200

    client.delete_cookie(ADMIN_COOKIE)
    assert client.get("/api/admin/authors").status_code == 401
