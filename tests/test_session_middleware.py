"""
tests/test_session_middleware.py -- Integration tests for the session gate.

The gate runs before every route. These tests drive it through the real app:
  - no token / unverifiable token -> anonymous; role gates answer 401
  - valid token, open session -> handler runs
  - valid token, logged-out session -> 401 plain text, handler never runs
  - valid token without a usable session-id claim -> 401 plain text
  - cookie transport works the same as the Bearer header
  - a rejection carries CORS headers and expires the stale cookie
"""

from __future__ import annotations

from uuid import uuid4

from auth.session import SessionContext
from auth.tokens import create_access_token, decode_access_token

EXPIRED = "Your session expired. Please re-authenticate and try again"


def _fresh_admin_token(ctx) -> str:
    account = ctx.admin_account
    return ctx.security.login(account.username, account.password).value.token


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_no_token_is_anonymous(api_client):
    resp = api_client.client.get("/api/categories/get-all")
    assert resp.status_code == 401
    assert resp.text == "Authentication required."


def test_garbage_token_is_anonymous(api_client):
    resp = api_client.client.get("/api/categories/get-all", headers=_bearer("not-a-token"))
    assert resp.status_code == 401
    assert resp.text == "Authentication required."


def test_open_session_passes(api_client):
    resp = api_client.client.get("/api/categories/get-all", headers=api_client.admin())
    assert resp.status_code == 200


def test_logged_out_session_is_rejected(api_client):
    token = _fresh_admin_token(api_client)
    client = api_client.client
    assert client.get("/api/zones/get-all", headers=_bearer(token)).status_code == 200

    resp = client.delete("/api/security/logout", headers=_bearer(token))
    assert resp.status_code == 200
    assert resp.json() == {"message": "User has been successfully logged out"}

    resp = client.get("/api/zones/get-all", headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.text == EXPIRED
    assert resp.headers["content-type"].startswith("text/plain")


def test_logged_out_session_blocks_public_routes_too(api_client):
    """The gate rejects a closed session on every route, not only role-gated ones."""
    token = _fresh_admin_token(api_client)
    api_client.client.delete("/api/security/logout", headers=_bearer(token))
    resp = api_client.client.post("/api/security/register-user", json={}, headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.text == EXPIRED


def test_rejected_request_never_reaches_handler(api_client):
    token = _fresh_admin_token(api_client)
    api_client.client.delete("/api/security/logout", headers=_bearer(token))
    cid = str(uuid4())
    resp = api_client.client.post("/api/categories/create", json={"id": cid, "name": "Ghost"}, headers=_bearer(token))
    assert resp.status_code == 401
    assert api_client.client.get(f"/api/categories/get-by-id/{cid}", headers=api_client.admin()).status_code == 404


def test_token_without_session_id_is_rejected(api_client):
    token, _ = create_access_token({"sub": "testadmin", "role": "Admin"})
    resp = api_client.client.get("/api/categories/get-all", headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.text == EXPIRED


def test_token_with_malformed_session_id_is_rejected(api_client):
    token, _ = create_access_token({"sub": "testadmin", "role": "Admin", "sid": "not-a-guid"})
    resp = api_client.client.get("/api/categories/get-all", headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.text == EXPIRED


def test_token_with_unknown_session_id_is_rejected(api_client):
    token, _ = create_access_token({"sub": "testadmin", "role": "Admin", "sid": str(uuid4())})
    resp = api_client.client.get("/api/categories/get-all", headers=_bearer(token))
    assert resp.status_code == 401
    assert resp.text == EXPIRED


def test_cookie_transport(api_client):
    client = api_client.client
    account = api_client.admin_account
    resp = client.post("/api/security/login", json={"username": account.username, "password": account.password})
    assert resp.status_code == 200
    assert "access_token" in client.cookies
    try:
        assert client.get("/api/devices/get-all").status_code == 200
        assert client.delete("/api/security/logout").status_code == 200
        # Logout clears the cookie, so the next request is anonymous.
        assert "access_token" not in client.cookies
        assert client.get("/api/devices/get-all").status_code == 401
    finally:
        client.cookies.clear()


def test_rejection_carries_cors_headers(api_client):
    """Browsers on an allowed origin can read the gate's 401."""
    token = _fresh_admin_token(api_client)
    api_client.client.delete("/api/security/logout", headers=_bearer(token))
    headers = {**_bearer(token), "Origin": "http://localhost:3000"}
    resp = api_client.client.get("/api/zones/get-all", headers=headers)
    assert resp.status_code == 401
    assert resp.text == EXPIRED
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_untrusted_host_is_rejected_before_the_gate(api_client):
    token = _fresh_admin_token(api_client)
    api_client.client.delete("/api/security/logout", headers=_bearer(token))
    resp = api_client.client.get("/api/zones/get-all", headers={**_bearer(token), "Host": "evil.example.com"})
    assert resp.status_code == 400
    assert resp.text != EXPIRED


def test_rejection_expires_stale_cookie(api_client):
    """A cookie whose session was closed elsewhere must not lock its holder out."""
    client = api_client.client
    account = api_client.admin_account
    credentials = {"username": account.username, "password": account.password}
    assert client.post("/api/security/login", json=credentials).status_code == 200
    try:
        # Close the session through another channel; the cookie still holds its token.
        claims = decode_access_token(client.cookies["access_token"])
        assert api_client.security.logout(SessionContext.from_claims(claims).session_id).ok

        resp = client.get("/api/zones/get-all")
        assert resp.status_code == 401
        assert resp.text == EXPIRED
        assert "access_token" in resp.headers["set-cookie"]
        assert "access_token" not in client.cookies

        assert client.post("/api/security/login", json=credentials).status_code == 200
    finally:
        client.cookies.clear()
