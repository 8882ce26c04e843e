import pytest
from fastapi.testclient import TestClient

from pintodo.security.sessions import SESSION_COOKIE_NAME

from conftest import PIN

PUBLIC_ASSETS = ["/login.html", "/login", "/login.js", "/styles.css", "/favicon.svg"]


def test_no_pin_everything_passes_without_side_effects(make_app):
    app = make_app()
    with TestClient(app) as client:
        assert client.get("/api/todos").status_code == 200
        page = client.get("/", follow_redirects=False)
        assert page.status_code == 200
        assert "text/html" in page.headers["content-type"]
        assert "set-cookie" not in page.headers
    assert len(app.state.attempts.store) == 0
    assert len(app.state.sessions) == 0


def test_api_without_token_is_401(client):
    r = client.get("/api/todos")
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}


def test_page_without_token_redirects_to_login(client):
    r = client.get("/", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login.html"


def test_xhr_page_request_gets_401(client):
    r = client.get("/index.html", headers={"X-Requested-With": "XMLHttpRequest"}, follow_redirects=False)
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}


def test_app_script_is_gated(client):
    r = client.get("/app.js", follow_redirects=False)
    assert r.status_code == 302


@pytest.mark.parametrize("path", PUBLIC_ASSETS)
def test_login_assets_are_public(client, path):
    r = client.get(path, follow_redirects=False)
    assert r.status_code == 200


def test_pin_endpoints_are_public(client):
    assert client.get("/api/pin-required").status_code == 200
    assert client.get("/health").status_code == 200


def test_cookie_grants_access(client):
    client.cookies.set(SESSION_COOKIE_NAME, PIN)
    assert client.get("/api/todos").status_code == 200
    assert client.get("/", follow_redirects=False).status_code == 200


def test_header_grants_access(client):
    r = client.get("/api/todos", headers={"X-Pin": PIN})
    assert r.status_code == 200


def test_wrong_header_is_rejected(client):
    r = client.get("/api/todos", headers={"X-Pin": "9999"})
    assert r.status_code == 401


def test_cookie_takes_precedence_over_header(client):
    client.cookies.set(SESSION_COOKIE_NAME, "9999")
    r = client.get("/api/todos", headers={"X-Pin": PIN})
    assert r.status_code == 401


def test_login_page_redirects_home_when_trusted(client):
    client.cookies.set(SESSION_COOKIE_NAME, PIN)
    r = client.get("/login.html", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"


def test_invalid_tokens_do_not_touch_attempt_tracker(client, pin_app):
    for _ in range(10):
        client.get("/api/todos", headers={"X-Pin": "0000"})
    assert len(pin_app.state.attempts.store) == 0
    assert client.get("/api/pin-required").json()["attemptsLeft"] == 5


def test_verify_then_browse_with_issued_cookie(client):
    assert client.post("/api/verify-pin", json={"pin": PIN}).status_code == 200
    assert client.get("/api/todos").status_code == 200
    assert client.get("/login.html", follow_redirects=False).status_code == 302


def test_token_mode_issues_opaque_session(make_app):
    app = make_app(pin=PIN, session_mode="token")
    with TestClient(app) as client:
        r = client.post("/api/verify-pin", json={"pin": PIN})
        assert r.status_code == 200
        token = client.cookies.get(SESSION_COOKIE_NAME)
        assert token and token != PIN
        assert client.get("/api/todos").status_code == 200

        # The raw PIN is not a valid session cookie in token mode.
        client.cookies.clear()
        client.cookies.set(SESSION_COOKIE_NAME, PIN)
        assert client.get("/api/todos").status_code == 401

        # Scripts can still authenticate with the header.
        client.cookies.clear()
        assert client.get("/api/todos", headers={"X-Pin": PIN}).status_code == 200


def test_token_mode_logout_revokes_token(make_app):
    app = make_app(pin=PIN, session_mode="token")
    with TestClient(app) as client:
        client.post("/api/verify-pin", json={"pin": PIN})
        token = client.cookies.get(SESSION_COOKIE_NAME)
        client.post("/api/logout", json={})

        client.cookies.set(SESSION_COOKIE_NAME, token)
        assert client.get("/api/todos").status_code == 401
    assert len(app.state.sessions) == 0


def test_security_headers_on_gate_responses(client):
    r = client.get("/api/todos")
    assert r.status_code == 401
    assert r.headers.get("X-Frame-Options") == "DENY"
    assert r.headers.get("X-Content-Type-Options") == "nosniff"


def test_padded_pin_variants_are_not_trusted(client):
    for value in ("12340", "1234000"):
        assert client.get("/api/todos", headers={"X-Pin": value}).status_code == 401

    client.cookies.set(SESSION_COOKIE_NAME, "123400")
    assert client.get("/api/todos").status_code == 401


def test_pin_ending_in_zero_rejects_its_prefix(make_app):
    with TestClient(make_app(pin="12340")) as client:
        r = client.post("/api/verify-pin", json={"pin": "1234"})
        assert r.status_code == 401
        assert client.get("/api/todos", headers={"X-Pin": "1234"}).status_code == 401
        assert client.get("/api/todos", headers={"X-Pin": "12340"}).status_code == 200
