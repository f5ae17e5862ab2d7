from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

from daystack.auth import create_token, verify_token, hash_token, verify_token_hash
from daystack.models.account import Account
from daystack.models.user import User
from daystack.models.verification_token import VerificationToken
from daystack.routes import auth_routes
from daystack.services.user_service import UserService


def _path(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}"


def _error(resp) -> str:
    return parse_qs(urlsplit(resp.headers["location"]).query)["error"][0]


def test_tokens_round_trip_and_reject_tampering():
    token = create_token({"user_id": 1, "jti": "abc"})
    assert verify_token(token)["user_id"] == 1
    assert verify_token(token + "x") is None
    assert verify_token(create_token({"user_id": 1}, expires_delta=timedelta(seconds=-1))) is None


def test_token_hashing():
    hashed = hash_token("magic")
    assert verify_token_hash("magic", hashed)
    assert not verify_token_hash("other", hashed)


def test_protected_page_redirects_to_sign_in(anon_client):
    resp = anon_client.get("/dashboard", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "/sign-in?callbackUrl=/dashboard"


def test_public_pages_are_open(anon_client):
    assert anon_client.get("/").status_code == 200
    assert anon_client.get("/sign-in", params={"callbackUrl": "/habits"}).json()["callbackUrl"] == "/habits"


def test_api_rejects_bad_token(anon_client):
    resp = anon_client.get("/api/v1/metrics/day", params={"date": "2026-01-01"},
                           headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_magic_link_flow(anon_client, db, monkeypatch):
    sent = []

    async def fake_send(to_email, url):
        sent.append((to_email, url))

    monkeypatch.setattr(auth_routes, "send_magic_link", fake_send)

    resp = anon_client.post("/api/v1/auth/signin/email", json={"email": "Lin@Example.com", "callback_url": "/insights"})
    assert resp.status_code == 200
    assert sent[0][0] == "Lin@Example.com"

    link = _path(sent[0][1])
    resp = anon_client.get(link, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/insights"

    session = anon_client.get("/api/v1/auth/session").json()
    assert session["user"]["email"] == "lin@example.com"

    db.expire_all()
    assert db.query(User).filter_by(email="lin@example.com").one().email_verified is not None

    # links are single use
    anon_client.cookies.clear()
    resp = anon_client.get(link, follow_redirects=False)
    assert _error(resp) == "Verification"


def test_expired_magic_link_is_rejected(anon_client, db):
    UserService.create_verification(db, "lin@example.com", "tok")
    row = db.query(VerificationToken).one()
    row.expires = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
    db.commit()

    resp = anon_client.get("/api/v1/auth/callback/email",
                           params={"token": "tok", "email": "lin@example.com"}, follow_redirects=False)
    assert _error(resp) == "Verification"
    db.expire_all()
    assert db.query(VerificationToken).count() == 0


def test_magic_link_send_failure(anon_client, monkeypatch):
    async def broken_send(to_email, url):
        raise OSError("smtp down")

    monkeypatch.setattr(auth_routes, "send_magic_link", broken_send)
    resp = anon_client.post("/api/v1/auth/signin/email", json={"email": "lin@example.com"})
    assert resp.status_code == 502


def test_invalid_email_is_rejected(anon_client):
    resp = anon_client.post("/api/v1/auth/signin/email", json={"email": "nope"})
    assert resp.status_code == 400
    assert "email" in resp.json()["errors"]["fieldErrors"]


def test_safe_callback_only_allows_relative_paths():
    assert auth_routes.safe_callback("/habits") == "/habits"
    assert auth_routes.safe_callback("https://evil.example") == "/dashboard"
    assert auth_routes.safe_callback("//evil.example") == "/dashboard"
    assert auth_routes.safe_callback("/\\evil.example") == "/dashboard"
    assert auth_routes.safe_callback(None) == "/dashboard"


def test_signout_revokes_session(client):
    resp = client.post("/api/v1/auth/signout", follow_redirects=False)
    assert resp.status_code == 303
    assert client.get("/api/v1/habits").status_code == 401


def test_google_without_credentials_is_configuration_error(anon_client):
    resp = anon_client.get("/api/v1/auth/signin/google", follow_redirects=False)
    assert _error(resp) == "Configuration"


def test_google_sign_in_links_one_account(anon_client, db, monkeypatch):
    monkeypatch.setattr(auth_routes, "GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setattr(auth_routes, "GOOGLE_CLIENT_SECRET", "client-secret")

    async def fake_profile(code):
        return {"sub": "g-123", "email": "Lin@Example.com", "name": "Lin", "email_verified": True}

    monkeypatch.setattr(auth_routes, "fetch_google_profile", fake_profile)

    for _ in range(2):
        resp = anon_client.get("/api/v1/auth/signin/google", params={"callbackUrl": "/habits"}, follow_redirects=False)
        assert resp.status_code == 302
        state = parse_qs(urlsplit(resp.headers["location"]).query)["state"][0]

        resp = anon_client.get("/api/v1/auth/callback/google", params={"code": "abc", "state": state},
                               follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/habits"

    db.expire_all()
    assert db.query(User).filter_by(email="lin@example.com").count() == 1
    assert db.query(Account).filter_by(provider="google", provider_account_id="g-123").count() == 1


def test_google_callback_errors(anon_client, monkeypatch):
    resp = anon_client.get("/api/v1/auth/callback/google", params={"error": "access_denied"}, follow_redirects=False)
    assert _error(resp) == "AccessDenied"

    resp = anon_client.get("/api/v1/auth/callback/google", params={"code": "abc", "state": "forged"},
                           follow_redirects=False)
    assert _error(resp) == "Default"

    async def no_email(code):
        return {"sub": "g-9"}

    monkeypatch.setattr(auth_routes, "fetch_google_profile", no_email)
    state = create_token({"purpose": "oauth_state", "callback_url": "/dashboard"})
    resp = anon_client.get("/api/v1/auth/callback/google", params={"code": "abc", "state": state},
                           follow_redirects=False)
    assert _error(resp) == "AccessDenied"


def test_auth_error_messages(anon_client):
    body = anon_client.get("/auth/error", params={"error": "Verification"}).json()
    assert body["message"] == "The verification token has expired or has already been used."
    body = anon_client.get("/auth/error", params={"error": "Whatever"}).json()
    assert body["message"] == "An error occurred during authentication. Please try again."
