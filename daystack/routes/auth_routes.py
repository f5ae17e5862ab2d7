"""
Auth routes - Google OAuth and email magic links.
Both flows end by issuing a session token (JWT) as an HttpOnly cookie and
redirecting back into the app; failures redirect to /auth/error.
"""
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from daystack.auth import (
    create_token, verify_token, issue_session, revoke_session,
    generate_verification_token, get_token_payload,
)
from daystack.config import (
    BASE_URL, SESSION_COOKIE_NAME, JWT_EXPIRY_HOURS,
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_AUTH_URL, GOOGLE_TOKEN_URL, GOOGLE_USERINFO_URL,
)
from daystack.database import get_db
from daystack.mailer import send_magic_link
from daystack.models.user import User
from daystack.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])

DEFAULT_CALLBACK = "/dashboard"
GOOGLE_REDIRECT_URI = f"{BASE_URL}/api/v1/auth/callback/google"


# ── Pydantic schemas ──────────────────────────────────────────────
class EmailSignInRequest(BaseModel):
    email: EmailStr
    callback_url: Optional[str] = None


# ── Helpers ───────────────────────────────────────────────────────
def safe_callback(url: str | None) -> str:
    """Only same-site relative paths are accepted as post-sign-in targets."""
    # browsers treat "/\host" like "//host"
    if url and url.startswith("/") and not url.startswith(("//", "/\\")):
        return url
    return DEFAULT_CALLBACK


def error_redirect(error: str) -> RedirectResponse:
    return RedirectResponse(f"/auth/error?{urlencode({'error': error})}", status_code=302)


def session_redirect(token: str, callback_url: str | None) -> RedirectResponse:
    response = RedirectResponse(safe_callback(callback_url), status_code=302)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=JWT_EXPIRY_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=BASE_URL.startswith("https://"),
    )
    return response


async def fetch_google_profile(code: str) -> dict:
    """Exchange an authorization code for Google's userinfo (sub, email, name, picture)."""
    async with httpx.AsyncClient(timeout=10) as client:
        token_resp = await client.post(GOOGLE_TOKEN_URL, data={
            "code": code,
            "client_id": GOOGLE_CLIENT_ID,
            "client_secret": GOOGLE_CLIENT_SECRET,
            "redirect_uri": GOOGLE_REDIRECT_URI,
            "grant_type": "authorization_code",
        })
        token_resp.raise_for_status()
        access_token = token_resp.json()["access_token"]

        info_resp = await client.get(GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        info_resp.raise_for_status()
        return info_resp.json()


# ── Routes ────────────────────────────────────────────────────────
@router.get("/providers")
async def providers():
    return {
        "google": {"id": "google", "name": "Google", "signinUrl": "/api/v1/auth/signin/google",
                   "enabled": bool(GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET)},
        "email": {"id": "email", "name": "Email", "signinUrl": "/api/v1/auth/signin/email", "enabled": True},
    }


@router.get("/signin/google")
async def signin_google(callbackUrl: Optional[str] = None):
    if not (GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET):
        logger.error("Google sign-in requested but GOOGLE_CLIENT_ID/SECRET are not set")
        return error_redirect("Configuration")

    state = create_token({"purpose": "oauth_state", "callback_url": safe_callback(callbackUrl)},
                         expires_delta=timedelta(minutes=10))
    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return RedirectResponse(f"{GOOGLE_AUTH_URL}?{urlencode(params)}", status_code=302)


@router.get("/callback/google")
async def callback_google(request: Request, code: Optional[str] = None, state: Optional[str] = None,
                          error: Optional[str] = None, db: Session = Depends(get_db)):
    if error:
        logger.info(f"Google sign-in cancelled: {error}")
        return error_redirect("AccessDenied")

    state_payload = verify_token(state) if state else None
    if not code or not state_payload or state_payload.get("purpose") != "oauth_state":
        return error_redirect("Default")

    try:
        profile = await fetch_google_profile(code)
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error(f"Google token exchange failed: {e}")
        return error_redirect("Default")

    if not profile.get("email") or not profile.get("sub"):
        return error_redirect("AccessDenied")

    user = UserService.user_for_account(db, "google", profile["sub"])
    if user is None:
        user = UserService.upsert(db, profile["email"], profile.get("name"), profile.get("picture"),
                                  verified=bool(profile.get("email_verified")))
        UserService.link_account(db, user, "google", profile["sub"])

    token = issue_session(db, user.id, user.email, "google", request.headers.get("user-agent"))
    logger.info(f"User signed in: {user.email}")
    return session_redirect(token, state_payload.get("callback_url"))


@router.post("/signin/email")
async def signin_email(body: EmailSignInRequest, db: Session = Depends(get_db)):
    token = generate_verification_token()
    try:
        UserService.create_verification(db, body.email, token)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    query = {"token": token, "email": body.email.lower(), "callbackUrl": safe_callback(body.callback_url)}
    url = f"{BASE_URL}/api/v1/auth/callback/email?{urlencode(query)}"
    try:
        await send_magic_link(body.email, url)
    except Exception as e:
        logger.error(f"Failed to send magic link to {body.email}: {e}")
        raise HTTPException(status_code=502, detail="Could not send the sign-in email. Please try again.")

    return {"status": "success", "message": "Check your email for a sign-in link."}


@router.get("/callback/email")
async def callback_email(request: Request, token: str, email: str, callbackUrl: Optional[str] = None,
                         db: Session = Depends(get_db)):
    if not UserService.consume_verification(db, email, token):
        return error_redirect("Verification")

    user = UserService.upsert(db, email, verified=True)
    session_token = issue_session(db, user.id, user.email, "email", request.headers.get("user-agent"))
    logger.info(f"User signed in: {user.email}")
    return session_redirect(session_token, callbackUrl)


@router.get("/session")
async def get_session(payload: dict = Depends(get_token_payload), db: Session = Depends(get_db)):
    user = db.get(User, payload["user_id"])
    if user is None:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return {
        "user": {"id": user.id, "email": user.email, "name": user.name, "image": user.image},
        "expires": payload["exp"],
    }


@router.post("/signout")
async def signout(payload: dict = Depends(get_token_payload), db: Session = Depends(get_db)):
    revoke_session(db, payload["jti"])
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
