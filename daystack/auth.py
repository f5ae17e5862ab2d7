from datetime import datetime, timedelta, timezone
from urllib.parse import quote
import logging
import secrets
import uuid

import bcrypt
from fastapi import Depends, Request, HTTPException, status
from fastapi.responses import RedirectResponse
from jose import jwt, JWTError
from sqlalchemy.orm import Session as DBSession

from daystack.config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRY_HOURS, SESSION_COOKIE_NAME
from daystack.database import get_db
from daystack.models.session import Session

logger = logging.getLogger(__name__)

# Page routes that require a signed-in user; API routes answer 401 on their own
PROTECTED_PREFIXES = ("/dashboard", "/habits", "/insights", "/settings")


def generate_verification_token() -> str:
    """Random URL-safe token sent inside a magic link."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Hash a verification token using bcrypt."""
    # Ensure it doesn't exceed 72 bytes to prevent bcrypt ValueError
    token_bytes = token.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(token_bytes, bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_token_hash(plain_token: str, hashed_token: str) -> bool:
    """Verify a plain verification token against its bcrypt hash."""
    try:
        token_bytes = plain_token.encode('utf-8')[:72]
        return bcrypt.checkpw(token_bytes, hashed_token.encode('utf-8'))
    except ValueError as e:
        logger.warning(f"Bcrypt verification error: {e}")
        return False


def create_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT token with an expiry claim and a unique JTI."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=JWT_EXPIRY_HOURS))
    to_encode.setdefault("jti", str(uuid.uuid4()))
    to_encode["exp"] = expire
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict | None:
    """Decode and verify a JWT token. Returns the payload or None on failure."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def issue_session(db: DBSession, user_id: int, email: str, provider: str, user_agent: str | None = None) -> str:
    """Create a session row and return the signed token that refers to it."""
    jti = str(uuid.uuid4())
    db.add(Session(user_id=user_id, token_jti=jti, provider=provider, user_agent=user_agent))
    db.commit()
    return create_token({"user_id": user_id, "email": email, "jti": jti})


def revoke_session(db: DBSession, jti: str) -> None:
    row = db.query(Session).filter_by(token_jti=jti).first()
    if row:
        row.is_revoked = True
        db.commit()


def is_session_valid(db: DBSession, jti: str) -> bool:
    """Check that the session JTI exists and has not been revoked."""
    row = db.query(Session).filter_by(token_jti=jti).first()
    return row is not None and not row.is_revoked


def extract_token(request: Request) -> str | None:
    """Bearer header first, then the session cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return request.cookies.get(SESSION_COOKIE_NAME)


def get_token_payload(request: Request, db: DBSession = Depends(get_db)) -> dict:
    """
    FastAPI dependency - extracts the session token from the Authorization
    header or the session cookie, verifies it and returns its payload.
    Raises HTTP 401 if the token is missing, invalid or revoked.
    """
    token = extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("user_id") is None or payload.get("jti") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token payload missing required claims",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not is_session_valid(db, payload["jti"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has been revoked or signed out",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


def get_current_user(payload: dict = Depends(get_token_payload)) -> int:
    """FastAPI dependency - the signed-in user's id."""
    return payload["user_id"]


def is_protected_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


async def protect_pages(request: Request, call_next):
    """
    HTTP middleware gating the page routes. Only the token signature and
    expiry are checked here; revocation is checked by get_current_user.
    """
    path = request.url.path
    if is_protected_path(path):
        token = extract_token(request)
        if not token or verify_token(token) is None:
            logger.info(f"Redirecting unauthenticated request for {path} to sign-in")
            return RedirectResponse(f"/sign-in?callbackUrl={quote(path)}", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return await call_next(request)
