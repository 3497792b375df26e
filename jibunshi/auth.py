"""
auth.py — PIN hashing, bearer tokens and the FastAPI auth dependencies.

Two independent checks guard a request:
  1. The JWT itself — signature + exp claim (7 days). Enough for most routes.
  2. The server-side sessions row — sha256(token) must match the user's
     single active row and its own expires_at must be in the future.
     Required on sensitive routes via require_active_session().

A new login replaces the sessions row, so an older token keeps passing (1)
until its exp but fails (2) immediately.
"""
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.config import settings
from jibunshi.database import get_db

logger = logging.getLogger(__name__)

# pbkdf2_sha256 is pure passlib — no native bcrypt backend needed
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


# ---------------------------------------------------------------------------
# PIN hashing
# ---------------------------------------------------------------------------

def hash_pin(pin: str) -> str:
    return pwd_context.hash(pin)


def verify_pin(pin: str, pin_hash: str) -> bool:
    try:
        return pwd_context.verify(pin, pin_hash)
    except ValueError:
        # Unrecognised hash format in the row
        logger.warning("PIN hash could not be identified")
        return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

@dataclass
class TokenPayload:
    user_id: int
    name: str
    issued_at: int


def create_access_token(user_id: int, name: str, now: Optional[datetime] = None) -> str:
    """Signed HS256 token carrying {userId, name, iat, exp}."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "name": name,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(days=settings.token_ttl_days)).timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """Verify signature and expiry. Returns None for any invalid token."""
    try:
        claims = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.PyJWTError as exc:
        logger.debug("Token rejected: %s", type(exc).__name__)
        return None

    user_id = claims.get("userId")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None
    return TokenPayload(user_id=user_id, name=str(claims.get("name", "")), issued_at=claims["iat"])


def hash_token(token: str) -> str:
    """SHA-256 hex digest stored in sessions.token_hash."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def session_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(days=settings.session_ttl_days)


def extract_bearer(header: Optional[str]) -> Optional[str]:
    """Return the token of a 'Bearer <token>' header, else None."""
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


async def issue_login(db: AsyncSession, user_id: int, name: str, device_id: Optional[str]) -> str:
    """Create a token for the user and make it the user's only auth session."""
    token = create_access_token(user_id, name)
    await store.replace_auth_session(
        db,
        user_id=user_id,
        device_id=device_id or "unknown",
        token_hash=hash_token(token),
        expires_at=session_expiry(),
    )
    return token


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

@dataclass
class CurrentUser:
    user_id: int
    name: str
    token: str


async def get_current_user(request: Request) -> CurrentUser:
    """401 when the Authorization header is missing, malformed, invalid or expired."""
    token = extract_bearer(request.headers.get("Authorization"))
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required: bearer token missing")
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return CurrentUser(user_id=payload.user_id, name=payload.name, token=token)


async def require_active_session(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """get_current_user + a matching, unexpired sessions row."""
    if not await store.verify_auth_session(db, current.user_id, hash_token(current.token)):
        logger.info("Session check failed user_id=%s", current.user_id)
        raise HTTPException(status_code=401, detail="Session expired or signed out")
    return current


def ensure_owner(current: CurrentUser, owner_id: int) -> None:
    if current.user_id != owner_id:
        raise HTTPException(status_code=403, detail="Access denied")
