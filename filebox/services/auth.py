# ruff: noqa: I001
from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from typing import Optional
import secrets
import uuid

from fastapi import Depends, HTTPException
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.requests import Request

from filebox.core.settings import settings
from filebox.models.user import User, UserSession
from db import get_db

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_COOKIE = "session_id"
API_KEY_HEADER = "x-api-key"
API_KEY_BYTES = 32

# Password hashing


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _utcnow() -> datetime:
    # Use aware UTC to avoid deprecation, but store naive UTC to match the DB schema
    return datetime.now(timezone.utc).replace(tzinfo=None)


# User authentication


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.Username == username, User.IsActive).first()
    if user and verify_password(password, user.HashedPassword or ""):
        return user
    return None


# In-memory rate limiter (per process). For multi-instance, replace with Redis.
_login_attempts = defaultdict(deque)


def is_login_rate_limited(key: str) -> bool:
    from time import time

    window = int(settings.RATE_LIMIT_LOGIN_WINDOW_SECONDS)
    limit = int(settings.RATE_LIMIT_LOGIN_ATTEMPTS)
    q = _login_attempts[key]
    now = time()
    # drop old
    while q and q[0] < now - window:
        q.popleft()
    return len(q) >= limit


def add_login_attempt(key: str):
    from time import time

    _login_attempts[key].append(time())


def reset_login_attempts(key: str):
    _login_attempts.pop(key, None)


# Session management


def create_session(
    db: Session,
    user_id: int,
    expires_in_minutes: Optional[int] = None,
    ip_address: str = "",
    user_agent: str = "",
) -> UserSession:
    ttl = expires_in_minutes if expires_in_minutes is not None else settings.SESSION_TTL_MINUTES
    now = _utcnow()
    session = UserSession(
        SessionID=str(uuid.uuid4()),
        UserID=user_id,
        CreatedAt=now,
        ExpiresAt=now + timedelta(minutes=ttl),
        IsActive=True,
        LastSeen=now,
        IPAddress=ip_address or None,
        UserAgent=(user_agent or "")[:255] or None,
    )
    db.add(session)
    db.commit()
    return session


def get_session(db: Session, session_id: str) -> Optional[UserSession]:
    session = (
        db.query(UserSession)
        .filter(UserSession.SessionID == str(session_id), UserSession.IsActive)
        .first()
    )
    if session is None:
        return None
    expires_at = session.ExpiresAt
    if isinstance(expires_at, datetime) and expires_at > _utcnow():
        session.LastSeen = _utcnow()
        db.commit()
        return session
    return None


def deactivate_session(db: Session, session_id: str):
    session = db.query(UserSession).filter(UserSession.SessionID == str(session_id)).first()
    if session:
        session.IsActive = False
        db.commit()


# User creation and API keys


def create_user(db: Session, username: str, password: str, is_admin: bool = False) -> Optional[User]:
    user = User(
        Username=username,
        HashedPassword=hash_password(password),
        IsActive=True,
        IsAdmin=is_admin,
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
        return user
    except IntegrityError:
        db.rollback()
        return None


def generate_api_key() -> str:
    return secrets.token_urlsafe(API_KEY_BYTES)


def rotate_api_key(db: Session, user: User) -> str:
    """Replace the user's API key; the previous key stops working immediately."""
    key = generate_api_key()
    user.ApiKey = key
    user.ApiKeyEditedAt = _utcnow()
    db.commit()
    return key


# Helpers to read the caller from the request


def get_session_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization") or ""
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE)


def get_user_id_from_request(request: Request, db: Session) -> Optional[int]:
    session_id = get_session_token(request)
    if not session_id:
        return None
    session_obj = get_session(db=db, session_id=session_id)
    if not session_obj:
        return None
    return int(session_obj.UserID)


def get_user_by_api_key(db: Session, api_key: str) -> Optional[User]:
    return db.query(User).filter(User.ApiKey == api_key, User.IsActive).first()


# FastAPI dependencies for auth


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Return the authenticated User or None.

    An ``X-API-Key`` header wins over session credentials. A key that is
    present but unknown is rejected outright rather than falling through to
    the cookie, so scripts with a revoked key fail loudly.
    """
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        user = get_user_by_api_key(db, api_key)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid API key")
        request.state.user_id = int(user.UserID)
        return user

    uid = get_user_id_from_request(request, db)
    if uid is None:
        return None
    user = db.query(User).filter(User.UserID == uid, User.IsActive).first()
    if user is not None:
        request.state.user_id = int(user.UserID)
    return user


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Dependency that requires an authenticated user; 401 otherwise."""
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user
