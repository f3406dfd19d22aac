# ruff: noqa: I001
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from db import get_db
from filebox.core.settings import settings
from filebox.models.user import User
from filebox.schemas.common import HTTPError, ResponseMessage
from filebox.schemas.user import Credentials, LoginResponse, UserResponse
from filebox.services import auth

router = APIRouter(tags=["Auth"], responses={"4XX": {"model": HTTPError}})
audit = logging.getLogger("audit")


def user_info(user: User) -> dict:
    return {
        "uuid": user.UUID,
        "username": user.Username,
        "is_admin": bool(user.IsAdmin),
        "api_key": user.ApiKey,
        "created_at": user.CreatedAt,
    }


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=auth.SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=bool(settings.COOKIE_SECURE),
        max_age=int(settings.SESSION_TTL_MINUTES) * 60,
    )


@router.post("/auth/register", response_model=UserResponse, summary="Register")
async def register(request: Request, payload: Credentials, db: Session = Depends(get_db)):
    if not settings.USER_ACCOUNTS_ENABLED:
        raise HTTPException(status_code=403, detail="Creation of new accounts is disabled")

    username = payload.username.strip()
    if db.query(User.UserID).filter(User.Username == username).first():
        raise HTTPException(status_code=409, detail="Username already exists")
    user = auth.create_user(db, username, payload.password)
    if user is None:
        # Lost a race with a concurrent registration
        raise HTTPException(status_code=409, detail="Username already exists")

    audit.info(
        "auth.register",
        extra={
            "user_id": user.UserID,
            "client": request.client.host if request.client else None,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {"message": "The account was created successfully", "user": user_info(user)}


@router.post("/auth/login", response_model=LoginResponse, summary="Login")
async def login(
    request: Request,
    response: Response,
    payload: Credentials,
    db: Session = Depends(get_db),
):
    client = request.client.host if request.client else "unknown"
    rl_key = f"login:{client}:{payload.username.strip().lower()}"
    if auth.is_login_rate_limited(rl_key):
        raise HTTPException(status_code=429, detail="Too many login attempts. Please try again later.")

    user = auth.authenticate_user(db, payload.username.strip(), payload.password)
    if not user:
        auth.add_login_attempt(rl_key)
        audit.warning(
            "auth.login.failed",
            extra={
                "username": payload.username,
                "client": client,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        raise HTTPException(status_code=401, detail="Wrong username or password")

    auth.reset_login_attempts(rl_key)
    session = auth.create_session(
        db,
        user_id=int(user.UserID),
        ip_address=client,
        user_agent=request.headers.get("user-agent", ""),
    )
    session_id = str(session.SessionID)
    audit.info(
        "auth.login.success",
        extra={
            "user_id": user.UserID,
            "session_id_tail": session_id[-8:],
            "client": client,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    _set_session_cookie(response, session_id)
    return {"message": "Successfully logged in", "user": user_info(user), "token": session_id}


@router.post("/auth/logout", response_model=ResponseMessage, summary="Logout")
async def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    sid = auth.get_session_token(request)
    if sid:
        auth.deactivate_session(db, sid)
    audit.info(
        "auth.logout",
        extra={
            "client": request.client.host if request.client else None,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    response.delete_cookie(key=auth.SESSION_COOKIE, path="/")
    return {"message": "Successfully logged out"}
