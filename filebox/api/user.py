import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from db import get_db
from filebox.api.auth import user_info
from filebox.schemas.common import HTTPError
from filebox.schemas.user import ApiKeyResponse, UserResponse
from filebox.services.auth import require_user, rotate_api_key

router = APIRouter(tags=["User"], responses={"4XX": {"model": HTTPError}})
audit = logging.getLogger("audit")


@router.get("/user/me", response_model=UserResponse, summary="Get current user")
async def me(user=Depends(require_user)):
    return {"message": "Successfully retrieved user", "user": user_info(user)}


@router.post(
    "/user/apikey/change",
    response_model=ApiKeyResponse,
    summary="Change API key",
    description="Generates a new API key; the previous one stops working",
)
async def change_api_key(request: Request, db: Session = Depends(get_db), user=Depends(require_user)):
    key = rotate_api_key(db, user)
    audit.info(
        "user.apikey.changed",
        extra={
            "user_id": user.UserID,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {"message": "Successfully created API key", "api_key": key}
