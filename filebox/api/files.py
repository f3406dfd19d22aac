"""Upload and file management endpoints."""

# ruff: noqa: I001
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Form, Header, HTTPException, Request, UploadFile
from fastapi import File as FileField
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filebox.core.dependencies import get_page, get_s3_service
from filebox.core.settings import settings
from filebox.models.album import Album
from filebox.models.file import File
from filebox.schemas.common import HTTPError, ResponseMessage
from filebox.schemas.file import FileListResponse, FileDetailResponse, UploadResponse
from filebox.services.auth import require_user
from filebox.services.links import construct_file_public_link, file_as_user
from filebox.services.listing import Page
from filebox.services.mime_utils import sniff_mime
from filebox.services.storage import (
    StorageError,
    StoredFile,
    compute_hash,
    delete_stored_file,
    generate_thumbnails,
    is_blocked_extension,
    store_bytes,
)
from db import get_db

router = APIRouter(tags=["Files"], responses={"4XX": {"model": HTTPError}, "5XX": {"model": HTTPError}})
audit = logging.getLogger("audit")
logger = logging.getLogger(__name__)

FILE_NOT_FOUND = "The file could not be found"


def get_owned_file(db: Session, file_uuid: str, user) -> File:
    f = db.query(File).filter(File.UUID == file_uuid, File.UserID == user.UserID).first()
    if f is None:
        raise HTTPException(status_code=404, detail=FILE_NOT_FOUND)
    return f


def _owned_album_or_404(db: Session, album_uuid: str, user) -> Album:
    album = (
        db.query(Album)
        .filter(Album.UUID == album_uuid, Album.UserID == user.UserID)
        .first()
    )
    if album is None:
        raise HTTPException(status_code=404, detail="The album could not be found")
    return album


def _upload_payload(request: Request, f: File, message: str, repeated: bool) -> dict:
    return {
        "message": message,
        "name": f.Name,
        "uuid": f.UUID,
        "repeated": repeated,
        **construct_file_public_link(request, f.Name, is_s3=bool(f.IsS3), is_watched=bool(f.IsWatched)),
    }


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload file",
    description="Uploads a file, optionally straight into one of the user's albums",
)
async def upload_file(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = FileField(...),
    album_uuid: Optional[str] = Form(None),
    albumuuid: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    user=Depends(require_user),
    s3=Depends(get_s3_service),
):
    original = (file.filename or "").replace("\\", "/").split("/")[-1] or "file"
    if is_blocked_extension(original):
        raise HTTPException(status_code=400, detail="File extension not allowed")

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Empty files are not allowed")
    if len(contents) > int(settings.MAX_UPLOAD_BYTES):
        raise HTTPException(status_code=413, detail="File too large")

    target_uuid = albumuuid or album_uuid
    album = _owned_album_or_404(db, target_uuid, user) if target_uuid else None

    # Same bytes from the same user: hand back the stored copy
    digest = compute_hash(contents)
    existing = db.query(File).filter(File.UserID == user.UserID, File.Hash == digest).first()
    if existing is not None:
        message = "File already exists"
        # A file lives in at most one album; the latest upload decides which
        if album is not None and existing.AlbumID != album.AlbumID:
            moved_from = existing.AlbumID
            existing.AlbumID = album.AlbumID
            db.commit()
            if moved_from is not None:
                message = "File already exists; moved to the requested album"
        audit.info(
            "file.upload.repeated",
            extra={
                "file_uuid": existing.UUID,
                "album_uuid": target_uuid,
                "user_id": user.UserID,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        return _upload_payload(request, existing, message, repeated=True)

    mime = sniff_mime(contents, file.content_type)
    try:
        stored = store_bytes(db, contents, original, mime, s3=s3, digest=digest)
    except StorageError as e:
        logger.error(f"Upload storage failed: {e}")
        raise HTTPException(status_code=500, detail="Couldn't store the file")

    record = File(
        UserID=user.UserID,
        AlbumID=album.AlbumID if album is not None else None,
        Name=stored.name,
        Original=original[:255],
        Type=mime,
        Size=stored.size,
        Hash=stored.hash,
        IP=request.client.host if request.client else None,
        IsS3=stored.is_s3,
        IsWatched=False,
    )
    db.add(record)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        # No row will point at these bytes
        delete_stored_file(stored, s3)
        raise
    db.refresh(record)
    background_tasks.add_task(generate_thumbnails, stored.name, contents if stored.is_s3 else None)
    audit.info(
        "file.uploaded",
        extra={
            "file_uuid": record.UUID,
            "file_name": record.Name,
            "size": record.Size,
            "type": mime,
            "is_s3": stored.is_s3,
            "album_uuid": target_uuid,
            "user_id": user.UserID,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return _upload_payload(request, record, "Successfully uploaded the file", repeated=False)


@router.get(
    "/files",
    response_model=FileListResponse,
    summary="Get files",
    description="Gets the current user's files, newest first",
)
async def list_files(
    request: Request,
    page: Page = Depends(get_page),
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    q = db.query(File).filter(File.UserID == user.UserID)
    count = q.count()
    rows = page.apply(q.order_by(File.FileID.desc())).all()
    return {
        "message": "Successfully retrieved files",
        "files": [file_as_user(request, f) for f in rows],
        "count": count,
    }


@router.get(
    "/file/{file_uuid}",
    response_model=FileDetailResponse,
    summary="Get file",
)
async def get_file(
    request: Request,
    file_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    f = get_owned_file(db, file_uuid, user)
    data = file_as_user(request, f)
    data["album"] = {"uuid": f.album.UUID, "name": f.album.Name} if f.album is not None else None
    return {"message": "Successfully retrieved file", "file": data}


@router.delete(
    "/file/{file_uuid}",
    response_model=ResponseMessage,
    summary="Delete file",
)
async def delete_file(
    request: Request,
    file_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
    s3=Depends(get_s3_service),
):
    f = get_owned_file(db, file_uuid, user)
    stored = StoredFile.from_row(f)
    db.delete(f)
    db.commit()
    # Bytes go only once the row is gone
    delete_stored_file(stored, s3)
    audit.info(
        "file.deleted",
        extra={
            "file_uuid": file_uuid,
            "user_id": user.UserID,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {"message": "Successfully deleted the file"}


@router.post(
    "/file/{file_uuid}/album/{album_uuid}",
    response_model=ResponseMessage,
    summary="Add file to album",
)
async def add_file_to_album(
    file_uuid: str,
    album_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    f = get_owned_file(db, file_uuid, user)
    album = _owned_album_or_404(db, album_uuid, user)
    f.AlbumID = album.AlbumID
    db.commit()
    return {"message": "Successfully added file to album"}


@router.delete(
    "/file/{file_uuid}/album/{album_uuid}",
    response_model=ResponseMessage,
    summary="Remove file from album",
)
async def remove_file_from_album(
    file_uuid: str,
    album_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    f = get_owned_file(db, file_uuid, user)
    album = _owned_album_or_404(db, album_uuid, user)
    if f.AlbumID != album.AlbumID:
        raise HTTPException(status_code=400, detail="The file is not part of that album")
    f.AlbumID = None
    db.commit()
    return {"message": "Successfully removed file from album"}
