"""Album endpoints (owner scoped)."""

# ruff: noqa: I001
import logging
from datetime import timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from filebox.core.dependencies import get_page, get_s3_service
from filebox.core.settings import settings
from filebox.models.album import Album, AlbumLink
from filebox.models.file import File
from filebox.schemas.album import (
    AlbumCreate,
    AlbumCreateResponse,
    AlbumEdit,
    AlbumLinkEdit,
    AlbumLinkListResponse,
    AlbumLinkResponse,
    AlbumListResponse,
    AlbumResponse,
)
from filebox.schemas.common import HTTPError, ResponseMessage
from filebox.services.auth import require_user
from filebox.services.links import file_as_user
from filebox.services.listing import Page, apply_file_order, resolve_sort_order
from filebox.services.storage import StoredFile, delete_stored_file, random_identifier
from db import get_db

router = APIRouter(tags=["Albums"], responses={"4XX": {"model": HTTPError}, "5XX": {"model": HTTPError}})
audit = logging.getLogger("audit")

ALBUM_NOT_FOUND = "The album could not be found"
MAX_IDENTIFIER_ATTEMPTS = 10


def get_owned_album(db: Session, album_uuid: str, user) -> Album:
    album = (
        db.query(Album)
        .filter(Album.UUID == album_uuid, Album.UserID == user.UserID)
        .first()
    )
    if album is None:
        raise HTTPException(status_code=404, detail=ALBUM_NOT_FOUND)
    return album


def _album_summary(album: Album, count: int) -> dict:
    return {
        "uuid": album.UUID,
        "name": album.Name,
        "description": album.Description,
        "is_nsfw": bool(album.Nsfw),
        "sort_order": album.SortOrder,
        "count": int(count),
        "created_at": album.CreatedAt,
    }


def _link_info(link: AlbumLink) -> dict:
    return {
        "uuid": link.UUID,
        "identifier": link.Identifier,
        "enabled": bool(link.Enabled),
        "enable_download": bool(link.EnableDownload),
        "views": int(link.Views or 0),
        "expires_at": link.ExpiresAt,
        "created_at": link.CreatedAt,
    }


@router.get(
    "/albums",
    response_model=AlbumListResponse,
    summary="Get albums",
    description="Gets all the albums of the current user",
)
async def list_albums(db: Session = Depends(get_db), user=Depends(require_user)):
    albums = (
        db.query(Album)
        .filter(Album.UserID == user.UserID)
        .order_by(Album.CreatedAt.desc(), Album.AlbumID.desc())
        .all()
    )
    counts = dict(
        db.query(File.AlbumID, func.count(File.FileID))
        .filter(File.UserID == user.UserID, File.AlbumID.isnot(None))
        .group_by(File.AlbumID)
        .all()
    )
    return {
        "message": "Successfully retrieved albums",
        "albums": [_album_summary(a, counts.get(a.AlbumID, 0)) for a in albums],
    }


@router.post(
    "/album/create",
    response_model=AlbumCreateResponse,
    summary="Create album",
    description="Creates a new album",
)
async def create_album(
    request: Request,
    payload: AlbumCreate,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Invalid name")
    exists = (
        db.query(Album.AlbumID)
        .filter(Album.UserID == user.UserID, Album.Name == name)
        .first()
    )
    if exists:
        raise HTTPException(status_code=400, detail="There's already an album with that name")

    album = Album(UserID=user.UserID, Name=name, Description=payload.description or None)
    db.add(album)
    db.commit()
    db.refresh(album)
    audit.info(
        "album.created",
        extra={
            "album_uuid": album.UUID,
            "user_id": user.UserID,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {"message": "Successfully created album", "album": _album_summary(album, 0)}


@router.get(
    "/album/{album_uuid}",
    response_model=AlbumResponse,
    summary="Get album",
    description="Gets the content of an album",
)
async def get_album(
    request: Request,
    album_uuid: str,
    page: Page = Depends(get_page),
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    # Ownership check first; the album's own sort order drives the file query
    album = get_owned_album(db, album_uuid, user)
    effective_sort_order = resolve_sort_order(album.SortOrder, settings.DEFAULT_SORT_ORDER)

    files_q = db.query(File).filter(File.AlbumID == album.AlbumID)
    count = files_q.count()
    rows = page.apply(apply_file_order(files_q, effective_sort_order)).all()

    return {
        "message": "Successfully retrieved album",
        "name": album.Name,
        "description": album.Description,
        "is_nsfw": bool(album.Nsfw),
        "sort_order": album.SortOrder,
        "count": count,
        "files": [file_as_user(request, f) for f in rows],
    }


@router.post(
    "/album/{album_uuid}/edit",
    response_model=ResponseMessage,
    summary="Edit album",
    description="Edits the name, description, nsfw flag or sort order of an album",
)
async def edit_album(
    album_uuid: str,
    payload: AlbumEdit,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    album = get_owned_album(db, album_uuid, user)
    changes = payload.model_fields_set

    if "name" in changes and payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Invalid name")
        clash = (
            db.query(Album.AlbumID)
            .filter(
                Album.UserID == user.UserID,
                Album.Name == name,
                Album.AlbumID != album.AlbumID,
            )
            .first()
        )
        if clash:
            raise HTTPException(status_code=400, detail="There's already an album with that name")
        album.Name = name
    if "description" in changes:
        album.Description = payload.description or None
    if "nsfw" in changes and payload.nsfw is not None:
        album.Nsfw = bool(payload.nsfw)
    if "sort_order" in changes:
        album.SortOrder = (payload.sort_order or "").strip() or None

    db.commit()
    return {"message": "Successfully edited album"}


@router.delete(
    "/album/{album_uuid}",
    response_model=ResponseMessage,
    summary="Delete album",
    description="Deletes an album; its files are kept and detached",
)
async def delete_album(
    request: Request,
    album_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    album = get_owned_album(db, album_uuid, user)
    db.query(File).filter(File.AlbumID == album.AlbumID).update(
        {File.AlbumID: None}, synchronize_session=False
    )
    db.delete(album)
    db.commit()
    audit.info(
        "album.deleted",
        extra={
            "album_uuid": album_uuid,
            "user_id": user.UserID,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {"message": "Successfully deleted album"}


@router.delete(
    "/album/{album_uuid}/purge",
    response_model=ResponseMessage,
    summary="Purge album",
    description="Deletes an album together with all of its files",
)
async def purge_album(
    request: Request,
    album_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
    s3=Depends(get_s3_service),
):
    album = get_owned_album(db, album_uuid, user)
    files = db.query(File).filter(File.AlbumID == album.AlbumID).all()
    stored = [StoredFile.from_row(f) for f in files]
    for f in files:
        db.delete(f)
    db.delete(album)
    db.commit()
    # Bytes go only once the rows are gone
    for s in stored:
        delete_stored_file(s, s3)
    audit.info(
        "album.purged",
        extra={
            "album_uuid": album_uuid,
            "user_id": user.UserID,
            "files": len(files),
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {"message": "Successfully purged album"}


# Share links


def _unique_link_identifier(db: Session) -> str:
    for _ in range(MAX_IDENTIFIER_ATTEMPTS):
        candidate = random_identifier(settings.GENERATED_ALBUM_LINK_LENGTH)
        if db.query(AlbumLink.LinkID).filter(AlbumLink.Identifier == candidate).first() is None:
            return candidate
    raise HTTPException(status_code=500, detail="Couldn't allocate an identifier for the link")


def _get_owned_link(db: Session, album: Album, link_uuid: str) -> AlbumLink:
    link = (
        db.query(AlbumLink)
        .filter(AlbumLink.UUID == link_uuid, AlbumLink.AlbumID == album.AlbumID)
        .first()
    )
    if link is None:
        raise HTTPException(status_code=404, detail="The link could not be found")
    return link


@router.post(
    "/album/{album_uuid}/link",
    response_model=AlbumLinkResponse,
    summary="Create album link",
    description="Creates a public share link for an album",
)
async def create_album_link(
    album_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    album = get_owned_album(db, album_uuid, user)
    existing = db.query(AlbumLink).filter(AlbumLink.AlbumID == album.AlbumID).count()
    if existing >= settings.MAX_LINKS_PER_ALBUM:
        raise HTTPException(status_code=400, detail="Maximum links per album reached")

    link = AlbumLink(
        AlbumID=album.AlbumID,
        UserID=user.UserID,
        Identifier=_unique_link_identifier(db),
        Enabled=True,
        EnableDownload=True,
        Views=0,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return {"message": "Successfully created link", **_link_info(link)}


@router.get(
    "/album/{album_uuid}/links",
    response_model=AlbumLinkListResponse,
    summary="Get album links",
    description="Gets all the share links of an album",
)
async def list_album_links(
    album_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    album = get_owned_album(db, album_uuid, user)
    links = (
        db.query(AlbumLink)
        .filter(AlbumLink.AlbumID == album.AlbumID)
        .order_by(AlbumLink.LinkID.asc())
        .all()
    )
    return {"message": "Successfully retrieved links", "links": [_link_info(x) for x in links]}


@router.post(
    "/album/{album_uuid}/link/{link_uuid}/edit",
    response_model=ResponseMessage,
    summary="Edit album link",
)
async def edit_album_link(
    album_uuid: str,
    link_uuid: str,
    payload: AlbumLinkEdit,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    album = get_owned_album(db, album_uuid, user)
    link = _get_owned_link(db, album, link_uuid)
    changes = payload.model_fields_set
    if "enabled" in changes and payload.enabled is not None:
        link.Enabled = bool(payload.enabled)
    if "enable_download" in changes and payload.enable_download is not None:
        link.EnableDownload = bool(payload.enable_download)
    if "expires_at" in changes:
        expires_at = payload.expires_at
        if expires_at is not None and expires_at.tzinfo is not None:
            # Stored as naive UTC
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        link.ExpiresAt = expires_at
    db.commit()
    return {"message": "Successfully edited link"}


@router.delete(
    "/album/{album_uuid}/link/{link_uuid}",
    response_model=ResponseMessage,
    summary="Delete album link",
)
async def delete_album_link(
    album_uuid: str,
    link_uuid: str,
    db: Session = Depends(get_db),
    user=Depends(require_user),
):
    album = get_owned_album(db, album_uuid, user)
    link = _get_owned_link(db, album, link_uuid)
    db.delete(link)
    db.commit()
    return {"message": "Successfully deleted link"}
