"""Anonymous access to albums through share links."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from db import get_db
from filebox.core.dependencies import get_page
from filebox.core.settings import settings
from filebox.models.album import Album, AlbumLink
from filebox.models.file import File
from filebox.schemas.album import PublicAlbumResponse
from filebox.schemas.common import HTTPError
from filebox.services.links import file_as_public
from filebox.services.listing import Page, apply_file_order, resolve_sort_order

router = APIRouter(tags=["Public"], responses={"4XX": {"model": HTTPError}})
audit = logging.getLogger("audit")


def link_is_live(link: AlbumLink, now: datetime) -> bool:
    if not link.Enabled:
        return False
    return link.ExpiresAt is None or link.ExpiresAt > now


@router.get(
    "/album/{identifier}/view",
    response_model=PublicAlbumResponse,
    summary="Get public album",
    description="Gets the content of a shared album through its link identifier",
)
async def view_public_album(
    request: Request,
    identifier: str,
    page: Page = Depends(get_page),
    db: Session = Depends(get_db),
):
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    link = db.query(AlbumLink).filter(AlbumLink.Identifier == identifier).first()
    if link is None or not link_is_live(link, now):
        raise HTTPException(status_code=404, detail="The album could not be found")

    album = db.query(Album).filter(Album.AlbumID == link.AlbumID).first()
    if album is None:
        raise HTTPException(status_code=404, detail="The album could not be found")

    effective_sort_order = resolve_sort_order(album.SortOrder, settings.DEFAULT_SORT_ORDER)
    files_q = db.query(File).filter(File.AlbumID == album.AlbumID)
    count = files_q.count()
    rows = page.apply(apply_file_order(files_q, effective_sort_order)).all()
    payload = {
        "message": "Successfully retrieved album",
        "name": album.Name,
        "description": album.Description,
        "is_nsfw": bool(album.Nsfw),
        "enable_download": bool(link.EnableDownload),
        "count": count,
        "files": [file_as_public(request, f) for f in rows],
    }

    # Increment in SQL so concurrent viewers on other workers are all counted
    db.query(AlbumLink).filter(AlbumLink.LinkID == link.LinkID).update(
        {AlbumLink.Views: AlbumLink.Views + 1}, synchronize_session=False
    )
    db.commit()
    audit.info(
        "album.link.viewed",
        extra={
            "identifier": identifier,
            "client": request.client.host if request.client else None,
            "request_id": getattr(request.state, "request_id", None),
        },
    )

    return payload
