"""Public URL construction for stored files."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from starlette.requests import Request

from filebox.core.settings import settings

IMAGE_EXTENSIONS = frozenset(
    (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tiff", ".tif", ".avif", ".heic")
)
VIDEO_EXTENSIONS = frozenset((".mp4", ".webm", ".mov", ".mkv", ".avi", ".m4v", ".wmv", ".flv"))


def get_host(request: Optional[Request]) -> str:
    """Base URL used for links, without trailing slash."""
    if settings.BASE_URL:
        return settings.BASE_URL.rstrip("/")
    if request is None:
        return ""
    return str(request.base_url).rstrip("/")


def split_name(file_name: str) -> tuple[str, str]:
    stem, ext = os.path.splitext(file_name)
    return stem, ext.lower()


def construct_file_public_link(
    request: Optional[Request],
    file_name: str,
    is_s3: bool = False,
    is_watched: bool = False,
) -> Dict[str, str]:
    """Return ``{url, thumb, preview}`` for a stored file.

    S3 objects resolve against S3_PUBLIC_URL, watch-folder files against the
    /watched mount, everything else against SERVE_UPLOADS_FROM or the host.
    Thumbnails are always served by this instance.
    """
    host = get_host(request)
    if is_s3:
        base = settings.S3_PUBLIC_URL.rstrip("/")
        url = f"{base}/{file_name}"
    elif is_watched:
        url = f"{host}/watched/{file_name}"
    elif settings.SERVE_UPLOADS_FROM:
        url = f"{settings.SERVE_UPLOADS_FROM.rstrip('/')}/{file_name}"
    else:
        url = f"{host}/{file_name}"

    data = {"url": url, "thumb": "", "preview": ""}
    stem, ext = split_name(file_name)
    if ext in IMAGE_EXTENSIONS or ext in VIDEO_EXTENSIONS:
        data["thumb"] = f"{host}/thumbs/{stem}.webp"
        if ext in VIDEO_EXTENSIONS:
            data["preview"] = f"{host}/thumbs/preview/{stem}.webm"
    return data


def file_as_user(request: Optional[Request], f) -> Dict[str, Any]:
    """Shape a File row for its owner (includes uploader ip and hash)."""
    return {
        "uuid": f.UUID,
        "name": f.Name,
        "original": f.Original,
        "type": f.Type,
        "size": int(f.Size or 0),
        "hash": f.Hash,
        "ip": f.IP,
        "created_at": f.CreatedAt,
        "is_s3": bool(f.IsS3),
        "is_watched": bool(f.IsWatched),
        **construct_file_public_link(
            request, f.Name, is_s3=bool(f.IsS3), is_watched=bool(f.IsWatched)
        ),
    }


def file_as_public(request: Optional[Request], f) -> Dict[str, Any]:
    """Shape a File row for anonymous viewers of a shared album."""
    return {
        "uuid": f.UUID,
        "name": f.Name,
        "type": f.Type,
        "size": int(f.Size or 0),
        "created_at": f.CreatedAt,
        **construct_file_public_link(
            request, f.Name, is_s3=bool(f.IsS3), is_watched=bool(f.IsWatched)
        ),
    }
