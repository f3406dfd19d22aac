"""Where uploaded bytes live: local uploads folder or an S3 bucket."""

from __future__ import annotations

import hashlib
import logging
import os
import re
import secrets
import string
import tempfile
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from filebox.core.settings import settings
from filebox.models.file import File
from filebox.services.links import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, split_name
from filebox.services.s3_storage import S3StorageService
from filebox.services.thumbs import (
    ensure_image_thumbnail,
    ensure_video_preview,
    ensure_video_thumbnail,
    preview_path,
    remove_thumbnails,
    thumb_path,
)

logger = logging.getLogger(__name__)

NAME_ALPHABET = string.ascii_letters + string.digits
MAX_NAME_ATTEMPTS = 10
_EXT_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


class StorageError(Exception):
    """Raised when no unique name could be generated or the backend failed."""


@dataclass
class StoredFile:
    name: str
    size: int
    hash: str
    is_s3: bool
    is_watched: bool = False

    @classmethod
    def from_row(cls, f: File) -> "StoredFile":
        # Plain copy so the bytes can be removed after the row is gone
        return cls(
            name=str(f.Name),
            size=int(f.Size or 0),
            hash=f.Hash or "",
            is_s3=bool(f.IsS3),
            is_watched=bool(f.IsWatched),
        )


def uploads_dir() -> str:
    return settings.UPLOAD_DIR


def thumbs_dir() -> str:
    return os.path.join(settings.UPLOAD_DIR, "thumbs")


def ensure_dirs() -> None:
    os.makedirs(uploads_dir(), exist_ok=True)
    os.makedirs(os.path.join(thumbs_dir(), "preview"), exist_ok=True)


def file_extension(original: str) -> str:
    """Lower-cased extension of a client filename, '' when missing or odd."""
    original = original.replace("\\", "/").split("/")[-1]
    _, ext = split_name(original)
    # Keep double extensions people expect to survive
    if original.lower().endswith((".tar.gz", ".tar.xz", ".tar.bz2")):
        return "." + ".".join(original.lower().rsplit(".", 3)[-2:])
    return ext if _EXT_RE.match(ext or "") else ""


def is_blocked_extension(original: str) -> bool:
    ext = file_extension(original)
    return bool(ext) and ext in {e.lower() for e in settings.BLOCKED_EXTENSIONS}


def compute_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def random_identifier(length: int) -> str:
    return "".join(secrets.choice(NAME_ALPHABET) for _ in range(max(1, int(length))))


def generate_file_name(db: Session, extension: str, length: Optional[int] = None) -> str:
    length = length or settings.GENERATED_FILENAME_LENGTH
    for _ in range(MAX_NAME_ATTEMPTS):
        candidate = f"{random_identifier(length)}{extension}"
        if db.query(File.FileID).filter(File.Name == candidate).first() is None:
            return candidate
    raise StorageError("Could not allocate a unique file name")


def has_thumbnail(name: str) -> bool:
    _, ext = split_name(name)
    return ext in IMAGE_EXTENSIONS or ext in VIDEO_EXTENSIONS


def _render_thumbnails(source_path: str, name: str) -> None:
    stem, ext = split_name(name)
    if ext in IMAGE_EXTENSIONS:
        ensure_image_thumbnail(source_path, thumb_path(thumbs_dir(), stem))
    elif ext in VIDEO_EXTENSIONS:
        ensure_video_thumbnail(source_path, thumb_path(thumbs_dir(), stem))
        ensure_video_preview(source_path, preview_path(thumbs_dir(), stem))


def generate_thumbnails(name: str, data: Optional[bytes] = None) -> None:
    """Render thumbnails for a stored file into the local thumbs folder.

    Local uploads are read from the uploads folder. S3 objects are never on
    local disk, so their bytes are passed in and staged in a temp file.
    Runs as a background task; failures are logged, not raised.
    """
    if not has_thumbnail(name):
        return
    ensure_dirs()
    if data is None:
        _render_thumbnails(os.path.join(uploads_dir(), name), name)
        return

    _, ext = split_name(name)
    fd, tmp = tempfile.mkstemp(suffix=ext, dir=thumbs_dir())
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        _render_thumbnails(tmp, name)
    except OSError as e:
        logger.warning(f"Could not stage {name} for thumbnails: {e}")
    finally:
        try:
            os.remove(tmp)
        except FileNotFoundError:
            pass


def store_bytes(
    db: Session,
    data: bytes,
    original: str,
    content_type: str,
    s3: Optional[S3StorageService] = None,
    digest: Optional[str] = None,
) -> StoredFile:
    """Persist upload bytes under a freshly generated name.

    Thumbnails are a separate step (``generate_thumbnails``) so callers can
    run them off the request path.
    """
    name = generate_file_name(db, file_extension(original))
    digest = digest or compute_hash(data)
    if s3 is not None:
        s3.upload_file(data, name, content_type=content_type)
        return StoredFile(name=name, size=len(data), hash=digest, is_s3=True)

    ensure_dirs()
    path = os.path.join(uploads_dir(), name)
    tmp = path + ".part"
    with open(tmp, "wb") as fh:
        fh.write(data)
    os.replace(tmp, path)
    return StoredFile(name=name, size=len(data), hash=digest, is_s3=False)


def delete_stored_file(stored: StoredFile, s3: Optional[S3StorageService] = None) -> None:
    """Remove a file's bytes and thumbnails. Missing files are not an error."""
    name = stored.name
    if stored.is_s3:
        if s3 is None:
            logger.warning(f"S3 not configured; leaving object {name} in bucket")
        else:
            s3.delete_file(name)
    elif stored.is_watched:
        # Watch-folder files belong to whoever dropped them there
        pass
    else:
        try:
            os.remove(os.path.join(uploads_dir(), name))
        except FileNotFoundError:
            logger.info(f"File {name} already missing from uploads folder")
    stem, _ = split_name(name)
    remove_thumbnails(thumbs_dir(), stem)
