import os
import subprocess
from io import BytesIO

import pytest

from filebox.core.settings import settings
from filebox.models.file import File
from filebox.services import storage, thumbs


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


class RecordingS3:
    def __init__(self):
        self.uploaded = []
        self.deleted = []

    def upload_file(self, data, key, content_type="application/octet-stream"):
        self.uploaded.append((key, len(data), content_type))
        return key

    def delete_file(self, key):
        self.deleted.append(key)
        return True


def _png_bytes():
    from PIL import Image

    buf = BytesIO()
    Image.new("RGB", (40, 20), color=(10, 120, 200)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.mark.parametrize(
    "original,ext",
    [
        ("photo.JPG", ".jpg"),
        ("archive.tar.gz", ".tar.gz"),
        ("C:\\Users\\me\\report.pdf", ".pdf"),
        ("no_extension", ""),
        ("weird.ext with space", ""),
    ],
)
def test_file_extension(original, ext):
    assert storage.file_extension(original) == ext


def test_blocked_extensions_are_case_insensitive():
    assert storage.is_blocked_extension("setup.EXE")
    assert not storage.is_blocked_extension("setup.zip")
    assert not storage.is_blocked_extension("README")


def test_generate_file_name_uses_configured_length(db_session):
    name = storage.generate_file_name(db_session, ".png", length=7)
    stem, ext = os.path.splitext(name)
    assert ext == ".png"
    assert len(stem) == 7
    assert stem.isalnum()


def test_generate_file_name_gives_up_after_collisions(db_session, monkeypatch, user):
    db_session.add(
        File(UserID=user.UserID, Name="taken.png", Original="a.png", Type="image/png", Size=1)
    )
    db_session.commit()
    monkeypatch.setattr(storage, "random_identifier", lambda length: "taken")
    with pytest.raises(storage.StorageError):
        storage.generate_file_name(db_session, ".png")


def test_store_bytes_locally_writes_file(db_session, upload_dir):
    data = _png_bytes()
    stored = storage.store_bytes(db_session, data, "holiday.png", "image/png")
    assert not stored.is_s3
    assert stored.size == len(data)
    assert stored.hash == storage.compute_hash(data)
    assert (upload_dir / stored.name).read_bytes() == data
    stem = os.path.splitext(stored.name)[0]
    # Thumbnails are rendered separately
    assert not (upload_dir / "thumbs" / f"{stem}.webp").exists()

    storage.generate_thumbnails(stored.name)
    assert (upload_dir / "thumbs" / f"{stem}.webp").exists()


def test_store_bytes_to_s3_skips_local_disk(db_session, upload_dir):
    s3 = RecordingS3()
    stored = storage.store_bytes(db_session, b"hello", "notes.txt", "text/plain", s3=s3)
    assert stored.is_s3
    assert s3.uploaded == [(stored.name, 5, "text/plain")]
    assert not (upload_dir / stored.name).exists()


def test_thumbnails_for_s3_files_are_rendered_from_bytes(db_session, upload_dir):
    data = _png_bytes()
    stored = storage.store_bytes(db_session, data, "beach.png", "image/png", s3=RecordingS3())
    storage.generate_thumbnails(stored.name, data)
    stem = os.path.splitext(stored.name)[0]
    assert (upload_dir / "thumbs" / f"{stem}.webp").exists()
    # Staging copy is cleaned up; the original never touches local disk
    assert not (upload_dir / stored.name).exists()
    assert [p.name for p in (upload_dir / "thumbs").iterdir() if p.is_file()] == [f"{stem}.webp"]


def test_generate_thumbnails_ignores_non_media(upload_dir):
    storage.generate_thumbnails("notes.txt", b"hello")
    assert not (upload_dir / "thumbs").exists()


def test_delete_stored_file_removes_bytes_and_thumbs(db_session, upload_dir):
    stored = storage.store_bytes(db_session, _png_bytes(), "a.png", "image/png")
    storage.generate_thumbnails(stored.name)
    storage.delete_stored_file(stored)
    assert not (upload_dir / stored.name).exists()
    stem = os.path.splitext(stored.name)[0]
    assert not (upload_dir / "thumbs" / f"{stem}.webp").exists()
    # Second delete is a no-op
    storage.delete_stored_file(stored)


def test_delete_stored_file_from_row(upload_dir):
    (upload_dir / "kept.txt").write_bytes(b"mine")
    stored = storage.StoredFile.from_row(File(Name="kept.txt", IsS3=False, IsWatched=True))
    storage.delete_stored_file(stored)
    assert (upload_dir / "kept.txt").exists()


def test_delete_stored_file_on_s3(upload_dir):
    s3 = RecordingS3()
    stored = storage.StoredFile.from_row(File(Name="abc.txt", IsS3=True, IsWatched=False))
    storage.delete_stored_file(stored, s3)
    assert s3.deleted == ["abc.txt"]


def test_ffmpeg_runs_with_a_timeout(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(thumbs.subprocess, "run", fake_run)
    assert thumbs._ffmpeg(["-i", "in.mp4", "out.webp"]) is False
    assert seen["timeout"] == thumbs.FFMPEG_TIMEOUT_SECONDS
