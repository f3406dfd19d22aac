from datetime import datetime, timedelta

import pytest
from conftest import login, make_user

from filebox.core.settings import settings
from filebox.models.album import Album
from filebox.models.file import File


def _mk_album(db, user, name="Album", sort_order=None):
    album = Album(UserID=user.UserID, Name=name, SortOrder=sort_order)
    db.add(album)
    db.commit()
    db.refresh(album)
    return album


def _seed_files(db, user, album, specs):
    """specs: iterable of (name, size, minutes_ago)."""
    now = datetime(2024, 1, 1, 12, 0, 0)
    for name, size, minutes_ago in specs:
        db.add(
            File(
                UserID=user.UserID,
                AlbumID=album.AlbumID,
                Name=name,
                Original=name,
                Type="image/jpeg",
                Size=size,
                CreatedAt=now - timedelta(minutes=minutes_ago),
            )
        )
    db.commit()


SPECS = [
    ("b.jpg", 300, 30),
    ("a.jpg", 100, 10),
    ("c.jpg", 200, 20),
]


def _names(resp):
    return [f["name"] for f in resp.json()["files"]]


def test_create_and_list_albums(logged_in_client, db_session):
    r = logged_in_client.post("/album/create", json={"name": "Trip", "description": "Summer"})
    assert r.status_code == 200
    created = r.json()["album"]
    assert created["name"] == "Trip"
    assert created["isNsfw"] is False

    dup = logged_in_client.post("/album/create", json={"name": "Trip"})
    assert dup.status_code == 400

    r = logged_in_client.get("/albums")
    assert r.status_code == 200
    albums = r.json()["albums"]
    assert [a["uuid"] for a in albums] == [created["uuid"]]
    assert albums[0]["count"] == 0


def test_get_album_returns_metadata_and_files(logged_in_client, db_session, user):
    album = _mk_album(db_session, user, "Trip")
    album.Description = "Summer"
    db_session.commit()
    _seed_files(db_session, user, album, SPECS)

    r = logged_in_client.get(f"/album/{album.UUID}")
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Successfully retrieved album"
    assert body["name"] == "Trip"
    assert body["description"] == "Summer"
    assert body["isNsfw"] is False
    assert body["sortOrder"] is None
    assert body["count"] == 3
    f = body["files"][0]
    assert f["url"] == f"http://testserver/{f['name']}"
    assert f["thumb"].startswith("http://testserver/thumbs/")


def test_get_album_unknown_or_foreign_is_404(client, db_session):
    alice = make_user(db_session, "alice")
    bob = make_user(db_session, "bob")
    album = _mk_album(db_session, alice, "Mine")

    login(db_session, client, bob)
    r = client.get(f"/album/{album.UUID}")
    assert r.status_code == 404
    assert r.json()["message"] == "The album could not be found"
    assert client.get("/album/does-not-exist").status_code == 404


def test_get_album_requires_login(client, db_session):
    assert client.get("/album/anything").status_code == 401


def test_default_order_is_newest_first(logged_in_client, db_session, user, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_SORT_ORDER", "")
    album = _mk_album(db_session, user)
    _seed_files(db_session, user, album, SPECS)
    assert _names(logged_in_client.get(f"/album/{album.UUID}")) == ["a.jpg", "c.jpg", "b.jpg"]


@pytest.mark.parametrize(
    "sort_order,expected",
    [
        ("name:asc", ["a.jpg", "b.jpg", "c.jpg"]),
        ("name:desc", ["c.jpg", "b.jpg", "a.jpg"]),
        ("size:asc", ["a.jpg", "c.jpg", "b.jpg"]),
        ("createdAt:asc", ["b.jpg", "c.jpg", "a.jpg"]),
        # Not allow-listed: newest id first
        ("Hash:asc", ["c.jpg", "a.jpg", "b.jpg"]),
    ],
)
def test_album_sort_order_drives_listing(logged_in_client, db_session, user, sort_order, expected):
    album = _mk_album(db_session, user, sort_order=sort_order)
    _seed_files(db_session, user, album, SPECS)
    assert _names(logged_in_client.get(f"/album/{album.UUID}")) == expected


def test_global_default_applies_when_album_has_none(logged_in_client, db_session, user, monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_SORT_ORDER", "size:desc")
    album = _mk_album(db_session, user)
    _seed_files(db_session, user, album, SPECS)
    assert _names(logged_in_client.get(f"/album/{album.UUID}")) == ["b.jpg", "c.jpg", "a.jpg"]

    album.SortOrder = "name:asc"
    db_session.commit()
    assert _names(logged_in_client.get(f"/album/{album.UUID}")) == ["a.jpg", "b.jpg", "c.jpg"]


def test_pagination_and_count(logged_in_client, db_session, user):
    album = _mk_album(db_session, user, sort_order="name:asc")
    _seed_files(db_session, user, album, [(f"p{i:02d}.jpg", i, i) for i in range(25)])

    r = logged_in_client.get(f"/album/{album.UUID}?page=2&limit=10")
    body = r.json()
    assert body["count"] == 25
    assert _names(r) == [f"p{i:02d}.jpg" for i in range(10, 20)]

    r = logged_in_client.get(f"/album/{album.UUID}?page=3&limit=10")
    assert len(r.json()["files"]) == 5

    r = logged_in_client.get(f"/album/{album.UUID}?page=9&limit=10")
    assert r.json()["files"] == []
    assert r.json()["count"] == 25


def test_invalid_paging_values_are_rejected(logged_in_client, db_session, user):
    album = _mk_album(db_session, user)
    r = logged_in_client.get(f"/album/{album.UUID}?page=0")
    assert r.status_code == 422
    assert r.json()["statusCode"] == 422
    assert logged_in_client.get(f"/album/{album.UUID}?limit=0").status_code == 422


def test_album_only_lists_its_own_files(logged_in_client, db_session, user):
    album = _mk_album(db_session, user, "One")
    other = _mk_album(db_session, user, "Two")
    _seed_files(db_session, user, album, [("x.jpg", 1, 1)])
    _seed_files(db_session, user, other, [("y.jpg", 1, 1), ("z.jpg", 1, 2)])
    r = logged_in_client.get(f"/album/{album.UUID}")
    assert r.json()["count"] == 1
    assert _names(r) == ["x.jpg"]


def test_s3_file_links_in_album(logged_in_client, db_session, user, monkeypatch):
    monkeypatch.setattr(settings, "S3_PUBLIC_URL", "https://bucket.example")
    album = _mk_album(db_session, user)
    db_session.add(
        File(
            UserID=user.UserID,
            AlbumID=album.AlbumID,
            Name="s3file.png",
            Original="s3file.png",
            Type="image/png",
            Size=1,
            IsS3=True,
        )
    )
    db_session.commit()
    f = logged_in_client.get(f"/album/{album.UUID}").json()["files"][0]
    assert f["url"] == "https://bucket.example/s3file.png"
    assert f["isS3"] is True


def test_edit_album(logged_in_client, db_session, user):
    album = _mk_album(db_session, user, "Old")
    r = logged_in_client.post(
        f"/album/{album.UUID}/edit",
        json={"name": "New", "nsfw": True, "sortOrder": "size:asc"},
    )
    assert r.status_code == 200
    db_session.refresh(album)
    assert album.Name == "New"
    assert album.Nsfw is True
    assert album.SortOrder == "size:asc"

    # Empty sort order clears back to the global default
    logged_in_client.post(f"/album/{album.UUID}/edit", json={"sortOrder": ""})
    db_session.refresh(album)
    assert album.SortOrder is None
    assert album.Name == "New"


def test_delete_album_keeps_files(logged_in_client, db_session, user):
    album = _mk_album(db_session, user)
    _seed_files(db_session, user, album, SPECS)
    r = logged_in_client.delete(f"/album/{album.UUID}")
    assert r.status_code == 200
    assert db_session.query(Album).count() == 0
    files = db_session.query(File).all()
    assert len(files) == 3
    assert all(f.AlbumID is None for f in files)


def test_purge_album_deletes_files(logged_in_client, db_session, user):
    album = _mk_album(db_session, user)
    _seed_files(db_session, user, album, SPECS)
    r = logged_in_client.delete(f"/album/{album.UUID}/purge")
    assert r.status_code == 200
    assert db_session.query(Album).count() == 0
    assert db_session.query(File).count() == 0


def test_purge_keeps_bytes_when_commit_fails(logged_in_client, db_session, user, monkeypatch):
    import os

    from fastapi.testclient import TestClient
    from sqlalchemy.exc import OperationalError

    from filebox.main import app

    album = _mk_album(db_session, user)
    name = logged_in_client.post(
        "/upload",
        files={"file": ("keep.txt", b"still here", "text/plain")},
        data={"album_uuid": album.UUID},
    ).json()["name"]
    path = os.path.join(settings.UPLOAD_DIR, name)
    assert os.path.exists(path)

    client = TestClient(app, raise_server_exceptions=False)
    client.cookies.update(logged_in_client.cookies)
    real_commit = db_session.commit

    def commit_failing_on_deleted_files():
        if any(isinstance(o, File) for o in db_session.deleted):
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        real_commit()

    monkeypatch.setattr(db_session, "commit", commit_failing_on_deleted_files)
    r = client.delete(f"/album/{album.UUID}/purge")
    monkeypatch.undo()

    assert r.status_code == 500
    assert os.path.exists(path)
    assert db_session.query(File).count() == 1

    # Once the commit goes through the bytes follow
    assert logged_in_client.delete(f"/album/{album.UUID}/purge").status_code == 200
    assert not os.path.exists(path)
