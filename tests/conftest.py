import os
import tempfile

# Must be set before db / settings are imported anywhere
os.environ.setdefault("TEST_SQLITE", "1")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="filebox-tests-"))
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import filebox.models as models  # noqa: E402
from db import SessionLocal, engine  # noqa: E402
from filebox.models.user import User  # noqa: E402
from filebox.services import auth as auth_service  # noqa: E402

# In-memory SQLite: create the schema once from the models' metadata
if os.getenv("TEST_SQLITE") == "1":
    models.Base.metadata.create_all(bind=engine)


@pytest.fixture
def client():
    # Import the app here so the environment above is in place first
    from filebox.main import app

    return TestClient(app)


@pytest.fixture
def db_session():
    """Session shared with request handlers through db._TEST_SESSION.

    Handlers commit for real, so teardown empties every table instead of
    rolling back a wrapping transaction.
    """
    import db as dbmod

    session = SessionLocal()
    dbmod._TEST_SESSION = session
    try:
        yield session
    finally:
        dbmod._TEST_SESSION = None
        session.rollback()
        for table in reversed(models.Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture(autouse=True)
def reset_login_attempts():
    auth_service._login_attempts.clear()
    yield
    auth_service._login_attempts.clear()


def make_user(db, username="alice", password=None):
    u = User(
        Username=username,
        HashedPassword=auth_service.hash_password(password) if password else "x",
        IsActive=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def login(db, client, user):
    sess = auth_service.create_session(db, user_id=int(user.UserID))
    client.cookies.set("session_id", str(sess.SessionID))
    return sess


@pytest.fixture
def user(db_session):
    return make_user(db_session, "alice")


@pytest.fixture
def logged_in_client(db_session, client, user):
    login(db_session, client, user)
    return client
