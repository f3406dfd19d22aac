import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from filebox.core.settings import settings

# Allow tests to opt into an in-memory SQLite DB. Set environment variable
# TEST_SQLITE=1 when running pytest to enable this (tests/conftest.py does).
if os.getenv("TEST_SQLITE") == "1":
    # Use StaticPool so the same in-memory DB is reused across connections.
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    url = make_url(settings.DATABASE_URL)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Requests are served from a threadpool; sessions never cross threads concurrently.
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)
        engine = create_engine(url, connect_args=connect_args, echo=settings.DB_ECHO)
    else:
        engine = create_engine(
            url,
            echo=settings.DB_ECHO,
            pool_pre_ping=True,
            pool_recycle=1800,
        )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Tests set this so in-process request handlers (TestClient) share the
# fixture's session.
_TEST_SESSION = None


def get_db():
    if _TEST_SESSION is not None:
        yield _TEST_SESSION
        return

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
