from typing import Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database (any SQLAlchemy URL; sqlite file by default)
    DATABASE_URL: str = "sqlite:///./database/filebox.sqlite"
    DB_ECHO: bool = False

    # Security
    SESSION_TTL_MINUTES: int = 60 * 24 * 7
    COOKIE_SECURE: bool = False  # override to True in prod; or auto-detected from BASE_URL
    USER_ACCOUNTS_ENABLED: bool = True

    # Public URLs
    BASE_URL: str = ""  # empty -> derived from the incoming request
    SERVE_UPLOADS_FROM: str = ""  # e.g. a CDN in front of the uploads folder

    # Listings
    DEFAULT_SORT_ORDER: str = ""  # global fallback, e.g. "createdAt:desc"
    DEFAULT_PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 500

    # Uploads
    UPLOAD_DIR: str = "uploads"
    WATCH_FOLDER_PATH: str = ""
    MAX_UPLOAD_BYTES: int = 90_000_000  # 90 MB per file default
    BLOCKED_EXTENSIONS: Tuple[str, ...] = (".exe", ".bat", ".cmd", ".msi", ".sh", ".com", ".scr")
    GENERATED_FILENAME_LENGTH: int = 12
    GENERATED_ALBUM_LINK_LENGTH: int = 8
    MAX_LINKS_PER_ALBUM: int = 5

    # Auth rate-limiting
    RATE_LIMIT_LOGIN_ATTEMPTS: int = 5
    RATE_LIMIT_LOGIN_WINDOW_SECONDS: int = 15 * 60  # 15 minutes

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_JSON: bool = True
    LOG_FILE: str = "logs/app.log"
    LOG_MAX_BYTES: int = 5_000_000  # 5 MB
    LOG_BACKUP_COUNT: int = 5

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    # S3-compatible storage (optional; local filesystem if not configured)
    AWS_REGION: str = ""
    AWS_ACCESS_KEY_ID: str = ""  # Optional; uses IAM role on EC2
    AWS_SECRET_ACCESS_KEY: str = ""  # Optional; uses IAM role on EC2
    S3_ENDPOINT: str = ""  # non-AWS providers (minio, R2, Spaces)
    S3_UPLOADS_BUCKET: str = ""  # If empty, uses local filesystem
    S3_PUBLIC_URL: str = ""  # public base URL for objects in the bucket

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()

if settings.S3_UPLOADS_BUCKET and not settings.S3_PUBLIC_URL:
    import warnings

    warnings.warn("S3_UPLOADS_BUCKET is set without S3_PUBLIC_URL; S3 file links will be relative.")

# Auto-detect secure cookies when running under HTTPS
if not settings.COOKIE_SECURE and settings.BASE_URL.lower().startswith("https"):
    settings.COOKIE_SECURE = True
