import logging
import os
import time
import traceback
import uuid
from http import HTTPStatus
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from db import get_db
from filebox.api import albums, auth, files, public, user
from filebox.core.logging_utils import configure_logging, request_id_var
from filebox.core.settings import settings
from filebox.models import AppErrorLog
from filebox.services.s3_storage import S3StorageService
from filebox.services.storage import ensure_dirs, uploads_dir

try:
    import sentry_sdk  # type: ignore
    from sentry_sdk.integrations.starlette import StarletteIntegration  # type: ignore
except ImportError:
    sentry_sdk = None  # type: ignore

load_dotenv()

app = FastAPI(
    title="filebox",
    description="Self-hosted file uploads, albums and share links.",
)
app.add_middleware(GZipMiddleware, minimum_size=500)

# Configure logging (console + rotating file; JSON by default)
configure_logging(settings)
logger = logging.getLogger("filebox")

# Initialize S3 storage service (optional; uses local filesystem otherwise)
s3_service: Optional[S3StorageService] = None
if settings.S3_UPLOADS_BUCKET:
    s3_service = S3StorageService(
        region=settings.AWS_REGION,
        bucket=settings.S3_UPLOADS_BUCKET,
        access_key=settings.AWS_ACCESS_KEY_ID,
        secret_key=settings.AWS_SECRET_ACCESS_KEY,
        endpoint_url=settings.S3_ENDPOINT,
    )
else:
    logger.info("S3_UPLOADS_BUCKET not configured; using local filesystem")

# Initialize Sentry if DSN provided
if settings.SENTRY_DSN and sentry_sdk is not None:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[StarletteIntegration()],
        traces_sample_rate=float(settings.SENTRY_TRACES_SAMPLE_RATE or 0.0),
        send_default_pii=False,
    )

# Store S3 service in app state for dependency injection in routes
app.state.s3_service = s3_service

app.include_router(auth.router)
app.include_router(user.router)
app.include_router(albums.router)
app.include_router(public.router)
app.include_router(files.router)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


# Request logging middleware with request id and user context
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    start = time.perf_counter()
    # Stash request_id for downstream handlers
    request.state.request_id = request_id

    extra_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
    logger.info("request.start", extra=extra_ctx)
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.exception("request.error", extra={**extra_ctx, "duration_ms": duration_ms})
        request_id_var.reset(token)
        # Re-raise to be handled by the 500 handler
        raise

    duration_ms = int((time.perf_counter() - start) * 1000)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "request.end",
        extra={
            **extra_ctx,
            # Set by the auth dependency when the caller was identified
            "user_id": getattr(request.state, "user_id", None),
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    request_id_var.reset(token)
    return response


def _record_error(request: Request, status: int, message: str, stack: Optional[str] = None) -> None:
    """Best-effort AppErrorLog row; a failing write is logged, never raised."""
    request_id = getattr(request.state, "request_id", None)
    db_gen = get_db()
    db = next(db_gen)
    try:
        db.add(
            AppErrorLog(
                RequestID=str(request_id) if request_id else None,
                Path=str(request.url.path)[:500],
                Method=request.method,
                StatusCode=int(status),
                UserID=getattr(request.state, "user_id", None),
                ClientIP=request.client.host if request.client else None,
                UserAgent=(request.headers.get("user-agent") or "")[:255] or None,
                Message=message,
                StackTrace=stack,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Could not write AppErrorLog: {e}")
    finally:
        db_gen.close()


def error_response(request: Request, status: int, message: str, headers=None) -> JSONResponse:
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        phrase = "Error"
    resp = JSONResponse(
        {"statusCode": status, "error": phrase, "message": message},
        status_code=status,
        headers=headers,
    )
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        resp.headers["X-Request-ID"] = str(request_id)
    return resp


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Log HTTP errors to the DB, then answer with the JSON error envelope."""
    status = int(exc.status_code or 500)
    message = str(exc.detail)
    if status >= 400:
        _record_error(request, status, message)
    return error_response(request, status, message, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    _record_error(request, 422, message)
    return error_response(request, 422, message)


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    _record_error(
        request,
        500,
        str(exc),
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
    return error_response(request, 500, "Internal Server Error")


# Uploaded files live at the site root, so these mounts go last
ensure_dirs()
if settings.WATCH_FOLDER_PATH and os.path.isdir(settings.WATCH_FOLDER_PATH):
    app.mount("/watched", StaticFiles(directory=settings.WATCH_FOLDER_PATH), name="watched")
app.mount("/", StaticFiles(directory=uploads_dir()), name="uploads")
