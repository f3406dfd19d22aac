"""Dependencies for FastAPI routes."""
from typing import Optional

from fastapi import Query, Request

from filebox.core.settings import settings
from filebox.services.listing import Page, make_page
from filebox.services.s3_storage import S3StorageService


async def get_s3_service(request: Request) -> Optional[S3StorageService]:
    """Provide S3 storage service to routes (None if not configured)."""
    return getattr(request.app.state, "s3_service", None)


def get_page(
    page: int = Query(1, ge=1, description="1-based page number."),
    limit: int = Query(
        settings.DEFAULT_PAGE_LIMIT,
        ge=1,
        le=settings.MAX_PAGE_LIMIT,
        description="Number of items per page.",
    ),
) -> Page:
    return make_page(page, limit, default_limit=settings.DEFAULT_PAGE_LIMIT)
