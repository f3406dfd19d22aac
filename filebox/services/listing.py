"""Sort order and pagination helpers shared by the file listings.

A sort order is stored as a ``field:direction`` string (``createdAt:desc``).
Only a fixed set of fields and directions is honoured; anything else falls
back to newest-id-first instead of erroring, because the value may come from
an old album row or a hand-edited setting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.orm import Query

from filebox.models.file import File

SORT_FIELDS = {
    "createdAt": File.CreatedAt,
    "name": File.Name,
    "size": File.Size,
}
SORT_DIRECTIONS = ("asc", "desc")

DEFAULT_ORDER: Tuple[str, str] = ("id", "desc")
# Last link of the album -> global -> hardcoded chain
FALLBACK_SORT_ORDER = "createdAt:desc"


def parse_sort_order(sort_order: Optional[str]) -> Tuple[str, str]:
    """Return ``(field, direction)`` for a ``field:direction`` string.

    Empty, malformed or non allow-listed values yield ``("id", "desc")``.
    """
    if not sort_order:
        return DEFAULT_ORDER
    parts = sort_order.split(":")
    if len(parts) < 2:
        return DEFAULT_ORDER
    field, direction = parts[0], parts[1]
    if not field or not direction:
        return DEFAULT_ORDER
    if field not in SORT_FIELDS or direction not in SORT_DIRECTIONS:
        return DEFAULT_ORDER
    return field, direction


def resolve_sort_order(album_sort_order: Optional[str], default_sort_order: Optional[str]) -> str:
    """Pick the effective sort order string: album, then global, then hardcoded."""
    return album_sort_order or default_sort_order or FALLBACK_SORT_ORDER


def apply_file_order(query: Query, sort_order: Optional[str]) -> Query:
    field, direction = parse_sort_order(sort_order)
    if field == "id":
        column = File.FileID
        return query.order_by(column.desc() if direction == "desc" else column.asc())
    column = SORT_FIELDS[field]
    if direction == "desc":
        # FileID keeps paging stable when several rows share the sort value
        return query.order_by(column.desc(), File.FileID.desc())
    return query.order_by(column.asc(), File.FileID.asc())


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def take(self) -> int:
        return self.limit

    def apply(self, query: Query) -> Query:
        return query.offset(self.skip).limit(self.take)


def make_page(page: Optional[int], limit: Optional[int], default_limit: int = 50) -> Page:
    """Build a Page from raw query values, defaulting page to 1."""
    p = int(page) if page else 1
    lim = int(limit) if limit else int(default_limit)
    return Page(page=max(1, p), limit=max(1, lim))
