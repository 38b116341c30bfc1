"""Supabase query execution with storage error translation."""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from good_steward.errors import StorageError

_logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


class _Executable(Protocol):
    def execute(self) -> Any:  # noqa: ANN401
        """Run the query."""


class _Pageable(Protocol):
    def range(self, start: int, end: int) -> _Executable:
        """Limit the query to rows ``start`` through ``end`` inclusive."""


def execute(query: _Executable, action: str) -> Any:  # noqa: ANN401
    """Run a query builder, raising StorageError when the call fails."""
    try:
        return query.execute()
    except Exception as exc:
        _logger.warning("Supabase %s failed: %s", action, exc)
        raise StorageError(f"Supabase {action} failed") from exc


def fetch_all(
    build_query: Callable[[], _Pageable], action: str, page_size: int = PAGE_SIZE
) -> list[dict[str, Any]]:
    """Read every row of an ordered query, one page at a time.

    PostgREST caps the rows of a single response, so a query that is not
    paged would silently drop the tail of a long history.
    """
    rows: list[dict[str, Any]] = []
    start = 0
    while True:
        response = execute(build_query().range(start, start + page_size - 1), action)
        page = response.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        start += page_size
