"""Safe SQL construction for the admin book registry."""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

VALID_SORTS = ("title", "author", "created_at", "rating")
VALID_ORDERS = ("asc", "desc")
DEFAULT_SORT = "created_at"
DEFAULT_ORDER = "desc"

_BASE_QUERY = """
SELECT books.*, users.email AS user_email, users.name AS user_name
FROM books
LEFT JOIN users ON books.user_id = users.id
"""


@dataclass(frozen=True)
class ListingQuery:
    """SQL text plus its bound parameters."""
    sql: str
    params: Tuple[Any, ...]
    sort: str
    order: str


def normalize_sort(sort: Optional[str]) -> str:
    """Return sort if allow-listed, otherwise the default sort column."""
    return sort if sort in VALID_SORTS else DEFAULT_SORT


def normalize_order(order: Optional[str]) -> str:
    """Return "asc"/"desc" for recognized input, otherwise the default."""
    normalized = order.strip().lower() if isinstance(order, str) else ""
    return normalized if normalized in VALID_ORDERS else DEFAULT_ORDER


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_entry_listing_query(
    filter_text: Optional[str] = None,
    user_id: Optional[str] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
) -> ListingQuery:
    """Build the admin listing query over every user's books.

    filter_text matches title, author or owner email (case-insensitive,
    substring); user_id is an exact owner match. Unknown sort fields and
    directions fall back to created_at / desc. Only allow-listed
    identifiers are written into the SQL text; everything else is bound.
    """
    conditions = []
    params: list[Any] = []

    if filter_text:
        conditions.append(
            "(books.title LIKE ? ESCAPE '\\' OR books.author LIKE ? ESCAPE '\\'"
            " OR users.email LIKE ? ESCAPE '\\')"
        )
        wildcard = f"%{_escape_like(filter_text)}%"
        params.extend([wildcard, wildcard, wildcard])

    if user_id:
        conditions.append("books.user_id = ?")
        params.append(user_id)

    sql = _BASE_QUERY
    if conditions:
        sql += "WHERE " + " AND ".join(conditions) + "\n"

    safe_sort = normalize_sort(sort)
    safe_order = normalize_order(order)
    sql += f"ORDER BY books.{safe_sort} {safe_order.upper()}, books.id {safe_order.upper()}"

    return ListingQuery(sql=sql, params=tuple(params), sort=safe_sort, order=safe_order)
