# app/utils/pagination.py
"""
Turns a CRUD `(records, total)` pair into the keyword arguments every
paginated response model in `app/schemas` expects.
"""
import math
from typing import Any, Dict

from app.schemas.page import PageOptions


def page_meta(options: PageOptions, total_items: int) -> Dict[str, Any]:
    """
    Envelope fields for `options` over `total_items` rows.

    A page past the last one is not an error: the caller gets an empty
    `items` list with the same totals.
    """
    total_pages = math.ceil(total_items / options.limit) if options.limit > 0 else 0
    return {
        "page": options.page,
        "limit": options.limit,
        "total_items": total_items,
        "total_pages": total_pages,
        "has_previous_page": options.page > 1,
        "has_next_page": options.page < total_pages,
    }


def order_clause(options: PageOptions, columns: Dict[str, str], tiebreaker: str) -> str:
    """
    Build an ORDER BY clause from a whitelisted field selector.

    `columns` maps public field names to SQL expressions; unknown names fall
    back to the tiebreaker column so no caller-supplied text reaches the SQL.
    """
    column = columns.get(options.order_by, tiebreaker)
    direction = options.order.value
    if column == tiebreaker:
        return f"ORDER BY {tiebreaker} {direction}"
    return f"ORDER BY {column} {direction}, {tiebreaker} {direction}"
