"""
Page/limit pagination over SQLAlchemy queries.
"""
import math
from typing import Any

from sqlalchemy.orm import Query


def page_meta(page: int, limit: int, total: int) -> dict[str, int]:
    """Build the ``{current, pages, total, limit}`` block."""
    pages = math.ceil(total / limit) if limit > 0 else 0
    return {"current": page, "pages": pages, "total": total, "limit": limit}


def paginate(query: Query, page: int, limit: int) -> tuple[list[Any], dict[str, int]]:
    """
    Run *query* for one page and count the full result set.

    page is 1-based. Ordering must already be applied to *query*.
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, page_meta(page, limit, total)
