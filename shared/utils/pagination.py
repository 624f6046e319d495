"""
shared/utils/pagination.py
Offset pagination over a SELECT, in the PaginatedResponse shape.
"""

from typing import Any, Callable, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings


def clamp_page_size(page_size: Optional[int]) -> int:
    if not page_size or page_size < 1:
        return settings.DEFAULT_PAGE_SIZE
    return min(page_size, settings.MAX_PAGE_SIZE)


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: Optional[int] = None,
    transform: Optional[Callable[[Any], Any]] = None,
) -> dict:
    page = max(page, 1)
    page_size = clamp_page_size(page_size)

    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery())) or 0
    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    rows = result.scalars().all()

    return {
        "items": [transform(r) for r in rows] if transform else list(rows),
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": -(-total // page_size),  # ceiling division
    }
