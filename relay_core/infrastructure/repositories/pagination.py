"""Keyset pagination shared by the listing repositories."""

from typing import Any, List, Tuple
from uuid import UUID

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_PAGE_SIZE = 100


async def fetch_page(
    session: AsyncSession,
    stmt: Select,
    model: Any,
    limit: int,
    cursor: UUID | None = None,
) -> Tuple[List[Any], bool]:
    """
    Fetch one page ordered by created_at descending, id as tiebreaker.

    The cursor is the id of the last row of the previous page. If that row
    no longer exists the page continues from ids below the cursor.

    Returns:
        The rows of the page and whether more rows follow
    """
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    if cursor is not None:
        anchor = await session.execute(
            select(model.created_at).where(model.id == str(cursor))
        )
        anchor_created_at = anchor.scalar_one_or_none()

        if anchor_created_at is None:
            stmt = stmt.where(model.id < str(cursor))
        else:
            stmt = stmt.where(
                or_(
                    model.created_at < anchor_created_at,
                    and_(
                        model.created_at == anchor_created_at,
                        model.id < str(cursor),
                    ),
                )
            )

    stmt = stmt.order_by(model.created_at.desc(), model.id.desc()).limit(limit + 1)
    result = await session.execute(stmt)
    rows = list(result.scalars().all())

    has_more = len(rows) > limit
    return rows[:limit], has_more
