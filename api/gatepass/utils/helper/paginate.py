from typing import List, Tuple
from sqlalchemy import func, select
from sqlalchemy.sql import Select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_PAGE_SIZE = 100

def page_window(page: int, page_size: int) -> Tuple[int, int]:
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    return page_size, (max(page, 1) - 1) * page_size

async def paginate(db: AsyncSession, query: Select, page: int, page_size: int) -> Tuple[List, int]:
    """Run ``query`` for one page of ORM entities plus the unpaged total."""
    page_size, offset = page_window(page, page_size)

    count_q = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_q)).scalar_one() or 0

    rows = (await db.execute(query.offset(offset).limit(page_size))).scalars().all()
    return list(rows), total
