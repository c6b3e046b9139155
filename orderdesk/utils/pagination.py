from sqlalchemy import func
from sqlmodel import select

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def paginate(
    *,
    session,
    query,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
):
    """Run ``query`` for one page. Out-of-range arguments are clamped."""
    page = max(page, 1)
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(page_size, MAX_PAGE_SIZE)

    total_count = session.exec(
        select(func.count()).select_from(query.subquery())
    ).one()

    items = session.exec(
        query.offset((page - 1) * page_size).limit(page_size)
    ).all()

    return {
        "items": items,
        "total_count": total_count,
        "total_pages": (total_count + page_size - 1) // page_size,
        "page": page,
        "page_size": page_size,
    }
