"""Page/limit pagination helpers."""

import math

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def get_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> dict[str, int]:
    """Pagination block returned alongside list results."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }
