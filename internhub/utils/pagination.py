"""Page/limit helpers shared by list endpoints."""

import math

from internhub.schemas.schemas import Pagination


def offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)
