# sardia_api/utils/pagination.py
import math
from typing import Any, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _positive_int(value: Any, default: int) -> int:
    """숫자로 변환할 수 없거나 1보다 작은 값은 기본값으로 대체합니다."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def clamp_pagination(page: Any, limit: Any,
                     max_limit: int = MAX_LIMIT,
                     default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int]:
    """page/limit 값을 정규화합니다. limit은 max_limit을 넘지 않습니다."""
    page = _positive_int(page, DEFAULT_PAGE)
    limit = min(_positive_int(limit, default_limit), max_limit)
    return page, limit


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total > 0 else 0


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit
