"""ユーティリティモジュール

共通的な処理を提供するユーティリティ関数・クラス群
"""

from uniflow.utils.datetime_utils import (
    ensure_utc,
    get_timezone,
    local_day_bounds,
    parse_query_date,
    start_of_local_day,
    utc_now,
)
from uniflow.utils.error_handler import (
    get_logger,
    handle_api_error,
    handle_db_operation,
    log_error,
    safe_operation,
)
from uniflow.utils.locks import ReadWriteLock
from uniflow.utils.pagination import (
    PaginationParams,
    PaginationWindow,
    calculate_total_pages,
    calculate_window,
    normalize_pagination,
)

__all__ = [
    # Datetime utilities
    "ensure_utc",
    "get_timezone",
    "local_day_bounds",
    "parse_query_date",
    "start_of_local_day",
    "utc_now",
    # Error handling
    "get_logger",
    "handle_api_error",
    "handle_db_operation",
    "log_error",
    "safe_operation",
    # Locks
    "ReadWriteLock",
    # Pagination
    "PaginationParams",
    "PaginationWindow",
    "calculate_total_pages",
    "calculate_window",
    "normalize_pagination",
]
