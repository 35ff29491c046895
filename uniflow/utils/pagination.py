"""ページネーション関連ユーティリティ

ページネーション計算と制限値の正規化処理を提供
"""

from typing import NamedTuple

from uniflow.core.constants import APIConstants


class PaginationParams(NamedTuple):
    """正規化済みのページ指定"""

    page: int
    limit: int


class PaginationWindow(NamedTuple):
    """スライス範囲（総件数でクランプ済み）"""

    start: int
    end: int


def normalize_pagination(page: int | None, limit: int | None) -> PaginationParams:
    """ページ番号と件数を正規化

    - limitが未指定または0以下ならデフォルト件数
    - limitは最大件数で頭打ち
    - pageが未指定または0以下なら1ページ目

    Args:
        page: ページ番号（1から開始）
        limit: 1ページあたりの件数

    Returns:
        正規化されたページネーションパラメータ
    """
    if limit is None or limit <= 0:
        validated_limit = APIConstants.DEFAULT_PAGE_SIZE
    else:
        validated_limit = min(limit, APIConstants.MAX_PAGE_SIZE)

    validated_page = page if page is not None and page > 0 else APIConstants.DEFAULT_PAGE

    return PaginationParams(page=validated_page, limit=validated_limit)


def calculate_window(page: int, limit: int, total: int) -> PaginationWindow:
    """ページに対応するスライス範囲を計算

    範囲外のページは空の範囲（start == end == total）になる
    """
    start = min(max((page - 1) * limit, 0), total)
    end = min(start + limit, total)
    return PaginationWindow(start=start, end=end)


def calculate_total_pages(total: int, limit: int) -> int:
    """総ページ数（0件なら0ページ）"""
    return (total + limit - 1) // limit
