"""エラーハンドリング関連ユーティリティ

エラーハンドリング、ログ出力、例外処理を提供
"""

import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from fastapi import HTTPException, status

from uniflow.core.exceptions import (
    DeadlineExceededError,
    InvalidTimezoneError,
    OperationCancelledError,
    StorageError,
    TaskConflictError,
    TaskNotFoundError,
    TaskValidationError,
)

T = TypeVar("T")

# クライアントがリクエストを放棄した場合のステータス（nginx慣習）
HTTP_499_CLIENT_CLOSED_REQUEST = 499

# リポジトリ層でそのまま通過させるドメイン例外
DOMAIN_ERRORS: tuple[type[BaseException], ...] = (
    TaskValidationError,
    TaskNotFoundError,
    TaskConflictError,
    InvalidTimezoneError,
    OperationCancelledError,
    StorageError,
)


def get_logger(name: str) -> logging.Logger:
    """統一フォーマットのロガー取得

    Args:
        name: ロガー名（通常は __name__ を渡す）

    Returns:
        設定済みのロガーインスタンス
    """
    return logging.getLogger(name)


def handle_db_operation(operation_name: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """データストア操作用デコレータ

    データストア操作でエラーが発生した場合の統一処理を提供
    - ドメイン例外はそのまま再発生
    - それ以外の例外はログ出力後、操作名付きのStorageErrorに変換

    Args:
        operation_name: 操作名（ログ出力用）

    Usage:
        @handle_db_operation("タスク作成")
        async def create(self, task: TaskDTO) -> TaskDTO:
            # データストア操作
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            logger = get_logger(func.__module__)
            try:
                return await func(*args, **kwargs)
            except DOMAIN_ERRORS:
                raise
            except Exception as e:
                log_error(logger, operation_name, e)
                raise StorageError(operation_name, e) from e

        return wrapper

    return decorator


def handle_api_error(operation_name: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """API層エラーハンドリング用デコレータ

    API層での統一されたエラーハンドリングを提供
    - ドメイン例外からHTTP例外への変換
    - 予期しない例外のログ出力と500エラー変換

    Args:
        operation_name: 操作名（ログ出力用）

    Usage:
        @handle_api_error("タスク作成")
        async def create_task(...):
            # API処理
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            logger = get_logger(func.__module__)
            try:
                return await func(*args, **kwargs)

            except HTTPException:
                raise
            except (TaskValidationError, InvalidTimezoneError) as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
            except TaskNotFoundError as e:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
            except TaskConflictError as e:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
            except DeadlineExceededError as e:
                raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e)) from e
            except OperationCancelledError as e:
                raise HTTPException(status_code=HTTP_499_CLIENT_CLOSED_REQUEST, detail=str(e)) from e
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
            except StorageError as e:
                logger.error(f"{operation_name}中にデータストアエラー: {e}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"{operation_name}中にエラーが発生しました",
                ) from e
            except Exception as e:
                logger.error(f"{operation_name}中に予期しないエラー: {e}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"{operation_name}中にエラーが発生しました",
                ) from e

        return wrapper

    return decorator


def log_error(logger: logging.Logger, operation: str, error: BaseException, **context: Any) -> None:
    """統一されたエラーログ出力

    Args:
        logger: ロガーインスタンス
        operation: 操作名
        error: 発生した例外
        **context: 追加のコンテキスト情報
    """
    context_str = ", ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    log_message = f"{operation}エラー: {error!r}"
    if context_str:
        log_message += f" (context: {context_str})"

    logger.error(log_message)


def safe_operation(
    operation_name: str, default_return: Any = None
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """安全な操作実行デコレータ

    例外が発生してもアプリケーションを停止させない安全な操作用
    主にリマインダー送信などの副次的な処理で使用

    Args:
        operation_name: 操作名
        default_return: 例外発生時のデフォルト戻り値

    Usage:
        @safe_operation("リマインダー送信", default_return=False)
        async def dispatch(...):
            # キュー送信処理
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = get_logger(func.__module__)
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"{operation_name}中にエラーが発生しましたが処理を続行します: {e!r}")
                return default_return

        return wrapper

    return decorator
