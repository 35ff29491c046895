"""依存性注入設定モジュール

リポジトリ・リマインダー投入先・タスクサービスの組み立てを管理
"""

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from uniflow.core.config import settings
from uniflow.core.context import RequestContext

if TYPE_CHECKING:
    from uniflow.repositories.base import TaskRepositoryInterface
    from uniflow.services.reminder import ReminderSink
    from uniflow.services.task import TaskService

logger = logging.getLogger(__name__)

# 起動時に設定されるリマインダー投入先（未設定ならリマインダーは送らない）
_reminder_sink: "ReminderSink | None" = None


@lru_cache
def get_task_repository() -> "TaskRepositoryInterface":
    """タスクリポジトリの依存性注入

    STORAGE_BACKENDに応じてインメモリ実装かSQL実装を返す

    Returns:
        タスクリポジトリインスタンス
    """
    if settings.uses_database:
        from uniflow.core.database import database_manager
        from uniflow.repositories.sql import SQLTaskRepository

        logger.info("SQLタスクリポジトリを使用します")
        return SQLTaskRepository(database_manager.create_session_factory())

    from uniflow.repositories.memory import InMemoryTaskRepository

    logger.info("インメモリタスクリポジトリを使用します")
    return InMemoryTaskRepository()


def set_reminder_sink(sink: "ReminderSink | None") -> None:
    """リマインダー投入先を設定（アプリケーション起動時・テスト用）"""
    global _reminder_sink
    _reminder_sink = sink
    get_task_service.cache_clear()


def get_reminder_sink() -> "ReminderSink | None":
    return _reminder_sink


@lru_cache
def get_task_service() -> "TaskService":
    """タスクサービスの依存性注入

    Returns:
        タスクサービスインスタンス
    """
    from uniflow.services.reminder import ReminderDispatcher
    from uniflow.services.task import TaskService

    sink = get_reminder_sink()
    reminders = ReminderDispatcher(sink) if sink is not None else None
    return TaskService(get_task_repository(), reminders)


# テスト用のリセット関数
def reset_dependency_cache() -> None:
    """依存性キャッシュをリセット（主にテスト用）"""
    global _reminder_sink
    _reminder_sink = None
    get_task_repository.cache_clear()
    get_task_service.cache_clear()


def get_request_context() -> RequestContext:
    """リクエストごとの期限付きコンテキスト"""

    return RequestContext.with_timeout(settings.REQUEST_TIMEOUT_SECONDS)
