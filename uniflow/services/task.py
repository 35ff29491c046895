"""タスクサービス層

タスクのビジネスロジックを提供
リポジトリとリマインダーの投入先はコンストラクタで受け取る
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, TypeVar

from uniflow.core.config import settings
from uniflow.core.constants import APIConstants, ErrorMessages, SortField, SortOrder, TaskStatus, TaskType
from uniflow.core.context import RequestContext
from uniflow.core.exceptions import DeadlineExceededError, TaskConflictError, TaskValidationError
from uniflow.dtos.dashboard import DashboardDTO
from uniflow.dtos.query import TaskFilterSpec, TaskPage
from uniflow.dtos.task import TaskDTO, generate_task_id
from uniflow.dtos.user import UserContext
from uniflow.repositories.base import TaskRepositoryInterface
from uniflow.repositories.task_query import resolve_query_timezone
from uniflow.schemas.task import TaskCreate, TaskUpdate
from uniflow.services.dashboard import build_dashboard
from uniflow.services.reminder import ReminderDispatcher
from uniflow.utils.datetime_utils import get_timezone, start_of_local_day, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskService:
    """タスクサービス

    すべての操作はユーザーIDでスコープされる
    永続化呼び出しの前にコンテキストのキャンセル・期限を確認し、呼び出し自体も時間制限する
    """

    def __init__(
        self,
        repository: TaskRepositoryInterface,
        reminders: ReminderDispatcher | None = None,
        *,
        store_timeout: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.reminders = reminders
        self._store_timeout = store_timeout or settings.STORE_TIMEOUT_SECONDS
        self._clock = clock

    async def _store(self, ctx: RequestContext | None, operation: Callable[[], Awaitable[T]]) -> T:
        """期限・キャンセルを確認してからリポジトリ操作を実行

        Raises:
            OperationCancelledError: キャンセル済みの場合
            DeadlineExceededError: 期限切れ、または操作がタイムアウトした場合
        """
        ctx = ctx or RequestContext()
        ctx.check()
        try:
            async with asyncio.timeout(ctx.remaining(self._store_timeout)):
                return await operation()
        except TimeoutError as e:
            raise DeadlineExceededError() from e

    # =============================================================================
    # 単一タスク操作
    # =============================================================================

    async def get_task(self, task_id: str, user_id: str, ctx: RequestContext | None = None) -> TaskDTO:
        """タスクを取得

        Args:
            task_id: タスクID
            user_id: ユーザーID
            ctx: リクエストコンテキスト

        Returns:
            TaskDTO

        Raises:
            TaskNotFoundError: 存在しない、または他ユーザーのタスクの場合
        """
        return await self._store(ctx, lambda: self.repository.get(task_id, user_id))

    async def create_task(self, task_in: TaskCreate, user: UserContext, ctx: RequestContext | None = None) -> TaskDTO:
        """タスクを作成

        保存に成功したら期限リマインダーをバックグラウンドで投入する
        リマインダーの失敗は作成結果に影響しない

        Args:
            task_in: タスク作成データ
            user: 認証済みユーザー
            ctx: リクエストコンテキスト

        Returns:
            作成されたTaskDTO

        Raises:
            TaskValidationError: 業務ルール違反
        """
        now = self._clock()
        task = TaskDTO(
            id=generate_task_id(),
            created_at=now,
            updated_at=now,
            user_id=user.id,
            status=TaskStatus.TODO,
            **self._fields_from_input(task_in),
        )
        task.validate()

        created = await self._store(ctx, lambda: self.repository.create(task))
        logger.info(f"タスクを作成しました: task_id={created.id}, user_id={user.id}")

        if self.reminders is not None:
            self.reminders.schedule(created, user, now)

        return created

    async def update_task(
        self, task_id: str, task_in: TaskUpdate, user_id: str, ctx: RequestContext | None = None
    ) -> TaskDTO:
        """タスクを更新（編集可能な全項目を置き換え）

        Raises:
            TaskNotFoundError: タスクが見つからない場合
            TaskConflictError: 完了・キャンセル済みのタスクの場合
            TaskValidationError: 業務ルール違反
        """
        existing = await self.get_task(task_id, user_id, ctx)
        if not existing.can_be_modified():
            raise TaskConflictError(task_id, ErrorMessages.TASK_CANNOT_MODIFY)

        updated = replace(existing, updated_at=self._clock(), **self._fields_from_input(task_in))
        updated.validate()

        return await self._store(ctx, lambda: self.repository.update(updated))

    async def update_status(
        self, task_id: str, status: TaskStatus, user_id: str, ctx: RequestContext | None = None
    ) -> TaskDTO:
        """タスクステータスを更新

        doneへの遷移で完了日時を記録する

        Raises:
            TaskNotFoundError: タスクが見つからない場合
            TaskConflictError: 完了・キャンセル済みのタスクの場合
            TaskValidationError: 未知のステータス
        """
        if not isinstance(status, TaskStatus):
            raise TaskValidationError(f"{ErrorMessages.TASK_INVALID_STATUS}: {status}")

        existing = await self.get_task(task_id, user_id, ctx)
        if not existing.can_be_modified():
            raise TaskConflictError(task_id, ErrorMessages.TASK_CANNOT_MODIFY)

        updated = existing.with_status(status, self._clock())
        return await self._store(ctx, lambda: self.repository.update(updated))

    async def complete_task(
        self,
        task_id: str,
        user_id: str,
        actual_time_hours: int | None = None,
        ctx: RequestContext | None = None,
    ) -> TaskDTO:
        """タスクを完了にする

        完了済みのタスクはそのまま返す（最初の完了日時を保持）

        Raises:
            TaskNotFoundError: タスクが見つからない場合
            TaskConflictError: キャンセル済みのタスクの場合
        """
        existing = await self.get_task(task_id, user_id, ctx)
        if existing.is_completed:
            return existing
        if existing.is_cancelled:
            raise TaskConflictError(task_id, ErrorMessages.TASK_CANNOT_COMPLETE)

        completed = existing.completed(self._clock(), actual_time_hours)
        completed.validate()
        return await self._store(ctx, lambda: self.repository.update(completed))

    async def delete_task(self, task_id: str, user_id: str, ctx: RequestContext | None = None) -> None:
        """タスクを削除

        Raises:
            TaskNotFoundError: タスクが見つからない場合
            TaskConflictError: 完了済みのタスクの場合
        """
        existing = await self.get_task(task_id, user_id, ctx)
        if not existing.can_be_deleted():
            raise TaskConflictError(task_id, ErrorMessages.TASK_CANNOT_DELETE)

        await self._store(ctx, lambda: self.repository.delete(task_id, user_id))
        logger.info(f"タスクを削除しました: task_id={task_id}, user_id={user_id}")

    # =============================================================================
    # 一覧・検索
    # =============================================================================

    async def list_tasks(self, spec: TaskFilterSpec, ctx: RequestContext | None = None) -> TaskPage:
        """フィルタ・ソート・ページネーションを適用したタスク一覧

        Raises:
            InvalidTimezoneError: 未知のタイムゾーン（現在時刻基準のフィルタを除く）
        """
        now = self._clock()
        return await self._store(ctx, lambda: self.repository.find(spec, now=now))

    async def search_tasks(
        self,
        user_id: str,
        query: str,
        limit: int = APIConstants.SEARCH_DEFAULT_LIMIT,
        ctx: RequestContext | None = None,
    ) -> TaskPage:
        """タイトル・説明の部分一致検索（作成日時の新しい順）

        Raises:
            TaskValidationError: 検索語が空の場合
        """
        if not query or not query.strip():
            raise TaskValidationError(ErrorMessages.SEARCH_QUERY_REQUIRED)

        spec = TaskFilterSpec(
            user_id=user_id,
            query=query,
            sort_by=SortField.CREATED_AT,
            sort_order=SortOrder.DESC,
            limit=limit,
        )
        return await self.list_tasks(spec, ctx)

    async def get_overdue(
        self, user_id: str, timezone: str = APIConstants.DEFAULT_TIMEZONE, ctx: RequestContext | None = None
    ) -> TaskPage:
        """期限切れの未完了タスク（期限の古い順）"""
        spec = TaskFilterSpec(
            user_id=user_id,
            is_overdue=True,
            sort_by=SortField.DUE_DATE,
            sort_order=SortOrder.ASC,
            limit=APIConstants.LISTING_LIMIT,
            timezone=timezone,
        )
        return await self.list_tasks(spec, ctx)

    async def get_completed(
        self,
        user_id: str,
        page: int = APIConstants.DEFAULT_PAGE,
        limit: int = APIConstants.DEFAULT_PAGE_SIZE,
        ctx: RequestContext | None = None,
    ) -> TaskPage:
        """完了済みタスク（作成日時の新しい順）"""
        spec = TaskFilterSpec(
            user_id=user_id,
            statuses=(TaskStatus.DONE,),
            sort_by=SortField.CREATED_AT,
            sort_order=SortOrder.DESC,
            page=page,
            limit=limit,
        )
        return await self.list_tasks(spec, ctx)

    async def get_by_subject(self, user_id: str, subject_id: str, ctx: RequestContext | None = None) -> TaskPage:
        """科目別タスク（期限の近い順）"""
        spec = TaskFilterSpec(
            user_id=user_id,
            subject_id=subject_id,
            sort_by=SortField.DUE_DATE,
            limit=APIConstants.LISTING_LIMIT,
        )
        return await self.list_tasks(spec, ctx)

    async def get_by_period(self, user_id: str, period_id: str, ctx: RequestContext | None = None) -> TaskPage:
        """学期別タスク（期限の近い順）"""
        spec = TaskFilterSpec(
            user_id=user_id,
            period_id=period_id,
            sort_by=SortField.DUE_DATE,
            limit=APIConstants.LISTING_LIMIT,
        )
        return await self.list_tasks(spec, ctx)

    async def get_due_today(
        self, user_id: str, timezone: str | None = None, ctx: RequestContext | None = None
    ) -> TaskPage:
        """今日が期限のタスク（ステータスを問わない）

        今日はタイムゾーン上の当日0時から24時間

        Raises:
            InvalidTimezoneError: 未知のタイムゾーンの場合
        """
        spec = TaskFilterSpec(
            user_id=user_id,
            sort_by=SortField.DUE_DATE,
            limit=APIConstants.LISTING_LIMIT,
            timezone=timezone or settings.DEFAULT_TIMEZONE,
        )
        tz = resolve_query_timezone(spec)
        today_start = start_of_local_day(self._clock(), tz)
        spec = replace(
            spec,
            due_date_from=today_start,
            due_date_to=today_start + timedelta(hours=24) - timedelta(microseconds=1),
        )
        return await self.list_tasks(spec, ctx)

    # =============================================================================
    # ダッシュボード
    # =============================================================================

    async def get_dashboard(
        self, user_id: str, timezone: str | None = None, ctx: RequestContext | None = None
    ) -> DashboardDTO:
        """ダッシュボードを集計

        タイムゾーン未指定時はサーバーの既定タイムゾーンを使う

        Raises:
            InvalidTimezoneError: 未知のタイムゾーンの場合
        """
        timezone_name = timezone or settings.DEFAULT_TIMEZONE
        get_timezone(timezone_name)

        now = self._clock()
        tasks = await self._store(ctx, lambda: self.repository.list_all(user_id))
        return build_dashboard(tasks, now, timezone_name)

    # =============================================================================
    # 内部ヘルパー
    # =============================================================================

    @staticmethod
    def _fields_from_input(task_in: TaskCreate | TaskUpdate) -> dict[str, Any]:
        """リクエストから編集可能な項目を取り出す"""
        return {
            "title": task_in.title,
            "description": task_in.description,
            "subject_id": task_in.subject_id,
            "period_id": task_in.period_id,
            "due_date": task_in.due_date,
            "priority": task_in.priority,
            "type": task_in.type,
            "estimated_time_hours": task_in.estimated_time_hours,
            "tags": tuple(task_in.tags),
            # グループ課題の種別はグループ作業として扱う
            "is_group_work": task_in.is_group_work or task_in.type == TaskType.GROUP_WORK,
            "group_members": tuple(task_in.group_members),
            "attachments": tuple(task_in.attachments),
        }
