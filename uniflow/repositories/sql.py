"""SQLタスクリポジトリ

task_queryの述語をSQL条件式に変換して検索する永続化バックエンド
操作ごとにセッションを開き、単一行の更新・削除は所有者条件付きの文で原子的に行う
"""

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uniflow.core.exceptions import TaskConflictError, TaskNotFoundError
from uniflow.dtos.query import PageInfo, TaskFilterSpec, TaskPage
from uniflow.dtos.task import TaskDTO
from uniflow.models.task import Task
from uniflow.repositories.base import TaskRepositoryInterface
from uniflow.repositories.task_query import build_select, prepare
from uniflow.utils.error_handler import handle_db_operation

logger = logging.getLogger(__name__)


class SQLTaskRepository(TaskRepositoryInterface):
    """SQLタスクリポジトリ

    件数取得とページ取得は別々の文で実行する（同時書き込み時の厳密な一貫性は保証しない）
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @handle_db_operation("タスク取得")
    async def get(self, task_id: str, user_id: str) -> TaskDTO:
        async with self._session_factory() as session:
            stmt = select(Task).where(Task.id == task_id, Task.user_id == user_id)
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()

            if row is None:
                raise TaskNotFoundError(task_id)
            return row.to_dto()

    @handle_db_operation("タスク作成")
    async def create(self, task: TaskDTO) -> TaskDTO:
        async with self._session_factory() as session:
            session.add(Task.from_dto(task))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise TaskConflictError(task.id) from e

        logger.debug(f"タスクを保存しました: {task.id}")
        return task

    @handle_db_operation("タスク更新")
    async def update(self, task: TaskDTO) -> TaskDTO:
        async with self._session_factory() as session:
            stmt = (
                update(Task)
                .where(Task.id == task.id, Task.user_id == task.user_id)
                .values(**Task.values_from_dto(task))
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                raise TaskNotFoundError(task.id)
            await session.commit()

        return task

    @handle_db_operation("タスク削除")
    async def delete(self, task_id: str, user_id: str) -> None:
        async with self._session_factory() as session:
            stmt = delete(Task).where(Task.id == task_id, Task.user_id == user_id)
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                raise TaskNotFoundError(task_id)
            await session.commit()

        logger.debug(f"タスクを削除しました: {task_id}")

    @handle_db_operation("タスク検索")
    async def find(self, spec: TaskFilterSpec, *, now: datetime) -> TaskPage:
        spec = prepare(spec)
        page_stmt, count_stmt = build_select(spec, now)

        async with self._session_factory() as session:
            total_result = await session.execute(count_stmt)
            total = total_result.scalar() or 0

            result = await session.execute(page_stmt)
            rows = list(result.scalars().all())

        return TaskPage(
            tasks=tuple(row.to_dto() for row in rows),
            page_info=PageInfo.build(total, spec.page, spec.limit),
        )

    @handle_db_operation("タスク一覧取得")
    async def list_all(self, user_id: str) -> list[TaskDTO]:
        async with self._session_factory() as session:
            stmt = select(Task).where(Task.user_id == user_id).order_by(Task.id)
            result = await session.execute(stmt)
            return [row.to_dto() for row in result.scalars().all()]
