"""インメモリタスクリポジトリ

プロセス内の辞書にタスクを保持する（開発・テスト用バックエンド）
検索はtask_queryの述語をそのまま走査に適用する
"""

import logging
from datetime import datetime

from uniflow.core.constants import ErrorMessages
from uniflow.core.exceptions import TaskConflictError, TaskNotFoundError
from uniflow.dtos.query import TaskFilterSpec, TaskPage
from uniflow.dtos.task import TaskDTO
from uniflow.repositories.base import TaskRepositoryInterface
from uniflow.repositories.task_query import run_in_memory
from uniflow.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)


class InMemoryTaskRepository(TaskRepositoryInterface):
    """インメモリタスクリポジトリ

    タスクはイミュータブルなDTOのまま保持するため、返却値を共有しても安全
    ロックは同期区間でのみ取得し、awaitをまたいで保持しない
    """

    def __init__(self) -> None:
        self._tasks: dict[str, TaskDTO] = {}
        self._lock = ReadWriteLock()

    async def get(self, task_id: str, user_id: str) -> TaskDTO:
        with self._lock.read():
            task = self._tasks.get(task_id)

        if task is None or task.user_id != user_id:
            raise TaskNotFoundError(task_id)
        return task

    async def create(self, task: TaskDTO) -> TaskDTO:
        with self._lock.write():
            if task.id in self._tasks:
                raise TaskConflictError(task.id, ErrorMessages.CONFLICT)
            self._tasks[task.id] = task

        logger.debug(f"タスクを保存しました: {task.id}")
        return task

    async def update(self, task: TaskDTO) -> TaskDTO:
        with self._lock.write():
            current = self._tasks.get(task.id)
            if current is None or current.user_id != task.user_id:
                raise TaskNotFoundError(task.id)
            self._tasks[task.id] = task

        return task

    async def delete(self, task_id: str, user_id: str) -> None:
        with self._lock.write():
            current = self._tasks.get(task_id)
            if current is None or current.user_id != user_id:
                raise TaskNotFoundError(task_id)
            del self._tasks[task_id]

        logger.debug(f"タスクを削除しました: {task_id}")

    async def find(self, spec: TaskFilterSpec, *, now: datetime) -> TaskPage:
        # 所有者で絞ったスナップショットに対してロック外で評価
        snapshot = await self.list_all(spec.user_id)
        return run_in_memory(snapshot, spec, now)

    async def list_all(self, user_id: str) -> list[TaskDTO]:
        with self._lock.read():
            return [task for task in self._tasks.values() if task.user_id == user_id]

    def clear(self) -> None:
        """全タスクを削除（テスト用）"""
        with self._lock.write():
            self._tasks.clear()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._tasks)
