"""タスクリポジトリのインターフェース

インメモリ実装とSQL実装が同じ契約を満たす
"""

from abc import ABC, abstractmethod
from datetime import datetime

from uniflow.dtos.query import TaskFilterSpec, TaskPage
from uniflow.dtos.task import TaskDTO


class TaskRepositoryInterface(ABC):
    """タスクリポジトリのインターフェース

    すべての操作は (task_id, user_id) で所有者をスコープする
    所有者が異なるIDは「存在しない」として扱う
    """

    @abstractmethod
    async def get(self, task_id: str, user_id: str) -> TaskDTO:
        """IDでタスクを取得

        Raises:
            TaskNotFoundError: 存在しない、または所有者が異なる場合
        """
        pass

    @abstractmethod
    async def create(self, task: TaskDTO) -> TaskDTO:
        """タスクを保存

        Raises:
            TaskConflictError: 同じIDのタスクが既に存在する場合
        """
        pass

    @abstractmethod
    async def update(self, task: TaskDTO) -> TaskDTO:
        """タスクを置き換え

        Raises:
            TaskNotFoundError: 存在しない、または所有者が異なる場合
        """
        pass

    @abstractmethod
    async def delete(self, task_id: str, user_id: str) -> None:
        """タスクを削除

        Raises:
            TaskNotFoundError: 存在しない、または所有者が異なる場合
        """
        pass

    @abstractmethod
    async def find(self, spec: TaskFilterSpec, *, now: datetime) -> TaskPage:
        """フィルタ・ソート・ページネーションを適用して検索

        同じデータ・同じspec・同じnowに対して、どの実装も同じ結果を返す
        """
        pass

    @abstractmethod
    async def list_all(self, user_id: str) -> list[TaskDTO]:
        """ユーザーの全タスクを取得（ダッシュボード集計用）"""
        pass
