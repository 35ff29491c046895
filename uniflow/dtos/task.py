"""タスクDTO

タスクエンティティの値オブジェクトと業務ルール
"""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime

from uniflow.core.constants import ErrorMessages, TaskConstants, TaskPriority, TaskStatus, TaskType
from uniflow.core.exceptions import TaskValidationError
from uniflow.dtos.base import BaseDTO


def generate_task_id() -> str:
    """サーバー側で発行するタスクID（32桁の小文字16進）"""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TaskDTO(BaseDTO):
    """タスクDTO

    変更は常にdataclasses.replaceで新しいインスタンスを作る
    completed_atはstatusがdoneの間だけ値を持つ
    """

    user_id: str
    title: str
    subject_id: str
    due_date: datetime
    description: str = ""
    period_id: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    type: TaskType = TaskType.ASSIGNMENT
    estimated_time_hours: int = 0
    actual_time_hours: int | None = None
    tags: tuple[str, ...] = ()
    is_group_work: bool = False
    group_members: tuple[str, ...] = ()
    attachments: tuple[str, ...] = ()
    completed_at: datetime | None = None

    def validate(self) -> None:
        """業務ルール検証

        Raises:
            TaskValidationError: 必須項目の欠落や列挙値が不正な場合
        """
        if not self.title or not self.title.strip():
            raise TaskValidationError(ErrorMessages.TASK_TITLE_REQUIRED)
        if len(self.title) > TaskConstants.TITLE_MAX_LENGTH:
            raise TaskValidationError(ErrorMessages.TASK_TITLE_TOO_LONG)
        if not self.subject_id or not self.subject_id.strip():
            raise TaskValidationError(ErrorMessages.TASK_SUBJECT_REQUIRED)
        if self.due_date is None or self.due_date.tzinfo is None:
            raise TaskValidationError(ErrorMessages.TASK_DUE_DATE_REQUIRED)
        if not isinstance(self.status, TaskStatus):
            raise TaskValidationError(f"{ErrorMessages.TASK_INVALID_STATUS}: {self.status}")
        if not isinstance(self.priority, TaskPriority):
            raise TaskValidationError(f"{ErrorMessages.TASK_INVALID_PRIORITY}: {self.priority}")
        if not isinstance(self.type, TaskType):
            raise TaskValidationError(f"{ErrorMessages.TASK_INVALID_TYPE}: {self.type}")
        if self.estimated_time_hours < 0:
            raise TaskValidationError(ErrorMessages.TASK_INVALID_TIME)
        if self.actual_time_hours is not None and self.actual_time_hours < 0:
            raise TaskValidationError(ErrorMessages.TASK_INVALID_TIME)

    @property
    def is_completed(self) -> bool:
        """完了済みかどうか"""
        return self.status == TaskStatus.DONE

    @property
    def is_cancelled(self) -> bool:
        """キャンセル済みかどうか"""
        return self.status == TaskStatus.CANCELLED

    def can_be_modified(self) -> bool:
        return not (self.is_completed or self.is_cancelled)

    def can_be_deleted(self) -> bool:
        return not self.is_completed

    def is_overdue_at(self, now: datetime) -> bool:
        """期限切れかどうか（完了済みタスクは期限切れ扱いしない）"""
        return self.due_date < now and not self.is_completed

    def with_status(self, status: TaskStatus, now: datetime) -> "TaskDTO":
        """ステータスを変更した新しいタスクを返す

        doneへの遷移でcompleted_atを設定し、doneから外れるとクリアする
        """
        if status == self.status:
            return replace(self, updated_at=now)

        completed_at = now if status == TaskStatus.DONE else None
        return replace(self, status=status, completed_at=completed_at, updated_at=now)

    def completed(self, now: datetime, actual_time_hours: int | None = None) -> "TaskDTO":
        """完了状態のタスクを返す（完了済みならそのまま返す）"""
        if self.is_completed:
            return self

        task = self.with_status(TaskStatus.DONE, now)
        if actual_time_hours is not None:
            task = replace(task, actual_time_hours=actual_time_hours)
        return task
