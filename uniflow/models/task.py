"""タスクモデル

タスクの永続化表現とDTOとの相互変換を提供
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from uniflow.core.constants import TaskConstants, TaskPriority, TaskStatus, TaskType
from uniflow.dtos.task import TaskDTO
from uniflow.models.base import Base, UTCDateTime


class Task(Base):
    """タスクモデル

    学業タスク（課題・試験・実験など）を科目・学期に紐付けて保持する
    - ステータス（todo, in-progress, in-review, done, cancelled）
    - 優先度（low, medium, high, urgent）
    - 種別（assignment, exam, reading, presentation, lab, quiz, essay, group-work）
    """

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True, comment="タスクの所有者ID")

    title: Mapped[str] = mapped_column(String(TaskConstants.TITLE_MAX_LENGTH), nullable=False, comment="タスクタイトル")

    description: Mapped[str] = mapped_column(Text, nullable=False, default="", comment="タスクの詳細説明")

    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, comment="科目ID")

    period_id: Mapped[str] = mapped_column(String(64), nullable=False, default="", comment="学期ID")

    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, comment="期限日時（UTC）")

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TaskStatus.TODO.value, comment="ステータス")

    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TaskPriority.MEDIUM.value, comment="優先度"
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False, default=TaskType.ASSIGNMENT.value, comment="種別")

    estimated_time_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="見積時間（時間）")

    actual_time_hours: Mapped[int | None] = mapped_column(Integer, nullable=True, comment="実績時間（時間）")

    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list, comment="タグ")

    is_group_work: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="グループ課題フラグ")

    group_members: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list, comment="グループメンバー")

    attachments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list, comment="添付ファイル")

    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, comment="完了日時（UTC）")

    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_user_due_date", "user_id", "due_date"),
        Index("ix_tasks_user_subject", "user_id", "subject_id"),
        Index("ix_tasks_user_period", "user_id", "period_id"),
        Index("ix_tasks_completed_at", "completed_at"),
    )

    @validates("status")
    def validate_status(self, key: str, status: str) -> str:  # noqa: ARG002
        if status not in [s.value for s in TaskStatus]:
            valid_statuses = ", ".join([s.value for s in TaskStatus])
            raise ValueError(f"ステータスは次のいずれかである必要があります: {valid_statuses}")
        return status

    @validates("priority")
    def validate_priority(self, key: str, priority: str) -> str:  # noqa: ARG002
        if priority not in [p.value for p in TaskPriority]:
            valid_priorities = ", ".join([p.value for p in TaskPriority])
            raise ValueError(f"優先度は次のいずれかである必要があります: {valid_priorities}")
        return priority

    @validates("type")
    def validate_type(self, key: str, task_type: str) -> str:  # noqa: ARG002
        if task_type not in [t.value for t in TaskType]:
            valid_types = ", ".join([t.value for t in TaskType])
            raise ValueError(f"種別は次のいずれかである必要があります: {valid_types}")
        return task_type

    @classmethod
    def from_dto(cls, task: TaskDTO) -> "Task":
        """DTOから新しい行を作成"""
        row = cls(id=task.id, user_id=task.user_id)
        row.apply_dto(task)
        return row

    def apply_dto(self, task: TaskDTO) -> None:
        """DTOの内容で全カラムを置き換え"""
        for key, value in self.values_from_dto(task).items():
            setattr(self, key, value)

    @staticmethod
    def values_from_dto(task: TaskDTO) -> dict[str, Any]:
        """DTOをカラム名→値の辞書に変換（ID・所有者を除く）"""
        return {
            "title": task.title,
            "description": task.description,
            "subject_id": task.subject_id,
            "period_id": task.period_id,
            "due_date": task.due_date,
            "status": task.status.value,
            "priority": task.priority.value,
            "type": task.type.value,
            "estimated_time_hours": task.estimated_time_hours,
            "actual_time_hours": task.actual_time_hours,
            "tags": list(task.tags),
            "is_group_work": task.is_group_work,
            "group_members": list(task.group_members),
            "attachments": list(task.attachments),
            "completed_at": task.completed_at,
            "created_at": task.created_at,
            "updated_at": task.updated_at,
        }

    def to_dto(self) -> TaskDTO:
        """イミュータブルなDTOに変換"""
        return TaskDTO(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            user_id=self.user_id,
            title=self.title,
            subject_id=self.subject_id,
            due_date=self.due_date,
            description=self.description or "",
            period_id=self.period_id or "",
            status=TaskStatus(self.status),
            priority=TaskPriority(self.priority),
            type=TaskType(self.type),
            estimated_time_hours=self.estimated_time_hours,
            actual_time_hours=self.actual_time_hours,
            tags=tuple(self.tags or ()),
            is_group_work=self.is_group_work,
            group_members=tuple(self.group_members or ()),
            attachments=tuple(self.attachments or ()),
            completed_at=self.completed_at,
        )

    def __repr__(self) -> str:
        return f"<Task(title={self.title}, status={self.status}, priority={self.priority})>"
