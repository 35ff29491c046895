"""ダッシュボードDTO

ダッシュボード集計結果の転送オブジェクト
"""

from dataclasses import dataclass
from datetime import datetime

from uniflow.core.constants import TaskPriority, TaskStatus, TaskType
from uniflow.dtos.task import TaskDTO


@dataclass(frozen=True)
class DashboardTaskDTO:
    """ダッシュボード表示用の簡易タスク"""

    id: str
    title: str
    subject_id: str
    due_date: datetime
    priority: TaskPriority
    status: TaskStatus
    type: TaskType

    @classmethod
    def from_task(cls, task: TaskDTO) -> "DashboardTaskDTO":
        return cls(
            id=task.id,
            title=task.title,
            subject_id=task.subject_id,
            due_date=task.due_date,
            priority=task.priority,
            status=task.status,
            type=task.type,
        )


@dataclass(frozen=True)
class DashboardDTO:
    """ダッシュボード集計結果

    同じタスクが複数の一覧・カウントに含まれることがある
    """

    upcoming_tasks: tuple[DashboardTaskDTO, ...]
    today_tasks: tuple[DashboardTaskDTO, ...]
    overdue_count: int
    total_pending: int
    completed_this_week: int
    in_progress_count: int
    todo_count: int
    timezone: str
    generated_at: datetime
