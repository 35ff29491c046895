"""ダッシュボード関連のPydanticスキーマ"""

from datetime import datetime

from pydantic import Field

from uniflow.core.constants import TaskPriority, TaskStatus, TaskType
from uniflow.dtos.dashboard import DashboardDTO, DashboardTaskDTO
from uniflow.schemas.task import CamelModel


class DashboardTask(CamelModel):
    """ダッシュボード表示用の簡易タスク"""

    id: str
    title: str
    subject_id: str
    due_date: datetime
    priority: TaskPriority
    status: TaskStatus
    type: TaskType

    @classmethod
    def from_dto(cls, task: DashboardTaskDTO) -> "DashboardTask":
        return cls(
            id=task.id,
            title=task.title,
            subject_id=task.subject_id,
            due_date=task.due_date,
            priority=task.priority,
            status=task.status,
            type=task.type,
        )


class DashboardResponse(CamelModel):
    """ダッシュボード応答スキーマ"""

    upcoming_tasks: list[DashboardTask] = Field(..., description="今後の期限（最大5件）")
    today_tasks: list[DashboardTask] = Field(..., description="今日が期限のタスク")
    overdue_count: int
    total_pending: int
    completed_this_week: int
    in_progress_count: int
    todo_count: int
    timezone: str
    generated_at: datetime

    @classmethod
    def from_dto(cls, dashboard: DashboardDTO) -> "DashboardResponse":
        return cls(
            upcoming_tasks=[DashboardTask.from_dto(task) for task in dashboard.upcoming_tasks],
            today_tasks=[DashboardTask.from_dto(task) for task in dashboard.today_tasks],
            overdue_count=dashboard.overdue_count,
            total_pending=dashboard.total_pending,
            completed_this_week=dashboard.completed_this_week,
            in_progress_count=dashboard.in_progress_count,
            todo_count=dashboard.todo_count,
            timezone=dashboard.timezone,
            generated_at=dashboard.generated_at,
        )
