"""DTOパッケージ

Data Transfer Objectsを提供
各レイヤー間のデータ転送を担当する
"""

from uniflow.dtos.base import BaseDTO
from uniflow.dtos.dashboard import DashboardDTO, DashboardTaskDTO
from uniflow.dtos.query import PageInfo, TaskFilterSpec, TaskPage
from uniflow.dtos.reminder import ReminderPayload, ScheduledReminder
from uniflow.dtos.task import TaskDTO, generate_task_id
from uniflow.dtos.user import UserContext

__all__ = [
    "BaseDTO",
    "DashboardDTO",
    "DashboardTaskDTO",
    "PageInfo",
    "ReminderPayload",
    "ScheduledReminder",
    "TaskDTO",
    "TaskFilterSpec",
    "TaskPage",
    "UserContext",
    "generate_task_id",
]
