"""ダッシュボード集計

ユーザーの全タスクを一度だけ走査して集計する純粋関数
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from uniflow.core.constants import DashboardConstants, TaskStatus
from uniflow.dtos.dashboard import DashboardDTO, DashboardTaskDTO
from uniflow.dtos.task import TaskDTO
from uniflow.utils.datetime_utils import get_timezone, start_of_local_day


def build_dashboard(tasks: Iterable[TaskDTO], now: datetime, timezone_name: str) -> DashboardDTO:
    """ダッシュボードを集計

    - 今日: タイムゾーン上の当日0時から24時間以内が期限
    - 今後: 期限がnowより後で未完了、期限昇順で最大5件
    - 期限切れ: 期限がnowより前で未完了
    - 今週の完了: 完了日時が直近7日以内

    同じタスクが複数の一覧・カウントに入ることがある

    Raises:
        InvalidTimezoneError: 未知のタイムゾーン名の場合
    """
    tz = get_timezone(timezone_name)
    today_start = start_of_local_day(now, tz)
    today_end = today_start + timedelta(hours=24)
    week_ago = now - timedelta(days=DashboardConstants.COMPLETED_WINDOW_DAYS)

    upcoming: list[TaskDTO] = []
    today: list[TaskDTO] = []
    overdue_count = 0
    completed_this_week = 0
    in_progress_count = 0
    todo_count = 0

    for task in tasks:
        if today_start <= task.due_date < today_end:
            today.append(task)

        if task.status != TaskStatus.DONE:
            if task.due_date > now:
                upcoming.append(task)
            elif task.due_date < now:
                overdue_count += 1

        if task.status == TaskStatus.DONE:
            if task.completed_at is not None and task.completed_at >= week_ago:
                completed_this_week += 1
        elif task.status == TaskStatus.IN_PROGRESS:
            in_progress_count += 1
        elif task.status == TaskStatus.TODO:
            todo_count += 1

    upcoming.sort(key=lambda task: (task.due_date, task.id))
    today.sort(key=lambda task: (task.due_date, task.id))

    return DashboardDTO(
        upcoming_tasks=tuple(DashboardTaskDTO.from_task(task) for task in upcoming[: DashboardConstants.UPCOMING_LIMIT]),
        today_tasks=tuple(DashboardTaskDTO.from_task(task) for task in today),
        overdue_count=overdue_count,
        total_pending=todo_count + in_progress_count,
        completed_this_week=completed_this_week,
        in_progress_count=in_progress_count,
        todo_count=todo_count,
        timezone=tz.zone,
        generated_at=now,
    )
