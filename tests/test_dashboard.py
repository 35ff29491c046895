"""ダッシュボード集計のテスト"""

from datetime import timedelta

import pytest

from tests.fixtures.entities import FIXED_NOW, make_task
from uniflow.core.constants import TaskStatus
from uniflow.core.exceptions import InvalidTimezoneError
from uniflow.services.dashboard import build_dashboard


class TestDashboardWindows:
    """今日・今後・期限切れ・今週の完了の判定"""

    def test_empty_input(self) -> None:
        dashboard = build_dashboard([], FIXED_NOW, "UTC")

        assert dashboard.upcoming_tasks == ()
        assert dashboard.today_tasks == ()
        assert dashboard.overdue_count == 0
        assert dashboard.total_pending == 0
        assert dashboard.completed_this_week == 0
        assert dashboard.timezone == "UTC"
        assert dashboard.generated_at == FIXED_NOW

    def test_task_due_later_today_is_today_and_upcoming(self) -> None:
        task = make_task(due_date=FIXED_NOW + timedelta(hours=2))

        dashboard = build_dashboard([task], FIXED_NOW, "UTC")

        assert [t.id for t in dashboard.today_tasks] == [task.id]
        assert [t.id for t in dashboard.upcoming_tasks] == [task.id]
        assert dashboard.overdue_count == 0

    def test_task_due_earlier_today_is_overdue_and_today(self) -> None:
        task = make_task(due_date=FIXED_NOW - timedelta(hours=1))

        dashboard = build_dashboard([task], FIXED_NOW, "UTC")

        assert dashboard.overdue_count == 1
        assert [t.id for t in dashboard.today_tasks] == [task.id]
        assert dashboard.upcoming_tasks == ()

    def test_done_tasks_are_neither_upcoming_nor_overdue(self) -> None:
        tasks = [
            make_task(due_date=FIXED_NOW - timedelta(days=1), status=TaskStatus.DONE),
            make_task(due_date=FIXED_NOW + timedelta(days=1), status=TaskStatus.DONE),
        ]

        dashboard = build_dashboard(tasks, FIXED_NOW, "UTC")

        assert dashboard.overdue_count == 0
        assert dashboard.upcoming_tasks == ()

    def test_today_window_follows_timezone(self) -> None:
        # 東京（UTC+9）の6月10日は 6/9 15:00 UTC から 6/10 15:00 UTC まで
        inside = make_task(due_date=FIXED_NOW + timedelta(hours=2, minutes=59))
        outside = make_task(due_date=FIXED_NOW + timedelta(hours=3))

        dashboard = build_dashboard([inside, outside], FIXED_NOW, "Asia/Tokyo")

        assert [t.id for t in dashboard.today_tasks] == [inside.id]
        assert dashboard.timezone == "Asia/Tokyo"

    def test_upcoming_is_sorted_and_limited(self) -> None:
        tasks = [make_task(due_date=FIXED_NOW + timedelta(days=days)) for days in (6, 2, 4, 1, 5, 3, 7)]

        dashboard = build_dashboard(tasks, FIXED_NOW, "UTC")

        due_dates = [t.due_date for t in dashboard.upcoming_tasks]
        assert len(due_dates) == 5
        assert due_dates == sorted(due_dates)
        assert due_dates[0] == FIXED_NOW + timedelta(days=1)

    def test_completed_this_week(self) -> None:
        recent = make_task(status=TaskStatus.DONE, completed_at=FIXED_NOW - timedelta(days=6, hours=23))
        old = make_task(status=TaskStatus.DONE, completed_at=FIXED_NOW - timedelta(days=8))
        missing = make_task(status=TaskStatus.DONE, completed_at=None)

        dashboard = build_dashboard([recent, old, missing], FIXED_NOW, "UTC")

        assert dashboard.completed_this_week == 1

    def test_status_counts(self) -> None:
        tasks = [
            make_task(status=TaskStatus.TODO),
            make_task(status=TaskStatus.TODO),
            make_task(status=TaskStatus.IN_PROGRESS),
            make_task(status=TaskStatus.IN_REVIEW),
            make_task(status=TaskStatus.CANCELLED),
        ]

        dashboard = build_dashboard(tasks, FIXED_NOW, "UTC")

        assert dashboard.todo_count == 2
        assert dashboard.in_progress_count == 1
        assert dashboard.total_pending == 3

    def test_unknown_timezone(self) -> None:
        with pytest.raises(InvalidTimezoneError):
            build_dashboard([], FIXED_NOW, "Mars/Olympus")
