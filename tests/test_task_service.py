"""タスクサービスのテスト

業務ルール、所有者スコープ、キャンセル・期限、リマインダー投入の隔離を確認する
"""

import time
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from tests.fixtures.entities import FIXED_NOW, OTHER_USER_ID, TEST_USER_ID, make_task
from tests.tests_config.mocks import FailingReminderSink, FakeReminderSink, SlowTaskRepository
from uniflow.core.constants import TaskPriority, TaskStatus, TaskType
from uniflow.core.context import RequestContext
from uniflow.core.exceptions import (
    DeadlineExceededError,
    InvalidTimezoneError,
    OperationCancelledError,
    TaskConflictError,
    TaskNotFoundError,
    TaskValidationError,
)
from uniflow.dtos.user import UserContext
from uniflow.repositories.memory import InMemoryTaskRepository
from uniflow.schemas.task import TaskCreate, TaskUpdate
from uniflow.services.reminder import ReminderDispatcher
from uniflow.services.task import TaskService


class MovingClock:
    """呼び出し側で進められる時計"""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def task_input(**overrides: Any) -> dict[str, Any]:
    values: dict[str, Any] = {
        "title": "線形代数 レポート課題3",
        "subject_id": "math-101",
        "period_id": "2025-spring",
        "due_date": FIXED_NOW + timedelta(days=10),
        "priority": TaskPriority.HIGH,
        "type": TaskType.ASSIGNMENT,
    }
    values.update(overrides)
    return values


class TestCreateTask:
    """タスク作成"""

    @pytest.mark.asyncio
    async def test_create_persists_and_schedules_reminder(
        self,
        task_service: TaskService,
        memory_repository: InMemoryTaskRepository,
        reminder_dispatcher: ReminderDispatcher,
        reminder_sink: FakeReminderSink,
        test_user: UserContext,
    ) -> None:
        created = await task_service.create_task(TaskCreate(**task_input()), test_user)
        await reminder_dispatcher.wait_for_pending()

        assert created.status == TaskStatus.TODO
        assert created.user_id == TEST_USER_ID
        assert created.created_at == FIXED_NOW
        assert len(created.id) == 32
        assert await memory_repository.get(created.id, TEST_USER_ID) == created

        assert len(reminder_sink.messages) == 1
        payload, delay = reminder_sink.messages[0]
        assert created.id in payload
        assert delay == timedelta(days=7)

    @pytest.mark.asyncio
    async def test_group_work_type_sets_flag(self, task_service: TaskService, test_user: UserContext) -> None:
        created = await task_service.create_task(TaskCreate(**task_input(type=TaskType.GROUP_WORK)), test_user)

        assert created.is_group_work is True

    @pytest.mark.asyncio
    async def test_reminder_failure_does_not_affect_create(
        self, memory_repository: InMemoryTaskRepository, clock: Callable[[], datetime], test_user: UserContext
    ) -> None:
        sink = FailingReminderSink()
        reminders = ReminderDispatcher(sink, timeout_seconds=0.5)
        service = TaskService(memory_repository, reminders, clock=clock)

        created = await service.create_task(TaskCreate(**task_input()), test_user)
        await reminders.wait_for_pending()

        assert sink.attempts == 1
        assert len(memory_repository) == 1
        assert created.status == TaskStatus.TODO

    @pytest.mark.asyncio
    async def test_create_without_reminders(
        self, memory_repository: InMemoryTaskRepository, test_user: UserContext
    ) -> None:
        service = TaskService(memory_repository)

        created = await service.create_task(TaskCreate(**task_input()), test_user)

        assert await service.get_task(created.id, TEST_USER_ID) == created


class TestModifyTask:
    """更新・ステータス変更・完了・削除"""

    @pytest.mark.asyncio
    async def test_update_replaces_fields(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        task = make_task()
        await memory_repository.create(task)

        updated = await task_service.update_task(
            task.id, TaskUpdate(**task_input(title="更新後", tags=["exam"])), TEST_USER_ID
        )

        assert updated.title == "更新後"
        assert updated.tags == ("exam",)
        assert updated.created_at == task.created_at
        assert updated.updated_at == FIXED_NOW
        assert await memory_repository.get(task.id, TEST_USER_ID) == updated

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [TaskStatus.DONE, TaskStatus.CANCELLED])
    async def test_finished_task_cannot_be_updated(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository, status: TaskStatus
    ) -> None:
        task = make_task(status=status)
        await memory_repository.create(task)

        with pytest.raises(TaskConflictError):
            await task_service.update_task(task.id, TaskUpdate(**task_input()), TEST_USER_ID)
        with pytest.raises(TaskConflictError):
            await task_service.update_status(task.id, TaskStatus.TODO, TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_status_to_done_sets_completed_at(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        task = make_task(status=TaskStatus.IN_PROGRESS)
        await memory_repository.create(task)

        done = await task_service.update_status(task.id, TaskStatus.DONE, TEST_USER_ID)

        assert done.status == TaskStatus.DONE
        assert done.completed_at == FIXED_NOW

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        task = make_task()
        await memory_repository.create(task)

        with pytest.raises(TaskValidationError):
            await task_service.update_status(task.id, "archived", TEST_USER_ID)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_complete_twice_keeps_first_completion(self, memory_repository: InMemoryTaskRepository) -> None:
        clock = MovingClock(FIXED_NOW)
        service = TaskService(memory_repository, clock=clock)
        task = make_task()
        await memory_repository.create(task)

        first = await service.complete_task(task.id, TEST_USER_ID, actual_time_hours=3)
        clock.advance(timedelta(hours=4))
        second = await service.complete_task(task.id, TEST_USER_ID, actual_time_hours=8)

        assert first.completed_at == FIXED_NOW
        assert second.completed_at == FIXED_NOW
        assert second.actual_time_hours == 3

    @pytest.mark.asyncio
    async def test_cancelled_task_cannot_be_completed(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        task = make_task(status=TaskStatus.CANCELLED)
        await memory_repository.create(task)

        with pytest.raises(TaskConflictError):
            await task_service.complete_task(task.id, TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_delete_rules(self, task_service: TaskService, memory_repository: InMemoryTaskRepository) -> None:
        done = make_task(status=TaskStatus.DONE)
        cancelled = make_task(status=TaskStatus.CANCELLED)
        await memory_repository.create(done)
        await memory_repository.create(cancelled)

        with pytest.raises(TaskConflictError):
            await task_service.delete_task(done.id, TEST_USER_ID)

        await task_service.delete_task(cancelled.id, TEST_USER_ID)
        assert [t.id for t in await memory_repository.list_all(TEST_USER_ID)] == [done.id]

    @pytest.mark.asyncio
    async def test_other_users_task_is_not_found(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        task = make_task()
        await memory_repository.create(task)

        with pytest.raises(TaskNotFoundError):
            await task_service.get_task(task.id, OTHER_USER_ID)
        with pytest.raises(TaskNotFoundError):
            await task_service.update_status(task.id, TaskStatus.DONE, OTHER_USER_ID)
        with pytest.raises(TaskNotFoundError):
            await task_service.delete_task(task.id, OTHER_USER_ID)

        assert await memory_repository.get(task.id, TEST_USER_ID) == task


class TestListings:
    """検索と簡易一覧"""

    @pytest.mark.asyncio
    async def test_search_requires_query(self, task_service: TaskService) -> None:
        with pytest.raises(TaskValidationError):
            await task_service.search_tasks(TEST_USER_ID, "  ")

    @pytest.mark.asyncio
    async def test_search_orders_by_newest(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        older = make_task(title="Report A", created_at=FIXED_NOW - timedelta(days=2))
        newer = make_task(title="report B", created_at=FIXED_NOW - timedelta(days=1))
        unrelated = make_task(title="Quiz")
        for task in (older, newer, unrelated):
            await memory_repository.create(task)

        page = await task_service.search_tasks(TEST_USER_ID, "REPORT")

        assert page.ids == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_overdue_completed_and_groupings(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        late = make_task(due_date=FIXED_NOW - timedelta(days=1), subject_id="phys-201", period_id="2025-fall")
        done = make_task(due_date=FIXED_NOW - timedelta(days=3), status=TaskStatus.DONE)
        future = make_task(due_date=FIXED_NOW + timedelta(days=3))
        for task in (future, done, late):
            await memory_repository.create(task)

        assert (await task_service.get_overdue(TEST_USER_ID)).ids == [late.id]
        assert (await task_service.get_completed(TEST_USER_ID)).ids == [done.id]
        assert (await task_service.get_by_subject(TEST_USER_ID, "math-101")).ids == [done.id, future.id]
        assert (await task_service.get_by_period(TEST_USER_ID, "2025-fall")).ids == [late.id]

    @pytest.mark.asyncio
    async def test_due_today_uses_timezone(
        self, task_service: TaskService, memory_repository: InMemoryTaskRepository
    ) -> None:
        # 東京の6月10日は 6/9 15:00 UTC から 6/10 15:00 UTC まで
        early = make_task(due_date=FIXED_NOW - timedelta(hours=20))
        late = make_task(due_date=FIXED_NOW + timedelta(hours=5))
        for task in (early, late):
            await memory_repository.create(task)

        assert (await task_service.get_due_today(TEST_USER_ID, "Asia/Tokyo")).ids == [early.id]
        assert (await task_service.get_due_today(TEST_USER_ID, "UTC")).ids == [late.id]

        with pytest.raises(InvalidTimezoneError):
            await task_service.get_due_today(TEST_USER_ID, "Mars/Olympus")

    @pytest.mark.asyncio
    async def test_dashboard(self, task_service: TaskService, memory_repository: InMemoryTaskRepository) -> None:
        await memory_repository.create(make_task(due_date=FIXED_NOW + timedelta(hours=2)))
        await memory_repository.create(make_task(user_id=OTHER_USER_ID))

        dashboard = await task_service.get_dashboard(TEST_USER_ID)

        assert dashboard.timezone == "UTC"
        assert dashboard.todo_count == 1
        assert len(dashboard.today_tasks) == 1

        with pytest.raises(InvalidTimezoneError):
            await task_service.get_dashboard(TEST_USER_ID, "Mars/Olympus")


class TestRequestContext:
    """キャンセル・期限超過"""

    @pytest.mark.asyncio
    async def test_cancelled_context_has_no_side_effects(
        self,
        task_service: TaskService,
        memory_repository: InMemoryTaskRepository,
        reminder_sink: FakeReminderSink,
        test_user: UserContext,
    ) -> None:
        ctx = RequestContext()
        ctx.cancel()

        with pytest.raises(OperationCancelledError):
            await task_service.create_task(TaskCreate(**task_input()), test_user, ctx)

        assert len(memory_repository) == 0
        assert reminder_sink.messages == []

    @pytest.mark.asyncio
    async def test_expired_deadline(self, memory_repository: InMemoryTaskRepository) -> None:
        slow = SlowTaskRepository(memory_repository, delay=0)
        service = TaskService(slow)
        ctx = RequestContext(deadline=time.monotonic() - 1)

        with pytest.raises(DeadlineExceededError):
            await service.get_task("t1", TEST_USER_ID, ctx)

        assert slow.calls == 0

    @pytest.mark.asyncio
    async def test_slow_store_times_out(self, memory_repository: InMemoryTaskRepository) -> None:
        service = TaskService(SlowTaskRepository(memory_repository, delay=5.0), store_timeout=0.05)

        with pytest.raises(DeadlineExceededError):
            await service.get_dashboard(TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_context_deadline_shortens_timeout(self, memory_repository: InMemoryTaskRepository) -> None:
        service = TaskService(SlowTaskRepository(memory_repository, delay=5.0), store_timeout=30.0)
        ctx = RequestContext.with_timeout(0.05)

        with pytest.raises(DeadlineExceededError):
            await service.get_task("t1", TEST_USER_ID, ctx)
