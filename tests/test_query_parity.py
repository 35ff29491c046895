"""タスククエリエンジンのテスト

インメモリ・SQLの両バックエンドに同じデータを投入し、
同じフィルタで同じ順序・同じページ情報が返ることを確認する
"""

from dataclasses import replace
from datetime import timedelta
from typing import Any

import pytest

from tests.fixtures.entities import FIXED_NOW, OTHER_USER_ID, TEST_USER_ID, make_task
from uniflow.core.constants import SortField, SortOrder, TaskPriority, TaskStatus, TaskType
from uniflow.core.exceptions import InvalidTimezoneError, TaskConflictError, TaskNotFoundError, TaskValidationError
from uniflow.dtos.query import TaskFilterSpec
from uniflow.dtos.task import TaskDTO
from uniflow.repositories.base import TaskRepositoryInterface
from uniflow.repositories.memory import InMemoryTaskRepository
from uniflow.repositories.sql import SQLTaskRepository
from uniflow.schemas.task import TaskQueryParams

CREATED_BASE = FIXED_NOW - timedelta(days=30)


def _created(minutes: int) -> dict[str, Any]:
    stamp = CREATED_BASE + timedelta(minutes=minutes)
    return {"created_at": stamp, "updated_at": stamp}


def build_dataset() -> list[TaskDTO]:
    """期限順: t04, t02, t01 = t07, t05, t03, t06"""
    return [
        make_task(
            id="t01",
            title="線形代数 レポート",
            description="Chapter 3 exercises",
            subject_id="math-101",
            due_date=FIXED_NOW + timedelta(hours=2),
            priority=TaskPriority.HIGH,
            **_created(1),
        ),
        make_task(
            id="t02",
            title="Physics Lab Report",
            subject_id="phys-201",
            due_date=FIXED_NOW - timedelta(hours=1),
            priority=TaskPriority.MEDIUM,
            type=TaskType.LAB,
            **_created(2),
        ),
        make_task(
            id="t03",
            title="Essay draft",
            description="history LAB notes",
            subject_id="hist-110",
            period_id="2025-fall",
            due_date=FIXED_NOW + timedelta(days=3),
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.LOW,
            type=TaskType.ESSAY,
            **_created(3),
        ),
        make_task(
            id="t04",
            title="Midterm exam",
            subject_id="math-101",
            due_date=FIXED_NOW - timedelta(days=2),
            status=TaskStatus.DONE,
            priority=TaskPriority.URGENT,
            type=TaskType.EXAM,
            **_created(4),
        ),
        make_task(
            id="t05",
            title="Quiz 4",
            subject_id="math-101",
            due_date=FIXED_NOW + timedelta(hours=20),
            status=TaskStatus.IN_REVIEW,
            priority=TaskPriority.MEDIUM,
            type=TaskType.QUIZ,
            **_created(3),
        ),
        make_task(
            id="t06",
            title="Group presentation",
            subject_id="hist-110",
            due_date=FIXED_NOW + timedelta(days=10),
            status=TaskStatus.CANCELLED,
            priority=TaskPriority.HIGH,
            type=TaskType.PRESENTATION,
            **_created(6),
        ),
        make_task(
            id="t07",
            title="Reading 100% done_check",
            subject_id="phys-201",
            due_date=FIXED_NOW + timedelta(hours=2),
            priority=TaskPriority.LOW,
            type=TaskType.READING,
            **_created(7),
        ),
        make_task(
            id="o01",
            user_id=OTHER_USER_ID,
            title="Physics Lab Report",
            subject_id="phys-201",
            due_date=FIXED_NOW - timedelta(hours=1),
            **_created(1),
        ),
    ]


async def seed(repository: TaskRepositoryInterface) -> list[TaskDTO]:
    tasks = build_dataset()
    for task in tasks:
        await repository.create(task)
    return tasks


def spec(**kwargs: Any) -> TaskFilterSpec:
    kwargs.setdefault("user_id", TEST_USER_ID)
    return TaskFilterSpec(**kwargs)


SCENARIOS: list[tuple[str, TaskFilterSpec, list[str]]] = [
    ("default", spec(), ["t04", "t02", "t01", "t07", "t05", "t03", "t06"]),
    ("status_todo", spec(statuses=(TaskStatus.TODO,)), ["t02", "t01", "t07"]),
    (
        "status_multi",
        spec(statuses=(TaskStatus.TODO, TaskStatus.IN_PROGRESS)),
        ["t02", "t01", "t07", "t03"],
    ),
    ("priority_high", spec(priorities=(TaskPriority.HIGH,)), ["t01", "t06"]),
    ("type_multi", spec(types=(TaskType.LAB, TaskType.QUIZ)), ["t02", "t05"]),
    ("subject", spec(subject_id="math-101"), ["t04", "t01", "t05"]),
    ("period", spec(period_id="2025-fall"), ["t03"]),
    ("overdue", spec(is_overdue=True), ["t02"]),
    ("not_overdue", spec(is_overdue=False), ["t04", "t01", "t07", "t05", "t03", "t06"]),
    ("due_soon", spec(is_due_soon=True), ["t01", "t07", "t05"]),
    ("not_due_soon", spec(is_due_soon=False), ["t04", "t02", "t03", "t06"]),
    ("search_case_insensitive", spec(query="lab"), ["t02", "t03"]),
    ("search_percent_is_literal", spec(query="100%"), ["t07"]),
    ("search_underscore_is_literal", spec(query="_"), ["t07"]),
    ("search_non_ascii", spec(query="線形代数"), ["t01"]),
    ("search_blank_is_ignored", spec(query="   "), ["t04", "t02", "t01", "t07", "t05", "t03", "t06"]),
    (
        "due_range",
        spec(due_date_from=FIXED_NOW - timedelta(days=1), due_date_to=FIXED_NOW + timedelta(days=1)),
        ["t02", "t01", "t07", "t05"],
    ),
    (
        "due_range_inclusive_start",
        spec(due_date_from=FIXED_NOW + timedelta(hours=2)),
        ["t01", "t07", "t05", "t03", "t06"],
    ),
    (
        "due_range_inverted",
        spec(due_date_from=FIXED_NOW + timedelta(days=1), due_date_to=FIXED_NOW - timedelta(days=1)),
        [],
    ),
    (
        "combined",
        spec(statuses=(TaskStatus.TODO,), subject_id="phys-201", query="report"),
        ["t02"],
    ),
    (
        "sort_priority_desc",
        spec(sort_by=SortField.PRIORITY, sort_order=SortOrder.DESC),
        ["t04", "t01", "t06", "t02", "t05", "t03", "t07"],
    ),
    (
        "sort_priority_asc",
        spec(sort_by=SortField.PRIORITY, sort_order=SortOrder.ASC),
        ["t03", "t07", "t02", "t05", "t01", "t06", "t04"],
    ),
    (
        "sort_status",
        spec(sort_by=SortField.STATUS),
        ["t01", "t02", "t07", "t03", "t05", "t04", "t06"],
    ),
    (
        "sort_created_desc",
        spec(sort_by=SortField.CREATED_AT, sort_order=SortOrder.DESC),
        ["t07", "t06", "t04", "t03", "t05", "t02", "t01"],
    ),
    ("page_2", spec(page=2, limit=3), ["t07", "t05", "t03"]),
    ("page_out_of_range", spec(page=5, limit=3), []),
    ("other_user", spec(user_id=OTHER_USER_ID), ["o01"]),
    ("unknown_user", spec(user_id="nobody"), []),
]


class TestQueryScenarios:
    """各バックエンドで期待どおりの結果になるか"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("name", "filter_spec", "expected"), SCENARIOS, ids=[s[0] for s in SCENARIOS])
    async def test_scenario(
        self, repository: TaskRepositoryInterface, name: str, filter_spec: TaskFilterSpec, expected: list[str]
    ) -> None:
        await seed(repository)

        page = await repository.find(filter_spec, now=FIXED_NOW)

        assert page.ids == expected, name

    @pytest.mark.asyncio
    async def test_total_counts_matches_before_paging(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        page = await repository.find(spec(page=3, limit=3), now=FIXED_NOW)

        assert page.ids == ["t06"]
        assert page.page_info.total == 7
        assert page.page_info.total_pages == 3
        assert page.page_info.has_next is False
        assert page.page_info.has_prev is True

    @pytest.mark.asyncio
    async def test_out_of_range_page_reports_total(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        page = await repository.find(spec(page=10, limit=5), now=FIXED_NOW)

        assert page.tasks == ()
        assert page.page_info.total == 7
        assert page.page_info.has_next is False

    @pytest.mark.asyncio
    async def test_limit_is_normalized(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        page = await repository.find(spec(page=0, limit=0), now=FIXED_NOW)

        assert page.page_info.page == 1
        assert page.page_info.limit == 20
        assert len(page.tasks) == 7

    @pytest.mark.asyncio
    async def test_unknown_timezone_is_rejected(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        with pytest.raises(InvalidTimezoneError):
            await repository.find(spec(timezone="Mars/Olympus"), now=FIXED_NOW)

    @pytest.mark.asyncio
    async def test_unknown_timezone_falls_back_for_relative_filters(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        page = await repository.find(spec(timezone="Mars/Olympus", is_overdue=True), now=FIXED_NOW)

        assert page.ids == ["t02"]


class TestBackendParity:
    """同じ入力で両バックエンドの結果が一致するか"""

    @pytest.mark.asyncio
    async def test_all_scenarios_match(
        self, memory_repository: InMemoryTaskRepository, sql_repository: SQLTaskRepository
    ) -> None:
        await seed(memory_repository)
        await seed(sql_repository)

        for name, filter_spec, _ in SCENARIOS:
            for limit in (2, 5):
                paged = replace(filter_spec, limit=limit, page=2)
                memory_page = await memory_repository.find(paged, now=FIXED_NOW)
                sql_page = await sql_repository.find(paged, now=FIXED_NOW)

                assert memory_page.ids == sql_page.ids, name
                assert memory_page.page_info == sql_page.page_info, name

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["ärger", "ÜBUNG", "Ελληνικά", "straße"])
    async def test_non_ascii_search_is_case_insensitive(
        self, memory_repository: InMemoryTaskRepository, sql_repository: SQLTaskRepository, query: str
    ) -> None:
        accented = make_task(title="Ärger Übung", description="ΕΛΛΗΝΙΚΆ und Straße")
        plain = make_task(title="Linear algebra")
        for repository in (memory_repository, sql_repository):
            await repository.create(accented)
            await repository.create(plain)

        memory_page = await memory_repository.find(spec(query=query), now=FIXED_NOW)
        sql_page = await sql_repository.find(spec(query=query), now=FIXED_NOW)

        assert memory_page.ids == [accented.id]
        assert sql_page.ids == memory_page.ids

    @pytest.mark.asyncio
    async def test_round_trip_preserves_task(self, sql_repository: SQLTaskRepository) -> None:
        original = make_task(
            tags=("exam", "week1"),
            group_members=("alice", "bob"),
            attachments=("https://example.com/a.pdf",),
            is_group_work=True,
            actual_time_hours=4,
        )
        await sql_repository.create(original)

        stored = await sql_repository.get(original.id, original.user_id)

        assert stored == original
        assert stored.due_date.utcoffset() == timedelta(0)


class TestRepositoryOwnership:
    """所有者スコープと競合のテスト"""

    @pytest.mark.asyncio
    async def test_owner_mismatch_looks_like_not_found(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        with pytest.raises(TaskNotFoundError):
            await repository.get("t01", OTHER_USER_ID)
        with pytest.raises(TaskNotFoundError):
            await repository.update(replace(make_task(id="t01"), user_id=OTHER_USER_ID))
        with pytest.raises(TaskNotFoundError):
            await repository.delete("t01", OTHER_USER_ID)

        # 所有者のタスクは変わらない
        assert (await repository.get("t01", TEST_USER_ID)).title == "線形代数 レポート"

    @pytest.mark.asyncio
    async def test_missing_task(self, repository: TaskRepositoryInterface) -> None:
        with pytest.raises(TaskNotFoundError):
            await repository.get("missing", TEST_USER_ID)
        with pytest.raises(TaskNotFoundError):
            await repository.delete("missing", TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_duplicate_id_conflicts(self, repository: TaskRepositoryInterface) -> None:
        task = make_task()
        await repository.create(task)

        with pytest.raises(TaskConflictError):
            await repository.create(task)

    @pytest.mark.asyncio
    async def test_update_and_delete(self, repository: TaskRepositoryInterface) -> None:
        task = make_task()
        await repository.create(task)

        updated = replace(task, title="更新後", status=TaskStatus.IN_PROGRESS)
        await repository.update(updated)
        assert (await repository.get(task.id, task.user_id)).title == "更新後"

        await repository.delete(task.id, task.user_id)
        assert await repository.list_all(task.user_id) == []


class TestQueryParams:
    """クエリパラメータからフィルタへの変換"""

    def test_comma_separated_enums(self) -> None:
        params = TaskQueryParams(status="todo, in-progress", priority="high", type="lab,quiz")
        result = params.to_filter_spec(TEST_USER_ID)

        assert result.statuses == (TaskStatus.TODO, TaskStatus.IN_PROGRESS)
        assert result.priorities == (TaskPriority.HIGH,)
        assert result.types == (TaskType.LAB, TaskType.QUIZ)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": "todo,archived"},
            {"priority": "critical"},
            {"type": "homework"},
            {"sort_by": "title"},
            {"sort_order": "sideways"},
            {"due_date_from": "2025/06/10"},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict[str, str]) -> None:
        with pytest.raises(TaskValidationError):
            TaskQueryParams(**overrides).to_filter_spec(TEST_USER_ID)

    def test_dates_use_local_calendar_day(self) -> None:
        params = TaskQueryParams(due_date_from="2025-06-10", due_date_to="2025-06-10", tz="Pacific/Auckland")
        result = params.to_filter_spec(TEST_USER_ID)

        # NZST（UTC+12）の6月10日
        assert result.due_date_from == FIXED_NOW.replace(day=9, hour=12)
        assert result.due_date_to == FIXED_NOW.replace(hour=11, minute=59, second=59, microsecond=999999)

    def test_dates_with_unknown_timezone_rejected(self) -> None:
        with pytest.raises(InvalidTimezoneError):
            TaskQueryParams(due_date_from="2025-06-10", tz="Mars/Olympus").to_filter_spec(TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_local_day_filter(self, repository: TaskRepositoryInterface) -> None:
        await seed(repository)

        utc_spec = TaskQueryParams(due_date_from="2025-06-10", due_date_to="2025-06-10").to_filter_spec(TEST_USER_ID)
        nz_spec = TaskQueryParams(
            due_date_from="2025-06-10", due_date_to="2025-06-10", tz="Pacific/Auckland"
        ).to_filter_spec(TEST_USER_ID)

        assert (await repository.find(utc_spec, now=FIXED_NOW)).ids == ["t02", "t01", "t07"]
        assert (await repository.find(nz_spec, now=FIXED_NOW)).ids == ["t02"]
