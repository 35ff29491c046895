"""タスククエリエンジン

フィルタ条件・ソート・ページネーションの定義を一箇所にまとめ、
メモリ上の走査（matches）とSQL条件式（to_clause）の両方を同じ述語から生成する
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import pytz
from pytz.tzinfo import BaseTzInfo
from sqlalchemy import ColumnElement, and_, case, false, func, or_, select
from sqlalchemy.sql import Select

from uniflow.core.constants import (
    PRIORITY_RANK,
    STATUS_RANK,
    SortField,
    SortOrder,
    TaskConstants,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from uniflow.core.exceptions import InvalidTimezoneError
from uniflow.dtos.query import PageInfo, TaskFilterSpec, TaskPage
from uniflow.dtos.task import TaskDTO
from uniflow.models.task import Task
from uniflow.utils.datetime_utils import get_timezone
from uniflow.utils.pagination import calculate_window

logger = logging.getLogger(__name__)

DUE_SOON_WINDOW = timedelta(hours=TaskConstants.DUE_SOON_WINDOW_HOURS)

PRIORITY_RANK_BY_VALUE = {priority.value: rank for priority, rank in PRIORITY_RANK.items()}
STATUS_RANK_BY_VALUE = {status.value: rank for status, rank in STATUS_RANK.items()}


# =============================================================================
# 述語
# =============================================================================


class TaskPredicate(ABC):
    """タスク述語

    matchesとto_clauseは同じ集合を表すこと
    """

    @abstractmethod
    def matches(self, task: TaskDTO) -> bool:
        pass

    @abstractmethod
    def to_clause(self) -> ColumnElement[bool]:
        pass


@dataclass(frozen=True)
class OwnedBy(TaskPredicate):
    user_id: str

    def matches(self, task: TaskDTO) -> bool:
        return task.user_id == self.user_id

    def to_clause(self) -> ColumnElement[bool]:
        return Task.user_id == self.user_id


@dataclass(frozen=True)
class StatusIn(TaskPredicate):
    statuses: tuple[TaskStatus, ...]

    def matches(self, task: TaskDTO) -> bool:
        return task.status in self.statuses

    def to_clause(self) -> ColumnElement[bool]:
        return Task.status.in_([s.value for s in self.statuses])


@dataclass(frozen=True)
class PriorityIn(TaskPredicate):
    priorities: tuple[TaskPriority, ...]

    def matches(self, task: TaskDTO) -> bool:
        return task.priority in self.priorities

    def to_clause(self) -> ColumnElement[bool]:
        return Task.priority.in_([p.value for p in self.priorities])


@dataclass(frozen=True)
class TypeIn(TaskPredicate):
    types: tuple[TaskType, ...]

    def matches(self, task: TaskDTO) -> bool:
        return task.type in self.types

    def to_clause(self) -> ColumnElement[bool]:
        return Task.type.in_([t.value for t in self.types])


@dataclass(frozen=True)
class SubjectIs(TaskPredicate):
    subject_id: str

    def matches(self, task: TaskDTO) -> bool:
        return task.subject_id == self.subject_id

    def to_clause(self) -> ColumnElement[bool]:
        return Task.subject_id == self.subject_id


@dataclass(frozen=True)
class PeriodIs(TaskPredicate):
    period_id: str

    def matches(self, task: TaskDTO) -> bool:
        return task.period_id == self.period_id

    def to_clause(self) -> ColumnElement[bool]:
        return Task.period_id == self.period_id


@dataclass(frozen=True)
class DueBetween(TaskPredicate):
    """期限日時の範囲（両端を含む、片側のみも可）"""

    start: datetime | None
    end: datetime | None

    def matches(self, task: TaskDTO) -> bool:
        if self.start is not None and task.due_date < self.start:
            return False
        if self.end is not None and task.due_date > self.end:
            return False
        return True

    def to_clause(self) -> ColumnElement[bool]:
        clauses = []
        if self.start is not None:
            clauses.append(Task.due_date >= self.start)
        if self.end is not None:
            clauses.append(Task.due_date <= self.end)
        return and_(*clauses)


@dataclass(frozen=True)
class Overdue(TaskPredicate):
    """期限切れ（due < now かつ未完了）、expected=Falseでその否定"""

    now: datetime
    expected: bool = True

    def matches(self, task: TaskDTO) -> bool:
        overdue = task.due_date < self.now and task.status != TaskStatus.DONE
        return overdue == self.expected

    def to_clause(self) -> ColumnElement[bool]:
        if self.expected:
            return and_(Task.due_date < self.now, Task.status != TaskStatus.DONE.value)
        return or_(Task.due_date >= self.now, Task.status == TaskStatus.DONE.value)


@dataclass(frozen=True)
class DueSoon(TaskPredicate):
    """24時間以内に期限（now <= due <= now + 24h）、expected=Falseでその否定"""

    now: datetime
    expected: bool = True

    @property
    def window_end(self) -> datetime:
        return self.now + DUE_SOON_WINDOW

    def matches(self, task: TaskDTO) -> bool:
        soon = self.now <= task.due_date <= self.window_end
        return soon == self.expected

    def to_clause(self) -> ColumnElement[bool]:
        if self.expected:
            return and_(Task.due_date >= self.now, Task.due_date <= self.window_end)
        return or_(Task.due_date < self.now, Task.due_date > self.window_end)


@dataclass(frozen=True)
class TextContains(TaskPredicate):
    """タイトルまたは説明に部分一致（大文字小文字を区別しない、ワイルドカードなし）"""

    term: str

    def matches(self, task: TaskDTO) -> bool:
        needle = self.term.lower()
        return needle in task.title.lower() or needle in (task.description or "").lower()

    def to_clause(self) -> ColumnElement[bool]:
        needle = self.term.lower()
        return or_(
            func.lower(Task.title).contains(needle, autoescape=True),
            func.lower(func.coalesce(Task.description, "")).contains(needle, autoescape=True),
        )


@dataclass(frozen=True)
class MatchNothing(TaskPredicate):
    def matches(self, task: TaskDTO) -> bool:  # noqa: ARG002
        return False

    def to_clause(self) -> ColumnElement[bool]:
        return false()


# =============================================================================
# フィルタ → 述語
# =============================================================================


def resolve_query_timezone(spec: TaskFilterSpec) -> BaseTzInfo:
    """フィルタのタイムゾーンを解決

    未知のタイムゾーンは設定エラーとして扱う
    ただし現在時刻基準のフィルタ（期限切れ・期限間近）を含む場合はUTCで続行する

    Raises:
        InvalidTimezoneError: 未知のタイムゾーンで、UTCへのフォールバック対象でない場合
    """
    try:
        return get_timezone(spec.timezone)
    except InvalidTimezoneError:
        if spec.uses_relative_now:
            logger.warning(f"未知のタイムゾーン '{spec.timezone}' のためUTCで評価します (user_id={spec.user_id})")
            return pytz.utc
        raise


def build_predicates(spec: TaskFilterSpec, now: datetime) -> list[TaskPredicate]:
    """フィルタ条件を述語のリスト（AND結合）に変換"""
    predicates: list[TaskPredicate] = [OwnedBy(spec.user_id)]

    if spec.statuses:
        predicates.append(StatusIn(tuple(spec.statuses)))
    if spec.priorities:
        predicates.append(PriorityIn(tuple(spec.priorities)))
    if spec.types:
        predicates.append(TypeIn(tuple(spec.types)))
    if spec.subject_id:
        predicates.append(SubjectIs(spec.subject_id))
    if spec.period_id:
        predicates.append(PeriodIs(spec.period_id))
    if spec.due_date_from is not None or spec.due_date_to is not None:
        if spec.due_date_from and spec.due_date_to and spec.due_date_from > spec.due_date_to:
            predicates.append(MatchNothing())
        else:
            predicates.append(DueBetween(spec.due_date_from, spec.due_date_to))
    if spec.is_overdue is not None:
        predicates.append(Overdue(now, spec.is_overdue))
    if spec.is_due_soon is not None:
        predicates.append(DueSoon(now, spec.is_due_soon))
    if spec.query:
        predicates.append(TextContains(spec.query))

    return predicates


def build_where_clause(predicates: Iterable[TaskPredicate]) -> ColumnElement[bool]:
    return and_(*(predicate.to_clause() for predicate in predicates))


# =============================================================================
# ソート
# =============================================================================


def sort_value(task: TaskDTO, field: SortField) -> Any:
    """ソートキーの値（優先度・ステータスは列挙の宣言順位）"""
    if field == SortField.PRIORITY:
        return PRIORITY_RANK[task.priority]
    if field == SortField.STATUS:
        return STATUS_RANK[task.status]
    if field == SortField.CREATED_AT:
        return task.created_at
    return task.due_date


def sort_tasks(tasks: Iterable[TaskDTO], field: SortField, order: SortOrder) -> list[TaskDTO]:
    """主キーでソートし、同順位はID昇順（降順指定でもIDは昇順）"""
    ordered = sorted(tasks, key=lambda task: task.id)
    ordered.sort(key=lambda task: sort_value(task, field), reverse=order == SortOrder.DESC)
    return ordered


def sort_column(field: SortField) -> ColumnElement[Any]:
    """SQL側のソート式"""
    if field == SortField.PRIORITY:
        return case(PRIORITY_RANK_BY_VALUE, value=Task.priority, else_=len(PRIORITY_RANK))
    if field == SortField.STATUS:
        return case(STATUS_RANK_BY_VALUE, value=Task.status, else_=len(STATUS_RANK))
    if field == SortField.CREATED_AT:
        return Task.created_at
    return Task.due_date


def apply_sort(stmt: Select[tuple[Task]], field: SortField, order: SortOrder) -> Select[tuple[Task]]:
    key = sort_column(field)
    primary = key.desc() if order == SortOrder.DESC else key.asc()
    return stmt.order_by(primary, Task.id.asc())


# =============================================================================
# 実行
# =============================================================================


def prepare(spec: TaskFilterSpec) -> TaskFilterSpec:
    """既定値を適用し、タイムゾーンを検証したフィルタを返す"""
    normalized = spec.normalized()
    resolve_query_timezone(normalized)
    return normalized


def run_in_memory(tasks: Sequence[TaskDTO], spec: TaskFilterSpec, now: datetime) -> TaskPage:
    """メモリ上のタスク集合にクエリを適用

    絞り込み、総件数の算出、ソート、ページ切り出しの順に評価する
    """
    spec = prepare(spec)

    predicates = build_predicates(spec, now)
    matched = [task for task in tasks if all(predicate.matches(task) for predicate in predicates)]
    total = len(matched)

    ordered = sort_tasks(matched, spec.sort_field, spec.sort_order)
    window = calculate_window(spec.page, spec.limit, total)

    return TaskPage(
        tasks=tuple(ordered[window.start : window.end]),
        page_info=PageInfo.build(total, spec.page, spec.limit),
    )


def build_select(spec: TaskFilterSpec, now: datetime) -> tuple[Select[tuple[Task]], Select[tuple[int]]]:
    """SQLのページ取得文と件数取得文を生成（specは正規化済みであること）"""

    where = build_where_clause(build_predicates(spec, now))
    base = select(Task).where(where)

    count_stmt = select(func.count()).select_from(base.subquery())

    page_stmt = apply_sort(base, spec.sort_field, spec.sort_order)
    page_stmt = page_stmt.offset((spec.page - 1) * spec.limit).limit(spec.limit)

    return page_stmt, count_stmt
