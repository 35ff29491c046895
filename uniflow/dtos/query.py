"""クエリDTO

タスク一覧のフィルタ条件、ページ情報、クエリ結果
"""

from dataclasses import dataclass, replace
from datetime import datetime

from uniflow.core.constants import APIConstants, SortField, SortOrder, TaskPriority, TaskStatus, TaskType
from uniflow.dtos.task import TaskDTO
from uniflow.utils.pagination import calculate_total_pages, normalize_pagination


@dataclass(frozen=True)
class TaskFilterSpec:
    """タスク一覧のフィルタ・ソート・ページ指定

    空のコレクションは「制限なし」、Noneの真偽値フィルタは「指定なし」を表す
    """

    user_id: str
    statuses: tuple[TaskStatus, ...] = ()
    priorities: tuple[TaskPriority, ...] = ()
    types: tuple[TaskType, ...] = ()
    subject_id: str | None = None
    period_id: str | None = None
    due_date_from: datetime | None = None
    due_date_to: datetime | None = None
    is_overdue: bool | None = None
    is_due_soon: bool | None = None
    query: str | None = None
    sort_by: SortField | None = None
    sort_order: SortOrder = SortOrder.ASC
    page: int = APIConstants.DEFAULT_PAGE
    limit: int = APIConstants.DEFAULT_PAGE_SIZE
    timezone: str = APIConstants.DEFAULT_TIMEZONE

    def normalized(self) -> "TaskFilterSpec":
        """既定値と上下限を適用したフィルタを返す"""
        params = normalize_pagination(self.page, self.limit)
        query = self.query.strip() if self.query else None
        return replace(
            self,
            page=params.page,
            limit=params.limit,
            sort_by=self.sort_field,
            sort_order=self.sort_order or APIConstants.DEFAULT_SORT_ORDER,
            query=query or None,
            timezone=self.timezone or APIConstants.DEFAULT_TIMEZONE,
        )

    @property
    def sort_field(self) -> SortField:
        """ソートフィールド（未指定時は既定値）"""
        return self.sort_by or APIConstants.DEFAULT_SORT_FIELD

    @property
    def uses_relative_now(self) -> bool:
        """現在時刻に依存するフィルタを含むか"""
        return self.is_overdue is not None or self.is_due_soon is not None


@dataclass(frozen=True)
class PageInfo:
    """ページ情報（ページング前の総件数から算出）"""

    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageInfo":
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=calculate_total_pages(total, limit),
            has_next=page * limit < total,
            has_prev=page > 1,
        )


@dataclass(frozen=True)
class TaskPage:
    """クエリ結果（ページ分のタスクとページ情報）"""

    tasks: tuple[TaskDTO, ...]
    page_info: PageInfo

    @property
    def ids(self) -> list[str]:
        return [task.id for task in self.tasks]
