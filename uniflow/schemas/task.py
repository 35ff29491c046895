"""タスク関連のPydanticスキーマ

タスクの作成、更新、応答、一覧クエリのリクエスト・レスポンススキーマを提供
JSONのキーはキャメルケース
"""

from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from uniflow.core.constants import (
    APIConstants,
    ErrorMessages,
    SortField,
    SortOrder,
    TaskConstants,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from uniflow.core.exceptions import TaskValidationError
from uniflow.dtos.query import PageInfo, TaskFilterSpec
from uniflow.dtos.task import TaskDTO
from uniflow.repositories.task_query import resolve_query_timezone
from uniflow.utils.datetime_utils import ensure_utc, local_day_bounds, parse_query_date

E = TypeVar("E", bound=Enum)


class CamelModel(BaseModel):
    """キャメルケースで入出力するベーススキーマ"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# リクエスト
# =============================================================================


class TaskWrite(CamelModel):
    """タスク作成・更新の共通フィールド"""

    title: str = Field(
        ...,
        min_length=TaskConstants.TITLE_MIN_LENGTH,
        max_length=TaskConstants.TITLE_MAX_LENGTH,
        description="タスクタイトル",
        examples=["線形代数 レポート課題3"],
    )

    description: str = Field(
        default="",
        max_length=TaskConstants.DESCRIPTION_MAX_LENGTH,
        description="タスクの詳細説明",
    )

    subject_id: str = Field(..., min_length=1, description="科目ID", examples=["math-101"])

    period_id: str = Field(default="", description="学期ID", examples=["2025-spring"])

    due_date: datetime = Field(..., description="期限日時", examples=["2025-06-10T15:00:00Z"])

    priority: TaskPriority = Field(..., description="優先度", examples=[TaskPriority.HIGH])

    type: TaskType = Field(..., description="種別", examples=[TaskType.ASSIGNMENT])

    estimated_time_hours: int = Field(
        default=0,
        ge=TaskConstants.TIME_HOURS_MIN,
        le=TaskConstants.TIME_HOURS_MAX,
        description="見積時間（時間）",
    )

    tags: list[str] = Field(default_factory=list, description="タグ")

    is_group_work: bool = Field(default=False, description="グループ課題フラグ")

    group_members: list[str] = Field(default_factory=list, description="グループメンバー")

    attachments: list[str] = Field(default_factory=list, description="添付ファイル")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()

        if len(v) < TaskConstants.TITLE_MIN_LENGTH:
            raise ValueError(ErrorMessages.TASK_TITLE_REQUIRED)

        return v

    @field_validator("subject_id")
    @classmethod
    def validate_subject_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.TASK_SUBJECT_REQUIRED)
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str:
        return v.strip() if v else ""

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: datetime) -> datetime:
        # タイムゾーン指定がない場合はUTCとみなす
        return ensure_utc(v)


class TaskCreate(TaskWrite):
    """タスク作成リクエストスキーマ"""

    pass


class TaskUpdate(TaskWrite):
    """タスク更新リクエストスキーマ（全項目の置き換え）"""

    pass


class TaskStatusUpdate(CamelModel):
    """タスクステータス変更専用スキーマ"""

    status: TaskStatus = Field(..., description="新しいタスクステータス")


class TaskComplete(CamelModel):
    """タスク完了リクエストスキーマ"""

    actual_time_hours: int | None = Field(
        None, ge=TaskConstants.TIME_HOURS_MIN, le=TaskConstants.TIME_HOURS_MAX, description="実績時間（時間）"
    )


class TaskQueryParams(CamelModel):
    """タスク一覧のクエリパラメータ

    ステータス・優先度・種別はカンマ区切り、日付はYYYY-MM-DD（tzの暦日として解釈）
    """

    status: str | None = None
    priority: str | None = None
    type: str | None = None
    subject_id: str | None = None
    period_id: str | None = None
    due_date_from: str | None = None
    due_date_to: str | None = None
    is_overdue: bool | None = None
    is_due_soon: bool | None = None
    search: str | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    page: int = APIConstants.DEFAULT_PAGE
    limit: int = APIConstants.DEFAULT_PAGE_SIZE
    tz: str = APIConstants.DEFAULT_TIMEZONE

    def to_filter_spec(self, user_id: str) -> TaskFilterSpec:
        """検証済みのフィルタ条件に変換

        Raises:
            TaskValidationError: 列挙値・日付・ソート指定が不正な場合
            InvalidTimezoneError: 日付範囲の解釈に未知のタイムゾーンが必要な場合
        """
        spec = TaskFilterSpec(
            user_id=user_id,
            statuses=_parse_enum_list(self.status, TaskStatus, ErrorMessages.TASK_INVALID_STATUS),
            priorities=_parse_enum_list(self.priority, TaskPriority, ErrorMessages.TASK_INVALID_PRIORITY),
            types=_parse_enum_list(self.type, TaskType, ErrorMessages.TASK_INVALID_TYPE),
            subject_id=self.subject_id or None,
            period_id=self.period_id or None,
            is_overdue=self.is_overdue,
            is_due_soon=self.is_due_soon,
            query=self.search,
            sort_by=_parse_sort_field(self.sort_by),
            sort_order=_parse_sort_order(self.sort_order),
            page=self.page,
            limit=self.limit,
            timezone=self.tz or APIConstants.DEFAULT_TIMEZONE,
        )

        if not self.due_date_from and not self.due_date_to:
            return spec

        tz = resolve_query_timezone(spec)
        due_date_from = None
        due_date_to = None
        if self.due_date_from:
            due_date_from, _ = local_day_bounds(_parse_date(self.due_date_from), tz)
        if self.due_date_to:
            _, due_date_to = local_day_bounds(_parse_date(self.due_date_to), tz)

        return replace(spec, due_date_from=due_date_from, due_date_to=due_date_to)


def _parse_enum_list(raw: str | None, enum_cls: type[E], message: str) -> tuple[E, ...]:
    if not raw:
        return ()

    values = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            values.append(enum_cls(item))
        except ValueError as e:
            raise TaskValidationError(f"{message}: {item}") from e
    return tuple(values)


def _parse_sort_field(raw: str | None) -> SortField | None:
    if not raw:
        return None
    try:
        return SortField(raw)
    except ValueError as e:
        raise TaskValidationError(f"{ErrorMessages.INVALID_SORT_FIELD}: {raw}") from e


def _parse_sort_order(raw: str | None) -> SortOrder:
    if not raw:
        return APIConstants.DEFAULT_SORT_ORDER
    try:
        return SortOrder(raw.lower())
    except ValueError as e:
        raise TaskValidationError(f"{ErrorMessages.INVALID_SORT_ORDER}: {raw}") from e


def _parse_date(raw: str) -> date:
    try:
        return parse_query_date(raw, APIConstants.DATE_QUERY_FORMAT)
    except ValueError as e:
        raise TaskValidationError(f"{ErrorMessages.INVALID_DATE_FORMAT}: {raw}") from e


# =============================================================================
# レスポンス
# =============================================================================


class TaskResponse(CamelModel):
    """タスク応答スキーマ"""

    id: str = Field(..., description="タスクID")
    title: str
    description: str
    subject_id: str
    period_id: str
    due_date: datetime
    status: TaskStatus
    priority: TaskPriority
    type: TaskType
    estimated_time_hours: int
    actual_time_hours: int | None = None
    tags: list[str]
    is_group_work: bool
    group_members: list[str]
    attachments: list[str]
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_dto(cls, task: TaskDTO) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            subject_id=task.subject_id,
            period_id=task.period_id,
            due_date=task.due_date,
            status=task.status,
            priority=task.priority,
            type=task.type,
            estimated_time_hours=task.estimated_time_hours,
            actual_time_hours=task.actual_time_hours,
            tags=list(task.tags),
            is_group_work=task.is_group_work,
            group_members=list(task.group_members),
            attachments=list(task.attachments),
            created_at=task.created_at,
            updated_at=task.updated_at,
            completed_at=task.completed_at,
        )


class PaginationResponse(CamelModel):
    """ページ情報"""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_page_info(cls, info: PageInfo) -> "PaginationResponse":
        return cls(
            page=info.page,
            limit=info.limit,
            total=info.total,
            total_pages=info.total_pages,
            has_next=info.has_next,
            has_prev=info.has_prev,
        )


class TaskListResponse(CamelModel):
    """タスク一覧応答スキーマ"""

    data: list[TaskResponse] = Field(..., description="タスクリスト")
    pagination: PaginationResponse


class TaskSearchResponse(CamelModel):
    """タスク検索応答スキーマ"""

    query: str
    results: list[TaskResponse]
    count: int
    total_found: int


class TaskOverdueResponse(CamelModel):
    tasks: list[TaskResponse]
    count: int
    timezone: str


class TaskTodayResponse(CamelModel):
    tasks: list[TaskResponse]
    count: int
    timezone: str


class TaskCompletedResponse(CamelModel):
    tasks: list[TaskResponse]
    count: int
    pagination: PaginationResponse


class TaskBySubjectResponse(CamelModel):
    subject_id: str
    tasks: list[TaskResponse]
    count: int


class TaskByPeriodResponse(CamelModel):
    period_id: str
    tasks: list[TaskResponse]
    count: int


class HealthResponse(CamelModel):
    """ヘルスチェック応答"""

    status: str
    timestamp: datetime
    version: str
    service: str
