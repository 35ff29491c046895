"""タスクAPIエンドポイント

タスクの作成、取得、更新、削除、一覧・検索のREST APIを提供
"""

# FastAPIの依存注入システム（Depends, Query）はLint警告の対象外とする
# ruff: noqa: B008

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status

from uniflow.core.config import settings
from uniflow.core.constants import APIConstants
from uniflow.core.context import RequestContext
from uniflow.core.dependencies import get_request_context, get_task_service
from uniflow.core.security import get_current_user
from uniflow.dtos.query import TaskPage
from uniflow.dtos.user import UserContext
from uniflow.schemas.task import (
    PaginationResponse,
    TaskByPeriodResponse,
    TaskBySubjectResponse,
    TaskComplete,
    TaskCompletedResponse,
    TaskCreate,
    TaskListResponse,
    TaskOverdueResponse,
    TaskQueryParams,
    TaskResponse,
    TaskSearchResponse,
    TaskStatusUpdate,
    TaskTodayResponse,
    TaskUpdate,
)
from uniflow.services.task import TaskService
from uniflow.utils.error_handler import handle_api_error

router = APIRouter()


def _responses(page: TaskPage) -> list[TaskResponse]:
    return [TaskResponse.from_dto(task) for task in page.tasks]


# =============================================================================
# 一覧・検索
# =============================================================================


@router.get("", response_model=TaskListResponse)
@handle_api_error("タスク一覧取得")
async def list_tasks(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    # フィルタリング（カンマ区切り）
    status: str | None = Query(default=None, description="ステータスフィルタ（例: todo,in-progress）"),
    priority: str | None = Query(default=None, description="優先度フィルタ"),
    task_type: str | None = Query(default=None, alias="type", description="種別フィルタ"),
    subject_id: str | None = Query(default=None, alias="subjectId", description="科目ID"),
    period_id: str | None = Query(default=None, alias="periodId", description="学期ID"),
    due_date_from: str | None = Query(default=None, alias="dueDateFrom", description="期限の開始日（YYYY-MM-DD）"),
    due_date_to: str | None = Query(default=None, alias="dueDateTo", description="期限の終了日（YYYY-MM-DD）"),
    is_overdue: bool | None = Query(default=None, alias="isOverdue", description="期限切れフィルタ"),
    is_due_soon: bool | None = Query(default=None, alias="isDueSoon", description="24時間以内に期限"),
    search: str | None = Query(default=None, max_length=APIConstants.SEARCH_MAX_LENGTH, description="検索キーワード"),
    # ソート
    sort_by: str | None = Query(default=None, alias="sortBy", description="ソートフィールド"),
    sort_order: str | None = Query(default=None, alias="sortOrder", description="ソート順序（asc/desc）"),
    # ページネーション
    page: int = Query(default=APIConstants.DEFAULT_PAGE, description="ページ番号"),
    limit: int = Query(default=APIConstants.DEFAULT_PAGE_SIZE, description="1ページあたりの件数"),
    tz: str = Query(default=APIConstants.DEFAULT_TIMEZONE, description="日付の解釈に使うタイムゾーン"),
) -> TaskListResponse:
    """タスク一覧を取得"""
    params = TaskQueryParams(
        status=status,
        priority=priority,
        type=task_type,
        subject_id=subject_id,
        period_id=period_id,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        is_overdue=is_overdue,
        is_due_soon=is_due_soon,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        tz=tz,
    )
    result = await service.list_tasks(params.to_filter_spec(current_user.id), ctx)

    return TaskListResponse(data=_responses(result), pagination=PaginationResponse.from_page_info(result.page_info))


@router.post("", response_model=TaskResponse, status_code=http_status.HTTP_201_CREATED)
@handle_api_error("タスク作成")
async def create_task(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    task_in: TaskCreate,
) -> TaskResponse:
    """タスクを作成"""
    task = await service.create_task(task_in, current_user, ctx)
    return TaskResponse.from_dto(task)


@router.get("/search", response_model=TaskSearchResponse)
@handle_api_error("タスク検索")
async def search_tasks(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    q: str = Query(default="", max_length=APIConstants.SEARCH_MAX_LENGTH, description="検索キーワード"),
    limit: int = Query(default=APIConstants.SEARCH_DEFAULT_LIMIT, description="最大件数"),
) -> TaskSearchResponse:
    """タイトル・説明からタスクを検索"""
    result = await service.search_tasks(current_user.id, q, limit, ctx)
    results = _responses(result)

    return TaskSearchResponse(query=q, results=results, count=len(results), total_found=result.page_info.total)


@router.get("/overdue", response_model=TaskOverdueResponse)
@handle_api_error("期限切れタスク取得")
async def get_overdue_tasks(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    tz: str | None = Query(default=None, description="タイムゾーン"),
) -> TaskOverdueResponse:
    """期限切れの未完了タスクを取得"""
    timezone = tz or settings.DEFAULT_TIMEZONE
    result = await service.get_overdue(current_user.id, timezone, ctx)
    tasks = _responses(result)

    return TaskOverdueResponse(tasks=tasks, count=len(tasks), timezone=timezone)


@router.get("/completed", response_model=TaskCompletedResponse)
@handle_api_error("完了タスク取得")
async def get_completed_tasks(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    page: int = Query(default=APIConstants.DEFAULT_PAGE, description="ページ番号"),
    limit: int = Query(default=APIConstants.DEFAULT_PAGE_SIZE, description="1ページあたりの件数"),
) -> TaskCompletedResponse:
    """完了済みタスクを取得"""
    result = await service.get_completed(current_user.id, page, limit, ctx)
    tasks = _responses(result)

    return TaskCompletedResponse(
        tasks=tasks, count=len(tasks), pagination=PaginationResponse.from_page_info(result.page_info)
    )


@router.get("/today", response_model=TaskTodayResponse)
@handle_api_error("本日期限タスク取得")
async def get_today_tasks(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    tz: str | None = Query(default=None, description="タイムゾーン"),
) -> TaskTodayResponse:
    """今日が期限のタスクを取得"""
    timezone = tz or settings.DEFAULT_TIMEZONE
    result = await service.get_due_today(current_user.id, timezone, ctx)
    tasks = _responses(result)

    return TaskTodayResponse(tasks=tasks, count=len(tasks), timezone=timezone)


@router.get("/by-subject/{subject_id}", response_model=TaskBySubjectResponse)
@handle_api_error("科目別タスク取得")
async def get_tasks_by_subject(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    subject_id: str,
) -> TaskBySubjectResponse:
    """科目別のタスクを取得"""
    result = await service.get_by_subject(current_user.id, subject_id, ctx)
    tasks = _responses(result)

    return TaskBySubjectResponse(subject_id=subject_id, tasks=tasks, count=len(tasks))


@router.get("/by-period/{period_id}", response_model=TaskByPeriodResponse)
@handle_api_error("学期別タスク取得")
async def get_tasks_by_period(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    period_id: str,
) -> TaskByPeriodResponse:
    """学期別のタスクを取得"""
    result = await service.get_by_period(current_user.id, period_id, ctx)
    tasks = _responses(result)

    return TaskByPeriodResponse(period_id=period_id, tasks=tasks, count=len(tasks))


# =============================================================================
# 単一タスク操作
# =============================================================================


@router.get("/{task_id}", response_model=TaskResponse)
@handle_api_error("タスク取得")
async def get_task(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    task_id: str,
) -> TaskResponse:
    """特定タスクを取得"""
    task = await service.get_task(task_id, current_user.id, ctx)
    return TaskResponse.from_dto(task)


@router.put("/{task_id}", response_model=TaskResponse)
@handle_api_error("タスク更新")
async def update_task(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    task_id: str,
    task_in: TaskUpdate,
) -> TaskResponse:
    """タスクを更新"""
    task = await service.update_task(task_id, task_in, current_user.id, ctx)
    return TaskResponse.from_dto(task)


@router.patch("/{task_id}/status", response_model=TaskResponse)
@handle_api_error("タスクステータス更新")
async def update_task_status(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    task_id: str,
    status_update: TaskStatusUpdate,
) -> TaskResponse:
    """タスクステータスを更新"""
    task = await service.update_status(task_id, status_update.status, current_user.id, ctx)
    return TaskResponse.from_dto(task)


@router.patch("/{task_id}/complete", response_model=TaskResponse)
@handle_api_error("タスク完了")
async def complete_task(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    task_id: str,
    complete_in: TaskComplete | None = Body(default=None),
) -> TaskResponse:
    """タスクを完了にする（完了済みならそのまま返す）"""
    actual_time_hours = complete_in.actual_time_hours if complete_in else None
    task = await service.complete_task(task_id, current_user.id, actual_time_hours, ctx)
    return TaskResponse.from_dto(task)


@router.delete("/{task_id}", status_code=http_status.HTTP_204_NO_CONTENT)
@handle_api_error("タスク削除")
async def delete_task(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    task_id: str,
) -> None:
    """タスクを削除"""
    await service.delete_task(task_id, current_user.id, ctx)
