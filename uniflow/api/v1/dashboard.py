"""ダッシュボードAPIエンドポイント"""

# ruff: noqa: B008

from fastapi import APIRouter, Depends, Query

from uniflow.core.context import RequestContext
from uniflow.core.dependencies import get_request_context, get_task_service
from uniflow.core.security import get_current_user
from uniflow.dtos.user import UserContext
from uniflow.schemas.dashboard import DashboardResponse
from uniflow.services.task import TaskService
from uniflow.utils.error_handler import handle_api_error

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
@handle_api_error("ダッシュボード取得")
async def get_dashboard(
    *,
    current_user: UserContext = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    ctx: RequestContext = Depends(get_request_context),
    tz: str | None = Query(default=None, description="「今日」の判定に使うタイムゾーン（未指定時はサーバー既定）"),
) -> DashboardResponse:
    """ダッシュボード集計を取得"""
    dashboard = await service.get_dashboard(current_user.id, tz, ctx)
    return DashboardResponse.from_dto(dashboard)
