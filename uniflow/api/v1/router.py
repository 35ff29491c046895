"""API v1 ルーター統合

すべてのv1 APIエンドポイントを統合
"""

from fastapi import APIRouter

from uniflow.api.v1 import dashboard, tasks
from uniflow.core.constants import ErrorMessages

# メインのAPIルーター
api_router = APIRouter()

# タスク管理エンドポイント
api_router.include_router(
    tasks.router,
    prefix="/tasks",
    tags=["タスク管理"],
    dependencies=[],  # 認証は各エンドポイントで個別に設定
    responses={
        400: {"description": ErrorMessages.BAD_REQUEST},
        401: {"description": ErrorMessages.UNAUTHORIZED},
        404: {"description": ErrorMessages.TASK_NOT_FOUND},
        409: {"description": ErrorMessages.CONFLICT},
    },
)

# ダッシュボード
api_router.include_router(
    dashboard.router,
    tags=["ダッシュボード"],
    responses={
        400: {"description": ErrorMessages.BAD_REQUEST},
        401: {"description": ErrorMessages.UNAUTHORIZED},
    },
)


__all__ = ["api_router"]
