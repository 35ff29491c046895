"""FastAPIアプリケーションのメインモジュール

ミドルウェア、ルーティング、例外ハンドラー、ライフサイクル管理を提供
"""

import logging
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from uniflow.api.v1.router import api_router
from uniflow.core.config import settings
from uniflow.core.dependencies import get_task_service, set_reminder_sink
from uniflow.schemas.task import HealthResponse
from uniflow.utils.datetime_utils import utc_now

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """アプリケーションライフサイクル管理"""
    # 起動時処理
    logger.info(f"🚀 {settings.PROJECT_NAME} を起動しています...")

    try:
        if settings.uses_database:
            from uniflow.core.database import init_database

            logger.info("📊 データベース接続を初期化中...")
            await init_database()

        if settings.REMINDERS_ENABLED:
            from uniflow.core.redis import init_redis

            logger.info("📡 リマインダーキュー（Redis）を初期化中...")
            set_reminder_sink(await init_redis())

        logger.info("✅ すべてのサービスが正常に初期化されました")

    except Exception as e:
        logger.error(f"❌ 初期化中にエラーが発生しました: {e}")
        raise

    yield

    # 終了時処理
    logger.info(f"🛑 {settings.PROJECT_NAME} を終了しています...")

    try:
        reminders = get_task_service().reminders
        if reminders is not None and reminders.pending_count:
            logger.info(f"送信待ちのリマインダーを待機します: {reminders.pending_count}件")
            await reminders.wait_for_pending()

        if settings.REMINDERS_ENABLED:
            from uniflow.core.redis import close_redis

            await close_redis()

        if settings.uses_database:
            from uniflow.core.database import close_database

            await close_database()

        logger.info("✅ すべてのサービスが正常に終了しました")

    except Exception as e:
        logger.error(f"❌ 終了処理中にエラーが発生しました: {e}")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """セキュリティヘッダーを追加するミドルウェア"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # 開発環境では処理時間を表示
        if settings.is_development and hasattr(request.state, "start_time"):
            process_time = time.perf_counter() - request.state.start_time
            response.headers["X-Process-Time"] = f"{process_time:.6f}"

        return cast("Response", response)


class ProcessTimeMiddleware(BaseHTTPMiddleware):
    """リクエスト処理時間を測定するミドルウェア（開発環境用）"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.start_time = time.perf_counter()
        response = await call_next(request)
        return cast("Response", response)


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description="大学生向け課題・タスク管理API",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    setup_middleware(app)

    setup_routes(app)

    setup_exception_handlers(app)

    return app


def setup_middleware(app: FastAPI) -> None:
    app.add_middleware(SecurityHeadersMiddleware)

    if settings.is_development:
        app.add_middleware(ProcessTimeMiddleware)

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(CORSMiddleware, **settings.get_cors_config())

    logger.info("ミドルウェアの設定が完了しました")


def setup_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse, tags=["ヘルスチェック"])
    async def health_check() -> HealthResponse:
        """生存確認"""
        return HealthResponse(
            status="healthy",
            timestamp=utc_now(),
            version=settings.PROJECT_VERSION,
            service=settings.SERVICE_NAME,
        )

    @app.get("/health/ready", response_model=None, tags=["ヘルスチェック"])
    async def readiness_check() -> dict[str, Any] | JSONResponse:
        """有効なバックエンド（データベース・Redis）への接続確認"""
        services: dict[str, Any] = {}

        try:
            if settings.uses_database:
                from uniflow.core.database import health_check as db_health_check

                services["database"] = await db_health_check()

            if settings.REMINDERS_ENABLED:
                from uniflow.core.redis import health_check as redis_health_check

                services["redis"] = await redis_health_check()

        except Exception as e:
            logger.error(f"ヘルスチェック中にエラーが発生しました: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "error": "health_check_failed",
                    "message": "ヘルスチェックに失敗しました",
                    "path": "/health/ready",
                    "timestamp": utc_now().isoformat(),
                },
            )

        healthy = all(service.get("status") == "healthy" for service in services.values())
        body = {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": utc_now().isoformat(),
            "version": settings.PROJECT_VERSION,
            "environment": settings.ENVIRONMENT,
            "storage": settings.STORAGE_BACKEND,
            "services": services,
        }
        if not healthy:
            return JSONResponse(status_code=503, content=body)
        return body

    app.include_router(api_router, prefix=settings.API_PREFIX)

    logger.info("ルーティングの設定が完了しました")


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "http_error",
                "message": exc.detail,
                "status_code": exc.status_code,
                "path": str(request.url.path),
                "timestamp": utc_now().isoformat(),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation_error",
                "message": "リクエストの形式が正しくありません",
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in error["loc"]),
                        "message": error["msg"],
                        "type": error["type"],
                    }
                    for error in exc.errors()
                ],
                "path": str(request.url.path),
                "timestamp": utc_now().isoformat(),
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"予期しない例外が発生しました: {exc}", exc_info=True)

        # 本番環境では詳細なエラー情報を隠す
        error_detail = "内部サーバーエラーが発生しました" if settings.is_production else str(exc)

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": error_detail,
                "path": str(request.url.path),
                "timestamp": utc_now().isoformat(),
            },
        )

    logger.info("例外ハンドラーの設定が完了しました")


# アプリケーションのインスタンスを作成
app = create_application()


if __name__ == "__main__":
    import uvicorn

    # 開発サーバー起動
    if settings.is_development:
        uvicorn.run(
            "uniflow.main:app",
            host="0.0.0.0",  # nosec B104 # noqa: S104 # 開発環境のみ全インターフェースにバインド
            port=8000,
            reload=True,
            log_level=settings.LOG_LEVEL.lower(),
            access_log=True,
        )
    else:
        logger.warning("本番環境では uvicorn uniflow.main:app で起動してください")
