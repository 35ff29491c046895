"""データベース接続管理モジュール

SQLAlchemy 2.x の非同期エンジン、セッションファクトリ、ヘルスチェック機能を提供
PostgreSQL（asyncpg）を本番、SQLite（aiosqlite）を開発・テストで使用する
"""

import logging
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, Pool, StaticPool

from uniflow.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """データベース接続関連のエラー"""

    pass


def _unicode_lower(value: str | None) -> str | None:
    return value.lower() if value is not None else None


def _register_sqlite_functions(dbapi_connection: Any, _connection_record: Any) -> None:
    """SQLiteの組み込みlower()はASCIIのみ対応のため、Pythonのstr.lowerで置き換える"""
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


class DatabaseManager:
    """データベース接続を管理するクラス

    SQLAlchemy 2.x準拠の非同期エンジンとセッション管理を提供
    シングルトンパターンで全体共有
    """

    def __init__(self, url: str | None = None) -> None:
        self._url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        return self._url or settings.database_url_async

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def _engine_kwargs(self) -> dict[str, Any]:
        """接続先に応じたエンジン設定"""
        if self.is_sqlite:
            # インメモリSQLiteは単一接続を共有しないとテーブルが消える
            pool_class: type[Pool] = StaticPool if ":memory:" in self.url else NullPool
            return {
                "poolclass": pool_class,
                "echo": False,
                "connect_args": {"check_same_thread": False},
            }

        kwargs: dict[str, Any] = {
            "echo": settings.DEBUG and settings.is_development,
            "pool_pre_ping": True,  # 接続確認
            "connect_args": {
                "server_settings": {
                    "application_name": f"{settings.SERVICE_NAME}-{settings.ENVIRONMENT}",
                    "timezone": "UTC",
                }
            },
        }

        # 開発環境ではNullPoolを使用
        if settings.is_development:
            kwargs["poolclass"] = NullPool
        else:
            kwargs.update(
                {
                    "pool_size": settings.DB_POOL_SIZE,
                    "max_overflow": settings.DB_MAX_OVERFLOW,
                    "pool_timeout": 30,
                    "pool_recycle": 3600,  # 1時間でコネクションを再作成
                }
            )
        return kwargs

    def create_engine(self) -> AsyncEngine:
        """非同期SQLAlchemyエンジンを作成"""
        if self._engine is not None:
            return self._engine

        try:
            self._engine = create_async_engine(self.url, **self._engine_kwargs())
            if self.is_sqlite:
                event.listen(self._engine.sync_engine, "connect", _register_sqlite_functions)
            logger.info(f"データベースエンジンが作成されました: {self._engine.url.render_as_string(hide_password=True)}")
            return self._engine

        except Exception as e:
            logger.error(f"データベースエンジンの作成に失敗しました: {e}")
            raise

    def create_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """非同期セッションファクトリーを作成"""
        if self._session_factory is not None:
            return self._session_factory

        engine = self.create_engine()
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,  # コミット後もオブジェクトを使用可能
            autoflush=True,
        )

        logger.info("データベースセッションファクトリーが作成されました")
        return self._session_factory

    async def create_tables(self) -> None:
        """すべてのテーブルを作成（既存テーブルはそのまま）"""
        from uniflow.models.base import Base

        engine = self.create_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("すべてのテーブルが作成されました")

    async def drop_tables(self) -> None:
        """すべてのテーブルを削除（テスト用）"""
        from uniflow.models.base import Base

        engine = self.create_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        logger.warning("すべてのテーブルが削除されました")

    async def check_connection(self) -> bool:
        """データベース接続の健全性をチェック

        Returns:
            接続が正常な場合True、それ以外False
        """
        try:
            engine = self.create_engine()
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("データベース接続チェック: 正常")
            return True

        except SQLAlchemyError as e:
            logger.error(f"データベース接続チェック失敗: {e}")
            return False
        except OSError as e:
            logger.error(f"データベース接続チェック中にネットワークエラー: {e}")
            return False

    async def close(self) -> None:
        """データベースエンジンを終了

        アプリケーション終了時に呼び出す
        """
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("データベースエンジンを閉じました")
            self._engine = None
            self._session_factory = None


# グローバルデータベースマネージャーインスタンス
database_manager = DatabaseManager()


# アプリケーションライフサイクル管理
async def init_database() -> None:
    """エンジン作成、テーブル作成、接続確認を行う"""
    try:
        database_manager.create_session_factory()
        await database_manager.create_tables()

        is_connected = await database_manager.check_connection()
        if not is_connected:
            raise DatabaseConnectionError("データベースへの接続に失敗しました")

        logger.info("データベースの初期化が完了しました")

    except Exception as e:
        logger.error(f"データベース初期化中にエラーが発生しました: {e}")
        raise


async def close_database() -> None:
    """データベース接続を終了"""
    try:
        await database_manager.close()
        logger.info("データベース接続を正常に閉じました")

    except SQLAlchemyError as e:
        logger.error(f"データベース接続の終了中にエラーが発生しました: {e}")


async def health_check() -> dict[str, Any]:
    """データベースのヘルスチェックを実行

    Returns:
        ヘルスチェック結果を含む辞書
    """
    is_connected = await database_manager.check_connection()

    if is_connected:
        return {"status": "healthy", "database": "connected"}
    return {"status": "unhealthy", "database": "disconnected", "error": "Connection failed"}
