"""Redis接続管理モジュール

Redisクライアントの接続管理と、遅延可視化付きリマインダーキューを提供
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from uniflow.core.config import settings
from uniflow.utils.datetime_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class RedisManager:
    """Redis接続を管理するクラス

    非同期Redis操作と接続プール管理を提供
    シングルトンパターンで全体共有
    """

    def __init__(self) -> None:
        self._client: Redis | None = None
        self._pool: ConnectionPool | None = None

    def create_connection_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        self._validate_redis_settings()

        try:
            self._pool = ConnectionPool(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                password=settings.REDIS_PASSWORD,
                db=settings.REDIS_DB,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.REDIS_POOL_SIZE,
                retry_on_timeout=True,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            )
            logger.info(f"Redis接続プールが作成されました: {settings.REDIS_HOST}:{settings.REDIS_PORT}")
            return self._pool

        except Exception as e:
            logger.error(f"Redis接続プールの作成に失敗しました: {e}")
            raise

    def _validate_redis_settings(self) -> None:
        """Redis設定の検証"""
        if not settings.REDIS_HOST or not settings.REDIS_HOST.strip():
            raise ValueError("REDIS_HOSTが設定されていません")

        if settings.is_production:
            if settings.REDIS_HOST in ["localhost", "127.0.0.1"]:
                logger.warning("本番環境でlocalhostのRedisを使用しています")

            if not settings.REDIS_PASSWORD:
                raise ValueError("本番環境ではREDIS_PASSWORDが必要です")

        logger.debug("Redis設定の検証が完了しました")

    async def ping(self) -> bool:
        """Redisの接続チェック"""
        try:
            client = self.create_client()
            await client.ping()
            logger.debug("Redis接続チェック: 正常")
            return True

        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.error(f"Redis接続チェック失敗: {e}")
            return False

    def create_client(self) -> Redis:
        if self._client is not None:
            return self._client

        pool = self.create_connection_pool()
        self._client = Redis(connection_pool=pool)
        logger.info("Redisクライアントが作成されました")
        return self._client

    async def close(self) -> None:
        try:
            if self._client is not None:
                await self._client.aclose()
                logger.info("Redisクライアントを閉じました")
                self._client = None

            if self._pool is not None:
                await self._pool.aclose()
                logger.info("Redis接続プールを閉じました")
                self._pool = None

        except RedisError as e:
            logger.error(f"Redis接続の終了中にエラーが発生しました: {e}")


_redis_manager_instance: RedisManager | None = None


def get_redis_manager() -> RedisManager:
    """シングルトンパターンでRedisManagerインスタンスを取得"""
    global _redis_manager_instance

    if _redis_manager_instance is None:
        _redis_manager_instance = RedisManager()
        logger.info("RedisManagerシングルトンインスタンスを作成しました")

    return _redis_manager_instance


class RedisReminderQueue:
    """遅延可視化付きのリマインダーキュー

    メッセージをソート済みセットに保存し、スコアを可視化時刻（UNIX秒）とする
    同じメッセージを再投入するとスコアのみ更新される
    """

    def __init__(self, client: Redis, queue_name: str) -> None:
        self._client = client
        self._queue_name = queue_name

    @property
    def queue_name(self) -> str:
        return self._queue_name

    async def enqueue(self, payload: str, visibility_delay: timedelta) -> None:
        """メッセージを投入（visibility_delay経過後に取得可能になる）"""
        visible_at = utc_now() + visibility_delay
        await self._client.zadd(self._queue_name, {payload: visible_at.timestamp()})
        logger.debug(f"リマインダーをキューに投入しました: {self._queue_name}, visible_at={visible_at.isoformat()}")

    async def fetch_visible(self, now: datetime | None = None, limit: int = 10) -> list[str]:
        """可視化時刻を過ぎたメッセージを取り出す

        取り出したメッセージはキューから削除される
        複数のコンシューマーが同時に呼んでも、同じメッセージは一度だけ返る
        """
        now = ensure_utc(now) if now is not None else utc_now()
        candidates: list[str] = await self._client.zrangebyscore(
            self._queue_name, "-inf", now.timestamp(), start=0, num=limit
        )

        fetched = []
        for payload in candidates:
            if await self._client.zrem(self._queue_name, payload):
                fetched.append(payload)
        return fetched

    async def size(self) -> int:
        return int(await self._client.zcard(self._queue_name))


# アプリケーションライフサイクル管理
async def init_redis() -> RedisReminderQueue:
    """Redis接続を初期化し、リマインダーキューを返す"""
    try:
        manager = get_redis_manager()
        client = manager.create_client()

        is_connected = await manager.ping()
        if not is_connected:
            raise RuntimeError("Redisへの接続に失敗しました")

        logger.info("Redisの初期化が完了しました")
        return RedisReminderQueue(client, settings.REMINDER_QUEUE_NAME)

    except ValueError as e:
        logger.error(f"Redis設定エラー: {e}")
        raise


async def close_redis() -> None:
    manager = get_redis_manager()
    await manager.close()
    logger.info("Redis接続を正常に閉じました")


async def health_check() -> dict[str, Any]:
    manager = get_redis_manager()
    is_connected = await manager.ping()

    if is_connected:
        return {
            "status": "healthy",
            "redis": "connected",
            "host": settings.REDIS_HOST,
            "port": settings.REDIS_PORT,
            "database": settings.REDIS_DB,
        }
    return {"status": "unhealthy", "redis": "disconnected", "error": "Ping failed"}
