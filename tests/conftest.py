"""pytest設定とテスト環境インフラ

基本的なフィクスチャとテスト設定のエントリーポイント
"""

import os

# 設定はインポート時に読み込まれるため、uniflowより先に環境変数を設定する
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["REMINDERS_ENABLED"] = "false"
os.environ["DEV_AUTH_BYPASS"] = "false"
os.environ["DEFAULT_TIMEZONE"] = "UTC"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-at-least-32-characters-long"

from collections.abc import AsyncGenerator, Callable, Generator  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from tests.fixtures.auth import *  # noqa: E402, F403, F401
from tests.fixtures.entities import *  # noqa: E402, F403, F401
from tests.fixtures.sample_data import *  # noqa: E402, F403, F401
from tests.tests_config.app_factory import create_test_app  # noqa: E402
from tests.tests_config.mocks import FakeReminderSink  # noqa: E402
from uniflow.core.dependencies import reset_dependency_cache  # noqa: E402
from uniflow.repositories.memory import InMemoryTaskRepository  # noqa: E402
from uniflow.services.reminder import ReminderDispatcher  # noqa: E402
from uniflow.services.task import TaskService  # noqa: E402


@pytest.fixture(autouse=True)
def reset_dependencies() -> Generator[None]:
    """テストごとに依存性キャッシュをリセット"""
    reset_dependency_cache()
    yield
    reset_dependency_cache()


@pytest.fixture
def reminder_sink() -> FakeReminderSink:
    return FakeReminderSink()


@pytest.fixture
def reminder_dispatcher(reminder_sink: FakeReminderSink) -> ReminderDispatcher:
    return ReminderDispatcher(
        reminder_sink,
        lead_days=3,
        max_delay=timedelta(days=7),
        min_delay=timedelta(seconds=1),
        timeout_seconds=1.0,
    )


@pytest.fixture
def task_service(
    memory_repository: InMemoryTaskRepository,
    reminder_dispatcher: ReminderDispatcher,
    clock: Callable[[], datetime],
) -> TaskService:
    """インメモリリポジトリと記録用投入先を使うタスクサービス"""
    return TaskService(memory_repository, reminder_dispatcher, store_timeout=1.0, clock=clock)


@pytest_asyncio.fixture
async def async_client(task_service: TaskService) -> AsyncGenerator[AsyncClient]:
    """テスト用非同期HTTPクライアント"""
    app = create_test_app(task_service)

    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
