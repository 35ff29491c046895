"""テストエンティティフィクスチャ"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from itertools import count
from typing import Any

import pytest
import pytest_asyncio

from uniflow.core.constants import TaskPriority, TaskStatus, TaskType
from uniflow.dtos.task import TaskDTO
from uniflow.dtos.user import UserContext
from uniflow.repositories.memory import InMemoryTaskRepository
from uniflow.repositories.sql import SQLTaskRepository
from tests.tests_config.database import get_test_database

# テスト全体で使う基準時刻（火曜日の正午UTC）
FIXED_NOW = datetime(2025, 6, 10, 12, 0, tzinfo=UTC)

TEST_USER_ID = "user-1"
OTHER_USER_ID = "user-2"

_sequence = count(1)


def make_task(**overrides: Any) -> TaskDTO:
    """テスト用タスクを作成（IDは作成順に増える）"""
    number = next(_sequence)
    values: dict[str, Any] = {
        "id": f"task-{number:04d}",
        "user_id": TEST_USER_ID,
        "title": f"テストタスク{number}",
        "subject_id": "math-101",
        "period_id": "2025-spring",
        "due_date": FIXED_NOW + timedelta(days=1),
        "status": TaskStatus.TODO,
        "priority": TaskPriority.MEDIUM,
        "type": TaskType.ASSIGNMENT,
        "created_at": FIXED_NOW - timedelta(days=10) + timedelta(minutes=number),
        "updated_at": FIXED_NOW - timedelta(days=10) + timedelta(minutes=number),
    }
    values.update(overrides)
    if values["status"] == TaskStatus.DONE and "completed_at" not in overrides:
        values["completed_at"] = values["updated_at"]
    return TaskDTO(**values)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """固定時刻を返すクロック"""
    return lambda: FIXED_NOW


@pytest.fixture
def test_user() -> UserContext:
    return UserContext(id=TEST_USER_ID, email="student@example.com", name="テスト学生")


@pytest.fixture
def memory_repository() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest_asyncio.fixture
async def sql_repository() -> AsyncGenerator[SQLTaskRepository]:
    """インメモリSQLite上のSQLリポジトリ"""
    async for manager in get_test_database():
        yield SQLTaskRepository(manager.create_session_factory())


@pytest_asyncio.fixture(params=["memory", "sql"])
async def repository(request: pytest.FixtureRequest) -> AsyncGenerator[InMemoryTaskRepository | SQLTaskRepository]:
    """両バックエンドで同じテストを実行するためのリポジトリ"""
    if request.param == "memory":
        yield InMemoryTaskRepository()
        return

    async for manager in get_test_database():
        yield SQLTaskRepository(manager.create_session_factory())
