"""リポジトリパッケージ

データアクセス層の抽象化を提供
インメモリ実装とSQL実装は同じクエリエンジンを共有する
"""

from uniflow.repositories.base import TaskRepositoryInterface
from uniflow.repositories.memory import InMemoryTaskRepository
from uniflow.repositories.sql import SQLTaskRepository

__all__ = [
    # Interfaces
    "TaskRepositoryInterface",
    # Implementations
    "InMemoryTaskRepository",
    "SQLTaskRepository",
]
