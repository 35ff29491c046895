"""モデルパッケージ

SQLAlchemyモデルを提供
"""

from uniflow.models.base import Base, UTCDateTime
from uniflow.models.task import Task

__all__ = ["Base", "Task", "UTCDateTime"]
