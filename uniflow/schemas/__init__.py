"""スキーマパッケージ

Pydanticスキーマを提供
"""

# Dashboard関連スキーマ
from uniflow.schemas.dashboard import DashboardResponse, DashboardTask

# Task関連スキーマ
from uniflow.schemas.task import (
    CamelModel,
    HealthResponse,
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

__all__ = [
    # Dashboard schemas
    "DashboardResponse",
    "DashboardTask",
    # Task schemas
    "CamelModel",
    "HealthResponse",
    "PaginationResponse",
    "TaskByPeriodResponse",
    "TaskBySubjectResponse",
    "TaskComplete",
    "TaskCompletedResponse",
    "TaskCreate",
    "TaskListResponse",
    "TaskOverdueResponse",
    "TaskQueryParams",
    "TaskResponse",
    "TaskSearchResponse",
    "TaskStatusUpdate",
    "TaskTodayResponse",
    "TaskUpdate",
]
