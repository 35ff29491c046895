"""ドメイン例外定義

サービス層・リポジトリ層から送出され、API層でHTTPステータスに変換される
"""

from uniflow.core.constants import ErrorMessages


class TaskValidationError(ValueError):
    """タスクの入力値・列挙値が不正"""

    pass


class InvalidTimezoneError(ValueError):
    """未知のタイムゾーン識別子"""

    def __init__(self, timezone_name: str) -> None:
        self.timezone_name = timezone_name
        super().__init__(f"{ErrorMessages.INVALID_TIMEZONE}: {timezone_name}")


class TaskNotFoundError(LookupError):
    """タスクが存在しない、または所有者が異なる"""

    def __init__(self, task_id: str, message: str = ErrorMessages.TASK_NOT_FOUND) -> None:
        self.task_id = task_id
        super().__init__(message)


class TaskConflictError(Exception):
    """現在の状態では許可されない操作"""

    def __init__(self, task_id: str, message: str = ErrorMessages.CONFLICT) -> None:
        self.task_id = task_id
        super().__init__(message)


class StorageError(RuntimeError):
    """永続化バックエンドの障害"""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f"{operation}: {cause}" if cause else operation
        super().__init__(f"{ErrorMessages.STORAGE_FAILURE} ({detail})")


class OperationCancelledError(Exception):
    """呼び出し元がリクエストを放棄した"""

    def __init__(self, message: str = ErrorMessages.OPERATION_CANCELLED) -> None:
        super().__init__(message)


class DeadlineExceededError(OperationCancelledError):
    """リクエストの期限を超過した"""

    def __init__(self, message: str = ErrorMessages.DEADLINE_EXCEEDED) -> None:
        super().__init__(message)
