"""リクエスト実行コンテキスト

リクエストの期限とキャンセル状態を保持し、外部呼び出し前のチェックとタイムアウト値の算出を提供
"""

import time
from dataclasses import dataclass, field

from uniflow.core.exceptions import DeadlineExceededError, OperationCancelledError


@dataclass
class RequestContext:
    """期限付きリクエストコンテキスト

    deadlineはtime.monotonic()基準の絶対時刻
    """

    deadline: float | None = None
    _cancelled: bool = field(default=False, repr=False)

    @classmethod
    def with_timeout(cls, seconds: float) -> "RequestContext":
        """現在時刻からseconds秒後を期限とするコンテキストを作成"""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """呼び出し元によるキャンセル"""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self) -> None:
        """キャンセル・期限切れの場合は例外を送出

        Raises:
            DeadlineExceededError: 期限を超過している場合
            OperationCancelledError: キャンセルされている場合
        """
        if self.expired:
            raise DeadlineExceededError()
        if self._cancelled:
            raise OperationCancelledError()

    def remaining(self, default: float) -> float:
        """外部呼び出しに使うタイムアウト秒数（期限が近ければ短くなる）"""
        if self.deadline is None:
            return default
        return max(0.0, min(default, self.deadline - time.monotonic()))
