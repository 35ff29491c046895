"""期限リマインダーサービス

リマインダーの配信スケジュール計算（純粋関数）と、キューへの非同期投入を提供
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Protocol

from uniflow.core.config import settings
from uniflow.core.constants import ReminderConstants
from uniflow.dtos.reminder import ReminderPayload, ScheduledReminder
from uniflow.dtos.task import TaskDTO
from uniflow.dtos.user import UserContext
from uniflow.utils.datetime_utils import ensure_utc, utc_now
from uniflow.utils.error_handler import safe_operation

logger = logging.getLogger(__name__)


class ReminderSink(Protocol):
    """リマインダーの投入先（遅延可視化をサポートするキュー）"""

    async def enqueue(self, payload: str, visibility_delay: timedelta) -> None: ...


def build_reminder_message(title: str, lead_days: int) -> str:
    return f"タスク「{title}」の期限が近づいています（残り{lead_days}日）"


def compute_reminder(
    task: TaskDTO,
    user: UserContext,
    lead_days: int,
    max_delay: timedelta,
    *,
    now: datetime,
    min_delay: timedelta = timedelta(seconds=ReminderConstants.DEFAULT_MIN_DELAY_SECONDS),
) -> ScheduledReminder:
    """リマインダーの内容と配信までの遅延を計算

    期限のlead_days日前を配信時刻とする
    - 既に過ぎている、またはmin_delay未満の場合はmin_delay後に配信
    - max_delayを超える場合はmax_delayに切り詰める（早めに届く）

    Args:
        task: 対象タスク
        user: タスクの所有者
        lead_days: 期限の何日前に通知するか
        max_delay: キューが許す最大遅延
        now: 現在時刻
        min_delay: 最小遅延

    Returns:
        メッセージと遅延を持つScheduledReminder
    """
    due_date = ensure_utc(task.due_date)
    delay = (due_date - timedelta(days=lead_days)) - now
    clamped = False

    if delay < min_delay:
        delay = min_delay
    elif delay > max_delay:
        logger.warning(
            f"リマインダー遅延が上限を超えるため切り詰めます: task_id={task.id}, "
            f"delay={delay.total_seconds():.0f}s, max={max_delay.total_seconds():.0f}s"
        )
        delay = max_delay
        clamped = True

    payload = ReminderPayload(
        task_id=task.id,
        user_id=user.id,
        name=user.name,
        email=user.email,
        title=task.title,
        message=build_reminder_message(task.title, lead_days),
        type=ReminderConstants.MESSAGE_TYPE,
        priority=task.priority.value,
        due_date=due_date.isoformat(),
    )
    return ScheduledReminder(payload=payload, visibility_delay=delay, clamped=clamped)


class ReminderDispatcher:
    """リマインダーをバックグラウンドでキューに投入する

    投入の失敗・タイムアウトはログに記録して握りつぶし、呼び出し元には影響させない
    """

    def __init__(
        self,
        sink: ReminderSink,
        *,
        lead_days: int | None = None,
        max_delay: timedelta | None = None,
        min_delay: timedelta | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        config = settings.get_reminder_config()
        self._sink = sink
        self._lead_days = config["lead_days"] if lead_days is None else lead_days
        self._max_delay = max_delay or timedelta(seconds=config["max_delay_seconds"])
        self._min_delay = min_delay or timedelta(seconds=config["min_delay_seconds"])
        self._timeout_seconds = timeout_seconds or settings.QUEUE_TIMEOUT_SECONDS
        self._pending: set[asyncio.Task[bool]] = set()

    def schedule(self, task: TaskDTO, user: UserContext, now: datetime | None = None) -> ScheduledReminder:
        """リマインダーを計算し、投入をバックグラウンドで開始"""
        reminder = compute_reminder(
            task,
            user,
            self._lead_days,
            self._max_delay,
            now=now or utc_now(),
            min_delay=self._min_delay,
        )

        background = asyncio.create_task(self._send(reminder))
        self._pending.add(background)
        background.add_done_callback(self._pending.discard)
        return reminder

    @safe_operation("リマインダー投入", default_return=False)
    async def _send(self, reminder: ScheduledReminder) -> bool:
        async with asyncio.timeout(self._timeout_seconds):
            await self._sink.enqueue(reminder.payload.to_json(), reminder.visibility_delay)

        logger.info(
            f"リマインダーをキューに投入しました: task_id={reminder.payload.task_id}, "
            f"delay={reminder.visibility_delay.total_seconds():.0f}s"
        )
        return True

    async def wait_for_pending(self) -> None:
        """投入中のリマインダーがすべて終わるまで待機（テスト・シャットダウン用）"""
        if self._pending:
            await asyncio.gather(*self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)
