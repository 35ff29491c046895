"""リマインダーDTO

期限リマインダーのキューメッセージと配信スケジュール
"""

import json
from dataclasses import asdict, dataclass
from datetime import timedelta


@dataclass(frozen=True)
class ReminderPayload:
    """キューに投入するリマインダーメッセージ

    送信時刻に依存する値を含まないため、同じタスクからは常に同じ内容になる
    """

    task_id: str
    user_id: str
    name: str
    email: str
    title: str
    message: str
    type: str
    priority: str
    due_date: str

    def to_json(self) -> str:
        """キャメルケースのJSON文字列に変換"""
        data = asdict(self)
        body = {
            "taskId": data["task_id"],
            "userId": data["user_id"],
            "name": data["name"],
            "email": data["email"],
            "title": data["title"],
            "message": data["message"],
            "type": data["type"],
            "priority": data["priority"],
            "dueDate": data["due_date"],
        }
        return json.dumps(body, ensure_ascii=False, sort_keys=True)


@dataclass(frozen=True)
class ScheduledReminder:
    """配信待ちリマインダー（メッセージと可視化までの遅延）"""

    payload: ReminderPayload
    visibility_delay: timedelta
    clamped: bool = False
