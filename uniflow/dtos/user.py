"""ユーザーDTO

APIゲートウェイから渡される認証済みユーザー情報
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserContext:
    """認証済みユーザーコンテキスト（IDのみ必須）"""

    id: str
    email: str = ""
    name: str = ""
    picture: str = ""
