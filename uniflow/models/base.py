"""SQLAlchemyベースモデル

すべてのモデルの基底クラスを提供
文字列プライマリキー、UTCタイムスタンプ、ネーミング規則を統一
"""

import re
from datetime import UTC, datetime

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator

# 制約命名規則の統一
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",  # インデックス
        "uq": "uq_%(table_name)s_%(column_0_name)s",  # ユニーク制約
        "ck": "ck_%(table_name)s_%(constraint_name)s",  # チェック制約
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # 外部キー
        "pk": "pk_%(table_name)s",  # プライマリキー
    }
)


class UTCDateTime(TypeDecorator[datetime]):
    """UTCで保存・復元する日時型

    保存時にUTCへ変換し、タイムゾーン情報を持たないドライバ（SQLite）から読んだ値にはUTCを付与する
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            # 文字列比較の順序を保つため、タイムゾーン表記を付けずに保存
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """SQLAlchemy 2.x準拠のベースクラス

    全てのモデルはこのクラスを継承する
    - 文字列主キー（アプリケーション側で発行）
    - 作成・更新タイムスタンプ（UTC）
    - テーブル名自動生成
    """

    metadata = metadata

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="プライマリキー")

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False, comment="作成日時（UTC）"
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(UTC),
        nullable=False,
        comment="更新日時（UTC）",
    )

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """テーブル名を自動生成

        例: Task -> tasks
        """
        name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", cls.__name__)
        return re.sub("([a-z0-9])([A-Z])", r"\1_\2", name).lower() + "s"

    def __repr__(self) -> str:
        """デバッグ用の文字列表現"""
        return f"<{self.__class__.__name__}(id={self.id})>"
