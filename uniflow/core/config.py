"""アプリケーション設定管理モジュール

Pydantic V2 BaseSettingsを使用した設定システムを提供
"""

import os
import secrets
from typing import Any, ClassVar
from urllib.parse import quote_plus

import pytz
from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from uniflow.core.constants import DatabaseConstants, ReminderConstants, SecurityConstants


class Settings(BaseSettings):
    """アプリケーション設定

    Pydantic V2を使用して環境変数から設定を読み込む（設定は自動的に検証・型チェックされる）
    """

    # =============================================================================
    # Pydantic V2 設定
    # =============================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        validate_assignment=True,
    )

    # =============================================================================
    # アプリケーション設定
    # =============================================================================
    PROJECT_NAME: str = "UniFlow Task API"
    PROJECT_VERSION: str = "1.0.0"
    SERVICE_NAME: str = "tasks"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = ""

    # =============================================================================
    # ストレージ設定
    # =============================================================================
    STORAGE_BACKEND: str = Field(default=DatabaseConstants.BACKEND_MEMORY)
    STORE_TIMEOUT_SECONDS: float = Field(default=5.0)
    REQUEST_TIMEOUT_SECONDS: float = Field(default=10.0)

    # =============================================================================
    # データベース設定
    # =============================================================================
    DATABASE_URL: str | None = Field(default=None)
    DB_USER: str = Field(default="uniflow")
    DB_PASSWORD: str = Field(default="")
    DB_NAME: str = Field(default="uniflow")
    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # =============================================================================
    # Redis / リマインダーキュー設定
    # =============================================================================
    REMINDERS_ENABLED: bool = Field(default=False)
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379)
    REDIS_PASSWORD: str | None = Field(default=None)
    REDIS_DB: int = Field(default=0)
    REDIS_POOL_SIZE: int = Field(default=5)
    REDIS_SOCKET_TIMEOUT: int = Field(default=5)
    REMINDER_QUEUE_NAME: str = Field(default=ReminderConstants.DEFAULT_QUEUE_NAME)
    REMINDER_LEAD_DAYS: int = Field(default=ReminderConstants.DEFAULT_LEAD_DAYS)
    REMINDER_MAX_DELAY_SECONDS: int = Field(default=ReminderConstants.DEFAULT_MAX_DELAY_SECONDS)
    REMINDER_MIN_DELAY_SECONDS: int = Field(default=ReminderConstants.DEFAULT_MIN_DELAY_SECONDS)
    QUEUE_TIMEOUT_SECONDS: float = Field(default=3.0)

    # =============================================================================
    # タイムゾーン設定
    # =============================================================================
    DEFAULT_TIMEZONE: str = Field(default="UTC")

    # =============================================================================
    # 認証設定
    # =============================================================================
    DEV_AUTH_BYPASS: bool = Field(default=False)
    JWT_SECRET_KEY: str = Field(default="")
    JWT_ALGORITHM: str = Field(default="HS256")

    # =============================================================================
    # CORS設定
    # =============================================================================
    BACKEND_CORS_ORIGINS: list[str] = []

    # =============================================================================
    # ログレベル設定
    # =============================================================================
    VALID_LOG_LEVELS: ClassVar[list[str]] = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    # =============================================================================
    # バリデーター（Pydantic V2）
    # =============================================================================

    @field_validator("JWT_SECRET_KEY", mode="before")
    @classmethod
    def validate_jwt_secret_key(cls, v: str | None) -> str:
        if not v or len(v) < SecurityConstants.MIN_JWT_SECRET_LENGTH:
            env = os.getenv("ENVIRONMENT", "development").lower()
            if env == "production":
                raise ValueError(
                    f"JWT_SECRET_KEY must be at least {SecurityConstants.MIN_JWT_SECRET_LENGTH} characters in production"
                )
            # 開発環境ではキーを自動生成
            return secrets.token_urlsafe(SecurityConstants.MIN_JWT_SECRET_LENGTH)
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if v not in SecurityConstants.ALLOWED_JWT_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of: {', '.join(SecurityConstants.ALLOWED_JWT_ALGORITHMS)}")
        return v

    @field_validator("STORAGE_BACKEND", mode="before")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        allowed = [DatabaseConstants.BACKEND_MEMORY, DatabaseConstants.BACKEND_DATABASE]
        if v.lower() not in allowed:
            raise ValueError(f"STORAGE_BACKEND must be one of: {', '.join(allowed)}")
        return v.lower()

    @field_validator("DEFAULT_TIMEZONE")
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"DEFAULT_TIMEZONE is not a known timezone: {v}")
        return v

    @field_validator(
        "STORE_TIMEOUT_SECONDS",
        "REQUEST_TIMEOUT_SECONDS",
        "QUEUE_TIMEOUT_SECONDS",
        "REMINDER_MAX_DELAY_SECONDS",
        "REMINDER_MIN_DELAY_SECONDS",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts and reminder delays must be positive")
        return v

    @field_validator("REMINDER_LEAD_DAYS")
    @classmethod
    def validate_reminder_lead_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("REMINDER_LEAD_DAYS must not be negative")
        return v

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_db_pool_size(cls, v: int) -> int:
        if not (DatabaseConstants.DB_POOL_SIZE_MIN <= v <= DatabaseConstants.DB_POOL_SIZE_MAX):
            raise ValueError(
                f"DB_POOL_SIZE must be between "
                f"{DatabaseConstants.DB_POOL_SIZE_MIN} and {DatabaseConstants.DB_POOL_SIZE_MAX}"
            )
        return v

    @field_validator("DB_MAX_OVERFLOW")
    @classmethod
    def validate_db_max_overflow(cls, v: int) -> int:
        if not (DatabaseConstants.DB_MAX_OVERFLOW_MIN <= v <= DatabaseConstants.DB_MAX_OVERFLOW_MAX):
            raise ValueError(
                f"DB_MAX_OVERFLOW must be between "
                f"{DatabaseConstants.DB_MAX_OVERFLOW_MIN} and {DatabaseConstants.DB_MAX_OVERFLOW_MAX}"
            )
        return v

    @field_validator("REDIS_PORT")
    @classmethod
    def validate_redis_port(cls, v: int) -> int:
        if not (DatabaseConstants.REDIS_PORT_MIN <= v <= DatabaseConstants.REDIS_PORT_MAX):
            raise ValueError(
                f"REDIS_PORT must be between {DatabaseConstants.REDIS_PORT_MIN} and {DatabaseConstants.REDIS_PORT_MAX}"
            )
        return v

    @field_validator("REDIS_DB")
    @classmethod
    def validate_redis_db(cls, v: int) -> int:
        if not (DatabaseConstants.REDIS_DB_MIN <= v <= DatabaseConstants.REDIS_DB_MAX):
            raise ValueError(
                f"REDIS_DB must be between {DatabaseConstants.REDIS_DB_MIN} and {DatabaseConstants.REDIS_DB_MAX}"
            )
        return v

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """CORS originをカンマ区切り文字列またはリストから解析"""
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        elif isinstance(v, list):
            return v
        return []

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in cls.VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(cls.VALID_LOG_LEVELS)}")
        return v.upper()

    # =============================================================================
    # 計算プロパティ（Pydantic V2）
    # =============================================================================

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url_async(self) -> str:
        """非同期接続URLを生成（DATABASE_URL指定時はそれを優先）"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.DB_PASSWORD)
        return f"postgresql+asyncpg://{self.DB_USER}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """開発環境で実行中かチェック"""
        return self.ENVIRONMENT.lower() == "development"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """本番環境で実行中かチェック"""
        return self.ENVIRONMENT.lower() == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_testing(self) -> bool:
        """テスト環境で実行中かチェック"""
        return self.ENVIRONMENT.lower() == "testing"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def uses_database(self) -> bool:
        return self.STORAGE_BACKEND == DatabaseConstants.BACKEND_DATABASE

    # =============================================================================
    # ヘルパーメソッド
    # =============================================================================

    def get_reminder_config(self) -> dict[str, Any]:
        """リマインダー計算用の設定を返す"""
        return {
            "lead_days": self.REMINDER_LEAD_DAYS,
            "max_delay_seconds": self.REMINDER_MAX_DELAY_SECONDS,
            "min_delay_seconds": self.REMINDER_MIN_DELAY_SECONDS,
        }

    def get_cors_config(self) -> dict[str, Any]:
        return {
            "allow_origins": self.BACKEND_CORS_ORIGINS,
            "allow_credentials": True,
            "allow_methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["*"],
        }

    # =============================================================================
    # セキュリティ・検証メソッド
    # =============================================================================

    def validate_production_security(self) -> None:
        """本番環境のセキュリティ設定を検証"""
        if not self.is_production:
            return

        issues = []

        if self.DEV_AUTH_BYPASS:
            issues.append("DEV_AUTH_BYPASS must be disabled in production")

        if self.DEBUG:
            issues.append("DEBUG should be False in production")

        if self.uses_database and not self.DATABASE_URL and not self.DB_PASSWORD:
            issues.append("DB_PASSWORD is required in production")

        if issues:
            raise ValueError(f"Production security issues: {'; '.join(issues)}")


# =============================================================================
# グローバル設定インスタンス（シングルトン）
# =============================================================================

_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """シングルトンパターンで設定インスタンスを取得"""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = Settings()
        _settings_instance.validate_production_security()

    return _settings_instance


# グローバル設定インスタンス（アプリケーション全体で共有）
settings = get_settings()


# =============================================================================
# テスト用ユーティリティ
# =============================================================================


def create_test_settings(**overrides: Any) -> Settings:
    """テスト用設定インスタンスを作成

    環境変数には触れず、上書き値を直接渡して新しいSettingsを生成する

    Args:
        **overrides: テスト用に上書きする設定

    Returns:
        テスト値を持つSettingsインスタンス
    """
    test_defaults: dict[str, Any] = {
        "ENVIRONMENT": "testing",
        "DEBUG": True,
        "LOG_LEVEL": "WARNING",
        "STORAGE_BACKEND": DatabaseConstants.BACKEND_MEMORY,
        "JWT_SECRET_KEY": "test-secret-key-at-least-32-characters-long",
        "REMINDERS_ENABLED": False,
    }
    test_defaults.update(overrides)
    return Settings(**test_defaults)
