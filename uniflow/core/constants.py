"""アプリケーション定数管理

タスク列挙型、制限値、エラーメッセージを一元管理
"""

from enum import Enum

# =============================================================================
# タスク関連定数
# =============================================================================


class TaskConstants:
    """タスク関連の定数"""

    # タスクタイトル設定
    TITLE_MIN_LENGTH = 1
    TITLE_MAX_LENGTH = 200

    # タスク説明設定
    DESCRIPTION_MAX_LENGTH = 5000

    # 所要時間設定（時間単位）
    TIME_HOURS_MIN = 0
    TIME_HOURS_MAX = 10000

    # 期限間近判定ウィンドウ（時間）
    DUE_SOON_WINDOW_HOURS = 24

    # ID生成
    ID_LENGTH = 32


class TaskStatus(str, Enum):
    """タスクステータス列挙型（宣言順がソート順位）"""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    IN_REVIEW = "in-review"
    DONE = "done"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """タスク優先度列挙型（宣言順がソート順位）"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskType(str, Enum):
    """タスク種別列挙型"""

    ASSIGNMENT = "assignment"
    EXAM = "exam"
    READING = "reading"
    PRESENTATION = "presentation"
    LAB = "lab"
    QUIZ = "quiz"
    ESSAY = "essay"
    GROUP_WORK = "group-work"


class SortField(str, Enum):
    """一覧ソートキー"""

    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    STATUS = "status"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    """ソート順序"""

    ASC = "asc"
    DESC = "desc"


STATUS_RANK: dict[TaskStatus, int] = {status: rank for rank, status in enumerate(TaskStatus)}
PRIORITY_RANK: dict[TaskPriority, int] = {priority: rank for rank, priority in enumerate(TaskPriority)}


# =============================================================================
# API関連定数
# =============================================================================


class APIConstants:
    """API関連の定数"""

    # ページネーション設定
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
    MIN_PAGE_SIZE = 1
    DEFAULT_PAGE = 1

    # 簡易一覧（期限切れ・科目別など）の取得件数
    LISTING_LIMIT = 100

    # 検索設定
    SEARCH_MIN_LENGTH = 1
    SEARCH_MAX_LENGTH = 100
    SEARCH_DEFAULT_LIMIT = 20

    # ソート設定
    DEFAULT_SORT_FIELD = SortField.DUE_DATE
    DEFAULT_SORT_ORDER = SortOrder.ASC

    # 日付クエリ形式
    DATE_QUERY_FORMAT = "%Y-%m-%d"

    DEFAULT_TIMEZONE = "UTC"


# =============================================================================
# ダッシュボード・リマインダー関連定数
# =============================================================================


class DashboardConstants:
    """ダッシュボード集計の定数"""

    UPCOMING_LIMIT = 5
    COMPLETED_WINDOW_DAYS = 7


class ReminderConstants:
    """期限リマインダーの定数"""

    MESSAGE_TYPE = "deadline_reminder"
    DEFAULT_LEAD_DAYS = 3
    DEFAULT_MAX_DELAY_SECONDS = 7 * 24 * 60 * 60
    DEFAULT_MIN_DELAY_SECONDS = 1
    DEFAULT_QUEUE_NAME = "uniflow:reminders"


# =============================================================================
# 認証関連定数
# =============================================================================


class AuthHeaders:
    """APIゲートウェイから渡される認証ヘッダー"""

    USER_ID = "X-User-ID"
    USER_EMAIL = "X-User-Email"
    USER_NAME = "X-User-Name"
    USER_PICTURE = "X-User-Picture"

    # 開発用バイパス
    DEV_USER_ID = "X-Dev-User-ID"
    DEV_USER_EMAIL = "X-Dev-User-Email"
    DEV_USER_NAME = "X-Dev-User-Name"


class SecurityConstants:
    """セキュリティ関連の定数"""

    MIN_JWT_SECRET_LENGTH = 32
    ALLOWED_JWT_ALGORITHMS = ["HS256", "HS384", "HS512"]

    # JWTクレーム名
    CLAIM_USER_ID = "userId"
    CLAIM_EMAIL = "email"
    CLAIM_NAME = "name"


# =============================================================================
# データベース関連定数
# =============================================================================


class DatabaseConstants:
    """データベース関連の定数"""

    # 接続プール設定
    DB_POOL_SIZE_MIN = 1
    DB_POOL_SIZE_MAX = 50
    DB_MAX_OVERFLOW_MIN = 0
    DB_MAX_OVERFLOW_MAX = 100

    # Redis設定
    REDIS_PORT_MIN = 1
    REDIS_PORT_MAX = 65535
    REDIS_DB_MIN = 0
    REDIS_DB_MAX = 15

    # ストレージ種別
    BACKEND_MEMORY = "memory"
    BACKEND_DATABASE = "database"


# =============================================================================
# エラーメッセージ定数
# =============================================================================


class ErrorMessages:
    """エラーメッセージの定数"""

    # タスク関連
    TASK_NOT_FOUND = "タスクが見つかりません"
    TASK_TITLE_REQUIRED = "タスクタイトルは必須です"
    TASK_TITLE_TOO_LONG = f"タスクタイトルは{TaskConstants.TITLE_MAX_LENGTH}文字以内で入力してください"
    TASK_SUBJECT_REQUIRED = "科目IDは必須です"
    TASK_INVALID_STATUS = "無効なタスクステータスです"
    TASK_INVALID_PRIORITY = "無効なタスク優先度です"
    TASK_INVALID_TYPE = "無効なタスク種別です"
    TASK_INVALID_TIME = "所要時間は0以上である必要があります"
    TASK_DUE_DATE_REQUIRED = "期限日時は必須です"
    TASK_CANNOT_MODIFY = "完了済みまたはキャンセル済みのタスクは変更できません"
    TASK_CANNOT_DELETE = "完了済みのタスクは削除できません"
    TASK_CANNOT_COMPLETE = "キャンセル済みのタスクは完了できません"

    # クエリ関連
    INVALID_TIMEZONE = "無効なタイムゾーンです"
    INVALID_DATE_FORMAT = "日付はYYYY-MM-DD形式で指定してください"
    INVALID_SORT_FIELD = "指定されたソートフィールドは無効です"
    INVALID_SORT_ORDER = "ソート順序は'asc'または'desc'を指定してください"
    SEARCH_QUERY_REQUIRED = "検索キーワードは必須です"

    # 実行制御
    OPERATION_CANCELLED = "リクエストがキャンセルされました"
    DEADLINE_EXCEEDED = "処理がタイムアウトしました"
    STORAGE_FAILURE = "データストアの操作に失敗しました"

    # 一般的なエラー
    VALIDATION_ERROR = "入力値に誤りがあります"
    SERVER_ERROR = "サーバーエラーが発生しました"
    BAD_REQUEST = "リクエストが不正です"
    CONFLICT = "現在の状態では実行できない操作です"
    UNAUTHORIZED = "認証が必要です"
