"""日時・タイムゾーン関連ユーティリティ

pytzによるタイムゾーン解決と、UTC正規化・ローカル日付境界の計算を提供
"""

from datetime import UTC, date, datetime, time

import pytz
from pytz.tzinfo import BaseTzInfo

from uniflow.core.exceptions import InvalidTimezoneError


def utc_now() -> datetime:
    """現在時刻（UTC）"""
    return datetime.now(UTC)


def get_timezone(name: str | None) -> BaseTzInfo:
    """IANAタイムゾーン名を解決

    Raises:
        InvalidTimezoneError: 未知のタイムゾーン名の場合
    """
    if not name:
        return pytz.utc
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as e:
        raise InvalidTimezoneError(name) from e


def ensure_utc(value: datetime) -> datetime:
    """UTCのaware datetimeに正規化（naiveはUTCとみなす）"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_local_day(now: datetime, tz: BaseTzInfo) -> datetime:
    """指定タイムゾーンにおける当日0時をUTCで返す"""
    local = ensure_utc(now).astimezone(tz)
    midnight = tz.localize(datetime.combine(local.date(), time.min))
    return midnight.astimezone(UTC)


def local_day_bounds(day: date, tz: BaseTzInfo) -> tuple[datetime, datetime]:
    """ローカル日付の開始と終了（両端を含む）をUTCで返す"""
    start = tz.localize(datetime.combine(day, time.min)).astimezone(UTC)
    end = tz.localize(datetime.combine(day, time.max)).astimezone(UTC)
    return start, end


def parse_query_date(value: str, fmt: str = "%Y-%m-%d") -> date:
    """クエリパラメータの日付文字列を解析"""
    return datetime.strptime(value, fmt).date()
