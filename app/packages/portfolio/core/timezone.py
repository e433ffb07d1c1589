"""时区工具方法：支持根据配置动态获取当前时区。"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from zoneinfo import ZoneInfo

from app.packages.portfolio.core.config import get_settings


def get_timezone() -> ZoneInfo:
    """返回配置指定的时区信息。"""
    return get_settings().timezone_info


def utc_now() -> datetime:
    """返回带时区的 UTC 时间，入库统一使用 UTC。"""
    return datetime.now(ZoneInfo("UTC"))


def to_local(value: Optional[datetime]) -> Optional[datetime]:
    """将 ``datetime`` 转换为配置时区，支持处理空值与无时区对象。

    SQLite 读回的时间不带时区信息，这里按 UTC 解释后再转换。
    """
    if value is None:
        return None
    tz = get_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo("UTC")).astimezone(tz)
    return value.astimezone(tz)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """将时间序列化为 ISO-8601 字符串（带时区偏移）。"""
    localized = to_local(value)
    if localized is None:
        return None
    return localized.isoformat()
