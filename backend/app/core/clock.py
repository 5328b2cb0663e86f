"""
时间工具
数据库中统一保存不带时区的UTC时间
"""
from datetime import datetime, timezone, timedelta


def utc_now() -> datetime:
    """当前UTC时间（naive）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """把任意datetime转换为naive UTC；naive时间视为UTC"""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def format_datetime_local(dt: datetime) -> str:
    """将UTC时间转换为本地时间字符串"""
    if dt is None:
        return None
    from app.core.config import settings

    local_tz = timezone(timedelta(minutes=settings.display_utc_offset_minutes))
    # 如果时间没有时区信息，假设它是 UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(local_tz).isoformat(timespec="seconds")
