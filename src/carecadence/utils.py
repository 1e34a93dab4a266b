"""时间工具

实体里的时间统一存为 UTC ISO 字符串(毫秒精度, 以 Z 结尾), 例如 "2024-01-05T09:00:00.000Z"。
日历运算(加天/加月)在用户本地时区内进行，见 world.recurrence。
"""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from carecadence.config.settings import USER_TIMEZONE
from carecadence.logger import logger

__all__ = ["local_zone", "now_local", "parse_iso", "to_iso", "floor_minute",
           "to_local", "format_clock"]


def local_zone(name: str | None = None) -> tzinfo:
    """返回用户时区; 未配置时使用宿主机当前的本地偏移"""
    name = USER_TIMEZONE if name is None else name
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"未知时区 {name}, 使用本机当前偏移")
    return datetime.now().astimezone().tzinfo


def now_local(tz: tzinfo | None = None) -> datetime:
    return datetime.now(tz or local_zone())


def parse_iso(value: str, tz: tzinfo | None = None) -> datetime:
    """解析 ISO 时间字符串; 无时区信息的按本地时区理解"""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or local_zone())
    return dt


def to_iso(dt: datetime) -> str:
    utc_dt = dt.astimezone(timezone.utc)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc_dt.microsecond // 1000:03d}Z"


def floor_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def to_local(dt: datetime, tz: tzinfo | None = None) -> datetime:
    return dt.astimezone(tz or local_zone())


def format_clock(dt: datetime, tz: tzinfo | None = None) -> str:
    """格式化为本地 'HH:MM'"""
    return to_local(dt, tz).strftime("%H:%M")
