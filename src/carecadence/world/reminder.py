"""
提醒判断: 提醒时间 = 发生时间 - 提前分钟数，落在 [提醒时间, 提醒时间 + 1 分钟) 内即触发。
窗口宽度与调度器轮询间隔相同，每个提醒只会命中一次轮询。
"""

from datetime import datetime, timedelta

__all__ = ["REMINDER_WINDOW", "REMINDER_OPTIONS", "reminder_time", "should_fire_now", "is_due_now", "format_lead_time"]

REMINDER_WINDOW = timedelta(minutes=1)

REMINDER_OPTIONS = [
    ("No Reminder", 0),
    ("5 minutes before", 5),
    ("10 minutes before", 10),
    ("15 minutes before", 15),
    ("30 minutes before", 30),
    ("1 hour before", 60),
    ("2 hours before", 120),
    ("1 day before", 1440),
]


def reminder_time(occurrence: datetime, lead_minutes: int) -> datetime:
    return occurrence - timedelta(minutes=lead_minutes)


def _in_window(start: datetime, now: datetime) -> bool:
    return start <= now < start + REMINDER_WINDOW


def should_fire_now(occurrence: datetime, lead_minutes: int | None, now: datetime) -> bool:
    """提前量 <= 0 视为不提醒"""
    if not lead_minutes or lead_minutes <= 0:
        return False
    return _in_window(reminder_time(occurrence, lead_minutes), now)


def is_due_now(occurrence: datetime, now: datetime) -> bool:
    """服药提醒没有提前量，发生时间本身就是提醒时间"""
    return _in_window(occurrence, now)


def format_lead_time(total_minutes: int) -> str:
    if total_minutes <= 0:
        return ""
    days, remaining = divmod(total_minutes, 1440)
    hours, minutes = divmod(remaining, 60)

    parts = []
    if days > 0:
        parts.append(f"{days} day{'s' if days > 1 else ''}")
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours > 1 else ''}")
    if minutes > 0:
        parts.append(f"{minutes} min")
    return f"{', '.join(parts)} before" if parts else ""
