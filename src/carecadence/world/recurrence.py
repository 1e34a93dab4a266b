"""重复规则计算

next_occurrence 在用户本地时区做日历运算(relativedelta), 因此加天不受夏令时影响，
加月/加年遇到目标月份没有该日时会被截到月末(1 月 31 日 + 1 个月 = 2 月 28/29 日)，
多次推进后日期不会再回到 31 日。这是已知行为，不做修正。
JavaScript 的 Date.setMonth 则会溢出到下个月(1 月 31 日 + 1 个月 = 3 月 2 日), 与这里不同。

每周规则只找"严格晚于"当前星期的已选日，锚点本身落在已选日时不会当天重复。
"""

from datetime import datetime, tzinfo
from typing import FrozenSet

from dateutil.relativedelta import relativedelta

from carecadence.datamodel import Recurrence, RecurrenceRule
from carecadence.utils import local_zone

__all__ = ["DAYS_OF_WEEK", "weekday_index", "next_occurrence", "roll_forward", "describe_recurrence"]

# 0=周日 .. 6=周六
DAYS_OF_WEEK = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def weekday_index(dt: datetime) -> int:
    """Python 的 weekday() 以周一为 0, 这里换算成周日为 0"""
    return (dt.weekday() + 1) % 7


def _weekly_advance(current_day: int, days: FrozenSet[int]) -> int:
    if not days:
        return 7
    ordered = sorted(days)
    for day in ordered:
        if day > current_day:
            return day - current_day
    return 7 - current_day + ordered[0]


def next_occurrence(anchor: datetime, rule: RecurrenceRule, tz: tzinfo | None = None) -> datetime:
    """根据重复规则计算锚点之后的下一次发生时间

    不重复的规则原样返回锚点，调用方应把它当作"停止重复"。
    返回值与锚点使用同一个 tzinfo。
    """
    if not rule.recurs:
        return anchor

    zone = tz or local_zone()
    if anchor.tzinfo is None:
        anchor = anchor.replace(tzinfo=zone)
    local = anchor.astimezone(zone)

    if rule.kind is Recurrence.DAILY:
        step = relativedelta(days=rule.interval)
    elif rule.kind is Recurrence.WEEKLY:
        step = relativedelta(days=_weekly_advance(weekday_index(local), rule.weekly_days))
    elif rule.kind is Recurrence.MONTHLY:
        step = relativedelta(months=rule.interval)
    else:
        step = relativedelta(years=rule.interval)

    return (local + step).astimezone(anchor.tzinfo)


def roll_forward(occurrence: datetime, rule: RecurrenceRule, now: datetime, tz: tzinfo | None = None) -> datetime:
    """把已经过去的发生时间反复推进，直到不早于 now

    步数等于错过的周期数；不重复的规则或未过期的时间原样返回。
    """
    if not rule.recurs:
        return occurrence

    current = occurrence
    while current < now:
        following = next_occurrence(current, rule, tz)
        if following <= current:
            raise ValueError(f"重复规则没有推进时间: {rule}, 锚点 {current.isoformat()}")
        current = following
    return current


def _every(interval: int, unit: str) -> str:
    return f"Repeats every {interval} {unit}{'s' if interval > 1 else ''}"


def describe_recurrence(rule: RecurrenceRule) -> str:
    if rule.kind is Recurrence.NONE:
        return ""
    if rule.kind is Recurrence.DAILY:
        return _every(rule.interval, "day")
    if rule.kind is Recurrence.WEEKLY:
        if len(rule.weekly_days) == 7:
            return "Repeats daily"
        if rule.weekly_days:
            labels = ", ".join(DAYS_OF_WEEK[d] for d in sorted(rule.weekly_days))
            return f"Repeats weekly on {labels}"
        return "Repeats weekly"
    if rule.kind is Recurrence.MONTHLY:
        return _every(rule.interval, "month")
    return _every(rule.interval, "year")
