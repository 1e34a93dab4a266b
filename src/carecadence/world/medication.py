"""服药打卡与连续天数

连续天数只由用户打卡修改，调度器不碰:
- 今天已打卡: 不变
- 上次打卡是昨天: +1
- 其他情况: 重置为 1
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import List

from carecadence.datamodel import Medication, Streak
from carecadence.logger import logger

__all__ = ["log_dose", "log_dose_in", "logged_today", "streak_status"]


def log_dose(medication: Medication, today: date) -> Medication:
    last = medication.streak.last_logged_date
    if last == today:
        return medication

    count = medication.streak.count + 1 if last == today - timedelta(days=1) else 1
    return replace(medication, streak=Streak(count=count, last_logged_date=today))


def log_dose_in(medications: List[Medication], medication_id: str, today: date) -> List[Medication]:
    if not any(m.id == medication_id for m in medications):
        raise KeyError(medication_id)
    updated = [log_dose(m, today) if m.id == medication_id else m for m in medications]
    logger.debug(f"服药打卡: {medication_id} @ {today.isoformat()}")
    return updated


def logged_today(medication: Medication, today: date) -> bool:
    return medication.streak.last_logged_date == today


def streak_status(medication: Medication, today: date) -> str | None:
    last = medication.streak.last_logged_date
    if last is None:
        return None
    diff_days = (today - last).days
    if diff_days == 0:
        return "Last logged: Today"
    if diff_days == 1:
        return "Last logged: Yesterday"
    return f"Last logged: {diff_days} days ago"
