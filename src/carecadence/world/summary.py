from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional, Tuple

from carecadence.config.settings import USER_NAME
from carecadence.datamodel import Appointment, Medication, Task
from carecadence.utils import to_local

__all__ = ["DashboardSummary", "greeting_for", "partition_appointments", "build_summary"]


@dataclass
class DashboardSummary:
    user_name: str
    greeting: str
    upcoming_appointment_count: int
    medications_with_reminders: int
    pending_task_count: int
    next_appointment: Optional[Appointment] = None


def greeting_for(hour: int) -> str:
    if hour < 12:
        return "Good Morning"
    if hour < 18:
        return "Good Afternoon"
    return "Good Evening"


def partition_appointments(appointments: List[Appointment], now: datetime) -> Tuple[List[Appointment], List[Appointment]]:
    """按时间排序后拆成 (未到, 已过)"""
    ordered = sorted(appointments, key=lambda a: a.date)
    return [a for a in ordered if a.date >= now], [a for a in ordered if a.date < now]


def build_summary(
    appointments: List[Appointment],
    medications: List[Medication],
    tasks: List[Task],
    now: datetime,
    tz: tzinfo | None = None,
    user_name: str = USER_NAME,
) -> DashboardSummary:
    local_now = to_local(now, tz)
    # 今天零点之后的预约都算"即将到来"
    start_of_today = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    upcoming, _ = partition_appointments(appointments, start_of_today)

    return DashboardSummary(
        user_name=user_name,
        greeting=greeting_for(local_now.hour),
        upcoming_appointment_count=len(upcoming),
        medications_with_reminders=sum(1 for m in medications if m.reminders),
        pending_task_count=sum(1 for t in tasks if not t.is_completed),
        next_appointment=upcoming[0] if upcoming else None,
    )
