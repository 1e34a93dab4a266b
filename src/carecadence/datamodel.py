"""数据模型

实体在入口处(from_dict)一次性完成归一化: 重复规则的缺省值、非法间隔、星期取值范围
都在这里处理，后续计算拿到的一定是完整的 RecurrenceRule。
序列化格式沿用前端 localStorage 里的 camelCase 字段。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from carecadence.logger import logger
from carecadence.utils import floor_minute, parse_iso, to_iso

__all__ = [
    "Recurrence", "RecurrenceRule", "EntityKind", "TaskResolution",
    "Streak", "Appointment", "Medication", "Task",
    "HealthMetrics",
]


# ----------------- 重复规则 ----------------
class Recurrence(str, Enum):
    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"

    @classmethod
    def parse(cls, raw: Any) -> "Recurrence":
        if isinstance(raw, Recurrence):
            return raw
        if raw is None or str(raw).strip() == "":
            return cls.NONE
        try:
            return cls(str(raw).strip().capitalize())
        except ValueError:
            logger.warning(f"未知的重复类型: {raw!r}, 按不重复处理")
            return cls.NONE


def _positive_int(value: Any) -> int:
    """间隔缺省或非正数时取 1"""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 1
    return number if number > 0 else 1


def _weekdays(values: Optional[Iterable[Any]]) -> FrozenSet[int]:
    days = set()
    for value in values or ():
        try:
            day = int(value)
        except (TypeError, ValueError):
            continue
        if 0 <= day <= 6:
            days.add(day)
    return frozenset(days)


@dataclass(frozen=True)
class RecurrenceRule:
    """kind=NONE/DAILY/WEEKLY/MONTHLY/YEARLY; interval 对 WEEKLY 无意义(恒为 1)

    weekly_days 使用 0=周日 .. 6=周六，允许为空(退化为每 7 天)
    """

    kind: Recurrence = Recurrence.NONE
    interval: int = 1
    weekly_days: FrozenSet[int] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", Recurrence.parse(self.kind))
        object.__setattr__(self, "interval", 1 if self.kind is Recurrence.WEEKLY else _positive_int(self.interval))
        object.__setattr__(self, "weekly_days", _weekdays(self.weekly_days) if self.kind is Recurrence.WEEKLY else frozenset())

    @property
    def recurs(self) -> bool:
        return self.kind is not Recurrence.NONE

    @classmethod
    def none(cls) -> "RecurrenceRule":
        return cls()

    @classmethod
    def daily(cls, interval: int = 1) -> "RecurrenceRule":
        return cls(Recurrence.DAILY, interval)

    @classmethod
    def weekly(cls, days: Iterable[int] = ()) -> "RecurrenceRule":
        return cls(Recurrence.WEEKLY, 1, frozenset(days))

    @classmethod
    def monthly(cls, interval: int = 1) -> "RecurrenceRule":
        return cls(Recurrence.MONTHLY, interval)

    @classmethod
    def yearly(cls, interval: int = 1) -> "RecurrenceRule":
        return cls(Recurrence.YEARLY, interval)

    @classmethod
    def from_fields(cls, data: Dict[str, Any]) -> "RecurrenceRule":
        """从实体字段(recurrence/weeklyDays/dailyInterval/...)构造"""
        kind = Recurrence.parse(data.get("recurrence"))
        interval = {
            Recurrence.DAILY: data.get("dailyInterval"),
            Recurrence.MONTHLY: data.get("monthlyInterval"),
            Recurrence.YEARLY: data.get("yearlyInterval"),
        }.get(kind, 1)
        return cls(kind, interval, data.get("weeklyDays") or ())

    def to_fields(self) -> Dict[str, Any]:
        return {
            "recurrence": self.kind.value,
            "weeklyDays": sorted(self.weekly_days),
            "dailyInterval": self.interval if self.kind is Recurrence.DAILY else 1,
            "monthlyInterval": self.interval if self.kind is Recurrence.MONTHLY else 1,
            "yearlyInterval": self.interval if self.kind is Recurrence.YEARLY else 1,
        }


# ----------------- 实体 ----------------
class EntityKind(str, Enum):
    # 取值同时作为去重 key 的命名空间前缀
    APPOINTMENT = "appt"
    MEDICATION = "med"
    TASK = "task"


class TaskResolution(str, Enum):
    ARCHIVE_AND_CLONE = "clone"
    ADVANCE_IN_PLACE = "advance"


def _optional_time(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    value = raw if isinstance(raw, datetime) else parse_iso(str(raw))
    return floor_minute(value)


def _number(raw: Any) -> float | int:
    if isinstance(raw, (int, float)):
        return raw
    try:
        return int(raw)
    except (TypeError, ValueError):
        try:
            return float(raw)
        except (TypeError, ValueError):
            return 0


@dataclass
class Streak:
    count: int = 0
    last_logged_date: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Streak":
        if not data:
            return cls()
        raw_date = data.get("lastTakenDate")
        return cls(
            count=max(0, int(data.get("count") or 0)),
            last_logged_date=date.fromisoformat(raw_date) if raw_date else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "lastTakenDate": self.last_logged_date.isoformat() if self.last_logged_date else None,
        }


@dataclass
class Appointment:
    id: str
    date: datetime
    provider: str = ""
    type: str = ""
    custom_type: Optional[str] = None
    location: str = ""
    notes: str = ""
    reminder: int = 0  # 提前多少分钟提醒, 0 表示不提醒
    rule: RecurrenceRule = field(default_factory=RecurrenceRule)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Appointment":
        return cls(
            id=str(data["id"]),
            date=_optional_time(data["date"]),
            provider=data.get("provider", ""),
            type=data.get("type", ""),
            custom_type=data.get("customType"),
            location=data.get("location", ""),
            notes=data.get("notes", ""),
            reminder=int(data.get("reminder") or 0),
            rule=RecurrenceRule.from_fields(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "customType": self.custom_type,
            "provider": self.provider,
            "date": to_iso(self.date),
            "location": self.location,
            "notes": self.notes,
            "reminder": self.reminder,
            **self.rule.to_fields(),
        }


@dataclass
class Medication:
    id: str
    name: str
    dosage: float | int = 0
    dosage_unit: str = ""
    custom_dosage_unit: Optional[str] = None
    frequency: str = ""
    notes: str = ""
    reminders: List[datetime] = field(default_factory=list)  # 每个时间独立推进
    rule: RecurrenceRule = field(default_factory=RecurrenceRule)
    streak: Streak = field(default_factory=Streak)

    @property
    def display_unit(self) -> str:
        if self.dosage_unit == "Other":
            return self.custom_dosage_unit or ""
        return self.dosage_unit

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Medication":
        reminders = [_optional_time(r) for r in data.get("reminders") or []]
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            dosage=_number(data.get("dosage", 0)),
            dosage_unit=data.get("dosageUnit", ""),
            custom_dosage_unit=data.get("customDosageUnit"),
            frequency=data.get("frequency", ""),
            notes=data.get("notes", ""),
            reminders=[r for r in reminders if r is not None],
            rule=RecurrenceRule.from_fields(data),
            streak=Streak.from_dict(data.get("streak")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dosage": self.dosage,
            "dosageUnit": self.dosage_unit,
            "customDosageUnit": self.custom_dosage_unit,
            "frequency": self.frequency,
            "notes": self.notes,
            "reminders": [to_iso(r) for r in self.reminders],
            **self.rule.to_fields(),
            "streak": self.streak.to_dict(),
        }


@dataclass
class Task:
    id: str
    title: str
    notes: str = ""
    due_date: Optional[datetime] = None
    is_completed: bool = False
    rule: RecurrenceRule = field(default_factory=RecurrenceRule)
    reminder: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            notes=data.get("notes") or "",
            due_date=_optional_time(data.get("dueDate")),
            is_completed=bool(data.get("isCompleted", False)),
            rule=RecurrenceRule.from_fields(data),
            reminder=int(data.get("reminder") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "notes": self.notes,
            "dueDate": to_iso(self.due_date) if self.due_date else None,
            "isCompleted": self.is_completed,
            **self.rule.to_fields(),
            "reminder": self.reminder,
        }


# ----------------- 健康洞察 ----------------
@dataclass
class HealthMetrics:
    heart_rate: str = ""
    blood_pressure: str = ""
    activity_type: str = ""
    activity_duration: str = ""  # 总分钟数
    sleep_hours: str = ""  # 两位小数
    notes: str = ""
