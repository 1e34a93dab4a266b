"""实体调度器

每种实体(预约/服药/任务)各跑一个 EntityScheduler, 共用同一套流程, 差异由 EntityAdapter 描述:
1. 推进: 重复实体的发生时间早于 now 时，反复按规则推进到不早于 now (服药的多个时间各自推进)
2. 提醒: 对推进后仍未过去的发生时间判断是否落在提醒窗口内，未去重过就发通知并记下标记

同一轮 tick 内先推进后提醒，提醒永远基于最新的发生时间。
集合整体读出、整体写回；存储读写异常直接从 tick() 抛出，由 run_loop 记录后等下一轮重试。
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, tzinfo
from typing import Callable, Generic, List, Tuple, TypeVar

from carecadence.channels.base import NotificationSink
from carecadence.config.settings import (
    NOTIFY_SOUND_APPOINTMENTS,
    NOTIFY_SOUND_MEDICATIONS,
    NOTIFY_SOUND_TASKS,
    POLL_INTERVAL_SECONDS,
)
from carecadence.datamodel import Appointment, EntityKind, Medication, RecurrenceRule, Task
from carecadence.events import Bus, E, bus as default_bus
from carecadence.logger import scheduler_logger
from carecadence.metrics import SchedulerMetrics
from carecadence.storage.dedup import NotificationDeduplicator
from carecadence.storage.entity_store import (
    EntityCollection,
    appointments_collection,
    medications_collection,
    tasks_collection,
)
from carecadence.storage.kv import KVStore
from carecadence.utils import floor_minute, format_clock, now_local, to_iso
from carecadence.world.recurrence import roll_forward
from carecadence.world.reminder import is_due_now, should_fire_now

__all__ = [
    "Clock", "TickResult",
    "EntityAdapter", "AppointmentAdapter", "MedicationAdapter", "TaskAdapter",
    "EntityScheduler", "build_schedulers",
]

T = TypeVar("T")
Clock = Callable[[], datetime]


@dataclass
class TickResult:
    advanced: int = 0  # 被推进的发生时间个数
    fired: int = 0
    suppressed: int = 0  # 已经提醒过而被去重的次数


# ----------------- 实体适配 ----------------
class EntityAdapter(ABC, Generic[T]):
    kind: EntityKind
    title: str

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz

    @abstractmethod
    def occurrences(self, entity: T) -> List[datetime]:
        pass

    @abstractmethod
    def with_occurrences(self, entity: T, occurrences: List[datetime]) -> T:
        """返回替换了发生时间的新实体，不修改原实体"""
        pass

    @abstractmethod
    def render_body(self, entity: T, occurrence: datetime) -> str:
        pass

    def rule(self, entity: T) -> RecurrenceRule:
        return entity.rule

    def is_active(self, entity: T) -> bool:
        return True

    def lead_minutes(self, entity: T) -> int:
        return entity.reminder

    def should_fire(self, entity: T, occurrence: datetime, now: datetime) -> bool:
        return should_fire_now(occurrence, self.lead_minutes(entity), now)


class AppointmentAdapter(EntityAdapter[Appointment]):
    kind = EntityKind.APPOINTMENT
    title = "Appointment Reminder"

    def occurrences(self, entity: Appointment) -> List[datetime]:
        return [entity.date]

    def with_occurrences(self, entity: Appointment, occurrences: List[datetime]) -> Appointment:
        return replace(entity, date=occurrences[0])

    def render_body(self, entity: Appointment, occurrence: datetime) -> str:
        return f"Your appointment with {entity.provider} is at {format_clock(occurrence, self.tz)}."


def _format_dosage(dosage: float | int) -> str:
    if float(dosage).is_integer():
        return str(int(dosage))
    return str(dosage)


class MedicationAdapter(EntityAdapter[Medication]):
    """服药没有提前量，到点即提醒"""

    kind = EntityKind.MEDICATION
    title = "Medication Reminder"

    def occurrences(self, entity: Medication) -> List[datetime]:
        return list(entity.reminders)

    def with_occurrences(self, entity: Medication, occurrences: List[datetime]) -> Medication:
        return replace(entity, reminders=list(occurrences))

    def lead_minutes(self, entity: Medication) -> int:
        return 0

    def should_fire(self, entity: Medication, occurrence: datetime, now: datetime) -> bool:
        return is_due_now(occurrence, now)

    def render_body(self, entity: Medication, occurrence: datetime) -> str:
        return f"Time to take your {entity.name} ({_format_dosage(entity.dosage)} {entity.display_unit})."


class TaskAdapter(EntityAdapter[Task]):
    """已完成的任务既不推进也不提醒；没有截止时间的任务没有发生时间"""

    kind = EntityKind.TASK
    title = "Task Reminder"

    def occurrences(self, entity: Task) -> List[datetime]:
        return [entity.due_date] if entity.due_date is not None else []

    def with_occurrences(self, entity: Task, occurrences: List[datetime]) -> Task:
        return replace(entity, due_date=occurrences[0])

    def is_active(self, entity: Task) -> bool:
        return not entity.is_completed

    def render_body(self, entity: Task, occurrence: datetime) -> str:
        return f'Your task "{entity.title}" is due at {format_clock(occurrence, self.tz)}.'


# ----------------- 调度器 ----------------
class EntityScheduler(Generic[T]):
    def __init__(
        self,
        adapter: EntityAdapter[T],
        collection: EntityCollection[T],
        sink: NotificationSink,
        *,
        dedup: NotificationDeduplicator | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
        play_sound: bool = True,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        bus: Bus | None = None,
    ) -> None:
        self.adapter = adapter
        self.collection = collection
        self.sink = sink
        self.dedup = dedup or NotificationDeduplicator(collection.store, adapter.kind)
        self.tz = tz
        self.clock: Clock = clock or (lambda: now_local(self.tz))
        self.play_sound = play_sound
        self.poll_interval = poll_interval
        self.bus = bus or default_bus
        self.metrics = SchedulerMetrics()
        self.log = scheduler_logger(self.name)

        self._task: asyncio.Task[None] | None = None
        self._shutdown_event: asyncio.Event | None = None

    @property
    def name(self) -> str:
        return self.adapter.kind.value

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_status(self) -> dict[str, object]:
        return {
            "kind": self.name,
            "running": self.running,
            "metrics": self.metrics.snapshot(),
        }

    def _occurrences(self, entity: T) -> List[datetime]:
        # 调度按分钟对齐，发生时间的秒数不参与比较
        return [floor_minute(o) for o in self.adapter.occurrences(entity)]

    def _rollover(self, entity: T, now: datetime) -> Tuple[T, int]:
        if not self.adapter.is_active(entity):
            return entity, 0
        rule = self.adapter.rule(entity)
        if not rule.recurs:
            return entity, 0

        current = self._occurrences(entity)
        if not current:
            return entity, 0
        advanced = [roll_forward(o, rule, now, self.tz) for o in current]
        changed = sum(1 for before, after in zip(current, advanced) if before != after)
        if not changed:
            return entity, 0

        self.log.debug(f"推进 {entity.id}: {[to_iso(o) for o in current]} -> {[to_iso(o) for o in advanced]}")
        return self.adapter.with_occurrences(entity, advanced), changed

    async def _check_reminders(self, entity: T, now: datetime, result: TickResult) -> None:
        if not self.adapter.is_active(entity):
            return

        for occurrence in self._occurrences(entity):
            if occurrence < now:
                continue
            if not self.adapter.should_fire(entity, occurrence, now):
                continue

            key = self.dedup.key(entity.id, occurrence)
            if await self.dedup.has_fired(key):
                self.log.debug(f"已提醒过, 跳过: {key}")
                result.suppressed += 1
                self.metrics.record_duplicate()
                continue

            body = self.adapter.render_body(entity, occurrence)
            self.sink.notify(self.adapter.title, body, self.play_sound)
            await self.dedup.mark_fired(key)

            self.log.info(f"发出提醒: {entity.id} @ {to_iso(occurrence)}")
            result.fired += 1
            self.metrics.record_notification()
            self.bus.emit(E.REMINDER_FIRED, kind=self.adapter.kind, entity_id=entity.id, occurrence=occurrence)

    async def tick(self, now: datetime | None = None) -> TickResult:
        """执行一轮推进与提醒检查; 存储异常向上抛出"""
        now = floor_minute(self.clock() if now is None else now)
        result = TickResult()

        entities = await self.collection.load()
        updated: List[T] = []
        for entity in entities:
            new_entity, changed = self._rollover(entity, now)
            result.advanced += changed
            updated.append(new_entity)

        if result.advanced:
            await self.collection.save(updated)
            self.metrics.record_rollover(result.advanced)
            self.bus.emit(E.OCCURRENCE_ADVANCED, kind=self.adapter.kind, count=result.advanced)

        for entity in updated:
            await self._check_reminders(entity, now, result)

        self.log.trace(f"tick @ {to_iso(now)}: {result}")
        return result

    async def _guarded_tick(self) -> None:
        start_time = time.perf_counter()
        tick_error = False
        try:
            await self.tick()
        except Exception as e:
            tick_error = True
            self.log.opt(exception=e).error(f"调度器本轮执行失败, 下一轮重试: {e}")
            self.bus.emit(E.TICK_FAILED, kind=self.adapter.kind, error=e)
        finally:
            self.metrics.record_tick((time.perf_counter() - start_time) * 1000, error=tick_error)

    def _next_delay(self) -> float:
        # 对齐到轮询间隔的边界，避免累计漂移跳过某一分钟
        elapsed = self.clock().timestamp() % self.poll_interval
        return self.poll_interval - elapsed

    async def run_loop(self, shutdown_event: asyncio.Event) -> None:
        self.log.info("调度器主循环已启动")
        try:
            while not shutdown_event.is_set():
                await self._guarded_tick()
                try:
                    await asyncio.wait_for(shutdown_event.wait(), timeout=self._next_delay())
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            self.log.info("调度器主循环已取消")
            raise
        self.log.info("调度器主循环已关闭")

    def start(self) -> asyncio.Task[None]:
        """在当前事件循环中启动，需要在协程内调用"""
        if self.running:
            return self._task
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(self.run_loop(self._shutdown_event), name=f"scheduler-{self.name}")
        return self._task

    async def stop(self) -> None:
        """停止后续 tick; 正在执行的 tick 会先跑完"""
        if self._task is None:
            return
        self._shutdown_event.set()
        await self._task
        self._task = None
        self._shutdown_event = None


def build_schedulers(
    store: KVStore,
    sink: NotificationSink,
    *,
    clock: Clock | None = None,
    tz: tzinfo | None = None,
    poll_interval: float = POLL_INTERVAL_SECONDS,
) -> List[EntityScheduler]:
    """按配置创建预约、服药、任务三个调度器"""
    return [
        EntityScheduler(AppointmentAdapter(tz), appointments_collection(store), sink,
                        clock=clock, tz=tz, play_sound=NOTIFY_SOUND_APPOINTMENTS, poll_interval=poll_interval),
        EntityScheduler(MedicationAdapter(tz), medications_collection(store), sink,
                        clock=clock, tz=tz, play_sound=NOTIFY_SOUND_MEDICATIONS, poll_interval=poll_interval),
        EntityScheduler(TaskAdapter(tz), tasks_collection(store), sink,
                        clock=clock, tz=tz, play_sound=NOTIFY_SOUND_TASKS, poll_interval=poll_interval),
    ]
