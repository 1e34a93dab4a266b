import asyncio
from datetime import timedelta

import pytest

from carecadence.datamodel import Appointment, EntityKind, Medication, RecurrenceRule, Task
from carecadence.events import E
from carecadence.storage.entity_store import (
    APPOINTMENTS_KEY,
    appointments_collection,
    medications_collection,
    tasks_collection,
)
from carecadence.world.scheduler import (
    AppointmentAdapter,
    EntityScheduler,
    MedicationAdapter,
    TaskAdapter,
    build_schedulers,
)

from conftest import UTC, FailingStore, at


def medication_scheduler(store, sink, bus, **kwargs):
    return EntityScheduler(MedicationAdapter(UTC), medications_collection(store), sink, tz=UTC, bus=bus, **kwargs)


def appointment_scheduler(store, sink, bus, **kwargs):
    return EntityScheduler(AppointmentAdapter(UTC), appointments_collection(store), sink, tz=UTC, bus=bus, **kwargs)


def task_scheduler(store, sink, bus, **kwargs):
    return EntityScheduler(TaskAdapter(UTC), tasks_collection(store), sink, tz=UTC, bus=bus, **kwargs)


def aspirin(**overrides):
    fields = dict(
        id="m1",
        name="Aspirin",
        dosage=100,
        dosage_unit="mg",
        reminders=[at(2024, 1, 1, 9)],
        rule=RecurrenceRule.daily(1),
    )
    fields.update(overrides)
    return Medication(**fields)


def test_medication_rolls_forward_and_fires_once(store, sink, bus):
    scheduler = medication_scheduler(store, sink, bus)
    collection = medications_collection(store)

    async def scenario():
        await collection.save([aspirin()])
        first = await scheduler.tick(at(2024, 1, 5, 9))
        after_first = await collection.load()
        second = await scheduler.tick(at(2024, 1, 5, 9, 1))
        return first, after_first, second

    first, after_first, second = asyncio.run(scenario())

    assert first.advanced == 1
    assert first.fired == 1
    assert after_first[0].reminders == [at(2024, 1, 5, 9)]
    assert second.fired == 0
    assert sink.calls == [("Medication Reminder", "Time to take your Aspirin (100 mg).", True)]
    assert "notified-med-m1-2024-01-05T09:00:00.000Z" in store.data


def test_same_tick_twice_notifies_once(store, sink, bus):
    scheduler = appointment_scheduler(store, sink, bus)
    appt = Appointment(id="a1", date=at(2024, 2, 1, 10), provider="Dr. Smith", reminder=15)

    async def scenario():
        await appointments_collection(store).save([appt])
        return await scheduler.tick(at(2024, 2, 1, 9, 45)), await scheduler.tick(at(2024, 2, 1, 9, 45))

    first, second = asyncio.run(scenario())

    assert (first.fired, second.fired, second.suppressed) == (1, 0, 1)
    assert sink.calls == [("Appointment Reminder", "Your appointment with Dr. Smith is at 10:00.", True)]
    assert scheduler.metrics.duplicate_suppressed_count == 1


def test_rollover_happens_before_reminder_check(store, sink, bus):
    scheduler = appointment_scheduler(store, sink, bus)
    appt = Appointment(id="a1", date=at(2024, 1, 1, 10), provider="Clinic", reminder=60, rule=RecurrenceRule.weekly())

    async def scenario():
        await appointments_collection(store).save([appt])
        result = await scheduler.tick(at(2024, 1, 8, 9))
        return result, await appointments_collection(store).load()

    result, loaded = asyncio.run(scenario())

    assert loaded[0].date == at(2024, 1, 8, 10)
    assert result.fired == 1
    assert "notified-appt-a1-2024-01-08T10:00:00.000Z" in store.data


def test_past_non_recurring_entity_is_left_alone(store, sink, bus):
    scheduler = appointment_scheduler(store, sink, bus)
    appt = Appointment(id="a1", date=at(2024, 1, 1, 10), reminder=15)

    async def scenario():
        await appointments_collection(store).save([appt])
        before = store.data[APPOINTMENTS_KEY]
        result = await scheduler.tick(at(2024, 1, 2, 9, 45))
        return before, result

    before, result = asyncio.run(scenario())

    assert result.advanced == 0
    assert result.fired == 0
    assert store.data[APPOINTMENTS_KEY] == before
    assert sink.calls == []


def test_medication_occurrences_advance_independently(store, sink, bus):
    scheduler = medication_scheduler(store, sink, bus)
    med = aspirin(reminders=[at(2024, 1, 1, 8), at(2024, 1, 1, 20), at(2024, 1, 9, 8)])

    async def scenario():
        await medications_collection(store).save([med])
        result = await scheduler.tick(at(2024, 1, 3, 12))
        return result, await medications_collection(store).load()

    result, loaded = asyncio.run(scenario())

    assert result.advanced == 2
    assert loaded[0].reminders == [at(2024, 1, 4, 8), at(2024, 1, 3, 20), at(2024, 1, 9, 8)]


def test_completed_and_undated_tasks_are_skipped(store, sink, bus):
    scheduler = task_scheduler(store, sink, bus)
    tasks = [
        Task(id="done", title="Old", due_date=at(2024, 1, 1, 9), is_completed=True, rule=RecurrenceRule.daily(), reminder=10),
        Task(id="nodate", title="Someday", rule=RecurrenceRule.daily(), reminder=10),
        Task(id="rent", title="Pay rent", due_date=at(2024, 1, 1, 9), rule=RecurrenceRule.monthly(), reminder=30),
    ]

    async def scenario():
        await tasks_collection(store).save(tasks)
        result = await scheduler.tick(at(2024, 2, 1, 8, 30))
        return result, {t.id: t for t in await tasks_collection(store).load()}

    result, loaded = asyncio.run(scenario())

    assert loaded["done"].due_date == at(2024, 1, 1, 9)
    assert loaded["nodate"].due_date is None
    assert loaded["rent"].due_date == at(2024, 2, 1, 9)
    assert result.advanced == 1
    assert sink.calls == [("Task Reminder", 'Your task "Pay rent" is due at 09:00.', True)]


def test_play_sound_flag_is_passed_to_sink(store, sink, bus):
    scheduler = task_scheduler(store, sink, bus, play_sound=False)
    task = Task(id="t1", title="Stretch", due_date=at(2024, 1, 1, 9), reminder=5)

    async def scenario():
        await tasks_collection(store).save([task])
        await scheduler.tick(at(2024, 1, 1, 8, 55))

    asyncio.run(scenario())
    assert sink.calls == [("Task Reminder", 'Your task "Stretch" is due at 09:00.', False)]


def test_default_now_is_floored_to_the_minute(store, sink, bus):
    scheduler = medication_scheduler(store, sink, bus, clock=lambda: at(2024, 1, 5, 9, 0, 42))

    async def scenario():
        await medications_collection(store).save([aspirin(reminders=[at(2024, 1, 5, 9)])])
        return await scheduler.tick()

    result = asyncio.run(scenario())
    assert result.advanced == 0
    assert result.fired == 1


def test_reminder_fired_event_is_emitted(store, sink, bus):
    seen = []

    @bus.on(E.REMINDER_FIRED)
    def record(kind, entity_id, occurrence):
        seen.append((kind, entity_id, occurrence))

    scheduler = medication_scheduler(store, sink, bus)

    async def scenario():
        await medications_collection(store).save([aspirin(reminders=[at(2024, 1, 5, 9)])])
        await scheduler.tick(at(2024, 1, 5, 9))

    asyncio.run(scenario())
    assert seen == [(EntityKind.MEDICATION, "m1", at(2024, 1, 5, 9))]


def test_store_failure_propagates_from_tick(sink, bus):
    scheduler = medication_scheduler(FailingStore(), sink, bus)
    with pytest.raises(RuntimeError, match="store unavailable"):
        asyncio.run(scheduler.tick(at(2024, 1, 5, 9)))


def test_run_loop_survives_failing_ticks_and_stops(sink, bus):
    scheduler = medication_scheduler(FailingStore(), sink, bus, poll_interval=0.01, clock=lambda: at(2024, 1, 5, 9))

    async def scenario():
        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.05)
        await scheduler.stop()

    asyncio.run(scenario())

    assert not scheduler.running
    assert scheduler.metrics.tick_count >= 1
    assert scheduler.metrics.tick_error_count == scheduler.metrics.tick_count
    assert scheduler.get_status()["running"] is False


def test_run_loop_ticks_until_shutdown(store, sink, bus):
    scheduler = medication_scheduler(store, sink, bus, poll_interval=0.01, clock=lambda: at(2024, 1, 5, 9))

    async def scenario():
        await medications_collection(store).save([aspirin()])
        shutdown_event = asyncio.Event()
        loop_task = asyncio.create_task(scheduler.run_loop(shutdown_event))
        await asyncio.sleep(0.05)
        shutdown_event.set()
        await loop_task

    asyncio.run(scenario())

    assert scheduler.metrics.tick_count >= 2
    assert scheduler.metrics.tick_error_count == 0
    assert len(sink.calls) == 1


def test_build_schedulers_covers_each_kind(store, sink):
    schedulers = build_schedulers(store, sink, tz=UTC)
    assert [s.name for s in schedulers] == ["appt", "med", "task"]
    assert all(s.dedup.store is store for s in schedulers)


def test_reminder_with_seconds_fires_once_across_a_minute_sweep(store, sink, bus):
    clock_now = [None]
    scheduler = medication_scheduler(store, sink, bus, clock=lambda: clock_now[0])

    async def scenario():
        await medications_collection(store).save([aspirin(reminders=[at(2024, 1, 4, 9, 0, 30)])])
        for minute in range(5):
            clock_now[0] = at(2024, 1, 5, 8, 58, 5) + timedelta(minutes=minute)
            await scheduler.tick()
        return await medications_collection(store).load()

    loaded = asyncio.run(scenario())

    assert sink.calls == [("Medication Reminder", "Time to take your Aspirin (100 mg).", True)]
    assert loaded[0].reminders == [at(2024, 1, 6, 9)]


def test_explicit_now_with_seconds_is_floored(store, sink, bus):
    scheduler = medication_scheduler(store, sink, bus)

    async def scenario():
        await medications_collection(store).save([aspirin(reminders=[at(2024, 1, 5, 9)])])
        return await scheduler.tick(at(2024, 1, 5, 9, 0, 45))

    result = asyncio.run(scenario())
    assert (result.advanced, result.fired) == (0, 1)
