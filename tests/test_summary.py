from carecadence.datamodel import Appointment, Medication, Task
from carecadence.world.summary import build_summary, greeting_for, partition_appointments

from conftest import UTC, at


def test_greeting_by_hour():
    assert greeting_for(0) == "Good Morning"
    assert greeting_for(11) == "Good Morning"
    assert greeting_for(12) == "Good Afternoon"
    assert greeting_for(17) == "Good Afternoon"
    assert greeting_for(18) == "Good Evening"


def test_partition_appointments_sorted():
    later = Appointment(id="later", date=at(2024, 1, 9, 10))
    past = Appointment(id="past", date=at(2024, 1, 1, 10))
    soon = Appointment(id="soon", date=at(2024, 1, 6, 10))

    upcoming, previous = partition_appointments([later, past, soon], at(2024, 1, 5, 12))
    assert [a.id for a in upcoming] == ["soon", "later"]
    assert [a.id for a in previous] == ["past"]


def test_build_summary_counts():
    appointments = [
        Appointment(id="today-earlier", date=at(2024, 1, 5, 8)),
        Appointment(id="tomorrow", date=at(2024, 1, 6, 9)),
        Appointment(id="old", date=at(2024, 1, 1, 9)),
    ]
    medications = [
        Medication(id="m1", name="Aspirin", reminders=[at(2024, 1, 5, 9)]),
        Medication(id="m2", name="As needed"),
    ]
    tasks = [Task(id="t1", title="A"), Task(id="t2", title="B", is_completed=True)]

    summary = build_summary(appointments, medications, tasks, at(2024, 1, 5, 14), UTC, user_name="Sam")

    assert summary.user_name == "Sam"
    assert summary.greeting == "Good Afternoon"
    assert summary.upcoming_appointment_count == 2
    assert summary.next_appointment.id == "today-earlier"
    assert summary.medications_with_reminders == 1
    assert summary.pending_task_count == 1


def test_build_summary_without_appointments():
    summary = build_summary([], [], [], at(2024, 1, 5, 20), UTC, user_name="Sam")
    assert summary.next_appointment is None
    assert summary.greeting == "Good Evening"
