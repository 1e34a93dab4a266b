from datetime import date

import pytest

from carecadence.datamodel import Medication, Streak
from carecadence.world.medication import log_dose, log_dose_in, logged_today, streak_status


def med(streak=None):
    return Medication(id="m1", name="Aspirin", dosage=100, dosage_unit="mg", streak=streak or Streak())


def test_first_log_starts_streak():
    logged = log_dose(med(), date(2024, 1, 5))
    assert logged.streak == Streak(count=1, last_logged_date=date(2024, 1, 5))


def test_consecutive_day_extends_streak():
    logged = log_dose(med(Streak(3, date(2024, 1, 4))), date(2024, 1, 5))
    assert logged.streak.count == 4


def test_same_day_log_is_ignored():
    original = med(Streak(3, date(2024, 1, 5)))
    assert log_dose(original, date(2024, 1, 5)) is original


def test_gap_resets_streak():
    logged = log_dose(med(Streak(10, date(2024, 1, 1))), date(2024, 1, 5))
    assert logged.streak == Streak(count=1, last_logged_date=date(2024, 1, 5))


def test_log_dose_in_list():
    other = Medication(id="m2", name="Vitamin D")
    result = log_dose_in([med(), other], "m1", date(2024, 1, 5))
    assert result[0].streak.count == 1
    assert result[1] is other
    with pytest.raises(KeyError):
        log_dose_in(result, "nope", date(2024, 1, 5))


def test_streak_status_text():
    today = date(2024, 1, 5)
    assert streak_status(med(), today) is None
    assert streak_status(med(Streak(1, today)), today) == "Last logged: Today"
    assert streak_status(med(Streak(1, date(2024, 1, 4))), today) == "Last logged: Yesterday"
    assert streak_status(med(Streak(1, date(2024, 1, 1))), today) == "Last logged: 4 days ago"
    assert logged_today(med(Streak(1, today)), today)
    assert not logged_today(med(), today)


def test_display_unit_prefers_custom_unit():
    assert Medication(id="m", name="X", dosage_unit="Other", custom_dosage_unit="puffs").display_unit == "puffs"
    assert Medication(id="m", name="X", dosage_unit="ml").display_unit == "ml"
