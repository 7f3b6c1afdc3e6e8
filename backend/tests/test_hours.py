import pytest

from hours import BillableClamp, calculate_hours, derive_entry_hours
from models import TimeEntry


def make_entry(**kwargs):
    defaults = dict(user_id="u1", user_name="Test User", date="2024-01-15", category="project", target_name="Website")
    defaults.update(kwargs)
    return TimeEntry(**defaults)


def test_calculate_hours_with_break():
    assert calculate_hours("09:00", "17:30", 30) == pytest.approx(8.0)


def test_calculate_hours_overnight_shift():
    assert calculate_hours("22:00", "02:00", 0) == pytest.approx(4.0)
    assert calculate_hours("22:00", "06:00", 0) == pytest.approx(8.0)


def test_calculate_hours_standard_day():
    assert calculate_hours("09:00", "17:00", 60) == pytest.approx(7.0)


def test_calculate_hours_long_same_day_shift():
    """The shift cap only applies to spans that wrap past midnight."""
    assert calculate_hours("06:00", "23:00", 60) == pytest.approx(16.0)
    assert calculate_hours("05:00", "23:30", 0) == pytest.approx(18.5)


def test_calculate_hours_reversed_times_is_zero():
    """A clock-out one hour before clock-in is not a 23 hour shift."""
    assert calculate_hours("09:00", "08:00", 0) == 0


def test_calculate_hours_break_longer_than_shift():
    assert calculate_hours("09:00", "10:00", 90) == 0


def test_calculate_hours_missing_times():
    assert calculate_hours(None, "17:00") == 0
    assert calculate_hours("09:00", "") == 0


def test_calculate_hours_accepts_seconds():
    assert calculate_hours("09:00:00", "10:30:00") == pytest.approx(1.5)


def test_calculate_hours_rejects_garbage():
    with pytest.raises(ValueError):
        calculate_hours("nine", "17:00")


def test_billable_clamp_follows_last_change():
    clamp = BillableClamp(actual_hours=0, available_hours=8)
    assert clamp.set_actual(10) == 8
    assert clamp.set_available(6) == 6
    assert clamp.set_actual(4) == 4
    assert clamp.set_available(12) == 4


def test_derive_on_create_from_clock_times():
    entry = make_entry(clock_in="08:00", clock_out="19:00", break_minutes=60, is_billable=True)
    derive_entry_hours(entry, set(), creating=True)
    assert entry.actual_hours == 10
    assert entry.total_hours == 10
    assert entry.billable_hours == 8


def test_derive_explicit_actual_wins_over_clock_times():
    entry = make_entry(clock_in="09:00", clock_out="17:00", actual_hours=3, is_billable=True)
    derive_entry_hours(entry, {"actual_hours"}, creating=True)
    assert entry.actual_hours == 3
    assert entry.billable_hours == 3


def test_derive_non_billable_entry_has_no_billable_hours():
    entry = make_entry(clock_in="09:00", clock_out="17:00", billable_hours=5, is_billable=False)
    derive_entry_hours(entry, {"billable_hours"}, creating=True)
    assert entry.actual_hours == 8
    assert entry.billable_hours == 0


def test_derive_explicit_billable_is_capped():
    entry = make_entry(actual_hours=6, available_hours=8, billable_hours=7, is_billable=True)
    derive_entry_hours(entry, {"actual_hours", "billable_hours"}, creating=True)
    assert entry.billable_hours == 6


def test_derive_explicit_total_is_kept():
    entry = make_entry(actual_hours=6, total_hours=7.5)
    derive_entry_hours(entry, {"actual_hours", "total_hours"}, creating=True)
    assert entry.total_hours == 7.5


def test_derive_update_recomputes_only_when_clock_changes():
    entry = make_entry(clock_in="09:00", clock_out="17:00", actual_hours=5, total_hours=5, billable_hours=5, is_billable=True)
    derive_entry_hours(entry, {"description"})
    assert entry.actual_hours == 5

    entry.clock_out = "18:00"
    derive_entry_hours(entry, {"clock_out"})
    assert entry.actual_hours == 9
    assert entry.total_hours == 9
    assert entry.billable_hours == 8


def test_derive_update_available_hours_reclamps():
    entry = make_entry(actual_hours=7, total_hours=7, billable_hours=7, available_hours=8, is_billable=True)
    entry.available_hours = 4
    derive_entry_hours(entry, {"available_hours"})
    assert entry.billable_hours == 4
