"""Hour arithmetic for time entries: shift durations and billable capping."""
from dataclasses import dataclass
from datetime import datetime, timedelta

from models import TimeEntry

# A wrapped clock-out further away than this is a reversed entry, not a night shift
MAX_SHIFT_HOURS = 16

CLOCK_FIELDS = frozenset({"clock_in", "clock_out", "break_minutes"})


def parse_clock(value: str) -> datetime:
    """Parse HH:MM (or HH:MM:SS) onto a fixed date."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid time '{value}'. Use HH:MM")


def calculate_hours(clock_in: str | None, clock_out: str | None, break_minutes: float = 0) -> float:
    """Worked hours between two clock times, minus the break, never negative.

    A clock-out earlier than the clock-in is taken to be on the next day.
    """
    if not clock_in or not clock_out:
        return 0.0

    start = parse_clock(clock_in)
    end = parse_clock(clock_out)
    wrapped = end < start
    if wrapped:
        end += timedelta(days=1)

    hours = (end - start).total_seconds() / 3600
    if wrapped and hours > MAX_SHIFT_HOURS:
        return 0.0
    return max(0.0, hours - (break_minutes or 0) / 60)


@dataclass
class BillableClamp:
    """Keeps billable hours within whichever of actual/available changed last."""

    actual_hours: float = 0.0
    available_hours: float = 8.0
    billable_hours: float = 0.0

    def set_actual(self, hours: float) -> float:
        self.actual_hours = hours
        self.billable_hours = min(hours, self.available_hours)
        return self.billable_hours

    def set_available(self, hours: float) -> float:
        self.available_hours = hours
        self.billable_hours = min(self.actual_hours, hours)
        return self.billable_hours


def derive_entry_hours(entry: TimeEntry, changed: set[str], creating: bool = False) -> TimeEntry:
    """Fill in the derived hour fields of an entry about to be saved.

    ``changed`` names the fields the caller supplied in this write.
    """
    actual_touched = creating or "actual_hours" in changed
    if entry.clock_in and entry.clock_out and "actual_hours" not in changed:
        if creating or changed & CLOCK_FIELDS:
            entry.actual_hours = round(
                calculate_hours(entry.clock_in, entry.clock_out, entry.break_minutes), 2
            )
            actual_touched = True

    if "total_hours" not in changed and (creating or actual_touched):
        entry.total_hours = entry.actual_hours

    if not entry.is_billable:
        entry.billable_hours = 0.0
        return entry

    if "billable_hours" in changed:
        entry.billable_hours = max(
            0.0, min(entry.billable_hours, entry.actual_hours, entry.available_hours)
        )
        return entry

    clamp = BillableClamp(
        actual_hours=entry.actual_hours,
        available_hours=entry.available_hours,
        billable_hours=entry.billable_hours,
    )
    if creating or changed & {"available_hours", "is_billable"}:
        clamp.set_available(entry.available_hours)
    if actual_touched:
        clamp.set_actual(entry.actual_hours)
    entry.billable_hours = clamp.billable_hours
    return entry
