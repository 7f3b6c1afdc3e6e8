"""Reminders for users who have not logged their time."""
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from models import Reminder, User, as_utc, utcnow
from repository import Repository
from store import EntryStore

logger = logging.getLogger(__name__)

RETENTION_DAYS = 30


@dataclass
class ReminderSettings:
    daily_enabled: bool = True
    daily_time: str = "18:00"
    weekly_enabled: bool = True
    weekly_day: int = 4  # Monday is 0
    weekly_time: str = "17:00"
    monthly_enabled: bool = True
    monthly_day: int = 1
    monthly_time: str = "09:00"


def previous_week(today: date) -> tuple[date, date]:
    """Monday and Sunday of the week before the one containing today."""
    current_monday = today - timedelta(days=today.weekday())
    previous_monday = current_monday - timedelta(days=7)
    return previous_monday, previous_monday + timedelta(days=6)


def previous_month(today: date) -> tuple[date, date]:
    last_day = today.replace(day=1) - timedelta(days=1)
    return last_day.replace(day=1), last_day


def _has_entries_between(dates: set[str], start: date, end: date) -> bool:
    lower, upper = start.isoformat(), end.isoformat()
    return any(lower <= d <= upper for d in dates)


def due_reminders(dates: set[str], now: datetime, settings: ReminderSettings) -> list[tuple[str, str, str]]:
    """(type, period_key, message) for every reminder a user is due at ``now``."""
    today = now.date()
    clock = now.strftime("%H:%M")
    due = []

    if settings.daily_enabled and clock >= settings.daily_time:
        key = today.isoformat()
        if key not in dates:
            due.append(("daily", key, f"Reminder: please log your time for today ({key})."))

    if (
        settings.weekly_enabled
        and today.weekday() == settings.weekly_day
        and clock >= settings.weekly_time
    ):
        start, end = previous_week(today)
        if not _has_entries_between(dates, start, end):
            iso = start.isocalendar()
            due.append((
                "weekly",
                f"{iso.year}-W{iso.week:02d}",
                f"Weekly reminder: you haven't logged any time entries for last week "
                f"(week {iso.week}). Please update your timesheet.",
            ))

    if (
        settings.monthly_enabled
        and today.day == settings.monthly_day
        and clock >= settings.monthly_time
    ):
        start, end = previous_month(today)
        if not _has_entries_between(dates, start, end):
            due.append((
                "monthly",
                start.strftime("%Y-%m"),
                f"Monthly reminder: you haven't logged any time entries for "
                f"{start.strftime('%B %Y')}. Please complete your monthly timesheet.",
            ))

    return due


def purge_old_reminders(repo: Repository, now: datetime) -> int:
    cutoff = as_utc(now) - timedelta(days=RETENTION_DAYS)
    purged = 0
    for reminder in repo.list(Reminder):
        if as_utc(reminder.created_at) < cutoff:
            repo.delete(Reminder, reminder.id)
            purged += 1
    return purged


def check_and_create_reminders(
    repo: Repository,
    now: datetime | None = None,
    settings: ReminderSettings | None = None,
) -> list[Reminder]:
    """Create any due reminders (at most one per user, type and period) and commit.

    The schedule is checked against local time and reminders are stamped in
    UTC. A naive ``now`` is taken as local time.
    """
    now = now or utcnow()
    local_now = now if now.tzinfo is None else now.astimezone()
    now = now.astimezone(UTC)
    settings = settings or ReminderSettings()
    store = EntryStore(repo)
    sent = {(r.user_id, r.type, r.period_key) for r in repo.list(Reminder)}

    created = []
    try:
        for user in repo.list(User):
            dates = {e.date for e in store.list_by_user(user.id)}
            for reminder_type, period_key, message in due_reminders(dates, local_now, settings):
                if (user.id, reminder_type, period_key) in sent:
                    continue
                reminder = Reminder(
                    user_id=user.id,
                    type=reminder_type,
                    period_key=period_key,
                    message=message,
                    created_at=now,
                )
                created.append(repo.add(reminder))
                sent.add((user.id, reminder_type, period_key))
        purged = purge_old_reminders(repo, now)
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    logger.info(f"Reminder check at {now.isoformat()}: {len(created)} created, {purged} purged")
    return created
