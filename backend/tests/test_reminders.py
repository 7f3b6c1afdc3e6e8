from datetime import UTC, date, datetime, timedelta, timezone

import reminders
from models import Reminder, TimeEntry, as_utc
from reminders import (
    ReminderSettings,
    check_and_create_reminders,
    due_reminders,
    previous_month,
    previous_week,
)
from store import EntryStore

SETTINGS = ReminderSettings()


def test_previous_week_and_month():
    assert previous_week(date(2024, 1, 19)) == (date(2024, 1, 8), date(2024, 1, 14))
    assert previous_month(date(2024, 3, 1)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_daily_reminder_after_cutoff_only():
    # Wednesday
    assert due_reminders(set(), datetime(2024, 1, 17, 17, 59), SETTINGS) == []
    due = due_reminders(set(), datetime(2024, 1, 17, 18, 0), SETTINGS)
    assert [(kind, key) for kind, key, _ in due] == [("daily", "2024-01-17")]


def test_no_daily_reminder_when_logged():
    assert due_reminders({"2024-01-17"}, datetime(2024, 1, 17, 19, 0), SETTINGS) == []


def test_weekly_reminder_on_friday():
    due = due_reminders({"2024-01-19"}, datetime(2024, 1, 19, 17, 30), SETTINGS)
    assert [(kind, key) for kind, key, _ in due] == [("weekly", "2024-W02")]

    assert due_reminders({"2024-01-10", "2024-01-19"}, datetime(2024, 1, 19, 17, 30), SETTINGS) == []


def test_monthly_reminder_on_first_of_month():
    due = due_reminders(set(), datetime(2024, 2, 1, 9, 30), SETTINGS)
    monthly = [d for d in due if d[0] == "monthly"]
    assert monthly[0][1] == "2024-01"
    assert "January 2024" in monthly[0][2]

    due = due_reminders({"2024-01-22"}, datetime(2024, 2, 1, 9, 30), SETTINGS)
    assert [d for d in due if d[0] == "monthly"] == []


def test_disabled_reminders():
    settings = ReminderSettings(daily_enabled=False, weekly_enabled=False, monthly_enabled=False)
    assert due_reminders(set(), datetime(2024, 2, 1, 23, 0), settings) == []


def test_check_creates_each_reminder_once(repo, users):
    now = datetime(2024, 1, 17, 18, 30)
    EntryStore(repo).save(
        TimeEntry(
            user_id=users["alice"].id,
            user_name=users["alice"].name,
            date="2024-01-17",
            category="project",
            target_name="Website",
        )
    )
    repo.commit()

    created = check_and_create_reminders(repo, now=now)
    assert len(created) == len(users) - 1
    assert users["alice"].id not in {r.user_id for r in created}
    assert all(r.period_key == "2024-01-17" for r in created)

    assert check_and_create_reminders(repo, now=now + timedelta(minutes=30)) == []
    assert len(repo.list(Reminder)) == len(users) - 1


def test_check_purges_old_reminders(repo, users):
    old = datetime.now(UTC) - timedelta(days=45)
    repo.add(Reminder(user_id=users["bob"].id, type="daily", period_key="old", message="old", created_at=old))
    repo.commit()

    check_and_create_reminders(repo, now=datetime.now(UTC), settings=ReminderSettings(
        daily_enabled=False, weekly_enabled=False, monthly_enabled=False
    ))
    assert repo.list(Reminder) == []


ALWAYS_DAILY = ReminderSettings(daily_time="00:00", weekly_enabled=False, monthly_enabled=False)


def test_reminders_are_stamped_in_utc(repo, users):
    now = datetime(2024, 1, 17, 20, 0, tzinfo=timezone(timedelta(hours=2)))
    created = check_and_create_reminders(repo, now=now, settings=ALWAYS_DAILY)
    assert len(created) == len(users)
    assert all(as_utc(r.created_at) == datetime(2024, 1, 17, 18, 0, tzinfo=UTC) for r in created)


def test_default_clock_is_utc(repo, users, monkeypatch):
    fixed = datetime(2024, 3, 4, 12, 0, tzinfo=UTC)
    monkeypatch.setattr(reminders, "utcnow", lambda: fixed)

    created = check_and_create_reminders(repo, settings=ALWAYS_DAILY)
    assert created
    assert all(as_utc(r.created_at) == fixed for r in created)

    # A reminder 29 days old survives the purge, one 31 days old does not
    repo.add(Reminder(user_id=users["bob"].id, type="daily", period_key="recent", message="m", created_at=fixed - timedelta(days=29)))
    repo.add(Reminder(user_id=users["bob"].id, type="daily", period_key="stale", message="m", created_at=fixed - timedelta(days=31)))
    repo.commit()
    check_and_create_reminders(repo, settings=ALWAYS_DAILY)
    keys = {r.period_key for r in repo.list(Reminder)}
    assert "recent" in keys
    assert "stale" not in keys
