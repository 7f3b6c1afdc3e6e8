"""Simple script to create due timesheet reminders - can be run as a cron job."""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from db import open_repository
from reminders import ReminderSettings, check_and_create_reminders


def settings_from_env() -> ReminderSettings:
    return ReminderSettings(
        daily_enabled=os.getenv("REMINDER_DAILY", "1") != "0",
        daily_time=os.getenv("REMINDER_DAILY_TIME", "18:00"),
        weekly_enabled=os.getenv("REMINDER_WEEKLY", "1") != "0",
        weekly_day=int(os.getenv("REMINDER_WEEKLY_DAY", "4")),
        weekly_time=os.getenv("REMINDER_WEEKLY_TIME", "17:00"),
        monthly_enabled=os.getenv("REMINDER_MONTHLY", "1") != "0",
        monthly_day=int(os.getenv("REMINDER_MONTHLY_DAY", "1")),
        monthly_time=os.getenv("REMINDER_MONTHLY_TIME", "09:00"),
    )


if __name__ == "__main__":
    try:
        with open_repository() as repo:
            created = check_and_create_reminders(repo, settings=settings_from_env())
    except Exception as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"SUCCESS: {len(created)} reminders created")
    for reminder in created:
        print(f"  {reminder.type} {reminder.period_key} -> {reminder.user_id}")
    sys.exit(0)
