"""Hours reporting: per-user and per-team totals, overtime and CSV export."""
import csv
import io
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from models import Team, TimeEntry, User
from repository import Repository
from store import EntryStore

STANDARD_DAY_HOURS = 8
CSV_COLUMNS = ["Date", "Employee", "Project", "Task", "Hours", "Status"]


def parse_day(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def _in_range(entry: TimeEntry, start: Optional[str], end: Optional[str]) -> bool:
    return (not start or entry.date >= start) and (not end or entry.date <= end)


def summarize(
    entries: Iterable[TimeEntry],
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> dict:
    """Sum hours and count statuses for one user (or everyone) over a date range."""
    selected = [
        e for e in entries
        if (user_id is None or e.user_id == user_id) and _in_range(e, start, end)
    ]
    by_status = defaultdict(int)
    for entry in selected:
        by_status[entry.status] += 1

    return {
        "actual_hours": round(sum(e.actual_hours for e in selected), 2),
        "billable_hours": round(sum(e.billable_hours for e in selected if e.is_billable), 2),
        "total_entries": len(selected),
        "approved_entries": by_status["approved"],
        "pending_entries": by_status["pending"],
        "rejected_entries": by_status["rejected"],
    }


def count_weekdays(start: date, end: date) -> int:
    """Number of Monday-Friday days in [start, end]."""
    if end < start:
        return 0
    days = (end - start).days + 1
    full_weeks, remainder = divmod(days, 7)
    count = full_weeks * 5
    for offset in range(remainder):
        if (start + timedelta(days=full_weeks * 7 + offset)).weekday() < 5:
            count += 1
    return count


def expected_hours(start: date, end: date) -> float:
    return float(count_weekdays(start, end) * STANDARD_DAY_HOURS)


def overtime(actual_hours: float, start: date, end: date) -> float:
    """Hours beyond a standard 8-hour weekday schedule for the period."""
    return max(0.0, round(actual_hours - expected_hours(start, end), 2))


def period_bounds(
    entries: List[TimeEntry], start: Optional[str], end: Optional[str]
) -> Optional[Tuple[date, date]]:
    """The reporting period; open ends fall back to the earliest/latest entry."""
    dates = [e.date for e in entries]
    if (not start or not end) and not dates:
        return None
    lower = start or min(dates)
    upper = end or max(dates)
    return parse_day(lower), parse_day(upper)


def timesheet_summary(
    entries: List[TimeEntry],
    user_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> dict:
    """Summary plus expected hours and overtime for the period.

    Expected hours are those of one person. Overtime is worked out per user
    and summed, so one user's extra hours never offset another's.
    """
    selected = [
        e for e in entries
        if (user_id is None or e.user_id == user_id) and _in_range(e, start, end)
    ]
    summary = summarize(selected)
    bounds = period_bounds(selected, start, end)
    if bounds is None:
        summary.update(start=start, end=end, expected_hours=0.0, overtime_hours=0.0, days_worked=0)
        return summary

    period_start, period_end = bounds
    summary.update(
        start=period_start.isoformat(),
        end=period_end.isoformat(),
        expected_hours=expected_hours(period_start, period_end),
        overtime_hours=round(sum(overtime_by_user(selected, period_start, period_end).values()), 2),
        days_worked=len({e.date for e in selected}),
    )
    return summary


def overtime_by_user(entries: List[TimeEntry], start: date, end: date) -> Dict[str, float]:
    hours_by_user = defaultdict(float)
    for entry in entries:
        hours_by_user[entry.user_id] += entry.actual_hours
    return {user_id: overtime(hours, start, end) for user_id, hours in hours_by_user.items()}


def user_statistics(entries: List[TimeEntry]) -> Dict[str, float]:
    return {
        "total_entries": len(entries),
        "approved_entries": sum(1 for e in entries if e.status == "approved"),
        "pending_entries": sum(1 for e in entries if e.status == "pending"),
        "rejected_entries": sum(1 for e in entries if e.status == "rejected"),
        "total_hours": round(sum(e.actual_hours for e in entries), 2),
        "approved_hours": round(sum(e.actual_hours for e in entries if e.status == "approved"), 2),
        "billable_hours": round(sum(e.billable_hours for e in entries if e.is_billable), 2),
    }


def team_target_ids(team: Team) -> Set[str]:
    return set(
        (team.associated_projects or [])
        + (team.associated_products or [])
        + (team.associated_departments or [])
    )


def team_summary(
    repo: Repository,
    team: Team,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> dict:
    """Hours logged against a team's billing targets, in total and per member.

    Args:
        repo: Repository to read entries and users from
        team: The team whose associated targets scope the report
        start, end: Optional inclusive YYYY-MM-DD bounds
    """
    target_ids = team_target_ids(team)
    member_ids = set(team.member_ids or [])
    entries = [
        e for e in EntryStore(repo).list_by_date_range(start, end)
        if e.target_id in target_ids and e.user_id in member_ids
    ]

    members = []
    for member_id in team.member_ids or []:
        user = repo.get(User, member_id)
        row = summarize(entries, user_id=member_id)
        row.update(
            user_id=member_id,
            user_name=user.name if user else None,
            is_leader=member_id == team.leader_id,
        )
        members.append(row)

    return {
        "team_id": team.id,
        "team_name": team.name,
        "start": start,
        "end": end,
        "totals": summarize(entries),
        "members": sorted(members, key=lambda m: (m["user_name"] or "").lower()),
    }


def export_csv(entries: Iterable[TimeEntry]) -> str:
    """Render entries as CSV with the timesheet export columns."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for entry in entries:
        writer.writerow(
            {
                "Date": entry.date,
                "Employee": entry.user_name,
                "Project": entry.target_name,
                "Task": entry.task,
                "Hours": f"{entry.total_hours:g}",
                "Status": entry.status,
            }
        )
    return buf.getvalue()
