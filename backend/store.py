"""Time entry store: upsert, delete and filtered listing over a repository.

The store neither validates nor checks permissions; callers do that before
writing, and commit the repository when their command is complete.
"""
from typing import List

from models import TimeEntry, as_utc, utcnow
from repository import Repository


def _ordered(entries: List[TimeEntry]) -> List[TimeEntry]:
    return sorted(entries, key=lambda e: (e.date, e.user_name, as_utc(e.created_at)))


class EntryStore:
    def __init__(self, repo: Repository):
        self.repo = repo

    def save(self, entry: TimeEntry) -> TimeEntry:
        """Insert the entry, or replace the stored one with the same id."""
        entry.updated_at = utcnow()
        return self.repo.add(entry)

    def get(self, entry_id: str) -> TimeEntry | None:
        return self.repo.get(TimeEntry, entry_id)

    def delete(self, entry_id: str) -> bool:
        return self.repo.delete(TimeEntry, entry_id)

    def list(self) -> List[TimeEntry]:
        return _ordered(self.repo.list(TimeEntry))

    def list_by_user(self, user_id: str) -> List[TimeEntry]:
        return _ordered(self.repo.list(TimeEntry, user_id=user_id))

    def list_by_date_range(
        self, start: str | None, end: str | None, user_id: str | None = None
    ) -> List[TimeEntry]:
        """Entries dated within [start, end]; either bound may be open."""
        entries = self.list_by_user(user_id) if user_id else self.list()
        return [
            e for e in entries
            if (not start or e.date >= start) and (not end or e.date <= end)
        ]

    def search(self, query: str, user_id: str | None = None) -> List[TimeEntry]:
        entries = self.list_by_user(user_id) if user_id else self.list()
        if not query:
            return entries
        needle = query.strip().lower()
        return [
            e for e in entries
            if needle in (e.task or "").lower()
            or needle in (e.target_name or "").lower()
            or needle in (e.description or "").lower()
            or needle in (e.user_name or "").lower()
            or needle in e.date
        ]
