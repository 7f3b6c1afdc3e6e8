"""Approval workflow for time entries.

An entry starts out ``pending`` and can be approved or rejected exactly once.
Each transition writes the entry, one approval-history record and one
notification to the entry's owner, and commits them together.
"""
import logging

from models import ApprovalAction, Notification, TimeEntry, User, as_utc
from repository import Repository
from store import EntryStore

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
STATUSES = (PENDING, APPROVED, REJECTED)

# Rejected entries are not resubmitted; a new entry is created instead
TRANSITIONS = {
    PENDING: {APPROVED, REJECTED},
}

ROLE_PERMISSIONS = {
    "employee": {
        "view_all_timesheets": False,
        "edit_others_timesheets": False,
        "view_billable_rates": False,
        "manage_projects": False,
        "manage_teams": False,
        "approve_entries": False,
        "view_approval_history": False,
    },
    "finance_manager": {
        "view_all_timesheets": True,
        "edit_others_timesheets": False,
        "view_billable_rates": True,
        "manage_projects": True,
        "manage_teams": True,
        "approve_entries": False,
        "view_approval_history": False,
    },
    "manager": {
        "view_all_timesheets": True,
        "edit_others_timesheets": False,
        "view_billable_rates": False,
        "manage_projects": True,
        "manage_teams": True,
        "approve_entries": True,
        "view_approval_history": True,
    },
    "owner": {
        "view_all_timesheets": True,
        "edit_others_timesheets": True,
        "view_billable_rates": True,
        "manage_projects": True,
        "manage_teams": True,
        "approve_entries": True,
        "view_approval_history": True,
    },
}


class EntryNotFound(LookupError):
    def __init__(self, entry_id: str):
        super().__init__(f"Time entry {entry_id} not found")
        self.entry_id = entry_id


class InvalidTransition(ValueError):
    pass


def has_permission(user: User, permission: str) -> bool:
    return ROLE_PERMISSIONS.get(user.role, ROLE_PERMISSIONS["employee"]).get(permission, False)


def can_view(user: User, entry: TimeEntry) -> bool:
    return entry.user_id == user.id or has_permission(user, "view_all_timesheets")


def can_edit(user: User, entry: TimeEntry) -> bool:
    """Owners may edit anything; everyone else only their own pending entries."""
    if user.role == "owner":
        return True
    return entry.user_id == user.id and entry.status == PENDING


def can_delete(user: User, entry: TimeEntry) -> bool:
    if user.role == "owner":
        return True
    return entry.user_id == user.id and entry.status == PENDING


def can_approve(user: User) -> bool:
    return has_permission(user, "approve_entries")


def _require_message(message: str | None) -> str:
    if not message or not message.strip():
        raise ValueError("A message is required to approve or reject an entry")
    return message.strip()


def _transition(
    store: EntryStore, entry_id: str, new_status: str, message: str, approver_name: str
) -> ApprovalAction:
    entry = store.get(entry_id)
    if entry is None:
        raise EntryNotFound(entry_id)
    if new_status not in TRANSITIONS.get(entry.status, set()):
        raise InvalidTransition(
            f"Cannot change entry {entry_id} from '{entry.status}' to '{new_status}'"
        )

    previous_status = entry.status
    entry.status = new_status
    entry = store.save(entry)

    action = store.repo.add(
        ApprovalAction(
            entry_id=entry.id,
            previous_status=previous_status,
            new_status=new_status,
            message=message,
            approved_by=approver_name,
            approved_at=entry.updated_at,
        )
    )
    store.repo.add(
        Notification(
            user_id=entry.user_id,
            title=f"Timesheet {new_status}",
            message=f"Your timesheet entry for {entry.date} has been {new_status}. {message}",
            type="approval" if new_status == APPROVED else "rejection",
            related_entry_id=entry.id,
        )
    )
    return action


def set_status(
    repo: Repository, entry_id: str, new_status: str, message: str, approver_name: str
) -> ApprovalAction:
    """Approve or reject one pending entry."""
    message = _require_message(message)
    store = EntryStore(repo)
    try:
        action = _transition(store, entry_id, new_status, message, approver_name)
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    logger.info(f"Entry {entry_id} {new_status} by {approver_name}")
    return action


def bulk_set_status(
    repo: Repository, entry_ids: list[str], new_status: str, message: str, approver_name: str
) -> list[ApprovalAction]:
    """Apply one transition to several entries; all of them change or none do."""
    message = _require_message(message)
    if not entry_ids:
        raise ValueError("No entries provided")

    store = EntryStore(repo)
    actions = []
    try:
        for entry_id in dict.fromkeys(entry_ids):
            actions.append(_transition(store, entry_id, new_status, message, approver_name))
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    logger.info(f"{len(actions)} entries {new_status} by {approver_name}")
    return actions


def history(repo: Repository, entry_id: str | None = None) -> list[ApprovalAction]:
    """Approval history, newest first."""
    actions = repo.list(ApprovalAction, entry_id=entry_id) if entry_id else repo.list(ApprovalAction)
    return sorted(actions, key=lambda a: as_utc(a.approved_at), reverse=True)
