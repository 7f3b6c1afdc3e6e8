from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive timestamps; treat them as UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    email: str | None = Field(default=None)
    role: str = Field(default="employee")  # employee | finance_manager | manager | owner
    billable_rate: float | None = Field(default=None)
    available_hours: float = Field(default=8.0)  # Daily capacity
    api_token: str | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)


class BillingTarget(SQLModel, table=True):
    """A project, product or department that hours are logged against."""

    id: str = Field(default_factory=new_id, primary_key=True)
    category: str = Field(index=True)  # project | product | department
    name: str = Field(index=True)
    is_billable: bool = Field(default=False)
    # Three-tier tree; tier key names depend on category (see hierarchy.py)
    breakdown: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    created_by: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class Team(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: str | None = Field(default=None)
    leader_id: str | None = Field(default=None)
    member_ids: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    associated_projects: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    associated_products: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    associated_departments: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)


class TimeEntry(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    user_name: str  # Denormalized display name
    date: str = Field(index=True)  # YYYY-MM-DD format
    clock_in: str | None = Field(default=None)  # HH:MM
    clock_out: str | None = Field(default=None)  # HH:MM
    break_minutes: int = Field(default=0)
    actual_hours: float = Field(default=0.0)
    billable_hours: float = Field(default=0.0)
    total_hours: float = Field(default=0.0)
    available_hours: float = Field(default=8.0)
    task: str = Field(default="")
    category: str = Field(index=True)  # project | product | department
    target_id: str | None = Field(default=None, index=True)
    target_name: str = Field(default="")
    level: str | None = Field(default=None)  # level / stage / function label
    task_label: str | None = Field(default=None)  # task / duty label
    subtask: str | None = Field(default=None)  # subtask / task label
    description: str = Field(default="")
    is_billable: bool = Field(default=False)
    status: str = Field(default="pending", index=True)  # pending | approved | rejected
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ApprovalAction(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    entry_id: str = Field(index=True)
    previous_status: str
    new_status: str
    message: str
    approved_by: str
    approved_at: datetime = Field(default_factory=utcnow)


class Notification(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    message: str
    type: str = Field(default="status_change")  # status_change | approval | rejection
    is_read: bool = Field(default=False)
    related_entry_id: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class Reminder(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    type: str  # daily | weekly | monthly
    period_key: str = Field(index=True)  # 2024-01-15 / 2024-W03 / 2024-01
    message: str
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
