from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlmodel import SQLModel

Category = Literal["project", "product", "department"]
Role = Literal["employee", "finance_manager", "manager", "owner"]
Decision = Literal["approved", "rejected"]


def _check_day(v):
    if v is None:
        return v
    try:
        datetime.strptime(v, "%Y-%m-%d")
    except ValueError:
        raise ValueError("Date must be in YYYY-MM-DD format") from None
    return v


def _check_clock(v):
    if v is None or v == "":
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            datetime.strptime(v, fmt)
            return v
        except ValueError:
            continue
    raise ValueError("Time must be in HH:MM format")


class EntryCreate(BaseModel):
    date: str  # YYYY-MM-DD format
    user_id: str | None = None  # Defaults to the caller
    clock_in: str | None = None
    clock_out: str | None = None
    break_minutes: int = Field(default=0, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    billable_hours: float | None = Field(default=None, ge=0)
    total_hours: float | None = Field(default=None, ge=0)
    available_hours: float | None = Field(default=None, ge=0)
    task: str
    category: Category
    target_id: str | None = None
    target_name: str | None = None
    level: str | None = None
    task_label: str | None = None
    subtask: str | None = None
    description: str = ""

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_day(v)

    @field_validator("clock_in", "clock_out")
    @classmethod
    def validate_clock(cls, v):
        return _check_clock(v)

    @field_validator("task")
    @classmethod
    def validate_task(cls, v):
        if not v or not v.strip():
            raise ValueError("Please enter a task description")
        return v.strip()

    @model_validator(mode="after")
    def validate_target(self):
        if not self.target_id and not self.target_name:
            raise ValueError("A project, product or department must be selected")
        return self


class EntryUpdate(BaseModel):
    date: str | None = None
    clock_in: str | None = None
    clock_out: str | None = None
    break_minutes: int | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    billable_hours: float | None = Field(default=None, ge=0)
    total_hours: float | None = Field(default=None, ge=0)
    available_hours: float | None = Field(default=None, ge=0)
    task: str | None = None
    category: Category | None = None
    target_id: str | None = None
    target_name: str | None = None
    level: str | None = None
    task_label: str | None = None
    subtask: str | None = None
    description: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_day(v)

    @field_validator("clock_in", "clock_out")
    @classmethod
    def validate_clock(cls, v):
        return _check_clock(v)


class EntryResponse(SQLModel):
    id: str
    user_id: str
    user_name: str
    date: str
    clock_in: str | None = None
    clock_out: str | None = None
    break_minutes: int
    actual_hours: float
    billable_hours: float
    total_hours: float
    available_hours: float
    task: str
    category: str
    target_id: str | None = None
    target_name: str
    level: str | None = None
    task_label: str | None = None
    subtask: str | None = None
    description: str
    is_billable: bool
    status: str
    created_at: datetime
    updated_at: datetime


class StatusChangeRequest(BaseModel):
    message: str


class BulkStatusRequest(BaseModel):
    entry_ids: list[str]
    message: str
    status: Decision = "approved"


class ApprovalActionResponse(SQLModel):
    id: str
    entry_id: str
    previous_status: str
    new_status: str
    message: str
    approved_by: str
    approved_at: datetime


class NotificationResponse(SQLModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    is_read: bool
    related_entry_id: str | None = None
    created_at: datetime


class ReminderResponse(SQLModel):
    id: str
    user_id: str
    type: str
    period_key: str
    message: str
    is_read: bool
    created_at: datetime


class TargetCreate(BaseModel):
    name: str
    is_billable: bool = False
    breakdown: list[dict] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class TargetUpdate(BaseModel):
    name: str | None = None
    is_billable: bool | None = None
    breakdown: list[dict] | None = None


class TargetResponse(SQLModel):
    id: str
    category: str
    name: str
    is_billable: bool
    breakdown: list[dict]
    created_by: str | None = None
    created_at: datetime


class OptionsResponse(BaseModel):
    tier: str
    options: list[str]


class TeamCreate(BaseModel):
    name: str
    description: str | None = None
    leader_id: str | None = None
    member_ids: list[str] = []
    associated_projects: list[str] = []
    associated_products: list[str] = []
    associated_departments: list[str] = []


class TeamUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    leader_id: str | None = None
    member_ids: list[str] | None = None
    associated_projects: list[str] | None = None
    associated_products: list[str] | None = None
    associated_departments: list[str] | None = None


class TeamResponse(SQLModel):
    id: str
    name: str
    description: str | None = None
    leader_id: str | None = None
    member_ids: list[str]
    associated_projects: list[str]
    associated_products: list[str]
    associated_departments: list[str]


class UserCreate(BaseModel):
    name: str
    email: str | None = None
    role: Role = "employee"
    billable_rate: float | None = Field(default=None, ge=0)
    available_hours: float = Field(default=8.0, ge=0, le=24)


class UserResponse(SQLModel):
    id: str
    name: str
    email: str | None = None
    role: str
    billable_rate: float | None = None
    available_hours: float


class UserCreatedResponse(UserResponse):
    api_token: str


class SummaryResponse(BaseModel):
    actual_hours: float
    billable_hours: float
    total_entries: int
    approved_entries: int
    pending_entries: int
    rejected_entries: int
    start: str | None = None
    end: str | None = None
    expected_hours: float
    overtime_hours: float
    days_worked: int


class StatisticsResponse(BaseModel):
    total_entries: int
    approved_entries: int
    pending_entries: int
    rejected_entries: int
    total_hours: float
    approved_hours: float
    billable_hours: float


class MemberSummary(BaseModel):
    user_id: str
    user_name: str | None = None
    is_leader: bool
    actual_hours: float
    billable_hours: float
    total_entries: int
    approved_entries: int
    pending_entries: int
    rejected_entries: int


class TotalsRow(BaseModel):
    actual_hours: float
    billable_hours: float
    total_entries: int
    approved_entries: int
    pending_entries: int
    rejected_entries: int


class TeamReportResponse(BaseModel):
    team_id: str
    team_name: str
    start: str | None = None
    end: str | None = None
    totals: TotalsRow
    members: list[MemberSummary]
