import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware

import associations
import hierarchy
import report
import workflow
from auth import get_current_user, new_api_token
from db import STORAGE_BACKEND, create_db_and_tables, get_repository
from hours import derive_entry_hours
from models import BillingTarget, Notification, Reminder, Team, TimeEntry, User, as_utc
from reminders import check_and_create_reminders
from repository import Repository
from schemas import (
    ApprovalActionResponse,
    BulkStatusRequest,
    EntryCreate,
    EntryResponse,
    EntryUpdate,
    NotificationResponse,
    OptionsResponse,
    ReminderResponse,
    StatisticsResponse,
    StatusChangeRequest,
    SummaryResponse,
    TargetCreate,
    TargetResponse,
    TargetUpdate,
    TeamCreate,
    TeamReportResponse,
    TeamResponse,
    TeamUpdate,
    UserCreate,
    UserCreatedResponse,
    UserResponse,
)
from store import EntryStore

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TARGET_COLLECTIONS = {
    "project": "projects",
    "product": "products",
    "department": "departments",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    if STORAGE_BACKEND != "json":
        create_db_and_tables()
    logger.info(f"Storage initialized ({STORAGE_BACKEND})")
    yield


# Create FastAPI app
app = FastAPI(title="Timesheet API", version="1.0.0", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins in development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _server_error(repo: Repository, action: str, e: Exception) -> HTTPException:
    repo.rollback()
    logger.error(f"Error {action}: {str(e)}")
    return HTTPException(status_code=500, detail=str(e))


def _check_day(value: str | None, name: str) -> None:
    if value is None:
        return
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise HTTPException(
            status_code=400, detail=f"Invalid {name} date format. Use YYYY-MM-DD"
        ) from e


def _scoped_user_id(actor: User, user_id: str | None) -> str | None:
    """Users without the view-all permission only ever see their own entries."""
    if workflow.has_permission(actor, "view_all_timesheets"):
        return user_id
    if user_id and user_id != actor.id:
        raise HTTPException(status_code=403, detail="Not allowed to view other users' timesheets")
    return actor.id


def _require(actor: User, permission: str) -> None:
    if not workflow.has_permission(actor, permission):
        raise HTTPException(status_code=403, detail=f"Permission '{permission}' required")


def _get_entry(repo: Repository, entry_id: str) -> TimeEntry:
    entry = EntryStore(repo).get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


def _resolve_target(
    repo: Repository, owner: User, category: str, target_id: str | None, target_name: str | None
) -> BillingTarget:
    target = associations.find_target(repo, category, name=target_name, target_id=target_id)
    if target is None:
        raise HTTPException(
            status_code=400, detail=f"Unknown {category} '{target_id or target_name}'"
        )
    if not associations.is_associated(repo, owner.id, category, target.id):
        raise HTTPException(
            status_code=403,
            detail=f"{owner.name} is not on a team associated with {category} '{target.name}'",
        )
    return target


def _filtered_entries(
    repo: Repository,
    actor: User,
    user_id: str | None,
    date_from: str | None,
    date_to: str | None,
    status: str | None,
    q: str | None,
) -> list[TimeEntry]:
    _check_day(date_from, "start")
    _check_day(date_to, "end")
    user_id = _scoped_user_id(actor, user_id)

    store = EntryStore(repo)
    entries = store.search(q, user_id=user_id) if q else store.list_by_date_range(None, None, user_id)
    return [
        e for e in entries
        if (not date_from or e.date >= date_from)
        and (not date_to or e.date <= date_to)
        and (not status or e.status == status)
    ]


# Time entries


@app.get("/api/timeentries", response_model=list[EntryResponse])
def get_entries(
    user_id: str = Query(None, description="Only entries of this user"),
    date_from: str = Query(None, description="Start date filter (YYYY-MM-DD)"),
    date_to: str = Query(None, description="End date filter (YYYY-MM-DD)"),
    status: str = Query(None, description="pending, approved or rejected"),
    q: str = Query(None, description="Search task, project, description or employee"),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Get entries visible to the caller, with optional filters."""
    logger.info(f"Entries request by {actor.name} - user: {user_id}, from: {date_from}, to: {date_to}")
    return _filtered_entries(repo, actor, user_id, date_from, date_to, status, q)


@app.post("/api/timeentries", response_model=EntryResponse, status_code=201)
def create_entry(
    request: EntryCreate,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Log a new pending entry against a billing target."""
    owner_id = request.user_id or actor.id
    if owner_id != actor.id and not workflow.has_permission(actor, "edit_others_timesheets"):
        raise HTTPException(status_code=403, detail="Not allowed to log time for other users")
    owner = repo.get(User, owner_id)
    if owner is None:
        raise HTTPException(status_code=400, detail="Invalid user ID")

    target = _resolve_target(repo, owner, request.category, request.target_id, request.target_name)
    try:
        hierarchy.validate_selection(target, request.level, request.task_label, request.subtask)
    except hierarchy.SelectionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    try:
        entry = TimeEntry(
            user_id=owner.id,
            user_name=owner.name,
            date=request.date,
            clock_in=request.clock_in,
            clock_out=request.clock_out,
            break_minutes=request.break_minutes,
            actual_hours=request.actual_hours or 0.0,
            billable_hours=request.billable_hours or 0.0,
            total_hours=request.total_hours or 0.0,
            available_hours=(
                request.available_hours if request.available_hours is not None else owner.available_hours
            ),
            task=request.task,
            category=request.category,
            target_id=target.id,
            target_name=target.name,
            level=request.level,
            task_label=request.task_label,
            subtask=request.subtask,
            description=request.description,
            is_billable=associations.determine_is_billable(repo, request.category, target_id=target.id),
        )
        changed = {f for f in request.model_fields_set if getattr(request, f) is not None}
        derive_entry_hours(entry, changed, creating=True)

        entry = EntryStore(repo).save(entry)
        repo.commit()
        logger.info(f"Created entry {entry.id} for {owner.name} on {entry.date} ({entry.actual_hours}h)")
        return entry
    except Exception as e:
        raise _server_error(repo, "creating entry", e) from e


@app.get("/api/timeentries/range", response_model=list[EntryResponse])
def get_entries_by_range(
    start: str = Query(..., description="Start date (YYYY-MM-DD)"),
    end: str = Query(..., description="End date (YYYY-MM-DD)"),
    user_id: str = Query(None),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Get entries dated within an inclusive range."""
    _check_day(start, "start")
    _check_day(end, "end")
    return EntryStore(repo).list_by_date_range(start, end, _scoped_user_id(actor, user_id))


@app.get("/api/timeentries/statistics", response_model=StatisticsResponse)
def get_statistics(
    user_id: str = Query(None, description="Defaults to the caller"),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Entry counts and hour totals for one user."""
    user_id = _scoped_user_id(actor, user_id or actor.id)
    return report.user_statistics(EntryStore(repo).list_by_user(user_id))


@app.get("/api/timeentries/export")
def export_entries(
    user_id: str = Query(None),
    date_from: str = Query(None),
    date_to: str = Query(None),
    status: str = Query(None),
    q: str = Query(None),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Download the filtered timesheet rows as CSV."""
    entries = _filtered_entries(repo, actor, user_id, date_from, date_to, status, q)
    logger.info(f"Exporting {len(entries)} entries for {actor.name}")
    return Response(
        content=report.export_csv(entries),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="timesheet.csv"'},
    )


@app.post("/api/timeentries/bulk-approve", response_model=list[ApprovalActionResponse])
def bulk_approve(
    request: BulkStatusRequest,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Approve (or reject) several pending entries in one go."""
    if not workflow.can_approve(actor):
        raise HTTPException(status_code=403, detail="Not allowed to approve entries")
    try:
        return workflow.bulk_set_status(repo, request.entry_ids, request.status, request.message, actor.name)
    except workflow.EntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except workflow.InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        raise _server_error(repo, "bulk approving entries", e) from e


@app.get("/api/timeentries/{entry_id}", response_model=EntryResponse)
def get_entry(
    entry_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    entry = _get_entry(repo, entry_id)
    if not workflow.can_view(actor, entry):
        raise HTTPException(status_code=403, detail="Not allowed to view this entry")
    return entry


@app.put("/api/timeentries/{entry_id}", response_model=EntryResponse)
def update_entry(
    entry_id: str,
    request: EntryUpdate,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Edit an entry. Status only changes through approve/reject."""
    entry = _get_entry(repo, entry_id)
    if not workflow.can_edit(actor, entry):
        raise HTTPException(status_code=403, detail="Only pending entries of your own can be edited")

    changed = {f for f in request.model_fields_set if getattr(request, f) is not None}
    if "task" in changed and not request.task.strip():
        raise HTTPException(status_code=422, detail="Please enter a task description")

    retarget = bool(changed & {"category", "target_id", "target_name"})
    relabel = retarget or bool(changed & {"level", "task_label", "subtask"})
    target = None
    if retarget:
        owner = repo.get(User, entry.user_id)
        if owner is None:
            raise HTTPException(status_code=400, detail="Entry owner no longer exists")
        category = request.category or entry.category
        target_id = request.target_id if "target_id" in changed else None
        target_name = request.target_name if "target_name" in changed else None
        if not target_id and not target_name:
            target_id = entry.target_id
        target = _resolve_target(repo, owner, category, target_id, target_name)
    elif relabel:
        target = associations.find_target(repo, entry.category, entry.target_name, entry.target_id)

    for field in changed - {"target_id", "target_name"}:
        setattr(entry, field, getattr(request, field))

    if target is not None:
        if retarget:
            entry.category = target.category
            entry.target_id = target.id
            entry.target_name = target.name
            entry.is_billable = target.is_billable
            changed.add("is_billable")
        try:
            hierarchy.validate_selection(target, entry.level, entry.task_label, entry.subtask)
        except hierarchy.SelectionError as e:
            repo.rollback()
            raise HTTPException(status_code=422, detail=str(e)) from e

    try:
        derive_entry_hours(entry, changed)
        entry = EntryStore(repo).save(entry)
        repo.commit()
        logger.info(f"Updated entry {entry_id} ({', '.join(sorted(changed)) or 'no fields'})")
        return entry
    except Exception as e:
        raise _server_error(repo, "updating entry", e) from e


@app.delete("/api/timeentries/{entry_id}")
def delete_entry(
    entry_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Delete an entry; only pending ones unless the caller is an owner."""
    logger.info(f"Delete entry request for ID: {entry_id}")
    entry = _get_entry(repo, entry_id)
    if not workflow.can_delete(actor, entry):
        raise HTTPException(status_code=403, detail="Only pending entries of your own can be deleted")

    try:
        EntryStore(repo).delete(entry_id)
        repo.commit()
        logger.info(f"Successfully deleted entry {entry_id}")
        return {"ok": True, "message": "Entry deleted successfully"}
    except Exception as e:
        raise _server_error(repo, "deleting entry", e) from e


def _decide(repo: Repository, actor: User, entry_id: str, status: str, message: str):
    if not workflow.can_approve(actor):
        raise HTTPException(status_code=403, detail="Not allowed to approve entries")
    try:
        return workflow.set_status(repo, entry_id, status, message, actor.name)
    except workflow.EntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except workflow.InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        raise _server_error(repo, f"setting entry {entry_id} to {status}", e) from e


@app.post("/api/timeentries/{entry_id}/approve", response_model=ApprovalActionResponse)
def approve_entry(
    entry_id: str,
    request: StatusChangeRequest,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    return _decide(repo, actor, entry_id, workflow.APPROVED, request.message)


@app.post("/api/timeentries/{entry_id}/reject", response_model=ApprovalActionResponse)
def reject_entry(
    entry_id: str,
    request: StatusChangeRequest,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    return _decide(repo, actor, entry_id, workflow.REJECTED, request.message)


@app.get("/api/timeentries/{entry_id}/history", response_model=list[ApprovalActionResponse])
def get_entry_history(
    entry_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    entry = _get_entry(repo, entry_id)
    if entry.user_id != actor.id:
        _require(actor, "view_approval_history")
    return workflow.history(repo, entry_id)


@app.get("/api/approval-history", response_model=list[ApprovalActionResponse])
def get_approval_history(
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    _require(actor, "view_approval_history")
    return workflow.history(repo)


# Projects, products and departments


def register_target_routes(category: str, collection: str) -> None:
    base = f"/api/{collection}"

    def get_target(repo: Repository, target_id: str) -> BillingTarget:
        target = repo.get(BillingTarget, target_id)
        if target is None or target.category != category:
            raise HTTPException(status_code=404, detail=f"{category.capitalize()} not found")
        return target

    @app.get(base, response_model=list[TargetResponse], name=f"list_{collection}")
    def list_targets(
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        return sorted(repo.list(BillingTarget, category=category), key=lambda t: t.name.lower())

    @app.get(f"{base}/associated", response_model=list[TargetResponse], name=f"associated_{collection}")
    def list_associated(
        user_id: str = Query(None, description="Defaults to the caller"),
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        """Targets the user may log time against through their teams."""
        user_id = _scoped_user_id(actor, user_id or actor.id)
        return associations.associated_targets(repo, user_id, category)

    @app.post(base, response_model=TargetResponse, status_code=201, name=f"create_{category}")
    def create_target(
        request: TargetCreate,
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        _require(actor, "manage_projects")
        try:
            hierarchy.validate_breakdown(category, request.breakdown)
        except hierarchy.SelectionError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

        try:
            target = repo.add(
                BillingTarget(
                    category=category,
                    name=request.name,
                    is_billable=request.is_billable,
                    breakdown=request.breakdown,
                    created_by=actor.id,
                )
            )
            repo.commit()
            logger.info(f"Created {category} '{target.name}' ({target.id})")
            return target
        except Exception as e:
            raise _server_error(repo, f"creating {category}", e) from e

    @app.get(f"{base}/{{target_id}}", response_model=TargetResponse, name=f"get_{category}")
    def read_target(
        target_id: str,
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        return get_target(repo, target_id)

    @app.get(f"{base}/{{target_id}}/options", response_model=OptionsResponse, name=f"{category}_options")
    def target_options(
        target_id: str,
        level: str = Query(None, description="Selected first-tier name"),
        task: str = Query(None, description="Selected second-tier name"),
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        """Names selectable at the tier below the given selection."""
        target = get_target(repo, target_id)
        schema = hierarchy.schema_for(category)
        depth = 0 if level is None else (1 if task is None else 2)
        try:
            names = hierarchy.options(target, level=level, task=task)
        except hierarchy.SelectionError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return OptionsResponse(tier=schema.labels[depth], options=names)

    @app.put(f"{base}/{{target_id}}", response_model=TargetResponse, name=f"update_{category}")
    def update_target(
        target_id: str,
        request: TargetUpdate,
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        _require(actor, "manage_projects")
        target = get_target(repo, target_id)
        if request.breakdown is not None:
            try:
                hierarchy.validate_breakdown(category, request.breakdown)
            except hierarchy.SelectionError as e:
                raise HTTPException(status_code=422, detail=str(e)) from e
            target.breakdown = request.breakdown
        if request.name is not None and request.name.strip():
            target.name = request.name.strip()
        if request.is_billable is not None:
            target.is_billable = request.is_billable

        try:
            target = repo.add(target)
            repo.commit()
            return target
        except Exception as e:
            raise _server_error(repo, f"updating {category}", e) from e

    @app.delete(f"{base}/{{target_id}}", name=f"delete_{category}")
    def delete_target(
        target_id: str,
        actor: User = Depends(get_current_user),
        repo: Repository = Depends(get_repository),
    ):
        """Delete a target and drop it from every team's associations."""
        _require(actor, "manage_projects")
        get_target(repo, target_id)
        field = associations.ASSOCIATION_FIELDS[category]
        try:
            for team in repo.list(Team):
                ids = getattr(team, field) or []
                if target_id in ids:
                    setattr(team, field, [i for i in ids if i != target_id])
                    repo.add(team)
            repo.delete(BillingTarget, target_id)
            repo.commit()
            logger.info(f"Deleted {category} {target_id}")
            return {"ok": True, "message": f"{category.capitalize()} deleted successfully"}
        except Exception as e:
            raise _server_error(repo, f"deleting {category}", e) from e


for _category, _collection in TARGET_COLLECTIONS.items():
    register_target_routes(_category, _collection)


# Teams


def _get_team(repo: Repository, team_id: str) -> Team:
    team = repo.get(Team, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


def _check_team_refs(repo: Repository, data: dict) -> None:
    for user_id in data.get("member_ids") or []:
        if repo.get(User, user_id) is None:
            raise HTTPException(status_code=400, detail=f"Unknown user '{user_id}'")
    if data.get("leader_id") and repo.get(User, data["leader_id"]) is None:
        raise HTTPException(status_code=400, detail=f"Unknown user '{data['leader_id']}'")
    for category, field in associations.ASSOCIATION_FIELDS.items():
        for target_id in data.get(field) or []:
            target = repo.get(BillingTarget, target_id)
            if target is None or target.category != category:
                raise HTTPException(status_code=400, detail=f"Unknown {category} '{target_id}'")


@app.get("/api/teams", response_model=list[TeamResponse])
def list_teams(
    user_id: str = Query(None, description="Only teams this user belongs to"),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    if user_id:
        return associations.user_teams(repo, user_id)
    return sorted(repo.list(Team), key=lambda t: t.name.lower())


@app.post("/api/teams", response_model=TeamResponse, status_code=201)
def create_team(
    request: TeamCreate,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    _require(actor, "manage_teams")
    data = request.model_dump()
    _check_team_refs(repo, data)
    for field in ("member_ids", *associations.ASSOCIATION_FIELDS.values()):
        data[field] = list(dict.fromkeys(data[field]))
    try:
        team = repo.add(Team(**data))
        repo.commit()
        logger.info(f"Created team '{team.name}' with {len(team.member_ids)} members")
        return team
    except Exception as e:
        raise _server_error(repo, "creating team", e) from e


@app.get("/api/teams/{team_id}", response_model=TeamResponse)
def get_team(
    team_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    return _get_team(repo, team_id)


@app.put("/api/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    request: TeamUpdate,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    _require(actor, "manage_teams")
    team = _get_team(repo, team_id)
    data = request.model_dump(exclude_none=True)
    _check_team_refs(repo, data)
    for field, value in data.items():
        setattr(team, field, list(dict.fromkeys(value)) if isinstance(value, list) else value)
    try:
        team = repo.add(team)
        repo.commit()
        return team
    except Exception as e:
        raise _server_error(repo, "updating team", e) from e


@app.delete("/api/teams/{team_id}")
def delete_team(
    team_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    _require(actor, "manage_teams")
    _get_team(repo, team_id)
    try:
        repo.delete(Team, team_id)
        repo.commit()
        return {"ok": True, "message": "Team deleted successfully"}
    except Exception as e:
        raise _server_error(repo, "deleting team", e) from e


@app.post("/api/teams/{team_id}/members/{user_id}", response_model=TeamResponse)
def add_team_member(
    team_id: str,
    user_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    _require(actor, "manage_teams")
    team = _get_team(repo, team_id)
    if repo.get(User, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user_id not in team.member_ids:
        team.member_ids = [*team.member_ids, user_id]
        try:
            team = repo.add(team)
            repo.commit()
        except Exception as e:
            raise _server_error(repo, "adding team member", e) from e
    return team


@app.delete("/api/teams/{team_id}/members/{user_id}", response_model=TeamResponse)
def remove_team_member(
    team_id: str,
    user_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    _require(actor, "manage_teams")
    team = _get_team(repo, team_id)
    if user_id not in team.member_ids:
        raise HTTPException(status_code=404, detail="User is not a member of this team")
    team.member_ids = [m for m in team.member_ids if m != user_id]
    if team.leader_id == user_id:
        team.leader_id = None
    try:
        team = repo.add(team)
        repo.commit()
        return team
    except Exception as e:
        raise _server_error(repo, "removing team member", e) from e


# Users


def _public_user(actor: User, user: User) -> UserResponse:
    data = UserResponse.model_validate(user)
    if user.id != actor.id and not workflow.has_permission(actor, "view_billable_rates"):
        data.billable_rate = None
    return data


@app.get("/api/users/me", response_model=UserResponse)
def get_me(actor: User = Depends(get_current_user)):
    return _public_user(actor, actor)


@app.get("/api/users", response_model=list[UserResponse])
def list_users(
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    users = sorted(repo.list(User), key=lambda u: u.name.lower())
    return [_public_user(actor, user) for user in users]


@app.post("/api/users", response_model=UserCreatedResponse, status_code=201)
def create_user(
    request: UserCreate,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Create a user and hand back their API token (shown only once)."""
    if actor.role != "owner":
        raise HTTPException(status_code=403, detail="Only owners can create users")
    try:
        user = repo.add(User(**request.model_dump(), api_token=new_api_token()))
        repo.commit()
        logger.info(f"Created user '{user.name}' ({user.role})")
        return user
    except Exception as e:
        raise _server_error(repo, "creating user", e) from e


# Notifications


@app.get("/api/notifications", response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = Query(False),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    notifications = repo.list(Notification, user_id=actor.id)
    if unread_only:
        notifications = [n for n in notifications if not n.is_read]
    return sorted(notifications, key=lambda n: as_utc(n.created_at), reverse=True)


@app.post("/api/notifications/read-all")
def mark_all_notifications_read(
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    try:
        count = 0
        for notification in repo.list(Notification, user_id=actor.id, is_read=False):
            notification.is_read = True
            repo.add(notification)
            count += 1
        repo.commit()
        return {"ok": True, "count": count}
    except Exception as e:
        raise _server_error(repo, "marking notifications read", e) from e


@app.post("/api/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    notification = repo.get(Notification, notification_id)
    if notification is None or notification.user_id != actor.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.is_read = True
    try:
        notification = repo.add(notification)
        repo.commit()
        return notification
    except Exception as e:
        raise _server_error(repo, "marking notification read", e) from e


# Reminders


@app.get("/api/reminders", response_model=list[ReminderResponse])
def list_reminders(
    unread_only: bool = Query(True),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    reminders = repo.list(Reminder, user_id=actor.id)
    if unread_only:
        reminders = [r for r in reminders if not r.is_read]
    return sorted(reminders, key=lambda r: as_utc(r.created_at), reverse=True)


@app.post("/api/reminders/check")
def run_reminder_check(
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Create any reminders that are due now. Normally run by cron_job.py."""
    _require(actor, "view_all_timesheets")
    try:
        created = check_and_create_reminders(repo)
    except Exception as e:
        raise _server_error(repo, "checking reminders", e) from e
    return {"ok": True, "created": len(created)}


@app.post("/api/reminders/{reminder_id}/read", response_model=ReminderResponse)
def mark_reminder_read(
    reminder_id: str,
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    reminder = repo.get(Reminder, reminder_id)
    if reminder is None or reminder.user_id != actor.id:
        raise HTTPException(status_code=404, detail="Reminder not found")
    reminder.is_read = True
    try:
        reminder = repo.add(reminder)
        repo.commit()
        return reminder
    except Exception as e:
        raise _server_error(repo, "marking reminder read", e) from e


# Reports


@app.get("/api/reports/summary", response_model=SummaryResponse)
def get_summary(
    user_id: str = Query(None, description="Defaults to everyone visible to the caller"),
    start: str = Query(None, description="Start date (YYYY-MM-DD)"),
    end: str = Query(None, description="End date (YYYY-MM-DD)"),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Hours, status counts and overtime for a period."""
    _check_day(start, "start")
    _check_day(end, "end")
    user_id = _scoped_user_id(actor, user_id)
    entries = EntryStore(repo).list_by_date_range(start, end, user_id)
    return report.timesheet_summary(entries, start=start, end=end)


@app.get("/api/reports/teams/{team_id}", response_model=TeamReportResponse)
def get_team_report(
    team_id: str,
    start: str = Query(None, description="Start date (YYYY-MM-DD)"),
    end: str = Query(None, description="End date (YYYY-MM-DD)"),
    actor: User = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Hours logged against a team's projects, products and departments."""
    _check_day(start, "start")
    _check_day(end, "end")
    team = _get_team(repo, team_id)
    if actor.id not in team.member_ids:
        _require(actor, "view_all_timesheets")
    return report.team_summary(repo, team, start, end)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Timesheet API", "docs": "/docs"}
