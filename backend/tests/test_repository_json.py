import json

import pytest

import workflow
from models import ApprovalAction, BillingTarget, Notification, Team, TimeEntry, User
from repository import JsonFileRepository
from store import EntryStore


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "timesheet.json"


def make_entry(user, day="2024-01-15", **kwargs):
    return TimeEntry(
        user_id=user.id,
        user_name=user.name,
        date=day,
        actual_hours=kwargs.pop("hours", 8.0),
        category="project",
        target_name="Website",
        task=kwargs.pop("task", "Build pages"),
        **kwargs,
    )


def test_missing_file_is_empty(store_path):
    repo = JsonFileRepository(str(store_path))
    assert repo.list(TimeEntry) == []
    assert repo.get(User, "nobody") is None


@pytest.mark.parametrize("content", ["not json at all", "[1, 2, 3]", '{"timeEntries": "oops"}'])
def test_unreadable_store_falls_back_to_empty(store_path, content):
    store_path.write_text(content)
    repo = JsonFileRepository(str(store_path))
    assert repo.list(TimeEntry) == []


def test_malformed_rows_are_skipped(store_path):
    store_path.write_text(json.dumps({"users": [{"id": "u1", "name": "Ann"}, {"id": "u2", "role": "x"}, 7]}))
    repo = JsonFileRepository(str(store_path))
    assert [u.name for u in repo.list(User)] == ["Ann"]


def test_nothing_is_written_before_commit(store_path):
    repo = JsonFileRepository(str(store_path))
    user = repo.add(User(name="Ann"))
    EntryStore(repo).save(make_entry(user))
    assert not store_path.exists()

    repo.commit()
    data = json.loads(store_path.read_text())
    assert len(data["users"]) == 1
    assert data["timeEntries"][0]["date"] == "2024-01-15"


def test_save_replaces_by_id(store_path):
    repo = JsonFileRepository(str(store_path))
    user = repo.add(User(name="Ann"))
    store = EntryStore(repo)
    entry = store.save(make_entry(user, hours=4))
    entry.actual_hours = 6
    store.save(entry)
    repo.commit()

    reopened = JsonFileRepository(str(store_path))
    stored = reopened.list(TimeEntry)
    assert len(stored) == 1
    assert stored[0].actual_hours == 6


def test_targets_are_kept_per_category(store_path):
    repo = JsonFileRepository(str(store_path))
    repo.add(BillingTarget(category="project", name="Website", breakdown=[{"name": "Design", "tasks": []}]))
    repo.add(BillingTarget(category="department", name="Operations"))
    repo.commit()

    data = json.loads(store_path.read_text())
    assert [p["name"] for p in data["projects"]] == ["Website"]
    assert [d["name"] for d in data["departments"]] == ["Operations"]

    reopened = JsonFileRepository(str(store_path))
    assert [t.name for t in reopened.list(BillingTarget, category="project")] == ["Website"]
    assert reopened.list(BillingTarget, category="project")[0].breakdown[0]["name"] == "Design"
    assert len(reopened.list(BillingTarget)) == 2


def test_rollback_discards_staged_changes(store_path):
    repo = JsonFileRepository(str(store_path))
    repo.add(Team(name="Delivery", member_ids=["u1"]))
    repo.commit()

    repo.add(Team(name="Scratch"))
    repo.delete(Team, repo.list(Team, name="Delivery")[0].id)
    repo.rollback()
    assert [t.name for t in repo.list(Team)] == ["Delivery"]


def test_approval_commits_all_three_records(store_path):
    repo = JsonFileRepository(str(store_path))
    user = repo.add(User(name="Ann"))
    entry = EntryStore(repo).save(make_entry(user))
    repo.commit()

    workflow.set_status(repo, entry.id, workflow.APPROVED, "Approved", "Max Manager")

    reopened = JsonFileRepository(str(store_path))
    assert reopened.get(TimeEntry, entry.id).status == "approved"
    assert len(reopened.list(ApprovalAction, entry_id=entry.id)) == 1
    assert len(reopened.list(Notification, user_id=user.id)) == 1


def test_overlapping_repositories_keep_each_others_writes(store_path):
    first = JsonFileRepository(str(store_path))
    second = JsonFileRepository(str(store_path))

    first.add(User(name="Ann"))
    second.add(Team(name="Delivery"))
    first.commit()
    second.commit()

    reopened = JsonFileRepository(str(store_path))
    assert [u.name for u in reopened.list(User)] == ["Ann"]
    assert [t.name for t in reopened.list(Team)] == ["Delivery"]
    # The later commit also refreshes its own view
    assert [u.name for u in second.list(User)] == ["Ann"]


def test_overlapping_delete_only_drops_its_row(store_path):
    setup = JsonFileRepository(str(store_path))
    keep = setup.add(Team(name="Keep"))
    drop = setup.add(Team(name="Drop"))
    setup.commit()

    deleter = JsonFileRepository(str(store_path))
    writer = JsonFileRepository(str(store_path))
    assert deleter.delete(Team, drop.id) is True
    writer.add(Team(name="New"))
    writer.commit()
    deleter.commit()

    names = {t.name for t in JsonFileRepository(str(store_path)).list(Team)}
    assert names == {"Keep", "New"}
    assert keep.id in {t.id for t in JsonFileRepository(str(store_path)).list(Team)}
