import pytest

from conftest import DEPARTMENT_BREAKDOWN, PROJECT_BREAKDOWN
from hierarchy import SelectionError, options, schema_for, validate_breakdown, validate_selection
from models import BillingTarget


@pytest.fixture
def project():
    return BillingTarget(category="project", name="Website", breakdown=PROJECT_BREAKDOWN)


@pytest.fixture
def department():
    return BillingTarget(category="department", name="Operations", breakdown=DEPARTMENT_BREAKDOWN)


def test_schema_labels_per_category():
    assert schema_for("project").labels == ("level", "task", "subtask")
    assert schema_for("product").keys == ("stages", "tasks", "subtasks")
    assert schema_for("department").keys == ("functions", "duties", "tasks")
    with pytest.raises(SelectionError):
        schema_for("client")


def test_options_walk_each_tier(project):
    assert options(project) == ["Design", "Build"]
    assert options(project, level="Design") == ["Wireframes", "Visual design"]
    assert options(project, level="Design", task="Wireframes") == ["Home page", "Checkout"]
    assert options(project, level="Build", task="Frontend") == []


def test_options_unknown_parent(project):
    with pytest.raises(SelectionError, match="Unknown level 'Deploy'"):
        options(project, level="Deploy")


def test_options_task_without_level(project):
    with pytest.raises(SelectionError):
        options(project, task="Wireframes")


def test_department_uses_its_own_keys(department):
    assert options(department, level="Administration") == ["Reporting"]
    assert options(department, level="Administration", task="Reporting") == ["Monthly close"]


def test_validate_selection(project):
    validate_selection(project)
    validate_selection(project, "Design")
    validate_selection(project, "Design", "Wireframes", "Checkout")

    with pytest.raises(SelectionError):
        validate_selection(project, "Design", "Wireframes", "Footer")
    with pytest.raises(SelectionError, match="needs a level"):
        validate_selection(project, None, "Wireframes")


def test_validate_breakdown():
    validate_breakdown("project", PROJECT_BREAKDOWN)
    validate_breakdown("department", DEPARTMENT_BREAKDOWN)

    with pytest.raises(SelectionError):
        validate_breakdown("project", [{"name": "Design", "tasks": [{"subtasks": []}]}])
    with pytest.raises(SelectionError):
        validate_breakdown("product", [{"name": "Discovery", "tasks": "QA"}])
