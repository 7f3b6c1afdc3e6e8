import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app import app
from db import get_repository
from models import BillingTarget, Team, User
from repository import SqlRepository

PROJECT_BREAKDOWN = [
    {
        "name": "Design",
        "tasks": [
            {"name": "Wireframes", "subtasks": [{"name": "Home page"}, {"name": "Checkout"}]},
            {"name": "Visual design", "subtasks": []},
        ],
    },
    {"name": "Build", "tasks": [{"name": "Frontend", "subtasks": []}]},
]

DEPARTMENT_BREAKDOWN = [
    {"name": "Administration", "duties": [{"name": "Reporting", "tasks": [{"name": "Monthly close"}]}]},
]


@pytest.fixture(scope="function")
def test_session():
    """Create a fresh in-memory database session."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture(scope="function")
def repo(test_session):
    return SqlRepository(test_session)


@pytest.fixture(scope="function")
def client(repo):
    """Create a test client with dependency override."""

    def get_test_repository():
        yield repo

    app.dependency_overrides[get_repository] = get_test_repository
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def users(repo):
    people = {
        "owner": User(name="Olivia Owner", role="owner", billable_rate=150.0, api_token="owner-token"),
        "manager": User(name="Max Manager", role="manager", billable_rate=120.0, api_token="manager-token"),
        "finance": User(name="Fiona Finance", role="finance_manager", billable_rate=110.0, api_token="finance-token"),
        "alice": User(name="Alice Johnson", role="employee", billable_rate=95.0, api_token="alice-token"),
        "bob": User(name="Bob Smith", role="employee", billable_rate=90.0, api_token="bob-token"),
    }
    for key, user in people.items():
        people[key] = repo.add(user)
    repo.commit()
    return people


@pytest.fixture
def targets(repo, users):
    found = {
        "website": BillingTarget(category="project", name="Website", is_billable=True, breakdown=PROJECT_BREAKDOWN),
        "internal": BillingTarget(category="project", name="Internal Tools", is_billable=False),
        "secret": BillingTarget(category="project", name="Secret", is_billable=True),
        "app": BillingTarget(category="product", name="Mobile App", is_billable=True),
        "ops": BillingTarget(category="department", name="Operations", breakdown=DEPARTMENT_BREAKDOWN),
    }
    for key, target in found.items():
        found[key] = repo.add(target)
    repo.commit()
    return found


@pytest.fixture
def teams(repo, users, targets):
    delivery = repo.add(
        Team(
            name="Delivery",
            leader_id=users["manager"].id,
            member_ids=[users["manager"].id, users["alice"].id, users["bob"].id],
            associated_projects=[targets["website"].id, targets["internal"].id],
            associated_products=[targets["app"].id],
        )
    )
    back_office = repo.add(
        Team(
            name="Back Office",
            member_ids=[users["alice"].id],
            associated_projects=[targets["website"].id],
            associated_departments=[targets["ops"].id],
        )
    )
    repo.commit()
    return {"delivery": delivery, "back_office": back_office}


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
