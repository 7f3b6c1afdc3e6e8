from associations import determine_is_billable
from db import open_repository
from hours import derive_entry_hours
from models import BillingTarget, Team, TimeEntry, User
from store import EntryStore

# Fixed tokens so the demo API can be called straight away
DEMO_TOKENS = {
    "Olivia Owner": "demo-owner-token",
    "Max Manager": "demo-manager-token",
    "Fiona Finance": "demo-finance-token",
    "Alice Johnson": "demo-alice-token",
    "Bob Smith": "demo-bob-token",
}


def seed_database():
    """Seed the configured store with sample users, targets, teams and entries."""
    with open_repository() as repo:
        # Check if data already exists
        if repo.list(User):
            print("Database already has data, skipping seed.")
            return

        users = {
            name: repo.add(User(name=name, email=email, role=role, billable_rate=rate, api_token=DEMO_TOKENS[name]))
            for name, email, role, rate in [
                ("Olivia Owner", "olivia@example.com", "owner", 150.0),
                ("Max Manager", "max@example.com", "manager", 120.0),
                ("Fiona Finance", "fiona@example.com", "finance_manager", 110.0),
                ("Alice Johnson", "alice@example.com", "employee", 95.0),
                ("Bob Smith", "bob@example.com", "employee", 90.0),
            ]
        }

        website = repo.add(
            BillingTarget(
                category="project",
                name="Website Redesign",
                is_billable=True,
                breakdown=[
                    {
                        "name": "Design",
                        "tasks": [
                            {"name": "Wireframes", "subtasks": [{"name": "Home page"}, {"name": "Checkout"}]},
                            {"name": "Visual design", "subtasks": []},
                        ],
                    },
                    {"name": "Build", "tasks": [{"name": "Frontend", "subtasks": [{"name": "Components"}]}]},
                ],
            )
        )
        app_product = repo.add(
            BillingTarget(
                category="product",
                name="Mobile App",
                is_billable=True,
                breakdown=[
                    {"name": "Discovery", "tasks": [{"name": "User interviews", "subtasks": []}]},
                    {"name": "Release", "tasks": [{"name": "QA", "subtasks": [{"name": "Regression"}]}]},
                ],
            )
        )
        operations = repo.add(
            BillingTarget(
                category="department",
                name="Operations",
                is_billable=False,
                breakdown=[
                    {"name": "Administration", "duties": [{"name": "Reporting", "tasks": [{"name": "Monthly close"}]}]},
                ],
            )
        )

        repo.add(
            Team(
                name="Delivery",
                description="Client delivery team",
                leader_id=users["Max Manager"].id,
                member_ids=[users["Max Manager"].id, users["Alice Johnson"].id, users["Bob Smith"].id],
                associated_projects=[website.id],
                associated_products=[app_product.id],
            )
        )
        repo.add(
            Team(
                name="Back Office",
                leader_id=users["Fiona Finance"].id,
                member_ids=[users["Fiona Finance"].id, users["Alice Johnson"].id],
                associated_departments=[operations.id],
            )
        )

        store = EntryStore(repo)
        samples = [
            ("Alice Johnson", "2024-01-15", "09:00", "17:30", 30, website, "Design", "Wireframes", "Home page", "Homepage wireframes"),
            ("Alice Johnson", "2024-01-16", "08:30", "18:00", 60, website, "Build", "Frontend", "Components", "Button components"),
            ("Alice Johnson", "2024-01-17", "09:00", "12:00", 0, operations, "Administration", "Reporting", None, "Expense reports"),
            ("Bob Smith", "2024-01-15", "10:00", "19:00", 45, app_product, "Release", "QA", "Regression", "Regression pass"),
            ("Bob Smith", "2024-01-16", "22:00", "02:00", 0, app_product, "Release", "QA", None, "Release night"),
        ]
        for name, day, clock_in, clock_out, break_minutes, target, level, task_label, subtask, task in samples:
            user = users[name]
            entry = TimeEntry(
                user_id=user.id,
                user_name=user.name,
                date=day,
                clock_in=clock_in,
                clock_out=clock_out,
                break_minutes=break_minutes,
                available_hours=user.available_hours,
                task=task,
                category=target.category,
                target_id=target.id,
                target_name=target.name,
                level=level,
                task_label=task_label,
                subtask=subtask,
                is_billable=determine_is_billable(repo, target.category, target_id=target.id),
            )
            store.save(derive_entry_hours(entry, set(), creating=True))

        repo.commit()
        print(f"Seeded {len(users)} users and {len(samples)} sample entries.")


if __name__ == "__main__":
    from db import STORAGE_BACKEND, create_db_and_tables

    if STORAGE_BACKEND != "json":
        create_db_and_tables()
    seed_database()
