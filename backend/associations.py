"""Which billing targets a user may log time against, via team membership."""
from models import BillingTarget, Team
from repository import Repository

ASSOCIATION_FIELDS = {
    "project": "associated_projects",
    "product": "associated_products",
    "department": "associated_departments",
}


def user_teams(repo: Repository, user_id: str) -> list[Team]:
    return [team for team in repo.list(Team) if user_id in (team.member_ids or [])]


def associated_target_ids(repo: Repository, user_id: str, category: str) -> list[str]:
    """Union of one category's associations over all the user's teams, first-seen order."""
    field = ASSOCIATION_FIELDS[category]
    seen: dict[str, None] = {}
    for team in user_teams(repo, user_id):
        for target_id in getattr(team, field) or []:
            seen.setdefault(target_id, None)
    return list(seen)


def associated_targets(repo: Repository, user_id: str, category: str) -> list[BillingTarget]:
    ids = set(associated_target_ids(repo, user_id, category))
    if not ids:
        return []
    return [target for target in repo.list(BillingTarget, category=category) if target.id in ids]


def associated_projects(repo: Repository, user_id: str) -> list[BillingTarget]:
    return associated_targets(repo, user_id, "project")


def associated_products(repo: Repository, user_id: str) -> list[BillingTarget]:
    return associated_targets(repo, user_id, "product")


def associated_departments(repo: Repository, user_id: str) -> list[BillingTarget]:
    return associated_targets(repo, user_id, "department")


def is_associated(repo: Repository, user_id: str, category: str, target_id: str) -> bool:
    return target_id in associated_target_ids(repo, user_id, category)


def find_target(
    repo: Repository,
    category: str,
    name: str | None = None,
    target_id: str | None = None,
) -> BillingTarget | None:
    """Look a target up by id when one is given, otherwise by name."""
    if target_id:
        target = repo.get(BillingTarget, target_id)
        return target if target is not None and target.category == category else None
    if name:
        for target in repo.list(BillingTarget, category=category):
            if target.name == name:
                return target
    return None


def determine_is_billable(
    repo: Repository,
    category: str,
    name: str | None = None,
    target_id: str | None = None,
) -> bool:
    """Billable flag of the referenced target; False when nothing matches."""
    if category not in ASSOCIATION_FIELDS:
        return False
    target = find_target(repo, category, name=name, target_id=target_id)
    return bool(target and target.is_billable)
