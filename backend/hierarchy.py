"""Three-tier breakdown selection shared by projects, products and departments.

Each category names its tiers differently, so one schema per category drives
the same lookup code instead of a separate branch per category.
"""
from dataclasses import dataclass

from models import BillingTarget


class SelectionError(ValueError):
    pass


@dataclass(frozen=True)
class HierarchySchema:
    keys: tuple[str, str, str]  # list key holding each tier
    labels: tuple[str, str, str]  # singular name of each tier


SCHEMAS = {
    "project": HierarchySchema(("levels", "tasks", "subtasks"), ("level", "task", "subtask")),
    "product": HierarchySchema(("stages", "tasks", "subtasks"), ("stage", "task", "subtask")),
    "department": HierarchySchema(("functions", "duties", "tasks"), ("function", "duty", "task")),
}


def schema_for(category: str) -> HierarchySchema:
    try:
        return SCHEMAS[category]
    except KeyError:
        raise SelectionError(f"Unknown category '{category}'") from None


def _children(node: dict, key: str) -> list[dict]:
    return [child for child in node.get(key) or [] if isinstance(child, dict)]


def _find(nodes: list[dict], name: str) -> dict | None:
    for node in nodes:
        if node.get("name") == name:
            return node
    return None


def _names(nodes: list[dict]) -> list[str]:
    return [node["name"] for node in nodes if node.get("name")]


def _walk(target: BillingTarget, path: list[str]) -> list[dict]:
    """Follow a path of names and return the nodes one tier below it."""
    schema = schema_for(target.category)
    nodes = [node for node in target.breakdown or [] if isinstance(node, dict)]
    for depth, name in enumerate(path):
        node = _find(nodes, name)
        if node is None:
            raise SelectionError(
                f"Unknown {schema.labels[depth]} '{name}' in {target.category} '{target.name}'"
            )
        nodes = _children(node, schema.keys[depth + 1]) if depth + 1 < len(schema.keys) else []
    return nodes


def options(target: BillingTarget, level: str | None = None, task: str | None = None) -> list[str]:
    """Selectable names at the tier below the given selection."""
    if task is not None and level is None:
        raise SelectionError(f"A {schema_for(target.category).labels[1]} needs a parent selection")
    path = [name for name in (level, task) if name is not None]
    return _names(_walk(target, path))


def validate_selection(
    target: BillingTarget,
    level: str | None = None,
    task: str | None = None,
    subtask: str | None = None,
) -> None:
    schema = schema_for(target.category)
    chosen = [level, task, subtask]
    for depth in range(1, 3):
        if chosen[depth] and not chosen[depth - 1]:
            raise SelectionError(
                f"A {schema.labels[depth]} needs a {schema.labels[depth - 1]} selection"
            )
    path = [name for name in chosen if name]
    _walk(target, path)


def validate_breakdown(category: str, breakdown: list) -> None:
    """Check that every node of a breakdown tree carries a name."""
    schema = schema_for(category)

    def check(nodes, depth):
        if not isinstance(nodes, list):
            raise SelectionError(f"'{schema.keys[depth]}' must be a list")
        for node in nodes:
            if not isinstance(node, dict) or not str(node.get("name") or "").strip():
                raise SelectionError(f"Every {schema.labels[depth]} needs a name")
            if depth + 1 < len(schema.keys):
                check(node.get(schema.keys[depth + 1]) or [], depth + 1)

    check(breakdown, 0)
