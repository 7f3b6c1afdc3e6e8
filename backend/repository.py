"""Persistence adapters behind one repository interface.

Two storage backends exist: a relational database through SQLModel, and a
single JSON document laid out like the browser-local store (one top-level key
per collection). Both stage writes until ``commit`` so multi-step commands
land together or not at all.
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod

from pydantic import ValidationError
from sqlmodel import Session, SQLModel, select

from models import (
    ApprovalAction,
    BillingTarget,
    Notification,
    Reminder,
    Team,
    TimeEntry,
    User,
)

logger = logging.getLogger(__name__)


class Repository(ABC):
    @abstractmethod
    def get(self, model: type[SQLModel], obj_id: str) -> SQLModel | None:
        """Return one object by id, or None."""

    @abstractmethod
    def list(self, model: type[SQLModel], **filters) -> list:
        """Return all objects of a model whose attributes equal the filters."""

    @abstractmethod
    def add(self, obj: SQLModel) -> SQLModel:
        """Insert or replace an object by id. Returns the stored object."""

    @abstractmethod
    def delete(self, model: type[SQLModel], obj_id: str) -> bool:
        """Remove an object. Returns False if it did not exist."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class SqlRepository(Repository):
    def __init__(self, session: Session):
        self.session = session

    def get(self, model, obj_id):
        return self.session.get(model, obj_id)

    def list(self, model, **filters):
        stmt = select(model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(model, field) == value)
        return list(self.session.exec(stmt).all())

    def add(self, obj):
        if obj in self.session:
            return obj
        return self.session.merge(obj)

    def delete(self, model, obj_id):
        obj = self.session.get(model, obj_id)
        if obj is None:
            return False
        self.session.delete(obj)
        return True

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()


# Top-level keys of the local document store
COLLECTION_KEYS = {
    User: "users",
    Team: "teams",
    TimeEntry: "timeEntries",
    ApprovalAction: "approvalHistory",
    Notification: "notifications",
    Reminder: "reminders",
}
TARGET_KEYS = {
    "project": "projects",
    "product": "products",
    "department": "departments",
}


# Serializes reads and commits of JSON stores within this process
_store_lock = threading.Lock()


def _without(rows: list, obj_id: str) -> list:
    return [r for r in rows if not (isinstance(r, dict) and r.get("id") == obj_id)]


class JsonFileRepository(Repository):
    """Document-store adapter persisting every collection in one JSON file.

    Writes are applied to an in-memory copy and also recorded. On commit the
    file is re-read under a lock and the recorded writes are replayed onto it,
    so concurrent repositories only overwrite the rows they touched.
    """

    def __init__(self, path: str):
        self.path = path
        self._pending = []
        with _store_lock:
            self._data = self._load()

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Store {self.path} is not a JSON object, ignoring it")
            return {}
        return data

    def _keys(self, model, filters) -> list[str]:
        if model is BillingTarget:
            category = filters.get("category")
            if category:
                return [TARGET_KEYS[category]] if category in TARGET_KEYS else []
            return list(TARGET_KEYS.values())
        return [COLLECTION_KEYS[model]]

    def _key_for(self, obj) -> str:
        if isinstance(obj, BillingTarget):
            return TARGET_KEYS[obj.category]
        return COLLECTION_KEYS[type(obj)]

    def _rows(self, key: str, data: dict | None = None) -> list[dict]:
        rows = (self._data if data is None else data).get(key)
        if rows is None:
            return []
        if not isinstance(rows, list):
            logger.warning(f"Key '{key}' is not a list, treating it as empty")
            return []
        return rows

    def _decode(self, model, row):
        try:
            return model.model_validate(row)
        except ValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__} row: {e}")
            return None

    def _apply(self, data: dict, op: tuple) -> bool:
        action, keys, obj_id, row = op
        removed = False
        for key in keys:
            rows = self._rows(key, data)
            kept = _without(rows, obj_id)
            if len(kept) != len(rows):
                removed = True
            if action == "put" and key == keys[0]:
                kept.append(row)
            if kept != rows or key in data:
                data[key] = kept
        return removed

    def get(self, model, obj_id):
        for key in self._keys(model, {}):
            for row in self._rows(key):
                if isinstance(row, dict) and row.get("id") == obj_id:
                    return self._decode(model, row)
        return None

    def list(self, model, **filters):
        results = []
        for key in self._keys(model, filters):
            for row in self._rows(key):
                if not isinstance(row, dict):
                    continue
                obj = self._decode(model, row)
                if obj is None:
                    continue
                if all(getattr(obj, f) == v for f, v in filters.items()):
                    results.append(obj)
        return results

    def add(self, obj):
        key = self._key_for(obj)
        # A target moved to another category leaves its old key
        others = [k for k in self._keys(type(obj), {}) if k != key]
        op = ("put", [key, *others], obj.id, obj.model_dump(mode="json"))
        self._apply(self._data, op)
        self._pending.append(op)
        return obj

    def delete(self, model, obj_id):
        op = ("drop", self._keys(model, {}), obj_id, None)
        removed = self._apply(self._data, op)
        if removed:
            self._pending.append(op)
        return removed

    def commit(self):
        with _store_lock:
            data = self._load()
            for op in self._pending:
                self._apply(data, op)

            directory = os.path.dirname(os.path.abspath(self.path))
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".store-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2)
                os.replace(tmp_path, self.path)
            except Exception:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
            self._data = data
            self._pending = []

    def rollback(self):
        with _store_lock:
            self._data = self._load()
        self._pending = []
