import logging
from copy import deepcopy
from typing import Any

from polyrel.backends.base import Backend

logger = logging.getLogger(__name__)


class MemoryStore:
    def __init__(self):
        self.tables: dict[tuple[str, str], list[dict[str, Any]]] = {}

    def snapshot(self):
        return deepcopy(self.tables)

    def restore(self, snapshot):
        self.tables = deepcopy(snapshot)

    def rows(self, schema) -> list[dict[str, Any]]:
        key = (schema._get_namespace(), schema.entity_name)
        if key not in self.tables:
            message = f"Entity {schema.entity_name} is not defined in namespace {key[0]}"
            logger.error(message)
            raise RuntimeError(message)
        return self.tables[key]


class MemoryBackend(Backend):
    """Backend over a shared MemoryStore, meant for tests and embedding.

    Sessions on the same store see each other's uncommitted writes; rollback
    restores the store as it was at the last commit of this backend.
    """

    def __init__(self, store: MemoryStore):
        self._store = store
        self._checkpoint = None
        self._savepoints: list[tuple[str, Any]] = []

    def connect(self):
        self._checkpoint = self._store.snapshot()

    def close(self):
        self._checkpoint = None
        self._savepoints = []

    def commit(self):
        self._savepoints = []
        self._checkpoint = self._store.snapshot()

    def rollback(self):
        self._savepoints = []
        self._store.restore(self._checkpoint)

    def savepoint(self, name: str):
        self._savepoints.append((name, self._store.snapshot()))

    def _savepoint_index(self, name: str) -> int:
        for index, (savepoint_name, _) in enumerate(self._savepoints):
            if savepoint_name == name:
                return index
        raise RuntimeError(f"Unknown savepoint '{name}'")

    def release_savepoint(self, name: str):
        del self._savepoints[self._savepoint_index(name):]

    def rollback_to_savepoint(self, name: str):
        index = self._savepoint_index(name)
        self._store.restore(self._savepoints[index][1])
        del self._savepoints[index + 1:]

    def define(self, schema):
        key = (schema._get_namespace(), schema.entity_name)
        self._store.tables.setdefault(key, [])

    def insert(self, schema, data: dict[str, Any]):
        rows = self._store.rows(schema)
        key = {field._db_field_name: data.get(field._db_field_name) for field in schema._get_primary_key_fields()}
        if any(self._matches(row, key) for row in rows):
            raise ValueError(f"Duplicate primary key {tuple(key.values())} in entity {schema.entity_name}")
        row = {field._db_field_name: None for field in schema._get_fields()}
        row.update(deepcopy(data))
        rows.append(row)

    def update(self, schema, key: dict[str, Any], data: dict[str, Any]):
        for row in self._store.rows(schema):
            if self._matches(row, key):
                row.update(deepcopy(data))

    def delete(self, schema, key: dict[str, Any]):
        rows = self._store.rows(schema)
        rows[:] = [row for row in rows if not self._matches(row, key)]

    def select(self, schema, where: dict[str, Any]) -> list[dict[str, Any]]:
        return [deepcopy(row) for row in self._store.rows(schema) if self._matches(row, where)]

    @staticmethod
    def _matches(row: dict[str, Any], where: dict[str, Any]) -> bool:
        return all(row.get(column) == value for column, value in where.items())
