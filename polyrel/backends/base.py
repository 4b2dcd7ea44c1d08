from abc import ABC, abstractmethod
from typing import Any


class Backend(ABC):
    """Row storage used by a Session.

    Rows are plain dicts keyed by db field names. Every backend keeps one
    implicit transaction per connection, ended by commit or rollback.
    Savepoints give nested transactions where the engine supports them.
    """

    def connect(self):
        pass

    def close(self):
        pass

    @abstractmethod
    def commit(self):
        ...

    @abstractmethod
    def rollback(self):
        ...

    @abstractmethod
    def savepoint(self, name: str):
        ...

    @abstractmethod
    def release_savepoint(self, name: str):
        ...

    @abstractmethod
    def rollback_to_savepoint(self, name: str):
        ...

    @abstractmethod
    def define(self, schema):
        ...

    @abstractmethod
    def insert(self, schema, data: dict[str, Any]):
        ...

    @abstractmethod
    def update(self, schema, key: dict[str, Any], data: dict[str, Any]):
        ...

    @abstractmethod
    def delete(self, schema, key: dict[str, Any]):
        ...

    @abstractmethod
    def select(self, schema, where: dict[str, Any]) -> list[dict[str, Any]]:
        ...
