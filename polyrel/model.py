import uuid as uuidlib
import logging
from copy import deepcopy
from enum import Flag, auto
from typing import Any, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Op(Flag):
    NONE = 0
    INSERT = auto()
    UPDATE = auto()
    DELETE = auto()
    ALL = INSERT | UPDATE | DELETE


class BaseModel:
    schema: Type[Any]
    transactional: Op = Op.ALL
    _relationships: dict = {}

    def __init__(self, _entry_id: str = None):
        if _entry_id is None:
            _entry_id = str(uuidlib.uuid4())
        self._entry_id = _entry_id
        self._is_new = True
        self._session = None
        self._errors: dict[str, list[str]] = {}
        self._related: dict[str, Any] = {}
        self._original_state: dict[str, Any] = {}
        self._behaviors = list(self.behaviors())

    def behaviors(self) -> list:
        return []

    def get_behavior(self, behavior_type):
        for behavior in self._behaviors:
            if isinstance(behavior, behavior_type):
                return behavior
        return None

    @classmethod
    def _get_relationships(cls) -> dict:
        return dict(cls._relationships)

    @classmethod
    def _get_relationship(cls, name: str):
        relation = cls._relationships.get(name)
        if relation is None:
            message = f"{cls.__name__} declares no relation named '{name}'"
            logger.error(message)
            raise ValueError(message)
        return relation

    def assign(self, name: str, value, create_missing: bool = True):
        for behavior in self._behaviors:
            if hasattr(behavior, 'handles') and behavior.handles(name):
                return behavior.assign(name, value, create_missing=create_missing)
        message = f"No behavior of {self.__class__.__name__} handles the relation '{name}'"
        logger.error(message)
        raise ValueError(message)

    def _get_related(self, name: str):
        if name in self._related:
            return self._related[name]
        relation = self._get_relationship(name)
        if self._session is None or self._is_new:
            return [] if relation.many else None
        value = self._session.load_related(self, name)
        self._related[name] = value
        return value

    def _populate_related(self, name: str, value):
        self._related[name] = value

    def _clear_related(self):
        self._related = {}

    def primary_key(self) -> tuple:
        return tuple(
            getattr(self, field._python_field_name, None)
            for field in self.schema._get_primary_key_fields()
        )

    def _primary_key_dict(self) -> dict[str, Any]:
        return {
            field._python_field_name: getattr(self, field._python_field_name, None)
            for field in self.schema._get_primary_key_fields()
        }

    def set_attributes(self, data: dict[str, Any]):
        field_map = self.schema._get_field_map()
        for name, value in data.items():
            if name not in field_map:
                logger.debug(f"Ignoring unknown attribute '{name}' for {self.__class__.__name__}")
                continue
            setattr(self, name, value)

    def _diff(self) -> dict[str, tuple]:
        changelog = {}
        for key in self.schema._get_field_map().keys():
            original_value = self._original_state.get(key)
            current_value = self.__dict__.get(key)
            if original_value != current_value:
                changelog[key] = (original_value, current_value)
        return changelog

    def _is_dirty(self) -> bool:
        return bool(self._diff())

    def _update_snapshot(self):
        self._original_state = {
            key: deepcopy(self.__dict__.get(key))
            for key in self.schema._get_field_map().keys()
        }

    def is_transactional(self, operation: Op) -> bool:
        return bool(self.transactional & operation)

    @property
    def errors(self) -> dict[str, list[str]]:
        return {attribute: list(messages) for attribute, messages in self._errors.items()}

    def add_error(self, attribute: str, message: str):
        self._errors.setdefault(attribute, []).append(message)

    def has_errors(self) -> bool:
        return bool(self._errors)

    def clear_errors(self):
        self._errors = {}

    def validate(self) -> bool:
        self.clear_errors()
        for name, field in self.schema._get_field_map().items():
            for message in field._validate(getattr(self, name, None)):
                self.add_error(name, message)
        return not self.has_errors()

    @classmethod
    def _from_row(cls: Type[T], row: dict[str, Any]) -> T:
        obj_data = {
            field._python_field_name: field._polytype._from_prism_serializable(row.get(field._db_field_name))
            for field in cls.schema._get_fields()
        }
        model = cls(**obj_data)
        model._is_new = False
        model._update_snapshot()
        return model

    def _to_update_dict(self) -> dict[str, Any]:
        field_map = self.schema._get_field_map()
        primary_keys = self._primary_key_dict()
        return {
            field_map[name]._db_field_name: field_map[name]._polytype._to_prism_serializable(current_value)
            for name, (_, current_value) in self._diff().items()
            if name not in primary_keys
        }

    def _to_insert_dict(self) -> dict[str, Any]:
        return {
            field._db_field_name: field._polytype._to_prism_serializable(getattr(self, field._python_field_name))
            for field in self.schema._get_fields()
            if hasattr(self, field._python_field_name)
        }

    def _to_key_dict(self) -> dict[str, Any]:
        return {
            field._db_field_name: field._polytype._to_prism_serializable(getattr(self, field._python_field_name, None))
            for field in self.schema._get_primary_key_fields()
        }

    def __repr__(self):
        field_map = self.schema._get_field_map()
        field_values = {
            name: getattr(self, name, None)
            for name in field_map.keys()
        }
        return f"<{self.__class__.__name__} {field_values}>"
