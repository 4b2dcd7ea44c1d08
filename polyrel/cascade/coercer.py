import logging
from typing import Any

from polyrel.model import BaseModel

logger = logging.getLogger(__name__)


def _is_empty(value) -> bool:
    if value is None or value == '':
        return True
    if isinstance(value, (dict, list, tuple, set)) and not value:
        return True
    return False


class AssignmentCoercer:
    """Turns assigned values into related models.

    A value may be a model of the target type, a primary key (scalar, tuple
    or key mapping) or a mapping of attributes. Keys are looked up through
    the owner's session; whatever is not found is created.
    """

    def __init__(self, owner: BaseModel):
        self.owner = owner

    def coerce(self, relation, value, create_missing: bool = True):
        if not relation.many:
            return self._coerce_one(relation, value, create_missing)

        if not isinstance(value, (list, tuple)):
            value = [] if _is_empty(value) else [value]
        coerced = []
        for entry in value:
            model = self._coerce_one(relation, entry, create_missing)
            if model is not None:
                coerced.append(model)
        return coerced

    def _session(self):
        session = self.owner._session
        if session is None:
            message = f"{self.owner.__class__.__name__} {self.owner._entry_id} must be bound to a session to look up related models"
            logger.error(message)
            raise RuntimeError(message)
        return session

    def _lookup_keys(self, relation, target, data: dict[str, Any]) -> dict[str, Any]:
        keys = {}
        for field in target.schema._get_primary_key_fields():
            name = field._python_field_name
            if not _is_empty(data.get(name)):
                keys[name] = data[name]
        if keys:
            return keys

        # the target side of the link; for junction relations this is the
        # column the junction row points at
        for target_attr in relation.link.keys():
            if not _is_empty(data.get(target_attr)):
                keys[target_attr] = data[target_attr]
        return keys

    def _coerce_one(self, relation, data, create_missing: bool):
        target = relation.target_class
        if isinstance(data, target):
            return data
        if isinstance(data, BaseModel):
            message = f"Relation '{relation.name}' expects {target.__name__}, got {data.__class__.__name__}"
            logger.error(message)
            raise TypeError(message)
        if _is_empty(data):
            return None

        keys = self._lookup_keys(relation, target, data) if isinstance(data, dict) else data

        model = None
        if not _is_empty(keys):
            model = self._session().find_one(target, keys)
            if model is None and not create_missing:
                message = f"No {target.__name__} matches {keys} for relation '{relation.name}'"
                logger.error(message)
                raise LookupError(message)

        if model is None:
            logger.debug(f"Creating new {target.__name__} for relation '{relation.name}'")
            model = target()
        if isinstance(data, dict):
            model.set_attributes(data)
        return model
