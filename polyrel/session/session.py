import uuid
import logging
from enum import Enum, auto
from typing import Any, TYPE_CHECKING

from polyrel.events import ModelEvent, LifecycleHooks
from polyrel.model import BaseModel, Op
from polyrel.session.transaction import Transaction

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from polyrel.application import Application


class _SessionState(Enum):
    INITIALIZED = auto()
    ACTIVE = auto()
    COMPLETED = auto()


class Session:
    def __init__(self, application: 'Application'):
        if not application._initialized:
            message = "The application must be initialized before its sessions"
            logger.error(message)
            raise ValueError(message)

        self._application = application
        self._session_id = uuid.uuid4()

        self._backend = None
        self._transaction = None
        self._state = _SessionState.INITIALIZED
        self._tracked_models: dict[tuple, BaseModel] = {}

    def __enter__(self):
        if self._state == _SessionState.ACTIVE:
            return self

        self._backend = self._application._create_backend()
        self._backend.connect()
        self._transaction = Transaction(self)
        self._state = _SessionState.ACTIVE
        logger.debug(f"Session {self._session_id} started.")
        return self

    def _throw_if_not_active(self):
        if self._state == _SessionState.INITIALIZED:
            message = f'Session {self._session_id} must first be activated by using it in a "with" block'
            logger.error(message)
            raise RuntimeError(message)

        if self._state == _SessionState.COMPLETED:
            message = f'This operation cannot be performed by the completed Session {self._session_id}'
            logger.error(message)
            raise RuntimeError(message)

    @property
    def transaction(self) -> Transaction:
        return self._transaction

    def begin_transaction(self) -> Transaction:
        self._throw_if_not_active()
        self._transaction._begin()
        return self._transaction

    def track(self, model: BaseModel):
        model._session = self
        self._tracked_models[(type(model), model.primary_key())] = model

    def _untrack(self, model: BaseModel):
        self._tracked_models.pop((type(model), model.primary_key()), None)

    @staticmethod
    def _hooks(model: BaseModel) -> list[LifecycleHooks]:
        return [behavior for behavior in model._behaviors if isinstance(behavior, LifecycleHooks)]

    def _abort(self, hooks, event: ModelEvent):
        for hook in hooks:
            hook.abort(event)

    def add(self, model: BaseModel):
        self._throw_if_not_active()
        self._transaction._record(model)
        self._backend.insert(model.schema, model._to_insert_dict())
        model._is_new = False
        model._update_snapshot()
        self.track(model)

    def add_all(self, models):
        # session state is checked by add
        for model in models:
            self.add(model)

    def _update(self, model: BaseModel):
        data = model._to_update_dict()
        if not data:
            return
        self._transaction._record(model)
        self._backend.update(model.schema, model._to_key_dict(), data)
        model._update_snapshot()

    def validate(self, model: BaseModel) -> bool:
        return model.validate()

    def save(self, model: BaseModel, validate: bool = True) -> bool:
        self._throw_if_not_active()
        model._session = self
        operation = Op.INSERT if model._is_new else Op.UPDATE
        event = ModelEvent(model, self, operation)
        hooks = self._hooks(model)

        if validate:
            for hook in hooks:
                hook.before_validate(event)
            if not event.is_valid:
                logger.debug(f"Saving {model.__class__.__name__} {model._entry_id} was vetoed by a lifecycle hook.")
                self._abort(hooks, event)
                return False
            if not self.validate(model):
                logger.debug(f"{model.__class__.__name__} {model._entry_id} failed validation: {model.errors}")
                self._abort(hooks, event)
                return False

        try:
            if operation is Op.INSERT:
                self.add(model)
            else:
                self._update(model)
            for hook in hooks:
                hook.after_save(event)
        except Exception:
            self._abort(hooks, event)
            raise
        return True

    def _normalize_keys(self, model_class, keys) -> dict[str, Any]:
        if isinstance(keys, dict):
            return dict(keys)
        key_fields = model_class.schema._get_primary_key_fields()
        if isinstance(keys, (list, tuple)):
            if len(keys) != len(key_fields):
                raise ValueError(f"{model_class.__name__} expects {len(key_fields)} primary key values, got {len(keys)}")
            return {field._python_field_name: value for field, value in zip(key_fields, keys)}
        if len(key_fields) != 1:
            raise ValueError(f"{model_class.__name__} has a composite primary key, a single value cannot identify it")
        return {key_fields[0]._python_field_name: keys}

    def _to_db_where(self, model_class, where: dict[str, Any]) -> dict[str, Any]:
        schema = model_class.schema
        field_map = schema._get_field_map()
        return {
            schema._get_db_field_name(name): field_map[name]._polytype._to_prism_serializable(value)
            for name, value in where.items()
        }

    def find_all(self, model_class, where: dict[str, Any] = None) -> list[BaseModel]:
        self._throw_if_not_active()
        rows = self._backend.select(model_class.schema, self._to_db_where(model_class, where or {}))
        models = [model_class._from_row(row) for row in rows]
        for model in models:
            self.track(model)
        return models

    def find_one(self, model_class, keys):
        models = self.find_all(model_class, self._normalize_keys(model_class, keys))
        return models[0] if models else None

    def load_related(self, owner: BaseModel, name: str):
        relation = owner._get_relationship(name)
        target = relation.target_class

        if relation.via is not None:
            where = {junction_attr: getattr(owner, owner_attr, None) for junction_attr, owner_attr in relation.via.link.items()}
            related = []
            if None not in where.values():
                for row in self.find_all(relation.via.model_class, where):
                    keys = {target_attr: getattr(row, junction_attr, None) for target_attr, junction_attr in relation.link.items()}
                    if None not in keys.values():
                        related.extend(self.find_all(target, keys))
        else:
            keys = {target_attr: getattr(owner, owner_attr, None) for target_attr, owner_attr in relation.link.items()}
            related = [] if None in keys.values() else self.find_all(target, keys)

        if relation.many:
            return related
        return related[0] if related else None

    def _require_persisted(self, model: BaseModel, action: str):
        if model._is_new:
            message = f"Unable to {action} models: {model.__class__.__name__} {model._entry_id} has not been saved yet"
            logger.error(message)
            raise RuntimeError(message)

    def link(self, owner: BaseModel, name: str, related: BaseModel):
        self._throw_if_not_active()
        relation = owner._get_relationship(name)
        logger.debug(f"Linking {related.__class__.__name__} {related._entry_id} to {owner.__class__.__name__}.{name}")

        if relation.via is not None:
            self._require_persisted(owner, 'link')
            self._require_persisted(related, 'link')
            junction = relation.via.model_class()
            for junction_attr, owner_attr in relation.via.link.items():
                setattr(junction, junction_attr, getattr(owner, owner_attr))
            for target_attr, junction_attr in relation.link.items():
                setattr(junction, junction_attr, getattr(related, target_attr))
            self.add(junction)
        elif relation.owner_holds_key:
            self._require_persisted(related, 'link')
            for target_attr, owner_attr in relation.link.items():
                setattr(owner, owner_attr, getattr(related, target_attr))
            self.save(owner, validate=False)
        else:
            self._require_persisted(owner, 'link')
            for target_attr, owner_attr in relation.link.items():
                setattr(related, target_attr, getattr(owner, owner_attr))
            self.save(related, validate=False)

        if not relation.many:
            owner._populate_related(name, related)
        elif name in owner._related and not any(model is related for model in owner._related[name]):
            owner._populate_related(name, owner._related[name] + [related])

    def unlink(self, owner: BaseModel, name: str, related: BaseModel, delete: bool = False):
        self._throw_if_not_active()
        relation = owner._get_relationship(name)
        logger.debug(f"Unlinking {related.__class__.__name__} {related._entry_id} from {owner.__class__.__name__}.{name}")

        if relation.via is not None:
            where = {junction_attr: getattr(owner, owner_attr) for junction_attr, owner_attr in relation.via.link.items()}
            for target_attr, junction_attr in relation.link.items():
                where[junction_attr] = getattr(related, target_attr)
            for junction in self.find_all(relation.via.model_class, where):
                if delete:
                    self.delete(junction)
                    continue
                for junction_attr in relation.link.values():
                    setattr(junction, junction_attr, None)
                self._update(junction)
        elif relation.owner_holds_key:
            for owner_attr in relation.link.values():
                setattr(owner, owner_attr, None)
            self.save(owner, validate=False)
        elif delete:
            self.delete(related)
        else:
            for target_attr in relation.link.keys():
                setattr(related, target_attr, None)
            self.save(related, validate=False)

        if not relation.many:
            if owner._related.get(name) is related:
                owner._populate_related(name, None)
        elif name in owner._related:
            token = related.primary_key()
            remaining = [model for model in owner._related[name] if model is not related and model.primary_key() != token]
            owner._populate_related(name, remaining)

    def refresh(self, model: BaseModel) -> bool:
        self._throw_if_not_active()
        rows = self._backend.select(model.schema, model._to_key_dict())
        if not rows:
            return False
        for field in model.schema._get_fields():
            value = field._polytype._from_prism_serializable(rows[0].get(field._db_field_name))
            setattr(model, field._python_field_name, value)
        model._update_snapshot()
        model._clear_related()
        return True

    def delete(self, model: BaseModel) -> bool:
        self._throw_if_not_active()
        event = ModelEvent(model, self, Op.DELETE)
        hooks = self._hooks(model)

        for hook in hooks:
            hook.before_delete(event)
        if not event.is_valid:
            logger.debug(f"Deleting {model.__class__.__name__} {model._entry_id} was vetoed by a lifecycle hook.")
            self._abort(hooks, event)
            return False

        try:
            self._transaction._record(model)
            self._backend.delete(model.schema, model._to_key_dict())
            for hook in hooks:
                hook.after_delete(event)
        except Exception:
            self._abort(hooks, event)
            raise

        self._untrack(model)
        return True

    def delete_all(self, models):
        # session state is checked by delete
        for model in models:
            self.delete(model)

    def commit(self):
        self._throw_if_not_active()
        if self._transaction.is_active:
            message = f"Session {self._session_id} cannot be committed while a transaction is still open"
            logger.error(message)
            raise RuntimeError(message)

        self._backend.commit()
        self._state = _SessionState.COMPLETED
        logger.debug(f"Session {self._session_id} committed.")

    def rollback(self):
        self._throw_if_not_active()
        self._transaction._reset()
        self._backend.rollback()
        self._state = _SessionState.COMPLETED
        logger.debug(f"Session {self._session_id} rolled back.")

    def get_session_state(self):
        return self._state

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._state == _SessionState.ACTIVE:
            logger.debug(f"Automatically rolling back Session {self._session_id} before exit.")
            self.rollback()
        if self._backend:
            self._backend.close()
