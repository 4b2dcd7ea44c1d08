import logging
from enum import Enum, auto

from polyrel.cascade.diff import compute_pk_diff, identity_token, index_by_token

logger = logging.getLogger(__name__)


class CycleState(Enum):
    IDLE = auto()
    PRE_VALIDATING = auto()
    OWNER_PERSISTING = auto()
    POST_PERSISTING = auto()
    COMMITTED = auto()
    ROLLED_BACK = auto()


class CascadeCycle:
    """State of one owner save or delete, passed through the cascade phases."""

    def __init__(self, session, operation):
        self.session = session
        self.operation = operation
        self.state = CycleState.IDLE
        self.transaction = None
        self._level = 0

    @property
    def in_progress(self) -> bool:
        return self.state in (CycleState.PRE_VALIDATING, CycleState.OWNER_PERSISTING, CycleState.POST_PERSISTING)

    def open_transaction(self):
        self.transaction = self.session.begin_transaction()
        self._level = self.transaction.level

    def _owns_open_transaction(self) -> bool:
        return self.transaction is not None and self.transaction.level >= self._level > 0

    def commit(self):
        if self._owns_open_transaction():
            self.transaction.commit()
        self.transaction = None
        self.state = CycleState.COMMITTED

    def rollback(self):
        if self._owns_open_transaction():
            self.transaction.rollback()
        self.transaction = None
        self.state = CycleState.ROLLED_BACK


def _same_entity(old, new) -> bool:
    if old is new:
        return True
    if old is None or new is None or type(old) is not type(new):
        return False
    if old._is_new or new._is_new:
        return False
    return identity_token(old) == identity_token(new)


class CascadePersister:
    def __init__(self, owner, relations: list[str], tracker, validator):
        self.owner = owner
        self.relations = relations
        self.tracker = tracker
        self.validator = validator

    def _tracked(self):
        # declared order, assigned relations only
        return [name for name in self.relations if name in self.tracker]

    def pre_validate(self, cycle: CascadeCycle, event) -> bool:
        cycle.state = CycleState.PRE_VALIDATING
        if self.owner.is_transactional(event.operation):
            cycle.open_transaction()

        try:
            for name in self._tracked():
                relation = self.owner._get_relationship(name)
                value = self.owner._get_related(name)
                if not value:
                    continue
                if relation.many:
                    for index, related in enumerate(value):
                        self.validator.validate(relation, related, event, index)
                elif relation.owner_holds_key:
                    self._save_model_record(relation, value, event)
                else:
                    self.validator.validate(relation, value, event)
        except Exception:
            logger.debug(f"Saving related models of {self.owner.__class__.__name__} failed, rolling back")
            cycle.rollback()
            event.is_valid = False
            raise

        if not event.is_valid:
            logger.debug(f"One of the related models of {self.owner.__class__.__name__} could not be validated")
            cycle.rollback()
            return False

        self._sync_foreign_keys()
        cycle.state = CycleState.OWNER_PERSISTING
        return True

    def _save_model_record(self, relation, related, event):
        self.validator.validate(relation, related, event)
        if event.is_valid and (related._is_new or related._is_dirty()):
            logger.debug(f"Saving {relation.label} relation model")
            event.session.save(related, validate=False)

    def _sync_foreign_keys(self):
        for name in self._tracked():
            relation = self.owner._get_relationship(name)
            if relation.many or relation.via is not None:
                continue
            related = self.owner._get_related(name)
            if related is None:
                continue
            logger.debug(f"Setting foreign keys for {name}")
            for target_attr, owner_attr in relation.link.items():
                owner_value = getattr(self.owner, owner_attr, None)
                related_value = getattr(related, target_attr, None)
                if owner_value == related_value:
                    continue
                if relation.owner_holds_key:
                    setattr(self.owner, owner_attr, related_value)
                else:
                    setattr(related, target_attr, owner_value)

    def post_persist(self, cycle: CascadeCycle):
        if cycle.state is CycleState.POST_PERSISTING:
            return
        cycle.state = CycleState.POST_PERSISTING
        session = cycle.session

        try:
            tracked = self._tracked()
            for name in tracked:
                logger.debug(f"Linking {name} relation")
                relation = self.owner._get_relationship(name)
                if relation.many:
                    self._persist_many(session, relation)
                else:
                    self._persist_single(session, relation)
            # snapshots survive a failed cycle so that a retry reconciles again
            for name in tracked:
                self.tracker.clear(name)
            if tracked:
                session.refresh(self.owner)
        except Exception:
            cycle.rollback()
            raise
        cycle.commit()

    def _persist_many(self, session, relation):
        name = relation.name
        existing = []
        for related in list(self.owner._get_related(name)):
            if related._is_new:
                if relation.via is not None:
                    session.save(related, validate=False)
                session.link(self.owner, name, related)
            else:
                existing.append(related)
            if related._is_dirty():
                session.save(related, validate=False)

        old_models = self.tracker.snapshot_of(name) or []
        added, removed = compute_pk_diff(old_models, existing)

        delete = relation.via is not None or relation.delete_orphans
        initial = index_by_token(old_models)
        for token in removed:
            session.unlink(self.owner, name, initial[token], delete=delete)

        actual = index_by_token(existing)
        for token in added:
            session.link(self.owner, name, actual[token])

    def _persist_single(self, session, relation):
        name = relation.name
        old = self.tracker.snapshot_of(name)
        new = self.owner._get_related(name)

        if _same_entity(old, new):
            if new is not None and new._is_dirty():
                session.save(new, validate=False)
            return

        if new is None:
            if old is not None and not old._is_new:
                session.unlink(self.owner, name, old, delete=relation.delete_orphans)
            return

        if relation.owner_holds_key:
            session.link(self.owner, name, new)
            return

        if old is not None and not old._is_new:
            session.unlink(self.owner, name, old, delete=relation.delete_orphans)
        if relation.via is not None:
            if new._is_new:
                session.save(new, validate=False)
            session.link(self.owner, name, new)
            return
        for target_attr, owner_attr in relation.link.items():
            setattr(new, target_attr, getattr(self.owner, owner_attr))
        session.save(new, validate=False)
