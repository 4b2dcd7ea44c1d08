import logging

from polyrel.cascade.coercer import AssignmentCoercer
from polyrel.cascade.deletion import DeletionCascade
from polyrel.cascade.persister import CascadeCycle, CascadePersister, CycleState
from polyrel.cascade.tracker import RelationValueTracker
from polyrel.cascade.validator import CascadeValidator
from polyrel.model import BaseModel

logger = logging.getLogger(__name__)


class SaveRelations:
    """Validates, saves, links and unlinks the listed relations together with their owner.

    Compose it from a model's behaviors():

        class Order(BaseModel):
            items = Relationship('Item', link={'order_id': '_entry_id'}, many=True)

            def behaviors(self):
                return [SaveRelations(self, ['items'])]

    Relations are changed with assign() (or load_relations() for input
    data); the session then runs the cascade when the owner is saved or
    deleted.
    """

    def __init__(self, owner: BaseModel, relations: list[str]):
        if not isinstance(owner, BaseModel):
            message = f"Owner must be an instance of BaseModel, got {type(owner).__name__}"
            logger.error(message)
            raise TypeError(message)

        declared = owner._get_relationships()
        unknown = [name for name in relations if name not in declared]
        if unknown:
            message = f"{owner.__class__.__name__} declares no relation named {', '.join(unknown)}"
            logger.error(message)
            raise ValueError(message)

        self.owner = owner
        self.relations = list(relations)
        self.tracker = RelationValueTracker()
        self._coercer = AssignmentCoercer(owner)
        self._validator = CascadeValidator(owner)
        self._persister = CascadePersister(owner, self.relations, self.tracker, self._validator)
        self._deletion = DeletionCascade(owner)
        self._cycle = None

    def handles(self, name: str) -> bool:
        return name in self.relations

    def assign(self, name: str, value, create_missing: bool = True):
        if not self.handles(name):
            message = f"Relation '{name}' is not handled by SaveRelations on {self.owner.__class__.__name__}"
            logger.error(message)
            raise ValueError(message)

        relation = self.owner._get_relationship(name)
        logger.debug(f"Setting {name} relation value")
        self.tracker.capture(name, self.owner._get_related(name))
        coerced = self._coercer.coerce(relation, value, create_missing)
        self.owner._populate_related(name, coerced)
        return coerced

    def load_relations(self, data: dict):
        for name in self.relations:
            form_name = self.owner._get_relationship(name).form_name
            if form_name in data:
                self.assign(name, data[form_name])

    def before_validate(self, event):
        if self._cycle is not None and self._cycle.in_progress:
            return
        if not self.tracker:
            return

        cycle = CascadeCycle(event.session, event.operation)
        self._cycle = cycle
        try:
            succeeded = self._persister.pre_validate(cycle, event)
        except Exception:
            self._cycle = None
            raise
        if not succeeded:
            self._cycle = None

    def after_save(self, event):
        cycle = self._cycle
        if cycle is not None and cycle.state is CycleState.POST_PERSISTING:
            return
        if cycle is None:
            cycle = CascadeCycle(event.session, event.operation)
            self._cycle = cycle
        try:
            self._persister.post_persist(cycle)
        finally:
            self._cycle = None

    def abort(self, event):
        cycle = self._cycle
        if cycle is not None and cycle.state is not CycleState.POST_PERSISTING:
            self._cycle = None
            cycle.rollback()
        self._deletion.abort(event)

    def before_delete(self, event):
        self._deletion.before_delete(event)

    def after_delete(self, event):
        self._deletion.after_delete(event)
        # pending assignments of a deleted owner are discarded
        self.tracker.reset()
        self.owner._clear_related()

    def delete_with_related(self, session=None) -> bool:
        session = session or self.owner._session
        if session is None:
            message = f"{self.owner.__class__.__name__} {self.owner._entry_id} is not bound to a session"
            logger.error(message)
            raise RuntimeError(message)
        return session.delete(self.owner)
