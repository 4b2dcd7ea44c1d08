import logging

from polyrel.cascade.persister import CascadeCycle
from polyrel.model import Op

logger = logging.getLogger(__name__)


class DeletionCascade:
    """Removes what depends on the owner before the owner row itself is deleted.

    Every declared relation is visited, not only the assigned ones, and its
    rows are loaded from the store so that pending assignments are ignored.
    Rows pointing at the owner are deleted (single-valued) or unlinked
    (many-valued, junction rows deleted). Relations where the owner holds
    the key are left alone.
    """

    def __init__(self, owner):
        self.owner = owner
        self._cycle = None

    def before_delete(self, event):
        session = event.session
        cycle = CascadeCycle(session, Op.DELETE)
        cycle.open_transaction()
        self._cycle = cycle

        try:
            failed = False
            for name, relation in self.owner._get_relationships().items():
                if not relation.many and relation.owner_holds_key:
                    continue
                value = session.load_related(self.owner, name)
                if not value:
                    continue
                if relation.many:
                    delete = relation.via is not None or relation.delete_orphans
                    for related in list(value):
                        session.unlink(self.owner, name, related, delete=delete)
                elif not session.delete(value):
                    logger.debug(f"Related {relation.label} of {self.owner.__class__.__name__} could not be deleted")
                    failed = True
        except Exception:
            self._finish(rollback=True)
            raise

        if failed:
            self._finish(rollback=True)
            event.is_valid = False

    def after_delete(self, event):
        self._finish(rollback=False)

    def abort(self, event):
        self._finish(rollback=True)

    def _finish(self, rollback: bool):
        cycle = self._cycle
        self._cycle = None
        if cycle is None:
            return
        if rollback:
            cycle.rollback()
        else:
            cycle.commit()
