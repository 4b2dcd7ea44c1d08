import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from polyrel.session.session import Session

logger = logging.getLogger(__name__)


class Transaction:
    """Nested transaction of a session.

    Every level, the outermost included, is a savepoint: rolling back only
    undoes what happened since the matching begin, and committing releases
    the savepoint. Work becomes durable with Session.commit.

    Each level also journals the models written inside it, so that a
    rollback restores their new/stored flag and change snapshot together
    with the rows.
    """

    def __init__(self, session: 'Session'):
        self._session = session
        self._level = 0
        self._journal: list[list[tuple]] = []

    @property
    def is_active(self) -> bool:
        return self._level > 0

    @property
    def level(self) -> int:
        return self._level

    @staticmethod
    def _savepoint_name(level: int) -> str:
        return f'polyrel_savepoint_{level}'

    def _begin(self):
        self._session._backend.savepoint(self._savepoint_name(self._level))
        self._journal.append([])
        self._level += 1
        logger.debug(f"Transaction of session {self._session._session_id} begun at level {self._level}.")

    def _record(self, model):
        if not self._journal:
            return
        entries = self._journal[-1]
        if any(entry[0] is model for entry in entries):
            return
        entries.append((model, model._is_new, dict(model._original_state)))

    def commit(self):
        if not self.is_active:
            message = "Failed to commit transaction: transaction was inactive."
            logger.error(message)
            raise RuntimeError(message)

        self._level -= 1
        self._session._backend.release_savepoint(self._savepoint_name(self._level))
        entries = self._journal.pop()
        if self._journal:
            # an enclosing rollback must still restore these models
            parent = self._journal[-1]
            for entry in entries:
                if not any(existing[0] is entry[0] for existing in parent):
                    parent.append(entry)
        logger.debug(f"Savepoint {self._level} of session {self._session._session_id} released.")

    def rollback(self):
        if not self.is_active:
            message = "Failed to roll back transaction: transaction was inactive."
            logger.error(message)
            raise RuntimeError(message)

        self._level -= 1
        name = self._savepoint_name(self._level)
        self._session._backend.rollback_to_savepoint(name)
        self._session._backend.release_savepoint(name)
        self._restore(self._journal.pop())
        logger.debug(f"Rolled back to savepoint {self._level} of session {self._session._session_id}.")

    @staticmethod
    def _restore(entries):
        for model, is_new, original_state in reversed(entries):
            model._is_new = is_new
            model._original_state = original_state

    def _reset(self):
        while self._journal:
            self._restore(self._journal.pop())
        self._level = 0
