from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable, TYPE_CHECKING

from polyrel.model import Op

if TYPE_CHECKING:
    from polyrel.session.session import Session


@dataclass
class ModelEvent:
    model: Any
    session: 'Session'
    operation: Op
    is_valid: bool = True


@runtime_checkable
class LifecycleHooks(Protocol):
    """Hooks a session invokes directly on the behaviors a model composes.

    before_validate may veto the save by clearing event.is_valid. abort is
    called whenever a save or delete that already passed its before hook
    fails afterwards, so that anything opened for the mutation is closed.
    """

    def before_validate(self, event: ModelEvent) -> None:
        ...

    def after_save(self, event: ModelEvent) -> None:
        ...

    def abort(self, event: ModelEvent) -> None:
        ...

    def before_delete(self, event: ModelEvent) -> None:
        ...

    def after_delete(self, event: ModelEvent) -> None:
        ...
