import logging

logger = logging.getLogger(__name__)


class CascadeValidator:
    def __init__(self, owner):
        self.owner = owner

    def validate(self, relation, related, event, index: int = None) -> bool:
        """Validate a related model that is new or changed.

        Child errors are copied onto the owner under the relation name, as
        "<label>: <message>" or "<label> #<index>: <message>" for many-valued
        relations. A failure clears event.is_valid; nothing is raised.
        """
        if related is None:
            return True
        if not (related._is_new or related._is_dirty()):
            return True

        label = relation.label if index is None else f"{relation.label} #{index}"
        logger.debug(f"Validating {label} relation model")
        if event.session.validate(related):
            return True

        for attribute_errors in related.errors.values():
            for error in attribute_errors:
                self.owner.add_error(relation.name, f"{label}: {error}")
        event.is_valid = False
        return False
