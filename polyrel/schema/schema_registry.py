import logging
from polyrel.schema.field import ForeignKeyField

logger = logging.getLogger(__name__)

_registered_schemas = set()
_ordered_schemas = None


def register_schema(schema):
    """Makes a schema known to applications, which define every registered entity on startup."""
    global _ordered_schemas
    _registered_schemas.add(schema)
    _ordered_schemas = None


def _get_registered_schemas():
    return _registered_schemas


def _get_ordered_schemas():
    global _ordered_schemas
    if _ordered_schemas is None:
        _ordered_schemas = _order_for_definition(_registered_schemas)
    return _ordered_schemas


def _referenced_entities(schema, known) -> set[str]:
    # self references and entities defined elsewhere do not constrain the order
    return {
        field.referenced_entity_name
        for field in schema.fields
        if isinstance(field, ForeignKeyField)
        and field.referenced_entity_name != schema.entity_name
        and field.referenced_entity_name in known
    }


def _order_for_definition(schemas) -> list:
    """Orders schemas so that each one follows the entities its foreign keys reference.

    When several schemas are ready at once, the smallest entity name goes
    first, so the order does not depend on registration or hashing.
    """
    by_name = {schema.entity_name: schema for schema in schemas}
    pending = {name: _referenced_entities(schema, by_name) for name, schema in by_name.items()}

    ordered = []
    while pending:
        ready = sorted(name for name, references in pending.items() if not references)
        if not ready:
            message = f"Circular foreign key dependency among entities {', '.join(sorted(pending))}"
            logger.error(message)
            raise RuntimeError(message)
        name = ready[0]
        ordered.append(by_name[name])
        del pending[name]
        for references in pending.values():
            references.discard(name)
    return ordered
