import polyrel.config as cfg
from polyrel.schema.field import Field, PrimaryKeyField
from polyrel.schema.polytypes import VarChar


class BaseSchema:
    entity_name: str
    namespace_name: str = None
    fields: list[Field] = []
    _base_fields = [
        PrimaryKeyField('_entry_id', VarChar(36), unique=True)
    ]

    @classmethod
    def _get_namespace(cls):
        return cls.namespace_name or cfg.get(cfg.DEFAULT_NAMESPACE)

    @classmethod
    def _get_fields(cls):
        return cls._base_fields + cls.fields

    @classmethod
    def _get_field_map(cls):
        # cached per schema class, never inherited from a parent schema
        if '_type_map' not in cls.__dict__:
            cls._type_map = {
                field._python_field_name: field
                for field in cls._get_fields()
            }
        return cls._type_map

    @classmethod
    def _get_primary_key_fields(cls):
        return [field for field in cls._get_fields() if isinstance(field, PrimaryKeyField)]

    @classmethod
    def _get_db_field_name(cls, python_field_name: str) -> str:
        field = cls._get_field_map().get(python_field_name)
        if field is None:
            raise ValueError(f"Entity {cls.entity_name} has no field '{python_field_name}'")
        return field._db_field_name
