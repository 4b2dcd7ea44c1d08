from polyrel.schema.polytypes import PolyType


class Field:
    def __init__(
        self,
        python_field_name: str,
        polytype: PolyType,
        nullable: bool = True,
        default=None,
        unique: bool = False,
        db_field_name: str = None,
        validators: list = None,
    ):
        if isinstance(polytype, type):
            polytype = polytype()
        self._python_field_name = python_field_name
        self._db_field_name = db_field_name or python_field_name
        self._polytype = polytype
        self.nullable = nullable
        self.default = default
        self.unique = unique
        self.validators = validators or []

    def _validate(self, value) -> list[str]:
        errors = []
        if value is None:
            if not self.nullable and self.default is None:
                errors.append(f'{self._python_field_name} cannot be blank.')
            return errors
        for validator in self.validators:
            message = validator(value)
            if message:
                errors.append(message)
        return errors


class PrimaryKeyField(Field):
    def __init__(self, python_field_name: str, polytype: PolyType, **kwargs):
        kwargs.setdefault('nullable', False)
        super().__init__(python_field_name, polytype, **kwargs)


class ForeignKeyField(Field):
    def __init__(
        self,
        python_field_name: str,
        polytype: PolyType,
        referenced_entity_name: str,
        referenced_db_field_name: str = '_entry_id',
        **kwargs
    ):
        super().__init__(python_field_name, polytype, **kwargs)
        self.referenced_entity_name = referenced_entity_name
        self.referenced_db_field_name = referenced_db_field_name
