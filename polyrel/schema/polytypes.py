class PolyType:
    _type_string: str = None

    def _to_prism_serializable(self, value):
        return value

    def _from_prism_serializable(self, value):
        return value

    def _to_sql_expression(self, value) -> str:
        return str(value)


class VarChar(PolyType):
    def __init__(self, length: int = 255):
        self.length = length
        self._type_string = f'VARCHAR({length})'

    def _to_sql_expression(self, value) -> str:
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"


class Text(PolyType):
    _type_string = 'TEXT'

    def _to_sql_expression(self, value) -> str:
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"


class Integer(PolyType):
    _type_string = 'INTEGER'

    def _from_prism_serializable(self, value):
        return None if value is None else int(value)

