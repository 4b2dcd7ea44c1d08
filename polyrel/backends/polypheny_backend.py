import logging
from typing import Any

import polypheny

from polyrel.backends.base import Backend
from polyrel.schema.field import PrimaryKeyField, ForeignKeyField

logger = logging.getLogger(__name__)


class PolyphenyBackend(Backend):
    """SQL backend speaking to Polypheny through the polypheny DB-API driver.

    Polypheny offers no savepoints, so transactions are flattened into the
    connection: rolling one back marks the connection rollback-only and the
    next commit rolls back everything since the last commit instead.
    """

    def __init__(self, address, user: str, password: str, transport: str):
        self._address = address
        self._user = user
        self._password = password
        self._transport = transport

        self._conn = None
        self._cursor = None
        self._rollback_only = False

    def connect(self):
        self._conn = polypheny.connect(
            self._address,
            username=self._user,
            password=self._password,
            transport=self._transport
        )
        self._cursor = self._conn.cursor()

    def close(self):
        if self._cursor:
            self._cursor.close()
        if self._conn:
            self._conn.close()
        self._cursor = None
        self._conn = None

    def commit(self):
        if self._rollback_only:
            self.rollback()
            message = "A transaction was rolled back on a connection without savepoints, all uncommitted work has been rolled back instead of committed"
            logger.error(message)
            raise RuntimeError(message)
        self._conn.commit()

    def rollback(self):
        self._rollback_only = False
        self._conn.rollback()

    def savepoint(self, name: str):
        logger.debug(f"Savepoint {name} flattened into the enclosing Polypheny transaction.")

    def release_savepoint(self, name: str):
        pass

    def rollback_to_savepoint(self, name: str):
        logger.warning(f"Polypheny cannot roll back to savepoint {name}. Marking the transaction rollback-only.")
        self._rollback_only = True

    def _execute(self, sql: str, values, namespace: str):
        logger.debug(f"Executing on {namespace}: {sql}")
        self._cursor.executeany("sql", sql, values, namespace=namespace)

    @staticmethod
    def _where_clause(key: dict[str, Any]) -> str:
        return ' AND '.join(f'"{column}" = ?' for column in key.keys())

    def define(self, schema):
        entity = schema.entity_name
        namespace = schema._get_namespace()

        self._cursor.execute(f'CREATE RELATIONAL NAMESPACE IF NOT EXISTS "{namespace}"')
        logger.debug(f"Created namespace {namespace} if absent.")

        column_defs = []
        foreign_keys = []
        unique_columns = []
        primary_key_columns = []

        for field in schema._get_fields():
            col_def = f'"{field._db_field_name}" {field._polytype._type_string}'
            if not getattr(field, 'nullable', False):
                col_def += " NOT NULL"

            default_value = getattr(field, 'default', None)
            if default_value is not None:
                col_def += f" DEFAULT {field._polytype._to_sql_expression(default_value)}"

            if getattr(field, 'unique', False):
                unique_columns.append(field._db_field_name)
            if isinstance(field, PrimaryKeyField):
                primary_key_columns.append(f'"{field._db_field_name}"')
            column_defs.append(col_def)

            if isinstance(field, ForeignKeyField):
                foreign_keys.append(
                    f'FOREIGN KEY ("{field._db_field_name}") '
                    f'REFERENCES "{field.referenced_entity_name}"("{field.referenced_db_field_name}")'
                )

        constraints = foreign_keys[:]
        if primary_key_columns:
            constraints.append(f"PRIMARY KEY ({', '.join(primary_key_columns)})")
        for col in unique_columns:
            constraints.append(f'UNIQUE ("{col}")')

        create_stmt = f'CREATE TABLE IF NOT EXISTS "{namespace}"."{entity}" ({", ".join(column_defs + constraints)})'
        self._execute(create_stmt, None, namespace)
        self._conn.commit()
        logger.debug(f"Created entity {entity} if absent.")

    def insert(self, schema, data: dict[str, Any]):
        namespace = schema._get_namespace()
        columns = ', '.join(f'"{column}"' for column in data.keys())
        placeholders = ', '.join(['?'] * len(data))
        sql = f'INSERT INTO "{namespace}"."{schema.entity_name}" ({columns}) VALUES ({placeholders})'
        self._execute(sql, tuple(data.values()), namespace)

    def update(self, schema, key: dict[str, Any], data: dict[str, Any]):
        if not data:
            return
        namespace = schema._get_namespace()
        set_clause = ', '.join(f'"{column}" = ?' for column in data.keys())
        values = list(data.values()) + list(key.values())
        sql = f'UPDATE "{namespace}"."{schema.entity_name}" SET {set_clause} WHERE {self._where_clause(key)}'
        self._execute(sql, values, namespace)

    def delete(self, schema, key: dict[str, Any]):
        namespace = schema._get_namespace()
        sql = f'DELETE FROM "{namespace}"."{schema.entity_name}" WHERE {self._where_clause(key)}'
        self._execute(sql, tuple(key.values()), namespace)

    def select(self, schema, where: dict[str, Any]) -> list[dict[str, Any]]:
        namespace = schema._get_namespace()
        columns = [field._db_field_name for field in schema._get_fields()]
        column_list = ', '.join(f'"{column}"' for column in columns)
        sql = f'SELECT {column_list} FROM "{namespace}"."{schema.entity_name}"'
        if where:
            sql += f' WHERE {self._where_clause(where)}'
        self._execute(sql, tuple(where.values()), namespace)
        return [dict(zip(columns, row)) for row in self._cursor.fetchall()]
