from polyrel.schema.field import Field, PrimaryKeyField, ForeignKeyField
from polyrel.schema.relationship import Relationship, Junction, Multiplicity
from polyrel.schema.schema import BaseSchema
from polyrel.schema.schema_registry import register_schema
