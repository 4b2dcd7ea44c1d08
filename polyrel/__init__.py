from polyrel.application import Application
from polyrel.model import BaseModel, Op
from polyrel.session import Session
from polyrel.schema import BaseSchema, Field, PrimaryKeyField, ForeignKeyField, Relationship, Junction, register_schema
from polyrel.cascade import SaveRelations

__all__ = [
    "Application",
    "BaseModel",
    "Op",
    "Session",
    "BaseSchema",
    "Field",
    "PrimaryKeyField",
    "ForeignKeyField",
    "Relationship",
    "Junction",
    "register_schema",
    "SaveRelations",
]
