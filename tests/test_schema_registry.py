import pytest
import polyrel.schema.schema_registry as schema_registry
from polyrel.schema.field import Field, ForeignKeyField
from polyrel.schema.polytypes import VarChar, Text
from polyrel.schema.schema import BaseSchema
from tests.schema import CategorySchema, OrderSchema, ItemSchema, TagSchema, OrderTagSchema, InvoiceSchema

# shipments and parcels reference each other

class ShipmentSchema(BaseSchema):
    entity_name = 'shipment'
    fields = [
        Field('carrier', Text()),
        ForeignKeyField('last_parcel_id', VarChar(36), referenced_entity_name='parcel'),
    ]

class ParcelSchema(BaseSchema):
    entity_name = 'parcel'
    fields = [
        ForeignKeyField('shipment_id', VarChar(36), referenced_entity_name='shipment'),
    ]

class ParcelLabelSchema(BaseSchema):
    entity_name = 'parcel_label'
    fields = [
        ForeignKeyField('parcel_id', VarChar(36), referenced_entity_name='parcel'),
    ]

# category tree

class CategoryNodeSchema(BaseSchema):
    entity_name = 'category_node'
    fields = [
        Field('name', Text()),
        ForeignKeyField('parent_id', VarChar(36), referenced_entity_name='category_node'),
    ]

# stock lives in a warehouse entity that is defined by another application

class StockSchema(BaseSchema):
    entity_name = 'stock'
    fields = [
        ForeignKeyField('item_id', VarChar(36), referenced_entity_name='item'),
        ForeignKeyField('warehouse_id', VarChar(36), referenced_entity_name='warehouse'),
    ]


def test_order_independent_schemas_by_name():
    output = schema_registry._order_for_definition({TagSchema, CategorySchema})
    assert output == [CategorySchema, TagSchema]

def test_order_places_referenced_entities_first():
    output = schema_registry._order_for_definition({ItemSchema, OrderSchema, CategorySchema})
    assert output == [CategorySchema, OrderSchema, ItemSchema]

def test_order_junction_after_both_sides():
    output = schema_registry._order_for_definition({OrderTagSchema, TagSchema, OrderSchema, CategorySchema})
    assert output == [CategorySchema, OrderSchema, TagSchema, OrderTagSchema]

def test_order_shop_schemas():
    schemas = [InvoiceSchema, OrderTagSchema, ItemSchema, TagSchema, OrderSchema, CategorySchema]
    expected = [CategorySchema, OrderSchema, InvoiceSchema, ItemSchema, TagSchema, OrderTagSchema]
    assert schema_registry._order_for_definition(schemas) == expected
    assert schema_registry._order_for_definition(reversed(schemas)) == expected

def test_order_ignores_entities_defined_elsewhere():
    output = schema_registry._order_for_definition({StockSchema, CategorySchema, OrderSchema, ItemSchema})
    assert output == [CategorySchema, OrderSchema, ItemSchema, StockSchema]

def test_order_self_referencing_tree():
    output = schema_registry._order_for_definition({CategoryNodeSchema, CategorySchema})
    assert output == [CategorySchema, CategoryNodeSchema]

def test_order_mutual_references():
    with pytest.raises(RuntimeError) as e:
        schema_registry._order_for_definition({ShipmentSchema, ParcelSchema, TagSchema})
    assert 'Circular foreign key dependency' in str(e.value)
    assert 'parcel, shipment' in str(e.value)
    assert 'tag' not in str(e.value)

def test_order_dependent_of_a_cycle():
    with pytest.raises(RuntimeError) as e:
        schema_registry._order_for_definition({ShipmentSchema, ParcelSchema, ParcelLabelSchema})
    assert 'parcel_label' in str(e.value)

def test_registered_shop_schemas_are_ordered():
    ordered = schema_registry._get_ordered_schemas()
    for schema in (CategorySchema, OrderSchema, ItemSchema, TagSchema, OrderTagSchema, InvoiceSchema):
        assert schema in ordered
    assert ordered.index(OrderSchema) < ordered.index(ItemSchema)
    assert ordered.index(TagSchema) < ordered.index(OrderTagSchema)

def test_register_schema_resets_order():
    schema_registry._get_ordered_schemas()
    assert schema_registry._ordered_schemas is not None
    schema_registry.register_schema(CategoryNodeSchema)
    try:
        assert schema_registry._ordered_schemas is None
        assert CategoryNodeSchema in schema_registry._get_ordered_schemas()
    finally:
        schema_registry._get_registered_schemas().discard(CategoryNodeSchema)
        schema_registry._ordered_schemas = None
