"""
Domain meta-model.

Classifies user classes into Entities (identity-bearing), Value Objects
(structural identity) and Values (opaque leaves), scans their properties
and allocates global ids for their instances.
"""

from .types import (
    ArrayType,
    ContainerType,
    EntityType,
    Id,
    ListType,
    MappedType,
    MapType,
    PrimitiveType,
    SetType,
    Transient,
    TypeKind,
    ValueObjectType,
    ValueType,
)
from .type_mapper import TypeMapper
from .property import (
    FieldBasedPropertyScanner,
    GetterBasedPropertyScanner,
    Property,
    PropertyScanner,
    create_scanner,
    default_id_predicate,
)
from .managed import Entity, ManagedClass, ManagedClassRegistry, ValueObject
from .global_id import (
    GlobalId,
    IdFactory,
    InstanceId,
    UnboundedValueObjectId,
    ValueObjectId,
    parse_global_id,
)

__all__ = [
    # Types
    "ArrayType",
    "ContainerType",
    "EntityType",
    "ListType",
    "MappedType",
    "MapType",
    "PrimitiveType",
    "SetType",
    "TypeKind",
    "ValueObjectType",
    "ValueType",
    # Markers
    "Id",
    "Transient",
    # Mapping
    "TypeMapper",
    "Property",
    "PropertyScanner",
    "FieldBasedPropertyScanner",
    "GetterBasedPropertyScanner",
    "create_scanner",
    "default_id_predicate",
    # Managed classes
    "Entity",
    "ValueObject",
    "ManagedClass",
    "ManagedClassRegistry",
    # Global ids
    "GlobalId",
    "InstanceId",
    "UnboundedValueObjectId",
    "ValueObjectId",
    "IdFactory",
    "parse_global_id",
]
