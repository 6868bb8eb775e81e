"""
Mapped types: how the engine sees each declared type.

Every annotation found on a domain class is mapped to exactly one of these
descriptors. Entities and value objects are the managed kinds (decomposed
into properties), primitives and values are compared as leaves, and
containers/maps carry the mapped types of their items.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, ClassVar
from uuid import UUID


class TypeKind(str, Enum):
    ENTITY = "entity"
    VALUE_OBJECT = "value_object"
    VALUE = "value"
    PRIMITIVE = "primitive"
    LIST = "list"
    ARRAY = "array"
    SET = "set"
    MAP = "map"


class _Marker:
    """Annotation marker usable inside typing.Annotated."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Annotated[str, Id] flags the identity property of an entity.
Id = _Marker("Id")
# Annotated[T, Transient] keeps a member out of the managed view.
Transient = _Marker("Transient")


PRIMITIVE_CLASSES: tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    Decimal,
    Fraction,
    UUID,
    datetime,
    date,
    time,
    timedelta,
    Enum,
)


def is_primitive_class(cls: Any) -> bool:
    """True for built-in scalars, temporals, numbers and enums."""
    if cls is type(None):
        return True
    return isinstance(cls, type) and issubclass(cls, PRIMITIVE_CLASSES)


# -----------------------------------------------------------------------------
# Mapped type descriptors
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MappedType:
    base_class: Any

    kind: ClassVar[TypeKind]

    @property
    def name(self) -> str:
        return getattr(self.base_class, "__name__", repr(self.base_class))


@dataclass(frozen=True)
class PrimitiveType(MappedType):
    kind: ClassVar[TypeKind] = TypeKind.PRIMITIVE


@dataclass(frozen=True)
class ValueType(MappedType):
    """Opaque leaf, compared with == and never decomposed."""

    kind: ClassVar[TypeKind] = TypeKind.VALUE


@dataclass(frozen=True)
class EntityType(MappedType):
    type_name: str = ""
    id_property_name: str | None = None

    kind: ClassVar[TypeKind] = TypeKind.ENTITY

    @property
    def name(self) -> str:
        return self.type_name or self.base_class.__name__


@dataclass(frozen=True)
class ValueObjectType(MappedType):
    type_name: str = ""

    kind: ClassVar[TypeKind] = TypeKind.VALUE_OBJECT

    @property
    def name(self) -> str:
        return self.type_name or self.base_class.__name__


@dataclass(frozen=True)
class ContainerType(MappedType):
    item_type: MappedType = None  # type: ignore[assignment]


@dataclass(frozen=True)
class ListType(ContainerType):
    kind: ClassVar[TypeKind] = TypeKind.LIST


@dataclass(frozen=True)
class ArrayType(ContainerType):
    """Fixed, ordered sequence (tuple[T, ...])."""

    kind: ClassVar[TypeKind] = TypeKind.ARRAY


@dataclass(frozen=True)
class SetType(ContainerType):
    kind: ClassVar[TypeKind] = TypeKind.SET


@dataclass(frozen=True)
class MapType(MappedType):
    key_type: MappedType = None  # type: ignore[assignment]
    value_type: MappedType = None  # type: ignore[assignment]

    kind: ClassVar[TypeKind] = TypeKind.MAP


ManagedType = EntityType | ValueObjectType


def is_managed(mapped: MappedType | None) -> bool:
    return isinstance(mapped, (EntityType, ValueObjectType))


def is_primitive_or_value(mapped: MappedType | None) -> bool:
    return isinstance(mapped, (PrimitiveType, ValueType))


def is_ordered(mapped: MappedType | None) -> bool:
    return isinstance(mapped, (ListType, ArrayType))
