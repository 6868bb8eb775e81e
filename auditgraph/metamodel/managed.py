"""
Managed classes: Entities and Value Objects with their supported properties.

The registry builds a managed class the first time a domain class is seen
and caches it. Construction enforces the entity id rules and drops map
properties keyed by non-primitive types (those cannot be compared entry by
entry without identity).
"""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass, field
from typing import Any

from ..errors import AuditError, ErrorCode
from .property import Property, PropertyScanner
from .type_mapper import TypeMapper
from .types import EntityType, MappedType, MapType, ValueObjectType, is_managed, is_primitive_or_value


@dataclass(frozen=True)
class ManagedClass:
    base_class: type
    type_name: str
    properties: tuple[Property, ...]
    mapped_type: MappedType = field(compare=False, repr=False)

    def get_property(self, name: str) -> Property:
        for prop in self.properties:
            if prop.name == name:
                return prop
        raise AuditError(ErrorCode.PROPERTY_NOT_FOUND, name, self.type_name)

    def has_property(self, name: str) -> bool:
        return any(p.name == name for p in self.properties)

    @property
    def property_names(self) -> list[str]:
        return [p.name for p in self.properties]

    def is_instance(self, cdo: Any) -> bool:
        return isinstance(cdo, self.base_class)


@dataclass(frozen=True)
class Entity(ManagedClass):
    id_property: Property | None = None

    def id_of(self, cdo: Any) -> Any:
        """Read the identity value of an instance."""
        if self.id_property is None:
            raise AuditError(ErrorCode.ENTITY_WITHOUT_ID, self.type_name, 0)
        return self.id_property.get(cdo)


@dataclass(frozen=True)
class ValueObject(ManagedClass):
    pass


def _supported(prop: Property) -> bool:
    if isinstance(prop.mapped_type, MapType):
        return is_primitive_or_value(prop.mapped_type.key_type)
    return True


class ManagedClassRegistry:
    """Cache of managed classes, built on demand (first-write-wins)."""

    def __init__(self, type_mapper: TypeMapper, scanner: PropertyScanner):
        self.type_mapper = type_mapper
        self.scanner = scanner
        self._lock = threading.Lock()
        self._cache: dict[type, ManagedClass] = {}

    def get(self, cls: type) -> ManagedClass:
        """
        Managed class for cls.

        Raises:
            AuditError(NOT_INSTANCE_NOR_ID): cls maps to neither Entity nor Value Object
            AuditError(ENTITY_WITHOUT_ID / PROPERTY_NOT_FOUND): id rules violated
        """
        cached = self._cache.get(cls)
        if cached is not None:
            return cached

        mapped = self.type_mapper.get_class_type(cls)
        managed = self.create(mapped)
        with self._lock:
            return self._cache.setdefault(cls, managed)

    def get_for(self, cdo: Any) -> ManagedClass:
        return self.get(type(cdo))

    def get_by_name(self, type_name: str) -> ManagedClass:
        return self.get(self.type_mapper.get_by_name(type_name).base_class)

    def is_managed_instance(self, cdo: Any) -> bool:
        if cdo is None:
            return False
        try:
            return is_managed(self.type_mapper.get_class_type(type(cdo)))
        except AuditError:
            return False

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def create(self, mapped: MappedType) -> ManagedClass:
        if isinstance(mapped, EntityType):
            return self._create_entity(mapped)
        if isinstance(mapped, ValueObjectType):
            properties = self.scanner.scan(mapped.base_class)
            return ValueObject(
                base_class=mapped.base_class,
                type_name=mapped.name,
                properties=tuple(p for p in properties if _supported(p)),
                mapped_type=mapped,
            )
        raise AuditError(ErrorCode.NOT_INSTANCE_NOR_ID, mapped.base_class)

    def _create_entity(self, mapped: EntityType) -> Entity:
        properties = self.scanner.scan(mapped.base_class)

        if mapped.id_property_name is not None:
            id_property = _find_by_name(properties, mapped.id_property_name, mapped.name)
            properties = [dataclasses.replace(p, is_id=True) if p is id_property else p for p in properties]
            id_property = _find_by_name(properties, mapped.id_property_name, mapped.name)
        else:
            candidates = [p for p in properties if p.is_id]
            if len(candidates) != 1:
                raise AuditError(ErrorCode.ENTITY_WITHOUT_ID, mapped.name, len(candidates))
            id_property = candidates[0]

        return Entity(
            base_class=mapped.base_class,
            type_name=mapped.name,
            properties=tuple(p for p in properties if _supported(p)),
            mapped_type=mapped,
            id_property=id_property,
        )


def _find_by_name(properties: list[Property], name: str, type_name: str) -> Property:
    for prop in properties:
        if prop.name == name:
            return prop
    raise AuditError(ErrorCode.PROPERTY_NOT_FOUND, name, type_name)
