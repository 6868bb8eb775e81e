"""
Tests for managed classes and the managed class registry.
"""

from dataclasses import dataclass
from typing import Annotated

import pytest

from auditgraph.errors import AuditError, ErrorCode
from auditgraph.metamodel.managed import Entity, ManagedClassRegistry, ValueObject
from auditgraph.metamodel.property import FieldBasedPropertyScanner
from auditgraph.metamodel.type_mapper import TypeMapper
from auditgraph.metamodel.types import Id

from domain_model import Address, Gadget, Order, Person


@dataclass
class NoId:
    name: str


@dataclass
class TwoIds:
    a: Annotated[str, Id]
    b: Annotated[str, Id]


@pytest.fixture
def mapper() -> TypeMapper:
    mapper = TypeMapper()
    mapper.register_value_object(Address)
    return mapper


@pytest.fixture
def registry(mapper: TypeMapper) -> ManagedClassRegistry:
    return ManagedClassRegistry(mapper, FieldBasedPropertyScanner(mapper))


# =============================================================================
# Entities
# =============================================================================


def test_entity_with_annotated_id(mapper, registry):
    mapper.register_entity(Person)

    managed = registry.get(Person)

    assert isinstance(managed, Entity)
    assert managed.type_name == "Person"
    assert managed.id_property.name == "id"
    assert managed.id_of(Person("bob")) == "bob"


def test_entity_with_named_id_property(mapper, registry):
    mapper.register_entity(Order, "order_no")

    managed = registry.get(Order)

    assert managed.id_property.name == "order_no"
    assert managed.get_property("order_no").is_id


def test_entity_without_id(mapper, registry):
    mapper.register_entity(NoId)

    with pytest.raises(AuditError) as exc_info:
        registry.get(NoId)

    assert exc_info.value.code == ErrorCode.ENTITY_WITHOUT_ID


def test_entity_with_two_ids(mapper, registry):
    mapper.register_entity(TwoIds)

    with pytest.raises(AuditError) as exc_info:
        registry.get(TwoIds)

    assert exc_info.value.code == ErrorCode.ENTITY_WITHOUT_ID


def test_named_id_property_must_exist(mapper, registry):
    mapper.register_entity(Person, "uuid")

    with pytest.raises(AuditError) as exc_info:
        registry.get(Person)

    assert exc_info.value.code == ErrorCode.PROPERTY_NOT_FOUND


# =============================================================================
# Value objects and properties
# =============================================================================


def test_value_object(registry):
    managed = registry.get(Address)

    assert isinstance(managed, ValueObject)
    assert managed.property_names == ["city", "street"]


def test_maps_with_managed_keys_are_dropped(mapper, registry):
    mapper.register_entity(Gadget)

    managed = registry.get(Gadget)

    assert managed.has_property("links")
    assert not managed.has_property("lookup")


def test_unknown_property(registry):
    with pytest.raises(AuditError) as exc_info:
        registry.get(Address).get_property("zip")

    assert exc_info.value.code == ErrorCode.PROPERTY_NOT_FOUND


def test_primitive_is_not_managed(registry):
    with pytest.raises(AuditError) as exc_info:
        registry.get(int)

    assert exc_info.value.code == ErrorCode.NOT_INSTANCE_NOR_ID


# =============================================================================
# Registry behaviour
# =============================================================================


def test_registry_caches(mapper, registry):
    mapper.register_entity(Person)

    assert registry.get(Person) is registry.get(Person)
    assert registry.get_for(Person("x")) is registry.get(Person)


def test_get_by_name(mapper, registry):
    mapper.register_entity(Person, type_name="People")

    assert registry.get_by_name("People").base_class is Person


def test_is_managed_instance(mapper, registry):
    mapper.register_entity(Person)

    assert registry.is_managed_instance(Person("bob"))
    assert registry.is_managed_instance(Address("Paris"))
    assert not registry.is_managed_instance("bob")
    assert not registry.is_managed_instance(None)
    assert not registry.is_managed_instance([Person("bob")])
