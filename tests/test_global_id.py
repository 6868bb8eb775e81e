"""
Tests for global ids: canonical strings, parsing, equality and resolution.
"""

import pytest

from auditgraph.errors import AuditError, ErrorCode
from auditgraph.metamodel.global_id import (
    InstanceId,
    UnboundedValueObjectId,
    ValueObjectId,
    fragment_segments,
    parse_global_id,
)

from domain_model import Address, Color, Employer, Order, OrderLine, Person


# =============================================================================
# Canonical forms
# =============================================================================


def test_instance_id_value():
    assert InstanceId("Person", "bob").value == "Person/bob"
    assert InstanceId("Employer", 1).value == "Employer/1"
    assert InstanceId("Paint", Color.RED).value == "Paint/RED"


def test_unbounded_value_object_id_value():
    assert UnboundedValueObjectId("Address").value == "Address/"


def test_value_object_id_value():
    gid = ValueObjectId(InstanceId("Order", 7), "lines[0]")

    assert gid.value == "Order/7#lines[0]"
    assert gid.root_id() == InstanceId("Order", 7)


def test_hash_in_id_is_escaped():
    gid = InstanceId("Person", "a#b%c")

    assert gid.value == "Person/a%23b%25c"
    assert parse_global_id(gid.value) == gid


# =============================================================================
# Equality
# =============================================================================


def test_equality_goes_through_canonical_value():
    """An int id and its parsed string form are the same id."""
    assert InstanceId("Employer", 1) == parse_global_id("Employer/1")
    assert hash(InstanceId("Employer", 1)) == hash(parse_global_id("Employer/1"))


def test_value_object_type_name_is_not_identity():
    owner = InstanceId("Person", "bob")

    assert ValueObjectId(owner, "address", "Address") == ValueObjectId(owner, "address")


def test_ids_sort_by_value():
    ids = [InstanceId("Person", "b"), InstanceId("Person", "a"), UnboundedValueObjectId("Address")]

    assert [str(i) for i in sorted(ids)] == ["Address/", "Person/a", "Person/b"]


# =============================================================================
# Parsing
# =============================================================================


@pytest.mark.parametrize(
    "text, cls",
    [
        ("Person/bob", InstanceId),
        ("Address/", UnboundedValueObjectId),
        ("Person/bob#address", ValueObjectId),
        ("Address/#inner", ValueObjectId),
    ],
)
def test_parse_round_trip(text, cls):
    gid = parse_global_id(text)

    assert isinstance(gid, cls)
    assert gid.value == text


@pytest.mark.parametrize("text", ["bob", "/bob", "Person/bob#", ""])
def test_parse_malformed(text):
    with pytest.raises(AuditError) as exc_info:
        parse_global_id(text)

    assert exc_info.value.code == ErrorCode.MALFORMED_GLOBAL_ID


def test_fragment_segments():
    assert fragment_segments("address.lines[2]") == [
        ("property", "address"),
        ("property", "lines"),
        ("item", "2"),
    ]


# =============================================================================
# IdFactory
# =============================================================================


def test_instance_id_from_factory(auditor):
    assert auditor.instance_id(Person, "bob") == InstanceId("Person", "bob")
    assert auditor.id_factory.id_string(Person("bob")) == "Person/bob"


def test_null_entity_id(auditor):
    with pytest.raises(AuditError) as exc_info:
        auditor.id_factory.entity_id(auditor.managed_class(Person), Person(None))

    assert exc_info.value.code == ErrorCode.ENTITY_INSTANCE_WITH_NULL_ID


def test_value_object_id_from_factory(auditor):
    gid = auditor.value_object_id(Person, "bob", "address", Address)

    assert gid == parse_global_id("Person/bob#address")
    assert gid.type_name == "Address"


def test_key_fragment_replaces_dots(auditor):
    assert auditor.id_factory.key_fragment("links", "home.main") == "links[home-main]"


def test_content_digest_is_structural(auditor):
    factory = auditor.id_factory

    assert factory.content_digest(Address("Paris")) == factory.content_digest(Address("Paris"))
    assert factory.content_digest(Address("Paris")) != factory.content_digest(Address("Rome"))


def test_managed_class_of_walks_fragment(auditor):
    resolved = auditor.id_factory.managed_class_of(parse_global_id("Order/7#lines[0]"))

    assert resolved.base_class is OrderLine


def test_managed_class_of_entity(auditor):
    assert auditor.id_factory.managed_class_of(parse_global_id("Employer/1")).base_class is Employer
    assert auditor.id_factory.managed_class_of(parse_global_id("Order/1")).base_class is Order


def test_managed_class_of_bad_fragment(auditor):
    with pytest.raises(AuditError) as exc_info:
        auditor.id_factory.managed_class_of(parse_global_id("Person/bob#name"))

    assert exc_info.value.code == ErrorCode.MALFORMED_GLOBAL_ID
