"""
Tests for snapshot creation: state dehydration, versions and snapshot types.
"""

from auditgraph.graph.snapshot import SnapshotType, changed_property_names, dehydrate
from auditgraph.metamodel.global_id import InstanceId, ValueObjectId
from auditgraph.metamodel.type_mapper import TypeMapper

from domain_model import Address, Employer, Gadget, Person


def snapshot_of(auditor, root, prior=None):
    graph = auditor.graph_builder.build(root)
    return auditor.snapshot_factory.create(graph.root, prior=prior)


# =============================================================================
# State
# =============================================================================


def test_state_holds_every_property(auditor):
    snapshot = snapshot_of(auditor, Person("bob", "Bob", nicknames=["b"], tags={"x"}, scores={"go": 3}))

    assert snapshot.property_names() == ["id", "name", "address", "nicknames", "tags", "scores"]
    assert snapshot.get("name") == "Bob"
    assert snapshot.get("address") is None
    assert snapshot.get("nicknames") == ("b",)
    assert snapshot.get("tags") == frozenset({"x"})
    assert snapshot.get("scores") == {"go": 3}


def test_transient_member_is_not_captured(auditor):
    snapshot = snapshot_of(auditor, Person("bob", cache="stale"))

    assert not snapshot.has_property("cache")


def test_state_is_detached_from_live_object(auditor):
    bob = Person("bob", nicknames=["b"], scores={"go": 3})
    snapshot = snapshot_of(auditor, bob)

    bob.nicknames.append("bobby")
    bob.scores["go"] = 4

    assert snapshot.get("nicknames") == ("b",)
    assert snapshot.get("scores") == {"go": 3}


def test_references_become_global_ids(auditor):
    employer = Employer(1, boss=Person("alice"), staff=[Person("bob")])

    snapshot = snapshot_of(auditor, employer)

    assert snapshot.get("boss") == InstanceId("Person", "alice")
    assert snapshot.get("staff") == (InstanceId("Person", "bob"),)


def test_value_object_reference_is_its_id(auditor):
    snapshot = snapshot_of(auditor, Person("bob", address=Address("Paris")))

    assert snapshot.get("address") == ValueObjectId(InstanceId("Person", "bob"), "address")


def test_array_and_map_values(auditor):
    snapshot = snapshot_of(auditor, Gadget("g1", dims=(1, 2), by_year={2024: "new"}))

    assert snapshot.get("dims") == (1, 2)
    assert snapshot.get("by_year") == {2024: "new"}


# =============================================================================
# Versions and types
# =============================================================================


def test_first_snapshot_is_initial(auditor):
    snapshot = snapshot_of(auditor, Person("bob", "Bob"))

    assert snapshot.version == 1
    assert snapshot.snapshot_type == SnapshotType.INITIAL
    assert snapshot.is_initial
    assert snapshot.changed_properties == ("id", "name", "nicknames", "tags", "scores")


def test_update_snapshot(auditor):
    first = snapshot_of(auditor, Person("bob", "Bob"))

    second = snapshot_of(auditor, Person("bob", "Robert"), prior=first)

    assert second.version == 2
    assert second.snapshot_type == SnapshotType.UPDATE
    assert second.changed_properties == ("name",)


def test_terminal_snapshot(auditor):
    first = snapshot_of(auditor, Person("bob", "Bob"))

    terminal = auditor.snapshot_factory.create_terminal(first.global_id, first.managed_class, prior=first)

    assert terminal.version == 2
    assert terminal.is_terminal
    assert terminal.state == {}
    assert terminal.commit_id is None


def test_snapshot_after_terminal_is_initial_again(auditor):
    first = snapshot_of(auditor, Person("bob", "Bob"))
    terminal = auditor.snapshot_factory.create_terminal(first.global_id, first.managed_class, prior=first)

    revived = snapshot_of(auditor, Person("bob", "Bob"), prior=terminal)

    assert revived.version == 3
    assert revived.snapshot_type == SnapshotType.INITIAL


# =============================================================================
# Helpers
# =============================================================================


def test_dehydrate_freezes_containers():
    mapper = TypeMapper()

    assert dehydrate([1, 2], mapper.get_type(list[int])) == (1, 2)
    assert dehydrate({1}, mapper.get_type(set[int])) == frozenset({1})
    assert dehydrate(None, mapper.get_type(list[int])) is None
    assert dehydrate("x", mapper.get_type(str)) == "x"


def test_changed_property_names():
    names = ["a", "b", "c"]

    assert changed_property_names({"a": 1, "b": None, "c": 3}, None, names) == ("a", "c")
    assert changed_property_names({"a": 1, "b": 2}, {"a": 1, "b": 3}, names) == ("b",)
