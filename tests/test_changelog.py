"""
Tests for change processors and the plain text change log.
"""

import pytest

from auditgraph.changelog import ChangeProcessor, SimpleTextChangeLog, process_change_list
from auditgraph.diff.changes import ListChange, SetChange, ValueChange
from auditgraph.metamodel.global_id import InstanceId

from domain_model import Employer, Person


class RecordingProcessor(ChangeProcessor[list]):
    """Records callback names in call order."""

    def __init__(self):
        self.calls = []

    def on_commit(self, commit_metadata):
        self.calls.append(f"commit {commit_metadata.id}")

    def on_affected_object(self, global_id):
        self.calls.append(f"object {global_id}")

    def on_property_change(self, change):
        self.calls.append("property")

    def on_value_change(self, change):
        self.calls.append("value")

    def on_reference_change(self, change):
        self.calls.append("reference")

    def on_new_object(self, change):
        self.calls.append("new")

    def on_object_removed(self, change):
        self.calls.append("removed")

    def on_container_change(self, change):
        self.calls.append("container")

    def on_list_change(self, change):
        self.calls.append("list")

    def on_set_change(self, change):
        self.calls.append("set")

    def on_map_change(self, change):
        self.calls.append("map")

    def result(self):
        return self.calls


@pytest.fixture
def bob_history(auditor):
    auditor.commit("alice", Person("bob", "Bob"))
    auditor.commit("alice", Person("bob", "Robert"))
    auditor.commit_shallow_delete("alice", Person("bob"))
    return auditor


# =============================================================================
# Dispatch
# =============================================================================


def test_callbacks_per_change_type():
    bob = InstanceId("Person", "bob")
    changes = [
        ValueChange(bob, "name", "Bob", "Robert"),
        ListChange(bob, "nicknames", ()),
        SetChange(bob, "tags", ("a",), ()),
    ]

    calls = process_change_list(changes, RecordingProcessor())

    assert calls == [
        "object Person/bob",
        "property", "value",
        "property", "container", "list",
        "property", "container", "set",
    ]


def test_reference_and_object_changes(auditor):
    diff = auditor.compare(Employer(1, boss=Person("bob")), Employer(1, boss=Person("alice")))

    calls = auditor.process_change_list(list(diff), RecordingProcessor())

    assert calls == [
        "object Employer/1",
        "property", "reference",
        "object Person/alice",
        "new",
        "object Person/bob",
        "removed",
    ]


def test_commit_headers_fire_once_per_commit(bob_history):
    changes = bob_history.get_change_history("Person/bob")

    calls = process_change_list(changes, RecordingProcessor())

    assert calls == [
        "commit 3",
        "object Person/bob",
        "removed",
        "commit 2",
        "property", "value",
    ]


def test_processor_must_define_result():
    class Silent(ChangeProcessor[None]):
        pass

    with pytest.raises(TypeError):
        ChangeProcessor()
    with pytest.raises(TypeError):
        Silent()


# =============================================================================
# Text change log
# =============================================================================


def test_simple_text_change_log(bob_history):
    changes = bob_history.get_change_history("Person/bob")

    text = bob_history.process_change_list(changes, SimpleTextChangeLog())

    assert text.splitlines() == [
        "commit 3, author: alice, 2024-01-01T09:02:00+00:00",
        "  changed object: Person/bob",
        "    object removed",
        "commit 2, author: alice, 2024-01-01T09:01:00+00:00",
        "    'name' value changed from 'Bob' to 'Robert'",
    ]


def test_empty_change_log():
    assert process_change_list([], SimpleTextChangeLog()) == ""
