"""
Tests for commits, shallow deletes and history queries through the Auditor.
"""

import threading
import time
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from auditgraph.diff.changes import NewObject, ObjectRemoved, ValueChange
from auditgraph.errors import AuditError, ErrorCode
from auditgraph.graph.snapshot import SnapshotType
from auditgraph.metamodel.global_id import InstanceId, ValueObjectId
from auditgraph.repository.memory import InMemoryRepository

from domain_model import Address, Employer, Money, Order, Person, Wallet

BOB = InstanceId("Person", "bob")


# =============================================================================
# Commits
# =============================================================================


def test_first_commit(auditor):
    commit = auditor.commit("alice", Person("bob", "Bob"))

    assert commit.id == 1
    assert commit.author == "alice"
    assert commit.commit_date == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert commit.global_ids() == [BOB]
    assert commit.snapshot_of(BOB).version == 1
    assert commit.diff.changes == (NewObject(BOB),)


def test_commit_ids_increase(auditor):
    first = auditor.commit("alice", Person("bob", "Bob"))
    second = auditor.commit("alice", Person("bob", "Robert"))

    assert second.id == first.id + 1
    assert second.commit_date > first.commit_date


def test_second_commit_diffs_against_stored_state(auditor):
    auditor.commit("alice", Person("bob", "Bob"))

    commit = auditor.commit("alice", Person("bob", "Robert"))

    assert commit.diff.changes == (ValueChange(BOB, "name", "Bob", "Robert"),)
    assert commit.diff.changes[0].commit_metadata == commit.metadata
    assert commit.snapshot_of(BOB).snapshot_type == SnapshotType.UPDATE
    assert commit.snapshot_of(BOB).changed_properties == ("name",)


def test_unchanged_commit_still_snapshots(auditor):
    auditor.commit("alice", Person("bob", "Bob"))

    commit = auditor.commit("alice", Person("bob", "Bob"))

    assert not commit.diff.has_changes()
    assert commit.snapshot_of(BOB).version == 2
    assert commit.snapshot_of(BOB).changed_properties == ()


def test_commit_snapshots_whole_graph(auditor):
    employer = Employer(1, boss=Person("bob", address=Address("Paris")))

    commit = auditor.commit("alice", employer)

    assert [str(g) for g in commit.global_ids()] == ["Employer/1", "Person/bob", "Person/bob#address"]


def test_commit_of_unmanaged_root(auditor):
    with pytest.raises(AuditError) as exc_info:
        auditor.commit("alice", 42)

    assert exc_info.value.code == ErrorCode.NOT_INSTANCE_NOR_ID
    assert auditor.repository.list_commits() == []


def test_list_commits_newest_first(auditor):
    auditor.commit("alice", Person("bob", "Bob"))
    auditor.commit("carol", Person("bob", "Robert"))

    assert [c.author for c in auditor.repository.list_commits()] == ["carol", "alice"]
    assert len(auditor.repository.list_commits(limit=1)) == 1


# =============================================================================
# Shallow delete
# =============================================================================


def test_shallow_delete_of_instance(auditor):
    auditor.commit("alice", Person("bob", address=Address("Paris")))

    commit = auditor.commit_shallow_delete("alice", Person("bob"))

    assert commit.global_ids() == [BOB]
    assert commit.snapshot_of(BOB).is_terminal
    assert commit.diff.changes == (ObjectRemoved(BOB),)
    assert not auditor.get_latest_snapshot(ValueObjectId(BOB, "address")).is_terminal


def test_shallow_delete_by_id_of_unknown_object(auditor):
    ghost = InstanceId("Person", "ghost")

    commit = auditor.commit_shallow_delete_by_id("alice", ghost)

    snapshot = commit.snapshot_of(ghost)
    assert snapshot.is_terminal
    assert snapshot.version == 1
    assert not commit.diff.has_changes()


def test_shallow_delete_of_unmanaged_target(auditor):
    with pytest.raises(AuditError) as exc_info:
        auditor.commit_shallow_delete("alice", "bob")

    assert exc_info.value.code == ErrorCode.NOT_INSTANCE_NOR_ID


# =============================================================================
# History
# =============================================================================


@pytest.fixture
def bob_history(auditor):
    """Bob created, renamed, then deleted."""
    auditor.commit("alice", Person("bob", "Bob"))
    auditor.commit("alice", Person("bob", "Robert"))
    auditor.commit_shallow_delete("alice", Person("bob"))
    return auditor


def test_state_history_newest_first(bob_history):
    snapshots = bob_history.get_state_history(BOB)

    assert [s.version for s in snapshots] == [3, 2, 1]
    assert snapshots[0].is_terminal
    assert [s.commit_id for s in snapshots] == [3, 2, 1]


def test_state_history_limit(bob_history):
    assert [s.version for s in bob_history.get_state_history(BOB, limit=2)] == [3, 2]


def test_state_history_accepts_id_string(bob_history):
    assert len(bob_history.get_state_history("Person/bob")) == 3


def test_change_history(bob_history):
    changes = bob_history.get_change_history(BOB)

    assert changes == [ObjectRemoved(BOB), ValueChange(BOB, "name", "Bob", "Robert")]
    assert [c.commit_metadata.id for c in changes] == [3, 2]


def test_change_history_limit(bob_history):
    assert bob_history.get_change_history(BOB, limit=1) == [ObjectRemoved(BOB)]


def test_change_history_with_zero_limit_is_empty(bob_history):
    ghost = InstanceId("Person", "ghost")
    bob_history.commit_shallow_delete_by_id("alice", ghost)

    assert bob_history.get_change_history(BOB, limit=0) == []
    assert bob_history.get_change_history(ghost, limit=0) == []


def test_history_of_unknown_object_is_empty(auditor):
    ghost = InstanceId("Person", "ghost")

    assert auditor.get_state_history(ghost) == []
    assert auditor.get_change_history(ghost) == []
    assert auditor.get_latest_snapshot(ghost) is None


def test_change_history_of_lone_terminal_snapshot(auditor):
    ghost = InstanceId("Person", "ghost")
    auditor.commit_shallow_delete_by_id("alice", ghost)

    assert auditor.get_change_history(ghost) == [ObjectRemoved(ghost)]


def test_object_recreated_after_delete(bob_history):
    commit = bob_history.commit("alice", Person("bob", "Bob"))
    snapshot = commit.snapshot_of(BOB)

    assert snapshot.version == 4
    assert snapshot.snapshot_type == SnapshotType.INITIAL
    assert commit.diff.changes == (NewObject(BOB),)
    assert bob_history.get_change_history(BOB, limit=1) == [NewObject(BOB)]


def test_value_object_history(auditor):
    auditor.commit("alice", Person("bob", address=Address("Paris")))
    auditor.commit("alice", Person("bob", address=Address("London")))

    changes = auditor.get_change_history("Person/bob#address")

    assert changes == [ValueChange(ValueObjectId(BOB, "address"), "city", "Paris", "London")]


def test_change_history_matches_commit_diffs(auditor):
    """Replaying history gives back the per-commit diffs of one object."""
    commits = [
        auditor.commit("alice", Person("bob", "Bob", nicknames=["b"])),
        auditor.commit("alice", Person("bob", "Robert", nicknames=["b"])),
        auditor.commit("alice", Person("bob", "Robert", nicknames=["b", "rob"])),
    ]

    history = auditor.get_change_history(BOB)

    expected = [c for commit in reversed(commits[1:]) for c in commit.diff.changes_for(BOB)]
    assert history == expected


# =============================================================================
# Snapshot isolation
# =============================================================================


def test_snapshot_keeps_state_of_mutable_value(auditor):
    order_id = InstanceId("Order", 1)
    order = Order(1, notes=[1])
    auditor.commit("alice", order)

    order.notes.append(2)
    auditor.commit("alice", order)

    assert [s.get("notes") for s in auditor.get_state_history(order_id)] == [[1, 2], [1]]
    assert auditor.get_change_history(order_id) == [ValueChange(order_id, "notes", [1], [1, 2])]


def test_snapshot_keeps_state_of_mutable_value_class(auditor):
    wallet_id = InstanceId("Wallet", "w")
    wallet = Wallet("w", Money(Decimal("1"), "EUR"))
    auditor.commit("alice", wallet)

    wallet.balance.amount = Decimal("5")
    auditor.commit("alice", wallet)

    assert auditor.get_change_history(wallet_id) == [
        ValueChange(wallet_id, "balance", Money(Decimal("1"), "EUR"), Money(Decimal("5"), "EUR"))
    ]


# =============================================================================
# Concurrent commits
# =============================================================================


class SlowRepository(InMemoryRepository):
    """Widens the window between reading the latest snapshot and persisting."""

    def get_latest(self, global_id):
        latest = super().get_latest(global_id)
        time.sleep(0.005)
        return latest


def test_concurrent_commits_get_distinct_versions(make_auditor):
    auditor = make_auditor(repository=SlowRepository())
    start = threading.Barrier(4)
    errors = []

    def commit(name):
        start.wait()
        try:
            auditor.commit(name, Person("bob", name))
        except AuditError as e:
            errors.append(e)

    threads = [threading.Thread(target=commit, args=(f"author-{i}",)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert [s.version for s in auditor.get_state_history(BOB)] == [4, 3, 2, 1]
    assert sorted(c.id for c in auditor.repository.list_commits()) == [1, 2, 3, 4]
