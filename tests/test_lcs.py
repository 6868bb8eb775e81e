"""
Tests for the LCS list edit scripts.
"""

import random

import pytest

from auditgraph.diff.changes import ElementValueChange, ValueAdded, ValueRemoved
from auditgraph.diff.lcs import apply_list_changes, list_changes


# =============================================================================
# Edit scripts
# =============================================================================


def test_equal_lists():
    assert list_changes(["a", "b"], ["a", "b"]) == []
    assert list_changes([], []) == []


def test_append():
    assert list_changes(["a"], ["a", "x"]) == [ValueAdded(1, "x")]


def test_insert_in_the_middle():
    assert list_changes(["a", "b"], ["a", "x", "b"]) == [ValueAdded(1, "x")]


def test_remove():
    assert list_changes(["a", "b", "c"], ["a", "c"]) == [ValueRemoved(1, "b")]


def test_replace_is_element_value_change():
    assert list_changes(["a", "b", "c"], ["a", "x", "c"]) == [ElementValueChange(1, "b", "x")]


def test_swap():
    """A swap is one removal and one insertion, not two replacements."""
    assert list_changes(["a", "b"], ["b", "a"]) == [ValueRemoved(0, "a"), ValueAdded(1, "a")]


def test_from_and_to_empty():
    assert list_changes([], ["a", "b"]) == [ValueAdded(0, "a"), ValueAdded(1, "b")]
    assert list_changes(["a", "b"], []) == [ValueRemoved(0, "a"), ValueRemoved(0, "b")]


def test_gap_with_surplus_on_the_left():
    changes = list_changes(["a", "b", "c", "d"], ["a", "x", "d"])

    assert changes == [ElementValueChange(1, "b", "x"), ValueRemoved(2, "c")]


def test_gap_with_surplus_on_the_right():
    changes = list_changes(["a", "b", "d"], ["a", "x", "y", "d"])

    assert changes == [ElementValueChange(1, "b", "x"), ValueAdded(2, "y")]


# =============================================================================
# Replay
# =============================================================================


@pytest.mark.parametrize(
    "left, right",
    [
        ("abcabba", "cbabac"),
        ("kitten", "sitting"),
        ("", "xyz"),
        ("xyz", ""),
        ("aaaa", "aa"),
    ],
)
def test_replay_rebuilds_right(left, right):
    left, right = list(left), list(right)

    assert apply_list_changes(left, list_changes(left, right)) == right


def test_replay_random_edits():
    rng = random.Random(1234)
    for _ in range(200):
        left = [rng.randrange(5) for _ in range(rng.randrange(8))]
        right = list(left)
        for _ in range(rng.randrange(5)):
            if right and rng.random() < 0.5:
                del right[rng.randrange(len(right))]
            else:
                right.insert(rng.randrange(len(right) + 1), rng.randrange(5))

        assert apply_list_changes(left, list_changes(left, right)) == right


def test_replay_rejects_mismatched_script():
    with pytest.raises(ValueError):
        apply_list_changes(["a"], [ValueRemoved(0, "b")])

    with pytest.raises(ValueError):
        apply_list_changes(["a"], [ValueAdded(3, "b")])
