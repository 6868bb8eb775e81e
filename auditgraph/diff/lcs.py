"""
LCS-based edit scripts for ordered containers.

The script is built gap by gap between longest-common-subsequence matches.
Inside a gap, positions present on both sides become ElementValueChange,
surplus left elements become ValueRemoved and surplus right elements become
ValueAdded, in that order.

Indices refer to the list being rewritten while the script is applied in
order, so ``apply_list_changes(left, list_changes(left, right)) == right``.
"""

from __future__ import annotations

from typing import Any, Sequence

from .changes import ElementChange, ElementValueChange, ValueAdded, ValueRemoved


def _lcs_matches(left: Sequence[Any], right: Sequence[Any]) -> list[tuple[int, int]]:
    """Matched (left index, right index) pairs, ascending."""
    n, m = len(left), len(right)
    # lengths[i][j] = LCS length of left[i:] and right[j:]
    lengths = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = lengths[i], lengths[i + 1]
        for j in range(m - 1, -1, -1):
            if left[i] == right[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    matches: list[tuple[int, int]] = []
    i = j = 0
    while i < n and j < m:
        if left[i] == right[j]:
            matches.append((i, j))
            i += 1
            j += 1
        elif lengths[i + 1][j] >= lengths[i][j + 1]:
            # Ties advance the left side first: removals before insertions
            i += 1
        else:
            j += 1
    return matches


def list_changes(left: Sequence[Any], right: Sequence[Any]) -> list[ElementChange]:
    """Minimal element edit script turning ``left`` into ``right``."""
    n, m = len(left), len(right)

    start = 0
    while start < n and start < m and left[start] == right[start]:
        start += 1
    end_left, end_right = n, m
    while end_left > start and end_right > start and left[end_left - 1] == right[end_right - 1]:
        end_left -= 1
        end_right -= 1

    middle_left = left[start:end_left]
    middle_right = right[start:end_right]
    if not middle_left and not middle_right:
        return []

    changes: list[ElementChange] = []
    prev_i = prev_j = 0
    for i, j in _lcs_matches(middle_left, middle_right) + [(len(middle_left), len(middle_right))]:
        gap_left = middle_left[prev_i:i]
        gap_right = middle_right[prev_j:j]
        # Everything before the gap already equals right[:position]
        position = start + prev_j
        paired = min(len(gap_left), len(gap_right))

        for offset in range(paired):
            changes.append(ElementValueChange(position + offset, gap_left[offset], gap_right[offset]))
        for value in gap_left[paired:]:
            changes.append(ValueRemoved(position + paired, value))
        for offset in range(paired, len(gap_right)):
            changes.append(ValueAdded(position + offset, gap_right[offset]))

        prev_i, prev_j = i + 1, j + 1

    return changes


def apply_list_changes(left: Sequence[Any], changes: Sequence[ElementChange]) -> list[Any]:
    """
    Replay an edit script on a copy of ``left``.

    Raises:
        ValueError: the script doesn't fit the list (index out of range or value mismatch)
    """
    result = list(left)
    for change in changes:
        if isinstance(change, ValueAdded):
            if not 0 <= change.index <= len(result):
                raise ValueError(f"Insert index {change.index} out of range for list of {len(result)}")
            result.insert(change.index, change.value)
        elif isinstance(change, ValueRemoved):
            if not 0 <= change.index < len(result) or result[change.index] != change.value:
                raise ValueError(f"Cannot remove {change.value!r} at index {change.index}")
            del result[change.index]
        elif isinstance(change, ElementValueChange):
            if not 0 <= change.index < len(result) or result[change.index] != change.left:
                raise ValueError(f"Cannot change {change.left!r} at index {change.index}")
            result[change.index] = change.right
        else:
            raise ValueError(f"Not a list element change: {change!r}")
    return result
