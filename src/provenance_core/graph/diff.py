"""Structural diff between two JSON-like state values.

The diff is recorded on every state node (what the action changed) and is
recomputed after every committed transition to decide which path-scoped
observers fire.

Ordering is deterministic: mappings are walked depth-first over the new
value's keys, then keys that exist only in the old value are reported.
Sequences are compared index by index; surplus indices are reported as
added or removed entries.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

PathSegment = str | int


class DiffKind(StrEnum):
    """Classification of a single difference."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


class DiffEntry(BaseModel):
    """One path-level difference between two states."""

    kind: DiffKind
    path: list[PathSegment] = Field(default_factory=list)
    old: Any = None
    new: Any = None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray)


def _same_scalar(old: Any, new: Any) -> bool:
    # True == 1 in Python, but a bool/number swap is a change of value.
    if isinstance(old, bool) != isinstance(new, bool):
        return False
    return bool(old == new)


def _walk(old: Any, new: Any, path: list[PathSegment], out: list[DiffEntry]) -> None:
    if isinstance(old, Mapping) and isinstance(new, Mapping):
        for key in new:
            if key not in old:
                out.append(
                    DiffEntry(kind=DiffKind.ADDED, path=[*path, key], new=copy.deepcopy(new[key]))
                )
            else:
                _walk(old[key], new[key], [*path, key], out)
        for key in old:
            if key not in new:
                out.append(
                    DiffEntry(
                        kind=DiffKind.REMOVED, path=[*path, key], old=copy.deepcopy(old[key])
                    )
                )
        return

    if _is_sequence(old) and _is_sequence(new):
        shared = min(len(old), len(new))
        for index in range(shared):
            _walk(old[index], new[index], [*path, index], out)
        for index in range(shared, len(new)):
            out.append(
                DiffEntry(kind=DiffKind.ADDED, path=[*path, index], new=copy.deepcopy(new[index]))
            )
        for index in range(shared, len(old)):
            out.append(
                DiffEntry(
                    kind=DiffKind.REMOVED, path=[*path, index], old=copy.deepcopy(old[index])
                )
            )
        return

    containers = (isinstance(old, Mapping), _is_sequence(old))
    if containers == (isinstance(new, Mapping), _is_sequence(new)) and _same_scalar(old, new):
        return

    out.append(
        DiffEntry(
            kind=DiffKind.CHANGED,
            path=list(path),
            old=copy.deepcopy(old),
            new=copy.deepcopy(new),
        )
    )


def diff(old: Any, new: Any) -> list[DiffEntry]:
    """Compute the ordered differences between two state values.

    Args:
        old: Previous state value.
        new: New state value.

    Returns:
        List of differences; empty when the values are structurally equal.
    """
    entries: list[DiffEntry] = []
    _walk(old, new, [], entries)
    return entries


def normalize_path(path: Sequence[PathSegment]) -> tuple[str, ...]:
    """Return a path with every segment as a string, for comparisons."""
    return tuple(str(segment) for segment in path)


def touches(entry: DiffEntry, path: Sequence[PathSegment]) -> bool:
    """Whether a difference affects the value found at ``path``.

    True when the entry sits at the path, beneath it, or above it (an
    ancestor that was replaced wholesale changes everything below it).
    """
    entry_path = normalize_path(entry.path)
    target = normalize_path(path)
    shared = min(len(entry_path), len(target))
    return entry_path[:shared] == target[:shared]
