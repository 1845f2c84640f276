"""Provenance error types.

Every failure the engine reports is a ``ProvenanceError`` subclass carrying
an ``ErrorKind``, so callers can branch on ``err.kind`` instead of matching
on exception classes. Errors are raised before the live graph is replaced,
so a failed call never leaves a partially committed history behind.

Exceptions raised by caller-supplied action functions are not wrapped; they
propagate unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from enum import Enum
from typing import Any, ClassVar


class ErrorKind(Enum):
    """Failure categories reported by the engine."""

    UNKNOWN_NODE = "unknown_node"
    INVALID_NAVIGATION = "invalid_navigation"
    ROOT_ARTIFACT = "root_artifact"
    OBSERVER_PATH_NOT_FOUND = "observer_path_not_found"
    ENVIRONMENT_UNAVAILABLE = "environment_unavailable"
    GRAPH_CORRUPTION = "graph_corruption"
    INVALID_PAYLOAD = "invalid_payload"


class ProvenanceError(Exception):
    """Base class for all engine failures."""

    kind: ClassVar[ErrorKind]


@dataclass
class NodeNotFoundError(ProvenanceError):
    """Raised when an id is absent from the node table.

    Attributes:
        node_id: The id that was referenced but doesn't exist.
        available: Ids present in the graph, used for suggestions.
        context: Operation during which the lookup failed.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.UNKNOWN_NODE

    node_id: str
    available: list[str] = field(default_factory=list)
    context: str = ""

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Node '{self.node_id}' not found"
        if self.context:
            msg += f" ({self.context})"
        suggestions = self.suggestions()
        if suggestions:
            msg += f"; did you mean: {', '.join(suggestions)}?"
        return msg

    def suggestions(self) -> list[str]:
        """Find similar ids that might be typos."""
        if not self.node_id:
            return []
        return get_close_matches(self.node_id, self.available, n=3, cutoff=0.6)


@dataclass
class InvalidNavigationError(ProvenanceError):
    """Raised when a navigation request cannot be satisfied.

    Attributes:
        reason: Human-readable explanation.
        requested: Steps requested (multi-step navigation only).
        taken: Steps that were reachable before failing.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_NAVIGATION

    reason: str
    requested: int | None = None
    taken: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.reason)


@dataclass
class RootArtifactError(ProvenanceError):
    """Raised when annotations are attached to or read from the root node.

    Attributes:
        node_id: The root node id.
        operation: ``"add"`` or ``"get"``.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.ROOT_ARTIFACT

    node_id: str
    operation: str = "add"

    def __post_init__(self) -> None:
        if self.operation == "get":
            msg = f"Root node '{self.node_id}' does not have artifacts"
        else:
            msg = f"Cannot add artifacts to root node '{self.node_id}'"
        super().__init__(msg)


@dataclass
class ObserverPathNotFoundError(ProvenanceError):
    """Raised when an observer path does not exist in the current state.

    Attributes:
        path: Full path the observer was registered against.
        missing: The first segment that could not be resolved.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.OBSERVER_PATH_NOT_FOUND

    path: list[Any]
    missing: Any = None

    def __post_init__(self) -> None:
        joined = ".".join(str(p) for p in self.path)
        msg = f"Path {joined} does not exist"
        if self.missing is not None:
            msg += f" (no key '{self.missing}')"
        super().__init__(msg)


@dataclass
class EnvironmentUnavailableError(ProvenanceError):
    """Raised when URL seeding runs without an addressable location."""

    kind: ClassVar[ErrorKind] = ErrorKind.ENVIRONMENT_UNAVAILABLE

    detail: str = "No addressable location available"

    def __post_init__(self) -> None:
        super().__init__(self.detail)


@dataclass
class GraphCorruptionError(ProvenanceError):
    """Raised when a graph violates the tree invariants.

    Attributes:
        violations: List of invariant violations found.
        context: Where the graph came from (e.g. ``"import"``).
    """

    kind: ClassVar[ErrorKind] = ErrorKind.GRAPH_CORRUPTION

    violations: list[str]
    context: str = ""

    def __post_init__(self) -> None:
        msg = f"Graph corruption detected during {self.context or 'unknown'}"
        if self.violations:
            msg += f": {len(self.violations)} violation(s)"
        super().__init__(msg)

    def __str__(self) -> str:
        lines = [f"Graph corruption detected during {self.context or 'unknown'}:"]
        for v in self.violations[:5]:
            lines.append(f"  - {v}")
        if len(self.violations) > 5:
            lines.append(f"  - ... and {len(self.violations) - 5} more")
        return "\n".join(lines)


@dataclass
class CodecError(ProvenanceError):
    """Raised when a serialized payload cannot be decoded."""

    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_PAYLOAD

    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Invalid serialized payload: {self.reason}")
