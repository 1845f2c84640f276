"""Observer registries and dispatch.

Three independent registries:
- global observers fire after every committed transition
- path observers fire when the transition's diff touches their path
- artifact observers fire when an annotation is attached

Dispatch for one transition runs global observers in registration order,
then matching path observers in registration order. Exceptions raised by
observers are not caught here.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from provenance_core.graph.diff import PathSegment, touches
from provenance_core.graph.errors import ObserverPathNotFoundError
from provenance_core.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from provenance_core.graph.diff import DiffEntry
    from provenance_core.graph.nodes import Extra

    SubscriberFunction = Callable[[], Any]
    ArtifactSubscriberFunction = Callable[[list[Extra]], Any]

log = get_logger(__name__)


def validate_observer_path(state: Any, path: Sequence[PathSegment]) -> None:
    """Check that ``path`` resolves against ``state``.

    Mapping segments must be existing keys; sequence segments must be valid
    indices (ints or digit strings).

    Raises:
        ObserverPathNotFoundError: At the first segment that does not resolve.
    """
    cursor = state
    for segment in path:
        if isinstance(cursor, Mapping):
            if segment not in cursor:
                raise ObserverPathNotFoundError(list(path), missing=segment)
            cursor = cursor[segment]
        elif isinstance(cursor, Sequence) and not isinstance(cursor, str):
            index = segment if isinstance(segment, int) else None
            if isinstance(segment, str) and segment.isdigit():
                index = int(segment)
            if index is None or not 0 <= index < len(cursor):
                raise ObserverPathNotFoundError(list(path), missing=segment)
            cursor = cursor[index]
        else:
            raise ObserverPathNotFoundError(list(path), missing=segment)


class EventManager:
    """Holds observers for one session and dispatches transitions to them."""

    def __init__(self) -> None:
        self._global: list[SubscriberFunction] = []
        self._scoped: list[tuple[tuple[PathSegment, ...], SubscriberFunction]] = []
        self._artifact: list[ArtifactSubscriberFunction] = []

    def add_observer(self, path: Sequence[PathSegment], func: SubscriberFunction) -> None:
        """Register ``func`` for changes at, beneath or above ``path``."""
        self._scoped.append((tuple(path), func))

    def add_global_observer(self, func: SubscriberFunction) -> None:
        """Register ``func`` for every committed transition."""
        self._global.append(func)

    def add_artifact_observer(self, func: ArtifactSubscriberFunction) -> None:
        """Register ``func`` for annotation changes."""
        self._artifact.append(func)

    def call_events(self, diffs: Sequence[DiffEntry]) -> None:
        """Dispatch one committed transition."""
        for func in self._global:
            func()

        fired = 0
        for path, func in self._scoped:
            if any(touches(entry, path) for entry in diffs):
                fired += 1
                func()

        log.debug(
            "events_dispatched",
            changes=len(diffs),
            global_observers=len(self._global),
            path_observers=fired,
        )

    def call_artifact_events(self, extras: Sequence[Extra]) -> None:
        """Notify artifact observers with the node's full annotation list."""
        for func in self._artifact:
            func([copy.deepcopy(entry) for entry in extras])

    def __repr__(self) -> str:
        return (
            f"EventManager(global={len(self._global)}, "
            f"path={len(self._scoped)}, artifact={len(self._artifact)})"
        )
