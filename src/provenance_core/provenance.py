"""Provenance session: the stateful facade over the pure graph functions.

A ``Provenance`` instance owns one live graph. Every mutating call builds a
new graph with a pure function from :mod:`provenance_core.graph.mutations`
and only then replaces the live value, so a failing call leaves the session
exactly as it was. After each committed transition the session diffs the
previous current state against the new one and dispatches observers.

Nothing that crosses the public boundary aliases internal nodes: accessors
return deep copies, and actions receive a private copy of the state.

Example:
    >>> prov = init_provenance({"counter": 0})
    >>> prov.apply_action("Increment", lambda s: {**s, "counter": s["counter"] + 1})
    {'counter': 1}
    >>> prov.go_back_one_step()
    >>> prov.state
    {'counter': 0}
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import ValidationError

from provenance_core import codec
from provenance_core.config import ProvenanceConfig
from provenance_core.graph import mutations
from provenance_core.graph.diff import diff
from provenance_core.graph.errors import (
    EnvironmentUnavailableError,
    GraphCorruptionError,
    InvalidNavigationError,
)
from provenance_core.graph.events import EventManager, validate_observer_path
from provenance_core.graph.nodes import ProvenanceGraph, RootNode, StateNode
from provenance_core.location import env_location
from provenance_core.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from provenance_core.graph.diff import PathSegment
    from provenance_core.graph.events import ArtifactSubscriberFunction, SubscriberFunction
    from provenance_core.graph.mutations import ActionFunction, Clock, IdFactory
    from provenance_core.graph.nodes import Extra
    from provenance_core.location import LocationProvider

log = get_logger(__name__)

StateT = TypeVar("StateT")


class Provenance(Generic[StateT]):
    """Branching history of an application's state.

    Args:
        initial_state: State recorded on the root node.
        load_from_url: Whether :meth:`done` seeds the session from the
            ambient location. Defaults to the config setting.
        config: Session configuration.
        location: Location provider used by :meth:`done`. Defaults to
            reading the environment variable named in the config.
        id_factory: Node id provider.
        clock: Timestamp provider (epoch milliseconds).
    """

    def __init__(
        self,
        initial_state: StateT,
        *,
        load_from_url: bool | None = None,
        config: ProvenanceConfig | None = None,
        location: LocationProvider | None = None,
        id_factory: IdFactory = mutations.generate_id,
        clock: Clock = mutations.generate_timestamp,
    ) -> None:
        self._config = config or ProvenanceConfig()
        self._load_from_url = (
            self._config.load_from_url if load_from_url is None else load_from_url
        )
        self._location = location or env_location(self._config.location_env)
        self._id_factory = id_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._events = EventManager()
        self._initial_state: StateT = copy.deepcopy(initial_state)
        self._graph = mutations.create_graph(
            initial_state,
            label=self._config.root_label,
            id_factory=id_factory,
            clock=clock,
        )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def graph(self) -> ProvenanceGraph:
        """Return a deep copy of the whole graph."""
        with self._lock:
            return self._graph.model_copy(deep=True)

    def current(self) -> RootNode | StateNode:
        """Return a deep copy of the current node."""
        with self._lock:
            return self._graph.current_node.model_copy(deep=True)

    def root(self) -> RootNode:
        """Return a deep copy of the root node."""
        with self._lock:
            return self._graph.root_node.model_copy(deep=True)

    @property
    def state(self) -> StateT:
        """A deep copy of the current state."""
        with self._lock:
            return copy.deepcopy(self._graph.current_node.state)

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _commit(self, new_graph: ProvenanceGraph) -> None:
        """Install ``new_graph`` and dispatch the resulting transition."""
        old_state = self._graph.current_node.state
        self._graph = new_graph
        self._events.call_events(diff(old_state, new_graph.current_node.state))

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def apply_action(
        self,
        label: str,
        action: ActionFunction,
        args: Sequence[Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
        artifacts: Mapping[str, Any] | None = None,
        event_type: str | None = None,
    ) -> StateT:
        """Apply an action and record the result as a new node.

        Args:
            label: Label of the new node.
            action: Function ``(state, *args) -> new_state``. It receives a
                private copy and may mutate it in place.
            args: Extra positional arguments for the action.
            metadata: Metadata stored on the node.
            artifacts: Partial artifacts overriding the recorded defaults.
            event_type: Shortcut for ``metadata["type"]``.

        Returns:
            A deep copy of the new current state.

        Raises:
            Exception: Whatever the action raises; the graph is unchanged.
        """
        node_metadata = dict(metadata or {})
        if event_type is not None:
            node_metadata["type"] = event_type

        with self._lock:
            try:
                new_graph = mutations.apply_action(
                    self._graph,
                    label,
                    action,
                    args,
                    node_metadata,
                    artifacts,
                    id_factory=self._id_factory,
                    clock=self._clock,
                )
            except Exception as e:
                log.warning("action_failed", label=label, error=str(e))
                raise
            self._commit(new_graph)
            log.info("action_recorded", label=label, node=new_graph.current)
            return copy.deepcopy(new_graph.current_node.state)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def go_to_node(self, node_id: str) -> None:
        """Move the current pointer to ``node_id``.

        Raises:
            NodeNotFoundError: If the id is unknown.
        """
        with self._lock:
            self._commit(mutations.go_to_node(self._graph, node_id))

    def go_back_one_step(self) -> None:
        """Move to the parent of the current node.

        Raises:
            InvalidNavigationError: If the current node is the root.
        """
        with self._lock:
            current = self._graph.current_node
            if not isinstance(current, StateNode):
                raise InvalidNavigationError("Already at root")
            self._commit(mutations.go_to_node(self._graph, current.parent))

    def go_forward_one_step(self) -> None:
        """Move to the most recently added child of the current node.

        Raises:
            InvalidNavigationError: If the current node has no children.
        """
        with self._lock:
            current = self._graph.current_node
            if not current.children:
                raise InvalidNavigationError("Already at the latest node in this branch")
            self._commit(mutations.go_to_node(self._graph, current.children[-1]))

    def go_back_n_steps(self, n: int) -> None:
        """Move ``n`` steps towards the root.

        The walk is simulated first and committed only if every step
        succeeds.

        Raises:
            InvalidNavigationError: If the root is reached before ``n`` steps,
                or ``n`` is negative.
        """
        if n < 0:
            raise InvalidNavigationError(f"Cannot go back {n} steps", requested=n, taken=0)

        with self._lock:
            candidate = self._graph
            for taken in range(n):
                node = candidate.current_node
                if not isinstance(node, StateNode):
                    raise InvalidNavigationError(
                        f"Cannot go back {n} steps. Reached root after {taken} steps",
                        requested=n,
                        taken=taken,
                    )
                candidate = mutations.go_to_node(candidate, node.parent)
            self._commit(candidate)

    def reset(self) -> None:
        """Move the current pointer back to the root."""
        with self._lock:
            self._commit(mutations.go_to_node(self._graph, self._graph.root))

    # -------------------------------------------------------------------------
    # Artifacts
    # -------------------------------------------------------------------------

    def add_extra_to_node_artifact(self, node_id: str, extra: Any) -> None:
        """Attach an annotation to a state node and notify artifact observers.

        Raises:
            NodeNotFoundError: If the id is unknown.
            RootArtifactError: If the id denotes the root.
        """
        with self._lock:
            self._graph = mutations.add_extra_to_node_artifact(
                self._graph, node_id, extra, clock=self._clock
            )
            node = self._graph.nodes[node_id]
            assert isinstance(node, StateNode)
            self._events.call_artifact_events(node.artifacts.extra)

    def get_extra_from_artifact(self, node_id: str) -> list[Extra]:
        """Return the annotations attached to a state node.

        Raises:
            NodeNotFoundError: If the id is unknown.
            RootArtifactError: If the id denotes the root.
        """
        with self._lock:
            return mutations.get_extra_from_artifact(self._graph, node_id)

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def add_observer(self, path: Sequence[PathSegment], func: SubscriberFunction) -> None:
        """Register ``func`` for changes affecting ``path``.

        Raises:
            ObserverPathNotFoundError: If ``path`` does not exist in the
                current state.
        """
        with self._lock:
            validate_observer_path(self._graph.current_node.state, path)
            self._events.add_observer(path, func)

    def add_global_observer(self, func: SubscriberFunction) -> None:
        """Register ``func`` for every committed transition."""
        with self._lock:
            self._events.add_global_observer(func)

    def add_artifact_observer(self, func: ArtifactSubscriberFunction) -> None:
        """Register ``func`` for annotation changes."""
        with self._lock:
            self._events.add_artifact_observer(func)

    # -------------------------------------------------------------------------
    # State export / import
    # -------------------------------------------------------------------------

    def export_state(self, partial: bool = False) -> str:
        """Serialize the current state into a delimited, URL-safe string.

        Args:
            partial: Only export top-level fields that differ from the
                initial state. Ignored when the state is not a mapping.
        """
        with self._lock:
            current_state = self._graph.current_node.state

        exported: Any = current_state
        if isinstance(current_state, Mapping):
            if partial and isinstance(self._initial_state, Mapping):
                initial = self._initial_state
                exported = {
                    key: value
                    for key, value in current_state.items()
                    if key not in initial or diff(initial[key], value)
                }
            else:
                exported = dict(current_state)

        return codec.wrap(codec.encode_state(exported), self._config.delimiter)

    def import_state(self, serialized: str) -> None:
        """Import an exported state as a new child of the current node.

        Decoded fields are merged over the current state's fields. The
        recorded diff is taken against the session's initial state.

        Raises:
            CodecError: If the string cannot be decoded.
        """
        payload = codec.extract(serialized, self._config.delimiter) or serialized
        imported = codec.decode_state(payload)
        with self._lock:
            self._import_decoded(imported)

    def _import_decoded(self, imported: Any) -> None:
        current_state = self._graph.current_node.state
        if isinstance(current_state, Mapping) and isinstance(imported, Mapping):
            merged = {**copy.deepcopy(current_state), **imported}
        else:
            merged = imported
        self._commit(
            mutations.import_state(
                self._graph,
                self._initial_state,
                merged,
                label=self._config.import_label,
                id_factory=self._id_factory,
                clock=self._clock,
            )
        )
        log.info("state_import_committed", node=self._graph.current)

    # -------------------------------------------------------------------------
    # Graph export / import
    # -------------------------------------------------------------------------

    def export_provenance_graph(self) -> str:
        """Serialize the whole graph to JSON."""
        with self._lock:
            return self._graph.model_dump_json()

    def import_provenance_graph(self, serialized: str) -> None:
        """Replace the live graph with a previously exported one.

        Raises:
            GraphCorruptionError: If the string is not a valid graph.
        """
        try:
            loaded = ProvenanceGraph.model_validate_json(serialized)
        except ValidationError as e:
            violations = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise GraphCorruptionError(violations, context="graph import") from e

        violations = loaded.validate_invariants()
        if violations:
            raise GraphCorruptionError(violations, context="graph import")

        with self._lock:
            self._commit(loaded)
        log.info("graph_imported", nodes=len(loaded.nodes), current=loaded.current)

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    def done(self, load_from_url: bool | None = None) -> None:
        """Finish setup, seeding from the ambient location if enabled.

        Looks for the delimiter in the location string and imports the
        trailing segment. Does nothing when the delimiter is absent.

        Raises:
            EnvironmentUnavailableError: If seeding is enabled but no
                location is available.
            CodecError: If the embedded payload cannot be decoded.
        """
        enabled = self._load_from_url if load_from_url is None else load_from_url
        if not enabled:
            return

        location = self._location()
        if location is None:
            raise EnvironmentUnavailableError(
                "Location not available. Provide a location provider or set "
                f"{self._config.location_env}."
            )

        payload = codec.extract(location, self._config.delimiter)
        if payload is None:
            log.debug("location_without_state", location=location)
            return

        imported = codec.decode_state(payload)
        with self._lock:
            self._import_decoded(imported)

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"Provenance(nodes={len(self._graph.nodes)}, "
                f"current={self._graph.current!r}, events={self._events!r})"
            )


def init_provenance(
    initial_state: StateT,
    load_from_url: bool | None = None,
    *,
    config: ProvenanceConfig | None = None,
    location: LocationProvider | None = None,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> Provenance[StateT]:
    """Create a provenance session.

    Args:
        initial_state: State recorded on the root node.
        load_from_url: Seed from the ambient location when :meth:`done` runs.
        config: Session configuration.
        location: Location provider.
        id_factory: Node id provider.
        clock: Timestamp provider.

    Returns:
        New session.
    """
    return Provenance(
        initial_state,
        load_from_url=load_from_url,
        config=config,
        location=location,
        id_factory=id_factory or mutations.generate_id,
        clock=clock or mutations.generate_timestamp,
    )
