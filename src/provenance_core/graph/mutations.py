"""Pure graph mutation functions.

Every function takes a graph and returns a new graph; the argument is never
altered. The session commits a result by adopting the returned value, and
rolls back a failure by simply not adopting anything.

Id and time generation are injectable so histories can be reproduced in
tests; the defaults are random UUIDs and the wall clock in milliseconds.
"""

from __future__ import annotations

import copy
import time
import uuid
from typing import TYPE_CHECKING, Any

from provenance_core.graph.diff import diff
from provenance_core.graph.errors import RootArtifactError
from provenance_core.graph.nodes import (
    ROOT_TYPE,
    Artifacts,
    Extra,
    NodeMetadata,
    ProvenanceGraph,
    RootNode,
    StateNode,
)
from provenance_core.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    IdFactory = Callable[[], str]
    Clock = Callable[[], int]
    ActionFunction = Callable[..., Any]

log = get_logger(__name__)

ROOT_LABEL = "Root"
IMPORT_LABEL = "Imported state"


def generate_id() -> str:
    """Return a fresh node id."""
    return str(uuid.uuid4())


def generate_timestamp() -> int:
    """Return the current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def create_graph(
    initial_state: Any,
    *,
    label: str = ROOT_LABEL,
    id_factory: IdFactory = generate_id,
    clock: Clock = generate_timestamp,
) -> ProvenanceGraph:
    """Create a graph holding a single root node.

    Args:
        initial_state: State recorded on the root (deep-copied).
        label: Root label.
        id_factory: Id provider.
        clock: Timestamp provider.

    Returns:
        New graph whose root and current pointers are the root node.
    """
    root = RootNode(
        id=id_factory(),
        label=label,
        metadata=NodeMetadata(created_on=clock(), type=ROOT_TYPE),
        state=copy.deepcopy(initial_state),
    )
    log.debug("graph_created", root=root.id)
    return ProvenanceGraph(nodes={root.id: root}, root=root.id, current=root.id)


def _attach(graph: ProvenanceGraph, node: StateNode) -> ProvenanceGraph:
    """Register ``node`` under its parent and move current to it."""
    graph.nodes[node.id] = node
    graph.nodes[node.parent].children.append(node.id)
    graph.current = node.id
    return graph


def apply_action(
    graph: ProvenanceGraph,
    label: str,
    action: ActionFunction,
    args: Sequence[Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    artifacts: Mapping[str, Any] | None = None,
    *,
    id_factory: IdFactory = generate_id,
    clock: Clock = generate_timestamp,
) -> ProvenanceGraph:
    """Run an action against the current state and record the result.

    The action receives a private deep copy of the current state followed by
    ``args``, and returns the new state. If the action raises, the exception
    propagates and no node is created.

    Args:
        graph: Source graph (not modified).
        label: Human-readable label of the new node.
        action: Function ``(state, *args) -> new_state``.
        args: Extra positional arguments for the action.
        metadata: Caller metadata merged over the creation timestamp.
        artifacts: Partial artifacts overriding the computed defaults.
        id_factory: Id provider.
        clock: Timestamp provider.

    Returns:
        New graph whose current node is the freshly created node.
    """
    parent = graph.current_node
    new_state = action(copy.deepcopy(parent.state), *(args or ()))
    new_state = copy.deepcopy(new_state)

    diffs = diff(parent.state, new_state)
    node = StateNode(
        id=id_factory(),
        label=label,
        metadata=NodeMetadata.model_validate({"created_on": clock(), **(metadata or {})}),
        artifacts=Artifacts.model_validate({"diffs": diffs, "extra": [], **(artifacts or {})}),
        parent=parent.id,
        state=new_state,
    )

    new_graph = _attach(graph.model_copy(deep=True), node)
    log.debug(
        "action_applied",
        label=label,
        node=node.id,
        parent=parent.id,
        changes=len(diffs),
    )
    return new_graph


def go_to_node(graph: ProvenanceGraph, node_id: str) -> ProvenanceGraph:
    """Move the current pointer to ``node_id``.

    Raises:
        NodeNotFoundError: If the id is absent from the node table.
    """
    graph.get_node(node_id, context="go_to_node")
    new_graph = graph.model_copy(deep=True)
    new_graph.current = node_id
    log.debug("navigated", source=graph.current, target=node_id)
    return new_graph


def import_state(
    graph: ProvenanceGraph,
    baseline_state: Any,
    imported_state: Any,
    *,
    label: str = IMPORT_LABEL,
    id_factory: IdFactory = generate_id,
    clock: Clock = generate_timestamp,
) -> ProvenanceGraph:
    """Record a foreign state as a child of the current node.

    The recorded diff is taken against ``baseline_state`` (the state the
    session started from), not against the current node's state, so an
    imported link always documents what changed since the start.

    Args:
        graph: Source graph (not modified).
        baseline_state: State the diff is computed against.
        imported_state: State stored on the new node (deep-copied).
        label: Label of the new node.
        id_factory: Id provider.
        clock: Timestamp provider.

    Returns:
        New graph whose current node is the imported node.
    """
    state = copy.deepcopy(imported_state)
    diffs = diff(baseline_state, state)
    node = StateNode(
        id=id_factory(),
        label=label,
        metadata=NodeMetadata(created_on=clock()),
        artifacts=Artifacts(diffs=diffs),
        parent=graph.current,
        state=state,
    )

    new_graph = _attach(graph.model_copy(deep=True), node)
    log.debug("state_imported", node=node.id, parent=node.parent, changes=len(diffs))
    return new_graph


def add_extra_to_node_artifact(
    graph: ProvenanceGraph,
    node_id: str,
    extra: Any,
    *,
    clock: Clock = generate_timestamp,
) -> ProvenanceGraph:
    """Append a timestamped annotation to a state node.

    Raises:
        NodeNotFoundError: If the id is absent from the node table.
        RootArtifactError: If the id denotes the root node.
    """
    if not isinstance(graph.get_node(node_id, context="add_extra_to_node_artifact"), StateNode):
        raise RootArtifactError(node_id, operation="add")

    new_graph = graph.model_copy(deep=True)
    node = new_graph.nodes[node_id]
    assert isinstance(node, StateNode)
    node.artifacts.extra.append(Extra(time=clock(), value=copy.deepcopy(extra)))
    log.debug("artifact_added", node=node_id, count=len(node.artifacts.extra))
    return new_graph


def get_extra_from_artifact(graph: ProvenanceGraph, node_id: str) -> list[Extra]:
    """Return a copy of the annotations attached to a state node.

    Raises:
        NodeNotFoundError: If the id is absent from the node table.
        RootArtifactError: If the id denotes the root node.
    """
    node = graph.get_node(node_id, context="get_extra_from_artifact")
    if not isinstance(node, StateNode):
        raise RootArtifactError(node_id, operation="get")
    return [entry.model_copy(deep=True) for entry in node.artifacts.extra]
