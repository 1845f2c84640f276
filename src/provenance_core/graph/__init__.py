"""Graph package - provenance tree records and pure graph functions.

The graph stores every state an application passes through as a node in a
tree. Functions in :mod:`provenance_core.graph.mutations` take a graph and
return a new one; the session in :mod:`provenance_core.provenance` owns the
live value.
"""

from provenance_core.graph.diff import DiffEntry, DiffKind, diff, touches
from provenance_core.graph.errors import (
    CodecError,
    EnvironmentUnavailableError,
    ErrorKind,
    GraphCorruptionError,
    InvalidNavigationError,
    NodeNotFoundError,
    ObserverPathNotFoundError,
    ProvenanceError,
    RootArtifactError,
)
from provenance_core.graph.events import EventManager, validate_observer_path
from provenance_core.graph.mutations import (
    add_extra_to_node_artifact,
    apply_action,
    create_graph,
    get_extra_from_artifact,
    go_to_node,
    import_state,
)
from provenance_core.graph.nodes import (
    Artifacts,
    Extra,
    NodeMetadata,
    ProvenanceGraph,
    ProvenanceNode,
    RootNode,
    StateNode,
    is_state_node,
)

__all__ = [
    "Artifacts",
    "CodecError",
    "DiffEntry",
    "DiffKind",
    "EnvironmentUnavailableError",
    "ErrorKind",
    "EventManager",
    "Extra",
    "GraphCorruptionError",
    "InvalidNavigationError",
    "NodeMetadata",
    "NodeNotFoundError",
    "ObserverPathNotFoundError",
    "ProvenanceError",
    "ProvenanceGraph",
    "ProvenanceNode",
    "RootArtifactError",
    "RootNode",
    "StateNode",
    "add_extra_to_node_artifact",
    "apply_action",
    "create_graph",
    "diff",
    "get_extra_from_artifact",
    "go_to_node",
    "import_state",
    "is_state_node",
    "touches",
    "validate_observer_path",
]
