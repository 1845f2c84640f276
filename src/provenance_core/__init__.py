"""provenance_core: branching history for application state.

Record every state change as a node in a tree, move backward, forward and
across branches, annotate any point in history, and share states or whole
histories as plain strings.
"""

from provenance_core.config import ConfigError, ProvenanceConfig, load_config
from provenance_core.graph import (
    DiffEntry,
    DiffKind,
    ErrorKind,
    Extra,
    ProvenanceError,
    ProvenanceGraph,
    RootNode,
    StateNode,
    is_state_node,
)
from provenance_core.provenance import Provenance, init_provenance

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DiffEntry",
    "DiffKind",
    "ErrorKind",
    "Extra",
    "Provenance",
    "ProvenanceConfig",
    "ProvenanceError",
    "ProvenanceGraph",
    "RootNode",
    "StateNode",
    "__version__",
    "init_provenance",
    "is_state_node",
    "load_config",
]
