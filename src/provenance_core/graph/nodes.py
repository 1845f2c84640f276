"""Provenance node and graph records.

A graph is a tree of nodes keyed by id. The root node holds the initial
state; every other node is a state node produced by one action or import,
pointing at exactly one parent. Node kinds are an explicit tagged union
(``kind`` is ``"root"`` or ``"state"``), so fields that only make sense on
state nodes (parent, diffs, annotations) simply do not exist on the root.

The whole graph serializes to JSON through pydantic, which is how complete
histories are exported and re-imported.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from provenance_core.graph.diff import DiffEntry  # noqa: TC001 - pydantic field type
from provenance_core.graph.errors import NodeNotFoundError

ROOT_TYPE = "Root"


class NodeMetadata(BaseModel):
    """Node metadata: creation time, event type, and any caller keys."""

    model_config = ConfigDict(extra="allow")

    created_on: int
    type: str | None = None


class Extra(BaseModel):
    """A timestamped annotation attached to a state node after the fact."""

    time: int
    value: Any = None


class Artifacts(BaseModel):
    """Per-node artifacts: the recorded diff and appended annotations."""

    model_config = ConfigDict(extra="allow")

    diffs: list[DiffEntry] = Field(default_factory=list)
    extra: list[Extra] = Field(default_factory=list)


class RootNode(BaseModel):
    """The single entry point of the history tree."""

    kind: Literal["root"] = "root"
    id: str = Field(min_length=1)
    label: str
    metadata: NodeMetadata
    children: list[str] = Field(default_factory=list)
    state: Any = None


class StateNode(BaseModel):
    """A node created by applying an action or importing a state."""

    kind: Literal["state"] = "state"
    id: str = Field(min_length=1)
    label: str
    metadata: NodeMetadata
    children: list[str] = Field(default_factory=list)
    state: Any = None
    parent: str = Field(min_length=1)
    artifacts: Artifacts = Field(default_factory=Artifacts)


ProvenanceNode = Annotated[RootNode | StateNode, Field(discriminator="kind")]


def is_state_node(node: RootNode | StateNode) -> bool:
    """Whether ``node`` is a state node (has a parent)."""
    return isinstance(node, StateNode)


class ProvenanceGraph(BaseModel):
    """Node table plus the root and current pointers."""

    nodes: dict[str, ProvenanceNode]
    root: str
    current: str

    @property
    def current_node(self) -> RootNode | StateNode:
        """The node the current pointer refers to."""
        return self.get_node(self.current)

    @property
    def root_node(self) -> RootNode:
        """The root node."""
        node = self.get_node(self.root)
        if not isinstance(node, RootNode):
            raise TypeError(f"Node '{self.root}' is not a root node")
        return node

    def get_node(self, node_id: str, context: str = "") -> RootNode | StateNode:
        """Look up a node by id.

        Raises:
            NodeNotFoundError: If the id is absent from the node table.
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id, available=list(self.nodes), context=context)
        return node

    def path_to_root(self, node_id: str) -> list[str]:
        """Ids from ``node_id`` up to and including the root."""
        path: list[str] = []
        node = self.get_node(node_id, context="path_to_root")
        while isinstance(node, StateNode):
            path.append(node.id)
            node = self.get_node(node.parent, context="path_to_root")
        path.append(node.id)
        return path

    def validate_invariants(self) -> list[str]:
        """Check tree invariants and return any violations.

        Invariants checked:
        1. Root id exists and denotes a root node; it is the only root
        2. Every node is stored under its own id
        3. Every state node's parent exists and lists it as a child
        4. Every listed child exists and names the listing node as parent
        5. Every node reaches the root without cycles
        6. Current id exists

        Returns:
            List of violation messages (empty if valid).
        """
        violations: list[str] = []

        root = self.nodes.get(self.root)
        if root is None:
            violations.append(f"Root '{self.root}' does not exist")
        elif not isinstance(root, RootNode):
            violations.append(f"Root '{self.root}' is not a root node")

        if self.current not in self.nodes:
            violations.append(f"Current '{self.current}' does not exist")

        for node_id, node in self.nodes.items():
            if node.id != node_id:
                violations.append(f"Node stored under '{node_id}' has id '{node.id}'")
            if isinstance(node, RootNode):
                if node_id != self.root:
                    violations.append(f"Node '{node_id}' is a second root")
            else:
                parent = self.nodes.get(node.parent)
                if parent is None:
                    violations.append(f"Node '{node_id}': parent '{node.parent}' does not exist")
                elif node_id not in parent.children:
                    violations.append(
                        f"Node '{node_id}': parent '{node.parent}' does not list it as a child"
                    )
            if len(set(node.children)) != len(node.children):
                violations.append(f"Node '{node_id}' lists a child more than once")
            for child_id in node.children:
                child = self.nodes.get(child_id)
                if child is None:
                    violations.append(f"Node '{node_id}': child '{child_id}' does not exist")
                elif not isinstance(child, StateNode) or child.parent != node_id:
                    violations.append(
                        f"Node '{node_id}': child '{child_id}' does not name it as parent"
                    )

        for node_id in self.nodes:
            seen: set[str] = set()
            cursor: str | None = node_id
            while cursor is not None and cursor in self.nodes:
                if cursor in seen:
                    violations.append(f"Node '{node_id}' is part of a cycle")
                    break
                seen.add(cursor)
                node = self.nodes[cursor]
                cursor = node.parent if isinstance(node, StateNode) else None
            else:
                if cursor is not None:
                    continue  # dangling parent already reported above
                if self.root not in seen:
                    violations.append(f"Node '{node_id}' does not reach root '{self.root}'")

        return violations
