"""Tests for pure graph mutation functions."""

from __future__ import annotations

from typing import Any

import pytest

from provenance_core.graph.diff import DiffEntry, DiffKind
from provenance_core.graph.errors import (
    ErrorKind,
    NodeNotFoundError,
    RootArtifactError,
)
from provenance_core.graph.mutations import (
    IMPORT_LABEL,
    ROOT_LABEL,
    add_extra_to_node_artifact,
    apply_action,
    create_graph,
    generate_id,
    generate_timestamp,
    get_extra_from_artifact,
    go_to_node,
    import_state,
)
from provenance_core.graph.nodes import ROOT_TYPE, RootNode, StateNode


def increment(state: dict[str, Any], amount: int = 1) -> dict[str, Any]:
    state["counter"] += amount
    return state


class TestCreateGraph:
    """Graph creation."""

    def test_single_root(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)

        assert list(graph.nodes) == ["node-1"]
        assert graph.root == graph.current == "node-1"
        root = graph.root_node
        assert isinstance(root, RootNode)
        assert root.label == ROOT_LABEL
        assert root.metadata.type == ROOT_TYPE
        assert root.metadata.created_on == 1_700_000_000_000
        assert root.state == {"counter": 0}

    def test_initial_state_is_copied(self, id_factory, clock) -> None:
        initial = {"items": [1]}
        graph = create_graph(initial, id_factory=id_factory, clock=clock)
        initial["items"].append(2)
        assert graph.root_node.state == {"items": [1]}

    def test_default_providers(self) -> None:
        graph = create_graph(None)
        assert len(graph.root) == 36
        assert graph.root_node.metadata.created_on > 0

    def test_generate_id_unique(self) -> None:
        assert generate_id() != generate_id()

    def test_generate_timestamp_is_milliseconds(self) -> None:
        # 2001-09-09 in epoch ms; seconds would be far smaller
        assert generate_timestamp() > 1_000_000_000_000


class TestApplyAction:
    """Recording actions."""

    def test_creates_child_of_current(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        result = apply_action(graph, "Add", increment, id_factory=id_factory, clock=clock)

        node = result.current_node
        assert isinstance(node, StateNode)
        assert node.id == "node-2"
        assert node.parent == "node-1"
        assert node.label == "Add"
        assert node.state == {"counter": 1}
        assert result.nodes["node-1"].children == ["node-2"]

    def test_source_graph_untouched(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        before = graph.model_copy(deep=True)

        apply_action(graph, "Add", increment, id_factory=id_factory, clock=clock)

        assert graph == before

    def test_action_mutating_in_place_does_not_touch_parent(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        result = apply_action(graph, "Add", increment, id_factory=id_factory, clock=clock)
        assert result.root_node.state == {"counter": 0}

    def test_args_forwarded(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        result = apply_action(graph, "Add", increment, [5], id_factory=id_factory, clock=clock)
        assert result.current_node.state == {"counter": 5}

    def test_records_diff(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        result = apply_action(graph, "Add", increment, id_factory=id_factory, clock=clock)

        node = result.current_node
        assert isinstance(node, StateNode)
        assert node.artifacts.diffs == [
            DiffEntry(kind=DiffKind.CHANGED, path=["counter"], old=0, new=1)
        ]
        assert node.artifacts.extra == []

    def test_metadata_merged_over_timestamp(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        result = apply_action(
            graph,
            "Add",
            increment,
            metadata={"type": "Increment", "source": "keyboard"},
            id_factory=id_factory,
            clock=clock,
        )

        metadata = result.current_node.metadata
        assert metadata.type == "Increment"
        assert metadata.created_on == 1_700_000_000_001
        assert metadata.model_dump()["source"] == "keyboard"

    def test_artifacts_override(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        result = apply_action(
            graph,
            "Add",
            increment,
            artifacts={"diffs": [], "screenshot": "shot.png"},
            id_factory=id_factory,
            clock=clock,
        )

        node = result.current_node
        assert isinstance(node, StateNode)
        assert node.artifacts.diffs == []
        assert node.artifacts.model_dump()["screenshot"] == "shot.png"

    def test_failing_action_creates_nothing(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)

        def boom(state: dict[str, Any]) -> dict[str, Any]:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            apply_action(graph, "Boom", boom, id_factory=id_factory, clock=clock)
        assert list(graph.nodes) == ["node-1"]

    def test_branching_from_earlier_node(self, id_factory, clock) -> None:
        """Applying an action after navigating back starts a new branch."""
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        graph = apply_action(graph, "A", increment, id_factory=id_factory, clock=clock)
        graph = go_to_node(graph, "node-1")
        graph = apply_action(graph, "B", increment, [10], id_factory=id_factory, clock=clock)

        assert graph.nodes["node-1"].children == ["node-2", "node-3"]
        assert graph.current == "node-3"
        assert graph.current_node.state == {"counter": 10}
        assert graph.validate_invariants() == []


class TestGoToNode:
    """Navigation."""

    def test_moves_current(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        graph = apply_action(graph, "A", increment, id_factory=id_factory, clock=clock)

        moved = go_to_node(graph, "node-1")

        assert moved.current == "node-1"
        assert graph.current == "node-2"

    def test_unknown_id(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        with pytest.raises(NodeNotFoundError) as exc_info:
            go_to_node(graph, "missing")
        assert exc_info.value.kind is ErrorKind.UNKNOWN_NODE


class TestImportState:
    """Recording imported states."""

    def test_diff_against_baseline(self, id_factory, clock) -> None:
        """The recorded diff describes the change since the baseline, not the parent."""
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        graph = apply_action(graph, "A", increment, [4], id_factory=id_factory, clock=clock)

        result = import_state(
            graph, {"counter": 0}, {"counter": 5}, id_factory=id_factory, clock=clock
        )

        node = result.current_node
        assert isinstance(node, StateNode)
        assert node.label == IMPORT_LABEL
        assert node.parent == "node-2"
        assert node.artifacts.diffs == [
            DiffEntry(kind=DiffKind.CHANGED, path=["counter"], old=0, new=5)
        ]

    def test_custom_label(self, id_factory, clock) -> None:
        graph = create_graph({}, id_factory=id_factory, clock=clock)
        result = import_state(graph, {}, {"a": 1}, label="From link", id_factory=id_factory)
        assert result.current_node.label == "From link"

    def test_source_graph_untouched(self, id_factory, clock) -> None:
        graph = create_graph({}, id_factory=id_factory, clock=clock)
        import_state(graph, {}, {"a": 1}, id_factory=id_factory, clock=clock)
        assert list(graph.nodes) == ["node-1"]


class TestArtifacts:
    """Annotations on state nodes."""

    def test_add_and_get(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        graph = apply_action(graph, "A", increment, id_factory=id_factory, clock=clock)

        graph = add_extra_to_node_artifact(graph, "node-2", {"note": "first"}, clock=clock)
        graph = add_extra_to_node_artifact(graph, "node-2", "second", clock=clock)

        extras = get_extra_from_artifact(graph, "node-2")
        assert [e.value for e in extras] == [{"note": "first"}, "second"]
        assert extras[0].time < extras[1].time

    def test_add_does_not_mutate_source(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        graph = apply_action(graph, "A", increment, id_factory=id_factory, clock=clock)

        add_extra_to_node_artifact(graph, "node-2", "note", clock=clock)

        assert get_extra_from_artifact(graph, "node-2") == []

    def test_get_returns_copies(self, id_factory, clock) -> None:
        graph = create_graph({"counter": 0}, id_factory=id_factory, clock=clock)
        graph = apply_action(graph, "A", increment, id_factory=id_factory, clock=clock)
        graph = add_extra_to_node_artifact(graph, "node-2", {"n": 1}, clock=clock)

        get_extra_from_artifact(graph, "node-2")[0].value["n"] = 99

        assert get_extra_from_artifact(graph, "node-2")[0].value == {"n": 1}

    def test_add_to_root_rejected(self, id_factory, clock) -> None:
        graph = create_graph({}, id_factory=id_factory, clock=clock)
        with pytest.raises(RootArtifactError) as exc_info:
            add_extra_to_node_artifact(graph, "node-1", "note", clock=clock)
        assert exc_info.value.kind is ErrorKind.ROOT_ARTIFACT
        assert "Cannot add artifacts to root node" in str(exc_info.value)

    def test_get_from_root_rejected(self, id_factory, clock) -> None:
        graph = create_graph({}, id_factory=id_factory, clock=clock)
        with pytest.raises(RootArtifactError, match="does not have artifacts"):
            get_extra_from_artifact(graph, "node-1")

    def test_unknown_node(self, id_factory, clock) -> None:
        graph = create_graph({}, id_factory=id_factory, clock=clock)
        with pytest.raises(NodeNotFoundError):
            add_extra_to_node_artifact(graph, "ghost", "note", clock=clock)
        with pytest.raises(NodeNotFoundError):
            get_extra_from_artifact(graph, "ghost")
