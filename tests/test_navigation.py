"""Tests for Navigator and ResourceGraph."""

from __future__ import annotations

import pytest
from rich.console import Console
from rich.tree import Tree

from cogmedia.config import EngineConfig
from cogmedia.core.models import Link
from cogmedia.errors import ResourceNotFoundError, ValidationError
from cogmedia.navigation import GraphNode, Navigator, ResourceGraph
from cogmedia.storage import InMemoryStorage
from cogmedia.store import ResourceStore


class TestTraverse:
    """Tests for Navigator.traverse."""

    def test_follows_relationship_link(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1", "name": "Ada"})
        store.create("order", {"id": "o-1", "customerId": "c-1"})

        customer = navigator.traverse("order", "o-1", "customer")
        assert customer.id == "c-1"

    def test_no_links_returns_none(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("order", {"id": "o-1"})
        assert navigator.traverse("order", "o-1", "customer") is None

    def test_dangling_link_returns_none(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("order", {"id": "o-1", "customerId": "ghost"})
        assert navigator.traverse("order", "o-1", "customer") is None

    def test_multiple_targets_return_list(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("project", {"id": "p-1"})
        store.create("task", {"id": "t-1"})
        store.create("task", {"id": "t-2"})
        navigator.link("project", "p-1", "task", "t-1", "task", "project")
        navigator.link("project", "p-1", "task", "t-2", "task", "project")

        tasks = navigator.traverse("project", "p-1", "task")
        assert [t.id for t in tasks] == ["t-1", "t-2"]

    def test_missing_source(self, navigator: Navigator) -> None:
        with pytest.raises(ResourceNotFoundError):
            navigator.traverse("order", "nope", "customer")


class TestLinking:
    """Tests for Navigator.link and Navigator.unlink."""

    @pytest.fixture
    def pair(self, store: ResourceStore) -> ResourceStore:
        store.create("project", {"id": "p-1", "name": "Apollo"})
        store.create("task", {"id": "t-1", "title": "Docs"})
        return store

    def test_link_is_bidirectional_and_persisted(self, pair: ResourceStore, navigator: Navigator) -> None:
        source = navigator.link("project", "p-1", "task", "t-1", "task", "project")

        link = source.get_link("task")
        assert link.href == "/task/t-1"
        assert link.title == "task task"
        assert pair.get("project", "p-1").get_link("task").href == "/task/t-1"
        assert pair.get("task", "t-1").get_link("project").href == "/project/p-1"

    def test_link_twice_is_deduplicated(self, pair: ResourceStore, navigator: Navigator) -> None:
        navigator.link("project", "p-1", "task", "t-1", "task", "project")
        navigator.link("project", "p-1", "task", "t-1", "task", "project")
        assert len(pair.get("project", "p-1").get_links("task")) == 1
        assert len(pair.get_stored_links("task", "t-1")) == 1

    def test_link_repairs_one_sided_link(self, pair: ResourceStore, navigator: Navigator) -> None:
        pair.set_stored_links("project", "p-1", [Link(rel="task", href="/task/t-1", title="task task")])
        navigator.link("project", "p-1", "task", "t-1", "task", "project")
        assert pair.get("task", "t-1").get_link("project") is not None
        assert len(pair.get_stored_links("project", "p-1")) == 1

    def test_link_governed_resource(self, store: ResourceStore, navigator: Navigator) -> None:
        task = store.create("task", {})
        store.create("project", {"id": "p-1"})
        navigator.link("task", task.id, "project", "p-1", "project", "task")
        assert store.get("task", task.id).current_state == "pending"

    def test_link_missing_endpoint(self, pair: ResourceStore, navigator: Navigator) -> None:
        with pytest.raises(ResourceNotFoundError) as exc_info:
            navigator.link("project", "p-1", "task", "ghost", "task", "project")
        assert exc_info.value.resource_id == "ghost"
        assert pair.get_stored_links("project", "p-1") == []

    def test_unlink_removes_both_directions(self, pair: ResourceStore, navigator: Navigator) -> None:
        navigator.link("project", "p-1", "task", "t-1", "task", "project")
        source = navigator.unlink("project", "p-1", "task", "t-1")

        assert source.get_link("task") is None
        assert pair.get("project", "p-1").get_link("task") is None
        assert pair.get("task", "t-1").get_link("project") is None

    def test_unlink_with_relation_keeps_others(self, pair: ResourceStore, navigator: Navigator) -> None:
        navigator.link("project", "p-1", "task", "t-1", "task", "project")
        navigator.link("project", "p-1", "task", "t-1", "blocker", "blocks")

        navigator.unlink("project", "p-1", "task", "t-1", src_rel="blocker")

        project = pair.get("project", "p-1")
        assert project.get_link("task") is not None
        assert project.get_link("blocker") is None
        assert pair.get_stored_links("task", "t-1") == []

    def test_unlink_keeps_inferred_relationship_links(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1"})
        store.create("order", {"id": "o-1", "customerId": "c-1"})
        source = navigator.unlink("order", "o-1", "customer", "c-1")
        assert source.get_link("customer").href == "/customer/c-1"


class TestFindReferencing:
    """Tests for Navigator.find_referencing."""

    def test_finds_explicit_and_inferred_references(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1"})
        store.create("order", {"id": "o-1", "customerId": "c-1"})
        store.create("order", {"id": "o-2", "customerId": "c-2"})
        store.create("ticket", {"id": "k-1"})
        navigator.link("ticket", "k-1", "customer", "c-1", "reporter", "ticket")

        found = {(r.type, r.id) for r in navigator.find_referencing("customer", "c-1")}
        assert found == {("order", "o-1"), ("ticket", "k-1")}

    def test_filters_by_relation(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1"})
        store.create("order", {"id": "o-1", "customerId": "c-1"})
        store.create("ticket", {"id": "k-1"})
        navigator.link("ticket", "k-1", "customer", "c-1", "reporter", "ticket")

        found = navigator.find_referencing("customer", "c-1", relation="reporter")
        assert [r.id for r in found] == ["k-1"]

    def test_scans_every_page(self, storage: InMemoryStorage) -> None:
        config = EngineConfig(_env_file=None, reference_scan_page_size=2)
        store = ResourceStore(storage, config=config)
        navigator = Navigator(store)
        store.create("customer", {"id": "c-1"})
        for index in range(5):
            store.create("order", {"id": f"o-{index}", "customerId": "c-1"})

        assert len(navigator.find_referencing("customer", "c-1")) == 5

    def test_target_does_not_reference_itself(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1"})
        assert navigator.find_referencing("customer", "c-1") == []

    def test_missing_target(self, navigator: Navigator) -> None:
        with pytest.raises(ResourceNotFoundError):
            navigator.find_referencing("customer", "ghost")


class TestCreateGraph:
    """Tests for Navigator.create_graph."""

    def test_cycle_terminates(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("node", {"id": "A", "name": "A"})
        store.create("node", {"id": "B", "name": "B"})
        navigator.link("node", "A", "node", "B", "rel", "rel")

        graph = navigator.create_graph("node", "A", depth=3)

        assert [n.id for n in graph.nodes] == ["A", "B"]
        assert [(e.source, e.target, e.relation) for e in graph.edges] == [("node/A", "node/B", "rel")]

    def test_no_duplicate_nodes_or_edges(self, store: ResourceStore, navigator: Navigator) -> None:
        for key in "ABCD":
            store.create("node", {"id": key})
        navigator.link("node", "A", "node", "B", "next", "prev")
        navigator.link("node", "B", "node", "C", "next", "prev")
        navigator.link("node", "C", "node", "A", "next", "prev")
        navigator.link("node", "A", "node", "D", "next", "prev")
        navigator.link("node", "D", "node", "C", "next", "prev")

        graph = navigator.create_graph("node", "A", depth=10)

        keys = [n.key for n in graph.nodes]
        assert len(keys) == len(set(keys)) == 4
        edges = [(e.source, e.target, e.relation) for e in graph.edges]
        assert len(edges) == len(set(edges))
        assert all(e.source != e.target for e in graph.edges)

    def test_depth_bounds_expansion(self, store: ResourceStore, navigator: Navigator) -> None:
        for key in "ABC":
            store.create("node", {"id": key})
        navigator.link("node", "A", "node", "B", "next", "prev")
        navigator.link("node", "B", "node", "C", "next", "prev")

        assert [n.id for n in navigator.create_graph("node", "A", depth=1).nodes] == ["A"]
        assert [n.id for n in navigator.create_graph("node", "A", depth=2).nodes] == ["A", "B"]
        assert [n.id for n in navigator.create_graph("node", "A", depth=3).nodes] == ["A", "B", "C"]

    def test_nodes_are_placed_at_shortest_distance(self, store: ResourceStore, navigator: Navigator) -> None:
        for key in "abcd":
            store.create("n", {"id": key})
        navigator.link("n", "a", "n", "b", "next", "prev")
        navigator.link("n", "b", "n", "c", "next", "prev")
        navigator.link("n", "a", "n", "c", "shortcut", "back")
        navigator.link("n", "c", "n", "d", "next", "prev")

        graph = navigator.create_graph("n", "a", depth=3)

        keys = [n.key for n in graph.nodes]
        assert keys == ["n/a", "n/b", "n/c", "n/d"]
        assert graph.has_edge_between("n/c", "n/d")

    def test_reverse_link_with_other_relation_is_folded(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("node", {"id": "A"})
        store.create("node", {"id": "B"})
        store.set_stored_links("node", "A", [Link(rel="parent", href="/node/B")])
        store.set_stored_links("node", "B", [Link(rel="owner", href="/node/A")])

        graph = navigator.create_graph("node", "A", depth=3)

        assert [(e.source, e.target, e.relation) for e in graph.edges] == [("node/A", "node/B", "parent")]

    def test_default_depth_from_config(self, store: ResourceStore, navigator: Navigator) -> None:
        for key in "ABC":
            store.create("node", {"id": key})
        navigator.link("node", "A", "node", "B", "next", "prev")
        navigator.link("node", "B", "node", "C", "next", "prev")

        graph = navigator.create_graph("node", "A")
        assert graph.depth == 2
        assert len(graph) == 2

    def test_relations_filter(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1"})
        store.create("order", {"id": "o-1", "customerId": "c-1"})
        store.create("note", {"id": "n-1"})
        navigator.link("order", "o-1", "note", "n-1", "note", "order")

        graph = navigator.create_graph("order", "o-1", relations=["customer"])
        assert {n.type for n in graph.nodes} == {"order", "customer"}

    def test_self_loop_skipped(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("node", {"id": "A"})
        navigator.link("node", "A", "node", "A", "me", "me")
        graph = navigator.create_graph("node", "A", depth=3)
        assert graph.edges == []

    def test_dangling_links_skipped(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("order", {"id": "o-1", "customerId": "ghost"})
        store.set_stored_links("order", "o-1", [Link(rel="docs", href="https://example.com/x")])
        graph = navigator.create_graph("order", "o-1", depth=3)
        assert len(graph) == 1

    def test_node_properties_subset(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("task", {"id": "t-1", "title": "Docs", "secret": "x", "priority": "high"})
        node = navigator.create_graph("task", "t-1").nodes[0]
        assert node.label == "Docs"
        assert set(node.properties) == {"title", "status", "priority", "createdAt", "updatedAt"}

    def test_missing_seed(self, navigator: Navigator) -> None:
        with pytest.raises(ResourceNotFoundError):
            navigator.create_graph("node", "ghost")

    def test_invalid_depth(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("node", {"id": "A"})
        with pytest.raises(ValidationError):
            navigator.create_graph("node", "A", depth=0)

    def test_resolve_link(self, store: ResourceStore, navigator: Navigator) -> None:
        store.create("customer", {"id": "c-1"})
        assert navigator.resolve_link({"rel": "customer", "href": "/customer/c-1"}).id == "c-1"
        assert navigator.resolve_link(Link(rel="x", href="/customer")) is None


class TestResourceGraph:
    """Tests for graph construction and export."""

    @pytest.fixture
    def graph(self) -> ResourceGraph:
        graph = ResourceGraph(seed="project/p-1", depth=2)
        graph.add_node(GraphNode(id="p-1", type="project", label="Apollo"))
        graph.add_node(GraphNode(id="t-1", type="task", label='Write "docs"', properties={"status": "pending"}))
        graph.add_edge("project/p-1", "task/t-1", "task")
        return graph

    def test_add_node_and_edge_deduplicate(self, graph: ResourceGraph) -> None:
        assert graph.add_node(GraphNode(id="p-1", type="project", label="Other")) is False
        assert graph.add_edge("project/p-1", "task/t-1", "task") is False
        assert graph.add_edge("task/t-1", "task/t-1", "self") is False
        assert graph.add_edge("project/p-1", "task/t-1", "owner") is True

    def test_to_dict(self, graph: ResourceGraph) -> None:
        data = graph.to_dict()
        assert data["nodes"][0] == {"id": "p-1", "type": "project", "label": "Apollo", "properties": {}}
        assert data["edges"] == [{"source": "project/p-1", "target": "task/t-1", "relation": "task"}]

    def test_to_dot(self, graph: ResourceGraph) -> None:
        dot = graph.to_dot()
        assert dot.startswith("digraph ResourceGraph {")
        assert '"project/p-1" -> "task/t-1" [label="task"];' in dot
        assert 'Write \\"docs\\"' in dot
        assert dot.endswith("}")

    def test_to_mermaid(self, graph: ResourceGraph) -> None:
        lines = graph.to_mermaid().splitlines()
        assert lines[0] == "flowchart LR"
        assert '    n0["Apollo"]' in lines
        assert '    n1["Write #quot;docs#quot;"]' in lines
        assert "    n0 -->|task| n1" in lines

    def test_to_rich_tree(self, graph: ResourceGraph) -> None:
        tree = graph.to_rich_tree()
        assert isinstance(tree, Tree)
        assert len(tree.children) == 1

        console = Console(width=120, record=True, color_system=None)
        console.print(tree)
        text = console.export_text()
        assert "Apollo" in text
        assert "task/t-1" in text
        assert "(pending)" in text

    def test_rich_tree_of_empty_graph(self) -> None:
        assert isinstance(ResourceGraph().to_rich_tree(), Tree)
