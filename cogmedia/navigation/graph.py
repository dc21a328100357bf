"""ResourceGraph: the result of walking links outward from a seed resource.

Nodes are keyed by ``type/id`` and edges by ``(source, target, relation)``,
so adding the same node or edge twice is a no-op. The graph can be exported
as a plain dict, Graphviz DOT, Mermaid flowchart, or a ``rich`` tree for
terminal display.

Example:
    >>> graph = navigator.create_graph("project", "p-1", depth=3)
    >>> print(graph.to_mermaid())
    flowchart LR
        n0["Apollo"]
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rich.markup import escape
from rich.tree import Tree

from cogmedia.core.resource import Resource

NODE_PROPERTIES = ("name", "title", "status", "priority", "createdAt", "updatedAt")
LABEL_PROPERTIES = ("name", "title", "label")


def resource_key(type: str, id: str) -> str:
    return f"{type}/{id}"


@dataclass
class GraphNode:
    """A resource in the graph, reduced to display-friendly properties."""

    id: str
    type: str
    label: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return resource_key(self.type, self.id)

    @classmethod
    def from_resource(cls, resource: Resource) -> GraphNode:
        props = resource.properties
        label = next(
            (str(props[name]) for name in LABEL_PROPERTIES if props.get(name)),
            f"{resource.type} {resource.id}",
        )
        return cls(
            id=resource.id,
            type=resource.type,
            label=label,
            properties={name: props[name] for name in NODE_PROPERTIES if name in props},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "properties": dict(self.properties),
        }


@dataclass(frozen=True)
class GraphEdge:
    """A directed link between two nodes, identified by their keys."""

    source: str
    target: str
    relation: str

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "relation": self.relation}


class ResourceGraph:
    """Deduplicated nodes and edges discovered from a seed resource.

    Attributes:
        seed: Key of the node the walk started from.
        depth: Depth limit the graph was built with.
    """

    def __init__(self, seed: str | None = None, depth: int | None = None) -> None:
        self.seed = seed
        self.depth = depth
        self._nodes: dict[str, GraphNode] = {}
        self._edges: dict[tuple[str, str, str], GraphEdge] = {}

    @property
    def nodes(self) -> list[GraphNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[GraphEdge]:
        return list(self._edges.values())

    def add_node(self, node: GraphNode) -> bool:
        """Add ``node`` unless its key is present. Returns True if added."""
        if node.key in self._nodes:
            return False
        self._nodes[node.key] = node
        return True

    def add_edge(self, source: str, target: str, relation: str) -> bool:
        """Add an edge unless it is a self-loop or already present."""
        if source == target:
            return False
        key = (source, target, relation)
        if key in self._edges:
            return False
        self._edges[key] = GraphEdge(source, target, relation)
        return True

    def has_node(self, key: str) -> bool:
        return key in self._nodes

    def get_node(self, key: str) -> GraphNode | None:
        return self._nodes.get(key)

    def has_edge_between(self, source: str, target: str) -> bool:
        """True if any edge runs from ``source`` to ``target``."""
        return any(e.source == source and e.target == target for e in self._edges.values())

    def neighbors(self, key: str) -> list[GraphEdge]:
        return [e for e in self._edges.values() if e.source == key]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges.values()],
        }

    def to_dot(self, name: str = "ResourceGraph") -> str:
        """Render in Graphviz DOT format. Node ids are the quoted ``type/id`` keys."""
        lines = [
            f"digraph {name} {{",
            "    rankdir=LR;",
            '    node [shape=box, style="rounded"];',
            "",
        ]

        for node in self._nodes.values():
            label = _escape_dot(f"{node.label}\n({node.type})")
            lines.append(f'    "{_escape_dot(node.key)}" [label="{label}"];')

        if self._edges:
            lines.append("")
        for edge in self._edges.values():
            lines.append(
                f'    "{_escape_dot(edge.source)}" -> "{_escape_dot(edge.target)}" '
                f'[label="{_escape_dot(edge.relation)}"];'
            )

        lines.append("}")
        return "\n".join(lines)

    def to_mermaid(self) -> str:
        """Render as a Mermaid flowchart. Nodes get positional ids ``n0``, ``n1``..."""
        ids = {key: f"n{index}" for index, key in enumerate(self._nodes)}
        lines = ["flowchart LR"]

        for key, node in self._nodes.items():
            lines.append(f'    {ids[key]}["{_escape_mermaid(node.label)}"]')

        for edge in self._edges.values():
            lines.append(
                f"    {ids[edge.source]} -->|{_escape_mermaid(edge.relation)}| {ids[edge.target]}"
            )

        return "\n".join(lines)

    def to_rich_tree(self) -> Tree:
        """Render as a ``rich`` Tree rooted at the seed.

        Each node appears once in full; later references are shown dimmed.
        """
        root_key = self.seed or next(iter(self._nodes), None)
        if root_key is None or root_key not in self._nodes:
            return Tree("[dim](empty graph)[/dim]", guide_style="dim")

        tree = Tree(self._rich_label(self._nodes[root_key]), guide_style="dim")
        shown = {root_key}
        stack: list[tuple[str, Tree]] = [(root_key, tree)]

        while stack:
            key, branch = stack.pop()
            children = []
            for edge in self.neighbors(key):
                node = self._nodes[edge.target]
                if edge.target in shown:
                    branch.add(f"[dim]{escape(edge.relation)} -> {escape(node.key)}[/dim]")
                    continue
                shown.add(edge.target)
                child = branch.add(f"[cyan]{escape(edge.relation)}[/cyan] {self._rich_label(node)}")
                children.append((edge.target, child))
            stack.extend(reversed(children))

        return tree

    @staticmethod
    def _rich_label(node: GraphNode) -> str:
        status = node.properties.get("status")
        suffix = f" [yellow]({escape(str(status))})[/yellow]" if status else ""
        return f"[bold]{escape(node.label)}[/bold] [dim]{escape(node.key)}[/dim]{suffix}"

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"ResourceGraph(nodes={len(self._nodes)}, edges={len(self._edges)})"


def _escape_dot(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _escape_mermaid(value: str) -> str:
    return value.replace('"', "#quot;").replace("|", "#124;")
