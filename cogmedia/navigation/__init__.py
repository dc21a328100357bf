"""Link navigation and resource graphs."""

from cogmedia.navigation.graph import GraphEdge, GraphNode, ResourceGraph
from cogmedia.navigation.navigator import Navigator

__all__ = [
    "GraphEdge",
    "GraphNode",
    "Navigator",
    "ResourceGraph",
]
