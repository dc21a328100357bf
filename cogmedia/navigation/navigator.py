"""Navigator: follow, create and remove links between resources.

The Navigator only talks to a ResourceStore. Explicit links created here are
persisted on both endpoints; links inferred from ``<type>Id`` properties are
computed by the store and cannot be removed with ``unlink``.

Example:
    >>> navigator = Navigator(store)
    >>> navigator.link("project", "p-1", "task", "t-1", "task", "project")
    >>> navigator.traverse("task", "t-1", "project").id
    'p-1'
    >>> graph = navigator.create_graph("project", "p-1", depth=3)
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from cogmedia.config import EngineConfig
from cogmedia.core.models import Link
from cogmedia.core.resource import Resource
from cogmedia.errors import ResourceNotFoundError, ValidationError
from cogmedia.navigation.graph import GraphNode, ResourceGraph, resource_key
from cogmedia.observability.logging import structured
from cogmedia.store.store import ResourceStore

logger = logging.getLogger(__name__)


class Navigator:
    """Link traversal and graph building on top of a ResourceStore.

    Attributes:
        store: Store used for every read and write.
        config: Engine configuration, the store's by default.
    """

    def __init__(self, store: ResourceStore, config: EngineConfig | None = None) -> None:
        self.store = store
        self.config = config or store.config

    def resolve_link(self, link: Link | dict[str, Any]) -> Resource | None:
        """Load the resource a ``/type/id`` link points at, or None."""
        if isinstance(link, dict):
            link = Link.model_validate(link)
        target = link.target()
        if target is None:
            return None
        return self.store.get(*target)

    def traverse(self, type: str, id: str, relation: str) -> Resource | list[Resource] | None:
        """Follow every ``relation`` link of a resource.

        Returns None when no link resolves, the resource when exactly one
        does, and a list otherwise.

        Raises:
            ResourceNotFoundError: If the source resource does not exist.
        """
        source = self._require(type, id)

        resolved = []
        for link in source.get_links(relation):
            resource = self.resolve_link(link)
            if resource is not None:
                resolved.append(resource)

        if not resolved:
            return None
        if len(resolved) == 1:
            return resolved[0]
        return resolved

    def link(
        self,
        src_type: str,
        src_id: str,
        dst_type: str,
        dst_id: str,
        src_rel: str,
        dst_rel: str,
    ) -> Resource:
        """Link two resources in both directions and persist both ends.

        The source is written before the target. If the second write fails
        the link is one-sided; calling ``link`` again repairs it because
        links are deduplicated by ``(rel, href)``.

        Raises:
            ResourceNotFoundError: If either resource does not exist.
        """
        self._require(src_type, src_id)
        self._require(dst_type, dst_id)

        forward = Link(rel=src_rel, href=f"/{dst_type}/{dst_id}", title=f"{src_rel} {dst_type}")
        backward = Link(rel=dst_rel, href=f"/{src_type}/{src_id}", title=f"{dst_rel} {src_type}")

        if (src_type, src_id) == (dst_type, dst_id):
            links = _with_link(_with_link(self.store.get_stored_links(src_type, src_id), forward), backward)
            source = self.store.set_stored_links(src_type, src_id, links)
        else:
            source = self.store.set_stored_links(
                src_type, src_id, _with_link(self.store.get_stored_links(src_type, src_id), forward)
            )
            self.store.set_stored_links(
                dst_type, dst_id, _with_link(self.store.get_stored_links(dst_type, dst_id), backward)
            )

        logger.info(
            f"Linked {src_type}/{src_id} -[{src_rel}]-> {dst_type}/{dst_id}",
            extra=structured(
                source=f"{src_type}/{src_id}",
                target=f"{dst_type}/{dst_id}",
                src_rel=src_rel,
                dst_rel=dst_rel,
            ),
        )
        return source

    def unlink(
        self,
        src_type: str,
        src_id: str,
        dst_type: str,
        dst_id: str,
        src_rel: str | None = None,
    ) -> Resource:
        """Remove explicit links between two resources.

        Drops the source's links to the target (only those with ``src_rel``
        when given) and every link from the target back to the source.

        Raises:
            ResourceNotFoundError: If either resource does not exist.
        """
        self._require(src_type, src_id)
        self._require(dst_type, dst_id)

        target_href = f"/{dst_type}/{dst_id}"
        source_href = f"/{src_type}/{src_id}"

        source_links = [
            link
            for link in self.store.get_stored_links(src_type, src_id)
            if not (link.href == target_href and (src_rel is None or link.rel == src_rel))
        ]
        source = self.store.set_stored_links(src_type, src_id, source_links)

        target_links = [
            link for link in self.store.get_stored_links(dst_type, dst_id) if link.href != source_href
        ]
        target = self.store.set_stored_links(dst_type, dst_id, target_links)
        if (src_type, src_id) == (dst_type, dst_id):
            source = target

        logger.info(
            f"Unlinked {src_type}/{src_id} from {dst_type}/{dst_id}",
            extra=structured(source=source_href, target=target_href, src_rel=src_rel),
        )
        return source

    def find_referencing(self, type: str, id: str, relation: str | None = None) -> list[Resource]:
        """Every resource holding a link to ``/type/id``.

        Scans every page of every resource type, so the cost grows with the
        total number of stored resources.

        Raises:
            ResourceNotFoundError: If the target resource does not exist.
        """
        self._require(type, id)
        target_href = f"/{type}/{id}"
        page_size = self.config.reference_scan_page_size

        referencing: list[Resource] = []
        for resource_type in self.store.get_resource_types():
            page = 1
            while True:
                collection = self.store.get_collection(resource_type, page=page, page_size=page_size)
                for resource in collection:
                    if any(
                        link.rel != "self"
                        and link.href == target_href
                        and (relation is None or link.rel == relation)
                        for link in resource.links
                    ):
                        referencing.append(resource)
                pagination = collection.pagination
                if pagination is None or page >= pagination.total_pages:
                    break
                page += 1

        logger.debug(
            f"Found {len(referencing)} resources referencing {type}/{id}",
            extra=structured(target=target_href, relation=relation, count=len(referencing)),
        )
        return referencing

    def create_graph(
        self,
        seed_type: str,
        seed_id: str,
        depth: int | None = None,
        relations: list[str] | None = None,
    ) -> ResourceGraph:
        """Walk links breadth-first from a seed resource.

        ``depth`` counts node levels including the seed: ``depth=1`` yields
        the seed alone, ``depth=2`` adds its direct neighbours. Each node is
        placed at the level where it is first reached, which is its shortest
        distance from the seed, so every resource within ``depth`` is found.
        Nodes at the last level are recorded but not expanded, and each
        resource is expanded at most once, so cycles terminate.

        Self-loops are skipped. A link to an already recorded node adds an
        edge unless some edge already runs the opposite way between the two
        nodes, whatever its relation. This folds the two halves of a
        ``link()`` call into one edge, and it also folds an independent
        reverse link such as ``B -[owner]-> A`` next to ``A -[parent]-> B``.

        Raises:
            ResourceNotFoundError: If the seed resource does not exist.
            ValidationError: If ``depth`` is below 1.
        """
        depth = self.config.graph_default_depth if depth is None else depth
        if depth < 1:
            raise ValidationError("depth must be >= 1", field="depth", value=depth)

        seed = self._require(seed_type, seed_id)
        graph = ResourceGraph(seed=resource_key(seed_type, seed_id), depth=depth)
        graph.add_node(GraphNode.from_resource(seed))
        allowed = set(relations) if relations is not None else None

        queue: deque[tuple[Resource, int]] = deque([(seed, 1)])
        while queue:
            resource, level = queue.popleft()
            if level >= depth:
                continue
            for target in self._expand(graph, resource, allowed):
                queue.append((target, level + 1))

        logger.debug(
            f"Built graph from {seed_type}/{seed_id}",
            extra=structured(depth=depth, nodes=len(graph.nodes), edges=len(graph.edges)),
        )
        return graph

    def _expand(
        self,
        graph: ResourceGraph,
        resource: Resource,
        relations: set[str] | None,
    ) -> list[Resource]:
        """Record the edges of ``resource`` and return newly found neighbours."""
        source_key = resource_key(resource.type, resource.id)
        found: list[Resource] = []
        for link in resource.links:
            if link.rel == "self" or (relations is not None and link.rel not in relations):
                continue
            target = self.resolve_link(link)
            if target is None:
                continue

            target_key = resource_key(target.type, target.id)
            if graph.has_node(target_key):
                if not graph.has_edge_between(target_key, source_key):
                    graph.add_edge(source_key, target_key, link.rel)
                continue

            graph.add_node(GraphNode.from_resource(target))
            graph.add_edge(source_key, target_key, link.rel)
            found.append(target)
        return found

    def _require(self, type: str, id: str) -> Resource:
        resource = self.store.get(type, id)
        if resource is None:
            raise ResourceNotFoundError(type, id)
        return resource


def _with_link(links: list[Link], link: Link) -> list[Link]:
    if any(existing.key == link.key for existing in links):
        return links
    return [*links, link]
