"""
nestAD Graph Builder
====================

NetworkX-based model of the group membership structure found by a scan.

Design Decisions:
-----------------
1. Uses a NetworkX MultiDiGraph: identical edges reached from different
   roots are kept, one per traversal occurrence
2. Nodes are keyed by display name and carry their rendering category
3. The first category declared for a name wins; later declarations are
   no-ops, so a group declared as a root keeps its root styling
4. Edge direction is group -> member
"""

import networkx as nx
from typing import Iterator, Optional

from .schemas import GraphNode, GraphEdge, NodeCategory


class MembershipGraph:
    """Abstraction layer over NetworkX for the membership model.

    Example Usage:
        graph = MembershipGraph()
        graph.declare_node("Domain Admins", NodeCategory.ROOT)
        graph.declare_node("alice", NodeCategory.PRINCIPAL)
        graph.add_edge("Domain Admins", "alice")
    """

    def __init__(self):
        """Initialize empty membership graph."""
        self._graph = nx.MultiDiGraph()

    def declare_node(self, name: str, category: NodeCategory) -> bool:
        """Declare a node once.

        Args:
            name: Display name of the principal or group
            category: Rendering category

        Returns:
            True if the node was newly declared, False if it already had
            a category
        """
        if self.category_of(name) is not None:
            return False
        # Nodes created implicitly by add_edge have no category yet
        self._graph.add_node(name, category=category)
        return True

    def add_edge(self, source: str, target: str, containment: bool = False) -> None:
        """Add a group -> member edge. Edges are never deduplicated."""
        self._graph.add_edge(source, target, containment=containment)

    def category_of(self, name: str) -> Optional[NodeCategory]:
        if not self._graph.has_node(name):
            return None
        return self._graph.nodes[name].get("category")

    def has_node(self, name: str) -> bool:
        return self._graph.has_node(name)

    def nodes(self) -> Iterator[GraphNode]:
        """Yield declared nodes in declaration order.

        Nodes that only appear as edge endpoints are skipped; renderers
        give them the default style.
        """
        for name, attrs in self._graph.nodes(data=True):
            category = attrs.get("category")
            if category is not None:
                yield GraphNode(name=name, category=category)

    def edges(self) -> Iterator[GraphEdge]:
        for source, target, attrs in self._graph.edges(data=True):
            yield GraphEdge(
                source=source,
                target=target,
                containment=attrs.get("containment", False),
            )

    @property
    def node_count(self) -> int:
        """Total number of nodes in the graph."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Total number of edges, parallel edges included."""
        return self._graph.number_of_edges()

    def merge(self, other: "MembershipGraph") -> None:
        """Merge another graph into this one.

        Nodes already declared here keep their category. All edges of
        'other' are appended.
        """
        for node in other.nodes():
            self.declare_node(node.name, node.category)
        for edge in other.edges():
            self.add_edge(edge.source, edge.target, containment=edge.containment)

    def containment_cycles(self) -> list[list[str]]:
        """List group-containment cycles, including self-membership.

        Returns:
            Each cycle as a list of group names, rotated so the smallest
            name comes first; the list itself is sorted
        """
        containment = nx.DiGraph()
        for edge in self.edges():
            if edge.containment:
                containment.add_edge(edge.source, edge.target)

        cycles = []
        for cycle in nx.simple_cycles(containment):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles)

    def to_dict(self) -> dict:
        """Convert graph to dictionary for serialization.

        Returns:
            Dictionary with 'nodes' and 'edges' keys
        """
        return {
            "nodes": [
                {"name": node.name, "category": node.category.value}
                for node in self.nodes()
            ],
            "edges": [
                {"source": edge.source, "target": edge.target, "containment": edge.containment}
                for edge in self.edges()
            ],
        }
