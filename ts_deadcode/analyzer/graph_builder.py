"""Re-export graph built with NetworkX.

Edge (A, B) means "A does `export * from B`". Barrel files show up as
nodes with many outgoing edges; cycles are legal in ES modules but make
re-export chains hard to follow.
"""
from pathlib import Path
from typing import List, Tuple
import networkx as nx

from .usage_index import ExportRegistry


class ReexportGraphBuilder:
    """Build a directed graph of `export * from` edges."""

    def __init__(self, registry: ExportRegistry):
        self.registry = registry
        self.graph = nx.DiGraph()

    def build_graph(self) -> nx.DiGraph:
        """Add every analyzed module as a node and every star edge with its declaration order.

        Returns:
            NetworkX DiGraph; edges carry an `order` attribute (0-based)
        """
        for module, exports in self.registry:
            self.graph.add_node(
                module,
                value_exports=len(exports.value_exports),
                type_exports=len(exports.type_exports),
            )
            for order, target in enumerate(exports.export_all):
                self.graph.add_edge(module, target, order=order)
        return self.graph

    def barrels(self, limit: int = 10) -> List[Tuple[Path, int]]:
        """Modules with the most star re-exports, most first."""
        ranked = sorted(
            ((node, self.graph.out_degree(node)) for node in self.graph.nodes),
            key=lambda item: (-item[1], str(item[0])),
        )
        return [(node, degree) for node, degree in ranked[:limit] if degree > 0]


def find_reexport_cycles(graph: nx.DiGraph) -> List[List[Path]]:
    """All elementary cycles, each rotated to start at its smallest path.

    Sorted so repeated runs print the same list.
    """
    cycles = []
    for cycle in nx.simple_cycles(graph):
        start = cycle.index(min(cycle, key=str))
        cycles.append(cycle[start:] + cycle[:start])
    return sorted(cycles, key=lambda c: [str(p) for p in c])
