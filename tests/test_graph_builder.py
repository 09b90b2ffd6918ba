"""Re-export graph construction and cycle reporting."""
from pathlib import Path

from ts_deadcode.analyzer.graph_builder import ReexportGraphBuilder, find_reexport_cycles
from ts_deadcode.analyzer.usage_index import ExportRegistry, ModuleExports

A, B, C, D = (Path(f'/project/{name}.ts') for name in 'abcd')


def build(edges):
    registry = ExportRegistry()
    for module, targets in edges.items():
        registry.register(module, ModuleExports(value_exports={'x': 'x'}, export_all=list(targets)))
    builder = ReexportGraphBuilder(registry)
    return builder, builder.build_graph()


def test_edges_keep_declaration_order():
    _, graph = build({A: [B, C], B: [], C: []})

    assert graph[A][B]['order'] == 0
    assert graph[A][C]['order'] == 1
    assert graph.nodes[A]['value_exports'] == 1


def test_barrels_ranked_by_star_exports():
    builder, _ = build({A: [B, C, D], B: [C], C: [], D: []})

    assert builder.barrels() == [(A, 3), (B, 1)]


def test_cycles_are_normalized_and_sorted():
    _, graph = build({A: [B], B: [C], C: [A], D: [D]})

    assert find_reexport_cycles(graph) == [[A, B, C], [D]]


def test_acyclic_graph():
    _, graph = build({A: [B], B: []})

    assert find_reexport_cycles(graph) == []
