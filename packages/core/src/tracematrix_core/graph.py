"""Dependency graph view of the trace links."""

from __future__ import annotations

from typing import Sequence

from tracematrix_core.impact import DEFAULT_STRENGTH_WEIGHTS
from tracematrix_core.models import (
    DependencyGraph,
    GraphEdge,
    GraphNode,
    GraphStatistics,
    Mapping,
    MappingStrength,
    kind_token,
)


def node_label(node_id: str) -> str:
    """Short display label, e.g. ``REQ-ISSUE-1`` -> ``ISSUE-1``."""
    parts = node_id.split("-")
    if len(parts) >= 3:
        return f"{parts[1].upper()}-{'-'.join(parts[2:])}"
    return node_id


def graph_statistics(total_nodes: int, total_edges: int) -> GraphStatistics:
    """Density and average degree with the degenerate cases guarded.

    Multi-edges can push edges past n(n-1), so density is capped at 1.0.
    """
    possible = total_nodes * (total_nodes - 1)
    return GraphStatistics(
        total_nodes=total_nodes,
        total_edges=total_edges,
        density=min(1.0, total_edges / possible) if total_nodes > 1 else 0.0,
        average_degree=2 * total_edges / total_nodes if total_nodes else 0.0,
    )


def build_dependency_graph(
    mappings: Sequence[Mapping],
    strength_weights: dict[MappingStrength, int] | None = None,
) -> DependencyGraph:
    """Build the node/edge/cluster view of a mapping set.

    Nodes keep first-appearance order. Clusters group node ids by the kind
    token of their requirement id.
    """
    weights = strength_weights or DEFAULT_STRENGTH_WEIGHTS
    node_ids: dict[str, None] = {}
    edges: list[GraphEdge] = []

    for mapping in mappings:
        node_ids.setdefault(mapping.from_id)
        node_ids.setdefault(mapping.to_id)
        edges.append(
            GraphEdge(
                from_id=mapping.from_id,
                to_id=mapping.to_id,
                type=mapping.type,
                weight=weights.get(mapping.strength, DEFAULT_STRENGTH_WEIGHTS[mapping.strength]),
            )
        )

    clusters: dict[str, list[str]] = {}
    nodes: list[GraphNode] = []
    for node_id in node_ids:
        token = kind_token(node_id)
        clusters.setdefault(token, []).append(node_id)
        nodes.append(GraphNode(id=node_id, label=node_label(node_id), kind=token))

    return DependencyGraph(
        nodes=tuple(nodes),
        edges=tuple(edges),
        clusters={token: tuple(ids) for token, ids in clusters.items()},
        statistics=graph_statistics(len(nodes), len(edges)),
    )
