"""Topology module for graph-based production line structure."""

from line_twin.topology.graph import (
    BufferNode,
    CycleDetectedError,
    LinkEdge,
    StationNode,
    TopologyError,
    TopologyGraph,
)

__all__ = [
    "BufferNode",
    "StationNode",
    "LinkEdge",
    "TopologyGraph",
    "TopologyError",
    "CycleDetectedError",
]
