"""Simulation module for building lines from topology graphs."""

from line_twin.simulation.layout import LayoutBuilder, LayoutResult

__all__ = [
    "LayoutBuilder",
    "LayoutResult",
]
