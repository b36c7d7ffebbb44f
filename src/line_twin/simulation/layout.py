"""Layout builder for constructing a Line from a topology graph.

The builder owns the buffer registry: every buffer is created exactly once
and stations hold references into it, so buffers shared by several stations
(merge and fan-out points) are the same object for all of them.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from line_twin.buffer import Buffer
from line_twin.line import DEFAULT_HISTORY_SIZE, DEFAULT_TIME_UNIT_FACTOR, Line
from line_twin.models import BufferParams, StationParams
from line_twin.station import Station
from line_twin.topology import TopologyError, TopologyGraph

logger = logging.getLogger(__name__)


@dataclass
class LayoutResult:
    """Result of building a layout from topology graph.

    Attributes:
        line: The assembled production line
        stations: Dict mapping station name to Station instance
        buffers: Dict mapping buffer name to Buffer instance
    """

    line: Line
    stations: Dict[str, Station]
    buffers: Dict[str, Buffer]

    def reset(self) -> None:
        """Reset the line and every station (drains all buffers)."""
        self.line.reset()
        for station in self.stations.values():
            station.reset()


class LayoutBuilder:
    """Builds a Line with its stations and buffers from a TopologyGraph."""

    def __init__(
        self,
        graph: TopologyGraph,
        name: str = "Line",
        station_params: Optional[Dict[str, StationParams]] = None,
        buffer_params: Optional[Dict[str, BufferParams]] = None,
        rng: Optional[random.Random] = None,
        leaf_stations: Optional[List[str]] = None,
        time_unit_factor: float = DEFAULT_TIME_UNIT_FACTOR,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        """Initialize layout builder.

        Args:
            graph: Topology graph to build from
            name: Line name
            station_params: Dict mapping station name to parameters
                (derived from the graph nodes when missing)
            buffer_params: Dict mapping buffer name to parameters
                (derived from the graph nodes when missing)
            rng: Random source shared by all stations
            leaf_stations: Names of first-level stations (default: stations
                drawing from the line input buffer)
            time_unit_factor: Productivity scaling factor
            history_size: Productivity history length
        """
        self.graph = graph
        self.name = name
        self.station_params = station_params or {}
        self.buffer_params = buffer_params or {}
        self.rng = rng or random.Random()
        self.leaf_names = leaf_stations
        self.time_unit_factor = time_unit_factor
        self.history_size = history_size

    def build(self) -> LayoutResult:
        """Build the complete line.

        Raises:
            TopologyError: If the graph is invalid
            CycleDetectedError: If the station links form a cycle
        """
        self.graph.check()

        # 1. Buffer registry
        buffers: Dict[str, Buffer] = {}
        for node in self.graph.get_buffers():
            params = self.buffer_params.get(node.name) or BufferParams(
                name=node.name, capacity=node.capacity, x=node.x, y=node.y
            )
            buffers[node.name] = Buffer.from_params(params)

        # 2. Stations, input side first
        stations: Dict[str, Station] = {}
        for node in self.graph.topological_order():
            params = self.station_params.get(node.name) or StationParams(
                name=node.name,
                tp_time=node.tp_time,
                p_fail=node.p_fail,
                t_repair=node.t_repair,
                x=node.x,
                y=node.y,
            )
            stations[node.name] = Station(
                params,
                buffers[node.in_buffer],
                buffers[node.out_buffer],
                rng=self.rng,
            )

        # 3. Links
        for link in self.graph.get_links():
            stations[link.source].link_to(stations[link.target])

        # 4. Line
        line = Line(
            self.name,
            buffers[self.graph.input_buffer],
            buffers[self.graph.output_buffer],
            time_unit_factor=self.time_unit_factor,
            history_size=self.history_size,
        )
        leaf_names = self.leaf_names or self.graph.leaf_stations()
        for leaf in leaf_names:
            if leaf not in stations:
                raise TopologyError(f"Leaf station not found: {leaf}")
            line.add_leaf(stations[leaf])
        line.validate()

        logger.debug(
            "Built line %s: %d stations, %d buffers",
            self.name,
            len(stations),
            len(buffers),
        )
        return LayoutResult(line=line, stations=stations, buffers=buffers)
