"""Graph-based topology for production line structure.

Supports:
- Serial stations linked through shared buffers
- Parallel stations (one buffer feeding several stations)
- Merging (several stations feeding one buffer)
- Cycle detection and setup-time validation
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Set

from line_twin.models import MAX_BUFFER_CAPACITY


class TopologyError(ValueError):
    """Raised when a line topology is misconfigured."""

    pass


class CycleDetectedError(TopologyError):
    """Raised when a cycle is detected in the station graph."""

    pass


@dataclass
class BufferNode:
    """A FIFO buffer in the topology graph.

    Attributes:
        name: Unique identifier for this buffer
        capacity: Maximum number of buffered items (0..100)
        x, y: On-screen center position
    """

    name: str
    capacity: int = 50
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self) -> None:
        """Validate buffer configuration."""
        if not self.name:
            raise ValueError("Buffer name cannot be empty")
        if not 0 <= self.capacity <= MAX_BUFFER_CAPACITY:
            raise ValueError(
                f"Buffer {self.name} capacity must be in 0..{MAX_BUFFER_CAPACITY}, "
                f"got {self.capacity}"
            )


@dataclass
class StationNode:
    """A station in the topology graph.

    Attributes:
        name: Unique identifier for this station
        in_buffer: Name of the buffer the station draws from
        out_buffer: Name of the buffer the station feeds
        tp_time: Throughput time in ticks
        p_fail: Failure probability per completed cycle
        t_repair: Repair time in ticks
        x, y: On-screen center position
    """

    name: str
    in_buffer: str
    out_buffer: str
    tp_time: int = 2
    p_fail: float = 0.0
    t_repair: int = 50
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self) -> None:
        """Validate station configuration."""
        if not self.name:
            raise ValueError("Station name cannot be empty")
        if self.tp_time < 0:
            raise ValueError(f"tp_time must be >= 0, got {self.tp_time}")
        if not 0.0 <= self.p_fail <= 1.0:
            raise ValueError(f"p_fail must be in [0, 1], got {self.p_fail}")
        if self.t_repair < 0:
            raise ValueError(f"t_repair must be >= 0, got {self.t_repair}")


@dataclass
class LinkEdge:
    """A directed link from one station to the station that follows it."""

    source: str
    target: str

    def __post_init__(self) -> None:
        """Validate link configuration."""
        if not self.source:
            raise ValueError("Link source cannot be empty")
        if not self.target:
            raise ValueError("Link target cannot be empty")
        if self.source == self.target:
            raise ValueError(f"Self-link not allowed: {self.source}")


class TopologyGraph:
    """Station graph for a production line.

    Provides:
    - Buffer, station and link management
    - Upstream/downstream traversal
    - Topological ordering
    - Cycle detection
    - Validation
    """

    def __init__(
        self, input_buffer: Optional[str] = None, output_buffer: Optional[str] = None
    ) -> None:
        """Initialize empty topology graph."""
        self.input_buffer = input_buffer
        self.output_buffer = output_buffer

        self._buffers: Dict[str, BufferNode] = {}
        self._stations: Dict[str, StationNode] = {}
        self._links: List[LinkEdge] = []

        # Adjacency lists for traversal
        self._next: Dict[str, List[str]] = {}
        self._prev: Dict[str, List[str]] = {}

    def add_buffer(self, buffer: BufferNode) -> None:
        """Add a buffer to the graph.

        Raises:
            ValueError: If a buffer with the same name already exists
        """
        if buffer.name in self._buffers:
            raise ValueError(f"Buffer already exists: {buffer.name}")
        self._buffers[buffer.name] = buffer

    def add_station(self, station: StationNode) -> None:
        """Add a station to the graph.

        Raises:
            ValueError: If the station exists or references an unknown buffer
        """
        if station.name in self._stations:
            raise ValueError(f"Station already exists: {station.name}")
        for buffer_name in (station.in_buffer, station.out_buffer):
            if buffer_name not in self._buffers:
                raise ValueError(
                    f"Buffer not found: {buffer_name} (station {station.name})"
                )

        self._stations[station.name] = station
        self._next[station.name] = []
        self._prev[station.name] = []

    def add_link(self, link: LinkEdge) -> None:
        """Add a link between two stations.

        Raises:
            ValueError: If source or target station doesn't exist
        """
        for name in (link.source, link.target):
            if name not in self._stations:
                raise ValueError(f"Station not found: {name}")
        if link.target in self._next[link.source]:
            return

        self._links.append(link)
        self._next[link.source].append(link.target)
        self._prev[link.target].append(link.source)

    def infer_links(self) -> None:
        """Link every station to the stations drawing from its output buffer."""
        for source in self._stations.values():
            for target in self._stations.values():
                if target is not source and target.in_buffer == source.out_buffer:
                    self.add_link(LinkEdge(source=source.name, target=target.name))

    def get_buffers(self) -> List[BufferNode]:
        return list(self._buffers.values())

    def get_stations(self) -> List[StationNode]:
        return list(self._stations.values())

    def get_links(self) -> List[LinkEdge]:
        return list(self._links)

    def get_downstream_nodes(self, station: str) -> List[str]:
        """Get names of the stations following a station."""
        return list(self._next.get(station, []))

    def get_upstream_nodes(self, station: str) -> List[str]:
        """Get names of the stations preceding a station."""
        return list(self._prev.get(station, []))

    def feeders_of(self, buffer: str) -> List[str]:
        """Names of stations placing their output into a buffer."""
        return [s.name for s in self._stations.values() if s.out_buffer == buffer]

    def consumers_of(self, buffer: str) -> List[str]:
        """Names of stations drawing their input from a buffer."""
        return [s.name for s in self._stations.values() if s.in_buffer == buffer]

    def leaf_stations(self) -> List[str]:
        """First-level stations: those drawing from the line input buffer."""
        return self.consumers_of(self.input_buffer) if self.input_buffer else []

    def topological_order(self) -> Iterator[StationNode]:
        """Iterate over stations in topological order (Kahn's algorithm).

        Yields:
            Stations in dependency order (input side first)

        Raises:
            CycleDetectedError: If the graph contains a cycle
        """
        in_degree: Dict[str, int] = {name: 0 for name in self._stations}
        for link in self._links:
            in_degree[link.target] += 1

        queue = deque([name for name, degree in in_degree.items() if degree == 0])

        visited = 0
        while queue:
            name = queue.popleft()
            visited += 1
            yield self._stations[name]

            for target in self._next[name]:
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    queue.append(target)

        if visited != len(self._stations):
            raise CycleDetectedError(
                "Station graph contains a cycle. "
                f"Visited {visited} of {len(self._stations)} stations."
            )

    def _upstream_closure(self, roots: List[str]) -> Set[str]:
        """Stations reachable from ``roots`` through upstream links."""
        seen: Set[str] = set()
        stack = list(roots)
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen.add(name)
            stack.extend(self._prev[name])
        return seen

    def validate(self) -> List[str]:
        """Validate the topology graph.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: List[str] = []

        # 1. Line input/output buffers
        for role, name in (
            ("input", self.input_buffer),
            ("output", self.output_buffer),
        ):
            if not name:
                errors.append(f"Line has no {role} buffer")
            elif name not in self._buffers:
                errors.append(f"Line {role} buffer not found: {name}")

        if self.input_buffer and self.input_buffer == self.output_buffer:
            errors.append("Line input and output buffers must differ")

        if not self._stations:
            errors.append("Line has no stations")
            return errors

        # 2. Source and sink connectivity
        feeders = self.feeders_of(self.output_buffer) if self.output_buffer else []
        if self.output_buffer in self._buffers and not feeders:
            errors.append(
                f"No station feeds output buffer {self.output_buffer} - line has no output"
            )
        if self.input_buffer in self._buffers and not self.leaf_stations():
            errors.append(
                f"No station draws from input buffer {self.input_buffer} - line has no input"
            )

        # 3. Stations never reached by the backward update walk
        reachable = self._upstream_closure(feeders)
        for name in self._stations:
            if name not in reachable:
                errors.append(
                    f"Station {name} is not upstream of the output buffer "
                    "and would never be updated"
                )

        # 4. Links must follow a shared buffer
        for link in self._links:
            source = self._stations[link.source]
            target = self._stations[link.target]
            if source.out_buffer != target.in_buffer:
                errors.append(
                    f"Link {link.source} -> {link.target} does not pass through "
                    f"a shared buffer ({source.out_buffer} != {target.in_buffer})"
                )

        # 5. Zero-capacity buffers between stations block the line permanently
        for buffer in self._buffers.values():
            if buffer.name in (self.input_buffer, self.output_buffer):
                continue
            if buffer.capacity == 0 and self.feeders_of(buffer.name):
                errors.append(
                    f"Intermediate buffer {buffer.name} has zero capacity"
                )

        # 6. Cycles
        try:
            list(self.topological_order())
        except CycleDetectedError as e:
            errors.append(str(e))

        return errors

    def is_valid(self) -> bool:
        """Check if the topology is valid."""
        return len(self.validate()) == 0

    def check(self) -> None:
        """Raise if the topology is invalid.

        Raises:
            CycleDetectedError: If the station graph contains a cycle
            TopologyError: Listing every other validation error
        """
        list(self.topological_order())
        errors = self.validate()
        if errors:
            raise TopologyError("Invalid line topology:\n  " + "\n  ".join(errors))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TopologyGraph":
        """Create a graph from a line dictionary.

        Links are inferred from shared buffers when none are given.
        """
        graph = cls(
            input_buffer=data.get("input_buffer"),
            output_buffer=data.get("output_buffer"),
        )
        for b in data.get("buffers", []):
            graph.add_buffer(BufferNode(**b))
        for s in data.get("stations", []):
            graph.add_station(StationNode(**s))

        links = data.get("links") or []
        for link in links:
            graph.add_link(LinkEdge(source=link["source"], target=link["target"]))
        if not links:
            graph.infer_links()

        return graph

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"TopologyGraph(buffers={len(self._buffers)}, "
            f"stations={len(self._stations)}, links={len(self._links)})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert graph to dictionary for serialization."""
        return {
            "input_buffer": self.input_buffer,
            "output_buffer": self.output_buffer,
            "buffers": [
                {"name": b.name, "capacity": b.capacity, "x": b.x, "y": b.y}
                for b in self._buffers.values()
            ],
            "stations": [
                {
                    "name": s.name,
                    "in_buffer": s.in_buffer,
                    "out_buffer": s.out_buffer,
                    "tp_time": s.tp_time,
                    "p_fail": s.p_fail,
                    "t_repair": s.t_repair,
                    "x": s.x,
                    "y": s.y,
                }
                for s in self._stations.values()
            ],
            "links": [{"source": e.source, "target": e.target} for e in self._links],
        }
