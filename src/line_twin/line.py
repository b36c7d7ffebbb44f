"""Production line: time-step update by backward propagation."""

import logging
from collections import deque
from typing import Deque, Dict, Iterable, Iterator, List, Set

from line_twin.buffer import Buffer
from line_twin.models import StationState
from line_twin.station import Station
from line_twin.topology import CycleDetectedError, TopologyError

logger = logging.getLogger(__name__)

# 24 ticks per second, reported in units per minute
DEFAULT_TIME_UNIT_FACTOR = 24.0 * 60.0
DEFAULT_HISTORY_SIZE = 500


class Line:
    """A production line of linked stations between an input and output buffer.

    New items enter the line through the input buffer. ``leaf_stations`` holds
    the first level of stations (used for the forward render walk). The
    per-tick update walks the station graph backward, starting with the
    stations that feed the output buffer, so a station transitions before
    its predecessors within the same tick. An item released by a predecessor
    therefore moves at most one hop per tick.
    """

    def __init__(
        self,
        name: str,
        in_buf: Buffer,
        out_buf: Buffer,
        time_unit_factor: float = DEFAULT_TIME_UNIT_FACTOR,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        self.name = name
        self.in_buf = in_buf
        self.out_buf = out_buf
        self.time_unit_factor = time_unit_factor

        self.leaf_stations: List[Station] = []
        self.history: Deque[float] = deque(maxlen=history_size)
        self.running = False
        self._init_counters()

    def _init_counters(self) -> None:
        self.time_step = 0
        self.produced_count = 0
        self.productivity = 0.0
        self.jammed = False
        self.faulty = False
        self.history.clear()

    def __repr__(self) -> str:
        return f"Line({self.name!r}, t={self.time_step})"

    def add_leaf(self, station: Station) -> None:
        """Register a first-level station."""
        if station not in self.leaf_stations:
            self.leaf_stations.append(station)

    def get_time(self) -> int:
        return self.time_step

    # --- Control hooks ---

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def reset(self) -> None:
        """Stop the line, zero its counters and drain its own buffers.

        Intermediate buffers are drained by each station's own ``reset``.
        """
        self.stop()
        self._init_counters()
        self.in_buf.reset()
        self.out_buf.reset()

    # --- Traversal ---

    @staticmethod
    def _walk(roots: Iterable[Station], attr: str) -> Iterator[Station]:
        """Pre-order depth-first walk visiting each station once."""
        visited: Set[Station] = set()
        stack = list(roots)[::-1]
        while stack:
            station = stack.pop()
            if station in visited:
                continue
            visited.add(station)
            yield station
            stack.extend(reversed(getattr(station, attr)))

    def upstream_stations(self) -> List[Station]:
        """Stations in backward update order, starting at the output side."""
        return list(self._walk(self.out_buf.in_stations, "prev_stations"))

    def render_order(self) -> List[Station]:
        """Stations in forward order, starting at the leaf stations."""
        return list(self._walk(self.leaf_stations, "next_stations"))

    def stations(self) -> List[Station]:
        """All stations known to the line, forward order first."""
        ordered = self.render_order()
        seen = set(ordered)
        ordered.extend(s for s in self.upstream_stations() if s not in seen)
        return ordered

    # --- Simulation ---

    def update(self) -> None:
        """Advance the line by one time step."""
        self.time_step += 1
        t = self.time_step

        # Reset pass: clear the per-tick flags
        for station in self._walk(self.out_buf.in_stations, "prev_stations"):
            station.clear_update()

        n0 = len(self.out_buf)

        # Update pass: backward propagation from the last station(s)
        self.faulty = False
        self.jammed = True
        for station in self._walk(self.out_buf.in_stations, "prev_stations"):
            station.update(t)
            if station.state == StationState.REPAIR:
                self.faulty = True
            self.jammed = (
                self.jammed and station.in_buf.is_full() and station.out_buf.is_full()
            )

        self.produced_count += len(self.out_buf) - n0
        self.productivity = self.produced_count / t * self.time_unit_factor
        self.history.append(self.productivity)

    def validate(self) -> None:
        """Check the linked station graph before running.

        Raises:
            TopologyError: If no station feeds the output buffer
            CycleDetectedError: If the station links form a cycle
        """
        if not self.out_buf.in_stations:
            raise TopologyError(
                f"Line {self.name}: no station feeds output buffer {self.out_buf.name}"
            )

        stations = self.stations()
        members = set(stations)
        in_degree: Dict[Station, int] = {
            s: sum(1 for p in s.prev_stations if p in members) for s in stations
        }
        queue = deque(s for s in stations if in_degree[s] == 0)
        visited = 0
        while queue:
            station = queue.popleft()
            visited += 1
            for nxt in station.next_stations:
                if nxt in in_degree:
                    in_degree[nxt] -= 1
                    if in_degree[nxt] == 0:
                        queue.append(nxt)

        if visited != len(stations):
            raise CycleDetectedError(
                f"Line {self.name}: station links contain a cycle. "
                f"Visited {visited} of {len(stations)} stations."
            )
        logger.debug("Line %s validated with %d stations", self.name, len(stations))
