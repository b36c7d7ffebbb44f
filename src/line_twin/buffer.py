"""Bounded FIFO buffer shared between stations."""

import math
from collections import deque
from typing import TYPE_CHECKING, Deque, List, Optional

from line_twin.models import MAX_BUFFER_CAPACITY, BufferParams, Item

if TYPE_CHECKING:
    from line_twin.station import Station

# Display area range (pixels^2) mapped onto 0..MAX_BUFFER_CAPACITY items
MIN_DISPLAY_AREA = 500.0
MAX_DISPLAY_AREA = 2000.0


def _radius_for(count: int) -> float:
    area = MIN_DISPLAY_AREA + (MAX_DISPLAY_AREA - MIN_DISPLAY_AREA) * (
        count / MAX_BUFFER_CAPACITY
    )
    return math.sqrt(area / math.pi)


class Buffer:
    """FIFO buffer (first in, first out) for items under production.

    A buffer can be shared between multiple stations: several stations may
    place their output into it (merge) or draw their input from it (fan-out).
    Stations register themselves in ``in_stations`` (feeding the buffer) and
    ``out_stations`` (drawing from the buffer) when they are constructed.

    A full buffer is a normal outcome, signalled by ``add_item`` returning
    False, and an empty one by ``remove_item`` returning None.
    """

    def __init__(self, name: str, capacity: int, x: float = 0.0, y: float = 0.0):
        self.name = name
        self.capacity = min(max(int(capacity), 0), MAX_BUFFER_CAPACITY)
        self.x = x
        self.y = y
        self.items: Deque[Item] = deque()
        self.in_stations: List["Station"] = []
        self.out_stations: List["Station"] = []

    @classmethod
    def from_params(cls, params: BufferParams) -> "Buffer":
        """Create a buffer from validated parameters."""
        return cls(params.name, params.capacity, x=params.x, y=params.y)

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return f"Buffer({self.name!r}, {len(self.items)}/{self.capacity})"

    def add_item(self, item: Item) -> bool:
        """Append an item; returns False if the buffer is full."""
        if len(self.items) < self.capacity:
            self.items.append(item)
            return True
        return False

    def remove_item(self) -> Optional[Item]:
        """Pop the oldest item, or None if the buffer is empty."""
        if not self.items:
            return None
        return self.items.popleft()

    def is_full(self) -> bool:
        return len(self.items) >= self.capacity

    def is_empty(self) -> bool:
        return not self.items

    def reset(self) -> None:
        """Remove all buffered items."""
        self.items.clear()

    def register_input(self, station: "Station") -> None:
        """Register a station that places its output into this buffer."""
        if station not in self.in_stations:
            self.in_stations.append(station)

    def register_output(self, station: "Station") -> None:
        """Register a station that draws its input from this buffer."""
        if station not in self.out_stations:
            self.out_stations.append(station)

    # --- Presentation geometry ---

    def display_radius(self) -> float:
        """Radius of the circle showing the current number of items."""
        return _radius_for(len(self.items))

    def capacity_radius(self) -> float:
        """Radius of the outer circle showing the buffer capacity."""
        return _radius_for(self.capacity)

    def contains_point(self, px: float, py: float) -> bool:
        """Hit-test a screen point against the occupancy circle."""
        return math.hypot(self.x - px, self.y - py) < self.display_radius()
