"""Single-slot processing station with a WAITING/BUSY/REPAIR state machine."""

import logging
import random
from typing import Dict, List, Optional

from line_twin.buffer import Buffer
from line_twin.models import Item, StationParams, StationState
from line_twin.topology import TopologyError

logger = logging.getLogger(__name__)


class Station:
    """A process step taking items from an input buffer into an output buffer.

    Each tick the station advances one step of its state machine:
    1. WAITING: pull an item from the input buffer (starvation otherwise)
    2. BUSY: hold the item for ``tp_time`` ticks, then place it downstream.
       If the output buffer is full the station stays BUSY (backpressure).
    3. REPAIR: after a completed cycle the station fails with probability
       ``p_fail`` and blocks for ``t_repair`` ticks.

    ``update`` is idempotent within a tick: the ``updated`` flag is set by the
    first call and cleared by the line before the next tick.
    """

    def __init__(
        self,
        params: StationParams,
        in_buf: Optional[Buffer],
        out_buf: Optional[Buffer],
        rng: Optional[random.Random] = None,
    ):
        """Initialize station.

        Args:
            params: Station timing and reliability parameters
            in_buf: Buffer the station draws its input from
            out_buf: Buffer the station places its output into
            rng: Random source for failure draws (seed it for reproducible runs)
        """
        if in_buf is None or out_buf is None:
            raise TopologyError(
                f"Station {params.name} must have both an input and an output buffer"
            )

        self.cfg = params
        self.name = params.name
        self.in_buf = in_buf
        self.out_buf = out_buf
        self.rng = rng or random.Random()

        self.prev_stations: List["Station"] = []
        self.next_stations: List["Station"] = []

        in_buf.register_output(self)
        out_buf.register_input(self)

        self.event_log: List[dict] = []
        self._init_state()

    def _init_state(self) -> None:
        self.state = StationState.WAITING
        self.t_start: Optional[int] = None
        self.t_prod = 0
        self.t_wait = 0
        self.n_fail = 0
        self.item: Optional[Item] = None
        self.updated = False
        self.time_in_state: Dict[str, int] = {s.value: 0 for s in StationState}
        self._state_entered = 0

    def __repr__(self) -> str:
        return f"Station({self.name!r}, {self.state.value})"

    @property
    def tp_time(self) -> int:
        return self.cfg.tp_time

    @property
    def p_fail(self) -> float:
        return self.cfg.p_fail

    @property
    def t_repair(self) -> int:
        return self.cfg.t_repair

    def link_to(self, station_after: "Station") -> None:
        """Create a bi-directional link between this and the next station."""
        if station_after is self:
            raise TopologyError(f"Self-link not allowed: {self.name}")
        if station_after in self.next_stations:
            return
        self.next_stations.append(station_after)
        station_after.prev_stations.append(self)

    def clear_update(self) -> None:
        self.updated = False

    def log(self, new_state: StationState, t: int) -> None:
        """Records state transitions and time spent per state."""
        if self.state == new_state:
            return

        self.time_in_state[self.state.value] += t - self._state_entered
        self.event_log.append(
            {
                "tick": t,
                "station": self.name,
                "state": self.state.value,
                "event_type": "end",
            }
        )
        self.state = new_state
        self._state_entered = t
        self.event_log.append(
            {
                "tick": t,
                "station": self.name,
                "state": self.state.value,
                "event_type": "start",
            }
        )

    def update(self, t: int) -> None:
        """Advance the state machine for time step ``t``."""
        if self.updated:
            return

        if self.state == StationState.WAITING:
            if not self._pull(t):
                self.t_wait += 1

        elif self.state == StationState.BUSY:
            if t - self.t_start >= self.tp_time:
                if self.out_buf.add_item(self.item):
                    self.item = None
                    self.t_prod += self.tp_time

                    # Simulated failure (Bernoulli draw per completed cycle)
                    if self.rng.random() < self.p_fail:
                        self.n_fail += 1
                        self.t_start = t
                        self.log(StationState.REPAIR, t)
                        logger.debug("Failure in %s at t=%d", self.name, t)
                    elif not self._pull(t):
                        self.log(StationState.WAITING, t)
                else:
                    # Blocked by a full output buffer
                    self.t_wait += 1

        elif self.state == StationState.REPAIR:
            if t - self.t_start >= self.t_repair:
                self.t_wait += self.t_repair
                logger.debug("Repair of %s completed at t=%d", self.name, t)
                if not self._pull(t):
                    self.log(StationState.WAITING, t)
            else:
                self.t_wait += 1

        self.updated = True

    def _pull(self, t: int) -> bool:
        """Take the next item from the input buffer and start processing it."""
        item = self.in_buf.remove_item()
        if item is None:
            return False
        self.item = item
        self.t_start = t
        self.log(StationState.BUSY, t)
        return True

    def reset(self) -> None:
        """Return to the initial state and drain both buffers."""
        self.in_buf.reset()
        self.out_buf.reset()
        self.event_log.clear()
        self._init_state()

    @property
    def utilization(self) -> float:
        """Share of accounted time spent producing."""
        total = self.t_prod + self.t_wait
        return self.t_prod / total if total else 0.0
