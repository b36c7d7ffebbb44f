"""Host application actions: feeding, draining, clicks and alerts."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from line_twin.line import Line
from line_twin.loader import HostConfig
from line_twin.models import Item

logger = logging.getLogger(__name__)


@dataclass
class Alerts:
    """Alert signals derived from the line state.

    Attributes:
        repair_icon: At least one station is under repair
        alarm: The line is completely jammed
    """

    repair_icon: bool = False
    alarm: bool = False


class HostController:
    """Maps user-level actions onto a line.

    The host inserts items into the line input buffer and removes them from
    the output buffer, either on a click over a buffer or automatically
    after each tick when the auto-feed/auto-drain toggles are on.
    """

    def __init__(self, line: Line, config: Optional[HostConfig] = None):
        self.line = line
        self.cfg = config or HostConfig()
        self.auto_feed = self.cfg.auto_feed
        self.auto_drain = self.cfg.auto_drain
        self.items_fed = 0
        self.items_drained = 0
        self._alarm_on = False

    def feed(self, n: int) -> int:
        """Insert up to ``n`` new items into the input buffer."""
        added = 0
        for _ in range(n):
            if not self.line.in_buf.add_item(Item()):
                break
            added += 1
        self.items_fed += added
        return added

    def drain(self, n: Optional[int] = None) -> int:
        """Remove up to ``n`` items from the output buffer (all if None)."""
        out_buf = self.line.out_buf
        if n is None:
            removed = len(out_buf)
            out_buf.reset()
        else:
            removed = 0
            while removed < n and out_buf.remove_item() is not None:
                removed += 1
        self.items_drained += removed
        return removed

    def click(self, x: float, y: float) -> Optional[str]:
        """Handle a pointer click at screen coordinates.

        Returns:
            "feed", "drain", or None if no buffer was hit
        """
        if self.line.in_buf.contains_point(x, y):
            self.feed(self.cfg.input_batch_size)
            return "feed"
        if self.line.out_buf.contains_point(x, y):
            self.drain(self.cfg.output_batch_size)
            return "drain"
        return None

    def after_tick(self) -> None:
        """Apply the auto-feed/auto-drain toggles and refresh alerts."""
        if self.auto_feed:
            self.feed(1)
        if self.auto_drain and self.line.out_buf.is_full():
            self.drain()
        self.alerts()

    def alerts(self) -> Alerts:
        """Current alert signals; logs jam transitions once."""
        jammed = self.line.jammed
        if jammed and not self._alarm_on:
            logger.warning(
                "Line %s is jammed at t=%d", self.line.name, self.line.time_step
            )
        elif not jammed and self._alarm_on:
            logger.info("Line %s cleared at t=%d", self.line.name, self.line.time_step)
        self._alarm_on = jammed
        return Alerts(repair_icon=self.line.faulty, alarm=jammed)

    def status_messages(self) -> List[str]:
        """Prompts telling the user which buffer to click."""
        in_buf, out_buf = self.line.in_buf, self.line.out_buf
        if self.line.jammed:
            return [
                f"Production line is completely jammed. "
                f"Click on buffer {out_buf.name} to remove items"
            ]
        messages = []
        if in_buf.is_empty():
            messages.append(
                f"Input buffer {in_buf.name} is empty. "
                f"Click on it to add {self.cfg.input_batch_size} more items."
            )
        if out_buf.is_full():
            messages.append(
                f"Output buffer {out_buf.name} is full. "
                f"Click on it to remove {self.cfg.output_batch_size} items."
            )
        return messages
