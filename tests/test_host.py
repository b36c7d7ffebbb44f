"""Tests for host actions: feeding, draining, clicks and alerts."""

import logging
import random

import pytest

from line_twin import Buffer, HostController, Item, Line, Station
from line_twin.loader import HostConfig
from line_twin.models import StationParams


@pytest.fixture
def line() -> Line:
    """IN(100) -> S -> OUT(2), with the buffers 200 pixels apart."""
    b_in = Buffer("IN", 100, x=0, y=0)
    b_out = Buffer("OUT", 2, x=200, y=0)
    station = Station(
        StationParams(name="S", tp_time=1, x=100), b_in, b_out, rng=random.Random(0)
    )
    line = Line("Host test", b_in, b_out)
    line.add_leaf(station)
    return line


def fill(buf: Buffer) -> None:
    while buf.add_item(Item()):
        pass


class TestFeedDrain:
    def test_feed_stops_at_capacity(self, line: Line):
        """feed() inserts only what fits."""
        host = HostController(line)

        assert host.feed(30) == 30
        assert host.feed(100) == 70
        assert line.in_buf.is_full()
        assert host.items_fed == 100

    def test_drain_all(self, line: Line):
        """drain() without a count empties the output."""
        fill(line.out_buf)
        host = HostController(line)

        assert host.drain() == 2
        assert line.out_buf.is_empty()
        assert host.items_drained == 2

    def test_drain_batch(self, line: Line):
        """drain(n) removes at most n items."""
        fill(line.out_buf)
        host = HostController(line)

        assert host.drain(1) == 1
        assert len(line.out_buf) == 1
        assert host.drain(5) == 1


class TestClick:
    def test_click_input_feeds_batch(self, line: Line):
        """Clicking the input buffer feeds one input batch."""
        host = HostController(line, HostConfig(input_batch_size=40))

        assert host.click(3, 2) == "feed"
        assert len(line.in_buf) == 40

    def test_click_output_drains_batch(self, line: Line):
        """Clicking the output buffer drains one output batch."""
        fill(line.out_buf)
        host = HostController(line, HostConfig(output_batch_size=1))

        assert host.click(200, 5) == "drain"
        assert len(line.out_buf) == 1

    def test_click_elsewhere(self, line: Line):
        """Clicks off both buffers do nothing."""
        host = HostController(line)
        assert host.click(100, 100) is None
        assert line.in_buf.is_empty()


class TestAutoToggles:
    def test_auto_feed_adds_one_item_per_tick(self, line: Line):
        """Auto-feed adds one item after every tick."""
        host = HostController(line, HostConfig(auto_feed=True))

        for _ in range(5):
            line.update()
            host.after_tick()

        assert host.items_fed == 5

    def test_auto_drain_empties_full_output(self, line: Line):
        """Auto-drain empties the output whenever it fills."""
        host = HostController(line, HostConfig(auto_drain=True))
        host.feed(10)

        for _ in range(10):
            line.update()
            host.after_tick()
            assert not line.out_buf.is_full()

        assert host.items_drained > 0

    def test_toggles_off_by_default(self, line: Line):
        """No items move without the toggles."""
        host = HostController(line)
        line.update()
        host.after_tick()
        assert host.items_fed == 0


class TestAlerts:
    def test_jam_warning_logged_once(self, line: Line, caplog):
        """A jam is logged once, not on every tick."""
        host = HostController(line)
        fill(line.out_buf)

        with caplog.at_level(logging.WARNING, logger="line_twin.host"):
            for _ in range(4):
                fill(line.in_buf)
                line.update()
                host.after_tick()

        warnings = [r for r in caplog.records if "jammed" in r.getMessage()]
        assert len(warnings) == 1
        assert host.alerts().alarm is True

    def test_jam_cleared(self, line: Line, caplog):
        """Draining a jammed line logs the recovery."""
        host = HostController(line)
        fill(line.out_buf)
        for _ in range(3):
            fill(line.in_buf)
            line.update()
            host.after_tick()

        host.drain()
        with caplog.at_level(logging.INFO, logger="line_twin.host"):
            line.update()
            host.after_tick()

        assert host.alerts().alarm is False
        assert any("cleared" in r.getMessage() for r in caplog.records)

    def test_repair_icon(self, line: Line):
        """The repair icon follows the faulty flag."""
        station = line.leaf_stations[0]
        station.cfg = station.cfg.model_copy(update={"p_fail": 1.0})
        host = HostController(line)
        host.feed(1)

        line.update()
        line.update()

        assert host.alerts().repair_icon is True


class TestMessages:
    def test_empty_input_prompt(self, line: Line):
        """An empty input asks for more items."""
        host = HostController(line)
        messages = host.status_messages()

        assert messages == [
            "Input buffer IN is empty. Click on it to add 50 more items."
        ]

    def test_full_output_prompt(self, line: Line):
        """A full output asks for items to be removed."""
        host = HostController(line)
        host.feed(1)
        fill(line.out_buf)

        assert host.status_messages() == [
            "Output buffer OUT is full. Click on it to remove 25 items."
        ]

    def test_jam_prompt_replaces_others(self, line: Line):
        """A jammed line shows only the jam prompt."""
        host = HostController(line)
        fill(line.out_buf)
        for _ in range(2):
            fill(line.in_buf)
            line.update()

        assert line.jammed
        assert host.status_messages() == [
            "Production line is completely jammed. Click on buffer OUT to remove items"
        ]
