"""Shared test fixtures for line-twin tests."""

import random
from pathlib import Path
from typing import Callable

import pytest

from line_twin import Buffer, ConfigLoader, Item, Line, SimulationEngine, Station
from line_twin.models import StationParams


@pytest.fixture
def config_dir() -> Path:
    """Path to production config directory."""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def loader(config_dir: Path) -> ConfigLoader:
    """ConfigLoader instance."""
    return ConfigLoader(config_dir)


@pytest.fixture
def engine(config_dir: Path) -> SimulationEngine:
    """SimulationEngine instance (with DB saving disabled for tests)."""
    return SimulationEngine(str(config_dir), save_to_db=False)


@pytest.fixture
def make_station() -> Callable[..., Station]:
    """Factory for a station between two fresh buffers."""

    def _make(
        name: str = "S",
        tp_time: int = 2,
        p_fail: float = 0.0,
        t_repair: int = 5,
        in_capacity: int = 10,
        out_capacity: int = 10,
        items: int = 0,
        seed: int = 0,
    ) -> Station:
        in_buf = Buffer(f"{name}_in", in_capacity)
        out_buf = Buffer(f"{name}_out", out_capacity)
        for _ in range(items):
            in_buf.add_item(Item())
        params = StationParams(
            name=name, tp_time=tp_time, p_fail=p_fail, t_repair=t_repair
        )
        return Station(params, in_buf, out_buf, rng=random.Random(seed))

    return _make


@pytest.fixture
def diamond() -> Line:
    """Line with a parallel stage: S1 -> S2 -> (S3 | S4) -> S5."""
    rng = random.Random(1)
    b1, b2, b3, b4, b5 = (Buffer(f"B{i}", 10) for i in range(1, 6))

    def station(name: str, in_buf: Buffer, out_buf: Buffer) -> Station:
        return Station(StationParams(name=name, tp_time=1), in_buf, out_buf, rng=rng)

    s1 = station("S1", b1, b2)
    s2 = station("S2", b2, b3)
    s3 = station("S3", b3, b4)
    s4 = station("S4", b3, b4)
    s5 = station("S5", b4, b5)
    s1.link_to(s2)
    s2.link_to(s3)
    s2.link_to(s4)
    s3.link_to(s5)
    s4.link_to(s5)

    line = Line("Diamond", b1, b5, time_unit_factor=1.0)
    line.add_leaf(s1)
    return line

