"""YAML configuration loader with name-based resolution."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from line_twin.models import BufferParams, StationParams
from line_twin.topology import BufferNode, LinkEdge, StationNode, TopologyGraph


@dataclass
class DefaultsConfig:
    """Global defaults loaded from config/defaults.yaml."""

    simulation: Dict[str, Any] = field(default_factory=dict)
    host: Dict[str, Any] = field(default_factory=dict)
    buffer: Dict[str, Any] = field(default_factory=dict)
    station: Dict[str, Any] = field(default_factory=dict)


class ConfigLoader:
    """Loads and resolves YAML configuration files."""

    def __init__(self, config_dir: Path | str = "config"):
        self.config_dir = Path(config_dir)
        self.defaults = self.load_defaults()

    def load_defaults(self) -> DefaultsConfig:
        """Load global defaults from config/defaults.yaml."""
        path = self.config_dir / "defaults.yaml"
        if not path.exists():
            return DefaultsConfig()
        data = self._load_yaml(path)
        return DefaultsConfig(
            simulation=data.get("simulation", {}),
            host=data.get("host", {}),
            buffer=data.get("buffer", {}),
            station=data.get("station", {}),
        )

    def load_line(self, name: str) -> "LineConfig":
        """Load a line layout by name."""
        path = self.config_dir / "lines" / f"{name}.yaml"
        data = self._load_yaml(path)
        buf_defaults = self.defaults.buffer
        stn_defaults = self.defaults.station

        buffers = [
            BufferConfig(
                name=b["name"],
                capacity=b.get("capacity", buf_defaults.get("capacity", 50)),
                x=b.get("x", 0.0),
                y=b.get("y", 0.0),
            )
            for b in data.get("buffers", [])
        ]
        stations = [
            StationConfig(
                name=s["name"],
                in_buffer=s["in_buffer"],
                out_buffer=s["out_buffer"],
                tp_time=s.get("tp_time", stn_defaults.get("tp_time", 2)),
                p_fail=s.get("p_fail", stn_defaults.get("p_fail", 0.0)),
                t_repair=s.get("t_repair", stn_defaults.get("t_repair", 50)),
                x=s.get("x", 0.0),
                y=s.get("y", 0.0),
            )
            for s in data.get("stations", [])
        ]
        links = [
            LinkConfig(source=link["source"], target=link["target"])
            for link in data.get("links", [])
        ]
        return LineConfig(
            name=data["name"],
            input_buffer=data["input_buffer"],
            output_buffer=data["output_buffer"],
            description=data.get("description", ""),
            buffers=buffers,
            stations=stations,
            links=links,
            leaf_stations=data.get("leaf_stations", []),
        )

    def load_run(self, name: str) -> "RunConfig":
        """Load a run configuration by name."""
        path = self.config_dir / "runs" / f"{name}.yaml"
        data = self._load_yaml(path)

        # Use defaults from defaults.yaml
        sim_defaults = self.defaults.simulation
        host_data = {**self.defaults.host, **(data.get("host") or {})}
        return RunConfig(
            name=data["name"],
            line=data["line"],
            ticks=data.get("ticks", sim_defaults.get("ticks", 2000)),
            random_seed=data.get("random_seed", sim_defaults.get("random_seed", 42)),
            telemetry_interval=data.get(
                "telemetry_interval", sim_defaults.get("telemetry_interval", 10)
            ),
            ticks_per_second=data.get(
                "ticks_per_second", sim_defaults.get("ticks_per_second", 24.0)
            ),
            time_unit_sec=data.get(
                "time_unit_sec", sim_defaults.get("time_unit_sec", 60.0)
            ),
            history_size=data.get(
                "history_size", sim_defaults.get("history_size", 500)
            ),
            host=HostConfig(**host_data),
            overrides=data.get("overrides", {}) or {},
            buffer_capacities=data.get("buffer_capacities", {}) or {},
        )

    def resolve_run(self, run_name: str) -> "ResolvedConfig":
        """Fully resolve a run config into its line layout."""
        run = self.load_run(run_name)
        line = self.load_line(run.line)

        if run.buffer_capacities:
            known = {b.name for b in line.buffers}
            unknown = set(run.buffer_capacities) - known
            if unknown:
                raise ValueError(
                    f"Run {run.name} overrides unknown buffers: {sorted(unknown)}"
                )
            line.buffers = [
                replace(b, capacity=run.buffer_capacities.get(b.name, b.capacity))
                for b in line.buffers
            ]

        return ResolvedConfig(run=run, line=line)

    def build_station_params(self, resolved: "ResolvedConfig") -> Dict[str, StationParams]:
        """Build validated station parameters with run overrides applied."""
        known = {s.name for s in resolved.line.stations}
        unknown = set(resolved.run.overrides) - known
        if unknown:
            raise ValueError(
                f"Run {resolved.run.name} overrides unknown stations: {sorted(unknown)}"
            )

        params: Dict[str, StationParams] = {}
        for s in resolved.line.stations:
            over = resolved.run.overrides.get(s.name, {})
            params[s.name] = StationParams(
                name=s.name,
                tp_time=over.get("tp_time", s.tp_time),
                p_fail=over.get("p_fail", s.p_fail),
                t_repair=over.get("t_repair", s.t_repair),
                x=s.x,
                y=s.y,
            )
        return params

    def build_buffer_params(self, resolved: "ResolvedConfig") -> Dict[str, BufferParams]:
        """Build validated buffer parameters."""
        return {
            b.name: BufferParams(name=b.name, capacity=b.capacity, x=b.x, y=b.y)
            for b in resolved.line.buffers
        }

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            return yaml.safe_load(f) or {}


# --- Config dataclasses ---


@dataclass
class HostConfig:
    """Host application toggles and batch sizes."""

    initial_input: int = 0
    input_batch_size: int = 50
    output_batch_size: int = 25
    auto_feed: bool = False
    auto_drain: bool = False


@dataclass
class RunConfig:
    """Run-level configuration."""

    name: str
    line: str
    ticks: int = 2000
    random_seed: Optional[int] = 42
    telemetry_interval: int = 10
    ticks_per_second: float = 24.0
    time_unit_sec: float = 60.0
    history_size: int = 500
    host: HostConfig = field(default_factory=HostConfig)
    overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    buffer_capacities: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.check()

    def check(self) -> None:
        """Validate run settings.

        Raises:
            ValueError: If a tick count, interval or time scale is out of range
        """
        if self.ticks < 0:
            raise ValueError(f"Run {self.name}: ticks must be >= 0, got {self.ticks}")
        if self.telemetry_interval < 1:
            raise ValueError(
                f"Run {self.name}: telemetry_interval must be >= 1, "
                f"got {self.telemetry_interval}"
            )
        if self.history_size < 1:
            raise ValueError(
                f"Run {self.name}: history_size must be >= 1, got {self.history_size}"
            )
        if self.ticks_per_second <= 0 or self.time_unit_sec <= 0:
            raise ValueError(
                f"Run {self.name}: ticks_per_second and time_unit_sec must be positive"
            )

    @property
    def time_unit_factor(self) -> float:
        """Factor converting items per tick into items per time unit."""
        return self.ticks_per_second * self.time_unit_sec


@dataclass
class BufferConfig:
    """Buffer in a line layout."""

    name: str
    capacity: int = 50
    x: float = 0.0
    y: float = 0.0


@dataclass
class StationConfig:
    """Station in a line layout."""

    name: str
    in_buffer: str
    out_buffer: str
    tp_time: int = 2
    p_fail: float = 0.0
    t_repair: int = 50
    x: float = 0.0
    y: float = 0.0


@dataclass
class LinkConfig:
    """Explicit link from a station to the station that follows it."""

    source: str
    target: str


@dataclass
class LineConfig:
    """Line layout configuration."""

    name: str
    input_buffer: str
    output_buffer: str
    description: str = ""
    buffers: List[BufferConfig] = field(default_factory=list)
    stations: List[StationConfig] = field(default_factory=list)
    links: List[LinkConfig] = field(default_factory=list)
    leaf_stations: List[str] = field(default_factory=list)

    def to_graph(self) -> TopologyGraph:
        """Convert the layout to a TopologyGraph.

        Links are inferred from shared buffers when none are listed.
        """
        graph = TopologyGraph(
            input_buffer=self.input_buffer, output_buffer=self.output_buffer
        )
        for b in self.buffers:
            graph.add_buffer(BufferNode(name=b.name, capacity=b.capacity, x=b.x, y=b.y))
        for s in self.stations:
            graph.add_station(
                StationNode(
                    name=s.name,
                    in_buffer=s.in_buffer,
                    out_buffer=s.out_buffer,
                    tp_time=s.tp_time,
                    p_fail=s.p_fail,
                    t_repair=s.t_repair,
                    x=s.x,
                    y=s.y,
                )
            )
        for link in self.links:
            graph.add_link(LinkEdge(source=link.source, target=link.target))
        if not self.links:
            graph.infer_links()
        return graph


@dataclass
class ResolvedConfig:
    """Fully resolved configuration ready for simulation."""

    run: RunConfig
    line: LineConfig
