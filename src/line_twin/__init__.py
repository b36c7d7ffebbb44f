"""Discrete-time production line digital twin."""

__version__ = "0.1.0"

from line_twin.buffer import Buffer
from line_twin.config import (
    BufferConfig,
    ConfigLoader,
    DefaultsConfig,
    HostConfig,
    LineConfig,
    LinkConfig,
    ResolvedConfig,
    RunConfig,
    StationConfig,
)
from line_twin.engine import SimulationEngine
from line_twin.host import Alerts, HostController
from line_twin.line import Line
from line_twin.models import (
    MAX_BUFFER_CAPACITY,
    BufferParams,
    Item,
    StationParams,
    StationState,
)
from line_twin.render import DrawingContext, LineRenderer, SvgCanvas
from line_twin.run import run_simulation
from line_twin.simulation import LayoutBuilder, LayoutResult
from line_twin.station import Station
from line_twin.storage import connect as db_connect
from line_twin.storage import DEFAULT_DB_PATH, save_results
from line_twin.topology import (
    BufferNode,
    CycleDetectedError,
    LinkEdge,
    StationNode,
    TopologyError,
    TopologyGraph,
)

__all__ = [
    # Models
    "Item",
    "StationState",
    "StationParams",
    "BufferParams",
    "MAX_BUFFER_CAPACITY",
    # Core
    "Buffer",
    "Station",
    "Line",
    # Config
    "ConfigLoader",
    "DefaultsConfig",
    "HostConfig",
    "RunConfig",
    "LineConfig",
    "BufferConfig",
    "StationConfig",
    "LinkConfig",
    "ResolvedConfig",
    # Topology
    "TopologyGraph",
    "BufferNode",
    "StationNode",
    "LinkEdge",
    "TopologyError",
    "CycleDetectedError",
    # Layout
    "LayoutBuilder",
    "LayoutResult",
    # Host
    "HostController",
    "Alerts",
    # Rendering
    "DrawingContext",
    "LineRenderer",
    "SvgCanvas",
    # Engine
    "SimulationEngine",
    # Entry points
    "run_simulation",
    # Storage
    "save_results",
    "DEFAULT_DB_PATH",
    "db_connect",
]
