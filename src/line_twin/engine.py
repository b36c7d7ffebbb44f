"""SimPy-driven simulation engine for the production line twin."""

import logging
import random
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
import simpy

from line_twin.host import HostController
from line_twin.line import Line
from line_twin.loader import ConfigLoader, ResolvedConfig
from line_twin.simulation.layout import LayoutBuilder, LayoutResult

logger = logging.getLogger(__name__)


class SimulationEngine:
    """Simulation engine that runs from resolved YAML configuration."""

    def __init__(
        self,
        config_dir: str = "config",
        save_to_db: bool = True,
        db_path: Optional[Path | str] = None,
    ):
        """Initialize the simulation engine.

        Args:
            config_dir: Path to configuration directory
            save_to_db: If True, save results to DuckDB (default: True)
            db_path: Custom path for DuckDB file (default: ./line_twin_results.duckdb)
        """
        self.loader = ConfigLoader(config_dir)
        self.save_to_db = save_to_db
        self.db_path = Path(db_path) if db_path else None
        self.last_layout: Optional[LayoutResult] = None
        self.last_host: Optional[HostController] = None

    def run(
        self, run_name: str
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        """Run simulation by run config name."""
        resolved = self.loader.resolve_run(run_name)
        return self.run_resolved(resolved)

    def build(self, resolved: ResolvedConfig) -> LayoutResult:
        """Build the line for a resolved config with a seeded random source."""
        run = resolved.run
        builder = LayoutBuilder(
            resolved.line.to_graph(),
            name=resolved.line.name,
            station_params=self.loader.build_station_params(resolved),
            buffer_params=self.loader.build_buffer_params(resolved),
            rng=random.Random(run.random_seed),
            leaf_stations=resolved.line.leaf_stations or None,
            time_unit_factor=run.time_unit_factor,
            history_size=run.history_size,
        )
        return builder.build()

    def run_resolved(
        self, resolved: ResolvedConfig
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        """Run simulation from a fully resolved configuration.

        Returns:
            Tuple of (telemetry_df, events_df, stations_df)

        Raises:
            ValueError: If the run settings are out of range
        """
        run = resolved.run
        run.check()

        # 1. Build the line
        layout = self.build(resolved)
        line = layout.line

        # 2. Host actions and initial input
        host = HostController(line, run.host)
        if run.host.initial_input:
            host.feed(run.host.initial_input)

        # 3. Drive the line from a SimPy process
        env = simpy.Environment()
        telemetry_data: List[dict] = []
        env.process(
            self._tick_process(
                env, layout, host, telemetry_data, run.ticks, run.telemetry_interval
            )
        )

        logger.info("Starting simulation: %s (%d ticks)", run.name, run.ticks)
        line.start()
        env.run()
        line.stop()
        logger.info(
            "Simulation %s complete: %d produced, %d failures",
            run.name,
            line.produced_count,
            sum(s.n_fail for s in layout.stations.values()),
        )

        self.last_layout = layout
        self.last_host = host

        # 4. Compile results
        df_ts, df_ev, df_st = self._compile_results(layout, telemetry_data)

        # 5. Save to DuckDB (if enabled)
        if self.save_to_db:
            from line_twin.storage import save_results

            run_id = save_results(resolved, df_ts, df_ev, df_st, self.db_path)
            logger.info("Results saved to database (run_id: %s)", run_id)

        return df_ts, df_ev, df_st

    def _tick_process(
        self,
        env: simpy.Environment,
        layout: LayoutResult,
        host: HostController,
        telemetry_data: List[dict],
        ticks: int,
        interval: int = 1,
    ):
        """Advance the line one time step per simulated time unit."""
        line = layout.line
        prev_total = 0
        for _ in range(ticks):
            yield env.timeout(1)
            line.update()
            host.after_tick()

            if line.time_step % interval == 0 or line.time_step == ticks:
                snapshot = self._snapshot(layout, prev_total)
                prev_total = line.produced_count
                telemetry_data.append(snapshot)

    def _snapshot(self, layout: LayoutResult, prev_total: int) -> Dict[str, object]:
        """Capture line, buffer and station state (production as a delta)."""
        line: Line = layout.line
        snapshot: Dict[str, object] = {
            "tick": line.time_step,
            "produced": line.produced_count - prev_total,
            "produced_total": line.produced_count,
            "productivity": round(line.productivity, 3),
            "jammed": line.jammed,
            "faulty": line.faulty,
            "input_level": len(line.in_buf),
            "output_level": len(line.out_buf),
        }

        for name, buf in layout.buffers.items():
            snapshot[f"{name}_level"] = len(buf)
            snapshot[f"{name}_cap"] = buf.capacity

        for name, station in layout.stations.items():
            snapshot[f"{name}_state"] = station.state.value
            snapshot[f"{name}_n_fail"] = station.n_fail

        return snapshot

    def _compile_results(
        self, layout: LayoutResult, telemetry_data: List[dict]
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        """Compile DataFrames from simulation data."""
        # 1. Telemetry (time-series)
        df_telemetry = pd.DataFrame(telemetry_data)

        # 2. Events (state log)
        events: List[dict] = []
        for station in layout.stations.values():
            events.extend(station.event_log)
        df_events = pd.DataFrame(
            events, columns=["tick", "station", "state", "event_type"]
        )
        if not df_events.empty:
            df_events = df_events.sort_values("tick", kind="stable").reset_index(
                drop=True
            )

        # 3. Per-station totals
        df_stations = pd.DataFrame(
            [
                {
                    "station": name,
                    "t_prod": s.t_prod,
                    "t_wait": s.t_wait,
                    "n_fail": s.n_fail,
                    "utilization": round(s.utilization, 4),
                }
                for name, s in layout.stations.items()
            ],
            columns=["station", "t_prod", "t_wait", "n_fail", "utilization"],
        )

        return df_telemetry, df_events, df_stations
