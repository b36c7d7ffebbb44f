"""DuckDB writer for persisting simulation results."""

import hashlib
import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb
import pandas as pd

from line_twin import __version__
from line_twin.storage.schema import create_tables

if TYPE_CHECKING:
    from line_twin.loader import ResolvedConfig


class DuckDBWriter:
    """Writes simulation results to DuckDB database."""

    def __init__(self, db_path: Path):
        """Initialize writer and ensure schema exists.

        Args:
            db_path: Path to DuckDB database file
        """
        self.db_path = db_path
        self.conn = duckdb.connect(str(db_path))
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist."""
        create_tables(self.conn)

    def store_run(
        self,
        resolved: "ResolvedConfig",
        df_ts: pd.DataFrame,
        df_ev: pd.DataFrame,
        df_stations: pd.DataFrame,
    ) -> int:
        """Store complete simulation results.

        Args:
            resolved: Resolved configuration used for the simulation
            df_ts: Telemetry DataFrame (time-series)
            df_ev: Events DataFrame (state transitions)
            df_stations: Per-station totals

        Returns:
            run_id of the stored simulation
        """
        # 1. Insert line_runs record
        run_id = self._insert_line_run(resolved)

        # 2. Insert telemetry, events and station totals (bulk)
        self._insert_telemetry(run_id, df_ts)
        self._insert_events(run_id, df_ev)
        self._insert_station_summary(run_id, df_stations)

        # Update completed_at
        self.conn.execute(
            "UPDATE line_runs SET completed_at = ? WHERE run_id = ?",
            [datetime.now(), run_id],
        )

        return run_id

    def _insert_line_run(self, resolved: "ResolvedConfig") -> int:
        """Insert parent record and return run_id."""
        config_json = self._config_to_json(resolved)
        config_hash = hashlib.sha256(config_json.encode()).hexdigest()[:16]

        run_id = self.conn.execute("SELECT nextval('seq_line_runs_id')").fetchone()[0]

        run = resolved.run
        self.conn.execute(
            """
            INSERT INTO line_runs (
                run_id, run_name, line_name, config_hash, started_at,
                ticks, random_seed, telemetry_interval, time_unit_factor,
                config_snapshot, line_twin_version
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                run_id,
                run.name,
                resolved.line.name,
                config_hash,
                datetime.now(),
                run.ticks,
                run.random_seed,
                run.telemetry_interval,
                run.time_unit_factor,
                config_json,
                __version__,
            ],
        )
        return run_id

    def _config_to_json(self, resolved: "ResolvedConfig") -> str:
        """Convert resolved config to JSON for storage."""
        return json.dumps(
            {"run": asdict(resolved.run), "line": asdict(resolved.line)},
            default=str,
            sort_keys=True,
        )

    def _bulk_insert(self, table: str, run_id: int, df_insert: pd.DataFrame) -> None:
        """Insert a prepared DataFrame with generated ids."""
        max_id_result = self.conn.execute(
            f"SELECT COALESCE(MAX(id), 0) FROM {table}"
        ).fetchone()
        start_id = max_id_result[0] + 1
        df_insert = df_insert.copy()
        df_insert["id"] = range(start_id, start_id + len(df_insert))
        df_insert["run_id"] = run_id

        data_cols = [c for c in df_insert.columns if c not in ("id", "run_id")]
        columns = ", ".join(["id", "run_id"] + data_cols)
        view_name = f"{table}_df"
        self.conn.register(view_name, df_insert)
        self.conn.execute(
            f"INSERT INTO {table} ({columns}) SELECT {columns} FROM {view_name}"
        )
        self.conn.unregister(view_name)

    def _insert_telemetry(self, run_id: int, df_ts: pd.DataFrame) -> None:
        """Insert line-level telemetry records.

        Per-buffer and per-station columns stay in the exported CSVs; the
        table keeps the fixed line-level columns.
        """
        if df_ts.empty:
            return

        df_insert = pd.DataFrame(
            {
                "tick": df_ts["tick"].astype(int),
                "produced": df_ts["produced"].fillna(0).astype(int),
                "produced_total": df_ts["produced_total"].fillna(0).astype(int),
                "productivity": df_ts["productivity"].fillna(0.0),
                "jammed": df_ts["jammed"].astype(bool),
                "faulty": df_ts["faulty"].astype(bool),
                "input_level": df_ts["input_level"].astype(int),
                "output_level": df_ts["output_level"].astype(int),
            }
        )
        self._bulk_insert("telemetry", run_id, df_insert)

    def _insert_events(self, run_id: int, df_ev: pd.DataFrame) -> None:
        """Insert station state transitions."""
        if df_ev.empty:
            return

        df_insert = pd.DataFrame(
            {
                "tick": df_ev["tick"].astype(int),
                "station_name": df_ev["station"],
                "state": df_ev["state"],
                "event_type": df_ev["event_type"],
            }
        )
        self._bulk_insert("events", run_id, df_insert)

    def _insert_station_summary(self, run_id: int, df_stations: pd.DataFrame) -> None:
        """Insert per-station totals."""
        if df_stations.empty:
            return

        df_insert = pd.DataFrame(
            {
                "station_name": df_stations["station"],
                "t_prod": df_stations["t_prod"].astype(int),
                "t_wait": df_stations["t_wait"].astype(int),
                "n_fail": df_stations["n_fail"].astype(int),
                "utilization": df_stations["utilization"],
            }
        )
        self._bulk_insert("station_summary", run_id, df_insert)

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
