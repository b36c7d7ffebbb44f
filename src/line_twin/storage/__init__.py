"""Persist line runs to a DuckDB file and open it for queries.

Each stored run gets a ``line_runs`` row; telemetry samples, station state
changes and per-station totals hang off its ``run_id``. The views
``v_run_comparison`` and ``v_station_failures`` compare runs side by side.
"""

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    import pandas as pd

    from line_twin.loader import ResolvedConfig

DEFAULT_DB_PATH = Path("./line_twin_results.duckdb")


def _resolve(db_path: Path | str | None) -> Path:
    return Path(db_path) if db_path else DEFAULT_DB_PATH


def save_results(
    resolved: "ResolvedConfig",
    df_ts: "pd.DataFrame",
    df_ev: "pd.DataFrame",
    df_stations: "pd.DataFrame",
    db_path: Path | str | None = None,
) -> int:
    """Store the three result frames of one run and return its run_id."""
    from line_twin.storage.writer import DuckDBWriter

    writer = DuckDBWriter(_resolve(db_path))
    try:
        return writer.store_run(resolved, df_ts, df_ev, df_stations)
    finally:
        writer.close()


def connect(db_path: Path | str | None = None) -> duckdb.DuckDBPyConnection:
    """Open the results database (``DEFAULT_DB_PATH`` unless given)."""
    return duckdb.connect(str(_resolve(db_path)))


__all__ = ["DEFAULT_DB_PATH", "save_results", "connect"]
