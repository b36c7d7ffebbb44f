"""Tests for DuckDB storage module."""

from pathlib import Path
from typing import Tuple

import duckdb
import pandas as pd
import pytest

from line_twin import ConfigLoader, SimulationEngine
from line_twin.loader import ResolvedConfig
from line_twin.storage import DEFAULT_DB_PATH, connect, save_results
from line_twin.storage.schema import create_tables
from line_twin.storage.writer import DuckDBWriter

Frames = Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    """Temporary database file path (does not create the file)."""
    return tmp_path / "test_line_twin.duckdb"


@pytest.fixture
def resolved(loader: ConfigLoader) -> ResolvedConfig:
    return loader.resolve_run("serial")


@pytest.fixture
def results(engine: SimulationEngine, resolved: ResolvedConfig) -> Frames:
    return engine.run_resolved(resolved)


class TestSchemaCreation:
    def test_create_tables_creates_all_tables(self, temp_db: Path):
        """create_tables() creates the tables and views."""
        conn = duckdb.connect(str(temp_db))
        create_tables(conn)

        tables = conn.execute(
            "SELECT table_name FROM information_schema.tables WHERE table_schema = 'main'"
        ).fetchall()
        names = {t[0] for t in tables}

        assert {"line_runs", "telemetry", "events", "station_summary"} <= names
        assert {"v_run_comparison", "v_station_failures"} <= names
        conn.close()

    def test_create_tables_is_idempotent(self, temp_db: Path):
        """create_tables() is safe to call twice."""
        conn = duckdb.connect(str(temp_db))
        create_tables(conn)
        create_tables(conn)
        conn.close()


class TestDuckDBWriter:
    def test_store_run(self, temp_db: Path, resolved, results: Frames):
        """store_run() writes the run row and every frame."""
        df_ts, df_ev, df_st = results
        writer = DuckDBWriter(temp_db)

        run_id = writer.store_run(resolved, df_ts, df_ev, df_st)

        row = writer.conn.execute(
            "SELECT run_name, line_name, ticks, random_seed, completed_at "
            "FROM line_runs WHERE run_id = ?",
            [run_id],
        ).fetchone()
        assert row[:4] == ("serial", "Serial pair", 200, 1)
        assert row[4] is not None

        for table, df in (
            ("telemetry", df_ts),
            ("events", df_ev),
            ("station_summary", df_st),
        ):
            count = writer.conn.execute(
                f"SELECT COUNT(*) FROM {table} WHERE run_id = ?", [run_id]
            ).fetchone()[0]
            assert count == len(df)
        writer.close()

    def test_run_ids_increment(self, temp_db: Path, resolved, results: Frames):
        """Run ids and row ids keep increasing across runs."""
        writer = DuckDBWriter(temp_db)

        first = writer.store_run(resolved, *results)
        second = writer.store_run(resolved, *results)

        assert (first, second) == (1, 2)
        ids = writer.conn.execute("SELECT id FROM telemetry ORDER BY id").fetchall()
        assert len({i[0] for i in ids}) == len(ids)
        writer.close()

    def test_config_hash_stable(self, temp_db: Path, resolved, results: Frames):
        """The same config hashes the same."""
        writer = DuckDBWriter(temp_db)
        writer.store_run(resolved, *results)
        writer.store_run(resolved, *results)

        hashes = writer.conn.execute(
            "SELECT DISTINCT config_hash FROM line_runs"
        ).fetchall()
        assert len(hashes) == 1
        writer.close()

    def test_empty_frames(self, temp_db: Path, resolved):
        """Empty frames still create the run record."""
        writer = DuckDBWriter(temp_db)
        empty = pd.DataFrame()

        run_id = writer.store_run(resolved, empty, empty, empty)

        assert run_id == 1
        writer.close()


class TestQueries:
    def test_run_comparison_view(self, temp_db: Path, resolved, results: Frames):
        """v_run_comparison reports totals and final productivity."""
        save_results(resolved, *results, db_path=temp_db)

        conn = connect(temp_db)
        row = conn.execute(
            "SELECT run_name, total_produced, final_productivity FROM v_run_comparison"
        ).fetchone()
        conn.close()

        df_ts = results[0]
        assert row[0] == "serial"
        assert row[1] == 20
        assert row[2] == pytest.approx(df_ts["productivity"].iloc[-1])

    def test_engine_saves_when_enabled(self, config_dir: Path, temp_db: Path):
        """The engine stores runs when save_to_db is on."""
        engine = SimulationEngine(str(config_dir), save_to_db=True, db_path=temp_db)
        engine.run("serial")

        conn = connect(temp_db)
        count = conn.execute("SELECT COUNT(*) FROM line_runs").fetchone()[0]
        conn.close()
        assert count == 1

    def test_default_path(self):
        """Results go to the working directory unless a path is given."""
        assert DEFAULT_DB_PATH == Path("./line_twin_results.duckdb")
