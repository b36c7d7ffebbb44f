"""DuckDB schema definitions for simulation results storage."""

SCHEMA_DDL = """
-- 1. LINE_RUNS: Parent record for each simulation
CREATE TABLE IF NOT EXISTS line_runs (
    run_id INTEGER PRIMARY KEY,
    run_name VARCHAR NOT NULL,
    line_name VARCHAR NOT NULL,
    config_hash VARCHAR NOT NULL,
    started_at TIMESTAMP NOT NULL,
    completed_at TIMESTAMP,
    ticks INTEGER NOT NULL,
    random_seed INTEGER,
    telemetry_interval INTEGER DEFAULT 10,
    time_unit_factor DOUBLE,
    -- Config snapshot (JSON blob)
    config_snapshot JSON NOT NULL,
    -- Metadata
    line_twin_version VARCHAR,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- 2. TELEMETRY: Time-series data
CREATE TABLE IF NOT EXISTS telemetry (
    id INTEGER PRIMARY KEY,
    run_id INTEGER NOT NULL REFERENCES line_runs(run_id),
    tick INTEGER NOT NULL,
    produced INTEGER DEFAULT 0,
    produced_total INTEGER DEFAULT 0,
    productivity DOUBLE DEFAULT 0.0,
    jammed BOOLEAN DEFAULT FALSE,
    faulty BOOLEAN DEFAULT FALSE,
    input_level INTEGER,
    output_level INTEGER
);

-- 3. EVENTS: Station state transitions
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY,
    run_id INTEGER NOT NULL REFERENCES line_runs(run_id),
    tick INTEGER NOT NULL,
    station_name VARCHAR NOT NULL,
    state VARCHAR NOT NULL,
    event_type VARCHAR NOT NULL
);

-- 4. STATION_SUMMARY: Per-station totals
CREATE TABLE IF NOT EXISTS station_summary (
    id INTEGER PRIMARY KEY,
    run_id INTEGER NOT NULL REFERENCES line_runs(run_id),
    station_name VARCHAR NOT NULL,
    t_prod INTEGER DEFAULT 0,
    t_wait INTEGER DEFAULT 0,
    n_fail INTEGER DEFAULT 0,
    utilization DOUBLE,
    UNIQUE(run_id, station_name)
);

-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS seq_line_runs_id START 1;
"""

INDEX_DDL = """
-- Indexes for query performance
CREATE INDEX IF NOT EXISTS idx_runs_started_at ON line_runs(started_at);
CREATE INDEX IF NOT EXISTS idx_telemetry_run_tick ON telemetry(run_id, tick);
CREATE INDEX IF NOT EXISTS idx_events_run_tick ON events(run_id, tick);
"""

VIEW_DDL = """
-- Run comparison view
CREATE OR REPLACE VIEW v_run_comparison AS
SELECT r.run_id, r.run_name, r.line_name, r.started_at, r.ticks,
       MAX(t.produced_total) AS total_produced,
       arg_max(t.productivity, t.tick) AS final_productivity,
       SUM(CASE WHEN t.jammed THEN 1 ELSE 0 END) AS jammed_samples,
       SUM(CASE WHEN t.faulty THEN 1 ELSE 0 END) AS faulty_samples
FROM line_runs r
LEFT JOIN telemetry t ON r.run_id = t.run_id
GROUP BY r.run_id, r.run_name, r.line_name, r.started_at, r.ticks;

-- Failures by station view
CREATE OR REPLACE VIEW v_station_failures AS
SELECT r.run_name, r.line_name, s.*
FROM station_summary s
JOIN line_runs r ON s.run_id = r.run_id;
"""


def create_tables(conn) -> None:
    """Create all tables, indexes, and views in the database.

    Args:
        conn: DuckDB connection
    """
    conn.execute(SCHEMA_DDL)
    conn.execute(INDEX_DDL)
    conn.execute(VIEW_DDL)
