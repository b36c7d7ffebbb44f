"""Entry point for running simulations."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from line_twin.engine import SimulationEngine
from line_twin.loader import ConfigLoader
from line_twin.render import LineRenderer, SvgCanvas


def run_simulation(
    run_name: str = "baseline",
    config_dir: str = "config",
    save_to_db: bool = True,
    db_path: str | None = None,
    snapshot: str | None = None,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Run a simulation with the given run config name.

    Args:
        run_name: Name of the run config (without .yaml extension)
        config_dir: Path to config directory
        save_to_db: If True, save results to DuckDB database
        db_path: Custom path for DuckDB file
        snapshot: If set, write an SVG drawing of the final line state here

    Returns:
        Tuple of (telemetry_df, events_df, stations_df)
    """
    engine = SimulationEngine(config_dir, save_to_db=save_to_db, db_path=db_path)
    df_ts, df_ev, df_st = engine.run(run_name)

    # Report
    print("\n--- SIMULATION COMPLETE ---")
    print(f"Telemetry Records: {len(df_ts)}")
    print(f"Event Records: {len(df_ev)}")

    if not df_ts.empty:
        last = df_ts.iloc[-1]
        print("\n--- PRODUCTION SUMMARY ---")
        print(f"Time Steps:        {int(last['tick']):,}")
        print(f"Items Produced:    {int(df_ts['produced'].sum()):,}")
        print(f"Productivity:      {last['productivity']:.0f} units/min")
        print(f"Jammed Samples:    {int(df_ts['jammed'].sum())}")
        print(f"Faulty Samples:    {int(df_ts['faulty'].sum())}")

    if not df_st.empty:
        print("\n--- STATIONS ---")
        print(df_st.set_index("station").round(3))

    if snapshot and engine.last_layout is not None:
        canvas = SvgCanvas()
        messages = engine.last_host.status_messages() if engine.last_host else []
        LineRenderer().draw(engine.last_layout.line, canvas, messages)
        Path(snapshot).write_text(canvas.to_svg())
        print(f"\nSnapshot: {snapshot}")

    return df_ts, df_ev, df_st


def validate_line(line_name: str, config_dir: str = "config") -> List[str]:
    """Validate a line layout and return its topology errors.

    Layouts that cannot be assembled into a graph (unknown buffer or station
    names, missing keys) are reported as a single error.
    """
    loader = ConfigLoader(config_dir)
    try:
        graph = loader.load_line(line_name).to_graph()
    except KeyError as e:
        return [f"Missing key in line {line_name}: {e}"]
    except ValueError as e:
        return [str(e)]
    return graph.validate()


def _run_command(args: argparse.Namespace) -> None:
    """Handle 'run' subcommand."""
    df_ts, df_ev, df_st = run_simulation(
        args.run,
        args.config,
        save_to_db=not args.no_db,
        db_path=args.db_path,
        snapshot=args.snapshot,
    )

    # Export if requested
    if args.export:
        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        ts_path = output_dir / f"telemetry_{timestamp}.csv"
        ev_path = output_dir / f"events_{timestamp}.csv"
        st_path = output_dir / f"stations_{timestamp}.csv"

        df_ts.to_csv(ts_path, index=False)
        df_ev.to_csv(ev_path, index=False)
        df_st.to_csv(st_path, index=False)

        print(f"\nExported: {ts_path} ({len(df_ts)} rows)")
        print(f"Exported: {ev_path} ({len(df_ev)} rows)")
        print(f"Exported: {st_path} ({len(df_st)} rows)")


def _validate_command(args: argparse.Namespace) -> int:
    """Handle 'validate' subcommand."""
    errors = validate_line(args.line, args.config)
    if errors:
        print(f"Line {args.line} is invalid:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print(f"Line {args.line} is valid.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Discrete-time production line simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  line-twin run --run baseline
  line-twin run --run baseline --export --snapshot line.svg
  line-twin validate --line testline
        """,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === 'run' subcommand ===
    run_parser = subparsers.add_parser(
        "run",
        help="Run simulation from config",
        description="Run a simulation from YAML configuration files.",
    )
    run_parser.add_argument(
        "--run", default="baseline", help="Run config name (default: baseline)"
    )
    run_parser.add_argument(
        "--config", default="config", help="Config directory path (default: config)"
    )
    run_parser.add_argument(
        "--export", action="store_true", help="Export results to CSV files"
    )
    run_parser.add_argument(
        "--output",
        default="output",
        help="Output directory for CSV export (default: output)",
    )
    run_parser.add_argument(
        "--no-db", action="store_true", help="Skip saving to DuckDB database"
    )
    run_parser.add_argument(
        "--db-path",
        default=None,
        help="Custom path for DuckDB file (default: ./line_twin_results.duckdb)",
    )
    run_parser.add_argument(
        "--snapshot",
        default=None,
        help="Write an SVG drawing of the final line state to this file",
    )
    run_parser.set_defaults(func=_run_command)

    # === 'validate' subcommand ===
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a line layout",
        description="Check a line layout for topology errors.",
    )
    validate_parser.add_argument("--line", required=True, help="Line config name")
    validate_parser.add_argument(
        "--config", default="config", help="Config directory path (default: config)"
    )
    validate_parser.set_defaults(func=_validate_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 2

    return args.func(args) or 0


if __name__ == "__main__":
    sys.exit(main())
