"""CLI tests for the run and validate commands."""

from pathlib import Path

import yaml

from line_twin.run import main, validate_line


class TestRunCommand:
    def test_run_without_db(self, config_dir: Path, capsys):
        """run --no-db prints the summary and exits 0."""
        code = main(["run", "--run", "serial", "--config", str(config_dir), "--no-db"])

        assert code == 0
        out = capsys.readouterr().out
        assert "SIMULATION COMPLETE" in out
        assert "Items Produced:    20" in out

    def test_export_csv(self, config_dir: Path, tmp_path: Path):
        """--export writes one CSV per result frame."""
        main(
            [
                "run", "--run", "serial", "--config", str(config_dir), "--no-db",
                "--export", "--output", str(tmp_path),
            ]
        )

        for prefix in ("telemetry", "events", "stations"):
            assert len(list(tmp_path.glob(f"{prefix}_*.csv"))) == 1

    def test_snapshot(self, config_dir: Path, tmp_path: Path):
        """--snapshot writes an SVG of the final line."""
        svg = tmp_path / "line.svg"
        main(
            [
                "run", "--run", "serial", "--config", str(config_dir), "--no-db",
                "--snapshot", str(svg),
            ]
        )

        text = svg.read_text()
        assert text.startswith("<svg")
        assert "Cutter" in text

    def test_run_with_db(self, config_dir: Path, tmp_path: Path):
        """Without --no-db the run is stored at --db-path."""
        db = tmp_path / "runs.duckdb"
        code = main(
            ["run", "--run", "serial", "--config", str(config_dir), "--db-path", str(db)]
        )
        assert code == 0
        assert db.exists()


def write_line(config_dir: Path, name: str, **fields) -> None:
    """Write a serial IN -> S -> OUT line file, with fields overridden."""
    data = {
        "name": name.title(),
        "input_buffer": "IN",
        "output_buffer": "OUT",
        "buffers": [{"name": "IN"}, {"name": "OUT"}],
        "stations": [{"name": "S", "in_buffer": "IN", "out_buffer": "OUT"}],
    }
    data.update(fields)
    (config_dir / "lines").mkdir(exist_ok=True)
    (config_dir / "lines" / f"{name}.yaml").write_text(yaml.safe_dump(data))


class TestValidateCommand:
    """Tests for the validate command."""

    def test_valid_line(self, config_dir: Path, capsys):
        """A valid line exits 0."""
        code = main(["validate", "--line", "testline", "--config", str(config_dir)])

        assert code == 0
        assert "is valid" in capsys.readouterr().out

    def test_invalid_line(self, tmp_path: Path, capsys):
        """Topology errors are printed and exit 1."""
        (tmp_path / "lines").mkdir()
        (tmp_path / "lines" / "broken.yaml").write_text(
            yaml.safe_dump(
                {
                    "name": "Broken",
                    "input_buffer": "IN",
                    "output_buffer": "OUT",
                    "buffers": [{"name": "IN"}, {"name": "MID"}, {"name": "OUT"}],
                    "stations": [{"name": "S", "in_buffer": "IN", "out_buffer": "MID"}],
                }
            )
        )

        code = main(["validate", "--line", "broken", "--config", str(tmp_path)])

        assert code == 1
        assert "No station feeds output buffer OUT" in capsys.readouterr().out
        assert validate_line("broken", str(tmp_path))

    def test_no_command_prints_help(self, capsys):
        """No subcommand prints usage and exits 2."""
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out.lower()

    def test_unknown_buffer_reported(self, tmp_path: Path, capsys):
        """A station naming an unknown buffer is an error line, not a traceback."""
        write_line(
            tmp_path,
            "dangling",
            stations=[{"name": "S", "in_buffer": "IN", "out_buffer": "MISSING"}],
        )

        code = main(["validate", "--line", "dangling", "--config", str(tmp_path)])

        assert code == 1
        assert "Buffer not found: MISSING" in capsys.readouterr().out

    def test_unknown_link_target_reported(self, tmp_path: Path, capsys):
        """A link to an unknown station is an error line, not a traceback."""
        write_line(tmp_path, "ghost", links=[{"source": "S", "target": "Ghost"}])

        code = main(["validate", "--line", "ghost", "--config", str(tmp_path)])

        assert code == 1
        assert "Station not found: Ghost" in capsys.readouterr().out

    def test_missing_key_reported(self, tmp_path: Path):
        """A station without an out_buffer key is reported as a missing key."""
        write_line(tmp_path, "partial", stations=[{"name": "S", "in_buffer": "IN"}])

        errors = validate_line("partial", str(tmp_path))

        assert len(errors) == 1
        assert "out_buffer" in errors[0]
