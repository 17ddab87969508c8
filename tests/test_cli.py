"""Tests for CLI commands."""

import json

from click.testing import CliRunner

from hostpulse.cli import format_bytes, format_percent, format_uptime, main

from conftest import cpu_line


def test_format_bytes_bytes():
    """Test format_bytes with byte values."""
    assert format_bytes(500) == "500B"


def test_format_bytes_kilobytes():
    assert format_bytes(2048) == "2.0K"


def test_format_bytes_gigabytes():
    assert "G" in format_bytes(1073741824)


def test_format_bytes_unavailable():
    assert format_bytes(None) == "n/a"


def test_format_percent():
    assert format_percent(None) == "n/a"
    assert format_percent(50.0) == " 50.0%"


def test_format_uptime():
    assert format_uptime(3661) == "01:01:01"
    assert format_uptime(90061) == "1 days, 01:01:01"
    assert format_uptime(None) == "n/a"


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "sample" in result.output
    assert "top" in result.output
    assert "facts" in result.output


def test_sample_json(populated_proc, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        [
            "--config", str(tmp_path / "none.toml"),
            "--proc-root", str(populated_proc.root),
            "sample", "--count", "2", "--interval", "0", "--json",
        ],
    )

    assert result.exit_code == 0, result.output
    lines = [json.loads(line) for line in result.output.strip().splitlines()]
    assert len(lines) == 2
    assert lines[0]["cpu_percent"] is None
    assert lines[1]["cpu_percent"] == 0.0
    assert [p["name"] for p in lines[1]["top_processes"]] == ["gamma", "alpha", "epsilon"]
    assert lines[1]["network"]["rx_bytes"] == 1500


def test_sample_text(populated_proc, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        [
            "--config", str(tmp_path / "none.toml"),
            "--proc-root", str(populated_proc.root),
            "sample", "--count", "1",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "CPU:   n/a" in result.output or "CPU: n/a" in result.output
    assert "Processes: 5" in result.output
    assert "gamma" in result.output


def test_sample_uses_config_file(populated_proc, tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        f'[sampling]\nproc_root = "{populated_proc.root}"\ntop_n = 1\ninclude_facts = false\n'
    )
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(config_path), "sample", "--count", "1", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert [p["name"] for p in data["top_processes"]] == ["gamma"]
    assert data["facts"] is None


def test_top(populated_proc, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["--config", str(tmp_path / "none.toml"), "--proc-root", str(populated_proc.root), "top", "-n", "2"],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert len(lines) == 2
    assert "gamma" in lines[0]
    assert "alpha" in lines[1]


def test_facts(tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(tmp_path / "none.toml"), "facts"])

    assert result.exit_code == 0, result.output
    assert "Host:" in result.output
    assert "Uptime:" in result.output


def test_bad_config_file(tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text("[sampling\n")
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(config_path), "facts"])

    assert result.exit_code != 0
    assert "Failed to parse" in result.output


def test_bad_log_level(tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(tmp_path / "none.toml"), "--log-level", "loud", "facts"])

    assert result.exit_code != 0


def test_sample_labels_cores_by_index(fake_proc, tmp_path):
    fake_proc.set_stat(
        cpu_line("cpu", idle=10),
        cpu_line("cpu0", idle=5),
        cpu_line("cpu2", idle=5),
    )
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["--config", str(tmp_path / "none.toml"), "--proc-root", str(fake_proc.root), "sample", "--count", "1"],
    )

    assert result.exit_code == 0, result.output
    assert "CPU0" in result.output
    assert "CPU2" in result.output
    assert "CPU1" not in result.output


def test_config_section_not_a_table(tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text("sampling = 5\n")
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(config_path), "facts"])

    assert result.exit_code == 1
    assert "must be a table" in result.output
