"""Tests for CLI argument handling and configuration checks."""

from pathlib import Path

from construct.cli import build_parser, main


def _write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(body)
    return path


def test_check_config_prints_summary(tmp_path, capsys):
    config = _write_config(
        tmp_path,
        """
system:
  admin: [alice]
providers:
  claude:
    protocol: anthropic
    model: claude-sonnet
    requests_per_minute: 10
commands:
  allowed: [ls]
  blocked: [sudo]
""",
    )

    exit_code = main(["-c", str(config), "check-config"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Admins: alice" in out
    assert "* claude: anthropic claude-sonnet, 10/min (wait), no key" in out
    assert "'ls': allowed (short)" in out
    assert "'sudo rm -rf build': blocked" in out


def test_missing_config_file(tmp_path, capsys):
    exit_code = main(["-c", str(tmp_path / "missing.yaml"), "check-config"])

    assert exit_code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_invalid_config_values(tmp_path, capsys):
    config = _write_config(tmp_path, "commands:\n  default: maybe\n")

    assert main(["-c", str(config), "check-config"]) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_malformed_yaml(tmp_path, capsys):
    config = _write_config(tmp_path, "providers: [unclosed\n")
    assert main(["-c", str(config), "check-config"]) == 1


def test_no_command_prints_help(capsys):
    assert main([]) == 2
    assert "check-config" in capsys.readouterr().out


def test_run_defaults():
    args = build_parser().parse_args(["run"])
    assert args.room == "console"
    assert args.sender == "local"
    assert args.config == Path("config.yaml")
