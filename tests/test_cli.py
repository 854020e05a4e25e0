"""Tests for the command line entry point."""

from dataclasses import dataclass, field

import pytest

from stack_manager import cli
from stack_manager.core.compose import ComposeResult
from stack_manager.core.docker_client import DaemonUnreachableError, DockerClient


@dataclass
class FakeRunner:
    result: ComposeResult
    project_name: str = "my-site"
    operations: list = field(default_factory=list)

    def run(self, operation):
        self.operations.append(operation)
        return self.result


def test_run_operation_prints_output(capsys):
    runner = FakeRunner(ComposeResult(success=True, output="Container web Started\n"))
    assert cli.run_operation(runner, "up", assume_yes=False) == 0
    assert runner.operations == ["up"]
    assert capsys.readouterr().out == "Container web Started\n"


def test_run_operation_failure(capsys):
    runner = FakeRunner(ComposeResult(success=False, error="docker compose down failed: exit status 1"))
    assert cli.run_operation(runner, "down", assume_yes=False) == 1
    assert "exit status 1" in capsys.readouterr().err


def test_destroy_asks_first(monkeypatch):
    runner = FakeRunner(ComposeResult(success=True))
    monkeypatch.setattr("builtins.input", lambda prompt: "no")
    assert cli.run_operation(runner, "destroy", assume_yes=False) == 1
    assert runner.operations == []

    monkeypatch.setattr("builtins.input", lambda prompt: "destroy")
    assert cli.run_operation(runner, "destroy", assume_yes=False) == 0
    assert runner.operations == ["destroy"]


def test_parser():
    args = cli.build_parser().parse_args(["--log-level", "debug", "--config-dir", "/tmp/cfg"])
    assert args.log_level == "DEBUG"
    assert str(args.config_dir) == "/tmp/cfg"
    assert args.operation is None

    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["explode"])


def test_invalid_config_exits(tmp_path, capsys):
    (tmp_path / "settings.yaml").write_text("refresh_interval: 0\n")
    assert cli.main(["--config-dir", str(tmp_path)]) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_docker_unavailable_exits(tmp_path, monkeypatch, capsys):
    def fail(timeout):
        raise DaemonUnreachableError()

    monkeypatch.setattr(DockerClient, "from_env", staticmethod(fail))
    monkeypatch.chdir(tmp_path)

    assert cli.main(["--config-dir", str(tmp_path / "cfg")]) == 1
    assert "Docker daemon is not running" in capsys.readouterr().err
