from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List

import pytest
from typer.testing import CliRunner

import logging_config
from cli.app import app
from exceptions import AuthError, UpdateError
from panel.client import BatchResult, PanelSession

_CONFIG_YAML = """\
host: panel.test
admin_path: secret
admin_account: admin@example.com
admin_password: hunter2
nodes:
  - id: 1
    type: vmess
    rate_config:
      - start_time: "00:00:00"
        end_time: "23:59:59"
        rate: 2.0
"""


class StubClient:
    def __init__(self, config, timeout: float = 10.0) -> None:
        self.config = config
        self.timeout = timeout
        self.nodes: List[Dict[str, Any]] = [{"id": 1, "type": "vmess", "rate": 0.5}]
        self.login_error: Exception | None = None
        self.fail_saves = False
        self.saved: List[Any] = []
        self.closed = False

    def login(self) -> PanelSession:
        if self.login_error is not None:
            raise self.login_error
        return PanelSession(token="tok")

    def list_nodes(self, session: PanelSession) -> List[Dict[str, Any]]:
        return self.nodes

    def batch_change(self, session: PanelSession, records) -> BatchResult:
        result = BatchResult()
        for record in records:
            if self.fail_saves:
                result.failed.append((record, UpdateError("rejected")))
            else:
                self.saved.append(record)
                result.applied.append(record)
        return result

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch) -> None:
    monkeypatch.setattr("cli.app.configure_logging", lambda **kwargs: None)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(_CONFIG_YAML, encoding="utf-8")
    return path


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config, timeout: float = 10.0):
        stub.config = config
        stub.timeout = timeout
        return stub

    monkeypatch.setattr("cli.app.PanelClient", factory)


def test_run_applies_active_rates(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--config", str(config_path), "--timeout", "3", "run"])

    assert result.exit_code == 0
    assert "applied: 1" in result.stdout
    assert "status: ok" in result.stdout
    assert [record.rate for record in stub.saved] == [2.0]
    assert stub.timeout == 3.0
    assert stub.closed is True


def test_run_exits_zero_when_single_updates_fail(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    stub = StubClient(config=None)
    stub.fail_saves = True
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--config", str(config_path), "run"])

    assert result.exit_code == 0
    assert "failed: 1" in result.stdout
    assert "status: partial" in result.stdout


def test_run_fails_when_login_fails(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    stub = StubClient(config=None)
    stub.login_error = AuthError("Account admin@example.com is not a panel administrator")
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--config", str(config_path), "run"])

    assert result.exit_code == 1
    assert stub.saved == []
    assert stub.closed is True


def test_run_fails_before_network_on_bad_config(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    created: List[Any] = []
    monkeypatch.setattr("cli.app.PanelClient", lambda *args, **kwargs: created.append(args))
    path = tmp_path / "config.yaml"
    path.write_text("host: panel.test\n", encoding="utf-8")

    result = runner.invoke(app, ["--config", str(path), "run"])

    assert result.exit_code == 1
    assert created == []


def test_unknown_timezone_is_rejected(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    _install_stub(monkeypatch, StubClient(config=None))

    result = runner.invoke(app, ["--config", str(config_path), "--timezone", "Nowhere/Special", "plan"])

    assert result.exit_code == 1


def test_plan_lists_updates_without_saving(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--config", str(config_path), "plan"])

    assert result.exit_code == 0
    assert "Planned Updates" in result.stdout
    assert "vmess node 1: rate -> 2.0" in result.stdout
    assert stub.saved == []


def test_check_config_marks_active_windows(runner: CliRunner, config_path: Path) -> None:
    result = runner.invoke(app, ["--config", str(config_path), "--timezone", "UTC", "check-config"])

    assert result.exit_code == 0
    assert "timezone: UTC" in result.stdout
    assert "00:00:00-23:59:59 rate=2.0 [active]" in result.stdout


def test_config_path_defaults_to_environment(monkeypatch, runner: CliRunner, config_path: Path) -> None:
    from settings import get_settings

    monkeypatch.setenv("DYNAMIC_RATE_CONFIG_PATH", str(config_path))
    get_settings.cache_clear()
    try:
        result = runner.invoke(app, ["check-config"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0
    assert "vmess node 1" in result.stdout


@pytest.fixture()
def real_logging(monkeypatch) -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    monkeypatch.setattr("cli.app.configure_logging", logging_config.configure_logging)
    monkeypatch.setattr("logging_config._configured", False)
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_unknown_timezone_is_reported_with_logging_configured(
    real_logging, runner: CliRunner, config_path: Path
) -> None:
    result = runner.invoke(app, ["--config", str(config_path), "--timezone", "Nowhere/Special", "check-config"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Unknown timezone 'Nowhere/Special'" in result.output
    assert result.output.count("Unknown timezone") == 1


def test_unknown_timezone_from_environment_is_reported(
    monkeypatch, real_logging, runner: CliRunner, config_path: Path
) -> None:
    from settings import get_settings

    monkeypatch.setenv("DYNAMIC_RATE_TIMEZONE", "Nowhere/Special")
    get_settings.cache_clear()
    try:
        result = runner.invoke(app, ["--config", str(config_path), "check-config"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Failed to load configuration" in result.output
