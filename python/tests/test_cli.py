from __future__ import annotations

import os
import subprocess
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from failover_check import cli
from failover_check.cli import EXIT_FATAL, EXIT_MAX_FAILURES, build_parser, build_run_config, main
from failover_check.config import AwsSettings
from failover_check.errors import ConfigurationError
from failover_check.fleet import InMemoryFleetController
from failover_check.orchestrator import FailoverReport

_REPO_ROOT = Path(__file__).resolve().parents[2]
_ENV_KEYS = ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_REGION", "ASG_NAME")


@pytest.fixture()
def aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, f"{key}_VALUE")


@pytest.fixture()
def maintenance_url():
    class _Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            body = b"Down for Maintenance\n"
            self.send_response(200)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:
            _ = (format, args)

    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=1)


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.url == "http://www.growkudos.com"
    assert args.content == "Maintenance"
    assert args.timeout == 600
    assert args.poll == 10
    assert args.user == ""
    assert args.pwd == ""
    assert args.insecure is False
    assert args.max_restore_rounds == 0
    assert args.exit_attempts == 3


def test_parser_set_values() -> None:
    args = build_parser().parse_args(
        [
            "--url=TEST",
            "--content=CONTENT",
            "--timeout=42",
            "--poll=84",
            "--user=USER",
            "--pwd=PASSWORD",
            "--insecure",
        ]
    )
    assert args.url == "TEST"
    assert args.content == "CONTENT"
    assert args.timeout == 42
    assert args.poll == 84
    assert args.user == "USER"
    assert args.pwd == "PASSWORD"
    assert args.insecure is True


def test_build_run_config_maps_flags() -> None:
    args = build_parser().parse_args(
        ["--poll=2", "--timeout=7", "--primary-url=http://primary", "--primary-content=Live"]
    )
    config = build_run_config(args, "web")
    assert config.group_name == "web"
    assert config.poll.interval_ms == 2000
    assert config.poll.max_attempts == 3
    assert config.primary_check is not None
    assert config.primary_check.expected == "Live"


@pytest.mark.parametrize(
    "argv",
    [["--primary-url=http://primary"], ["--poll=0"], ["--exit-attempts=0"], ["--max-restore-rounds=-1"]],
)
def test_build_run_config_rejects_bad_flags(argv: list[str]) -> None:
    with pytest.raises(ConfigurationError):
        build_run_config(build_parser().parse_args(argv), "web")


def test_main_without_credentials_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    built: list[AwsSettings] = []

    def _factory(settings: AwsSettings) -> InMemoryFleetController:
        built.append(settings)
        return InMemoryFleetController()

    assert main(["--log-level=ERROR"], fleet_factory=_factory) == EXIT_FATAL
    assert built == []


def test_main_missing_group_is_fatal(aws_env: None) -> None:
    fleet = InMemoryFleetController(failing={"list_instances"})
    assert main(["--log-level=ERROR"], fleet_factory=lambda _s: fleet) == EXIT_FATAL


def test_main_runs_and_writes_evidence(aws_env: None, maintenance_url: str, tmp_path: Path) -> None:
    fleet = InMemoryFleetController()
    evidence = tmp_path / "failover.env"
    settings: list[AwsSettings] = []

    def _factory(value: AwsSettings) -> InMemoryFleetController:
        settings.append(value)
        return fleet

    exit_code = main(
        [
            f"--url={maintenance_url}",
            "--content=Maintenance",
            "--poll=1",
            "--timeout=5",
            f"--output-file={evidence}",
            "--log-level=INFO",
        ],
        fleet_factory=_factory,
    )
    assert exit_code == 0
    assert settings[0].group_name == "ASG_NAME_VALUE"
    assert "FAILOVER_SUCCESS=true" in evidence.read_text(encoding="utf-8")


def test_script_exits_fatal_without_credentials() -> None:
    env = {key: value for key, value in os.environ.items() if key not in _ENV_KEYS}
    completed = subprocess.run(
        [sys.executable, "scripts/ops/failover_check.py", "--log-level=INFO"],
        cwd=_REPO_ROOT,
        env=env,
        check=False,
        capture_output=True,
        text=True,
    )
    assert completed.returncode == EXIT_FATAL, completed.stdout + completed.stderr
    assert "AWS credentials not set" in completed.stdout


def _report(restore_failures: int) -> FailoverReport:
    return FailoverReport(
        group_name="ASG_NAME_VALUE",
        instance_ids=("instance1",),
        enter_failures=0,
        failover_content_failures=0,
        failover_content_checked=True,
        restore_failures=restore_failures,
        restore_rounds=restore_failures,
        restore_exhausted=False,
        primary_content_failures=0,
        primary_content_checked=False,
    )


@pytest.mark.parametrize(("failures", "expected"), [(2, 2), (254, 254), (256, 254), (1000, 254)])
def test_main_caps_failure_count_in_exit_status(
    aws_env: None,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    failures: int,
    expected: int,
) -> None:
    monkeypatch.setattr(cli, "run_failover_check", lambda fleet, config: _report(failures))
    evidence = tmp_path / "failover.env"
    exit_code = main(
        ["--log-level=ERROR", f"--output-file={evidence}"],
        fleet_factory=lambda _s: InMemoryFleetController(),
    )
    assert exit_code == expected
    assert exit_code != EXIT_FATAL
    assert f"FAILOVER_EXIT_CODE={failures}" in evidence.read_text(encoding="utf-8")


def test_fatal_status_is_outside_failure_count_range() -> None:
    assert 0 < EXIT_MAX_FAILURES < EXIT_FATAL <= 255
    assert f"{EXIT_FATAL} means" in " ".join(build_parser().format_help().split())
