from __future__ import annotations

from pathlib import Path

from failover_check.evidence import write_evidence
from failover_check.orchestrator import FailoverReport


def _report(**overrides: object) -> FailoverReport:
    values: dict[str, object] = {
        "group_name": "web",
        "instance_ids": ("i-1", "i-2"),
        "enter_failures": 0,
        "failover_content_failures": 0,
        "failover_content_checked": True,
        "restore_failures": 0,
        "restore_rounds": 1,
        "restore_exhausted": False,
        "primary_content_failures": 0,
        "primary_content_checked": False,
    }
    values.update(overrides)
    return FailoverReport(**values)  # type: ignore[arg-type]


def test_exit_code_sums_phase_failures() -> None:
    report = _report(enter_failures=2, restore_failures=3, primary_content_failures=1)
    assert report.exit_code == 6


def test_write_evidence_lines(tmp_path: Path) -> None:
    output = write_evidence(
        tmp_path / "results" / "failover.env",
        _report(restore_failures=2),
        failover_url="http://failover.example",
    )
    payload = output.read_text(encoding="utf-8")
    assert "FAILOVER_GROUP=web\n" in payload
    assert "FAILOVER_INSTANCE_IDS=i-1,i-2\n" in payload
    assert "FAILOVER_SUCCESS=false\n" in payload
    assert "FAILOVER_EXIT_CODE=2\n" in payload
    assert "FAILOVER_CONTENT_URL=http://failover.example\n" in payload
    assert "RESTORE_ROUNDS=1\n" in payload
    assert "PRIMARY_CONTENT_CHECKED=false\n" in payload
