from __future__ import annotations

from pathlib import Path

from failover_check.orchestrator import FailoverReport


def _flag(value: bool) -> str:
    return "true" if value else "false"


def render_evidence(report: FailoverReport, *, failover_url: str, primary_url: str = "") -> list[str]:
    return [
        f"FAILOVER_GROUP={report.group_name}",
        f"FAILOVER_INSTANCE_IDS={','.join(report.instance_ids)}",
        f"FAILOVER_SUCCESS={_flag(report.exit_code == 0)}",
        f"FAILOVER_EXIT_CODE={report.exit_code}",
        f"ENTER_STANDBY_FAILURES={report.enter_failures}",
        f"FAILOVER_CONTENT_URL={failover_url}",
        f"FAILOVER_CONTENT_CHECKED={_flag(report.failover_content_checked)}",
        f"FAILOVER_CONTENT_FAILURES={report.failover_content_failures}",
        f"RESTORE_ROUNDS={report.restore_rounds}",
        f"RESTORE_EXHAUSTED={_flag(report.restore_exhausted)}",
        f"RESTORE_FAILURES={report.restore_failures}",
        f"PRIMARY_CONTENT_URL={primary_url}",
        f"PRIMARY_CONTENT_CHECKED={_flag(report.primary_content_checked)}",
        f"PRIMARY_CONTENT_FAILURES={report.primary_content_failures}",
    ]


def write_evidence(
    path: Path | str,
    report: FailoverReport,
    *,
    failover_url: str,
    primary_url: str = "",
) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    lines = render_evidence(report, failover_url=failover_url, primary_url=primary_url)
    output.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return output
