#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path

try:
    from failover_check.cli import main
except ModuleNotFoundError:
    repo_python = Path(__file__).resolve().parents[2] / "python"
    sys.path.insert(0, str(repo_python))
    from failover_check.cli import main  # type: ignore[no-redef]


if __name__ == "__main__":
    raise SystemExit(main())
