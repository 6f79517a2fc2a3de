# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""Per-run diagnostic log files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from nanohost.time_utils import log_file_stamp, now_utc

logger = logging.getLogger(__name__)


@dataclass
class RunLogRecord:
    """Everything that goes into one worker run log."""

    group_name: str
    process_name: str
    duration_ms: float
    exit_code: int | None
    stdout: str
    stderr: str
    stdout_truncated: bool = False
    stderr_truncated: bool = False


def write_run_log(logs_dir: Path, record: RunLogRecord, verbose: bool = False) -> Path:
    """Write ``worker-<timestamp>.log`` under *logs_dir* and return its path.

    Captured stdout/stderr are included only for failed runs or when
    *verbose* is set.
    """
    now = now_utc()
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"worker-{log_file_stamp(now)}.log"

    lines = [
        "=== Worker Run Log ===",
        f"Timestamp: {now.isoformat()}",
        f"Group: {record.group_name}",
        f"Process: {record.process_name}",
        f"Duration: {record.duration_ms:.0f}ms",
        f"Exit Code: {record.exit_code}",
    ]

    if verbose or record.exit_code != 0:
        lines.extend([
            "",
            f"=== Stderr{' (TRUNCATED)' if record.stderr_truncated else ''} ===",
            record.stderr,
            "",
            f"=== Stdout{' (TRUNCATED)' if record.stdout_truncated else ''} ===",
            record.stdout,
        ])

    log_file.write_text("\n".join(lines), encoding="utf-8")
    logger.debug("Run log written: %s", log_file)
    return log_file
