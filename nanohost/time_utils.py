from __future__ import annotations
# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of nanohost, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Timezone-aware datetime helpers.

Run logs are stamped in UTC; ``log_file_stamp()`` produces
the filesystem-safe variant used in per-run log file names.
"""

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Return current time as timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def log_file_stamp(dt: datetime | None = None) -> str:
    """ISO8601 timestamp with ``:`` and ``.`` replaced for use in file names."""
    stamp = (dt or now_utc()).isoformat()
    return stamp.replace(":", "-").replace(".", "-")
