# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of nanohost, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized path resolution for nanohost.

All modules import directory paths from here instead of computing them ad-hoc.
Runtime data directory can be overridden via NANOHOST_DATA_DIR environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root: where the code lives (immutable, git-tracked)
PROJECT_DIR = Path(__file__).resolve().parent.parent

# Per-group CLAUDE.md templates shipped with the project
DEFAULT_TEMPLATE_GROUPS_DIR = PROJECT_DIR / "groups"

# Skills mirrored into every group's config directory
DEFAULT_SKILLS_DIR = PROJECT_DIR / "container" / "skills"

# Worker entrypoint used when no command is configured
DEFAULT_AGENT_RUNNER_PATH = PROJECT_DIR / "container" / "agent-runner" / "dist" / "index.js"

# Default runtime data directory
_DEFAULT_DATA_DIR = Path.home() / ".nanohost"


def get_data_dir() -> Path:
    """Return the runtime data directory, respecting NANOHOST_DATA_DIR env var."""
    env_val = os.environ.get("NANOHOST_DATA_DIR")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return _DEFAULT_DATA_DIR


def get_groups_dir(data_dir: Path | None = None) -> Path:
    return (data_dir or get_data_dir()) / "groups"


def get_sessions_dir(data_dir: Path | None = None) -> Path:
    return (data_dir or get_data_dir()) / "sessions"


def get_ipc_root(data_dir: Path | None = None) -> Path:
    return (data_dir or get_data_dir()) / "ipc"


def get_logs_dir(data_dir: Path | None = None) -> Path:
    """Host-level log directory (per-run worker logs live under each group)."""
    return (data_dir or get_data_dir()) / "logs"
