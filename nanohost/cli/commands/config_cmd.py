"""CLI commands for inspecting and initializing configuration."""

# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import json
import sys


def cmd_config_show(args: argparse.Namespace) -> None:
    """Print the effective configuration (file + environment) as JSON."""
    from nanohost.config import load_config

    config = load_config()
    payload = config.model_dump(mode="json")
    payload["resolved"] = {
        "data_dir": str(config.resolved_data_dir()),
        "groups_dir": str(config.resolved_groups_dir()),
        "template_groups_dir": str(config.resolved_template_groups_dir()),
        "skills_dir": str(config.resolved_skills_dir()),
        "worker_command": config.resolved_worker_command(),
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def cmd_config_init(args: argparse.Namespace) -> None:
    """Write a default config.json into the data directory."""
    from nanohost.config import HostConfig, get_config_path, save_config

    path = get_config_path()
    if path.exists() and not getattr(args, "force", False):
        print(f"Config already exists: {path} (use --force to overwrite)", file=sys.stderr)
        sys.exit(1)

    save_config(HostConfig(), path)
    print(f"Config written: {path}")
