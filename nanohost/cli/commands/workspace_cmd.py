"""CLI command for preparing a group workspace."""

# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import json
import sys


def cmd_prepare(args: argparse.Namespace) -> None:
    """Create (or refresh) a group's workspace and print the resolved paths."""
    from nanohost.config import load_config
    from nanohost.exceptions import InvalidGroupFolderError
    from nanohost.schemas import RegisteredGroup
    from nanohost.supervisor import WorkspacePreparer

    config = load_config()
    group = RegisteredGroup(folder=args.folder, name=args.folder)
    try:
        workspace = WorkspacePreparer(config).prepare(group, is_main=args.main)
    except InvalidGroupFolderError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(workspace.worker_env(config.timezone), indent=2))
