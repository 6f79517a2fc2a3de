# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of nanohost, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Group folder name validation and path resolution.

Group folders become directory names under several roots (groups, ipc,
sessions), so they are validated before any filesystem access.
"""

from __future__ import annotations

import re
from pathlib import Path

from nanohost.exceptions import InvalidGroupFolderError

GLOBAL_FOLDER = "global"

_GROUP_FOLDER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")
_RESERVED_FOLDERS = frozenset({GLOBAL_FOLDER})


def is_valid_group_folder(folder: str) -> bool:
    if not folder or folder != folder.strip():
        return False
    if not _GROUP_FOLDER_RE.fullmatch(folder):
        return False
    return folder.lower() not in _RESERVED_FOLDERS


def assert_valid_group_folder(folder: str) -> None:
    if not is_valid_group_folder(folder):
        raise InvalidGroupFolderError(f"Invalid group folder: {folder!r}")


def _resolve_within(base: Path, folder: str) -> Path:
    assert_valid_group_folder(folder)
    base_resolved = base.resolve()
    target = (base_resolved / folder).resolve()
    if not target.is_relative_to(base_resolved):
        raise InvalidGroupFolderError(f"Path escapes base directory: {target}")
    return target


def resolve_group_folder_path(groups_dir: Path, folder: str) -> Path:
    """Return ``groups_dir/<folder>`` after validating *folder*."""
    return _resolve_within(groups_dir, folder)


def resolve_group_ipc_path(ipc_root: Path, folder: str) -> Path:
    """Return ``ipc_root/<folder>`` after validating *folder*."""
    return _resolve_within(ipc_root, folder)
