"""Unit tests for group folder validation and resolution."""
# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path

import pytest

from nanohost.exceptions import InvalidGroupFolderError, WorkspaceError
from nanohost.group_folder import (
    assert_valid_group_folder,
    is_valid_group_folder,
    resolve_group_folder_path,
    resolve_group_ipc_path,
)


class TestIsValidGroupFolder:
    @pytest.mark.parametrize("folder", ["main", "family-chat", "team_42", "A" * 64])
    def test_valid(self, folder: str):
        assert is_valid_group_folder(folder)

    @pytest.mark.parametrize(
        "folder",
        ["", " main", "main ", "../x", "a/b", "-lead", ".hidden", "A" * 65, "global", "GLOBAL"],
    )
    def test_invalid(self, folder: str):
        assert not is_valid_group_folder(folder)


class TestResolve:
    def test_resolves_under_base(self, tmp_path: Path):
        assert resolve_group_folder_path(tmp_path, "main") == (tmp_path / "main").resolve()
        assert resolve_group_ipc_path(tmp_path, "main") == (tmp_path / "main").resolve()

    def test_traversal_rejected(self, tmp_path: Path):
        with pytest.raises(InvalidGroupFolderError):
            resolve_group_folder_path(tmp_path, "..")

    def test_error_is_workspace_error(self):
        with pytest.raises(WorkspaceError, match="Invalid group folder"):
            assert_valid_group_folder("a/b")
