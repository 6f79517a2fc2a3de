"""Unit tests for nanohost.secrets."""
# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import os
from pathlib import Path

import pytest

from nanohost.secrets import read_secrets


class TestReadSecrets:
    def test_reads_only_known_keys(self, tmp_path: Path):
        env = tmp_path / ".env"
        env.write_text(
            "ANTHROPIC_API_KEY=sk-abc\nCLAUDE_CODE_OAUTH_TOKEN='oauth-xyz'\nUNRELATED=1\n",
            encoding="utf-8",
        )
        assert read_secrets(env) == {
            "ANTHROPIC_API_KEY": "sk-abc",
            "CLAUDE_CODE_OAUTH_TOKEN": "oauth-xyz",
        }

    def test_empty_values_dropped(self, tmp_path: Path):
        env = tmp_path / ".env"
        env.write_text("ANTHROPIC_API_KEY=\n", encoding="utf-8")
        assert read_secrets(env) == {}

    def test_missing_file(self, tmp_path: Path):
        assert read_secrets(tmp_path / "nope.env") == {}

    def test_defaults_to_cwd_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / ".env").write_text("ANTHROPIC_API_KEY=sk-cwd\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert read_secrets() == {"ANTHROPIC_API_KEY": "sk-cwd"}

    def test_not_exported_to_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        env = tmp_path / ".env"
        env.write_text("ANTHROPIC_API_KEY=sk-abc\n", encoding="utf-8")
        read_secrets(env)
        assert "ANTHROPIC_API_KEY" not in os.environ

    def test_custom_keys(self, tmp_path: Path):
        env = tmp_path / ".env"
        env.write_text("OTHER_TOKEN=t\nANTHROPIC_API_KEY=k\n", encoding="utf-8")
        assert read_secrets(env, keys=["OTHER_TOKEN"]) == {"OTHER_TOKEN": "t"}
