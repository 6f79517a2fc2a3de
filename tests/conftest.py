# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for nanohost.

Provides filesystem isolation and config cache management so that each
test runs against its own temporary data directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nanohost.config import HostConfig, RunnerConfig, invalidate_cache
from nanohost.schemas import RegisteredGroup, WorkerInput


_DEPLOYMENT_ENV_VARS = (
    "ASSISTANT_NAME",
    "TZ",
    "LOG_LEVEL",
    "CONTAINER_TIMEOUT",
    "IDLE_TIMEOUT",
    "CONTAINER_MAX_OUTPUT_SIZE",
    "AGENT_RUNNER_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep deployment variables of the developer's shell out of the tests."""
    for name in _DEPLOYMENT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated nanohost runtime data directory.

    - Redirects ``NANOHOST_DATA_DIR`` to a temp directory
    - Invalidates the config cache before and after the test
    """
    d = tmp_path / ".nanohost"
    d.mkdir()
    monkeypatch.setenv("NANOHOST_DATA_DIR", str(d))
    invalidate_cache()

    yield d

    invalidate_cache()


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Packaged-template stand-in (``groups/<folder>/CLAUDE.md``)."""
    d = tmp_path / "templates"
    d.mkdir()
    return d


@pytest.fixture
def skills_dir(tmp_path: Path) -> Path:
    """Packaged-skills stand-in (``container/skills``)."""
    d = tmp_path / "skills"
    d.mkdir()
    return d


@pytest.fixture
def host_config(data_dir: Path, template_dir: Path, skills_dir: Path) -> HostConfig:
    """HostConfig rooted in the temp data dir with short, test-friendly limits."""
    return HostConfig(
        data_dir=data_dir,
        template_groups_dir=template_dir,
        skills_dir=skills_dir,
        runner=RunnerConfig(
            timeout_s=5.0,
            idle_timeout_s=0.0,
            timeout_margin_s=0.0,
            kill_grace_s=2.0,
        ),
    )


@pytest.fixture
def group() -> RegisteredGroup:
    return RegisteredGroup(folder="family-chat", name="Family Chat")


@pytest.fixture
def worker_input() -> WorkerInput:
    return WorkerInput(
        prompt="What's for dinner?",
        group_folder="family-chat",
        chat_jid="120363@g.us",
    )
