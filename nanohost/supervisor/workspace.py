# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""Per-group workspace preparation.

Builds the directory tree a worker runs against::

    {groups_dir}/{folder}/            group directory (worker cwd)
        CLAUDE.md                     synced from template if missing
        extra/                        optional, only if already present
        logs/                         one diagnostic file per run
    {groups_dir}/global/              shared memory (non-main groups only)
    {data_dir}/sessions/{folder}/.claude/
        settings.json                 written once, never overwritten
        skills/{skill}/               mirrored from the packaged skills
    {data_dir}/ipc/{folder}/{messages,tasks,input}/

Every step is idempotent.  Filesystem errors propagate to the caller.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nanohost.config import DEFAULT_ASSISTANT_NAME, HostConfig
from nanohost.group_folder import (
    GLOBAL_FOLDER,
    resolve_group_folder_path,
    resolve_group_ipc_path,
)
from nanohost.paths import get_ipc_root, get_sessions_dir
from nanohost.schemas import RegisteredGroup

logger = logging.getLogger(__name__)

TEMPLATE_FILENAME = "CLAUDE.md"
SETTINGS_FILENAME = "settings.json"
IPC_SUBDIRS = ("messages", "tasks", "input")

DEFAULT_SETTINGS: dict[str, Any] = {
    "env": {
        "CLAUDE_CODE_EXPERIMENTAL_AGENT_TEAMS": "1",
        "CLAUDE_CODE_ADDITIONAL_DIRECTORIES_CLAUDE_MD": "1",
        "CLAUDE_CODE_DISABLE_AUTO_MEMORY": "0",
    },
}

_TEMPLATE_HEADING_RE = re.compile(rf"^# {DEFAULT_ASSISTANT_NAME}$", re.MULTILINE)
_TEMPLATE_INLINE = f"You are {DEFAULT_ASSISTANT_NAME}"


# ── Workspace ───────────────────────────────────────────────────

@dataclass(frozen=True)
class GroupWorkspace:
    """Resolved paths for one worker invocation."""

    group_dir: Path
    global_dir: Path | None
    extra_dir: Path | None
    ipc_dir: Path
    config_dir: Path

    @property
    def ipc_input_dir(self) -> Path:
        return self.ipc_dir / "input"

    @property
    def logs_dir(self) -> Path:
        return self.group_dir / "logs"

    @property
    def home_dir(self) -> Path:
        """HOME for the worker: the parent of the ``.claude`` directory."""
        return self.config_dir.parent

    def worker_env(self, timezone: str) -> dict[str, str]:
        """Environment keys exposing this workspace to the worker."""
        return {
            "TZ": timezone,
            "HOME": str(self.home_dir),
            "NANOCLAW_WORKSPACE_GROUP": str(self.group_dir),
            "NANOCLAW_WORKSPACE_GLOBAL": str(self.global_dir) if self.global_dir else "",
            "NANOCLAW_WORKSPACE_EXTRA": str(self.extra_dir) if self.extra_dir else "",
            "NANOCLAW_IPC_DIR": str(self.ipc_dir),
            "NANOCLAW_IPC_INPUT": str(self.ipc_input_dir),
        }


def render_template(content: str, assistant_name: str) -> str:
    """Substitute *assistant_name* for the template's built-in name."""
    if assistant_name == DEFAULT_ASSISTANT_NAME:
        return content
    content = _TEMPLATE_HEADING_RE.sub(lambda _m: f"# {assistant_name}", content)
    return content.replace(_TEMPLATE_INLINE, f"You are {assistant_name}")


class WorkspacePreparer:
    """Materialize and resolve the workspace of a registered group."""

    def __init__(self, config: HostConfig) -> None:
        self._config = config
        data_dir = config.resolved_data_dir()
        self.groups_dir = config.resolved_groups_dir()
        self.sessions_dir = get_sessions_dir(data_dir)
        self.ipc_root = get_ipc_root(data_dir)
        self.template_groups_dir = config.resolved_template_groups_dir()
        self.skills_dir = config.resolved_skills_dir()

    def prepare(self, group: RegisteredGroup, is_main: bool) -> GroupWorkspace:
        group_dir = resolve_group_folder_path(self.groups_dir, group.folder)
        group_dir.mkdir(parents=True, exist_ok=True)

        for folder in (group.folder, GLOBAL_FOLDER):
            self._sync_template(folder)

        global_dir: Path | None = None
        if not is_main:
            candidate = self.groups_dir / GLOBAL_FOLDER
            if candidate.is_dir():
                global_dir = candidate

        config_dir = self.sessions_dir / group.folder / ".claude"
        config_dir.mkdir(parents=True, exist_ok=True)
        self._write_default_settings(config_dir)
        self._sync_skills(config_dir / "skills")

        ipc_dir = resolve_group_ipc_path(self.ipc_root, group.folder)
        for sub in IPC_SUBDIRS:
            (ipc_dir / sub).mkdir(parents=True, exist_ok=True)

        extra_candidate = group_dir / "extra"
        extra_dir = extra_candidate if extra_candidate.is_dir() else None

        return GroupWorkspace(
            group_dir=group_dir,
            global_dir=global_dir,
            extra_dir=extra_dir,
            ipc_dir=ipc_dir,
            config_dir=config_dir,
        )

    def _sync_template(self, folder: str) -> None:
        """Copy the packaged CLAUDE.md for *folder* if the group has none yet."""
        target_dir = self.groups_dir / folder
        target_md = target_dir / TEMPLATE_FILENAME
        template_md = self.template_groups_dir / folder / TEMPLATE_FILENAME
        if target_md.exists() or not template_md.is_file():
            return

        target_dir.mkdir(parents=True, exist_ok=True)
        content = template_md.read_text(encoding="utf-8")
        target_md.write_text(
            render_template(content, self._config.assistant_name), encoding="utf-8",
        )
        logger.info("Synced %s template for %s -> %s", TEMPLATE_FILENAME, folder, target_md)

    @staticmethod
    def _write_default_settings(config_dir: Path) -> None:
        settings_file = config_dir / SETTINGS_FILENAME
        if settings_file.exists():
            return
        settings_file.write_text(json.dumps(DEFAULT_SETTINGS, indent=2) + "\n", encoding="utf-8")
        logger.debug("Wrote default settings: %s", settings_file)

    def _sync_skills(self, skills_dst: Path) -> None:
        """Mirror every packaged skill directory, replacing older copies."""
        if not self.skills_dir.is_dir():
            return
        for skill_dir in sorted(self.skills_dir.iterdir()):
            if not skill_dir.is_dir():
                continue
            shutil.copytree(skill_dir, skills_dst / skill_dir.name, dirs_exist_ok=True)
