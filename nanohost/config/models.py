# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of nanohost, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Central configuration module for nanohost.

Defines Pydantic models for config.json and provides load / save helpers
with a module-level singleton cache.  The resolved :class:`HostConfig` is
passed explicitly to the workspace preparer and the process supervisor;
nothing else in the package reads configuration from module globals.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from nanohost.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ASSISTANT_NAME = "Andy"

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class RunnerConfig(BaseModel):
    """Worker process supervision limits."""

    timeout_s: float = 1800.0  # default absolute timeout (per-group override wins)
    idle_timeout_s: float = 1800.0  # idle-shutdown threshold of the host loop
    timeout_margin_s: float = 30.0  # added to idle_timeout_s as a floor
    kill_grace_s: float = 15.0  # SIGTERM -> SIGKILL escalation delay
    max_output_size: int = 10 * 1024 * 1024  # per-stream capture cap (chars)
    read_chunk_size: int = 8192
    output_queue_size: int = 64  # bound of the streamed-output queue
    worker_command: list[str] = []  # empty = node + default agent-runner

    @model_validator(mode="after")
    def _validate_limits(self) -> RunnerConfig:
        if self.kill_grace_s <= 0:
            raise ValueError(f"kill_grace_s must be positive (got {self.kill_grace_s})")
        if self.max_output_size <= 0:
            raise ValueError(f"max_output_size must be positive (got {self.max_output_size})")
        if self.output_queue_size <= 0:
            raise ValueError(
                f"output_queue_size must be positive (got {self.output_queue_size})"
            )
        if self.read_chunk_size <= 0:
            raise ValueError(f"read_chunk_size must be positive (got {self.read_chunk_size})")
        return self


class HostConfig(BaseModel):
    version: int = 1
    assistant_name: str = DEFAULT_ASSISTANT_NAME
    timezone: str = "UTC"
    log_level: str = "INFO"
    data_dir: Path | None = None
    groups_dir: Path | None = None
    template_groups_dir: Path | None = None
    skills_dir: Path | None = None
    runner: RunnerConfig = RunnerConfig()

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @property
    def is_verbose(self) -> bool:
        """Whether full worker stdout/stderr go into every run log."""
        return self.log_level.lower() in ("debug", "trace")

    # ── Resolution helpers ────────────────────────────────

    def resolved_data_dir(self) -> Path:
        if self.data_dir is not None:
            return self.data_dir
        from nanohost.paths import get_data_dir

        return get_data_dir()

    def resolved_groups_dir(self) -> Path:
        if self.groups_dir is not None:
            return self.groups_dir
        from nanohost.paths import get_groups_dir

        return get_groups_dir(self.resolved_data_dir())

    def resolved_template_groups_dir(self) -> Path:
        if self.template_groups_dir is not None:
            return self.template_groups_dir
        from nanohost.paths import DEFAULT_TEMPLATE_GROUPS_DIR

        return DEFAULT_TEMPLATE_GROUPS_DIR

    def resolved_skills_dir(self) -> Path:
        if self.skills_dir is not None:
            return self.skills_dir
        from nanohost.paths import DEFAULT_SKILLS_DIR

        return DEFAULT_SKILLS_DIR

    def resolved_worker_command(self) -> list[str]:
        if self.runner.worker_command:
            return list(self.runner.worker_command)
        from nanohost.paths import DEFAULT_AGENT_RUNNER_PATH

        return ["node", str(DEFAULT_AGENT_RUNNER_PATH)]


# ---------------------------------------------------------------------------
# Singleton cache
# ---------------------------------------------------------------------------

_config: HostConfig | None = None
_config_path: Path | None = None
_config_mtime: float = 0.0


def invalidate_cache() -> None:
    """Reset the module-level singleton cache."""
    global _config, _config_path, _config_mtime
    _config = None
    _config_path = None
    _config_mtime = 0.0


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def get_config_path(data_dir: Path | None = None) -> Path:
    """Return the path to config.json inside *data_dir*.

    If *data_dir* is not given, it is resolved via ``nanohost.paths.get_data_dir``
    (imported lazily to avoid circular imports).
    """
    if data_dir is None:
        from nanohost.paths import get_data_dir

        data_dir = get_data_dir()
    return data_dir / "config.json"


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _ms_env(name: str) -> float | None:
    """Read a millisecond duration from the environment as seconds."""
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw) / 1000.0
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return None


def apply_env_overrides(config: HostConfig) -> HostConfig:
    """Return a copy of *config* with deployment environment variables applied.

    Recognised variables: ``ASSISTANT_NAME``, ``TZ``, ``LOG_LEVEL``,
    ``CONTAINER_TIMEOUT`` / ``IDLE_TIMEOUT`` (milliseconds),
    ``CONTAINER_MAX_OUTPUT_SIZE`` and ``AGENT_RUNNER_PATH``.
    """
    updates: dict[str, Any] = {}
    runner_updates: dict[str, Any] = {}

    if name := os.environ.get("ASSISTANT_NAME"):
        updates["assistant_name"] = name
    if tz := os.environ.get("TZ"):
        updates["timezone"] = tz
    if level := os.environ.get("LOG_LEVEL"):
        updates["log_level"] = level

    if (timeout := _ms_env("CONTAINER_TIMEOUT")) is not None:
        runner_updates["timeout_s"] = timeout
    if (idle := _ms_env("IDLE_TIMEOUT")) is not None:
        runner_updates["idle_timeout_s"] = idle
    if raw_size := os.environ.get("CONTAINER_MAX_OUTPUT_SIZE"):
        try:
            runner_updates["max_output_size"] = int(raw_size)
        except ValueError:
            logger.warning("Ignoring non-integer CONTAINER_MAX_OUTPUT_SIZE=%r", raw_size)
    if runner_path := os.environ.get("AGENT_RUNNER_PATH"):
        runner_updates["worker_command"] = ["node", runner_path]

    if not updates and not runner_updates:
        return config

    data = config.model_dump()
    data.update(updates)
    data["runner"].update(runner_updates)
    try:
        return HostConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid environment override: {exc}") from exc


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> HostConfig:
    """Load configuration from disk, returning cached instance when possible.

    If *path* is ``None``, :func:`get_config_path` determines the location.
    When the file does not exist the default configuration is returned.
    Environment overrides are applied on top of the file contents.

    The cache is automatically invalidated when the file's mtime changes,
    so manual edits are picked up without restarting the host.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    if _config is not None and _config_path == path:
        try:
            disk_mtime = path.stat().st_mtime
        except OSError:
            disk_mtime = 0.0
        if disk_mtime == _config_mtime:
            return _config
        logger.debug("Config file changed on disk (mtime %.3f → %.3f); reloading", _config_mtime, disk_mtime)

    if path.is_file():
        logger.debug("Loading config from %s", path)
        try:
            data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
            config = HostConfig.model_validate(data)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse %s: %s", path, exc)
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
        except ValidationError as exc:
            logger.error("Invalid config in %s: %s", path, exc)
            raise ConfigError(f"Invalid config in {path}: {exc}") from exc
    else:
        logger.info("Config file not found at %s; using defaults", path)
        config = HostConfig()

    config = apply_env_overrides(config)

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
    return config


def save_config(config: HostConfig, path: Path | None = None) -> None:
    """Persist *config* to disk as pretty-printed JSON (mode 0o600).

    Updates the module-level singleton cache so subsequent :func:`load_config`
    calls return the freshly saved config.
    """
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    payload = config.model_dump(mode="json", exclude_none=True)
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")
    os.chmod(path, 0o600)

    logger.debug("Config saved to %s", path)

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
