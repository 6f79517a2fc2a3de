# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from nanohost.config.models import (
    DEFAULT_ASSISTANT_NAME,
    HostConfig,
    RunnerConfig,
    apply_env_overrides,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)

__all__ = [
    "DEFAULT_ASSISTANT_NAME",
    "HostConfig",
    "RunnerConfig",
    "apply_env_overrides",
    "get_config_path",
    "invalidate_cache",
    "load_config",
    "save_config",
]
