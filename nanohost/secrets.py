# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

"""Credential lookup for worker processes.

Secrets are read from the ``.env`` file on every call and handed to the
worker over stdin only.  They are never exported into ``os.environ`` so
that they cannot leak into the environment of unrelated subprocesses.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

SECRET_KEYS: tuple[str, ...] = ("CLAUDE_CODE_OAUTH_TOKEN", "ANTHROPIC_API_KEY")


def read_secrets(
    env_file: Path | None = None,
    keys: Iterable[str] = SECRET_KEYS,
) -> dict[str, str]:
    """Return the non-empty values of *keys* found in *env_file*.

    Defaults to ``.env`` in the current working directory.  A missing
    file yields an empty dict.
    """
    path = env_file if env_file is not None else Path.cwd() / ".env"
    if not path.is_file():
        logger.debug("No env file at %s; worker gets no secrets", path)
        return {}

    values = dotenv_values(path)
    secrets = {key: values[key] for key in keys if values.get(key)}
    logger.debug("Read %d secret(s) from %s", len(secrets), path)
    return secrets
