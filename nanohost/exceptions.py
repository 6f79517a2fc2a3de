from __future__ import annotations
# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of nanohost, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for nanohost.

All domain-specific exceptions derive from :class:`NanoHostError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except NanoHostError as e:
        logger.error("Domain error: %s", e)

Worker failures (spawn errors, non-zero exits, timeouts, unparseable
output) are *not* raised: the supervisor reports them as an error
``WorkerOutput`` so that every invocation resolves exactly once.
"""


class NanoHostError(Exception):
    """Base exception for all nanohost errors."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(NanoHostError):
    """Configuration file could not be parsed or failed validation."""


# ── Workspace ────────────────────────────────────────────────


class WorkspaceError(NanoHostError):
    """Group workspace errors."""


class InvalidGroupFolderError(WorkspaceError):
    """Group folder name is malformed, reserved, or escapes its base directory."""


# ── Worker protocol ──────────────────────────────────────────


class ProtocolError(NanoHostError):
    """A framed record decoded as JSON but is not a valid worker output."""
