# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""Host-side supervision of per-group agent worker processes."""

__version__ = "0.1.0"
