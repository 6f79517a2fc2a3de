# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
