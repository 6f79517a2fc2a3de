# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""
Worker process supervision package.

Prepares per-group workspaces, spawns one worker process per turn, and
streams its marker-framed JSON output back to the caller.
"""

from __future__ import annotations

from nanohost.supervisor.output_chain import OnOutput, OutputChain
from nanohost.supervisor.protocol import (
    OUTPUT_END_MARKER,
    OUTPUT_START_MARKER,
    OutputProtocolCodec,
    extract_last_record,
    frame_record,
)
from nanohost.supervisor.runner import (
    OnProcess,
    ProcessSupervisor,
    RunPhase,
    RunState,
    StreamCapture,
    TimeoutGuard,
)
from nanohost.supervisor.workspace import (
    GroupWorkspace,
    WorkspacePreparer,
)

__all__ = [
    "OUTPUT_END_MARKER",
    "OUTPUT_START_MARKER",
    "GroupWorkspace",
    "OnOutput",
    "OnProcess",
    "OutputChain",
    "OutputProtocolCodec",
    "ProcessSupervisor",
    "RunPhase",
    "RunState",
    "StreamCapture",
    "TimeoutGuard",
    "WorkspacePreparer",
    "extract_last_record",
    "frame_record",
]
