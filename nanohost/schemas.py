from __future__ import annotations
# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of nanohost, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Data types crossing the host / worker boundary.

The worker is an external program, so the wire documents use its
camelCase keys; Python attributes stay snake_case.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel

from nanohost.exceptions import ProtocolError


# ── Registered groups ─────────────────────────────────────


class GroupConfig(BaseModel):
    """Per-group overrides.  None = use the host default."""

    timeout_s: float | None = None


class RegisteredGroup(BaseModel):
    """A chat/group known to the host registry (read-only to the supervisor)."""

    folder: str  # unique; workspace key
    name: str  # display name
    trigger: str = ""
    added_at: str | None = None
    config: GroupConfig | None = None

    @property
    def timeout_override(self) -> float | None:
        if self.config and self.config.timeout_s:
            return self.config.timeout_s
        return None


# ── Worker input ──────────────────────────────────────────


@dataclass
class WorkerInput:
    """Input document written to the worker's stdin.

    ``secrets`` is transient: the supervisor fills it in just before the
    write and clears it immediately afterwards, so it never reaches a log
    line or an error message.
    """

    prompt: str
    group_folder: str
    chat_jid: str = ""
    is_main: bool = False
    session_id: str | None = None
    is_scheduled_task: bool = False
    assistant_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    secrets: dict[str, str] | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Wire document (camelCase); ``extra`` keys are merged at top level."""
        d: dict[str, Any] = dict(self.extra)
        d.update({
            "prompt": self.prompt,
            "groupFolder": self.group_folder,
            "chatJid": self.chat_jid,
            "isMain": self.is_main,
        })
        if self.session_id is not None:
            d["sessionId"] = self.session_id
        if self.is_scheduled_task:
            d["isScheduledTask"] = True
        if self.assistant_name:
            d["assistantName"] = self.assistant_name
        if self.secrets:
            d["secrets"] = dict(self.secrets)
        return d


# ── Worker output ─────────────────────────────────────────

WorkerStatus = Literal["success", "error"]
_VALID_STATUSES = frozenset({"success", "error"})


@dataclass
class WorkerOutput:
    """Tagged worker result: a streamed record or the terminal outcome."""

    status: WorkerStatus
    result: Any = None
    error: str | None = None
    new_session_id: str | None = None
    raw_output: str | None = field(default=None, repr=False)  # legacy parse failures only

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls, result: Any = None, new_session_id: str | None = None) -> WorkerOutput:
        return cls(status="success", result=result, new_session_id=new_session_id)

    @classmethod
    def failure(cls, error: str, *, raw_output: str | None = None) -> WorkerOutput:
        return cls(status="error", result=None, error=error, raw_output=raw_output)

    @classmethod
    def from_dict(cls, data: Any) -> WorkerOutput:
        """Build from a decoded protocol record.

        Raises:
            ProtocolError: If *data* is not an object or has no valid status.
        """
        if not isinstance(data, dict):
            raise ProtocolError(f"Expected a JSON object, got {type(data).__name__}")
        status = data.get("status")
        if status not in _VALID_STATUSES:
            raise ProtocolError(f"Invalid status: {status!r}")
        session_id = data.get("newSessionId", data.get("new_session_id"))
        error = data.get("error")
        return cls(
            status=status,
            result=data.get("result"),
            error=str(error) if error is not None else None,
            new_session_id=session_id or None,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"status": self.status, "result": self.result}
        if self.error is not None:
            d["error"] = self.error
        if self.new_session_id is not None:
            d["newSessionId"] = self.new_session_id
        return d
