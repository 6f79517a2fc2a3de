# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""Scripted worker processes for supervisor tests.

Each helper returns a ``worker_command`` list that runs a small Python
program through ``sys.executable -c``.  The programs speak the real
stdout protocol, so the supervisor is exercised end to end.
"""

from __future__ import annotations

import sys
import textwrap

from nanohost.supervisor.protocol import OUTPUT_END_MARKER, OUTPUT_START_MARKER

_PRELUDE = f"""
import json, os, sys, time
START = {OUTPUT_START_MARKER!r}
END = {OUTPUT_END_MARKER!r}

def emit(record, pieces=1, pause=0.0):
    text = START + json.dumps(record) + END + "\\n"
    step = max(1, len(text) // pieces)
    for i in range(0, len(text), step):
        sys.stdout.write(text[i:i + step])
        sys.stdout.flush()
        if pause:
            time.sleep(pause)

payload = json.loads(sys.stdin.read() or "null")
"""


def python_worker(body: str) -> list[str]:
    """Command running *body* after the protocol prelude."""
    source = _PRELUDE + "\n" + textwrap.dedent(body)
    return [sys.executable, "-c", source]


def echo_input_worker() -> list[str]:
    """Streams back the received input document and selected environment."""
    return python_worker(
        """
        env = {k: v for k, v in os.environ.items()
               if k.startswith("NANOCLAW_")
               or k in ("HOME", "TZ", "ANTHROPIC_API_KEY", "CLAUDE_CODE_OAUTH_TOKEN")}
        emit({"status": "success", "result": {"input": payload, "env": env,
              "cwd": os.getcwd()}, "newSessionId": "sess-echo"})
        """
    )
