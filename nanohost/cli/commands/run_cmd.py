"""CLI command for running a single worker turn."""

# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from nanohost.schemas import WorkerOutput

logger = logging.getLogger(__name__)


async def _print_output(output: WorkerOutput) -> None:
    print(json.dumps(output.to_dict(), ensure_ascii=False), flush=True)


def cmd_run(args: argparse.Namespace) -> None:
    """Run one turn and print streamed records, then the terminal result."""
    from nanohost.config import load_config
    from nanohost.exceptions import InvalidGroupFolderError
    from nanohost.schemas import GroupConfig, RegisteredGroup, WorkerInput
    from nanohost.supervisor import ProcessSupervisor

    config = load_config()
    group = RegisteredGroup(
        folder=args.folder,
        name=args.name or args.folder,
        config=GroupConfig(timeout_s=args.timeout) if args.timeout else None,
    )
    worker_input = WorkerInput(
        prompt=args.prompt,
        group_folder=args.folder,
        chat_jid=f"cli:{args.folder}",
        is_main=args.main,
        session_id=args.session_id,
        assistant_name=config.assistant_name,
    )

    def _on_process(proc: asyncio.subprocess.Process, name: str) -> None:
        logger.info("Worker %s started (PID %s)", name, proc.pid)

    supervisor = ProcessSupervisor(config)
    try:
        result = asyncio.run(
            supervisor.run(
                group,
                worker_input,
                _on_process,
                None if args.no_stream else _print_output,
            )
        )
    except InvalidGroupFolderError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result.to_dict(), ensure_ascii=False))
    sys.exit(0 if result.ok else 1)
