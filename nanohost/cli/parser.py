# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="nanohost - per-group agent worker host"
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Override runtime data directory (default: ~/.nanohost or NANOHOST_DATA_DIR)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Prepare ───────────────────────────────────────────
    p_prepare = sub.add_parser("prepare", help="Prepare a group workspace and print its paths")
    p_prepare.add_argument("folder", help="Group folder name")
    p_prepare.add_argument("--main", action="store_true", help="Treat as the main group")
    p_prepare.set_defaults(func=_lazy_prepare)

    # ── Run ───────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run one worker turn for a group")
    p_run.add_argument("folder", help="Group folder name")
    p_run.add_argument("--prompt", required=True, help="Prompt passed to the worker")
    p_run.add_argument("--name", default=None, help="Group display name (default: folder)")
    p_run.add_argument("--main", action="store_true", help="Treat as the main group")
    p_run.add_argument("--session-id", default=None, help="Resume this worker session")
    p_run.add_argument(
        "--timeout", type=float, default=None,
        help="Per-group timeout override in seconds",
    )
    p_run.add_argument(
        "--no-stream", action="store_true",
        help="Legacy mode: parse only the final record after exit",
    )
    p_run.set_defaults(func=_lazy_run)

    # ── Config ────────────────────────────────────────────
    p_config = sub.add_parser("config", help="Inspect or initialize configuration")
    config_sub = p_config.add_subparsers(dest="config_command")
    p_show = config_sub.add_parser("show", help="Print the effective configuration")
    p_show.set_defaults(func=_lazy_config_show)
    p_init = config_sub.add_parser("init", help="Write a default config.json")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing config.json")
    p_init.set_defaults(func=_lazy_config_init)

    return parser


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.data_dir:
        os.environ["NANOHOST_DATA_DIR"] = args.data_dir

    from nanohost.logging_config import setup_logging
    from nanohost.paths import get_logs_dir

    setup_logging(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        log_dir=get_logs_dir(),
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


# ── Lazy command loaders ──────────────────────────────────


def _lazy_prepare(args: argparse.Namespace) -> None:
    from nanohost.cli.commands.workspace_cmd import cmd_prepare

    cmd_prepare(args)


def _lazy_run(args: argparse.Namespace) -> None:
    from nanohost.cli.commands.run_cmd import cmd_run

    cmd_run(args)


def _lazy_config_show(args: argparse.Namespace) -> None:
    from nanohost.cli.commands.config_cmd import cmd_config_show

    cmd_config_show(args)


def _lazy_config_init(args: argparse.Namespace) -> None:
    from nanohost.cli.commands.config_cmd import cmd_config_init

    cmd_config_init(args)
