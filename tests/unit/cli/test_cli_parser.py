"""Unit tests for the nanohost command line."""
# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from nanohost.cli.parser import build_parser, cli_main
from tests.helpers.workers import python_worker


@pytest.fixture(autouse=True)
def _quiet_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep the CLI away from the real .env and the global logging setup."""
    monkeypatch.chdir(tmp_path)
    with patch("dotenv.load_dotenv"), patch("nanohost.logging_config.setup_logging"):
        yield


def _write_config(data_dir: Path, payload: dict) -> None:
    (data_dir / "config.json").write_text(json.dumps(payload), encoding="utf-8")


class TestBuildParser:
    def test_run_arguments(self):
        args = build_parser().parse_args([
            "run", "family-chat", "--prompt", "hi", "--main",
            "--session-id", "s1", "--timeout", "90", "--no-stream",
        ])
        assert args.folder == "family-chat"
        assert args.prompt == "hi"
        assert args.main is True
        assert args.session_id == "s1"
        assert args.timeout == 90.0
        assert args.no_stream is True

    def test_run_requires_prompt(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "family-chat"])

    def test_no_command_prints_help(self, data_dir: Path, capsys: pytest.CaptureFixture):
        with pytest.raises(SystemExit) as exc:
            cli_main([])
        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out


class TestPrepareCommand:
    def test_prints_worker_env(self, data_dir: Path, capsys: pytest.CaptureFixture):
        cli_main(["--data-dir", str(data_dir), "prepare", "family-chat"])

        env = json.loads(capsys.readouterr().out)
        assert env["NANOCLAW_WORKSPACE_GROUP"].endswith("family-chat")
        assert Path(env["NANOCLAW_IPC_INPUT"]).is_dir()

    def test_invalid_folder_exits(self, data_dir: Path, capsys: pytest.CaptureFixture):
        with pytest.raises(SystemExit) as exc:
            cli_main(["prepare", "../escape"])
        assert exc.value.code == 1
        assert "Invalid group folder" in capsys.readouterr().err


class TestConfigShow:
    def test_prints_effective_config(self, data_dir: Path, capsys: pytest.CaptureFixture):
        _write_config(data_dir, {"assistant_name": "Nano"})

        cli_main(["config", "show"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["assistant_name"] == "Nano"
        assert payload["resolved"]["data_dir"] == str(data_dir.resolve())


class TestRunCommand:
    def test_streams_records_then_result(self, data_dir: Path, capsys: pytest.CaptureFixture):
        _write_config(data_dir, {"runner": {"worker_command": python_worker("""
            emit({"status": "success", "result": "part one"})
            emit({"status": "success", "result": "part two", "newSessionId": "s-cli"})
        """)}})

        with pytest.raises(SystemExit) as exc:
            cli_main(["run", "family-chat", "--prompt", "hi"])

        assert exc.value.code == 0
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [line["result"] for line in lines[:2]] == ["part one", "part two"]
        assert lines[-1] == {"status": "success", "result": None, "newSessionId": "s-cli"}

    def test_legacy_mode_failure_exit_code(self, data_dir: Path, capsys: pytest.CaptureFixture):
        _write_config(data_dir, {"runner": {"worker_command": python_worker("sys.exit(5)")}})

        with pytest.raises(SystemExit) as exc:
            cli_main(["run", "family-chat", "--prompt", "hi", "--no-stream"])

        assert exc.value.code == 1
        result = json.loads(capsys.readouterr().out.splitlines()[-1])
        assert result["error"] == "Worker exited with code 5: "

    def test_dotenv_credentials_reach_worker_over_stdin_only(
        self, data_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture,
    ):
        (tmp_path / ".env").write_text("ANTHROPIC_API_KEY=sk-dotenv\n", encoding="utf-8")
        # What load_dotenv() does for the real CLI.
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-dotenv")
        _write_config(data_dir, {"runner": {"worker_command": python_worker("""
            emit({"status": "success", "result": {
                "env_key": os.environ.get("ANTHROPIC_API_KEY"),
                "stdin_secrets": payload.get("secrets"),
            }})
        """)}})

        with pytest.raises(SystemExit) as exc:
            cli_main(["run", "family-chat", "--prompt", "hi"])

        assert exc.value.code == 0
        record = json.loads(capsys.readouterr().out.splitlines()[0])
        assert record["result"]["env_key"] is None
        assert record["result"]["stdin_secrets"] == {"ANTHROPIC_API_KEY": "sk-dotenv"}


class TestConfigInit:
    def test_writes_default_config(self, data_dir: Path, capsys: pytest.CaptureFixture):
        cli_main(["config", "init"])

        payload = json.loads((data_dir / "config.json").read_text(encoding="utf-8"))
        assert payload["assistant_name"] == "Andy"
        assert payload["runner"]["max_output_size"] == 10 * 1024 * 1024
        assert "Config written" in capsys.readouterr().out

    def test_refuses_to_overwrite(self, data_dir: Path, capsys: pytest.CaptureFixture):
        _write_config(data_dir, {"assistant_name": "Nano"})

        with pytest.raises(SystemExit) as exc:
            cli_main(["config", "init"])

        assert exc.value.code == 1
        assert "already exists" in capsys.readouterr().err
        payload = json.loads((data_dir / "config.json").read_text(encoding="utf-8"))
        assert payload == {"assistant_name": "Nano"}

    def test_force_overwrites(self, data_dir: Path):
        _write_config(data_dir, {"assistant_name": "Nano"})

        cli_main(["config", "init", "--force"])

        payload = json.loads((data_dir / "config.json").read_text(encoding="utf-8"))
        assert payload["assistant_name"] == "Andy"
