"""
Process supervisor: runs one worker turn for a registered group.
"""

# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import codecs
import json
import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nanohost.config import HostConfig
from nanohost.exceptions import ProtocolError
from nanohost.logging_config import bind_run_context, clear_run_context
from nanohost.schemas import RegisteredGroup, WorkerInput, WorkerOutput
from nanohost.secrets import SECRET_KEYS, read_secrets
from nanohost.supervisor.output_chain import OnOutput, OutputChain
from nanohost.supervisor.protocol import OutputProtocolCodec, extract_last_record
from nanohost.supervisor.run_log import RunLogRecord, write_run_log
from nanohost.supervisor.workspace import GroupWorkspace, WorkspacePreparer

logger = logging.getLogger(__name__)

OnProcess = Callable[[asyncio.subprocess.Process, str], Any]
SecretsProvider = Callable[[], dict[str, str]]

STDERR_TAIL_CHARS = 200


def _worker_environ(workspace_env: dict[str, str]) -> dict[str, str]:
    """Host environment plus *workspace_env*, minus credentials.

    Credentials only travel over stdin, even when a ``.env`` loader has put
    them into the host environment.
    """
    env = {k: v for k, v in os.environ.items() if k not in SECRET_KEYS}
    env.update(workspace_env)
    return env


# ── Run State ──────────────────────────────────────────────────────

class RunPhase(Enum):
    """Lifecycle of a single invocation."""
    SPAWNING = "spawning"          # Creating the worker process
    RUNNING = "running"            # Streaming stdout/stderr
    CLOSING = "closing"            # Worker exited on its own
    TIMED_OUT = "timed_out"        # Worker exited after a timeout kill
    SPAWN_FAILED = "spawn_failed"  # Process could not be created
    RESOLVED = "resolved"          # Terminal output produced


class StreamCapture:
    """Append-only text buffer that stops growing at *limit* characters."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._parts: list[str] = []
        self._size = 0
        self.truncated = False

    def __len__(self) -> int:
        return self._size

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def append(self, text: str) -> bool:
        """Buffer *text*; returns True on the call that hits the limit."""
        if self.truncated or not text:
            return False
        remaining = self._limit - self._size
        if len(text) > remaining:
            if remaining > 0:
                self._parts.append(text[:remaining])
                self._size += remaining
            self.truncated = True
            return True
        self._parts.append(text)
        self._size += len(text)
        return False


@dataclass
class RunState:
    """Mutable state owned by exactly one :meth:`ProcessSupervisor.run` call."""

    stdout: StreamCapture
    stderr: StreamCapture
    codec: OutputProtocolCodec | None = None
    chain: OutputChain | None = None
    phase: RunPhase = RunPhase.SPAWNING
    new_session_id: str | None = None
    had_streaming_output: bool = False
    timed_out: bool = False
    records_streamed: int = 0
    transitions: list[RunPhase] = field(default_factory=list)

    def enter(self, phase: RunPhase) -> None:
        logger.debug("Run phase %s -> %s", self.phase.value, phase.value)
        self.transitions.append(phase)
        self.phase = phase


# ── Timeout Guard ──────────────────────────────────────────────────

class TimeoutGuard:
    """
    Idle timer with SIGTERM -> SIGKILL escalation.

    Armed when the worker is spawned and re-armed on every parsed record,
    so only silence (not long useful runs) triggers it.
    """

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        timeout_s: float,
        kill_grace_s: float,
        on_timeout: Callable[[], None],
        label: str = "",
    ) -> None:
        self._proc = proc
        self._timeout_s = timeout_s
        self._kill_grace_s = kill_grace_s
        self._on_timeout = on_timeout
        self._label = label
        self._loop = asyncio.get_running_loop()
        self._timer: asyncio.TimerHandle | None = None
        self._kill_timer: asyncio.TimerHandle | None = None
        self.fired = False

    def arm(self) -> None:
        """(Re)start the idle timer.  No-op once the timeout has fired."""
        if self.fired:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self._timeout_s, self._fire)

    reset = arm

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._kill_timer is not None:
            self._kill_timer.cancel()
            self._kill_timer = None

    def _fire(self) -> None:
        self._timer = None
        self.fired = True
        self._on_timeout()
        logger.error("Worker timeout, sending SIGTERM: %s", self._label)
        try:
            self._proc.terminate()
        except ProcessLookupError:
            return
        self._kill_timer = self._loop.call_later(self._kill_grace_s, self._escalate)

    def _escalate(self) -> None:
        self._kill_timer = None
        if self._proc.returncode is not None:
            return
        logger.warning("Worker ignored SIGTERM, force killing: %s", self._label)
        try:
            self._proc.kill()
        except ProcessLookupError:
            pass


# ── Process Supervisor ─────────────────────────────────────────────

class ProcessSupervisor:
    """
    Spawns one worker per turn and resolves exactly one :class:`WorkerOutput`.

    Worker failures never raise: spawn errors, non-zero exits, timeouts,
    unparseable output and secret lookup failures all come back as
    ``status="error"`` results.
    Only workspace preparation errors (filesystem, invalid group folder)
    propagate to the caller.
    """

    def __init__(
        self,
        config: HostConfig,
        preparer: WorkspacePreparer | None = None,
        secrets_provider: SecretsProvider = read_secrets,
    ) -> None:
        self.config = config
        self.preparer = preparer or WorkspacePreparer(config)
        self._secrets_provider = secrets_provider

    def timeouts_for(self, group: RegisteredGroup) -> tuple[float, float]:
        """Return ``(configured, effective)`` timeouts in seconds for *group*.

        The effective timeout never drops below the host's idle-shutdown
        threshold plus the safety margin.
        """
        runner = self.config.runner
        configured = group.timeout_override or runner.timeout_s
        effective = max(configured, runner.idle_timeout_s + runner.timeout_margin_s)
        return configured, effective

    async def run(
        self,
        group: RegisteredGroup,
        worker_input: WorkerInput,
        on_process: OnProcess,
        on_output: OnOutput | None = None,
    ) -> WorkerOutput:
        """
        Run one worker turn.

        Args:
            group: The registered group whose workspace is used.
            worker_input: Input document; its ``secrets`` field is filled
                for the stdin write and cleared again right after.
            on_process: Called with ``(process, process_name)`` right after spawn.
            on_output: If given, awaited for every streamed record, strictly
                in order (streaming mode).  Without it the final record is
                parsed from the captured stdout (legacy mode).

        Returns:
            The terminal WorkerOutput.
        """
        workspace = self.preparer.prepare(group, worker_input.is_main)
        process_name = f"worker-{group.folder}-{int(time.time() * 1000)}"

        bind_run_context(process_name, group.folder)
        try:
            return await self._run(
                group, worker_input, workspace, process_name, on_process, on_output,
            )
        finally:
            clear_run_context()

    async def _run(
        self,
        group: RegisteredGroup,
        worker_input: WorkerInput,
        workspace: GroupWorkspace,
        process_name: str,
        on_process: OnProcess,
        on_output: OnOutput | None,
    ) -> WorkerOutput:
        runner = self.config.runner
        command = self.config.resolved_worker_command()
        start_time = time.monotonic()

        logger.info(
            "Spawning worker: group=%s process=%s main=%s command=%s",
            group.name, process_name, worker_input.is_main, " ".join(command),
        )

        state = RunState(
            stdout=StreamCapture(runner.max_output_size),
            stderr=StreamCapture(runner.max_output_size),
        )
        if on_output is not None:
            state.codec = OutputProtocolCodec(max_buffer=runner.max_output_size)
            state.chain = OutputChain(on_output, maxsize=runner.output_queue_size, label=process_name)

        try:
            secrets = self._secrets_provider()
        except Exception as e:
            logger.exception("Failed to read worker secrets: group=%s process=%s", group.name, process_name)
            state.enter(RunPhase.RESOLVED)
            return WorkerOutput.failure(f"Failed to read worker secrets: {e}")

        workspace.logs_dir.mkdir(parents=True, exist_ok=True)
        env = _worker_environ(workspace.worker_env(self.config.timezone))

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(workspace.group_dir),
                env=env,
            )
        except OSError as e:
            state.enter(RunPhase.SPAWN_FAILED)
            logger.error("Worker spawn error: group=%s process=%s error=%s", group.name, process_name, e)
            state.enter(RunPhase.RESOLVED)
            return WorkerOutput.failure(f"Worker spawn error: {e}")

        state.enter(RunPhase.RUNNING)
        try:
            on_process(proc, process_name)
        except Exception:
            logger.exception("on_process callback failed for %s", process_name)

        configured_timeout, effective_timeout = self.timeouts_for(group)

        def _mark_timed_out() -> None:
            state.timed_out = True

        guard = TimeoutGuard(
            proc, effective_timeout, runner.kill_grace_s, _mark_timed_out, label=process_name,
        )
        guard.arm()

        try:
            await asyncio.gather(
                self._write_input(proc, worker_input, secrets),
                self._read_stdout(proc, state, guard),
                self._read_stderr(proc, state, group),
            )
            exit_code = await proc.wait()
        finally:
            guard.cancel()
            if proc.returncode is None:
                logger.warning("Killing orphaned worker: %s (PID %s)", process_name, proc.pid)
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass

        duration_ms = (time.monotonic() - start_time) * 1000

        try:
            return await self._resolve(
                group, workspace, process_name, state, exit_code, duration_ms,
                configured_timeout, streaming=on_output is not None,
            )
        finally:
            if state.chain is not None:
                await state.chain.drain()
            state.enter(RunPhase.RESOLVED)

    # ── Input / Output ─────────────────────────────────────────

    async def _write_input(
        self,
        proc: asyncio.subprocess.Process,
        worker_input: WorkerInput,
        secrets: dict[str, str],
    ) -> None:
        """Write the input document (with secrets) to stdin, then close it."""
        assert proc.stdin is not None
        try:
            worker_input.secrets = secrets
            payload = json.dumps(worker_input.to_dict()).encode("utf-8")
            proc.stdin.write(payload)
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning("Worker closed stdin before input was written: %s", e)
        finally:
            worker_input.secrets = None
            proc.stdin.close()

    async def _read_stdout(
        self,
        proc: asyncio.subprocess.Process,
        state: RunState,
        guard: TimeoutGuard,
    ) -> None:
        assert proc.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        chunk_size = self.config.runner.read_chunk_size
        while True:
            chunk = await proc.stdout.read(chunk_size)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                await self._on_stdout_text(text, state, guard)
            if not chunk:
                break

    async def _on_stdout_text(self, text: str, state: RunState, guard: TimeoutGuard) -> None:
        if state.stdout.append(text):
            logger.warning("Worker stdout truncated at %d chars", len(state.stdout))

        if state.codec is None or state.chain is None:
            return

        for record in state.codec.feed(text):
            try:
                output = WorkerOutput.from_dict(record)
            except ProtocolError as e:
                # Not worker output; the timeout stays armed.
                logger.warning("Ignoring malformed streamed record: %s", e)
                continue
            if output.new_session_id:
                state.new_session_id = output.new_session_id
            state.had_streaming_output = True
            state.records_streamed += 1
            guard.reset()
            await state.chain.push(output)

    async def _read_stderr(
        self,
        proc: asyncio.subprocess.Process,
        state: RunState,
        group: RegisteredGroup,
    ) -> None:
        assert proc.stderr is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        chunk_size = self.config.runner.read_chunk_size
        while True:
            chunk = await proc.stderr.read(chunk_size)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                for line in text.strip().splitlines():
                    if line:
                        logger.debug("[%s] %s", group.folder, line)
                if state.stderr.append(text):
                    logger.warning("Worker stderr truncated at %d chars", len(state.stderr))
            if not chunk:
                break

    # ── Resolution ─────────────────────────────────────────────

    async def _resolve(
        self,
        group: RegisteredGroup,
        workspace: GroupWorkspace,
        process_name: str,
        state: RunState,
        exit_code: int,
        duration_ms: float,
        configured_timeout: float,
        streaming: bool,
    ) -> WorkerOutput:
        if state.timed_out:
            state.enter(RunPhase.TIMED_OUT)
            if state.had_streaming_output:
                logger.info(
                    "Worker timed out after output (idle cleanup): group=%s duration=%.0fms code=%s",
                    group.name, duration_ms, exit_code,
                )
                assert state.chain is not None
                await state.chain.drain()
                return WorkerOutput.success(new_session_id=state.new_session_id)

            logger.error(
                "Worker timed out with no output: group=%s duration=%.0fms",
                group.name, duration_ms,
            )
            return WorkerOutput.failure(f"Worker timed out after {configured_timeout:g}s")

        state.enter(RunPhase.CLOSING)
        log_file = write_run_log(
            workspace.logs_dir,
            RunLogRecord(
                group_name=group.name,
                process_name=process_name,
                duration_ms=duration_ms,
                exit_code=exit_code,
                stdout=state.stdout.text,
                stderr=state.stderr.text,
                stdout_truncated=state.stdout.truncated,
                stderr_truncated=state.stderr.truncated,
            ),
            verbose=self.config.is_verbose,
        )

        if exit_code != 0:
            logger.error(
                "Worker exited with error: group=%s code=%s duration=%.0fms log=%s",
                group.name, exit_code, duration_ms, log_file,
            )
            tail = state.stderr.text[-STDERR_TAIL_CHARS:]
            return WorkerOutput.failure(f"Worker exited with code {exit_code}: {tail}")

        if streaming:
            assert state.chain is not None
            await state.chain.drain()
            logger.info(
                "Worker completed (streaming mode): group=%s duration=%.0fms records=%d session=%s",
                group.name, duration_ms, state.records_streamed, state.new_session_id,
            )
            return WorkerOutput.success(new_session_id=state.new_session_id)

        return self._parse_final_output(group, state, duration_ms)

    @staticmethod
    def _parse_final_output(
        group: RegisteredGroup, state: RunState, duration_ms: float,
    ) -> WorkerOutput:
        """Legacy mode: the last framed record (or last line) is the result."""
        stdout = state.stdout.text
        json_str = extract_last_record(stdout)
        try:
            output = WorkerOutput.from_dict(json.loads(json_str))
        except (json.JSONDecodeError, ProtocolError) as e:
            logger.error(
                "Failed to parse worker output: group=%s error=%s\n--- stdout ---\n%s\n--- stderr ---\n%s",
                group.name, e, stdout, state.stderr.text,
            )
            return WorkerOutput.failure(f"Failed to parse worker output: {e}", raw_output=stdout)

        logger.info(
            "Worker completed: group=%s duration=%.0fms status=%s",
            group.name, duration_ms, output.status,
        )
        return output
