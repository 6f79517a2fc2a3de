# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0
"""In-order delivery of streamed worker records.

Each parsed record is put on a bounded queue that a single consumer task
drains, awaiting the caller's callback for one record before taking the
next.  Callbacks therefore observe records in parse order no matter how
long each one takes, and a slow callback applies backpressure to the
stdout reader once the queue is full.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from nanohost.schemas import WorkerOutput

logger = logging.getLogger(__name__)

OnOutput = Callable[[WorkerOutput], Awaitable[None]]


class _Sentinel:
    """Queue termination marker."""

    __slots__ = ()


_SENTINEL = _Sentinel()


class OutputChain:
    """Single-consumer queue that feeds records to *callback* one at a time."""

    def __init__(self, callback: OnOutput, maxsize: int = 64, label: str = "") -> None:
        self._callback = callback
        self._queue: asyncio.Queue[WorkerOutput | _Sentinel] = asyncio.Queue(maxsize=maxsize)
        self._label = label
        self._consumer: asyncio.Task[None] | None = None
        self._closed = False
        self.delivered = 0
        self.failed = 0

    def start(self) -> None:
        if self._consumer is None:
            self._consumer = asyncio.create_task(
                self._consume(),
                name=f"output-chain-{self._label}" if self._label else "output-chain",
            )

    async def push(self, output: WorkerOutput) -> None:
        """Queue *output* for delivery; waits while the queue is full."""
        if self._closed:
            raise RuntimeError("Output chain already drained")
        self.start()
        await self._queue.put(output)

    async def drain(self) -> None:
        """Wait until every pushed record has been delivered.

        Safe to call more than once; no records may be pushed afterwards.
        """
        if not self._closed:
            self._closed = True
            if self._consumer is None:
                return
            await self._queue.put(_SENTINEL)
        if self._consumer is not None:
            await self._consumer

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            if isinstance(item, _Sentinel):
                return
            try:
                await self._callback(item)
                self.delivered += 1
            except Exception:
                self.failed += 1
                logger.exception(
                    "Streaming output callback failed%s",
                    f" for {self._label}" if self._label else "",
                )
