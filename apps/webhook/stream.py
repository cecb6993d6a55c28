"""Ordered update stream and the shutdown signal.

Request handlers push decoded updates into :class:`UpdateStream`; a single
consumer iterates it with ``async for``.  The queue is unbounded: producers
never wait, and a consumer that falls behind makes memory grow without any
backpressure reaching the platform.

Shutdown is a single-shot signal split into two handles.  Whoever may request
shutdown holds the :class:`StopToken`; whoever must react holds the
:class:`StopFlag`.  Both refer to the same underlying event, so handing the
flag to several components shares state rather than copying it.
"""

from __future__ import annotations

import asyncio
from typing import Tuple

from lib.contracts.update import Update


class StreamClosed(RuntimeError):
    """Raised when pushing into a stream that has already been closed."""


class StopFlag:
    def __init__(self, event: asyncio.Event):
        self._event = event

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class StopToken:
    def __init__(self, event: asyncio.Event):
        self._event = event

    def stop(self) -> None:
        """Signal shutdown.  Calling it again has no further effect."""

        self._event.set()

    @property
    def stopped(self) -> bool:
        return self._event.is_set()


def stop_pair() -> Tuple[StopToken, StopFlag]:
    event = asyncio.Event()
    return StopToken(event), StopFlag(event)


_END = object()


class UpdateStream:
    """Multiple-producer, single-consumer queue of updates.

    Updates come out in the order they were pushed.  :meth:`close` appends an
    end marker behind everything already queued, so iteration stops only once
    the queue has been drained.  A finished stream stays finished.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._exhausted = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize() - (1 if self._closed and not self._exhausted else 0)

    def push(self, update: Update) -> None:
        if self._closed:
            raise StreamClosed("update stream is closed")
        self._queue.put_nowait(update)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> "UpdateStream":
        return self

    async def __anext__(self) -> Update:
        if self._exhausted:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._exhausted = True
            raise StopAsyncIteration
        return item


__all__ = ["StopFlag", "StopToken", "StreamClosed", "UpdateStream", "stop_pair"]
