"""Sleep providers for the retry loop.

The retry algorithm only ever needs one thing from its execution model: a
way to wait for a given delay. :class:`Sleeper` is that capability for the
blocking client and :class:`AsyncSleeper` for the asyncio client.

:class:`InstantSleeper` and :class:`AsyncInstantSleeper` return at once and
record every requested delay, so retry timing can be asserted without
actually waiting.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Protocol, runtime_checkable


@runtime_checkable
class Sleeper(Protocol):
    """Blocks the calling thread for *delay* seconds."""

    def sleep(self, delay: float) -> None: ...


@runtime_checkable
class AsyncSleeper(Protocol):
    """Suspends the calling task for *delay* seconds."""

    def sleep(self, delay: float) -> Awaitable[None]: ...


class BlockingSleeper:
    """Default for the blocking client; waits with :func:`time.sleep`."""

    def sleep(self, delay: float) -> None:
        time.sleep(delay)


class AsyncioSleeper:
    """Suspends only the awaiting task; cancelling that task cancels the wait."""

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)


class InstantSleeper:
    """Returns immediately and appends each requested delay to ``delays``."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def sleep(self, delay: float) -> None:
        self.delays.append(delay)


class AsyncInstantSleeper:
    """Async :class:`InstantSleeper`: never suspends, records into ``delays``."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
