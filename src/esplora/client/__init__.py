"""HTTP clients for esplora.

Provides blocking and asyncio clients that wrap :mod:`httpx` with retry on
429/500/503 responses (exponential backoff, 256 ms doubling) and typed
response decoding.

Classes:
    :class:`BlockingClient` -- blocking client backed by :class:`httpx.Client`.
    :class:`AsyncClient` -- non-blocking client backed by :class:`httpx.AsyncClient`.

Both expose the same endpoint methods and accept a sleeper, so retry
timing can be replaced in tests::

    from esplora.client import BlockingClient, InstantSleeper

    client = BlockingClient(config, sleeper=InstantSleeper())
"""

from esplora.client.async_client import AsyncClient
from esplora.client.sleeper import (
    AsyncInstantSleeper,
    AsyncioSleeper,
    AsyncSleeper,
    BlockingSleeper,
    InstantSleeper,
    Sleeper,
)
from esplora.client.sync_client import BlockingClient

__all__ = [
    "AsyncClient",
    "AsyncInstantSleeper",
    "AsyncSleeper",
    "AsyncioSleeper",
    "BlockingClient",
    "BlockingSleeper",
    "InstantSleeper",
    "Sleeper",
]
