"""esplora -- blocking and asyncio client for Esplora blockchain-indexing APIs.

The package queries an Esplora-style REST service (blockstream.info,
mempool.space, a self-hosted electrs) and decodes the answers into typed
values: consensus-encoded transactions and block headers, pydantic models
for the JSON documents, and plain integers / hashes for the text endpoints.

Typical usage::

    from esplora import Builder, convert_fee_rate

    client = Builder("https://blockstream.info/api").build_blocking()
    rate = convert_fee_rate(6, client.fee_estimates())

Modules:
    app: Typer command line entry point.
    client: Blocking and asyncio clients, retry policy, decoding pipeline.
    config: Builder, header validation and environment resolution.
    consensus: Transaction and block header wire format.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes for the command line.
    fees: Fee-rate selection.
    models: Pydantic models for configuration and API documents.
    output: stdout/stderr formatting system with Rich support.
    paths: Endpoint path construction.
"""

__version__ = "0.1.0"

from esplora.client import AsyncClient, BlockingClient  # noqa: E402
from esplora.config import Builder, config_from_env  # noqa: E402
from esplora.fees import convert_fee_rate  # noqa: E402
from esplora.models import ClientConfig  # noqa: E402

__all__ = [
    "AsyncClient",
    "BlockingClient",
    "Builder",
    "ClientConfig",
    "__version__",
    "config_from_env",
    "convert_fee_rate",
]
