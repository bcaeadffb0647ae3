"""Client configuration: fluent builder, header validation, environment lookup.

This module is the only place where connection settings are assembled:

* :class:`Builder` -- fluent construction of a
  :class:`~esplora.models.ClientConfig` and of the clients built from it.
* :func:`validate_headers` -- normalises custom header names to lowercase
  and rejects names or values that are not valid on the wire. Called by
  both clients at construction time.
* :func:`config_from_env` -- precedence resolution used by the command
  line: explicit arguments, then ``ESPLORA_*`` environment variables,
  then built-in defaults.
"""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic import ValidationError

from esplora.exceptions import ConfigError, InvalidHeaderNameError, InvalidHeaderValueError
from esplora.models import BASE_BACKOFF, DEFAULT_MAX_RETRIES, ClientConfig

if TYPE_CHECKING:
    from esplora.client.async_client import AsyncClient
    from esplora.client.sleeper import AsyncSleeper, Sleeper
    from esplora.client.sync_client import BlockingClient

DEFAULT_BASE_URL = "https://blockstream.info/api"

ENV_URL = "ESPLORA_URL"
ENV_PROXY = "ESPLORA_PROXY"
ENV_TIMEOUT = "ESPLORA_TIMEOUT"
ENV_MAX_RETRIES = "ESPLORA_MAX_RETRIES"

# RFC 7230 token characters, restricted to lowercase.
_HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9a-z]+$")
_HEADER_VALUE_RE = re.compile(r"^[\t\x20-\x7e]*$")


def validate_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return *headers* with lowercase names after validating every entry.

    Raises:
        InvalidHeaderNameError: If a name is not a valid HTTP token.
        InvalidHeaderValueError: If a value contains control or non-ASCII
            characters.
    """
    validated: dict[str, str] = {}
    for name, value in headers.items():
        lowered = name.lower()
        if not _HEADER_NAME_RE.fullmatch(lowered):
            raise InvalidHeaderNameError(name)
        if not _HEADER_VALUE_RE.fullmatch(value):
            raise InvalidHeaderValueError(value)
        validated[lowered] = value
    return validated


def _make_config(**fields: Any) -> ClientConfig:
    try:
        return ClientConfig(**fields)
    except ValidationError as exc:
        raise ConfigError(f"Invalid client configuration: {exc}") from exc


class Builder:
    """Fluent builder for Esplora clients.

    Each setter returns the builder so calls can be chained::

        client = (
            Builder("https://blockstream.info/testnet/api")
            .timeout(10)
            .header("x-api-key", "secret")
            .max_retries(3)
            .build_blocking()
        )

    Args:
        base_url: Root URL of the Esplora server, without a trailing slash.
    """

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self._proxy: Optional[str] = None
        self._timeout: Optional[float] = None
        self._headers: dict[str, str] = {}
        self._max_retries = DEFAULT_MAX_RETRIES
        self._base_backoff = BASE_BACKOFF

    @classmethod
    def from_config(cls, base_url: str, config: ClientConfig) -> Builder:
        """Start from an existing config, replacing its base URL."""
        builder = cls(base_url)
        builder._proxy = config.proxy
        builder._timeout = config.timeout
        builder._headers = dict(config.headers)
        builder._max_retries = config.max_retries
        builder._base_backoff = config.base_backoff
        return builder

    def proxy(self, proxy: str) -> Builder:
        self._proxy = proxy
        return self

    def timeout(self, timeout: float) -> Builder:
        self._timeout = timeout
        return self

    def header(self, key: str, value: str) -> Builder:
        self._headers[key] = value
        return self

    def max_retries(self, count: int) -> Builder:
        """Set how many times a 429/500/503 response is retried."""
        self._max_retries = count
        return self

    def base_backoff(self, seconds: float) -> Builder:
        self._base_backoff = seconds
        return self

    def build_config(self) -> ClientConfig:
        """Freeze the current settings into a :class:`ClientConfig`.

        Raises:
            ConfigError: If a numeric setting is out of range.
        """
        return _make_config(
            base_url=self.base_url,
            proxy=self._proxy,
            timeout=self._timeout,
            headers=dict(self._headers),
            max_retries=self._max_retries,
            base_backoff=self._base_backoff,
        )

    def build_blocking(self, sleeper: Optional[Sleeper] = None) -> BlockingClient:
        from esplora.client.sync_client import BlockingClient

        return BlockingClient(self.build_config(), sleeper=sleeper)

    def build_async(self, sleeper: Optional[AsyncSleeper] = None) -> AsyncClient:
        from esplora.client.async_client import AsyncClient

        return AsyncClient(self.build_config(), sleeper=sleeper)


def _env_number(name: str, kind: type) -> Any:
    raw = os.environ.get(name, "")
    if not raw:
        return None
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def config_from_env(
    base_url: Optional[str] = None,
    proxy: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: Optional[int] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Resolve the effective configuration.

    Precedence (highest first):

    1. Explicit arguments (typically CLI flags).
    2. ``ESPLORA_URL``, ``ESPLORA_PROXY``, ``ESPLORA_TIMEOUT``,
       ``ESPLORA_MAX_RETRIES`` environment variables.
    3. Defaults: :data:`DEFAULT_BASE_URL`, no proxy, no timeout,
       :data:`~esplora.models.DEFAULT_MAX_RETRIES`.

    Raises:
        ConfigError: If an environment variable holds a malformed number or
            a resolved value is out of range.
    """
    if base_url is None:
        base_url = os.environ.get(ENV_URL) or DEFAULT_BASE_URL
    if proxy is None:
        proxy = os.environ.get(ENV_PROXY) or None
    if timeout is None:
        timeout = _env_number(ENV_TIMEOUT, float)
    if max_retries is None:
        max_retries = _env_number(ENV_MAX_RETRIES, int)
    if max_retries is None:
        max_retries = DEFAULT_MAX_RETRIES

    return _make_config(
        base_url=base_url.rstrip("/"),
        proxy=proxy,
        timeout=timeout,
        headers=dict(headers or {}),
        max_retries=max_retries,
    )
