"""Runtime mode resolution and the explicit adapter registry."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from app.clients.brave import BraveClient
from app.clients.errors import ModeError
from app.clients.exa import ExaClient
from app.clients.hackernews import HackerNewsClient
from app.clients.rss import RssFeedClient
from app.clients.searxng import SearxNGClient
from app.clients.tavily import TavilyClient
from app.config import Settings, settings as default_settings
from app.services.discovery.adapters import (
    BraveAdapter,
    ExaAdapter,
    FixtureAdapter,
    HackerNewsAdapter,
    LocalDbAdapter,
    RssFeedAdapter,
    SearxNGAdapter,
    SourceAdapter,
    TavilyAdapter,
)
from app.services.discovery.repositories import StartupRepository

logger = logging.getLogger("app.services.discovery.registry")


class RuntimeMode(str, Enum):
    """Available runtime behaviors."""

    ONLINE = "online"
    FIXTURE = "fixture"


@dataclass(frozen=True)
class RuntimeConfig:
    """Resolved runtime configuration."""

    mode: RuntimeMode
    fixture_base: Path | None = None


def parse_mode(value: str | None, *, default: RuntimeMode = RuntimeMode.FIXTURE) -> RuntimeMode:
    if not value:
        return default
    normalized = value.strip().lower()
    for mode in RuntimeMode:
        if normalized == mode.value:
            return mode
    raise ModeError(f"Unsupported SCOUT_MODE value: {value}")


def get_runtime_config(config: Settings | None = None) -> RuntimeConfig:
    """Resolve runtime configuration from settings."""
    config = config or default_settings
    mode = parse_mode(config.scout_mode)
    fixture_base = Path(config.fixture_dir).expanduser() if mode is RuntimeMode.FIXTURE else None
    return RuntimeConfig(mode=mode, fixture_base=fixture_base)


class AdapterRegistry:
    """Ordered, immutable set of adapters handed to the coordinator."""

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        *,
        mode: RuntimeMode = RuntimeMode.FIXTURE,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        names = [adapter.name for adapter in adapters]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ModeError(f"Duplicate adapter names: {', '.join(duplicates)}", code="E_DUPLICATE_ADAPTER")
        self._adapters = tuple(adapters)
        self.mode = mode
        self._http_client = http_client

    def __iter__(self) -> Iterator[SourceAdapter]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)

    def names(self) -> list[str]:
        return [adapter.name for adapter in self._adapters]

    def describe(self) -> list[dict[str, Any]]:
        return [
            {"name": adapter.name, "kind": adapter.kind, "confidence": adapter.confidence}
            for adapter in self._adapters
        ]

    async def aclose(self) -> None:
        """Close the shared HTTP client, if this registry owns one."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def build_registry(
    config: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    repository: StartupRepository | None = None,
) -> AdapterRegistry:
    """Build the adapter registry for the configured runtime mode.

    ``repository`` backs the ``local_db`` adapter in online mode; fixture runs
    never read persisted data.
    """
    config = config or default_settings
    runtime = get_runtime_config(config)
    if runtime.mode is RuntimeMode.FIXTURE:
        registry = _build_fixture_registry(runtime.fixture_base)
    else:
        registry = _build_online_registry(config, http_client, repository)
    logger.info(
        "discovery.registry.built",
        extra={"mode": runtime.mode.value, "adapters": registry.names()},
    )
    return registry


def _build_fixture_registry(fixture_base: Path | None) -> AdapterRegistry:
    if fixture_base is None or not fixture_base.is_dir():
        raise ModeError(f"Fixture directory not found: {fixture_base}", code="E_FIXTURE_NOT_FOUND")
    adapters = [FixtureAdapter(path) for path in sorted(fixture_base.glob("*.json"))]
    return AdapterRegistry(adapters, mode=RuntimeMode.FIXTURE)


def _build_online_registry(
    config: Settings,
    http_client: httpx.AsyncClient | None,
    repository: StartupRepository | None = None,
) -> AdapterRegistry:
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )
    timeout = config.adapter_timeout_seconds

    adapters: list[SourceAdapter] = []
    if repository is not None and config.local_db_source:
        adapters.append(LocalDbAdapter(repository))
    adapters.append(HackerNewsAdapter(HackerNewsClient(http_client=client, timeout=timeout)))
    for feed_name, feed_url in config.rss_feeds.items():
        feed_client = RssFeedClient(feed_url, http_client=client, provider=feed_name, timeout=timeout)
        adapters.append(RssFeedAdapter(feed_client))
    if config.searxng_url:
        adapters.append(SearxNGAdapter(SearxNGClient(config.searxng_url, http_client=client, timeout=timeout)))
    if config.brave_api_key:
        adapters.append(BraveAdapter(BraveClient(config.brave_api_key, http_client=client, timeout=timeout)))
    if config.exa_api_key:
        adapters.append(ExaAdapter(ExaClient(config.exa_api_key, http_client=client, timeout=timeout)))
    if config.tavily_api_key:
        adapters.append(TavilyAdapter(TavilyClient(config.tavily_api_key, http_client=client, timeout=timeout)))

    allowlist = config.enabled_source_set
    if allowlist:
        adapters = [adapter for adapter in adapters if adapter.name in allowlist]

    return AdapterRegistry(
        adapters,
        mode=RuntimeMode.ONLINE,
        http_client=client if owns_client else None,
    )
