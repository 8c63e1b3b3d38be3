from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from app.clients.errors import ModeError
from app.config import Settings
from app.services.discovery.adapters import FixtureAdapter
from app.services.discovery.registry import (
    AdapterRegistry,
    RuntimeMode,
    build_registry,
    get_runtime_config,
    parse_mode,
)
from app.services.discovery.repositories import InMemoryStartupRepository
from tests.outages.fake_providers import ok_adapter
from tests.utils import write_fixture


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_parse_mode_rejects_unknown_values():
    assert parse_mode("ONLINE") is RuntimeMode.ONLINE
    assert parse_mode(None) is RuntimeMode.FIXTURE
    with pytest.raises(ModeError) as exc_info:
        parse_mode("staging")
    assert exc_info.value.code == "E_MODE_UNSUPPORTED"


def test_runtime_config_resolves_fixture_dir(tmp_path: Path):
    config = get_runtime_config(_settings(scout_mode="fixture", fixture_dir=str(tmp_path)))

    assert config.mode is RuntimeMode.FIXTURE
    assert config.fixture_base == tmp_path


def test_fixture_registry_has_one_adapter_per_file(tmp_path: Path):
    write_fixture(tmp_path, "techcrunch", [{"name": "Acme"}], confidence=0.7)
    write_fixture(tmp_path, "blog", [{"name": "Zeta"}])

    registry = build_registry(_settings(scout_mode="fixture", fixture_dir=str(tmp_path)))

    assert registry.mode is RuntimeMode.FIXTURE
    assert registry.names() == ["blog", "techcrunch"]
    assert all(isinstance(adapter, FixtureAdapter) for adapter in registry)
    assert registry.describe() == [
        {"name": "blog", "kind": "fixture", "confidence": 0.5},
        {"name": "techcrunch", "kind": "fixture", "confidence": 0.7},
    ]


def test_missing_fixture_dir_is_a_mode_error(tmp_path: Path):
    with pytest.raises(ModeError):
        build_registry(_settings(scout_mode="fixture", fixture_dir=str(tmp_path / "missing")))


def test_bundled_sample_fixtures_load():
    registry = build_registry(_settings(scout_mode="fixture", fixture_dir="fixtures/sample"))

    assert set(registry.names()) == {"crunchbase_news", "hackernews", "techcrunch"}


@pytest.mark.asyncio
async def test_online_registry_only_includes_configured_sources():
    async with httpx.AsyncClient() as http_client:
        bare = build_registry(_settings(scout_mode="online"), http_client=http_client)
        full = build_registry(
            _settings(
                scout_mode="online",
                searxng_url="http://searx.local",
                brave_api_key="brave-key",
                exa_api_key="exa-key",
                tavily_api_key="tavily-key",
            ),
            http_client=http_client,
        )

    assert bare.mode is RuntimeMode.ONLINE
    assert bare.names() == ["hackernews", "techcrunch", "crunchbase_news"]
    assert full.names() == [
        "hackernews",
        "techcrunch",
        "crunchbase_news",
        "searxng",
        "brave",
        "exa",
        "tavily",
    ]
    assert {entry["name"]: entry["confidence"] for entry in full.describe()} == {
        "hackernews": 0.6,
        "techcrunch": 0.65,
        "crunchbase_news": 0.65,
        "searxng": 0.6,
        "brave": 0.7,
        "exa": 0.8,
        "tavily": 0.75,
    }


@pytest.mark.asyncio
async def test_online_registry_respects_enabled_sources():
    registry = build_registry(
        _settings(
            scout_mode="online",
            exa_api_key="exa-key",
            tavily_api_key="tavily-key",
            enabled_sources=["EXA", "tavily"],
        )
    )
    try:
        assert registry.names() == ["exa", "tavily"]
    finally:
        await registry.aclose()


def test_duplicate_adapter_names_rejected():
    with pytest.raises(ModeError):
        AdapterRegistry([ok_adapter("exa"), ok_adapter("exa")])


@pytest.mark.asyncio
async def test_online_registry_replays_repository_first():
    repository = InMemoryStartupRepository()
    async with httpx.AsyncClient() as http_client:
        registry = build_registry(
            _settings(scout_mode="online", rss_feeds={}),
            http_client=http_client,
            repository=repository,
        )
        disabled = build_registry(
            _settings(scout_mode="online", rss_feeds={}, local_db_source=False),
            http_client=http_client,
            repository=repository,
        )

    assert registry.names() == ["local_db", "hackernews"]
    assert registry.describe()[0] == {"name": "local_db", "kind": "database", "confidence": 0.9}
    assert disabled.names() == ["hackernews"]


def test_fixture_registry_ignores_repository():
    registry = build_registry(
        _settings(scout_mode="fixture", fixture_dir="fixtures/sample"),
        repository=InMemoryStartupRepository(),
    )

    assert "local_db" not in registry.names()
