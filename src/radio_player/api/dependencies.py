"""FastAPI dependency injection: the service container built at startup."""

from __future__ import annotations

from typing import Optional

import httpx
import structlog
from fastapi import Depends, Request

from radio_player.config import Settings
from radio_player.services.generation import GenerationOrchestrator
from radio_player.services.presets import PresetCatalog
from radio_player.services.repository import ShowRepository
from radio_player.tools.generation import GenerationClient
from radio_player.tools.show_api import ShowApiClient
from radio_player.tools.supabase_store import ShowChangeFeed, SupabaseShowStore

logger = structlog.get_logger()


class Services:
    """Every long-lived object the app owns; created in ``lifespan``, closed on shutdown."""

    def __init__(
        self,
        *,
        upstream: ShowApiClient,
        generation: GenerationClient,
        store: SupabaseShowStore,
        change_feed: ShowChangeFeed,
        repository: ShowRepository,
        orchestrator: GenerationOrchestrator,
        presets: PresetCatalog,
        clients: tuple[httpx.AsyncClient, ...] = (),
    ):
        self.upstream = upstream
        self.generation = generation
        self.store = store
        self.change_feed = change_feed
        self.repository = repository
        self.orchestrator = orchestrator
        self.presets = presets
        self._clients = clients

    async def start(self) -> None:
        await self.presets.load()
        await self.change_feed.start(self.repository.apply_change)

    async def aclose(self) -> None:
        await self.change_feed.stop()
        await self.orchestrator.aclose()
        for client in self._clients:
            await client.aclose()


def build_services(config: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> Services:
    """Wire adapters and services from settings.

    ``transport`` replaces the network for every HTTP client (tests pass an
    ``httpx.MockTransport``).
    """
    http_client = httpx.AsyncClient(timeout=config.http_timeout_sec, transport=transport)
    generation_http = httpx.AsyncClient(timeout=config.generation_timeout_sec, transport=transport)

    upstream = ShowApiClient(config.radiox_api_base, via_proxy=False, client=http_client)
    generation = GenerationClient(config.backend_url, config.audio_service_url, client=generation_http)
    store = SupabaseShowStore(config.supabase_url, config.supabase_anon_key)
    repository = ShowRepository(
        upstream,
        store,
        slow_query_ms=config.slow_query_ms,
        display_timezone=config.display_timezone,
    )
    orchestrator = GenerationOrchestrator(
        generation,
        repository,
        store,
        voice_quality=config.generation_voice_quality,
        include_music=config.generation_include_music,
    )
    logger.info("services.built", supabase_configured=store.is_configured)
    return Services(
        upstream=upstream,
        generation=generation,
        store=store,
        change_feed=ShowChangeFeed(config.supabase_url, config.supabase_anon_key),
        repository=repository,
        orchestrator=orchestrator,
        presets=PresetCatalog(store),
        clients=(http_client, generation_http),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_upstream(services: Services = Depends(get_services)) -> ShowApiClient:
    return services.upstream


def get_generation_client(services: Services = Depends(get_services)) -> GenerationClient:
    return services.generation


def get_store(services: Services = Depends(get_services)) -> SupabaseShowStore:
    return services.store


def get_repository(services: Services = Depends(get_services)) -> ShowRepository:
    return services.repository


def get_orchestrator(services: Services = Depends(get_services)) -> GenerationOrchestrator:
    return services.orchestrator
