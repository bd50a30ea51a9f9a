"""FastAPI route handlers: same-origin proxy and show endpoints."""

from __future__ import annotations

import time
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse, Response

from radio_player.api.dependencies import (
    get_generation_client,
    get_orchestrator,
    get_repository,
    get_store,
    get_upstream,
)
from radio_player.api.schemas import (
    GenerateAudioRequest,
    GenerateAudioResponse,
    GenerateShowResponse,
    GenerationResponse,
    ShowListResponse,
)
from radio_player.errors import NotConfiguredError, NotFoundError, RadioPlayerError
from radio_player.models.generation import AudioSynthesisRequest, GenerateShowRequest
from radio_player.models.search import ShowSearchParams
from radio_player.models.show import Show, ShowsPage
from radio_player.services.demo import MOCK_PRESETS
from radio_player.services.generation import GenerationOrchestrator
from radio_player.services.repository import ShowRepository
from radio_player.tools.generation import GenerationClient
from radio_player.tools.show_api import ShowApiClient
from radio_player.tools.supabase_store import SupabaseShowStore

logger = structlog.get_logger()

router = APIRouter(prefix="/api")

_AUDIO_CACHE_CONTROL = "public, max-age=3600"


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


# ---------------------------------------------------------------------------
# Public show API proxy
# ---------------------------------------------------------------------------


@router.get("/radiox-proxy")
async def proxy_show_api(
    endpoint: str = Query("shows"),
    limit: int = Query(10, ge=1),
    offset: int = Query(0, ge=0),
    upstream: ShowApiClient = Depends(get_upstream),
):
    """Forward a GET to the public show API."""
    logger.info("proxy.show_api.get", endpoint=endpoint, limit=limit, offset=offset)
    try:
        data = await upstream.list_shows_raw(limit, offset, endpoint=endpoint)
    except RadioPlayerError as exc:
        logger.warning("proxy.show_api.failed", endpoint=endpoint, error=str(exc))
        return _error(503, "RadioX API unavailable", details=str(exc))
    return data


@router.post("/radiox-proxy")
async def proxy_generate_show(
    payload: dict[str, Any] = Body(...),
    upstream: ShowApiClient = Depends(get_upstream),
):
    """Forward a show-generation POST to the public show API."""
    try:
        data = await upstream.generate_show_raw(payload)
    except RadioPlayerError as exc:
        logger.warning("proxy.show_api.generate_failed", error=str(exc))
        return _error(503, "Show generation failed", details=str(exc))
    return data


# ---------------------------------------------------------------------------
# Generation backends
# ---------------------------------------------------------------------------


@router.post("/generate-show", response_model=GenerateShowResponse)
async def generate_show(
    request: GenerateShowRequest,
    generation: GenerationClient = Depends(get_generation_client),
):
    """Generate a script, then audio on a best-effort basis."""
    try:
        script = await generation.generate_script(request)
    except RadioPlayerError as exc:
        logger.exception("proxy.generate_show.failed", preset=request.preset)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    data = script.model_dump(mode="json")
    if script.script_content:
        try:
            audio = await generation.synthesize_audio(
                AudioSynthesisRequest(
                    script_content=script.script_content,
                    session_id=script.session_id,
                    voice_quality="ultra",
                    include_music=True,
                )
            )
        except RadioPlayerError as exc:
            logger.warning("proxy.generate_show.audio_skipped", session_id=script.session_id, error=str(exc))
        else:
            data["audio_file"] = audio.audio_filename
            data["audio_url"] = audio.audio_url
            data["audio_duration"] = audio.duration_seconds
    return GenerateShowResponse(data=data)


@router.post("/generate-audio", response_model=GenerateAudioResponse)
async def generate_audio(
    request: GenerateAudioRequest,
    generation: GenerationClient = Depends(get_generation_client),
):
    """Synthesize audio for an existing script."""
    if not request.script_content:
        return _error(400, "Script content is required")

    session_id = request.session_id or f"frontend_{int(time.time() * 1000)}"
    try:
        result = await generation.synthesize_audio(
            AudioSynthesisRequest(
                script_content=request.script_content,
                session_id=session_id,
                voice_quality=request.voice_quality,
                include_music=False,
            )
        )
    except RadioPlayerError as exc:
        logger.exception("proxy.generate_audio.failed", session_id=session_id)
        return _error(500, f"Audio generation failed: {exc}")

    return GenerateAudioResponse(
        audio_filename=result.audio_filename,
        session_id=result.session_id,
        duration_seconds=result.duration_seconds,
        file_size_bytes=result.file_size_bytes,
        segments_count=result.segments_count,
    )


@router.get("/audio/{filename}")
async def get_audio(filename: str, generation: GenerationClient = Depends(get_generation_client)):
    """Serve a generated audio file from the audio backend."""
    try:
        content = await generation.fetch_audio(filename)
    except NotFoundError:
        return _error(404, "Audio file not found")
    except RadioPlayerError as exc:
        logger.warning("proxy.audio.failed", audio_filename=filename, error=str(exc))
        return _error(500, "Failed to fetch audio")
    return Response(
        content=content,
        media_type="audio/mpeg",
        headers={"Cache-Control": _AUDIO_CACHE_CONTROL},
    )


# ---------------------------------------------------------------------------
# Datastore
# ---------------------------------------------------------------------------


@router.get("/show-presets")
async def list_show_presets(store: SupabaseShowStore = Depends(get_store)):
    try:
        presets = await store.list_presets()
    except NotConfiguredError:
        return [p.model_dump(exclude_none=True) for p in MOCK_PRESETS]
    except RadioPlayerError as exc:
        logger.warning("proxy.presets.failed", error=str(exc))
        return _error(500, "Failed to load presets")
    return [p.model_dump() for p in presets]


@router.get("/latest-show")
async def latest_show(store: SupabaseShowStore = Depends(get_store)):
    try:
        return await store.latest_broadcast()
    except NotConfiguredError:
        return None
    except RadioPlayerError as exc:
        logger.warning("proxy.latest_show.failed", error=str(exc))
        return _error(500, "Failed to load latest show")


# ---------------------------------------------------------------------------
# Shows (repository view)
# ---------------------------------------------------------------------------


def _list_response(repository: ShowRepository, page: ShowsPage) -> ShowListResponse:
    return ShowListResponse(
        shows=[repository.format_show(s) for s in repository.shows],
        total=len(repository.shows),
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
        source=repository.source or page.source,
        is_online=repository.is_online,
        message=repository.status_message,
        query_ms=repository.last_query_ms,
    )


@router.get("/shows", response_model=ShowListResponse)
async def list_shows(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repository: ShowRepository = Depends(get_repository),
):
    page = await repository.fetch_shows(limit, offset)
    return _list_response(repository, page)


@router.post("/shows/search", response_model=ShowListResponse)
async def search_shows(params: ShowSearchParams, repository: ShowRepository = Depends(get_repository)):
    page = await repository.search_shows(params)
    return _list_response(repository, page)


@router.post("/shows/generate", response_model=GenerationResponse)
async def generate_into_catalog(
    request: GenerateShowRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Run the full generation flow against the shared show list."""
    if orchestrator.is_generating or orchestrator.repository.has_placeholder:
        return JSONResponse(status_code=409, content=GenerationResponse(status="rejected").model_dump(mode="json"))
    show = await orchestrator.generate(request)
    if show is None:
        body = GenerationResponse(status="failed", error=orchestrator.error)
        return JSONResponse(status_code=502, content=body.model_dump(mode="json"))
    return GenerationResponse(status="completed", show=show)


@router.get("/shows/{show_id}", response_model=Show)
async def get_show(show_id: str, repository: ShowRepository = Depends(get_repository)):
    show: Optional[Show] = await repository.get_show_by_id(show_id)
    if show is None:
        return _error(404, f"Show {show_id} not found")
    return show
