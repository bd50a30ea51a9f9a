"""Shared httpx plumbing: map transport and status failures onto the error taxonomy."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from radio_player.errors import NetworkError, NotFoundError, UpstreamError

logger = structlog.get_logger()


async def send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Send a request; raise NetworkError / UpstreamError instead of returning failures."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        logger.warning("http.transport_error", method=method, url=url, error=str(exc))
        raise NetworkError(f"{method} {url} failed: {exc}") from exc

    if response.is_success:
        return response

    detail = response.text[:500]
    logger.warning("http.upstream_error", method=method, url=url, status_code=response.status_code)
    raise UpstreamError(response.status_code, detail)


async def send_json(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> Any:
    """Like :func:`send` but decode the JSON body."""
    headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
    response = await send(client, method, url, headers=headers, **kwargs)
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(response.status_code, "response is not valid JSON") from exc


async def get_json(client: httpx.AsyncClient, url: str, **kwargs: Any) -> Any:
    """GET a JSON resource; a 404 becomes NotFoundError."""
    try:
        return await send_json(client, "GET", url, **kwargs)
    except UpstreamError as exc:
        if exc.status_code == 404:
            raise NotFoundError(url) from exc
        raise
