"""Kratos session lookup used as a FastAPI dependency."""

from __future__ import annotations

import time

import httpx
from fastapi import HTTPException, Request
from loguru import logger

from .config import settings

_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient()
    return _client


async def fetch_identity(cookie: str) -> dict:
    """Resolve a session cookie into the Kratos identity payload."""

    url = f"{settings.kratos_public_url.rstrip('/')}/sessions/whoami"
    start = time.perf_counter()
    try:
        resp = await _get_client().get(
            url,
            headers={"Cookie": cookie},
            timeout=settings.timeout_seconds,
        )
    except httpx.RequestError as exc:
        logger.warning(
            "Kratos whoami failed after {duration:.2f} ms: {error}",
            duration=(time.perf_counter() - start) * 1000,
            error=exc,
        )
        raise HTTPException(status_code=502, detail="Identity service unavailable") from exc

    logger.debug(
        "Kratos whoami -> {status} in {duration:.2f} ms",
        status=resp.status_code,
        duration=(time.perf_counter() - start) * 1000,
    )

    if resp.status_code in (401, 403):
        raise HTTPException(status_code=401, detail="Not authenticated")
    if resp.status_code != 200:
        raise HTTPException(status_code=502, detail="Identity service error")

    identity = resp.json().get("identity")
    if not isinstance(identity, dict) or not identity.get("id"):
        raise HTTPException(status_code=502, detail="Identity response missing identity")
    return identity


async def get_identity(request: Request) -> dict:
    """
    Dependency returning the caller's identity, cached on the request state
    so several dependencies of one request share a single lookup.
    """

    cached = getattr(request.state, "identity", None)
    if cached is not None:
        return cached

    cookie = request.headers.get("cookie")
    if not cookie:
        raise HTTPException(status_code=401, detail="Not authenticated")

    identity = await fetch_identity(cookie)
    request.state.identity = identity
    return identity
