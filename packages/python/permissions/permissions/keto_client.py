from __future__ import annotations

import time
from typing import Optional

import httpx
from loguru import logger

from .config import settings

# Shared client so relation checks reuse TCP connections across requests.
_read_client: httpx.AsyncClient | None = None


def _timeout_value(timeout: Optional[float]) -> float:
    return timeout if timeout is not None else settings.timeout_seconds


def _get_read_client() -> httpx.AsyncClient:
    global _read_client
    if _read_client is None:
        _read_client = httpx.AsyncClient()
    return _read_client


def _tuple_payload(namespace: str, object: str, relation: str, subject: str) -> dict[str, str]:
    return {
        "namespace": namespace,
        "object": object,
        "relation": relation,
        "subject_id": subject,
    }


async def keto_check(
    namespace: str,
    object: str,
    relation: str,
    subject: str,
    *,
    timeout: Optional[float] = None,
) -> bool:
    """Ask Keto whether ``subject`` holds ``relation`` on ``object``."""

    url = f"{settings.keto_read_url.rstrip('/')}/relation-tuples/check"
    start = time.perf_counter()
    try:
        response = await _get_read_client().post(
            url,
            json=_tuple_payload(namespace, object, relation, subject),
            timeout=_timeout_value(timeout),
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        duration = (time.perf_counter() - start) * 1000
        # Keto answers a denied check with 403.
        if exc.response.status_code == 403:
            logger.debug(
                "Keto denied {object}/{relation} for {subject} in {duration:.2f} ms",
                object=object,
                relation=relation,
                subject=subject,
                duration=duration,
            )
            return False
        logger.warning(
            "Keto check {object}/{relation} for {subject} failed after {duration:.2f} ms: {error}",
            object=object,
            relation=relation,
            subject=subject,
            duration=duration,
            error=exc,
        )
        raise

    allowed = bool(response.json().get("allowed"))
    logger.debug(
        "Keto check {object}/{relation} for {subject} -> {allowed} in {duration:.2f} ms",
        object=object,
        relation=relation,
        subject=subject,
        allowed=allowed,
        duration=(time.perf_counter() - start) * 1000,
    )
    return allowed
