"""Shared aiohttp plumbing for the public geodata APIs.

Every upstream failure (HTTP status, timeout, connection error, bad JSON)
surfaces as SourceUnavailable so callers can downgrade it to "no results".
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from app.domain.errors import SourceUnavailable
from config import settings

REQ_TIMEOUT_TOTAL = settings.HTTP_TIMEOUT_TOTAL
REQ_TIMEOUT_CONNECT = settings.HTTP_TIMEOUT_CONNECT
USER_AGENT = settings.HTTP_USER_AGENT
MAX_CONNECTIONS = 16


@asynccontextmanager
async def open_session() -> AsyncIterator[aiohttp.ClientSession]:
    timeout = aiohttp.ClientTimeout(total=REQ_TIMEOUT_TOTAL, connect=REQ_TIMEOUT_CONNECT)
    connector = aiohttp.TCPConnector(limit=MAX_CONNECTIONS)
    session = aiohttp.ClientSession(
        timeout=timeout,
        connector=connector,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
    )
    try:
        yield session
    finally:
        await session.close()


async def fetch_json(
    session: aiohttp.ClientSession,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """GET url and decode the JSON body."""
    try:
        async with session.get(url, params=params, headers=headers) as resp:
            if not 200 <= resp.status < 300:
                raise SourceUnavailable(url, f"status={resp.status}")
            # Commons answers with text/javascript on some mirrors
            return await resp.json(content_type=None)
    except SourceUnavailable:
        raise
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise SourceUnavailable(url, f"{type(e).__name__}: {e}") from e
