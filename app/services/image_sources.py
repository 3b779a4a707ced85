"""Wikimedia Commons and Openverse media lookups.

Each function raises SourceUnavailable on failure; the aggregator decides
what a failure means for its tier.
"""
from __future__ import annotations
from typing import Dict, List, Optional

import aiohttp

from app.models.geo import ImageResult, ImageSource
from app.services import http_client
from config import settings

FILE_NAMESPACE = 6


def _clean_title(title: Optional[str]) -> str:
    title = title or ""
    return title[5:] if title.startswith("File:") else title


async def _image_info(session: aiohttp.ClientSession, page_ids: List[int]) -> Dict[str, Dict]:
    """pageid -> page dict carrying imageinfo."""
    if not page_ids:
        return {}
    params = {
        "action": "query",
        "pageids": "|".join(str(p) for p in page_ids),
        "prop": "imageinfo",
        "iiprop": "url",
        "iiurlwidth": settings.THUMBNAIL_WIDTH,
        "format": "json",
    }
    data = await http_client.fetch_json(session, settings.COMMONS_API_URL, params=params)
    return ((data or {}).get("query") or {}).get("pages") or {}


async def geo_search_images(
    session: aiohttp.ClientSession,
    lat: float,
    lon: float,
    radius: int = settings.GEO_SEARCH_RADIUS_M,
    limit: int = settings.GEO_SEARCH_LIMIT,
) -> List[ImageResult]:
    params = {
        "action": "query",
        "list": "geosearch",
        "gscoord": f"{lat}|{lon}",
        "gsradius": radius,
        "gslimit": limit,
        "gsnamespace": FILE_NAMESPACE,
        "format": "json",
    }
    data = await http_client.fetch_json(session, settings.COMMONS_API_URL, params=params)
    geo = ((data or {}).get("query") or {}).get("geosearch") or []
    if not geo:
        return []

    pages = await _image_info(session, [g.get("pageid") for g in geo if g.get("pageid") is not None])
    results: List[ImageResult] = []
    for g in geo:
        page = pages.get(str(g.get("pageid")))
        if not page or not page.get("imageinfo"):
            continue
        info = page["imageinfo"][0]
        if not info.get("url"):
            continue
        results.append(ImageResult(
            url=info.get("thumburl") or info["url"],
            full_url=info["url"],
            title=_clean_title(page.get("title")),
            lat=g.get("lat"),
            lon=g.get("lon"),
            distance_meters=float(g.get("dist") or 0),
            source=ImageSource.GEO_PROXIMITY,
        ))
    return results


async def text_search_images(
    session: aiohttp.ClientSession,
    query: str,
    limit: int = settings.TEXT_SEARCH_LIMIT,
) -> List[ImageResult]:
    params = {
        "action": "query",
        "list": "search",
        "srsearch": query,
        "srnamespace": FILE_NAMESPACE,
        "srlimit": limit,
        "format": "json",
    }
    data = await http_client.fetch_json(session, settings.COMMONS_API_URL, params=params)
    hits = ((data or {}).get("query") or {}).get("search") or []
    if not hits:
        return []

    page_ids = [h.get("pageid") for h in hits if h.get("pageid") is not None]
    pages = await _image_info(session, page_ids)
    results: List[ImageResult] = []
    for pid in page_ids:
        page = pages.get(str(pid))
        if not page or not page.get("imageinfo"):
            continue
        info = page["imageinfo"][0]
        if not info.get("url"):
            continue
        results.append(ImageResult(
            url=info.get("thumburl") or info["url"],
            full_url=info["url"],
            title=_clean_title(page.get("title")),
            source=ImageSource.TEXT_SEARCH,
        ))
    return results[:limit]


async def openverse_search(
    session: aiohttp.ClientSession,
    query: str,
    limit: int = settings.OPENVERSE_LIMIT,
) -> List[ImageResult]:
    params = {"q": f"{query} street city", "page_size": limit}
    data = await http_client.fetch_json(session, settings.OPENVERSE_API_URL, params=params)
    items = (data or {}).get("results") or []
    if not isinstance(items, list):
        return []
    results: List[ImageResult] = []
    for item in items:
        full = item.get("url") or item.get("thumbnail")
        if not full:
            continue
        results.append(ImageResult(
            url=item.get("thumbnail") or full,
            full_url=full,
            title=item.get("title") or query,
            description=item.get("description") or item.get("alt") or "",
            source=ImageSource.GENERAL_IMAGE_SEARCH,
        ))
    return results[:limit]
