"""Street / location photos for a coordinate, merged from three sources.

Tiers (always all attempted, each isolated; a failing tier adds nothing):
    1) geo-proximity      Commons geosearch within GEO_SEARCH_RADIUS_M, true distance attached
    2) text-search        reverse geocode -> keywords -> "<kw> street|road" Commons file search
    3) general search     Openverse keyword search as a last broadening step

Merge rules:
    - fullUrl unique across the whole response (first tier wins)
    - stable sort ascending by distance, unknown distance last
"""
from __future__ import annotations
import asyncio
from typing import List, Optional, Set

import aiohttp

from app.domain import geo_schema as schema
from app.models.geo import ImageResult
from app.scripts.logging_config import (
    STREET_IMAGES_LOGGER, get_logger, log_aggregation_summary, log_source_failure,
)
from app.services import geocoder, http_client, image_sources
from config import settings

logger = get_logger(STREET_IMAGES_LOGGER)

MAX_KEYWORDS = 2
MAX_TEXT_QUERIES = 3
_GENERIC_TERMS = {t.lower() for t in schema.GENERIC_COUNTRY_TERMS}


def extract_location_keywords(location_name: str) -> List[str]:
    """First two address segments, minus country-level generic terms."""
    if not location_name:
        return []
    parts = [p.strip() for p in location_name.split(",") if p.strip()]
    keywords = []
    for part in parts[:MAX_KEYWORDS]:
        if len(part) < 2:
            continue
        if part.lower() in _GENERIC_TERMS:
            continue
        keywords.append(part)
    return keywords


def build_text_queries(keywords: List[str]) -> List[str]:
    queries: List[str] = []
    if keywords:
        queries.append(f"{keywords[0]} street")
        queries.append(f"{keywords[0]} road")
    if len(keywords) > 1:
        queries.append(f"{keywords[1]} street")
    return queries[:MAX_TEXT_QUERIES]


def _append_unique(results: List[ImageResult], seen: Set[str], images: List[ImageResult]) -> int:
    added = 0
    for img in images:
        if img.full_url in seen:
            continue
        seen.add(img.full_url)
        results.append(img)
        added += 1
    return added


def sort_by_distance(results: List[ImageResult]) -> List[ImageResult]:
    return sorted(
        results,
        key=lambda r: (r.distance_meters is None, r.distance_meters if r.distance_meters is not None else 0.0),
    )


async def _tier_geo(session, lat: float, lon: float) -> List[ImageResult]:
    try:
        return await image_sources.geo_search_images(
            session, lat, lon, settings.GEO_SEARCH_RADIUS_M, settings.GEO_SEARCH_LIMIT
        )
    except Exception as e:
        log_source_failure("tier1.geo", e, logger)
        return []


async def _tier_text(session, keywords: List[str]) -> List[List[ImageResult]]:
    queries = build_text_queries(keywords)
    if not queries:
        return []
    outcomes = await asyncio.gather(
        *(image_sources.text_search_images(session, q, settings.TEXT_SEARCH_LIMIT) for q in queries),
        return_exceptions=True,
    )
    slices: List[List[ImageResult]] = []
    for q, out in zip(queries, outcomes):
        if isinstance(out, BaseException):
            log_source_failure(f"tier2.text q={q!r}", out, logger)
            slices.append([])
        else:
            slices.append(out)
    return slices


async def _tier_general(session, base_query: str) -> List[ImageResult]:
    if not base_query:
        return []
    try:
        return await image_sources.openverse_search(session, base_query, settings.OPENVERSE_LIMIT)
    except Exception as e:
        log_source_failure("tier3.openverse", e, logger)
        return []


async def _aggregate(session: aiohttp.ClientSession, lat: float, lon: float) -> List[ImageResult]:
    results: List[ImageResult] = []
    seen: Set[str] = set()

    # 1순위: 좌표 기반 지오태그 사진
    _append_unique(results, seen, await _tier_geo(session, lat, lon))

    # 2, 3순위는 같은 위치 이름을 공유
    location_name = ""
    try:
        place = await geocoder.reverse_geocode(session, lat, lon)
        location_name = place.get("display_name") or ""
    except Exception as e:
        log_source_failure("reverse_geocode", e, logger)
    keywords = extract_location_keywords(location_name)
    logger.debug("location_name=%r keywords=%s", location_name, keywords)

    # 2순위: 위치 이름 기반 텍스트 검색
    try:
        for chunk in await _tier_text(session, keywords):
            _append_unique(results, seen, chunk)
    except Exception as e:
        log_source_failure("tier2.text", e, logger)

    # 3순위: 공개 이미지 검색으로 보강
    base_query = keywords[0] if keywords else location_name
    _append_unique(results, seen, await _tier_general(session, base_query))

    return sort_by_distance(results)


async def aggregate(
    lat: float,
    lon: float,
    session: Optional[aiohttp.ClientSession] = None,
) -> List[ImageResult]:
    if session is None:
        async with http_client.open_session() as own:
            results = await _aggregate(own, lat, lon)
    else:
        results = await _aggregate(session, lat, lon)
    log_aggregation_summary(lat, lon, results, logger)
    return results
