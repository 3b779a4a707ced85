"""Nominatim search / reverse client and the query resolver.

resolve(query, country_hints):
    1) country filtered search (countrycodes=...) when hints exist
    2) filtered call failed or returned nothing -> one global retry without filter
    3) any remaining failure -> []   (never raises)
    Provider order is kept, capped to MAX_RESULTS.
"""
from __future__ import annotations
from typing import Dict, List, Optional

import aiohttp

from app.domain.errors import SourceUnavailable
from app.models.geo import GeocodedLocation
from app.scripts.logging_config import get_logger
from app.services import http_client
from config import settings

logger = get_logger("geocoder")

MAX_RESULTS = 5
MIN_QUERY_LEN = 2


def _base_url() -> str:
    return settings.NOMINATIM_BASE_URL.rstrip("/")


async def search_places(
    session: aiohttp.ClientSession,
    query: str,
    country_codes: Optional[List[str]] = None,
    limit: int = MAX_RESULTS,
) -> List[Dict]:
    """Raw Nominatim /search. Raises SourceUnavailable."""
    params = {"format": "json", "q": query, "limit": limit, "addressdetails": 1}
    if country_codes:
        params["countrycodes"] = ",".join(country_codes)
    data = await http_client.fetch_json(session, f"{_base_url()}/search", params=params)
    if not isinstance(data, list):
        raise SourceUnavailable("nominatim.search", "unexpected payload")
    return data


async def reverse_geocode(
    session: aiohttp.ClientSession,
    lat: float,
    lon: float,
    zoom: int = 10,
    address_details: bool = False,
) -> Dict:
    """Nominatim /reverse -> {'display_name', 'address'}; empty name on failure."""
    params = {
        "format": "json",
        "lat": lat,
        "lon": lon,
        "zoom": zoom,
        "addressdetails": 1 if address_details else 0,
    }
    try:
        data = await http_client.fetch_json(session, f"{_base_url()}/reverse", params=params)
    except SourceUnavailable as e:
        logger.error("reverse_error lat=%s lon=%s err=%s", lat, lon, e)
        return {"display_name": "", "address": None}
    if not isinstance(data, dict):
        return {"display_name": "", "address": None}
    return {"display_name": data.get("display_name") or "", "address": data.get("address")}


def to_location(place: Dict, query: str) -> Optional[GeocodedLocation]:
    try:
        lat = float(place.get("lat"))
        lon = float(place.get("lon"))
    except (TypeError, ValueError):
        return None
    return GeocodedLocation(
        display_name=place.get("display_name") or query,
        lat=lat,
        lon=lon,
        address=place.get("address") or None,
        original_query=query,
    )


async def _resolve(session: aiohttp.ClientSession, query: str, codes: List[str]) -> List[GeocodedLocation]:
    try:
        places = await search_places(session, query, codes or None)
    except Exception as e:
        if codes:
            logger.warning("filtered_search_error q=%r countries=%s err=%s -> global retry", query, codes, e)
            return await _resolve(session, query, [])
        logger.error("search_error q=%r err=%s", query, e)
        return []

    if not places and codes:
        logger.info("filtered_search_empty q=%r countries=%s -> global retry", query, codes)
        return await _resolve(session, query, [])

    out: List[GeocodedLocation] = []
    for p in places:
        loc = to_location(p, query)
        if loc is not None:
            out.append(loc)
    return out[:MAX_RESULTS]


async def resolve(
    query: str,
    country_hints: Optional[List[str]] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> List[GeocodedLocation]:
    clean = (query or "").strip()
    if len(clean) < MIN_QUERY_LEN:
        return []
    codes = [c.strip().lower() for c in (country_hints or []) if c and c.strip()]
    if session is None:
        async with http_client.open_session() as own:
            return await _resolve(own, clean, codes)
    return await _resolve(session, clean, codes)
