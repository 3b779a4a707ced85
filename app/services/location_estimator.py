from __future__ import annotations
from typing import List, Optional

import aiohttp

from app.domain.errors import NoCandidates
from app.models.geo import EstimateResult, GeocodedLocation, LanguageInfo, LocationCandidate
from app.scripts.logging_config import ESTIMATE_LOGGER, get_logger, log_estimation_event
from app.services import candidate_extractor, candidate_ranker, exif_reader, geocoder, http_client
from app.services.text_analysis import language_info

logger = get_logger(ESTIMATE_LOGGER)

EXIF_CONFIDENCE = 1.0
EXIF_SOURCE = "EXIF GPS"
EXIF_REVERSE_ZOOM = 18


def _language_of(candidates: List[LocationCandidate]) -> Optional[LanguageInfo]:
    for c in candidates:
        if c.language_hint:
            return language_info(c.language_hint)
    return None


async def _from_exif(session: aiohttp.ClientSession, lat: float, lon: float) -> GeocodedLocation:
    place = await geocoder.reverse_geocode(session, lat, lon, zoom=EXIF_REVERSE_ZOOM, address_details=True)
    name = place.get("display_name") or f"{lat:.6f}, {lon:.6f}"
    return GeocodedLocation(
        display_name=name,
        lat=lat,
        lon=lon,
        address=place.get("address"),
        confidence=EXIF_CONFIDENCE,
        accuracy_score=EXIF_CONFIDENCE,
        recommendation_score=EXIF_CONFIDENCE,
        original_query=EXIF_SOURCE,
        source=EXIF_SOURCE,
    )


async def _estimate(session: aiohttp.ClientSession, image_bytes: bytes, image_name: str) -> EstimateResult:
    gps = exif_reader.read_gps(image_bytes)
    if gps is not None:
        lat, lon = gps
        logger.info("exif_gps image=%s lat=%.6f lon=%.6f", image_name, lat, lon)
        location = await _from_exif(session, lat, lon)
        log_estimation_event("exif_gps", {"image": image_name, "lat": lat, "lon": lon})
        return EstimateResult(method="exif", image_name=image_name, selection="single", locations=[location])

    candidates = await candidate_extractor.extract_candidates(image_bytes)
    if not candidates:
        log_estimation_event("no_candidates", {"image": image_name})
        raise NoCandidates()

    try:
        ranked = await candidate_ranker.rank_candidates(candidates, session=session)
    except Exception as e:
        log_estimation_event("estimate_failed", {"image": image_name, "reason": type(e).__name__})
        raise

    selection = "single" if len(ranked.locations) == 1 else "choice"
    log_estimation_event("estimate_done", {
        "image": image_name,
        "candidates": len(candidates),
        "locations": len(ranked.locations),
        "broad_search": ranked.broad_search,
        "selection": selection,
    })
    return EstimateResult(
        method="ai",
        image_name=image_name,
        language=_language_of(candidates),
        selection=selection,
        candidate_count=len(candidates),
        broad_search=ranked.broad_search,
        locations=ranked.locations,
    )


async def estimate_location(
    image_bytes: bytes,
    image_name: str = "",
    session: Optional[aiohttp.ClientSession] = None,
) -> EstimateResult:
    """사진 한 장 -> 위치 후보 (EXIF GPS 우선, 없으면 OCR/비전 추론)."""
    if session is None:
        async with http_client.open_session() as own:
            return await _estimate(own, image_bytes, image_name)
    return await _estimate(session, image_bytes, image_name)
