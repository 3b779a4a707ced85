"""Candidate ranking: dedup -> resolve -> score -> top 3, with a broad fallback.

    accuracy        = min(confidence + 0.2 (query/word hit in display_name), 1.0)
    recommendation  = accuracy
                      + 0.3  country in candidate.country_hints
                      + 0.2  accuracy > 0.7
                      + 0.1  display_name has >= 3 comma parts

Resolution order is fixed before any network call and the final sort key
includes candidate/result positions, so the output does not depend on which
request finished first.
"""
from __future__ import annotations
import asyncio
from typing import List, Optional, Tuple

import aiohttp

from app.domain.errors import NoCandidates, NoResolution
from app.models.geo import GeocodedLocation, LocationCandidate, RankResponse
from app.scripts.logging_config import ESTIMATE_LOGGER, get_logger, log_estimation_event
from app.services import geocoder, http_client
from app.services.text_analysis import extract_country_code

logger = get_logger(ESTIMATE_LOGGER)

MIN_QUERY_LEN = 2
MAX_CANDIDATES = 8
MAX_RESOLVED_CANDIDATES = 5
MAX_RESULTS_PER_CANDIDATE = 2
MAX_RECOMMENDED = 3
MATCH_BONUS = 0.2
MATCH_WORD_MIN_LEN = 3
COUNTRY_BONUS = 0.3
HIGH_ACCURACY_THRESHOLD = 0.7
HIGH_ACCURACY_BONUS = 0.2
ADDRESS_PARTS_MIN = 3
ADDRESS_BONUS = 0.1

BROAD_TOP_CANDIDATES = 3
BROAD_WORDS_PER_CANDIDATE = 2
BROAD_WORD_MIN_LEN = 2
BROAD_RESULTS_PER_WORD = 1
BROAD_CONFIDENCE_SCALE = 0.7
BROAD_SOURCE_SUFFIX = " (partial search)"


def dedupe_candidates(candidates: List[LocationCandidate]) -> List[LocationCandidate]:
    """Highest confidence first (stable), one entry per lower-cased trimmed query."""
    ordered = sorted(candidates, key=lambda c: -c.confidence)
    seen = set()
    out: List[LocationCandidate] = []
    for c in ordered:
        key = (c.query or "").strip().lower()
        if len(key) < MIN_QUERY_LEN or key in seen:
            continue
        seen.add(key)
        out.append(c)
    return out[:MAX_CANDIDATES]


def accuracy_score(candidate: LocationCandidate, display_name: str) -> float:
    name = (display_name or "").lower()
    query = candidate.query.strip().lower()
    hit = query in name or any(
        len(w) >= MATCH_WORD_MIN_LEN and w in name for w in query.split()
    )
    score = candidate.confidence + (MATCH_BONUS if hit else 0.0)
    return max(0.0, min(score, 1.0))


def recommendation_score(candidate: LocationCandidate, location: GeocodedLocation) -> float:
    score = location.accuracy_score
    country = extract_country_code(location)
    hints = {h.lower() for h in candidate.country_hints}
    if country and country in hints:
        score += COUNTRY_BONUS
    if location.accuracy_score > HIGH_ACCURACY_THRESHOLD:
        score += HIGH_ACCURACY_BONUS
    if len([p for p in location.display_name.split(",") if p.strip()]) >= ADDRESS_PARTS_MIN:
        score += ADDRESS_BONUS
    return score


def score_results(candidate: LocationCandidate, results: List[GeocodedLocation]) -> List[GeocodedLocation]:
    """Attach scores and provenance to one candidate's results (capped)."""
    scored = []
    for loc in results[:MAX_RESULTS_PER_CANDIDATE]:
        accuracy = accuracy_score(candidate, loc.display_name)
        loc = loc.model_copy(update={
            "confidence": accuracy,
            "accuracy_score": accuracy,
            "original_query": candidate.query,
            "source": candidate.source,
        })
        scored.append(loc.model_copy(update={"recommendation_score": recommendation_score(candidate, loc)}))
    return scored


async def _resolve_all(
    session: aiohttp.ClientSession, candidates: List[LocationCandidate]
) -> List[List[GeocodedLocation]]:
    outcomes = await asyncio.gather(
        *(geocoder.resolve(c.query, c.country_hints, session=session) for c in candidates),
        return_exceptions=True,
    )
    resolved = []
    for c, out in zip(candidates, outcomes):
        if isinstance(out, BaseException):
            logger.warning("resolve_failed q=%r err=%s", c.query, out)
            resolved.append([])
        else:
            resolved.append(out)
    return resolved


def _split_words(query: str) -> List[str]:
    return [w for w in query.split() if len(w) >= BROAD_WORD_MIN_LEN][:BROAD_WORDS_PER_CANDIDATE]


async def broad_search(
    session: aiohttp.ClientSession, candidates: List[LocationCandidate]
) -> List[GeocodedLocation]:
    """Single-word fallback over the top candidates, results at reduced confidence."""
    jobs: List[Tuple[LocationCandidate, str]] = []
    for c in candidates[:BROAD_TOP_CANDIDATES]:
        for word in _split_words(c.query):
            jobs.append((c, word))
    if not jobs:
        return []
    outcomes = await asyncio.gather(
        *(geocoder.resolve(word, None, session=session) for _, word in jobs),
        return_exceptions=True,
    )
    out: List[GeocodedLocation] = []
    for (c, word), res in zip(jobs, outcomes):
        if isinstance(res, BaseException) or not res:
            continue
        for loc in res[:BROAD_RESULTS_PER_WORD]:
            confidence = c.confidence * BROAD_CONFIDENCE_SCALE
            out.append(loc.model_copy(update={
                "confidence": confidence,
                "accuracy_score": confidence,
                "original_query": word,
                "source": f"{c.source}{BROAD_SOURCE_SUFFIX}",
            }))
    logger.info("broad_search words=%d results=%d", len(jobs), len(out))
    return out[:MAX_RECOMMENDED]


async def _rank(session: aiohttp.ClientSession, candidates: List[LocationCandidate]) -> RankResponse:
    unique = dedupe_candidates(candidates)
    if not unique:
        raise NoCandidates()

    targets = unique[:MAX_RESOLVED_CANDIDATES]
    resolved = await _resolve_all(session, targets)

    merged: List[Tuple[Tuple, GeocodedLocation]] = []
    for ci, (cand, results) in enumerate(zip(targets, resolved)):
        for ri, loc in enumerate(score_results(cand, results)):
            merged.append(((-loc.recommendation_score, -loc.accuracy_score, ci, ri), loc))

    if merged:
        merged.sort(key=lambda item: item[0])
        top = [loc for _, loc in merged[:MAX_RECOMMENDED]]
        log_estimation_event("candidates_ranked", {
            "candidates": len(unique), "resolved": len(merged), "returned": len(top),
        })
        return RankResponse(broad_search=False, locations=top)

    broad = await broad_search(session, unique)
    log_estimation_event("broad_search", {"candidates": len(unique), "returned": len(broad)})
    if not broad:
        raise NoResolution()
    return RankResponse(broad_search=True, locations=broad)


async def rank_candidates(
    candidates: List[LocationCandidate],
    session: Optional[aiohttp.ClientSession] = None,
) -> RankResponse:
    if session is None:
        async with http_client.open_session() as own:
            return await _rank(own, candidates)
    return await _rank(session, candidates)
