"""Turns per-photo evidence into unranked LocationCandidate lists.

Lanes (run concurrently, each isolated; a lane that raises or times out
contributes []):
    text     OCR text -> place-name lines/words          0.85 (place-like) / 0.3
    vision   object labels x0.7, classification x0.6     allow-listed nouns only
    visual   sky/green pixel ratios -> urban 0.5, nature 0.4
Post-pass:
    landmark text candidates containing a landmark keyword -> 0.9

No cap here; the ranker deduplicates and caps.
"""
from __future__ import annotations
import asyncio
import re
from typing import Awaitable, Dict, List, Optional

from app.domain import geo_schema as schema
from app.models.geo import CandidateKind, LanguageInfo, LocationCandidate
from app.scripts.logging_config import ESTIMATE_LOGGER, get_logger, log_estimation_event
from app.services import text_analysis as ta
from app.services import vision
from config import settings

logger = get_logger(ESTIMATE_LOGGER)

PLACE_NAME_CONFIDENCE = 0.85
PLAIN_TEXT_CONFIDENCE = 0.3
LANDMARK_CONFIDENCE = 0.9
OBJECT_SCALE = 0.7
OBJECT_MIN_SCORE = 0.5
CATEGORY_SCALE = 0.6
CATEGORY_MIN_PROBABILITY = 0.3
CATEGORY_TOP_N = 3
URBAN_CONFIDENCE = 0.5
NATURE_CONFIDENCE = 0.4

LINE_MIN_LEN = 3
LINE_MAX_LEN = 40
MAX_KEYWORD_WORDS = 10

_EXCLUDE_RES = [re.compile(p) for p in schema.OCR_EXCLUDE_PATTERNS]
_LINE_STRIP_RE = re.compile(r"[^\w\s\-]")
_WORD_STRIP_RE = re.compile(r"[^\w]")
_NON_LATIN_LETTER_RE = re.compile(r"[^\W\d_a-zA-Z]")


def _with_language(kind: CandidateKind, query: str, confidence: float, source: str,
                   lang: Optional[LanguageInfo]) -> LocationCandidate:
    return LocationCandidate(
        query=query,
        kind=kind,
        confidence=confidence,
        source=source,
        language_hint=lang.language if lang else None,
        country_hints=list(lang.countries) if lang else [],
    )


def _is_excluded(text: str) -> bool:
    return any(p.search(text) for p in _EXCLUDE_RES)


def _line_is_candidate(line: str) -> bool:
    # 한글/비라틴 문자 포함 또는 대문자로 시작하는 줄
    if ta.HANGUL_RE.search(line) or _NON_LATIN_LETTER_RE.search(line):
        return True
    return bool(re.match(r"^[A-Z]", line)) and len(line) > 2


def candidates_from_text(text: str, lang: Optional[LanguageInfo] = None) -> List[LocationCandidate]:
    """OCR lane: line candidates plus place-like single words."""
    if not text or len(text.strip()) < 2:
        return []
    corrected = ta.correct_ocr_text(text)
    if lang is None:
        lang = ta.detect_language_and_country(corrected)

    out: List[LocationCandidate] = []
    for line in corrected.split("\n"):
        line = line.strip()
        if len(line) <= 1 or not _line_is_candidate(line):
            continue
        cleaned = _LINE_STRIP_RE.sub("", line).strip()
        if not (LINE_MIN_LEN <= len(cleaned) <= LINE_MAX_LEN) or _is_excluded(cleaned):
            continue
        if ta.is_location_name(cleaned):
            out.append(_with_language(CandidateKind.TEXT, cleaned, PLACE_NAME_CONFIDENCE, "AI OCR", lang))
        else:
            out.append(_with_language(CandidateKind.TEXT, cleaned, PLAIN_TEXT_CONFIDENCE, "OCR", lang))

    words = []
    for word in corrected.split():
        w = _WORD_STRIP_RE.sub("", word)
        if len(w) >= 2 and (ta.HANGUL_RE.search(w) or re.match(r"^[A-Z]", w)):
            words.append(w)
    for w in words[:MAX_KEYWORD_WORDS]:
        if ta.is_location_name(w) and not _is_excluded(w):
            out.append(_with_language(CandidateKind.TEXT, w, PLACE_NAME_CONFIDENCE, "AI OCR (keyword)", lang))
    return out


def candidates_from_vision(detections: List[Dict], classifications: List[Dict]) -> List[LocationCandidate]:
    """Vision lane: allow-listed object labels and scene classes, scaled down."""
    out: List[LocationCandidate] = []
    for det in detections or []:
        label = str(det.get("label") or "")
        score = float(det.get("score") or 0.0)
        if label.lower() in schema.PLACE_OBJECTS and score > OBJECT_MIN_SCORE:
            out.append(LocationCandidate(
                query=label, kind=CandidateKind.OBJECT,
                confidence=min(score * OBJECT_SCALE, 1.0), source="Object Detection",
            ))
    for cls in (classifications or [])[:CATEGORY_TOP_N]:
        label = str(cls.get("label") or "")
        prob = float(cls.get("probability") or 0.0)
        if any(cat in label.lower() for cat in schema.PLACE_CATEGORIES) and prob > CATEGORY_MIN_PROBABILITY:
            out.append(LocationCandidate(
                query=label, kind=CandidateKind.CATEGORY,
                confidence=min(prob * CATEGORY_SCALE, 1.0), source="Image Classification",
            ))
    return out


def candidates_from_composition(composition: Dict) -> List[LocationCandidate]:
    out: List[LocationCandidate] = []
    if composition.get("has_buildings"):
        out.append(LocationCandidate(
            query=schema.VISUAL_URBAN_QUERY, kind=CandidateKind.VISUAL,
            confidence=URBAN_CONFIDENCE, source="Visual Analysis",
        ))
    if composition.get("has_nature"):
        out.append(LocationCandidate(
            query=schema.VISUAL_NATURE_QUERY, kind=CandidateKind.VISUAL,
            confidence=NATURE_CONFIDENCE, source="Visual Analysis",
        ))
    return out


def detect_landmarks(text_candidates: List[LocationCandidate]) -> List[LocationCandidate]:
    """Re-scan text candidates for landmark keywords (one hit per candidate)."""
    out: List[LocationCandidate] = []
    for cand in text_candidates:
        if cand.kind != CandidateKind.TEXT:
            continue
        if any(k in cand.query for k in schema.LANDMARK_KEYWORDS):
            out.append(cand.model_copy(update={
                "kind": CandidateKind.LANDMARK,
                "confidence": LANDMARK_CONFIDENCE,
                "source": "Landmark Detection",
            }))
    return out


def propagate_language(candidates: List[LocationCandidate], lang: Optional[LanguageInfo]) -> List[LocationCandidate]:
    """Candidates without hints inherit the photo-level language info."""
    if lang is None or not lang.language:
        return candidates
    out = []
    for c in candidates:
        if not c.country_hints and not c.language_hint:
            c = c.model_copy(update={"language_hint": lang.language, "country_hints": list(lang.countries)})
        out.append(c)
    return out


# ------------------------------------------------------------------------------
# lanes
# ------------------------------------------------------------------------------
async def _text_lane(image_bytes: bytes) -> List[LocationCandidate]:
    text = await vision.recognize_text(image_bytes)
    return candidates_from_text(text)


async def _vision_lane(image_bytes: bytes) -> List[LocationCandidate]:
    detections, classifications = await asyncio.gather(
        vision.detect_objects(image_bytes),
        vision.classify_image(image_bytes),
        return_exceptions=True,
    )
    if isinstance(detections, BaseException):
        logger.warning("lane=vision detector failed err=%s", detections)
        detections = []
    if isinstance(classifications, BaseException):
        logger.warning("lane=vision classifier failed err=%s", classifications)
        classifications = []
    return candidates_from_vision(detections, classifications)


async def _composition_lane(image_bytes: bytes) -> List[LocationCandidate]:
    return candidates_from_composition(await vision.analyze_composition(image_bytes))


async def _run_lane(name: str, coro: Awaitable[List[LocationCandidate]], timeout: float) -> List[LocationCandidate]:
    try:
        result = await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("lane=%s timeout after %.1fs", name, timeout)
        return []
    except Exception as e:
        logger.warning("lane=%s failed err=%s", name, e)
        return []
    logger.info("lane=%s candidates=%d", name, len(result))
    return result


async def extract_candidates(image_bytes: bytes, lane_timeout: Optional[float] = None) -> List[LocationCandidate]:
    timeout = lane_timeout if lane_timeout is not None else settings.EXTRACTION_LANE_TIMEOUT
    text_c, vision_c, visual_c = await asyncio.gather(
        _run_lane("text", _text_lane(image_bytes), timeout),
        _run_lane("vision", _vision_lane(image_bytes), timeout),
        _run_lane("visual", _composition_lane(image_bytes), timeout),
    )
    landmarks = detect_landmarks(text_c)

    lang = None
    if text_c and text_c[0].language_hint:
        lang = ta.language_info(text_c[0].language_hint)
    candidates = propagate_language(text_c + vision_c + visual_c + landmarks, lang)

    log_estimation_event("candidates_extracted", {
        "text": len(text_c), "vision": len(vision_c), "visual": len(visual_c),
        "landmark": len(landmarks), "language": lang.language if lang else None,
    })
    return candidates
