"""Rule-based text utilities for photo location estimation.

Provides OCR clean-up, the script/keyword language cascade, the "looks like
a place name" test and country-code extraction for geocoded results. No
network, no models: everything here is deterministic.
"""
from __future__ import annotations
from typing import Dict, Optional
import re

from app.domain import geo_schema as schema
from app.models.geo import GeocodedLocation, LanguageInfo

HANGUL_RE = re.compile(r"[가-힣]")
HANGUL_JAMO_RE = re.compile(r"[ㄱ-ㅎㅏ-ㅣ]")
KOREAN_ADDRESS_RE = re.compile(r"[가-힣]+[시도군구동리로길가]")
KOREAN_PROVINCE_RE = re.compile("|".join(schema.KOREAN_PROVINCES))

_OCR_NOISE_RE = re.compile(r"[^\w\s\-.,()]")
_SPACES_RE = re.compile(r"[^\S\n]+")

# 언어 감지 cascade 규칙 (위에서부터 첫 일치)
_CJK_RE = re.compile(r"[一-龯]")
_VIE_RE = re.compile(r"[ăđơưạảấầẩẫậắằẳẵặẹẻẽếềểễệỉịọỏốồổỗộớờởỡợụủứừửữựỳỵỷỹ]")
_CYRILLIC_RE = re.compile(r"[а-яё]")
_ARABIC_RE = re.compile(r"[\u0621-\u064a]")
_THAI_RE = re.compile(r"[\u0e00-\u0e7f]")

# (language, accent class, function-word alternation) - 부분 문자열 매치
_LATIN_RULES = [
    ("fra", re.compile(r"[àâäéèêëïîôùûüÿç]"), re.compile(r"le|la|les|de|du|des|et|est|dans|pour|avec|sur|sous")),
    ("deu", re.compile(r"[äöüß]"), re.compile(r"der|die|das|und|ist|sind|von|zu|mit|auf")),
    ("spa", re.compile(r"[áéíóúñ]"), re.compile(r"el|la|los|las|del|de|en|es|con|por")),
    ("ita", re.compile(r"[àèéìíîòóùú]"), re.compile(r"il|la|gli|le|di|del|della|con|per|in")),
    ("por", re.compile(r"[àáâãéêíóôõú]"), re.compile(r"o|a|os|as|de|do|da|dos|das|em|no|na|com|por")),
]

_LOCATION_PATTERNS = [
    re.compile(r"^[가-힣]+(" + "|".join(schema.KOREAN_ADDRESS_SUFFIXES) + r")$"),
    re.compile(r"^[A-Z][a-z]+ (" + "|".join(schema.ENGLISH_PLACE_SUFFIXES) + r")$", re.IGNORECASE),
    re.compile(r"^[가-힣]+(" + "|".join(schema.KOREAN_LANDMARK_SUFFIXES) + r")$"),
    re.compile("|".join(schema.KOREAN_CITIES), re.IGNORECASE),
    re.compile(r"^[가-힣]{2,10}$"),
    re.compile(r"^[A-Z][a-z]+$"),
    re.compile(r"\d+번지|\d+호"),
]


def _space_boundaries(line: str) -> str:
    # 한글/영문 사이, 숫자/문자 사이 공백 삽입
    line = re.sub(r"([가-힣])([A-Za-z])", r"\1 \2", line)
    line = re.sub(r"([A-Za-z])([가-힣])", r"\1 \2", line)
    line = re.sub(r"(\d)([A-Za-z가-힣])", r"\1 \2", line)
    line = re.sub(r"([A-Za-z가-힣])(\d)", r"\1 \2", line)
    return line


def correct_ocr_text(text: str) -> str:
    """Normalise raw OCR output line by line; blank lines are dropped."""
    if not text or len(text.strip()) < 2:
        return text or ""
    lines = []
    for raw in text.splitlines():
        line = _OCR_NOISE_RE.sub(" ", raw)
        line = _space_boundaries(line)
        line = _SPACES_RE.sub(" ", line).strip()
        if not line:
            continue
        # 영문 전용 줄은 대문자로 시작
        if line[0].islower() and line[0].isascii() and not HANGUL_RE.search(line):
            line = line[0].upper() + line[1:]
        lines.append(line)
    return "\n".join(lines)


def language_info(code: str) -> LanguageInfo:
    entry = schema.LANGUAGE_COUNTRY_MAP.get(code) or schema.LANGUAGE_COUNTRY_MAP[schema.DEFAULT_LANGUAGE]
    return LanguageInfo(
        language=code if code in schema.LANGUAGE_COUNTRY_MAP else schema.DEFAULT_LANGUAGE,
        language_name=entry["name"],
        countries=list(entry["countries"]),
        confidence=entry["priority"],
    )


def has_korean(text: str) -> bool:
    return bool(
        HANGUL_RE.search(text)
        or HANGUL_JAMO_RE.search(text)
        or KOREAN_ADDRESS_RE.search(text)
        or KOREAN_PROVINCE_RE.search(text)
    )


def detect_language_and_country(text: str) -> LanguageInfo:
    """Script/keyword cascade. Korean wins unconditionally on a single hit."""
    if not text or len(text.strip()) < 2:
        return LanguageInfo()

    lowered = text.lower()
    if has_korean(text):
        code = "kor"
    elif _CJK_RE.search(text):
        code = "cmn"
    elif _VIE_RE.search(lowered):
        code = "vie"
    else:
        code = None
        for lang, accents, words in _LATIN_RULES:
            if accents.search(lowered) and words.search(lowered):
                code = lang
                break
        if code is None:
            if _CYRILLIC_RE.search(lowered):
                code = "rus"
            elif _ARABIC_RE.search(text):
                code = "ara"
            elif _THAI_RE.search(text):
                code = "tha"
            else:
                code = schema.DEFAULT_LANGUAGE
    return language_info(code)


def is_location_name(text: str) -> bool:
    if not text or len(text) < 2:
        return False
    if any(p.search(text) for p in _LOCATION_PATTERNS):
        return True
    return any(k in text for k in schema.LOCATION_KEYWORDS)


def _country_from_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    lowered = name.strip().lower()
    for key in sorted(schema.COUNTRY_NAME_MAP, key=len, reverse=True):
        if re.search(rf"\b{re.escape(key)}\b", lowered):
            return schema.COUNTRY_NAME_MAP[key]
    return None


def extract_country_code(location: GeocodedLocation) -> Optional[str]:
    address: Dict = location.address or {}
    code = address.get("country_code")
    if code:
        return str(code).lower()
    code = _country_from_name(address.get("country"))
    if code:
        return code
    parts = [p.strip() for p in (location.display_name or "").split(",") if p.strip()]
    return _country_from_name(parts[-1]) if parts else None
