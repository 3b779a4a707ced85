from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from enum import Enum


class CandidateKind(str, Enum):
    TEXT = "text"
    OBJECT = "object"
    CATEGORY = "category"
    LANDMARK = "landmark"
    VISUAL = "visual"


class ImageSource(str, Enum):
    GEO_PROXIMITY = "geo-proximity"
    TEXT_SEARCH = "text-search"
    GENERAL_IMAGE_SEARCH = "general-image-search"


class LanguageInfo(BaseModel):
    language: Optional[str] = None  # kor | cmn | fra | ... | eng
    language_name: Optional[str] = None
    countries: List[str] = Field(default_factory=list)
    confidence: float = 0.0


class LocationCandidate(BaseModel):
    query: str
    kind: CandidateKind = CandidateKind.TEXT
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    source: str = "OCR"
    language_hint: Optional[str] = None
    country_hints: List[str] = Field(default_factory=list)


class GeocodedLocation(BaseModel):
    display_name: str
    lat: float
    lon: float
    address: Optional[Dict[str, Any]] = None
    confidence: float = 0.0
    accuracy_score: float = 0.0
    recommendation_score: Optional[float] = None
    original_query: str = ""
    source: str = ""


class ImageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    full_url: str = Field(alias="fullUrl")
    title: str = ""
    description: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    distance_meters: Optional[float] = Field(None, alias="distance")
    source: ImageSource


class EstimateResult(BaseModel):
    method: str  # exif | ai
    image_name: str = ""
    language: Optional[LanguageInfo] = None
    selection: str = "single"  # single | choice
    candidate_count: int = 0
    broad_search: bool = False
    locations: List[GeocodedLocation]


class RankRequest(BaseModel):
    candidates: List[LocationCandidate]


class RankResponse(BaseModel):
    broad_search: bool = False
    locations: List[GeocodedLocation]


class ReverseGeocodeResponse(BaseModel):
    display_name: str
    address: Optional[Dict[str, Any]] = None
