import math
from typing import List, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.domain.errors import InvalidRequest
from app.models.geo import ImageResult
from app.scripts.logging_config import STREET_IMAGES_LOGGER, get_logger
from app.services import image_aggregator

router = APIRouter(prefix="/api", tags=["street-images"])
logger = get_logger(STREET_IMAGES_LOGGER)


def parse_coordinate(value: Optional[str]) -> float:
    """문자열 좌표 -> float (유한수가 아니면 InvalidRequest)."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidRequest("valid lat/lon required")
    if not math.isfinite(v):
        raise InvalidRequest("valid lat/lon required")
    return v


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/street-images", response_model=List[ImageResult])
async def street_images(lat: Optional[str] = None, lon: Optional[str] = None):
    try:
        lat_f = parse_coordinate(lat)
        lon_f = parse_coordinate(lon)
    except InvalidRequest as e:
        return JSONResponse(status_code=400, content={"error": e.message})

    try:
        results = await image_aggregator.aggregate(lat_f, lon_f)
    except Exception as e:
        logger.exception("street-images failed lat=%s lon=%s", lat, lon)
        return JSONResponse(status_code=500, content={"error": f"failed to fetch images: {e}"})
    return [r.model_dump(by_alias=True, mode="json") for r in results]
