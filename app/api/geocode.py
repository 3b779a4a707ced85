from typing import List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from app.domain.errors import InvalidRequest, SourceUnavailable
from app.models.geo import GeocodedLocation, ReverseGeocodeResponse
from app.scripts.logging_config import get_logger
from app.services import geocoder, http_client
from app.api.street_images import parse_coordinate

router = APIRouter(prefix="/api/geocode", tags=["geocode"])
logger = get_logger("geocoder")


@router.get("/search", response_model=List[GeocodedLocation])
async def search(
    q: str = Query(..., min_length=1),
    countrycodes: Optional[str] = None,
    limit: int = Query(geocoder.MAX_RESULTS, ge=1, le=geocoder.MAX_RESULTS),
):
    # 브라우저 CORS 회피용 Nominatim 프록시 (재시도 없음)
    codes = [c.strip().lower() for c in (countrycodes or "").split(",") if c.strip()]
    async with http_client.open_session() as session:
        try:
            places = await geocoder.search_places(session, q, codes or None, limit=limit)
        except SourceUnavailable as e:
            logger.warning("proxy search failed q=%r err=%s", q, e)
            return []
    out = []
    for p in places[:limit]:
        loc = geocoder.to_location(p, q)
        if loc is not None:
            out.append(loc)
    return out


@router.get("/reverse", response_model=ReverseGeocodeResponse)
async def reverse(lat: Optional[str] = None, lon: Optional[str] = None, zoom: int = Query(10, ge=0, le=18)):
    try:
        lat_f = parse_coordinate(lat)
        lon_f = parse_coordinate(lon)
    except InvalidRequest as e:
        return JSONResponse(status_code=400, content={"error": e.message})
    async with http_client.open_session() as session:
        place = await geocoder.reverse_geocode(session, lat_f, lon_f, zoom=zoom, address_details=True)
    return ReverseGeocodeResponse(display_name=place.get("display_name") or "", address=place.get("address"))
