from __future__ import annotations

import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from app.scripts.logging_config import get_logger

logger = get_logger("exif")

GPS_IFD = 0x8825
GPS_LAT_REF, GPS_LAT, GPS_LON_REF, GPS_LON = 1, 2, 3, 4


def dms_to_decimal(dms, ref: Optional[str]) -> float:
    """(deg, min, sec) -> decimal degrees, negative for S/W."""
    deg, minutes, seconds = (float(v) for v in dms)
    dd = deg + minutes / 60 + seconds / 3600
    if (ref or "").upper() in ("S", "W"):
        dd = -dd
    return dd


def read_gps(image_bytes: bytes) -> Optional[Tuple[float, float]]:
    """사진 EXIF 의 GPS 좌표 (없으면 None)."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as im:
            gps = im.getexif().get_ifd(GPS_IFD)
    except (UnidentifiedImageError, OSError) as e:
        logger.info("exif_unreadable err=%s", e)
        return None
    if not gps or GPS_LAT not in gps or GPS_LON not in gps:
        return None
    try:
        lat = dms_to_decimal(gps[GPS_LAT], gps.get(GPS_LAT_REF))
        lon = dms_to_decimal(gps[GPS_LON], gps.get(GPS_LON_REF))
    except (TypeError, ValueError, ZeroDivisionError) as e:
        logger.warning("exif_gps_invalid err=%s", e)
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return lat, lon
