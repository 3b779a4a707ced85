from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from app.domain.errors import GeoLocateError, NoCandidates, NoResolution
from app.models.geo import EstimateResult, RankRequest, RankResponse
from app.scripts.logging_config import ESTIMATE_LOGGER, get_logger
from app.services import candidate_ranker, location_estimator
from config import settings

router = APIRouter(prefix="/api", tags=["estimate"])
logger = get_logger(ESTIMATE_LOGGER)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}

_STATUS = {NoCandidates: 422, NoResolution: 404}


def _error_response(err: GeoLocateError) -> JSONResponse:
    status = _STATUS.get(type(err), 400)
    return JSONResponse(status_code=status, content={"error": err.message, "code": err.code})


@router.post("/estimate-location", response_model=EstimateResult)
async def estimate_location(file: UploadFile = File(...)):
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(415, detail="unsupported_type")
    raw = await file.read()
    if not raw:
        raise HTTPException(400, detail="empty_image")
    if len(raw) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(413, detail="file_too_large")
    logger.info("estimate upload name=%s ct=%s bytes=%d", file.filename, file.content_type, len(raw))

    try:
        return await location_estimator.estimate_location(raw, file.filename or "")
    except (NoCandidates, NoResolution) as e:
        logger.info("estimate outcome=%s name=%s", e.code, file.filename)
        return _error_response(e)
    except Exception as e:
        logger.exception("estimate failed name=%s", file.filename)
        return JSONResponse(status_code=500, content={"error": f"estimate_error: {e}"})


@router.post("/rank-candidates", response_model=RankResponse)
async def rank_candidates(body: RankRequest):
    try:
        return await candidate_ranker.rank_candidates(body.candidates)
    except (NoCandidates, NoResolution) as e:
        return _error_response(e)
    except Exception as e:
        logger.exception("rank failed candidates=%d", len(body.candidates))
        return JSONResponse(status_code=500, content={"error": f"rank_error: {e}"})
