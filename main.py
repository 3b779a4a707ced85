# main.py
import uuid
from time import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from app.scripts.logging_config import setup_logging, get_logger, set_request_id

# 1) 로깅 설정(최우선)
setup_logging(json_fmt=settings.LOG_JSON)
logger = get_logger(__name__)

# 2) FastAPI 앱
app = FastAPI(title="WebGIS Street View & Photo Location API")

# 3) 요청 로깅 미들웨어
@app.middleware("http")
async def log_requests(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    set_request_id(rid)

    start = time()
    path = request.url.path
    method = request.method
    query = request.url.query
    client_ip = getattr(request.client, 'host', '-') if request.client else '-'

    if query:
        logger.info("REQ start %s %s?%s ip=%s", method, path, query, client_ip)
    else:
        logger.info("REQ start %s %s ip=%s", method, path, client_ip)

    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        duration = (time() - start) * 1000
        status = getattr(response, 'status_code', 'NA')
        if query:
            logger.info("REQ end %s %s?%s status=%s %.1fms", method, path, query, status, duration)
        else:
            logger.info("REQ end %s %s status=%s %.1fms", method, path, status, duration)

# 4) CORS
allowed_origins = [o.strip() for o in settings.CORS_ALLOW_ORIGINS.split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials="*" not in allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
logger.info("CORS middleware configured for %s", allowed_origins)

# 5) 라우터
from app.api import street_images, estimate, geocode

app.include_router(street_images.router)
app.include_router(estimate.router)
app.include_router(geocode.router)

# 6) 엔드포인트
@app.get("/")
def root():
    return {"message": "WebGIS street view / photo location server", "routes": [
        "/api/health",
        "/api/street-images?lat=&lon=",
        "/api/estimate-location",
        "/api/rank-candidates",
        "/api/geocode/search?q=",
        "/api/geocode/reverse?lat=&lon=",
    ]}
