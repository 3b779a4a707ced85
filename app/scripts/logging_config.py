# logging_config.py
import logging
import logging.config
import logging.handlers
from pathlib import Path
from datetime import datetime
import json
import contextvars

# 요청 단위 식별자(ContextVar로 보관)
_request_id_ctx = contextvars.ContextVar("request_id", default="-")

class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get("-")
        return True

def set_request_id(req_id: str):
    _request_id_ctx.set(req_id)

def get_logger(name: str = __name__) -> logging.Logger:
    return logging.getLogger(name)

# 로그 디렉터리
LOG_DIR = Path("logs")
LOG_DIR.mkdir(parents=True, exist_ok=True)

STREET_IMAGES_LOGGER = "street_images"
ESTIMATE_LOGGER = "location_estimate"


def _rotating_file(filename: str) -> dict:
    return {
        "class": "logging.handlers.TimedRotatingFileHandler",
        "level": "INFO",
        "formatter": "default",
        "filters": ["request_id"],
        "filename": str(LOG_DIR / filename),
        "when": "midnight",
        "interval": 1,
        "backupCount": 30,
        "encoding": "utf-8",
    }


def build_dict_config(json_fmt: bool = False) -> dict:
    fmt = (
        '{"ts":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s",'
        '"request_id":"%(request_id)s","msg":"%(message)s"}'
        if json_fmt
        else '%(asctime)s | %(levelname)s | %(name)s | rid=%(request_id)s | %(message)s'
    )

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "default": {
                "format": fmt,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "default",
                "filters": ["request_id"],
            },
            "file_app": _rotating_file("app.log"),
            "file_street_images": _rotating_file("street_images.log"),
            "file_location_estimate": _rotating_file("location_estimate.log"),
        },
        "loggers": {
            # 루트 로거: 앱 전반
            "": {
                "level": "INFO",
                "handlers": ["console", "file_app"],
            },
            # 거리 이미지 집계 전용 로거 (tier 별 개수 진단용)
            STREET_IMAGES_LOGGER: {
                "level": "INFO",
                "handlers": ["console", "file_street_images"],
                "propagate": False,
            },
            # 사진 위치 추정 파이프라인 전용 로거
            ESTIMATE_LOGGER: {
                "level": "INFO",
                "handlers": ["console", "file_location_estimate"],
                "propagate": False,
            },
            # uvicorn 로거 레벨 통일
            "uvicorn": {"level": "INFO"},
            "uvicorn.error": {"level": "INFO"},
            "uvicorn.access": {"level": "INFO"},
        },
    }

def setup_logging(json_fmt: bool = False):
    logging.config.dictConfig(build_dict_config(json_fmt=json_fmt))

# ===== 파이프라인 보조 함수들 =====
def log_aggregation_summary(lat: float, lon: float, results: list,
                            logger: logging.Logger | None = None) -> dict:
    """Emit the per-request tier summary line and return the counts."""
    logger = logger or get_logger(STREET_IMAGES_LOGGER)
    counts: dict = {}
    for r in results:
        key = getattr(r.source, "value", r.source)
        counts[key] = counts.get(key, 0) + 1
    logger.info(
        "street-images lat=%.6f lon=%.6f total=%d geo=%d text=%d general=%d",
        lat, lon, len(results),
        counts.get("geo-proximity", 0),
        counts.get("text-search", 0),
        counts.get("general-image-search", 0),
    )
    return counts

def log_estimation_event(event_type: str, details: dict, logger: logging.Logger | None = None):
    logger = logger or get_logger(ESTIMATE_LOGGER)
    logger.info("ESTIMATE_EVENT: %s", json.dumps({
        "timestamp": datetime.now().isoformat(),
        "event_type": event_type,
        "details": details
    }, ensure_ascii=False, default=str))

def log_source_failure(source: str, err: Exception, logger: logging.Logger | None = None):
    logger = logger or get_logger(STREET_IMAGES_LOGGER)
    logger.warning("소스 실패: %s - %s", source, err)
