from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env.local", env_file_encoding="utf-8", extra="ignore")

    # 외부 지오데이터 API
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    COMMONS_API_URL: str = "https://commons.wikimedia.org/w/api.php"
    OPENVERSE_API_URL: str = "https://api.openverse.engineering/v1/images/"

    # HTTP
    HTTP_USER_AGENT: str = "WebGIS-StreetView-Server/1.0"  # Nominatim usage policy requires a UA
    HTTP_TIMEOUT_TOTAL: float = 15.0
    HTTP_TIMEOUT_CONNECT: float = 5.0

    # Street image tiers
    GEO_SEARCH_RADIUS_M: int = 5000
    GEO_SEARCH_LIMIT: int = 20
    TEXT_SEARCH_LIMIT: int = 4
    OPENVERSE_LIMIT: int = 10
    THUMBNAIL_WIDTH: int = 640

    # OCR (tesseract 언어 코드, 우선순위 순)
    OCR_LANGUAGES: str = "kor+eng,kor,eng,chi_sim,fra"
    TESSERACT_CMD: Optional[str] = None

    # Vision models (lazy loaded)
    OBJECT_DETECTOR_MODEL: str = "yolov8n.pt"
    IMAGE_CLASSIFIER_MODEL: str = "clip-vit-b32"
    VISION_DEVICE: Optional[str] = None  # "cpu", "cuda", "mps" 등

    # 추출 lane 별 타임아웃 (초)
    EXTRACTION_LANE_TIMEOUT: float = 60.0

    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB

    # comma separated; "*" = 전체 허용 (개발용)
    CORS_ALLOW_ORIGINS: str = "*"

    LOG_JSON: bool = False


settings = Settings()
