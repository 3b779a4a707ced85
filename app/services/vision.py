from __future__ import annotations

import asyncio
import io
import threading
from typing import Dict, List, Optional

import numpy as np
from PIL import Image, ImageFile, ImageOps

from app.domain import geo_schema as schema
from app.scripts.logging_config import get_logger
from config import settings

ImageFile.LOAD_TRUNCATED_IMAGES = True

logger = get_logger("vision")

# ------------------------------------------------------------------------------
# 설정
# ------------------------------------------------------------------------------
_OCR_LANGUAGES = [c.strip() for c in settings.OCR_LANGUAGES.split(",") if c.strip()]
_DETECTOR_MODEL_CFG = settings.OBJECT_DETECTOR_MODEL
_CLASSIFIER_MODEL_CFG = settings.IMAGE_CLASSIFIER_MODEL
_DEVICE_CFG = settings.VISION_DEVICE

COMPOSITION_MAX_SIDE = 200
SKY_BLUE_MIN = 150
GREEN_MIN = 100
URBAN_SKY_MAX = 0.3
URBAN_GREEN_MAX = 0.3
NATURE_GREEN_MIN = 0.2
CLIP_LOGIT_SCALE = 100.0
CLASSIFY_TOP_K = 5

# ------------------------------------------------------------------------------
# 내부 상태
# ------------------------------------------------------------------------------
_detector = None
_classifier = None
_label_vectors: Optional[np.ndarray] = None
_load_lock = threading.RLock()

# 짧은 별칭 → sentence-transformers 실제 모델명
_ALIAS = {
    "clip-vit-b32": "clip-ViT-B-32",
    "clip-vit-b16": "clip-ViT-B-16",
    "clip-vit-l14": "clip-ViT-L-14",
}


# ------------------------------------------------------------------------------
# 유틸
# ------------------------------------------------------------------------------
def _open_rgb(image_bytes: bytes) -> Image.Image:
    with Image.open(io.BytesIO(image_bytes)) as im:
        im = ImageOps.exif_transpose(im)
        return im.convert("RGB")


def _hangul_count(text: str) -> int:
    return sum(1 for c in text if "가" <= c <= "힣")


def _ocr_score(text: str, mean_conf: float, priority: float) -> float:
    score = len(text) * 0.2 + mean_conf * 0.3 + priority * 0.1
    hangul = _hangul_count(text)
    if hangul > 0:
        score += (hangul / len(text)) * 2.0
        score += min(hangul / 10, 0.5)
    return score


def _language_priority(code: str) -> float:
    if code == "kor+eng":
        return 1.0
    if code == "eng":
        return 0.8
    return 0.9


# ------------------------------------------------------------------------------
# OCR (pytesseract)
# ------------------------------------------------------------------------------
def _ocr_once(img: Image.Image, lang: str) -> tuple[str, float]:
    import pytesseract
    from pytesseract import Output

    if settings.TESSERACT_CMD:
        pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD
    data = pytesseract.image_to_data(img, lang=lang, output_type=Output.DICT)
    lines: Dict[tuple, List[str]] = {}
    confs: List[float] = []
    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            continue
        if conf >= 0:
            confs.append(conf)
    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    mean_conf = sum(confs) / len(confs) if confs else 0.0
    return text, mean_conf


def _recognize_text_sync(image_bytes: bytes) -> str:
    img = _open_rgb(image_bytes)
    best_text, best_score = "", float("-inf")
    last_error: Optional[Exception] = None
    for lang in _OCR_LANGUAGES:
        try:
            text, conf = _ocr_once(img, lang)
        except Exception as e:
            last_error = e
            logger.warning("ocr_failed lang=%s err=%s", lang, e)
            continue
        if len(text.strip()) < 2:
            continue
        score = _ocr_score(text, conf, _language_priority(lang))
        logger.info("ocr_candidate lang=%s chars=%d conf=%.1f score=%.2f", lang, len(text), conf, score)
        if score > best_score:
            best_text, best_score = text, score
    if not best_text and last_error is not None:
        raise last_error
    return best_text


async def recognize_text(image_bytes: bytes) -> str:
    """여러 OCR 언어로 시도 후 점수가 가장 높은 텍스트 반환 (줄 유지)."""
    return await asyncio.to_thread(_recognize_text_sync, image_bytes)


# ------------------------------------------------------------------------------
# Object detection (ultralytics YOLO)
# ------------------------------------------------------------------------------
def _load_detector():
    global _detector
    if _detector is not None:
        return _detector
    with _load_lock:
        if _detector is None:
            from ultralytics import YOLO

            _detector = YOLO(_DETECTOR_MODEL_CFG)
            logger.info("detector loaded model=%s", _DETECTOR_MODEL_CFG)
    return _detector


def _detect_objects_sync(image_bytes: bytes) -> List[Dict]:
    model = _load_detector()
    img = _open_rgb(image_bytes)
    kw = {"verbose": False}
    if _DEVICE_CFG:
        kw["device"] = _DEVICE_CFG
    res = model.predict(img, **kw)[0]
    names = res.names if hasattr(res, "names") else model.names
    out = []
    for box in res.boxes:
        cls_id = int(box.cls)
        out.append({"label": str(names.get(cls_id, cls_id)), "score": float(box.conf)})
    return out


async def detect_objects(image_bytes: bytes) -> List[Dict]:
    return await asyncio.to_thread(_detect_objects_sync, image_bytes)


# ------------------------------------------------------------------------------
# Zero-shot scene classification (sentence-transformers CLIP)
# ------------------------------------------------------------------------------
def _load_classifier():
    """SentenceTransformer CLIP 모델 + 라벨 벡터 lazy 로딩."""
    global _classifier, _label_vectors
    if _classifier is not None:
        return _classifier, _label_vectors
    with _load_lock:
        if _classifier is None:
            from sentence_transformers import SentenceTransformer

            real_name = _ALIAS.get(_CLASSIFIER_MODEL_CFG.lower(), _CLASSIFIER_MODEL_CFG)
            kw = {}
            if _DEVICE_CFG:
                kw["device"] = _DEVICE_CFG
            model = SentenceTransformer(real_name, **kw)
            prompts = [f"a photo of a {label}" for label in schema.SCENE_LABELS]
            _label_vectors = model.encode(prompts, convert_to_numpy=True, normalize_embeddings=True)
            _classifier = model
            logger.info("classifier loaded model=%s labels=%d", real_name, len(prompts))
    return _classifier, _label_vectors


def _softmax(x: np.ndarray) -> np.ndarray:
    e = np.exp(x - np.max(x))
    return e / e.sum()


def _classify_image_sync(image_bytes: bytes) -> List[Dict]:
    model, label_vecs = _load_classifier()
    img = _open_rgb(image_bytes)
    vec = model.encode([img], convert_to_numpy=True, normalize_embeddings=True)[0]
    probs = _softmax(CLIP_LOGIT_SCALE * (label_vecs @ vec))
    order = np.argsort(-probs)[:CLASSIFY_TOP_K]
    return [{"label": schema.SCENE_LABELS[i], "probability": float(probs[i])} for i in order]


async def classify_image(image_bytes: bytes) -> List[Dict]:
    return await asyncio.to_thread(_classify_image_sync, image_bytes)


# ------------------------------------------------------------------------------
# Composition (Pillow 픽셀 샘플링)
# ------------------------------------------------------------------------------
def analyze_composition_sync(image_bytes: bytes) -> Dict:
    img = _open_rgb(image_bytes)
    w, h = img.size
    small = img.resize((max(1, min(w, COMPOSITION_MAX_SIDE)), max(1, min(h, COMPOSITION_MAX_SIDE))))
    px = np.asarray(small, dtype=np.int16)
    r, g, b = px[..., 0], px[..., 1], px[..., 2]
    sky = (b > r) & (b > g) & (b > SKY_BLUE_MIN)
    green = (g > r) & (g > b) & (g > GREEN_MIN)
    total = sky.size or 1
    sky_ratio = float(sky.sum()) / total
    green_ratio = float(green.sum()) / total
    return {
        "sky_ratio": sky_ratio,
        "green_ratio": green_ratio,
        # 하늘이 적고 녹지도 적으면 건물 가능성
        "has_buildings": sky_ratio < URBAN_SKY_MAX and green_ratio < URBAN_GREEN_MAX,
        "has_nature": green_ratio > NATURE_GREEN_MIN,
    }


async def analyze_composition(image_bytes: bytes) -> Dict:
    return await asyncio.to_thread(analyze_composition_sync, image_bytes)
