"""Image preprocessing pipeline for label OCR.

Normalizes package photos before any recognizer sees them:
1. Decode image bytes (EXIF orientation applied by the decoder)
2. Grayscale
3. Resize to a fixed working width (1200 px fast, 2000 px full)
4. Contrast stretch
5. Unsharp-mask sharpen
6. Binarize at mid-gray
7. Encode as PNG

Steps after decoding degrade gracefully: if one fails, the image from the
previous step continues. Bytes that cannot be decoded at all are rejected.
"""

from __future__ import annotations

import asyncio
import logging

import cv2
import numpy as np

from labelguard.telemetry.errors import InvalidInput

logger = logging.getLogger(__name__)

FAST_WIDTH = 1200
FULL_WIDTH = 2000
FAST_SHARPEN_SIGMA = 0.7
FULL_SHARPEN_SIGMA = 1.0
THRESHOLD = 128


def preprocess(image_bytes: bytes, fast: bool = False) -> bytes:
    """Run the full preprocessing pipeline on raw image bytes and return PNG bytes."""
    img = _decode(image_bytes)
    if img is None:
        raise InvalidInput("Could not decode image")

    img = _grayscale(img)
    img = _resize(img, FAST_WIDTH if fast else FULL_WIDTH)
    img = _normalize(img)
    img = _sharpen(img, FAST_SHARPEN_SIGMA if fast else FULL_SHARPEN_SIGMA)
    img = _threshold(img)
    return _encode(img)


async def preprocess_async(image_bytes: bytes, fast: bool = False) -> bytes:
    return await asyncio.to_thread(preprocess, image_bytes, fast)


def _decode(image_bytes: bytes) -> np.ndarray | None:
    """Decode raw bytes into an OpenCV BGR array."""
    if not image_bytes:
        return None
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)


def _grayscale(img: np.ndarray) -> np.ndarray:
    try:
        if img.ndim == 3:
            return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    except Exception as e:
        logger.warning("preprocessing: grayscale failed: %s", e)
    return img


def _resize(img: np.ndarray, target_width: int) -> np.ndarray:
    """Scale to target_width, keeping aspect ratio. Small images are enlarged."""
    try:
        h, w = img.shape[:2]
        if w == target_width:
            return img
        scale = target_width / w
        new_h = max(1, int(round(h * scale)))
        interpolation = cv2.INTER_AREA if scale < 1 else cv2.INTER_CUBIC
        return cv2.resize(img, (target_width, new_h), interpolation=interpolation)
    except Exception as e:
        logger.warning("preprocessing: resize failed: %s", e)
        return img


def _normalize(img: np.ndarray) -> np.ndarray:
    """Stretch intensities to the full 0-255 range."""
    try:
        return cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX)
    except Exception as e:
        logger.warning("preprocessing: normalize failed: %s", e)
        return img


def _sharpen(img: np.ndarray, sigma: float) -> np.ndarray:
    try:
        blurred = cv2.GaussianBlur(img, (0, 0), sigma)
        return cv2.addWeighted(img, 1.5, blurred, -0.5, 0)
    except Exception as e:
        logger.warning("preprocessing: sharpen failed: %s", e)
        return img


def _threshold(img: np.ndarray) -> np.ndarray:
    """Pixels >= THRESHOLD become white, the rest black."""
    try:
        _, binary = cv2.threshold(img, THRESHOLD - 1, 255, cv2.THRESH_BINARY)
        return binary
    except Exception as e:
        logger.warning("preprocessing: threshold failed: %s", e)
        return img


def _encode(img: np.ndarray) -> bytes:
    success, buffer = cv2.imencode(".png", img)
    if not success:
        raise InvalidInput("Could not encode preprocessed image")
    return buffer.tobytes()
