"""Cloud document-text recognizer backed by Google Cloud Vision."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from google.cloud import vision

from labelguard.config.settings import VisionConfig
from labelguard.ocr.base import OCROptions, OCRProviderName, OCRResult
from labelguard.telemetry.errors import ErrorCode, ProviderUnavailable, emit_structured_error

logger = logging.getLogger(__name__)

BILLING_MESSAGE = "Google Vision requires billing to be enabled on your GCP project."
_BILLING_ERROR = re.compile(r"billing|permission_denied", re.IGNORECASE)


def build_vision_client(config: VisionConfig) -> Any:
    """Create the Vision client when credentials are configured, else None.

    A client that constructs fine can still fail at call time when billing
    is disabled; that is handled per call.
    """
    if not config.enabled:
        logger.info("GOOGLE_APPLICATION_CREDENTIALS not set; cloud vision disabled")
        return None
    try:
        client = vision.ImageAnnotatorClient()
    except Exception as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.VISION_INITIALIZATION_FAILED,
            message=str(exc),
            suppressed=True,
        )
        return None
    logger.info("cloud vision client initialized")
    return client


def symbol_confidence(response: Any) -> float:
    """Mean symbol confidence as a 0..100 score, one decimal."""
    values: list[float] = []
    annotation = getattr(response, "full_text_annotation", None)
    for page in getattr(annotation, "pages", None) or []:
        for block in page.blocks:
            for paragraph in block.paragraphs:
                for word in paragraph.words:
                    for symbol in word.symbols:
                        if isinstance(symbol.confidence, (int, float)):
                            values.append(symbol.confidence * 100)
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


class CloudVisionOCRProvider:
    name = OCRProviderName.CLOUD_VISION

    def __init__(self, client: Any = None) -> None:
        self._client = client

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def _detect(self, image_bytes: bytes) -> Any:
        response = self._client.document_text_detection(image=vision.Image(content=image_bytes))
        if response.error.message:
            raise RuntimeError(f"Google Vision API error: {response.error.message}")
        return response

    async def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        if self._client is None:
            raise ProviderUnavailable(
                "Google Vision isn't configured (GOOGLE_APPLICATION_CREDENTIALS not set)."
            )
        try:
            response = await asyncio.to_thread(self._detect, image_bytes)
        except Exception as exc:
            if _BILLING_ERROR.search(str(exc)):
                raise ProviderUnavailable(BILLING_MESSAGE) from exc
            raise

        text = (response.full_text_annotation.text or "").strip()
        return OCRResult(text=text, confidence=symbol_confidence(response), provider_used=self.name)
