"""Generative image-read provider: the model transcribes the label verbatim."""

from __future__ import annotations

import re

from labelguard.ai_engine.engine import AIEngine
from labelguard.ocr.base import OCROptions, OCRProviderName, OCRResult
from labelguard.telemetry.errors import ProviderUnavailable

_FENCE = re.compile(r"^```[\w-]*[ \t]*\n?|\n?```[ \t]*$", re.MULTILINE)


def unwrap_code_fences(text: str) -> str:
    """Drop markdown fence markers the model sometimes wraps output in; keep the content."""
    return _FENCE.sub("", text).strip()


class GenerativeOCRProvider:
    """The model reports no per-symbol confidence, so results carry 0."""

    name = OCRProviderName.GENERATIVE

    def __init__(self, engine: AIEngine | None) -> None:
        self._engine = engine

    @property
    def is_available(self) -> bool:
        return self._engine is not None and self._engine.is_available

    async def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        if not self.is_available:
            raise ProviderUnavailable("Generative model is not configured (set VERTEX_PROJECT_ID).")
        text = await self._engine.transcribe_image(image_bytes, mime_type="image/png")
        return OCRResult(text=unwrap_code_fences(text), confidence=0.0, provider_used=self.name)
