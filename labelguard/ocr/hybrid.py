"""Hybrid provider: a recognizer base layer followed by generative cleanup."""

from __future__ import annotations

import logging

from labelguard.ai_engine.engine import AIEngine
from labelguard.conduit.fallback import FallbackExhausted, Strategy, run_fallback
from labelguard.ocr.base import OCROptions, OCRProvider, OCRProviderName, OCRResult
from labelguard.telemetry.errors import ErrorCode, ProviderUnavailable, emit_structured_error

logger = logging.getLogger(__name__)


class HybridOCRProvider:
    """Cloud recognizer first, local recognizer if the cloud one fails.

    When the generative engine is available the base text is then cleaned
    up. Confidence always comes from the base layer.
    """

    name = OCRProviderName.HYBRID

    def __init__(self, base_layers: list[OCRProvider], engine: AIEngine | None) -> None:
        self._base_layers = base_layers
        self._engine = engine

    @property
    def is_available(self) -> bool:
        return True

    async def _base(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        strategies: list[Strategy[OCRResult]] = [
            Strategy(provider.name.value, lambda p=provider: p.recognize(image_bytes, options))
            for provider in self._base_layers
        ]
        try:
            result = await run_fallback(strategies)
        except FallbackExhausted as exc:
            raise ProviderUnavailable(f"No OCR base layer succeeded: {exc}") from exc
        return result.value

    async def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        base = await self._base(image_bytes, options)
        text = base.text

        if self._engine is not None and self._engine.is_available and text:
            try:
                cleaned = (await self._engine.clean_ocr_text(text)).strip()
            except Exception as exc:
                emit_structured_error(
                    logger,
                    code=ErrorCode.AI_CLEANUP_FAILED,
                    message=str(exc),
                    suppressed=True,
                    phase="hybrid_cleanup",
                )
                cleaned = ""
            text = cleaned or text

        return OCRResult(text=text, confidence=base.confidence, provider_used=self.name)
