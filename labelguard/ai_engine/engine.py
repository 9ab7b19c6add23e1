"""AI Engine: label transcription and OCR cleanup backed by Vertex AI Gemini.

The AI Engine reads and rewrites text; it never decides anything. It is
invoked by the OCR providers, returns plain text, and is optional: without
a configured project the service runs on the local and cloud recognizers.
"""

from __future__ import annotations

import logging
from typing import Any

from labelguard.config.settings import VertexConfig
from labelguard.telemetry.errors import ErrorCode, ProviderUnavailable, emit_structured_error

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = (
    "Read every readable character from this product package image. "
    "Return plain text lines only, preserve order and line breaks. "
    "Do NOT summarize or explain."
)

CLEANUP_PROMPT = (
    "You correct OCR noise from retail labels. Given RAW_OCR, output a cleaned text "
    "that keeps original structure and units (MRP, Net Qty, Manufacturer, etc). "
    "Return only the cleaned text."
)


class AIEngine:
    """AI Engine client for Vertex AI Gemini.

    This class handles communication with the Vertex AI API.
    It is stateless: every call is independent of the last.
    """

    def __init__(self, config: VertexConfig, client: Any = None) -> None:
        self._config = config
        self._client: Any = client
        self._initialized = client is not None

    def initialize(self) -> bool:
        """Initialize the Vertex AI client.

        Returns True if initialization succeeds, False otherwise.
        The engine is optional; callers check ``is_available``.
        """
        if self._initialized:
            return True
        if not self._config.project_id:
            return False

        try:
            import vertexai
            from vertexai.generative_models import GenerativeModel

            vertexai.init(
                project=self._config.project_id,
                location=self._config.location,
            )
            self._client = GenerativeModel(self._config.model)
            self._initialized = True
            logger.info("vertex ai initialized", extra={"model": self._config.model})
            return True
        except Exception as exc:
            emit_structured_error(
                logger,
                code=ErrorCode.AI_INITIALIZATION_FAILED,
                message=str(exc),
                suppressed=True,
            )
            self._initialized = False
            return False

    @property
    def is_available(self) -> bool:
        return self._initialized and self._client is not None

    def _require_client(self) -> Any:
        if not self.is_available:
            raise ProviderUnavailable("Generative model is not configured (set VERTEX_PROJECT_ID).")
        return self._client

    async def transcribe_image(self, image_bytes: bytes, mime_type: str = "image/png") -> str:
        """Transcribe every readable character on a package image, in reading order."""
        client = self._require_client()
        from vertexai.generative_models import Part

        response = await client.generate_content_async(
            [Part.from_data(data=image_bytes, mime_type=mime_type), TRANSCRIBE_PROMPT]
        )
        return response.text or ""

    async def clean_ocr_text(self, raw_text: str) -> str:
        """Correct recognizer noise while keeping line structure and units."""
        client = self._require_client()
        response = await client.generate_content_async(
            f"{CLEANUP_PROMPT}\n\nRAW_OCR:\n{raw_text}"
        )
        return response.text or ""
