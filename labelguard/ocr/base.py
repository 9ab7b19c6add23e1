"""OCR provider contract and result types."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from labelguard.telemetry.errors import InvalidInput


class OCRProviderName(str, Enum):
    LOCAL = "local"
    CLOUD_VISION = "cloud-vision"
    GENERATIVE = "generative"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: str) -> OCRProviderName:
        """Resolve a provider name, accepting the legacy engine names."""
        key = value.strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            allowed = ", ".join(p.value for p in cls)
            raise InvalidInput(f"Unknown OCR provider '{value}'. Allowed providers: {allowed}.") from exc


_ALIASES = {
    "tesseract": OCRProviderName.LOCAL.value,
    "vision": OCRProviderName.CLOUD_VISION.value,
    "gemini": OCRProviderName.GENERATIVE.value,
}


class OCROptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str = "eng"
    fast_mode: bool = False


class OCRResult(BaseModel):
    """Text read from one image. Confidence is 0..100; 0 means the provider reports none."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    text: str
    confidence: float = Field(ge=0.0, le=100.0, default=0.0)
    provider_used: OCRProviderName


class OCRProvider(Protocol):
    name: OCRProviderName

    @property
    def is_available(self) -> bool: ...

    async def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult: ...
