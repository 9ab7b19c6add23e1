"""Local two-pass recognizer backed by Tesseract."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any

import pytesseract
from PIL import Image

from labelguard.config.settings import OCRConfig
from labelguard.ocr.base import OCROptions, OCRProviderName, OCRResult

logger = logging.getLogger(__name__)

GENERAL_CONFIG = "--psm 6 -c preserve_interword_spaces=1"
# Digits, units and currency marks that appear on declarations
NUMERIC_WHITELIST = "0123456789.,/:-₹kgKgGmMlLMRPmrpNETQtyQTYWTwtRsINR"
NUMERIC_CONFIG = f"--psm 6 -c tessedit_char_whitelist={NUMERIC_WHITELIST}"


def _words(data: dict[str, list[Any]]) -> list[tuple[str, float, tuple[int, int, int]]]:
    words = []
    for i, raw in enumerate(data.get("text", [])):
        text = str(raw).strip()
        try:
            conf = float(data["conf"][i])
        except (KeyError, IndexError, TypeError, ValueError):
            conf = -1.0
        line_key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        words.append((text, conf, line_key))
    return words


def _lines(words: list[tuple[str, float, tuple[int, int, int]]]) -> str:
    """Rebuild reading-order lines from word-level output."""
    lines: dict[tuple[int, int, int], list[str]] = {}
    for text, _, key in words:
        if text:
            lines.setdefault(key, []).append(text)
    return "\n".join(" ".join(parts) for parts in lines.values())


def average_confidence(confidences: list[float]) -> float:
    valid = [c for c in confidences if c >= 0]
    if not valid:
        return 0.0
    return round(sum(valid) / len(valid), 1)


class LocalOCRProvider:
    """Always available. Pass 1 reads everything in the requested language;
    pass 2 (skipped in fast mode) re-reads with a numeric/unit whitelist to
    recover prices and quantities the general pass garbles."""

    name = OCRProviderName.LOCAL

    def __init__(self, config: OCRConfig) -> None:
        self._config = config
        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd

    @property
    def is_available(self) -> bool:
        return True

    def _run_pass(self, image: Image.Image, lang: str, config: str) -> list[tuple[str, float, tuple[int, int, int]]]:
        data = pytesseract.image_to_data(
            image,
            lang=lang,
            config=config,
            output_type=pytesseract.Output.DICT,
        )
        return _words(data)

    def _recognize_sync(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()

        general = self._run_pass(image, options.language or self._config.default_language, GENERAL_CONFIG)
        texts = [_lines(general).strip()]
        words = list(general)

        if not options.fast_mode:
            numeric = self._run_pass(image, "eng", NUMERIC_CONFIG)
            texts.append(_lines(numeric).strip())
            words.extend(numeric)

        text = "\n".join(texts).strip()
        confidence = average_confidence([conf for word, conf, _ in words if word])
        return OCRResult(text=text, confidence=confidence, provider_used=self.name)

    async def recognize(self, image_bytes: bytes, options: OCROptions) -> OCRResult:
        return await asyncio.to_thread(self._recognize_sync, image_bytes, options)
