"""Tests for the generative, cloud and hybrid OCR providers."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from labelguard.ai_engine.engine import CLEANUP_PROMPT, AIEngine
from labelguard.config.settings import VertexConfig
from labelguard.ocr.base import OCROptions, OCRProviderName, OCRResult
from labelguard.ocr.generative import GenerativeOCRProvider, unwrap_code_fences
from labelguard.ocr.hybrid import HybridOCRProvider
from labelguard.ocr.vision import BILLING_MESSAGE, CloudVisionOCRProvider, symbol_confidence
from labelguard.telemetry.errors import ProviderUnavailable


class FakeEngine:
    def __init__(self, available=True, transcript="", cleaned="", cleanup_error=None):
        self.is_available = available
        self.transcript = transcript
        self.cleaned = cleaned
        self.cleanup_error = cleanup_error
        self.cleanup_inputs = []

    async def transcribe_image(self, image_bytes, mime_type="image/png"):
        return self.transcript

    async def clean_ocr_text(self, raw_text):
        self.cleanup_inputs.append(raw_text)
        if self.cleanup_error:
            raise self.cleanup_error
        return self.cleaned


class FakeBase:
    def __init__(self, name, text="", confidence=0.0, error=None):
        self.name = name
        self.text = text
        self.confidence = confidence
        self.error = error
        self.calls = 0

    @property
    def is_available(self):
        return True

    async def recognize(self, image_bytes, options):
        self.calls += 1
        if self.error:
            raise self.error
        return OCRResult(text=self.text, confidence=self.confidence, provider_used=self.name)


def _vision_response(text="", confidences=(), error=""):
    symbols = [SimpleNamespace(confidence=c) for c in confidences]
    page = SimpleNamespace(
        blocks=[SimpleNamespace(paragraphs=[SimpleNamespace(words=[SimpleNamespace(symbols=symbols)])])]
    )
    return SimpleNamespace(
        error=SimpleNamespace(message=error),
        full_text_annotation=SimpleNamespace(text=text, pages=[page]),
    )


class FakeVisionClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def document_text_detection(self, image):
        if self.error:
            raise self.error
        return self.response


class TestGenerativeProvider:
    def test_fences_removed(self):
        assert unwrap_code_fences("```text\nMRP 499\nNET QTY 250 g\n```") == "MRP 499\nNET QTY 250 g"

    def test_plain_text_untouched(self):
        assert unwrap_code_fences("  MRP 499 ") == "MRP 499"

    @pytest.mark.asyncio
    async def test_transcription_has_zero_confidence(self):
        provider = GenerativeOCRProvider(FakeEngine(transcript="```\nBEST BEFORE 12 MONTHS\n```"))
        result = await provider.recognize(b"png", OCROptions())
        assert result.text == "BEST BEFORE 12 MONTHS"
        assert result.confidence == 0
        assert result.provider_used is OCRProviderName.GENERATIVE

    @pytest.mark.asyncio
    async def test_unconfigured_engine(self):
        provider = GenerativeOCRProvider(FakeEngine(available=False))
        assert not provider.is_available
        with pytest.raises(ProviderUnavailable):
            await provider.recognize(b"png", OCROptions())

    def test_missing_engine(self):
        assert not GenerativeOCRProvider(None).is_available


class TestAIEngine:
    def test_no_project_means_unavailable(self):
        engine = AIEngine(VertexConfig(project_id=""))
        assert engine.initialize() is False
        assert not engine.is_available

    @pytest.mark.asyncio
    async def test_unavailable_engine_raises(self):
        with pytest.raises(ProviderUnavailable):
            await AIEngine(VertexConfig(project_id="")).clean_ocr_text("MRP")

    @pytest.mark.asyncio
    async def test_cleanup_prompt_wraps_raw_text(self):
        prompts = []

        class Client:
            async def generate_content_async(self, contents):
                prompts.append(contents)
                return SimpleNamespace(text="MRP 499")

        engine = AIEngine(VertexConfig(project_id="p"), client=Client())
        assert await engine.clean_ocr_text("MRP 4g9") == "MRP 499"
        assert prompts == [f"{CLEANUP_PROMPT}\n\nRAW_OCR:\nMRP 4g9"]


class TestCloudVisionProvider:
    @pytest.mark.asyncio
    async def test_text_and_symbol_confidence(self):
        client = FakeVisionClient(_vision_response(" MRP 499\n", confidences=(0.9, 0.8, 0.95)))
        result = await CloudVisionOCRProvider(client).recognize(b"png", OCROptions())
        assert result.text == "MRP 499"
        assert result.confidence == 88.3
        assert result.provider_used is OCRProviderName.CLOUD_VISION

    def test_no_symbols_gives_zero(self):
        assert symbol_confidence(_vision_response("x")) == 0.0

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        provider = CloudVisionOCRProvider(None)
        assert not provider.is_available
        with pytest.raises(ProviderUnavailable, match="isn't configured"):
            await provider.recognize(b"png", OCROptions())

    @pytest.mark.asyncio
    async def test_billing_error_mapped(self):
        client = FakeVisionClient(error=RuntimeError("403 PERMISSION_DENIED: This API method requires billing"))
        with pytest.raises(ProviderUnavailable, match="billing"):
            await CloudVisionOCRProvider(client).recognize(b"png", OCROptions())

    @pytest.mark.asyncio
    async def test_api_error_in_response(self):
        client = FakeVisionClient(_vision_response(error="Bad image data"))
        with pytest.raises(RuntimeError, match="Bad image data"):
            await CloudVisionOCRProvider(client).recognize(b"png", OCROptions())

    def test_billing_message(self):
        assert "billing" in BILLING_MESSAGE


class TestHybridProvider:
    @pytest.mark.asyncio
    async def test_cloud_base_then_cleanup(self):
        cloud = FakeBase(OCRProviderName.CLOUD_VISION, "MRP 4g9", 92.0)
        local = FakeBase(OCRProviderName.LOCAL, "unused", 40.0)
        engine = FakeEngine(cleaned=" MRP 499 ")
        result = await HybridOCRProvider([cloud, local], engine).recognize(b"png", OCROptions())
        assert result.text == "MRP 499"
        assert result.confidence == 92.0
        assert result.provider_used is OCRProviderName.HYBRID
        assert local.calls == 0
        assert engine.cleanup_inputs == ["MRP 4g9"]

    @pytest.mark.asyncio
    async def test_falls_back_to_local_base(self):
        cloud = FakeBase(OCRProviderName.CLOUD_VISION, error=ProviderUnavailable("not configured"))
        local = FakeBase(OCRProviderName.LOCAL, "NET QTY 250 G", 71.5)
        result = await HybridOCRProvider([cloud, local], None).recognize(b"png", OCROptions())
        assert result.text == "NET QTY 250 G"
        assert result.confidence == 71.5

    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_base_text(self):
        local = FakeBase(OCRProviderName.LOCAL, "MRP 499", 80.0)
        engine = FakeEngine(cleanup_error=RuntimeError("quota"))
        result = await HybridOCRProvider([local], engine).recognize(b"png", OCROptions())
        assert result.text == "MRP 499"

    @pytest.mark.asyncio
    async def test_empty_cleanup_keeps_base_text(self):
        local = FakeBase(OCRProviderName.LOCAL, "MRP 499", 80.0)
        result = await HybridOCRProvider([local], FakeEngine(cleaned="   ")).recognize(b"png", OCROptions())
        assert result.text == "MRP 499"

    @pytest.mark.asyncio
    async def test_cleanup_skipped_when_engine_unavailable(self):
        local = FakeBase(OCRProviderName.LOCAL, "MRP 499", 80.0)
        engine = FakeEngine(available=False, cleaned="changed")
        result = await HybridOCRProvider([local], engine).recognize(b"png", OCROptions())
        assert result.text == "MRP 499"
        assert engine.cleanup_inputs == []

    @pytest.mark.asyncio
    async def test_all_bases_fail(self):
        cloud = FakeBase(OCRProviderName.CLOUD_VISION, error=RuntimeError("down"))
        local = FakeBase(OCRProviderName.LOCAL, error=RuntimeError("tesseract missing"))
        with pytest.raises(ProviderUnavailable, match="No OCR base layer"):
            await HybridOCRProvider([cloud, local], None).recognize(b"png", OCROptions())
