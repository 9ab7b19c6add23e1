"""Service container: every long-lived collaborator, built once at startup."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from labelguard.ai_engine.engine import AIEngine
from labelguard.api.images import ImageFetcher
from labelguard.barcode.lookup import BarcodeLookup
from labelguard.browser.extractor import BrowserExtractor
from labelguard.conduit.engine import ExtractionController
from labelguard.config.settings import ServiceConfig
from labelguard.ocr.generative import GenerativeOCRProvider
from labelguard.ocr.hybrid import HybridOCRProvider
from labelguard.ocr.local import LocalOCRProvider
from labelguard.ocr.registry import OCRRegistry
from labelguard.ocr.vision import CloudVisionOCRProvider, build_vision_client
from labelguard.pipeline.html_extractor import HTMLExtractor

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Explicit dependencies for the request handlers. Holds no per-request state."""

    config: ServiceConfig
    html_extractor: HTMLExtractor
    browser_extractor: BrowserExtractor
    ocr: OCRRegistry
    barcode_lookup: BarcodeLookup
    image_fetcher: ImageFetcher

    def extraction_controller(self) -> ExtractionController:
        return ExtractionController(
            allowlist=self.config.allowlist,
            timeouts=self.config.timeouts,
            html_extractor=self.html_extractor,
            browser_extractor=self.browser_extractor,
        )


def build_ocr_registry(
    config: ServiceConfig,
    ai_engine: AIEngine | None = None,
    vision_client: object | None = None,
) -> OCRRegistry:
    local = LocalOCRProvider(config.ocr)
    cloud = CloudVisionOCRProvider(vision_client)
    generative = GenerativeOCRProvider(ai_engine)
    hybrid = HybridOCRProvider(base_layers=[cloud, local], engine=ai_engine)
    return OCRRegistry(
        providers=[local, cloud, generative, hybrid],
        timeouts=config.timeouts,
        provider_order=config.ocr.provider_order,
    )


def build_container(config: ServiceConfig | None = None) -> ServiceContainer:
    config = config or ServiceConfig()

    ai_engine = AIEngine(config.vertex)
    ai_engine.initialize()
    vision_client = build_vision_client(config.vision)

    container = ServiceContainer(
        config=config,
        html_extractor=HTMLExtractor(config.allowlist, config.timeouts),
        browser_extractor=BrowserExtractor(config.allowlist, config.browser, config.timeouts),
        ocr=build_ocr_registry(config, ai_engine=ai_engine, vision_client=vision_client),
        barcode_lookup=BarcodeLookup(config.barcode, config.timeouts),
        image_fetcher=ImageFetcher(config.url_policy, config.timeouts),
    )
    logger.info("service container built", extra={"ocr_providers": container.ocr.availability()})
    return container


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
