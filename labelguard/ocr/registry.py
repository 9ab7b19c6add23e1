"""OCR provider registry and selection policy."""

from __future__ import annotations

import asyncio
import logging

from labelguard.config.settings import TimeoutConfig
from labelguard.ocr.base import OCROptions, OCRProvider, OCRProviderName, OCRResult
from labelguard.telemetry.errors import InvalidInput, ProviderUnavailable, TimeoutExceeded

logger = logging.getLogger(__name__)


class OCRRegistry:
    """Holds one instance of every provider and picks which one serves a request.

    Selection:
    1. An explicit provider is honored, or rejected if it cannot run
    2. Otherwise the first usable provider in the configured order
    3. Otherwise generative if configured, else local
    """

    def __init__(
        self,
        providers: list[OCRProvider],
        timeouts: TimeoutConfig,
        provider_order: list[str] | None = None,
    ) -> None:
        self._providers = {provider.name: provider for provider in providers}
        self._timeouts = timeouts
        self._order = self._parse_order(provider_order or [])

    @staticmethod
    def _parse_order(names: list[str]) -> list[OCRProviderName]:
        order = []
        for name in names:
            try:
                order.append(OCRProviderName.parse(name))
            except InvalidInput:
                logger.warning("ignoring unknown OCR provider in OCR_PROVIDERS", extra={"provider": name})
        return order

    def get(self, name: OCRProviderName) -> OCRProvider | None:
        return self._providers.get(name)

    def _usable(self, name: OCRProviderName) -> bool:
        provider = self._providers.get(name)
        return provider is not None and provider.is_available

    def availability(self) -> dict[str, bool]:
        return {name.value: self._usable(name) for name in OCRProviderName}

    def select(self, requested: str | None = None) -> OCRProvider:
        if requested:
            name = OCRProviderName.parse(requested)
            if not self._usable(name):
                raise ProviderUnavailable(f"OCR provider '{name.value}' is not configured.")
            return self._providers[name]

        for name in self._order:
            if self._usable(name):
                return self._providers[name]

        if self._usable(OCRProviderName.GENERATIVE):
            return self._providers[OCRProviderName.GENERATIVE]
        if self._usable(OCRProviderName.LOCAL):
            return self._providers[OCRProviderName.LOCAL]
        raise ProviderUnavailable("No OCR provider is available.")

    async def recognize(
        self, image_bytes: bytes, options: OCROptions, requested: str | None = None
    ) -> OCRResult:
        provider = self.select(requested)
        budget = self._timeouts.ocr_timeout_s
        logger.info(
            "ocr request",
            extra={"provider": provider.name.value, "fast_mode": options.fast_mode},
        )
        try:
            return await asyncio.wait_for(provider.recognize(image_bytes, options), timeout=budget)
        except asyncio.TimeoutError as exc:
            raise TimeoutExceeded(f"OCR ({provider.name.value}) timed out after {budget}s") from exc
