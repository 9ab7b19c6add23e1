"""Fetch caller-supplied image URLs for OCR, barcode decode and the image proxy."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from labelguard.config.settings import TimeoutConfig, URLPolicyConfig
from labelguard.config.url_policy import ensure_fetchable_url, parse_http_url
from labelguard.telemetry.errors import InvalidInput, TimeoutExceeded

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class FetchedImage:
    content: bytes
    content_type: str
    status_code: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ImageFetcher:
    """GET an image through the SSRF policy. Every redirect hop is re-checked."""

    def __init__(
        self,
        policy: URLPolicyConfig,
        timeouts: TimeoutConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._policy = policy
        self._timeouts = timeouts
        self._transport = transport

    async def _guard_hop(self, request: httpx.Request) -> None:
        # DNS resolution inside the policy check blocks
        await asyncio.to_thread(ensure_fetchable_url, str(request.url), self._policy)

    async def fetch(self, url: str) -> FetchedImage:
        parse_http_url(url)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeouts.image_fetch_timeout_s,
                follow_redirects=True,
                transport=self._transport,
                event_hooks={"request": [self._guard_hop]},
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise TimeoutExceeded(
                f"Image fetch timed out after {self._timeouts.image_fetch_timeout_s}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise InvalidInput("Could not fetch image URL") from exc

        return FetchedImage(
            content=response.content,
            content_type=response.headers.get("content-type", DEFAULT_CONTENT_TYPE),
            status_code=response.status_code,
        )

    async def fetch_bytes(self, url: str) -> bytes:
        """Fetch an image that must exist; any non-2xx answer is the caller's problem."""
        image = await self.fetch(url)
        if not image.ok:
            raise InvalidInput("Could not fetch image URL")
        return image.content
