"""Static HTML extraction: one browser-like GET, then heuristic mining."""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from labelguard.browser.obstruction import detect_obstruction
from labelguard.config.settings import AllowlistConfig, TimeoutConfig
from labelguard.config.url_policy import ensure_allowed_url
from labelguard.pipeline.extraction import ProductRecord
from labelguard.pipeline.heuristic import (
    JSON_LD_SELECTOR,
    ProductFields,
    apply_platform_selectors,
    apply_product_node,
    find_product_node,
    parse_json_ld_blocks,
)
from labelguard.telemetry.errors import ExtractionIncomplete, TimeoutExceeded

logger = logging.getLogger(__name__)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": DESKTOP_USER_AGENT,
    "Accept-Language": "en-IN,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
}


class SoupSource:
    """SelectorSource over a parsed static document."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self._soup = soup

    async def first_text(self, css: str) -> str | None:
        element = self._soup.select_one(css)
        return element.get_text(" ", strip=True) if element is not None else None

    async def first_attr(self, css: str, attr: str) -> str | None:
        element = self._soup.select_one(css)
        if element is None:
            return None
        value = element.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        return value


async def extract_from_html(html: str, final_url: str, hostname: str) -> ProductRecord:
    """Mine a product record out of static HTML."""
    soup = BeautifulSoup(html, "html.parser")
    fields = ProductFields()

    blocks = [script.string or script.get_text() for script in soup.select(JSON_LD_SELECTOR)]
    node = find_product_node(parse_json_ld_blocks(blocks))
    if node is not None:
        apply_product_node(fields, node)

    await apply_platform_selectors(fields, hostname, SoupSource(soup))
    logger.debug("html mining sources", extra={"url": final_url, "sources": fields.sources})
    return fields.to_record(hostname, final_url)


class HTMLExtractor:
    """Cheapest extraction tier: no rendering, no script execution.

    Returns None when the response is a bot-challenge interstitial so that
    the caller can escalate to a rendered session.
    """

    def __init__(
        self,
        allowlist: AllowlistConfig,
        timeouts: TimeoutConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._allowlist = allowlist
        self._timeouts = timeouts
        self._transport = transport

    async def _guard_hop(self, request: httpx.Request) -> None:
        # Runs for the first request and for every redirect hop
        ensure_allowed_url(str(request.url), self._allowlist)

    async def extract(self, url: str) -> ProductRecord | None:
        ensure_allowed_url(url, self._allowlist)
        try:
            async with httpx.AsyncClient(
                headers=COMMON_HEADERS,
                timeout=self._timeouts.fetch_timeout_s,
                follow_redirects=True,
                transport=self._transport,
                event_hooks={"request": [self._guard_hop]},
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise TimeoutExceeded(f"Fetch timed out after {self._timeouts.fetch_timeout_s}s") from exc
        except httpx.HTTPError as exc:
            raise ExtractionIncomplete(f"Fetch failed: {exc}") from exc

        if not response.is_success:
            raise ExtractionIncomplete(f"Upstream returned {response.status_code}")

        final_url = str(response.url)
        parsed = ensure_allowed_url(final_url, self._allowlist)

        html = response.text
        obstruction = detect_obstruction(html)
        if obstruction.blocked:
            logger.warning(
                "bot challenge detected in static html",
                extra={"url": final_url, "signature": obstruction.signature},
            )
            return None

        return await extract_from_html(html, final_url, parsed.hostname or "")
