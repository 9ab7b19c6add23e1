"""Rendered-page extraction for sites that need JavaScript or a human-looking client."""

from __future__ import annotations

import logging
from typing import Callable

from labelguard.browser.layer import BrowserSession, FingerprintProfile, profile_for_host
from labelguard.config.settings import AllowlistConfig, BrowserConfig, TimeoutConfig
from labelguard.config.url_policy import ensure_allowed_url
from labelguard.pipeline.extraction import ProductRecord
from labelguard.pipeline.heuristic import (
    ProductFields,
    apply_platform_selectors,
    apply_product_node,
    find_product_node,
    parse_json_ld_blocks,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[BrowserConfig, FingerprintProfile], BrowserSession]


class BrowserExtractor:
    """Most expensive extraction tier: one fresh browser session per call."""

    def __init__(
        self,
        allowlist: AllowlistConfig,
        browser: BrowserConfig,
        timeouts: TimeoutConfig,
        session_factory: SessionFactory = BrowserSession,
    ) -> None:
        self._allowlist = allowlist
        self._browser = browser
        self._timeouts = timeouts
        self._session_factory = session_factory

    async def extract(self, url: str) -> ProductRecord:
        parsed = ensure_allowed_url(url, self._allowlist)
        profile = profile_for_host(parsed.hostname or "")
        logger.info("browser extraction", extra={"url": url, "profile": profile.name})

        async with self._session_factory(self._browser, profile) as session:
            final_url = await session.navigate(
                url, timeout_ms=int(self._timeouts.page_load_timeout_s * 1000)
            )
            final = ensure_allowed_url(final_url, self._allowlist)
            hostname = final.hostname or ""

            fields = ProductFields()
            node = find_product_node(parse_json_ld_blocks(await session.json_ld_blocks()))
            if node is not None:
                apply_product_node(fields, node)
            await apply_platform_selectors(fields, hostname, session)

        return fields.to_record(hostname, final_url)
