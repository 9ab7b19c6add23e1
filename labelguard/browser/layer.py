"""Browser Layer: scoped Playwright Chromium sessions with per-platform fingerprints.

Every extraction gets its own driver, browser and context. Sessions are
never pooled or reused; they are released on every exit path, and a
failure while releasing is logged rather than raised so that it never
masks the error that ended the session.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from labelguard.config.settings import BrowserConfig
from labelguard.config.url_policy import is_allowed_host
from labelguard.pipeline.heuristic import JSON_LD_SELECTOR
from labelguard.pipeline.html_extractor import DESKTOP_USER_AGENT
from labelguard.telemetry.errors import ErrorCode, TimeoutExceeded, emit_structured_error

logger = logging.getLogger(__name__)

REFRESHED_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_BROWSER_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
_BROWSER_LANGUAGE = "en-IN,en-US;q=0.9,en;q=0.8"


@dataclass(frozen=True)
class FingerprintProfile:
    """How a session presents itself and how long it lets the page settle."""

    name: str
    user_agent: str
    wait_until: str
    settle_ms: tuple[int, int]
    pointer_move: bool
    extra_headers: dict[str, str] = field(default_factory=dict)
    pointer_pause_ms: int = 500

    def settle_delay_ms(self) -> int:
        low, high = self.settle_ms
        return low if low == high else random.randint(low, high)


DIRECT_PROFILE = FingerprintProfile(
    name="direct",
    user_agent=DESKTOP_USER_AGENT,
    wait_until="domcontentloaded",
    settle_ms=(900, 900),
    pointer_move=False,
)

STEALTH_PROFILE = FingerprintProfile(
    name="stealth",
    user_agent=REFRESHED_USER_AGENT,
    wait_until="networkidle",
    settle_ms=(1500, 3500),
    pointer_move=True,
    extra_headers={
        "Accept": _BROWSER_ACCEPT,
        "Accept-Language": _BROWSER_LANGUAGE,
        "Accept-Encoding": "gzip, deflate, br",
        "Cache-Control": "no-cache",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
    },
)

DEFAULT_PROFILE = FingerprintProfile(
    name="default",
    user_agent=REFRESHED_USER_AGENT,
    wait_until="domcontentloaded",
    settle_ms=(1000, 1000),
    pointer_move=True,
    extra_headers={
        "Accept": _BROWSER_ACCEPT,
        "Accept-Language": _BROWSER_LANGUAGE,
        "Accept-Encoding": "gzip, deflate, br",
    },
)

_HOST_PROFILES: list[tuple[str, FingerprintProfile]] = [
    ("amazon.in", DIRECT_PROFILE),
    ("flipkart.com", STEALTH_PROFILE),
    ("myntra.com", STEALTH_PROFILE),
]


def profile_for_host(hostname: str) -> FingerprintProfile:
    for domain, profile in _HOST_PROFILES:
        if is_allowed_host(hostname, [domain]):
            return profile
    return DEFAULT_PROFILE


class BrowserSession:
    """One isolated Chromium session, used as ``async with BrowserSession(...)``.

    Contract:
    - start() launches driver, browser and a fresh context for the profile
    - stop() closes context, browser and driver, logging (not raising) failures
    - navigate() maps navigation timeouts to TimeoutExceeded
    """

    def __init__(
        self,
        config: BrowserConfig,
        profile: FingerprintProfile,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self._config = config
        self._profile = profile
        self._playwright_factory = playwright_factory
        self._playwright: Any = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def profile(self) -> FingerprintProfile:
        return self._profile

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session not started")
        return self._page

    async def start(self) -> None:
        """Launch browser and create an isolated context."""
        self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(headless=self._config.headless)
        context_options: dict[str, Any] = {
            "user_agent": self._profile.user_agent,
            "locale": self._config.locale,
            "timezone_id": self._config.timezone_id,
            "viewport": {
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
        }
        if self._profile.extra_headers:
            context_options["extra_http_headers"] = dict(self._profile.extra_headers)
        self._context = await self._browser.new_context(**context_options)
        self._page = await self._context.new_page()

    async def stop(self) -> None:
        """Clean up browser resources."""
        for name, resource, closer in (
            ("context", self._context, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        ):
            if resource is None:
                continue
            try:
                await getattr(resource, closer)()
            except Exception as exc:
                emit_structured_error(
                    logger,
                    code=ErrorCode.BROWSER_CLEANUP_FAILED,
                    message=str(exc),
                    suppressed=True,
                    phase="browser_cleanup",
                    details={"resource": name},
                )
        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None

    async def __aenter__(self) -> BrowserSession:
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.stop()

    async def navigate(self, url: str, timeout_ms: int) -> str:
        """Navigate, let the page settle, and return the final URL."""
        page = self.page
        try:
            await page.goto(url, wait_until=self._profile.wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise TimeoutExceeded(f"Page load timed out after {timeout_ms}ms") from exc

        await page.wait_for_timeout(self._profile.settle_delay_ms())
        if self._profile.pointer_move:
            await page.mouse.move(random.random() * 100, random.random() * 100)
            await page.wait_for_timeout(self._profile.pointer_pause_ms)
        return page.url

    async def first_text(self, css: str) -> str | None:
        element = await self.page.query_selector(css)
        return await element.text_content() if element is not None else None

    async def first_attr(self, css: str, attr: str) -> str | None:
        element = await self.page.query_selector(css)
        return await element.get_attribute(attr) if element is not None else None

    async def json_ld_blocks(self) -> list[str]:
        """Evaluate every JSON-LD script body inside the rendered page."""
        return await self.page.eval_on_selector_all(
            JSON_LD_SELECTOR,
            "nodes => nodes.map(n => n.textContent || '')",
        )
