"""Tests for the rendered-page extraction tier, with a fake session."""

from __future__ import annotations

import json

import pytest

from labelguard.browser.extractor import BrowserExtractor
from labelguard.browser.layer import STEALTH_PROFILE
from labelguard.config.settings import AllowlistConfig, BrowserConfig, TimeoutConfig
from labelguard.telemetry.errors import DomainNotAllowed

ALLOWLIST = AllowlistConfig(allowed_domains=["amazon.in", "flipkart.com", "myntra.com"])


class FakeSession:
    instances: list["FakeSession"] = []

    def __init__(self, config, profile, *, final_url=None, texts=None, attrs=None, blocks=None):
        self.config = config
        self.profile = profile
        self.final_url = final_url
        self.texts = texts or {}
        self.attrs = attrs or {}
        self.blocks = blocks or []
        self.entered = False
        self.exited = False
        self.navigated = None
        FakeSession.instances.append(self)

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, *exc):
        self.exited = True

    async def navigate(self, url, timeout_ms):
        self.navigated = (url, timeout_ms)
        return self.final_url or url

    async def first_text(self, css):
        return self.texts.get(css)

    async def first_attr(self, css, attr):
        return self.attrs.get((css, attr))

    async def json_ld_blocks(self):
        return list(self.blocks)


def _factory(**kwargs):
    def make(config, profile):
        return FakeSession(config, profile, **kwargs)

    return make


def _extractor(**kwargs) -> BrowserExtractor:
    return BrowserExtractor(ALLOWLIST, BrowserConfig(), TimeoutConfig(), session_factory=_factory(**kwargs))


class TestBrowserExtractor:
    def setup_method(self):
        FakeSession.instances = []

    @pytest.mark.asyncio
    async def test_json_ld_then_selectors(self):
        blocks = [json.dumps({"@type": "Product", "name": "Organic Honey", "offers": {"price": "349"}})]
        extractor = _extractor(
            blocks=blocks,
            texts={"span.G6XhRU": "Forest Gold"},
            attrs={('meta[property="og:image"]', "content"): "https://img.example/honey.jpg"},
        )
        record = await extractor.extract("https://www.flipkart.com/honey/p/itm1?pid=example-sku-1")
        assert record.platform == "Flipkart"
        assert record.product_name == "Organic Honey"
        assert record.brand == "Forest Gold"
        assert record.price == 349.0
        assert record.image == "https://img.example/honey.jpg"

        session = FakeSession.instances[0]
        assert session.profile is STEALTH_PROFILE
        assert session.navigated[1] == 30000
        assert session.exited

    @pytest.mark.asyncio
    async def test_disallowed_url_never_opens_session(self):
        with pytest.raises(DomainNotAllowed):
            await _extractor().extract("https://example.com/item")
        assert FakeSession.instances == []

    @pytest.mark.asyncio
    async def test_redirect_off_allowlist_rejected(self):
        extractor = _extractor(final_url="https://evil.example.com/landing")
        with pytest.raises(DomainNotAllowed):
            await extractor.extract("https://www.amazon.in/dp/B07WNS52H2")
        assert FakeSession.instances[0].exited

    @pytest.mark.asyncio
    async def test_record_uses_final_url(self):
        extractor = _extractor(
            final_url="https://www.amazon.in/dp/B07WNS52H2",
            texts={"#productTitle": "NAKPRO Creatine"},
        )
        record = await extractor.extract("https://www.amazon.in/short")
        assert record.url == "https://www.amazon.in/dp/B07WNS52H2"
        assert record.product_name == "NAKPRO Creatine"

    @pytest.mark.asyncio
    async def test_empty_page_gives_null_record(self):
        record = await _extractor().extract("https://www.amazon.in/dp/B07WNS52H2")
        assert record.product_name is None
        assert record.price is None
