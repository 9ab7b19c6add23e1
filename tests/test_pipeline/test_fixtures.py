"""Tests for sandbox fixture lookup."""

from __future__ import annotations

import pytest

from labelguard.pipeline.extraction import Platform
from labelguard.pipeline.fixtures import fixture_key, sandbox_lookup
from labelguard.telemetry.errors import NoFixture


class TestFixtureKey:
    def test_amazon_dp_path(self):
        assert fixture_key("https://www.amazon.in/NAKPRO/dp/b07wns52h2/ref=sr_1") == (
            Platform.AMAZON,
            "B07WNS52H2",
        )

    def test_amazon_gp_product_path(self):
        assert fixture_key("https://www.amazon.in/gp/product/B07WNS52H2") == (Platform.AMAZON, "B07WNS52H2")

    def test_amazon_asin_query(self):
        assert fixture_key("https://www.amazon.in/s?asin=b07wns52h2") == (Platform.AMAZON, "B07WNS52H2")

    def test_flipkart_pid(self):
        assert fixture_key("https://www.flipkart.com/honey/p/itm123?pid=example-sku-1") == (
            Platform.FLIPKART,
            "example-sku-1",
        )

    def test_myntra_segment_before_buy(self):
        assert fixture_key("https://www.myntra.com/tea/teawise/example-sku-2/buy") == (
            Platform.MYNTRA,
            "example-sku-2",
        )

    def test_unkeyed_url(self):
        assert fixture_key("https://www.nykaa.com/product/p/123") is None


class TestSandboxLookup:
    def test_amazon_fixture(self):
        url = "https://www.amazon.in/dp/B07WNS52H2?mode=sandbox"
        record = sandbox_lookup(url)
        assert record.platform == "Amazon"
        assert record.url == url
        assert record.product_name == "NAKPRO Micronised Creatine Monohydrate 250g, Unflavoured (83 Servings)"
        assert record.price == 499
        assert record.currency == "INR"
        assert record.rating == 4.2
        assert record.rating_count == 2971

    def test_lookup_is_deterministic(self):
        url = "https://www.myntra.com/tea/teawise/example-sku-2/buy"
        assert sandbox_lookup(url).model_dump_json() == sandbox_lookup(url).model_dump_json()

    def test_missing_fixture(self):
        with pytest.raises(NoFixture):
            sandbox_lookup("https://www.amazon.in/dp/B000000000")

    def test_unkeyed_url_has_no_fixture(self):
        with pytest.raises(NoFixture):
            sandbox_lookup("https://www.bigbasket.com/pd/1234/")

    def test_other_flipkart_product_has_no_fixture(self):
        with pytest.raises(NoFixture):
            sandbox_lookup("https://www.flipkart.com/honey/p/itm999?pid=OTHERPID")
