"""Canned product records for deterministic, network-free extraction."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qs, urlsplit

from labelguard.config.url_policy import is_allowed_host
from labelguard.pipeline.extraction import Platform, ProductRecord, platform_from_host
from labelguard.telemetry.errors import NoFixture

_PLACEHOLDER = "https://via.placeholder.com/400x400.png?text="

SANDBOX: dict[Platform, dict[str, dict[str, Any]]] = {
    Platform.AMAZON: {
        "B07WNS52H2": {
            "product_name": "NAKPRO Micronised Creatine Monohydrate 250g, Unflavoured (83 Servings)",
            "brand": "NAKPRO",
            "price": 499,
            "currency": "INR",
            "image": f"{_PLACEHOLDER}NAKPRO+Creatine",
            "rating": 4.2,
            "rating_count": 2971,
        },
    },
    Platform.FLIPKART: {
        "example-sku-1": {
            "product_name": "Organic Honey – 500g",
            "brand": "Forest Gold",
            "price": 349,
            "currency": "INR",
            "image": f"{_PLACEHOLDER}Flipkart+Honey",
            "rating": 4.1,
            "rating_count": 812,
        },
    },
    Platform.MYNTRA: {
        "example-sku-2": {
            "product_name": "Organic Green Tea – 100g",
            "brand": "Teawise",
            "price": 249,
            "currency": "INR",
            "image": f"{_PLACEHOLDER}Myntra+Tea",
            "rating": 4.4,
            "rating_count": 122,
        },
    },
}

_ASIN = re.compile(r"^[A-Z0-9]{10}$", re.IGNORECASE)
_AMAZON_PATHS = [
    re.compile(r"/dp/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})", re.IGNORECASE),
]


def fixture_key(url: str) -> tuple[Platform, str] | None:
    """Extract (platform, product id) from a retail product URL.

    Flipkart and Myntra match on their product id (the pid query value and the
    path segment before /buy) rather than resolving every URL on those hosts to
    one demo record, so an unknown product raises NoFixture.
    """
    parsed = urlsplit(url)
    host = parsed.hostname or ""
    query = parse_qs(parsed.query)

    if is_allowed_host(host, ["amazon.in"]):
        for pattern in _AMAZON_PATHS:
            match = pattern.search(parsed.path)
            if match:
                return Platform.AMAZON, match.group(1).upper()
        for asin in query.get("ASIN", []) + query.get("asin", []):
            if _ASIN.match(asin):
                return Platform.AMAZON, asin.upper()
        return None

    if is_allowed_host(host, ["flipkart.com"]):
        pid = next(iter(query.get("pid", [])), "")
        return (Platform.FLIPKART, pid) if pid else None

    if is_allowed_host(host, ["myntra.com"]):
        segments = [s for s in parsed.path.split("/") if s]
        if "buy" in segments:
            index = segments.index("buy")
            if index > 0:
                return Platform.MYNTRA, segments[index - 1]
        return None

    return None


def sandbox_lookup(url: str) -> ProductRecord:
    """Return the fixture for url, or raise NoFixture."""
    key = fixture_key(url)
    item = SANDBOX.get(key[0], {}).get(key[1]) if key else None
    if item is None:
        raise NoFixture("Sandbox has no fixture for this URL/ID.")
    host = urlsplit(url).hostname or ""
    return ProductRecord(platform=platform_from_host(host), url=url, **item)
