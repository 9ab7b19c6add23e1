"""Heuristic product mining: JSON-LD structured data first, platform selectors second.

Structured data is stable across site redesigns but often missing or
partial, so every field it leaves unset is retried against a per-platform
table of CSS selectors. The same mining runs over static HTML (BeautifulSoup)
and over a rendered page (Playwright) through the ``SelectorSource`` protocol.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from labelguard.config.url_policy import is_allowed_host
from labelguard.pipeline.extraction import (
    ProductRecord,
    normalize_price,
    platform_from_host,
    to_float,
    to_int,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "INR"
JSON_LD_SELECTOR = 'script[type="application/ld+json"]'


class SelectorSource(Protocol):
    """Read access to a document, static or rendered."""

    async def first_text(self, css: str) -> str | None: ...

    async def first_attr(self, css: str, attr: str) -> str | None: ...


@dataclass(frozen=True)
class Selector:
    """One candidate location for a field: element text, or an attribute when attr is set."""

    css: str
    attr: str | None = None

    async def resolve(self, source: SelectorSource) -> str | None:
        if self.attr:
            value = await source.first_attr(self.css, self.attr)
        else:
            value = await source.first_text(self.css)
        return _clean(value)


@dataclass(frozen=True)
class JoinedSelector:
    """Concatenates several selectors' values, e.g. a brand heading plus a name heading."""

    parts: tuple[Selector, ...]

    async def resolve(self, source: SelectorSource) -> str | None:
        values = [await part.resolve(source) for part in self.parts]
        return _clean(" ".join(v for v in values if v))


def meta(prop: str) -> Selector:
    return Selector(f'meta[property="{prop}"]', "content")


TITLE = Selector("title")
OG_TITLE = meta("og:title")
OG_IMAGE = meta("og:image")
META_PRICE = meta("product:price:amount")


@dataclass(frozen=True)
class PlatformSelectors:
    product_name: tuple[Selector | JoinedSelector, ...] = ()
    brand: tuple[Selector | JoinedSelector, ...] = ()
    price: tuple[Selector | JoinedSelector, ...] = ()
    image: tuple[Selector | JoinedSelector, ...] = ()


# Keyed by host suffix. Candidates are tried in order; the first non-empty wins.
PLATFORM_SELECTORS: dict[str, PlatformSelectors] = {
    "amazon.in": PlatformSelectors(
        product_name=(Selector("#productTitle"), Selector("span#title"), OG_TITLE, TITLE),
        brand=(
            Selector("#bylineInfo"),
            Selector("a#bylineInfo"),
            Selector("tr.po-brand td.a-span9 span"),
            Selector(".po-brand .a-span9 .a-size-base"),
        ),
        price=(
            Selector(".a-price .a-offscreen"),
            Selector("#priceblock_ourprice"),
            Selector("#priceblock_dealprice"),
            Selector(".apexPriceToPay .a-offscreen"),
            Selector("span.a-price-whole"),
            META_PRICE,
        ),
        image=(
            OG_IMAGE,
            Selector("#landingImage", "data-old-hires"),
            Selector("#landingImage", "src"),
            Selector("#imgTagWrapperId img", "src"),
        ),
    ),
    "flipkart.com": PlatformSelectors(
        product_name=(Selector("span.B_NuCI"), Selector(".B_NuCI"), OG_TITLE, TITLE),
        brand=(Selector("span.G6XhRU"), Selector("._2whKao")),
        price=(
            Selector("div._30jeq3._16Jk6d"),
            Selector("._25b18c ._30jeq3"),
            Selector("div._30jeq3"),
            META_PRICE,
        ),
        image=(
            OG_IMAGE,
            Selector("img._396cs4._2amPTt._3qGmMb", "src"),
            Selector("img._396cs4", "src"),
        ),
    ),
    "myntra.com": PlatformSelectors(
        product_name=(
            JoinedSelector((Selector("h1.pdp-title"), Selector("h1.pdp-name"))),
            OG_TITLE,
            TITLE,
        ),
        brand=(Selector("h1.pdp-title"),),
        price=(
            Selector(".pdp-discounted-price"),
            Selector(".pdp-price"),
            Selector("span.pdp-price"),
            META_PRICE,
        ),
        image=(OG_IMAGE, Selector(".image-grid-container img, .image-grid img", "src")),
    ),
    "nykaa.com": PlatformSelectors(
        product_name=(Selector(".css-1gc4x7i"), Selector("h1.pdp-name"), OG_TITLE, TITLE),
        brand=(Selector(".css-1gc4x7i .brand-name"), Selector(".brand"), Selector(".product-brand")),
        price=(Selector(".css-1e9zbzk"), Selector(".product-price"), META_PRICE),
        image=(OG_IMAGE, Selector(".product-image img", "src")),
    ),
    "bigbasket.com": PlatformSelectors(
        product_name=(Selector(".Details___StyledH"), Selector("h1"), OG_TITLE, TITLE),
        brand=(Selector(".brand"), Selector(".manufacturer")),
        price=(Selector(".Label-sc-15v1nk5-0"), Selector(".price"), META_PRICE),
        image=(OG_IMAGE, Selector(".product-image img", "src")),
    ),
}

_AMAZON_TITLE_SUFFIX = re.compile(r"\s*:\s*Amazon\.in.*$", re.IGNORECASE)


def selectors_for_host(hostname: str) -> PlatformSelectors | None:
    for suffix, table in PLATFORM_SELECTORS.items():
        if is_allowed_host(hostname, [suffix]):
            return table
    return None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    collapsed = " ".join(str(value).split())
    return collapsed or None


@dataclass
class ProductFields:
    """Mutable accumulator filled by each mining tier in turn."""

    product_name: str | None = None
    brand: str | None = None
    price: Any = None
    currency: str | None = None
    image: str | None = None
    rating: Any = None
    rating_count: Any = None
    sources: dict[str, str] = field(default_factory=dict)

    def to_record(self, hostname: str, final_url: str) -> ProductRecord:
        name = self.product_name
        if name and is_allowed_host(hostname, ["amazon.in"]):
            name = _AMAZON_TITLE_SUFFIX.sub("", name).strip() or None
        return ProductRecord(
            platform=platform_from_host(hostname),
            url=final_url,
            product_name=name,
            brand=self.brand,
            price=normalize_price(self.price),
            currency=self.currency or DEFAULT_CURRENCY,
            image=self.image,
            rating=to_float(self.rating),
            rating_count=to_int(self.rating_count),
        )


# --- Structured data ---


def parse_json_ld_blocks(raw_blocks: Iterable[str | None]) -> list[dict[str, Any]]:
    """Parse JSON-LD script bodies into a flat list of nodes.

    Invalid JSON is skipped. Top-level arrays and ``@graph`` containers are
    flattened so that a Product nested in either is found.
    """
    nodes: list[dict[str, Any]] = []
    for raw in raw_blocks:
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            continue
        stack = data if isinstance(data, list) else [data]
        for node in stack:
            if not isinstance(node, dict):
                continue
            nodes.append(node)
            graph = node.get("@graph")
            if isinstance(graph, list):
                nodes.extend(n for n in graph if isinstance(n, dict))
    return nodes


def _is_product(node: dict[str, Any]) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, str):
        return node_type == "Product"
    if isinstance(node_type, list):
        return "Product" in node_type
    return False


def find_product_node(nodes: list[dict[str, Any]]) -> dict[str, Any] | None:
    return next((n for n in nodes if _is_product(n)), None)


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _name_of(value: Any) -> str | None:
    value = _first(value)
    if isinstance(value, dict):
        value = value.get("name")
    return _clean(value) if isinstance(value, str) else None


def _image_of(value: Any) -> str | None:
    value = _first(value)
    if isinstance(value, dict):
        value = value.get("url") or value.get("contentUrl")
    return value if isinstance(value, str) and value else None


def apply_product_node(fields: ProductFields, node: dict[str, Any]) -> None:
    """Fill fields from a schema.org Product node."""
    fields.product_name = fields.product_name or _name_of(node.get("name"))
    fields.brand = fields.brand or _name_of(node.get("brand"))
    fields.image = fields.image or _image_of(node.get("image"))

    offers = _first(node.get("offers"))
    if isinstance(offers, dict):
        price = offers.get("price")
        if price in (None, ""):
            price = offers.get("lowPrice")
        if price not in (None, "") and fields.price is None:
            fields.price = price
        currency = offers.get("priceCurrency")
        if isinstance(currency, str) and currency:
            fields.currency = currency

    rating = node.get("aggregateRating")
    if isinstance(rating, dict):
        if fields.rating is None:
            fields.rating = rating.get("ratingValue")
        if fields.rating_count is None:
            fields.rating_count = rating.get("ratingCount") or rating.get("reviewCount")

    fields.sources.setdefault("structured_data", "json-ld")


# --- Platform selectors ---


async def _resolve_first(
    candidates: tuple[Selector | JoinedSelector, ...], source: SelectorSource
) -> tuple[str | None, str | None]:
    for candidate in candidates:
        try:
            value = await candidate.resolve(source)
        except Exception as exc:
            # A single selector failing is never fatal
            logger.debug("selector %r failed: %s", candidate, exc)
            continue
        if value:
            return value, getattr(candidate, "css", "joined")
    return None, None


async def apply_platform_selectors(
    fields: ProductFields, hostname: str, source: SelectorSource
) -> None:
    """Fill every still-unset field from the platform's selector table."""
    table = selectors_for_host(hostname)
    if table is None:
        return
    for name in ("product_name", "brand", "price", "image"):
        current = getattr(fields, name)
        if current not in (None, ""):
            continue
        value, selector = await _resolve_first(getattr(table, name), source)
        if value is not None:
            setattr(fields, name, value)
            fields.sources[name] = selector or ""
