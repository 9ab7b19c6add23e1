"""Extraction data models: requests, product records, and normalization helpers."""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from labelguard.telemetry.errors import InvalidInput


class ExtractionMode(str, Enum):
    AUTO = "auto"
    SANDBOX = "sandbox"
    HTML = "html"
    BROWSER = "browser"


class Platform(str, Enum):
    AMAZON = "Amazon"
    FLIPKART = "Flipkart"
    MYNTRA = "Myntra"
    BIGBASKET = "BigBasket"
    NYKAA = "Nykaa"
    ONE_MG = "1mg"
    UNKNOWN = "Unknown"


_PLATFORM_MARKERS: list[tuple[str, Platform]] = [
    ("amazon", Platform.AMAZON),
    ("flipkart", Platform.FLIPKART),
    ("myntra", Platform.MYNTRA),
    ("bigbasket", Platform.BIGBASKET),
    ("nykaa", Platform.NYKAA),
    ("1mg", Platform.ONE_MG),
]


def platform_from_host(hostname: str) -> Platform:
    host = hostname.lower()
    for marker, platform in _PLATFORM_MARKERS:
        if marker in host:
            return platform
    return Platform.UNKNOWN


class ExtractionRequest(BaseModel):
    """One product-extraction call. Created per request, never mutated."""

    model_config = ConfigDict(frozen=True)

    url: str
    mode: ExtractionMode = ExtractionMode.AUTO

    @classmethod
    def build(cls, url: str, mode: str | None = None) -> ExtractionRequest:
        """Build a request, falling back to a ``mode`` query parameter on the URL itself."""
        if mode:
            try:
                return cls(url=url, mode=ExtractionMode(mode.lower()))
            except ValueError as exc:
                allowed = ", ".join(m.value for m in ExtractionMode)
                raise InvalidInput(f"Invalid mode '{mode}'. Allowed modes: {allowed}.") from exc
        embedded = parse_qs(urlsplit(url).query).get("mode", [])
        for value in embedded:
            try:
                return cls(url=url, mode=ExtractionMode(value.lower()))
            except ValueError:
                continue
        return cls(url=url)


class ProductRecord(BaseModel):
    """Structured product attributes from a single page.

    Every field except platform and url may be None: pages legitimately
    omit data, and an all-null record is still a valid result.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    platform: Platform
    url: str
    product_name: str | None = None
    brand: str | None = None
    price: float | None = None
    currency: str | None = None
    image: str | None = None
    rating: float | None = None
    rating_count: int | None = None


def is_minimally_complete(record: ProductRecord | None) -> bool:
    """At least one of name, brand, price, or image must be present."""
    if record is None:
        return False
    return any(
        value is not None
        for value in (record.product_name, record.brand, record.price, record.image)
    )


_PRICE_STRIP = re.compile(r"[^\d.]")


def normalize_price(value: Any) -> float | None:
    """Coerce a price string or number to a float.

    Strips every character that is not a digit or a decimal point. An empty,
    unparsable, or non-finite result means the price is absent, not zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        digits = _PRICE_STRIP.sub("", str(value)).strip(".")
        if not digits:
            return None
        try:
            number = float(digits)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).replace(",", "").strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def to_int(value: Any) -> int | None:
    number = to_float(value)
    return int(number) if number is not None else None
