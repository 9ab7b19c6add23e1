"""Field Parser: locates the seven mandatory package declarations in OCR text.

The text is upper-cased and whitespace-collapsed, then every rule in
``FIELD_RULES`` is applied independently. A rule's weight is the
reliability of its pattern, so a field that is not found still carries
that weight as confidence with ``compliant`` set to False.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class FieldRule:
    field: str
    pattern: re.Pattern[str]
    group: int
    weight: int


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        "product_name",
        re.compile(r"([A-Z][A-Z0-9 \-+]{6,})\s*(?:HONEY|TEA|OIL|RICE|BISCUIT|MILK|JUICE|POWDER)?"),
        1,
        80,
    ),
    FieldRule(
        "net_quantity",
        re.compile(
            r"(?:NET\s*(?:QTY|QUANTITY|WT|WEIGHT)[^0-9A-Z]*)?(\d+(?:\.\d+)?\s?(?:KG|GM|ML|G|L)\b)"
        ),
        1,
        85,
    ),
    FieldRule(
        "mrp",
        re.compile(r"(MRP|M\.R\.P\.?)[^0-9]*([₹R]?\s?\d{1,3}(?:,?\d{3})*(?:\.\d{1,2})?)(?!\d)"),
        2,
        85,
    ),
    FieldRule(
        "manufacturer",
        re.compile(
            r"(?:MFD\s+BY|MFRD\s+BY|MFG\s+BY|MANUFACTURED\s+BY|MARKETED\s+BY|MKTD\s+BY|MANUFACTURER)"
            r"[^A-Z0-9]*([A-Z0-9&\-., ]{6,})"
        ),
        1,
        70,
    ),
    FieldRule("country_of_origin", re.compile(r"COUNTRY\s+OF\s+ORIGIN[^A-Z0-9]*([A-Z]+)"), 1, 70),
    FieldRule(
        "consumer_care",
        re.compile(r"(?:CONSUMER\s*CARE|CUSTOMER\s*CARE)[^0-9]*(\d{3,}[-\s]?\d{3,}[-\s]?\d{3,}|\d{10,})"),
        1,
        70,
    ),
    FieldRule(
        "best_before",
        re.compile(r"BEST\s+BEFORE[^A-Z0-9]*(\d{1,2}\s*(?:MONTHS?|YEARS?)|\d+\s*DAYS)"),
        1,
        65,
    ),
)


class DetectedField(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str | None = None
    confidence: float = Field(ge=0.0, le=100.0)
    compliant: bool = False


class DetectedFieldSet(BaseModel):
    """Exactly the seven declaration slots, always all present."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    product_name: DetectedField
    net_quantity: DetectedField
    mrp: DetectedField
    manufacturer: DetectedField
    country_of_origin: DetectedField
    consumer_care: DetectedField
    best_before: DetectedField

    def items(self) -> list[tuple[str, DetectedField]]:
        return [(rule.field, getattr(self, rule.field)) for rule in FIELD_RULES]


def normalize_text(text: str | None) -> str:
    return " ".join((text or "").split()).upper()


def parse_fields(text: str | None) -> DetectedFieldSet:
    normalized = normalize_text(text)
    detected: dict[str, DetectedField] = {}
    for rule in FIELD_RULES:
        match = rule.pattern.search(normalized)
        value = match.group(rule.group).strip() if match else None
        detected[rule.field] = DetectedField(
            text=value or None,
            confidence=rule.weight,
            compliant=match is not None,
        )
    return DetectedFieldSet(**detected)
