"""Deterministic compliance summary over a detected field set."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from labelguard.parsing.fields import DetectedFieldSet

# Legal Metrology (Packaged Commodities) Rules, 2011
FIELD_RULE_REFERENCES: dict[str, str] = {
    "product_name": "Rule 6(1) - Product Name Declaration",
    "net_quantity": "Rule 6(2) - Net Quantity Declaration",
    "mrp": "Rule 6(3) - Maximum Retail Price",
    "manufacturer": "Rule 6(4) - Manufacturer Details",
    "country_of_origin": "Rule 6(5) - Country of Origin",
    "consumer_care": "Rule 6(6) - Consumer Care Details",
    "best_before": "Rule 7 - Best Before Date",
}
DEFAULT_RULE_REFERENCE = "Legal Metrology Act"

COMPLIANT_THRESHOLD = 80
PARTIAL_THRESHOLD = 60


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    PARTIAL = "partial-compliant"
    NON_COMPLIANT = "non-compliant"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )


class Evidence(_CamelModel):
    field: str
    found: bool
    value: str | None
    rule: str
    confidence: float


class ComplianceReport(_CamelModel):
    score: int
    status: ComplianceStatus
    violations: list[str]
    evidence: list[Evidence]
    total_fields: int
    compliant_fields: int
    compliance_ratio: str
    ocr_confidence: int


def _title(field: str) -> str:
    """product_name -> Product Name"""
    return " ".join(part.capitalize() for part in field.split("_"))


def status_for_score(score: int) -> ComplianceStatus:
    if score >= COMPLIANT_THRESHOLD:
        return ComplianceStatus.COMPLIANT
    if score >= PARTIAL_THRESHOLD:
        return ComplianceStatus.PARTIAL
    return ComplianceStatus.NON_COMPLIANT


def summarize(fields: DetectedFieldSet) -> ComplianceReport:
    items = fields.items()
    total = len(items)
    compliant = sum(1 for _, detected in items if detected.compliant)
    score = round(100 * compliant / total)

    evidence: list[Evidence] = []
    violations: list[str] = []
    for name, detected in items:
        rule = FIELD_RULE_REFERENCES.get(name, DEFAULT_RULE_REFERENCE)
        evidence.append(
            Evidence(
                field=_title(name),
                found=detected.compliant,
                value=detected.text,
                rule=rule,
                confidence=detected.confidence / 100,
            )
        )
        if not detected.compliant:
            violations.append(f"{_title(name).lower()} not properly declared as per {rule}")

    return ComplianceReport(
        score=score,
        status=status_for_score(score),
        violations=violations,
        evidence=evidence,
        total_fields=total,
        compliant_fields=compliant,
        compliance_ratio=f"{compliant}/{total}",
        ocr_confidence=round(sum(d.confidence for _, d in items) / total),
    )
