"""Tests for the compliance summary."""

from __future__ import annotations

import pytest

from labelguard.parsing.compliance import ComplianceStatus, status_for_score, summarize
from labelguard.parsing.fields import parse_fields

FULL_LABEL = (
    "Forest Gold Organic Honey Net Qty: 500 g MRP 349 Marketed by: Forest Gold Foods "
    "Country of Origin: India Customer Care: 1800-123-4567 Best Before 12 months"
)


class TestStatusForScore:
    @pytest.mark.parametrize(
        "score,status",
        [
            (100, ComplianceStatus.COMPLIANT),
            (80, ComplianceStatus.COMPLIANT),
            (79, ComplianceStatus.PARTIAL),
            (60, ComplianceStatus.PARTIAL),
            (59, ComplianceStatus.NON_COMPLIANT),
            (0, ComplianceStatus.NON_COMPLIANT),
        ],
    )
    def test_thresholds(self, score, status):
        assert status_for_score(score) is status


class TestSummarize:
    def test_fully_compliant_label(self):
        report = summarize(parse_fields(FULL_LABEL))
        assert report.score == 100
        assert report.status == "compliant"
        assert report.violations == []
        assert report.compliance_ratio == "7/7"
        assert report.ocr_confidence == 75

    def test_empty_text(self):
        report = summarize(parse_fields(""))
        assert report.score == 0
        assert report.status == "non-compliant"
        assert len(report.violations) == 7
        assert report.compliant_fields == 0
        assert report.total_fields == 7
        assert "net quantity not properly declared as per Rule 6(2) - Net Quantity Declaration" in report.violations

    def test_partial_label(self):
        # No consumer care and no best before
        text = (
            "Forest Gold Organic Honey Net Qty: 500 g MRP 349 Marketed by: Forest Gold Foods "
            "Country of Origin: India"
        )
        report = summarize(parse_fields(text))
        assert report.compliant_fields == 5
        assert report.score == 71
        assert report.status == "partial-compliant"
        assert report.violations == [
            "consumer care not properly declared as per Rule 6(6) - Consumer Care Details",
            "best before not properly declared as per Rule 7 - Best Before Date",
        ]

    def test_evidence_per_field(self):
        report = summarize(parse_fields("MRP 499"))
        by_field = {e.field: e for e in report.evidence}
        assert list(by_field) == [
            "Product Name",
            "Net Quantity",
            "Mrp",
            "Manufacturer",
            "Country Of Origin",
            "Consumer Care",
            "Best Before",
        ]
        assert by_field["Mrp"].found is True
        assert by_field["Mrp"].value == "499"
        assert by_field["Mrp"].confidence == 0.85
        assert by_field["Net Quantity"].found is False
        assert by_field["Net Quantity"].value is None

    def test_serializes_with_camel_case(self):
        data = summarize(parse_fields("")).model_dump(by_alias=True)
        assert {"totalFields", "compliantFields", "complianceRatio", "ocrConfidence"} <= set(data)
