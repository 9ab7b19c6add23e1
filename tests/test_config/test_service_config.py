"""Tests for configuration defaults and validation."""

import pytest

from labelguard.config.settings import (
    DEFAULT_ALLOWED_DOMAINS,
    AllowlistConfig,
    OCRConfig,
    ServiceConfig,
    TimeoutConfig,
)


def test_allowlist_defaults(monkeypatch):
    monkeypatch.delenv("LABELGUARD_ALLOWED_DOMAINS", raising=False)
    cfg = AllowlistConfig()
    assert cfg.allowed_domains == DEFAULT_ALLOWED_DOMAINS


def test_allowlist_from_env(monkeypatch):
    monkeypatch.setenv("LABELGUARD_ALLOWED_DOMAINS", "Amazon.in., jiomart.com")
    cfg = AllowlistConfig()
    assert cfg.allowed_domains == ["amazon.in", "jiomart.com"]


def test_allowlist_rejects_empty():
    with pytest.raises(ValueError):
        AllowlistConfig(allowed_domains=[" "])


def test_timeouts_reject_non_positive():
    with pytest.raises(ValueError):
        TimeoutConfig(fetch_timeout_s=0)


def test_default_timeouts():
    cfg = TimeoutConfig()
    assert cfg.fetch_timeout_s == 12
    assert cfg.page_load_timeout_s == 30
    assert cfg.barcode_lookup_timeout_s == 10


def test_ocr_provider_order_from_env(monkeypatch):
    monkeypatch.setenv("OCR_PROVIDERS", "Vision, tesseract,,")
    cfg = OCRConfig()
    assert cfg.provider_order == ["vision", "tesseract"]


def test_service_config_sections(monkeypatch):
    monkeypatch.delenv("VERTEX_PROJECT_ID", raising=False)
    cfg = ServiceConfig()
    assert cfg.vertex.project_id == ""
    assert cfg.vertex.location == "us-central1"
    assert cfg.browser.locale == "en-IN"
    assert cfg.browser.timezone_id == "Asia/Kolkata"
    assert cfg.barcode.lookup_url.endswith("/prod/trial/lookup")
