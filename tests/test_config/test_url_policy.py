"""Tests for the retail allowlist and the SSRF guard."""

from __future__ import annotations

import pytest

from labelguard.config.settings import AllowlistConfig, URLPolicyConfig
from labelguard.config.url_policy import (
    ensure_allowed_url,
    ensure_fetchable_url,
    is_allowed_host,
    validate_target_url,
)
from labelguard.telemetry.errors import DomainNotAllowed, InvalidInput

DOMAINS = ["amazon.in", "flipkart.com", "myntra.com"]


class TestIsAllowedHost:
    def test_exact_domain(self):
        assert is_allowed_host("amazon.in", DOMAINS)

    def test_subdomain(self):
        assert is_allowed_host("www.amazon.in", DOMAINS)
        assert is_allowed_host("dl.flipkart.com", DOMAINS)

    def test_case_and_trailing_dot_ignored(self):
        assert is_allowed_host("WWW.Amazon.IN.", DOMAINS)

    def test_suffix_without_label_boundary_rejected(self):
        assert not is_allowed_host("notamazon.in", DOMAINS)

    def test_allowed_domain_as_prefix_rejected(self):
        assert not is_allowed_host("amazon.in.evil.com", DOMAINS)

    def test_empty_host_rejected(self):
        assert not is_allowed_host("", DOMAINS)


class TestEnsureAllowedURL:
    def setup_method(self):
        self.policy = AllowlistConfig(allowed_domains=DOMAINS)

    def test_allowed_url_returns_parsed(self):
        parsed = ensure_allowed_url("https://www.amazon.in/dp/B07WNS52H2", self.policy)
        assert parsed.hostname == "www.amazon.in"

    def test_disallowed_host(self):
        with pytest.raises(DomainNotAllowed, match="Domain not allowed: example.com"):
            ensure_allowed_url("https://example.com/item", self.policy)

    def test_lookalike_host(self):
        with pytest.raises(DomainNotAllowed):
            ensure_allowed_url("https://amazon.in.evil.com/dp/B07WNS52H2", self.policy)

    def test_non_http_scheme(self):
        with pytest.raises(InvalidInput, match="Invalid URL scheme"):
            ensure_allowed_url("ftp://www.amazon.in/file", self.policy)

    def test_relative_url(self):
        with pytest.raises(InvalidInput):
            ensure_allowed_url("/dp/B07WNS52H2", self.policy)


class TestSSRFGuard:
    def setup_method(self):
        self.policy = URLPolicyConfig()

    def test_public_ip_literal_allowed(self):
        result = validate_target_url("http://93.184.216.34/image.png", self.policy)
        assert result.allowed

    def test_loopback_blocked(self):
        result = validate_target_url("http://127.0.0.1/admin", self.policy)
        assert not result.allowed
        assert "127.0.0.0/8" in result.reason

    def test_private_range_blocked(self):
        assert not validate_target_url("http://10.0.0.8/", self.policy).allowed
        assert not validate_target_url("http://192.168.1.100/capture", self.policy).allowed

    def test_link_local_ipv6_blocked(self):
        assert not validate_target_url("http://[fe80::1]/", self.policy).allowed

    def test_localhost_name_blocked(self):
        result = validate_target_url("http://localhost:8080/", self.policy)
        assert not result.allowed
        assert "blocked" in result.reason

    def test_dot_local_blocked(self):
        assert not validate_target_url("http://printer.local/", self.policy).allowed

    def test_file_scheme_blocked(self):
        result = validate_target_url("file:///etc/passwd", self.policy)
        assert not result.allowed

    def test_ensure_fetchable_raises_invalid_input(self):
        with pytest.raises(InvalidInput, match="URL rejected"):
            ensure_fetchable_url("http://169.254.169.254/latest/meta-data", self.policy)

    def test_private_ips_allowed_when_policy_disabled(self):
        policy = URLPolicyConfig(block_private_ips=False)
        assert validate_target_url("http://10.0.0.8/", policy).allowed
