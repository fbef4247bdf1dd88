"""
Tests for Host header sanitization.
"""

import pytest

from domain_proxy.core.validators import sanitize_hostname


class TestSanitizeHostname:
    """Test Host header normalization."""

    @pytest.mark.parametrize("raw, expected", [
        ("go.example.com", "go.example.com"),
        ("Go.Example.COM", "go.example.com"),
        ("go.example.com:8443", "go.example.com"),
        ("go.example.com.", "go.example.com"),
        ("  links.shop.co.uk  ", "links.shop.co.uk"),
        ("localhost", "localhost"),
        ("127.0.0.1:8000", "127.0.0.1"),
        ("[::1]:8000", "[::1]"),
    ])
    def test_valid_hosts(self, raw, expected):
        assert sanitize_hostname(raw) == expected

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "bad host",
        "evil.com/path",
        "<script>",
        "-leading.example.com",
        "a" * 300,
        "[::1",
    ])
    def test_invalid_hosts(self, raw):
        assert sanitize_hostname(raw) is None
