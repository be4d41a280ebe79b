import ipaddress
import re
import uuid
from pathlib import Path

import pytest
from bdd_runner.core.exceptions import InvalidFormatError
from bdd_runner.executor.utils import formats
from bdd_runner.executor.utils.formats import FORMAT_PARSERS, SemanticVersion


class TestFormatParsers:
    """Test structured value parsers"""

    def test_uuid(self):
        value = "123e4567-e89b-12d3-a456-426614174000"
        assert formats.parse_uuid(value) == uuid.UUID(value)

    def test_ip(self):
        assert formats.parse_ip("192.168.1.10") == ipaddress.IPv4Address("192.168.1.10")
        assert formats.parse_ip("::1") == ipaddress.IPv6Address("::1")

    @pytest.mark.parametrize("text,expected", [("ff", 255), ("0xFF", 255), ("0x10", 16)])
    def test_hex(self, text, expected):
        assert formats.parse_hex(text) == expected

    def test_semver(self):
        version = formats.parse_semver("v1.2.3-beta.1+build.5")

        assert version == SemanticVersion(1, 2, 3, "beta.1", "build.5")
        assert str(version) == "1.2.3-beta.1+build.5"

    def test_base64(self):
        assert formats.parse_base64("aGVsbG8=") == b"hello"

    def test_url(self):
        assert formats.parse_url("https://example.com/path?q=1") == "https://example.com/path?q=1"

    def test_email(self):
        assert formats.parse_email("user.name+tag@example.co.uk") == "user.name+tag@example.co.uk"

    def test_csv(self):
        assert formats.parse_csv("a, b ,c") == ["a", "b", "c"]
        assert formats.parse_csv('"x, y", z') == ["x, y", "z"]
        assert formats.parse_csv("") == []

    def test_json(self):
        assert formats.parse_json('[1, {"a": true}]') == [1, {"a": True}]

    def test_path(self):
        assert formats.parse_path("data/input.csv") == Path("data/input.csv")

    def test_phone(self):
        assert formats.parse_phone("+1 (555) 123-4567") == "+1 (555) 123-4567"

    @pytest.mark.parametrize("text,expected", [("15%", 15.0), ("12.5 %", 12.5), ("-3%", -3.0)])
    def test_percent(self, text, expected):
        assert formats.parse_percent(text) == expected

    def test_bigint(self):
        assert formats.parse_bigint("123456789012345678901234567890") == 123456789012345678901234567890

    def test_regex_literal_with_flags(self):
        pattern = formats.parse_regex("/ab+c/i")

        assert pattern.flags & re.IGNORECASE
        assert pattern.match("ABBC")

    def test_bare_regex(self):
        assert formats.parse_regex(r"\d+").match("42")

    @pytest.mark.parametrize("kind,text", [
        ("uuid", "not-a-uuid"),
        ("ip", "999.1.1.1"),
        ("hex", "0xZZ"),
        ("semver", "1.2"),
        ("base64", "abc$"),
        ("url", "example.com"),
        ("email", "user@"),
        ("json", "{broken"),
        ("phone", "123"),
        ("percent", "15"),
        ("bigint", "12.5"),
        ("regex", "/(unclosed/"),
    ])
    def test_invalid_values(self, kind, text):
        with pytest.raises(InvalidFormatError) as exc_info:
            FORMAT_PARSERS[kind](text)

        assert exc_info.value.kind == kind
        assert exc_info.value.value == text
