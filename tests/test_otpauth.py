"""Tests for otpauth:// provisioning URI parsing."""

from __future__ import annotations

import pytest

from otpdesk.auth.otpauth import decode_base32, parse_uri
from otpdesk.errors import MalformedURIError, ValidationError
from otpdesk.models import Algorithm

DEMO_BYTES = b"Hello!\xde\xad\xbe\xef"


def test_parse_example_uri():
    parsed = parse_uri("otpauth://totp/Example:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=Example")
    assert "alice@example.com" in parsed.label
    assert parsed.issuer == "Example"
    assert parsed.secret == DEMO_BYTES
    assert parsed.algorithm == Algorithm.SHA1
    assert parsed.digits == 6
    assert parsed.period == 30


def test_parse_all_parameters():
    parsed = parse_uri(
        "otpauth://totp/ACME%20Co:john.doe%40email.com"
        "?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ&issuer=ACME%20Co&algorithm=SHA512&digits=8&period=60"
    )
    assert parsed.label == "john.doe@email.com"
    assert parsed.issuer == "ACME Co"
    assert parsed.algorithm == Algorithm.SHA512
    assert parsed.digits == 8
    assert parsed.period == 60


def test_issuer_from_label_prefix_when_parameter_missing():
    parsed = parse_uri("otpauth://totp/GitHub:octocat?secret=JBSWY3DPEHPK3PXP")
    assert parsed.label == "octocat"
    assert parsed.issuer == "GitHub"


def test_label_without_issuer():
    parsed = parse_uri("otpauth://totp/octocat?secret=JBSWY3DPEHPK3PXP")
    assert parsed.label == "octocat"
    assert parsed.issuer is None


def test_case_insensitive_scheme_type_and_algorithm():
    parsed = parse_uri("OTPAUTH://TOTP/x?secret=jbswy3dpehpk3pxp&algorithm=sha256")
    assert parsed.algorithm == Algorithm.SHA256
    assert parsed.secret == DEMO_BYTES


def test_hotp_rejected():
    with pytest.raises(MalformedURIError, match="HOTP"):
        parse_uri("otpauth://hotp/x?secret=JBSWY3DPEHPK3PXP&counter=0")


@pytest.mark.parametrize(
    "uri",
    [
        "",
        "https://totp/x?secret=JBSWY3DPEHPK3PXP",
        "otpauth://motp/x?secret=JBSWY3DPEHPK3PXP",
        "otpauth://totp/?secret=JBSWY3DPEHPK3PXP",
        "otpauth://totp/Issuer:?secret=JBSWY3DPEHPK3PXP",
        "otpauth://totp/x",
        "otpauth://totp/x?secret=",
        "otpauth://totp/x?secret=not*base32!",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&algorithm=MD5",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&digits=5",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&digits=9",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&digits=six",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&period=0",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&period=-30",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&period=1.5",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&period=2147483648",
        "otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&secret=GEZDGNBV",
    ],
)
def test_malformed_uris_rejected(uri):
    with pytest.raises(MalformedURIError):
        parse_uri(uri)


def test_malformed_uri_is_a_validation_error():
    with pytest.raises(ValidationError):
        parse_uri("otpauth://totp/x?secret=JBSWY3DPEHPK3PXP&algorithm=MD5")


def test_decode_base32_tolerates_formatting():
    assert decode_base32("jbsw y3dp ehpk 3pxp") == DEMO_BYTES
    assert decode_base32("JBSWY3DPEHPK3PXP====") == DEMO_BYTES
    assert decode_base32("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ") == b"12345678901234567890"


@pytest.mark.parametrize("value", ["", "   ", "====", "A", "0189"])
def test_decode_base32_rejects_garbage(value):
    with pytest.raises(ValidationError):
        decode_base32(value)
