"""
Unit Tests for webhook signature signing and verification.

These tests verify:
1. Header format and HMAC input
2. Round-trip sign/verify
3. Timestamp tolerance in both directions
4. Fail-closed parsing of malformed headers
"""

import hashlib
import hmac

import pytest

from relay_core.service.webhooks.signature import (
    DEFAULT_TOLERANCE_SECONDS,
    compute_signature,
    parse_signature_header,
    sign,
    verify,
)

SECRET = "whsec_test_secret"
PAYLOAD = b'{"id":"evt_1","type":"subscription.created"}'
TIMESTAMP = 1_700_000_000


# =============================================================================
# Signing
# =============================================================================

class TestSign:
    """Tests for sign() and compute_signature()."""

    def test_header_format(self):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert header.startswith(f"t={TIMESTAMP},v1=")
        assert len(header.split("v1=")[1]) == 64

    def test_hmac_covers_timestamp_and_payload(self):
        expected = hmac.new(
            SECRET.encode(),
            f"{TIMESTAMP}.".encode() + PAYLOAD,
            hashlib.sha256,
        ).hexdigest()

        assert compute_signature(PAYLOAD, SECRET, TIMESTAMP) == expected

    def test_different_secrets_give_different_signatures(self):
        assert sign(PAYLOAD, SECRET, TIMESTAMP) != sign(PAYLOAD, "whsec_other", TIMESTAMP)

    def test_defaults_to_current_time(self):
        header = sign(PAYLOAD, SECRET)

        assert verify(PAYLOAD, header, SECRET)


# =============================================================================
# Verification
# =============================================================================

class TestVerify:
    """Tests for verify()."""

    def test_round_trip(self):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert verify(PAYLOAD, header, SECRET, now=TIMESTAMP)

    def test_wrong_secret_rejected(self):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert not verify(PAYLOAD, header, "whsec_wrong", now=TIMESTAMP)

    def test_modified_payload_rejected(self):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert not verify(PAYLOAD + b" ", header, SECRET, now=TIMESTAMP)

    @pytest.mark.parametrize("offset", [DEFAULT_TOLERANCE_SECONDS, -DEFAULT_TOLERANCE_SECONDS])
    def test_timestamp_at_tolerance_accepted(self, offset):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert verify(PAYLOAD, header, SECRET, now=TIMESTAMP + offset)

    @pytest.mark.parametrize("offset", [DEFAULT_TOLERANCE_SECONDS + 1, -DEFAULT_TOLERANCE_SECONDS - 1])
    def test_timestamp_beyond_tolerance_rejected(self, offset):
        """A correct signature is still rejected once the timestamp is stale."""
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert not verify(PAYLOAD, header, SECRET, now=TIMESTAMP + offset)

    def test_custom_tolerance(self):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert not verify(PAYLOAD, header, SECRET, tolerance_seconds=10, now=TIMESTAMP + 11)

    def test_truncated_signature_rejected(self):
        header = sign(PAYLOAD, SECRET, timestamp=TIMESTAMP)

        assert not verify(PAYLOAD, header[:-2], SECRET, now=TIMESTAMP)

    @pytest.mark.parametrize(
        "header",
        [
            "",
            "garbage",
            f"t={TIMESTAMP}",
            "v1=abcdef",
            f"t=notanumber,v1={'a' * 64}",
            f"t=,v1={'a' * 64}",
        ],
    )
    def test_malformed_header_rejected(self, header):
        assert not verify(PAYLOAD, header, SECRET, now=TIMESTAMP)

    def test_none_header_rejected(self):
        assert not verify(PAYLOAD, None, SECRET, now=TIMESTAMP)


class TestParseSignatureHeader:
    def test_parts_in_any_order_with_spaces(self):
        parsed = parse_signature_header(f"v1=abc, t={TIMESTAMP}")

        assert parsed == (TIMESTAMP, "abc")

    def test_missing_timestamp(self):
        assert parse_signature_header("v1=abc") is None
