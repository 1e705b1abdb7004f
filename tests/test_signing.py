"""Tests for webhook signing."""

import hashlib
import hmac

import pytest

from sage_webhooks.webhooks.signing import generate_secret, sign, verify


def _flip_bit(value: str, index: int = 0) -> str:
    """Flip the lowest bit of one character."""
    return value[:index] + chr(ord(value[index]) ^ 1) + value[index + 1 :]


class TestSign:
    """Tests for signature generation."""

    def test_matches_hmac_sha256(self):
        """Test signature is the hex HMAC-SHA256 of the body."""
        expected = hmac.new(b"s3cr3t", b'{"amount":100}', hashlib.sha256).hexdigest()
        assert sign(b'{"amount":100}', "s3cr3t") == expected

    def test_str_and_bytes_agree(self):
        assert sign('{"a":"é"}', "key") == sign('{"a":"é"}'.encode("utf-8"), b"key")

    def test_deterministic(self):
        assert sign(b"payload", "secret") == sign(b"payload", "secret")


class TestVerify:
    """Tests for signature verification."""

    @pytest.mark.parametrize(
        "body,secret",
        [
            (b"", "s"),
            (b'{"id":"1","type":"lead.created"}', "s3cr3t"),
            (bytes(range(256)), generate_secret()),
        ],
    )
    def test_round_trip(self, body, secret):
        assert verify(body, sign(body, secret), secret) is True

    def test_flipped_signature_bit_rejected(self):
        signature = sign(b"body", "secret")
        for index in (0, 17, len(signature) - 1):
            assert verify(b"body", _flip_bit(signature, index), "secret") is False

    def test_flipped_secret_bit_rejected(self):
        signature = sign(b"body", "secret")
        assert verify(b"body", signature, _flip_bit("secret", 2)) is False

    def test_modified_body_rejected(self):
        signature = sign(b'{"amount":100}', "secret")
        assert verify(b'{"amount":101}', signature, "secret") is False

    def test_length_mismatch_rejected(self):
        signature = sign(b"body", "secret")
        assert verify(b"body", signature[:-1], "secret") is False
        assert verify(b"body", signature + "0", "secret") is False
        assert verify(b"body", "", "secret") is False

    def test_prefixed_signature_rejected(self):
        signature = sign(b"body", "secret")
        assert verify(b"body", f"sha256={signature}", "secret") is False


class TestGenerateSecret:
    def test_hex_encoded_32_bytes(self):
        secret = generate_secret()
        assert len(secret) == 64
        int(secret, 16)

    def test_unique(self):
        assert generate_secret() != generate_secret()
