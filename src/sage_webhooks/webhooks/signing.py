"""
Webhook signing.

HMAC-SHA256 signatures over the exact payload bytes that are transmitted.
Receivers recompute the signature over the raw request body with their
registered secret and compare it against ``X-Webhook-Signature``.
"""

import hashlib
import hmac
import secrets


def _to_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def generate_secret() -> str:
    """Generate a signing secret: 32 random bytes, hex-encoded."""
    return secrets.token_hex(32)


def sign(payload: str | bytes, secret: str | bytes) -> str:
    """
    Generate the HMAC-SHA256 signature for a webhook payload.

    Args:
        payload: Body bytes exactly as sent (str is UTF-8 encoded)
        secret: Shared secret for the endpoint

    Returns:
        Lowercase hex digest
    """
    return hmac.new(_to_bytes(secret), _to_bytes(payload), hashlib.sha256).hexdigest()


def verify(payload: str | bytes, signature: str, secret: str | bytes) -> bool:
    """
    Verify a webhook signature.

    Length is checked first; equal-length signatures are compared in
    constant time so the position of the first mismatch is not leaked.
    """
    expected = sign(payload, secret)

    if len(signature) != len(expected):
        return False

    return hmac.compare_digest(_to_bytes(signature), expected.encode("ascii"))
