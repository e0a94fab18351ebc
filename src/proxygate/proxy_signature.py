"""App Proxy signature generation and verification."""
import hmac
import hashlib
from typing import Optional, Union

from .canonical import SIGNATURE_KEY, canonicalize, wire_bytes


def generate_signature(canonical: str, secret: str) -> str:
    """
    Generate HMAC-SHA256 signature for a canonical query string.

    Returns lowercase hex digest.
    """
    return hmac.new(
        secret.encode('utf-8'),
        wire_bytes(canonical),
        hashlib.sha256
    ).hexdigest()


def signatures_match(expected: str, provided: str) -> bool:
    """Constant-time comparison; a length mismatch is a plain rejection."""
    if len(expected) != len(provided):
        return False
    return hmac.compare_digest(wire_bytes(expected), wire_bytes(provided))


def verify(raw_query: Union[str, bytes, None], secret: Optional[str]) -> bool:
    """
    Verify the signature carried in a raw App Proxy query string.

    Returns False when the secret is unset or the signature is absent.
    Never raises for malformed input.
    """
    if not secret:
        return False

    query = canonicalize(raw_query)
    if query.signature is None:
        return False

    expected = generate_signature(query.canonical, secret)
    return signatures_match(expected, query.signature)


def sign_query(raw_query: Union[str, bytes, None], secret: str) -> str:
    """
    Return the query with a valid signature appended.

    Any existing signature pair is dropped first.
    """
    query = canonicalize(raw_query)
    signature = generate_signature(query.canonical, secret)
    kept = [
        f"{key}={value}"
        for key, values in query.params.items()
        for value in values
    ]
    kept.append(f"{SIGNATURE_KEY}={signature}")
    return "&".join(kept)
