"""Canonical query string reconstruction for App Proxy signatures."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

SIGNATURE_KEY = "signature"


@dataclass(frozen=True)
class CanonicalQuery:
    """Result of canonicalizing a raw proxy query string."""
    canonical: str
    signature: Optional[str]  # None when no signature pair was present
    params: dict[str, list[str]]


def _as_text(raw_query: Union[str, bytes, None]) -> str:
    if raw_query is None:
        return ""
    if isinstance(raw_query, bytes):
        # surrogateescape keeps invalid UTF-8 bytes intact for re-encoding
        return raw_query.decode("utf-8", "surrogateescape")
    return raw_query


def wire_bytes(text: str) -> bytes:
    """Encode text back to the bytes it was received as."""
    return text.encode("utf-8", "surrogateescape")


def parse_query(raw_query: Union[str, bytes, None]) -> list[tuple[str, str]]:
    """
    Split a raw query string into (key, value) pairs without decoding.

    A segment without '=' yields an empty value. Empty segments are skipped.
    """
    text = _as_text(raw_query)
    if text.startswith("?"):
        text = text[1:]

    pairs = []
    for segment in text.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        pairs.append((key, value))
    return pairs


def group_params(pairs: list[tuple[str, str]]) -> dict[str, list[str]]:
    """Group pairs by key, keeping the order of values for each key."""
    grouped: dict[str, list[str]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)
    return grouped


def build_canonical_string(params: dict[str, list[str]]) -> str:
    """
    Build the signed message: keys in byte order, values comma-joined,
    segments concatenated with no separator.
    """
    keys = sorted(params, key=wire_bytes)
    return "".join(f"{key}={','.join(params[key])}" for key in keys)


def canonicalize(raw_query: Union[str, bytes, None]) -> CanonicalQuery:
    """
    Canonicalize a raw query string and extract its signature.

    Every `signature` pair is removed; the first one supplies the signature.
    Values stay percent-encoded exactly as received.
    """
    signature = None
    remaining = []
    for key, value in parse_query(raw_query):
        if key == SIGNATURE_KEY:
            if signature is None:
                signature = value
            continue
        remaining.append((key, value))

    params = group_params(remaining)
    return CanonicalQuery(
        canonical=build_canonical_string(params),
        signature=signature,
        params=params,
    )
