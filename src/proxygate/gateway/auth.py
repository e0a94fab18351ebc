"""App Proxy request gate for the gateway."""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import unquote_plus

from fastapi import Request

from proxygate.canonical import canonicalize
from proxygate.errors import (
    CustomerMismatch,
    DuplicateIdentityParameter,
    MisconfiguredSecret,
    MissingRequiredParameter,
    MissingSignature,
    ProxyError,
    SignatureMismatch,
)
from proxygate.proxy_signature import generate_signature, signatures_match

from .config import GatewayConfig

logger = logging.getLogger(__name__)

REQUIRED_PARAMS = ("shop", "timestamp")
IDENTITY_PARAMS = ("shop", "logged_in_customer_id", "customer_id")


@dataclass(frozen=True)
class ProxyIdentity:
    """Decoded identity of an authenticated proxy request."""
    shop: str
    timestamp: str
    customer_id: Optional[str]
    path: str
    path_prefix: Optional[str] = None
    params: dict = field(default_factory=dict)


def decode_params(params: dict[str, list[str]]) -> dict[str, list[str]]:
    """
    Percent-decode keys and values.

    Raw keys that decode to the same name are merged, so `shop` and `sh%6Fp`
    land in one list.
    """
    decoded: dict[str, list[str]] = {}
    for key, values in params.items():
        decoded.setdefault(unquote_plus(key), []).extend(unquote_plus(v) for v in values)
    return decoded


def single_values(decoded: dict[str, list[str]]) -> dict[str, str]:
    """
    Collapse to one value per key.

    Identity keys must appear once; any other key keeps its first value.
    """
    duplicated = [name for name in IDENTITY_PARAMS if len(decoded.get(name, ())) > 1]
    if duplicated:
        raise DuplicateIdentityParameter(f"Ambiguous proxy parameter: {', '.join(duplicated)}")
    return {key: values[0] for key, values in decoded.items()}


def strip_prefix(path: str, prefix: str) -> str:
    if prefix and path.startswith(prefix):
        path = path[len(prefix):]
    return path or "/"


def authenticate(raw_query, path: str, config: GatewayConfig) -> ProxyIdentity:
    """
    Verify a proxied request and return its decoded identity.

    Raises:
        MisconfiguredSecret: shared secret not set
        MissingSignature / SignatureMismatch: signature absent or wrong
        DuplicateIdentityParameter: shop or a customer id given more than once
        MissingRequiredParameter: shop or timestamp absent after verification
        CustomerMismatch: customer_id differs from logged_in_customer_id
    """
    if not config.secret_configured:
        raise MisconfiguredSecret()

    query = canonicalize(raw_query)
    if query.signature is None:
        raise MissingSignature()

    digest = generate_signature(query.canonical, config.shared_secret)
    if config.debug:
        logger.debug("Proxy canonical=%r digest=%s", query.canonical, digest)

    if not signatures_match(digest, query.signature):
        raise SignatureMismatch()

    # Decoding is only safe once the wire bytes have been verified
    decoded = single_values(decode_params(query.params))

    missing = [name for name in REQUIRED_PARAMS if name not in decoded]
    if missing:
        raise MissingRequiredParameter(f"Missing required proxy parameter: {', '.join(missing)}")

    logged_in = decoded.get("logged_in_customer_id") or None
    requested = decoded.get("customer_id") or None
    if logged_in and requested and logged_in != requested:
        raise CustomerMismatch()

    return ProxyIdentity(
        shop=decoded["shop"],
        timestamp=decoded["timestamp"],
        customer_id=logged_in,
        path=strip_prefix(path, config.proxy_prefix),
        path_prefix=decoded.get("path_prefix"),
        params=decoded,
    )


def verify_proxy_request(request: Request) -> ProxyIdentity:
    """FastAPI dependency guarding every proxied route."""
    config: GatewayConfig = request.app.state.config
    metrics = getattr(request.app.state, "metrics", None)

    try:
        identity = authenticate(request.scope.get("query_string", b""), request.url.path, config)
    except ProxyError as e:
        logger.info("Rejected proxy request %s: %s", request.url.path, e.reason)
        request.state.reason = e.reason
        if metrics is not None:
            metrics.record_verification(e.reason)
        raise

    request.state.reason = "accepted"
    request.state.shop = identity.shop
    if metrics is not None:
        metrics.record_verification("accepted")
    return identity
