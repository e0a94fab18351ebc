"""Error taxonomy for proxied requests."""

from typing import Optional


class ProxyError(Exception):
    """Base error rendered as a JSON failure response."""
    status_code = 500
    reason = "error"
    message = "Server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class MissingSignature(ProxyError):
    status_code = 401
    reason = "missing_signature"
    message = "Bad proxy signature"


class SignatureMismatch(ProxyError):
    status_code = 401
    reason = "signature_mismatch"
    message = "Bad proxy signature"


class MissingRequiredParameter(ProxyError):
    status_code = 401
    reason = "missing_parameter"
    message = "Missing required proxy parameter"


class DuplicateIdentityParameter(ProxyError):
    status_code = 401
    reason = "duplicate_parameter"
    message = "Ambiguous proxy parameter"


class CustomerMismatch(ProxyError):
    status_code = 403
    reason = "customer_mismatch"
    message = "Customer mismatch"


class MisconfiguredSecret(ProxyError):
    status_code = 500
    reason = "misconfigured_secret"
    message = "Proxy shared secret not configured"


class UnknownRoute(ProxyError):
    status_code = 404
    reason = "unknown_route"
    message = "Not found"


class UpstreamCallFailure(ProxyError):
    """Subscription API call failed; detail is logged, never returned."""
    status_code = 500
    reason = "upstream_failure"
    message = "Upstream service error"

    def __init__(self, detail: str, status: Optional[int] = None):
        super().__init__()
        self.detail = detail
        self.status = status
