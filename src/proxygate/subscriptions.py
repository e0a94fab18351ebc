"""Client for the external subscription-management API."""
import logging
from typing import Any, Optional

import requests

from .errors import UpstreamCallFailure

log = logging.getLogger(__name__)


class SubscriptionClient:
    """Thin JSON client: call(path, method, body) -> JSON or UpstreamCallFailure."""

    def __init__(self, base_url: Optional[str], token: Optional[str] = None, timeout: float = 10):
        self.base_url = (base_url or "").rstrip("/")
        self.token = token
        self.timeout = timeout

    def call(self, path: str, method: str = "GET", body: Optional[dict] = None) -> Any:
        """
        Call the subscription API and return the decoded JSON body.

        Raises:
            UpstreamCallFailure: base URL unset, transport error, or non-2xx status
        """
        if not self.base_url:
            raise UpstreamCallFailure("Subscription API base URL not set")

        headers = {"Authorization": f"Bearer {self.token or ''}"}
        url = f"{self.base_url}{path}"

        try:
            response = requests.request(
                method,
                url,
                json=body,
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamCallFailure(f"Subscription API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            raise UpstreamCallFailure(
                message or f"Subscription API {response.status_code}",
                status=response.status_code
            )

        log.debug("Subscription API %s %s -> %s", method, path, response.status_code)
        return data
