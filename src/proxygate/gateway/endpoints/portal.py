"""Customer portal routes served behind the App Proxy."""

from typing import Any, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from proxygate.errors import UnknownRoute
from proxygate.subscriptions import SubscriptionClient
from proxygate.gateway.auth import ProxyIdentity, verify_proxy_request


router = APIRouter()

SUBSCRIPTIONS_PATH = "/external/v2/subscriptions"

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class PingResponse(BaseModel):
    """Response from ping endpoint."""
    ok: bool
    shop: str
    logged_in_customer_id: Optional[str]


class SubscriptionsResponse(BaseModel):
    """Response from subscriptions listing."""
    ok: bool
    subscriptions: Any


class ActionResponse(BaseModel):
    """Response from a subscription action."""
    ok: bool
    id: str
    action: str


def get_subscription_client(request: Request) -> SubscriptionClient:
    return request.app.state.subscriptions


def _subscription_path(subscription_id: str, action: str) -> str:
    return f"{SUBSCRIPTIONS_PATH}/{quote(subscription_id, safe='')}/{action}"


@router.api_route("/ping", methods=["GET", "POST"], response_model=PingResponse)
def ping(identity: ProxyIdentity = Depends(verify_proxy_request)):
    """Quick check that the proxy signature is accepted."""
    return {
        "ok": True,
        "shop": identity.shop,
        "logged_in_customer_id": identity.customer_id
    }


@router.get("/subscriptions", response_model=SubscriptionsResponse)
def list_subscriptions(
    identity: ProxyIdentity = Depends(verify_proxy_request),
    client: SubscriptionClient = Depends(get_subscription_client)
):
    """List subscriptions of the logged-in customer."""
    if not identity.customer_id:
        return {"ok": True, "subscriptions": []}

    data = client.call(f"{SUBSCRIPTIONS_PATH}?customerId={quote(identity.customer_id, safe='')}")
    return {"ok": True, "subscriptions": data}


@router.post("/subscriptions/{subscription_id}/pause", response_model=ActionResponse)
def pause_subscription(
    subscription_id: str,
    identity: ProxyIdentity = Depends(verify_proxy_request),
    client: SubscriptionClient = Depends(get_subscription_client)
):
    client.call(_subscription_path(subscription_id, "pause"), "POST", {"reason": "customer_request"})
    return {"ok": True, "id": subscription_id, "action": "pause"}


@router.post("/subscriptions/{subscription_id}/resume", response_model=ActionResponse)
def resume_subscription(
    subscription_id: str,
    identity: ProxyIdentity = Depends(verify_proxy_request),
    client: SubscriptionClient = Depends(get_subscription_client)
):
    client.call(_subscription_path(subscription_id, "resume"), "POST")
    return {"ok": True, "id": subscription_id, "action": "resume"}


@router.post("/subscriptions/{subscription_id}/skip", response_model=ActionResponse)
def skip_subscription(
    subscription_id: str,
    identity: ProxyIdentity = Depends(verify_proxy_request),
    client: SubscriptionClient = Depends(get_subscription_client)
):
    client.call(_subscription_path(subscription_id, "skip"), "POST", {"count": 1})
    return {"ok": True, "id": subscription_id, "action": "skip"}


# Must stay last: unknown paths are still signature-checked before the 404
@router.api_route("/{rest:path}", methods=ALL_METHODS)
def unknown_route(identity: ProxyIdentity = Depends(verify_proxy_request)):
    raise UnknownRoute()
