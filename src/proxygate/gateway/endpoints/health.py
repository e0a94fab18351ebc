"""Health check endpoint."""

from fastapi import APIRouter, Request

from proxygate import __version__


router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """
    Health check endpoint. No authentication required.

    Reports whether the proxy secret and subscription API are configured,
    never their values.
    """
    config = request.app.state.config

    return {
        "status": "ok",
        "version": __version__,
        "secret_configured": config.secret_configured,
        "subscriptions_configured": config.subscriptions.configured
    }
