"""Prometheus metrics endpoint."""
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint(request: Request):
    """Prometheus exposition of the app's registry."""
    return Response(content=request.app.state.metrics.render(), media_type=CONTENT_TYPE_LATEST)
