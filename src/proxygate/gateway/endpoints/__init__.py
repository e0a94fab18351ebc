"""Gateway API endpoints."""

from . import health, metrics, portal

__all__ = ["health", "metrics", "portal"]
