"""FastAPI gateway serving App Proxy requests."""

from proxygate import __version__

__all__ = ["__version__"]
