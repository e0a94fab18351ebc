"""proxygate: signature-verified App Proxy backend."""

__version__ = "0.1.0"
