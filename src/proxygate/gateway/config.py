"""Gateway configuration loading."""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_CONFIG_PATH = "proxygate.json"
DEFAULT_PROXY_PREFIX = "/api/tg-portal"


@dataclass
class SubscriptionApiConfig:
    base_url_env: str = "APPSTLE_API_BASE"
    token_env: str = "APPSTLE_API_KEY"
    timeout_sec: float = 10
    base_url: Optional[str] = None
    token: Optional[str] = field(default=None, repr=False)

    @property
    def configured(self) -> bool:
        return bool(self.base_url)


@dataclass
class GatewayConfig:
    host: str = "127.0.0.1"
    port: int = 7780
    proxy_prefix: str = DEFAULT_PROXY_PREFIX
    secret_env: str = "SHOPIFY_APP_SHARED_SECRET"
    shared_secret: Optional[str] = field(default=None, repr=False)
    debug: bool = False
    audit_log_path: Optional[str] = None
    subscriptions: SubscriptionApiConfig = field(default_factory=SubscriptionApiConfig)

    @property
    def secret_configured(self) -> bool:
        return bool(self.shared_secret)

    def describe(self) -> dict:
        """Summary safe to print or log; never includes secrets."""
        return {
            "host": self.host,
            "port": self.port,
            "proxy_prefix": self.proxy_prefix,
            "secret_env": self.secret_env,
            "secret_configured": self.secret_configured,
            "debug": self.debug,
            "audit_log_path": self.audit_log_path,
            "subscriptions_base_url": self.subscriptions.base_url,
            "subscriptions_token_configured": bool(self.subscriptions.token),
        }


def _normalize_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip("/")
    return "" if prefix == "/" else prefix


def load_gateway_config(path: Optional[str] = None) -> GatewayConfig:
    """
    Load gateway configuration from file or defaults.

    Priority:
    1. Explicit path argument
    2. PROXYGATE_CONFIG environment variable
    3. ./proxygate.json
    4. Defaults

    Secrets are read from the environment variables the config names.
    """
    if path is None:
        path = os.environ.get("PROXYGATE_CONFIG", DEFAULT_CONFIG_PATH)

    config_path = Path(path)

    gateway_data = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        gateway_data = data.get("gateway", {})

    subs_data = gateway_data.get("subscriptions", {})
    subs = SubscriptionApiConfig(
        base_url_env=subs_data.get("base_url_env", "APPSTLE_API_BASE"),
        token_env=subs_data.get("token_env", "APPSTLE_API_KEY"),
        timeout_sec=subs_data.get("timeout_sec", 10),
    )
    subs.base_url = os.environ.get(subs.base_url_env) or None
    subs.token = os.environ.get(subs.token_env) or None

    secret_env = gateway_data.get("secret_env", "SHOPIFY_APP_SHARED_SECRET")

    return GatewayConfig(
        host=gateway_data.get("host", "127.0.0.1"),
        port=gateway_data.get("port", 7780),
        proxy_prefix=_normalize_prefix(gateway_data.get("proxy_prefix", DEFAULT_PROXY_PREFIX)),
        secret_env=secret_env,
        shared_secret=os.environ.get(secret_env) or None,
        debug=gateway_data.get("debug", False)
            or os.environ.get("PROXYGATE_DEBUG", "").lower() == "true",
        audit_log_path=gateway_data.get("audit_log_path"),
        subscriptions=subs,
    )
