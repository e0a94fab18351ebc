import logging

import pytest

from proxygate.errors import (
    CustomerMismatch,
    DuplicateIdentityParameter,
    MisconfiguredSecret,
    MissingRequiredParameter,
    MissingSignature,
    SignatureMismatch,
)
from proxygate.gateway.auth import authenticate, decode_params, single_values, strip_prefix
from proxygate.gateway.config import GatewayConfig
from proxygate.proxy_signature import sign_query

SECRET = "s3cr3t"
PREFIX = "/api/tg-portal"


@pytest.fixture
def config():
    return GatewayConfig(shared_secret=SECRET)


def test_authenticate_returns_decoded_identity(config):
    """Should verify then decode shop, timestamp and customer id."""
    query = sign_query(
        "shop=demo%2Dshop.myshopify.com&timestamp=1700000000"
        "&logged_in_customer_id=42&path_prefix=%2Fapps%2Fportal",
        SECRET,
    )

    identity = authenticate(query, f"{PREFIX}/ping", config)

    assert identity.shop == "demo-shop.myshopify.com"
    assert identity.timestamp == "1700000000"
    assert identity.customer_id == "42"
    assert identity.path == "/ping"
    assert identity.path_prefix == "/apps/portal"


def test_authenticate_without_secret_is_misconfigured():
    query = sign_query("shop=a&timestamp=1", SECRET)

    with pytest.raises(MisconfiguredSecret) as exc_info:
        authenticate(query, f"{PREFIX}/ping", GatewayConfig())

    assert exc_info.value.status_code == 500


def test_authenticate_missing_signature(config):
    with pytest.raises(MissingSignature) as exc_info:
        authenticate("shop=a&timestamp=1", f"{PREFIX}/ping", config)

    assert exc_info.value.status_code == 401


def test_authenticate_bad_signature(config):
    with pytest.raises(SignatureMismatch) as exc_info:
        authenticate("shop=a&timestamp=1&signature=deadbeef", f"{PREFIX}/ping", config)

    assert exc_info.value.status_code == 401


def test_authenticate_empty_signature_is_mismatch(config):
    with pytest.raises(SignatureMismatch):
        authenticate("shop=a&timestamp=1&signature=", f"{PREFIX}/ping", config)


def test_authenticate_requires_shop_and_timestamp(config):
    query = sign_query("shop=demo.myshopify.com", SECRET)

    with pytest.raises(MissingRequiredParameter) as exc_info:
        authenticate(query, f"{PREFIX}/ping", config)

    assert exc_info.value.status_code == 401
    assert "timestamp" in exc_info.value.message


def test_authenticate_customer_mismatch(config):
    """customer_id differing from logged_in_customer_id is a 403."""
    query = sign_query(
        "shop=demo.myshopify.com&timestamp=1&customer_id=5&logged_in_customer_id=9",
        SECRET,
    )

    with pytest.raises(CustomerMismatch) as exc_info:
        authenticate(query, f"{PREFIX}/subscriptions", config)

    assert exc_info.value.status_code == 403


def test_authenticate_customer_match_is_accepted(config):
    query = sign_query(
        "shop=demo.myshopify.com&timestamp=1&customer_id=9&logged_in_customer_id=9",
        SECRET,
    )

    identity = authenticate(query, f"{PREFIX}/subscriptions", config)

    assert identity.customer_id == "9"


def test_authenticate_empty_logged_in_customer(config):
    """Anonymous storefront visitors send an empty logged_in_customer_id."""
    query = sign_query(
        "shop=demo.myshopify.com&timestamp=1&customer_id=5&logged_in_customer_id=",
        SECRET,
    )

    identity = authenticate(query, f"{PREFIX}/ping", config)

    assert identity.customer_id is None


def test_decode_params_merges_keys_that_decode_alike():
    decoded = decode_params({"a": ["x%20y", "z"], "b": ["1+2"], "%61": ["w"]})

    assert decoded == {"a": ["x y", "z", "w"], "b": ["1 2"]}


def test_single_values_keeps_first_value_of_ordinary_keys():
    assert single_values({"a": ["x", "z"], "shop": ["demo"]}) == {"a": "x", "shop": "demo"}


@pytest.mark.parametrize("query", [
    "shop=demo.myshopify.com&timestamp=1&logged_in_customer_id=999&logged_in_customer_id=",
    "shop=demo.myshopify.com&timestamp=1&customer_id=5&customer_id=9",
    "shop=demo.myshopify.com&shop=evil.myshopify.com&timestamp=1",
    "shop=demo.myshopify.com&sh%6Fp=evil.myshopify.com&timestamp=1",
])
def test_authenticate_rejects_repeated_identity_keys(config, query):
    """A signed query naming shop or a customer twice is not trusted."""
    with pytest.raises(DuplicateIdentityParameter) as exc_info:
        authenticate(sign_query(query, SECRET), f"{PREFIX}/ping", config)

    assert exc_info.value.status_code == 401


def test_authenticate_allows_repeated_ordinary_keys(config):
    query = sign_query("shop=demo.myshopify.com&timestamp=1&tag=a&tag=b", SECRET)

    identity = authenticate(query, f"{PREFIX}/ping", config)

    assert identity.params["tag"] == "a"


def test_strip_prefix():
    assert strip_prefix("/api/tg-portal/ping", PREFIX) == "/ping"
    assert strip_prefix("/api/tg-portal", PREFIX) == "/"
    assert strip_prefix("/other", PREFIX) == "/other"


def test_debug_mode_logs_canonical_string(caplog):
    config = GatewayConfig(shared_secret=SECRET, debug=True)
    query = sign_query("shop=demo.myshopify.com&timestamp=1", SECRET)

    with caplog.at_level(logging.DEBUG, logger="proxygate.gateway.auth"):
        authenticate(query, f"{PREFIX}/ping", config)

    assert "shop=demo.myshopify.comtimestamp=1" in caplog.text
    assert SECRET not in caplog.text


def test_non_debug_mode_does_not_log_canonical_string(config, caplog):
    query = sign_query("shop=demo.myshopify.com&timestamp=1", SECRET)

    with caplog.at_level(logging.DEBUG, logger="proxygate.gateway.auth"):
        authenticate(query, f"{PREFIX}/ping", config)

    assert "shop=demo.myshopify.comtimestamp=1" not in caplog.text
