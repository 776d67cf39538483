"""
Connection utilities for the yoga API client.

Contains the SSL context, timeout and connector factories used by the
transports, and the header composition shared by every request.
"""

import logging
import ssl
from typing import Mapping, Optional

import aiohttp

from .session import CONNECT_TIMEOUT, REQUEST_TIMEOUT, get_bool_env

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def create_ssl_context(
    verify: Optional[bool] = None,
    ca_bundle: Optional[str] = None,
) -> ssl.SSLContext:
    """
    Create an SSL context for API connections.

    ``verify`` and ``ca_bundle`` normally come from ``Config`` (which
    reads YOGA_VERIFY_SSL and YOGA_CA_BUNDLE). ``verify=False`` only takes
    effect when YOGA_ALLOW_INSECURE=1 is also set; otherwise it is
    ignored with a warning. The CA bundle is trusted in addition to the
    system store.
    """
    ssl_ctx = ssl.create_default_context()
    if ca_bundle:
        ssl_ctx.load_verify_locations(cafile=ca_bundle)

    if verify is False:
        if get_bool_env("YOGA_ALLOW_INSECURE", False):
            ssl_ctx.check_hostname = False
            ssl_ctx.verify_mode = ssl.CERT_NONE
            logger.warning("TLS certificate verification is DISABLED for API requests")
        else:
            logger.warning(
                "YOGA_VERIFY_SSL=false ignored: "
                "set YOGA_ALLOW_INSECURE=1 to confirm"
            )
    return ssl_ctx


def create_native_timeout(
    total: float = REQUEST_TIMEOUT,
    connect: float = CONNECT_TIMEOUT,
    read: Optional[float] = None,
) -> aiohttp.ClientTimeout:
    """
    Create a ClientTimeout with separate connect and read phases.

    Args:
        total: Upper bound for the whole request in seconds
        connect: Timeout for connection establishment in seconds
        read: Timeout between socket reads; defaults to ``total``

    Returns:
        aiohttp.ClientTimeout for a single API request
    """
    return aiohttp.ClientTimeout(
        total=total,
        connect=connect,
        sock_connect=connect,
        sock_read=read if read is not None else total,
    )


def create_connector(
    ssl_context: Optional[ssl.SSLContext] = None,
    verify_ssl: Optional[bool] = None,
    ca_bundle: Optional[str] = None,
) -> aiohttp.TCPConnector:
    """
    Create a TCPConnector for the native transport.

    Args:
        ssl_context: Optional SSL context. If None, creates one.
        verify_ssl: Passed to create_ssl_context if ssl_context is None.
        ca_bundle: Passed to create_ssl_context if ssl_context is None.
    """
    if ssl_context is None:
        ssl_context = create_ssl_context(verify=verify_ssl, ca_bundle=ca_bundle)
    return aiohttp.TCPConnector(ssl=ssl_context)


def build_request_headers(
    auth_token: Optional[str] = None,
    extra: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """
    Build HTTP headers for an API request.

    Content-Type is always JSON, Authorization is added only when a token
    is present, and caller-supplied headers override both (header names
    compare case-insensitively).

    Args:
        auth_token: Optional Bearer token
        extra: Caller headers

    Returns:
        Dictionary of headers to send
    """
    headers = {
        "Content-Type": JSON_CONTENT_TYPE,
    }
    if auth_token:
        headers["Authorization"] = f"Bearer {auth_token}"
    for name, value in (extra or {}).items():
        for existing in [k for k in headers if k.lower() == name.lower()]:
            del headers[existing]
        headers[name] = value
    return headers
