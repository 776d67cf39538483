"""
HTTP transports for the yoga API client.

Two interchangeable strategies sit behind the ``Transport`` interface:

- ``NativeTransport`` mirrors the native-bridge HTTP plugin of the mobile
  shell: separate connect/read timeouts and a structured JSON body
  (the serialized body is decoded and re-encoded by aiohttp).
- ``WebTransport`` mirrors browser fetch: the body goes out as raw bytes
  and the whole request is aborted when its timeout expires.

Both normalize failures into ``TransportError`` tagged with an
``ErrorKind``, so callers never need to know which one is in use.
"""

import asyncio
import json
import logging
import ssl
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import aiohttp
import httpx

from .connection import create_connector, create_native_timeout, create_ssl_context
from .errors import ErrorKind, RequestValidationError, TransportError
from .session import CONNECT_TIMEOUT, REQUEST_TIMEOUT, get_bool_env

logger = logging.getLogger(__name__)


class TransportKind(str, Enum):
    """Which HTTP execution strategy is in use."""

    NATIVE = "native"
    WEB = "web"


@dataclass
class TransportResponse:
    """Status code and parsed payload of a completed HTTP exchange."""

    status: int
    data: Any = None
    text: str = ""
    is_json: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def parse_payload(status: int, text: str) -> TransportResponse:
    """Build a TransportResponse, decoding the body as JSON when possible."""
    if not text.strip():
        return TransportResponse(status=status, text=text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return TransportResponse(status=status, text=text)
    return TransportResponse(status=status, data=data, text=text, is_json=True)


def decode_json_body(body: Optional[bytes]) -> Any:
    """
    Turn a serialized request body back into a JSON object.

    The native bridge takes structured payloads, not byte strings.

    Raises:
        RequestValidationError: If the body is not valid UTF-8 JSON.
    """
    if body is None:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestValidationError(f"Request body is not valid JSON: {e}")


class Transport:
    """Interface shared by the HTTP execution strategies."""

    kind: TransportKind

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> TransportResponse:
        """Execute one HTTP request.

        Raises:
            TransportError: On timeout (``ErrorKind.TIMEOUT``) or any
                connection-level failure (``ErrorKind.NETWORK``).
            RequestValidationError: If the body cannot be sent as-is.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release pooled connections."""

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class NativeTransport(Transport):
    """aiohttp-backed transport with a structured JSON body."""

    kind = TransportKind.NATIVE

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        ssl_context: Optional[ssl.SSLContext] = None,
        verify_ssl: Optional[bool] = None,
        ca_bundle: Optional[str] = None,
    ):
        self.connect_timeout = connect_timeout
        self._ssl_context = ssl_context
        self._verify_ssl = verify_ssl
        self._ca_bundle = ca_bundle
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        # Created lazily: aiohttp sessions must be built inside a running loop
        if self._session is None or self._session.closed:
            connector = create_connector(
                ssl_context=self._ssl_context,
                verify_ssl=self._verify_ssl,
                ca_bundle=self._ca_bundle,
            )
            self._session = aiohttp.ClientSession(connector=connector)
        return self._session

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> TransportResponse:
        # json=None means "no body" to aiohttp, so a JSON null would be
        # dropped; JsonPayload serializes any decoded value, null included.
        data = aiohttp.JsonPayload(decode_json_body(body)) if body is not None else None
        client_timeout = create_native_timeout(
            total=timeout,
            connect=min(self.connect_timeout, timeout),
            read=timeout,
        )
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                headers=dict(headers),
                data=data,
                timeout=client_timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except asyncio.TimeoutError:
            raise TransportError(
                f"Request to {url} timed out after {timeout}s", ErrorKind.TIMEOUT
            )
        except aiohttp.ClientError as e:
            raise TransportError(
                f"Cannot reach {url}: {type(e).__name__}: {e}", ErrorKind.NETWORK
            )

        logger.debug(f"{method} {url} -> {status} (native)")
        return parse_payload(status, text)

    async def aclose(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


class WebTransport(Transport):
    """httpx-backed transport that aborts on timeout like browser fetch."""

    kind = TransportKind.WEB

    def __init__(
        self,
        verify_ssl: Optional[bool] = None,
        ca_bundle: Optional[str] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if http_transport is not None:
            self._client = httpx.AsyncClient(transport=http_transport)
        else:
            self._client = httpx.AsyncClient(
                verify=create_ssl_context(verify=verify_ssl, ca_bundle=ca_bundle)
            )

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> TransportResponse:
        try:
            resp = await asyncio.wait_for(
                self._client.request(
                    method,
                    url,
                    headers=dict(headers),
                    content=body,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"Request to {url} aborted after {timeout}s", ErrorKind.TIMEOUT
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request to {url} timed out: {type(e).__name__}", ErrorKind.TIMEOUT
            )
        except httpx.RequestError as e:
            raise TransportError(
                f"Failed to fetch {url}: {type(e).__name__}: {e}", ErrorKind.NETWORK
            )

        logger.debug(f"{method} {url} -> {resp.status_code} (web)")
        return parse_payload(resp.status_code, resp.text)

    async def aclose(self) -> None:
        await self._client.aclose()


def detect_runtime(native_shell: Optional[bool] = None) -> TransportKind:
    """
    Decide which transport to use for this process.

    Args:
        native_shell: True when running inside the native mobile wrapper.
                      If None, uses the YOGA_NATIVE_SHELL environment
                      variable (default: False).
    """
    if native_shell is None:
        native_shell = get_bool_env("YOGA_NATIVE_SHELL", False)
    return TransportKind.NATIVE if native_shell else TransportKind.WEB


def create_transport(
    kind: TransportKind,
    connect_timeout: float = CONNECT_TIMEOUT,
    verify_ssl: Optional[bool] = None,
    ca_bundle: Optional[str] = None,
) -> Transport:
    """Build the transport for the given runtime kind."""
    if kind == TransportKind.NATIVE:
        return NativeTransport(
            connect_timeout=connect_timeout,
            verify_ssl=verify_ssl,
            ca_bundle=ca_bundle,
        )
    return WebTransport(verify_ssl=verify_ssl, ca_bundle=ca_bundle)
