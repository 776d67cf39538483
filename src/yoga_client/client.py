"""
Retrying request executor for the yoga REST API.

``ApiClient.call()`` composes headers, resolves the target URL from the
shared ``ConnectivityState``, dispatches through the configured transport
and retries transient failures with a fixed delay.

Failover policy: the active endpoint changes only when ``probe()`` runs:
at startup, when the application asks for it, and when a call has used
up its retries. A failing request is retried against whatever endpoint
is active at that moment and is never re-sent elsewhere. The probe that
follows an exhausted budget decides the error message: "both servers
unavailable" only when no endpoint answers, otherwise a message naming
the endpoint that failed. The next call goes to whichever endpoint that
probe selected.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional

from .config import Config
from .connection import build_request_headers
from .endpoints import ConnectivityState, ConnectivityStatus, HealthProber, endpoint_label
from .errors import (
    ConnectivityError,
    ErrorKind,
    RequestRejectedError,
    ResponseDecodeError,
    TransportError,
)
from .session import MAX_RETRIES, REQUEST_TIMEOUT, RETRY_DELAY, TokenStore
from .transport import Transport, TransportResponse, create_transport, detect_runtime

logger = logging.getLogger(__name__)


class ApiClient:
    """Typed request function plus connectivity status for the REST API."""

    def __init__(
        self,
        transport: Transport,
        state: ConnectivityState,
        token_store: TokenStore,
        request_timeout: float = REQUEST_TIMEOUT,
        retry_delay: float = RETRY_DELAY,
        max_retries: int = MAX_RETRIES,
    ):
        self.transport = transport
        self.state = state
        self.token_store = token_store
        self.request_timeout = request_timeout
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.prober = HealthProber(transport, state)

    @classmethod
    def from_config(cls, config: Config, token_store: TokenStore) -> "ApiClient":
        """Build a client, picking the transport once from the runtime kind."""
        kind = detect_runtime(config.native_shell)
        transport = create_transport(
            kind,
            connect_timeout=config.connect_timeout,
            verify_ssl=config.verify_ssl,
            ca_bundle=config.ca_bundle,
        )
        logger.debug(f"Using {kind.value} transport")
        return cls(
            transport,
            ConnectivityState(config.candidates()),
            token_store,
            request_timeout=config.request_timeout,
            retry_delay=config.retry_delay,
            max_retries=config.max_retries,
        )

    @property
    def status(self) -> ConnectivityStatus:
        return self.state.status

    @property
    def current_api_url(self) -> str:
        return self.state.target_url()

    async def probe(self) -> ConnectivityStatus:
        """Re-run the health check and update the active endpoint."""
        return await self.prober.probe()

    async def call(
        self,
        path: str,
        method: str = "GET",
        body: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        """
        Send one API request, retrying transient failures.

        Args:
            path: Path appended to the active base URL (e.g. "/auth/login")
            method: HTTP method
            body: Serialized JSON body, or None
            headers: Caller headers; they override the defaults
            max_retries: Retries after the first attempt (default from config)

        Returns:
            The parsed JSON payload. A ``success: false`` body is returned
            as-is; callers check it themselves.

        Raises:
            ConnectivityError: Transient failures exhausted the retry budget.
                The endpoints are re-probed before it is raised.
            RequestRejectedError: The server answered with status >= 400.
            RequestValidationError: The body could not be sent.
            ResponseDecodeError: A 2xx body was not JSON.
        """
        retries_remaining = self.max_retries if max_retries is None else max_retries
        if retries_remaining < 0:
            raise ValueError("max_retries must be >= 0")
        method = method.upper()
        attempt = 0

        while True:
            attempt += 1
            base_url = self.state.target_url()
            url = f"{base_url}{path}"
            request_headers = build_request_headers(self.token_store.get_token(), headers)
            try:
                response = await self._dispatch(method, url, request_headers, body)
            except TransportError as e:
                if retries_remaining <= 0:
                    logger.error(f"{method} {path} failed after {attempt} attempt(s): {e}")
                    raise await self._exhausted(base_url, e) from e
                retries_remaining -= 1
                logger.warning(
                    f"{method} {url} failed ({e.kind.value}), retrying in "
                    f"{self.retry_delay}s ({retries_remaining} retries left): {e}"
                )
                await asyncio.sleep(self.retry_delay)
                continue

            return self._parse(method, url, response)

    async def _exhausted(self, base_url: str, error: TransportError) -> ConnectivityError:
        failed = self.state.candidate_for(base_url)
        status = await self.prober.probe()
        if status == ConnectivityStatus.OFFLINE:
            return ConnectivityError(cause=error)
        return ConnectivityError(
            f"Cannot connect to server. Current API: {endpoint_label(failed)}. {error.message}",
            cause=error,
        )

    async def _dispatch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Optional[bytes],
    ) -> TransportResponse:
        try:
            return await asyncio.wait_for(
                self.transport.send(method, url, headers, body, timeout=self.request_timeout),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"Request to {url} timed out after {self.request_timeout}s",
                ErrorKind.TIMEOUT,
            )

    def _parse(self, method: str, url: str, response: TransportResponse) -> Any:
        if not response.ok:
            message = None
            if isinstance(response.data, dict):
                message = response.data.get("message")
            logger.debug(f"{method} {url} rejected with HTTP {response.status}: {message}")
            raise RequestRejectedError(
                message if isinstance(message, str) else "",
                response.status,
                payload=response.data,
            )

        if not response.is_json:
            if not response.text.strip():
                return None
            raise ResponseDecodeError(
                f"Expected a JSON response from {url}, got: {response.text[:200]}",
                status_code=response.status,
            )
        return response.data

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
