"""
Endpoint resolution and health probing.

``ConnectivityState`` holds the active base URL and the connectivity
status. It is a plain object passed to whoever needs it, so each client
(and each test) gets its own instance.

``HealthProber`` is the only writer. It checks ``{base_url}/health`` on
each candidate in priority order and records the first one that answers.
Probing only happens when ``probe()`` is called; there is no background
re-check. Concurrent probes are not serialized: the last one to finish
wins.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import CandidateLabel, EndpointCandidate
from .transport import Transport

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"


class ConnectivityStatus(str, Enum):
    CHECKING = "checking"
    PRIMARY_ACTIVE = "primary-active"
    FALLBACK_ACTIVE = "fallback-active"
    OFFLINE = "offline"


# Type for status change callbacks
StatusCallback = Callable[[ConnectivityStatus, Optional[str]], None]


class ConnectivityState:
    """Active endpoint and connectivity status shared by one client."""

    def __init__(self, candidates: Sequence[EndpointCandidate]):
        if not candidates:
            raise ValueError("At least one endpoint candidate is required")
        self.candidates: tuple[EndpointCandidate, ...] = tuple(candidates)
        self._status = ConnectivityStatus.CHECKING
        self._active_url: Optional[str] = None
        self._listeners: list[StatusCallback] = []

    @property
    def status(self) -> ConnectivityStatus:
        return self._status

    @property
    def active_url(self) -> Optional[str]:
        """The resolved base URL, or None before the first successful probe."""
        return self._active_url

    @property
    def active_candidate(self) -> Optional[EndpointCandidate]:
        return self.candidate_for(self._active_url)

    def candidate_for(self, base_url: Optional[str]) -> Optional[EndpointCandidate]:
        for candidate in self.candidates:
            if candidate.base_url == base_url:
                return candidate
        return None

    def target_url(self) -> str:
        """Base URL for the next request.

        Until a probe has resolved an endpoint, requests go to the
        highest-priority candidate.
        """
        return self._active_url or self.candidates[0].base_url

    def subscribe(self, callback: StatusCallback) -> None:
        """Register a callback invoked after every status update."""
        self._listeners.append(callback)

    def update(self, status: ConnectivityStatus, active_url: Optional[str] = None) -> None:
        """Record a probe outcome.

        ``active_url`` is only written for the two *-active statuses and
        must be one of the candidates; OFFLINE leaves it untouched.
        """
        if status in (ConnectivityStatus.PRIMARY_ACTIVE, ConnectivityStatus.FALLBACK_ACTIVE):
            if active_url not in {c.base_url for c in self.candidates}:
                raise ValueError(f"{active_url!r} is not a configured endpoint candidate")
            self._active_url = active_url
        self._status = status
        for callback in self._listeners:
            try:
                callback(status, self._active_url)
            except Exception as e:
                logger.warning(f"Status callback error: {type(e).__name__}: {e}")


def endpoint_label(candidate: Optional[EndpointCandidate]) -> str:
    """Name of an endpoint as shown to the user."""
    if candidate is None or candidate.label == CandidateLabel.PRIMARY:
        return "Production (Render)"
    return "Local"


def _status_for(candidate: EndpointCandidate) -> ConnectivityStatus:
    if candidate.label == CandidateLabel.PRIMARY:
        return ConnectivityStatus.PRIMARY_ACTIVE
    return ConnectivityStatus.FALLBACK_ACTIVE


class HealthProber:
    """Bounded-timeout liveness checks against the endpoint candidates."""

    def __init__(self, transport: Transport, state: ConnectivityState):
        self.transport = transport
        self.state = state

    async def check(self, candidate: EndpointCandidate) -> bool:
        """Return True if the candidate's health endpoint answers 2xx in time."""
        url = f"{candidate.base_url}{HEALTH_PATH}"
        try:
            response = await asyncio.wait_for(
                self.transport.send("GET", url, {}, None, timeout=candidate.probe_timeout),
                timeout=candidate.probe_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"{candidate.label.value.capitalize()} API health check timed out "
                f"after {candidate.probe_timeout}s"
            )
            return False
        except Exception as e:
            logger.warning(
                f"{candidate.label.value.capitalize()} API health check failed: {e}"
            )
            return False

        if not response.ok:
            logger.warning(
                f"{candidate.label.value.capitalize()} API health check returned "
                f"HTTP {response.status}"
            )
            return False
        return True

    async def probe(self) -> ConnectivityStatus:
        """
        Resolve the active endpoint.

        Tries each candidate in priority order and stops at the first
        healthy one. Never raises: when no candidate answers, the status
        becomes OFFLINE and the active endpoint is left as it was.

        Returns:
            The resulting ConnectivityStatus (never CHECKING).
        """
        for candidate in self.state.candidates:
            if await self.check(candidate):
                status = _status_for(candidate)
                self.state.update(status, candidate.base_url)
                logger.info(f"Using {candidate.label.value} API at {candidate.base_url}")
                return status

        self.state.update(ConnectivityStatus.OFFLINE)
        logger.warning("No API endpoint is reachable; status is offline")
        return ConnectivityStatus.OFFLINE
