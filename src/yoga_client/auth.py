"""
Authentication and progress operations on top of ApiClient.

Holds the signed-in user, persists the session token through the
TokenStore, and turns API failures into messages the UI can show.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .client import ApiClient
from .endpoints import ConnectivityStatus, endpoint_label
from .errors import ApiError, ConnectivityError, RequestRejectedError
from .session import TokenStore

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of a user-facing auth operation."""
    success: bool
    message: str = ""


def _encode(data: Any) -> bytes:
    return json.dumps(data).encode("utf-8")


def _succeeded(response: Any) -> bool:
    return isinstance(response, dict) and bool(response.get("success"))


def _message(response: Any) -> str:
    if isinstance(response, dict) and isinstance(response.get("message"), str):
        return response["message"]
    return ""


class AuthService:
    """Login state and user-level API operations."""

    def __init__(self, client: ApiClient, store: TokenStore):
        self.client = client
        self.store = store
        self.user: Optional[dict] = None
        self.error = ""

    @property
    def token(self) -> Optional[str]:
        return self.store.get_token()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def status(self) -> ConnectivityStatus:
        return self.client.status

    @property
    def current_api_url(self) -> str:
        return self.client.current_api_url

    async def check_api_health(self) -> ConnectivityStatus:
        return await self.client.probe()

    async def initialize(self) -> ConnectivityStatus:
        """
        Probe the endpoints, then verify a stored token.

        A token the server rejects (or answers ``success: false`` for) is
        discarded. A token is kept when the server simply cannot be
        reached, so going offline does not sign the user out.
        """
        status = await self.client.probe()
        if not self.token:
            return status

        try:
            response = await self.client.call("/auth/verify-token", "POST")
        except ConnectivityError as e:
            logger.warning(f"Token verification skipped, API unreachable: {e}")
            return status
        except ApiError as e:
            logger.error(f"Token verification failed: {e}")
            self._drop_session()
            return status

        if _succeeded(response):
            self.user = response.get("user")
        else:
            self._drop_session()
        return status

    async def login(self, email: str, password: str) -> AuthResult:
        return await self._authenticate(
            "/auth/login", {"email": email, "password": password}
        )

    async def register(self, data: dict) -> AuthResult:
        return await self._authenticate("/auth/register", data)

    def logout(self) -> None:
        self._drop_session()
        self.error = ""

    async def update_profile(self, profile: dict) -> AuthResult:
        try:
            response = await self.client.call("/user/profile", "PUT", _encode(profile))
        except ApiError as e:
            return AuthResult(False, self._describe(e))
        if not _succeeded(response):
            return AuthResult(False, _message(response))
        self.user = response.get("user")
        return AuthResult(True, _message(response))

    async def update_preferences(self, preferences: dict) -> AuthResult:
        try:
            response = await self.client.call(
                "/user/preferences", "PUT", _encode(preferences)
            )
        except ApiError as e:
            return AuthResult(False, self._describe(e))
        if not _succeeded(response):
            return AuthResult(False, _message(response))
        self.user = {**(self.user or {}), "preferences": response.get("preferences")}
        return AuthResult(True, _message(response))

    async def get_progress(self) -> Optional[dict]:
        response = await self._fetch("Get progress", "/progress")
        return response.get("progress") if response else None

    async def add_session(self, session: dict) -> Optional[dict]:
        response = await self._fetch(
            "Add session", "/progress/session", "POST", _encode(session)
        )
        return response.get("progress") if response else None

    async def add_achievement(self, achievement: dict) -> Optional[dict]:
        response = await self._fetch(
            "Add achievement", "/progress/achievement", "POST", _encode(achievement)
        )
        if not response:
            return None
        return {"isNew": response.get("isNew"), "progress": response.get("progress")}

    async def get_stats(self) -> Optional[dict]:
        response = await self._fetch("Get stats", "/progress/stats")
        return response.get("stats") if response else None

    async def _authenticate(self, path: str, data: dict) -> AuthResult:
        self.error = ""
        try:
            response = await self.client.call(path, "POST", _encode(data))
        except ApiError as e:
            self.error = self._describe(e)
            return AuthResult(False, self.error)

        if not _succeeded(response) or not response.get("token"):
            self.error = _message(response) or "Authentication failed"
            return AuthResult(False, self.error)

        # Token is persisted before returning so the next call sends it
        self.store.set_token(response["token"])
        self.user = response.get("user")
        return AuthResult(True, _message(response))

    async def _fetch(
        self, action: str, path: str, method: str = "GET", body: Optional[bytes] = None
    ) -> Optional[dict]:
        self.error = ""
        try:
            response = await self.client.call(path, method, body)
        except ApiError as e:
            self.error = self._describe(e)
            logger.error(f"{action} error: {self.error}")
            return None
        if not _succeeded(response):
            self.error = _message(response)
            return None
        return response

    def _describe(self, error: ApiError) -> str:
        if isinstance(error, (ConnectivityError, RequestRejectedError)):
            return error.message
        label = endpoint_label(self.client.state.active_candidate)
        return f"Request to {label} API failed: {error.message}"

    def _drop_session(self) -> None:
        self.store.clear()
        self.user = None
