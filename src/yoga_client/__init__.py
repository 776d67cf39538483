"""
Resilient API client for the yoga pose detection backend.

Probes the production and local API endpoints, keeps track of which one
is active, and retries transient request failures.
"""

__version__ = "1.0.0"

from .session import (
    get_int_env,
    get_float_env,
    get_bool_env,
    TokenStore,
    TOKEN_KEY,
    PRIMARY_PROBE_TIMEOUT,
    FALLBACK_PROBE_TIMEOUT,
    REQUEST_TIMEOUT,
    CONNECT_TIMEOUT,
    RETRY_DELAY,
    MAX_RETRIES,
)
from .errors import (
    ErrorKind,
    ApiError,
    TransportError,
    ConnectivityError,
    RequestRejectedError,
    RequestValidationError,
    ResponseDecodeError,
)
from .config import (
    Config,
    CandidateLabel,
    EndpointCandidate,
    DEFAULT_API_URL,
    DEFAULT_LOCAL_API_URL,
)
from .connection import (
    create_ssl_context,
    build_request_headers,
)
from .transport import (
    Transport,
    TransportKind,
    TransportResponse,
    NativeTransport,
    WebTransport,
    detect_runtime,
    create_transport,
)
from .endpoints import (
    ConnectivityStatus,
    ConnectivityState,
    HealthProber,
)
from .client import ApiClient
from .auth import AuthService, AuthResult

__all__ = [
    "__version__",
    # Environment helpers and constants
    "get_int_env",
    "get_float_env",
    "get_bool_env",
    "PRIMARY_PROBE_TIMEOUT",
    "FALLBACK_PROBE_TIMEOUT",
    "REQUEST_TIMEOUT",
    "CONNECT_TIMEOUT",
    "RETRY_DELAY",
    "MAX_RETRIES",
    # Session token
    "TokenStore",
    "TOKEN_KEY",
    # Errors
    "ErrorKind",
    "ApiError",
    "TransportError",
    "ConnectivityError",
    "RequestRejectedError",
    "RequestValidationError",
    "ResponseDecodeError",
    # Configuration
    "Config",
    "CandidateLabel",
    "EndpointCandidate",
    "DEFAULT_API_URL",
    "DEFAULT_LOCAL_API_URL",
    # Connection utilities
    "create_ssl_context",
    "build_request_headers",
    # Transports
    "Transport",
    "TransportKind",
    "TransportResponse",
    "NativeTransport",
    "WebTransport",
    "detect_runtime",
    "create_transport",
    # Endpoint resolution
    "ConnectivityStatus",
    "ConnectivityState",
    "HealthProber",
    # Client
    "ApiClient",
    "AuthService",
    "AuthResult",
]
