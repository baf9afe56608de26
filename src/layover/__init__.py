"""
Layover - composable HTTP transport decorators.

Each decorator wraps a transport and implements the same
``async send(request) -> response`` contract, so retries, pacing, request
IDs, logging, compression and header injection can be stacked in any order
without touching the code that issues requests.
"""

__version__ = "0.1.0"

from layover.client import Client
from layover.codecs import CODECS, CompressStream, DecompressStream
from layover.config import Config, build_transport, load_config
from layover.core import (
    ByteStream,
    BytesStream,
    Context,
    EmptyStream,
    Request,
    Response,
    Throttle,
    Transport,
    Unwrapper,
    ensure_replayable,
    unwrap_all,
)
from layover.core.retry import (
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    ExponentialBackoff,
    Retry,
    RetryPolicy,
    StatusCodePolicy,
    is_retriable_error,
    parse_retry_after,
)

# Exceptions
from layover.exceptions import (
    BodyReplayError,
    CertificateError,
    ConfigurationError,
    ContentEncodingError,
    DeadlineExceededError,
    InvalidHeaderError,
    LayoverError,
    MissingRequestIDError,
    RequestCancelledError,
    TooManyRedirectsError,
    TransportError,
    UnsupportedSchemeError,
)
from layover.transport import AiohttpTransport
from layover.transports import AcceptCompressed, Capture, Header, Log, PostCompressed, Record, RequestID

# Logging utilities
from layover.utils.logging import get_logger, setup_logging

__all__ = [
    # Core types
    "Request",
    "Response",
    "Transport",
    "Unwrapper",
    "unwrap_all",
    "ensure_replayable",
    "ByteStream",
    "BytesStream",
    "EmptyStream",
    "Context",
    # Leaf transport and client
    "AiohttpTransport",
    "Client",
    # Retry
    "Retry",
    "RetryPolicy",
    "ExponentialBackoff",
    "StatusCodePolicy",
    "DEFAULT_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "is_retriable_error",
    "parse_retry_after",
    # Throttle
    "Throttle",
    # Decorators
    "AcceptCompressed",
    "Capture",
    "Header",
    "Log",
    "PostCompressed",
    "Record",
    "RequestID",
    # Codecs
    "CODECS",
    "CompressStream",
    "DecompressStream",
    # Config
    "Config",
    "load_config",
    "build_transport",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "LayoverError",
    "ConfigurationError",
    "MissingRequestIDError",
    "TransportError",
    "TooManyRedirectsError",
    "UnsupportedSchemeError",
    "InvalidHeaderError",
    "CertificateError",
    "BodyReplayError",
    "ContentEncodingError",
    "RequestCancelledError",
    "DeadlineExceededError",
]
