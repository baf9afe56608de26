"""
Layover exception hierarchy.

All domain-specific exceptions inherit from LayoverError, making it easy
to catch any library error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    LayoverError
    ├── ConfigurationError          - invalid decorator or config settings
    │   └── MissingRequestIDError   - Log used without RequestID
    ├── TransportError              - no response received from the transport
    │   ├── TooManyRedirectsError   - redirect limit exhausted (never retried)
    │   ├── UnsupportedSchemeError  - URL scheme not supported (never retried)
    │   ├── InvalidHeaderError      - bad header name or value (never retried)
    │   └── CertificateError        - TLS certificate not trusted (never retried)
    ├── BodyReplayError             - request body cannot be buffered or replayed
    ├── ContentEncodingError        - unsupported or corrupt Content-Encoding
    └── RequestCancelledError       - request context was cancelled
        └── DeadlineExceededError   - request context deadline passed
"""

from __future__ import annotations


class LayoverError(Exception):
    """Base exception for all Layover errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(LayoverError):
    """Raised when a decorator or config file holds invalid settings."""


class MissingRequestIDError(ConfigurationError):
    """Raised when Log sees a request without X-Request-ID.

    Log must be nested inside RequestID so every record can be correlated.
    """

    def __init__(self) -> None:
        super().__init__("Log requires RequestID to be installed before it in the chain")


# --- Transport ---------------------------------------------------------------


class TransportError(LayoverError):
    """Raised when the transport fails before a response is received."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message, details={"url": url} if url else None)
        self.url = url


class TooManyRedirectsError(TransportError):
    """Raised when the redirect limit is exhausted."""

    def __init__(self, url: str | None = None, *, max_redirects: int | None = None) -> None:
        if max_redirects is None:
            message = "stopped after too many redirects"
        else:
            message = f"stopped after {max_redirects} redirects"
        super().__init__(message, url=url)
        self.max_redirects = max_redirects


class UnsupportedSchemeError(TransportError):
    """Raised when the URL scheme cannot be handled by the transport."""

    def __init__(self, scheme: str, *, url: str | None = None) -> None:
        super().__init__(f"unsupported protocol scheme {scheme!r}", url=url)
        self.scheme = scheme


class InvalidHeaderError(TransportError):
    """Raised when a request header name or value is invalid."""


class CertificateError(TransportError):
    """Raised when the server TLS certificate is not trusted."""


# --- Bodies ------------------------------------------------------------------


class BodyReplayError(LayoverError):
    """Raised when a request body cannot be buffered or re-created for a new attempt."""


class ContentEncodingError(LayoverError):
    """Raised when a response uses an unsupported or corrupt Content-Encoding."""

    def __init__(self, message: str, *, encoding: str | None = None) -> None:
        super().__init__(message, details={"encoding": encoding})
        self.encoding = encoding


# --- Cancellation ------------------------------------------------------------


class RequestCancelledError(LayoverError):
    """Raised when the request context is cancelled during a wait."""

    def __init__(self, message: str = "request cancelled") -> None:
        super().__init__(message)


class DeadlineExceededError(RequestCancelledError):
    """Raised when the request context deadline passes."""

    def __init__(self, message: str = "request deadline exceeded") -> None:
        super().__init__(message)
