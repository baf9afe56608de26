"""
Classification of transport errors into retriable and fatal.

An error is fatal when repeating the unmodified request can never succeed:
exhausted redirects, an unsupported URL scheme, an invalid header, or an
untrusted TLS certificate. Typed exceptions are checked first along the
``__cause__``/``__context__`` chain; message patterns are only a fallback
for transports that do not raise typed errors.
"""

from __future__ import annotations

import re
import ssl

import aiohttp

from layover.exceptions import (
    CertificateError,
    InvalidHeaderError,
    TooManyRedirectsError,
    UnsupportedSchemeError,
)

NON_RETRIABLE_ERRORS: tuple[type[BaseException], ...] = (
    TooManyRedirectsError,
    UnsupportedSchemeError,
    InvalidHeaderError,
    CertificateError,
    aiohttp.TooManyRedirects,
    aiohttp.InvalidURL,
    aiohttp.ClientConnectorCertificateError,
    ssl.SSLCertVerificationError,
)

NON_RETRIABLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"stopped after \d+ redirects\Z"),
    re.compile(r"too many redirects", re.IGNORECASE),
    re.compile(r"unsupported protocol scheme"),
    re.compile(r"invalid header"),
    re.compile(r"certificate is not trusted"),
    re.compile(r"certificate verify failed"),
)


def _chain(error: BaseException):
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        yield error
        error = error.__cause__ or error.__context__


def is_retriable_error(error: BaseException | None) -> bool:
    """
    Return False when ``error`` shows the request can never succeed as-is.

    ``None`` (no error) is retriable; the decision is then up to the response.
    """
    if error is None:
        return True
    for exc in _chain(error):
        if isinstance(exc, NON_RETRIABLE_ERRORS):
            return False
    message = str(error)
    return not any(pattern.search(message) for pattern in NON_RETRIABLE_PATTERNS)
