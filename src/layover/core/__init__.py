"""
Core types, cancellation and the stateful transports (Retry, Throttle).
"""

from layover.core.context import Context
from layover.core.streams import ByteStream, BytesStream, EmptyStream
from layover.core.throttle import Throttle
from layover.core.types import Request, Response, Transport, Unwrapper, ensure_replayable, unwrap_all

__all__ = [
    "ByteStream",
    "BytesStream",
    "Context",
    "EmptyStream",
    "Request",
    "Response",
    "Throttle",
    "Transport",
    "Unwrapper",
    "ensure_replayable",
    "unwrap_all",
]
