"""
Stateless transport decorators.

Each one wraps a single transport and can be nested in any order with the
others and with Retry and Throttle.
"""

from layover.transports.accept_compressed import ACCEPT_ENCODING, AcceptCompressed
from layover.transports.capture import Capture, Record
from layover.transports.header import Header
from layover.transports.log import Log
from layover.transports.post_compressed import PostCompressed
from layover.transports.request_id import REQUEST_ID_HEADER, RequestID, generate_request_id

__all__ = [
    "ACCEPT_ENCODING",
    "AcceptCompressed",
    "Capture",
    "Header",
    "Log",
    "PostCompressed",
    "REQUEST_ID_HEADER",
    "Record",
    "RequestID",
    "generate_request_id",
]
