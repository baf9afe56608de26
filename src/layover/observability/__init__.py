"""
Observability module for Layover: structured logging with correlation IDs.
"""

from layover.observability.structured_logging import (
    CorrelationFilter,
    HumanReadableFormatter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    setup_structured_logging,
)

__all__ = [
    "CorrelationFilter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "setup_structured_logging",
    "add_correlation_id",
    "get_correlation_id",
]
