"""
Core module for Multi-Source Search.

Provides:
- Unified exception hierarchy
- Async utilities for concurrent provider calls
"""

from .async_utils import CircuitBreaker, Settled, gather_settled
from .exceptions import (
    # Base
    MultiSourceSearchError,
    ErrorContext,
    ErrorSeverity,
    ErrorCategory,
    # API errors
    APIError,
    RateLimitError,
    NetworkError,
    ServiceUnavailableError,
    # Validation errors
    ValidationError,
    InvalidQueryError,
    InvalidParameterError,
    # Data errors
    DataError,
    ParseError,
    # Configuration errors
    ConfigurationError,
    # Utilities
    is_retryable_error,
)

__all__ = [
    "MultiSourceSearchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "APIError",
    "RateLimitError",
    "NetworkError",
    "ServiceUnavailableError",
    "ValidationError",
    "InvalidQueryError",
    "InvalidParameterError",
    "DataError",
    "ParseError",
    "ConfigurationError",
    "is_retryable_error",
    "CircuitBreaker",
    "Settled",
    "gather_settled",
]
