"""agent-relay - Core module exports"""

from .exceptions import (
    CircularDelegationError,
    ConfigurationError,
    DelegationCancelledError,
    DelegationError,
    DelegationTimeoutError,
    ExecutionError,
    PermissionDeniedError,
)
from .result import Err, Ok, Result

__all__ = [
    # Results
    "Result",
    "Ok",
    "Err",
    # Errors
    "DelegationError",
    "ConfigurationError",
    "PermissionDeniedError",
    "CircularDelegationError",
    "ExecutionError",
    "DelegationTimeoutError",
    "DelegationCancelledError",
]
