"""Result values for operations that report failure without raising.

Conversation status transitions and other bookkeeping operations that are
invoked from fire-and-forget paths return a Result instead of raising:
- Ok: the operation took effect, optionally carrying a value
- Err: the operation was refused, with a message and a stable error code

Callers that do care inspect the Result; callers that do not simply drop it.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class Result(ABC, Generic[T]):
    """Base class for Ok/Err outcomes."""

    @abstractmethod
    def is_ok(self) -> bool:
        """Return True if this is an Ok result."""

    @abstractmethod
    def is_err(self) -> bool:
        """Return True if this is an Err result."""

    @abstractmethod
    def unwrap(self) -> T:
        """Return the value from Ok, or raise ValueError.

        Raises:
            ValueError: If this is an Err result.
        """

    @abstractmethod
    def unwrap_or(self, default: T) -> T:
        """Return the value from Ok, or default otherwise."""


class Ok(Result[T]):
    """Success result containing a value."""

    def __init__(self, value: T):
        self._value = value

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self._value

    def unwrap_or(self, default: T) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Ok({self._value!r})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Ok):
            return False
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(("Ok", self._value))


class Err(Result[T]):
    """Refused operation with error information."""

    def __init__(self, error: str, code: Optional[str] = None):
        """Initialize Err with error information.

        Args:
            error: Message describing why the operation was refused.
            code: Optional stable code for categorization
                (e.g. "NOT_FOUND", "INVALID_TRANSITION").
        """
        self.error = error
        self.code = code

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        raise ValueError(self.error)

    def unwrap_or(self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        if self.code:
            return f"Err({self.error!r}, code={self.code!r})"
        return f"Err({self.error!r})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Err):
            return False
        return self.error == other.error and self.code == other.code

    def __hash__(self) -> int:
        return hash(("Err", self.error, self.code))
