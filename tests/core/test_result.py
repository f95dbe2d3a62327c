"""Tests for Result pattern (Ok/Err).

Tests verify that Result types provide non-throwing outcomes with:
- Ok: success with value
- Err: refusal with error message and optional stable code
- Equality and hashing for comparisons in tests and sets
"""

import pytest

from agent_relay.core.result import Err, Ok


class TestResultTypeBasics:
    """Test basic Result type creation and methods."""

    def test_ok_result_creation(self):
        """Ok can be created with a value."""
        result = Ok("success value")
        assert result.is_ok() is True
        assert result.is_err() is False
        assert result.unwrap() == "success value"

    def test_ok_none_value(self):
        """Ok(None) is the usual outcome of a state transition."""
        result = Ok(None)
        assert result.is_ok()
        assert result.unwrap() is None

    def test_err_result_creation(self):
        """Err can be created with error message."""
        result = Err("something went wrong")
        assert result.is_ok() is False
        assert result.is_err() is True
        assert result.error == "something went wrong"
        assert result.code is None

    def test_err_result_with_code(self):
        """Err can be created with error code."""
        result = Err("no such conversation", code="NOT_FOUND")
        assert result.code == "NOT_FOUND"

    def test_err_unwrap_raises(self):
        """Unwrapping an Err raises ValueError with the message."""
        with pytest.raises(ValueError, match="boom"):
            Err("boom").unwrap()

    def test_unwrap_or(self):
        """unwrap_or returns the value for Ok and the default for Err."""
        assert Ok(1).unwrap_or(2) == 1
        assert Err("x").unwrap_or(2) == 2


class TestResultEquality:
    """Test equality, hashing and repr."""

    def test_ok_equality(self):
        assert Ok(1) == Ok(1)
        assert Ok(1) != Ok(2)
        assert Ok(1) != Err("1")

    def test_err_equality_includes_code(self):
        assert Err("a", code="X") == Err("a", code="X")
        assert Err("a", code="X") != Err("a", code="Y")

    def test_hashable(self):
        assert len({Ok(1), Ok(1), Err("a"), Err("a")}) == 2

    def test_repr(self):
        assert repr(Ok(1)) == "Ok(1)"
        assert repr(Err("a")) == "Err('a')"
        assert repr(Err("a", code="X")) == "Err('a', code='X')"
