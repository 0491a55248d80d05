"""
Tests for the error logging helpers.
"""

import pytest
from sqlalchemy.exc import OperationalError

from realm.exceptions import DatabaseError, RealmError, ValidationError
from realm.utils.error_logging import create_context_from_request, log_and_raise, wrap_third_party_exception


def test_wrap_maps_sqlalchemy_errors_to_database_error():
    """Test library database errors become DatabaseError."""
    wrapped = wrap_third_party_exception(OperationalError("SELECT 1", {}, Exception("locked")))
    assert isinstance(wrapped, DatabaseError)
    assert wrapped.details["original_type"] == "OperationalError"
    assert wrapped.user_friendly == "An internal error occurred. Please try again."


def test_wrap_maps_value_error_and_falls_back_to_base():
    """Test ValueError maps to ValidationError and unknown errors to RealmError."""
    assert isinstance(wrap_third_party_exception(ValueError("bad")), ValidationError)
    wrapped = wrap_third_party_exception(KeyError("missing"))
    assert type(wrapped) is RealmError


def test_context_without_request():
    """Test a missing request still yields a usable context."""
    context = create_context_from_request(None)
    assert context.metadata == {"path": "unknown", "method": "unknown"}


def test_log_and_raise_raises_requested_class():
    """Test log_and_raise raises the given realm error with its details."""
    with pytest.raises(DatabaseError) as exc_info:
        log_and_raise(DatabaseError, "boom", details={"table": "users"}, operation="select")
    assert exc_info.value.details == {"table": "users", "operation": "select"}
