from __future__ import annotations

import pytest

from recallrai.errors import ErrorKind, RecallrAIError


@pytest.mark.parametrize(
    ("kind", "retryable"),
    [
        (ErrorKind.TIMEOUT, True),
        (ErrorKind.CONNECTION, True),
        (ErrorKind.NETWORK, True),
        (ErrorKind.RATE_LIMIT, True),
        (ErrorKind.INTERNAL_SERVER, True),
        (ErrorKind.AUTHENTICATION, False),
        (ErrorKind.VALIDATION, False),
        (ErrorKind.SESSION_INVALID_STATE, False),
        (ErrorKind.MERGE_CONFLICT_ALREADY_RESOLVED, False),
    ],
)
def test_retryable_kinds(kind, retryable):
    assert RecallrAIError(kind, "boom").retryable is retryable


def test_not_found_kinds():
    for kind in (
        ErrorKind.USER_NOT_FOUND,
        ErrorKind.SESSION_NOT_FOUND,
        ErrorKind.MERGE_CONFLICT_NOT_FOUND,
    ):
        assert RecallrAIError(kind, "gone", 404).is_not_found
    assert not RecallrAIError(ErrorKind.UNKNOWN, "odd", 418).is_not_found


def test_str_includes_status():
    error = RecallrAIError(ErrorKind.USER_NOT_FOUND, "User u1 not found", 404)

    assert str(error) == "User u1 not found. HTTP Status: 404."
    assert error.details == {}
    assert "USER_NOT_FOUND" in repr(error)
