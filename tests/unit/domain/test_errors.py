import pytest

from asanacli.domain.errors import (
    AuthError, CLIError, ExitCode, GeneralError, InvalidArgsError, NetworkError,
    NotFoundError, RateLimitedError, as_cli_error, get_exit_code,
)


@pytest.mark.parametrize("error, code, exit_code", [
    (GeneralError("boom"), "GENERAL_ERROR", 1),
    (InvalidArgsError("bad flag"), "INVALID_ARGS", 2),
    (AuthError("Not Authorized"), "AUTH_FAILURE", 3),
    (NotFoundError("task"), "NOT_FOUND", 4),
    (RateLimitedError(), "RATE_LIMITED", 5),
    (NetworkError("request failed"), "NETWORK_ERROR", 6),
])
def test_codes_and_exit_codes(error, code, exit_code):
    assert error.code == code
    assert get_exit_code(error) == exit_code
    assert error.to_dict() == {"message": error.message, "code": code, "exit_code": exit_code}


def test_success_and_foreign_exceptions():
    assert get_exit_code(None) == ExitCode.SUCCESS
    assert get_exit_code(ValueError("x")) == ExitCode.GENERAL


def test_exit_code_follows_cause_chain():
    try:
        try:
            raise AuthError("expired")
        except AuthError as inner:
            raise RuntimeError("wrapped") from inner
    except RuntimeError as outer:
        assert get_exit_code(outer) == 3
        assert as_cli_error(outer).message == "expired"


def test_cause_is_rendered_and_chained():
    cause = OSError("connection reset")
    error = NetworkError("request failed", cause=cause)
    assert str(error) == "request failed: connection reset"
    assert error.__cause__ is cause
    assert error.message == "request failed"


def test_rate_limited_messages():
    assert RateLimitedError().message == "rate limited"
    assert RateLimitedError("30s").message == "rate limited, retry after 30s"


def test_not_found_message():
    assert NotFoundError().message == "resource not found"
    assert NotFoundError("tag").resource == "tag"


def test_as_cli_error_wraps_plain_exceptions():
    error = as_cli_error(KeyError("gid"))
    assert isinstance(error, GeneralError)
    assert isinstance(error, CLIError)
    assert error.code == "GENERAL_ERROR"
