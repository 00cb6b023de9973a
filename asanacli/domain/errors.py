"""Error taxonomy shared by the request pipeline and the CLI boundary.

Every failure that crosses the API layer is one of the closed set of
``CLIError`` subclasses below. Each kind carries a human message, a machine
code and the process exit code the CLI terminates with.
"""

from enum import IntEnum
from typing import Any, Dict, Optional


class ExitCode(IntEnum):
    """Process exit codes, one per error kind."""
    SUCCESS = 0
    GENERAL = 1
    INVALID_ARGS = 2
    AUTH_FAILURE = 3
    NOT_FOUND = 4
    RATE_LIMITED = 5
    NETWORK_ERROR = 6


class CLIError(Exception):
    """Base class for every typed error surfaced by asana-cli."""

    code: str = "GENERAL_ERROR"
    exit_code: ExitCode = ExitCode.GENERAL

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used by the JSON error envelope."""
        return {
            "message": self.message,
            "code": self.code,
            "exit_code": int(self.exit_code),
        }


class GeneralError(CLIError):
    """Catch-all: encode/decode failures, unclassified API errors."""
    code = "GENERAL_ERROR"
    exit_code = ExitCode.GENERAL


class InvalidArgsError(CLIError):
    """Invalid combination of inputs, detected before any network call."""
    code = "INVALID_ARGS"
    exit_code = ExitCode.INVALID_ARGS

    def __init__(self, message: str):
        super().__init__(message)


class AuthError(CLIError):
    """Missing or rejected credentials (401/403)."""
    code = "AUTH_FAILURE"
    exit_code = ExitCode.AUTH_FAILURE

    def __init__(self, message: str):
        super().__init__(message)


class NotFoundError(CLIError):
    """The requested resource does not exist (404)."""
    code = "NOT_FOUND"
    exit_code = ExitCode.NOT_FOUND

    def __init__(self, resource: str = "resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class RateLimitedError(CLIError):
    """Rate limit retry budget exhausted (429)."""
    code = "RATE_LIMITED"
    exit_code = ExitCode.RATE_LIMITED

    def __init__(self, retry_after: str = ""):
        message = "rate limited"
        if retry_after:
            message = f"rate limited, retry after {retry_after}"
        super().__init__(message)
        self.retry_after = retry_after


class NetworkError(CLIError):
    """Transport failure, unreadable response or cancelled call."""
    code = "NETWORK_ERROR"
    exit_code = ExitCode.NETWORK_ERROR


def _find_cli_error(exc: Optional[BaseException]) -> Optional[CLIError]:
    seen = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, CLIError):
            return exc
        seen.add(id(exc))
        exc = exc.__cause__ or exc.__context__
    return None


def get_exit_code(exc: Optional[BaseException]) -> int:
    """Returns the exit code for an exception, following its cause chain.

    Args:
        exc: Any exception (or None for success).

    Returns:
        The mapped exit code; exceptions outside the taxonomy map to GENERAL.
    """
    if exc is None:
        return int(ExitCode.SUCCESS)
    cli_error = _find_cli_error(exc)
    if cli_error is not None:
        return int(cli_error.exit_code)
    return int(ExitCode.GENERAL)


def as_cli_error(exc: BaseException) -> CLIError:
    """Converts any exception to a CLIError, keeping existing taxonomy members."""
    cli_error = _find_cli_error(exc)
    if cli_error is not None:
        return cli_error
    return GeneralError(str(exc), cause=exc)
