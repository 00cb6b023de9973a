"""Maps non-2xx API responses onto the error taxonomy.

The mapping from status code to error kind is fixed; this module is the only
place that interprets HTTP status codes.
"""

import json
import logging
from typing import Optional

from asanacli.domain.errors import (
    AuthError, CLIError, GeneralError, NotFoundError, RateLimitedError,
)

logger = logging.getLogger(__name__)

RAW_SNIPPET_BYTES = 200
UNKNOWN_ERROR_MESSAGE = "unknown error"


def extract_message(body: Optional[bytes]) -> str:
    """Pulls a display message out of an error response body.

    Uses the first ``errors[].message`` of a JSON error envelope, falling back
    to a snippet of the raw body, or a generic message for empty bodies.
    """
    if not body:
        return UNKNOWN_ERROR_MESSAGE

    try:
        document = json.loads(body)
    except ValueError:
        return _raw_snippet(body)
    if document is not None and not isinstance(document, dict):
        return _raw_snippet(body)

    errors = (document or {}).get("errors")
    # An "errors" member that is not a list is not an error envelope
    if errors is not None and not isinstance(errors, list):
        return _raw_snippet(body)
    if errors:
        first = errors[0]
        if isinstance(first, dict) and first.get("message"):
            return str(first["message"])
    return UNKNOWN_ERROR_MESSAGE


def _raw_snippet(body: bytes) -> str:
    snippet = body[:RAW_SNIPPET_BYTES].decode("utf-8", errors="replace")
    if len(body) > RAW_SNIPPET_BYTES:
        return f"API error (non-JSON): {snippet}..."
    return f"API error (non-JSON): {snippet}"


def classify(status_code: int, body: Optional[bytes], resource: str = "resource") -> CLIError:
    """Translates a failed response into exactly one taxonomy error.

    Args:
        status_code: HTTP status of the response (expected non-2xx).
        body: Raw response body.
        resource: Resource name used for not-found messages.

    Returns:
        The matching ``CLIError`` subclass instance.
    """
    message = extract_message(body)

    if status_code in (401, 403):
        return AuthError(message)
    if status_code == 404:
        # Server wording is ignored; the message names the resource only.
        return NotFoundError(resource)
    if status_code == 429:
        return RateLimitedError("")
    logger.debug(f"Unclassified API error {status_code}: {message}")
    return GeneralError(f"API error {status_code}: {message}")


def check_status(status_code: int, body: Optional[bytes], resource: str = "resource") -> Optional[CLIError]:
    """Returns None for 2xx responses, otherwise the classified error."""
    if 200 <= status_code < 300:
        return None
    return classify(status_code, body, resource)
