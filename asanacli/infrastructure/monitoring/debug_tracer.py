"""Diagnostic side channel for HTTP traffic.

Writes ``[DEBUG]`` lines describing each request, response and scheduled
retry to a text sink (stderr in the CLI). Only active when diagnostics were
explicitly enabled. Secrets are redacted and bodies truncated before writing.
"""

import logging
from typing import List, Optional, TextIO

from asanacli.domain.events.api_events import (
    RequestPrepared, ResponseReceived, RetryScheduled, TraceRecord,
)

logger = logging.getLogger(__name__)

TOKEN_PREVIEW_CHARS = 8
MAX_BODY_BYTES = 500
ELLIPSIS = "..."
LINE_PREFIX = "[DEBUG]"


def redact_token(token: str) -> str:
    """Shows only the first 8 characters of a token.

    Tokens of 8 characters or fewer are shown unchanged.
    """
    if len(token) > TOKEN_PREVIEW_CHARS:
        return token[:TOKEN_PREVIEW_CHARS] + ELLIPSIS
    return token


def truncate_body(body: Optional[bytes]) -> str:
    """Decodes a body for display, cutting it at 500 bytes."""
    if not body:
        return ""
    if len(body) > MAX_BODY_BYTES:
        return body[:MAX_BODY_BYTES].decode("utf-8", errors="replace") + ELLIPSIS
    return body.decode("utf-8", errors="replace")


def _format_elapsed(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    return f"{seconds:.3f}s"


class DebugTracer:
    """Renders trace records to a diagnostic sink."""

    def __init__(self, sink: Optional[TextIO] = None, enabled: bool = True):
        """Initializes the tracer.

        Args:
            sink: Text stream receiving trace lines.
            enabled: Whether records are written at all.
        """
        self.sink = sink
        self.enabled = enabled and sink is not None

    def trace(self, record: TraceRecord) -> None:
        """Writes a record; never raises."""
        if not self.enabled:
            return
        lines = self.render(record)
        try:
            for line in lines:
                self.sink.write(f"{LINE_PREFIX} {line}\n")
            self.sink.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to write trace output: {e}")

    def render(self, record: TraceRecord) -> List[str]:
        """Formats a record as trace lines (without the prefix)."""
        if isinstance(record, RequestPrepared):
            lines = [
                f"{record.method} {record.url}",
                f"Authorization: Bearer {record.token_preview}",
            ]
            if record.body is not None:
                lines.append(f"Request Body: {truncate_body(record.body)}")
            return lines
        if isinstance(record, ResponseReceived):
            return [
                f"Response: {record.status_code} {record.reason} ({_format_elapsed(record.elapsed_s)})",
                f"Body: {truncate_body(record.body)}",
            ]
        if isinstance(record, RetryScheduled):
            return [
                f"Rate limited, retrying in {record.wait_s:.2f}s "
                f"(attempt {record.attempt_number}/{record.max_attempts})"
            ]
        return [repr(record)]
