"""Domain Events describing one outbound/inbound API exchange.

They are emitted by the request executor and rendered by the debug tracer
when diagnostics are enabled. They are never returned to callers.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class TraceRecord:
    """Base class for trace records."""
    pass


@dataclass
class RequestPrepared(TraceRecord):
    """Emitted right before a request is dispatched."""
    method: str
    url: str
    token_preview: str  # Already redacted, never the full token
    body: Optional[bytes] = None
    attempt: int = 0
    timestamp: float = field(default_factory=time.time)


@dataclass
class ResponseReceived(TraceRecord):
    """Emitted once a response body has been read."""
    status_code: int
    reason: str
    elapsed_s: float
    body: Optional[bytes] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(TraceRecord):
    """Emitted when a rate-limited call is about to wait and retry."""
    wait_s: float
    attempt_number: int  # 1-based number of the upcoming retry
    max_attempts: int
    server_hint_s: Optional[float] = None
    timestamp: float = field(default_factory=time.time)
