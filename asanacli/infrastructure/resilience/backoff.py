"""Backoff policy for rate-limited API calls.

Computes how long to wait before the next retry: exponential growth from a
base delay, capped, with up to 25% random jitter. A positive server hint
(``Retry-After``) always wins and is used verbatim.
"""

import logging
import random
import time
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_S = 1.0
DEFAULT_MAX_DELAY_S = 30.0
DEFAULT_MAX_ATTEMPTS = 3


class BackoffPolicy:
    """Exponential backoff with jitter, owned by a single client instance."""

    def __init__(
        self,
        base: float = DEFAULT_BASE_DELAY_S,
        cap: float = DEFAULT_MAX_DELAY_S,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        """Initializes the policy.

        Args:
            base: Delay in seconds for attempt 0.
            cap: Upper bound in seconds for the exponential part.
            max_attempts: Number of retries allowed after the initial call.
            rng: Random source for jitter. A private one seeded from the clock
                is created when omitted; pass a seeded one for reproducible tests.
        """
        if base <= 0 or cap <= 0:
            raise ValueError("base and cap must be positive")
        if max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        self.base = base
        self.cap = cap
        self.max_attempts = max_attempts
        self._rng = rng if rng is not None else random.Random(time.time_ns())

    def compute(self, attempt: int, server_hint: Optional[float] = None) -> float:
        """Returns the wait in seconds before retry number ``attempt + 1``.

        Args:
            attempt: 0-based count of retries already performed.
            server_hint: Wait requested by the server, in seconds.

        Returns:
            The server hint when positive, otherwise
            ``min(base * 2**attempt, cap)`` plus jitter in ``[0, wait/4)``.
        """
        if server_hint is not None and server_hint > 0:
            return float(server_hint)
        wait = min(self.base * (2 ** attempt), self.cap)
        jitter = self._rng.random() * (wait / 4)
        return wait + jitter


def parse_retry_after(header: Optional[str]) -> Optional[float]:
    """Parses a ``Retry-After`` header given as a whole number of seconds.

    HTTP-date values and anything else unparsable are ignored.
    """
    if not header:
        return None
    try:
        seconds = int(header.strip())
    except ValueError:
        logger.debug(f"Ignoring non-integer Retry-After header: {header!r}")
        return None
    return float(seconds) if seconds > 0 else None


def format_retry_after(seconds: Optional[float]) -> str:
    """Formats a wait hint for display, e.g. ``30s``; empty when absent."""
    if not seconds:
        return ""
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:.3g}s"
