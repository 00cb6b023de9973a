"""Request Executor: the single choke point for every API call.

Owns the whole lifecycle of one logical call: builds the authenticated
request, dispatches it, waits out rate limits with exponential backoff,
classifies failures into the error taxonomy and decodes successful bodies.

Only HTTP 429 is retried. Transport failures, cancellation and every other
non-2xx status end the call immediately.
"""

import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, Tuple

import httpx

from asanacli.domain.errors import GeneralError, NetworkError, RateLimitedError
from asanacli.domain.events.api_events import RequestPrepared, ResponseReceived, RetryScheduled
from asanacli.domain.models.common import Decoder, HTTPMethod, RequestDescriptor
from asanacli.infrastructure.config.settings import ClientConfig
from asanacli.infrastructure.monitoring.debug_tracer import DebugTracer, redact_token
from asanacli.infrastructure.resilience.backoff import BackoffPolicy, format_retry_after, parse_retry_after
from asanacli.infrastructure.resilience.error_classifier import check_status

logger = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429


class CallCancelled(Exception):
    """The caller's cancellation signal fired during a suspension point."""


@dataclass
class RetryState:
    """Per-call retry bookkeeping; never shared between calls."""
    attempt: int = 0
    total_wait: float = 0.0


class RequestExecutor:
    """Executes API calls with auth, rate-limit retries, tracing and error mapping."""

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff: Optional[BackoffPolicy] = None,
        tracer: Optional[DebugTracer] = None,
    ):
        """Initializes the executor.

        Args:
            config: Base URL, token, timeout and debug flag.
            transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
            backoff: Backoff policy; a private default instance when omitted.
            tracer: Diagnostic tracer; writes to stderr when ``config.debug`` is set.
        """
        self.config = config
        self.backoff = backoff or BackoffPolicy()
        if tracer is None:
            tracer = DebugTracer(sys.stderr, enabled=config.debug)
        self.tracer = tracer
        self._client = httpx.AsyncClient(timeout=config.timeout, transport=transport)
        logger.debug(
            f"RequestExecutor initialized: base_url={config.base_url}, timeout={config.timeout}s, "
            f"max_attempts={self.backoff.max_attempts}, tracing={self.tracer.enabled}"
        )

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Convenience verbs ---

    async def get(self, path: str, decode: Optional[Decoder] = None, resource: str = "resource", **kwargs: Any) -> Any:
        return await self.execute(
            RequestDescriptor(HTTPMethod("GET"), path, decode=decode, resource=resource), **kwargs
        )

    async def post(
        self, path: str, payload: Any = None, decode: Optional[Decoder] = None, resource: str = "resource", **kwargs: Any
    ) -> Any:
        return await self.execute(
            RequestDescriptor(HTTPMethod("POST"), path, body=encode_body(payload), decode=decode, resource=resource),
            **kwargs,
        )

    async def put(
        self, path: str, payload: Any = None, decode: Optional[Decoder] = None, resource: str = "resource", **kwargs: Any
    ) -> Any:
        return await self.execute(
            RequestDescriptor(HTTPMethod("PUT"), path, body=encode_body(payload), decode=decode, resource=resource),
            **kwargs,
        )

    async def delete(self, path: str, resource: str = "resource", **kwargs: Any) -> None:
        await self.execute(RequestDescriptor(HTTPMethod("DELETE"), path, resource=resource), **kwargs)

    # --- Pipeline ---

    async def execute(
        self,
        request: RequestDescriptor,
        *,
        cancel: Optional[asyncio.Event] = None,
        deadline: Optional[float] = None,
    ) -> Any:
        """Runs one logical call, including its rate-limit retries.

        Args:
            request: What to call. Re-read unchanged on every attempt.
            cancel: Caller's cancellation signal, observed while dispatching,
                reading and waiting out a backoff.
            deadline: Absolute event loop time (``loop.time()``) after which
                the call is abandoned.

        Returns:
            The decoded result, or None when ``request.decode`` is not set.

        Raises:
            NetworkError: Transport failure, unreadable response, cancellation
                or deadline expiry.
            RateLimitedError: Still rate limited after the last retry.
            AuthError, NotFoundError, GeneralError: Classified API errors and
                request construction or decoding failures.
        """
        state = RetryState()
        while state.attempt <= self.backoff.max_attempts:
            response, body = await self._dispatch(request, state, cancel, deadline)

            if response.status_code == RATE_LIMITED_STATUS:
                server_hint = parse_retry_after(response.headers.get("Retry-After"))
                if state.attempt >= self.backoff.max_attempts:
                    logger.warning(
                        f"{request.method} {request.path} still rate limited after "
                        f"{state.attempt} retries ({state.total_wait:.2f}s waited)"
                    )
                    raise RateLimitedError(format_retry_after(server_hint))
                await self._wait_before_retry(state, server_hint, cancel, deadline)
                continue

            error = check_status(response.status_code, body, request.resource)
            if error is not None:
                logger.debug(f"{request.method} {request.path} failed: {error.code} ({response.status_code})")
                raise error

            return self._decode(request, body)

        # The loop only exits through return or raise.
        raise RateLimitedError("")

    async def _dispatch(
        self,
        request: RequestDescriptor,
        state: RetryState,
        cancel: Optional[asyncio.Event],
        deadline: Optional[float],
    ) -> Tuple[httpx.Response, bytes]:
        """Sends one attempt and reads its body."""
        url = self.config.base_url + request.path
        headers: Dict[str, str] = {
            "Authorization": f"Bearer {self.config.access_token}",
            "Accept": "application/json",
        }
        if request.body is not None:
            headers["Content-Type"] = "application/json"

        try:
            http_request = self._client.build_request(request.method, url, content=request.body, headers=headers)
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise GeneralError("failed to create request", cause=e) from e

        if self.tracer.enabled:
            self.tracer.trace(RequestPrepared(
                method=request.method,
                url=url,
                token_preview=redact_token(self.config.access_token),
                body=request.body,
                attempt=state.attempt,
            ))

        logger.debug(f"Dispatching {request.method} {url} (attempt {state.attempt + 1})")
        start = time.monotonic()
        try:
            response = await self._race(self._client.send(http_request, stream=True), cancel, deadline)
        except CallCancelled as e:
            raise NetworkError("request cancelled", cause=e) from e
        except TimeoutError as e:
            raise NetworkError("request timed out", cause=e) from e
        except httpx.HTTPError as e:
            raise NetworkError("request failed", cause=e) from e

        try:
            body = await self._race(response.aread(), cancel, deadline)
        except CallCancelled as e:
            raise NetworkError("request cancelled", cause=e) from e
        except TimeoutError as e:
            raise NetworkError("request timed out", cause=e) from e
        except httpx.HTTPError as e:
            raise NetworkError("failed to read response", cause=e) from e
        finally:
            await response.aclose()

        if self.tracer.enabled:
            self.tracer.trace(ResponseReceived(
                status_code=response.status_code,
                reason=response.reason_phrase,
                elapsed_s=time.monotonic() - start,
                body=body,
            ))
        return response, body

    async def _wait_before_retry(
        self,
        state: RetryState,
        server_hint: Optional[float],
        cancel: Optional[asyncio.Event],
        deadline: Optional[float],
    ) -> None:
        """Sleeps out the backoff for the next attempt and advances the state."""
        wait = self.backoff.compute(state.attempt, server_hint)
        if self.tracer.enabled:
            self.tracer.trace(RetryScheduled(
                wait_s=wait,
                attempt_number=state.attempt + 1,
                max_attempts=self.backoff.max_attempts,
                server_hint_s=server_hint,
            ))
        logger.info(
            f"Rate limited, retrying in {wait:.2f}s (attempt {state.attempt + 1}/{self.backoff.max_attempts})"
        )
        try:
            await self._race(asyncio.sleep(wait), cancel, deadline)
        except CallCancelled as e:
            raise NetworkError("request cancelled", cause=e) from e
        except TimeoutError as e:
            raise NetworkError("request timed out", cause=e) from e
        state.attempt += 1
        state.total_wait += wait

    async def _race(
        self,
        awaitable: Awaitable[Any],
        cancel: Optional[asyncio.Event],
        deadline: Optional[float],
    ) -> Any:
        """Awaits ``awaitable`` unless the cancel event or the deadline comes first.

        The losing side is cancelled and awaited before returning.

        Raises:
            CallCancelled: The cancel event was set first.
            TimeoutError: The deadline passed first.
        """
        if cancel is None and deadline is None:
            return await awaitable

        if cancel is not None and cancel.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CallCancelled("cancelled by caller")

        loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(awaitable)
        waiters = {task}
        cancel_waiter = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)
        timeout = None if deadline is None else max(0.0, deadline - loop.time())

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        if task in done:
            return task.result()
        await _release_orphaned_response(task)
        if cancel_waiter is not None and cancel_waiter in done:
            raise CallCancelled("cancelled by caller")
        raise TimeoutError("deadline exceeded")

    def _decode(self, request: RequestDescriptor, body: bytes) -> Any:
        if request.decode is None:
            return None
        try:
            document = json.loads(body)
            return request.decode(document)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise GeneralError("failed to parse response", cause=e) from e


async def _release_orphaned_response(task: "asyncio.Future[Any]") -> None:
    """Closes a response that arrived after the call was already abandoned."""
    if not task.done() or task.cancelled() or task.exception() is not None:
        return
    result = task.result()
    if isinstance(result, httpx.Response):
        logger.debug("Closing response that completed after cancellation")
        await result.aclose()


def encode_body(payload: Any) -> Optional[bytes]:
    """Serializes a JSON request body once, so every attempt sends the same bytes."""
    if payload is None:
        return None
    try:
        return json.dumps(payload).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise GeneralError("failed to encode request", cause=e) from e
