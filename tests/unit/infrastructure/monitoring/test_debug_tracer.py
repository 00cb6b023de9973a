import io
from unittest.mock import MagicMock

from asanacli.domain.events.api_events import RequestPrepared, ResponseReceived, RetryScheduled
from asanacli.infrastructure.monitoring.debug_tracer import DebugTracer, redact_token, truncate_body


def test_redact_long_token():
    assert redact_token("abcdefghijklmnopqrst") == "abcdefgh..."


def test_short_token_is_shown_unchanged():
    assert redact_token("abcd") == "abcd"
    assert redact_token("abcdefgh") == "abcdefgh"


def test_truncate_body():
    body = b"a" * 600
    assert truncate_body(body) == "a" * 500 + "..."
    assert truncate_body(b"short") == "short"
    assert truncate_body(None) == ""


def test_request_and_response_lines():
    sink = io.StringIO()
    tracer = DebugTracer(sink)

    tracer.trace(RequestPrepared(
        method="POST",
        url="https://app.asana.com/api/1.0/tasks",
        token_preview=redact_token("0/123456789abcdef"),
        body=b'{"data": {}}',
    ))
    tracer.trace(ResponseReceived(status_code=201, reason="Created", elapsed_s=0.25, body=b'{"data": {"gid": "1"}}'))

    assert sink.getvalue().splitlines() == [
        "[DEBUG] POST https://app.asana.com/api/1.0/tasks",
        "[DEBUG] Authorization: Bearer 0/123456...",
        '[DEBUG] Request Body: {"data": {}}',
        "[DEBUG] Response: 201 Created (250.0ms)",
        '[DEBUG] Body: {"data": {"gid": "1"}}',
    ]


def test_get_request_has_no_body_line():
    tracer = DebugTracer(io.StringIO())
    lines = tracer.render(RequestPrepared(method="GET", url="https://x/users/me", token_preview="abc"))
    assert lines == ["GET https://x/users/me", "Authorization: Bearer abc"]


def test_retry_line():
    tracer = DebugTracer(io.StringIO())
    lines = tracer.render(RetryScheduled(wait_s=1.234, attempt_number=2, max_attempts=3))
    assert lines == ["Rate limited, retrying in 1.23s (attempt 2/3)"]


def test_disabled_tracer_writes_nothing():
    sink = io.StringIO()
    DebugTracer(sink, enabled=False).trace(RetryScheduled(wait_s=1, attempt_number=1, max_attempts=3))
    assert sink.getvalue() == ""
    assert DebugTracer(None).enabled is False


def test_sink_failure_does_not_raise():
    sink = MagicMock()
    sink.write.side_effect = OSError("broken pipe")
    DebugTracer(sink).trace(RetryScheduled(wait_s=1, attempt_number=1, max_attempts=3))
    sink.write.assert_called_once()
