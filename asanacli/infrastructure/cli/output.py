"""Implements the OutputFormatter interface using the rich library.

stdout carries only machine-readable results; diagnostics and logs go to
stderr.
"""

import logging
from typing import Any, Dict, List, Optional

from rich.console import Console

from asanacli.domain.errors import as_cli_error
from asanacli.domain.interfaces.output import OutputFormatter
from asanacli.domain.models.common import ListResponse
from asanacli.domain.models.resources import Task

logger = logging.getLogger(__name__)

JSON_INDENT = 2
FORMATS = ("json", "brief")


def to_jsonable(value: Any) -> Any:
    """Converts models (anything with ``to_dict``) and containers to plain JSON values."""
    if hasattr(value, "to_dict"):
        return to_jsonable(value.to_dict())
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def error_envelope(error: BaseException) -> Dict[str, Any]:
    """Builds ``{"error": {"message", "code", "exit_code"}}`` for any exception."""
    return {"error": as_cli_error(error).to_dict()}


class JsonOutput(OutputFormatter):
    """Pretty-printed JSON on stdout, two-space indent."""

    def __init__(self, console: Optional[Console] = None):
        # Console() without a file resolves sys.stdout at print time
        self._console = console or Console()

    @property
    def console(self) -> Console:
        return self._console

    def print(self, value: Any) -> None:
        self.print_data(to_jsonable(value))

    def print_error(self, error: BaseException) -> None:
        envelope = error_envelope(error)
        logger.debug(f"Rendering error envelope: {envelope['error']['code']}")
        self.print_data(envelope)

    def print_data(self, data: Any) -> None:
        self._console.print_json(data=data, indent=JSON_INDENT, highlight=False)


class BriefOutput(JsonOutput):
    """One line per task for humans; everything else falls back to JSON."""

    def print(self, value: Any) -> None:
        tasks = self._tasks_of(value)
        if tasks is None:
            super().print(value)
            return
        for task in tasks:
            self._console.print(format_task_line(task), markup=False, highlight=False, soft_wrap=True)

    @staticmethod
    def _tasks_of(value: Any) -> Optional[List[Task]]:
        if isinstance(value, Task):
            return [value]
        if isinstance(value, ListResponse) and value.data and all(isinstance(item, Task) for item in value.data):
            return list(value.data)
        return None


def format_task_line(task: Task) -> str:
    """``<gid>  <name>  (due <date>)``; the due part only when set."""
    line = f"{task.gid}  {task.name}"
    if task.due_on:
        line += f"  (due {task.due_on})"
    return line


def create_formatter(fmt: str = "json", console: Optional[Console] = None) -> OutputFormatter:
    """Returns the formatter registered for ``fmt``.

    Raises:
        ValueError: For an unknown format name.
    """
    name = (fmt or "json").lower()
    if name == "json":
        return JsonOutput(console)
    if name == "brief":
        return BriefOutput(console)
    raise ValueError(f"unknown output format: {fmt!r} (expected one of {', '.join(FORMATS)})")
