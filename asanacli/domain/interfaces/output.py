"""Interface for rendering command results.

Defines the contract for writing successful results and typed errors,
allowing different formats (JSON for agents, brief lines for humans).
"""

import abc
from typing import Any


class OutputFormatter(abc.ABC):
    """Abstract Base Class for command output."""

    @abc.abstractmethod
    def print(self, value: Any) -> None:
        """Renders a successful result.

        Args:
            value: A model (with ``to_dict``), list envelope or plain JSON value.
        """
        pass

    @abc.abstractmethod
    def print_error(self, error: BaseException) -> None:
        """Renders an error as the structured error envelope.

        Args:
            error: Any exception; non-taxonomy errors are shown as GENERAL_ERROR.
        """
        pass
