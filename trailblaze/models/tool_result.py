"""Tool results: the single channel for every tool outcome.

Every tool call the LLM makes ends in exactly one ``ToolResult``.  The
result is appended to the step's chat history so the model can
self-correct on the next turn; device-layer exceptions are converted
into ``ExceptionThrown`` rather than propagated.
"""

from __future__ import annotations

import json
import traceback
from dataclasses import dataclass, field
from typing import Any


class ToolResult:
    """Base class for tool outcomes.  Use the concrete subclasses."""

    @property
    def is_success(self) -> bool:
        return False

    def to_history_text(self) -> str:
        """Render the result the way it is shown to the LLM."""
        raise NotImplementedError


@dataclass(frozen=True)
class Success(ToolResult):
    """The tool completed."""

    @property
    def is_success(self) -> bool:
        return True

    def to_history_text(self) -> str:
        return "Success"


class ToolError(ToolResult):
    """Base class for every error outcome."""

    @property
    def error_message(self) -> str:
        raise NotImplementedError

    def to_history_text(self) -> str:
        return f"Error ({type(self).__name__}): {self.error_message}"


@dataclass(frozen=True)
class UnknownTool(ToolError):
    """The LLM called a tool that is not registered, or sent arguments
    that could not be decoded into the tool."""

    function_name: str
    function_args: dict[str, Any] = field(default_factory=dict)
    reason: str = ""

    @property
    def error_message(self) -> str:
        message = (
            f"Unknown tool call provided: {self.function_name} "
            f"with args: {json.dumps(self.function_args, sort_keys=True)}"
        )
        if self.reason:
            message += f" ({self.reason})"
        return message


@dataclass(frozen=True)
class EmptyToolCall(ToolError):
    """The LLM answered with free text and no tool call."""

    @property
    def error_message(self) -> str:
        return (
            "No tool call provided, this is an error.\n"
            "Please always provide a tool call that will help complete "
            "the task."
        )


@dataclass(frozen=True)
class ExceptionThrown(ToolError):
    """Executing the tool raised an exception.

    Attributes:
        message: The exception message.
        tool_name: Name of the tool that was executing, if known.
        stack_trace: Formatted traceback of the exception.
    """

    message: str
    tool_name: str | None = None
    stack_trace: str | None = None

    @property
    def error_message(self) -> str:
        return self.message

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        tool_name: str | None = None,
    ) -> ExceptionThrown:
        """Build a result from a caught exception."""
        return cls(
            message=str(exc) or type(exc).__name__,
            tool_name=tool_name,
            stack_trace="".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        )


@dataclass(frozen=True)
class MissingRequiredArgs(ToolError):
    """The tool call omitted one or more required arguments."""

    function_name: str
    function_args: dict[str, Any]
    required_args: tuple[str, ...]
    missing_args: tuple[str, ...] = ()

    @property
    def error_message(self) -> str:
        missing = list(self.missing_args or self.required_args)
        return (
            f"Tool call {self.function_name} is missing required args {missing}. "
            f"Provided args: {json.dumps(self.function_args, sort_keys=True)}. "
            f"Required args: {list(self.required_args)}."
        )


@dataclass(frozen=True)
class CommandValidationError(ToolError):
    """The device rejected a command before running it.

    Attributes:
        message: Why the command was rejected.
        command: The rejected command as a plain dict.
    """

    message: str
    command: dict[str, Any] = field(default_factory=dict)

    @property
    def error_message(self) -> str:
        return self.message


@dataclass(frozen=True)
class UnknownTrailblazeTool(ToolError):
    """A resolved tool carried a value the agent has no mapping for
    (e.g. an unknown objective status)."""

    tool_name: str
    tool_args: dict[str, Any] = field(default_factory=dict)

    @property
    def error_message(self) -> str:
        return (
            f"Unknown custom command {self.tool_name} with args "
            f"{json.dumps(self.tool_args, sort_keys=True)}, ensure there "
            "is a mapping between the custom command and device commands!"
        )
