"""Structured log events emitted while an objective runs.

Every objective produces one ``ObjectiveStartLog``, one ``LlmRequestLog``
per LLM round trip, one ``ToolExecutedLog`` per executed tool, and one
``ObjectiveCompleteLog`` when it reaches a terminal status reported by
the model.  The ``TrailblazeLogger`` stamps session ids and timestamps.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TraceOrigin(Enum):
    """Which component started a traced operation."""

    LLM = "llm"
    TOOL = "tool"


def generate_trace_id(origin: TraceOrigin = TraceOrigin.LLM) -> str:
    """Return a fresh trace identifier such as ``llm-3f2a...``."""
    return f"{origin.value}-{uuid.uuid4().hex}"


class LogEventType(Enum):
    """Classification of structured log events.

    Attributes:
        OBJECTIVE_START: An objective began executing.
        LLM_REQUEST: One LLM round trip completed.
        TOOL_EXECUTED: A tool call was executed.
        OBJECTIVE_COMPLETE: An objective reached a reported terminal
            status.
    """

    OBJECTIVE_START = "objective_start"
    LLM_REQUEST = "llm_request"
    TOOL_EXECUTED = "tool_executed"
    OBJECTIVE_COMPLETE = "objective_complete"


@dataclass
class TrailblazeLogEvent:
    """Base for every structured event.

    Attributes:
        session_id: Logger session the event belongs to.
        timestamp: Unix timestamp when the event was emitted.
    """

    session_id: str
    timestamp: float

    @property
    def event_type(self) -> LogEventType:
        raise NotImplementedError


@dataclass
class ObjectiveStartLog(TrailblazeLogEvent):
    prompt: str = ""
    step_type: str = ""

    @property
    def event_type(self) -> LogEventType:
        return LogEventType.OBJECTIVE_START


@dataclass
class LlmRequestLog(TrailblazeLogEvent):
    """One LLM round trip.

    Attributes:
        trace_id: Trace identifier shared with the tool logs of the turn.
        step: 1-based iteration number within the objective.
        model_id: Model that served the request.
        request_messages: The messages sent, as plain dicts.
        tool_names: Names of the tools offered to the model.
        tool_choice: ``"auto"`` or ``"required"``.
        response_text: Free text of the response.
        response_tool_calls: Tool calls of the response, as plain dicts.
        duration_ms: Round-trip time, retries included.
    """

    trace_id: str = ""
    step: int = 0
    model_id: str = ""
    request_messages: list[dict[str, Any]] = field(default_factory=list)
    tool_names: list[str] = field(default_factory=list)
    tool_choice: str = ""
    response_text: str | None = None
    response_tool_calls: list[dict[str, Any]] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def event_type(self) -> LogEventType:
        return LogEventType.LLM_REQUEST


@dataclass
class ToolExecutedLog(TrailblazeLogEvent):
    trace_id: str = ""
    tool_name: str = ""
    tool_args: dict[str, Any] = field(default_factory=dict)
    successful: bool = False
    result_text: str = ""
    duration_ms: float = 0.0

    @property
    def event_type(self) -> LogEventType:
        return LogEventType.TOOL_EXECUTED


@dataclass
class ObjectiveCompleteLog(TrailblazeLogEvent):
    prompt: str = ""
    status: str = ""
    call_count: int = 0
    total_duration_ms: int = 0

    @property
    def event_type(self) -> LogEventType:
        return LogEventType.OBJECTIVE_COMPLETE
