"""Structured run logger: records the audit trail of every objective.

The ``TrailblazeLogger`` keeps the structured events of the current
session in memory, writes one line per event to the standard ``logging``
hierarchy, and forwards events to any registered sink (for example a
report writer).  Logging is fire-and-forget: a failing sink is logged
and skipped, never allowed to abort the agent loop.

Typical usage::

    run_logger = TrailblazeLogger()
    run_logger.add_sink(lambda event: print(event.event_type))
    runner = AgentRunner(..., run_logger=run_logger)
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from trailblaze.models.events import (
    LlmRequestLog,
    ObjectiveCompleteLog,
    ObjectiveStartLog,
    ToolExecutedLog,
    TrailblazeLogEvent,
)
from trailblaze.models.llm import LlmRequest, LlmResponse
from trailblaze.models.prompt_step import PromptStep
from trailblaze.models.step_status import PromptStepStatus
from trailblaze.models.tool_result import ToolResult

logger = logging.getLogger(__name__)

EventSink = Callable[[TrailblazeLogEvent], None]


class TrailblazeLogger:
    """Collects structured events for one logging session.

    Args:
        session_id: Identifier stamped on every event.  A random one is
            generated when omitted.
        clock: Returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        session_id: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session_id = session_id or uuid.uuid4().hex
        self._clock = clock
        self._events: list[TrailblazeLogEvent] = []
        self._sinks: list[EventSink] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def events(self) -> list[TrailblazeLogEvent]:
        """Events logged so far, oldest first (a copy)."""
        return list(self._events)

    def add_sink(self, sink: EventSink) -> None:
        """Register a callable that receives every future event."""
        self._sinks.append(sink)

    def log(self, event: TrailblazeLogEvent) -> None:
        """Record an event and forward it to every sink."""
        self._events.append(event)
        logger.info(
            "[%s] %s",
            event.event_type.value,
            _summarize(event),
        )
        for sink in self._sinks:
            try:
                sink(event)
            except Exception as exc:
                logger.error(
                    "log sink %r failed on %s: %s",
                    sink,
                    event.event_type.value,
                    exc,
                )

    # ------------------------------------------------------------------
    # Event builders
    # ------------------------------------------------------------------

    def log_objective_start(self, prompt_step: PromptStep) -> None:
        self.log(
            ObjectiveStartLog(
                session_id=self._session_id,
                timestamp=self._clock(),
                prompt=prompt_step.prompt,
                step_type=type(prompt_step).__name__,
            )
        )

    def log_llm_request(
        self,
        request: LlmRequest,
        response: LlmResponse,
        step_status: PromptStepStatus,
        model_id: str,
        trace_id: str,
        duration_ms: float,
    ) -> None:
        self.log(
            LlmRequestLog(
                session_id=self._session_id,
                timestamp=self._clock(),
                trace_id=trace_id,
                step=step_status.current_step + 1,
                model_id=model_id,
                request_messages=[
                    {
                        "role": m.role.value,
                        "content": m.content,
                        "images": len(m.images),
                    }
                    for m in request.messages
                ],
                tool_names=[t.name for t in request.tools],
                tool_choice=request.tool_choice.value,
                response_text=response.text,
                response_tool_calls=[
                    {"name": c.name, "arguments": c.arguments}
                    for c in response.tool_calls
                ],
                duration_ms=duration_ms,
            )
        )

    def log_tool_executed(
        self,
        tool_name: str,
        tool_args: dict,
        result: ToolResult,
        trace_id: str,
        duration_ms: float,
    ) -> None:
        self.log(
            ToolExecutedLog(
                session_id=self._session_id,
                timestamp=self._clock(),
                trace_id=trace_id,
                tool_name=tool_name,
                tool_args=dict(tool_args),
                successful=result.is_success,
                result_text=result.to_history_text(),
                duration_ms=duration_ms,
            )
        )

    def log_objective_complete(self, step_status: PromptStepStatus) -> None:
        status = step_status.current_status
        self.log(
            ObjectiveCompleteLog(
                session_id=self._session_id,
                timestamp=self._clock(),
                prompt=step_status.prompt_step.prompt,
                status=type(status).__name__,
                call_count=step_status.current_step,
                total_duration_ms=step_status.status_data().total_duration_ms,
            )
        )

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"TrailblazeLogger(session={self._session_id}, "
            f"events={len(self._events)})"
        )


def _summarize(event: TrailblazeLogEvent) -> str:
    """One-line description of an event for the text log."""
    if isinstance(event, ObjectiveStartLog):
        return f"{event.step_type}: {event.prompt}"
    if isinstance(event, LlmRequestLog):
        calls = ", ".join(c["name"] for c in event.response_tool_calls)
        return (
            f"step {event.step} trace={event.trace_id} "
            f"tool_choice={event.tool_choice} "
            f"calls=[{calls}] {event.duration_ms:.0f} ms"
        )
    if isinstance(event, ToolExecutedLog):
        return f"{event.tool_name} -> {event.result_text}"
    if isinstance(event, ObjectiveCompleteLog):
        return (
            f"{event.status} after {event.call_count} calls: {event.prompt}"
        )
    return type(event).__name__
