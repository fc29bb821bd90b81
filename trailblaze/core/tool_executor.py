"""Tool executor: resolves one model tool call and runs it.

Every outcome is a ``ToolResult``.  Resolution failures become
``UnknownTool`` or ``MissingRequiredArgs``; exceptions raised while the
tool runs (a failed ``adb`` command, an element that never scrolled into
view) become ``ExceptionThrown``.  Nothing escapes to the agent loop, so
the model always sees what went wrong on its next turn.

The objective-status tool is handled here rather than on the device: it
transitions the step status and is acknowledged with ``Success``.

Typical usage::

    executor = ToolExecutor(registry, device_agent, run_logger)
    outcome = executor.execute_tool_call(call, step_status, trace_id)
    step_status.add_completed_tool_call(
        response.text, call.name, call.arguments, outcome.result,
    )
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from trailblaze.core.device_agent import DeviceAgent
from trailblaze.core.run_logger import TrailblazeLogger
from trailblaze.core.tools import (
    MissingRequiredArgsError,
    ObjectiveStatusTool,
    ObjectiveStatusValue,
    ToolRegistry,
    TrailblazeTool,
    UnknownToolError,
)
from trailblaze.models.llm import LlmToolCall
from trailblaze.models.step_status import PromptStepStatus
from trailblaze.models.tool_result import (
    ExceptionThrown,
    MissingRequiredArgs,
    Success,
    ToolResult,
    UnknownTool,
    UnknownTrailblazeTool,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolExecutionOutcome:
    """Result of one tool call.

    Attributes:
        tool: The resolved tool, or ``None`` if resolution failed.
        result: What happened.
    """

    tool: TrailblazeTool | None
    result: ToolResult

    @property
    def is_status_tool(self) -> bool:
        return isinstance(self.tool, ObjectiveStatusTool)


class ToolExecutor:
    """Resolves and executes tool calls for one step.

    Args:
        registry: Tools the step may call.
        device_agent: Runs device-facing tools.
        run_logger: Receives one ``ToolExecutedLog`` per call.
        clock: Monotonic clock in seconds, used for durations.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        device_agent: DeviceAgent,
        run_logger: TrailblazeLogger,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._device_agent = device_agent
        self._run_logger = run_logger
        self._clock = clock

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute_tool_call(
        self,
        call: LlmToolCall,
        step_status: PromptStepStatus,
        trace_id: str | None = None,
    ) -> ToolExecutionOutcome:
        """Resolve and execute *call*.

        Status effects of the objective-status tool are applied to
        *step_status* before this method returns, so callers append the
        result to history after the transition.

        Args:
            call: Tool call emitted by the model.
            step_status: Status of the running objective.
            trace_id: Trace identifier of the current LLM turn.

        Returns:
            The resolved tool (if any) and its result.
        """
        started = self._clock()
        tool: TrailblazeTool | None = None
        try:
            tool = self._registry.resolve(call.name, call.arguments)
        except UnknownToolError as exc:
            logger.warning("unknown tool call %s: %s", call.name, exc.reason)
            result: ToolResult = UnknownTool(
                call.name, dict(call.arguments), exc.reason,
            )
        except MissingRequiredArgsError as exc:
            logger.warning(
                "tool call %s missing args %s", call.name, exc.missing_args,
            )
            result = MissingRequiredArgs(
                call.name,
                dict(call.arguments),
                exc.required_args,
                exc.missing_args,
            )
        else:
            result = self._run(tool, step_status, trace_id)

        self._run_logger.log_tool_executed(
            tool_name=call.name,
            tool_args=call.arguments,
            result=result,
            trace_id=trace_id or "",
            duration_ms=(self._clock() - started) * 1000,
        )
        return ToolExecutionOutcome(tool=tool, result=result)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        tool: TrailblazeTool,
        step_status: PromptStepStatus,
        trace_id: str | None,
    ) -> ToolResult:
        if isinstance(tool, ObjectiveStatusTool):
            return self._apply_objective_status(tool, step_status)
        try:
            return self._device_agent.run_tools(
                [tool], step_status.current_screen_state, trace_id,
            )
        except Exception as exc:
            logger.error("tool %s raised: %s", tool.name, exc)
            return ExceptionThrown.from_exception(exc, tool_name=tool.name)

    @staticmethod
    def _apply_objective_status(
        tool: ObjectiveStatusTool,
        step_status: PromptStepStatus,
    ) -> ToolResult:
        try:
            status = ObjectiveStatusValue(tool.status)
        except ValueError:
            logger.warning("unknown objective status %r", tool.status)
            return UnknownTrailblazeTool(
                tool.name,
                {
                    "description": tool.description_text,
                    "explanation": tool.explanation,
                    "status": tool.status,
                },
            )

        if status == ObjectiveStatusValue.COMPLETED:
            step_status.mark_as_complete()
        elif status == ObjectiveStatusValue.FAILED:
            step_status.mark_as_failed(tool.explanation)
        logger.info(
            "objective status %s: %s", status.value, tool.explanation,
        )
        return Success()

    def __repr__(self) -> str:
        return f"ToolExecutor(registry={self._registry!r})"
