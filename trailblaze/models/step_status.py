"""Mutable per-objective state owned by the agent runner.

A ``PromptStepStatus`` is created when an objective begins and discarded
once it reaches a terminal status.  Only the single in-flight runner for
that objective mutates it; tool execution reports status changes back
through ``mark_as_complete`` / ``mark_as_failed``.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from trailblaze.models.llm import LlmMessage, MessageRole
from trailblaze.models.prompt_step import PromptStep
from trailblaze.models.task_status import (
    AgentTaskStatus,
    AgentTaskStatusData,
    InProgress,
    ObjectiveComplete,
    ObjectiveFailed,
)
from trailblaze.models.tool_result import EmptyToolCall, ToolResult
from trailblaze.models.view_hierarchy import ScreenState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatHistoryEntry:
    """One completed exchange in the step's chat history.

    Attributes:
        role: Author of the entry.
        content: Free text, e.g. the model's reasoning.
        tool_name: Tool the model called, if any.
        tool_args: Arguments of that call.
        tool_result: Outcome of the call, if any.
    """

    role: MessageRole
    content: str | None = None
    tool_name: str | None = None
    tool_args: dict[str, Any] | None = None
    tool_result: ToolResult | None = None

    def to_messages(self) -> list[LlmMessage]:
        """Render the entry as chat messages.

        A tool call becomes an assistant message describing the call
        followed by a user message carrying the result, so the history
        stays valid for any provider regardless of its tool-use format.
        """
        assistant_lines: list[str] = []
        if self.content:
            assistant_lines.append(self.content)
        if self.tool_name is not None:
            args = json.dumps(self.tool_args or {}, sort_keys=True)
            assistant_lines.append(f"Tool call: {self.tool_name}({args})")

        messages: list[LlmMessage] = []
        if assistant_lines:
            messages.append(LlmMessage(self.role, "\n".join(assistant_lines)))
        if self.tool_result is not None:
            label = self.tool_name or "(no tool)"
            messages.append(
                LlmMessage(
                    MessageRole.USER,
                    f"Tool result for {label}: "
                    f"{self.tool_result.to_history_text()}",
                )
            )
        return messages


@dataclass
class PromptStepStatus:
    """State of one objective execution.

    Attributes:
        prompt_step: The objective being executed.
        screen_state_provider: Callable returning a fresh screen state.
        history_limit: Number of history entries sent to the LLM.
        task_id: Identifier generated at creation.
        task_created_timestamp: Unix timestamp of creation.
        current_step: Completed LLM round trips.
        chat_history: Authoritative, append-only history.
        current_screen_state: Latest snapshot, refreshed by
            ``prepare_next_step``.
    """

    prompt_step: PromptStep
    screen_state_provider: Callable[[], ScreenState]
    history_limit: int = 10
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    task_created_timestamp: float = field(default_factory=time.time)
    current_step: int = 0
    chat_history: list[ChatHistoryEntry] = field(default_factory=list)
    current_screen_state: ScreenState | None = None

    def __post_init__(self) -> None:
        """Start in ``InProgress``."""
        self._current_status: AgentTaskStatus = InProgress(self.status_data())

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def current_status(self) -> AgentTaskStatus:
        return self._current_status

    def is_finished(self) -> bool:
        """Return True once a terminal status has been set."""
        return self._current_status.is_terminal

    def mark_as_complete(self) -> None:
        """Set the terminal ``ObjectiveComplete`` status (write-once)."""
        if self._guard_terminal("complete"):
            self._current_status = ObjectiveComplete(self.status_data())

    def mark_as_failed(self, reason: str = "") -> None:
        """Set the terminal ``ObjectiveFailed`` status (write-once)."""
        if self._guard_terminal("failed"):
            self._current_status = ObjectiveFailed(
                self.status_data(), reason=reason,
            )

    def status_data(self, call_count: int | None = None) -> AgentTaskStatusData:
        """Snapshot the bookkeeping for a status value.

        Args:
            call_count: Overrides the reported call count.  Defaults to
                ``current_step``.
        """
        elapsed_ms = int((time.time() - self.task_created_timestamp) * 1000)
        return AgentTaskStatusData(
            task_id=self.task_id,
            prompt=self.prompt_step.prompt,
            call_count=self.current_step if call_count is None else call_count,
            task_start_time=self.task_created_timestamp,
            total_duration_ms=elapsed_ms,
        )

    # ------------------------------------------------------------------
    # Loop bookkeeping
    # ------------------------------------------------------------------

    def prepare_next_step(self) -> ScreenState:
        """Refresh ``current_screen_state`` before building a request."""
        self.current_screen_state = self.screen_state_provider()
        return self.current_screen_state

    def complete_round_trip(self) -> int:
        """Count one finished request/response/tool-execution cycle."""
        self.current_step += 1
        return self.current_step

    # ------------------------------------------------------------------
    # Chat history
    # ------------------------------------------------------------------

    def add_completed_tool_call(
        self,
        llm_response_content: str | None,
        tool_name: str,
        tool_args: dict[str, Any],
        result: ToolResult,
    ) -> None:
        """Append a tool call and its result to the history."""
        self.chat_history.append(
            ChatHistoryEntry(
                role=MessageRole.ASSISTANT,
                content=llm_response_content,
                tool_name=tool_name,
                tool_args=dict(tool_args),
                tool_result=result,
            )
        )

    def add_empty_tool_call(self, llm_response_content: str | None) -> None:
        """Record a turn where the model answered without a tool call."""
        self.chat_history.append(
            ChatHistoryEntry(
                role=MessageRole.ASSISTANT,
                content=llm_response_content,
                tool_result=EmptyToolCall(),
            )
        )

    def get_limited_history(self) -> list[LlmMessage]:
        """Return the most recent history entries as chat messages."""
        if self.history_limit <= 0:
            return []
        messages: list[LlmMessage] = []
        for entry in self.chat_history[-self.history_limit:]:
            messages.extend(entry.to_messages())
        return messages

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _guard_terminal(self, requested: str) -> bool:
        if self.is_finished():
            logger.warning(
                "task %s: ignoring mark-%s, already %s",
                self.task_id,
                requested,
                type(self._current_status).__name__,
            )
            return False
        return True
