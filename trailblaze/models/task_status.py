"""Objective status values returned by the agent runner.

``InProgress`` is the only non-terminal status.  Every status carries an
``AgentTaskStatusData`` snapshot so callers can report how long the
objective ran and how many LLM calls it used.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AgentTaskStatusData:
    """Bookkeeping shared by every status.

    Attributes:
        task_id: Identifier of the objective execution.
        prompt: The objective text.
        call_count: LLM round trips consumed.
        task_start_time: Unix timestamp when the objective began.
        total_duration_ms: Wall-clock time since ``task_start_time``.
    """

    task_id: str
    prompt: str
    call_count: int
    task_start_time: float
    total_duration_ms: int


@dataclass(frozen=True)
class AgentTaskStatus:
    """Base class for objective statuses.  Use the concrete subclasses."""

    data: AgentTaskStatusData

    @property
    def is_terminal(self) -> bool:
        return True

    @property
    def is_success(self) -> bool:
        return False


@dataclass(frozen=True)
class InProgress(AgentTaskStatus):
    """The objective is still being worked on."""

    @property
    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True)
class ObjectiveComplete(AgentTaskStatus):
    """The LLM reported the objective as completed."""

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class ObjectiveFailed(AgentTaskStatus):
    """The LLM reported the objective as failed.

    Attributes:
        reason: The model's explanation, if it gave one.
    """

    reason: str = ""


@dataclass(frozen=True)
class MaxCallsLimitReached(AgentTaskStatus):
    """The step ceiling was hit before a terminal status was reported."""
