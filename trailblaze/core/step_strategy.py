"""Step strategies: how many tool calls run per LLM turn.

A ``DirectionStep`` runs with ``SingleToolStrategy``: one tool call per
turn, and a turn without a tool call forces a tool call on the next
request.  A ``VerificationStep`` runs with ``MultipleToolStrategy``:
every tool call of the response is executed against the same screen
snapshot, which lets the model check several assertions at once.

Instead of mutable flags on a shared helper, each strategy returns a
frozen ``TurnDirective`` that the agent runner threads into the next
request.

Typical usage::

    strategy = strategy_for(step)
    directive = strategy.process_tool_messages(
        response, step_status, executor, directive, trace_id,
    )
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from trailblaze.core.tool_executor import ToolExecutionOutcome, ToolExecutor
from trailblaze.models.llm import LlmResponse, LlmToolCall
from trailblaze.models.prompt_step import PromptStep, VerificationStep
from trailblaze.models.step_status import PromptStepStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnDirective:
    """Per-turn instructions computed from the previous turn.

    Attributes:
        require_tool_call: The next request must force a tool call,
            because the model answered with free text only.
        require_status_update: A tool just succeeded; the reminder asks
            the model to report the objective status or act again.
    """

    require_tool_call: bool = False
    require_status_update: bool = False


INITIAL_DIRECTIVE = TurnDirective()


class StepStrategy(ABC):
    """Turns one LLM response into tool executions and a next directive."""

    @abstractmethod
    def process_tool_messages(
        self,
        response: LlmResponse,
        step_status: PromptStepStatus,
        executor: ToolExecutor,
        directive: TurnDirective,
        trace_id: str | None = None,
    ) -> TurnDirective:
        """Execute the response's tool calls and record their results.

        Args:
            response: The model response.
            step_status: Status of the running objective.  Results are
                appended to its chat history.
            executor: Executes individual tool calls.
            directive: The directive used for this turn's request.
            trace_id: Trace identifier of the current LLM turn.

        Returns:
            The directive for the next request.
        """

    @staticmethod
    def _execute_and_record(
        call: LlmToolCall,
        response_text: str | None,
        step_status: PromptStepStatus,
        executor: ToolExecutor,
        trace_id: str | None,
    ) -> ToolExecutionOutcome:
        outcome = executor.execute_tool_call(call, step_status, trace_id)
        step_status.add_completed_tool_call(
            llm_response_content=response_text,
            tool_name=call.name,
            tool_args=call.arguments,
            result=outcome.result,
        )
        return outcome

    @staticmethod
    def _next_status_update(
        outcome: ToolExecutionOutcome,
        previous: bool,
    ) -> bool:
        if outcome.is_status_tool:
            return False
        if outcome.result.is_success:
            return True
        return previous


class SingleToolStrategy(StepStrategy):
    """Executes at most one tool call per turn."""

    def process_tool_messages(
        self,
        response: LlmResponse,
        step_status: PromptStepStatus,
        executor: ToolExecutor,
        directive: TurnDirective,
        trace_id: str | None = None,
    ) -> TurnDirective:
        # The forced call of this turn has been consumed.
        require_status_update = directive.require_status_update

        if not response.tool_calls:
            logger.info("no tool call in response, forcing one next turn")
            step_status.add_empty_tool_call(response.text)
            return TurnDirective(
                require_tool_call=True,
                require_status_update=require_status_update,
            )

        if len(response.tool_calls) > 1:
            logger.warning(
                "single-tool step received %d tool calls, ignoring %s",
                len(response.tool_calls),
                [c.name for c in response.tool_calls[1:]],
            )

        outcome = self._execute_and_record(
            response.tool_calls[0], response.text, step_status, executor, trace_id,
        )
        return TurnDirective(
            require_tool_call=False,
            require_status_update=self._next_status_update(
                outcome, require_status_update,
            ),
        )

    def __repr__(self) -> str:
        return "SingleToolStrategy()"


class MultipleToolStrategy(StepStrategy):
    """Executes every tool call of a turn, in order.

    A forced tool call is never requested: verification steps treat it
    as a no-op.
    """

    def process_tool_messages(
        self,
        response: LlmResponse,
        step_status: PromptStepStatus,
        executor: ToolExecutor,
        directive: TurnDirective,
        trace_id: str | None = None,
    ) -> TurnDirective:
        require_status_update = directive.require_status_update

        if not response.tool_calls:
            step_status.add_empty_tool_call(response.text)
            return TurnDirective(require_status_update=require_status_update)

        for index, call in enumerate(response.tool_calls):
            if step_status.is_finished():
                logger.info(
                    "objective finished, skipping %d remaining tool calls",
                    len(response.tool_calls) - index,
                )
                break
            # The response text belongs to the first call only.
            outcome = self._execute_and_record(
                call,
                response.text if index == 0 else None,
                step_status,
                executor,
                trace_id,
            )
            require_status_update = self._next_status_update(
                outcome, require_status_update,
            )

        return TurnDirective(require_status_update=require_status_update)

    def __repr__(self) -> str:
        return "MultipleToolStrategy()"


def strategy_for(step: PromptStep) -> StepStrategy:
    """Return the strategy for a step kind."""
    if isinstance(step, VerificationStep):
        return MultipleToolStrategy()
    return SingleToolStrategy()
