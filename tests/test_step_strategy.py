"""Unit tests for trailblaze.core.step_strategy.

Uses a MockExecutor that returns pre-loaded results and applies
objective-status effects the way the real executor does.
"""

from __future__ import annotations

from trailblaze.core.step_strategy import (
    MultipleToolStrategy,
    SingleToolStrategy,
    TurnDirective,
    strategy_for,
)
from trailblaze.core.tool_executor import ToolExecutionOutcome
from trailblaze.core.tools import ObjectiveStatusTool, PressBackTool
from trailblaze.models.llm import LlmResponse, LlmToolCall
from trailblaze.models.prompt_step import DirectionStep, VerificationStep
from trailblaze.models.step_status import PromptStepStatus
from trailblaze.models.tool_result import (
    EmptyToolCall,
    Success,
    UnknownTool,
)
from trailblaze.models.view_hierarchy import ScreenState, ViewHierarchyNode

# ------------------------------------------------------------------
# Test doubles
# ------------------------------------------------------------------


class MockExecutor:
    """Test double for ToolExecutor.

    ``objectiveStatus`` calls apply their status to the step; names in
    ``unknown`` yield ``UnknownTool``; everything else succeeds.
    """

    def __init__(self, unknown: tuple[str, ...] = ()) -> None:
        self.calls: list[str] = []
        self.unknown = unknown

    def execute_tool_call(self, call, step_status, trace_id=None):
        self.calls.append(call.name)
        if call.name == "objectiveStatus":
            status = call.arguments["status"]
            if status == "completed":
                step_status.mark_as_complete()
            elif status == "failed":
                step_status.mark_as_failed(call.arguments.get("explanation", ""))
            tool = ObjectiveStatusTool("d", "e", status)
            return ToolExecutionOutcome(tool, Success())
        if call.name in self.unknown:
            return ToolExecutionOutcome(None, UnknownTool(call.name))
        return ToolExecutionOutcome(PressBackTool(), Success())


def _make_step_status(step=None) -> PromptStepStatus:
    return PromptStepStatus(
        prompt_step=step or DirectionStep("Go back"),
        screen_state_provider=lambda: ScreenState(
            ViewHierarchyNode(node_id=1), 100, 100,
        ),
    )


def _status(value: str) -> LlmToolCall:
    return LlmToolCall(
        "objectiveStatus",
        {"description": "d", "explanation": "e", "status": value},
    )


class TestStrategyFor:
    def test_direction_is_single(self) -> None:
        assert isinstance(strategy_for(DirectionStep("x")), SingleToolStrategy)

    def test_verification_is_multiple(self) -> None:
        assert isinstance(strategy_for(VerificationStep("x")), MultipleToolStrategy)


class TestSingleToolStrategy:
    def setup_method(self) -> None:
        self.strategy = SingleToolStrategy()
        self.executor = MockExecutor()
        self.step_status = _make_step_status()

    def _process(self, response: LlmResponse, directive: TurnDirective) -> TurnDirective:
        return self.strategy.process_tool_messages(
            response, self.step_status, self.executor, directive, "llm-1",
        )

    def test_free_text_forces_tool_call(self) -> None:
        directive = self._process(LlmResponse(text="I will tap"), TurnDirective())
        assert directive.require_tool_call
        entry = self.step_status.chat_history[-1]
        assert entry.content == "I will tap"
        assert isinstance(entry.tool_result, EmptyToolCall)

    def test_tool_call_clears_forced_call(self) -> None:
        directive = self._process(
            LlmResponse(tool_calls=[LlmToolCall("pressBack")]),
            TurnDirective(require_tool_call=True),
        )
        assert not directive.require_tool_call

    def test_successful_tool_requests_status_update(self) -> None:
        directive = self._process(
            LlmResponse(tool_calls=[LlmToolCall("pressBack")]), TurnDirective(),
        )
        assert directive.require_status_update

    def test_status_tool_clears_status_update(self) -> None:
        directive = self._process(
            LlmResponse(tool_calls=[_status("in_progress")]),
            TurnDirective(require_status_update=True),
        )
        assert not directive.require_status_update

    def test_only_first_call_executes(self) -> None:
        self._process(
            LlmResponse(tool_calls=[LlmToolCall("pressBack"), _status("completed")]),
            TurnDirective(),
        )
        assert self.executor.calls == ["pressBack"]
        assert len(self.step_status.chat_history) == 1
        assert not self.step_status.is_finished()

    def test_history_records_call_and_result(self) -> None:
        self._process(
            LlmResponse(text="Going back", tool_calls=[LlmToolCall("pressBack", {})]),
            TurnDirective(),
        )
        entry = self.step_status.chat_history[0]
        assert entry.content == "Going back"
        assert entry.tool_name == "pressBack"
        assert entry.tool_result == Success()

    def test_completed_status_finishes_step(self) -> None:
        self._process(LlmResponse(tool_calls=[_status("completed")]), TurnDirective())
        assert self.step_status.is_finished()


class TestMultipleToolStrategy:
    def setup_method(self) -> None:
        self.strategy = MultipleToolStrategy()
        self.step_status = _make_step_status(VerificationStep("Total is shown"))

    def test_executes_all_calls_in_order(self) -> None:
        executor = MockExecutor(unknown=("bogus",))
        self.strategy.process_tool_messages(
            LlmResponse(
                tool_calls=[
                    LlmToolCall("assertVisibleWithText", {"text": "Total"}),
                    LlmToolCall("bogus"),
                    _status("completed"),
                ]
            ),
            self.step_status,
            executor,
            TurnDirective(),
        )
        assert executor.calls == ["assertVisibleWithText", "bogus", "objectiveStatus"]
        results = [e.tool_result for e in self.step_status.chat_history]
        assert results[0] == Success()
        assert isinstance(results[1], UnknownTool)
        assert results[2] == Success()
        assert self.step_status.is_finished()

    def test_stops_after_terminal_status(self) -> None:
        executor = MockExecutor()
        self.strategy.process_tool_messages(
            LlmResponse(tool_calls=[_status("failed"), LlmToolCall("wait")]),
            self.step_status,
            executor,
            TurnDirective(),
        )
        assert executor.calls == ["objectiveStatus"]

    def test_response_text_recorded_on_first_entry_only(self) -> None:
        self.strategy.process_tool_messages(
            LlmResponse(
                text="Checking the total",
                tool_calls=[
                    LlmToolCall("assertVisibleWithText", {"text": "Total"}),
                    LlmToolCall("wait"),
                ],
            ),
            self.step_status,
            MockExecutor(),
            TurnDirective(),
        )
        contents = [e.content for e in self.step_status.chat_history]
        assert contents == ["Checking the total", None]

    def test_never_forces_tool_call(self) -> None:
        directive = self.strategy.process_tool_messages(
            LlmResponse(text="Looks fine"),
            self.step_status,
            MockExecutor(),
            TurnDirective(),
        )
        assert not directive.require_tool_call
        assert isinstance(self.step_status.chat_history[0].tool_result, EmptyToolCall)
