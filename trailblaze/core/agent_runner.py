"""Agent runner: the step-execution loop for one prompt step.

Each iteration refreshes the screen state, builds the next request,
calls the LLM through the gateway, lets the step strategy execute the
returned tool calls, and counts the round trip.  The loop ends when the
model reports a terminal objective status or when the step ceiling is
reached.

The runner is synchronous, like the rest of the core: every device and
LLM call blocks until it completes.

Typical usage::

    runner = AgentRunner(gateway, device, settings)
    status = runner.run(DirectionStep("Log in as the demo user"))
    if not status.is_success:
        print(type(status).__name__)
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable

from trailblaze.config.settings import Settings
from trailblaze.core.agent_memory import AgentMemory
from trailblaze.core.device_agent import DeviceAgent
from trailblaze.core.llm_gateway import LlmGateway
from trailblaze.core.request_builder import RequestBuilder
from trailblaze.core.run_logger import TrailblazeLogger
from trailblaze.core.scroll_controller import ScrollUntilVisibleController
from trailblaze.core.step_strategy import INITIAL_DIRECTIVE, strategy_for
from trailblaze.core.tool_executor import ToolExecutor
from trailblaze.core.tools import (
    ToolRegistry,
    direction_tool_registry,
    verification_tool_registry,
)
from trailblaze.device.interface import DeviceCommandExecutor, ScreenStateProvider
from trailblaze.models.events import TraceOrigin, generate_trace_id
from trailblaze.models.llm import LlmRequest, ToolChoice
from trailblaze.models.prompt_step import PromptStep, VerificationStep
from trailblaze.models.step_status import PromptStepStatus
from trailblaze.models.task_status import AgentTaskStatus, MaxCallsLimitReached

logger = logging.getLogger(__name__)


class AgentRunner:
    """Drives prompt steps to a terminal status.

    Args:
        gateway: LLM gateway used for every request.
        device: Device the tools act upon.
        settings: Step ceiling, history limit, and scroll tunables.
        run_logger: Receives structured events.  A fresh logger is
            created when omitted.
        screen_state_provider: Source of screen snapshots.  Defaults to
            ``device.screen_state``.
        clock: Monotonic clock in seconds, used for durations and the
            scroll timeout.
    """

    def __init__(
        self,
        gateway: LlmGateway,
        device: DeviceCommandExecutor,
        settings: Settings,
        run_logger: TrailblazeLogger | None = None,
        screen_state_provider: ScreenStateProvider | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gateway = gateway
        self._device = device
        self._settings = settings
        self._run_logger = run_logger or TrailblazeLogger()
        self._screen_state_provider = screen_state_provider or device.screen_state
        self._clock = clock
        self._request_builder = RequestBuilder(gateway.model)
        scroll_controller = ScrollUntilVisibleController(
            device, self._screen_state_provider, settings, clock=clock,
        )
        self._device_agent = DeviceAgent(device, scroll_controller)

    @property
    def run_logger(self) -> TrailblazeLogger:
        return self._run_logger

    @property
    def memory(self) -> AgentMemory:
        """Variables remembered by memory tools; kept across ``run`` calls."""
        return self._device_agent.memory

    def append_to_system_prompt(self, context: str) -> None:
        """Add context to the system prompt of every later request."""
        self._request_builder.append_to_system_prompt(context)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        prompt_step: PromptStep,
        step_status: PromptStepStatus | None = None,
    ) -> AgentTaskStatus:
        """Run *prompt_step* until it reaches a terminal status.

        Args:
            prompt_step: The objective to execute.
            step_status: Existing status to continue.  A new one is
                created when omitted.  An already terminal status is
                returned as is.

        Returns:
            ``ObjectiveComplete`` or ``ObjectiveFailed`` as reported by
            the model, or ``MaxCallsLimitReached`` once ``max_steps``
            round trips have been used.

        Raises:
            Exception: The last LLM transport error, once the gateway
                has exhausted its attempts.
        """
        if step_status is None:
            step_status = PromptStepStatus(
                prompt_step=prompt_step,
                screen_state_provider=self._screen_state_provider,
                history_limit=self._settings.chat_history_limit,
            )
        if step_status.is_finished():
            logger.warning(
                "objective already finished with %s, not running it again",
                type(step_status.current_status).__name__,
            )
            return step_status.current_status

        registry = self._registry_for(prompt_step)
        executor = ToolExecutor(
            registry, self._device_agent, self._run_logger, clock=self._clock,
        )
        strategy = strategy_for(prompt_step)
        tools = registry.descriptors()
        max_steps = self._settings.max_steps
        directive = INITIAL_DIRECTIVE

        logger.info(
            "running %s with %s (max %d steps)",
            type(prompt_step).__name__,
            strategy,
            max_steps,
        )
        self._run_logger.log_objective_start(prompt_step)

        while True:
            step_status.prepare_next_step()
            messages = self._request_builder.build(step_status, directive)
            tool_choice = (
                ToolChoice.REQUIRED
                if directive.require_tool_call
                else ToolChoice.AUTO
            )
            request = LlmRequest(messages, tools, tool_choice)
            trace_id = generate_trace_id(TraceOrigin.LLM)

            started = self._clock()
            response = self._gateway.call(request)
            self._run_logger.log_llm_request(
                request=request,
                response=response,
                step_status=step_status,
                model_id=self._gateway.model.model_id,
                trace_id=trace_id,
                duration_ms=(self._clock() - started) * 1000,
            )

            directive = strategy.process_tool_messages(
                response, step_status, executor, directive, trace_id,
            )
            step_status.complete_round_trip()

            if step_status.is_finished():
                self._run_logger.log_objective_complete(step_status)
                # Restamp so the call count includes the final round trip.
                return dataclasses.replace(
                    step_status.current_status,
                    data=step_status.status_data(),
                )
            if step_status.current_step >= max_steps:
                logger.warning(
                    "objective not finished after %d steps: %s",
                    max_steps,
                    prompt_step.prompt,
                )
                return MaxCallsLimitReached(
                    step_status.status_data(call_count=max_steps)
                )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _registry_for(prompt_step: PromptStep) -> ToolRegistry:
        if isinstance(prompt_step, VerificationStep):
            return verification_tool_registry()
        return direction_tool_registry()

    def __repr__(self) -> str:
        return (
            f"AgentRunner(model={self._gateway.model.model_id}, "
            f"max_steps={self._settings.max_steps})"
        )
