"""Request builder: assembles the chat messages for one LLM turn.

Message order is fixed:

1. System prompt, rendered with the device platform.
2. User objective.
3. Reminder for the step kind (with a status-update variant).
4. The most recent chat history entries.
5. The current view hierarchy, with the screenshot attached when the
   model accepts images.

Typical usage::

    builder = RequestBuilder(model)
    messages = builder.build(step_status, directive)
"""

from __future__ import annotations

import json
import logging

from trailblaze.core import prompts
from trailblaze.core.prompts import render_template
from trailblaze.core.step_strategy import TurnDirective
from trailblaze.models.llm import LlmMessage, LlmModel, MessageRole
from trailblaze.models.prompt_step import PromptStep, VerificationStep
from trailblaze.models.step_status import PromptStepStatus
from trailblaze.models.view_hierarchy import ScreenState

logger = logging.getLogger(__name__)


def reminder_message(step: PromptStep, require_status_update: bool) -> str:
    """Return the reminder text for a step kind."""
    if isinstance(step, VerificationStep):
        if require_status_update:
            return prompts.VERIFICATION_STATUS_UPDATE_REMINDER
        return prompts.VERIFICATION_REMINDER
    if require_status_update:
        return prompts.DIRECTION_STATUS_UPDATE_REMINDER
    return prompts.DIRECTION_REMINDER


class RequestBuilder:
    """Builds the message list for each LLM request.

    Args:
        model: The model the messages are for; decides whether the
            screenshot is attached.
        system_prompt_template: Template with a ``{{device_platform}}``
            placeholder.
        user_objective_template: Template with an ``{{objective}}``
            placeholder.
        user_message_template: Template with a ``{{view_hierarchy}}``
            placeholder.
    """

    def __init__(
        self,
        model: LlmModel,
        system_prompt_template: str = prompts.SYSTEM_PROMPT_TEMPLATE,
        user_objective_template: str = prompts.USER_OBJECTIVE_TEMPLATE,
        user_message_template: str = prompts.USER_MESSAGE_TEMPLATE,
    ) -> None:
        self._model = model
        self._system_prompt_template = system_prompt_template
        self._user_objective_template = user_objective_template
        self._user_message_template = user_message_template

    @property
    def system_prompt_template(self) -> str:
        return self._system_prompt_template

    def append_to_system_prompt(self, context: str) -> None:
        """Append a line of context to the system prompt template."""
        self._system_prompt_template = (
            f"{self._system_prompt_template.rstrip()}\n{context}\n"
        )

    def build(
        self,
        step_status: PromptStepStatus,
        directive: TurnDirective,
    ) -> list[LlmMessage]:
        """Assemble the messages for the next request.

        Args:
            step_status: Running objective; its screen state must have
                been refreshed with ``prepare_next_step``.
            directive: Current turn directive.

        Returns:
            The ordered message list.

        Raises:
            ValueError: If the step has no screen state.
            TemplateRenderError: If a template placeholder is unfilled.
        """
        screen = step_status.current_screen_state
        if screen is None:
            raise ValueError("prepare_next_step() must run before build()")

        messages = [
            LlmMessage(
                MessageRole.SYSTEM,
                render_template(
                    self._system_prompt_template,
                    {"device_platform": screen.platform.display_name},
                ),
            ),
            LlmMessage(
                MessageRole.USER,
                render_template(
                    self._user_objective_template,
                    {"objective": step_status.prompt_step.prompt},
                ),
            ),
            LlmMessage(
                MessageRole.USER,
                reminder_message(
                    step_status.prompt_step, directive.require_status_update,
                ),
            ),
        ]
        messages.extend(step_status.get_limited_history())
        messages.append(self._screen_message(screen))
        return messages

    def _screen_message(self, screen: ScreenState) -> LlmMessage:
        view_hierarchy_json = json.dumps(screen.view_hierarchy.to_dict())
        content = render_template(
            self._user_message_template,
            {"view_hierarchy": view_hierarchy_json},
        )
        images: tuple[bytes, ...] = ()
        if self._model.supports_vision and screen.screenshot_bytes:
            images = (screen.screenshot_bytes,)
        return LlmMessage(MessageRole.USER, content, images)

    def __repr__(self) -> str:
        return f"RequestBuilder(model={self._model.model_id})"
