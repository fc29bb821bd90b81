"""Unit tests for trailblaze.core.request_builder and core.prompts."""

from __future__ import annotations

import json

import pytest

from trailblaze.core import prompts
from trailblaze.core.prompts import TemplateRenderError, render_template
from trailblaze.core.request_builder import RequestBuilder, reminder_message
from trailblaze.core.step_strategy import TurnDirective
from trailblaze.models.llm import LlmModel, MessageRole
from trailblaze.models.prompt_step import DirectionStep, PromptStep, VerificationStep
from trailblaze.models.step_status import PromptStepStatus
from trailblaze.models.tool_result import Success
from trailblaze.models.view_hierarchy import (
    Bounds,
    DevicePlatform,
    ScreenState,
    ViewHierarchyNode,
)


def _make_screen_state(screenshot: bytes | None = b"\x89PNG") -> ScreenState:
    return ScreenState(
        view_hierarchy=ViewHierarchyNode(
            node_id=1, text="Login", bounds=Bounds(0, 0, 100, 50),
        ),
        device_width=1080,
        device_height=2400,
        platform=DevicePlatform.ANDROID,
        screenshot_bytes=screenshot,
    )


def _make_step_status(
    step: PromptStep | None = None,
    screenshot: bytes | None = b"\x89PNG",
) -> PromptStepStatus:
    status = PromptStepStatus(
        prompt_step=step or DirectionStep("Tap on Login"),
        screen_state_provider=lambda: _make_screen_state(screenshot),
        history_limit=2,
    )
    status.prepare_next_step()
    return status


class TestRenderTemplate:
    def test_replaces_placeholders(self) -> None:
        assert render_template("Hi {{name}}!", {"name": "Ada"}) == "Hi Ada!"

    def test_tolerates_whitespace_in_placeholder(self) -> None:
        assert render_template("{{ name }}", {"name": "x"}) == "x"

    def test_missing_value_raises(self) -> None:
        with pytest.raises(TemplateRenderError) as exc_info:
            render_template("{{a}} {{b}}", {"a": "1"})
        assert "b" in str(exc_info.value)

    def test_extra_values_ignored(self) -> None:
        assert render_template("plain", {"unused": "x"}) == "plain"


class TestReminder:
    def test_variants(self) -> None:
        direction = DirectionStep("x")
        verification = VerificationStep("x")
        assert reminder_message(direction, False) == prompts.DIRECTION_REMINDER
        assert (
            reminder_message(direction, True)
            == prompts.DIRECTION_STATUS_UPDATE_REMINDER
        )
        assert reminder_message(verification, False) == prompts.VERIFICATION_REMINDER
        assert (
            reminder_message(verification, True)
            == prompts.VERIFICATION_STATUS_UPDATE_REMINDER
        )


class TestRequestBuilder:
    def setup_method(self) -> None:
        self.builder = RequestBuilder(LlmModel("m", supports_vision=True))

    def test_message_order(self) -> None:
        status = _make_step_status()
        status.add_completed_tool_call(None, "pressBack", {}, Success())
        messages = self.builder.build(status, TurnDirective())

        assert messages[0].role == MessageRole.SYSTEM
        assert "Android" in messages[0].content
        assert "Tap on Login" in messages[1].content
        assert messages[2].content == prompts.DIRECTION_REMINDER
        assert "pressBack" in messages[3].content
        assert messages[4].content == "Tool result for pressBack: Success"
        assert len(messages) == 6

    def test_final_message_carries_view_hierarchy(self) -> None:
        status = _make_step_status()
        final = self.builder.build(status, TurnDirective())[-1]
        expected = json.dumps(status.current_screen_state.view_hierarchy.to_dict())
        assert expected in final.content
        assert final.images == (b"\x89PNG",)

    def test_status_update_reminder(self) -> None:
        messages = self.builder.build(
            _make_step_status(), TurnDirective(require_status_update=True),
        )
        assert messages[2].content == prompts.DIRECTION_STATUS_UPDATE_REMINDER

    def test_no_image_without_vision(self) -> None:
        builder = RequestBuilder(LlmModel("m", supports_vision=False))
        final = builder.build(_make_step_status(), TurnDirective())[-1]
        assert final.images == ()

    def test_no_image_for_empty_screenshot(self) -> None:
        final = self.builder.build(
            _make_step_status(screenshot=b""), TurnDirective(),
        )[-1]
        assert final.images == ()

    def test_history_is_limited(self) -> None:
        status = _make_step_status()
        for i in range(4):
            status.add_completed_tool_call(None, f"tool{i}", {}, Success())
        messages = self.builder.build(status, TurnDirective())
        # system, objective, reminder, 2 entries x 2 messages, screen
        assert len(messages) == 8

    def test_append_to_system_prompt(self) -> None:
        self.builder.append_to_system_prompt("The app is in German.")
        messages = self.builder.build(_make_step_status(), TurnDirective())
        assert messages[0].content.rstrip().endswith("The app is in German.")

    def test_requires_prepared_screen_state(self) -> None:
        status = PromptStepStatus(
            prompt_step=DirectionStep("x"),
            screen_state_provider=_make_screen_state,
        )
        with pytest.raises(ValueError):
            self.builder.build(status, TurnDirective())
