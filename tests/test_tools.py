"""Unit tests for trailblaze.core.tools and trailblaze.core.device_agent."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from trailblaze.config.settings import Settings
from trailblaze.core.agent_memory import AgentMemory
from trailblaze.core.device_agent import DeviceAgent
from trailblaze.core.scroll_controller import ScrollUntilVisibleController
from trailblaze.core.tools import (
    AssertEqualsTool,
    AssertVisibleWithTextTool,
    DumpMemoryTool,
    InputTextTool,
    LaunchAppTool,
    MissingRequiredArgsError,
    ObjectiveStatusTool,
    OpenUrlTool,
    RememberTextTool,
    ScrollUntilTextIsVisibleTool,
    SwipeTool,
    TapOnElementWithTextTool,
    TapOnPointTool,
    ToolExecutionContext,
    ToolExecutionError,
    ToolRegistry,
    UnknownToolError,
    WaitTool,
    direction_tool_registry,
    verification_tool_registry,
)
from trailblaze.device.interface import DeviceCommandExecutor
from trailblaze.models.commands import (
    DeviceCommand,
    InputTextCommand,
    LaunchAppCommand,
    OpenLinkCommand,
    ScrollDirection,
    SwipeCommand,
    SwipeDirection,
    TapPointCommand,
    WaitCommand,
)
from trailblaze.models.tool_result import (
    CommandValidationError,
    Success,
    ToolResult,
    UnknownTrailblazeTool,
)
from trailblaze.models.view_hierarchy import Bounds, ScreenState, ViewHierarchyNode

# ------------------------------------------------------------------
# Test doubles
# ------------------------------------------------------------------


class RecordingDevice(DeviceCommandExecutor):
    """Records every command and answers with a fixed result."""

    def __init__(self, state: ScreenState, result: ToolResult | None = None) -> None:
        self.state = state
        self.result = result or Success()
        self.commands: list[DeviceCommand] = []
        self.trace_ids: list[str | None] = []

    def run_commands(
        self,
        commands: Sequence[DeviceCommand],
        trace_id: str | None = None,
    ) -> ToolResult:
        self.commands.extend(commands)
        self.trace_ids.append(trace_id)
        return self.result

    def screen_state(self) -> ScreenState:
        return self.state


def _make_screen_state() -> ScreenState:
    root = ViewHierarchyNode(
        node_id=1,
        bounds=Bounds(0, 0, 1000, 2000),
        children=[
            ViewHierarchyNode(node_id=2, text="Sign in", bounds=Bounds(100, 200, 300, 260)),
            ViewHierarchyNode(node_id=3, text="Total: $12", bounds=Bounds(0, 1000, 400, 1100)),
            ViewHierarchyNode(node_id=4, text="Footer", bounds=Bounds(0, 2100, 400, 2200)),
        ],
    )
    return ScreenState(view_hierarchy=root, device_width=1000, device_height=2000)


def _make_context(
    device: RecordingDevice,
    memory: AgentMemory | None = None,
) -> ToolExecutionContext:
    controller = ScrollUntilVisibleController(device, device.screen_state, Settings())
    return ToolExecutionContext(
        screen_state=device.state,
        device=device,
        scroll_controller=controller,
        trace_id="llm-1",
        memory=memory if memory is not None else AgentMemory(),
    )


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


class TestToolRegistry:
    def test_direction_registry_excludes_assertions(self) -> None:
        names = direction_tool_registry().names
        assert "assertVisibleWithText" not in names
        assert "tapOnElementWithText" in names
        assert "objectiveStatus" in names

    def test_verification_registry_is_non_mutating(self) -> None:
        assert verification_tool_registry().names == [
            "assertVisibleWithText",
            "scrollUntilTextIsVisible",
            "wait",
            "rememberText",
            "assertEquals",
            "dumpMemory",
            "objectiveStatus",
        ]

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ValueError):
            ToolRegistry([WaitTool, WaitTool])

    def test_descriptors_carry_required_args(self) -> None:
        descriptors = {d.name: d for d in direction_tool_registry().descriptors()}
        assert descriptors["tapOnPoint"].input_schema["required"] == ["x", "y"]
        assert "required" not in descriptors["pressBack"].input_schema

    def test_resolve(self) -> None:
        tool = direction_tool_registry().resolve("tapOnPoint", {"x": 3, "y": 4})
        assert tool == TapOnPointTool(3, 4)

    def test_unknown_name(self) -> None:
        with pytest.raises(UnknownToolError) as exc_info:
            direction_tool_registry().resolve("teleport", {})
        assert exc_info.value.name == "teleport"

    def test_missing_required_arg(self) -> None:
        with pytest.raises(MissingRequiredArgsError) as exc_info:
            direction_tool_registry().resolve("tapOnPoint", {"x": 3})
        assert exc_info.value.required_args == ("x", "y")
        assert exc_info.value.missing_args == ("y",)

    def test_undecodable_args(self) -> None:
        with pytest.raises(UnknownToolError):
            direction_tool_registry().resolve("tapOnPoint", {"x": "left", "y": 4})

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(True, True), (False, False), ("false", False), ("TRUE", True), (None, False)],
    )
    def test_boolean_args_decode_strings(self, raw, expected) -> None:
        tool = direction_tool_registry().resolve(
            "scrollUntilTextIsVisible", {"text": "a", "centerElement": raw},
        )
        assert tool.center_element is expected

    def test_boolean_args_reject_other_values(self) -> None:
        with pytest.raises(UnknownToolError):
            direction_tool_registry().resolve(
                "tapOnPoint", {"x": 1, "y": 2, "longPress": "sometimes"},
            )

    def test_bad_enum_value(self) -> None:
        with pytest.raises(UnknownToolError):
            direction_tool_registry().resolve("swipe", {"direction": "SIDEWAYS"})

    def test_objective_status_keeps_raw_status(self) -> None:
        tool = direction_tool_registry().resolve(
            "objectiveStatus",
            {"description": "d", "explanation": "e", "status": "maybe"},
        )
        assert isinstance(tool, ObjectiveStatusTool)
        assert tool.status == "maybe"


# ------------------------------------------------------------------
# Command tools
# ------------------------------------------------------------------


class TestCommandTools:
    def test_launch_app_modes(self) -> None:
        resume = LaunchAppTool.from_args({"appId": "com.app", "launchMode": "RESUME"})
        restart = LaunchAppTool.from_args({"appId": "com.app"})
        assert resume.to_commands() == [LaunchAppCommand("com.app", stop_app=False)]
        assert restart.to_commands() == [LaunchAppCommand("com.app", stop_app=True)]

    def test_wait_converts_to_ms(self) -> None:
        assert WaitTool.from_args({"seconds": 2}).to_commands() == [WaitCommand(2000)]

    def test_long_press(self) -> None:
        tool = TapOnPointTool.from_args({"x": 1, "y": 2, "longPress": True})
        assert tool.to_commands() == [TapPointCommand(1, 2, long_press=True)]


# ------------------------------------------------------------------
# Executable tools
# ------------------------------------------------------------------


class TestExecutableTools:
    def test_tap_on_element_taps_center(self) -> None:
        device = RecordingDevice(_make_screen_state())
        result = TapOnElementWithTextTool("Sign in").execute(_make_context(device))
        assert result == Success()
        assert device.commands == [TapPointCommand(200, 230)]
        assert device.trace_ids == ["llm-1"]

    def test_tap_on_missing_element_raises(self) -> None:
        device = RecordingDevice(_make_screen_state())
        with pytest.raises(ToolExecutionError):
            TapOnElementWithTextTool("Register").execute(_make_context(device))
        assert device.commands == []

    def test_swipe_uses_screen_center_points(self) -> None:
        device = RecordingDevice(_make_screen_state())
        SwipeTool(SwipeDirection.UP).execute(_make_context(device))
        swipe = device.commands[0]
        assert isinstance(swipe, SwipeCommand)
        assert swipe.start == (500, 1700)
        assert swipe.end == (500, 300)

    def test_assert_visible_passes(self) -> None:
        device = RecordingDevice(_make_screen_state())
        result = AssertVisibleWithTextTool("Total").execute(_make_context(device))
        assert result == Success()

    def test_assert_visible_off_screen_fails(self) -> None:
        device = RecordingDevice(_make_screen_state())
        with pytest.raises(ToolExecutionError):
            AssertVisibleWithTextTool("Footer").execute(_make_context(device))

    def test_scroll_tool_delegates_to_controller(self) -> None:
        device = RecordingDevice(_make_screen_state())
        tool = ScrollUntilTextIsVisibleTool.from_args(
            {"text": "Total", "direction": "down"},
        )
        assert tool.direction == ScrollDirection.DOWN
        assert tool.execute(_make_context(device)) == Success()
        assert device.commands == []


# ------------------------------------------------------------------
# Device agent
# ------------------------------------------------------------------


class TestDeviceAgent:
    def _make_agent(self, device: RecordingDevice) -> DeviceAgent:
        controller = ScrollUntilVisibleController(device, device.screen_state, Settings())
        return DeviceAgent(device, controller)

    def test_runs_command_tools(self) -> None:
        device = RecordingDevice(_make_screen_state())
        result = self._make_agent(device).run_tools(
            [TapOnPointTool(1, 2), WaitTool(1)], device.state, "llm-9",
        )
        assert result == Success()
        assert device.commands == [TapPointCommand(1, 2), WaitCommand(1000)]

    def test_stops_at_first_error(self) -> None:
        error = CommandValidationError("off screen")
        device = RecordingDevice(_make_screen_state(), result=error)
        result = self._make_agent(device).run_tools(
            [TapOnPointTool(1, 2), WaitTool(1)], device.state,
        )
        assert result is error
        assert device.commands == [TapPointCommand(1, 2)]

    def test_status_tool_is_not_a_device_tool(self) -> None:
        device = RecordingDevice(_make_screen_state())
        result = self._make_agent(device).run_tools(
            [ObjectiveStatusTool("d", "e", "completed")], device.state,
        )
        assert isinstance(result, UnknownTrailblazeTool)


# ------------------------------------------------------------------
# Memory
# ------------------------------------------------------------------


class TestMemoryTools:
    def setup_method(self) -> None:
        self.memory = AgentMemory()
        self.memory.remember("button", "Sign in")
        self.memory.remember("host", "shop.example.com")

    def test_command_tools_interpolate(self) -> None:
        assert InputTextTool("{{button}} now").to_commands(self.memory) == [
            InputTextCommand("Sign in now"),
        ]
        assert OpenUrlTool("https://${host}/cart").to_commands(self.memory) == [
            OpenLinkCommand("https://shop.example.com/cart"),
        ]

    def test_command_tools_without_memory_keep_text(self) -> None:
        assert InputTextTool("${button}").to_commands() == [InputTextCommand("${button}")]

    def test_tap_on_element_interpolates(self) -> None:
        device = RecordingDevice(_make_screen_state())
        TapOnElementWithTextTool("${button}").execute(_make_context(device, self.memory))
        assert device.commands == [TapPointCommand(200, 230)]

    def test_remember_text_stores_full_node_text(self) -> None:
        device = RecordingDevice(_make_screen_state())
        result = RememberTextTool("Total", "total").execute(
            _make_context(device, self.memory),
        )
        assert result == Success()
        assert self.memory.get("total") == "Total: $12"

    def test_remember_text_missing_element_raises(self) -> None:
        device = RecordingDevice(_make_screen_state())
        with pytest.raises(ToolExecutionError):
            RememberTextTool("Nope", "x").execute(_make_context(device, self.memory))
        assert "x" not in self.memory

    def test_assert_equals(self) -> None:
        context = _make_context(RecordingDevice(_make_screen_state()), self.memory)
        assert AssertEqualsTool("${button}", "Sign in").execute(context) == Success()
        with pytest.raises(ToolExecutionError):
            AssertEqualsTool("${button}", "Sign out").execute(context)

    def test_dump_memory(self) -> None:
        context = _make_context(RecordingDevice(_make_screen_state()), self.memory)
        assert DumpMemoryTool().execute(context) == Success()

    def test_device_agent_shares_memory_across_runs(self) -> None:
        device = RecordingDevice(_make_screen_state())
        controller = ScrollUntilVisibleController(device, device.screen_state, Settings())
        agent = DeviceAgent(device, controller)
        agent.run_tools([RememberTextTool("Total", "total")], device.state)
        agent.run_tools([InputTextTool("${total}")], device.state)
        assert device.commands == [InputTextCommand("Total: $12")]
