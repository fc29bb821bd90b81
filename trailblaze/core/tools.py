"""Trailblaze tools: the actions the LLM may call, and their registry.

A tool is a small dataclass built from the JSON arguments of a model
tool call.  There are two kinds:

* ``CommandTool`` subclasses map directly to ``DeviceCommand`` objects
  through ``to_commands``.
* ``ExecutableTool`` subclasses need the screen or other collaborators
  and run themselves through ``execute``.

``ObjectiveStatusTool`` is neither: the tool executor applies its effect
to the step status directly.

The ``ToolRegistry`` is keyed by tool name.  It advertises the tool
schemas to the LLM and resolves incoming calls, raising
``UnknownToolError`` or ``MissingRequiredArgsError`` on bad calls.

Typical usage::

    registry = direction_tool_registry()
    tool = registry.resolve("tapOnPoint", {"x": 10, "y": 20})
    commands = tool.to_commands()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from trailblaze.core.agent_memory import AgentMemory
from trailblaze.core.element_matcher import find_matching_elements
from trailblaze.core.scroll_controller import (
    ScrollStartPosition,
    ScrollUntilVisibleController,
    relative_scroll_points,
)
from trailblaze.device.interface import DeviceCommandExecutor
from trailblaze.models.commands import (
    BackPressCommand,
    DeviceCommand,
    EraseTextCommand,
    HideKeyboardCommand,
    InputTextCommand,
    LaunchAppCommand,
    OpenLinkCommand,
    ScrollDirection,
    SwipeCommand,
    SwipeDirection,
    TapPointCommand,
    WaitCommand,
)
from trailblaze.models.llm import ToolDescriptor
from trailblaze.models.selector import ElementSelector
from trailblaze.models.tool_result import Success, ToolResult
from trailblaze.models.view_hierarchy import ScreenState, ViewHierarchyNode

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------


class UnknownToolError(Exception):
    """The tool name is not registered or its arguments do not decode."""

    def __init__(self, name: str, args: dict[str, Any], reason: str = "") -> None:
        super().__init__(f"Unknown tool {name}: {reason}" if reason else f"Unknown tool {name}")
        self.name = name
        self.args = args
        self.reason = reason


class MissingRequiredArgsError(Exception):
    """The tool call omitted one or more required arguments."""

    def __init__(
        self,
        name: str,
        args: dict[str, Any],
        required_args: tuple[str, ...],
        missing_args: tuple[str, ...],
    ) -> None:
        super().__init__(
            f"Tool {name} is missing required args {list(missing_args)}"
        )
        self.name = name
        self.args = args
        self.required_args = required_args
        self.missing_args = missing_args


class ToolExecutionError(Exception):
    """An executable tool could not do what it was asked to do."""


# ------------------------------------------------------------------
# Execution context
# ------------------------------------------------------------------


@dataclass
class ToolExecutionContext:
    """Collaborators available to an executable tool.

    Attributes:
        screen_state: Snapshot taken before the request was built.  All
            tools of one LLM response see the same snapshot.
        device: Executor for device commands.
        scroll_controller: Controller used by scroll tools.
        trace_id: Trace identifier of the current LLM turn.
        memory: Remembered variables, shared across tool calls.
    """

    screen_state: ScreenState | None
    device: DeviceCommandExecutor
    scroll_controller: ScrollUntilVisibleController
    trace_id: str | None = None
    memory: AgentMemory = field(default_factory=AgentMemory)

    def require_screen_state(self) -> ScreenState:
        if self.screen_state is None:
            raise ToolExecutionError("No screen state available")
        return self.screen_state


# ------------------------------------------------------------------
# Tool base classes
# ------------------------------------------------------------------


class TrailblazeTool:
    """Base class for every tool."""

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    input_schema: ClassVar[dict[str, Any]] = {"type": "object", "properties": {}}
    required_args: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> TrailblazeTool:
        """Decode a tool call's arguments.  Override for tools with args."""
        return cls()

    @classmethod
    def descriptor(cls) -> ToolDescriptor:
        schema = dict(cls.input_schema)
        if cls.required_args:
            schema["required"] = list(cls.required_args)
        return ToolDescriptor(cls.name, cls.description, schema)


class CommandTool(TrailblazeTool):
    """A tool that maps directly to device commands.

    ``to_commands`` receives the agent memory so that text arguments can
    reference remembered variables.
    """

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        raise NotImplementedError


class ExecutableTool(TrailblazeTool):
    """A tool that needs the screen state or other collaborators."""

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        raise NotImplementedError


def _props(**properties: dict[str, Any]) -> dict[str, Any]:
    return {"type": "object", "properties": properties}


_STRING = {"type": "string"}
_INTEGER = {"type": "integer"}
_BOOLEAN = {"type": "boolean"}
_DIRECTION = {"type": "string", "enum": ["UP", "DOWN", "LEFT", "RIGHT"]}


def _interpolate(memory: AgentMemory | None, text: str) -> str:
    return memory.interpolate_variables(text) if memory is not None else text


def _as_bool(value: Any, name: str) -> bool:
    """Decode a boolean argument; models often send "true"/"false" strings."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _find_element(
    screen_state: ScreenState,
    selector: ElementSelector,
) -> ViewHierarchyNode | None:
    return find_matching_elements(screen_state.view_hierarchy, selector).first()


# ------------------------------------------------------------------
# Command tools
# ------------------------------------------------------------------


@dataclass(frozen=True)
class TapOnPointTool(CommandTool):
    name: ClassVar[str] = "tapOnPoint"
    description: ClassVar[str] = (
        "Taps on the UI at the provided coordinates. Only use this when "
        "no element with text can be targeted."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        x=_INTEGER, y=_INTEGER, longPress=_BOOLEAN,
    )
    required_args: ClassVar[tuple[str, ...]] = ("x", "y")

    x: int
    y: int
    long_press: bool = False

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> TapOnPointTool:
        return cls(
            x=int(args["x"]),
            y=int(args["y"]),
            long_press=_as_bool(args.get("longPress"), "longPress"),
        )

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [TapPointCommand(self.x, self.y, long_press=self.long_press)]


@dataclass(frozen=True)
class InputTextTool(CommandTool):
    name: ClassVar[str] = "inputText"
    description: ClassVar[str] = (
        "Types text into the currently focused text field. Tap on the "
        "field first if it is not focused."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(text=_STRING)
    required_args: ClassVar[tuple[str, ...]] = ("text",)

    text: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> InputTextTool:
        return cls(text=str(args["text"]))

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [InputTextCommand(_interpolate(memory, self.text))]


@dataclass(frozen=True)
class EraseTextTool(CommandTool):
    name: ClassVar[str] = "eraseText"
    description: ClassVar[str] = (
        "Erases characters from the currently focused text field. "
        "Erases up to 50 characters when no count is given."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(charactersToErase=_INTEGER)

    characters_to_erase: int | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> EraseTextTool:
        value = args.get("charactersToErase")
        return cls(characters_to_erase=None if value is None else int(value))

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        if self.characters_to_erase is None:
            return [EraseTextCommand()]
        return [EraseTextCommand(self.characters_to_erase)]


@dataclass(frozen=True)
class PressBackTool(CommandTool):
    name: ClassVar[str] = "pressBack"
    description: ClassVar[str] = "Presses the device back button."

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [BackPressCommand()]


@dataclass(frozen=True)
class HideKeyboardTool(CommandTool):
    name: ClassVar[str] = "hideKeyboard"
    description: ClassVar[str] = (
        "Hides the on-screen keyboard if it is covering the screen."
    )

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [HideKeyboardCommand()]


@dataclass(frozen=True)
class OpenUrlTool(CommandTool):
    name: ClassVar[str] = "openUrl"
    description: ClassVar[str] = "Opens a URL or deep link on the device."
    input_schema: ClassVar[dict[str, Any]] = _props(url=_STRING)
    required_args: ClassVar[tuple[str, ...]] = ("url",)

    url: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> OpenUrlTool:
        return cls(url=str(args["url"]))

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [OpenLinkCommand(_interpolate(memory, self.url))]


class LaunchMode(Enum):
    """How ``launchApp`` treats an app that is already running."""

    REINSTALL = "REINSTALL"
    RESUME = "RESUME"
    FORCE_RESTART = "FORCE_RESTART"


@dataclass(frozen=True)
class LaunchAppTool(CommandTool):
    name: ClassVar[str] = "launchApp"
    description: ClassVar[str] = (
        "Launches an app by its package name. RESUME keeps a running app, "
        "FORCE_RESTART and REINSTALL stop it first."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        appId=_STRING,
        launchMode={
            "type": "string",
            "enum": [m.value for m in LaunchMode],
        },
    )
    required_args: ClassVar[tuple[str, ...]] = ("appId",)

    app_id: str
    launch_mode: LaunchMode = LaunchMode.FORCE_RESTART

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> LaunchAppTool:
        mode = args.get("launchMode") or LaunchMode.FORCE_RESTART.value
        return cls(app_id=str(args["appId"]), launch_mode=LaunchMode(mode))

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [
            LaunchAppCommand(
                self.app_id,
                stop_app=self.launch_mode != LaunchMode.RESUME,
            )
        ]


@dataclass(frozen=True)
class WaitTool(CommandTool):
    name: ClassVar[str] = "wait"
    description: ClassVar[str] = (
        "Waits for the given number of seconds. Use this when the screen "
        "is loading."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(seconds=_INTEGER)

    seconds: int = 5

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> WaitTool:
        seconds = args.get("seconds")
        return cls(seconds=5 if seconds is None else int(seconds))

    def to_commands(self, memory: AgentMemory | None = None) -> list[DeviceCommand]:
        return [WaitCommand(self.seconds * 1000)]


# ------------------------------------------------------------------
# Executable tools
# ------------------------------------------------------------------


@dataclass(frozen=True)
class TapOnElementWithTextTool(ExecutableTool):
    name: ClassVar[str] = "tapOnElementWithText"
    description: ClassVar[str] = (
        "Taps on the element whose text contains the provided text. Use "
        "index and id only when several elements contain the same text."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        text=_STRING, index=_INTEGER, id=_STRING, longPress=_BOOLEAN,
    )
    required_args: ClassVar[tuple[str, ...]] = ("text",)

    text: str
    index: int = 0
    element_id: str | None = None
    long_press: bool = False

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> TapOnElementWithTextTool:
        return cls(
            text=str(args["text"]),
            index=int(args.get("index") or 0),
            element_id=args.get("id") or None,
            long_press=_as_bool(args.get("longPress"), "longPress"),
        )

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        selector = ElementSelector.for_text(
            context.memory.interpolate_variables(self.text),
            element_id=self.element_id,
            index=self.index,
        )
        node = _find_element(context.require_screen_state(), selector)
        if node is None or node.bounds is None:
            raise ToolExecutionError(
                f"No element found for {selector.description()}"
            )
        x, y = node.bounds.center()
        return context.device.run_commands(
            [TapPointCommand(x, y, long_press=self.long_press)],
            context.trace_id,
        )


@dataclass(frozen=True)
class SwipeTool(ExecutableTool):
    name: ClassVar[str] = "swipe"
    description: ClassVar[str] = (
        "Swipes the screen in the given direction. Swiping UP moves the "
        "content up, revealing what is below. Optionally swipe on the "
        "element containing swipeOnElementText."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        direction=_DIRECTION, swipeOnElementText=_STRING,
    )
    required_args: ClassVar[tuple[str, ...]] = ("direction",)

    direction: SwipeDirection
    swipe_on_element_text: str | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> SwipeTool:
        return cls(
            direction=SwipeDirection(str(args["direction"]).upper()),
            swipe_on_element_text=args.get("swipeOnElementText") or None,
        )

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        screen = context.require_screen_state()
        width, height = screen.device_width, screen.device_height

        if self.swipe_on_element_text:
            selector = ElementSelector.for_text(self.swipe_on_element_text)
            node = _find_element(screen, selector)
            if node is None or node.bounds is None:
                raise ToolExecutionError(
                    f"No element found for {selector.description()}"
                )
            start = node.bounds.center()
            dx, dy = {
                SwipeDirection.UP: (0, -height // 3),
                SwipeDirection.DOWN: (0, height // 3),
                SwipeDirection.LEFT: (-width // 3, 0),
                SwipeDirection.RIGHT: (width // 3, 0),
            }[self.direction]
            end = (
                min(max(start[0] + dx, 0), width - 1),
                min(max(start[1] + dy, 0), height - 1),
            )
        else:
            (sx, sy), (ex, ey) = relative_scroll_points(
                ScrollStartPosition.CENTER, self.direction,
            )
            start = (width * sx // 100, height * sy // 100)
            end = (width * ex // 100, height * ey // 100)

        return context.device.run_commands(
            [SwipeCommand(start=start, end=end)], context.trace_id,
        )


@dataclass(frozen=True)
class ScrollUntilTextIsVisibleTool(ExecutableTool):
    name: ClassVar[str] = "scrollUntilTextIsVisible"
    description: ClassVar[str] = (
        "Scrolls the screen in the specified direction until an element "
        "containing the provided text becomes visible. Only provide the "
        "additional fields if multiple elements contain the same text."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        text=_STRING,
        id=_STRING,
        index=_INTEGER,
        direction=_DIRECTION,
        visibilityPercentage=_INTEGER,
        centerElement=_BOOLEAN,
        scrollStartPosition={
            "type": "string",
            "enum": [p.value for p in ScrollStartPosition],
        },
    )
    required_args: ClassVar[tuple[str, ...]] = ("text",)

    text: str
    element_id: str | None = None
    index: int = 0
    direction: ScrollDirection = ScrollDirection.DOWN
    visibility_percentage: int | None = None
    center_element: bool = False
    scroll_start_position: ScrollStartPosition = ScrollStartPosition.CENTER

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ScrollUntilTextIsVisibleTool:
        visibility = args.get("visibilityPercentage")
        return cls(
            text=str(args["text"]),
            element_id=args.get("id") or None,
            index=int(args.get("index") or 0),
            direction=ScrollDirection(
                str(args.get("direction") or "DOWN").upper()
            ),
            visibility_percentage=None if visibility is None else int(visibility),
            center_element=_as_bool(
                args.get("centerElement"), "centerElement",
            ),
            scroll_start_position=ScrollStartPosition(
                str(args.get("scrollStartPosition") or "CENTER").upper()
            ),
        )

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        selector = ElementSelector.for_text(
            context.memory.interpolate_variables(self.text),
            element_id=self.element_id,
            index=self.index,
        )
        return context.scroll_controller.scroll_until_visible(
            selector,
            direction=self.direction,
            visibility_percentage=self.visibility_percentage,
            center_element=self.center_element,
            scroll_start_position=self.scroll_start_position,
            trace_id=context.trace_id,
        )


@dataclass(frozen=True)
class AssertVisibleWithTextTool(ExecutableTool):
    name: ClassVar[str] = "assertVisibleWithText"
    description: ClassVar[str] = (
        "Asserts that an element containing the provided text is visible "
        "on the current screen."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        text=_STRING, index=_INTEGER, id=_STRING,
    )
    required_args: ClassVar[tuple[str, ...]] = ("text",)

    text: str
    index: int = 0
    element_id: str | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> AssertVisibleWithTextTool:
        return cls(
            text=str(args["text"]),
            index=int(args.get("index") or 0),
            element_id=args.get("id") or None,
        )

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        screen = context.require_screen_state()
        selector = ElementSelector.for_text(
            context.memory.interpolate_variables(self.text),
            element_id=self.element_id,
            index=self.index,
        )
        node = _find_element(screen, selector)
        if node is None or node.bounds is None:
            raise ToolExecutionError(
                f"Assertion failed: no element visible for "
                f"{selector.description()}"
            )
        visibility = node.bounds.visible_fraction(
            screen.device_width, screen.device_height,
        )
        if visibility <= 0.0:
            raise ToolExecutionError(
                f"Assertion failed: element for {selector.description()} "
                f"is off screen at {node.bounds}"
            )
        return Success()


# ------------------------------------------------------------------
# Memory tools
# ------------------------------------------------------------------


@dataclass(frozen=True)
class RememberTextTool(ExecutableTool):
    name: ClassVar[str] = "rememberText"
    description: ClassVar[str] = (
        "Remembers the full text of the element containing the provided "
        "text under a variable name. Later tool arguments can use the "
        "value as ${variable}."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        text=_STRING, variable=_STRING, id=_STRING, index=_INTEGER,
    )
    required_args: ClassVar[tuple[str, ...]] = ("text", "variable")

    text: str
    variable: str
    element_id: str | None = None
    index: int = 0

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> RememberTextTool:
        return cls(
            text=str(args["text"]),
            variable=str(args["variable"]),
            element_id=args.get("id") or None,
            index=int(args.get("index") or 0),
        )

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        selector = ElementSelector.for_text(
            context.memory.interpolate_variables(self.text),
            element_id=self.element_id,
            index=self.index,
        )
        node = _find_element(context.require_screen_state(), selector)
        if node is None:
            raise ToolExecutionError(
                f"No element found for {selector.description()}"
            )
        context.memory.remember(self.variable, node.text or node.accessibility_text)
        return Success()


@dataclass(frozen=True)
class AssertEqualsTool(ExecutableTool):
    name: ClassVar[str] = "assertEquals"
    description: ClassVar[str] = (
        "Asserts that two values are equal after remembered variables "
        "(${variable}) are substituted into both."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        actual=_STRING, expected=_STRING,
    )
    required_args: ClassVar[tuple[str, ...]] = ("actual", "expected")

    actual: str
    expected: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> AssertEqualsTool:
        return cls(actual=str(args["actual"]), expected=str(args["expected"]))

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        actual = context.memory.interpolate_variables(self.actual)
        expected = context.memory.interpolate_variables(self.expected)
        if actual != expected:
            raise ToolExecutionError(
                f"Assertion failed: {actual!r} != {expected!r}"
            )
        return Success()


@dataclass(frozen=True)
class DumpMemoryTool(ExecutableTool):
    name: ClassVar[str] = "dumpMemory"
    description: ClassVar[str] = (
        "Dumps every remembered value to the log. Useful when debugging "
        "steps that compare values across screens."
    )

    def execute(self, context: ToolExecutionContext) -> ToolResult:
        context.memory.dump()
        return Success()


# ------------------------------------------------------------------
# Objective status
# ------------------------------------------------------------------


class ObjectiveStatusValue(Enum):
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ObjectiveStatusTool(TrailblazeTool):
    """Reports the model's view of the objective's progress.

    ``status`` is kept as the raw string so that an unexpected value
    can be reported back to the model instead of failing to decode.
    """

    name: ClassVar[str] = "objectiveStatus"
    description: ClassVar[str] = (
        "Use this tool to report the status of the current objective. "
        "Use 'in_progress' after an action when more work remains, "
        "'completed' once the objective is fully done, and 'failed' "
        "when it cannot be achieved. Always explain why."
    )
    input_schema: ClassVar[dict[str, Any]] = _props(
        description=_STRING,
        explanation=_STRING,
        status={
            "type": "string",
            "enum": [s.value for s in ObjectiveStatusValue],
        },
    )
    required_args: ClassVar[tuple[str, ...]] = (
        "description", "explanation", "status",
    )

    description_text: str
    explanation: str
    status: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ObjectiveStatusTool:
        return cls(
            description_text=str(args["description"]),
            explanation=str(args["explanation"]),
            status=str(args["status"]),
        )


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


DIRECTION_TOOLS: tuple[type[TrailblazeTool], ...] = (
    TapOnElementWithTextTool,
    TapOnPointTool,
    InputTextTool,
    EraseTextTool,
    PressBackTool,
    HideKeyboardTool,
    SwipeTool,
    OpenUrlTool,
    LaunchAppTool,
    WaitTool,
    ScrollUntilTextIsVisibleTool,
    RememberTextTool,
    AssertEqualsTool,
    DumpMemoryTool,
    ObjectiveStatusTool,
)

VERIFICATION_TOOLS: tuple[type[TrailblazeTool], ...] = (
    AssertVisibleWithTextTool,
    ScrollUntilTextIsVisibleTool,
    WaitTool,
    RememberTextTool,
    AssertEqualsTool,
    DumpMemoryTool,
    ObjectiveStatusTool,
)


class ToolRegistry:
    """Maps tool names to tool classes.

    Args:
        tools: Tool classes to register.  Names must be unique.
    """

    def __init__(self, tools: Iterable[type[TrailblazeTool]]) -> None:
        self._tools: dict[str, type[TrailblazeTool]] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def descriptors(self) -> list[ToolDescriptor]:
        """Return the schemas advertised to the LLM, in registration order."""
        return [tool.descriptor() for tool in self._tools.values()]

    def resolve(self, name: str, args: dict[str, Any]) -> TrailblazeTool:
        """Turn a model tool call into a tool instance.

        Args:
            name: Tool name from the model.
            args: Decoded JSON arguments.

        Returns:
            The decoded tool.

        Raises:
            UnknownToolError: If the name is unregistered or the
                arguments do not decode.
            MissingRequiredArgsError: If a required argument is absent.
        """
        tool_cls = self._tools.get(name)
        if tool_cls is None:
            raise UnknownToolError(name, args, "not registered")

        missing = tuple(a for a in tool_cls.required_args if args.get(a) is None)
        if missing:
            raise MissingRequiredArgsError(
                name, args, tool_cls.required_args, missing,
            )

        try:
            return tool_cls.from_args(args)
        except (KeyError, TypeError, ValueError) as exc:
            raise UnknownToolError(name, args, str(exc)) from exc

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={self.names})"


def direction_tool_registry() -> ToolRegistry:
    """Registry offered to direction steps."""
    return ToolRegistry(DIRECTION_TOOLS)


def verification_tool_registry() -> ToolRegistry:
    """Registry offered to verification steps: no state-changing tools."""
    return ToolRegistry(VERIFICATION_TOOLS)
