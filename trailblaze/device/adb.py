"""ADB-backed Android device.

Runs device commands through ``adb shell input`` and builds screen
states from ``uiautomator dump`` and ``screencap``.  Points outside the
screen are rejected before anything is sent to the device.

Typical usage::

    device = AdbDevice(settings)
    state = device.screen_state()
    device.run_commands([TapPointCommand(540, 1200)])
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import time
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator, Sequence

from trailblaze.config.settings import Settings
from trailblaze.device.interface import DeviceCommandError, DeviceCommandExecutor
from trailblaze.models.commands import (
    BackPressCommand,
    DeviceCommand,
    EraseTextCommand,
    HideKeyboardCommand,
    InputTextCommand,
    LaunchAppCommand,
    OpenLinkCommand,
    SwipeCommand,
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

logger = logging.getLogger(__name__)

_DUMP_PATH = "/sdcard/window_dump.xml"
_BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")
_SIZE_PATTERN = re.compile(r"(Physical|Override) size:\s*(\d+)x(\d+)")

_KEYCODE_BACK = 4
_KEYCODE_DEL = 67
_KEYCODE_ESCAPE = 111
_KEYCODE_MOVE_END = 123
_LONG_PRESS_MS = 1000

Runner = Callable[..., subprocess.CompletedProcess]


def parse_uiautomator_xml(xml_content: str) -> ViewHierarchyNode:
    """Parse a ``uiautomator dump`` into a view hierarchy tree.

    Multiple top-level windows are wrapped in a synthetic root node.

    Raises:
        ValueError: If the content holds no ``<hierarchy>`` document.
    """
    start = xml_content.find("<hierarchy")
    if start == -1:
        raise ValueError("No <hierarchy> tag found in uiautomator output")
    try:
        root = ET.fromstring(xml_content[start:].strip())
    except ET.ParseError as exc:
        raise ValueError(f"Failed to parse uiautomator XML: {exc}") from exc

    counter = iter(range(1, 1_000_000))
    children = [_parse_node(child, counter) for child in root if child.tag == "node"]
    if len(children) == 1:
        return children[0]
    return ViewHierarchyNode(node_id=0, class_name="hierarchy", children=children)


def _parse_node(element: ET.Element, counter: Iterator[int]) -> ViewHierarchyNode:
    attrs = element.attrib
    bounds = None
    match = _BOUNDS_PATTERN.match(attrs.get("bounds", ""))
    if match:
        x1, y1, x2, y2 = (int(v) for v in match.groups())
        if x2 >= x1 and y2 >= y1:
            bounds = Bounds(x1, y1, x2, y2)
    node = ViewHierarchyNode(
        node_id=next(counter),
        text=attrs.get("text", ""),
        resource_id=attrs.get("resource-id", ""),
        accessibility_text=attrs.get("content-desc", ""),
        class_name=attrs.get("class", ""),
        bounds=bounds,
        clickable=attrs.get("clickable") == "true",
        enabled=attrs.get("enabled", "true") == "true",
        focused=attrs.get("focused") == "true",
        scrollable=attrs.get("scrollable") == "true",
    )
    node.children = [
        _parse_node(child, counter) for child in element if child.tag == "node"
    ]
    return node


class AdbDevice(DeviceCommandExecutor):
    """Android device driven over ``adb``.

    Args:
        settings: Supplies the ``adb`` path, serial, and timeout.
        runner: ``subprocess.run`` compatible callable; injectable for
            tests.
        sleep_fn: Blocking sleep in seconds.
    """

    def __init__(
        self,
        settings: Settings,
        runner: Runner = subprocess.run,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._sleep = sleep_fn
        self._screen_size: tuple[int, int] | None = None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def run_commands(
        self,
        commands: Sequence[DeviceCommand],
        trace_id: str | None = None,
    ) -> ToolResult:
        for command in commands:
            error = self._validate(command)
            if error is not None:
                logger.warning("[%s] rejected %s: %s", trace_id, command, error.message)
                return error
            logger.debug("[%s] running %s", trace_id, command.to_dict())
            result = self._run_command(command)
            if not result.is_success:
                return result
        return Success()

    def _validate(self, command: DeviceCommand) -> CommandValidationError | None:
        if isinstance(command, TapPointCommand):
            points = [(command.x, command.y)]
        elif isinstance(command, SwipeCommand):
            points = [command.start, command.end]
        else:
            return None

        width, height = self.screen_size()
        for x, y in points:
            if not (0 <= x < width and 0 <= y < height):
                return CommandValidationError(
                    message=(
                        f"Point ({x}, {y}) is outside the screen "
                        f"({width}x{height})"
                    ),
                    command=command.to_dict(),
                )
        return None

    def _run_command(self, command: DeviceCommand) -> ToolResult:
        if isinstance(command, TapPointCommand):
            if command.long_press:
                self._shell(
                    "input", "swipe",
                    str(command.x), str(command.y),
                    str(command.x), str(command.y),
                    str(_LONG_PRESS_MS),
                )
            else:
                self._shell("input", "tap", str(command.x), str(command.y))
        elif isinstance(command, SwipeCommand):
            self._shell(
                "input", "swipe",
                str(command.start[0]), str(command.start[1]),
                str(command.end[0]), str(command.end[1]),
                str(command.duration_ms),
            )
            if command.wait_to_settle_timeout_ms:
                self._sleep(command.wait_to_settle_timeout_ms / 1000.0)
        elif isinstance(command, InputTextCommand):
            # "input text" splits on spaces unless they are encoded as %s.
            self._shell("input", "text", shlex.quote(command.text.replace(" ", "%s")))
        elif isinstance(command, EraseTextCommand):
            self._shell("input", "keyevent", str(_KEYCODE_MOVE_END))
            if command.characters > 0:
                self._shell(
                    "input", "keyevent",
                    *([str(_KEYCODE_DEL)] * command.characters),
                )
        elif isinstance(command, BackPressCommand):
            self._shell("input", "keyevent", str(_KEYCODE_BACK))
        elif isinstance(command, HideKeyboardCommand):
            self._shell("input", "keyevent", str(_KEYCODE_ESCAPE))
        elif isinstance(command, OpenLinkCommand):
            self._shell(
                "am", "start", "-a", "android.intent.action.VIEW",
                "-d", shlex.quote(command.link),
            )
        elif isinstance(command, LaunchAppCommand):
            if command.stop_app:
                self._shell("am", "force-stop", command.app_id)
            self._shell(
                "monkey", "-p", command.app_id,
                "-c", "android.intent.category.LAUNCHER", "1",
            )
        elif isinstance(command, WaitCommand):
            self._sleep(command.milliseconds / 1000.0)
        else:
            return UnknownTrailblazeTool(type(command).__name__, command.to_dict())
        return Success()

    # ------------------------------------------------------------------
    # Screen
    # ------------------------------------------------------------------

    def screen_size(self) -> tuple[int, int]:
        """Return ``(width, height)``, preferring an override size."""
        if self._screen_size is None:
            output = self._shell("wm", "size")
            sizes = {kind: (int(w), int(h)) for kind, w, h in _SIZE_PATTERN.findall(output)}
            size = sizes.get("Override") or sizes.get("Physical")
            if size is None:
                raise DeviceCommandError(
                    "Could not parse screen size", command="wm size", output=output,
                )
            self._screen_size = size
        return self._screen_size

    def screen_state(self) -> ScreenState:
        width, height = self.screen_size()
        self._shell("uiautomator", "dump", _DUMP_PATH)
        xml_content = self._shell("cat", _DUMP_PATH)
        try:
            hierarchy = parse_uiautomator_xml(xml_content)
        except ValueError as exc:
            raise DeviceCommandError(str(exc), command="uiautomator dump") from exc
        screenshot = self._adb(["exec-out", "screencap", "-p"], text=False)
        return ScreenState(
            view_hierarchy=hierarchy,
            device_width=width,
            device_height=height,
            screenshot_bytes=screenshot or None,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _shell(self, *args: str) -> str:
        return self._adb(["shell", *args], text=True)

    def _adb(self, args: list[str], text: bool):
        cmd = [self._settings.adb_path]
        if self._settings.adb_serial:
            cmd += ["-s", self._settings.adb_serial]
        cmd += args
        printable = " ".join(cmd)
        logger.debug("adb: %s", printable)
        try:
            proc = self._runner(
                cmd,
                capture_output=True,
                text=text,
                timeout=self._settings.adb_command_timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DeviceCommandError(
                f"{type(exc).__name__}: {exc}", command=printable,
            ) from exc
        if proc.returncode != 0:
            stderr = proc.stderr if text else (proc.stderr or b"").decode("utf-8", "ignore")
            raise DeviceCommandError(
                f"adb exited with {proc.returncode}: {printable}",
                command=printable,
                output=stderr or "",
            )
        return proc.stdout

    def __repr__(self) -> str:
        return f"AdbDevice(serial={self._settings.adb_serial or 'default'})"
