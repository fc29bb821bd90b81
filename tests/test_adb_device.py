"""Unit tests for trailblaze.device.adb.

``subprocess.run`` is replaced by a FakeRunner that records every
command line and answers from a lookup table.
"""

from __future__ import annotations

import subprocess

import pytest

from trailblaze.config.settings import Settings
from trailblaze.device.adb import AdbDevice, parse_uiautomator_xml
from trailblaze.device.interface import DeviceCommandError
from trailblaze.models.commands import (
    BackPressCommand,
    EraseTextCommand,
    InputTextCommand,
    LaunchAppCommand,
    OpenLinkCommand,
    SwipeCommand,
    TapPointCommand,
    WaitCommand,
)
from trailblaze.models.tool_result import CommandValidationError, Success
from trailblaze.models.view_hierarchy import Bounds

_DUMP = """UI hierchary dumped to: /sdcard/window_dump.xml
<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<hierarchy rotation="0">
  <node index="0" text="" resource-id="" class="android.widget.FrameLayout"
        content-desc="" clickable="false" enabled="true" focused="false"
        scrollable="false" bounds="[0,0][1080,2400]">
    <node index="0" text="Sign in" resource-id="com.app:id/login"
          class="android.widget.Button" content-desc="Sign in button"
          clickable="true" enabled="true" focused="false" scrollable="false"
          bounds="[100,200][300,260]" />
    <node index="1" text="" resource-id="com.app:id/list"
          class="androidx.recyclerview.widget.RecyclerView" content-desc=""
          clickable="false" enabled="false" focused="false" scrollable="true"
          bounds="[0,300][1080,2400]" />
  </node>
</hierarchy>
"""


class FakeRunner:
    """Records adb invocations; answers ``wm size`` and dump commands."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[list[str]] = []
        self.fail_on = fail_on

    def __call__(self, cmd, capture_output, text, timeout, check):
        self.calls.append(cmd)
        joined = " ".join(cmd)
        if self.fail_on and self.fail_on in joined:
            return subprocess.CompletedProcess(cmd, 1, "", "error: device offline")
        if "wm size" in joined:
            out = "Physical size: 1080x2400\n"
        elif "cat /sdcard/window_dump.xml" in joined:
            out = _DUMP
        elif "screencap" in joined:
            out = b"\x89PNG"
        else:
            out = "" if text else b""
        return subprocess.CompletedProcess(cmd, 0, out, "" if text else b"")


def _make_device(
    runner: FakeRunner,
    serial: str = "",
    sleeps: list[float] | None = None,
) -> AdbDevice:
    settings = Settings(adb_serial=serial)
    sleep_fn = sleeps.append if sleeps is not None else (lambda _s: None)
    return AdbDevice(settings, runner=runner, sleep_fn=sleep_fn)


def _shell_calls(runner: FakeRunner) -> list[list[str]]:
    return [c[c.index("shell") + 1:] for c in runner.calls if "shell" in c]


class TestParseUiautomatorXml:
    def test_parses_tree(self) -> None:
        root = parse_uiautomator_xml(_DUMP)
        assert root.class_name == "android.widget.FrameLayout"
        button, listing = root.children
        assert button.text == "Sign in"
        assert button.resource_id == "com.app:id/login"
        assert button.accessibility_text == "Sign in button"
        assert button.bounds == Bounds(100, 200, 300, 260)
        assert button.clickable
        assert listing.scrollable
        assert not listing.enabled

    def test_node_ids_are_sequential(self) -> None:
        root = parse_uiautomator_xml(_DUMP)
        assert [n.node_id for n in root.iter_nodes()] == [1, 2, 3]

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_uiautomator_xml("ERROR: could not get idle state.")


class TestScreenState:
    def test_screen_state(self) -> None:
        runner = FakeRunner()
        state = _make_device(runner).screen_state()
        assert (state.device_width, state.device_height) == (1080, 2400)
        assert state.screenshot_bytes == b"\x89PNG"
        assert state.view_hierarchy.children[0].text == "Sign in"

    def test_override_size_wins(self) -> None:
        runner = FakeRunner()
        device = _make_device(runner)

        def sized_runner(cmd, **kwargs):
            runner.calls.append(cmd)
            return subprocess.CompletedProcess(
                cmd, 0, "Physical size: 1080x2400\nOverride size: 720x1600\n", "",
            )

        device._runner = sized_runner
        assert device.screen_size() == (720, 1600)

    def test_serial_is_passed(self) -> None:
        runner = FakeRunner()
        _make_device(runner, serial="emulator-5554").screen_size()
        assert runner.calls[0][:3] == ["adb", "-s", "emulator-5554"]

    def test_failed_dump_raises(self) -> None:
        runner = FakeRunner(fail_on="uiautomator dump")
        with pytest.raises(DeviceCommandError) as exc_info:
            _make_device(runner).screen_state()
        assert "device offline" in exc_info.value.output


class TestRunCommands:
    def test_tap(self) -> None:
        runner = FakeRunner()
        result = _make_device(runner).run_commands([TapPointCommand(10, 20)])
        assert result == Success()
        assert ["input", "tap", "10", "20"] in _shell_calls(runner)

    def test_off_screen_tap_is_rejected(self) -> None:
        runner = FakeRunner()
        result = _make_device(runner).run_commands([TapPointCommand(2000, 20)])
        assert isinstance(result, CommandValidationError)
        assert result.command["x"] == 2000
        assert all(c[:2] != ["input", "tap"] for c in _shell_calls(runner))

    def test_stops_at_first_rejected_command(self) -> None:
        runner = FakeRunner()
        _make_device(runner).run_commands(
            [SwipeCommand(start=(0, 0), end=(0, 5000)), BackPressCommand()],
        )
        assert ["input", "keyevent", "4"] not in _shell_calls(runner)

    def test_swipe_with_settle_time(self) -> None:
        runner = FakeRunner()
        sleeps: list[float] = []
        _make_device(runner, sleeps=sleeps).run_commands(
            [SwipeCommand((500, 1800), (500, 600), 601, wait_to_settle_timeout_ms=500)],
        )
        assert ["input", "swipe", "500", "1800", "500", "600", "601"] in _shell_calls(runner)
        assert sleeps == [0.5]

    def test_input_text_encodes_spaces(self) -> None:
        runner = FakeRunner()
        _make_device(runner).run_commands([InputTextCommand("hello world")])
        assert ["input", "text", "hello%sworld"] in _shell_calls(runner)

    def test_erase_text(self) -> None:
        runner = FakeRunner()
        _make_device(runner).run_commands([EraseTextCommand(3)])
        assert ["input", "keyevent", "67", "67", "67"] in _shell_calls(runner)

    def test_open_link(self) -> None:
        runner = FakeRunner()
        _make_device(runner).run_commands([OpenLinkCommand("https://example.com")])
        calls = _shell_calls(runner)
        assert calls[-1][:4] == ["am", "start", "-a", "android.intent.action.VIEW"]

    def test_launch_app_force_stops_first(self) -> None:
        runner = FakeRunner()
        _make_device(runner).run_commands([LaunchAppCommand("com.app")])
        calls = _shell_calls(runner)
        assert ["am", "force-stop", "com.app"] in calls
        assert calls[-1][:3] == ["monkey", "-p", "com.app"]

    def test_wait_sleeps(self) -> None:
        runner = FakeRunner()
        sleeps: list[float] = []
        _make_device(runner, sleeps=sleeps).run_commands([WaitCommand(1500)])
        assert sleeps == [1.5]

    def test_adb_failure_raises(self) -> None:
        runner = FakeRunner(fail_on="keyevent")
        with pytest.raises(DeviceCommandError):
            _make_device(runner).run_commands([BackPressCommand()])

    def test_missing_adb_binary_raises(self) -> None:
        def missing(cmd, **kwargs):
            raise FileNotFoundError("adb")

        device = AdbDevice(Settings(), runner=missing)
        with pytest.raises(DeviceCommandError):
            device.screen_size()
