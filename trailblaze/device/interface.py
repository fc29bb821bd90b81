"""Abstract base class defining the contract for device drivers.

Every device backend (ADB, a simulator bridge, a test double) provides a
concrete subclass of ``DeviceCommandExecutor``.  The agent core only
relies on two things: running a batch of ``DeviceCommand`` objects with a
typed outcome, and producing a fresh ``ScreenState``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from trailblaze.models.commands import DeviceCommand
from trailblaze.models.tool_result import ToolResult
from trailblaze.models.view_hierarchy import DevicePlatform, ScreenState

ScreenStateProvider = Callable[[], ScreenState]


class DeviceCommandError(RuntimeError):
    """A device command could not be executed (e.g. ``adb`` failed).

    Attributes:
        command: Description of the failed command.
        output: Captured output of the failed command, if any.
    """

    def __init__(self, message: str, command: str = "", output: str = "") -> None:
        super().__init__(message)
        self.command = command
        self.output = output


class DeviceCommandExecutor(ABC):
    """Abstract interface for a device under test."""

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @abstractmethod
    def run_commands(
        self,
        commands: Sequence[DeviceCommand],
        trace_id: str | None = None,
    ) -> ToolResult:
        """Validate and run commands in order.

        Execution stops at the first command that does not succeed.

        Args:
            commands: Commands to run.
            trace_id: Identifier used to correlate device logs with the
                LLM turn that caused them.

        Returns:
            ``Success`` if every command ran, otherwise the first error
            (typically ``CommandValidationError``).

        Raises:
            DeviceCommandError: If the transport to the device fails.
        """

    # ------------------------------------------------------------------
    # Screen
    # ------------------------------------------------------------------

    @abstractmethod
    def screen_state(self) -> ScreenState:
        """Capture the current view hierarchy, screenshot, and size."""

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_platform(self) -> DevicePlatform:
        """Return the device platform.  Override in subclasses."""
        return DevicePlatform.ANDROID
