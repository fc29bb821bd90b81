"""Device commands: the low-level actions a device executor runs.

Tools translate the model's intent into these commands; a
``DeviceCommandExecutor`` validates and executes them.  Each command
knows how to describe itself as a plain dict for logs and error
payloads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class SwipeDirection(Enum):
    """Direction the finger travels during a swipe."""

    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class ScrollDirection(Enum):
    """Direction the content moves into view.

    Scrolling down reveals content below, which means swiping up.
    """

    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"

    def to_swipe_direction(self) -> SwipeDirection:
        return {
            ScrollDirection.DOWN: SwipeDirection.UP,
            ScrollDirection.UP: SwipeDirection.DOWN,
            ScrollDirection.RIGHT: SwipeDirection.LEFT,
            ScrollDirection.LEFT: SwipeDirection.RIGHT,
        }[self]


class DeviceCommand:
    """Base class for device commands."""

    def to_dict(self) -> dict[str, Any]:
        data = {"command": type(self).__name__}
        data.update(
            {
                k: (v.value if isinstance(v, Enum) else v)
                for k, v in asdict(self).items()
            }
        )
        return data


@dataclass(frozen=True)
class TapPointCommand(DeviceCommand):
    x: int
    y: int
    long_press: bool = False


@dataclass(frozen=True)
class SwipeCommand(DeviceCommand):
    """Swipe between two absolute points.

    Attributes:
        start: ``(x, y)`` start point in pixels.
        end: ``(x, y)`` end point in pixels.
        duration_ms: Duration of the gesture.
        wait_to_settle_timeout_ms: Optional settle time after the swipe.
    """

    start: tuple[int, int]
    end: tuple[int, int]
    duration_ms: int = 400
    wait_to_settle_timeout_ms: int | None = None


@dataclass(frozen=True)
class InputTextCommand(DeviceCommand):
    text: str


@dataclass(frozen=True)
class EraseTextCommand(DeviceCommand):
    characters: int = 50


@dataclass(frozen=True)
class BackPressCommand(DeviceCommand):
    pass


@dataclass(frozen=True)
class HideKeyboardCommand(DeviceCommand):
    pass


@dataclass(frozen=True)
class OpenLinkCommand(DeviceCommand):
    link: str


@dataclass(frozen=True)
class LaunchAppCommand(DeviceCommand):
    app_id: str
    stop_app: bool = True


@dataclass(frozen=True)
class WaitCommand(DeviceCommand):
    milliseconds: int
