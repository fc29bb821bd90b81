"""View hierarchy and screen state models.

A ``ScreenState`` is a snapshot of the device at one moment: the view
hierarchy tree, an optional PNG screenshot, the device dimensions, and
the platform.  The agent loop refreshes it once per iteration and the
scroll controller refreshes it between swipes.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DevicePlatform(Enum):
    """Platform of the device under test.

    Attributes:
        ANDROID: An Android phone, tablet, or emulator.
        IOS: An iOS device or simulator.
        WEB: A browser page.
    """

    ANDROID = "android"
    IOS = "ios"
    WEB = "web"

    @property
    def display_name(self) -> str:
        """Human-readable platform name used in prompts."""
        return {
            DevicePlatform.ANDROID: "Android",
            DevicePlatform.IOS: "iOS",
            DevicePlatform.WEB: "Web",
        }[self]


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned element bounds in device pixels.

    ``(x1, y1)`` is the top-left corner and ``(x2, y2)`` the bottom-right
    corner, matching the ``[x1,y1][x2,y2]`` format of uiautomator dumps.
    """

    x1: int
    y1: int
    x2: int
    y2: int

    def __post_init__(self) -> None:
        """Validate that the corners are ordered."""
        if self.x2 < self.x1 or self.y2 < self.y1:
            raise ValueError(
                f"Bounds corners out of order: "
                f"[{self.x1},{self.y1}][{self.x2},{self.y2}]"
            )

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    def center(self) -> tuple[int, int]:
        """Return the center point as integer pixel coordinates."""
        return (self.x1 + self.width // 2, self.y1 + self.height // 2)

    def visible_fraction(self, screen_width: int, screen_height: int) -> float:
        """Return the fraction (0-1) of the bounds inside the viewport.

        Elements larger than the screen in every direction count as fully
        visible.  Zero-area bounds are never visible.

        Args:
            screen_width: Viewport width in pixels.
            screen_height: Viewport height in pixels.

        Returns:
            Visible area divided by total area.
        """
        if self.width == 0 or self.height == 0:
            return 0.0
        if (
            self.x1 <= 0
            and self.y1 <= 0
            and self.x2 >= screen_width
            and self.y2 >= screen_height
        ):
            return 1.0
        visible_x = max(0, min(self.x2, screen_width) - max(self.x1, 0))
        visible_y = max(0, min(self.y2, screen_height) - max(self.y1, 0))
        return (visible_x * visible_y) / (self.width * self.height)

    def __str__(self) -> str:
        return f"[{self.x1},{self.y1}][{self.x2},{self.y2}]"


@dataclass
class ViewHierarchyNode:
    """One node of the device view hierarchy.

    Attributes:
        node_id: Sequential identifier assigned while parsing, stable for
            one snapshot only.
        text: Visible text of the element.
        resource_id: Platform resource identifier (Android
            ``resource-id``, iOS accessibility identifier).
        accessibility_text: Content description / accessibility label.
        class_name: Platform widget class.
        bounds: On-screen bounds, or ``None`` for nodes the platform did
            not lay out.
        clickable: Whether the element accepts taps.
        enabled: Whether the element is enabled.
        focused: Whether the element holds input focus.
        scrollable: Whether the element is a scroll container.
        children: Child nodes in document order.
    """

    node_id: int = 0
    text: str = ""
    resource_id: str = ""
    accessibility_text: str = ""
    class_name: str = ""
    bounds: Bounds | None = None
    clickable: bool = False
    enabled: bool = True
    focused: bool = False
    scrollable: bool = False
    children: list[ViewHierarchyNode] = field(default_factory=list)

    def iter_nodes(self) -> Iterator[ViewHierarchyNode]:
        """Yield this node and all descendants depth-first, in order."""
        stack: list[ViewHierarchyNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        """Return a compact JSON-ready dict.  Empty fields are omitted."""
        data: dict[str, Any] = {"nodeId": self.node_id}
        if self.text:
            data["text"] = self.text
        if self.resource_id:
            data["resourceId"] = self.resource_id
        if self.accessibility_text:
            data["accessibilityText"] = self.accessibility_text
        if self.class_name:
            data["className"] = self.class_name
        if self.bounds is not None:
            data["bounds"] = str(self.bounds)
        if self.clickable:
            data["clickable"] = True
        if not self.enabled:
            data["enabled"] = False
        if self.focused:
            data["focused"] = True
        if self.scrollable:
            data["scrollable"] = True
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class ScreenState:
    """Snapshot of the device screen.

    Attributes:
        view_hierarchy: Root of the view hierarchy tree.
        device_width: Screen width in pixels.
        device_height: Screen height in pixels.
        platform: Platform of the device.
        screenshot_bytes: PNG-encoded screenshot, or ``None`` when the
            provider did not capture one.
    """

    view_hierarchy: ViewHierarchyNode
    device_width: int
    device_height: int
    platform: DevicePlatform = DevicePlatform.ANDROID
    screenshot_bytes: bytes | None = None
