"""Scroll-until-visible controller: swipes until a target element shows.

The screen re-renders after every swipe, so the controller re-fetches
the screen state on each iteration, re-resolves the selector, and
evaluates the element's visible fraction (and, optionally, whether it
sits near the screen center) before deciding to swipe again.  The search
is bounded by a wall-clock timeout; when it expires an
``ElementNotFoundError`` carries a tuning guide and the last view
hierarchy for offline diagnosis.

Dependencies: ``core.element_matcher``, ``device.interface``,
``config.settings``.

Typical usage::

    controller = ScrollUntilVisibleController(device, device.screen_state, settings)
    result = controller.scroll_until_visible(
        ElementSelector.for_text("Checkout"),
        direction=ScrollDirection.DOWN,
        center_element=True,
    )
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from enum import Enum

from trailblaze.config.settings import Settings
from trailblaze.core.element_matcher import find_matching_elements
from trailblaze.device.interface import DeviceCommandExecutor, ScreenStateProvider
from trailblaze.models.commands import ScrollDirection, SwipeCommand, SwipeDirection
from trailblaze.models.selector import ElementSelector
from trailblaze.models.tool_result import Success, ToolResult
from trailblaze.models.view_hierarchy import Bounds, ViewHierarchyNode

logger = logging.getLogger(__name__)

# An element must be at least this visible before centering is attempted.
_MIN_CENTER_VISIBILITY: float = 0.1

# Fraction of the screen on either side of the center that still counts
# as "near the center" along the scroll axis.
_CENTER_MARGIN_FRACTION: float = 0.2

# End point of a swipe that starts at the visual center, as a percentage
# of the screen along the swipe axis.
_CENTER_SWIPE_END_PERCENT: dict[SwipeDirection, int] = {
    SwipeDirection.UP: 10,
    SwipeDirection.DOWN: 90,
    SwipeDirection.LEFT: 10,
    SwipeDirection.RIGHT: 90,
}


class ScrollStartPosition(Enum):
    """Which part of the screen a scroll gesture starts from."""

    TOP = "TOP"
    CENTER = "CENTER"
    BOTTOM = "BOTTOM"


class ElementNotFoundError(Exception):
    """The scroll search timed out without the element becoming visible.

    Attributes:
        message: Short description naming the selector.
        hierarchy_root: The last view hierarchy that was searched.
        debug_message: Multi-line tuning guide for the search parameters.
    """

    def __init__(
        self,
        message: str,
        hierarchy_root: ViewHierarchyNode | None,
        debug_message: str,
    ) -> None:
        super().__init__(f"{message}\n{debug_message}")
        self.message = message
        self.hierarchy_root = hierarchy_root
        self.debug_message = debug_message


def speed_to_duration_ms(speed: int) -> int:
    """Convert a 0-100 swipe speed into a gesture duration.

    Args:
        speed: 0 is the slowest swipe, 100 the fastest.

    Returns:
        Swipe duration in milliseconds.
    """
    clamped = min(100, max(0, speed))
    return 1000 * (100 - clamped) // 100 + 1


def relative_scroll_points(
    start_position: ScrollStartPosition,
    direction: SwipeDirection,
) -> tuple[tuple[int, int], tuple[int, int]]:
    """Return ``(start, end)`` swipe points as screen percentages.

    The pairs are tabulated per swipe direction so that, for example, a
    downward swipe started from the top stays in the upper part of the
    screen while one started from the bottom stays in the lower part.

    Args:
        start_position: Part of the screen to start from.
        direction: Direction the finger travels.

    Returns:
        ``((start_x, start_y), (end_x, end_y))`` in percent.
    """
    if direction == SwipeDirection.LEFT:
        start_x, end_x = 85, 15
    elif direction == SwipeDirection.RIGHT:
        start_x, end_x = 15, 85
    else:
        start_x, end_x = 50, 50

    if direction == SwipeDirection.UP:
        start_y, end_y = {
            ScrollStartPosition.TOP: (40, 15),
            ScrollStartPosition.BOTTOM: (85, 60),
            ScrollStartPosition.CENTER: (85, 15),
        }[start_position]
    elif direction == SwipeDirection.DOWN:
        start_y, end_y = {
            ScrollStartPosition.TOP: (15, 40),
            ScrollStartPosition.BOTTOM: (60, 85),
            ScrollStartPosition.CENTER: (15, 85),
        }[start_position]
    else:
        y = {
            ScrollStartPosition.TOP: 25,
            ScrollStartPosition.BOTTOM: 75,
            ScrollStartPosition.CENTER: 50,
        }[start_position]
        start_y, end_y = y, y

    return (start_x, start_y), (end_x, end_y)


def is_near_screen_center(
    bounds: Bounds,
    direction: SwipeDirection,
    screen_width: int,
    screen_height: int,
) -> bool:
    """Check whether an element sits near the center on the scroll axis.

    Args:
        bounds: Element bounds.
        direction: Swipe direction; vertical swipes test the y axis,
            horizontal swipes the x axis.
        screen_width: Viewport width in pixels.
        screen_height: Viewport height in pixels.

    Returns:
        True if the element center is within the center margin.
    """
    center_x, center_y = bounds.center()
    if direction in (SwipeDirection.UP, SwipeDirection.DOWN):
        margin = screen_height * _CENTER_MARGIN_FRACTION
        return abs(center_y - screen_height / 2) <= margin
    margin = screen_width * _CENTER_MARGIN_FRACTION
    return abs(center_x - screen_width / 2) <= margin


class ScrollUntilVisibleController:
    """Swipes a device until a selector resolves to a visible element.

    Args:
        device: Executor used to issue swipe commands.
        screen_state_provider: Returns a fresh screen state; called once
            per iteration.
        settings: Supplies the default timeout, speed, visibility
            threshold, swipe duration override, and center retries.
        clock: Monotonic clock in seconds; injectable for tests.
    """

    def __init__(
        self,
        device: DeviceCommandExecutor,
        screen_state_provider: ScreenStateProvider,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._device = device
        self._screen_state_provider = screen_state_provider
        self._settings = settings
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scroll_until_visible(
        self,
        selector: ElementSelector,
        direction: ScrollDirection = ScrollDirection.DOWN,
        visibility_percentage: int | None = None,
        center_element: bool = False,
        scroll_start_position: ScrollStartPosition = ScrollStartPosition.CENTER,
        timeout_ms: int | None = None,
        speed: int | None = None,
        wait_to_settle_timeout_ms: int | None = None,
        trace_id: str | None = None,
    ) -> ToolResult:
        """Scroll until the selected element is visible (and centered).

        The method follows this sequence until the timeout expires:

        1. Re-fetch the screen state and device dimensions.
        2. Resolve the selector.  A miss or a matcher error goes straight
           to another swipe.
        3. Compute the element's visible fraction.  When centering is
           requested, the element is at least slightly visible, and the
           center retries are not exhausted, succeed only if the element
           is near the center; otherwise succeed once the visible
           fraction reaches the threshold.
        4. Issue one swipe.  A failed swipe is returned as-is.

        Args:
            selector: The element to look for.
            direction: Direction the content should scroll.
            visibility_percentage: Percentage (0-100) of the element that
                must be on screen.  Defaults to the settings value.
            center_element: Whether to keep scrolling until the element
                is near the screen center.
            scroll_start_position: Where on screen swipes start.
            timeout_ms: Search budget.  Defaults to the settings value.
            speed: Swipe speed (0-100).  Defaults to the settings value.
            wait_to_settle_timeout_ms: Settle time passed with each swipe.
            trace_id: Correlation id for device logs.

        Returns:
            ``Success`` when found, or the error of a failed swipe.

        Raises:
            ElementNotFoundError: If the timeout expires first.
        """
        if visibility_percentage is None:
            visibility_percentage = self._settings.scroll_visibility_percentage
        if timeout_ms is None:
            timeout_ms = self._settings.scroll_timeout_ms
        if speed is None:
            speed = self._settings.scroll_speed
        if wait_to_settle_timeout_ms is None:
            wait_to_settle_timeout_ms = (
                self._settings.scroll_wait_to_settle_timeout_ms
            )

        threshold = visibility_percentage / 100.0
        swipe_direction = direction.to_swipe_direction()
        duration_ms = (
            self._settings.scroll_swipe_duration_ms
            if self._settings.scroll_swipe_duration_ms is not None
            else speed_to_duration_ms(speed)
        )
        max_center_retries = self._settings.scroll_max_center_retries
        end_time = self._clock() + timeout_ms / 1000.0
        retry_center_count = 0
        root: ViewHierarchyNode | None = None

        while True:
            # 1. Fresh state: the screen re-renders after every swipe.
            screen_state = self._screen_state_provider()
            width = screen_state.device_width
            height = screen_state.device_height
            root = screen_state.view_hierarchy

            # 2. Resolve the selector.
            element: ViewHierarchyNode | None = None
            try:
                element = find_matching_elements(root, selector).first()
            except (re.error, ValueError) as exc:
                logger.warning(
                    "scroll: matcher failed for %s: %s",
                    selector.description(),
                    exc,
                )

            # 3. Evaluate visibility / centering.
            if element is not None and element.bounds is not None:
                visibility = element.bounds.visible_fraction(width, height)
                logger.debug(
                    "scroll: try=%d screen=%dx%d bounds=%s visibility=%.2f",
                    retry_center_count,
                    width,
                    height,
                    element.bounds,
                    visibility,
                )
                if (
                    center_element
                    and visibility > _MIN_CENTER_VISIBILITY
                    and retry_center_count <= max_center_retries
                ):
                    if is_near_screen_center(
                        element.bounds, swipe_direction, width, height,
                    ):
                        logger.info(
                            "scroll: %s centered", selector.description(),
                        )
                        return Success()
                    retry_center_count += 1
                elif visibility >= threshold:
                    logger.info(
                        "scroll: %s visible (%.0f%%)",
                        selector.description(),
                        visibility * 100,
                    )
                    return Success()

            # 4. Swipe once.
            swipe = self._build_swipe(
                scroll_start_position,
                swipe_direction,
                width,
                height,
                duration_ms,
                wait_to_settle_timeout_ms,
            )
            result = self._device.run_commands([swipe], trace_id)
            if not result.is_success:
                logger.warning("scroll: swipe failed: %s", result)
                return result

            if self._clock() >= end_time:
                break

        debug_message = build_not_found_debug_message(
            selector=selector,
            timeout_ms=timeout_ms,
            speed=speed,
            wait_to_settle_timeout_ms=wait_to_settle_timeout_ms,
            visibility_percentage=visibility_percentage,
            center_element=center_element,
        )
        raise ElementNotFoundError(
            message=f"No visible element found: {selector.description()}",
            hierarchy_root=root,
            debug_message=debug_message,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_swipe(
        start_position: ScrollStartPosition,
        direction: SwipeDirection,
        width: int,
        height: int,
        duration_ms: int,
        wait_to_settle_timeout_ms: int | None,
    ) -> SwipeCommand:
        """Build the swipe for one scroll iteration.

        A ``CENTER`` start swipes from the visual center of the screen;
        other start positions use the tabulated relative points.
        """
        if start_position == ScrollStartPosition.CENTER:
            start = (width // 2, height // 2)
            end_percent = _CENTER_SWIPE_END_PERCENT[direction]
            if direction in (SwipeDirection.UP, SwipeDirection.DOWN):
                end = (width // 2, height * end_percent // 100)
            else:
                end = (width * end_percent // 100, height // 2)
            return SwipeCommand(
                start=start,
                end=end,
                duration_ms=duration_ms,
                wait_to_settle_timeout_ms=wait_to_settle_timeout_ms,
            )

        (sx, sy), (ex, ey) = relative_scroll_points(start_position, direction)
        return SwipeCommand(
            start=(width * sx // 100, height * sy // 100),
            end=(width * ex // 100, height * ey // 100),
            duration_ms=duration_ms,
            wait_to_settle_timeout_ms=wait_to_settle_timeout_ms,
        )

    def __repr__(self) -> str:
        return f"ScrollUntilVisibleController(device={self._device!r})"


def build_not_found_debug_message(
    selector: ElementSelector,
    timeout_ms: int,
    speed: int,
    wait_to_settle_timeout_ms: int | None,
    visibility_percentage: int,
    center_element: bool,
) -> str:
    """Render the tuning guide attached to ``ElementNotFoundError``."""
    if speed > 50:
        speed_advice = (
            "Reduce for slower, more precise scrolling to avoid "
            "overshooting elements"
        )
    else:
        speed_advice = "Increase for faster scrolling if element is far away"

    if wait_to_settle_timeout_ms is None:
        settle_value = "Not defined"
        settle_advice = (
            "Set this value (e.g., 500ms) if your UI updates frequently "
            "between scrolls"
        )
    else:
        settle_value = f"{wait_to_settle_timeout_ms}ms"
        settle_advice = (
            "Increase if your UI needs more time to update between scrolls"
        )

    if center_element:
        center_advice = (
            "Disable if you don't need the element to be centered after "
            "finding it"
        )
    else:
        center_advice = (
            "Enable if you want the element to be centered after finding it"
        )

    lines = [
        "Could not find a visible element matching selector: "
        f"{selector.description()}",
        "Tip: Try adjusting the following settings to improve detection:",
        f"- `timeout`: current = {timeout_ms}ms -> Increase if you need "
        "more time to find the element",
        f"- `speed`: current = {speed} (0-100 scale) -> {speed_advice}",
        f"- `waitToSettleTimeoutMs`: current = {settle_value} -> "
        f"{settle_advice}",
        f"- `visibilityPercentage`: current = {visibility_percentage}% -> "
        "Lower this value if you want to detect partially visible elements",
        f"- `centerElement`: current = {center_element} -> {center_advice}",
    ]
    return "\n".join(lines)
