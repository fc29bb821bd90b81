"""Device agent: runs resolved tools against a device.

Command tools are translated into ``DeviceCommand`` objects and sent to
the device executor in one batch; executable tools run themselves with
a ``ToolExecutionContext``.  Execution stops at the first tool whose
result is not ``Success``.

The agent owns the ``AgentMemory`` shared by every tool it runs, so
values remembered in one step are available to later steps.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from trailblaze.core.agent_memory import AgentMemory
from trailblaze.core.scroll_controller import ScrollUntilVisibleController
from trailblaze.core.tools import (
    CommandTool,
    ExecutableTool,
    ToolExecutionContext,
    TrailblazeTool,
)
from trailblaze.device.interface import DeviceCommandExecutor
from trailblaze.models.tool_result import Success, ToolResult, UnknownTrailblazeTool
from trailblaze.models.view_hierarchy import ScreenState

logger = logging.getLogger(__name__)


class DeviceAgent:
    """Executes tools on one device.

    Args:
        device: The device command executor.
        scroll_controller: Controller handed to scroll tools.
        memory: Agent memory.  A fresh, empty one is created when
            omitted.
    """

    def __init__(
        self,
        device: DeviceCommandExecutor,
        scroll_controller: ScrollUntilVisibleController,
        memory: AgentMemory | None = None,
    ) -> None:
        self._device = device
        self._scroll_controller = scroll_controller
        self._memory = memory if memory is not None else AgentMemory()

    @property
    def device(self) -> DeviceCommandExecutor:
        return self._device

    @property
    def memory(self) -> AgentMemory:
        return self._memory

    def run_tools(
        self,
        tools: Sequence[TrailblazeTool],
        screen_state: ScreenState | None,
        trace_id: str | None = None,
    ) -> ToolResult:
        """Run *tools* in order and return the first non-success result.

        Args:
            tools: Resolved tools.
            screen_state: Snapshot the tools act upon.
            trace_id: Trace identifier of the current LLM turn.

        Returns:
            ``Success`` if every tool succeeded, otherwise the first
            error.  A tool the agent cannot run yields
            ``UnknownTrailblazeTool``.
        """
        context = ToolExecutionContext(
            screen_state=screen_state,
            device=self._device,
            scroll_controller=self._scroll_controller,
            trace_id=trace_id,
            memory=self._memory,
        )
        for tool in tools:
            if isinstance(tool, ExecutableTool):
                result = tool.execute(context)
            elif isinstance(tool, CommandTool):
                commands = tool.to_commands(self._memory)
                logger.debug(
                    "%s -> %s", tool.name, [c.to_dict() for c in commands],
                )
                result = self._device.run_commands(commands, trace_id)
            else:
                result = UnknownTrailblazeTool(tool.name)
            if not result.is_success:
                return result
        return Success()

    def __repr__(self) -> str:
        return f"DeviceAgent(device={self._device!r})"
