"""Agent memory: named values remembered across tool calls and steps.

Memory tools store text read from the screen under a variable name.
Tools that take free text (``inputText``, ``openUrl``,
``tapOnElementWithText``, ``scrollUntilTextIsVisible``) interpolate
remembered values into their arguments before running, using either
``${name}`` or ``{{name}}``.  Unknown names are left untouched.

Typical usage::

    memory = AgentMemory()
    memory.remember("order_id", "A-1042")
    memory.interpolate_variables("Order ${order_id}")  # "Order A-1042"
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_VARIABLE_PATTERN = re.compile(r"\$\{\s*(\w+)\s*\}|\{\{\s*(\w+)\s*\}\}")


class AgentMemory:
    """Variables shared by every tool run on one device agent."""

    def __init__(self) -> None:
        self._variables: dict[str, str] = {}

    @property
    def variables(self) -> dict[str, str]:
        """Remembered values (a copy)."""
        return dict(self._variables)

    def remember(self, name: str, value: str) -> None:
        if not name:
            raise ValueError("Variable name must not be empty")
        logger.debug("remember %s = %r", name, value)
        self._variables[name] = value

    def get(self, name: str) -> str | None:
        return self._variables.get(name)

    def clear(self) -> None:
        self._variables.clear()

    def interpolate_variables(self, text: str) -> str:
        """Replace ``${name}`` and ``{{name}}`` with remembered values."""
        if not self._variables:
            return text

        def _substitute(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2)
            value = self._variables.get(name)
            return match.group(0) if value is None else value

        return _VARIABLE_PATTERN.sub(_substitute, text)

    def dump(self) -> str:
        """Log every remembered value and return the same text."""
        lines = [f"{key} : {value}" for key, value in self._variables.items()]
        text = "\n".join(lines) if lines else "(empty)"
        logger.info("agent memory:\n%s", text)
        return text

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __len__(self) -> int:
        return len(self._variables)

    def __repr__(self) -> str:
        return f"AgentMemory(variables={sorted(self._variables)})"
