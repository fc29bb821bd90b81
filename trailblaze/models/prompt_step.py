"""Prompt steps: the natural-language objectives the agent executes.

A trail is a list of prompt steps.  A ``DirectionStep`` tells the agent
to do something ("tap the login button"); a ``VerificationStep`` asks it
to check something ("the total is visible").  The step kind selects how
many tool calls the agent may execute per LLM turn.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptStep:
    """Base class for a single objective.

    Attributes:
        text: The natural-language objective.
    """

    text: str

    @property
    def prompt(self) -> str:
        """The objective text as sent to the LLM."""
        return self.text


@dataclass(frozen=True)
class DirectionStep(PromptStep):
    """An imperative instruction the agent must carry out."""


@dataclass(frozen=True)
class VerificationStep(PromptStep):
    """An assertion the agent must check without changing app state."""
