"""Element selectors and match results.

An ``ElementSelector`` describes which view hierarchy node a tool wants
to act on.  The element matcher resolves it against a tree and returns
one of the ``ElementMatches`` variants.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from trailblaze.models.view_hierarchy import ViewHierarchyNode


@dataclass(frozen=True)
class ElementSelector:
    """Immutable description of a target element.

    Attributes:
        text_regex: Regular expression the node's text (or accessibility
            text) must fully match.
        id_regex: Regular expression the node's resource id must fully
            match.
        index: 0-based position among the matches, ordered top-to-bottom
            then left-to-right.  ``None`` when the first match is wanted.
    """

    text_regex: str | None = None
    id_regex: str | None = None
    index: int | None = None

    def __post_init__(self) -> None:
        """Reject selectors that cannot match anything meaningful."""
        if self.text_regex is None and self.id_regex is None:
            raise ValueError("ElementSelector needs text_regex or id_regex")
        if self.index is not None and self.index < 0:
            raise ValueError(f"index must be >= 0, got {self.index}")

    @classmethod
    def for_text(
        cls,
        text: str | None,
        element_id: str | None = None,
        index: int = 0,
    ) -> ElementSelector:
        """Build the "contains this text" selector used by the tools.

        Args:
            text: Literal text that must appear anywhere in the element
                text.  Regex metacharacters are escaped.
            element_id: Optional resource id regex.
            index: 0-based disambiguation index; 0 is stored as ``None``.

        Returns:
            A new ``ElementSelector``.
        """
        text_regex = f".*{re.escape(text)}.*" if text else None
        return cls(
            text_regex=text_regex,
            id_regex=element_id or None,
            index=index or None,
        )

    def description(self) -> str:
        """Human-readable rendering for logs and diagnostics."""
        parts: list[str] = []
        if self.text_regex is not None:
            parts.append(f'text="{self.text_regex}"')
        if self.id_regex is not None:
            parts.append(f'id="{self.id_regex}"')
        if self.index is not None:
            parts.append(f"index={self.index}")
        return ", ".join(parts)


class ElementMatches:
    """Result of resolving a selector.  Use the concrete subclasses."""

    def first(self) -> ViewHierarchyNode | None:
        """Return the deterministic tie-break match, if any."""
        raise NotImplementedError


@dataclass(frozen=True)
class NoMatches(ElementMatches):
    """No node satisfied the selector."""

    def first(self) -> ViewHierarchyNode | None:
        return None


@dataclass(frozen=True)
class SingleMatch(ElementMatches):
    """Exactly one node satisfied the selector."""

    node: ViewHierarchyNode

    def first(self) -> ViewHierarchyNode | None:
        return self.node


@dataclass(frozen=True)
class MultipleMatches(ElementMatches):
    """Several nodes satisfied the selector, top-to-bottom then left-to-right."""

    nodes: tuple[ViewHierarchyNode, ...]

    def first(self) -> ViewHierarchyNode | None:
        return self.nodes[0]
