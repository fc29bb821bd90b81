"""Element matcher: resolves an ``ElementSelector`` against a view tree.

Both the tap/assert tools and the scroll-until-visible controller locate
their target through this module, so every consumer agrees on what
"matches" means:

* ``text_regex`` must fully match the node text or its accessibility
  text (case-insensitive, ``.`` spans newlines).  A literal equality or
  a match after collapsing newlines to spaces also counts.
* ``id_regex`` must fully match the resource id.
* Nodes without on-screen bounds are never matched.
* Matches are ordered top-to-bottom then left-to-right.  An ``index``
  selects the n-th one; without it the first one is the tie-break.

Typical usage::

    from trailblaze.core.element_matcher import find_matching_elements
    from trailblaze.models.selector import ElementSelector

    matches = find_matching_elements(
        root, ElementSelector.for_text("Sign in"),
    )
    node = matches.first()
"""

from __future__ import annotations

import logging
import re

from trailblaze.models.selector import (
    ElementMatches,
    ElementSelector,
    MultipleMatches,
    NoMatches,
    SingleMatch,
)
from trailblaze.models.view_hierarchy import ViewHierarchyNode

logger = logging.getLogger(__name__)

_TEXT_FLAGS = re.IGNORECASE | re.DOTALL


def find_matching_elements(
    root: ViewHierarchyNode,
    selector: ElementSelector,
) -> ElementMatches:
    """Return every node under *root* that satisfies *selector*.

    Args:
        root: Root of the view hierarchy.
        selector: The selector to resolve.

    Returns:
        ``NoMatches``, ``SingleMatch``, or ``MultipleMatches``.

    Raises:
        re.error: If a selector regex does not compile.
    """
    text_pattern = (
        re.compile(selector.text_regex, _TEXT_FLAGS)
        if selector.text_regex is not None
        else None
    )
    id_pattern = (
        re.compile(selector.id_regex)
        if selector.id_regex is not None
        else None
    )

    matches: list[ViewHierarchyNode] = []
    for node in root.iter_nodes():
        if node.bounds is None:
            continue
        if text_pattern is not None and not _text_matches(
            text_pattern, selector.text_regex or "", node,
        ):
            continue
        if id_pattern is not None and not id_pattern.fullmatch(
            node.resource_id
        ):
            continue
        matches.append(node)

    # One ordering for both the index and the first-match tie-break.
    ordered = sorted(
        matches,
        key=lambda n: (n.bounds.y1, n.bounds.x1),  # type: ignore[union-attr]
    )

    if selector.index is not None:
        if selector.index >= len(ordered):
            logger.debug(
                "selector %s: index out of range (%d matches)",
                selector.description(),
                len(ordered),
            )
            return NoMatches()
        return SingleMatch(ordered[selector.index])

    if not ordered:
        return NoMatches()
    if len(ordered) == 1:
        return SingleMatch(ordered[0])
    return MultipleMatches(tuple(ordered))


def _text_matches(
    pattern: re.Pattern[str],
    raw_pattern: str,
    node: ViewHierarchyNode,
) -> bool:
    for value in (node.text, node.accessibility_text):
        if not value:
            continue
        if value == raw_pattern:
            return True
        if pattern.fullmatch(value):
            return True
        if "\n" in value and pattern.fullmatch(value.replace("\n", " ")):
            return True
    return False
