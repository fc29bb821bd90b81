"""Prompt templates and the ``{{name}}`` template renderer.

Templates are plain module-level strings.  Placeholders use the
``{{name}}`` syntax; rendering fails loudly when a placeholder has no
value, since a half-rendered prompt would silently confuse the model.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class TemplateRenderError(ValueError):
    """A template placeholder had no value."""


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{name}}`` placeholder in *template*.

    Args:
        template: Template text.
        values: Placeholder values.  Extra keys are ignored.

    Returns:
        The rendered text.

    Raises:
        TemplateRenderError: If a placeholder has no value.
    """
    missing = sorted(
        {m.group(1) for m in _PLACEHOLDER.finditer(template)} - set(values)
    )
    if missing:
        raise TemplateRenderError(
            f"Missing template values: {', '.join(missing)}"
        )
    return _PLACEHOLDER.sub(lambda m: str(values[m.group(1)]), template)


SYSTEM_PROMPT_TEMPLATE = """\
You are an assistant that drives a {{device_platform}} device to carry \
out a user's objective in a mobile app.

On every turn you receive the objective, the history of your previous \
actions with their results, the current view hierarchy as JSON and, when \
available, a screenshot of the screen.

Rules:
- Act only through the tools you are given. Call exactly one tool per \
turn unless told otherwise.
- Prefer tools that target elements by their text over tapping on raw \
coordinates.
- If a tool result is an error, read it carefully and try a different \
approach.
- Report progress with the objectiveStatus tool. Use 'completed' only \
when the objective is fully achieved and 'failed' only when it cannot \
be achieved.
"""

USER_OBJECTIVE_TEMPLATE = """\
Here is the objective for this step:

{{objective}}
"""

USER_MESSAGE_TEMPLATE = """\
The current view hierarchy is:

{{view_hierarchy}}

Decide on the next action that moves the objective forward.
"""

DIRECTION_REMINDER = """\
Reminder: perform the objective by calling one tool at a time. Once the \
objective is achieved, call objectiveStatus with status 'completed'. If \
it cannot be achieved, call objectiveStatus with status 'failed' and \
explain why.
"""

DIRECTION_STATUS_UPDATE_REMINDER = """\
Reminder: your last action succeeded. Look at the new screen. If the \
objective is now achieved, call objectiveStatus with status \
'completed'. Otherwise call the next tool, or call objectiveStatus with \
status 'in_progress' and explain what remains.
"""

VERIFICATION_REMINDER = """\
Reminder: this is a verification step. Do not change the state of the \
app. Use the assertion tools to check the objective, then call \
objectiveStatus with status 'completed' if every check passed or \
'failed' if any check failed.
"""

VERIFICATION_STATUS_UPDATE_REMINDER = """\
Reminder: this is a verification step. Your previous checks have run; \
report the outcome now by calling objectiveStatus with status \
'completed' or 'failed'.
"""
