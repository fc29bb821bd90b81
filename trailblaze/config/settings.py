"""Configuration defaults for the Trailblaze agent core.

Provides the ``Settings`` dataclass that holds every tunable parameter
for the agent loop, the LLM gateway, the scroll-until-visible search,
and the ADB device adapter.

Typical usage::

    from trailblaze.config.settings import get_default_settings

    settings = get_default_settings()
    print(settings.max_steps)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for the Trailblaze agent core.

    Each attribute group maps to one architectural component.

    Attributes:
        max_steps: Ceiling on LLM round trips for a single objective.
            Reaching it ends the objective with ``MaxCallsLimitReached``.
        chat_history_limit: Number of most recent chat history entries
            sent back to the LLM on every request.  Older entries stay
            in the step's history but are not transmitted.
        llm_model_id: Identifier of the model used by the reference
            Anthropic client.
        llm_supports_vision: Whether the configured model accepts image
            attachments.  Screenshots are only sent when True.
        llm_max_attempts: Total attempts (first call plus retries) for a
            single LLM request before the error propagates.
        llm_retry_base_delay_ms: Delay after the first failed attempt.
        llm_retry_step_delay_ms: Additional delay added for every
            further failed attempt.
        api_timeout_seconds: HTTP timeout for a single LLM request.
        api_max_tokens: ``max_tokens`` sent with every LLM request.
        scroll_timeout_ms: Wall-clock budget for one
            scroll-until-visible search.
        scroll_speed: Swipe speed on a 0-100 scale; converted to a swipe
            duration when ``scroll_swipe_duration_ms`` is not set.
        scroll_swipe_duration_ms: Explicit swipe duration override.  The
            on-device Android driver works best with 400 ms.
        scroll_wait_to_settle_timeout_ms: Optional time the device is
            given to settle after each swipe.
        scroll_max_center_retries: Extra scrolls attempted while trying
            to bring a visible element to the screen center.
        scroll_visibility_percentage: Default percentage (0-100) of an
            element that must be on screen to count as visible.
        adb_path: Name or path of the ``adb`` executable.
        adb_serial: Device serial passed as ``adb -s``.  Empty selects
            the only connected device.
        adb_command_timeout_seconds: Timeout for each ``adb`` invocation.
    """

    # -- Agent loop -----------------------------------------------------------
    max_steps: int = 50
    chat_history_limit: int = 10

    # -- LLM gateway ----------------------------------------------------------
    llm_model_id: str = "claude-sonnet-4-20250514"
    llm_supports_vision: bool = True
    llm_max_attempts: int = 3
    llm_retry_base_delay_ms: int = 1000
    llm_retry_step_delay_ms: int = 3000
    api_timeout_seconds: float = 60.0
    api_max_tokens: int = 4096

    # -- Scroll until visible -------------------------------------------------
    scroll_timeout_ms: int = 20000
    scroll_speed: int = 40
    scroll_swipe_duration_ms: int | None = None
    scroll_wait_to_settle_timeout_ms: int | None = None
    scroll_max_center_retries: int = 4
    scroll_visibility_percentage: int = 100

    # -- Device ---------------------------------------------------------------
    adb_path: str = "adb"
    adb_serial: str = ""
    adb_command_timeout_seconds: float = 30.0

    # -- Factory & serialisation ----------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create a ``Settings`` instance from a plain dictionary.

        Unknown keys are silently ignored so that forward-compatible
        config files do not break older versions.

        Args:
            data: Dictionary whose keys correspond to ``Settings``
                field names.

        Returns:
            A new ``Settings`` instance populated from *data*, with
            defaults filling any missing keys.
        """
        known_names = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_names}
        return cls(**filtered)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the settings to a plain dictionary.

        Returns:
            A shallow dictionary mapping every field name to its
            current value.
        """
        return asdict(self)


def get_default_settings() -> Settings:
    """Return a ``Settings`` instance with all default values.

    Call ``Settings.from_dict`` when you need to overlay user overrides
    on top of the defaults.

    Returns:
        A freshly constructed ``Settings`` with default values.
    """
    return Settings()
