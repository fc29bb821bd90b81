"""Tests for Trailblaze configuration and settings.

Covers default values, serialisation round-trip, immutability, and
forward-compatible dict loading.
"""

from __future__ import annotations

import dataclasses

import pytest

from trailblaze.config.settings import Settings, get_default_settings


class TestGetDefaultSettings:
    """Tests for the get_default_settings factory function."""

    def test_returns_settings_instance(self) -> None:
        assert isinstance(get_default_settings(), Settings)

    def test_max_steps_default(self) -> None:
        """Default step ceiling is 50."""
        assert get_default_settings().max_steps == 50

    def test_llm_max_attempts_default(self) -> None:
        assert get_default_settings().llm_max_attempts == 3

    def test_retry_delays_default(self) -> None:
        s = get_default_settings()
        assert s.llm_retry_base_delay_ms == 1000
        assert s.llm_retry_step_delay_ms == 3000

    def test_scroll_defaults(self) -> None:
        s = get_default_settings()
        assert s.scroll_max_center_retries == 4
        assert s.scroll_visibility_percentage == 100
        assert s.scroll_swipe_duration_ms is None
        assert s.scroll_wait_to_settle_timeout_ms is None

    def test_chat_history_limit_default(self) -> None:
        assert get_default_settings().chat_history_limit == 10


class TestSettingsImmutability:
    def test_cannot_assign(self) -> None:
        s = get_default_settings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.max_steps = 10  # type: ignore[misc]


class TestSettingsFromDict:
    def test_overrides_known_keys(self) -> None:
        s = Settings.from_dict({"max_steps": 7, "adb_serial": "emulator-5554"})
        assert s.max_steps == 7
        assert s.adb_serial == "emulator-5554"

    def test_missing_keys_use_defaults(self) -> None:
        s = Settings.from_dict({"max_steps": 7})
        assert s.llm_max_attempts == 3

    def test_unknown_keys_ignored(self) -> None:
        s = Settings.from_dict({"no_such_setting": True})
        assert s == get_default_settings()

    def test_round_trip(self) -> None:
        s = Settings.from_dict({"scroll_swipe_duration_ms": 400})
        assert Settings.from_dict(s.to_dict()) == s

    def test_to_dict_contains_every_field(self) -> None:
        d = get_default_settings().to_dict()
        assert set(d) == {f.name for f in dataclasses.fields(Settings)}
