"""Trailblaze main entry point.

Wires the ADB device, the Anthropic client, the LLM gateway, and the
agent runner together and exposes a CLI that runs one prompt step
against a connected Android device.

Typical usage::

    python -m trailblaze.main --direction "Open settings and enable Wi-Fi"
    python -m trailblaze.main --verify "Wi-Fi is shown as connected"

Programmatic usage::

    from trailblaze.main import build_runner

    runner = build_runner(api_key="sk-ant-...")
    status = runner.run(DirectionStep("Open settings"))
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from trailblaze.config.settings import Settings, get_default_settings
from trailblaze.core.agent_runner import AgentRunner
from trailblaze.core.llm_client import AnthropicLlmClient
from trailblaze.core.llm_gateway import LlmGateway
from trailblaze.device.adb import AdbDevice
from trailblaze.models.llm import LlmModel
from trailblaze.models.prompt_step import DirectionStep, PromptStep, VerificationStep
from trailblaze.models.task_status import AgentTaskStatus, ObjectiveFailed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_runner(
    api_key: str = "",
    settings: Settings | None = None,
) -> AgentRunner:
    """Create a fully wired ``AgentRunner`` for an ADB device.

    Args:
        api_key: Anthropic API key.  Falls back to ``ANTHROPIC_API_KEY``.
        settings: Configuration.  Defaults to ``get_default_settings()``.

    Returns:
        A runner ready to execute prompt steps.
    """
    settings = settings or get_default_settings()
    model = LlmModel(
        model_id=settings.llm_model_id,
        supports_vision=settings.llm_supports_vision,
        max_output_tokens=settings.api_max_tokens,
    )
    device = AdbDevice(settings)
    gateway = LlmGateway(AnthropicLlmClient(settings, api_key=api_key), model, settings)
    return AgentRunner(gateway, device, settings)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> None:
    """Parse CLI arguments, run one prompt step, and print the outcome."""
    parser = argparse.ArgumentParser(
        prog="trailblaze",
        description="Drive an Android device with natural-language steps.",
    )
    step_group = parser.add_mutually_exclusive_group(required=True)
    step_group.add_argument(
        "--direction",
        "-d",
        help="An instruction to carry out (e.g. 'Tap on Sign in').",
    )
    step_group.add_argument(
        "--verify",
        help="A condition to verify without changing app state.",
    )
    parser.add_argument(
        "--api-key",
        "-k",
        default="",
        help=(
            "Anthropic API key. Falls back to the ANTHROPIC_API_KEY "
            "environment variable if not provided."
        ),
    )
    parser.add_argument(
        "--serial",
        "-s",
        default="",
        help="Serial of the adb device to use.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Ceiling on LLM round trips for the step.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    api_key: str = args.api_key or os.environ.get("ANTHROPIC_API_KEY", "")
    if not api_key:
        logger.error(
            "No API key provided. Use --api-key or set the "
            "ANTHROPIC_API_KEY environment variable."
        )
        sys.exit(1)

    overrides: dict = {}
    if args.serial:
        overrides["adb_serial"] = args.serial
    if args.max_steps is not None:
        overrides["max_steps"] = args.max_steps
    settings = Settings.from_dict(overrides)

    step: PromptStep = (
        DirectionStep(args.direction)
        if args.direction
        else VerificationStep(args.verify)
    )
    runner = build_runner(api_key=api_key, settings=settings)
    status = runner.run(step)

    _print_status_summary(step, status)
    sys.exit(0 if status.is_success else 1)


def _print_status_summary(step: PromptStep, status: AgentTaskStatus) -> None:
    """Print a human-readable summary of the objective outcome."""
    separator = "-" * 60
    print(separator)
    print(f"Objective:  {step.prompt}")
    print(f"Status:     {type(status).__name__}")
    print(f"LLM calls:  {status.data.call_count}")
    print(f"Duration:   {status.data.total_duration_ms} ms")
    if isinstance(status, ObjectiveFailed) and status.reason:
        print(f"Reason:     {status.reason}")
    print(separator)


if __name__ == "__main__":
    main()
