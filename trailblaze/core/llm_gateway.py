"""LLM gateway: bounded retry around a single LLM call.

Each attempt stamps a fresh prompt id on the request.  Failed attempts
are retried after a linearly growing delay; when the last attempt fails
its exception propagates unchanged.

Typical usage::

    gateway = LlmGateway(AnthropicLlmClient(settings), model, settings)
    response = gateway.call(LlmRequest(messages, tools, ToolChoice.AUTO))
"""

from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from collections.abc import Callable

from trailblaze.config.settings import Settings
from trailblaze.core.llm_client import LlmClient
from trailblaze.models.llm import LlmModel, LlmRequest, LlmResponse

logger = logging.getLogger(__name__)


def retry_delay_ms(
    failed_attempt: int,
    base_delay_ms: int = 1000,
    step_delay_ms: int = 3000,
) -> int:
    """Delay before the attempt that follows *failed_attempt* (1-based).

    >>> retry_delay_ms(1), retry_delay_ms(2)
    (1000, 4000)
    """
    return base_delay_ms + (failed_attempt - 1) * step_delay_ms


class LlmGateway:
    """Sends requests through an ``LlmClient`` with retries.

    Args:
        client: Provider client.
        model: Model every request is sent to.
        settings: Supplies the attempt count and delays.
        sleep_fn: Blocking sleep in seconds; injectable for tests.
    """

    def __init__(
        self,
        client: LlmClient,
        model: LlmModel,
        settings: Settings,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._model = model
        self._settings = settings
        self._sleep = sleep_fn

    @property
    def model(self) -> LlmModel:
        return self._model

    def call(self, request: LlmRequest) -> LlmResponse:
        """Send *request*, retrying failed attempts.

        Raises:
            Exception: Whatever the client raised on the final attempt.
        """
        max_attempts = max(1, self._settings.llm_max_attempts)
        for attempt in range(1, max_attempts + 1):
            attempt_request = dataclasses.replace(
                request, prompt_id=str(uuid.uuid4()),
            )
            try:
                return self._client.execute(attempt_request, self._model)
            except Exception as exc:
                if attempt >= max_attempts:
                    logger.error(
                        "LLM call failed after %d attempts: %s",
                        max_attempts,
                        exc,
                    )
                    raise
                delay_ms = retry_delay_ms(
                    attempt,
                    self._settings.llm_retry_base_delay_ms,
                    self._settings.llm_retry_step_delay_ms,
                )
                logger.warning(
                    "LLM call failed (attempt %d/%d), retrying in %d ms: %s",
                    attempt,
                    max_attempts,
                    delay_ms,
                    exc,
                )
                self._sleep(delay_ms / 1000.0)
        raise AssertionError("unreachable")

    def __repr__(self) -> str:
        return f"LlmGateway(model={self._model.model_id})"
