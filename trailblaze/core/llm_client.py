"""LLM clients: the transport behind the LLM gateway.

``LlmClient`` is the narrow interface the gateway depends on.
``AnthropicLlmClient`` implements it on top of the Anthropic Messages API
using ``httpx`` and native tool use.  A single call makes a single HTTP
request; retries belong to the gateway.

Typical usage::

    client = AnthropicLlmClient(settings)
    response = client.execute(request, model)
    for call in response.tool_calls:
        print(call.name, call.arguments)
"""

from __future__ import annotations

import base64
import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import httpx

from trailblaze.config.settings import Settings
from trailblaze.models.llm import (
    LlmMessage,
    LlmModel,
    LlmRequest,
    LlmResponse,
    LlmToolCall,
    MessageRole,
    ToolChoice,
)

logger = logging.getLogger(__name__)

_API_URL: str = "https://api.anthropic.com/v1/messages"
"""Anthropic Messages API endpoint."""

_API_VERSION: str = "2023-06-01"
"""Anthropic API version header value."""


class LlmTransportError(RuntimeError):
    """The LLM request failed in transport or with a non-200 status.

    Attributes:
        status_code: HTTP status code, or ``None`` for network errors.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LlmClient(ABC):
    """Sends one request to an LLM provider."""

    @abstractmethod
    def execute(self, request: LlmRequest, model: LlmModel) -> LlmResponse:
        """Send *request* to *model* once.

        Raises:
            Exception: Any transport failure; the gateway retries it.
        """


class AnthropicLlmClient(LlmClient):
    """``LlmClient`` for the Anthropic Messages API.

    Args:
        settings: Supplies the HTTP timeout and ``max_tokens``.
        api_key: Anthropic API key.  If empty, the value of the
            ``ANTHROPIC_API_KEY`` environment variable is used.
    """

    def __init__(self, settings: Settings, api_key: str = "") -> None:
        self._settings = settings
        self._api_key: str = api_key or os.environ.get(
            "ANTHROPIC_API_KEY", ""
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, request: LlmRequest, model: LlmModel) -> LlmResponse:
        """Send one Messages API request and parse the reply.

        Raises:
            LlmTransportError: On a network error or a non-200 status.
        """
        if not self._api_key:
            raise LlmTransportError("No API key configured.")

        payload = self.build_payload(request, model)
        timeout = httpx.Timeout(self._settings.api_timeout_seconds, connect=10.0)
        try:
            with httpx.Client(timeout=timeout) as client:
                http_resp = client.post(
                    _API_URL,
                    headers=self._build_headers(),
                    json=payload,
                )
        except httpx.HTTPError as exc:
            raise LlmTransportError(f"{type(exc).__name__}: {exc}") from exc

        if http_resp.status_code != 200:
            raise LlmTransportError(
                f"HTTP {http_resp.status_code}: {http_resp.text[:200]}",
                status_code=http_resp.status_code,
            )
        return self.parse_response(http_resp.json())

    def build_payload(self, request: LlmRequest, model: LlmModel) -> dict[str, Any]:
        """Translate a provider-neutral request into a Messages payload.

        System messages are concatenated into the ``system`` field and
        consecutive messages of the same role are merged, since the API
        requires alternating roles.
        """
        system_parts: list[str] = []
        messages: list[dict[str, Any]] = []
        for message in request.messages:
            if message.role == MessageRole.SYSTEM:
                system_parts.append(message.content)
                continue
            blocks = _content_blocks(message)
            if messages and messages[-1]["role"] == message.role.value:
                messages[-1]["content"].extend(blocks)
            else:
                messages.append({"role": message.role.value, "content": blocks})

        payload: dict[str, Any] = {
            "model": model.model_id,
            "max_tokens": min(self._settings.api_max_tokens, model.max_output_tokens),
            "messages": messages,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if request.tools:
            payload["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.input_schema,
                }
                for tool in request.tools
            ]
            payload["tool_choice"] = (
                {"type": "any"}
                if request.tool_choice == ToolChoice.REQUIRED
                else {"type": "auto"}
            )
        if request.prompt_id:
            payload["metadata"] = {"user_id": request.prompt_id}
        return payload

    @staticmethod
    def parse_response(body: dict[str, Any]) -> LlmResponse:
        """Extract text, tool calls, and usage from a response body."""
        texts: list[str] = []
        tool_calls: list[LlmToolCall] = []
        for block in body.get("content", []):
            block_type = block.get("type")
            if block_type == "text":
                texts.append(block.get("text", ""))
            elif block_type == "tool_use":
                tool_calls.append(
                    LlmToolCall(
                        name=block.get("name", ""),
                        arguments=dict(block.get("input") or {}),
                        call_id=block.get("id", ""),
                    )
                )
        usage = body.get("usage", {})
        text = "\n".join(t for t in texts if t) or None
        return LlmResponse(
            text=text,
            tool_calls=tool_calls,
            input_tokens=int(usage.get("input_tokens", 0)),
            output_tokens=int(usage.get("output_tokens", 0)),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }

    def __repr__(self) -> str:
        return "AnthropicLlmClient()"


def _content_blocks(message: LlmMessage) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = [
        {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": "image/png",
                "data": base64.b64encode(image).decode("ascii"),
            },
        }
        for image in message.images
    ]
    blocks.append({"type": "text", "text": message.content})
    return blocks
