"""Provider-neutral LLM request and response models.

The request builder produces ``LlmMessage`` lists, the gateway sends
``LlmRequest`` objects through an ``LlmClient``, and the step strategies
consume ``LlmResponse`` objects.  Provider clients translate to and from
their own wire format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolChoice(Enum):
    """Whether the model may answer without calling a tool.

    Attributes:
        AUTO: The model decides.
        REQUIRED: The model must call at least one tool.
    """

    AUTO = "auto"
    REQUIRED = "required"


class MessageRole(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class LlmMessage:
    """A single chat message.

    Attributes:
        role: Who authored the message.
        content: Message text.
        images: PNG images attached to the message.
    """

    role: MessageRole
    content: str
    images: tuple[bytes, ...] = ()


@dataclass(frozen=True)
class ToolDescriptor:
    """Schema of a tool as advertised to the model.

    Attributes:
        name: Tool name the model uses to call it.
        description: Natural-language description of the tool.
        input_schema: JSON schema of the tool arguments.
    """

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass(frozen=True)
class LlmToolCall:
    """A tool call emitted by the model.

    Attributes:
        name: Tool name.
        arguments: Decoded JSON arguments.
        call_id: Provider-assigned identifier, if any.
    """

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str = ""


@dataclass
class LlmRequest:
    """Everything needed for one LLM call.

    Attributes:
        messages: Ordered chat messages.
        tools: Tools the model may call.
        tool_choice: Whether a tool call is required.
        prompt_id: Identifier stamped by the gateway on each attempt.
    """

    messages: list[LlmMessage]
    tools: list[ToolDescriptor] = field(default_factory=list)
    tool_choice: ToolChoice = ToolChoice.AUTO
    prompt_id: str = ""


@dataclass
class LlmResponse:
    """The model's answer to one request.

    Attributes:
        text: Free text the model produced alongside (or instead of)
            tool calls.  ``None`` when there was none.
        tool_calls: Tool calls in the order the model emitted them.
        input_tokens: Prompt tokens reported by the provider.
        output_tokens: Completion tokens reported by the provider.
    """

    text: str | None = None
    tool_calls: list[LlmToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class LlmModel:
    """The model the agent talks to.

    Attributes:
        model_id: Provider model identifier.
        provider: Provider name (e.g. ``"anthropic"``).
        supports_vision: Whether image attachments are accepted.
        max_output_tokens: Upper bound on completion tokens.
    """

    model_id: str
    provider: str = "anthropic"
    supports_vision: bool = True
    max_output_tokens: int = 4096
