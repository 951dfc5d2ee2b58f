"""Async Claude API client: single-shot completions and generation rounds."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import anthropic

from zuychin.config import settings
from zuychin.llm.models import ModelManager

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None

WEB_SEARCH_TOOL_TYPE = "web_search_20250305"


@dataclass
class ToolCall:
    """A callable-tool request emitted by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationConfig:
    """Per-request capabilities.

    ``grounding`` and ``tools`` are mutually exclusive; the orchestrator
    never sets both.
    """

    grounding: bool = False
    tools: list[dict[str, Any]] = field(default_factory=list)
    thinking: bool = False
    model: str | None = None


@dataclass
class Generation:
    """One model response."""

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    content: list[dict[str, Any]] = field(default_factory=list)


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


async def complete_text(
    messages: list[dict[str, Any]],
    *,
    system: str | None = None,
    model: str | None = None,
    max_tokens: int = 1024,
) -> str:
    """Single-shot Claude call with no tools and no memory.

    Used for isolated LLM tasks (history summaries, proactive messages)
    where the full pipeline is not needed.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": model or ModelManager.get().get_summary_model(),
        "max_tokens": max_tokens,
        "messages": messages,
    }
    if system is not None:
        kwargs["system"] = system
    response = await client.messages.create(**kwargs)
    return "".join(b.text for b in response.content if b.type == "text")


def _serialize_content(content: list[Any]) -> list[dict[str, Any]]:
    """Convert SDK content blocks to plain dicts for the running context."""
    result: list[dict[str, Any]] = []
    for block in content:
        if block.type == "text":
            result.append({"type": "text", "text": block.text})
        elif block.type == "tool_use":
            result.append({
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            })
        elif block.type == "thinking":
            result.append({
                "type": "thinking",
                "thinking": block.thinking,
                "signature": block.signature,
            })
        elif block.type == "redacted_thinking":
            result.append({"type": "redacted_thinking", "data": block.data})
    return result


def build_request(messages: list[dict[str, Any]], config: GenerationConfig) -> dict[str, Any]:
    """Translate a GenerationConfig into Messages API keyword arguments."""
    kwargs: dict[str, Any] = {
        "model": config.model or ModelManager.get().get_chat_model(),
        "max_tokens": settings.max_output_tokens,
        "messages": messages,
    }
    if config.grounding:
        kwargs["tools"] = [{
            "type": WEB_SEARCH_TOOL_TYPE,
            "name": "web_search",
            "max_uses": settings.web_search_max_uses,
        }]
    elif config.tools:
        kwargs["tools"] = config.tools
    if config.thinking:
        # max_tokens must exceed the thinking budget.
        kwargs["max_tokens"] = settings.max_output_tokens + settings.thinking_budget_tokens
        kwargs["thinking"] = {
            "type": "enabled",
            "budget_tokens": settings.thinking_budget_tokens,
        }
    return kwargs


async def generate(messages: list[dict[str, Any]], config: GenerationConfig) -> Generation:
    """Run one generation round against Claude.

    Raises the SDK's errors unchanged; callers decide whether to fall back.
    """
    client = _get_client()
    response = await client.messages.create(**build_request(messages, config))

    text = "".join(b.text for b in response.content if b.type == "text")
    tool_calls = [
        ToolCall(id=b.id, name=b.name, arguments=dict(b.input or {}))
        for b in response.content
        if b.type == "tool_use"
    ]
    return Generation(
        text=text,
        tool_calls=tool_calls,
        content=_serialize_content(response.content),
    )
