"""Generation orchestration: prompt assembly, mode selection, tool loop.

Each turn tries grounded mode (server-side web search, no callable tools)
first. If that request fails, the whole turn is retried once in tool mode
(registry declarations, no grounding). Tool mode runs a bounded loop:

    AWAITING_MODEL --tool calls--> DISPATCHING_TOOL --results--> AWAITING_MODEL
    AWAITING_MODEL --text only or round cap--> DONE
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from zuychin.config import settings
from zuychin.llm import client as llm_client
from zuychin.llm.client import GenerationConfig
from zuychin.llm.prompt import build_prompt_text, build_user_content
from zuychin.tools import registry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from zuychin.channels.attachments import Attachment
    from zuychin.llm.client import Generation, ToolCall
    from zuychin.tools.base import ToolContext, ToolResult

    GenerateFn = Callable[[list[dict[str, Any]], GenerationConfig], Awaitable[Generation]]
    DispatchFn = Callable[[ToolCall], Awaitable[ToolResult]]

logger = logging.getLogger(__name__)

EMPTY_REPLY = "I got an empty response. Try again?"


class GenerationError(Exception):
    """Both generation modes failed for a turn."""


class GenerationMode(enum.Enum):
    GROUNDED = "grounded"
    TOOLS = "tools"


class LoopState(enum.Enum):
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOL = "dispatching_tool"
    DONE = "done"


@dataclass
class LoopOutcome:
    """What a tool loop produced.

    Attributes:
        text: Final reply text (never empty once a round has completed).
        rounds: Number of tool rounds (dispatch, then re-invoke) completed.
        model_calls: Number of model calls made, the initial one included.
        tool_executions: Number of tool calls dispatched.
        hit_round_cap: True when the loop stopped with a tool call pending.
    """

    text: str
    rounds: int
    model_calls: int
    tool_executions: int
    hit_round_cap: bool = False


async def run_tool_loop(
    messages: list[dict[str, Any]],
    config: GenerationConfig,
    *,
    generate_fn: GenerateFn,
    dispatch_fn: DispatchFn,
    max_rounds: int,
) -> LoopOutcome:
    """Drive the model until it answers without tool calls or the cap is hit.

    After the initial model call, each round dispatches the pending tool
    calls and re-invokes the model, so at most *max_rounds* rounds and
    *max_rounds* + 1 model calls are made. Tool calls are only dispatched
    when *config* declares tools. If the cap is reached with a call still
    pending, the last generated text is returned and the call is not
    executed. *messages* is not mutated.
    """
    loop_messages = list(messages)
    state = LoopState.AWAITING_MODEL
    rounds = 0
    model_calls = 0
    executions = 0
    hit_cap = False
    last_text = ""
    final_text = ""
    response: Generation | None = None

    while state is not LoopState.DONE:
        if state is LoopState.AWAITING_MODEL:
            response = await generate_fn(loop_messages, config)
            model_calls += 1
            if response.text.strip():
                last_text = response.text

            if not (response.tool_calls and config.tools):
                final_text = response.text
                state = LoopState.DONE
            elif rounds >= max_rounds:
                logger.warning("Hit max tool rounds (%d)", max_rounds)
                hit_cap = True
                state = LoopState.DONE
            else:
                state = LoopState.DISPATCHING_TOOL

        elif state is LoopState.DISPATCHING_TOOL:
            assert response is not None
            rounds += 1
            logger.info(
                "Round %d: %d tool call(s): %s",
                rounds,
                len(response.tool_calls),
                ", ".join(c.name for c in response.tool_calls),
            )
            loop_messages.append({"role": "assistant", "content": response.content})

            # Every tool_use block needs a matching tool_result in the next turn.
            tool_results: list[dict[str, Any]] = []
            for call in response.tool_calls:
                result = await dispatch_fn(call)
                executions += 1
                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": call.id,
                    "content": result.to_content(),
                    "is_error": not result.success,
                })
            loop_messages.append({"role": "user", "content": tool_results})
            state = LoopState.AWAITING_MODEL

    text = final_text if final_text.strip() else last_text
    return LoopOutcome(
        text=text or EMPTY_REPLY,
        rounds=rounds,
        model_calls=model_calls,
        tool_executions=executions,
        hit_round_cap=hit_cap,
    )


def _mode_config(
    mode: GenerationMode, *, tools_enabled: bool, thinking_enabled: bool
) -> GenerationConfig:
    if mode is GenerationMode.GROUNDED:
        return GenerationConfig(grounding=True, thinking=thinking_enabled)
    tools = registry.get_schemas() if tools_enabled else []
    return GenerationConfig(tools=tools, thinking=thinking_enabled)


async def generate(
    system_prompt: str,
    current_message: str,
    *,
    memory_section: str | None = None,
    history_section: str | None = None,
    attachments: Sequence[Attachment] = (),
    tools_enabled: bool = True,
    thinking_enabled: bool = False,
    tool_context: ToolContext | None = None,
    generate_fn: GenerateFn | None = None,
) -> str:
    """Produce the final reply for one turn.

    The mode is chosen once per turn: grounded first, tool mode only if the
    grounded attempt raises. With *tools_enabled* False the fallback is a
    plain generation. Raises :class:`GenerationError` if the fallback fails
    too.
    """
    prompt_text = build_prompt_text(
        system_prompt,
        current_message,
        memory_section=memory_section,
        history_section=history_section,
    )
    messages = [{"role": "user", "content": build_user_content(prompt_text, attachments)}]
    generate_fn = generate_fn or llm_client.generate

    async def dispatch(call: ToolCall) -> ToolResult:
        return await registry.execute(call.name, call.arguments, context=tool_context)

    last_error: Exception | None = None
    for mode in (GenerationMode.GROUNDED, GenerationMode.TOOLS):
        config = _mode_config(mode, tools_enabled=tools_enabled, thinking_enabled=thinking_enabled)
        try:
            outcome = await run_tool_loop(
                messages,
                config,
                generate_fn=generate_fn,
                dispatch_fn=dispatch,
                max_rounds=settings.max_tool_rounds,
            )
        except Exception as exc:
            last_error = exc
            logger.warning("Generation failed in %s mode: %s", mode.value, exc)
            continue

        logger.info(
            "Generated reply in %s mode (%d model call(s), %d tool call(s))",
            mode.value,
            outcome.model_calls,
            outcome.tool_executions,
        )
        return outcome.text

    msg = "Generation failed in both grounded and tool modes"
    raise GenerationError(msg) from last_error
