"""Tests for history compaction."""

from unittest.mock import AsyncMock, patch

from zuychin.conversations.models import Message
from zuychin.pipeline.compactor import (
    RECENT_HEADING,
    SUMMARY_HEADING,
    compact,
    render_transcript,
    summarize_messages,
    truncate_tail,
)


def _history(n: int) -> list[Message]:
    return [
        Message(
            id=str(i),
            role="user" if i % 2 == 0 else "assistant",
            content=f"message {i}",
            channel="web",
        )
        for i in range(n)
    ]


async def test_short_history_rendered_verbatim() -> None:
    summarizer = AsyncMock()
    history = _history(8)

    result = await compact(history, summarizer, threshold=8, recent_keep=5)

    lines = result.split("\n")
    assert len(lines) == 8
    assert lines[0] == "User: message 0"
    assert lines[1] == "Assistant: message 1"
    assert lines[-1] == "Assistant: message 7"
    summarizer.assert_not_called()


async def test_long_history_summarized_and_split() -> None:
    summarizer = AsyncMock(return_value="They talked about things.")
    history = _history(12)

    result = await compact(history, summarizer, threshold=8, recent_keep=5)

    older = summarizer.call_args.args[0]
    assert [m.id for m in older] == [str(i) for i in range(7)]
    assert result.startswith(f"{SUMMARY_HEADING}\nThey talked about things.")
    recent_part = result.split(f"{RECENT_HEADING}\n", 1)[1]
    assert recent_part == render_transcript(history[7:])



async def test_recent_keep_covering_history_renders_verbatim() -> None:
    summarizer = AsyncMock()
    history = _history(10)

    result = await compact(history, summarizer, threshold=2, recent_keep=10)

    assert result == render_transcript(history)
    summarizer.assert_not_called()


async def test_negative_recent_keep_summarizes_everything() -> None:
    summarizer = AsyncMock(return_value="All of it.")
    history = _history(10)

    result = await compact(history, summarizer, threshold=8, recent_keep=-3)

    assert len(summarizer.call_args.args[0]) == 10
    assert result.startswith(f"{SUMMARY_HEADING}\nAll of it.")


async def test_summarizer_failure_falls_back_to_transcript() -> None:
    summarizer = AsyncMock(side_effect=RuntimeError("model down"))
    history = _history(10)

    result = await compact(history, summarizer, threshold=8, recent_keep=5)

    assert SUMMARY_HEADING in result
    assert "User: message 0" in result
    assert result.endswith(render_transcript(history[5:]))


async def test_empty_summary_falls_back() -> None:
    summarizer = AsyncMock(return_value="")
    result = await compact(_history(9), summarizer, threshold=8, recent_keep=5)
    assert "message 0" in result


def test_truncate_tail() -> None:
    assert truncate_tail("short", 10) == "short"
    assert truncate_tail("abcdefghij", 4) == "...ghij"


async def test_default_summarizer_uses_complete_text() -> None:
    with patch(
        "zuychin.pipeline.compactor.complete_text",
        new_callable=AsyncMock,
        return_value="  A summary.  ",
    ) as mock_complete:
        summary = await summarize_messages(_history(3))

    assert summary == "A summary."
    prompt = mock_complete.call_args.args[0][0]["content"]
    assert "2-3 sentences" in prompt
    assert "User: message 0" in prompt
