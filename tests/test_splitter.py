"""Tests for outbound message splitting."""

import pytest

from zuychin.channels.splitter import split_message


def test_short_text_single_chunk() -> None:
    assert split_message("hello", 10) == ["hello"]


def test_exact_limit_single_chunk() -> None:
    assert split_message("a" * 10, 10) == ["a" * 10]


def test_empty_text_no_chunks() -> None:
    assert split_message("", 10) == []


def test_prefers_newline() -> None:
    assert split_message("aaaa\nbbbb", 6) == ["aaaa", "bbbb"]


def test_falls_back_to_space() -> None:
    assert split_message("hello world foo", 12) == ["hello world", "foo"]


def test_hard_cut_without_break_points() -> None:
    assert split_message("abcdefghij", 4) == ["abcd", "efgh", "ij"]


def test_ignores_break_in_first_half() -> None:
    text = "a " + "c" * 20
    chunks = split_message(text, 10)
    assert chunks[0] == "a " + "c" * 8
    assert all(len(c) <= 10 for c in chunks)


def test_chunks_preserve_content_order() -> None:
    text = " ".join(f"word{i}" for i in range(500))
    chunks = split_message(text, 100)
    assert all(len(c) <= 100 for c in chunks)
    assert " ".join(chunks) == text


def test_invalid_max_length() -> None:
    with pytest.raises(ValueError, match="positive"):
        split_message("x", 0)
