"""
Tests for sliding-window history compression.
"""
from datetime import datetime, timedelta

import pytest

from app.schemas.role_play import Message, MessageRole
from app.services.context_compressor import ContextCompressor, SUMMARY_HEADER

PERSONA = "Interviewer Persona: Alex, a strict staff engineer focused on distributed systems."


def _history(turns: int, answer_chars: int = 300):
    start = datetime(2024, 1, 1, 9, 0, 0)
    history = [
        Message(role=MessageRole.SYSTEM, content=PERSONA, timestamp=start),
        Message(role=MessageRole.ASSISTANT, content="Tell me about yourself.", timestamp=start),
    ]
    for i in range(turns):
        ts = start + timedelta(minutes=i + 1)
        history.append(Message(role=MessageRole.USER, content=f"answer {i} " + "x" * answer_chars, timestamp=ts))
        history.append(Message(role=MessageRole.ASSISTANT, content=f"follow-up question {i}?", timestamp=ts))
    return history


@pytest.fixture
def compressor():
    return ContextCompressor(threshold=2000)


def test_short_history_is_left_alone(compressor):
    history = _history(2)
    assert not compressor.should_compress(history)
    assert compressor.compress(history) == history


def test_long_history_is_compressed_below_threshold(compressor):
    history = _history(40)
    assert compressor.should_compress(history)

    compressed = compressor.compress(history)

    assert compressor.estimate_tokens(compressed) < compressor.threshold
    assert len(compressed) == 6
    assert compressed[1:] == history[-5:]


def test_summary_keeps_persona_first(compressor):
    compressed = compressor.compress(_history(40))

    summary = compressed[0]
    assert summary.role == MessageRole.SYSTEM
    assert summary.content.startswith(PERSONA)
    assert SUMMARY_HEADER in summary.content


def test_compression_is_idempotent(compressor):
    once = compressor.compress(_history(40))
    assert compressor.compress(once) == once


def test_summary_respects_budget(compressor):
    compressed = compressor.compress(_history(40), keep_last_n=5, summary_budget=100)
    assert compressor.estimate_tokens(compressed[:1]) <= 100 + 4


def test_repeated_compression_keeps_persona_and_bound(compressor):
    history = _history(1)
    for i in range(60):
        history = compressor.compress(history)
        history = history + [
            Message(role=MessageRole.USER, content=f"turn {i} " + "y" * 400),
            Message(role=MessageRole.ASSISTANT, content=f"next question {i}?"),
        ]
    final = compressor.compress(history)
    assert compressor.estimate_tokens(final) < compressor.threshold
    assert PERSONA in final[0].content


def test_oversized_recent_messages_still_fit(compressor):
    history = [
        Message(role=MessageRole.SYSTEM, content=PERSONA),
        Message(role=MessageRole.USER, content="a" * 10000),
        Message(role=MessageRole.ASSISTANT, content="b" * 10000),
    ]

    compressed = compressor.compress(history)

    assert compressor.estimate_tokens(compressed) < compressor.threshold
    assert compressed[-1].role == MessageRole.ASSISTANT
    assert compressed[-1].content.startswith("bbbb")
    assert compressor.compress(compressed) == compressed


def test_threshold_boundary(compressor):
    # 4 tokens overhead + 1996 tokens of content == threshold
    exact = [Message(role=MessageRole.USER, content="z" * (1996 * 4))]
    assert compressor.estimate_tokens(exact) == 2000
    assert compressor.should_compress(exact)

    below = [Message(role=MessageRole.USER, content="z" * (1995 * 4))]
    assert not compressor.should_compress(below)


def test_tiny_threshold_rejected():
    with pytest.raises(ValueError):
        ContextCompressor(threshold=10)
