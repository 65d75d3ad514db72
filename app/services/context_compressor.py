"""
Context compressor for role-play conversation history.

Keeps the working history sent to the model bounded with a sliding window:
the most recent messages stay verbatim, everything older is folded into a
single system summary that also carries the interviewer persona.
"""
import logging
import math
from typing import List, Tuple

from app.core.config import COMPRESSION_THRESHOLD
from app.schemas.role_play import Message, MessageRole

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_TOKENS = 4  # role + separators
SUMMARY_HEADER = "[Earlier conversation summary]"
SUMMARY_LINE_CHARS = 160
ELLIPSIS = "…"


def estimate_text_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    if max_chars <= 0:
        return ""
    return text[:max_chars - 1] + ELLIPSIS


class ContextCompressor:
    """Bounds conversation history size for prompt construction."""

    def __init__(self, threshold: int = COMPRESSION_THRESHOLD):
        if threshold < 64:
            raise ValueError(f"Compression threshold too small: {threshold}")
        self.threshold = threshold

    def estimate_tokens(self, history: List[Message]) -> int:
        """Rough token count: ~4 characters per token plus per-message overhead."""
        return sum(estimate_text_tokens(m.content) + MESSAGE_OVERHEAD_TOKENS for m in history)

    def should_compress(self, history: List[Message]) -> bool:
        return self.estimate_tokens(history) >= self.threshold

    def compress(
        self,
        history: List[Message],
        keep_last_n: int = 5,
        summary_budget: int = 500,
    ) -> List[Message]:
        """
        Collapse everything older than the last keep_last_n messages into one summary.

        Returns the history unchanged when it is already under the threshold,
        so applying compress twice is the same as applying it once. Otherwise
        the result is guaranteed to be under the threshold: the raw window
        shrinks if the recent messages alone are too large, and a single
        oversized final message is truncated.

        Args:
            history: Working conversation history, oldest first
            keep_last_n: Number of most recent messages to keep verbatim
            summary_budget: Token budget for the summary message content

        Returns:
            New history list
        """
        if not self.should_compress(history):
            return list(history)

        original_tokens = self.estimate_tokens(history)
        budget = max(1, min(summary_budget, self.threshold // 4))
        n = len(history)
        keep = max(0, min(keep_last_n, n))

        while True:
            older, recent = history[:n - keep], history[n - keep:]
            result = ([self._build_summary(older, budget)] if older else []) + list(recent)
            if self.estimate_tokens(result) < self.threshold or keep <= 1:
                break
            keep -= 1

        if self.estimate_tokens(result) >= self.threshold:
            result = self._truncate_last(result)

        logger.debug(
            f"History compressed: messages {n} -> {len(result)}, "
            f"tokens {original_tokens} -> {self.estimate_tokens(result)}"
        )
        return result

    def _truncate_last(self, result: List[Message]) -> List[Message]:
        head, last = result[:-1], result[-1]
        room = self.threshold - 1 - self.estimate_tokens(head) - MESSAGE_OVERHEAD_TOKENS
        content = _truncate(last.content, max(0, room) * CHARS_PER_TOKEN)
        return head + [Message(role=last.role, content=content, timestamp=last.timestamp)]

    @staticmethod
    def _split_system(message: Message) -> Tuple[str, List[str]]:
        """Split a leading system message into persona text and any prior summary lines."""
        if message.content.startswith(f"{SUMMARY_HEADER}\n"):
            return "", message.content[len(SUMMARY_HEADER) + 1:].splitlines()
        persona, sep, rest = message.content.partition(f"\n\n{SUMMARY_HEADER}\n")
        lines = rest.splitlines() if sep else []
        return persona, lines

    def _build_summary(self, older: List[Message], budget: int) -> Message:
        persona, lines = "", []
        rest = older
        if older and older[0].role == MessageRole.SYSTEM:
            persona, lines = self._split_system(older[0])
            rest = older[1:]

        for message in rest:
            snippet = _truncate(" ".join(message.content.split()), SUMMARY_LINE_CHARS)
            lines.append(f"- {message.role.value}: {snippet}")

        max_chars = budget * CHARS_PER_TOKEN
        persona = _truncate(persona, max_chars // 2)
        header = f"{persona}\n\n{SUMMARY_HEADER}\n" if persona else f"{SUMMARY_HEADER}\n"

        # Newest lines win when the budget runs out
        kept: List[str] = []
        used = len(header)
        for line in reversed(lines):
            cost = len(line) + (1 if kept else 0)
            if used + cost > max_chars:
                break
            kept.append(line)
            used += cost
        kept.reverse()

        content = _truncate(header + "\n".join(kept), max_chars)
        return Message(role=MessageRole.SYSTEM, content=content, timestamp=older[-1].timestamp)
