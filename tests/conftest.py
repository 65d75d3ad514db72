"""
Shared fixtures: a scripted LLM provider and in-memory session stores.
"""
import os

# Must be set before app.core.config is imported anywhere
os.environ.setdefault("ROLE_PLAY_STORE", "memory")

import json
import pytest

from app.core.exceptions import LLMProviderError
from app.llm.provider import LLMProvider, LLMResponse
from app.services.session_store import InMemorySessionStore


DEFAULT_RESPONSES = {
    "role-play-persona": "  Alex is a warm engineering manager who focuses on API design and asks for concrete examples.  ",
    "role-play-opening": "Tell me about an API you designed recently and the trade-offs you made.",
    "role-play-analysis": json.dumps({
        "keywords": ["REST", "pagination", "caching"],
        "sentiment": "positive",
        "suggestions": ["Quantify the latency improvement"],
        "relevanceScore": 80,
    }),
    "role-play-followup": "How did you decide on the pagination strategy?",
    "role-play-feedback": json.dumps({
        "overallScore": 3,
        "strengths": ["Clear API reasoning"],
        "improvementAreas": ["Discuss failure modes"],
        "keyTakeaways": ["Lead with the business impact"],
    }),
}


class ScriptedProvider(LLMProvider):
    """LLM provider returning canned content per scenario and recording every call."""

    def __init__(self, responses=None, failures=()):
        self.responses = dict(DEFAULT_RESPONSES)
        self.responses.update(responses or {})
        self.failures = set(failures)
        self.calls = []

    async def generate(self, prompt, scenario, temperature=0.7, max_tokens=None, **kwargs):
        self.calls.append((scenario, prompt))
        if scenario in self.failures:
            raise LLMProviderError(f"scripted failure for {scenario}")
        content = self.responses.get(scenario, "")
        if callable(content):
            content = content(prompt)
        return LLMResponse(content=content, tokens_in=12, tokens_out=8, model="scripted")

    def prompts_for(self, scenario):
        return [prompt for s, prompt in self.calls if s == scenario]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def scripted_provider():
    """Factory for scripted providers."""
    return ScriptedProvider


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(clock=clock)
