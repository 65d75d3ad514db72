"""
LLM Provider interface for abstracting text-generation backends.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List, Union
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """Standardized LLM response."""
    content: str
    tokens_in: int = 0
    tokens_out: int = 0
    model: str = ""
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}

    @property
    def usage(self) -> Dict[str, int]:
        return {"inputTokens": self.tokens_in, "outputTokens": self.tokens_out}


PromptInput = Union[str, List[Dict[str, str]]]


# Output budget per call site
SCENARIO_MAX_TOKENS = {
    "role-play-persona": 200,
    "role-play-opening": 200,
    "role-play-followup": 200,
    "role-play-analysis": 400,
    "role-play-feedback": 500,
}


def to_messages(prompt: PromptInput) -> List[Dict[str, str]]:
    """Wrap a bare prompt string as a single user message."""
    if isinstance(prompt, str):
        return [{"role": "user", "content": prompt}]
    return list(prompt)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""
    
    @abstractmethod
    async def generate(
        self,
        prompt: PromptInput,
        scenario: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Generate a completion for one call site.
        
        Args:
            prompt: Prompt string or list of message dicts with 'role' and 'content'
            scenario: Call-site tag (e.g. "role-play-analysis") used for budgets and logs
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate; defaults to the scenario budget
            **kwargs: Additional provider-specific parameters
            
        Returns:
            LLMResponse with content and usage

        Raises:
            LLMProviderError: If the backend call fails. Providers never retry.
        """
        pass
