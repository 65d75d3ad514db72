"""
OpenAI provider implementation.
"""
import logging
from typing import Optional
from openai import AsyncOpenAI, APIError

from app.core.config import OPENAI_API_KEY, OPENAI_MODEL
from app.core.exceptions import LLMProviderError
from app.llm.provider import LLMProvider, LLMResponse, PromptInput, SCENARIO_MAX_TOKENS, to_messages

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI provider using the official async OpenAI SDK."""
    
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize OpenAI client."""
        self.api_key = api_key or OPENAI_API_KEY
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not configured")
        self.model = model or OPENAI_MODEL
        self.client = AsyncOpenAI(api_key=self.api_key)
        logger.info(f"OpenAI provider initialized (model={self.model})")
    
    async def generate(
        self,
        prompt: PromptInput,
        scenario: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate a chat completion."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=to_messages(prompt),
                temperature=temperature,
                max_tokens=max_tokens or SCENARIO_MAX_TOKENS.get(scenario, 500),
                **kwargs
            )
        except APIError as e:
            logger.error(f"OpenAI API error: scenario={scenario}, error={e}", exc_info=True)
            raise LLMProviderError(f"OpenAI API error during {scenario}: {e}") from e
        except Exception as e:
            logger.error(f"OpenAI error: scenario={scenario}, {type(e).__name__}: {e}", exc_info=True)
            raise LLMProviderError(f"OpenAI call failed during {scenario}: {e}") from e

        content = response.choices[0].message.content or ""
        usage = response.usage
        tokens_in = usage.prompt_tokens if usage else 0
        tokens_out = usage.completion_tokens if usage else 0

        logger.debug(f"LLM call completed: scenario={scenario}, tokens={tokens_in + tokens_out}")

        return LLMResponse(
            content=content,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            model=self.model,
            metadata={
                "scenario": scenario,
                "finish_reason": response.choices[0].finish_reason,
            }
        )
