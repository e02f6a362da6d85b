"""
DeepSeek LLM
OpenAI-compatible endpoint, reusing the openai SDK client
"""
from typing import List, Optional
import logging

from .base import Message, LLMResponse
from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


class DeepSeekLLM(OpenAILLM):
    """
    DeepSeek chat models.

    - deepseek-chat (default)
    - deepseek-reasoner (reasoning trace is dropped from report text)
    """

    DEFAULT_BASE_URL = "https://api.deepseek.com"

    def __init__(
        self,
        model: str = "deepseek-chat",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1200,
        timeout: float = 60.0,
        **kwargs,
    ):
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=base_url or self.DEFAULT_BASE_URL,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs,
        )

    @property
    def provider(self) -> str:
        return "deepseek"

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        response = await super().acomplete(messages, **kwargs)
        if response.finish_reason == "length":
            logger.debug(f"DeepSeek output truncated at max_tokens for model {self.model}")
        return response
