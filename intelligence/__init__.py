"""
Intelligence Module
LLM abstraction used by report synthesis
"""
from .llm import (
    BaseLLM,
    DeepSeekLLM,
    GenerationService,
    LLMGenerationService,
    OpenAILLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "OpenAILLM",
    "DeepSeekLLM",
    "get_llm",
    "GenerationService",
    "LLMGenerationService",
]
