"""
Generation Service
Text generation with a hard per-call timeout that never raises
"""
from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Optional

from .base import BaseLLM, Message


logger = logging.getLogger(__name__)


class GenerationService(ABC):
    """``generate(...) -> text | None``; None on timeout, error or empty output."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_output_tokens: int,
        temperature: float,
        hard_timeout: float,
    ) -> Optional[str]:
        pass

    async def aclose(self) -> None:
        """Release provider resources (default no-op)."""
        return None


class LLMGenerationService(GenerationService):
    """Wraps a provider and enforces the call's own cutoff with ``asyncio.wait_for``."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_output_tokens: int,
        temperature: float,
        hard_timeout: float,
    ) -> Optional[str]:
        messages = [Message.system(system_prompt), Message.user(user_prompt)]
        try:
            response = await asyncio.wait_for(
                self.llm.acomplete(messages, max_tokens=max_output_tokens, temperature=temperature),
                timeout=max(0.1, float(hard_timeout)),
            )
        except asyncio.TimeoutError:
            logger.warning(f"Generation timed out after {hard_timeout:.0f}s ({self.llm!r})")
            return None
        except Exception as e:
            logger.warning(f"Generation failed ({self.llm!r}): {e}")
            return None

        text = str(response.content or "").strip()
        return text or None

    async def aclose(self) -> None:
        await self.llm.aclose()
