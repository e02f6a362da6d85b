"""
LLM Factory
Builds the configured provider from LLM_* settings
"""
from typing import Optional
import logging

from .base import BaseLLM
from .openai_llm import OpenAILLM
from .deepseek_llm import DeepSeekLLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "deepseek": "deepseek-chat",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    Get an LLM instance.

    Reads ``LLM_*`` settings (and ``.env``) unless overridden:

        llm = get_llm()
        llm = get_llm(provider="deepseek")
        llm = get_llm(provider="openai", model="gpt-4o", temperature=0.2)
    """
    from config import get_llm_settings

    settings = get_llm_settings()

    provider = (provider or settings.provider or "openai").lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "openai": settings.openai_api_key,
        "deepseek": settings.deepseek_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    base_url = kwargs.pop("base_url", None) or settings.base_url

    if provider == "openai":
        return OpenAILLM(model=model, api_key=api_key, base_url=base_url, **kwargs)
    elif provider == "deepseek":
        return DeepSeekLLM(model=model, api_key=api_key, base_url=base_url, **kwargs)
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
