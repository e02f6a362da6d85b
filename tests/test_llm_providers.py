from __future__ import annotations

from types import SimpleNamespace

import pytest

from intelligence.llm import DeepSeekLLM, Message, OpenAILLM, get_llm


class _FakeCompletions:
    def __init__(self):
        self.requests = []

    async def create(self, **params):
        self.requests.append(params)
        return SimpleNamespace(
            model=params["model"],
            choices=[SimpleNamespace(message=SimpleNamespace(content="# Draft"), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


def test_factory_builds_deepseek_with_default_endpoint() -> None:
    llm = get_llm(provider="deepseek", api_key="sk-test", base_url="")

    assert isinstance(llm, DeepSeekLLM)
    assert llm.provider == "deepseek"
    assert llm.base_url == DeepSeekLLM.DEFAULT_BASE_URL


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError):
        get_llm(provider="mystery", api_key="sk-test")


@pytest.mark.asyncio
async def test_openai_acomplete_maps_response_and_per_call_overrides() -> None:
    completions = _FakeCompletions()
    llm = OpenAILLM(model="gpt-4o-mini", api_key="sk-test", temperature=0.7, max_tokens=900)
    llm._async_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

    response = await llm.acomplete(
        [Message.system("rules"), Message.user("sources")],
        temperature=0.2,
        max_tokens=200,
    )

    assert response.content == "# Draft"
    assert response.usage["total_tokens"] == 15
    [request] = completions.requests
    assert request["temperature"] == 0.2
    assert request["max_tokens"] == 200
    assert request["messages"][0] == {"role": "system", "content": "rules"}
