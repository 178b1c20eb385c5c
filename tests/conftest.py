from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from commission_calc.infrastructure import InMemoryRulesStore, configure_llm_client, configure_rules_store


MODEL_ENV_VARS = (
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_DEPLOYMENT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_AI_FOUNDRY_CHAT_COMPLETIONS_URL",
    "AZURE_AI_FOUNDRY_API_KEY",
    "AZURE_AI_FOUNDRY_MODEL",
)


class FakeChatClient:
    """In-process chat client answering from a queue of canned replies."""

    configured = True

    def __init__(self, *replies) -> None:
        self.replies = list(replies)
        self.prompts = []

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    async def complete(self, prompt, *, temperature: float = 0.0) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError(f"unexpected model call: {prompt.user[:200]}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


@pytest.fixture(autouse=True)
def reset_integrations(monkeypatch):
    for name in MODEL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    store = InMemoryRulesStore()
    configure_rules_store(store)
    configure_llm_client(None)
    yield store
    configure_llm_client(None)


@pytest.fixture()
def rules_store(reset_integrations) -> InMemoryRulesStore:
    return reset_integrations


@pytest.fixture()
def fake_llm() -> FakeChatClient:
    client = FakeChatClient()
    configure_llm_client(client)
    return client
