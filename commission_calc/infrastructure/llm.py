"""Chat-completion integration hooks.

The calculator talks to an OpenAI-compatible chat endpoint.  This module
defines the client contract, the JSON reply extraction shared by every call,
and a process-wide registry.  The registry starts with a client that refuses
to run, so requests fail fast with a configuration error until
``configure_llm_client`` installs a real transport during application
start-up (or a fake one in tests).
"""
from __future__ import annotations

import json
import os
from typing import Any, Mapping, Protocol

from commission_calc.core.errors import ModelNotConfiguredError, ModelResponseError
from commission_calc.core.prompts import ChatPrompt


ENV_HINT = (
    "Model credentials not configured. Set AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY + "
    "AZURE_OPENAI_DEPLOYMENT. (Optional fallback: AZURE_AI_FOUNDRY_CHAT_COMPLETIONS_URL + "
    "AZURE_AI_FOUNDRY_API_KEY.)"
)

DEFAULT_MAX_TOKENS = 700
DEFAULT_TIMEOUT = 60.0


class ChatModelClient(Protocol):
    """Contract for chat-completion integrations."""

    configured: bool

    async def complete(self, prompt: ChatPrompt, *, temperature: float = 0.0) -> str:
        """Send the prompt and return the assistant message content."""


class UnconfiguredChatClient:
    """Placeholder installed when no backend credentials are present."""

    configured = False

    async def complete(self, prompt: ChatPrompt, *, temperature: float = 0.0) -> str:
        raise ModelNotConfiguredError(ENV_HINT)


def extract_json_object(text: str | None) -> dict[str, Any]:
    """Parse the outermost ``{...}`` span of a model reply.

    Models occasionally wrap the JSON in prose or markdown fences, so the span
    from the first ``{`` to the last ``}`` is taken before parsing.
    """

    source = str(text or "")
    first = source.find("{")
    last = source.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise ModelResponseError("Model response did not contain JSON")
    try:
        parsed = json.loads(source[first : last + 1])
    except json.JSONDecodeError as exc:
        raise ModelResponseError("Failed to parse JSON from model response") from exc
    if not isinstance(parsed, dict):
        raise ModelResponseError("Model response JSON was not an object")
    return parsed


def _int_env(environ: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(environ.get(key) or default)
    except ValueError:
        return default


def _float_env(environ: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(environ.get(key) or default)
    except ValueError:
        return default


def client_from_env(environ: Mapping[str, str] | None = None) -> ChatModelClient | None:
    """Build a transport from environment variables, preferring the deployment triple."""

    from .azure_openai import AzureOpenAIChatClient, ChatCompletionsClient

    env = os.environ if environ is None else environ
    max_tokens = _int_env(env, "LLM_MAX_TOKENS", DEFAULT_MAX_TOKENS)
    timeout = _float_env(env, "LLM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT)

    endpoint = env.get("AZURE_OPENAI_ENDPOINT")
    api_key = env.get("AZURE_OPENAI_API_KEY")
    deployment = env.get("AZURE_OPENAI_DEPLOYMENT")
    if endpoint and api_key and deployment:
        return AzureOpenAIChatClient(
            endpoint=endpoint,
            api_key=api_key,
            deployment=deployment,
            api_version=env.get("AZURE_OPENAI_API_VERSION") or "2024-10-21",
            max_tokens=max_tokens,
            timeout=timeout,
        )

    url = env.get("AZURE_AI_FOUNDRY_CHAT_COMPLETIONS_URL")
    foundry_key = env.get("AZURE_AI_FOUNDRY_API_KEY")
    if url and foundry_key:
        return ChatCompletionsClient(
            url=url,
            api_key=foundry_key,
            model=env.get("AZURE_AI_FOUNDRY_MODEL") or None,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    return None


_client: ChatModelClient = UnconfiguredChatClient()


def configure_llm_client(client: ChatModelClient | None) -> None:
    """Install the chat client used by the commission service."""

    global _client
    _client = client if client is not None else UnconfiguredChatClient()


def get_llm_client() -> ChatModelClient:
    """Return the currently configured chat client."""

    return _client


def is_llm_configured() -> bool:
    return bool(getattr(_client, "configured", True))
