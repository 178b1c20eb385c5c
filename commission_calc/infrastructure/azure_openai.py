"""HTTP transports for Azure-hosted OpenAI-compatible chat completions."""
from __future__ import annotations

import json
import time
from typing import Any
from urllib.parse import quote, urlparse

import httpx
import structlog

from commission_calc.core.errors import ModelResponseError, ModelTransportError
from commission_calc.core.prompts import ChatPrompt

from .llm import DEFAULT_MAX_TOKENS, DEFAULT_TIMEOUT

logger = structlog.get_logger(__name__)

ERROR_BODY_LIMIT = 800


class _BaseChatClient:
    configured = True
    provider = "chat-completions"

    def __init__(
        self,
        *,
        api_key: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._max_tokens = max_tokens
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @property
    def request_url(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "api-key": self._api_key}

    def _build_payload(self, prompt: ChatPrompt, temperature: float) -> dict[str, Any]:
        return {
            "messages": prompt.messages(),
            "temperature": temperature,
            "max_tokens": self._max_tokens,
        }

    def _read_content(self, body: str) -> str:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise ModelResponseError(f"{self.provider} returned a non-JSON body") from exc
        return _message_content(data)

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        started = time.perf_counter()
        try:
            response = await self._client.post(self.request_url, headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            logger.error("model request failed", provider=self.provider, error=str(exc))
            raise ModelTransportError(f"{self.provider} request failed: {exc}") from exc

        logger.info(
            "model request completed",
            provider=self.provider,
            status=response.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        if response.is_error:
            raise ModelTransportError(
                f"{self.provider} request failed ({response.status_code}): {response.text[:ERROR_BODY_LIMIT]}",
                details={"status": response.status_code},
            )
        return response

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def complete(self, prompt: ChatPrompt, *, temperature: float = 0.0) -> str:
        response = await self._post(self._build_payload(prompt, temperature))
        return self._read_content(response.text)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _message_content(data: Any) -> str:
    """Pull ``choices[0].message.content`` out of an OpenAI-style body."""

    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return str(content) if content is not None else ""


class AzureOpenAIChatClient(_BaseChatClient):
    """Client for an Azure OpenAI deployment (endpoint + deployment + api version)."""

    provider = "azure-openai"

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str,
        *,
        api_version: str = "2024-10-21",
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(endpoint)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("endpoint must include scheme and host")
        super().__init__(api_key=api_key, max_tokens=max_tokens, timeout=timeout, http_client=http_client)
        base = endpoint.rstrip("/")
        self._request_url = (
            f"{base}/openai/deployments/{quote(deployment, safe='')}/chat/completions"
            f"?api-version={quote(api_version, safe='')}"
        )

    @property
    def request_url(self) -> str:
        return self._request_url


class ChatCompletionsClient(_BaseChatClient):
    """Client for a fully qualified chat-completions URL (e.g. an Azure AI Foundry model)."""

    provider = "azure-ai-foundry"

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("url must include scheme and host")
        super().__init__(api_key=api_key, max_tokens=max_tokens, timeout=timeout, http_client=http_client)
        self._url = url
        self._model = model

    @property
    def request_url(self) -> str:
        return self._url

    def _build_payload(self, prompt: ChatPrompt, temperature: float) -> dict[str, Any]:
        payload = super()._build_payload(prompt, temperature)
        if self._model:
            payload["model"] = self._model
        return payload

    def _read_content(self, body: str) -> str:
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            # some gateways answer with the bare completion text
            return body
        return _message_content(data) or body


__all__ = ["AzureOpenAIChatClient", "ChatCompletionsClient"]
