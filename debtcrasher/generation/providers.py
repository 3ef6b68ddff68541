"""
Outbound text-generation providers.

A provider turns a system prompt and a user prompt into free text. Parsing
the text is not its job (see ``parser``). Providers never retry: a
non-success response raises TransportError with the status and raw body,
and the caller decides what to do.

Supported providers:
- OpenAI (official SDK)
- DeepSeek (OpenAI-compatible endpoint, official SDK)
- Gemini (REST over aiohttp)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import aiohttp
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from ..exceptions import ProviderConfigError, SchemaError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.2
DEFAULT_TIMEOUT = 120.0


class GenerationProvider(ABC):
    """Abstract base for text generation."""

    name: str = "abstract"
    default_reasoning_model: str = ""
    default_note_model: str = ""

    def __init__(self, reasoning_model: str = "", note_model: str = ""):
        self.reasoning_model = reasoning_model or self.default_reasoning_model
        self.note_model = note_model or self.default_note_model

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str, *, model: str | None = None) -> str:
        """
        Generate free text for a prompt pair.

        Args:
            system_prompt: Fixed instruction describing the expected output
            user_prompt: Request payload
            model: Model override; defaults to the reasoning model

        Returns:
            Raw response text (may be empty)

        Raises:
            TransportError: If the endpoint answered with a non-success status
                or could not be reached
        """

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""

    async def __aenter__(self) -> GenerationProvider:
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()


class OpenAIProvider(GenerationProvider):
    """Chat completions through the official OpenAI SDK."""

    name = "openai"
    default_reasoning_model = "gpt-4o"
    default_note_model = "gpt-4o-mini"
    base_url: str | None = None

    def __init__(
        self,
        api_key: str,
        reasoning_model: str = "",
        note_model: str = "",
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        temperature: float = DEFAULT_TEMPERATURE,
    ):
        super().__init__(reasoning_model, note_model)
        self.api_key = api_key
        self.base_url = base_url or self.base_url
        self.timeout = timeout
        self.temperature = temperature
        self._client: AsyncOpenAI | None = None

    async def _ensure_client(self) -> AsyncOpenAI:
        """Lazy initialize the SDK client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str, *, model: str | None = None) -> str:
        client = await self._ensure_client()
        model = model or self.reasoning_model

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
            )
        except APIStatusError as e:
            logger.error(f"{self.name} request failed with status {e.status_code}")
            raise TransportError(e.status_code, e.response.text, self.name) from e
        except APIConnectionError as e:
            logger.error(f"{self.name} request could not be sent: {e}")
            raise TransportError(0, str(e), self.name) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek chat completions via its OpenAI-compatible endpoint."""

    name = "deepseek"
    default_reasoning_model = "deepseek-chat"
    default_note_model = "deepseek-chat"
    base_url = "https://api.deepseek.com"


class GeminiProvider(GenerationProvider):
    """Gemini ``generateContent`` over plain REST."""

    name = "gemini"
    default_reasoning_model = "gemini-1.5-pro"
    default_note_model = "gemini-1.5-flash"
    endpoint = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: str,
        reasoning_model: str = "",
        note_model: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        temperature: float = DEFAULT_TEMPERATURE,
    ):
        super().__init__(reasoning_model, note_model)
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self._session: aiohttp.ClientSession | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    async def complete(self, system_prompt: str, user_prompt: str, *, model: str | None = None) -> str:
        session = await self._ensure_session()
        model = model or self.reasoning_model
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}
            ],
            "generationConfig": {"temperature": self.temperature},
        }

        try:
            async with session.post(
                f"{self.endpoint}/{model}:generateContent",
                params={"key": self.api_key},
                json=body,
            ) as response:
                raw = await response.text()
                if response.status >= 400:
                    logger.error(f"{self.name} request failed with status {response.status}")
                    raise TransportError(response.status, raw, self.name)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(f"{self.name} request could not be completed: {e!r}")
            raise TransportError(0, str(e) or type(e).__name__, self.name) from e

        return self._extract_text(raw)

    @staticmethod
    def _extract_text(raw: str) -> str:
        try:
            envelope: Any = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as e:
            raise SchemaError("provider envelope was not JSON", raw) from e

        try:
            return envelope["candidates"][0]["content"]["parts"][0]["text"] or ""
        except (KeyError, IndexError, TypeError):
            return ""

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


PROVIDERS: dict[str, type[GenerationProvider]] = {
    "openai": OpenAIProvider,
    "deepseek": DeepSeekProvider,
    "gemini": GeminiProvider,
}


def create_provider(
    name: str,
    api_key: str | None,
    *,
    reasoning_model: str = "",
    note_model: str = "",
    timeout: float = DEFAULT_TIMEOUT,
) -> GenerationProvider:
    """
    Build a provider by name.

    Raises:
        ProviderConfigError: For "none", an unknown name, or a missing API key
    """
    if name == "none":
        raise ProviderConfigError(name, "no provider configured")
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise ProviderConfigError(name, f"unknown provider, expected one of {sorted(PROVIDERS)}")
    if not api_key:
        raise ProviderConfigError(name, "API key is missing")

    logger.info(f"Generation provider initialized: {name}")
    return provider_cls(  # type: ignore[call-arg]
        api_key,
        reasoning_model,
        note_model,
        timeout=timeout,
    )
